"""
Logging configuration for MedProof.

Provides structured JSON logging and an audit logger for commitment
and proof events. Salts and raw patient statistics are never logged;
audit events carry only public values and digests.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import List, Optional, TextIO

# Context variable for request ID tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in a consistent JSON format suitable for
    log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Specialized logger for audit events.

    Records commitment generation, proof generation and verification
    outcomes so a proof's history can be reconstructed from logs.
    """

    def __init__(self, name: str = "medproof.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        """Internal logging method with extra fields."""
        extra = {
            "event_type": event_type,
            "request_id": request_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def commitment_generated(
        self,
        commitment: str,
        study_id: Optional[str] = None,
        canonical_keys: Optional[List[str]] = None
    ) -> None:
        """Log a study commitment."""
        self._log(
            logging.INFO,
            "COMMITMENT_GENERATED",
            commitment=commitment,
            study_id=study_id,
            canonical_keys=canonical_keys,
            message=f"Study commitment {commitment[:16]}..."
        )

    def commitment_mismatch(
        self,
        study_id: Optional[str],
        provided: str,
        expected: str
    ) -> None:
        """Log a failed commitment check."""
        self._log(
            logging.WARNING,
            "COMMITMENT_MISMATCH",
            study_id=study_id,
            provided=provided[:16],
            expected=expected[:16],
            message="Study commitment does not match protocol"
        )

    def proof_generated(
        self,
        proof_hash: str,
        overall_valid: int,
        verified: bool,
        sample_size: int
    ) -> None:
        """Log a generated proof (public values only)."""
        self._log(
            logging.INFO,
            "PROOF_GENERATED",
            proof_hash=proof_hash,
            overall_valid=overall_valid,
            verified=verified,
            sample_size=sample_size,
            message=f"Proof {proof_hash[:16]}... generated"
        )

    def proof_verified(
        self,
        proof_hash: Optional[str],
        method: str
    ) -> None:
        """Log a successful verification."""
        self._log(
            logging.INFO,
            "PROOF_VERIFIED",
            proof_hash=proof_hash,
            method=method,
            message="Proof verification: VALID"
        )

    def proof_rejected(
        self,
        proof_hash: Optional[str],
        method: str,
        reason: str
    ) -> None:
        """Log a failed verification."""
        self._log(
            logging.WARNING,
            "PROOF_REJECTED",
            proof_hash=proof_hash,
            method=method,
            reason=reason,
            message=f"Proof verification: INVALID ({reason})"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
    stream: Optional[TextIO] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (recommended for production)
        log_file: Optional file path for log output
        stream: Console stream, stdout when None
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the request ID for the current context.

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


# Global audit logger instance
audit_log = AuditLogger()
