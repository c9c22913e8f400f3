"""
MedProof Canonical Commitment Engine

Produces a deterministic SHA-256 commitment to a study protocol so that a
hospital's and a researcher's independently computed views of the same
study can be shown identical without exchanging the protocol.

Commitment algorithm:
1. Build the canonical study object from the commitment surface only
2. Recursively sort object keys
3. Serialize as compact canonical JSON
4. SHA-256, lowercase hex
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .canonicalization import canonicalize_str
from .errors import InvalidProtocol
from .hashing import constant_time_equals, is_hex_digest, study_commitment_hash
from .logging_config import audit_log
from .protocol import Intervention, NumericRange, StudyProtocol
from .util import utc_now_iso

logger = logging.getLogger(__name__)

CANONICAL_VERSION = "1.0"


@dataclass(frozen=True)
class CommitmentRecord:
    """A study commitment and the canonical object it was computed over."""
    commitment: str
    canonical_study: Dict[str, Any]
    timestamp: str
    version: str = CANONICAL_VERSION
    study_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "commitment": self.commitment,
            "canonicalStudy": self.canonical_study,
            "timestamp": self.timestamp,
            "version": self.version,
        }
        if self.study_id:
            d["studyId"] = self.study_id
        return d


def _coerce_protocol(protocol: Union[StudyProtocol, Dict[str, Any]]) -> StudyProtocol:
    if isinstance(protocol, StudyProtocol):
        return protocol
    if isinstance(protocol, dict):
        return StudyProtocol.from_dict(protocol)
    raise InvalidProtocol(f"Unsupported protocol type: {type(protocol).__name__}")


def _intervention(arm: Intervention) -> Dict[str, Any]:
    return {
        "code": arm.effective_code,
        "display": arm.display,
        "dosing": arm.dosing,
    }


def _range_bounds(prefix: str, rng: NumericRange) -> Dict[str, Any]:
    bounds = {}
    if rng.min is not None:
        bounds[f"{prefix}Min"] = rng.min
    if rng.max is not None:
        bounds[f"{prefix}Max"] = rng.max
    return bounds


def build_canonical_study(protocol: StudyProtocol) -> Dict[str, Any]:
    """
    Build the commitment surface of a protocol.

    Optional inclusion ranges appear only when supplied. Study design
    type and duration are omitted when absent. All other defaults are
    applied by StudyProtocol and are identical on every call.
    """
    criteria = protocol.inclusion_criteria
    inclusion = {
        "ageMin": criteria.age_range.min,
        "ageMax": criteria.age_range.max,
        "gender": criteria.gender,
    }
    for name in sorted(criteria.optional_ranges):
        inclusion.update(_range_bounds(name, criteria.optional_ranges[name]))

    design = protocol.study_design
    study_design = {
        "blinding": design.blinding,
        "randomization": design.randomization,
    }
    if design.type is not None:
        study_design["type"] = design.type
    if design.duration is not None:
        study_design["duration"] = design.duration

    return {
        "condition": {
            "code": protocol.condition.code,
            "system": protocol.condition.system,
            "display": protocol.condition.display,
        },
        "treatment": _intervention(protocol.treatment),
        "comparator": _intervention(protocol.comparator) if protocol.comparator else None,
        "inclusionCriteria": inclusion,
        "primaryEndpoint": {
            "measure": protocol.primary_endpoint.measure,
            "timepoint": protocol.primary_endpoint.timepoint,
        },
        "studyDesign": study_design,
        "enrollment": {
            "targetSize": protocol.enrollment.target_size,
            "actualSize": protocol.enrollment.actual_size,
        },
        "regulatory": {
            "irbNumber": protocol.regulatory.irb_number,
            "clinicalTrialsId": protocol.regulatory.clinical_trials_id,
        },
    }


def commit(protocol: Union[StudyProtocol, Dict[str, Any]]) -> str:
    """
    Compute the study commitment.

    Raises:
        InvalidProtocol: required fields missing or malformed
    """
    return study_commitment_hash(build_canonical_study(_coerce_protocol(protocol)))


class StudyCommitmentGenerator:
    """Commitment generation and checking for study protocols."""

    def generate_commitment(self, protocol: Union[StudyProtocol, Dict[str, Any]]) -> CommitmentRecord:
        protocol = _coerce_protocol(protocol)
        canonical = build_canonical_study(protocol)
        commitment = study_commitment_hash(canonical)

        logger.debug("Canonical study for %s: %s", protocol.study_id, canonicalize_str(canonical))
        audit_log.commitment_generated(
            commitment,
            study_id=protocol.study_id,
            canonical_keys=sorted(canonical),
        )

        return CommitmentRecord(
            commitment=commitment,
            canonical_study=canonical,
            timestamp=utc_now_iso(),
            study_id=protocol.study_id,
        )

    def verify_commitment(
        self,
        provided: str,
        protocol: Union[StudyProtocol, Dict[str, Any]]
    ) -> bool:
        """
        Check a provided commitment against a protocol.

        Returns False, never raises, for malformed commitments or protocols.
        """
        if not is_hex_digest(provided):
            return False
        try:
            protocol = _coerce_protocol(protocol)
            expected = commit(protocol)
        except InvalidProtocol as e:
            logger.warning("Cannot verify commitment, invalid protocol: %s", e)
            return False

        if constant_time_equals(provided, expected):
            return True

        audit_log.commitment_mismatch(protocol.study_id, provided, expected)
        return False

    def commitment_summary(self, protocol: Union[StudyProtocol, Dict[str, Any]]) -> Dict[str, Any]:
        """Human-readable summary of the committed parameters."""
        protocol = _coerce_protocol(protocol)
        commitment = commit(protocol)
        age = protocol.inclusion_criteria.age_range

        return {
            "studyId": protocol.study_id,
            "commitment": commitment,
            "parameters": {
                "condition": protocol.condition.display,
                "treatment": protocol.treatment.display,
                "comparator": protocol.comparator.display if protocol.comparator else "None",
                "ageRange": f"{canonicalize_str(age.min)}-{canonicalize_str(age.max)}",
                "sampleSize": protocol.enrollment.actual_size,
                "studyType": protocol.study_design.type,
                "duration": protocol.study_design.duration,
            },
        }
