"""
MedProof Proof Verifier

Lets any third party check a medical-statistics proof without access to
the private statistics or to the generator.

Verification steps:
1. Structure of the proof elements (pi_a, pi_b, pi_c, protocol, curve)
2. Structure of the public signals (length, types, flag values)
3. Structure of the metadata
4. Proof elements re-derived from the public signals
5. Proof hash re-derived from the proof elements
6. Predicate flags consistent with each other and with the thresholds
   replayed over the published efficacy rate, sample size and p-value
7. Prover attestation, when the verifier holds a trust store

Verification never raises for malformed input: a failed proof is an
ordinary result carried in VerificationResult.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from .hashing import constant_time_equals, is_hex_digest, proof_hash
from .logging_config import audit_log
from .proof import (
    PROOF_CURVE,
    PROOF_PROTOCOL,
    PUBLIC_SIGNAL_COUNT,
    SIGNAL_DATA_COMMITMENT,
    SIGNAL_OVERALL_VALID,
    SIGNAL_VALID_EFFICACY,
    SIGNAL_VALID_SAMPLE_SIZE,
    SIGNAL_VALID_SIGNIFICANCE,
    Proof,
    derive_blob,
)
from .signing import verify_attestation
from .stats import ProofThresholds, evaluate_predicates, scale_p_value
from .util import utc_now_iso

logger = logging.getLogger(__name__)

METHOD_PLACEHOLDER = "placeholder-groth16"
METHOD_ATTESTED = "ed25519-attested"

FLAG_SIGNALS = (
    SIGNAL_VALID_SAMPLE_SIZE,
    SIGNAL_VALID_EFFICACY,
    SIGNAL_VALID_SIGNIFICANCE,
    SIGNAL_OVERALL_VALID,
)


@dataclass(frozen=True)
class VerificationResult:
    """Result of verifying a proof."""
    valid: bool
    timestamp: str
    method: str
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {"valid": self.valid, "timestamp": self.timestamp, "method": self.method}
        if self.error:
            d["error"] = self.error
        if self.details:
            d["details"] = self.details
        return d


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_str_seq(value: Any, length: int) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) == length
        and all(isinstance(v, str) for v in value)
    )


class ProofVerifier:
    """
    Proof verifier.

    Without a trust store, verification checks internal consistency of
    the placeholder proof (method "placeholder-groth16"). With a trust
    store of prover public keys, a valid prover attestation is also
    required (method "ed25519-attested").
    """

    def __init__(self, trust_store: Optional[Dict[str, Any]] = None):
        self.trust_store = trust_store

    @property
    def method(self) -> str:
        return METHOD_ATTESTED if self.trust_store else METHOD_PLACEHOLDER

    def verify(self, proof: Union[Proof, Dict[str, Any]]) -> VerificationResult:
        data = proof.to_dict() if isinstance(proof, Proof) else proof

        try:
            result = self._verify(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.debug("Malformed proof rejected", exc_info=True)
            result = self._invalid(f"Malformed proof: {e}")

        declared_hash = None
        if isinstance(data, dict) and isinstance(data.get("metadata"), dict):
            declared_hash = data["metadata"].get("proofHash")
        if result.valid:
            audit_log.proof_verified(declared_hash, result.method)
        else:
            audit_log.proof_rejected(declared_hash, result.method, result.error)
        return result

    def verify_batch(self, proofs: Iterable[Union[Proof, Dict[str, Any]]]) -> Dict[str, Any]:
        """Verify several proofs and summarize."""
        results = [self.verify(p) for p in proofs]
        valid_count = sum(1 for r in results if r.valid)
        total = len(results)
        return {
            "totalProofs": total,
            "validProofs": valid_count,
            "invalidProofs": total - valid_count,
            "verificationRate": (valid_count / total) * 100 if total else 0.0,
            "results": [r.to_dict() for r in results],
            "verifiedAt": utc_now_iso(),
        }

    def _valid(self) -> VerificationResult:
        return VerificationResult(valid=True, timestamp=utc_now_iso(), method=self.method)

    def _invalid(self, error: str, details: Dict[str, Any] = None) -> VerificationResult:
        return VerificationResult(
            valid=False,
            timestamp=utc_now_iso(),
            method=self.method,
            error=error,
            details=details,
        )

    def _verify(self, data: Any) -> VerificationResult:
        if not isinstance(data, dict):
            return self._invalid("Proof must be an object")

        # Steps 1-3: structure
        blob = data.get("proof")
        error = self._check_blob(blob)
        if error:
            return self._invalid(error)

        signals = data.get("publicSignals")
        error = self._check_signals(signals)
        if error:
            return self._invalid(error)

        metadata = data.get("metadata")
        error = self._check_metadata(metadata)
        if error:
            return self._invalid(error)

        # Step 4: proof elements bind the public signals
        expected_blob = derive_blob(list(signals)).to_dict()
        for component in ("pi_a", "pi_b", "pi_c"):
            given = [list(x) if isinstance(x, (list, tuple)) else x for x in blob[component]]
            if given != expected_blob[component]:
                return self._invalid(
                    "Proof elements do not match public signals",
                    {"component": component}
                )

        # Step 5: proof hash
        computed_hash = proof_hash(expected_blob)
        if not constant_time_equals(computed_hash, metadata["proofHash"]):
            return self._invalid(
                "Proof hash mismatch",
                {"computed": computed_hash, "declared": metadata["proofHash"]}
            )

        # Step 6: predicate consistency
        error, details = self._check_predicates(signals, metadata)
        if error:
            return self._invalid(error, details)

        # Step 7: prover attestation
        if self.trust_store:
            reason = verify_attestation(
                metadata.get("attestation"), list(signals), metadata["proofHash"], self.trust_store
            )
            if reason:
                return self._invalid(reason)

        return self._valid()

    def _check_blob(self, blob: Any) -> Optional[str]:
        if not isinstance(blob, dict):
            return "Missing proof elements"
        if not _is_str_seq(blob.get("pi_a"), 3):
            return "pi_a must be a triple of strings"
        if not _is_str_seq(blob.get("pi_c"), 3):
            return "pi_c must be a triple of strings"
        pi_b = blob.get("pi_b")
        if not isinstance(pi_b, (list, tuple)) or len(pi_b) != 3 or not all(_is_str_seq(p, 2) for p in pi_b):
            return "pi_b must be a triple of string pairs"
        if blob.get("protocol") != PROOF_PROTOCOL or blob.get("curve") != PROOF_CURVE:
            return f"Unsupported proof system: {blob.get('protocol')}/{blob.get('curve')}"
        return None

    def _check_signals(self, signals: Any) -> Optional[str]:
        if not isinstance(signals, (list, tuple)) or len(signals) != PUBLIC_SIGNAL_COUNT:
            return f"publicSignals must be an array of {PUBLIC_SIGNAL_COUNT} elements"
        for i in range(3):
            if not _is_int(signals[i]) or signals[i] < 0:
                return f"publicSignals[{i}] must be a non-negative integer threshold"
        if not is_hex_digest(signals[SIGNAL_DATA_COMMITMENT]):
            return "publicSignals[3] must be a 64-character hex data commitment"
        for i in FLAG_SIGNALS:
            if not _is_int(signals[i]) or signals[i] not in (0, 1):
                return f"publicSignals[{i}] must be 0 or 1"
        return None

    def _check_metadata(self, metadata: Any) -> Optional[str]:
        if not isinstance(metadata, dict):
            return "Missing metadata"
        if not _is_int(metadata.get("efficacyRate")) or metadata["efficacyRate"] < 0:
            return "metadata.efficacyRate must be a non-negative integer"
        if not _is_int(metadata.get("sampleSize")) or metadata["sampleSize"] < 0:
            return "metadata.sampleSize must be a non-negative integer"
        p_value = metadata.get("pValue")
        if (
            isinstance(p_value, bool)
            or not isinstance(p_value, (int, float))
            or not math.isfinite(p_value)
            or not 0 <= p_value <= 1
        ):
            return "metadata.pValue must be a number within [0, 1]"
        if not is_hex_digest(metadata.get("proofHash")):
            return "metadata.proofHash must be a 64-character hex digest"
        return None

    def _check_predicates(self, signals, metadata):
        """
        Replay the disclosure predicates over the published values.

        Returns (error, details), both None when consistent.
        """
        thresholds = ProofThresholds(
            min_patients=signals[0],
            min_efficacy_rate_percent=signals[1],
            max_p_value_scaled=signals[2],
        )
        sample_flag, efficacy_flag, significance_flag, overall_flag = (signals[i] for i in FLAG_SIGNALS)

        if overall_flag != (sample_flag & efficacy_flag & significance_flag):
            return "overallValid flag inconsistent with predicate flags", {"publicSignals": list(signals)}

        outcome = evaluate_predicates(
            metadata["sampleSize"],
            metadata["efficacyRate"],
            scale_p_value(metadata["pValue"]),
            thresholds,
        )
        meets_threshold = outcome.overall_valid
        if (overall_flag == 1) != meets_threshold:
            return (
                "overallValid flag does not match re-derived thresholds",
                {"overallValid": overall_flag, "meetsThreshold": meets_threshold},
            )

        mismatched = [
            evaluation.to_dict()
            for evaluation, flag in zip(
                (outcome.sample_size, outcome.efficacy, outcome.significance),
                (sample_flag, efficacy_flag, significance_flag),
            )
            if evaluation.flag != flag
        ]
        if mismatched:
            return "Predicate flags do not match re-derived thresholds", {"predicates": mismatched}
        return None, None


def verify_proof(
    proof: Union[Proof, Dict[str, Any]],
    trust_store: Optional[Dict[str, Any]] = None
) -> VerificationResult:
    """Convenience function to verify a proof."""
    return ProofVerifier(trust_store).verify(proof)


def verify_batch(
    proofs: List[Union[Proof, Dict[str, Any]]],
    trust_store: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Convenience function to verify several proofs."""
    return ProofVerifier(trust_store).verify_batch(proofs)
