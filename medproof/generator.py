"""
MedProof Proof Generator

Produces a disclosure proof that private treatment statistics meet the
public thresholds, revealing only the thresholds, a salted data
commitment and one pass/fail flag per predicate.

Generation:
1. Validate statistics and salt
2. Compute the data commitment over the private values and salt
3. Evaluate the sample-size, efficacy and significance predicates
4. Assemble the public signals and derive the proof elements
5. Optionally attest the signals with the prover's Ed25519 key
6. Verify the result and record the verification outcome

Failing a threshold is not an error: the proof is still produced with
the corresponding flags set to 0.
"""

import dataclasses
import logging
from typing import Any, Dict, Optional, Union

from .config import STUDY_TYPE, default_thresholds
from .errors import InvalidStats
from .hashing import data_commitment, proof_hash
from .logging_config import audit_log
from .proof import Proof, ProofMetadata, derive_blob
from .signing import ProverKey
from .stats import MedicalStats, ProofThresholds, evaluate_predicates, validate_salt
from .util import utc_now_iso
from .verifier import ProofVerifier

logger = logging.getLogger(__name__)


def _coerce_stats(stats: Union[MedicalStats, Dict[str, Any]]) -> MedicalStats:
    if isinstance(stats, MedicalStats):
        return stats
    if isinstance(stats, dict):
        return MedicalStats.from_dict(stats)
    raise InvalidStats(f"Unsupported stats type: {type(stats).__name__}")


def _coerce_thresholds(thresholds: Union[ProofThresholds, Dict[str, Any], None]) -> ProofThresholds:
    if thresholds is None:
        return default_thresholds()
    if isinstance(thresholds, ProofThresholds):
        return thresholds
    if isinstance(thresholds, dict):
        return ProofThresholds.from_dict(thresholds)
    raise InvalidStats(f"Unsupported thresholds type: {type(thresholds).__name__}")


class MedicalProofGenerator:
    """
    Generates medical-statistics disclosure proofs.

    Holds no per-proof state; one instance may serve concurrent callers.
    """

    def __init__(
        self,
        verifier: Optional[ProofVerifier] = None,
        prover_key: Optional[ProverKey] = None
    ):
        self.prover_key = prover_key
        if verifier is None:
            verifier = ProofVerifier(prover_key.trust_store() if prover_key else None)
        self.verifier = verifier

    def generate_proof(
        self,
        stats: Union[MedicalStats, Dict[str, Any]],
        salt: int,
        thresholds: Union[ProofThresholds, Dict[str, Any], None] = None
    ) -> Proof:
        """
        Generate a proof for the given statistics.

        Args:
            stats: Private aggregate statistics
            salt: Fresh single-use blinding value (see stats.generate_salt)
            thresholds: Disclosure policy; environment defaults when None

        Raises:
            InvalidStats: statistics, salt or thresholds are malformed
        """
        stats = _coerce_stats(stats)
        salt = validate_salt(salt)
        thresholds = _coerce_thresholds(thresholds)
        if stats.successes_exceed_cohort:
            logger.warning("treatmentSuccess exceeds patientCount; efficacy predicate will fail")

        commitment = data_commitment(stats.commitment_values(), salt)
        efficacy = stats.efficacy_rate_percent
        outcome = evaluate_predicates(
            stats.patient_count,
            efficacy,
            stats.p_value_scaled,
            thresholds,
        )

        public_signals = tuple(thresholds.as_signals() + [commitment] + outcome.flags())
        blob = derive_blob(list(public_signals))
        digest = proof_hash(blob.to_dict())

        for failed in outcome.failed():
            logger.info(
                "Predicate %s failed: required %s, observed %s",
                failed.predicate_id, failed.required, failed.observed
            )

        attestation = None
        if self.prover_key:
            attestation = self.prover_key.attest(list(public_signals), digest)

        proof = Proof(
            blob=blob,
            public_signals=public_signals,
            metadata=ProofMetadata(
                study_type=STUDY_TYPE,
                efficacy_rate=efficacy,
                sample_size=stats.patient_count,
                p_value=stats.p_value,
                timestamp=utc_now_iso(),
                proof_hash=digest,
                attestation=attestation,
            ),
        )

        result = self.verifier.verify(proof)
        if not result.valid:
            logger.error("Generated proof %s failed self-verification: %s", digest, result.error)

        proof = dataclasses.replace(
            proof,
            metadata=dataclasses.replace(
                proof.metadata,
                verified=result.valid,
                verification_timestamp=result.timestamp,
            ),
        )

        audit_log.proof_generated(
            digest,
            overall_valid=proof.overall_valid,
            verified=result.valid,
            sample_size=stats.patient_count,
        )
        return proof


def generate_proof(
    stats: Union[MedicalStats, Dict[str, Any]],
    salt: int,
    thresholds: Union[ProofThresholds, Dict[str, Any], None] = None,
    prover_key: Optional[ProverKey] = None
) -> Proof:
    """Convenience function to generate a proof."""
    return MedicalProofGenerator(prover_key=prover_key).generate_proof(stats, salt, thresholds)
