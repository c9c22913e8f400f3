"""
MedProof Statistical Disclosure Core

Version: 1.0.0

Hospitals and researchers agree on a study without exchanging its
protocol, and hospitals show that private treatment statistics meet
public thresholds without revealing per-patient data.

- A study commitment is the SHA-256 of the canonical study object;
  identical protocols always produce identical commitments.
- A disclosure proof publishes the thresholds, a salted commitment to
  the private statistics, and one pass/fail flag per predicate
  (sample size, efficacy, significance) plus their conjunction.

The proof elements are a development placeholder with the shape of a
Groth16 proof. They bind the public signals but carry no
zero-knowledge guarantee; prover attestation (Ed25519) lets a verifier
reject fabricated signals.

Usage:
    from medproof import (
        commit,
        generate_proof,
        generate_salt,
        verify_proof,
        MedicalStats,
        ProofThresholds,
    )

    commitment = commit(protocol_dict)

    stats = MedicalStats(
        patient_count=1670,
        treatment_success=1303,
        control_success=400,
        control_count=823,
        p_value=0.001,
    )
    proof = generate_proof(stats, generate_salt(), ProofThresholds())

    if proof.overall_valid:
        # publish proof.to_dict()
        ...

    result = verify_proof(proof.to_dict())
"""

__version__ = "1.0.0"

# Errors
from .errors import MedProofError, InvalidProtocol, InvalidStats

# Canonicalization and hashing
from .canonicalization import canonicalize, canonicalize_str
from .hashing import sha256_hex, content_hash, data_commitment, proof_hash

# Study protocol and commitment
from .protocol import StudyProtocol
from .commitment import (
    CommitmentRecord,
    StudyCommitmentGenerator,
    build_canonical_study,
    commit,
)

# Statistics and thresholds
from .stats import (
    MedicalStats,
    ProofThresholds,
    PredicateEvaluation,
    evaluate_predicates,
    generate_salt,
)

# Proofs
from .proof import Proof, ProofBlob, ProofMetadata
from .generator import MedicalProofGenerator, generate_proof
from .verifier import ProofVerifier, VerificationResult, verify_proof, verify_batch
from .insights import research_insights

# Attestation
from .signing import ProverKey, verify_attestation

# Stores
from .stores import (
    CommitmentStore,
    ProofStore,
    InMemoryCommitmentStore,
    InMemoryProofStore,
    SqliteCommitmentStore,
    SqliteProofStore,
)


__all__ = [
    # Version
    "__version__",

    # Errors
    "MedProofError",
    "InvalidProtocol",
    "InvalidStats",

    # Canonicalization
    "canonicalize",
    "canonicalize_str",

    # Hashing
    "sha256_hex",
    "content_hash",
    "data_commitment",
    "proof_hash",

    # Commitment
    "StudyProtocol",
    "CommitmentRecord",
    "StudyCommitmentGenerator",
    "build_canonical_study",
    "commit",

    # Statistics
    "MedicalStats",
    "ProofThresholds",
    "PredicateEvaluation",
    "evaluate_predicates",
    "generate_salt",

    # Proofs
    "Proof",
    "ProofBlob",
    "ProofMetadata",
    "MedicalProofGenerator",
    "generate_proof",
    "ProofVerifier",
    "VerificationResult",
    "verify_proof",
    "verify_batch",
    "research_insights",

    # Attestation
    "ProverKey",
    "verify_attestation",

    # Stores
    "CommitmentStore",
    "ProofStore",
    "InMemoryCommitmentStore",
    "InMemoryProofStore",
    "SqliteCommitmentStore",
    "SqliteProofStore",
]
