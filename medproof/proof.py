"""
MedProof Proof Objects

The proof wire format consumed by the HTTP layer and third-party
verifiers:

    {
      "proof": {"pi_a": [...], "pi_b": [...], "pi_c": [...],
                "protocol": "groth16", "curve": "bn128"},
      "publicSignals": [minPatients, minEfficacyRatePercent, maxPValueScaled,
                        dataCommitment, validSampleSize, validEfficacy,
                        validSignificance, overallValid],
      "metadata": {...}
    }

The pi_a/pi_b/pi_c elements are a development placeholder with the shape
of a Groth16 proof. They are derived from the public signals by hash
chaining, so anyone can recompute them: they bind the signals together
but are NOT a zero-knowledge or soundness guarantee. Use prover
attestation (see signing.py) when the verifier must not trust the prover's
metadata.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .hashing import blob_seed, hash_chain

PROOF_PROTOCOL = "groth16"
PROOF_CURVE = "bn128"

# Public signal positions. Order is part of the wire contract.
SIGNAL_MIN_PATIENTS = 0
SIGNAL_MIN_EFFICACY = 1
SIGNAL_MAX_P_VALUE = 2
SIGNAL_DATA_COMMITMENT = 3
SIGNAL_VALID_SAMPLE_SIZE = 4
SIGNAL_VALID_EFFICACY = 5
SIGNAL_VALID_SIGNIFICANCE = 6
SIGNAL_OVERALL_VALID = 7
PUBLIC_SIGNAL_COUNT = 8


@dataclass(frozen=True)
class ProofBlob:
    """Opaque proof elements, Groth16-shaped."""
    pi_a: Tuple[str, str, str]
    pi_b: Tuple[Tuple[str, str], Tuple[str, str], Tuple[str, str]]
    pi_c: Tuple[str, str, str]
    protocol: str = PROOF_PROTOCOL
    curve: str = PROOF_CURVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pi_a": list(self.pi_a),
            "pi_b": [list(pair) for pair in self.pi_b],
            "pi_c": list(self.pi_c),
            "protocol": self.protocol,
            "curve": self.curve,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProofBlob':
        return cls(
            pi_a=tuple(data["pi_a"]),
            pi_b=tuple(tuple(pair) for pair in data["pi_b"]),
            pi_c=tuple(data["pi_c"]),
            protocol=data.get("protocol", PROOF_PROTOCOL),
            curve=data.get("curve", PROOF_CURVE),
        )


def derive_blob(public_signals: List[Any]) -> ProofBlob:
    """
    Derive the placeholder proof elements from the public signals.

    Each component has its own domain tag; elements within a component
    are a SHA-256 chain over that tag and the canonical signals.
    """
    a = hash_chain(blob_seed("pi_a", public_signals), 2)
    b = hash_chain(blob_seed("pi_b", public_signals), 4)
    c = hash_chain(blob_seed("pi_c", public_signals), 2)
    return ProofBlob(
        pi_a=(a[0], a[1], "1"),
        pi_b=((b[0], b[1]), (b[2], b[3]), ("1", "0")),
        pi_c=(c[0], c[1], "1"),
    )


@dataclass(frozen=True)
class ProofMetadata:
    study_type: str
    efficacy_rate: int
    sample_size: int
    p_value: float
    timestamp: str
    proof_hash: str
    verified: bool = False
    verification_timestamp: Optional[str] = None
    attestation: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "studyType": self.study_type,
            "efficacyRate": self.efficacy_rate,
            "sampleSize": self.sample_size,
            "pValue": self.p_value,
            "timestamp": self.timestamp,
            "proofHash": self.proof_hash,
            "verified": self.verified,
            "verificationTimestamp": self.verification_timestamp,
        }
        if self.attestation:
            d["attestation"] = dict(self.attestation)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProofMetadata':
        return cls(
            study_type=data["studyType"],
            efficacy_rate=data["efficacyRate"],
            sample_size=data["sampleSize"],
            p_value=data["pValue"],
            timestamp=data["timestamp"],
            proof_hash=data["proofHash"],
            verified=data.get("verified", False),
            verification_timestamp=data.get("verificationTimestamp"),
            attestation=data.get("attestation"),
        )


@dataclass(frozen=True)
class Proof:
    """A medical-statistics disclosure proof. Immutable once generated."""
    blob: ProofBlob
    public_signals: Tuple[Any, ...]
    metadata: ProofMetadata

    @property
    def overall_valid(self) -> int:
        return self.public_signals[SIGNAL_OVERALL_VALID]

    @property
    def valid_sample_size(self) -> int:
        return self.public_signals[SIGNAL_VALID_SAMPLE_SIZE]

    @property
    def data_commitment(self) -> str:
        return self.public_signals[SIGNAL_DATA_COMMITMENT]

    @property
    def proof_hash(self) -> str:
        return self.metadata.proof_hash

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proof": self.blob.to_dict(),
            "publicSignals": list(self.public_signals),
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Proof':
        """
        Parse the wire format.

        Raises KeyError, TypeError or ValueError on malformed input;
        the verifier reports these as invalid proofs.
        """
        if not isinstance(data, dict):
            raise TypeError("proof must be an object")
        return cls(
            blob=ProofBlob.from_dict(data["proof"]),
            public_signals=tuple(data["publicSignals"]),
            metadata=ProofMetadata.from_dict(data["metadata"]),
        )
