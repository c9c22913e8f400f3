"""
MedProof Prover Attestation

Ed25519 (RFC 8032) signatures over a proof's public signals and proof
hash. A verifier holding a trust store of prover public keys can then
reject proofs whose signals were fabricated or altered, without trusting
anything the prover put in the metadata.

Trust store format:
    {"prover_keys": {"<kid>": "<base64 public key>"}}
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .canonicalization import canonicalize
from .util import b64d, b64e

ATTESTATION_ALGORITHM = "ed25519"


def attestation_payload(public_signals: List[Any], proof_hash: str) -> bytes:
    """Canonical bytes a prover signs."""
    return canonicalize({"proofHash": proof_hash, "publicSignals": list(public_signals)})


@dataclass
class ProverKey:
    """Ed25519 signing key held by a hospital's prover."""
    kid: str
    signing_key: bytes

    @classmethod
    def generate(cls, kid: str) -> 'ProverKey':
        return cls(kid=kid, signing_key=bytes(SigningKey.generate()))

    @classmethod
    def load(cls, path: str) -> 'ProverKey':
        """Load from a JSON file with kid and private_key_b64."""
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return cls(kid=raw["kid"], signing_key=b64d(raw["private_key_b64"]))

    def save(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"kid": self.kid, "private_key_b64": b64e(self.signing_key)}, f, indent=2)

    @property
    def verify_key_b64(self) -> str:
        return b64e(bytes(SigningKey(self.signing_key).verify_key))

    def trust_store(self) -> Dict[str, Any]:
        return {"prover_keys": {self.kid: self.verify_key_b64}}

    def attest(self, public_signals: List[Any], proof_hash: str) -> Dict[str, str]:
        """Sign the public signals and proof hash."""
        sig = SigningKey(self.signing_key).sign(attestation_payload(public_signals, proof_hash)).signature
        return {"kid": self.kid, "alg": ATTESTATION_ALGORITHM, "sig_b64": b64e(sig)}


def verify_ed25519(signature_b64: str, payload: bytes, public_key_b64: str) -> bool:
    """
    Verify an Ed25519 signature.

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        vk = VerifyKey(b64d(public_key_b64))
        vk.verify(payload, b64d(signature_b64))
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False


def verify_attestation(
    attestation: Optional[Dict[str, Any]],
    public_signals: List[Any],
    proof_hash: str,
    trust_store: Dict[str, Any]
) -> Optional[str]:
    """
    Check a proof attestation against a trust store.

    Returns:
        None if valid, otherwise the reason it is not
    """
    if not attestation or not isinstance(attestation, dict):
        return "Missing prover attestation"

    kid = attestation.get("kid")
    sig_b64 = attestation.get("sig_b64")
    if not isinstance(kid, str) or not isinstance(sig_b64, str) or not kid or not sig_b64:
        return "Incomplete attestation data"
    if attestation.get("alg") != ATTESTATION_ALGORITHM:
        return f"Unsupported attestation algorithm: {attestation.get('alg')}"

    public_key = trust_store.get("prover_keys", {}).get(kid)
    if not isinstance(public_key, str) or not public_key:
        return f"Unknown prover key: {kid}"

    if not verify_ed25519(sig_b64, attestation_payload(public_signals, proof_hash), public_key):
        return "Invalid attestation signature"
    return None
