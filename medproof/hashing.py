"""
MedProof Hashing

All digests are SHA-256 with lowercase hexadecimal output. Every hash
that binds secret or proof material is domain separated so a digest from
one context can never be replayed as a digest from another.

SHA-256 stands in for the SNARK-friendly hash (Poseidon) a real circuit
would use for the data commitment.
"""

import hashlib
import hmac
from typing import Any, Iterable, List, Union

from .canonicalization import canonicalize

DATA_COMMITMENT_DOMAIN = "medproof:data-commitment:v1"
PROOF_BLOB_DOMAIN = "medproof:proof-blob:v1"
PROOF_HASH_DOMAIN = "medproof:proof-hash:v1"


def sha256_hex(data: Union[bytes, str]) -> str:
    """Compute SHA-256 hash and return as lowercase hex string."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).hexdigest()


def content_hash(obj: Any) -> str:
    """SHA-256 over the canonical JSON encoding of obj."""
    return sha256_hex(canonicalize(obj))


def study_commitment_hash(canonical_study: dict) -> str:
    """
    Commitment to a canonical study object.

    Not domain separated: the digest must match the plain
    SHA-256(canonical JSON) that the JavaScript services compute.
    """
    return content_hash(canonical_study)


def data_commitment(values: Iterable[int], salt: int) -> str:
    """
    Bind private integer values and a salt.

    commitment = SHA-256(domain | v1 | v2 | ... | salt)
    """
    parts = [DATA_COMMITMENT_DOMAIN] + [str(int(v)) for v in values] + [str(int(salt))]
    return sha256_hex("|".join(parts))


def hash_chain(seed: str, length: int) -> List[str]:
    """
    Derive `length` field-element-shaped strings by repeated hashing.

    element[0] = SHA-256(seed), element[i] = SHA-256(element[i-1]).
    """
    elements = []
    current = seed
    for _ in range(length):
        current = sha256_hex(current)
        elements.append("0x" + current)
    return elements


def blob_seed(component: str, public_signals: list) -> str:
    """Per-component seed for the placeholder proof blob."""
    return f"{PROOF_BLOB_DOMAIN}|{component}|" + canonicalize(public_signals).decode('utf-8')


def proof_hash(blob: dict) -> str:
    """Index digest of a proof blob."""
    return sha256_hex(PROOF_HASH_DOMAIN.encode('utf-8') + b"|" + canonicalize(blob))


def constant_time_equals(a: Union[str, bytes], b: Union[str, bytes]) -> bool:
    """Compare two digests in constant time."""
    if isinstance(a, str):
        a = a.encode('utf-8')
    if isinstance(b, str):
        b = b.encode('utf-8')
    return hmac.compare_digest(a, b)


def is_hex_digest(value: Any, length: int = 64) -> bool:
    """True if value is a lowercase hex string of the given length."""
    if not isinstance(value, str) or len(value) != length:
        return False
    return all(c in "0123456789abcdef" for c in value)
