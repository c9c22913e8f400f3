from pydantic import BaseModel
from typing import Dict, Any, Optional, List

# Stats, thresholds and protocols stay plain dicts: the core dataclasses
# validate them strictly (no "5" -> 5 coercion) and raise typed errors.


class ProofRequest(BaseModel):
    stats: Dict[str, Any]
    thresholds: Optional[Dict[str, Any]] = None


class VerificationResponse(BaseModel):
    valid: bool
    timestamp: str
    method: str
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str
    env: str
    version: str
    stored_proofs: int


class ProofList(BaseModel):
    proof_hashes: List[str]
