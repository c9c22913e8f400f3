"""
Utility functions for MedProof.

Encoding and time helpers shared by the proof, signing and service
modules.
"""

import base64
from datetime import datetime, timezone


def utc_now_iso() -> str:
    """Current UTC time as RFC3339 with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace("+00:00", "Z")


def b64e(b: bytes) -> str:
    """Base64 encode bytes to string."""
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    """Base64 decode string to bytes, rejecting non-alphabet characters."""
    return base64.b64decode(s.encode('ascii'), validate=True)
