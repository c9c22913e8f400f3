"""
Configuration module for MedProof.

Centralizes all configuration with environment variable support.
Thresholds are public disclosure policy; changing them changes which
proofs report overall validity.
"""

import os
from pathlib import Path
from typing import Dict

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("MEDPROOF_ENV", "dev")  # dev|stage|prod

# Logging
LOG_LEVEL = os.getenv("MEDPROOF_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("MEDPROOF_LOG_JSON", "1").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("MEDPROOF_LOG_FILE") or None

# Storage (empty means in-memory stores)
DB_PATH = os.getenv("MEDPROOF_DB_PATH", "")

# Prover attestation key (JSON with kid + private_key_b64)
SIGNING_KEY_PATH = os.getenv("MEDPROOF_SIGNING_KEY_PATH", "")

# ============================================================
# Disclosure Thresholds
# ============================================================

MIN_PATIENTS = int(os.getenv("MEDPROOF_MIN_PATIENTS", "100"))
MIN_EFFICACY_RATE = int(os.getenv("MEDPROOF_MIN_EFFICACY_RATE", "70"))
MAX_P_VALUE_SCALED = int(os.getenv("MEDPROOF_MAX_P_VALUE_SCALED", "500"))  # p < 0.05

# p-values are scaled to integers before entering the circuit
P_VALUE_SCALE = 10000

STUDY_TYPE = "treatment-efficacy"


def default_thresholds():
    """Thresholds built from the environment."""
    from .stats import ProofThresholds

    return ProofThresholds(
        min_patients=MIN_PATIENTS,
        min_efficacy_rate_percent=MIN_EFFICACY_RATE,
        max_p_value_scaled=MAX_P_VALUE_SCALED,
    )


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Validate that configured files exist.
    Returns dict of name -> exists.
    """
    paths = {}
    if SIGNING_KEY_PATH:
        paths["signing_key"] = SIGNING_KEY_PATH
    if DB_PATH:
        paths["db_dir"] = str(Path(DB_PATH).parent)
    return {name: Path(path).exists() for name, path in paths.items()}


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("MEDPROOF_DEBUG", "").lower() in ("1", "true", "yes")
