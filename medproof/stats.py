"""
MedProof Statistics and Disclosure Predicates

Private medical statistics, public disclosure thresholds, and the
predicates evaluated over them.

Arithmetic rules, shared by generator and verifier:
- p_value_scaled = floor(p_value * 10000), computed in Decimal
- efficacy_rate_percent = treatment_success * 100 // patient_count

Thresholds are integers, so floor(rate) >= threshold holds exactly when
the rational rate does. Generation and verification therefore never
disagree at a boundary.

A rate above 100% is arithmetically possible when treatment_success
exceeds patient_count. Such stats still produce a proof, but the
efficacy predicate fails for them.
"""

import math
import secrets
from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Any, Dict, List

from .config import P_VALUE_SCALE
from .errors import InvalidStats

SALT_BITS = 248
MAX_EFFICACY_RATE_PERCENT = 100


def generate_salt() -> int:
    """Fresh single-use salt from the OS CSPRNG. Never reuse across submissions."""
    return secrets.randbits(SALT_BITS) | (1 << (SALT_BITS - 1))


def validate_salt(salt: Any) -> int:
    if isinstance(salt, bool) or not isinstance(salt, int):
        raise InvalidStats("salt must be an integer", field="salt")
    if salt <= 0:
        raise InvalidStats("salt must be positive", field="salt")
    return salt


def scale_p_value(p_value: float) -> int:
    """floor(p_value * 10000) without binary floating point drift."""
    scaled = Decimal(repr(p_value)) * P_VALUE_SCALE
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def efficacy_rate_percent(treatment_success: int, patient_count: int) -> int:
    if patient_count == 0:
        return 0
    return treatment_success * 100 // patient_count


def _require_count(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidStats(f"{name} must be an integer", field=name)
    if value < 0:
        raise InvalidStats(f"{name} must be non-negative", field=name)
    return value


@dataclass(frozen=True)
class MedicalStats:
    """
    Private aggregate statistics for a treatment study.

    Never leaves the hospital; only the data commitment and predicate
    flags derived from it are published.
    """
    patient_count: int
    treatment_success: int
    control_success: int
    control_count: int
    p_value: float

    def __post_init__(self):
        self._validate()

    def _validate(self):
        _require_count(self.patient_count, "patientCount")
        _require_count(self.treatment_success, "treatmentSuccess")
        _require_count(self.control_success, "controlSuccess")
        _require_count(self.control_count, "controlCount")

        if self.control_success > self.control_count:
            raise InvalidStats("controlSuccess exceeds controlCount", field="controlSuccess")

        if isinstance(self.p_value, bool) or not isinstance(self.p_value, (int, float)):
            raise InvalidStats("pValue must be a number", field="pValue")
        if not math.isfinite(self.p_value) or not 0 <= self.p_value <= 1:
            raise InvalidStats("pValue must be within [0, 1]", field="pValue")

    @property
    def treatment_count(self) -> int:
        return self.patient_count - self.control_count

    @property
    def successes_exceed_cohort(self) -> bool:
        return self.treatment_success > self.patient_count

    @property
    def p_value_scaled(self) -> int:
        return scale_p_value(self.p_value)

    @property
    def efficacy_rate_percent(self) -> int:
        return efficacy_rate_percent(self.treatment_success, self.patient_count)

    def commitment_values(self) -> List[int]:
        """Private values bound by the data commitment, in circuit order."""
        return [
            self.patient_count,
            self.treatment_success,
            self.control_success,
            self.control_count,
            self.p_value_scaled,
        ]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MedicalStats':
        if not isinstance(data, dict):
            raise InvalidStats("stats must be an object")
        required = ["patientCount", "treatmentSuccess", "controlSuccess", "controlCount", "pValue"]
        missing = [f for f in required if f not in data]
        if missing:
            raise InvalidStats(f"Missing required fields: {missing}", field=missing[0])
        return cls(
            patient_count=data["patientCount"],
            treatment_success=data["treatmentSuccess"],
            control_success=data["controlSuccess"],
            control_count=data["controlCount"],
            p_value=data["pValue"],
        )


@dataclass(frozen=True)
class ProofThresholds:
    """Public disclosure policy, echoed as the first three public signals."""
    min_patients: int = 100
    min_efficacy_rate_percent: int = 70
    max_p_value_scaled: int = 500

    def __post_init__(self):
        for name in ("min_patients", "min_efficacy_rate_percent", "max_p_value_scaled"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidStats(f"{name} must be a non-negative integer", field=name)

    def as_signals(self) -> List[int]:
        return [self.min_patients, self.min_efficacy_rate_percent, self.max_p_value_scaled]

    def to_dict(self) -> Dict[str, int]:
        return {
            "minPatients": self.min_patients,
            "minEfficacyRatePercent": self.min_efficacy_rate_percent,
            "maxPValueScaled": self.max_p_value_scaled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProofThresholds':
        if not isinstance(data, dict):
            raise InvalidStats("thresholds must be an object")
        defaults = cls()
        return cls(
            min_patients=data.get("minPatients", defaults.min_patients),
            min_efficacy_rate_percent=data.get("minEfficacyRatePercent", defaults.min_efficacy_rate_percent),
            max_p_value_scaled=data.get("maxPValueScaled", defaults.max_p_value_scaled),
        )


@dataclass(frozen=True)
class PredicateEvaluation:
    """Outcome of one disclosure predicate."""
    predicate_id: str
    passed: bool
    required: str
    observed: str

    @property
    def flag(self) -> int:
        return 1 if self.passed else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "predicate_id": self.predicate_id,
            "result": "PASS" if self.passed else "FAIL",
            "required": self.required,
            "observed": self.observed,
        }


@dataclass(frozen=True)
class PredicateOutcome:
    sample_size: PredicateEvaluation
    efficacy: PredicateEvaluation
    significance: PredicateEvaluation

    @property
    def overall_valid(self) -> bool:
        return self.sample_size.passed and self.efficacy.passed and self.significance.passed

    def flags(self) -> List[int]:
        """[validSampleSize, validEfficacy, validSignificance, overallValid]"""
        return [
            self.sample_size.flag,
            self.efficacy.flag,
            self.significance.flag,
            1 if self.overall_valid else 0,
        ]

    def failed(self) -> List[PredicateEvaluation]:
        return [p for p in (self.sample_size, self.efficacy, self.significance) if not p.passed]


def evaluate_predicates(
    sample_size: int,
    efficacy_rate: int,
    p_value_scaled: int,
    thresholds: ProofThresholds
) -> PredicateOutcome:
    """
    Evaluate the three disclosure predicates.

    Takes only derived integers so the verifier can replay it from
    published values without the private statistics.
    """
    return PredicateOutcome(
        sample_size=PredicateEvaluation(
            "valid_sample_size",
            sample_size >= thresholds.min_patients,
            f">= {thresholds.min_patients} patients",
            str(sample_size),
        ),
        efficacy=PredicateEvaluation(
            "valid_efficacy",
            thresholds.min_efficacy_rate_percent <= efficacy_rate <= MAX_EFFICACY_RATE_PERCENT,
            f"{thresholds.min_efficacy_rate_percent}-{MAX_EFFICACY_RATE_PERCENT}% efficacy",
            f"{efficacy_rate}%",
        ),
        significance=PredicateEvaluation(
            "valid_significance",
            p_value_scaled < thresholds.max_p_value_scaled,
            f"p_scaled < {thresholds.max_p_value_scaled}",
            str(p_value_scaled),
        ),
    )
