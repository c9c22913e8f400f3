"""
MedProof Study Protocol

Typed representation of the study parameters a commitment is computed
over. Protocols are validated when constructed so malformed input is
rejected at the boundary instead of deep inside hashing.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import InvalidProtocol


# Optional inclusion-criteria ranges that are part of the commitment
# surface, keyed by their source field name.
OPTIONAL_RANGE_FIELDS = {
    "hba1cRange": "hba1c",
    "bmiRange": "bmi",
    "ejectionFraction": "ejectionFraction",
}

DEFAULT_CONDITION_SYSTEM = "ICD-10"
DEFAULT_BLINDING = "open-label"
DEFAULT_RANDOMIZATION = "none"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_str(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidProtocol(f"{name} is required and must be a non-empty string", field=name)
    return value


def _optional_str(value: Any, name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidProtocol(f"{name} must be a string, got {type(value).__name__}", field=name)
    return value


def _optional_number(value: Any, name: str):
    if value is None:
        return None
    if not _is_number(value):
        raise InvalidProtocol(f"{name} must be a number, got {type(value).__name__}", field=name)
    return value


def _as_dict(value: Any, name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidProtocol(f"{name} must be an object", field=name)
    return value


@dataclass(frozen=True)
class Condition:
    """Medical condition under study (ICD-10 by default)."""
    code: str
    display: str
    system: str = DEFAULT_CONDITION_SYSTEM

    def __post_init__(self):
        _require_str(self.code, "condition.code")
        _require_str(self.display, "condition.display")
        _require_str(self.system, "condition.system")

    @classmethod
    def from_dict(cls, data: Any) -> 'Condition':
        if not isinstance(data, dict):
            raise InvalidProtocol("condition is required", field="condition")
        return cls(
            code=data.get("code"),
            display=data.get("display"),
            system=data.get("system") or DEFAULT_CONDITION_SYSTEM,
        )


@dataclass(frozen=True)
class Intervention:
    """Treatment or comparator arm descriptor."""
    display: str
    code: Optional[str] = None
    dosing: str = ""

    def __post_init__(self):
        _require_str(self.display, "display")
        _optional_str(self.code, "code")
        _optional_str(self.dosing, "dosing")

    @property
    def effective_code(self) -> str:
        return self.code or self.display

    @classmethod
    def from_dict(cls, data: Any, name: str) -> 'Intervention':
        if not isinstance(data, dict):
            raise InvalidProtocol(f"{name} is required", field=name)
        display = data.get("display")
        if not isinstance(display, str) or not display:
            raise InvalidProtocol(f"{name}.display is required", field=f"{name}.display")
        return cls(
            display=display,
            code=_optional_str(data.get("code"), f"{name}.code"),
            dosing=_optional_str(data.get("dosing"), f"{name}.dosing") or "",
        )


@dataclass(frozen=True)
class NumericRange:
    """A numeric inclusion range; either bound may be open."""
    min: Optional[float] = None
    max: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any, name: str, require_both: bool = False) -> 'NumericRange':
        if not isinstance(data, dict):
            raise InvalidProtocol(f"{name} must be an object with min/max", field=name)
        low = _optional_number(data.get("min"), f"{name}.min")
        high = _optional_number(data.get("max"), f"{name}.max")
        if require_both and (low is None or high is None):
            raise InvalidProtocol(f"{name} requires both min and max", field=name)
        if low is None and high is None:
            raise InvalidProtocol(f"{name} must define min or max", field=name)
        if low is not None and high is not None and low > high:
            raise InvalidProtocol(f"{name}.min exceeds {name}.max", field=name)
        return cls(min=low, max=high)


@dataclass(frozen=True)
class InclusionCriteria:
    age_range: NumericRange
    gender: str
    optional_ranges: Dict[str, NumericRange] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> 'InclusionCriteria':
        if not isinstance(data, dict):
            raise InvalidProtocol("inclusionCriteria is required", field="inclusionCriteria")
        if "ageRange" not in data:
            raise InvalidProtocol("inclusionCriteria.ageRange is required", field="ageRange")
        age_range = NumericRange.from_dict(data["ageRange"], "ageRange", require_both=True)
        gender = _require_str(data.get("gender"), "inclusionCriteria.gender")

        optional_ranges = {}
        for source, name in OPTIONAL_RANGE_FIELDS.items():
            if data.get(source) is not None:
                optional_ranges[name] = NumericRange.from_dict(data[source], source)

        return cls(age_range=age_range, gender=gender, optional_ranges=optional_ranges)


@dataclass(frozen=True)
class PrimaryEndpoint:
    measure: str = ""
    timepoint: str = ""


@dataclass(frozen=True)
class StudyDesign:
    type: Optional[str] = None
    duration: Optional[str] = None
    blinding: str = DEFAULT_BLINDING
    randomization: str = DEFAULT_RANDOMIZATION


@dataclass(frozen=True)
class Enrollment:
    target_size: int = 0
    actual_size: int = 0


@dataclass(frozen=True)
class Regulatory:
    irb_number: str = ""
    clinical_trials_id: str = ""


@dataclass(frozen=True)
class StudyProtocol:
    """
    Study protocol as committed to by hospitals and researchers.

    study_id and hospital_id identify the record but are not part of
    the commitment surface.
    """
    condition: Condition
    treatment: Intervention
    inclusion_criteria: InclusionCriteria
    comparator: Optional[Intervention] = None
    primary_endpoint: PrimaryEndpoint = field(default_factory=PrimaryEndpoint)
    study_design: StudyDesign = field(default_factory=StudyDesign)
    enrollment: Enrollment = field(default_factory=Enrollment)
    regulatory: Regulatory = field(default_factory=Regulatory)
    study_id: Optional[str] = None
    hospital_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StudyProtocol':
        """
        Build a protocol from JSON.

        Accepts the flat shape (condition, treatment, inclusionCriteria...
        at the top level) and the study-catalog shape, where condition,
        treatment and comparator live under "metadata" and inclusion
        criteria, endpoint and design live under "protocol".
        """
        if not isinstance(data, dict):
            raise InvalidProtocol("protocol must be an object")

        meta = _as_dict(data.get("metadata"), "metadata") or data
        proto = _as_dict(data.get("protocol"), "protocol") or data

        comparator_data = meta.get("comparator")
        comparator = (
            Intervention.from_dict(comparator_data, "comparator")
            if comparator_data else None
        )

        endpoint = _as_dict(proto.get("primaryEndpoint"), "primaryEndpoint")
        design = _as_dict(proto.get("studyDesign"), "studyDesign")
        enrollment = _as_dict(data.get("enrollment"), "enrollment")
        regulatory = _as_dict(data.get("regulatory"), "regulatory")

        actual = _optional_number(enrollment.get("actualSize"), "enrollment.actualSize")
        target = _optional_number(enrollment.get("targetSize"), "enrollment.targetSize")

        return cls(
            condition=Condition.from_dict(meta.get("condition")),
            treatment=Intervention.from_dict(meta.get("treatment"), "treatment"),
            comparator=comparator,
            inclusion_criteria=InclusionCriteria.from_dict(proto.get("inclusionCriteria")),
            primary_endpoint=PrimaryEndpoint(
                measure=_optional_str(endpoint.get("measure"), "primaryEndpoint.measure") or "",
                timepoint=_optional_str(endpoint.get("timepoint"), "primaryEndpoint.timepoint") or "",
            ),
            study_design=StudyDesign(
                type=_optional_str(design.get("type") or proto.get("designType"), "studyDesign.type"),
                duration=_optional_str(design.get("duration") or proto.get("duration"), "studyDesign.duration"),
                blinding=_optional_str(design.get("blinding") or proto.get("blinding"), "studyDesign.blinding")
                or DEFAULT_BLINDING,
                randomization=_optional_str(design.get("randomization"), "studyDesign.randomization")
                or DEFAULT_RANDOMIZATION,
            ),
            enrollment=Enrollment(
                target_size=target or actual or 0,
                actual_size=actual or 0,
            ),
            regulatory=Regulatory(
                irb_number=_optional_str(regulatory.get("irbNumber"), "regulatory.irbNumber") or "",
                clinical_trials_id=_optional_str(
                    regulatory.get("clinicalTrialsId"), "regulatory.clinicalTrialsId"
                ) or "",
            ),
            study_id=_optional_str(data.get("studyId"), "studyId"),
            hospital_id=_optional_str(data.get("hospitalId"), "hospitalId"),
        )
