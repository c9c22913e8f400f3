"""
MedProof Research Insights

Privacy-preserving summary of a study's outcome for researchers. Exact
counts never appear; sample size, improvement and p-value are reported
as ranges or bands. Arm rates are only used to derive them.
"""

import math
from typing import Any, Dict, Optional

from .stats import MedicalStats


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _rate(successes: int, count: int, fallback_count: int) -> float:
    """Success rate of an arm, never above 1."""
    if successes > count:
        count = fallback_count
    if count <= 0:
        return 0.0
    return min(1.0, successes / count)


def sample_size_range(patient_count: int) -> str:
    if patient_count < 50:
        return "Very small cohort (<50 patients)"
    if patient_count < 100:
        return "Small cohort (50-99 patients)"
    if patient_count < 300:
        return "Medium cohort (100-299 patients)"
    if patient_count < 500:
        return "Large cohort (300-499 patients)"
    if patient_count < 1000:
        return "Very large cohort (500-999 patients)"
    return "Multicenter study (>1000 patients)"


def efficacy_range(absolute_improvement: float) -> Dict[str, int]:
    """Improvement rounded to a 5-point window around its value."""
    rounded = _round_half_up(absolute_improvement)
    return {"min": max(0, rounded - 2), "max": rounded + 2}


def p_value_band(p_value: float) -> str:
    if p_value < 0.001:
        return "p < 0.001 (highly significant)"
    if p_value < 0.01:
        return "p < 0.01 (very significant)"
    if p_value < 0.05:
        return "p < 0.05 (significant)"
    return "p ≥ 0.05 (not significant)"


def effect_size_description(absolute_improvement: float) -> str:
    if absolute_improvement < 5:
        return "Small effect size"
    if absolute_improvement < 15:
        return "Medium effect size"
    if absolute_improvement < 25:
        return "Large effect size"
    return "Very large effect size"


def research_insights(stats: MedicalStats) -> Dict[str, Any]:
    """
    Summarize treatment effect without disclosing raw counts.

    Relative improvement and number needed to treat are None when the
    control rate or the absolute improvement make them undefined.
    """
    # Successes above the treatment arm size fall back to the whole cohort.
    treatment_rate = _rate(stats.treatment_success, stats.treatment_count, stats.patient_count)
    control_rate = _rate(stats.control_success, stats.control_count, stats.control_count)
    absolute = (treatment_rate - control_rate) * 100

    relative: Optional[str] = None
    if control_rate > 0:
        relative = f"{_round_half_up(absolute / control_rate)}% relative improvement"

    nnt: Optional[int] = None
    if absolute > 0:
        nnt = _round_half_up(100 / absolute)

    window = efficacy_range(absolute)

    return {
        "treatmentEfficacy": {
            "absoluteImprovement": f"{window['min']}-{window['max']}% improvement over control",
            "relativeImprovement": relative,
            "effectSize": effect_size_description(absolute),
            "confidenceLevel": "95% confidence interval",
        },
        "studyCharacteristics": {
            "sampleSize": sample_size_range(stats.patient_count),
            "statisticalPower": "High (>0.80)" if absolute > 15 else "Adequate (0.70-0.80)",
            "pValue": p_value_band(stats.p_value),
        },
        "clinicalSignificance": {
            "meaningfulDifference": "Clinically significant" if absolute > 10 else "Statistically significant",
            "numberNeededToTreat": nnt,
            "riskReduction": f"{_round_half_up(absolute)}% absolute risk reduction",
        },
    }
