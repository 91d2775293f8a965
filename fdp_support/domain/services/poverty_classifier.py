"""
POVERTY CLASSIFIER & SUPPORT CAP RESOLVER

Pure functions over a PovertyPolicy:
- per-capita income + area → poverty level (monotonic step function)
- poverty level → lifetime social support cap
- baseline → full assessment for display
"""

from decimal import Decimal
from typing import Union

from fdp_support.domain.models import (
    AreaType,
    FamilyBaseline,
    PovertyAssessment,
    PovertyLevel,
    PovertyPolicy,
)

ZERO = Decimal("0")


def classify_poverty_level(
    policy: PovertyPolicy,
    per_capita_income: Decimal,
    area_type: Union[AreaType, str, None],
) -> PovertyLevel:
    """
    Highest band whose threshold is <= income.

    Unrecognized areas use the Rural table; incomes below every
    threshold land in the lowest band.
    """
    area = area_type if isinstance(area_type, AreaType) else AreaType.parse(area_type)
    income = max(Decimal(per_capita_income), ZERO)

    for threshold, level in policy.area(area).descending():
        if income >= threshold:
            return level
    return PovertyLevel.LEVEL_MINUS_4


def resolve_support_cap(policy: PovertyPolicy, level: Union[PovertyLevel, str, None]) -> Decimal:
    """Lifetime cap for a band; 0 for self-sufficient or unknown bands."""
    try:
        key = PovertyLevel(getattr(level, "value", level))
    except ValueError:
        return ZERO
    return policy.support_caps.get(key, ZERO)


def self_sufficiency_status(policy: PovertyPolicy, ratio: Decimal) -> str:
    for band in policy.status_bands:
        if ratio >= band.min_ratio:
            return band.label
    return policy.fallback_status


def assess_family(policy: PovertyPolicy, baseline: FamilyBaseline) -> PovertyAssessment:
    """Derive per-capita income, self-sufficiency and cap for a family"""
    area_policy = policy.area(baseline.area_type)
    per_capita = baseline.per_capita_income
    ss_income = area_policy.self_sufficiency_income
    ratio = per_capita / ss_income if ss_income > 0 else ZERO

    level = classify_poverty_level(policy, per_capita, baseline.area_type)

    return PovertyAssessment(
        family_id=baseline.family_id,
        area_type=baseline.area_type,
        per_capita_income=per_capita,
        self_sufficiency_income=ss_income,
        self_sufficiency_ratio=ratio,
        self_sufficiency_status=self_sufficiency_status(policy, ratio),
        poverty_level=level,
        support_cap=resolve_support_cap(policy, level),
        policy_version=policy.version,
    )
