"""
Category Descriptors

The four social support categories share one allocation algorithm. What
differs between them is captured here: which cost lines exist, which of
them repeat monthly, whether a beneficiary is mandatory, and any extra
category-specific form rules.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from fdp_support.domain.errors import ValidationError
from .entities import SupportCategory


@dataclass(frozen=True)
class CostLineSpec:
    """One named cost line of a category form"""
    name: str
    label: str
    recurring: bool


DetailsNormalizer = Callable[[Dict[str, Any]], Dict[str, Any]]


@dataclass(frozen=True)
class CategoryDescriptor:
    """Parameterizes the generic calculator, repository and routes"""
    category: SupportCategory
    label: str
    lines: Tuple[CostLineSpec, ...]
    requires_beneficiary: bool = False
    normalize_details: Optional[DetailsNormalizer] = None

    @property
    def line_names(self) -> Tuple[str, ...]:
        return tuple(line.name for line in self.lines)

    def line(self, name: str) -> CostLineSpec:
        for line in self.lines:
            if line.name == name:
                return line
        raise ValidationError(
            f"Unknown cost line '{name}' for {self.label}; expected one of {', '.join(self.line_names)}",
            field=f"cost_lines.{name}",
        )

    def zeroed_lines(self, details: Dict[str, Any]) -> Tuple[str, ...]:
        """Cost lines that must be forced to zero for the given details"""
        if self.category is SupportCategory.EDUCATION and details.get("intervention_type") == REGULAR_SUPPORT:
            return ("admission",)
        return ()


# ----------------------------------------------------------------------
# Education form rules
# ----------------------------------------------------------------------

ADMITTED = "Admitted"
TRANSFERRED = "Transferred"
REGULAR_SUPPORT = "Regular Support"

EDUCATION_INTERVENTION_TYPES = (ADMITTED, TRANSFERRED, REGULAR_SUPPORT)
SCHOOL_TYPES = ("Govt", "Private", "AKES", "AK CBS", "NGO")

_EDUCATION_FIELDS = (
    "intervention_type",
    "baseline_reason_not_studying",
    "admitted_to_school_type",
    "admitted_to_class_level",
    "baseline_school_type",
    "transferred_to_school_type",
    "transferred_to_class_level",
)


def _require_school_type(details: Dict[str, Any], key: str, label: str) -> None:
    value = details.get(key)
    if not value:
        raise ValidationError(f"{label} is required", field=f"details.{key}")
    if value not in SCHOOL_TYPES:
        raise ValidationError(
            f"Unrecognized {label.lower()} '{value}'; expected one of {', '.join(SCHOOL_TYPES)}",
            field=f"details.{key}",
        )


def normalize_education_details(details: Dict[str, Any]) -> Dict[str, Any]:
    """Validate education details and drop fields that do not apply."""
    unknown = set(details) - set(_EDUCATION_FIELDS) - {"regular_support"}
    if unknown:
        raise ValidationError(
            f"Unknown education field(s): {', '.join(sorted(unknown))}",
            field="details",
        )

    clean = {key: details.get(key) or None for key in _EDUCATION_FIELDS}
    intervention = clean["intervention_type"]
    if not intervention:
        raise ValidationError("Education intervention type is required", field="details.intervention_type")
    if intervention not in EDUCATION_INTERVENTION_TYPES:
        raise ValidationError(
            f"Unrecognized education intervention type '{intervention}'; "
            f"expected one of {', '.join(EDUCATION_INTERVENTION_TYPES)}",
            field="details.intervention_type",
        )

    if intervention == ADMITTED:
        _require_school_type(clean, "admitted_to_school_type", "Admitted to school type")
    elif intervention == REGULAR_SUPPORT:
        _require_school_type(clean, "admitted_to_school_type", "School type")
        clean["baseline_reason_not_studying"] = None
    else:
        _require_school_type(clean, "baseline_school_type", "Baseline school type")
        _require_school_type(clean, "transferred_to_school_type", "Transferred to school type")

    clean["regular_support"] = intervention == REGULAR_SUPPORT
    return clean


def _reject_details(label: str) -> DetailsNormalizer:
    def normalize(details: Dict[str, Any]) -> Dict[str, Any]:
        if details:
            raise ValidationError(f"{label} does not accept additional details", field="details")
        return {}
    return normalize


# ----------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------

EDUCATION = CategoryDescriptor(
    category=SupportCategory.EDUCATION,
    label="Education Support",
    lines=(
        CostLineSpec("admission", "One-time admission", recurring=False),
        CostLineSpec("tuition", "Monthly tuition", recurring=True),
        CostLineSpec("hostel", "Monthly hostel", recurring=True),
        CostLineSpec("transport", "Monthly transport", recurring=True),
    ),
    requires_beneficiary=True,
    normalize_details=normalize_education_details,
)

HEALTH = CategoryDescriptor(
    category=SupportCategory.HEALTH,
    label="Health Support",
    lines=(CostLineSpec("health", "Monthly health", recurring=True),),
    normalize_details=_reject_details("Health Support"),
)

HOUSING = CategoryDescriptor(
    category=SupportCategory.HOUSING,
    label="Housing Support",
    lines=(CostLineSpec("habitat", "Monthly habitat", recurring=True),),
    normalize_details=_reject_details("Housing Support"),
)

FOOD = CategoryDescriptor(
    category=SupportCategory.FOOD,
    label="Food Support",
    lines=(CostLineSpec("food", "Monthly food", recurring=True),),
    normalize_details=_reject_details("Food Support"),
)

CATEGORIES: Dict[SupportCategory, CategoryDescriptor] = {
    d.category: d for d in (EDUCATION, HEALTH, HOUSING, FOOD)
}


def get_descriptor(category: Any) -> CategoryDescriptor:
    """Resolve a category name or enum to its descriptor"""
    try:
        key = SupportCategory(str(getattr(category, "value", category)).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown support category '{category}'; expected one of "
            f"{', '.join(c.value for c in SupportCategory)}",
            field="category",
        )
    return CATEGORIES[key]
