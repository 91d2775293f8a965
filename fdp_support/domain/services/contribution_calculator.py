"""
CONTRIBUTION CALCULATOR

One calculator for every category, driven by its CategoryDescriptor.

RESPONSIBILITIES:
- PE contribution per cost line = max(0, total - family)
- Multiply recurring lines by their months, leave one-time lines alone
- Sum lines into category totals
- Validate a submission before any I/O

RULES:
❌ No persistence, no budget lookups
✅ Pure: same inputs, same breakdown
✅ Negative inputs clamp to zero when previewing
✅ Zero months commit nothing on a recurring line
✅ Amounts and months are bounded so every total fits a Numeric(14,2) column
"""

import dataclasses
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from fdp_support.domain.errors import ValidationError, format_pkr
from fdp_support.domain.models import (
    CategoryDescriptor,
    ContributionBreakdown,
    CostLineInput,
    CostLineResult,
    SupportRequest,
)

ZERO = Decimal("0")
CENT = Decimal("0.01")
# Per-period amount ceiling: 4 lines x 120 months x 1e9 stays under 1e12
MAX_LINE_AMOUNT = Decimal("1000000000")


def to_amount(value: Any, field: str = "amount") -> Decimal:
    """Coerce user input to a Decimal amount (None/'' -> 0)."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number, got '{value}'", field=field)
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    return amount


def clamp(amount: Decimal) -> Decimal:
    return amount if amount > ZERO else ZERO


def pe_contribution(total_cost: Decimal, family_contribution: Decimal) -> Decimal:
    """Program share of one period of a cost line, never negative"""
    return clamp(clamp(Decimal(total_cost)) - clamp(Decimal(family_contribution)))


class ContributionCalculator:
    """Generic per-category contribution calculator"""

    def __init__(self, max_duration_months: int = 120, max_line_amount: Decimal = MAX_LINE_AMOUNT):
        self.max_duration_months = max_duration_months
        self.max_line_amount = Decimal(max_line_amount)

    def calculate(
        self,
        descriptor: CategoryDescriptor,
        cost_lines: Mapping[str, CostLineInput],
        duration_months: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ContributionBreakdown:
        """
        Compute the category breakdown.

        Lines the caller omitted count as zero. A recurring line uses its own
        months when given, otherwise ``duration_months``. Out-of-range input
        is clamped; ``validate`` is what rejects it.
        """
        zeroed = descriptor.zeroed_lines(details or {})
        results = []
        for spec in descriptor.lines:
            raw = cost_lines.get(spec.name) or CostLineInput()
            if spec.name in zeroed:
                raw = CostLineInput()

            total = self._bounded(to_amount(raw.total_cost))
            family = self._bounded(to_amount(raw.family_contribution))
            pe = pe_contribution(total, family)

            if spec.recurring:
                months = raw.months if raw.months is not None else duration_months
                months = min(max(int(months or 0), 0), self.max_duration_months)
                factor = Decimal(months)
            else:
                months = None
                factor = Decimal(1)

            results.append(
                CostLineResult(
                    name=spec.name,
                    recurring=spec.recurring,
                    total_cost=total,
                    family_contribution=family,
                    pe_contribution=pe,
                    months=months,
                    line_total_cost=(total * factor).quantize(CENT),
                    line_total_family_contribution=(family * factor).quantize(CENT),
                    line_total_pe_contribution=(pe * factor).quantize(CENT),
                )
            )

        return ContributionBreakdown(
            category=descriptor.category,
            lines=tuple(results),
            total_cost=sum((r.line_total_cost for r in results), ZERO),
            total_family_contribution=sum((r.line_total_family_contribution for r in results), ZERO),
            total_pe_contribution=sum((r.line_total_pe_contribution for r in results), ZERO),
        )

    # ------------------------------------------------------------------
    # Submission validation
    # ------------------------------------------------------------------

    def _bounded(self, amount: Decimal) -> Decimal:
        return min(clamp(amount), self.max_line_amount)

    def _validate_months(self, months: Optional[int], field: str) -> None:
        if months is None:
            return
        if isinstance(months, bool) or not isinstance(months, int):
            raise ValidationError(f"{field} must be a whole number of months", field=field)
        if months < 0:
            raise ValidationError(f"{field} cannot be negative", field=field)
        if months > self.max_duration_months:
            raise ValidationError(
                f"{field} cannot exceed {self.max_duration_months} months", field=field
            )

    def validate(
        self,
        descriptor: CategoryDescriptor,
        request: SupportRequest,
    ) -> SupportRequest:
        """
        Reject malformed submissions and return a normalized copy.

        Raises:
            ValidationError: on the first problem found
        """
        if not request.cost_lines:
            raise ValidationError(f"{descriptor.label} needs at least one cost line", field="cost_lines")

        self._validate_months(request.duration_months, "duration_months")

        for name, line in request.cost_lines.items():
            spec = descriptor.line(name)
            for attr in ("total_cost", "family_contribution"):
                field = f"cost_lines.{name}.{attr}"
                amount = to_amount(getattr(line, attr), field)
                if amount < ZERO:
                    raise ValidationError(f"{spec.label} {attr.replace('_', ' ')} cannot be negative", field=field)
                if amount > self.max_line_amount:
                    raise ValidationError(
                        f"{spec.label} {attr.replace('_', ' ')} cannot exceed {format_pkr(self.max_line_amount)}",
                        field=field,
                    )
            if line.months is not None and not spec.recurring:
                raise ValidationError(f"{spec.label} is a one-time cost and takes no months", field=f"cost_lines.{name}.months")
            self._validate_months(line.months, f"cost_lines.{name}.months")

        beneficiary = request.beneficiary
        if descriptor.requires_beneficiary and not beneficiary.beneficiary_id:
            raise ValidationError(f"Beneficiary is required for {descriptor.label}", field="beneficiary_id")
        if beneficiary.age is not None and not (0 <= beneficiary.age <= 130):
            raise ValidationError("Beneficiary age must be between 0 and 130", field="beneficiary_age")

        details = dict(request.details or {})
        if descriptor.normalize_details is not None:
            details = descriptor.normalize_details(details)

        return dataclasses.replace(request, details=details)
