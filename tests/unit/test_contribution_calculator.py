"""
Unit Tests for ContributionCalculator
"""

import pytest
from decimal import Decimal

from fdp_support.domain.errors import ValidationError
from fdp_support.domain.models import Beneficiary, CostLineInput, SupportRequest, get_descriptor
from fdp_support.domain.services.contribution_calculator import ContributionCalculator, to_amount


@pytest.fixture
def calculator():
    return ContributionCalculator(max_duration_months=120)


def line(total, family="0", months=None):
    return CostLineInput(total_cost=Decimal(total), family_contribution=Decimal(family), months=months)


EDUCATION_DETAILS = {"intervention_type": "Admitted", "admitted_to_school_type": "Govt"}


class TestCalculate:

    def test_recurring_line_multiplies_by_months(self, calculator):
        breakdown = calculator.calculate(get_descriptor("health"), {"health": line("5000", "1000", months=6)})

        assert breakdown.total_cost == Decimal("30000")
        assert breakdown.total_family_contribution == Decimal("6000")
        assert breakdown.total_pe_contribution == Decimal("24000")
        assert breakdown.lines[0].pe_contribution == Decimal("4000")

    def test_duration_months_used_when_line_has_none(self, calculator):
        breakdown = calculator.calculate(get_descriptor("food"), {"food": line("3000")}, duration_months=12)
        assert breakdown.total_pe_contribution == Decimal("36000")

    def test_zero_months_commits_nothing(self, calculator):
        breakdown = calculator.calculate(get_descriptor("housing"), {"habitat": line("9000")})
        assert breakdown.total_pe_contribution == Decimal("0")

    def test_one_time_line_is_not_multiplied(self, calculator):
        breakdown = calculator.calculate(
            get_descriptor("education"),
            {"admission": line("10000", "2000"), "tuition": line("1500", "500")},
            duration_months=10,
            details=EDUCATION_DETAILS,
        )
        # 8000 admission + 1000 x 10 tuition
        assert breakdown.total_pe_contribution == Decimal("18000")
        admission = breakdown.lines[0]
        assert admission.name == "admission"
        assert admission.months is None

    def test_family_paying_more_than_cost_gives_zero(self, calculator):
        breakdown = calculator.calculate(get_descriptor("health"), {"health": line("1000", "1500", months=3)})
        assert breakdown.total_pe_contribution == Decimal("0")

    def test_negative_inputs_clamp_to_zero(self, calculator):
        breakdown = calculator.calculate(get_descriptor("food"), {"food": line("-100", "-50", months=-2)})
        assert breakdown.total_cost == Decimal("0")
        assert breakdown.total_pe_contribution == Decimal("0")

    def test_regular_support_zeroes_admission(self, calculator):
        breakdown = calculator.calculate(
            get_descriptor("education"),
            {"admission": line("10000"), "tuition": line("1000", months=2)},
            details={"intervention_type": "Regular Support"},
        )
        assert breakdown.total_pe_contribution == Decimal("2000")

    def test_calculation_is_idempotent(self, calculator):
        descriptor = get_descriptor("education")
        lines = {"admission": line("7000"), "hostel": line("2500", "250", months=9)}
        first = calculator.calculate(descriptor, lines, details=EDUCATION_DETAILS)
        second = calculator.calculate(descriptor, lines, details=EDUCATION_DETAILS)
        assert first == second

    def test_huge_inputs_are_clamped_to_the_ceiling(self, calculator):
        breakdown = calculator.calculate(
            get_descriptor("food"), {"food": line("1E+30", months=2)}, duration_months=10**30
        )
        assert breakdown.lines[0].total_cost == calculator.max_line_amount
        assert breakdown.total_pe_contribution == Decimal("2000000000")

        breakdown = calculator.calculate(get_descriptor("food"), {"food": line("500")}, duration_months=10**30)
        assert breakdown.total_pe_contribution == Decimal("60000")


class TestValidate:

    def request(self, cost_lines, **kwargs):
        return SupportRequest(cost_lines=cost_lines, **kwargs)

    def test_empty_cost_lines_rejected(self, calculator):
        with pytest.raises(ValidationError, match="at least one cost line"):
            calculator.validate(get_descriptor("health"), self.request({}))

    def test_unknown_line_rejected(self, calculator):
        with pytest.raises(ValidationError) as exc:
            calculator.validate(get_descriptor("health"), self.request({"tuition": line("10")}))
        assert exc.value.field == "cost_lines.tuition"

    def test_negative_amount_rejected(self, calculator):
        with pytest.raises(ValidationError, match="cannot be negative"):
            calculator.validate(get_descriptor("food"), self.request({"food": line("-1", months=1)}))

    def test_amount_above_ceiling_rejected(self, calculator):
        with pytest.raises(ValidationError, match="cannot exceed PKR 1000000000") as exc:
            calculator.validate(get_descriptor("food"), self.request({"food": line("1E+30", months=2)}))
        assert exc.value.field == "cost_lines.food.total_cost"

        request = self.request({"food": line("1000000000", "1000000000", months=120)})
        assert calculator.validate(get_descriptor("food"), request).cost_lines == request.cost_lines

    def test_months_on_one_time_line_rejected(self, calculator):
        request = self.request(
            {"admission": line("100", months=3)},
            beneficiary=Beneficiary(beneficiary_id="M-1"),
            details=EDUCATION_DETAILS,
        )
        with pytest.raises(ValidationError, match="one-time"):
            calculator.validate(get_descriptor("education"), request)

    def test_duration_above_maximum_rejected(self, calculator):
        with pytest.raises(ValidationError, match="cannot exceed 120"):
            calculator.validate(get_descriptor("food"), self.request({"food": line("1")}, duration_months=121))

    def test_education_requires_beneficiary(self, calculator):
        request = self.request({"tuition": line("100", months=1)}, details=EDUCATION_DETAILS)
        with pytest.raises(ValidationError) as exc:
            calculator.validate(get_descriptor("education"), request)
        assert exc.value.field == "beneficiary_id"

    def test_beneficiary_age_range(self, calculator):
        request = self.request({"health": line("100", months=1)}, beneficiary=Beneficiary(age=140))
        with pytest.raises(ValidationError, match="between 0 and 130"):
            calculator.validate(get_descriptor("health"), request)

    def test_valid_request_returns_normalized_details(self, calculator):
        request = self.request(
            {"tuition": line("100", months=1)},
            beneficiary=Beneficiary(beneficiary_id="M-1"),
            details={"intervention_type": "Regular Support", "admitted_to_school_type": "AKES",
                     "baseline_reason_not_studying": "Distance"},
        )
        validated = calculator.validate(get_descriptor("education"), request)

        assert validated.details["regular_support"] is True
        assert validated.details["baseline_reason_not_studying"] is None
        assert validated.cost_lines == request.cost_lines


class TestToAmount:

    @pytest.mark.parametrize("value,expected", [(None, "0"), ("", "0"), ("12.5", "12.5"), (7, "7")])
    def test_coercion(self, value, expected):
        assert to_amount(value) == Decimal(expected)

    @pytest.mark.parametrize("value", ["abc", True, "NaN", "Infinity"])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValidationError):
            to_amount(value, "total_cost")
