"""
Unit Tests for category descriptors and education form rules
"""

import pytest

from fdp_support.domain.errors import ValidationError
from fdp_support.domain.models import SupportCategory, get_descriptor


class TestDescriptors:

    @pytest.mark.parametrize("name,lines", [
        ("education", ("admission", "tuition", "hostel", "transport")),
        ("health", ("health",)),
        ("housing", ("habitat",)),
        ("food", ("food",)),
    ])
    def test_cost_lines(self, name, lines):
        assert get_descriptor(name).line_names == lines

    def test_only_admission_is_one_time(self):
        education = get_descriptor(SupportCategory.EDUCATION)
        assert [line.name for line in education.lines if not line.recurring] == ["admission"]

    def test_lookup_is_case_insensitive(self):
        assert get_descriptor(" Health ").category is SupportCategory.HEALTH

    def test_unknown_category(self):
        with pytest.raises(ValidationError) as exc:
            get_descriptor("economic")
        assert exc.value.field == "category"

    def test_only_education_requires_beneficiary(self):
        assert get_descriptor("education").requires_beneficiary
        assert not any(get_descriptor(c).requires_beneficiary for c in ("health", "housing", "food"))

    def test_other_categories_reject_details(self):
        normalize = get_descriptor("food").normalize_details
        assert normalize({}) == {}
        with pytest.raises(ValidationError, match="does not accept"):
            normalize({"intervention_type": "Admitted"})


class TestEducationDetails:

    @pytest.fixture
    def normalize(self):
        return get_descriptor("education").normalize_details

    def test_intervention_type_required(self, normalize):
        with pytest.raises(ValidationError) as exc:
            normalize({})
        assert exc.value.field == "details.intervention_type"

    def test_unknown_intervention_type(self, normalize):
        with pytest.raises(ValidationError, match="Unrecognized education intervention type"):
            normalize({"intervention_type": "Dropped"})

    def test_admitted_needs_school_type(self, normalize):
        with pytest.raises(ValidationError) as exc:
            normalize({"intervention_type": "Admitted"})
        assert exc.value.field == "details.admitted_to_school_type"

    def test_transferred_needs_both_school_types(self, normalize):
        with pytest.raises(ValidationError) as exc:
            normalize({"intervention_type": "Transferred", "baseline_school_type": "Govt"})
        assert exc.value.field == "details.transferred_to_school_type"

        clean = normalize({
            "intervention_type": "Transferred",
            "baseline_school_type": "Govt",
            "transferred_to_school_type": "AK CBS",
            "transferred_to_class_level": "5",
        })
        assert clean["regular_support"] is False
        assert clean["transferred_to_class_level"] == "5"

    def test_school_type_must_be_known(self, normalize):
        with pytest.raises(ValidationError, match="expected one of"):
            normalize({"intervention_type": "Admitted", "admitted_to_school_type": "Madrasa"})

    def test_unknown_field_rejected(self, normalize):
        with pytest.raises(ValidationError, match="Unknown education field"):
            normalize({"intervention_type": "Admitted", "admitted_to_school_type": "NGO", "fee": 1})

    def test_regular_support_clears_reason_not_studying(self, normalize):
        clean = normalize({
            "intervention_type": "Regular Support",
            "admitted_to_school_type": "Private",
            "baseline_reason_not_studying": "Poverty",
        })
        assert clean["baseline_reason_not_studying"] is None
        assert clean["regular_support"] is True
        assert get_descriptor("education").zeroed_lines(clean) == ("admission",)
