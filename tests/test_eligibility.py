import pydantic
import pytest

from hostel_allocation.models.enums import Gender, GenderPolicy
from hostel_allocation.schemas.eligibility import EligibilityCriteria, StudentProfile
from hostel_allocation.services.eligibility import EligibilityEvaluator, evaluate


def _profile(**overrides):
    data = {
        "student_id": "stu-1",
        "gender": Gender.MALE,
        "level": 200,
        "gpa": 3.1,
        "nationality": "Nigerian",
        "payment_status": "cleared",
        "registration_status": "registered",
        "admission_status": "confirmed",
    }
    data.update(overrides)
    return StudentProfile(**data)


def test_no_criteria_is_eligible():
    result = evaluate(_profile(), None)

    assert result.eligible
    assert result.reason_codes == []


def test_all_failures_reported_in_order():
    criteria = EligibilityCriteria(
        min_level=300,
        gender=Gender.FEMALE,
        minimum_gpa=3.5,
        payment_status="cleared",
        admission_status="confirmed",
    )
    profile = _profile(payment_status="outstanding", admission_status="provisional")

    result = evaluate(profile, criteria)

    assert not result.eligible
    assert result.reason_codes == [
        "level_out_of_range",
        "gender_mismatch",
        "gpa_below_minimum",
        "payment_not_cleared",
        "admission_not_confirmed",
    ]
    assert all(reason.message for reason in result.reasons)


def test_gender_mismatch_reported_once():
    criteria = EligibilityCriteria(gender=Gender.MALE, match_hostel_gender=True)

    result = evaluate(_profile(gender=Gender.FEMALE), criteria, GenderPolicy.MALE)

    assert result.reason_codes == ["gender_mismatch"]


def test_hostel_gender_ignored_for_mixed_hostels():
    criteria = EligibilityCriteria(match_hostel_gender=True)

    assert evaluate(_profile(gender=Gender.FEMALE), criteria, GenderPolicy.MIXED).eligible
    assert not evaluate(_profile(gender=Gender.FEMALE), criteria, GenderPolicy.MALE).eligible


def test_academic_levels_list():
    criteria = {"academic_levels": [100, 400]}

    assert EligibilityEvaluator().evaluate(_profile(level=200), criteria).reason_codes == ["level_not_allowed"]
    assert EligibilityEvaluator().evaluate(_profile(level=400), criteria).eligible


def test_nationality_and_status_checks_ignore_case():
    criteria = EligibilityCriteria(nationalities=["nigerian", "Ghanaian"], registration_status="REGISTERED")

    assert evaluate(_profile(), criteria).eligible
    assert evaluate(_profile(nationality="Kenyan"), criteria).reason_codes == ["nationality_not_allowed"]


def test_missing_gpa_fails_minimum():
    criteria = EligibilityCriteria(minimum_gpa=2.0)

    assert evaluate(_profile(gpa=None), criteria).reason_codes == ["gpa_below_minimum"]


def test_international_and_prior_allocation():
    criteria = EligibilityCriteria(international=True, exclude_prior_allocation=True)

    result = evaluate(_profile(has_prior_allocation=True), criteria)

    assert result.reason_codes == ["international_status_mismatch", "prior_allocation_exists"]


def test_criteria_level_range_must_be_ordered():
    with pytest.raises(pydantic.ValidationError):
        EligibilityCriteria(min_level=400, max_level=100)
