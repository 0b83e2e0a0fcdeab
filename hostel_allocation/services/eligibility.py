"""
Eligibility evaluation.

A pure predicate over a student profile and a window's criteria. Every
criterion is checked so the caller can present the complete list of
failures; a criterion that is not set is vacuously satisfied.
"""

from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from hostel_allocation.models.enums import GenderPolicy
from hostel_allocation.schemas.eligibility import (
    EligibilityCriteria,
    EligibilityResult,
    IneligibilityReason,
    StudentProfile,
)

LEVEL_OUT_OF_RANGE = "level_out_of_range"
LEVEL_NOT_ALLOWED = "level_not_allowed"
GENDER_MISMATCH = "gender_mismatch"
INTERNATIONAL_STATUS_MISMATCH = "international_status_mismatch"
NATIONALITY_NOT_ALLOWED = "nationality_not_allowed"
GPA_BELOW_MINIMUM = "gpa_below_minimum"
PAYMENT_NOT_CLEARED = "payment_not_cleared"
REGISTRATION_INCOMPLETE = "registration_incomplete"
ADMISSION_NOT_CONFIRMED = "admission_not_confirmed"
PRIOR_ALLOCATION_EXISTS = "prior_allocation_exists"

Failure = Optional[Tuple[str, str]]
Check = Callable[[StudentProfile, EligibilityCriteria, Optional[GenderPolicy]], Failure]


def _same(actual: Optional[str], required: str) -> bool:
    return actual is not None and actual.strip().casefold() == required.strip().casefold()


def _check_level_range(profile, criteria, policy) -> Failure:
    too_low = criteria.min_level is not None and profile.level < criteria.min_level
    too_high = criteria.max_level is not None and profile.level > criteria.max_level
    if too_low or too_high:
        low = criteria.min_level if criteria.min_level is not None else "any"
        high = criteria.max_level if criteria.max_level is not None else "any"
        return LEVEL_OUT_OF_RANGE, f"Level {profile.level} is outside the allowed range {low}-{high}"
    return None


def _check_academic_levels(profile, criteria, policy) -> Failure:
    if criteria.academic_levels and profile.level not in criteria.academic_levels:
        allowed = ", ".join(str(level) for level in criteria.academic_levels)
        return LEVEL_NOT_ALLOWED, f"Level {profile.level} is not one of the eligible levels ({allowed})"
    return None


def _check_gender(profile, criteria, policy) -> Failure:
    if criteria.gender is not None and profile.gender is not criteria.gender:
        return GENDER_MISMATCH, f"This window is restricted to {criteria.gender.value} students"
    return None


def _check_hostel_gender(profile, criteria, policy) -> Failure:
    if not criteria.match_hostel_gender or policy is None or policy is GenderPolicy.MIXED:
        return None
    if profile.gender.value != policy.value:
        return GENDER_MISMATCH, f"The requested hostel only accepts {policy.value} students"
    return None


def _check_international(profile, criteria, policy) -> Failure:
    if criteria.international is not None and profile.is_international != criteria.international:
        wanted = "international" if criteria.international else "home"
        return INTERNATIONAL_STATUS_MISMATCH, f"This window is restricted to {wanted} students"
    return None


def _check_nationality(profile, criteria, policy) -> Failure:
    if not criteria.nationalities:
        return None
    if not any(_same(profile.nationality, allowed) for allowed in criteria.nationalities):
        return NATIONALITY_NOT_ALLOWED, f"Nationality '{profile.nationality or 'unknown'}' is not eligible"
    return None


def _check_gpa(profile, criteria, policy) -> Failure:
    if criteria.minimum_gpa is None:
        return None
    if profile.gpa is None or profile.gpa < criteria.minimum_gpa:
        return GPA_BELOW_MINIMUM, f"A GPA of at least {criteria.minimum_gpa} is required"
    return None


def _check_payment(profile, criteria, policy) -> Failure:
    if criteria.payment_status and not _same(profile.payment_status, criteria.payment_status):
        return PAYMENT_NOT_CLEARED, f"Payment status must be '{criteria.payment_status}'"
    return None


def _check_registration(profile, criteria, policy) -> Failure:
    if criteria.registration_status and not _same(profile.registration_status, criteria.registration_status):
        return REGISTRATION_INCOMPLETE, f"Registration status must be '{criteria.registration_status}'"
    return None


def _check_admission(profile, criteria, policy) -> Failure:
    if criteria.admission_status and not _same(profile.admission_status, criteria.admission_status):
        return ADMISSION_NOT_CONFIRMED, f"Admission status must be '{criteria.admission_status}'"
    return None


def _check_prior_allocation(profile, criteria, policy) -> Failure:
    if criteria.exclude_prior_allocation and profile.has_prior_allocation:
        return PRIOR_ALLOCATION_EXISTS, "Students with a previous hostel allocation are not eligible"
    return None


# evaluation order is the order reasons are reported in
CHECKS: Tuple[Check, ...] = (
    _check_level_range,
    _check_academic_levels,
    _check_gender,
    _check_hostel_gender,
    _check_international,
    _check_nationality,
    _check_gpa,
    _check_payment,
    _check_registration,
    _check_admission,
    _check_prior_allocation,
)


class EligibilityEvaluator:
    """Evaluates student profiles against window eligibility criteria."""

    def __init__(self, checks: Tuple[Check, ...] = CHECKS):
        self.checks = checks

    def evaluate(
        self,
        profile: StudentProfile,
        criteria: Union[EligibilityCriteria, Mapping[str, Any], None],
        hostel_gender_policy: Optional[GenderPolicy] = None,
    ) -> EligibilityResult:
        if criteria is None:
            criteria = EligibilityCriteria()
        elif not isinstance(criteria, EligibilityCriteria):
            criteria = EligibilityCriteria.model_validate(dict(criteria))

        reasons: List[IneligibilityReason] = []
        seen = set()
        for check in self.checks:
            failure = check(profile, criteria, hostel_gender_policy)
            if failure is None or failure[0] in seen:
                continue
            seen.add(failure[0])
            reasons.append(IneligibilityReason(code=failure[0], message=failure[1]))

        return EligibilityResult(reasons=reasons)


def evaluate(
    profile: StudentProfile,
    criteria: Union[EligibilityCriteria, Mapping[str, Any], None],
    hostel_gender_policy: Optional[GenderPolicy] = None,
) -> EligibilityResult:
    return EligibilityEvaluator().evaluate(profile, criteria, hostel_gender_policy)
