from datetime import timedelta

from hostel_allocation.schemas.eligibility import AllocationRules
from hostel_allocation.services.priority import compute_priority_score

from tests.conftest import NOW


def test_first_come_first_serve_scores_zero(make_window, make_profile):
    window = make_window()

    assert compute_priority_score(make_profile("stu-1"), window, NOW) == 0.0


def test_level_and_merit_weights(make_window, make_profile):
    window = make_window(allocation_rules=AllocationRules(priority_by_level=True, merit_based=True))
    profile = make_profile("stu-1", level=300, gpa=3.25)

    score = compute_priority_score(profile, window, NOW, level_weight=0.1, gpa_weight=10.0)

    assert score == 62.5


def test_early_bird_bonus_until_deadline(make_window, make_profile):
    window = make_window(early_bird_end_date=NOW + timedelta(days=1))
    profile = make_profile("stu-1")

    assert compute_priority_score(profile, window, NOW, early_bird_bonus=5.0) == 5.0
    assert compute_priority_score(profile, window, NOW + timedelta(days=2), early_bird_bonus=5.0) == 0.0
