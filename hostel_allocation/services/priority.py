"""
Priority scoring for the application queue.

Higher scores are reviewed first; submission time breaks ties.
"""

from datetime import datetime
from typing import Optional

from hostel_allocation.config.settings import settings
from hostel_allocation.models.window import ApplicationWindow
from hostel_allocation.schemas.eligibility import AllocationRules, StudentProfile


def compute_priority_score(
    profile: StudentProfile,
    window: ApplicationWindow,
    submitted_at: datetime,
    level_weight: Optional[float] = None,
    gpa_weight: Optional[float] = None,
    early_bird_bonus: Optional[float] = None,
) -> float:
    """
    Score an application from the window's allocation rules.

    - ``priority_by_level``: academic level times the level weight
    - ``merit_based``: GPA times the GPA weight
    - submissions on or before the early-bird deadline earn a flat bonus
    """
    rules = AllocationRules.model_validate(window.allocation_rules or {})
    level_weight = settings.PRIORITY_LEVEL_WEIGHT if level_weight is None else level_weight
    gpa_weight = settings.PRIORITY_GPA_WEIGHT if gpa_weight is None else gpa_weight
    early_bird_bonus = settings.EARLY_BIRD_BONUS if early_bird_bonus is None else early_bird_bonus

    score = 0.0
    if rules.priority_by_level:
        score += profile.level * level_weight
    if rules.merit_based and profile.gpa is not None:
        score += profile.gpa * gpa_weight
    if window.early_bird_end_date is not None and submitted_at <= window.early_bird_end_date:
        score += early_bird_bonus

    return round(score, 4)
