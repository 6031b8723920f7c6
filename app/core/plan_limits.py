import os
from typing import Dict

# Free tier report cap; seeded into users.max_issues at signup
FREE_ISSUE_LIMIT = int(os.getenv("FREE_ISSUE_LIMIT", "3"))

# Marker returned instead of a number when a user has no cap
UNLIMITED = "unlimited"

# Roles that never hit the report cap
UNCAPPED_ROLES = ("staff", "admin")

# Premium plans and their calendar length (months, years)
PREMIUM_PLANS: Dict[str, Dict[str, int]] = {
    "monthly": {"months": 1, "years": 0},
    "yearly": {"months": 0, "years": 1},
}


def get_plan_duration(plan: str) -> Dict[str, int]:
    """Get the calendar length of a premium plan, or an empty dict if unknown."""
    return PREMIUM_PLANS.get(plan, {})
