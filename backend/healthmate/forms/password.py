"""Password strength scoring for the registration form."""

import re

from healthmate.forms.models import PasswordStrength

# One point per satisfied check
STRENGTH_CHECKS = [
    lambda p: len(p) >= 8,
    lambda p: re.search(r"[A-Z]", p) is not None,
    lambda p: re.search(r"[a-z]", p) is not None,
    lambda p: re.search(r"[0-9]", p) is not None,
    lambda p: re.search(r"[^A-Za-z0-9]", p) is not None,
]

STRENGTH_LABELS = {
    0: "",
    1: "Very Weak",
    2: "Weak",
    3: "Fair",
    4: "Good",
    5: "Strong",
}

STRENGTH_COLORS = {
    0: "gray",
    1: "red",
    2: "orange",
    3: "yellow",
    4: "blue",
    5: "green",
}


def score_password(password: str) -> PasswordStrength:
    """Score a password 0-5. An empty password always scores 0."""
    if not password:
        return PasswordStrength(score=0, label=STRENGTH_LABELS[0], color=STRENGTH_COLORS[0])

    score = sum(1 for check in STRENGTH_CHECKS if check(password))
    return PasswordStrength(score=score, label=STRENGTH_LABELS[score], color=STRENGTH_COLORS[score])
