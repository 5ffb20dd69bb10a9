"""
stafftrak/scoring.py
Summative scoring helpers for StaffTrak.

  - Rating bands    (overall / per-domain score → rating label)
  - Overall score   (mean of the scored rubric domains)

Scores are on the 1–4 rubric scale.  Nothing here touches the database.
"""

import logging

logger = logging.getLogger(__name__)


# ─── RATING BANDS ────────────────────────────────────────────────────────────
# Checked top to bottom; the first band whose minimum the score reaches wins.

RATING_BANDS = (
    (3.5, "Highly Effective"),
    (2.5, "Effective"),
    (1.5, "Developing"),
)
LOWEST_RATING = "Needs Improvement"
NO_RATING = "N/A"

RATING_COLOURS = {
    "Highly Effective":  "#27AE60",
    "Effective":         "#477FC1",
    "Developing":        "#F39C12",
    "Needs Improvement": "#E74C3C",
}


# ─── PRIVATE HELPERS ─────────────────────────────────────────────────────────

def _to_float(value) -> float | None:
    """
    Coerce a stored score to float.

    Scores arrive as numbers, numeric strings (Postgres numeric columns come
    back as text through PostgREST) or blanks.  Returns None for anything
    that is not a number.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ─── PUBLIC HELPERS ──────────────────────────────────────────────────────────

def rating_for_score(score) -> str:
    """
    Return the rating band for a score.

    ≥3.5 Highly Effective, ≥2.5 Effective, ≥1.5 Developing, otherwise Needs
    Improvement.  A missing or zero score has no rating and returns 'N/A'.
    """
    value = _to_float(score)
    if not value:
        return NO_RATING
    for minimum, label in RATING_BANDS:
        if value >= minimum:
            return label
    return LOWEST_RATING


def overall_rating(score) -> str | None:
    """Like rating_for_score, but None when there is nothing to rate."""
    rating = rating_for_score(score)
    return None if rating == NO_RATING else rating


def calculate_overall_score(domain_scores: dict | None) -> float | None:
    """
    Average the scored domains of an evaluation.

    domain_scores maps domain id → {"score": ..., "feedback": ...}.  Domains
    without a numeric score are skipped.  Returns the mean rounded to two
    decimals, or None when no domain has been scored.
    """
    if not domain_scores:
        return None

    scores = []
    for domain_id, entry in domain_scores.items():
        score = _to_float((entry or {}).get("score"))
        if score is None:
            logger.debug("Domain %s has no score; skipping", domain_id)
            continue
        scores.append(score)

    if not scores:
        return None
    return round(sum(scores) / len(scores), 2)


def format_score(score, placeholder: str = "-") -> str:
    """Render a score for display: whole numbers without decimals."""
    value = _to_float(score)
    if value is None:
        return placeholder
    if value.is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def rating_colour(rating: str | None) -> str:
    """Return the hex colour for a rating label."""
    return RATING_COLOURS.get(rating or "", "#888888")
