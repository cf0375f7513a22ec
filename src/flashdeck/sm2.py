"""SM-2 spaced repetition algorithm."""
import math
from datetime import date, timedelta

from flashdeck.models import SM2Result
from flashdeck.ratings import validate_quality

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_sm2(
    quality: int,
    repetitions: int,
    interval: int,
    ease_factor: float,
    today: date | None = None,
) -> SM2Result:
    """Calculate next review parameters using SM-2.

    Args:
        quality: Rating 0-5 (0=complete blackout, 5=perfect)
        repetitions: Number of consecutive correct reviews
        interval: Current interval in days
        ease_factor: Current ease factor (minimum 1.3)
        today: Date the review happens on, defaults to date.today()

    Returns:
        SM2Result with updated interval, repetitions, ease factor and
        next review date.
    """
    validate_quality(quality)

    # Update ease factor
    new_ef = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    new_ef = max(MIN_EASE_FACTOR, new_ef)

    if quality >= 3:
        # Correct response
        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            new_interval = 1
        elif new_repetitions == 2:
            new_interval = 6
        else:
            new_interval = max(1, round_half_up(interval * new_ef))
    else:
        # Incorrect: reset, ease factor keeps its update
        new_repetitions = 0
        new_interval = 1

    today = today or date.today()
    return SM2Result(
        interval=new_interval,
        repetitions=new_repetitions,
        ease_factor=new_ef,
        next_review_date=today + timedelta(days=new_interval),
    )
