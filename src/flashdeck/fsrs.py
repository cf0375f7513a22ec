"""FSRS (Free Spaced Repetition Scheduler), v4-style.

Memory state is a pair of stability (days until recall probability falls
to the target retention) and difficulty (1-10). Each review moves both and
the next interval is read off the forgetting curve.
"""
import random
from datetime import datetime, timedelta

from flashdeck.models import FSRSCard, FSRSConfig, FSRSResult, FSRSReview, ReviewLog
from flashdeck.ratings import AGAIN, EASY, FSRS_RATING_LABELS, GOOD, HARD, validate_fsrs_rating
from flashdeck.sm2 import round_half_up

DEFAULT_WEIGHTS = (
    0.4,    # w0: initial stability for again
    0.6,    # w1: initial stability for hard
    2.4,    # w2: initial stability for good
    5.8,    # w3: initial stability for easy
    0.3,    # w4: stability scale after a lapse
    0.94,   # w5: stability growth for hard
    0.86,   # w6: stability growth for good
    0.01,   # w7: stability growth for easy
    1.49,   # w8: unused
    0.14,   # w9: difficulty step for hard and good
    -0.94,  # w10: difficulty mean reversion for easy
    -0.71,  # w11: difficulty mean reversion for good
    0.001,  # w12: difficulty step for easy
    0.32,   # w13: difficulty decay for hard stability
    0.3,    # w14: difficulty decay for good stability
    1.01,   # w15: difficulty increase for again
    0.5,    # w16: unused
)

DEFAULT_CONFIG = FSRSConfig()
DEFAULT_DIFFICULTY = 5.0
MIN_STABILITY = 0.1
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0
FUZZ_FACTOR = 0.15

_random = random.Random()


def validate_config(config: FSRSConfig) -> FSRSConfig:
    if not 0 < config.request_retention < 1:
        raise ValueError("Request retention must be between 0 and 1")
    if config.maximum_interval < 1:
        raise ValueError("Maximum interval must be at least 1 day")
    return config


def next_interval(stability: float, retention: float) -> int:
    return max(1, round_half_up(stability * 9 * (1 / retention - 1)))


def next_difficulty(difficulty: float, rating: int, w=DEFAULT_WEIGHTS) -> float:
    d = difficulty
    if rating == AGAIN:
        new_d = d + w[15]
    elif rating == HARD:
        new_d = d + w[9]
    elif rating == GOOD:
        new_d = d - w[11] * (1 - d) - w[9]
    else:
        new_d = d - w[10] * (1 - d) - w[12]
    return min(max(new_d, MIN_DIFFICULTY), MAX_DIFFICULTY)


def initial_stability(rating: int, w=DEFAULT_WEIGHTS) -> float:
    return w[rating - 1]


def next_stability(stability: float, difficulty: float, rating: int, w=DEFAULT_WEIGHTS) -> float:
    s = stability
    if rating == AGAIN:
        new_s = s * w[4]
    elif rating == HARD:
        new_s = s * (1 + w[5]) * difficulty ** -w[13]
    elif rating == GOOD:
        new_s = s * (1 + w[6]) * difficulty ** -w[14]
    else:
        new_s = s * (1 + w[7])
    return max(MIN_STABILITY, new_s)


def apply_fuzz(interval: int, enable_fuzz: bool, rng: random.Random | None = None) -> int:
    """Jitter an interval by up to 15% so cards reviewed together spread out."""
    if not enable_fuzz:
        return interval
    rng = rng or _random
    fuzz = interval * FUZZ_FACTOR
    return max(1, round_half_up(interval + rng.uniform(-fuzz, fuzz)))


def calculate_fsrs(
    card: FSRSCard | dict | None,
    review: FSRSReview,
    config: FSRSConfig | None = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> FSRSResult:
    """Schedule the next review of a card.

    ``card`` may be an FSRSCard, a dict with optional ``stability`` and
    ``difficulty`` keys, or None for a card that was never reviewed. A
    missing or zero stability marks a new card. Raises ValueError for a
    config whose retention is outside (0, 1) or whose maximum interval is
    below one day.
    """
    config = validate_config(config or DEFAULT_CONFIG)
    rating = validate_fsrs_rating(review.rating)

    if card is None:
        stability, difficulty = 0, None
    elif isinstance(card, dict):
        stability, difficulty = card.get("stability"), card.get("difficulty")
    else:
        stability, difficulty = card.stability, card.difficulty
    stability = stability or 0
    if difficulty is None:
        difficulty = DEFAULT_DIFFICULTY
    difficulty = min(max(difficulty, MIN_DIFFICULTY), MAX_DIFFICULTY)

    new_difficulty = next_difficulty(difficulty, rating)
    if stability == 0:
        new_stability = initial_stability(rating)
    else:
        new_stability = next_stability(stability, difficulty, rating)

    interval = next_interval(new_stability, config.request_retention)
    interval = min(apply_fuzz(interval, config.enable_fuzz, rng), config.maximum_interval)

    now = now or datetime.now()
    due = now + timedelta(days=interval)

    return FSRSResult(
        card=FSRSCard(
            stability=new_stability,
            difficulty=new_difficulty,
            due=due,
            last_review=now,
        ),
        review_log=ReviewLog(
            rating=rating,
            answer_time_ms=review.answer_time_ms or 0,
            stability=new_stability,
            difficulty=new_difficulty,
            due=due,
        ),
    )


def get_fsrs_rating_label(rating: int) -> str:
    return FSRS_RATING_LABELS.get(rating, "Unknown")
