"""Rating scales and the conversions between them.

SM-2 rates recall with a quality of 0-5; FSRS uses a rating of 1-4
(Again, Hard, Good, Easy). The conversions below are lossy in both
directions: qualities 0, 2, 3 and 5 survive a round trip, 1 comes back
as 2 and 4 comes back as 5.
"""

AGAIN = 1
HARD = 2
GOOD = 3
EASY = 4

QUALITY_LABELS = {
    0: "Blackout",
    1: "Wrong, familiar",
    2: "Wrong, almost",
    3: "Hard",
    4: "Good",
    5: "Perfect",
}

FSRS_RATING_LABELS = {
    AGAIN: "Again",
    HARD: "Hard",
    GOOD: "Good",
    EASY: "Easy",
}


class InvalidRating(ValueError):
    """A quality or rating outside its scale."""


def validate_quality(quality: int) -> int:
    if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= 5:
        raise InvalidRating(f"SM-2 quality must be an integer 0-5, got {quality!r}")
    return quality


def validate_fsrs_rating(rating: int) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not AGAIN <= rating <= EASY:
        raise InvalidRating(f"FSRS rating must be an integer 1-4, got {rating!r}")
    return rating


def is_correct(quality: int) -> bool:
    """A review counts as correct for statistics when quality is 3 or more."""
    return quality >= 3


def sm2_quality_to_fsrs_rating(quality: int) -> int:
    if quality <= 0:
        return AGAIN
    if quality in (1, 2):
        return HARD
    if quality == 3:
        return GOOD
    return EASY


def fsrs_rating_to_sm2_quality(rating: int) -> int:
    return {AGAIN: 0, HARD: 2, GOOD: 3, EASY: 5}.get(rating, 0)


def get_quality_label(quality: int) -> str:
    return QUALITY_LABELS.get(quality, "Unknown")
