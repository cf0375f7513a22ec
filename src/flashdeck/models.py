"""Data classes for decks, cards and scheduling state."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class StudyMode(str, Enum):
    FSRS = "fsrs"
    SPACED_REPETITION = "spaced-repetition"
    SIMPLE_REVIEW = "simple-review"


@dataclass
class Deck:
    id: int
    name: str
    description: str = ""
    created_at: Optional[str] = None
    deleted_at: Optional[str] = None


@dataclass
class ClozeField:
    id: str
    answer: str
    hint: Optional[str] = None


@dataclass
class ClozeData:
    original: str
    fields: list[ClozeField] = field(default_factory=list)


@dataclass
class Card:
    id: int
    deck_id: int
    front: str = ""
    back: str = ""
    card_type: str = "basic"
    cloze_data: Optional[ClozeData] = None
    position: int = 0
    created_at: Optional[str] = None
    deleted_at: Optional[str] = None


@dataclass
class StudyCard:
    """One schedulable item. A cloze card yields one per blank."""
    id: str
    original_card_id: int
    kind: str
    front: str = ""
    back: str = ""
    cloze_data: Optional[ClozeData] = None
    cloze_field_id: Optional[str] = None
    cloze_field_index: Optional[int] = None
    cloze_total_fields: Optional[int] = None


@dataclass
class SM2Result:
    interval: int
    repetitions: int
    ease_factor: float
    next_review_date: date


@dataclass
class FSRSCard:
    stability: float
    difficulty: float
    due: datetime
    last_review: Optional[datetime] = None


@dataclass
class FSRSReview:
    rating: int
    answer_time_ms: Optional[int] = None


@dataclass(frozen=True)
class FSRSConfig:
    request_retention: float = 0.9
    maximum_interval: int = 36500
    enable_fuzz: bool = True


@dataclass
class ReviewLog:
    rating: int
    answer_time_ms: int
    stability: float
    difficulty: float
    due: datetime


@dataclass
class FSRSResult:
    card: FSRSCard
    review_log: ReviewLog


@dataclass
class StudyRecord:
    user_id: str
    card_id: int
    ease_factor: float = 2.5
    interval: int = 0
    repetitions: int = 0
    next_review_date: Optional[str] = None
    stability: Optional[float] = None
    difficulty: Optional[float] = None
    last_reviewed_at: Optional[str] = None
    last_quality: Optional[int] = None
    total_reviews: int = 0
    correct_reviews: int = 0


@dataclass
class StudySessionRecord:
    id: int
    user_id: str
    deck_id: int
    study_mode: str
    cards_studied: int = 0
    duration_seconds: Optional[int] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
