"""Study sessions: pick cards, schedule each rating, persist the result.

Each study mode has a strategy that turns a stored record and a quality
rating into the fields to persist. All cloze fields of one card write to
the same record, keyed by the stored card id.
"""
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from flashdeck.db import get_connection
from flashdeck.decks import get_cards_for_deck
from flashdeck.fsrs import calculate_fsrs
from flashdeck.models import FSRSConfig, FSRSReview, StudyCard, StudyMode, StudyRecord
from flashdeck.preferences import get_default_study_mode, get_fsrs_config
from flashdeck.ratings import is_correct, sm2_quality_to_fsrs_rating, validate_quality
from flashdeck.records import get_due_cards, update_study_record
from flashdeck.sm2 import DEFAULT_EASE_FACTOR, calculate_sm2
from flashdeck.study_cards import expand_all

logger = logging.getLogger(__name__)


class NoCardsToStudy(Exception):
    """Nothing to put in front of the user."""

    def __init__(self, deck_id: int, message: str):
        self.deck_id = deck_id
        super().__init__(message)


class EmptyDeck(NoCardsToStudy):
    def __init__(self, deck_id: int):
        super().__init__(deck_id, "This deck has no cards yet.")


class NothingDue(NoCardsToStudy):
    def __init__(self, deck_id: int):
        super().__init__(deck_id, "No cards are due right now.")


class ReviewStrategy:
    """Turns a rating into the scheduling fields to store."""

    uses_schedule = True

    def schedule(
        self,
        existing: Optional[StudyRecord],
        quality: int,
        now: datetime,
        config: FSRSConfig | None = None,
        rng: random.Random | None = None,
        answer_time_ms: int | None = None,
    ) -> dict:
        raise NotImplementedError


class FsrsStrategy(ReviewStrategy):
    def schedule(self, existing, quality, now, config=None, rng=None, answer_time_ms=None):
        state = {}
        if existing is not None:
            state = {"stability": existing.stability, "difficulty": existing.difficulty}
        result = calculate_fsrs(
            state,
            FSRSReview(rating=sm2_quality_to_fsrs_rating(quality), answer_time_ms=answer_time_ms),
            config=config,
            now=now,
            rng=rng,
        )
        logger.debug("FSRS review log: %s", result.review_log)
        return {
            "stability": result.card.stability,
            "difficulty": result.card.difficulty,
            "next_review_date": result.card.due.isoformat(),
        }


class SpacedRepetitionStrategy(ReviewStrategy):
    def schedule(self, existing, quality, now, config=None, rng=None, answer_time_ms=None):
        result = calculate_sm2(
            quality,
            repetitions=existing.repetitions if existing else 0,
            interval=existing.interval if existing else 0,
            ease_factor=existing.ease_factor if existing else DEFAULT_EASE_FACTOR,
            today=now.date(),
        )
        return {
            "ease_factor": result.ease_factor,
            "interval": result.interval,
            "repetitions": result.repetitions,
            "next_review_date": result.next_review_date.isoformat(),
        }


class SimpleReviewStrategy(ReviewStrategy):
    """Counts the review without touching the schedule."""

    uses_schedule = False

    def schedule(self, existing, quality, now, config=None, rng=None, answer_time_ms=None):
        return {}


STRATEGIES = {
    StudyMode.FSRS: FsrsStrategy(),
    StudyMode.SPACED_REPETITION: SpacedRepetitionStrategy(),
    StudyMode.SIMPLE_REVIEW: SimpleReviewStrategy(),
}


def get_strategy(mode: StudyMode | str) -> ReviewStrategy:
    return STRATEGIES[StudyMode(mode)]


def rate_card(
    db_path: str,
    user_id: str,
    study_card: StudyCard,
    quality: int,
    mode: StudyMode | str,
    config: FSRSConfig | None = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
    answer_time_ms: int | None = None,
) -> StudyRecord:
    """Schedule one rating of a study card and persist it.

    ``quality`` is always on the SM-2 0-5 scale; FSRS mode converts it.
    """
    validate_quality(quality)
    strategy = get_strategy(mode)
    now = now or datetime.now()
    if config is None and StudyMode(mode) is StudyMode.FSRS:
        config = get_fsrs_config(db_path)

    def compute(existing):
        fields = strategy.schedule(
            existing, quality, now, config=config, rng=rng, answer_time_ms=answer_time_ms,
        )
        fields["last_reviewed_at"] = now.isoformat()
        fields["last_quality"] = quality
        return fields

    record = update_study_record(
        db_path,
        user_id,
        study_card.original_card_id,
        compute,
        increment_total=True,
        increment_correct=is_correct(quality),
    )
    logger.info(
        "Rated card %s (%s) quality=%d mode=%s",
        study_card.id, study_card.original_card_id, quality, StudyMode(mode).value,
    )
    return record


@dataclass
class StudySession:
    id: int
    user_id: str
    deck_id: int
    mode: StudyMode
    cards: list[StudyCard]
    started_at: datetime = field(default_factory=datetime.now)
    index: int = 0
    cards_studied: int = 0

    @property
    def current(self) -> StudyCard | None:
        if self.index < len(self.cards):
            return self.cards[self.index]
        return None

    @property
    def is_complete(self) -> bool:
        return bool(self.cards) and self.current is None

    @property
    def can_go_back(self) -> bool:
        return 0 < self.index < len(self.cards)

    @property
    def can_go_forward(self) -> bool:
        return self.index < len(self.cards) - 1

    def advance(self) -> StudyCard | None:
        if self.index < len(self.cards):
            self.index += 1
        return self.current

    def go_back(self) -> StudyCard | None:
        if self.can_go_back:
            self.index -= 1
        return self.current

    def rate(self, db_path: str, quality: int, **kwargs) -> StudyRecord:
        """Rate the current card and move on to the next one."""
        card = self.current
        if card is None:
            raise IndexError("Study session is already complete")
        record = rate_card(db_path, self.user_id, card, quality, self.mode, **kwargs)
        self.cards_studied += 1
        self.advance()
        return record


def start_session(
    db_path: str,
    user_id: str,
    deck_id: int,
    mode: StudyMode | str | None = None,
    now: datetime | None = None,
) -> StudySession:
    """Load the cards to study and open a session record.

    Raises EmptyDeck when the deck has no active cards and NothingDue when
    it has cards but none are due.
    """
    mode = StudyMode(mode) if mode is not None else get_default_study_mode(db_path)
    now = now or datetime.now()

    all_cards = get_cards_for_deck(db_path, deck_id)
    if not all_cards:
        raise EmptyDeck(deck_id)

    if get_strategy(mode).uses_schedule:
        cards = get_due_cards(db_path, user_id, deck_id, now=now)
    else:
        cards = all_cards
    study_cards = expand_all(cards)
    if not study_cards:
        raise NothingDue(deck_id)

    conn = get_connection(db_path)
    cursor = conn.execute(
        "INSERT INTO study_sessions (user_id, deck_id, study_mode, started_at) VALUES (?, ?, ?, ?)",
        (user_id, deck_id, mode.value, now.isoformat()),
    )
    conn.commit()
    conn.close()
    logger.info(
        "Started %s session %s on deck %s with %d items",
        mode.value, cursor.lastrowid, deck_id, len(study_cards),
    )
    return StudySession(
        id=cursor.lastrowid,
        user_id=user_id,
        deck_id=deck_id,
        mode=mode,
        cards=study_cards,
        started_at=now,
    )


def finish_session(db_path: str, session: StudySession, now: datetime | None = None) -> int:
    """Stamp the session record as completed. Returns the duration in seconds."""
    now = now or datetime.now()
    duration = max(0, int((now - session.started_at).total_seconds()))
    conn = get_connection(db_path)
    conn.execute(
        """UPDATE study_sessions SET cards_studied = ?, duration_seconds = ?, completed_at = ?
        WHERE id = ?""",
        (session.cards_studied, duration, now.isoformat(), session.id),
    )
    conn.commit()
    conn.close()
    return duration
