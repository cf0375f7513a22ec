"""Study record storage keyed by (user, card)."""
import logging
from datetime import datetime
from typing import Callable, Optional

from flashdeck.db import get_connection
from flashdeck.decks import card_from_row
from flashdeck.models import Card, StudyRecord

logger = logging.getLogger(__name__)

SCHEDULING_DEFAULTS = {
    "ease_factor": 2.5,
    "interval": 0,
    "repetitions": 0,
    "stability": None,
    "difficulty": None,
}


def record_from_row(row) -> StudyRecord:
    return StudyRecord(
        user_id=row["user_id"],
        card_id=row["card_id"],
        ease_factor=row["ease_factor"],
        interval=row["interval"],
        repetitions=row["repetitions"],
        next_review_date=row["next_review_date"],
        stability=row["stability"],
        difficulty=row["difficulty"],
        last_reviewed_at=row["last_reviewed_at"],
        last_quality=row["last_quality"],
        total_reviews=row["total_reviews"],
        correct_reviews=row["correct_reviews"],
    )


def _fetch(conn, user_id: str, card_id: int) -> Optional[StudyRecord]:
    row = conn.execute(
        "SELECT * FROM study_records WHERE user_id = ? AND card_id = ?",
        (user_id, card_id),
    ).fetchone()
    return record_from_row(row) if row else None


def _write(
    conn,
    existing: Optional[StudyRecord],
    user_id: str,
    card_id: int,
    fields: dict,
    increment_total: bool,
    increment_correct: bool,
) -> StudyRecord:
    now = datetime.now().isoformat()
    values = {}
    for name, default in SCHEDULING_DEFAULTS.items():
        if fields.get(name) is not None:
            values[name] = fields[name]
        elif existing is not None:
            values[name] = getattr(existing, name)
        else:
            values[name] = default
    if fields.get("next_review_date") is not None:
        values["next_review_date"] = fields["next_review_date"]
    elif existing is not None:
        values["next_review_date"] = existing.next_review_date
    else:
        values["next_review_date"] = now
    values["last_reviewed_at"] = fields.get("last_reviewed_at") or now
    if fields.get("last_quality") is not None:
        values["last_quality"] = fields["last_quality"]
    else:
        values["last_quality"] = existing.last_quality if existing else None
    values["total_reviews"] = (existing.total_reviews if existing else 0) + int(increment_total)
    values["correct_reviews"] = (existing.correct_reviews if existing else 0) + int(increment_correct)

    conn.execute(
        """INSERT INTO study_records (
            user_id, card_id, ease_factor, interval, repetitions, next_review_date,
            stability, difficulty, last_reviewed_at, last_quality,
            total_reviews, correct_reviews, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id, card_id) DO UPDATE SET
            ease_factor=excluded.ease_factor,
            interval=excluded.interval,
            repetitions=excluded.repetitions,
            next_review_date=excluded.next_review_date,
            stability=excluded.stability,
            difficulty=excluded.difficulty,
            last_reviewed_at=excluded.last_reviewed_at,
            last_quality=excluded.last_quality,
            total_reviews=excluded.total_reviews,
            correct_reviews=excluded.correct_reviews,
            updated_at=excluded.updated_at""",
        (
            user_id, card_id, values["ease_factor"], values["interval"],
            values["repetitions"], values["next_review_date"], values["stability"],
            values["difficulty"], values["last_reviewed_at"], values["last_quality"],
            values["total_reviews"], values["correct_reviews"], now, now,
        ),
    )
    return StudyRecord(user_id=user_id, card_id=card_id, **values)


def get_study_record(db_path: str, user_id: str, card_id: int) -> Optional[StudyRecord]:
    conn = get_connection(db_path)
    record = _fetch(conn, user_id, card_id)
    conn.close()
    return record


def upsert_study_record(
    db_path: str,
    user_id: str,
    card_id: int,
    increment_total: bool = False,
    increment_correct: bool = False,
    **fields,
) -> StudyRecord:
    """Create or update the record for (user, card).

    Scheduling fields that are not given keep their stored value, or the
    default for a new record. Counters are incremented, never overwritten.
    """
    return update_study_record(
        db_path, user_id, card_id, lambda existing: fields,
        increment_total=increment_total, increment_correct=increment_correct,
    )


def update_study_record(
    db_path: str,
    user_id: str,
    card_id: int,
    compute: Callable[[Optional[StudyRecord]], dict],
    increment_total: bool = False,
    increment_correct: bool = False,
) -> StudyRecord:
    """Read, compute and write one record inside a single write transaction.

    ``compute`` receives the stored record (or None) and returns the fields
    to write. Holding the write lock across the read keeps two ratings of
    the same card from interleaving.
    """
    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN IMMEDIATE")
        existing = _fetch(conn, user_id, card_id)
        record = _write(
            conn, existing, user_id, card_id, compute(existing),
            increment_total, increment_correct,
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    logger.debug(
        "Saved study record user=%s card=%s next_review=%s",
        user_id, card_id, record.next_review_date,
    )
    return record


def get_due_cards(
    db_path: str, user_id: str, deck_id: int, now: datetime | None = None
) -> list[Card]:
    """Cards in a deck that are due for the user, plus cards never studied."""
    now = (now or datetime.now()).isoformat()
    conn = get_connection(db_path)
    due = conn.execute(
        """SELECT c.* FROM study_records r
        JOIN cards c ON r.card_id = c.id
        WHERE r.user_id = ? AND c.deck_id = ? AND c.deleted_at IS NULL
            AND r.next_review_date <= ?
        ORDER BY r.next_review_date ASC, c.position""",
        (user_id, deck_id, now),
    ).fetchall()
    new = conn.execute(
        """SELECT c.* FROM cards c
        WHERE c.deck_id = ? AND c.deleted_at IS NULL
            AND NOT EXISTS (
                SELECT 1 FROM study_records r WHERE r.card_id = c.id AND r.user_id = ?
            )
        ORDER BY c.position, c.id""",
        (deck_id, user_id),
    ).fetchall()
    conn.close()
    return [card_from_row(r) for r in due] + [card_from_row(r) for r in new]


def reset_study_records(db_path: str, user_id: str) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM study_records WHERE user_id = ?", (user_id,))
    conn.commit()
    conn.close()
