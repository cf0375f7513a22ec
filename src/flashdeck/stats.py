"""Study statistics per deck and per user."""
import calendar
from datetime import datetime, time, timedelta

from flashdeck.db import get_connection
from flashdeck.sm2 import DEFAULT_EASE_FACTOR


def get_success_label(rate: float) -> str:
    if rate >= 90:
        return "EXCELLENT"
    elif rate >= 75:
        return "GOOD"
    elif rate >= 50:
        return "FAIR"
    return "NEEDS WORK"


def get_success_color(rate: float) -> str:
    if rate >= 90:
        return "green"
    elif rate >= 75:
        return "yellow"
    elif rate >= 50:
        return "dark_orange"
    return "red"


def _success_rate(total: int, correct: int) -> float:
    if not total:
        return 0.0
    return round((correct / total) * 100, 1)


def get_deck_study_stats(db_path: str, user_id: str, deck_id: int) -> dict:
    conn = get_connection(db_path)
    total_cards = conn.execute(
        "SELECT COUNT(*) FROM cards WHERE deck_id = ? AND deleted_at IS NULL", (deck_id,)
    ).fetchone()[0]
    row = conn.execute(
        """SELECT
            COUNT(*) as records,
            SUM(CASE WHEN r.total_reviews > 0 THEN 1 ELSE 0 END) as studied,
            SUM(r.total_reviews) as total,
            SUM(r.correct_reviews) as correct,
            AVG(r.ease_factor) as avg_ease
        FROM study_records r JOIN cards c ON r.card_id = c.id
        WHERE r.user_id = ? AND c.deck_id = ? AND c.deleted_at IS NULL""",
        (user_id, deck_id),
    ).fetchone()
    conn.close()
    total = row["total"] or 0
    correct = row["correct"] or 0
    return {
        "total_cards": total_cards,
        "studied_cards": row["studied"] or 0,
        "total_reviews": total,
        "correct_reviews": correct,
        "average_ease": round(row["avg_ease"], 2) if row["records"] else DEFAULT_EASE_FACTOR,
        "success_rate": _success_rate(total, correct),
    }


def get_user_study_stats(db_path: str, user_id: str) -> dict:
    """Totals across all active decks and cards."""
    conn = get_connection(db_path)
    total_cards = conn.execute(
        """SELECT COUNT(*) FROM cards c JOIN decks d ON c.deck_id = d.id
        WHERE c.deleted_at IS NULL AND d.deleted_at IS NULL"""
    ).fetchone()[0]
    row = conn.execute(
        """SELECT
            SUM(CASE WHEN r.total_reviews > 0 THEN 1 ELSE 0 END) as studied,
            SUM(r.total_reviews) as total,
            SUM(r.correct_reviews) as correct
        FROM study_records r
        JOIN cards c ON r.card_id = c.id
        JOIN decks d ON c.deck_id = d.id
        WHERE r.user_id = ? AND c.deleted_at IS NULL AND d.deleted_at IS NULL""",
        (user_id,),
    ).fetchone()
    conn.close()
    total = row["total"] or 0
    correct = row["correct"] or 0
    return {
        "total_cards": total_cards,
        "studied_cards": row["studied"] or 0,
        "total_reviews": total,
        "correct_reviews": correct,
        "success_rate": _success_rate(total, correct),
    }


def get_recent_study_sessions(db_path: str, user_id: str, limit: int = 10) -> list[dict]:
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT s.*, d.name as deck_name
        FROM study_sessions s LEFT JOIN decks d ON s.deck_id = d.id
        WHERE s.user_id = ?
        ORDER BY s.started_at DESC, s.id DESC
        LIMIT ?""",
        (user_id, limit),
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]


TIME_RANGES = ("today", "week", "month", "all")
ALL_TIME_START = datetime(2020, 1, 1)


def _one_month_before(day: datetime) -> datetime:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def get_date_range(time_range: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Start and end of a named range. The end is the last moment of today."""
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unknown time range: {time_range}")
    now = now or datetime.now()
    end = datetime.combine(now.date(), time.max)
    midnight = datetime.combine(now.date(), time.min)
    if time_range == "today":
        start = midnight
    elif time_range == "week":
        start = midnight - timedelta(days=7)
    elif time_range == "month":
        start = _one_month_before(midnight)
    else:
        start = ALL_TIME_START
    return start, end


def get_study_trend_data(
    db_path: str, user_id: str, start: datetime, end: datetime
) -> list[dict]:
    """Cards studied and sessions started per day."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT substr(started_at, 1, 10) as date,
            SUM(COALESCE(cards_studied, 0)) as cards,
            COUNT(*) as sessions
        FROM study_sessions
        WHERE user_id = ? AND started_at >= ? AND started_at <= ?
        GROUP BY date ORDER BY date""",
        (user_id, start.isoformat(), end.isoformat()),
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_success_rate_trend_data(
    db_path: str, user_id: str, start: datetime, end: datetime
) -> list[dict]:
    """Success rate of the study records last updated on each day."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT substr(updated_at, 1, 10) as date,
            SUM(total_reviews) as total,
            SUM(correct_reviews) as correct
        FROM study_records
        WHERE user_id = ? AND updated_at >= ? AND updated_at <= ?
        GROUP BY date ORDER BY date""",
        (user_id, start.isoformat(), end.isoformat()),
    ).fetchall()
    conn.close()
    return [
        {"date": r["date"], "success_rate": _success_rate(r["total"] or 0, r["correct"] or 0)}
        for r in rows
    ]


def get_study_activity_data(
    db_path: str, user_id: str, start: datetime, end: datetime
) -> list[dict]:
    """Cards studied per day, for an activity heatmap."""
    return [
        {"date": day["date"], "count": day["cards"]}
        for day in get_study_trend_data(db_path, user_id, start, end)
    ]
