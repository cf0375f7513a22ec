"""Deck and card storage."""
import json
import logging
from dataclasses import asdict
from datetime import datetime

from flashdeck.cloze import parse_cloze, validate_cloze
from flashdeck.db import get_connection
from flashdeck.models import Card, ClozeData, ClozeField, Deck

logger = logging.getLogger(__name__)


class InvalidClozeText(ValueError):
    """Cloze text that fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def deck_from_row(row) -> Deck:
    return Deck(
        id=row["id"],
        name=row["name"],
        description=row["description"] or "",
        created_at=row["created_at"],
        deleted_at=row["deleted_at"],
    )


def card_from_row(row) -> Card:
    cloze_data = None
    if row["cloze_data"]:
        raw = json.loads(row["cloze_data"])
        cloze_data = ClozeData(
            original=raw["original"],
            fields=[ClozeField(**f) for f in raw["fields"]],
        )
    return Card(
        id=row["id"],
        deck_id=row["deck_id"],
        front=row["front"],
        back=row["back"],
        card_type=row["card_type"],
        cloze_data=cloze_data,
        position=row["position"],
        created_at=row["created_at"],
        deleted_at=row["deleted_at"],
    )


def insert_deck(conn, name: str, description: str = "") -> int:
    cursor = conn.execute(
        "INSERT INTO decks (name, description, created_at) VALUES (?, ?, ?)",
        (name, description, datetime.now().isoformat()),
    )
    return cursor.lastrowid


def create_deck(db_path: str, name: str, description: str = "") -> int:
    conn = get_connection(db_path)
    deck_id = insert_deck(conn, name, description)
    conn.commit()
    conn.close()
    logger.info("Created deck %r (id=%s)", name, deck_id)
    return deck_id


def get_deck(db_path: str, deck_id: int) -> Deck | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM decks WHERE id = ?", (deck_id,)).fetchone()
    conn.close()
    return deck_from_row(row) if row else None


def get_active_decks(db_path: str) -> list[Deck]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM decks WHERE deleted_at IS NULL ORDER BY created_at DESC, id DESC"
    ).fetchall()
    conn.close()
    return [deck_from_row(r) for r in rows]


def soft_delete_deck(db_path: str, deck_id: int) -> None:
    """Mark a deck and its cards deleted. Study records are kept."""
    now = datetime.now().isoformat()
    conn = get_connection(db_path)
    conn.execute("UPDATE decks SET deleted_at = ? WHERE id = ?", (now, deck_id))
    conn.execute(
        "UPDATE cards SET deleted_at = ? WHERE deck_id = ? AND deleted_at IS NULL",
        (now, deck_id),
    )
    conn.commit()
    conn.close()


def get_deleted_decks(db_path: str) -> list[Deck]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM decks WHERE deleted_at IS NOT NULL ORDER BY deleted_at DESC, id DESC"
    ).fetchall()
    conn.close()
    return [deck_from_row(r) for r in rows]


def update_deck(
    db_path: str, deck_id: int, name: str | None = None, description: str | None = None
) -> Deck | None:
    """Change a deck's name and/or description. Returns the updated deck."""
    if name is not None and not name.strip():
        raise ValueError("Deck name is required")
    conn = get_connection(db_path)
    if name is not None:
        conn.execute("UPDATE decks SET name = ? WHERE id = ?", (name.strip(), deck_id))
    if description is not None:
        conn.execute("UPDATE decks SET description = ? WHERE id = ?", (description, deck_id))
    conn.commit()
    conn.close()
    return get_deck(db_path, deck_id)


def restore_deck(db_path: str, deck_id: int) -> None:
    """Undo soft_delete_deck.

    Cards deleted together with the deck come back; cards deleted on their
    own before that stay deleted.
    """
    conn = get_connection(db_path)
    row = conn.execute("SELECT deleted_at FROM decks WHERE id = ?", (deck_id,)).fetchone()
    if row is None or row["deleted_at"] is None:
        conn.close()
        return
    conn.execute(
        "UPDATE cards SET deleted_at = NULL WHERE deck_id = ? AND deleted_at = ?",
        (deck_id, row["deleted_at"]),
    )
    conn.execute("UPDATE decks SET deleted_at = NULL WHERE id = ?", (deck_id,))
    conn.commit()
    conn.close()
    logger.info("Restored deck %s", deck_id)


def _next_position(conn, deck_id: int) -> int:
    row = conn.execute(
        "SELECT MAX(position) FROM cards WHERE deck_id = ?", (deck_id,)
    ).fetchone()
    return 0 if row[0] is None else row[0] + 1


def _parse_cloze_text(text: str) -> ClozeData:
    validation = validate_cloze(text)
    if not validation.valid:
        raise InvalidClozeText(validation.errors)
    cloze_data = parse_cloze(text)
    if not cloze_data.fields:
        raise InvalidClozeText(["No cloze fields found - use {{c1::answer}} format"])
    return cloze_data


def insert_card(
    conn, deck_id: int, front: str, back: str, position: int | None = None
) -> int:
    if position is None:
        position = _next_position(conn, deck_id)
    cursor = conn.execute(
        """INSERT INTO cards (deck_id, front, back, card_type, position, created_at)
        VALUES (?, ?, ?, 'basic', ?, ?)""",
        (deck_id, front, back, position, datetime.now().isoformat()),
    )
    return cursor.lastrowid


def insert_cloze_card(
    conn, deck_id: int, text: str, back: str = "", position: int | None = None
) -> int:
    cloze_data = _parse_cloze_text(text)
    if position is None:
        position = _next_position(conn, deck_id)
    cursor = conn.execute(
        """INSERT INTO cards (deck_id, front, back, card_type, cloze_data, position, created_at)
        VALUES (?, ?, ?, 'cloze', ?, ?, ?)""",
        (deck_id, text, back, json.dumps(asdict(cloze_data)), position, datetime.now().isoformat()),
    )
    return cursor.lastrowid


def add_card(
    db_path: str, deck_id: int, front: str, back: str, position: int | None = None
) -> int:
    conn = get_connection(db_path)
    card_id = insert_card(conn, deck_id, front, back, position)
    conn.commit()
    conn.close()
    return card_id


def add_cloze_card(
    db_path: str, deck_id: int, text: str, back: str = "", position: int | None = None
) -> int:
    """Store a cloze card. Raises InvalidClozeText if the markup is broken."""
    conn = get_connection(db_path)
    try:
        card_id = insert_cloze_card(conn, deck_id, text, back, position)
        conn.commit()
    finally:
        conn.close()
    return card_id


def get_card(db_path: str, card_id: int) -> Card | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM cards WHERE id = ?", (card_id,)).fetchone()
    conn.close()
    return card_from_row(row) if row else None


def get_cards_for_deck(db_path: str, deck_id: int) -> list[Card]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM cards WHERE deck_id = ? AND deleted_at IS NULL ORDER BY position, id",
        (deck_id,),
    ).fetchall()
    conn.close()
    return [card_from_row(r) for r in rows]


def soft_delete_card(db_path: str, card_id: int) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE cards SET deleted_at = ? WHERE id = ?",
        (datetime.now().isoformat(), card_id),
    )
    conn.commit()
    conn.close()


def update_card(
    db_path: str,
    card_id: int,
    front: str | None = None,
    back: str | None = None,
    position: int | None = None,
) -> Card | None:
    """Edit a card in place. New cloze text is validated and re-parsed.

    Raises InvalidClozeText for broken cloze markup; nothing is written then.
    """
    card = get_card(db_path, card_id)
    if card is None:
        return None
    updates = {}
    if front is not None:
        updates["front"] = front
        if card.card_type == "cloze":
            updates["cloze_data"] = json.dumps(asdict(_parse_cloze_text(front)))
    if back is not None:
        updates["back"] = back
    if position is not None:
        updates["position"] = position
    if not updates:
        return card

    assignments = ", ".join(f"{column} = ?" for column in updates)
    conn = get_connection(db_path)
    conn.execute(
        f"UPDATE cards SET {assignments} WHERE id = ?",
        (*updates.values(), card_id),
    )
    conn.commit()
    conn.close()
    return get_card(db_path, card_id)
