"""Deck export and import (JSON, CSV, YAML)."""
import csv
import io
import json
import logging
from pathlib import Path

from flashdeck.db import get_connection
from flashdeck.decks import InvalidClozeText, insert_card, insert_cloze_card, insert_deck
from flashdeck.models import Card, Deck

logger = logging.getLogger(__name__)

DEFAULT_DECK_NAME = "Imported Deck"


class ImportFormatError(ValueError):
    """Import data that cannot be turned into a deck."""


def export_deck(deck: Deck, cards: list[Card]) -> str:
    """Serialize a deck to JSON, without database ids or timestamps."""
    data = {
        "deck": {"name": deck.name, "description": deck.description},
        "cards": [_export_card(c) for c in sorted(cards, key=lambda c: c.position)],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def _export_card(card: Card) -> dict:
    exported = {"front": card.front, "back": card.back, "position": card.position}
    if card.card_type != "basic":
        exported["card_type"] = card.card_type
    return exported


def export_deck_to_csv(deck: Deck, cards: list[Card]) -> str:
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(["Front", "Back", "Position"])
    for card in sorted(cards, key=lambda c: c.position):
        writer.writerow([card.front, card.back, card.position])
    return out.getvalue()


def _validate(data) -> dict:
    if not isinstance(data, dict) or "deck" not in data or "cards" not in data:
        raise ImportFormatError("Invalid deck format")
    deck = data["deck"]
    if not isinstance(deck, dict) or not isinstance(deck.get("name"), str) or not deck["name"].strip():
        raise ImportFormatError("Deck name is required")
    if deck.get("description") is not None and not isinstance(deck["description"], str):
        raise ImportFormatError("Deck description must be text")
    if not isinstance(data["cards"], list):
        raise ImportFormatError("Cards must be an array")
    for index, card in enumerate(data["cards"]):
        if not isinstance(card, dict) or not isinstance(card.get("front"), str):
            raise ImportFormatError(f"Card {index + 1}: front must be text")
        if "back" in card and not isinstance(card["back"], str):
            raise ImportFormatError(f"Card {index + 1}: back must be text")
        position = card.get("position")
        if position is not None and (isinstance(position, bool) or not isinstance(position, int)):
            raise ImportFormatError(f"Card {index + 1}: position must be a whole number")
    return data


def parse_import_data(text: str) -> dict:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Failed to parse import data: {e}") from e
    return _validate(data)


def parse_yaml_data(text: str) -> dict:
    import yaml
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ImportFormatError(f"Failed to parse import data: {e}") from e
    return _validate(data)


def _find_column(header: list[str], name: str) -> int:
    for i, column in enumerate(header):
        if name in column.strip().lower():
            return i
    return -1


def parse_csv_data(text: str, deck_name: str | None = None) -> dict:
    rows = [r for r in csv.reader(io.StringIO(text.strip())) if r]
    if len(rows) < 2:
        raise ImportFormatError("CSV file must have at least a header and one data row")
    header = rows[0]
    front_idx = _find_column(header, "front")
    back_idx = _find_column(header, "back")
    position_idx = _find_column(header, "position")
    if front_idx == -1 or back_idx == -1:
        raise ImportFormatError('CSV must contain "Front" and "Back" columns')

    def cell(row, idx):
        return row[idx] if 0 <= idx < len(row) else ""

    cards = []
    for index, row in enumerate(rows[1:]):
        position = cell(row, position_idx)
        cards.append({
            "front": cell(row, front_idx),
            "back": cell(row, back_idx),
            "position": int(position) if position.strip().isdigit() else index,
        })
    return {"deck": {"name": deck_name or DEFAULT_DECK_NAME, "description": ""}, "cards": cards}


def read_import_file(file_path: str) -> dict:
    path = Path(file_path)
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")

    if suffix == ".csv":
        return parse_csv_data(text, deck_name=path.stem)
    elif suffix in (".yaml", ".yml"):
        return parse_yaml_data(text)
    else:
        return parse_import_data(text)


def preview_import_data(data: dict) -> dict:
    return {
        "deck_name": data["deck"]["name"],
        "card_count": len(data["cards"]),
        "sample_cards": [
            {"front": str(c.get("front", ""))[:50], "back": str(c.get("back", ""))[:50]}
            for c in data["cards"][:3]
        ],
    }


def import_deck(db_path: str, file_path: str) -> dict:
    """Create a deck from an export file.

    Cloze cards with broken markup are skipped. The deck and its cards are
    written in one transaction, so a failure leaves no partial deck behind.
    """
    data = read_import_file(file_path)
    deck = data["deck"]
    imported = skipped = 0
    conn = get_connection(db_path)
    try:
        deck_id = insert_deck(conn, deck["name"], deck.get("description") or "")
        for index, card in enumerate(data["cards"]):
            position = card.get("position", index)
            if card.get("card_type") == "cloze":
                try:
                    insert_cloze_card(conn, deck_id, card["front"], card.get("back", ""), position)
                except InvalidClozeText as e:
                    logger.warning("Skipping cloze card %d: %s", index, e)
                    skipped += 1
                    continue
            else:
                insert_card(conn, deck_id, card["front"], card.get("back", ""), position)
            imported += 1
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    logger.info("Imported %d cards into deck %s from %s", imported, deck_id, file_path)
    return {
        "deck_id": deck_id,
        "name": deck["name"],
        "imported": imported,
        "skipped": skipped,
    }
