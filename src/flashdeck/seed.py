"""Seed the database with a sample deck on first run."""
import json
from pathlib import Path

from flashdeck.db import get_connection
from flashdeck.decks import add_card, add_cloze_card, create_deck

CONTENT_DIR = Path(__file__).parent / "content"


def is_seeded(db_path: str) -> bool:
    """Check whether the database already holds any deck, deleted or not."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM decks").fetchone()[0]
    conn.close()
    return count > 0


def seed_sample_deck(db_path: str) -> int:
    """Insert the sample deck from sample_deck.json and return its id."""
    data = json.loads((CONTENT_DIR / "sample_deck.json").read_text(encoding="utf-8"))
    deck_id = create_deck(db_path, data["deck"]["name"], data["deck"]["description"])
    for card in data["cards"]:
        if card.get("card_type") == "cloze":
            add_cloze_card(db_path, deck_id, card["front"], card["back"], card["position"])
        else:
            add_card(db_path, deck_id, card["front"], card["back"], card["position"])
    return deck_id


def seed_all(db_path: str) -> None:
    if is_seeded(db_path):
        return
    seed_sample_deck(db_path)
