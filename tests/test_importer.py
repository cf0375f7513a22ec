# tests/test_importer.py
import json
import sqlite3
from unittest.mock import patch

import pytest

from flashdeck.db import get_connection, init_db
from flashdeck.decks import (
    add_card, add_cloze_card, create_deck, get_active_decks, get_cards_for_deck, get_deck,
    insert_card,
)
from flashdeck.importer import (
    ImportFormatError, export_deck, export_deck_to_csv, import_deck, parse_csv_data,
    parse_import_data, parse_yaml_data, preview_import_data, read_import_file,
)


@pytest.fixture
def filled_deck(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Geo", "Capitals")
    add_card(tmp_db, deck_id, "Capital of Spain?", "Madrid")
    add_cloze_card(tmp_db, deck_id, "{{c1::Paris}} is in {{c2::France}}")
    return deck_id


def test_export_deck_json(tmp_db, filled_deck):
    text = export_deck(get_deck(tmp_db, filled_deck), get_cards_for_deck(tmp_db, filled_deck))
    data = json.loads(text)
    assert data["deck"] == {"name": "Geo", "description": "Capitals"}
    assert data["cards"][0] == {"front": "Capital of Spain?", "back": "Madrid", "position": 0}
    assert data["cards"][1]["card_type"] == "cloze"
    assert "id" not in data["cards"][0]


def test_export_deck_csv(tmp_db, filled_deck):
    text = export_deck_to_csv(get_deck(tmp_db, filled_deck), get_cards_for_deck(tmp_db, filled_deck))
    lines = text.splitlines()
    assert lines[0] == "Front,Back,Position"
    assert lines[1] == "Capital of Spain?,Madrid,0"
    assert len(lines) == 3


def test_parse_import_data_valid():
    data = parse_import_data('{"deck": {"name": "X"}, "cards": [{"front": "a", "back": "b"}]}')
    assert data["deck"]["name"] == "X"


@pytest.mark.parametrize("text,message", [
    ("not json", "Failed to parse"),
    ('{"cards": []}', "Invalid deck format"),
    ('{"deck": {}, "cards": []}', "Deck name is required"),
    ('{"deck": {"name": "X"}, "cards": {}}', "Cards must be an array"),
    ('{"deck": {"name": "X"}, "cards": [{"back": "b"}]}', "Card 1: front must be text"),
])
def test_parse_import_data_errors(text, message):
    with pytest.raises(ImportFormatError, match=message):
        parse_import_data(text)


def test_parse_yaml_data():
    text = """
deck:
  name: Verbs
cards:
  - front: ser
    back: to be
"""
    data = parse_yaml_data(text)
    assert data["deck"]["name"] == "Verbs"
    assert data["cards"][0]["back"] == "to be"


def test_parse_yaml_data_error():
    with pytest.raises(ImportFormatError):
        parse_yaml_data("deck: [unclosed")


def test_parse_csv_data():
    data = parse_csv_data("Front,Back\nhola,hello\nadios,bye\n", deck_name="Spanish")
    assert data["deck"]["name"] == "Spanish"
    assert [c["front"] for c in data["cards"]] == ["hola", "adios"]
    assert [c["position"] for c in data["cards"]] == [0, 1]


def test_parse_csv_data_needs_columns():
    with pytest.raises(ImportFormatError, match="Front"):
        parse_csv_data("Question,Answer\na,b\n")
    with pytest.raises(ImportFormatError, match="at least"):
        parse_csv_data("Front,Back\n")


def test_parse_csv_default_deck_name():
    assert parse_csv_data("front,back\na,b\n")["deck"]["name"] == "Imported Deck"


def test_read_import_file_csv_uses_stem(tmp_path):
    path = tmp_path / "spanish_verbs.csv"
    path.write_text("Front,Back\nser,to be\n", encoding="utf-8")
    assert read_import_file(str(path))["deck"]["name"] == "spanish_verbs"


def test_preview_import_data():
    data = {
        "deck": {"name": "Big"},
        "cards": [{"front": "x" * 80, "back": "y"} for _ in range(5)],
    }
    preview = preview_import_data(data)
    assert preview["deck_name"] == "Big"
    assert preview["card_count"] == 5
    assert len(preview["sample_cards"]) == 3
    assert len(preview["sample_cards"][0]["front"]) == 50


def test_import_exported_deck(tmp_db, filled_deck, tmp_path):
    path = tmp_path / "geo.json"
    path.write_text(
        export_deck(get_deck(tmp_db, filled_deck), get_cards_for_deck(tmp_db, filled_deck)),
        encoding="utf-8",
    )
    result = import_deck(tmp_db, str(path))
    assert result["name"] == "Geo"
    assert result["imported"] == 2
    assert result["skipped"] == 0
    cards = get_cards_for_deck(tmp_db, result["deck_id"])
    assert cards[1].card_type == "cloze"
    assert len(cards[1].cloze_data.fields) == 2


def test_import_skips_broken_cloze(tmp_db, tmp_path):
    init_db(tmp_db)
    path = tmp_path / "deck.json"
    path.write_text(json.dumps({
        "deck": {"name": "Mixed"},
        "cards": [
            {"front": "{{c1::ok}}", "card_type": "cloze"},
            {"front": "{{c1::broken}", "card_type": "cloze"},
            {"front": "plain", "back": "card"},
        ],
    }), encoding="utf-8")
    result = import_deck(tmp_db, str(path))
    assert result["imported"] == 2
    assert result["skipped"] == 1
    assert len(get_cards_for_deck(tmp_db, result["deck_id"])) == 2


def test_import_csv_file(tmp_db, tmp_path):
    init_db(tmp_db)
    path = tmp_path / "words.csv"
    path.write_text("Front,Back,Position\nuno,one,1\ndos,two,0\n", encoding="utf-8")
    result = import_deck(tmp_db, str(path))
    cards = get_cards_for_deck(tmp_db, result["deck_id"])
    assert result["name"] == "words"
    assert [c.front for c in cards] == ["dos", "uno"]


@pytest.mark.parametrize("card,message", [
    ({"front": "c", "back": None}, "Card 2: back must be text"),
    ({"front": None, "back": "d"}, "Card 2: front must be text"),
    ({"front": 42, "back": "d"}, "Card 2: front must be text"),
    ({"front": "c", "back": "d", "position": "first"}, "Card 2: position"),
])
def test_import_rejects_bad_card_values_before_writing(tmp_db, tmp_path, card, message):
    init_db(tmp_db)
    path = tmp_path / "deck.json"
    path.write_text(json.dumps({
        "deck": {"name": "X"},
        "cards": [{"front": "a", "back": "b"}, card],
    }), encoding="utf-8")
    with pytest.raises(ImportFormatError, match=message):
        import_deck(tmp_db, str(path))
    assert get_active_decks(tmp_db) == []


def test_import_failure_leaves_no_partial_deck(tmp_db, tmp_path):
    init_db(tmp_db)
    path = tmp_path / "deck.json"
    path.write_text(json.dumps({
        "deck": {"name": "X"},
        "cards": [{"front": "a", "back": "b"}, {"front": "c", "back": "d"}],
    }), encoding="utf-8")
    calls = []

    def fail_on_second(conn, *args):
        calls.append(args)
        if len(calls) == 2:
            raise sqlite3.OperationalError("disk I/O error")
        return insert_card(conn, *args)

    with patch("flashdeck.importer.insert_card", side_effect=fail_on_second):
        with pytest.raises(sqlite3.OperationalError):
            import_deck(tmp_db, str(path))

    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM decks").fetchone()[0] == 0
    assert conn.execute("SELECT COUNT(*) FROM cards").fetchone()[0] == 0
    conn.close()
