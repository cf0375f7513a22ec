# tests/test_decks.py
import pytest

from flashdeck.db import get_connection, init_db
from flashdeck.decks import (
    InvalidClozeText, add_card, add_cloze_card, create_deck, get_active_decks,
    get_card, get_cards_for_deck, get_deck, get_deleted_decks, restore_deck,
    soft_delete_card, soft_delete_deck, update_card, update_deck,
)


def test_create_and_get_deck(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Spanish", "Verbs")
    deck = get_deck(tmp_db, deck_id)
    assert deck.name == "Spanish"
    assert deck.description == "Verbs"
    assert deck.created_at is not None


def test_get_missing_deck(tmp_db):
    init_db(tmp_db)
    assert get_deck(tmp_db, 99) is None


def test_add_card_assigns_positions(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Spanish")
    add_card(tmp_db, deck_id, "hola", "hello")
    add_card(tmp_db, deck_id, "adios", "bye")
    cards = get_cards_for_deck(tmp_db, deck_id)
    assert [c.front for c in cards] == ["hola", "adios"]
    assert [c.position for c in cards] == [0, 1]
    assert all(c.card_type == "basic" for c in cards)


def test_add_cloze_card_stores_parsed_fields(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Geo")
    card_id = add_cloze_card(tmp_db, deck_id, "{{c1::Paris}} is in {{c2::France::country}}")
    card = get_card(tmp_db, card_id)
    assert card.card_type == "cloze"
    assert [f.id for f in card.cloze_data.fields] == ["c1", "c2"]
    assert card.cloze_data.fields[1].hint == "country"
    assert card.front == card.cloze_data.original


def test_add_cloze_card_rejects_invalid_text(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Geo")
    with pytest.raises(InvalidClozeText) as exc:
        add_cloze_card(tmp_db, deck_id, "{{c1::a}}{{c1::b}}")
    assert any("Duplicate" in e for e in exc.value.errors)
    assert get_cards_for_deck(tmp_db, deck_id) == []


def test_add_cloze_card_rejects_text_without_fields(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Geo")
    with pytest.raises(InvalidClozeText):
        add_cloze_card(tmp_db, deck_id, "no blanks here")


def test_soft_delete_card_hides_it(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Spanish")
    card_id = add_card(tmp_db, deck_id, "hola", "hello")
    add_card(tmp_db, deck_id, "adios", "bye")
    soft_delete_card(tmp_db, card_id)
    assert [c.front for c in get_cards_for_deck(tmp_db, deck_id)] == ["adios"]
    assert get_card(tmp_db, card_id).deleted_at is not None


def test_soft_delete_deck(tmp_db):
    init_db(tmp_db)
    keep = create_deck(tmp_db, "Keep")
    drop = create_deck(tmp_db, "Drop")
    add_card(tmp_db, drop, "q", "a")
    soft_delete_deck(tmp_db, drop)
    assert [d.id for d in get_active_decks(tmp_db)] == [keep]
    assert get_cards_for_deck(tmp_db, drop) == []


def test_update_deck(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Spanish", "Verbs")
    deck = update_deck(tmp_db, deck_id, name="Spanish I")
    assert deck.name == "Spanish I"
    assert deck.description == "Verbs"
    deck = update_deck(tmp_db, deck_id, description="Nouns")
    assert deck.name == "Spanish I"
    assert deck.description == "Nouns"


def test_update_deck_requires_name(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Spanish")
    with pytest.raises(ValueError):
        update_deck(tmp_db, deck_id, name="  ")
    assert get_deck(tmp_db, deck_id).name == "Spanish"


def test_restore_deck_brings_back_its_cards(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Spanish")
    add_card(tmp_db, deck_id, "hola", "hello")
    removed_earlier = add_card(tmp_db, deck_id, "adios", "bye")
    conn = get_connection(tmp_db)
    conn.execute(
        "UPDATE cards SET deleted_at = ? WHERE id = ?", ("2026-01-01T00:00:00", removed_earlier)
    )
    conn.commit()
    conn.close()
    soft_delete_deck(tmp_db, deck_id)
    assert [d.id for d in get_deleted_decks(tmp_db)] == [deck_id]

    restore_deck(tmp_db, deck_id)

    assert get_deck(tmp_db, deck_id).deleted_at is None
    assert get_deleted_decks(tmp_db) == []
    assert [c.front for c in get_cards_for_deck(tmp_db, deck_id)] == ["hola"]


def test_restore_active_deck_is_noop(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Spanish")
    restore_deck(tmp_db, deck_id)
    restore_deck(tmp_db, 99)
    assert get_deck(tmp_db, deck_id).deleted_at is None


def test_update_basic_card(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Spanish")
    card_id = add_card(tmp_db, deck_id, "hola", "hi")
    card = update_card(tmp_db, card_id, back="hello", position=5)
    assert card.front == "hola"
    assert card.back == "hello"
    assert card.position == 5
    assert card.cloze_data is None


def test_update_cloze_card_reparses_fields(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Geo")
    card_id = add_cloze_card(tmp_db, deck_id, "{{c1::Paris}} is in France")
    card = update_card(tmp_db, card_id, front="{{c1::Paris}} is in {{c2::France::country}}")
    assert card.front == "{{c1::Paris}} is in {{c2::France::country}}"
    assert [f.id for f in card.cloze_data.fields] == ["c1", "c2"]
    assert card.cloze_data.fields[1].hint == "country"


def test_update_cloze_card_rejects_broken_markup(tmp_db):
    init_db(tmp_db)
    deck_id = create_deck(tmp_db, "Geo")
    card_id = add_cloze_card(tmp_db, deck_id, "{{c1::Paris}} is in France")
    with pytest.raises(InvalidClozeText):
        update_card(tmp_db, card_id, front="{{c1::Paris} is in France")
    card = get_card(tmp_db, card_id)
    assert card.front == "{{c1::Paris}} is in France"
    assert len(card.cloze_data.fields) == 1


def test_update_missing_card(tmp_db):
    init_db(tmp_db)
    assert update_card(tmp_db, 42, front="x") is None
