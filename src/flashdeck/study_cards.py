"""Expand stored cards into study items."""
from flashdeck.models import Card, StudyCard


def expand(card: Card) -> list[StudyCard]:
    """Turn one stored card into the items studied from it.

    A basic card gives a single item. A cloze card gives one item per
    field, in field order; front and back are left empty because they are
    rendered from the cloze data at display time. Every item keeps the
    stored card id in ``original_card_id``.
    """
    if card.card_type == "cloze" and card.cloze_data is not None:
        total = len(card.cloze_data.fields)
        return [
            StudyCard(
                id=f"{card.id}-{cloze_field.id}",
                original_card_id=card.id,
                kind="cloze",
                cloze_data=card.cloze_data,
                cloze_field_id=cloze_field.id,
                cloze_field_index=index,
                cloze_total_fields=total,
            )
            for index, cloze_field in enumerate(card.cloze_data.fields)
        ]

    return [
        StudyCard(
            id=str(card.id),
            original_card_id=card.id,
            kind="basic",
            front=card.front,
            back=card.back,
        )
    ]


def expand_all(cards: list[Card]) -> list[StudyCard]:
    study_cards = []
    for card in cards:
        study_cards.extend(expand(card))
    return study_cards


def study_card_label(study_card: StudyCard) -> str:
    if study_card.kind != "cloze":
        return ""
    number = (study_card.cloze_field_index or 0) + 1
    total = study_card.cloze_total_fields or 1
    return f"Cloze {number}/{total}"
