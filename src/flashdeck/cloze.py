"""Cloze deletion parsing, rendering and validation.

Cloze text marks blanks as ``{{c1::answer}}`` or ``{{c1::answer::hint}}``.
Each numbered blank is studied as its own item.
"""
import re
from dataclasses import dataclass, field

from flashdeck.models import ClozeData, ClozeField

CLOZE_PATTERN = re.compile(r"\{\{c(\d+)::([^}|]+?)(?:::(.+?))?\}\}")
BLANK = "[...]"


@dataclass
class ClozeValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)


def parse_cloze(text: str) -> ClozeData:
    """Extract every cloze field from text, in order of appearance.

    >>> [f.answer for f in parse_cloze("{{c1::Paris}} is in {{c2::France}}").fields]
    ['Paris', 'France']
    """
    fields = [
        ClozeField(
            id=f"c{number}",
            answer=answer.strip(),
            hint=hint.strip() if hint else None,
        )
        for number, answer, hint in CLOZE_PATTERN.findall(text)
    ]
    return ClozeData(original=text, fields=fields)


def _field_pattern(field_id: str) -> re.Pattern:
    return re.compile(r"\{\{" + re.escape(field_id) + r"::([^}|]+?)(?:::(.+?))?\}\}")


def _find_field(data: ClozeData, field_id: str) -> ClozeField | None:
    return next((f for f in data.fields if f.id == field_id), None)


def _reveal(match: re.Match) -> str:
    return match.group(2)


def render_cloze_front(data: ClozeData, field_id: str) -> str:
    """Blank out one field and show the answers of all the others.

    An unknown field id blanks every cloze.
    """
    cloze_field = _find_field(data, field_id)
    if cloze_field is None:
        return CLOZE_PATTERN.sub(BLANK, data.original)
    result = _field_pattern(cloze_field.id).sub(BLANK, data.original)
    return CLOZE_PATTERN.sub(_reveal, result)


def render_cloze_back(data: ClozeData, field_id: str) -> str:
    """Highlight one field's answer in bold and reveal all the others."""
    cloze_field = _find_field(data, field_id)
    if cloze_field is None:
        return CLOZE_PATTERN.sub(_reveal, data.original)
    highlighted = f"**{cloze_field.answer}**"
    result = _field_pattern(cloze_field.id).sub(lambda _: highlighted, data.original)
    return CLOZE_PATTERN.sub(_reveal, result)


def get_cloze_field_count(text: str) -> int:
    return len(re.findall(r"\{\{c\d+::", text))


def validate_cloze(text: str) -> ClozeValidation:
    errors = []

    if text.count("{{") != text.count("}}"):
        errors.append("Unbalanced braces: make sure each {{ has a matching }}")

    invalid = re.findall(r"\{\{c[^0-9]", text)
    if invalid:
        errors.append(f"Invalid cloze format: {', '.join(invalid)} - use {{{{c1::answer}}}} format")

    empty = re.findall(r"\{\{c\d+::\}\}", text)
    if empty:
        errors.append(f"Empty cloze fields found: {', '.join(empty)}")

    ids = [int(n) for n in re.findall(r"\{\{c(\d+)::", text)]
    if len(ids) != len(set(ids)):
        errors.append("Duplicate cloze IDs detected - each cloze must have a unique ID")

    return ClozeValidation(valid=not errors, errors=errors)


def generate_cloze_cards(data: ClozeData) -> list[str]:
    return [f.id for f in data.fields]


def get_cloze_field_label(field_id: str) -> str:
    return f"Cloze {int(field_id.lstrip('c'))}"
