"""Flashcard decks with SM-2 and FSRS spaced-repetition scheduling."""

__version__ = "0.1.0"
