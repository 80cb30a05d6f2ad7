"""Deck engine for a personal vocabulary-flashcard app.

Owns the card collection, its derived views, spaced-repetition scheduling,
quiz session building and the JSON persistence of the collection.
"""

__version__ = "0.1.0"
