from .deck_store import DeckStore
from .quiz import QuizSession
from .scheduler import grade_review

__all__ = ["DeckStore", "QuizSession", "grade_review"]
