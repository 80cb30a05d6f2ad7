from .card import Card, CardDecodeError
from .state import ALL_CATEGORY, FAVORITES_CATEGORY, QuizScore, StudyReport

__all__ = ["Card", "CardDecodeError", "ALL_CATEGORY", "FAVORITES_CATEGORY", "QuizScore", "StudyReport"]
