"""Database package for StudyDesk."""

from .models import (
    Base,
    StudyPlan,
    Note,
    FlashcardSet,
    Flashcard,
    ChatMessage,
)
from .connection import (
    engine,
    init_database,
    check_database,
    get_db_dependency,
    SessionLocal,
)

__all__ = [
    "Base",
    "StudyPlan",
    "Note",
    "FlashcardSet",
    "Flashcard",
    "ChatMessage",
    "engine",
    "init_database",
    "check_database",
    "get_db_dependency",
    "SessionLocal",
]
