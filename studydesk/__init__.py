"""StudyDesk - AI study planner, notes and flashcards backend."""

__version__ = "1.0.0"
