"""SQLAlchemy models for StudyDesk.

Five tables back the app:
- study_plans: AI-generated weekly plans with progress tracking
- notes: markdown notes from PDF (mock), local files or the AI
- flashcard_sets / flashcards: generated card batches with known/unknown status
- chat_history: tutor conversation messages

user_id columns exist for a future multi-user mode and are always NULL today.
"""

from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    DateTime,
    JSON,
    ForeignKey,
    Text,
    Boolean,
    Index,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class StudyPlan(Base):
    """A study plan broken into weekly phases.

    The plan column holds the generated week entries as a JSON list:
    [{"week": 1, "topic": str, "hours": number, "tasks": [str, ...]}, ...]
    """

    __tablename__ = "study_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=True)

    course_name = Column(String(255), nullable=False)
    deadline = Column(DateTime, nullable=False)
    hours_per_day = Column(Integer, nullable=False)

    # Derived once at creation, never recomputed
    days_until = Column(Integer, nullable=False)
    total_hours = Column(Integer, nullable=False)

    plan = Column(JSON, nullable=False, default=list)

    # What was asked of the generator vs. what it produced
    requested_weeks = Column(Integer, nullable=True)
    planned_hours = Column(Float, nullable=True)

    progress = Column(Integer, default=0)  # 0-100
    completed = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class Note(Base):
    """Markdown study note."""

    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=True)

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    source = Column(String(20), nullable=False)  # pdf, local_file, ai
    file_name = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class FlashcardSet(Base):
    """A batch of flashcards generated for one topic.

    known_count mirrors the number of owned cards marked known and is
    rewritten on every card status change.
    """

    __tablename__ = "flashcard_sets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=True)

    topic = Column(String(255), nullable=False)
    total_count = Column(Integer, nullable=False, default=0)
    requested_count = Column(Integer, nullable=True)
    known_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    cards = relationship(
        "Flashcard",
        back_populates="flashcard_set",
        cascade="all, delete-orphan",
        order_by="Flashcard.id",
    )


class Flashcard(Base):
    """Single question/answer card owned by a FlashcardSet."""

    __tablename__ = "flashcards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    set_id = Column(Integer, ForeignKey("flashcard_sets.id"), nullable=False, index=True)

    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    known = Column(Boolean, nullable=False, default=False)

    flashcard_set = relationship("FlashcardSet", back_populates="cards")

    __table_args__ = (Index("ix_flashcard_set_known", "set_id", "known"),)


class ChatMessage(Base):
    """Individual message in a tutor conversation."""

    __tablename__ = "chat_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), nullable=True)
    conversation_id = Column(String(50), nullable=False, default="default", index=True)

    role = Column(String(20), nullable=False)  # user, assistant
    content = Column(Text, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_chat_conversation_created", "conversation_id", "created_at"),
    )
