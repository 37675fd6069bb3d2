"""Flashcard service for StudyDesk.

Handles flashcard set generation, known/unknown tracking and cleanup.
"""

import logging
from typing import Optional

from pydantic import BaseModel, ValidationError as ShapeError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..database.models import Flashcard, FlashcardSet
from ..errors import GenerationError, NotFoundError, ValidationError
from . import generation

logger = logging.getLogger(__name__)


DEFAULT_TOPIC = "General Study"
DEFAULT_CARD_COUNT = 5

FLASHCARDS_PROMPT = """Generate a set of {count} flashcards for the topic: "{topic}".

The output MUST be a JSON array of objects.
Each object in the array MUST have the following structure:
{{
  "question": [string, The flashcard question],
  "answer": [string, The detailed answer to the question]
}}"""


class GeneratedCard(BaseModel):
    question: str
    answer: str


def validate_cards(items: list[dict]) -> list[GeneratedCard]:
    """Check generated items against the question/answer shape."""
    try:
        return [GeneratedCard(**item) for item in items]
    except (ShapeError, TypeError) as e:
        raise GenerationError(f"Generated flashcards have an unexpected shape: {e}") from e


async def generate_flashcard_set(
    db: Session,
    topic: Optional[str] = None,
    count: Optional[int] = None,
) -> FlashcardSet:
    """Generate a flashcard set and store it with all its cards.

    total_count is the number of cards the model actually returned, which
    may differ from the requested count.
    """
    topic = topic or DEFAULT_TOPIC
    count = count or DEFAULT_CARD_COUNT
    if count < 0:
        raise ValidationError("count must be a positive integer")

    prompt = FLASHCARDS_PROMPT.format(count=count, topic=topic)
    text = await generation.generate(prompt, expect_structured=True)
    cards = validate_cards(generation.parse_structured(text))

    if len(cards) != count:
        logger.warning(
            f"Requested {count} flashcards for '{topic}', model returned {len(cards)}"
        )

    flashcard_set = FlashcardSet(
        topic=topic,
        total_count=len(cards),
        requested_count=count,
        known_count=0,
    )
    flashcard_set.cards = [
        Flashcard(question=card.question, answer=card.answer, known=False)
        for card in cards
    ]

    # Set and cards go in with a single commit
    db.add(flashcard_set)
    db.commit()
    db.refresh(flashcard_set)

    logger.info(f"Created flashcard set {flashcard_set.id} with {len(cards)} cards")
    return flashcard_set


def get_flashcard_set(db: Session, set_id: int) -> Optional[FlashcardSet]:
    return db.query(FlashcardSet).filter(FlashcardSet.id == set_id).first()


def list_flashcard_sets(db: Session) -> list[FlashcardSet]:
    """All sets, newest first. Cards load per set on access."""
    return db.query(FlashcardSet).order_by(
        FlashcardSet.created_at.desc(), FlashcardSet.id.desc()
    ).all()


def update_card_status(
    db: Session,
    set_id: int,
    card_id: int,
    known: bool,
) -> FlashcardSet:
    """Mark one card known/unknown and refresh the set's known_count.

    The card write and the recount share one transaction. The recount is
    a single UPDATE with a COUNT subquery.
    """
    flashcard_set = get_flashcard_set(db, set_id)
    if not flashcard_set:
        raise NotFoundError("Flashcard set not found")

    # Both ids guard the write so a card from another set is never touched
    db.query(Flashcard).filter(
        Flashcard.id == card_id,
        Flashcard.set_id == set_id,
    ).update({Flashcard.known: known}, synchronize_session=False)

    known_cards = (
        select(func.count(Flashcard.id))
        .where(Flashcard.set_id == set_id, Flashcard.known.is_(True))
        .scalar_subquery()
    )
    db.query(FlashcardSet).filter(FlashcardSet.id == set_id).update(
        {FlashcardSet.known_count: known_cards}, synchronize_session=False
    )

    db.commit()
    db.refresh(flashcard_set)

    return flashcard_set


def delete_flashcard_set(db: Session, set_id: int) -> None:
    """Delete a set and its cards. Deleting a missing set is not an error."""
    # Cards first, SQLite does not enforce the foreign key cascade
    db.query(Flashcard).filter(Flashcard.set_id == set_id).delete(synchronize_session=False)
    db.query(FlashcardSet).filter(FlashcardSet.id == set_id).delete(synchronize_session=False)
    db.commit()


def serialize_card(card: Flashcard) -> dict:
    return {
        "id": card.id,
        "question": card.question,
        "answer": card.answer,
        "known": bool(card.known),
    }


def serialize_flashcard_set(flashcard_set: FlashcardSet) -> dict:
    return {
        "id": flashcard_set.id,
        "topic": flashcard_set.topic,
        "totalCount": flashcard_set.total_count,
        "requestedCount": flashcard_set.requested_count,
        "knownCount": flashcard_set.known_count,
        "cards": [serialize_card(card) for card in flashcard_set.cards],
        "createdAt": flashcard_set.created_at.isoformat() if flashcard_set.created_at else None,
    }
