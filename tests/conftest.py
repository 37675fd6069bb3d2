"""Shared fixtures: in-memory database, API client and a mocked model."""

import json
import os
from unittest.mock import AsyncMock, patch

# Must be set before studydesk is imported: the engine is built at import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("OPENAI_API_KEY", "test-key")

import pytest
from fastapi.testclient import TestClient

from studydesk.database import Base, SessionLocal, engine
from studydesk.index import app
from studydesk.services.monitoring import metrics


@pytest.fixture(autouse=True)
def reset_database():
    """Give every test empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    metrics.reset()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def mock_generate():
    """Replace the model call used for notes, plans and flashcards."""
    with patch("studydesk.services.generation.generate", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def mock_converse():
    """Replace the model call used for chat."""
    with patch("studydesk.services.generation.converse", new_callable=AsyncMock) as mock:
        yield mock


def make_cards(count: int) -> str:
    """Structured-mode response with `count` flashcards."""
    return json.dumps([
        {"question": f"Question {i}?", "answer": f"Answer {i}."}
        for i in range(1, count + 1)
    ])


def make_weeks(weeks: int, hours: int) -> str:
    """Structured-mode response with `weeks` plan entries of `hours` each."""
    return json.dumps([
        {
            "week": i,
            "topic": f"Topic {i}",
            "hours": hours,
            "tasks": [f"Read chapter {i}", f"Exercises for chapter {i}"],
        }
        for i in range(1, weeks + 1)
    ])
