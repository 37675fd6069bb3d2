"""Tests for tutor chat, history ordering and clearing."""

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from studydesk.database import ChatMessage
from studydesk.errors import GenerationError
from studydesk.services.chat import (
    CHAT_SYSTEM_PROMPT,
    MESSAGE_TYPE_TO_ROLE,
    ROLE_TO_MESSAGE,
    build_turns,
)


def test_reply_type_lookup_follows_role_table():
    assert MESSAGE_TYPE_TO_ROLE == {"human": "user", "ai": "assistant"}
    for role, message_class in ROLE_TO_MESSAGE.items():
        assert MESSAGE_TYPE_TO_ROLE[message_class(content="").type] == role


def test_build_turns_translates_roles():
    history = [
        ChatMessage(role="user", content="What is DNA?"),
        ChatMessage(role="assistant", content="A molecule."),
    ]

    turns = build_turns(history, "Tell me more")

    assert turns == [
        SystemMessage(content=CHAT_SYSTEM_PROMPT),
        HumanMessage(content="What is DNA?"),
        AIMessage(content="A molecule."),
        HumanMessage(content="Tell me more"),
    ]


def test_chat_returns_assistant_reply(client, mock_converse):
    mock_converse.return_value = ("ai", "Osmosis is the movement of water.")

    response = client.post("/chat", json={"message": "What is osmosis?"})

    assert response.status_code == 200
    reply = response.json()["response"]
    assert reply["role"] == "assistant"
    assert reply["content"] == "Osmosis is the movement of water."
    assert reply["id"] is not None
    assert reply["timestamp"]


def test_chat_sends_history_as_context(client, mock_converse):
    mock_converse.return_value = ("ai", "First answer")
    client.post("/chat", json={"message": "First question"})

    mock_converse.return_value = ("ai", "Second answer")
    client.post("/chat", json={"message": "Second question"})

    turns = mock_converse.call_args.args[0]
    assert [(t.type, t.content) for t in turns[1:]] == [
        ("human", "First question"),
        ("ai", "First answer"),
        ("human", "Second question"),
    ]


def test_chat_history_is_ordered(client, mock_converse):
    for i in range(3):
        mock_converse.return_value = ("ai", f"Answer {i}")
        client.post("/chat", json={"message": f"Question {i}"})

    response = client.get("/chat-history")

    assert response.status_code == 200
    history = response.json()["chatHistory"]
    assert [m["content"] for m in history] == [
        "Question 0", "Answer 0",
        "Question 1", "Answer 1",
        "Question 2", "Answer 2",
    ]
    assert [m["role"] for m in history] == ["user", "assistant"] * 3
    timestamps = [m["timestamp"] for m in history]
    assert timestamps == sorted(timestamps)


def test_chat_requires_message(client, mock_converse):
    response = client.post("/chat", json={})
    assert response.status_code == 400

    response = client.post("/chat", json={"message": "   "})
    assert response.status_code == 400

    mock_converse.assert_not_called()


def test_failed_generation_stores_nothing(client, mock_converse, db):
    mock_converse.side_effect = GenerationError("timeout")

    response = client.post("/chat", json={"message": "Hello?"})

    assert response.status_code == 500
    assert db.query(ChatMessage).count() == 0


def test_unexpected_reply_type_is_a_failure(client, mock_converse, db):
    mock_converse.return_value = ("tool", "{}")

    response = client.post("/chat", json={"message": "Hello?"})

    assert response.status_code == 500
    assert db.query(ChatMessage).count() == 0


def test_clear_chat_history(client, mock_converse):
    mock_converse.return_value = ("ai", "Hi")
    client.post("/chat", json={"message": "Hello"})

    response = client.delete("/chat-history")

    assert response.status_code == 200
    assert client.get("/chat-history").json()["chatHistory"] == []


def test_clear_empty_history_succeeds(client):
    assert client.delete("/chat-history").json() == {"success": True}


def test_conversations_are_separate(client, mock_converse):
    mock_converse.return_value = ("ai", "Reply")
    client.post("/chat", json={"message": "In default"})
    client.post("/chat", json={"message": "In exam-prep", "conversationId": "exam-prep"})

    # The second conversation started without the first one's history
    turns = mock_converse.call_args.args[0]
    assert [(t.type, t.content) for t in turns[1:]] == [("human", "In exam-prep")]

    client.delete("/chat-history", params={"conversationId": "exam-prep"})

    assert client.get("/chat-history", params={"conversationId": "exam-prep"}).json()["chatHistory"] == []
    assert len(client.get("/chat-history").json()["chatHistory"]) == 2
