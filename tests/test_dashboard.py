"""Tests for dashboard statistics."""

from datetime import datetime, timedelta

from conftest import make_cards, make_weeks


def test_dashboard_stats_empty(client):
    response = client.get("/dashboard-stats")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "stats": {
            "totalNotes": 0,
            "totalStudyPlans": 0,
            "totalFlashcards": 0,
            "totalTasks": 0,
            "completedTasks": 0,
        },
    }


def test_dashboard_stats_aggregates(client, mock_generate):
    client.post("/upload-pdf", json={"fileName": "a.pdf"})
    client.post("/upload-local-file", json={"fileName": "b.txt", "fileContent": "b"})

    mock_generate.return_value = make_cards(3)
    client.post("/generate-flashcards", json={"topic": "One", "count": 3})
    mock_generate.return_value = make_cards(2)
    client.post("/generate-flashcards", json={"topic": "Two", "count": 5})

    deadline = (datetime.utcnow().date() + timedelta(days=28)).isoformat()
    mock_generate.return_value = make_weeks(4, 14)
    plan = client.post("/generate-study-plan", json={
        "courseName": "Economics", "deadline": deadline, "hoursPerDay": 2,
    }).json()["studyPlan"]
    client.post("/update-study-progress", json={"id": plan["id"], "progress": 60, "completed": False})

    stats = client.get("/dashboard-stats").json()["stats"]

    assert stats["totalNotes"] == 2
    assert stats["totalStudyPlans"] == 1
    assert stats["totalFlashcards"] == 5
    assert stats["totalTasks"] == 4
    # floor(0.6 * 4)
    assert stats["completedTasks"] == 2
