"""
HTTP-level tests for the assessment API.
"""
import pytest

from app.config import settings
from app.models import QuestionType, UserRole
from app.utils.rate_limiter import rate_limiter
from tests.conftest import auth_headers
from tests.factories import make_question, make_assessment, correct_answer_id


@pytest.fixture
def assessment(db, module):
    return make_assessment(db, module.id, [make_question("What is 2 + 2?", points=10)])


def submit_correct(client, assessment, headers, seconds=60):
    question = assessment.questions[0]
    return client.post(
        f"/api/assessment/{assessment.id}/submit",
        json={
            "answers": [{"questionId": question.id, "answerId": correct_answer_id(question)}],
            "timeSpentSeconds": seconds,
        },
        headers=headers
    )


def test_health_is_public(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requests_without_token_are_rejected(client, assessment):
    response = client.get("/api/assessment/user/history")

    assert response.status_code == 401
    assert response.json()["message"] == "User authentication required"


def test_invalid_token_is_rejected(client):
    response = client.get(
        "/api/assessment/user/progress",
        headers={"Authorization": "Bearer not-a-token"}
    )

    assert response.status_code == 401


def test_submit_and_read_back(client, assessment, student_headers):
    response = submit_correct(client, assessment, student_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["attempt"]["score"] == 100
    assert body["attempt"]["isPassed"] is True
    assert body["attempt"]["pointsEarned"] == 10
    assert body["attempt"]["attemptNumber"] == 1
    assert body["feedback"]["withinTimeLimit"] is True

    history = client.get("/api/assessment/user/history", headers=student_headers).json()
    assert history["pagination"]["total"] == 1
    assert history["data"][0]["id"] == body["attempt"]["id"]

    progress = client.get("/api/assessment/user/progress", headers=student_headers).json()
    assert progress["summary"]["totalAttempts"] == 1
    assert progress["summary"]["passRate"] == 100


def test_submit_unknown_assessment_is_404(client, student_headers):
    response = client.post(
        "/api/assessment/9999/submit",
        json={"answers": [], "timeSpentSeconds": 0},
        headers=student_headers
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Assessment not found"


def test_submit_validation_error_is_400(client, assessment, student_headers):
    response = client.post(
        f"/api/assessment/{assessment.id}/submit",
        json={"answers": [], "timeSpentSeconds": -5},
        headers=student_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_attempt_details_owner_admin_and_others(
    client, assessment, student_headers, other_student_headers, admin_headers
):
    attempt_id = submit_correct(client, assessment, student_headers).json()["attempt"]["id"]

    own = client.get(f"/api/assessment/attempt/{attempt_id}", headers=student_headers)
    again = client.get(f"/api/assessment/attempt/{attempt_id}", headers=student_headers)
    as_admin = client.get(f"/api/assessment/attempt/{attempt_id}", headers=admin_headers)
    as_other = client.get(f"/api/assessment/attempt/{attempt_id}", headers=other_student_headers)
    missing = client.get("/api/assessment/attempt/999999", headers=student_headers)

    assert own.status_code == 200
    assert own.json() == again.json()
    assert own.json()["results"]["accuracy"] == 100
    assert as_admin.status_code == 200
    assert as_other.status_code == 403
    assert as_other.json()["message"] == "You do not have permission to access this attempt"
    assert missing.status_code == 404
    assert missing.json()["message"] == "Assessment attempt not found"


def test_generate_quiz_hides_answer_keys(client, module, student_headers):
    response = client.post(
        "/api/assessment/generate",
        json={"moduleId": module.id, "difficultyLevel": "BEGINNER", "questionCount": 5},
        headers=student_headers
    )

    assert response.status_code == 200
    quiz = response.json()
    assert quiz["generationTier"] == 3
    assert len(quiz["questions"]) == 5
    assert all(len(q["answers"]) == 4 for q in quiz["questions"])
    assert all("isCorrect" not in a for q in quiz["questions"] for a in q["answers"])


def test_generate_quiz_for_unknown_module_is_404(client, student_headers):
    response = client.post(
        "/api/assessment/generate",
        json={"moduleId": 31337, "questionCount": 5},
        headers=student_headers
    )

    assert response.status_code == 404


def test_generate_quiz_caps_question_count(client, module, student_headers):
    response = client.post(
        "/api/assessment/generate",
        json={"moduleId": module.id, "questionCount": settings.MAX_QUIZ_QUESTIONS + 1},
        headers=student_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_get_assessment_views_by_role(client, assessment, student_headers, instructor_headers):
    as_student = client.get(f"/api/assessment/{assessment.id}", headers=student_headers).json()
    as_instructor = client.get(f"/api/assessment/{assessment.id}", headers=instructor_headers).json()

    assert "isCorrect" not in as_student["questions"][0]["answers"][0]
    assert "isCorrect" in as_instructor["questions"][0]["answers"][0]
    assert as_student["moduleTitle"] == "Intro to Python"


def test_authoring_requires_instructor(client, module, student_headers):
    response = client.post(
        "/api/assessment",
        json={"title": "Forbidden", "moduleId": module.id},
        headers=student_headers
    )

    assert response.status_code == 403


def test_authoring_flow(client, module, instructor_headers):
    created = client.post(
        "/api/assessment",
        json={"title": "Loops", "moduleId": module.id, "passThreshold": 60},
        headers=instructor_headers
    )
    assert created.status_code == 201
    assessment_id = created.json()["id"]
    assert created.json()["timeLimit"] == 15

    imported = client.post(
        f"/api/assessment/{assessment_id}/questions/import",
        json={"questions": [
            {
                "questionText": "Which loop runs at least once?",
                "answers": [
                    {"answerText": "while", "isCorrect": False},
                    {"answerText": "none in Python", "isCorrect": True},
                ],
            },
            {"questionText": "range(3) yields ___ values", "questionType": "FILL_BLANK"},
        ]},
        headers=instructor_headers
    )
    assert imported.status_code == 201
    question_ids = [q["id"] for q in imported.json()]

    reordered = client.put(
        f"/api/assessment/{assessment_id}/questions/order",
        json={"orderedIds": list(reversed(question_ids))},
        headers=instructor_headers
    )
    assert [q["id"] for q in reordered.json()] == list(reversed(question_ids))

    updated = client.put(
        f"/api/assessment/{assessment_id}",
        json={"isActive": False},
        headers=instructor_headers
    )
    assert updated.json()["isActive"] is False
    assert updated.json()["title"] == "Loops"

    listing = client.get(
        "/api/assessment", params={"moduleId": module.id}, headers=instructor_headers
    ).json()
    assert listing["pagination"]["total"] == 1
    assert listing["data"][0]["questionCount"] == 2

    question = client.get(f"/api/questions/{question_ids[0]}", headers=instructor_headers)
    assert question.json()["questionText"] == "Which loop runs at least once?"

    deleted = client.delete(f"/api/assessment/{assessment_id}", headers=instructor_headers)
    assert deleted.status_code == 200
    assert client.get(f"/api/assessment/{assessment_id}", headers=instructor_headers).status_code == 404


def test_modules_endpoints(client, admin_headers, student_headers):
    created = client.post(
        "/api/modules",
        json={"title": "Data Structures"},
        headers=admin_headers
    )
    assert created.status_code == 201

    modules = client.get("/api/modules", headers=student_headers).json()
    assert [m["title"] for m in modules] == ["Data Structures"]
    assert client.get("/api/modules/777", headers=student_headers).status_code == 404


def test_update_and_delete_module(client, db, module, assessment, instructor_headers, admin_headers):
    updated = client.put(
        f"/api/modules/{module.id}",
        json={"title": "Python Fundamentals", "isActive": False},
        headers=instructor_headers
    )
    assert updated.status_code == 200
    assert updated.json()["title"] == "Python Fundamentals"
    assert updated.json()["isActive"] is False

    not_allowed = client.delete(f"/api/modules/{module.id}", headers=instructor_headers)
    assert not_allowed.status_code == 403

    deleted = client.delete(f"/api/modules/{module.id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert client.get(f"/api/modules/{module.id}", headers=admin_headers).status_code == 404
    assert client.delete(f"/api/modules/{module.id}", headers=admin_headers).status_code == 404

    detached = client.get(f"/api/assessment/{assessment.id}", headers=admin_headers).json()
    assert detached["moduleId"] is None


def test_update_unknown_module_is_404(client, admin_headers):
    response = client.put("/api/modules/4242", json={"title": "Ghost"}, headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Learning module not found"


def test_list_questions_endpoint(client, db, module, instructor_headers, student_headers):
    make_assessment(db, module.id, [
        make_question("What is a tuple?", order_index=0),
        make_question("What is a list?", order_index=1),
        make_question(
            "A set is written with ___",
            question_type=QuestionType.FILL_BLANK,
            order_index=2
        ),
    ], title="Collections")

    everything = client.get("/api/questions", headers=instructor_headers)
    assert everything.status_code == 200
    assert everything.json()["pagination"]["total"] == 3
    assert everything.json()["data"][0]["assessmentTitle"] == "Collections"

    searched = client.get(
        "/api/questions", params={"search": "list", "limit": 1}, headers=instructor_headers
    ).json()
    assert [q["questionText"] for q in searched["data"]] == ["What is a list?"]
    assert searched["pagination"] == {"total": 1, "page": 1, "limit": 1, "pages": 1}

    fill_blank = client.get(
        "/api/questions", params={"questionType": "FILL_BLANK"}, headers=instructor_headers
    ).json()
    assert [q["questionText"] for q in fill_blank["data"]] == ["A set is written with ___"]

    assert client.get("/api/questions", headers=student_headers).status_code == 403
    assert client.get(
        "/api/questions", params={"questionType": "ESSAY"}, headers=instructor_headers
    ).status_code == 400


def test_rate_limit_returns_429(client, assessment):
    headers = auth_headers(55, UserRole.STUDENT)
    original = rate_limiter.requests_per_minute
    rate_limiter.requests_per_minute = 2
    try:
        statuses = [
            client.get("/api/assessment/user/history", headers=headers).status_code
            for _ in range(3)
        ]
    finally:
        rate_limiter.requests_per_minute = original

    assert statuses == [200, 200, 429]
