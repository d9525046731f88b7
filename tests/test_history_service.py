"""
Tests for attempt history pagination and progress analytics.
"""
from datetime import datetime, timedelta

import pytest

from app.models import UserAssessmentAttempt, UserAnswer, DifficultyLevel, QuestionType
from app.services.exceptions import InvalidRequestError
from app.services.history_service import HistoryService
from app.services.scoring_service import ScoringService
from tests.factories import make_question, make_assessment, correct_answer_id, wrong_answer_id


@pytest.fixture
def service():
    return HistoryService()


@pytest.fixture
def assessment(db, module):
    return make_assessment(db, module.id, [make_question("Q1", points=10)])


def add_attempt(db, assessment, user_id, completed_at, score=80.0, is_passed=True, number=1):
    attempt = UserAssessmentAttempt(
        user_id=user_id,
        assessment_id=assessment.id,
        started_at=completed_at - timedelta(minutes=5),
        completed_at=completed_at,
        score=score,
        is_passed=is_passed,
        attempt_number=number,
        time_spent_seconds=300
    )
    db.add(attempt)
    db.commit()
    return attempt


def test_two_submissions_listed_most_recent_first(db, service, assessment):
    question = assessment.questions[0]
    answers = [{"question_id": question.id, "answer_id": correct_answer_id(question)}]
    scoring = ScoringService()

    first = scoring.submit_assessment(db, 1, assessment.id, answers)
    second = scoring.submit_assessment(db, 1, assessment.id, answers)

    history = service.get_user_assessment_history(db, 1)

    assert [entry["id"] for entry in history["data"]] == [
        second["attempt"]["id"], first["attempt"]["id"]
    ]
    assert [entry["attempt_number"] for entry in history["data"]] == [2, 1]
    assert history["pagination"] == {"total": 2, "page": 1, "limit": 10, "pages": 1}


def test_history_orders_by_completion_then_id(db, service, assessment):
    base = datetime(2024, 5, 1, 12, 0, 0)
    older = add_attempt(db, assessment, 1, base - timedelta(days=1))
    tied_low = add_attempt(db, assessment, 1, base, number=2)
    tied_high = add_attempt(db, assessment, 1, base, number=3)

    history = service.get_user_assessment_history(db, 1)

    assert [entry["id"] for entry in history["data"]] == [tied_high.id, tied_low.id, older.id]


def test_history_pagination(db, service, assessment):
    base = datetime(2024, 5, 1)
    for i in range(5):
        add_attempt(db, assessment, 1, base + timedelta(hours=i), number=i + 1)

    page_one = service.get_user_assessment_history(db, 1, page=1, limit=2)
    page_three = service.get_user_assessment_history(db, 1, page=3, limit=2)
    past_end = service.get_user_assessment_history(db, 1, page=4, limit=2)

    assert [e["attempt_number"] for e in page_one["data"]] == [5, 4]
    assert [e["attempt_number"] for e in page_three["data"]] == [1]
    assert page_one["pagination"] == {"total": 5, "page": 1, "limit": 2, "pages": 3}
    assert past_end["data"] == []


def test_history_is_scoped_to_user(db, service, assessment):
    add_attempt(db, assessment, 1, datetime(2024, 5, 1))
    add_attempt(db, assessment, 2, datetime(2024, 5, 2))

    history = service.get_user_assessment_history(db, 1)

    assert history["pagination"]["total"] == 1
    assert history["data"][0]["title"] == "Python Basics"
    assert history["data"][0]["module_title"] == "Intro to Python"


def test_empty_history(db, service):
    history = service.get_user_assessment_history(db, 1)

    assert history["data"] == []
    assert history["pagination"] == {"total": 0, "page": 1, "limit": 10, "pages": 0}


def test_history_rejects_invalid_paging(db, service):
    with pytest.raises(InvalidRequestError):
        service.get_user_assessment_history(db, 1, page=0)
    with pytest.raises(InvalidRequestError):
        service.get_user_assessment_history(db, 1, limit=0)


def test_progress_without_attempts_is_zeroed(db, service):
    progress = service.get_user_assessment_progress(db, 1)

    assert progress == {
        "summary": {
            "total_attempts": 0,
            "pass_rate": 0.0,
            "average_score": 0.0,
            "accuracy": 0.0,
            "time_per_question": 0.0,
        },
        "by_module": [],
        "by_difficulty": [],
        "recent_attempts": [],
    }


def test_progress_summary(db, service, module):
    assessment = make_assessment(db, module.id, [
        make_question("Easy", points=10, order_index=0),
        make_question("Hard", points=10, difficulty=DifficultyLevel.ADVANCED, order_index=1),
        make_question("Blank", points=10, question_type=QuestionType.FILL_BLANK, order_index=2),
    ])
    easy, hard, blank = assessment.questions
    scoring = ScoringService()

    scoring.submit_assessment(db, 1, assessment.id, [
        {"question_id": easy.id, "answer_id": correct_answer_id(easy)},
        {"question_id": hard.id, "answer_id": correct_answer_id(hard)},
    ], time_spent_seconds=120)
    scoring.submit_assessment(db, 1, assessment.id, [
        {"question_id": easy.id, "answer_id": correct_answer_id(easy)},
        {"question_id": hard.id, "answer_id": wrong_answer_id(hard)},
        {"question_id": blank.id, "text_answer": "anything"},
    ], time_spent_seconds=180)

    progress = service.get_user_assessment_progress(db, 1)
    summary = progress["summary"]

    # scores: 100 and 50; five stored answers, three on a correct option
    assert summary["total_attempts"] == 2
    assert summary["pass_rate"] == 50
    assert summary["average_score"] == 75
    assert summary["accuracy"] == 60
    assert summary["time_per_question"] == 60

    assert progress["by_module"] == [{
        "module_id": module.id,
        "module_title": "Intro to Python",
        "attempts": 2,
        "pass_rate": 50,
        "average_score": 75,
    }]

    by_difficulty = {d["difficulty"]: d for d in progress["by_difficulty"]}
    assert [d["difficulty"] for d in progress["by_difficulty"]] == [
        DifficultyLevel.BEGINNER, DifficultyLevel.ADVANCED
    ]
    assert by_difficulty[DifficultyLevel.BEGINNER]["answered"] == 3
    assert by_difficulty[DifficultyLevel.BEGINNER]["correct"] == 2
    assert by_difficulty[DifficultyLevel.ADVANCED]["accuracy"] == 50

    assert [a["attempt_number"] for a in progress["recent_attempts"]] == [2, 1]


def test_recent_attempts_are_capped(db, service, assessment):
    base = datetime(2024, 5, 1)
    for i in range(7):
        add_attempt(db, assessment, 1, base + timedelta(hours=i), number=i + 1)

    progress = service.get_user_assessment_progress(db, 1)

    assert progress["summary"]["total_attempts"] == 7
    assert [a["attempt_number"] for a in progress["recent_attempts"]] == [7, 6, 5, 4, 3]


def test_progress_counts_unanswered_attempts_without_dividing_by_zero(db, service, assessment):
    add_attempt(db, assessment, 1, datetime(2024, 5, 1), score=0.0, is_passed=False)

    progress = service.get_user_assessment_progress(db, 1)

    assert db.query(UserAnswer).count() == 0
    assert progress["summary"]["total_attempts"] == 1
    assert progress["summary"]["accuracy"] == 0
    assert progress["summary"]["time_per_question"] == 0
    assert progress["by_difficulty"] == []
