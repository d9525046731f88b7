"""
Pydantic schemas for quiz generation, submission and attempt results
"""
from datetime import datetime
from pydantic import Field
from typing import List, Optional

from app.config import settings
from app.models.enums import QuestionType, DifficultyLevel
from app.schemas.common import CamelModel
from app.schemas.assessment import QuizQuestion


class QuizGenerateRequest(CamelModel):
    """Request schema for quiz generation"""
    module_id: int
    difficulty_level: DifficultyLevel = DifficultyLevel.BEGINNER
    question_count: int = Field(
        settings.DEFAULT_QUESTION_COUNT,
        ge=1,
        le=settings.MAX_QUIZ_QUESTIONS,
        description="Number of questions"
    )


class QuizResponse(CamelModel):
    """Generated quiz, ready to be taken"""
    id: int
    title: str
    description: Optional[str] = None
    module_id: Optional[int] = None
    time_limit: Optional[float] = None
    pass_threshold: float
    randomize_questions: bool
    generation_tier: int
    questions: List[QuizQuestion]


class SubmittedAnswer(CamelModel):
    """One answered question in a submission"""
    question_id: int
    answer_id: Optional[int] = None
    text_answer: Optional[str] = None


class QuizSubmission(CamelModel):
    """Schema for assessment submission"""
    answers: List[SubmittedAnswer]
    time_spent_seconds: int = Field(0, ge=0)


class AttemptSummary(CamelModel):
    id: int
    score: float
    is_passed: bool
    points_earned: float
    attempt_number: int


class SubmissionFeedback(CamelModel):
    total_questions: int
    correct_answers: float
    time_spent: float  # minutes
    within_time_limit: bool


class SubmissionResult(CamelModel):
    """Response after grading a submission"""
    attempt: AttemptSummary
    feedback: SubmissionFeedback


class AttemptHeader(CamelModel):
    id: int
    user_id: int
    assessment_id: int
    title: str
    module_id: Optional[int] = None
    module_title: Optional[str] = None
    score: float
    is_passed: bool
    attempt_number: int
    completed_at: datetime
    time_spent_seconds: int


class AttemptResults(CamelModel):
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    accuracy: float


class QuestionResult(CamelModel):
    """Grading of a single stored answer"""
    question_id: int
    question_text: str
    question_type: QuestionType
    difficulty: DifficultyLevel
    points: int
    answer_id: Optional[int] = None
    answer_text: Optional[str] = None
    is_correct: bool
    explanation: Optional[str] = None


class AttemptDetails(CamelModel):
    attempt: AttemptHeader
    results: AttemptResults
    questions: List[QuestionResult]
