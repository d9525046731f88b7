"""
Assessment, quiz generation, submission and attempt history API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.config import settings
from app.database import get_db
from app.models import UserRole
from app.schemas.assessment import (
    AssessmentCreate,
    AssessmentUpdate,
    AssessmentResponse,
    AssessmentView,
    AssessmentListResponse,
    BulkImportRequest,
    QuestionCreate,
    QuestionResponse,
    ReorderRequest,
)
from app.schemas.quiz import (
    QuizGenerateRequest,
    QuizResponse,
    QuizSubmission,
    SubmissionResult,
    AttemptDetails,
)
from app.schemas.analytics import HistoryResponse, AssessmentProgress
from app.services.assessment_service import assessment_service, serialize_assessment
from app.services.exceptions import NotFoundError, PermissionDeniedError
from app.services.history_service import history_service
from app.services.question_service import question_service
from app.services.quiz_generator import quiz_generator
from app.services.scoring_service import scoring_service
from app.utils.auth import CurrentUser, get_current_user, require_roles

router = APIRouter(prefix="/api/assessment", tags=["assessments"])
logger = logging.getLogger(__name__)

authors_only = require_roles(UserRole.ADMIN, UserRole.INSTRUCTOR)


@router.get("", response_model=AssessmentListResponse)
async def list_assessments(
    module_id: Optional[int] = Query(None, alias="moduleId"),
    title: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """List assessments with filtering and pagination"""
    result = assessment_service.list_assessments(
        db, module_id=module_id, title=title, is_active=is_active, page=page, limit=limit
    )
    return AssessmentListResponse(**result)


@router.post("", response_model=AssessmentResponse, status_code=201)
async def create_assessment(
    request: AssessmentCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Create an assessment for a learning module"""
    assessment = assessment_service.create_assessment(db, request)
    return AssessmentResponse(**serialize_assessment(assessment, assessment.questions))


@router.post("/generate", response_model=QuizResponse)
async def generate_quiz(
    request: QuizGenerateRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    """
    Generate a quiz for a module at a difficulty level

    - Serves questions from an existing assessment when it has enough
    - Otherwise assembles a new assessment from the module's question pool
    - Falls back to a placeholder assessment when content is short
    """
    logger.info(f"Generating quiz for user {user.id}, module {request.module_id}")

    quiz = quiz_generator.generate_quiz(
        db,
        user_id=user.id,
        module_id=request.module_id,
        difficulty=request.difficulty_level,
        question_count=request.question_count
    )
    return QuizResponse(**quiz)


@router.get("/user/history", response_model=HistoryResponse)
async def get_assessment_history(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    """Get the current user's attempts, most recent first"""
    history = history_service.get_user_assessment_history(db, user.id, page=page, limit=limit)
    return HistoryResponse(**history)


@router.get("/user/progress", response_model=AssessmentProgress)
async def get_assessment_progress(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    """
    Get the current user's assessment performance

    Returns:
    - Pass rate, average score, answer accuracy and time per question
    - Per-module and per-difficulty breakdowns
    - The five most recent attempts
    """
    progress = history_service.get_user_assessment_progress(db, user.id)
    return AssessmentProgress(**progress)


@router.get("/attempt/{attempt_id}", response_model=AttemptDetails)
async def get_attempt_details(
    attempt_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    """Get the question-by-question results of an attempt (owner or admin)"""
    attempt = scoring_service.get_attempt(db, attempt_id)
    if not attempt:
        raise NotFoundError("Assessment attempt not found")

    if attempt.user_id != user.id and not user.is_admin:
        logger.warning(f"User {user.id} denied access to attempt {attempt_id}")
        raise PermissionDeniedError("You do not have permission to access this attempt")

    details = scoring_service.get_attempt_details(db, attempt_id)
    return AttemptDetails(**details)


@router.get("/{assessment_id}", response_model=None)
async def get_assessment(
    assessment_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    """Get an assessment; answer keys are only included for authors"""
    assessment = assessment_service.get_assessment(db, assessment_id)
    data = serialize_assessment(assessment, assessment.questions)

    if user.role in (UserRole.ADMIN, UserRole.INSTRUCTOR):
        return AssessmentResponse(**data)
    return AssessmentView(**data)


@router.put("/{assessment_id}", response_model=AssessmentResponse)
async def update_assessment(
    assessment_id: int,
    request: AssessmentUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Update the fields of an assessment present in the request"""
    assessment = assessment_service.update_assessment(db, assessment_id, request)
    return AssessmentResponse(**serialize_assessment(assessment, assessment.questions))


@router.delete("/{assessment_id}")
async def delete_assessment(
    assessment_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Delete an assessment with its questions and attempts"""
    assessment_service.delete_assessment(db, assessment_id)
    return {"message": "Assessment deleted successfully"}


@router.post("/{assessment_id}/submit", response_model=SubmissionResult)
async def submit_assessment(
    assessment_id: int,
    submission: QuizSubmission,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    """
    Submit and grade an assessment attempt

    Grading strategy:
    - Choice questions: full points for the answer marked correct
    - Fill-in-the-blank: partial credit for a non-empty answer
    - Over the time limit: recorded as failed regardless of score
    """
    logger.info(f"Grading assessment {assessment_id} for user {user.id}")

    result = scoring_service.submit_assessment(
        db,
        user_id=user.id,
        assessment_id=assessment_id,
        answers=submission.answers,
        time_spent_seconds=submission.time_spent_seconds
    )
    return SubmissionResult(**result)


@router.post("/{assessment_id}/questions", response_model=QuestionResponse, status_code=201)
async def create_question(
    assessment_id: int,
    request: QuestionCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Add a question (optionally with answers) to an assessment"""
    question = question_service.create_question(db, assessment_id, request)
    return QuestionResponse.model_validate(question)


@router.post("/{assessment_id}/questions/import", response_model=List[QuestionResponse], status_code=201)
async def import_questions(
    assessment_id: int,
    request: BulkImportRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Append several questions at once; nothing is imported if any is invalid"""
    questions = question_service.bulk_import_questions(db, assessment_id, request.questions)
    return [QuestionResponse.model_validate(q) for q in questions]


@router.put("/{assessment_id}/questions/order", response_model=List[QuestionResponse])
async def reorder_questions(
    assessment_id: int,
    request: ReorderRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Reorder the questions of an assessment"""
    questions = question_service.reorder_questions(db, assessment_id, request.ordered_ids)
    return [QuestionResponse.model_validate(q) for q in questions]
