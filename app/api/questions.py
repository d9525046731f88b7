"""
Question and answer authoring API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.config import settings
from app.database import get_db
from app.models import DifficultyLevel, QuestionType, UserRole
from app.schemas.assessment import (
    AnswerCreate,
    AnswerUpdate,
    AnswerResponse,
    QuestionListResponse,
    QuestionUpdate,
    QuestionResponse,
    ReorderRequest,
)
from app.services.question_service import question_service
from app.utils.auth import CurrentUser, require_roles

router = APIRouter(prefix="/api", tags=["questions"])
logger = logging.getLogger(__name__)

authors_only = require_roles(UserRole.ADMIN, UserRole.INSTRUCTOR)


@router.get("/questions", response_model=QuestionListResponse)
async def list_questions(
    assessment_id: Optional[int] = Query(None, alias="assessmentId"),
    question_type: Optional[QuestionType] = Query(None, alias="questionType"),
    difficulty_level: Optional[DifficultyLevel] = Query(None, alias="difficultyLevel"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """List questions across assessments with filtering and pagination"""
    result = question_service.list_questions(
        db,
        assessment_id=assessment_id,
        question_type=question_type,
        difficulty_level=difficulty_level,
        search=search,
        page=page,
        limit=limit
    )
    return QuestionListResponse(**result)


@router.get("/questions/{question_id}", response_model=QuestionResponse)
async def get_question(
    question_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Get a question with its answers"""
    question = question_service.get_question(db, question_id)
    return QuestionResponse.model_validate(question)


@router.put("/questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: int,
    request: QuestionUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    question = question_service.update_question(db, question_id, request)
    return QuestionResponse.model_validate(question)


@router.delete("/questions/{question_id}")
async def delete_question(
    question_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Delete a question and its answers"""
    question_service.delete_question(db, question_id)
    return {"message": "Question deleted successfully"}


@router.post("/questions/{question_id}/answers", response_model=AnswerResponse, status_code=201)
async def create_answer(
    question_id: int,
    request: AnswerCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Add an answer option to a question"""
    answer = question_service.create_answer(db, question_id, request)
    return AnswerResponse.model_validate(answer)


@router.put("/questions/{question_id}/answers/order", response_model=List[AnswerResponse])
async def reorder_answers(
    question_id: int,
    request: ReorderRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    answers = question_service.reorder_answers(db, question_id, request.ordered_ids)
    return [AnswerResponse.model_validate(a) for a in answers]


@router.put("/answers/{answer_id}", response_model=AnswerResponse)
async def update_answer(
    answer_id: int,
    request: AnswerUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    answer = question_service.update_answer(db, answer_id, request)
    return AnswerResponse.model_validate(answer)


@router.delete("/answers/{answer_id}")
async def delete_answer(
    answer_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    question_service.delete_answer(db, answer_id)
    return {"message": "Answer deleted successfully"}
