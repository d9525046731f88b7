"""
Assessment authoring service
"""
import logging
import math
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.models import Assessment, Question, LearningModule, UserAssessmentAttempt
from app.schemas.assessment import AssessmentCreate, AssessmentUpdate
from app.services.exceptions import NotFoundError, InvalidRequestError
from app.utils.cache import cache_service

logger = logging.getLogger(__name__)


class AssessmentService:
    """Service for creating, updating and listing assessments"""

    def _require_module(self, db: Session, module_id: int) -> LearningModule:
        module = db.query(LearningModule).filter(LearningModule.id == module_id).first()
        if not module:
            raise NotFoundError("Learning module not found")
        return module

    def get_assessment(self, db: Session, assessment_id: int) -> Assessment:
        """
        Get an assessment with its ordered questions and answers

        Raises:
            NotFoundError: assessment does not exist
        """
        assessment = db.query(Assessment).options(
            selectinload(Assessment.questions).selectinload(Question.answers),
            selectinload(Assessment.learning_module)
        ).filter(Assessment.id == assessment_id).first()

        if not assessment:
            raise NotFoundError("Assessment not found")
        return assessment

    def create_assessment(self, db: Session, data: AssessmentCreate) -> Assessment:
        self._require_module(db, data.module_id)

        assessment = Assessment(
            title=data.title,
            description=data.description,
            module_id=data.module_id,
            time_limit=data.time_limit,
            pass_threshold=data.pass_threshold,
            is_active=data.is_active,
            randomize_questions=data.randomize_questions
        )
        db.add(assessment)
        db.commit()
        db.refresh(assessment)

        logger.info(f"Assessment created: {assessment.id} (module {assessment.module_id})")
        return assessment

    def update_assessment(self, db: Session, assessment_id: int, data: AssessmentUpdate) -> Assessment:
        """Apply only the fields the caller set"""
        assessment = self.get_assessment(db, assessment_id)
        changes = data.model_dump(exclude_unset=True)

        if "module_id" in changes:
            if changes["module_id"] is None:
                raise InvalidRequestError("moduleId cannot be cleared")
            self._require_module(db, changes["module_id"])
        for name in ("title", "pass_threshold", "is_active", "randomize_questions"):
            if name in changes and changes[name] is None:
                raise InvalidRequestError(f"{name} cannot be null")

        for name, value in changes.items():
            setattr(assessment, name, value)

        db.commit()
        db.refresh(assessment)
        logger.info(f"Assessment updated: {assessment_id} ({', '.join(changes) or 'no changes'})")
        return assessment

    def delete_assessment(self, db: Session, assessment_id: int) -> None:
        """Delete an assessment with its questions and attempts"""
        assessment = db.query(Assessment).filter(Assessment.id == assessment_id).first()
        if not assessment:
            raise NotFoundError("Assessment not found")

        affected_users = attempt_owners(db, [assessment_id])

        db.delete(assessment)
        db.commit()

        # Cached summaries still count the removed attempts
        for user_id in affected_users:
            cache_service.invalidate_progress(user_id)

        logger.info(f"Assessment deleted: {assessment_id} ({len(affected_users)} users' progress invalidated)")

    def list_assessments(
        self,
        db: Session,
        module_id: Optional[int] = None,
        title: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        """
        List assessments with filtering and pagination, most recently updated first

        Args:
            db: Database session
            module_id: Only assessments of this module
            title: Substring the title must contain
            is_active: Only active or only inactive assessments
            page: 1-based page number
            limit: Page size

        Returns:
            Dictionary with assessment summaries and a pagination envelope
        """
        if page < 1 or limit < 1:
            raise InvalidRequestError("page and limit must be positive")

        query = db.query(Assessment)
        if module_id is not None:
            query = query.filter(Assessment.module_id == module_id)
        if title:
            query = query.filter(Assessment.title.contains(title))
        if is_active is not None:
            query = query.filter(Assessment.is_active.is_(is_active))

        total = query.count()
        assessments = query.options(
            selectinload(Assessment.learning_module)
        ).order_by(
            Assessment.updated_at.desc(),
            Assessment.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()

        ids = [a.id for a in assessments]
        counts = dict(
            db.query(Question.assessment_id, func.count(Question.id))
            .filter(Question.assessment_id.in_(ids))
            .group_by(Question.assessment_id)
            .all()
        ) if ids else {}

        data = []
        for assessment in assessments:
            module = assessment.learning_module
            data.append({
                "id": assessment.id,
                "title": assessment.title,
                "description": assessment.description,
                "module_id": assessment.module_id,
                "module_title": module.title if module else None,
                "time_limit": assessment.time_limit,
                "pass_threshold": assessment.pass_threshold,
                "is_active": assessment.is_active,
                "randomize_questions": assessment.randomize_questions,
                "question_count": counts.get(assessment.id, 0),
                "updated_at": assessment.updated_at,
            })

        return {
            "data": data,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit),
            },
        }


def attempt_owners(db: Session, assessment_ids: List[int]) -> Set[int]:
    """Ids of the users with attempts on any of the given assessments"""
    if not assessment_ids:
        return set()
    rows = db.query(UserAssessmentAttempt.user_id).filter(
        UserAssessmentAttempt.assessment_id.in_(assessment_ids)
    ).distinct().all()
    return {user_id for (user_id,) in rows}


def serialize_question(question: Question) -> Dict[str, Any]:
    return {
        "id": question.id,
        "assessment_id": question.assessment_id,
        "question_text": question.question_text,
        "question_type": question.question_type,
        "difficulty_level": question.difficulty_level,
        "points": question.points,
        "explanation": question.explanation,
        "order_index": question.order_index,
        "answers": [
            {
                "id": answer.id,
                "answer_text": answer.answer_text,
                "is_correct": answer.is_correct,
                "explanation": answer.explanation,
                "order_index": answer.order_index,
            }
            for answer in question.answers
        ],
    }


def serialize_assessment(assessment: Assessment, questions: List[Question]) -> Dict[str, Any]:
    """Plain-dict aggregate of an assessment with the given questions substituted"""
    module = assessment.learning_module
    return {
        "id": assessment.id,
        "title": assessment.title,
        "description": assessment.description,
        "module_id": assessment.module_id,
        "module_title": module.title if module else None,
        "time_limit": assessment.time_limit,
        "pass_threshold": assessment.pass_threshold,
        "is_active": assessment.is_active,
        "randomize_questions": assessment.randomize_questions,
        "questions": [serialize_question(q) for q in questions],
    }


# Global instance
assessment_service = AssessmentService()
