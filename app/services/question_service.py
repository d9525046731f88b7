"""
Question and answer authoring service
Reordering and bulk import are applied all-or-nothing
"""
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.models import Assessment, Question, Answer, QuestionType, DifficultyLevel
from app.schemas.assessment import (
    AnswerCreate, AnswerUpdate, QuestionCreate, QuestionUpdate
)
from app.services.assessment_service import serialize_question
from app.services.exceptions import NotFoundError, InvalidRequestError

logger = logging.getLogger(__name__)


def validate_answers(question_type: QuestionType, answers: Sequence[AnswerCreate]) -> None:
    """
    Check the answer set of a question

    Choice questions need at least two answers with one marked correct;
    true/false questions need exactly two.

    Raises:
        InvalidRequestError: the answers violate these rules
    """
    question_type = QuestionType(question_type)
    if not question_type.is_choice:
        return

    if question_type == QuestionType.TRUE_FALSE and len(answers) != 2:
        raise InvalidRequestError("A true/false question must have exactly 2 answers")
    if len(answers) < 2:
        raise InvalidRequestError("A choice question must have at least 2 answers")
    if not any(a.is_correct for a in answers):
        raise InvalidRequestError("A choice question must have at least one correct answer")


class QuestionService:
    """Service for managing the questions of an assessment and their answers"""

    def _require_assessment(self, db: Session, assessment_id: int) -> Assessment:
        assessment = db.query(Assessment).filter(Assessment.id == assessment_id).first()
        if not assessment:
            raise NotFoundError("Assessment not found")
        return assessment

    def _next_question_index(self, db: Session, assessment_id: int) -> int:
        max_index = db.query(func.max(Question.order_index)).filter(
            Question.assessment_id == assessment_id
        ).scalar()
        return 0 if max_index is None else max_index + 1

    def _build_question(self, assessment_id: int, data: QuestionCreate, order_index: int) -> Question:
        return Question(
            assessment_id=assessment_id,
            question_text=data.question_text,
            question_type=data.question_type,
            difficulty_level=data.difficulty_level,
            points=data.points,
            explanation=data.explanation,
            order_index=order_index,
            answers=[
                Answer(
                    answer_text=answer.answer_text,
                    is_correct=answer.is_correct,
                    explanation=answer.explanation,
                    order_index=answer.order_index if answer.order_index is not None else index
                )
                for index, answer in enumerate(data.answers)
            ]
        )

    def get_question(self, db: Session, question_id: int) -> Question:
        question = db.query(Question).options(
            selectinload(Question.answers)
        ).filter(Question.id == question_id).first()
        if not question:
            raise NotFoundError("Question not found")
        return question

    def list_questions(
        self,
        db: Session,
        assessment_id: Optional[int] = None,
        question_type: Optional[QuestionType] = None,
        difficulty_level: Optional[DifficultyLevel] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        """
        List questions with filtering and pagination

        Args:
            db: Database session
            assessment_id: Only questions of this assessment
            question_type: Only questions of this type
            difficulty_level: Only questions at this difficulty
            search: Substring the question text must contain
            page: 1-based page number
            limit: Page size

        Returns:
            Dictionary with questions (answers and assessment title included)
            and a pagination envelope
        """
        if page < 1 or limit < 1:
            raise InvalidRequestError("page and limit must be positive")

        query = db.query(Question)
        if assessment_id is not None:
            query = query.filter(Question.assessment_id == assessment_id)
        if question_type is not None:
            query = query.filter(Question.question_type == question_type)
        if difficulty_level is not None:
            query = query.filter(Question.difficulty_level == difficulty_level)
        if search:
            query = query.filter(Question.question_text.contains(search))

        total = query.count()
        questions = query.options(
            selectinload(Question.answers),
            selectinload(Question.assessment)
        ).order_by(
            Question.assessment_id,
            Question.order_index,
            Question.id
        ).offset((page - 1) * limit).limit(limit).all()

        data = []
        for question in questions:
            entry = serialize_question(question)
            entry["assessment_title"] = question.assessment.title
            data.append(entry)

        return {
            "data": data,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit),
            },
        }

    def create_question(self, db: Session, assessment_id: int, data: QuestionCreate) -> Question:
        """Add a question, appended after the last one unless an order index is given"""
        self._require_assessment(db, assessment_id)
        if data.answers:
            validate_answers(data.question_type, data.answers)

        order_index = data.order_index
        if order_index is None:
            order_index = self._next_question_index(db, assessment_id)

        question = self._build_question(assessment_id, data, order_index)
        db.add(question)
        db.commit()
        db.refresh(question)

        logger.info(f"Question created: {question.id} in assessment {assessment_id}")
        return question

    def update_question(self, db: Session, question_id: int, data: QuestionUpdate) -> Question:
        question = self.get_question(db, question_id)
        changes = data.model_dump(exclude_unset=True)

        for name in ("question_text", "question_type", "difficulty_level", "points", "order_index"):
            if name in changes and changes[name] is None:
                raise InvalidRequestError(f"{name} cannot be null")

        for name, value in changes.items():
            setattr(question, name, value)

        db.commit()
        db.refresh(question)
        return question

    def delete_question(self, db: Session, question_id: int) -> None:
        question = db.query(Question).filter(Question.id == question_id).first()
        if not question:
            raise NotFoundError("Question not found")
        db.delete(question)
        db.commit()
        logger.info(f"Question deleted: {question_id}")

    def create_answer(self, db: Session, question_id: int, data: AnswerCreate) -> Answer:
        question = self.get_question(db, question_id)

        order_index = data.order_index
        if order_index is None:
            order_index = max((a.order_index for a in question.answers), default=-1) + 1

        answer = Answer(
            question_id=question_id,
            answer_text=data.answer_text,
            is_correct=data.is_correct,
            explanation=data.explanation,
            order_index=order_index
        )
        db.add(answer)
        db.commit()
        db.refresh(answer)
        return answer

    def update_answer(self, db: Session, answer_id: int, data: AnswerUpdate) -> Answer:
        answer = db.query(Answer).filter(Answer.id == answer_id).first()
        if not answer:
            raise NotFoundError("Answer not found")

        changes = data.model_dump(exclude_unset=True)
        for name in ("answer_text", "is_correct", "order_index"):
            if name in changes and changes[name] is None:
                raise InvalidRequestError(f"{name} cannot be null")

        for name, value in changes.items():
            setattr(answer, name, value)

        db.commit()
        db.refresh(answer)
        return answer

    def delete_answer(self, db: Session, answer_id: int) -> None:
        answer = db.query(Answer).filter(Answer.id == answer_id).first()
        if not answer:
            raise NotFoundError("Answer not found")
        db.delete(answer)
        db.commit()

    def reorder_questions(self, db: Session, assessment_id: int, ordered_ids: List[int]) -> List[Question]:
        """
        Set question order from the position of each id in ordered_ids

        Raises:
            NotFoundError: assessment does not exist
            InvalidRequestError: an id does not belong to the assessment
        """
        self._require_assessment(db, assessment_id)
        questions = {
            q.id: q for q in db.query(Question).filter(Question.assessment_id == assessment_id).all()
        }
        self._apply_order(db, questions, ordered_ids, "question IDs do not belong to this assessment")

        return db.query(Question).options(selectinload(Question.answers)).filter(
            Question.assessment_id == assessment_id
        ).order_by(Question.order_index, Question.id).all()

    def reorder_answers(self, db: Session, question_id: int, ordered_ids: List[int]) -> List[Answer]:
        """
        Set answer order from the position of each id in ordered_ids

        Raises:
            NotFoundError: question does not exist
            InvalidRequestError: an id does not belong to the question
        """
        question = self.get_question(db, question_id)
        answers = {a.id: a for a in question.answers}
        self._apply_order(db, answers, ordered_ids, "answer IDs do not belong to this question")

        return db.query(Answer).filter(
            Answer.question_id == question_id
        ).order_by(Answer.order_index, Answer.id).all()

    def _apply_order(self, db: Session, rows: dict, ordered_ids: List[int], error: str) -> None:
        unknown = [row_id for row_id in ordered_ids if row_id not in rows]
        if unknown:
            raise InvalidRequestError(f"Some {error}: {unknown}")
        if len(set(ordered_ids)) != len(ordered_ids):
            raise InvalidRequestError("Duplicate IDs in requested order")

        try:
            for index, row_id in enumerate(ordered_ids):
                rows[row_id].order_index = index
            db.commit()
        except Exception:
            db.rollback()
            raise

    def bulk_import_questions(
        self,
        db: Session,
        assessment_id: int,
        questions: List[QuestionCreate]
    ) -> List[Question]:
        """
        Append questions with their answers to an assessment in one transaction

        Every question is validated before anything is written; a failure
        leaves the assessment unchanged.
        """
        self._require_assessment(db, assessment_id)
        for data in questions:
            validate_answers(data.question_type, data.answers)

        start_index = self._next_question_index(db, assessment_id)
        created = [
            self._build_question(assessment_id, data, start_index + offset)
            for offset, data in enumerate(questions)
        ]

        try:
            db.add_all(created)
            db.commit()
        except Exception as e:
            logger.error(f"Bulk import into assessment {assessment_id} failed: {str(e)}")
            db.rollback()
            raise

        for question in created:
            db.refresh(question)

        logger.info(f"Imported {len(created)} questions into assessment {assessment_id}")
        return created


# Global instance
question_service = QuestionService()
