"""
Assessment scoring service
Choice questions: matched against the answer marked correct
Fill-in-the-blank: fixed partial credit until graded manually
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.models import (
    Assessment, Question, UserAssessmentAttempt, UserAnswer, UserProgress,
    CompletionStatus, QuestionType
)
from app.schemas.quiz import SubmittedAnswer
from app.services.exceptions import NotFoundError
from app.utils.cache import cache_service

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class QuestionOutcome:
    question_id: int
    points: int
    earned: float
    credit: float  # 1 correct, FILL_BLANK credit for text answers, 0 otherwise


@dataclass
class GradeResult:
    """Points and correctness of one submission"""
    total_points: float = 0.0
    earned_points: float = 0.0
    correct_answers: float = 0.0
    outcomes: List[QuestionOutcome] = field(default_factory=list)

    @property
    def score(self) -> float:
        """Percentage of answered points earned, 0 when nothing was answered"""
        if self.total_points <= 0:
            return 0.0
        return self.earned_points / self.total_points * 100


class ScoringService:
    """
    Service for grading submissions and recording attempts

    Only questions with a submission count toward the total; unanswered
    questions neither earn nor cost points.
    """

    def __init__(self, fill_blank_credit: float = None):
        self.fill_blank_credit = (
            settings.FILL_BLANK_CREDIT if fill_blank_credit is None else fill_blank_credit
        )

    def grade_submission(
        self,
        questions: Iterable[Question],
        submissions: Mapping[int, SubmittedAnswer]
    ) -> GradeResult:
        """
        Grade submitted answers against an assessment's questions

        Args:
            questions: Questions of the assessment, with answers loaded
            submissions: Submitted answer per question id

        Returns:
            GradeResult with totals and per-question outcomes
        """
        result = GradeResult()

        for question in questions:
            submission = submissions.get(question.id)
            if submission is None:
                continue

            result.total_points += question.points

            if QuestionType(question.question_type).is_choice:
                credit = self._grade_choice(question, submission)
            else:
                credit = self._grade_fill_blank(submission)

            earned = question.points * credit
            result.earned_points += earned
            result.correct_answers += credit
            result.outcomes.append(QuestionOutcome(
                question_id=question.id,
                points=question.points,
                earned=earned,
                credit=credit
            ))

        return result

    def _grade_choice(self, question: Question, submission: SubmittedAnswer) -> float:
        """Full credit when the selected answer is one marked correct on this question"""
        if submission.answer_id is None:
            return 0.0
        for answer in question.answers:
            if answer.id == submission.answer_id:
                return 1.0 if answer.is_correct else 0.0
        return 0.0

    def _grade_fill_blank(self, submission: SubmittedAnswer) -> float:
        """Fixed partial credit for any non-empty text until graded manually"""
        if submission.text_answer:
            return self.fill_blank_credit
        return 0.0

    def submit_assessment(
        self,
        db: Session,
        user_id: int,
        assessment_id: int,
        answers: List[Any],
        time_spent_seconds: int = 0
    ) -> Dict[str, Any]:
        """
        Grade a submission and record it as a new attempt

        The attempt and, for a passing attempt, the module progress update
        are committed together.

        Args:
            db: Database session
            user_id: Submitting user
            assessment_id: Assessment being answered
            answers: SubmittedAnswer objects (or dicts of the same shape)
            time_spent_seconds: Time the user spent on the attempt

        Returns:
            Dictionary with the attempt summary and feedback

        Raises:
            NotFoundError: assessment does not exist
        """
        assessment = db.query(Assessment).options(
            selectinload(Assessment.questions).selectinload(Question.answers)
        ).filter(Assessment.id == assessment_id).first()

        if not assessment:
            raise NotFoundError("Assessment not found")

        submissions: Dict[int, SubmittedAnswer] = {}
        for answer in answers:
            if isinstance(answer, dict):
                answer = SubmittedAnswer(**answer)
            submissions[answer.question_id] = answer

        grade = self.grade_submission(assessment.questions, submissions)
        score = grade.score
        meets_threshold = score >= assessment.pass_threshold

        time_spent_minutes = time_spent_seconds / 60
        within_time_limit = (
            assessment.time_limit is None or time_spent_minutes <= assessment.time_limit
        )
        is_passed = meets_threshold and within_time_limit

        previous_attempts = db.query(UserAssessmentAttempt).filter(
            UserAssessmentAttempt.user_id == user_id,
            UserAssessmentAttempt.assessment_id == assessment_id
        ).count()

        now = utcnow()
        questions_by_id = {q.id: q for q in assessment.questions}

        try:
            attempt = UserAssessmentAttempt(
                user_id=user_id,
                assessment_id=assessment_id,
                started_at=now - timedelta(seconds=time_spent_seconds),
                completed_at=now,
                score=score,
                is_passed=is_passed,
                attempt_number=previous_attempts + 1,
                time_spent_seconds=time_spent_seconds
            )

            for question_id, submission in submissions.items():
                question = questions_by_id.get(question_id)
                if question is None:
                    continue
                answer_ids = {a.id for a in question.answers}
                attempt.user_answers.append(UserAnswer(
                    user_id=user_id,
                    question_id=question_id,
                    answer_id=submission.answer_id if submission.answer_id in answer_ids else None,
                    text_answer=submission.text_answer
                ))

            db.add(attempt)
            db.flush()

            if is_passed and assessment.module_id is not None:
                self._mark_module_completed(db, user_id, assessment.module_id, grade.earned_points, now)

            db.commit()
        except Exception as e:
            logger.error(f"Failed to record attempt for assessment {assessment_id}: {str(e)}")
            db.rollback()
            raise

        cache_service.invalidate_progress(user_id)

        logger.info(
            f"Attempt recorded: id={attempt.id}, user={user_id}, assessment={assessment_id}, "
            f"score={score:.2f}, passed={is_passed}, attempt_number={attempt.attempt_number}"
        )

        return {
            "attempt": {
                "id": attempt.id,
                "score": score,
                "is_passed": is_passed,
                "points_earned": grade.earned_points,
                "attempt_number": attempt.attempt_number,
            },
            "feedback": {
                "total_questions": len(assessment.questions),
                "correct_answers": grade.correct_answers,
                "time_spent": time_spent_minutes,
                "within_time_limit": within_time_limit,
            },
        }

    def _mark_module_completed(
        self,
        db: Session,
        user_id: int,
        module_id: int,
        earned_points: float,
        now: datetime
    ) -> UserProgress:
        """Upsert the user's module progress as completed and add the earned points"""
        progress = db.query(UserProgress).filter(
            UserProgress.user_id == user_id,
            UserProgress.module_id == module_id
        ).first()

        if not progress:
            progress = UserProgress(user_id=user_id, module_id=module_id, points_earned=0.0)
            db.add(progress)

        progress.completion_status = CompletionStatus.COMPLETED
        progress.progress_percentage = 100.0
        progress.points_earned = (progress.points_earned or 0.0) + earned_points
        progress.last_accessed_at = now
        if progress.completed_at is None:
            progress.completed_at = now

        db.flush()
        logger.info(f"Module {module_id} completed by user {user_id} (+{earned_points} points)")
        return progress

    def get_attempt(self, db: Session, attempt_id: int) -> Optional[UserAssessmentAttempt]:
        return db.query(UserAssessmentAttempt).filter(UserAssessmentAttempt.id == attempt_id).first()

    def get_attempt_details(self, db: Session, attempt_id: int) -> Dict[str, Any]:
        """
        Question-by-question breakdown of a stored attempt

        Raises:
            NotFoundError: attempt does not exist
        """
        attempt = db.query(UserAssessmentAttempt).options(
            selectinload(UserAssessmentAttempt.assessment).selectinload(Assessment.learning_module),
            selectinload(UserAssessmentAttempt.user_answers).selectinload(UserAnswer.question),
            selectinload(UserAssessmentAttempt.user_answers).selectinload(UserAnswer.answer)
        ).filter(UserAssessmentAttempt.id == attempt_id).first()

        if not attempt:
            raise NotFoundError("Assessment attempt not found")

        questions = []
        for user_answer in attempt.user_answers:
            answer = user_answer.answer
            is_correct = bool(answer and answer.is_correct)
            questions.append({
                "question_id": user_answer.question_id,
                "question_text": user_answer.question.question_text,
                "question_type": user_answer.question.question_type,
                "difficulty": user_answer.question.difficulty_level,
                "points": user_answer.question.points,
                "answer_id": user_answer.answer_id,
                "answer_text": answer.answer_text if answer else user_answer.text_answer,
                "is_correct": is_correct,
                "explanation": answer.explanation if answer else None,
            })

        total_questions = len(questions)
        correct_answers = sum(1 for q in questions if q["is_correct"])
        module = attempt.assessment.learning_module

        return {
            "attempt": {
                "id": attempt.id,
                "user_id": attempt.user_id,
                "assessment_id": attempt.assessment_id,
                "title": attempt.assessment.title,
                "module_id": attempt.assessment.module_id,
                "module_title": module.title if module else None,
                "score": attempt.score,
                "is_passed": attempt.is_passed,
                "attempt_number": attempt.attempt_number,
                "completed_at": attempt.completed_at,
                "time_spent_seconds": attempt.time_spent_seconds,
            },
            "results": {
                "total_questions": total_questions,
                "correct_answers": correct_answers,
                "incorrect_answers": total_questions - correct_answers,
                "accuracy": (correct_answers / total_questions * 100) if total_questions > 0 else 0.0,
            },
            "questions": questions,
        }


# Global instance
scoring_service = ScoringService()
