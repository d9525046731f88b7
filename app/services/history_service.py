"""
Attempt history and assessment progress analytics
"""
import logging
import math
from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from app.models import Assessment, UserAssessmentAttempt, UserAnswer, DifficultyLevel
from app.services.exceptions import InvalidRequestError
from app.utils.cache import cache_service

logger = logging.getLogger(__name__)


class HistoryService:
    """Service for reporting a user's past attempts"""

    RECENT_ATTEMPTS = 5

    def get_user_assessment_history(
        self,
        db: Session,
        user_id: int,
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        """
        Get a page of the user's attempts, most recently completed first

        Attempts completed at the same instant are ordered by id, newest first.

        Args:
            db: Database session
            user_id: User id
            page: 1-based page number
            limit: Page size

        Returns:
            Dictionary with the attempts and a pagination envelope
        """
        if page < 1 or limit < 1:
            raise InvalidRequestError("page and limit must be positive")

        query = db.query(UserAssessmentAttempt).filter(UserAssessmentAttempt.user_id == user_id)
        total = query.count()

        attempts = query.options(
            selectinload(UserAssessmentAttempt.assessment).selectinload(Assessment.learning_module)
        ).order_by(
            UserAssessmentAttempt.completed_at.desc(),
            UserAssessmentAttempt.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()

        data = []
        for attempt in attempts:
            module = attempt.assessment.learning_module
            data.append({
                "id": attempt.id,
                "assessment_id": attempt.assessment_id,
                "title": attempt.assessment.title,
                "module_title": module.title if module else None,
                "score": attempt.score,
                "is_passed": attempt.is_passed,
                "attempt_number": attempt.attempt_number,
                "completed_at": attempt.completed_at,
                "time_spent_seconds": attempt.time_spent_seconds,
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

    def get_user_assessment_progress(self, db: Session, user_id: int) -> Dict[str, Any]:
        """
        Get aggregate assessment performance for a user

        Returns a zero-valued summary with empty lists when the user has no
        attempts. Results are cached per user until their next submission.

        Args:
            db: Database session
            user_id: User id

        Returns:
            Dictionary with summary, per-module, per-difficulty and recent attempts
        """
        cached = cache_service.get_progress(user_id)
        if cached:
            return cached

        attempts = db.query(UserAssessmentAttempt).options(
            selectinload(UserAssessmentAttempt.assessment).selectinload(Assessment.learning_module),
            selectinload(UserAssessmentAttempt.user_answers).selectinload(UserAnswer.answer),
            selectinload(UserAssessmentAttempt.user_answers).selectinload(UserAnswer.question)
        ).filter(
            UserAssessmentAttempt.user_id == user_id
        ).order_by(
            UserAssessmentAttempt.completed_at.desc(),
            UserAssessmentAttempt.id.desc()
        ).all()

        progress = self._summarize(attempts)
        cache_service.set_progress(user_id, progress)
        return progress

    def _summarize(self, attempts: List[UserAssessmentAttempt]) -> Dict[str, Any]:
        if not attempts:
            return {
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

        total_attempts = len(attempts)
        passed_attempts = 0
        score_sum = 0.0
        total_time = 0
        total_answers = 0
        correct_answers = 0

        module_stats: Dict[Optional[int], Dict[str, Any]] = {}
        difficulty_stats = defaultdict(lambda: {"answered": 0, "correct": 0})

        for attempt in attempts:
            if attempt.is_passed:
                passed_attempts += 1
            score_sum += attempt.score or 0.0
            total_time += attempt.time_spent_seconds or 0

            for user_answer in attempt.user_answers:
                total_answers += 1
                is_correct = bool(user_answer.answer and user_answer.answer.is_correct)
                if is_correct:
                    correct_answers += 1

                if user_answer.question is not None:
                    stats = difficulty_stats[DifficultyLevel(user_answer.question.difficulty_level)]
                    stats["answered"] += 1
                    if is_correct:
                        stats["correct"] += 1

            module_id = attempt.assessment.module_id
            if module_id not in module_stats:
                module = attempt.assessment.learning_module
                module_stats[module_id] = {
                    "module_id": module_id,
                    "module_title": module.title if module else f"Module {module_id}",
                    "attempts": 0,
                    "passed": 0,
                    "score_sum": 0.0,
                }
            stats = module_stats[module_id]
            stats["attempts"] += 1
            if attempt.is_passed:
                stats["passed"] += 1
            stats["score_sum"] += attempt.score or 0.0

        by_module = [
            {
                "module_id": stats["module_id"],
                "module_title": stats["module_title"],
                "attempts": stats["attempts"],
                "pass_rate": stats["passed"] / stats["attempts"] * 100,
                "average_score": stats["score_sum"] / stats["attempts"],
            }
            for stats in module_stats.values()
        ]

        by_difficulty = [
            {
                "difficulty": level,
                "answered": difficulty_stats[level]["answered"],
                "correct": difficulty_stats[level]["correct"],
                "accuracy": difficulty_stats[level]["correct"] / difficulty_stats[level]["answered"] * 100,
            }
            for level in sorted(difficulty_stats, key=lambda level: level.rank)
        ]

        recent_attempts = []
        for attempt in attempts[:self.RECENT_ATTEMPTS]:
            module = attempt.assessment.learning_module
            recent_attempts.append({
                "id": attempt.id,
                "assessment_id": attempt.assessment_id,
                "assessment_title": attempt.assessment.title,
                "module_id": attempt.assessment.module_id,
                "module_title": module.title if module else None,
                "score": attempt.score,
                "is_passed": attempt.is_passed,
                "attempt_number": attempt.attempt_number,
                "completed_at": attempt.completed_at,
            })

        return {
            "summary": {
                "total_attempts": total_attempts,
                "pass_rate": passed_attempts / total_attempts * 100,
                "average_score": score_sum / total_attempts,
                "accuracy": (correct_answers / total_answers * 100) if total_answers > 0 else 0.0,
                "time_per_question": (total_time / total_answers) if total_answers > 0 else 0.0,
            },
            "by_module": by_module,
            "by_difficulty": by_difficulty,
            "recent_attempts": recent_attempts,
        }


# Global instance
history_service = HistoryService()
