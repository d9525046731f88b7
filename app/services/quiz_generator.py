"""
Quiz generation service
Selects questions from authored assessments, assembles new quizzes from the
module's question pool, or falls back to placeholder content
"""
import logging
import random
from typing import Any, Dict, List, Optional, Sequence, TypeVar

from sqlalchemy.orm import Session, selectinload

from app.config import settings
from app.models import Assessment, Question, Answer, LearningModule, DifficultyLevel, QuestionType
from app.services.assessment_service import serialize_assessment
from app.services.exceptions import NotFoundError, InvalidRequestError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def shuffle_items(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """
    Return a uniformly shuffled copy of items (Fisher-Yates)

    Walks from the last index down to 1, swapping each position with a
    uniformly chosen index in [0, i]. Taking the first n of the result is an
    unbiased random subset of size n.
    """
    rng = rng or random
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


class QuizGenerator:
    """
    Service for assembling a quiz for a user, module and difficulty

    Tiers, in priority order:
    1. An active assessment of the module with enough questions at the
       difficulty: serve a subset of its questions under its own id
    2. Enough questions at the difficulty across the module's active
       assessments: clone a random subset into a new assessment
    3. Otherwise: create a placeholder assessment with generic questions
    """

    # Points per placeholder question by difficulty tier
    FALLBACK_POINTS = {
        DifficultyLevel.BEGINNER: 5,
        DifficultyLevel.INTERMEDIATE: 10,
        DifficultyLevel.ADVANCED: 15,
        DifficultyLevel.EXPERT: 20,
    }

    FALLBACK_WRONG_ANSWERS = 3

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def generate_quiz(
        self,
        db: Session,
        user_id: int,
        module_id: int,
        difficulty: DifficultyLevel = DifficultyLevel.BEGINNER,
        question_count: int = None
    ) -> Dict[str, Any]:
        """
        Generate a quiz

        Args:
            db: Database session
            user_id: Requesting user
            module_id: Learning module the quiz is for
            difficulty: Difficulty tier of the questions
            question_count: Number of questions wanted

        Returns:
            Assessment dictionary with its questions and answers and the
            tier that produced it

        Raises:
            NotFoundError: module does not exist
            InvalidRequestError: question_count is not positive
        """
        if question_count is None:
            question_count = settings.DEFAULT_QUESTION_COUNT
        if question_count < 1:
            raise InvalidRequestError("questionCount must be at least 1")

        difficulty = DifficultyLevel(difficulty)

        module = db.query(LearningModule).filter(LearningModule.id == module_id).first()
        if not module:
            raise NotFoundError("Learning module not found")

        tier = 1
        quiz = self._from_existing_assessment(db, module_id, difficulty, question_count)
        if quiz is None:
            tier = 2
            quiz = self._from_question_pool(db, module_id, difficulty, question_count)
        if quiz is None:
            tier = 3
            quiz = self._create_placeholder(db, module_id, difficulty, question_count)

        quiz["generation_tier"] = tier
        logger.info(
            f"Quiz generated: user={user_id}, module={module_id}, difficulty={difficulty.value}, "
            f"tier={tier}, assessment={quiz['id']}, questions={len(quiz['questions'])}"
        )
        return quiz

    def _from_existing_assessment(
        self,
        db: Session,
        module_id: int,
        difficulty: DifficultyLevel,
        question_count: int
    ) -> Optional[Dict[str, Any]]:
        """Tier 1: reuse an authored assessment without modifying it"""
        assessments = db.query(Assessment).filter(
            Assessment.module_id == module_id,
            Assessment.is_active.is_(True)
        ).order_by(Assessment.id).all()

        for assessment in assessments:
            candidates = [q for q in assessment.questions if q.difficulty_level == difficulty]
            if len(candidates) < question_count:
                continue

            if assessment.randomize_questions:
                selected = shuffle_items(candidates, self.rng)[:question_count]
            else:
                selected = candidates[:question_count]

            return serialize_assessment(assessment, selected)

        return None

    def _from_question_pool(
        self,
        db: Session,
        module_id: int,
        difficulty: DifficultyLevel,
        question_count: int
    ) -> Optional[Dict[str, Any]]:
        """Tier 2: clone a random subset of the module's questions into a new assessment"""
        pool = db.query(Question).join(Assessment).options(
            selectinload(Question.answers)
        ).filter(
            Assessment.module_id == module_id,
            Assessment.is_active.is_(True),
            Question.difficulty_level == difficulty
        ).order_by(Question.order_index, Question.id).all()

        if len(pool) < question_count:
            return None

        selected = shuffle_items(pool, self.rng)[:question_count]

        try:
            quiz = Assessment(
                title=f"{difficulty.value} Quiz - Module {module_id}",
                description=f"Dynamically generated quiz for difficulty level: {difficulty.value}",
                time_limit=settings.GENERATED_QUIZ_TIME_LIMIT,
                pass_threshold=settings.GENERATED_PASS_THRESHOLD,
                is_active=True,
                module_id=module_id,
                randomize_questions=True
            )
            for index, source in enumerate(selected):
                quiz.questions.append(Question(
                    question_text=source.question_text,
                    question_type=source.question_type,
                    difficulty_level=source.difficulty_level,
                    points=source.points,
                    explanation=source.explanation,
                    order_index=index,
                    answers=[
                        Answer(
                            answer_text=answer.answer_text,
                            is_correct=answer.is_correct,
                            explanation=answer.explanation,
                            order_index=answer.order_index
                        )
                        for answer in source.answers
                    ]
                ))

            db.add(quiz)
            db.commit()
            db.refresh(quiz)
        except Exception:
            db.rollback()
            raise

        return serialize_assessment(quiz, quiz.questions)

    def _create_placeholder(
        self,
        db: Session,
        module_id: int,
        difficulty: DifficultyLevel,
        question_count: int
    ) -> Dict[str, Any]:
        """Tier 3: generic multiple-choice questions when real content is short"""
        points = self.FALLBACK_POINTS.get(difficulty, 5)
        time_limit = min(
            question_count * settings.FALLBACK_MINUTES_PER_QUESTION,
            settings.FALLBACK_MAX_TIME_LIMIT
        )

        try:
            quiz = Assessment(
                title=f"{difficulty.value} Quiz - Module {module_id}",
                description=f"Basic assessment for module {module_id}",
                time_limit=time_limit,
                pass_threshold=settings.GENERATED_PASS_THRESHOLD,
                is_active=True,
                module_id=module_id,
                randomize_questions=True
            )
            for i in range(question_count):
                answers = [
                    Answer(
                        answer_text="Correct answer",
                        is_correct=True,
                        explanation="This is the correct answer",
                        order_index=0
                    )
                ]
                for w in range(1, self.FALLBACK_WRONG_ANSWERS + 1):
                    answers.append(Answer(
                        answer_text=f"Wrong answer {w}",
                        is_correct=False,
                        explanation="This is incorrect",
                        order_index=w
                    ))

                quiz.questions.append(Question(
                    question_text=f"Sample {difficulty.value} question {i + 1}",
                    question_type=QuestionType.MULTIPLE_CHOICE,
                    difficulty_level=difficulty,
                    points=points,
                    order_index=i,
                    answers=answers
                ))

            db.add(quiz)
            db.commit()
            db.refresh(quiz)
        except Exception:
            db.rollback()
            raise

        logger.warning(
            f"Not enough {difficulty.value} questions for module {module_id}; "
            f"created placeholder assessment {quiz.id}"
        )
        return serialize_assessment(quiz, quiz.questions)


# Global instance
quiz_generator = QuizGenerator()
