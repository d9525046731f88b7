"""
Database models package
"""
from app.models.enums import QuestionType, DifficultyLevel, CompletionStatus, UserRole
from app.models.learning_module import LearningModule
from app.models.assessment import Assessment, Question, Answer
from app.models.attempt import UserAssessmentAttempt, UserAnswer
from app.models.user_progress import UserProgress

__all__ = [
    "QuestionType", "DifficultyLevel", "CompletionStatus", "UserRole",
    "LearningModule", "Assessment", "Question", "Answer",
    "UserAssessmentAttempt", "UserAnswer", "UserProgress",
]
