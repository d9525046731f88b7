"""
Pydantic schemas for attempt history and progress analytics
"""
from datetime import datetime
from typing import List, Optional

from app.models.enums import DifficultyLevel
from app.schemas.common import CamelModel, PaginationMeta


class HistoryEntry(CamelModel):
    id: int
    assessment_id: int
    title: str
    module_title: Optional[str] = None
    score: float
    is_passed: bool
    attempt_number: int
    completed_at: datetime
    time_spent_seconds: int


class HistoryResponse(CamelModel):
    """Paginated attempt history, most recent first"""
    data: List[HistoryEntry]
    pagination: PaginationMeta


class ProgressSummary(CamelModel):
    total_attempts: int
    pass_rate: float
    average_score: float
    accuracy: float
    time_per_question: float


class ModuleStats(CamelModel):
    module_id: Optional[int] = None
    module_title: str
    attempts: int
    pass_rate: float
    average_score: float


class DifficultyStats(CamelModel):
    difficulty: DifficultyLevel
    answered: int
    correct: int
    accuracy: float


class RecentAttempt(CamelModel):
    id: int
    assessment_id: int
    assessment_title: str
    module_id: Optional[int] = None
    module_title: Optional[str] = None
    score: float
    is_passed: bool
    attempt_number: int
    completed_at: datetime


class AssessmentProgress(CamelModel):
    """Aggregate assessment performance for a user"""
    summary: ProgressSummary
    by_module: List[ModuleStats]
    by_difficulty: List[DifficultyStats]
    recent_attempts: List[RecentAttempt]
