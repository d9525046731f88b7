"""
Pydantic schemas for learning modules, assessments, questions and answers
"""
from datetime import datetime
from pydantic import Field
from typing import List, Optional

from app.models.enums import QuestionType, DifficultyLevel
from app.schemas.common import CamelModel, PaginationMeta


class ModuleCreate(CamelModel):
    """Schema for creating a learning module"""
    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    is_active: bool = True


class ModuleUpdate(CamelModel):
    """Fields of a module that may be changed; unset fields are left alone"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ModuleResponse(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    is_active: bool


class AnswerCreate(CamelModel):
    """Schema for adding an answer option to a question"""
    answer_text: str = Field(..., min_length=1)
    is_correct: bool = False
    explanation: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)


class AnswerUpdate(CamelModel):
    """Fields of an answer that may be changed; unset fields are left alone"""
    answer_text: Optional[str] = Field(None, min_length=1)
    is_correct: Optional[bool] = None
    explanation: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)


class AnswerResponse(CamelModel):
    """Answer with correctness, for authors and graded results"""
    id: int
    answer_text: str
    is_correct: bool
    explanation: Optional[str] = None
    order_index: int


class AnswerOption(CamelModel):
    """Answer as shown to a learner taking a quiz"""
    id: int
    answer_text: str
    order_index: int


class QuestionCreate(CamelModel):
    """Schema for authoring a question, optionally with its answers"""
    question_text: str = Field(..., min_length=1)
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    difficulty_level: DifficultyLevel = DifficultyLevel.BEGINNER
    points: int = Field(1, ge=1)
    explanation: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)
    answers: List[AnswerCreate] = []


class QuestionUpdate(CamelModel):
    """Fields of a question that may be changed; unset fields are left alone"""
    question_text: Optional[str] = Field(None, min_length=1)
    question_type: Optional[QuestionType] = None
    difficulty_level: Optional[DifficultyLevel] = None
    points: Optional[int] = Field(None, ge=1)
    explanation: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)


class QuestionResponse(CamelModel):
    id: int
    assessment_id: int
    question_text: str
    question_type: QuestionType
    difficulty_level: DifficultyLevel
    points: int
    explanation: Optional[str] = None
    order_index: int
    answers: List[AnswerResponse] = []


class QuestionListEntry(QuestionResponse):
    assessment_title: Optional[str] = None


class QuestionListResponse(CamelModel):
    data: List[QuestionListEntry]
    pagination: PaginationMeta


class QuizQuestion(CamelModel):
    """Question as shown to a learner taking a quiz"""
    id: int
    question_text: str
    question_type: QuestionType
    difficulty_level: DifficultyLevel
    points: int
    order_index: int
    answers: List[AnswerOption] = []


class AssessmentCreate(CamelModel):
    """Schema for creating an assessment"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    module_id: int
    time_limit: Optional[float] = Field(15, gt=0, description="Minutes, null for unlimited")
    pass_threshold: float = Field(70, ge=0, le=100)
    is_active: bool = True
    randomize_questions: bool = False


class AssessmentUpdate(CamelModel):
    """Fields of an assessment that may be changed; unset fields are left alone"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    module_id: Optional[int] = None
    time_limit: Optional[float] = Field(None, gt=0)
    pass_threshold: Optional[float] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None
    randomize_questions: Optional[bool] = None


class AssessmentResponse(CamelModel):
    """Full assessment with questions and graded answers"""
    id: int
    title: str
    description: Optional[str] = None
    module_id: Optional[int] = None
    module_title: Optional[str] = None
    time_limit: Optional[float] = None
    pass_threshold: float
    is_active: bool
    randomize_questions: bool
    questions: List[QuestionResponse] = []


class AssessmentSummary(CamelModel):
    """Assessment list entry"""
    id: int
    title: str
    description: Optional[str] = None
    module_id: Optional[int] = None
    module_title: Optional[str] = None
    time_limit: Optional[float] = None
    pass_threshold: float
    is_active: bool
    randomize_questions: bool
    question_count: int
    updated_at: Optional[datetime] = None


class AssessmentListResponse(CamelModel):
    data: List[AssessmentSummary]
    pagination: PaginationMeta


class ReorderRequest(CamelModel):
    """New order of child ids; position in the list becomes order_index"""
    ordered_ids: List[int] = Field(..., min_length=1)


class BulkImportRequest(CamelModel):
    questions: List[QuestionCreate] = Field(..., min_length=1)


class AssessmentView(CamelModel):
    """Assessment as shown to a learner, without answer keys"""
    id: int
    title: str
    description: Optional[str] = None
    module_id: Optional[int] = None
    module_title: Optional[str] = None
    time_limit: Optional[float] = None
    pass_threshold: float
    is_active: bool
    randomize_questions: bool
    questions: List[QuizQuestion] = []
