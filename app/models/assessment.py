"""
Assessment, Question and Answer models - authored and generated quizzes
"""
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Float, DateTime, Enum, ForeignKey, func
)
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.enums import QuestionType, DifficultyLevel


class Assessment(Base):
    """
    Assessments table - a gradable set of questions tied to a learning module
    """
    __tablename__ = "assessments"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    time_limit = Column(Float)  # minutes, NULL = unlimited
    pass_threshold = Column(Float, nullable=False, default=70)  # percentage
    is_active = Column(Boolean, nullable=False, default=True)
    randomize_questions = Column(Boolean, nullable=False, default=False)
    module_id = Column(Integer, ForeignKey("learning_modules.id"), index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    
    learning_module = relationship("LearningModule", back_populates="assessments")
    questions = relationship(
        "Question",
        back_populates="assessment",
        order_by=lambda: [Question.order_index, Question.id],
        cascade="all, delete-orphan"
    )
    attempts = relationship(
        "UserAssessmentAttempt",
        back_populates="assessment",
        cascade="all, delete-orphan"
    )
    
    def __repr__(self):
        return f"<Assessment(id={self.id}, title={self.title}, module_id={self.module_id})>"


class Question(Base):
    """
    Questions table - ordered within an assessment by order_index
    """
    __tablename__ = "questions"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(Enum(QuestionType), nullable=False, default=QuestionType.MULTIPLE_CHOICE)
    difficulty_level = Column(Enum(DifficultyLevel), nullable=False, default=DifficultyLevel.BEGINNER, index=True)
    points = Column(Integer, nullable=False, default=1)
    order_index = Column(Integer, nullable=False, default=0)
    explanation = Column(Text)
    assessment_id = Column(Integer, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    
    assessment = relationship("Assessment", back_populates="questions")
    answers = relationship(
        "Answer",
        back_populates="question",
        order_by=lambda: [Answer.order_index, Answer.id],
        cascade="all, delete-orphan"
    )
    
    def __repr__(self):
        return f"<Question(id={self.id}, type={self.question_type}, assessment_id={self.assessment_id})>"


class Answer(Base):
    """
    Answers table - options of a question, at least one marked correct
    """
    __tablename__ = "answers"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    answer_text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    explanation = Column(Text)
    order_index = Column(Integer, nullable=False, default=0)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    
    question = relationship("Question", back_populates="answers")
    
    def __repr__(self):
        return f"<Answer(id={self.id}, question_id={self.question_id}, correct={self.is_correct})>"
