"""
UserAssessmentAttempt and UserAnswer models - immutable submission records
"""
from sqlalchemy import Column, Integer, Float, Boolean, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class UserAssessmentAttempt(Base):
    """
    Attempts table - one row per submission, never updated after insert
    """
    __tablename__ = "user_assessment_attempts"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    assessment_id = Column(Integer, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=False, index=True)
    score = Column(Float, nullable=False, default=0.0)  # 0-100
    is_passed = Column(Boolean, nullable=False, default=False)
    attempt_number = Column(Integer, nullable=False, default=1)  # 1-based per user+assessment
    time_spent_seconds = Column(Integer, nullable=False, default=0)
    
    assessment = relationship("Assessment", back_populates="attempts")
    user_answers = relationship(
        "UserAnswer",
        back_populates="attempt",
        order_by="UserAnswer.id",
        cascade="all, delete-orphan"
    )
    
    def __repr__(self):
        return f"<UserAssessmentAttempt(id={self.id}, user_id={self.user_id}, score={self.score})>"


class UserAnswer(Base):
    """
    User answers table - one row per question answered in an attempt
    """
    __tablename__ = "user_answers"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    attempt_id = Column(Integer, ForeignKey("user_assessment_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    answer_id = Column(Integer, ForeignKey("answers.id", ondelete="SET NULL"))  # NULL for free text
    text_answer = Column(Text)
    
    attempt = relationship("UserAssessmentAttempt", back_populates="user_answers")
    question = relationship("Question")
    answer = relationship("Answer")
    
    def __repr__(self):
        return f"<UserAnswer(attempt_id={self.attempt_id}, question_id={self.question_id}, answer_id={self.answer_id})>"
