"""
UserProgress model - per-user, per-module completion state
"""
from sqlalchemy import Column, Integer, Float, DateTime, Enum, ForeignKey, UniqueConstraint, func
from app.database import Base
from app.models.enums import CompletionStatus


class UserProgress(Base):
    """
    User progress table - one row per (user, module), mutated in place
    """
    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "module_id", name="uq_user_progress_user_module"),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("learning_modules.id"), nullable=False)
    completion_status = Column(Enum(CompletionStatus), nullable=False, default=CompletionStatus.NOT_STARTED)
    progress_percentage = Column(Float, nullable=False, default=0.0)
    points_earned = Column(Float, nullable=False, default=0.0)
    last_accessed_at = Column(DateTime)
    completed_at = Column(DateTime)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    
    def __repr__(self):
        return f"<UserProgress(user_id={self.user_id}, module_id={self.module_id}, status={self.completion_status})>"
