"""
LearningModule model - the unit of course content assessments belong to
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from app.database import Base


class LearningModule(Base):
    """
    Learning modules table - referenced by assessments and user progress
    """
    __tablename__ = "learning_modules"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    
    assessments = relationship("Assessment", back_populates="learning_module")
    
    def __repr__(self):
        return f"<LearningModule(id={self.id}, title={self.title})>"
