"""
Learning module service
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from app.models import Assessment, LearningModule, UserProgress
from app.schemas.assessment import ModuleCreate, ModuleUpdate
from app.services.assessment_service import attempt_owners
from app.services.exceptions import NotFoundError, InvalidRequestError
from app.utils.cache import cache_service

logger = logging.getLogger(__name__)


class ModuleService:
    """Service for managing the learning modules assessments belong to"""

    def create_module(self, db: Session, data: ModuleCreate) -> LearningModule:
        module = LearningModule(
            title=data.title,
            description=data.description,
            is_active=data.is_active
        )
        db.add(module)
        db.commit()
        db.refresh(module)
        logger.info(f"Learning module created: {module.id}")
        return module

    def list_modules(self, db: Session) -> List[LearningModule]:
        return db.query(LearningModule).order_by(LearningModule.id).all()

    def get_module(self, db: Session, module_id: int) -> LearningModule:
        module = db.query(LearningModule).filter(LearningModule.id == module_id).first()
        if not module:
            raise NotFoundError("Learning module not found")
        return module

    def update_module(self, db: Session, module_id: int, data: ModuleUpdate) -> LearningModule:
        module = self.get_module(db, module_id)
        changes = data.model_dump(exclude_unset=True)

        for name in ("title", "is_active"):
            if name in changes and changes[name] is None:
                raise InvalidRequestError(f"{name} cannot be null")

        for name, value in changes.items():
            setattr(module, name, value)

        db.commit()
        db.refresh(module)
        logger.info(f"Learning module updated: {module_id} ({', '.join(changes) or 'no changes'})")
        return module

    def delete_module(self, db: Session, module_id: int) -> None:
        """
        Delete a learning module

        Its assessments are kept and detached from the module, so attempt
        history survives. Progress rows for the module are removed, and the
        cached progress of every affected learner is dropped.
        """
        module = self.get_module(db, module_id)

        assessment_ids = [
            assessment_id for (assessment_id,) in
            db.query(Assessment.id).filter(Assessment.module_id == module_id).all()
        ]
        affected_users = attempt_owners(db, assessment_ids)
        affected_users.update(
            user_id for (user_id,) in
            db.query(UserProgress.user_id).filter(UserProgress.module_id == module_id).all()
        )

        try:
            db.query(Assessment).filter(Assessment.module_id == module_id).update(
                {Assessment.module_id: None}, synchronize_session=False
            )
            db.query(UserProgress).filter(UserProgress.module_id == module_id).delete(
                synchronize_session=False
            )
            db.delete(module)
            db.commit()
        except Exception:
            db.rollback()
            raise

        for user_id in affected_users:
            cache_service.invalidate_progress(user_id)

        logger.info(
            f"Learning module deleted: {module_id} "
            f"({len(assessment_ids)} assessments detached, {len(affected_users)} users affected)"
        )


# Global instance
module_service = ModuleService()
