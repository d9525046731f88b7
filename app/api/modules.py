"""
Learning module API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
import logging

from app.database import get_db
from app.models import UserRole
from app.schemas.assessment import ModuleCreate, ModuleUpdate, ModuleResponse
from app.services.module_service import module_service
from app.utils.auth import CurrentUser, get_current_user, require_roles

router = APIRouter(prefix="/api/modules", tags=["modules"])
logger = logging.getLogger(__name__)

authors_only = require_roles(UserRole.ADMIN, UserRole.INSTRUCTOR)
admin_only = require_roles(UserRole.ADMIN)


@router.post("", response_model=ModuleResponse, status_code=201)
async def create_module(
    request: ModuleCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Create a learning module that assessments can be attached to"""
    module = module_service.create_module(db, request)
    logger.info(f"Module {module.id} created by user {user.id}")
    return ModuleResponse.model_validate(module)


@router.get("", response_model=List[ModuleResponse])
async def list_modules(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    return [ModuleResponse.model_validate(m) for m in module_service.list_modules(db)]


@router.get("/{module_id}", response_model=ModuleResponse)
async def get_module(
    module_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    return ModuleResponse.model_validate(module_service.get_module(db, module_id))


@router.put("/{module_id}", response_model=ModuleResponse)
async def update_module(
    module_id: int,
    request: ModuleUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(authors_only)
):
    """Update the fields of a module present in the request"""
    module = module_service.update_module(db, module_id, request)
    return ModuleResponse.model_validate(module)


@router.delete("/{module_id}")
async def delete_module(
    module_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(admin_only)
):
    """
    Delete a learning module (admins only)

    Its assessments stay available without a module; progress for it is removed.
    """
    module_service.delete_module(db, module_id)
    logger.info(f"Module {module_id} deleted by user {user.id}")
    return {"message": "Learning module deleted successfully"}
