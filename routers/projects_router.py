"""
Projects Router - RPC-style endpoints for the project workflow
"""
import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from backend.utils.responses import success_response, error_response
from database import get_db
from models.project import CreateProjectRequest, GenerateNameRequest, ProjectUpdate
from services.analytics_service import AnalyticsService
from services.project_name_service import ProjectNameService
from services.project_service import ProjectCreationError, ProjectService
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])


def get_project_service(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db, AnalyticsService())


def get_project_name_service() -> ProjectNameService:
    return ProjectNameService()


@router.get("")
async def list_projects(
    current_user: dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    """The caller's projects, most recently updated first"""
    projects = await service.list_projects(current_user["user_id"])
    return success_response(projects)


@router.get("/preview/{user_id}")
async def get_preview_projects(
    user_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    projects = await service.get_preview_projects(user_id)
    return success_response(projects)


@router.post("/generate-name")
async def generate_name(
    request: GenerateNameRequest,
    current_user: dict = Depends(get_current_user),
    name_service: ProjectNameService = Depends(get_project_name_service),
):
    """Suggest a project name; falls back to a fixed default on any failure"""
    name = await name_service.generate_name(request.prompt)
    return success_response(name)


@router.post("")
async def create_project(
    request: CreateProjectRequest,
    current_user: dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    """
    Create a project with its default canvas, frame and conversation.
    Nothing is stored if any insert fails.
    """
    try:
        project = await service.create_project(
            project=request.project,
            user_id=request.user_id,
            creation_data=request.creation_data,
        )
    except ProjectCreationError as e:
        logger.error(f"Project creation failed: {e}")
        log_endpoint_event("/projects/create", str(current_user["user_id"]), "error", {"error": str(e)})
        return error_response("project_creation_failed", status=500, message=str(e))
    except SQLAlchemyError as e:
        logger.error(f"Project creation failed: {e}", exc_info=True)
        log_endpoint_event("/projects/create", str(current_user["user_id"]), "error", {"error": type(e).__name__})
        return error_response("project_creation_failed", status=500, message="Failed to create project")

    log_endpoint_event("/projects/create", str(current_user["user_id"]), "success", {"project_id": project.id})
    return success_response(project, message="Project created")


@router.get("/{project_id}")
async def get_project(
    project_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    """Project or null when it does not exist"""
    project = await service.get_project(project_id)
    return success_response(project)


@router.get("/{project_id}/full")
async def get_full_project(
    project_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    full_project = await service.get_full_project(project_id, current_user["user_id"])
    return success_response(full_project)


@router.patch("/{project_id}")
async def update_project(
    project_id: uuid.UUID,
    changes: ProjectUpdate,
    current_user: dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    await service.update_project(project_id, changes)
    return success_response(None, message="Project updated")


@router.delete("/{project_id}")
async def delete_project(
    project_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    await service.delete_project(project_id)
    log_endpoint_event("/projects/delete", str(current_user["user_id"]), "success", {"project_id": project_id})
    return success_response(None, message="Project deleted")
