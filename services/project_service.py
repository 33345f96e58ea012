"""
Project Service - project lifecycle with all-or-nothing creation and deletion
"""
import asyncio
import logging
import uuid
from typing import List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from crud.project import ProjectRepository
from database_models import ProjectCreateRequest, UserProject, as_utc
from models.defaults import (
    create_default_canvas,
    create_default_conversation,
    create_default_frame,
    create_default_user_canvas,
)
from models.enums import ProjectCreateRequestStatus, ProjectRole
from models.project import (
    ConversationOut,
    CreationRequestData,
    FrameOut,
    FullProject,
    ProjectInsert,
    ProjectOut,
    ProjectUpdate,
    UserCanvasOut,
)
from services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

PROJECT_CREATED_EVENT = "user_create_project"

# Strong references to in-flight analytics tasks until they finish
pending_events: Set[asyncio.Task] = set()


class ProjectCreationError(Exception):
    pass


class ProjectService:
    """
    Service class for project business logic.

    Creation and deletion commit (or roll back) the session themselves so
    that no partial project is ever visible.
    """

    def __init__(self, db: AsyncSession, analytics: Optional[AnalyticsService] = None):
        """
        Args:
            db: AsyncSession instance for database operations
            analytics: Event sink for project lifecycle events
        """
        self.db = db
        self.projects = ProjectRepository(db)
        self.analytics = analytics or AnalyticsService()

    async def list_projects(self, user_id: uuid.UUID) -> List[ProjectOut]:
        """The user's projects, most recently updated first."""
        projects = await self.projects.list_for_user(user_id)
        projects.sort(key=lambda project: as_utc(project.updated_at), reverse=True)
        return [ProjectOut.model_validate(project) for project in projects]

    async def get_project(self, project_id: uuid.UUID) -> Optional[ProjectOut]:
        project = await self.projects.get_project(project_id)
        if not project:
            logger.error(f"Project {project_id} not found")
            return None
        return ProjectOut.model_validate(project)

    async def get_full_project(self, project_id: uuid.UUID, user_id: uuid.UUID) -> Optional[FullProject]:
        """
        Project with the caller's canvas view, frames and conversations.

        A project without a stored canvas (or without a view for this user)
        gets freshly built defaults that are not persisted.
        """
        project = await self.projects.get_project_with_children(project_id)
        if not project:
            logger.error(f"Project {project_id} not found")
            return None

        canvas = project.canvas or create_default_canvas(project.id)
        user_canvas = None
        if project.canvas:
            user_canvas = next(
                (view for view in project.canvas.user_canvases if view.user_id == user_id),
                None,
            )
        if user_canvas is None:
            user_canvas = create_default_user_canvas(user_id, canvas.id)

        frames = project.canvas.frames if project.canvas else []
        conversations = sorted(project.conversations, key=lambda c: as_utc(c.updated_at), reverse=True)

        return FullProject(
            project=ProjectOut.model_validate(project),
            user_canvas=UserCanvasOut.model_validate(user_canvas),
            frames=[FrameOut.model_validate(frame) for frame in frames],
            conversations=[ConversationOut.model_validate(c) for c in conversations],
        )

    async def create_project(
        self,
        project: ProjectInsert,
        user_id: uuid.UUID,
        creation_data: Optional[CreationRequestData] = None,
    ) -> ProjectOut:
        """
        Create a project with its owner link, default canvas, user canvas,
        frame and conversation, plus the optional pending creation request.

        Raises:
            ProjectCreationError: If the project insert returned no row
            Any storage error from the inserts; nothing is persisted in that case
        """
        try:
            new_project = await self.projects.insert_project(project.model_dump())
            if not new_project:
                raise ProjectCreationError("Failed to create project in database")

            self.db.add(UserProject(user_id=user_id, project_id=new_project.id, role=ProjectRole.OWNER))

            canvas = create_default_canvas(new_project.id)
            self.db.add(canvas)
            self.db.add(create_default_user_canvas(user_id, canvas.id))
            self.db.add(create_default_frame(canvas.id, project.sandbox_url))
            self.db.add(create_default_conversation(new_project.id))
            await self.db.flush()

            if creation_data:
                await self._insert_creation_request(new_project.id, creation_data)

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        result = ProjectOut.model_validate(new_project)
        self._emit_created_event(user_id, result.id)
        return result

    async def _insert_creation_request(self, project_id: uuid.UUID, creation_data: CreationRequestData) -> None:
        self.db.add(
            ProjectCreateRequest(
                project_id=project_id,
                context=creation_data.context,
                status=ProjectCreateRequestStatus.PENDING,
            )
        )
        await self.db.flush()

    def _emit_created_event(self, user_id: uuid.UUID, project_id: uuid.UUID) -> asyncio.Task:
        """Send the creation event in the background; the request does not wait for it."""
        task = asyncio.create_task(self._track_created(user_id, project_id))
        pending_events.add(task)
        task.add_done_callback(pending_events.discard)
        return task

    async def _track_created(self, user_id: uuid.UUID, project_id: uuid.UUID) -> None:
        try:
            await self.analytics.track_event(
                distinct_id=str(user_id),
                event=PROJECT_CREATED_EVENT,
                properties={"project_id": str(project_id)},
            )
        except Exception as e:
            logger.warning(f"Failed to track {PROJECT_CREATED_EVENT} for project {project_id}: {e}")

    async def delete_project(self, project_id: uuid.UUID) -> None:
        """Delete the project, its membership rows and all of its child records in one transaction."""
        try:
            await self.projects.delete_project(project_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def get_preview_projects(self, user_id: uuid.UUID) -> List[ProjectOut]:
        projects = await self.projects.list_for_user(user_id)
        return [ProjectOut.model_validate(project) for project in projects]

    async def update_project(self, project_id: uuid.UUID, changes: ProjectUpdate) -> None:
        await self.projects.update_project(project_id, changes.model_dump(exclude_unset=True))
        await self.db.flush()
