"""
ProjectRepository for database operations on projects and their child records
"""

import uuid
from typing import List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from database_models import (
    Canvas,
    Conversation,
    Frame,
    Project,
    ProjectCreateRequest,
    UserCanvas,
    UserProject,
    utcnow,
)


class ProjectRepository:
    """
    Repository class for Project database operations.

    Methods only flush; the calling service owns the transaction boundary.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert_project(self, values: dict) -> Optional[Project]:
        """Insert a project row and return it, or None if no row came back."""
        result = await self.db.execute(
            insert(Project).values(**values).returning(Project)
        )
        return result.scalar_one_or_none()

    async def get_project(self, project_id: uuid.UUID) -> Optional[Project]:
        result = await self.db.execute(
            select(Project).where(Project.id == project_id)
        )
        return result.scalar_one_or_none()

    async def get_project_with_children(self, project_id: uuid.UUID) -> Optional[Project]:
        result = await self.db.execute(
            select(Project)
            .options(
                selectinload(Project.canvas).selectinload(Canvas.frames),
                selectinload(Project.canvas).selectinload(Canvas.user_canvases),
                selectinload(Project.conversations),
            )
            .where(Project.id == project_id)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: uuid.UUID) -> List[Project]:
        result = await self.db.execute(
            select(Project)
            .join(UserProject, UserProject.project_id == Project.id)
            .where(UserProject.user_id == user_id)
        )
        return list(result.scalars().all())

    async def update_project(self, project_id: uuid.UUID, values: dict) -> None:
        await self.db.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(**values, updated_at=utcnow())
        )

    async def delete_project(self, project_id: uuid.UUID) -> None:
        """Delete a project together with every record hanging off it."""
        canvas_ids = select(Canvas.id).where(Canvas.project_id == project_id)

        await self.db.execute(delete(Frame).where(Frame.canvas_id.in_(canvas_ids)))
        await self.db.execute(delete(UserCanvas).where(UserCanvas.canvas_id.in_(canvas_ids)))
        await self.db.execute(delete(Canvas).where(Canvas.project_id == project_id))
        await self.db.execute(delete(Conversation).where(Conversation.project_id == project_id))
        await self.db.execute(delete(ProjectCreateRequest).where(ProjectCreateRequest.project_id == project_id))
        await self.db.execute(delete(UserProject).where(UserProject.project_id == project_id))
        await self.db.execute(delete(Project).where(Project.id == project_id))
