from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from models.enums import ProjectCreateRequestStatus


# Request models
class ProjectInsert(BaseModel):
    name: str = Field(..., min_length=1)
    sandbox_id: str
    sandbox_url: str
    description: Optional[str] = None
    preview_img_url: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    sandbox_id: Optional[str] = None
    sandbox_url: Optional[str] = None
    preview_img_url: Optional[str] = None


class CreationRequestData(BaseModel):
    context: List[Dict[str, Any]] = Field(default_factory=list, description="Prompt and attachments the project was created from")


class CreateProjectRequest(BaseModel):
    project: ProjectInsert
    user_id: UUID
    creation_data: Optional[CreationRequestData] = None


class GenerateNameRequest(BaseModel):
    prompt: str


# Response models
class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    sandbox_id: str
    sandbox_url: str
    preview_img_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserCanvasOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    canvas_id: UUID
    scale: float
    x: float
    y: float


class FrameOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    canvas_id: UUID
    url: str
    x: float
    y: float
    width: float
    height: float


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    display_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CreationRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    status: ProjectCreateRequestStatus


class FullProject(BaseModel):
    project: ProjectOut
    user_canvas: UserCanvasOut
    frames: List[FrameOut]
    conversations: List[ConversationOut]
