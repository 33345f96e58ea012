"""
Default child records created alongside every new project
"""
import uuid

from database_models import Canvas, Conversation, Frame, UserCanvas

DEFAULT_CANVAS_SCALE = 0.56
DEFAULT_CANVAS_POSITION = (120.0, 120.0)

# Desktop-sized frame placed near the canvas origin
DEFAULT_FRAME_POSITION = (150.0, 40.0)
DEFAULT_FRAME_SIZE = (1536.0, 960.0)

DEFAULT_CONVERSATION_NAME = "New Conversation"


def create_default_canvas(project_id: uuid.UUID) -> Canvas:
    return Canvas(id=uuid.uuid4(), project_id=project_id)


def create_default_user_canvas(user_id: uuid.UUID, canvas_id: uuid.UUID) -> UserCanvas:
    x, y = DEFAULT_CANVAS_POSITION
    return UserCanvas(
        user_id=user_id,
        canvas_id=canvas_id,
        scale=DEFAULT_CANVAS_SCALE,
        x=x,
        y=y,
    )


def create_default_frame(canvas_id: uuid.UUID, url: str) -> Frame:
    x, y = DEFAULT_FRAME_POSITION
    width, height = DEFAULT_FRAME_SIZE
    return Frame(
        id=uuid.uuid4(),
        canvas_id=canvas_id,
        url=url,
        x=x,
        y=y,
        width=width,
        height=height,
    )


def create_default_conversation(project_id: uuid.UUID) -> Conversation:
    return Conversation(
        id=uuid.uuid4(),
        project_id=project_id,
        display_name=DEFAULT_CONVERSATION_NAME,
    )
