"""Ingestion endpoints for host lifecycle events."""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..observability.logging import set_log_context
from ..services.events import CommentPosted, EventBus, PostSaved, UserLoggedIn
from .deps import get_event_bus

logger = logging.getLogger(__name__)

router = APIRouter()


class LoginEventRequest(BaseModel):
    user_id: int


class PostEventRequest(BaseModel):
    post_id: int
    author_id: int
    post_type: str = "post"
    is_update: bool = False
    is_revision: bool = False


class CommentEventRequest(BaseModel):
    comment_id: int
    user_id: Optional[int] = None
    approval_status: Union[bool, int, str]


class EventAccepted(BaseModel):
    accepted: bool = True
    handlers: int


@router.post("/events/login", status_code=202, response_model=EventAccepted)
async def user_logged_in(body: LoginEventRequest, bus: EventBus = Depends(get_event_bus)):
    set_log_context(user_id=body.user_id)
    handlers = await bus.publish(UserLoggedIn(user_id=body.user_id))
    return EventAccepted(handlers=handlers)


@router.post("/events/post", status_code=202, response_model=EventAccepted)
async def post_saved(body: PostEventRequest, bus: EventBus = Depends(get_event_bus)):
    set_log_context(user_id=body.author_id)
    handlers = await bus.publish(
        PostSaved(
            post_id=body.post_id,
            author_id=body.author_id,
            post_type=body.post_type,
            is_update=body.is_update,
            is_revision=body.is_revision,
        )
    )
    return EventAccepted(handlers=handlers)


@router.post("/events/comment", status_code=202, response_model=EventAccepted)
async def comment_posted(body: CommentEventRequest, bus: EventBus = Depends(get_event_bus)):
    if body.user_id is not None:
        set_log_context(user_id=body.user_id)
    handlers = await bus.publish(
        CommentPosted(
            comment_id=body.comment_id,
            user_id=body.user_id,
            approval_status=body.approval_status,
        )
    )
    return EventAccepted(handlers=handlers)
