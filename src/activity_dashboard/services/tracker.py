"""Turns host lifecycle events into activity counter increments.

Tracking never blocks the event that triggered it. Events without a user id
are skipped, and a failed write is logged and reported through the return
value, never raised to the caller.
"""

import logging
from typing import Optional, Union

from ..clock import SiteClock
from ..exceptions import StorageError
from ..models.activity import ActivityType
from ..observability.metrics import record_activity_event
from .activity_store import ActivityStore
from .events import (
    ActivityEventKind,
    CommentPosted,
    EventBus,
    PostSaved,
    UserLoggedIn,
)

logger = logging.getLogger(__name__)

TRACKED_POST_TYPE = "post"
APPROVED_STATUSES = {"1", "approve", "approved"}


def is_comment_approved(approval_status: Union[int, str, bool, None]) -> bool:
    """Whether a comment approval status means "approved".

    Hosts report approval as ``1``/``"1"`` or as a keyword; spam, trash and
    pending statuses (``0``, ``"spam"``, ...) do not count.
    """
    if approval_status is None:
        return False
    if isinstance(approval_status, bool):
        return approval_status
    return str(approval_status).strip().lower() in APPROVED_STATUSES


class ActivityTracker:
    """Event handlers over ``ActivityStore.increment``."""

    def __init__(self, store: ActivityStore, clock: SiteClock):
        self.store = store
        self.clock = clock

    async def _track(self, user_id: Optional[int], activity_type: ActivityType) -> bool:
        if not user_id:
            logger.debug("Skipping %s activity: no user to attribute it to", activity_type.value)
            record_activity_event(activity_type.value, "skipped")
            return False
        today = self.clock.today()
        try:
            await self.store.increment(user_id, today, activity_type)
        except StorageError:
            logger.exception(
                "Failed to record %s activity for user %s", activity_type.value, user_id
            )
            record_activity_event(activity_type.value, "error")
            return False

        record_activity_event(activity_type.value, "ok")
        return True

    async def on_user_logged_in(self, user_id: int) -> bool:
        return await self._track(user_id, ActivityType.LOGIN)

    async def on_post_published(
        self,
        post_id: int,
        author_id: int,
        post_type: str,
        is_update: bool,
        is_revision: bool,
    ) -> bool:
        """Count only brand-new top-level posts.

        Updates, autosaves and revisions are ignored, as are other post
        types (pages, attachments, ...).
        """
        if is_revision or is_update:
            logger.debug("Skipping post %s: update or revision", post_id)
            return False
        if post_type != TRACKED_POST_TYPE:
            logger.debug("Skipping post %s: post type %s", post_id, post_type)
            return False
        return await self._track(author_id, ActivityType.POST)

    async def on_comment_approved(
        self,
        comment_id: int,
        user_id: Optional[int],
        approval_status: Union[int, str, bool, None],
    ) -> bool:
        """Count approved comments written by registered users."""
        if not is_comment_approved(approval_status):
            logger.debug("Skipping comment %s: status %r", comment_id, approval_status)
            return False
        # Guest comments have no user to attribute them to
        if not user_id:
            logger.debug("Skipping comment %s: no registered author", comment_id)
            return False
        return await self._track(user_id, ActivityType.COMMENT)

    # --- Bus adapters ---

    async def handle_user_logged_in(self, event: UserLoggedIn) -> bool:
        return await self.on_user_logged_in(event.user_id)

    async def handle_post_saved(self, event: PostSaved) -> bool:
        return await self.on_post_published(
            event.post_id,
            event.author_id,
            event.post_type,
            event.is_update,
            event.is_revision,
        )

    async def handle_comment_posted(self, event: CommentPosted) -> bool:
        return await self.on_comment_approved(
            event.comment_id, event.user_id, event.approval_status
        )

    def register(self, bus: EventBus) -> None:
        """Subscribe the three handlers to ``bus``."""
        bus.subscribe(ActivityEventKind.USER_LOGGED_IN, self.handle_user_logged_in)
        bus.subscribe(ActivityEventKind.POST_SAVED, self.handle_post_saved)
        bus.subscribe(ActivityEventKind.COMMENT_POSTED, self.handle_comment_posted)
