"""Lifecycle events and the bus that dispatches them."""

import enum
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class ActivityEventKind(str, enum.Enum):
    """Kinds of host events the tracker listens to."""

    USER_LOGGED_IN = "user_logged_in"
    POST_SAVED = "post_saved"
    COMMENT_POSTED = "comment_posted"


@dataclass(frozen=True)
class UserLoggedIn:
    user_id: int
    kind: ActivityEventKind = field(default=ActivityEventKind.USER_LOGGED_IN, init=False)


@dataclass(frozen=True)
class PostSaved:
    post_id: int
    author_id: int
    post_type: str = "post"
    is_update: bool = False
    is_revision: bool = False
    kind: ActivityEventKind = field(default=ActivityEventKind.POST_SAVED, init=False)


@dataclass(frozen=True)
class CommentPosted:
    comment_id: int
    user_id: Optional[int]
    approval_status: Union[int, str, bool]
    kind: ActivityEventKind = field(default=ActivityEventKind.COMMENT_POSTED, init=False)


ActivityEvent = Union[UserLoggedIn, PostSaved, CommentPosted]
EventHandler = Callable[[ActivityEvent], Awaitable[object]]


class EventBus:
    """Explicit subscription list of event kind to handlers."""

    def __init__(self):
        self._handlers: Dict[ActivityEventKind, List[EventHandler]] = {
            kind: [] for kind in ActivityEventKind
        }

    def subscribe(self, kind: ActivityEventKind, handler: EventHandler) -> None:
        self._handlers[ActivityEventKind(kind)].append(handler)

    def unsubscribe(self, kind: ActivityEventKind, handler: EventHandler) -> None:
        handlers = self._handlers[ActivityEventKind(kind)]
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, kind: ActivityEventKind) -> List[EventHandler]:
        return list(self._handlers[ActivityEventKind(kind)])

    async def publish(self, event: ActivityEvent) -> int:
        """Await every handler for the event's kind in subscription order.

        Returns:
            Number of handlers invoked.
        """
        handlers = self.handlers_for(event.kind)
        if not handlers:
            logger.debug("No handlers subscribed for %s", event.kind.value)
        for handler in handlers:
            await handler(event)
        return len(handlers)
