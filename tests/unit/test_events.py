"""Unit tests for the event bus."""

import pytest

from activity_dashboard.services.events import (
    ActivityEventKind,
    CommentPosted,
    EventBus,
    PostSaved,
    UserLoggedIn,
)


class TestEvents:

    def test_events_carry_their_kind(self):
        assert UserLoggedIn(user_id=1).kind == ActivityEventKind.USER_LOGGED_IN
        assert PostSaved(post_id=1, author_id=2).kind == ActivityEventKind.POST_SAVED
        assert CommentPosted(1, None, 0).kind == ActivityEventKind.COMMENT_POSTED

    def test_post_saved_defaults_to_new_post(self):
        event = PostSaved(post_id=1, author_id=2)
        assert event.post_type == "post"
        assert event.is_update is False
        assert event.is_revision is False


class TestEventBus:

    @pytest.mark.asyncio
    async def test_handlers_run_in_subscription_order(self):
        bus = EventBus()
        calls = []

        async def first(event):
            calls.append(("first", event.user_id))

        async def second(event):
            calls.append(("second", event.user_id))

        bus.subscribe(ActivityEventKind.USER_LOGGED_IN, first)
        bus.subscribe(ActivityEventKind.USER_LOGGED_IN, second)

        assert await bus.publish(UserLoggedIn(user_id=9)) == 2
        assert calls == [("first", 9), ("second", 9)]

    @pytest.mark.asyncio
    async def test_only_matching_kind_is_dispatched(self):
        bus = EventBus()
        calls = []

        async def on_post(event):
            calls.append(event.post_id)

        bus.subscribe(ActivityEventKind.POST_SAVED, on_post)

        assert await bus.publish(UserLoggedIn(user_id=1)) == 0
        assert await bus.publish(PostSaved(post_id=3, author_id=1)) == 1
        assert calls == [3]

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBus()
        calls = []

        async def handler(event):
            calls.append(event)

        bus.subscribe("comment_posted", handler)
        bus.unsubscribe(ActivityEventKind.COMMENT_POSTED, handler)
        # Unknown handlers are ignored
        bus.unsubscribe(ActivityEventKind.COMMENT_POSTED, handler)

        assert await bus.publish(CommentPosted(1, 2, 1)) == 0
        assert calls == []

    def test_handlers_for_returns_copy(self):
        bus = EventBus()

        async def handler(event):
            pass

        bus.subscribe(ActivityEventKind.POST_SAVED, handler)
        bus.handlers_for(ActivityEventKind.POST_SAVED).clear()

        assert bus.handlers_for(ActivityEventKind.POST_SAVED) == [handler]

    @pytest.mark.asyncio
    async def test_handler_errors_propagate(self):
        bus = EventBus()

        async def boom(event):
            raise RuntimeError("handler failed")

        bus.subscribe(ActivityEventKind.USER_LOGGED_IN, boom)

        with pytest.raises(RuntimeError):
            await bus.publish(UserLoggedIn(user_id=1))
