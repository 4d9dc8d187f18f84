"""
Unit tests for workspace update broadcasting.
"""

import pytest

from tabmind.workspace.broadcast import WORKSPACE_UPDATED, Broadcaster, WorkspaceEvent


class TestBroadcaster:
    @pytest.mark.asyncio
    async def test_publish_without_subscribers(self):
        assert await Broadcaster().publish(WorkspaceEvent(type=WORKSPACE_UPDATED)) == 0

    @pytest.mark.asyncio
    async def test_delivers_to_every_subscriber(self):
        broadcaster = Broadcaster()
        received = []

        async def first(event):
            received.append(("first", event.type))

        async def second(event):
            received.append(("second", event.data["clusters"]))

        broadcaster.subscribe(first)
        broadcaster.subscribe(second)
        delivered = await broadcaster.publish(WorkspaceEvent(type=WORKSPACE_UPDATED, data={"clusters": []}))

        assert delivered == 2
        assert received == [("first", WORKSPACE_UPDATED), ("second", [])]

    @pytest.mark.asyncio
    async def test_failing_subscriber_is_skipped(self):
        broadcaster = Broadcaster()
        received = []

        async def broken(event):
            raise ConnectionError("socket closed")

        async def healthy(event):
            received.append(event)

        broadcaster.subscribe(broken)
        broadcaster.subscribe(healthy)

        assert await broadcaster.publish(WorkspaceEvent(type=WORKSPACE_UPDATED)) == 1
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        broadcaster = Broadcaster()
        received = []

        async def listener(event):
            received.append(event)

        unsubscribe = broadcaster.subscribe(listener)
        unsubscribe()
        unsubscribe()

        await broadcaster.publish(WorkspaceEvent(type=WORKSPACE_UPDATED))
        assert received == []
        assert broadcaster.subscriber_count == 0
