"""
Unit tests for the in-process realtime broker.
"""

from datetime import datetime, timezone
from uuid import uuid4

from braindump.domain.dumps import DumpChangeEvent, DumpChangeType, DumpResponse
from braindump.infrastructure.realtime.broker import RealtimeBroker


def make_dump(text: str = "Call mom") -> DumpResponse:
    now = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)
    return DumpResponse(
        id=uuid4(), text=text, category="task", completed=False,
        created_at=now, updated_at=now,
    )


class TestRealtimeBroker:

    async def test_publish_reaches_every_stream_of_owner(self, user_id):
        broker = RealtimeBroker()
        first = broker.subscribe(user_id)
        second = broker.subscribe(user_id)
        event = DumpChangeEvent.inserted(make_dump())

        delivered = broker.publish(user_id, event)

        assert delivered == 2
        assert first.get_nowait() == event
        assert second.get_nowait() == event

    async def test_other_users_receive_nothing(self, user_id, other_user_id):
        broker = RealtimeBroker()
        theirs = broker.subscribe(other_user_id)

        delivered = broker.publish(user_id, DumpChangeEvent.deleted(uuid4()))

        assert delivered == 0
        assert theirs.empty()

    async def test_subscription_context_unsubscribes(self, user_id):
        broker = RealtimeBroker()

        async with broker.subscription(user_id) as queue:
            assert broker.subscriber_count(user_id) == 1
            broker.publish(user_id, DumpChangeEvent.deleted(uuid4()))
            assert queue.qsize() == 1

        assert broker.subscriber_count(user_id) == 0
        assert broker.publish(user_id, DumpChangeEvent.deleted(uuid4())) == 0

    async def test_full_queue_drops_for_that_subscriber_only(self, user_id):
        broker = RealtimeBroker(max_queue_size=1)
        slow = broker.subscribe(user_id)
        broker.publish(user_id, DumpChangeEvent.deleted(uuid4()))
        fresh = broker.subscribe(user_id)

        delivered = broker.publish(user_id, DumpChangeEvent.deleted(uuid4()))

        assert delivered == 1
        assert slow.qsize() == 1
        assert fresh.qsize() == 1

    async def test_unsubscribe_unknown_queue_is_noop(self, user_id):
        broker = RealtimeBroker()
        queue = broker.subscribe(user_id)
        broker.unsubscribe(user_id, queue)
        broker.unsubscribe(user_id, queue)
        assert broker.subscriber_count(user_id) == 0


class TestDumpChangeEvent:

    def test_update_event_serializes(self):
        dump = make_dump()
        payload = DumpChangeEvent.updated(dump).model_dump(mode="json")
        assert payload["type"] == "UPDATE"
        assert payload["id"] == str(dump.id)
        assert payload["dump"]["text"] == "Call mom"

    def test_delete_event_has_no_row(self):
        event = DumpChangeEvent.deleted(uuid4())
        assert event.type == DumpChangeType.DELETE
        assert event.dump is None
