"""Tests for the FrameHub fan-out."""

from __future__ import annotations

import asyncio
import time

import pytest

from dishwatch.models.metrics import DOWNLINK, PING, Frame, MetricSpec
from dishwatch.telemetry.hub import FrameHub


def _frame(n: int, metric: MetricSpec = DOWNLINK) -> Frame:
    return Frame(metric, f"frame-{n}".encode())


class TestSubscribe:
    def test_empty_hub(self) -> None:
        hub = FrameHub()
        assert hub.subscriber_count == 0
        assert hub.published == 0

    def test_subscribe_registers(self) -> None:
        hub = FrameHub()
        hub.subscribe()
        hub.subscribe()
        assert hub.subscriber_count == 2

    def test_invalid_queue_size(self) -> None:
        with pytest.raises(ValueError):
            FrameHub(queue_size=0)

    async def test_no_replay_of_past_frames(self) -> None:
        hub = FrameHub()
        hub.publish(_frame(1))
        sub = hub.subscribe()
        hub.publish(_frame(2))
        assert await sub.get() == _frame(2)
        assert sub.pending == 0


class TestPublish:
    def test_publish_with_no_subscribers(self) -> None:
        hub = FrameHub()
        assert hub.publish(_frame(1)) == 0
        assert hub.published == 1

    async def test_delivers_to_every_subscriber(self) -> None:
        hub = FrameHub()
        subs = [hub.subscribe() for _ in range(3)]
        assert hub.publish(_frame(1)) == 3
        for sub in subs:
            assert await sub.get() == _frame(1)

    async def test_preserves_order_per_subscriber(self) -> None:
        hub = FrameHub(queue_size=8)
        sub = hub.subscribe()
        for i in range(5):
            hub.publish(_frame(i))
        assert [await sub.get() for _ in range(5)] == [_frame(i) for i in range(5)]

    async def test_full_queue_drops_oldest(self) -> None:
        hub = FrameHub(queue_size=2)
        sub = hub.subscribe()
        for i in range(5):
            hub.publish(_frame(i))
        assert sub.dropped == 3
        assert sub.delivered == 5
        assert await sub.get() == _frame(3)
        assert await sub.get() == _frame(4)

    async def test_slow_subscriber_does_not_affect_fast_one(self) -> None:
        hub = FrameHub(queue_size=1)
        slow = hub.subscribe()
        fast = hub.subscribe()
        received: list[Frame] = []
        for i in range(3):
            hub.publish(_frame(i))
            received.append(await fast.get())  # type: ignore[arg-type]
        assert received == [_frame(0), _frame(1), _frame(2)]
        assert fast.dropped == 0
        assert slow.dropped == 2
        assert await slow.get() == _frame(2)

    def test_publish_never_blocks_with_saturated_subscribers(self) -> None:
        hub = FrameHub(queue_size=1)
        for _ in range(500):
            hub.subscribe()
        start = time.monotonic()
        for i in range(100):
            assert hub.publish(_frame(i)) == 500
        # synchronous call: returning at all proves it did not wait on anyone
        assert time.monotonic() - start < 5.0

    async def test_frames_of_different_metrics_interleave(self) -> None:
        hub = FrameHub()
        sub = hub.subscribe()
        hub.publish(_frame(1, DOWNLINK))
        hub.publish(_frame(1, PING))
        assert (await sub.get()).metric is DOWNLINK  # type: ignore[union-attr]
        assert (await sub.get()).metric is PING  # type: ignore[union-attr]


class TestUnsubscribe:
    async def test_unsubscribe_removes(self) -> None:
        hub = FrameHub()
        sub = hub.subscribe()
        hub.unsubscribe(sub)
        assert hub.subscriber_count == 0
        assert hub.publish(_frame(1)) == 0
        assert await sub.get() is None

    def test_unsubscribe_is_idempotent(self) -> None:
        hub = FrameHub()
        sub = hub.subscribe()
        hub.unsubscribe(sub)
        hub.unsubscribe(sub)
        sub.close()
        assert hub.subscriber_count == 0
        assert sub.closed

    async def test_pending_frames_discarded_on_unsubscribe(self) -> None:
        hub = FrameHub()
        sub = hub.subscribe()
        hub.publish(_frame(1))
        hub.publish(_frame(2))
        sub.close()
        assert sub.pending == 0
        assert await sub.get() is None

    async def test_unsubscribe_wakes_blocked_consumer(self) -> None:
        hub = FrameHub()
        sub = hub.subscribe()
        waiter = asyncio.create_task(sub.get())
        await asyncio.sleep(0)
        assert not waiter.done()

        hub.unsubscribe(sub)
        assert await asyncio.wait_for(waiter, timeout=1.0) is None

    async def test_no_frame_after_unsubscribe_during_publish_burst(self) -> None:
        hub = FrameHub(queue_size=4)
        subs = [hub.subscribe() for _ in range(20)]

        async def producer() -> None:
            for i in range(200):
                hub.publish(_frame(i))
                await asyncio.sleep(0)

        async def churn() -> None:
            for sub in subs:
                await asyncio.sleep(0)
                hub.unsubscribe(sub)
                assert await sub.get() is None
                hub.subscribe()

        await asyncio.gather(producer(), churn())
        for sub in subs:
            assert sub.closed
            assert sub.pending == 0

    async def test_closed_subscription_found_in_publish_is_dropped(self) -> None:
        hub = FrameHub()
        sub = hub.subscribe()
        sub._shutdown()  # closed without going through the hub
        assert hub.publish(_frame(1)) == 0
        assert hub.subscriber_count == 0

    async def test_subscribe_while_iterating(self) -> None:
        hub = FrameHub()
        sub = hub.subscribe()
        hub.publish(_frame(1))
        late = hub.subscribe()
        hub.publish(_frame(2))
        assert await sub.get() == _frame(1)
        assert await sub.get() == _frame(2)
        assert await late.get() == _frame(2)


class TestSubscriptionIteration:
    async def test_async_for_ends_on_close(self) -> None:
        hub = FrameHub()
        sub = hub.subscribe()
        hub.publish(_frame(1))
        hub.publish(_frame(2))

        seen: list[Frame] = []
        async for frame in sub:
            seen.append(frame)
            if len(seen) == 2:
                sub.close()
        assert seen == [_frame(1), _frame(2)]

    async def test_context_manager_unsubscribes(self) -> None:
        hub = FrameHub()
        async with hub.subscription() as sub:
            assert hub.subscriber_count == 1
            hub.publish(_frame(1))
            assert await sub.get() == _frame(1)
        assert hub.subscriber_count == 0
        assert sub.closed

    async def test_context_manager_unsubscribes_on_error(self) -> None:
        hub = FrameHub()
        with pytest.raises(RuntimeError):
            async with hub.subscription():
                raise RuntimeError("viewer crashed")
        assert hub.subscriber_count == 0
