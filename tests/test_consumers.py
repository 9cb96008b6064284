from __future__ import annotations

import asyncio

import pytest

from promiventerator.consumers import ConsumerBusy, ConsumerRegistry, IterationResult, SequenceConsumer
from promiventerator.events import make_event
from promiventerator.future import CompletionFuture


def _consumer(backlog=None):
    completion: CompletionFuture[str] = CompletionFuture()
    registry = ConsumerRegistry()
    consumer: SequenceConsumer[str] = SequenceConsumer(completion, registry, list(backlog or []))
    return completion, registry, consumer


@pytest.mark.asyncio
async def test_backlog_is_drained_without_suspending():
    completion, registry, consumer = _consumer([make_event("progress", 25), make_event("complete")])

    assert consumer.state == "draining"
    assert consumer.backlog_size == 2
    assert await consumer.advance() == IterationResult(("progress", 25))
    assert await consumer.advance() == IterationResult(("complete",))
    assert consumer in registry


@pytest.mark.asyncio
async def test_waiting_consumer_receives_pushed_record():
    completion, registry, consumer = _consumer()

    task = asyncio.ensure_future(consumer.advance())
    await asyncio.sleep(0)
    assert consumer.state == "waiting"

    registry.broadcast(make_event("progress", 100))
    assert consumer.state == "draining"
    assert await task == IterationResult(("progress", 100))


@pytest.mark.asyncio
async def test_settlement_ends_waiting_consumer():
    completion, registry, consumer = _consumer()

    task = asyncio.ensure_future(consumer.advance())
    await asyncio.sleep(0)
    completion.settle("done")

    assert await task == IterationResult("done", done=True)
    assert consumer.closed is True
    assert consumer not in registry
    assert completion._callbacks == []


@pytest.mark.asyncio
async def test_event_pushed_before_settlement_wins():
    completion, registry, consumer = _consumer()

    task = asyncio.ensure_future(consumer.advance())
    await asyncio.sleep(0)
    registry.broadcast(make_event("complete"))
    completion.settle("done")

    assert await task == IterationResult(("complete",))
    assert await consumer.advance() == IterationResult("done", done=True)
    assert consumer.closed is True


@pytest.mark.asyncio
async def test_settled_future_still_drains_backlog_first():
    completion, registry, consumer = _consumer([make_event("progress", 1)])
    completion.settle("done")
    registry.broadcast(make_event("progress", 2))

    assert await consumer.advance() == IterationResult(("progress", 1))
    assert await consumer.advance() == IterationResult(("progress", 2))
    assert await consumer.advance() == IterationResult("done", done=True)
    assert consumer not in registry


@pytest.mark.asyncio
async def test_rejection_raises_from_waiting_advance():
    completion, registry, consumer = _consumer()

    task = asyncio.ensure_future(consumer.advance())
    await asyncio.sleep(0)
    completion.fail(RuntimeError("x"))

    with pytest.raises(RuntimeError, match="x"):
        await task
    assert consumer.closed is True
    with pytest.raises(RuntimeError, match="x"):
        await consumer.advance()


@pytest.mark.asyncio
async def test_concurrent_advance_is_rejected():
    completion, registry, consumer = _consumer()

    task = asyncio.ensure_future(consumer.advance())
    await asyncio.sleep(0)
    with pytest.raises(ConsumerBusy):
        await consumer.advance()

    registry.broadcast(make_event("tick", 1))
    assert await task == IterationResult(("tick", 1))


@pytest.mark.asyncio
async def test_cancelled_advance_loses_no_events():
    completion, registry, consumer = _consumer()

    task = asyncio.ensure_future(consumer.advance())
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert consumer.state == "draining"
    registry.broadcast(make_event("tick", 1))
    assert await consumer.advance() == IterationResult(("tick", 1))


@pytest.mark.asyncio
async def test_record_delivered_in_same_turn_as_cancel_is_kept():
    completion, registry, consumer = _consumer()

    task = asyncio.ensure_future(consumer.advance())
    await asyncio.sleep(0)
    registry.broadcast(make_event("tick", 1))
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    registry.broadcast(make_event("tick", 2))
    assert await consumer.advance() == IterationResult(("tick", 1))
    assert await consumer.advance() == IterationResult(("tick", 2))


@pytest.mark.asyncio
async def test_aclose_deregisters_without_waiting_for_settlement():
    completion, registry, consumer = _consumer()

    task = asyncio.ensure_future(consumer.advance())
    await asyncio.sleep(0)
    await consumer.aclose()

    assert await task == IterationResult(None, done=True)
    assert consumer.closed is True
    assert consumer not in registry
    assert completion.done() is False


@pytest.mark.asyncio
async def test_close_unblocks_pending_advance_and_settles_future():
    completion, registry, consumer = _consumer()

    task = asyncio.ensure_future(consumer.advance())
    await asyncio.sleep(0)

    closed = await consumer.close("manual")

    assert closed == IterationResult("manual", done=True)
    assert await task == IterationResult("manual", done=True)
    assert completion.value == "manual"
    assert consumer not in registry


@pytest.mark.asyncio
async def test_close_does_not_override_settled_future():
    completion, registry, consumer = _consumer()
    completion.settle("done")

    assert await consumer.close("manual") == IterationResult("done", done=True)
    assert completion.value == "done"


@pytest.mark.asyncio
async def test_closed_consumer_gets_no_more_events():
    completion, registry, consumer = _consumer([make_event("tick", 0)])
    completion.settle("done")
    await consumer.close()

    registry.broadcast(make_event("tick", 1))
    assert await consumer.advance() == IterationResult("done", done=True)
    assert await consumer.advance() == IterationResult("done", done=True)


@pytest.mark.asyncio
async def test_close_without_value_waits_for_settlement():
    completion, registry, consumer = _consumer()

    close_task = asyncio.ensure_future(consumer.close())
    await asyncio.sleep(0)
    assert close_task.done() is False
    assert completion.done() is False

    completion.settle("done")
    assert await close_task == IterationResult("done", done=True)


@pytest.mark.asyncio
async def test_async_for_stops_on_terminal_signal():
    completion, registry, consumer = _consumer([make_event("a"), make_event("b", 2)])
    completion.settle("done")

    seen = [record async for record in consumer]
    assert seen == [("a",), ("b", 2)]
