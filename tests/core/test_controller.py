# tests/core/test_controller.py

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from hwmgr_plugin.core.controller import NodePoolController, split_key
from hwmgr_plugin.core.exceptions import StoreError
from hwmgr_plugin.core.results import ReconcileResult, requeue_immediately


def _controller(store, result=None, side_effect=None):
    reconciler = MagicMock()
    reconciler.reconcile = AsyncMock(return_value=result or ReconcileResult(), side_effect=side_effect)
    return NodePoolController(store, reconciler, workers=1, resync_interval="1h"), reconciler


def test_split_key():
    assert split_key("ns/np1") == ("ns", "np1")


@pytest.mark.asyncio
async def test_resync_queues_every_nodepool(store, make_nodepool):
    await store.create(make_nodepool(name="np1"))
    await store.create(make_nodepool(name="np2"))
    controller, _ = _controller(store)

    await controller.resync()

    assert len(controller.queue) == 2


@pytest.mark.asyncio
async def test_process_next_reconciles_key(store, namespace):
    controller, reconciler = _controller(store)
    controller.queue.add(f"{namespace}/np1")

    key = await controller.process_next()

    assert key == f"{namespace}/np1"
    reconciler.reconcile.assert_awaited_once_with(namespace, "np1")
    assert not controller.queue.is_processing(key)
    assert len(controller.queue) == 0


@pytest.mark.asyncio
async def test_process_next_requeues_when_asked(store, namespace):
    controller, _ = _controller(store, result=requeue_immediately())
    controller.queue.add(f"{namespace}/np1")

    await controller.process_next()

    assert len(controller.queue) == 1


@pytest.mark.asyncio
async def test_process_next_schedules_retry_on_error(store, namespace):
    controller, _ = _controller(store, side_effect=StoreError("boom"))
    controller.queue.add_after = MagicMock()
    controller.queue.add(f"{namespace}/np1")

    await controller.process_next()

    controller.queue.add_after.assert_called_once()
    assert controller.queue.add_after.call_args.args[0] == f"{namespace}/np1"


@pytest.mark.asyncio
async def test_start_and_stop(store, make_nodepool):
    await store.create(make_nodepool(name="np1"))
    controller, reconciler = _controller(store)

    await controller.start()
    for _ in range(50):
        if reconciler.reconcile.await_count:
            break
        await asyncio.sleep(0.01)
    await controller.stop()

    reconciler.reconcile.assert_awaited()
    assert controller._tasks == []
