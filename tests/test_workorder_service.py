"""
Tests for the cached work order service.
"""

import pytest

from workorder_launcher.entities import CacheStatus
from workorder_launcher.errors import InvalidTransitionError, RemoteUnavailableError, WorkorderNotFoundError


@pytest.mark.asyncio
async def test_workcenters_cached_between_calls(workorder_service, fake_erp):
    first = await workorder_service.get_workcenters()
    second = await workorder_service.get_workcenters()

    assert first.status is CacheStatus.MISS
    assert second.status is CacheStatus.HIT
    assert len(fake_erp.calls_to("mrp.workcenter", "search_read")) == 1


@pytest.mark.asyncio
async def test_workorders_expire_after_namespace_ttl(workorder_service, fake_erp, clock):
    fake_erp.add_workorder(1, "ready")

    await workorder_service.get_workorders(1)
    clock.advance(15)
    result = await workorder_service.get_workorders(1)

    assert result.status is CacheStatus.MISS
    assert len(fake_erp.calls_to("mrp.workorder", "search_read")) == 2


@pytest.mark.asyncio
async def test_search_is_not_cached(workorder_service, fake_erp):
    fake_erp.add_workorder(1, "ready")

    await workorder_service.search_workorders("WO/0")
    result = await workorder_service.search_workorders("WO/0")

    assert result.status is CacheStatus.BYPASS
    assert len(fake_erp.calls_to("mrp.workorder", "search_read")) == 2


@pytest.mark.asyncio
async def test_short_search_returns_empty_without_remote_call(workorder_service, fake_erp):
    result = await workorder_service.search_workorders("x")

    assert result.value == []
    assert result.status is CacheStatus.BYPASS
    assert fake_erp.calls == []


@pytest.mark.asyncio
async def test_start_is_visible_on_next_read(workorder_service, fake_erp):
    fake_erp.add_workorder(1, "ready", workcenter_id=1)
    before = await workorder_service.get_workorders(1)
    assert [wo.id for wo in before.value.ready] == [1]

    await workorder_service.start_workorder(1, target_workcenter_id=1)
    after = await workorder_service.get_workorders(1)

    assert after.status is CacheStatus.MISS
    assert after.value.ready == []
    assert [wo.id for wo in after.value.active] == [1]


@pytest.mark.asyncio
async def test_failed_mutation_still_invalidates(workorder_service, fake_erp):
    fake_erp.add_workorder(1, "progress")
    await workorder_service.get_workorder(1)
    fake_erp.failures[("mrp.workorder", "button_finish")] = RemoteUnavailableError("ERP down", attempts=3)

    with pytest.raises(RemoteUnavailableError):
        await workorder_service.complete_workorder(1)

    assert workorder_service.cache.get("workorders:detail:1") is None


@pytest.mark.asyncio
async def test_mutation_keeps_workcenter_cache(workorder_service, fake_erp):
    fake_erp.add_workorder(1, "progress")
    await workorder_service.get_workcenters()

    await workorder_service.pause_workorder(1)

    assert workorder_service.cache.get("workcenters:all") is not None


@pytest.mark.asyncio
async def test_invalid_transition_propagates(workorder_service, fake_erp):
    fake_erp.add_workorder(1, "done")

    with pytest.raises(InvalidTransitionError):
        await workorder_service.start_workorder(1)


@pytest.mark.asyncio
async def test_missing_workorder_is_not_cached(workorder_service, fake_erp):
    with pytest.raises(WorkorderNotFoundError):
        await workorder_service.get_workorder(42)

    fake_erp.add_workorder(42, "ready")
    result = await workorder_service.get_workorder(42)

    assert result.value.id == 42


@pytest.mark.asyncio
async def test_update_specs_and_bom_invalidate_details(workorder_service, fake_erp):
    fake_erp.add_workorder(1, "ready")
    fake_erp.operations[901] = {"id": 901, "note": ""}
    fake_erp.moves[7] = {"id": 7, "_production": 101, "product_id": [600, "Bolt"], "product_uom_qty": 1.0, "quantity": 0}

    bom = await workorder_service.get_bom_lines(1)
    assert bom.value[0].quantity_required == 1.0

    await workorder_service.update_technical_specs(1, "Use jig B")
    line = await workorder_service.update_bom_line(1, 7, 3)
    refreshed = await workorder_service.get_bom_lines(1)

    assert line.quantity_required == 3
    assert refreshed.status is CacheStatus.MISS
    assert refreshed.value[0].quantity_required == 3
