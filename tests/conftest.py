"""Shared fakes and fixtures for the test suite."""

from collections.abc import Callable
from typing import Any

import pytest

from workorder_launcher.entities import CacheNamespace
from workorder_launcher.repositories import ErpRepository, InMemoryCacheRepository
from workorder_launcher.services import CacheService, WorkorderService

TTL_CONFIG = {
    CacheNamespace.WORKCENTERS: 3600,
    CacheNamespace.TAGS: 3600,
    CacheNamespace.WORKORDERS: 15,
    CacheNamespace.SEARCH: 0,
}


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ScriptedTransport:
    """RpcTransport whose answers come from per-method scripts.

    Each script entry is either a value to return or an exception to raise.
    When a script runs out, its last entry is repeated.
    """

    def __init__(self, uid: Any = 7) -> None:
        self.calls: list[tuple[str, str, list[Any]]] = []
        self.scripts: dict[str, list[Any]] = {"authenticate": [uid]}
        self.closed = False

    def script(self, method: str, *outcomes: Any) -> None:
        self.scripts[method] = list(outcomes)

    def calls_to(self, method: str) -> list[list[Any]]:
        return [params for _, name, params in self.calls if name == method]

    async def call(self, service: str, method: str, params: list[Any]) -> Any:
        self.calls.append((service, method, params))
        outcomes = self.scripts.get(method, [None])
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed = True


class FakeErp:
    """In-memory RpcClient answering the model calls ErpRepository makes."""

    def __init__(self) -> None:
        self.workcenters: list[dict[str, Any]] = []
        self.tags: list[dict[str, Any]] = []
        self.workorders: dict[int, dict[str, Any]] = {}
        self.productivity: list[dict[str, Any]] = []
        self.moves: dict[int, dict[str, Any]] = {}
        self.operations: dict[int, dict[str, Any]] = {}
        self.calls: list[tuple[str, str, list[Any], dict[str, Any]]] = []
        # action method -> state the work order ends up in (None leaves it unchanged)
        self.transitions: dict[str, str | None] = {
            "button_start": "progress",
            "button_pending": "progress",
            "button_finish": "done",
        }
        self.failures: dict[tuple[str, str], Exception] = {}

    def add_workorder(self, workorder_id: int, state: str, workcenter_id: int = 1, **fields: Any) -> dict:
        record = {
            "id": workorder_id,
            "name": f"WO/{workorder_id:05d}",
            "display_name": f"MO/{workorder_id} - Cutting",
            "state": state,
            "workcenter_id": [workcenter_id, f"Workcenter {workcenter_id}"],
            "production_id": [100 + workorder_id, f"MO/{100 + workorder_id}"],
            "product_id": [500, "Steel Frame"],
            "operation_id": [900 + workorder_id, "Cutting"],
            "qty_producing": 1.0,
            "qty_produced": 0.0,
            "qty_remaining": 5.0,
            "duration_expected": 60.0,
            "duration": 0.0,
            "date_start": False,
            "date_finished": False,
        }
        record.update(fields)
        self.workorders[workorder_id] = record
        return record

    def calls_to(self, model: str, method: str) -> list[tuple[list[Any], dict[str, Any]]]:
        return [(args, kwargs) for m, name, args, kwargs in self.calls if m == model and name == method]

    async def test_connection(self) -> int:
        return 7

    async def execute_kw(
        self,
        model: str,
        method: str,
        args: list[Any] | None = None,
        kwargs: dict[str, Any] | None = None,
    ) -> Any:
        args = args or []
        kwargs = kwargs or {}
        self.calls.append((model, method, args, kwargs))
        if (model, method) in self.failures:
            raise self.failures[(model, method)]

        if method == "search_read":
            return self._search_read(model, args[0])
        if method == "write":
            ids, values = args
            table = self._table(model)
            for record_id in ids:
                table[record_id].update(values)
                if "workcenter_id" in values and model == "mrp.workorder":
                    wc = values["workcenter_id"]
                    table[record_id]["workcenter_id"] = [wc, f"Workcenter {wc}"]
            return True
        if method in self.transitions:
            new_state = self.transitions[method]
            for record_id in args[0]:
                if new_state is not None:
                    self.workorders[record_id]["state"] = new_state
            return True
        raise AssertionError(f"unexpected call {model}.{method}")

    def _table(self, model: str) -> dict[int, dict[str, Any]]:
        return {
            "mrp.workorder": self.workorders,
            "stock.move": self.moves,
            "mrp.routing.workcenter": self.operations,
        }[model]

    def _search_read(self, model: str, domain: list[Any]) -> list[dict[str, Any]]:
        if model == "mrp.workcenter":
            return list(self.workcenters)
        if model == "mrp.workcenter.tag":
            return list(self.tags)
        if model == "mrp.workcenter.productivity":
            return list(self.productivity)
        if model == "stock.move":
            conditions = {tuple(c[:2]): c[2] for c in domain if isinstance(c, list)}
            if ("id", "=") in conditions:
                move = self.moves.get(conditions[("id", "=")])
                return [dict(move)] if move else []
            production = conditions.get(("raw_material_production_id", "="))
            return [dict(m) for m in self.moves.values() if m.get("_production") == production]
        if model == "mrp.workorder":
            return self._search_workorders(domain)
        raise AssertionError(f"unexpected search_read on {model}")

    def _search_workorders(self, domain: list[Any]) -> list[dict[str, Any]]:
        records = list(self.workorders.values())
        for condition in domain:
            if not isinstance(condition, list):
                continue
            name, op, value = condition
            if op == "=" and name == "id":
                records = [r for r in records if r["id"] == value]
            elif op == "=" and name == "workcenter_id":
                records = [r for r in records if r["workcenter_id"][0] == value]
            elif op == "in":
                records = [r for r in records if r[name] in value]
        return [dict(r) for r in records]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryCacheRepository:
    return InMemoryCacheRepository(ttl_config=dict(TTL_CONFIG), default_ttl=30, clock=clock)


@pytest.fixture
def cache_service(memory_store: InMemoryCacheRepository) -> CacheService:
    return CacheService(store=memory_store)


@pytest.fixture
def fake_erp() -> FakeErp:
    erp = FakeErp()
    erp.workcenters = [
        {"id": 1, "name": "Saw", "code": "SAW", "color": 2, "working_state": "normal", "tag_ids": [10]},
        {"id": 2, "name": "Press", "code": False, "color": False, "working_state": "blocked", "tag_ids": []},
    ]
    erp.tags = [{"id": 10, "name": "Metal", "color": 4}]
    return erp


@pytest.fixture
def repository(fake_erp: FakeErp) -> ErpRepository:
    return ErpRepository(client=fake_erp)


@pytest.fixture
def workorder_service(repository: ErpRepository, cache_service: CacheService) -> WorkorderService:
    return WorkorderService(repository=repository, cache=cache_service)


@pytest.fixture
def counting_producer() -> Callable[[Any], Any]:
    """Build an async producer that counts its calls."""

    def build(value: Any):
        async def producer():
            producer.calls += 1
            return value

        producer.calls = 0
        return producer

    return build
