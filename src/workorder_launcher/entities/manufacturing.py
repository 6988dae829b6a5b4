"""Manufacturing records read from the ERP.

The ERP returns loosely typed dictionaries: many2one fields come back as
``[id, display_name]`` or ``False``, missing numbers as ``False``. The
``from_record`` constructors are the single place where those payloads are
turned into validated internal values.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RecordRef:
    """Reference to another ERP record (a many2one value)."""

    id: int
    name: str

    @classmethod
    def from_value(cls, value: Any) -> "RecordRef | None":
        if isinstance(value, (list, tuple)) and len(value) >= 2:
            return cls(id=int(value[0]), name=str(value[1]))
        return None


def _text(value: Any) -> str | None:
    if value is False or value is None:
        return None
    return str(value)


def _number(value: Any) -> float:
    if value is False or value is None:
        return 0.0
    return float(value)


@dataclass(frozen=True)
class Workcenter:
    """A work center (machine, line or station)."""

    id: int
    name: str
    code: str | None = None
    color: int = 0
    working_state: str | None = None
    tag_ids: tuple[int, ...] = ()

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Workcenter":
        return cls(
            id=int(record["id"]),
            name=str(record.get("name") or ""),
            code=_text(record.get("code")),
            color=int(record.get("color") or 0),
            working_state=_text(record.get("working_state")),
            tag_ids=tuple(record.get("tag_ids") or ()),
        )


@dataclass(frozen=True)
class WorkcenterTag:
    """A label used to group work centers."""

    id: int
    name: str
    color: int = 0

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "WorkcenterTag":
        return cls(
            id=int(record["id"]),
            name=str(record.get("name") or ""),
            color=int(record.get("color") or 0),
        )


@dataclass(frozen=True)
class Workorder:
    """A single operation of a production order on a work center."""

    id: int
    name: str
    display_name: str
    state: str
    production: RecordRef | None = None
    product: RecordRef | None = None
    workcenter: RecordRef | None = None
    operation: RecordRef | None = None
    qty_producing: float = 0.0
    qty_produced: float = 0.0
    qty_remaining: float = 0.0
    duration_expected: float = 0.0
    duration: float = 0.0
    date_start: str | None = None
    date_finished: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Workorder":
        name = str(record.get("name") or "")
        return cls(
            id=int(record["id"]),
            name=name,
            display_name=str(record.get("display_name") or name),
            state=str(record.get("state") or ""),
            production=RecordRef.from_value(record.get("production_id")),
            product=RecordRef.from_value(record.get("product_id")),
            workcenter=RecordRef.from_value(record.get("workcenter_id")),
            operation=RecordRef.from_value(record.get("operation_id")),
            qty_producing=_number(record.get("qty_producing")),
            qty_produced=_number(record.get("qty_produced")),
            qty_remaining=_number(record.get("qty_remaining")),
            duration_expected=_number(record.get("duration_expected")),
            duration=_number(record.get("duration")),
            date_start=_text(record.get("date_start")),
            date_finished=_text(record.get("date_finished")),
        )


@dataclass(frozen=True)
class WorkorderGroups:
    """Work orders of one work center, split by state."""

    ready: list[Workorder] = field(default_factory=list)
    active: list[Workorder] = field(default_factory=list)


@dataclass(frozen=True)
class TimeTrackingEntry:
    """A productivity (time log) line recorded against a work order."""

    id: int
    date_start: str | None
    date_end: str | None
    duration: float
    user: RecordRef | None = None
    loss: RecordRef | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "TimeTrackingEntry":
        return cls(
            id=int(record["id"]),
            date_start=_text(record.get("date_start")),
            date_end=_text(record.get("date_end")),
            duration=_number(record.get("duration")),
            user=RecordRef.from_value(record.get("user_id")),
            loss=RecordRef.from_value(record.get("loss_id")),
        )


@dataclass(frozen=True)
class BomLine:
    """A component consumed by the production order of a work order."""

    id: int
    product: RecordRef | None
    quantity_required: float
    quantity_consumed: float
    uom: RecordRef | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "BomLine":
        return cls(
            id=int(record["id"]),
            product=RecordRef.from_value(record.get("product_id")),
            quantity_required=_number(record.get("product_uom_qty")),
            quantity_consumed=_number(record.get("quantity")),
            uom=RecordRef.from_value(record.get("product_uom")),
        )


@dataclass(frozen=True)
class Found(Generic[T]):
    """Lookup outcome carrying the record."""

    value: T


@dataclass(frozen=True)
class NotFound:
    """Lookup outcome for an id the ERP does not know."""

    id: int


Lookup = Found[T] | NotFound


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a start/pause/complete request."""

    workorder_id: int
    action: str
    previous_state: str | None
    new_state: str | None
