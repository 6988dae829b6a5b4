"""ERP manufacturing repository.

Reads and mutates work centers and work orders through an RpcClient. Raw
``search_read`` rows are converted into entities here; nothing above this
layer sees ERP payloads.
"""

import logging
from typing import Any

from workorder_launcher.entities import (
    BomLine,
    Found,
    Lookup,
    NotFound,
    TimeTrackingEntry,
    TransitionResult,
    Workcenter,
    WorkcenterTag,
    Workorder,
    WorkorderGroups,
)
from workorder_launcher.errors import (
    BomLineNotFoundError,
    InvalidTransitionError,
    MissingOperationError,
    WorkorderNotFoundError,
)
from workorder_launcher.protocols import RpcClient

logger = logging.getLogger(__name__)

WORKCENTER_MODEL = "mrp.workcenter"
WORKCENTER_TAG_MODEL = "mrp.workcenter.tag"
WORKORDER_MODEL = "mrp.workorder"
OPERATION_MODEL = "mrp.routing.workcenter"
PRODUCTIVITY_MODEL = "mrp.workcenter.productivity"
STOCK_MOVE_MODEL = "stock.move"

WORKCENTER_FIELDS = ["id", "name", "code", "color", "working_state", "tag_ids"]

WORKORDER_FIELDS = [
    "id",
    "name",
    "display_name",
    "production_id",
    "product_id",
    "workcenter_id",
    "operation_id",
    "qty_producing",
    "qty_produced",
    "qty_remaining",
    "state",
    "duration_expected",
    "duration",
    "date_start",
    "date_finished",
]

TIME_TRACKING_FIELDS = ["id", "date_start", "date_end", "duration", "user_id", "loss_id"]

BOM_LINE_FIELDS = ["id", "product_id", "product_uom_qty", "quantity", "product_uom"]

READY_STATE = "ready"
ACTIVE_STATE = "progress"
DONE_STATE = "done"

# Source states each action is accepted from. Pausing keeps the state at
# "progress" and only closes the running time log.
ALLOWED_SOURCE_STATES = {
    "start": frozenset({"pending", "waiting", READY_STATE, ACTIVE_STATE}),
    "pause": frozenset({ACTIVE_STATE}),
    "complete": frozenset({READY_STATE, ACTIVE_STATE}),
}

ACTION_METHODS = {
    "start": "button_start",
    "pause": "button_pending",
    "complete": "button_finish",
}

MIN_SEARCH_LENGTH = 2


class ErpRepository:
    """Manufacturing data access over the ERP's model methods.

    Example:
        ```python
        repository = ErpRepository(client=ResilientRpcClient.create(transport))
        groups = await repository.get_workorders_for_workcenter(3)
        ```
    """

    def __init__(self, client: RpcClient) -> None:
        """Initialize the repository.

        Args:
            client: Session-aware RPC client (required).
        """
        self._client = client

    async def test_connection(self) -> int:
        """Authenticate from scratch.

        Returns:
            The ERP user id
        """
        return await self._client.test_connection()

    async def get_workcenters(self) -> list[Workcenter]:
        """Get every active work center, in display order."""
        logger.info("[ERP] Fetching work centers")
        records = await self._client.execute_kw(
            WORKCENTER_MODEL,
            "search_read",
            [[["active", "=", True]]],
            {"fields": WORKCENTER_FIELDS, "order": "sequence, name"},
        )
        return [Workcenter.from_record(record) for record in records]

    async def get_workcenter_tags(self) -> list[WorkcenterTag]:
        """Get the tags used to group work centers."""
        records = await self._client.execute_kw(
            WORKCENTER_TAG_MODEL,
            "search_read",
            [[]],
            {"fields": ["id", "name", "color"], "order": "name"},
        )
        return [WorkcenterTag.from_record(record) for record in records]

    async def get_workorders_for_workcenter(self, workcenter_id: int) -> WorkorderGroups:
        """Get ready and in-progress work orders of a work center.

        Args:
            workcenter_id: The work center id

        Returns:
            WorkorderGroups split by state
        """
        logger.info("[ERP] Fetching work orders for work center %s", workcenter_id)
        records = await self._client.execute_kw(
            WORKORDER_MODEL,
            "search_read",
            [[["workcenter_id", "=", workcenter_id], ["state", "in", [READY_STATE, ACTIVE_STATE]]]],
            {"fields": WORKORDER_FIELDS, "order": "id"},
        )
        workorders = [Workorder.from_record(record) for record in records]
        return WorkorderGroups(
            ready=[wo for wo in workorders if wo.state == READY_STATE],
            active=[wo for wo in workorders if wo.state == ACTIVE_STATE],
        )

    async def search_workorders(self, term: str, limit: int = 50) -> list[Workorder]:
        """Search ready and in-progress work orders across all work centers.

        Matches the work order name, the product and the production order.
        Terms shorter than two characters return an empty list without
        calling the ERP.

        Args:
            term: Search text
            limit: Maximum number of results

        Returns:
            Matching work orders, newest first
        """
        term = term.strip()
        if len(term) < MIN_SEARCH_LENGTH:
            return []

        domain: list[Any] = [
            ["state", "in", [READY_STATE, ACTIVE_STATE]],
            "|",
            "|",
            ["name", "ilike", term],
            ["product_id", "ilike", term],
            ["production_id", "ilike", term],
        ]
        records = await self._client.execute_kw(
            WORKORDER_MODEL,
            "search_read",
            [domain],
            {"fields": WORKORDER_FIELDS, "order": "id desc", "limit": limit},
        )
        return [Workorder.from_record(record) for record in records]

    async def get_workorder(self, workorder_id: int) -> Lookup[Workorder]:
        """Look up one work order.

        Args:
            workorder_id: The work order id

        Returns:
            Found with the work order, or NotFound
        """
        records = await self._client.execute_kw(
            WORKORDER_MODEL,
            "search_read",
            [[["id", "=", workorder_id]]],
            {"fields": WORKORDER_FIELDS},
        )
        if not records:
            return NotFound(id=workorder_id)
        return Found(Workorder.from_record(records[0]))

    async def require_workorder(self, workorder_id: int) -> Workorder:
        match await self.get_workorder(workorder_id):
            case Found(value=workorder):
                return workorder
            case _:
                raise WorkorderNotFoundError(workorder_id)

    async def get_workorder_state(self, workorder_id: int) -> str | None:
        """Get the current state of a work order, or None if it does not exist."""
        records = await self._client.execute_kw(
            WORKORDER_MODEL,
            "search_read",
            [[["id", "=", workorder_id]]],
            {"fields": ["state"]},
        )
        return records[0]["state"] if records else None

    async def start_workorder(
        self,
        workorder_id: int,
        target_workcenter_id: int | None = None,
    ) -> TransitionResult:
        """Start (or resume) a work order.

        If ``target_workcenter_id`` differs from the work order's current
        work center, the work order is reassigned first.

        Args:
            workorder_id: The work order id
            target_workcenter_id: Work center the operator is standing at

        Returns:
            TransitionResult with the states before and after

        Raises:
            WorkorderNotFoundError: If the work order does not exist
            InvalidTransitionError: If the state does not allow starting, or
                the ERP left the state unchanged
        """
        workorder = await self.require_workorder(workorder_id)
        self._check_source_state(workorder, "start")

        current_workcenter = workorder.workcenter.id if workorder.workcenter else None
        if target_workcenter_id is not None and target_workcenter_id != current_workcenter:
            logger.info(
                "[ERP] Moving work order %s from work center %s to %s",
                workorder_id,
                current_workcenter,
                target_workcenter_id,
            )
            await self._client.execute_kw(
                WORKORDER_MODEL,
                "write",
                [[workorder_id], {"workcenter_id": target_workcenter_id}],
            )

        await self._client.execute_kw(WORKORDER_MODEL, ACTION_METHODS["start"], [[workorder_id]])

        state_after = await self.get_workorder_state(workorder_id)
        if state_after != ACTIVE_STATE and state_after == workorder.state:
            raise InvalidTransitionError(workorder_id, "start", state_after)

        logger.info("[ERP] Work order %s: %s -> %s", workorder_id, workorder.state, state_after)
        return TransitionResult(workorder_id, "start", workorder.state, state_after)

    async def pause_workorder(self, workorder_id: int) -> TransitionResult:
        """Pause a running work order, closing its open time log.

        Raises:
            WorkorderNotFoundError: If the work order does not exist
            InvalidTransitionError: If the work order is not in progress
        """
        workorder = await self.require_workorder(workorder_id)
        self._check_source_state(workorder, "pause")

        await self._client.execute_kw(WORKORDER_MODEL, ACTION_METHODS["pause"], [[workorder_id]])
        state_after = await self.get_workorder_state(workorder_id)
        logger.info("[ERP] Work order %s paused (state %s)", workorder_id, state_after)
        return TransitionResult(workorder_id, "pause", workorder.state, state_after)

    async def complete_workorder(self, workorder_id: int) -> TransitionResult:
        """Mark a work order as done.

        Raises:
            WorkorderNotFoundError: If the work order does not exist
            InvalidTransitionError: If the state does not allow completion, or
                the ERP did not move it to done
        """
        workorder = await self.require_workorder(workorder_id)
        self._check_source_state(workorder, "complete")

        await self._client.execute_kw(WORKORDER_MODEL, ACTION_METHODS["complete"], [[workorder_id]])
        state_after = await self.get_workorder_state(workorder_id)
        if state_after != DONE_STATE:
            raise InvalidTransitionError(workorder_id, "complete", state_after)

        logger.info("[ERP] Work order %s completed", workorder_id)
        return TransitionResult(workorder_id, "complete", workorder.state, state_after)

    @staticmethod
    def _check_source_state(workorder: Workorder, action: str) -> None:
        if workorder.state not in ALLOWED_SOURCE_STATES[action]:
            raise InvalidTransitionError(workorder.id, action, workorder.state)

    async def get_time_tracking(self, workorder_id: int) -> list[TimeTrackingEntry]:
        """Get the time logs of a work order, most recent first."""
        records = await self._client.execute_kw(
            PRODUCTIVITY_MODEL,
            "search_read",
            [[["workorder_id", "=", workorder_id]]],
            {"fields": TIME_TRACKING_FIELDS, "order": "date_start desc"},
        )
        return [TimeTrackingEntry.from_record(record) for record in records]

    async def get_bom_lines(self, workorder_id: int) -> list[BomLine]:
        """Get the components consumed by the work order's production order.

        Raises:
            WorkorderNotFoundError: If the work order does not exist
        """
        workorder = await self.require_workorder(workorder_id)
        if workorder.production is None:
            return []

        records = await self._client.execute_kw(
            STOCK_MOVE_MODEL,
            "search_read",
            [[["raw_material_production_id", "=", workorder.production.id]]],
            {"fields": BOM_LINE_FIELDS, "order": "id"},
        )
        return [BomLine.from_record(record) for record in records]

    async def update_bom_line(self, workorder_id: int, line_id: int, quantity: float) -> BomLine:
        """Change the required quantity of one component line.

        Args:
            workorder_id: The work order the line belongs to
            line_id: The component line id
            quantity: New required quantity

        Returns:
            The updated line

        Raises:
            ValueError: If quantity is negative
            WorkorderNotFoundError: If the work order does not exist
            BomLineNotFoundError: If the line is not a component of the work order
        """
        if quantity < 0:
            raise ValueError("quantity must be non-negative")

        lines = await self.get_bom_lines(workorder_id)
        if not any(line.id == line_id for line in lines):
            raise BomLineNotFoundError(workorder_id, line_id)

        await self._client.execute_kw(
            STOCK_MOVE_MODEL, "write", [[line_id], {"product_uom_qty": quantity}]
        )
        records = await self._client.execute_kw(
            STOCK_MOVE_MODEL,
            "search_read",
            [[["id", "=", line_id]]],
            {"fields": BOM_LINE_FIELDS},
        )
        if not records:
            raise BomLineNotFoundError(workorder_id, line_id)
        return BomLine.from_record(records[0])

    async def update_technical_specs(self, workorder_id: int, note: str) -> bool:
        """Replace the instructions of the work order's operation.

        Raises:
            WorkorderNotFoundError: If the work order does not exist
            MissingOperationError: If the work order has no operation
        """
        workorder = await self.require_workorder(workorder_id)
        if workorder.operation is None:
            raise MissingOperationError(workorder_id)

        await self._client.execute_kw(
            OPERATION_MODEL, "write", [[workorder.operation.id], {"note": note}]
        )
        logger.info("[ERP] Updated specifications of operation %s", workorder.operation.id)
        return True
