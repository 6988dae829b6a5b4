"""Error taxonomy for remote calls and work order operations.

Recovery from transient failures and expired sessions happens inside
``ResilientRpcClient``. Whatever it cannot recover from is raised as one of
the ``RemoteCallError`` subclasses below, chained to the last original error.
"""


class WorkorderLauncherError(Exception):
    """Base class for all errors raised by this package."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RemoteCallError(WorkorderLauncherError):
    """Raised when a remote ERP call cannot be completed."""

    def __init__(self, message: str, code: str = "remote_error", attempts: int = 1):
        super().__init__(message)
        self.code = code
        self.attempts = attempts


class RemoteUnavailableError(RemoteCallError):
    """Transient transport failures persisted through every attempt."""

    def __init__(self, message: str, attempts: int = 1):
        super().__init__(message, code="remote_unavailable", attempts=attempts)


class RemoteAuthenticationError(RemoteCallError):
    """Credentials were rejected or the session could not be renewed."""

    def __init__(self, message: str, attempts: int = 1):
        super().__init__(message, code="authentication_failed", attempts=attempts)


class RemoteFaultError(RemoteCallError):
    """The ERP answered with a fault that retrying cannot fix."""

    def __init__(self, message: str, fault_code: int | str | None = None, attempts: int = 1):
        super().__init__(message, code="remote_fault", attempts=attempts)
        self.fault_code = fault_code


class WorkorderNotFoundError(WorkorderLauncherError):
    """The requested work order does not exist in the ERP."""

    def __init__(self, workorder_id: int):
        super().__init__(f"Work order {workorder_id} not found")
        self.workorder_id = workorder_id


class InvalidTransitionError(WorkorderLauncherError):
    """A start/pause/complete was requested from a state that does not allow it."""

    def __init__(self, workorder_id: int, action: str, state: str | None):
        super().__init__(f"Cannot {action} work order {workorder_id} in state '{state}'")
        self.workorder_id = workorder_id
        self.action = action
        self.state = state


class BomLineNotFoundError(WorkorderLauncherError):
    """The component line does not belong to the work order's production order."""

    def __init__(self, workorder_id: int, line_id: int):
        super().__init__(f"Component line {line_id} not found for work order {workorder_id}")
        self.workorder_id = workorder_id
        self.line_id = line_id


class MissingOperationError(WorkorderLauncherError):
    """The work order has no routing operation to hold technical specifications."""

    def __init__(self, workorder_id: int):
        super().__init__(f"Work order {workorder_id} has no operation to update")
        self.workorder_id = workorder_id


class DashboardRequestError(WorkorderLauncherError):
    """A dashboard request to the launcher API failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
