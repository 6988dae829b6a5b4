"""Client for the launcher API, with the dashboard's request coordination."""

from .dashboard_client import DashboardClient, DashboardState

__all__ = [
    "DashboardClient",
    "DashboardState",
]
