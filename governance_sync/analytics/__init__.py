"""Dashboard statistics and activity history."""

from .models import Activity, DashboardStats
from .service import compute_dashboard, fetch_activity

__all__ = ["Activity", "DashboardStats", "compute_dashboard", "fetch_activity"]
