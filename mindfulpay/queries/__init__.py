"""Dashboard query package."""

from mindfulpay.queries.dashboard import DashboardQueries

__all__ = ["DashboardQueries"]
