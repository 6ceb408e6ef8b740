"""JSON dashboard API over the gas store."""

from gastracker.dashboard.app import create_dashboard_app

__all__ = ["create_dashboard_app"]
