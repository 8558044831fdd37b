"""HTTP routes for the RODT ledger."""

from .rodt import add_rodt_routes, create_app

__all__ = ["add_rodt_routes", "create_app"]
