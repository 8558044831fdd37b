"""
RODT Core Module

Core functionality for the RODT ledger including:
- Contract state machine (mint, approvals, transfers, royalties)
- Storage collaborators
- Configuration and logging
- HTTP routes
"""

__all__ = []
