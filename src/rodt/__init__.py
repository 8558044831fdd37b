"""
RODT - Network Provisioning Token Ledger

A non-fungible token ledger for RODTs (network/VPN provisioning tokens),
tracking ownership, delegated approvals, cross-party transfers and
royalty payouts.

Main Components:
- Contracts: token store, approvals, transfers, royalties, enumeration
- API: Flask routes exposing the contract operations
- CLI: command line client for a running node
"""

__version__ = "0.1.0"
__author__ = "Cableguard Development Team"

__all__ = []
