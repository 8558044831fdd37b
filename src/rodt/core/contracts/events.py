"""
NEP-171 style contract events.

Every mint, transfer and rollback is appended to an in-memory event list and
logged as ``EVENT_JSON:{...}`` so indexers that tail the log can follow
ownership without reading the store.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from rodt.core.config import NFT_STANDARD_NAME, NFT_STANDARD_VERSION

logger = logging.getLogger(__name__)

EVENT_LOG_PREFIX = "EVENT_JSON:"


@dataclass
class RodtEvent:
    """Represents a single standard event."""

    event: str  # "nft_mint", "nft_transfer"
    data: List[Dict[str, Any]]
    standard: str = NFT_STANDARD_NAME
    version: str = NFT_STANDARD_VERSION
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "standard": self.standard,
            "version": self.version,
            "event": self.event,
            "data": self.data,
        }

    def to_log(self) -> str:
        return EVENT_LOG_PREFIX + json.dumps(self.to_dict(), separators=(",", ":"))


class EventLog:
    """Append-only list of emitted events."""

    def __init__(self) -> None:
        self.events: List[RodtEvent] = []

    def emit(self, event: str, data: Dict[str, Any]) -> RodtEvent:
        entry = RodtEvent(event=event, data=[data])
        self.events.append(entry)
        logger.info(entry.to_log(), extra={"event": f"rodt.{event}"})
        return entry

    def mint(self, owner_id: str, token_ids: List[str], memo: Optional[str] = None) -> RodtEvent:
        data: Dict[str, Any] = {"owner_id": owner_id, "token_ids": list(token_ids)}
        if memo is not None:
            data["memo"] = memo
        return self.emit("nft_mint", data)

    def transfer(
        self,
        old_owner_id: str,
        new_owner_id: str,
        token_ids: List[str],
        authorized_id: Optional[str] = None,
        memo: Optional[str] = None,
    ) -> RodtEvent:
        data: Dict[str, Any] = {
            "old_owner_id": old_owner_id,
            "new_owner_id": new_owner_id,
            "token_ids": list(token_ids),
        }
        if authorized_id is not None:
            data["authorized_id"] = authorized_id
        if memo is not None:
            data["memo"] = memo
        return self.emit("nft_transfer", data)

    def by_type(self, event: str) -> List[RodtEvent]:
        return [e for e in self.events if e.event == event]
