"""In-memory record of everything that happened during exchanges."""

import json
import logging
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class LogEntryType(str, Enum):
    USER_INPUT = "user_input"
    ASSISTANT_RESPONSE = "assistant_response"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    ERROR = "error"
    SYSTEM = "system"


@dataclass(frozen=True)
class DebugLogEntry:
    id: str
    timestamp: datetime
    type: LogEntryType
    data: dict[str, Any]


class DebugLog:
    """Bounded, ordered list of typed log entries.

    Implements the exchange observer protocol via `record`.
    """

    def __init__(self, max_entries: int = 1000):
        self._entries: deque[DebugLogEntry] = deque(maxlen=max_entries)
        self._counter = 0

    def record(self, entry_type: str, data: dict[str, Any]) -> None:
        self._counter += 1
        entry = DebugLogEntry(
            id=f"log-{self._counter}",
            timestamp=datetime.now(UTC),
            type=LogEntryType(entry_type),
            data=data,
        )
        self._entries.append(entry)
        logger.debug(f"[{entry.type.value}] {entry.id}")

    @property
    def entries(self) -> list[DebugLogEntry]:
        return list(self._entries)

    def of_type(self, entry_type: LogEntryType) -> list[DebugLogEntry]:
        return [e for e in self._entries if e.type == entry_type]

    def clear(self) -> None:
        self._entries.clear()
        self._counter = 0

    def to_json(self) -> str:
        """Export all entries, oldest first."""
        return json.dumps(
            [
                {
                    "id": e.id,
                    "timestamp": e.timestamp.isoformat(),
                    "type": e.type.value,
                    "data": e.data,
                }
                for e in self._entries
            ],
            indent=2,
            ensure_ascii=False,
            default=str,
        )
