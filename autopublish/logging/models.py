"""Records written by the activity log: LogLevel, LogComponent, LogEntry."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(Enum):
    """Severity of an activity entry.

    Numeric values are the stdlib ``logging`` constants, so
    ``logging.getLevelName(entry.level.value)`` works as expected.
    """

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @property
    def name_str(self) -> str:
        return self.name.lower()


class LogComponent(Enum):
    """Part of the service an entry came from."""

    SCHEDULER = "scheduler"
    STARTUP = "startup"


@dataclass
class LogEntry:
    """One activity event, optionally tied to an article.

    ``data`` carries free-form context such as a serialised
    :class:`~autopublish.models.CycleReport`.
    """

    timestamp: datetime
    level: LogLevel
    component: LogComponent
    message: str
    article_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Row shape for the ``scheduler_logs`` table."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "level_name": self.level.name_str,
            "component": self.component.value,
            "message": self.message,
            "article_id": self.article_id,
            "data": self.data,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "duration_ms": self.duration_ms,
        }

    def to_json(self) -> str:
        """One JSON line for ``activity.log``; unknown types fall back to ``str``."""
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def to_readable(self) -> str:
        parts = [
            f"[{self.level.name}]",
            f"[{self.timestamp.strftime('%H:%M:%S')}]",
            f"[{self.component.value}]",
        ]
        if self.article_id is not None:
            parts.append(f"[article {self.article_id}]")
        text = " ".join(parts) + f" {self.message}"
        if self.duration_ms is not None:
            text += f" ({self.duration_ms}ms)"
        return text
