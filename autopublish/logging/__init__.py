"""Structured activity logging for the auto-publish service."""
from autopublish.logging.models import LogLevel, LogComponent, LogEntry
from autopublish.logging.activity_logger import ActivityLogger, init_logger, get_logger

__all__ = [
    "LogLevel", "LogComponent", "LogEntry",
    "ActivityLogger", "init_logger", "get_logger",
]
