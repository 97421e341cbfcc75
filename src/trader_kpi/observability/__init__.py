from .logger import get_logger, new_trace_id, scoring_context, setup_logging
from .observers import LoggingObserver, MetricsObserver, RecordingObserver

__all__ = [
    "LoggingObserver",
    "MetricsObserver",
    "RecordingObserver",
    "get_logger",
    "new_trace_id",
    "scoring_context",
    "setup_logging",
]
