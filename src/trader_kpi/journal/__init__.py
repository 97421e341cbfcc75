"""Trade journal helpers: closing trades and session summaries."""

from .closing import SessionStats, close_trade, session_stats

__all__ = ["SessionStats", "close_trade", "session_stats"]
