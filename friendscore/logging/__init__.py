"""
Structured logging for friendscore.

JSON logs with timestamp, viewer_id, item_id, event_type.
Use get_logger() in every module for aggregation-friendly output.
"""

from friendscore.logging.logger import bind_viewer, get_logger

__all__ = ["bind_viewer", "get_logger"]
