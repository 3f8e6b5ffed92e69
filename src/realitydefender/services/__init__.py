"""
SDK services: transport, result formatting, polling, events and uploads.
"""

from .events import EventName, EventRegistry
from .formatter import format_result, format_results, normalize_score, rewrite_status
from .http_client import HTTPClient
from .polling import PollEngine, PollOutcome, PollState, is_still_pending

__all__ = [
    "EventName",
    "EventRegistry",
    "HTTPClient",
    "PollEngine",
    "PollOutcome",
    "PollState",
    "format_result",
    "format_results",
    "is_still_pending",
    "normalize_score",
    "rewrite_status",
]
