"""
Reality Defender SDK

Async client for the Reality Defender deepfake detection API: upload media
or social media links, then poll for detection results directly or through
event handlers.
"""

import logging

from .client import RealityDefender
from .errors import ErrorCode, PollCancelledError, SDKError
from .schemas import (
    DetectionResult,
    DetectionResultList,
    DetectionStatus,
    ModelResult,
    UploadResult,
)
from .services.events import EventName
from .services.formatter import format_result

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "DetectionResult",
    "DetectionResultList",
    "DetectionStatus",
    "ErrorCode",
    "EventName",
    "ModelResult",
    "PollCancelledError",
    "RealityDefender",
    "SDKError",
    "UploadResult",
    "format_result",
]
