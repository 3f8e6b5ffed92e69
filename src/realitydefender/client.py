"""
Reality Defender client.

Usage:
    async with RealityDefender(api_key="...") as client:
        upload = await client.upload("video.mp4")
        result = await client.get_result(upload.request_id)
        print(result.status, result.score)
"""

import asyncio
from datetime import date
from pathlib import Path

import httpx

from realitydefender.errors import ErrorCode, SDKError
from realitydefender.logging_config import get_logger
from realitydefender.schemas import DetectionResult, DetectionResultList, UploadResult
from realitydefender.services.events import EventHandler, EventRegistry
from realitydefender.services.http_client import HTTPClient
from realitydefender.services.polling import DEFAULT_PAGE_SIZE, PollEngine
from realitydefender.services.social import upload_social_media_link
from realitydefender.services.upload import upload_file
from realitydefender.settings import Settings, get_settings

logger = get_logger(__name__)


class RealityDefender:
    """Async SDK client for uploading media and retrieving detection results."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()

        api_key = api_key or self.settings.api_key
        if not api_key:
            raise SDKError("API key is required", ErrorCode.UNAUTHORIZED)

        if base_url:
            self.base_url = base_url.rstrip("/")
        else:
            self.base_url = self.settings.normalized_base_url
        self.events = EventRegistry()
        self.http = HTTPClient(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.settings.request_timeout_seconds,
            client=http_client,
            metrics_enabled=self.settings.metrics_enabled,
        )
        self.engine = PollEngine(
            self.http,
            self.events,
            manipulated_label=self.settings.manipulated_label,
            max_attempts=self.settings.max_attempts,
            polling_interval_ms=self.settings.polling_interval_ms,
            timeout_ms=self.settings.poll_timeout_ms,
            metrics_enabled=self.settings.metrics_enabled,
        )
        logger.debug(f"Reality Defender client initialized for {self.base_url}")

    async def __aenter__(self) -> "RealityDefender":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    def on(self, event: str, handler: EventHandler) -> None:
        """Register a handler for "result" or "error" events."""
        self.events.register(event, handler)

    async def upload(self, file_path: str | Path) -> UploadResult:
        """Upload a local file for analysis."""
        return await upload_file(self.http, file_path)

    async def upload_social_media(self, social_link: str) -> UploadResult:
        """Submit a social media link for analysis."""
        return await upload_social_media_link(self.http, social_link)

    async def get_result(
        self,
        request_id: str,
        *,
        max_attempts: int | None = None,
        polling_interval_ms: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> DetectionResult:
        """Poll a request until its result is final or the attempts run out."""
        return await self.engine.get_result(
            request_id,
            max_attempts=max_attempts,
            polling_interval_ms=polling_interval_ms,
            cancel_event=cancel_event,
        )

    async def get_results(
        self,
        *,
        page_number: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
        name: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        max_attempts: int | None = None,
        polling_interval_ms: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> DetectionResultList:
        """Fetch one page of past detection results."""
        return await self.engine.get_results(
            page_number=page_number,
            size=size,
            name=name,
            start_date=start_date,
            end_date=end_date,
            max_attempts=max_attempts,
            polling_interval_ms=polling_interval_ms,
            cancel_event=cancel_event,
        )

    async def poll_for_results(
        self,
        request_id: str,
        *,
        polling_interval_ms: int | None = None,
        timeout_ms: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> DetectionResult:
        """Poll a request and report the outcome to registered event handlers."""
        return await self.engine.poll_for_results(
            request_id,
            polling_interval_ms=polling_interval_ms,
            timeout_ms=timeout_ms,
            cancel_event=cancel_event,
        )

    async def detect_file(self, file_path: str | Path) -> DetectionResult:
        """Upload a file and wait for its result in one step."""
        upload = await self.upload(file_path)
        return await self.get_result(upload.request_id)
