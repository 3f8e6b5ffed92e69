"""
Tests for the client facade, settings and error types.
"""

import io
import json
import logging

import httpx
import pytest
from prometheus_client import REGISTRY

from conftest import ScriptedAPI, media_payload
from realitydefender import RealityDefender, SDKError
from realitydefender.errors import ErrorCode, PollCancelledError
from realitydefender.logging_config import CustomJsonFormatter, setup_logging
from realitydefender.settings import DEFAULT_BASE_URL, Settings, get_settings


class TestClientInit:
    """Construction and configuration"""

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("REALITY_DEFENDER_API_KEY", raising=False)

        with pytest.raises(SDKError) as exc_info:
            RealityDefender(settings=Settings(_env_file=None))

        assert exc_info.value.code is ErrorCode.UNAUTHORIZED
        assert exc_info.value.message == "API key is required"

    def test_default_base_url(self):
        client = RealityDefender(api_key="key", settings=Settings(_env_file=None))

        assert client.base_url == DEFAULT_BASE_URL

    def test_custom_base_url(self, settings):
        client = RealityDefender(
            api_key="key", base_url="https://custom.example.com/", settings=settings
        )

        assert client.base_url == "https://custom.example.com"

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("REALITY_DEFENDER_API_KEY", "env-key")
        monkeypatch.setenv("REALITY_DEFENDER_MANIPULATED_LABEL", "ARTIFICIAL")

        settings = Settings(_env_file=None)
        client = RealityDefender(settings=settings)

        assert client.http.api_key == "env-key"
        assert client.engine.manipulated_label == "ARTIFICIAL"

    def test_base_url_from_settings_is_normalized(self):
        settings = Settings(api_key="key", base_url="https://custom.example.com/", _env_file=None)

        client = RealityDefender(settings=settings)

        assert client.base_url == "https://custom.example.com"
        assert client.http.base_url == "https://custom.example.com"

    def test_settings_defaults(self, monkeypatch):
        for name in ("POLLING_INTERVAL_MS", "POLL_TIMEOUT_MS", "MAX_ATTEMPTS"):
            monkeypatch.delenv(f"REALITY_DEFENDER_{name}", raising=False)

        settings = Settings(_env_file=None)

        assert settings.polling_interval_ms == 2000
        assert settings.poll_timeout_ms == 60000
        assert settings.max_attempts == 30


class TestClientOperations:
    """End-to-end flows through the facade"""

    @pytest.mark.asyncio
    async def test_detect_file(self, make_client, tmp_path):
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"\x00" * 64)
        signed = {
            "code": "ok",
            "response": {"signedUrl": "https://bucket.example.com/clip.mp4"},
            "errno": 0,
            "mediaId": "media-9",
            "requestId": "req-9",
        }
        responses = iter([
            httpx.Response(200, json=signed),
            httpx.Response(200),
            httpx.Response(200, json=media_payload("ANALYZING", request_id="req-9")),
            httpx.Response(200, json=media_payload("AUTHENTIC", score=3.0, request_id="req-9")),
        ])
        client = make_client(lambda request: next(responses))

        result = await client.detect_file(path)

        assert result.request_id == "req-9"
        assert result.status == "AUTHENTIC"
        assert result.score == pytest.approx(0.03)

    @pytest.mark.asyncio
    async def test_context_manager_closes_owned_client(self, settings):
        async with RealityDefender(settings=settings) as client:
            inner = client.http._client
            assert not inner.is_closed

        assert inner.is_closed

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self, settings):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(ScriptedAPI((200, {}))))

        async with RealityDefender(settings=settings, http_client=http_client):
            pass

        assert not http_client.is_closed
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_handlers_per_client(self, make_client):
        first = make_client(ScriptedAPI((200, media_payload("AUTHENTIC"))))
        second = make_client(ScriptedAPI((200, media_payload("AUTHENTIC"))))
        seen = []
        first.on("result", seen.append)

        await second.poll_for_results("req-123")

        assert seen == []


class TestErrors:
    """Error types"""

    def test_sdk_error_string(self):
        error = SDKError("Resource not found", ErrorCode.NOT_FOUND)

        assert str(error) == "Resource not found (Code: not_found)"
        assert error.code == "not_found"

    def test_sdk_error_is_read_only(self):
        error = SDKError("Server error", ErrorCode.SERVER_ERROR)

        with pytest.raises(AttributeError):
            error.code = ErrorCode.TIMEOUT

    def test_code_accepts_string_value(self):
        assert SDKError("x", "timeout").code is ErrorCode.TIMEOUT

    def test_cancellation_is_not_sdk_error(self):
        error = PollCancelledError("req-1")

        assert not isinstance(error, SDKError)
        assert error.request_id == "req-1"


class TestLogging:
    """Structured logging setup"""

    def test_json_formatter_fields(self):
        formatter = CustomJsonFormatter(fmt="%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord(
            "realitydefender.services.polling", logging.INFO, __file__, 10,
            "Polling finished", None, None,
        )
        record.request_id = "req-7"

        data = json.loads(formatter.format(record))

        assert data["service"] == "realitydefender-sdk"
        assert data["level"] == "INFO"
        assert data["request_id"] == "req-7"
        assert data["message"] == "Polling finished"

    def test_setup_logging_installs_single_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="DEBUG")

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, CustomJsonFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_setup_logging_uses_given_settings(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        stream = io.StringIO()
        settings = Settings(api_key="key", log_level="WARNING", _env_file=None)
        try:
            setup_logging(settings, stream=stream)
            logger = logging.getLogger("realitydefender.services.polling")
            logger.info("Polling for req-1 finished")
            logger.warning(
                "Polling for req-1 ended with timed_out",
                extra={"request_id": "req-1", "mode": "deadline"},
            )
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        data = json.loads(lines[0])
        assert data["level"] == "WARNING"
        assert data["request_id"] == "req-1"
        assert data["mode"] == "deadline"
        assert data["source"].startswith("test_client.")


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetrics:
    """Prometheus recording follows the client's own settings"""

    POLL_ATTEMPTS = ("realitydefender_poll_attempts_total", {"mode": "bounded"})
    POLL_OUTCOMES = (
        "realitydefender_poll_outcomes_total",
        {"mode": "bounded", "state": "delivered"},
    )
    REQUESTS = ("realitydefender_requests_total", {"method": "GET", "status": "200"})
    SOCIAL_UPLOADS = ("realitydefender_uploads_total", {"kind": "social", "status": "success"})

    def _client(self, settings, api):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(api))
        return RealityDefender(settings=settings, http_client=http_client)

    def _snapshot(self) -> list[float]:
        return [
            _sample(*metric)
            for metric in (self.POLL_ATTEMPTS, self.POLL_OUTCOMES, self.REQUESTS, self.SOCIAL_UPLOADS)
        ]

    @pytest.mark.asyncio
    async def test_disabled_client_records_nothing(self, settings):
        disabled = settings.model_copy(update={"metrics_enabled": False})
        before = self._snapshot()

        client = self._client(disabled, ScriptedAPI((200, media_payload("AUTHENTIC", score=3.0))))
        await client.get_result("req-123")
        social = self._client(
            disabled,
            ScriptedAPI((200, {"code": "ok", "response": "queued", "errno": 0, "requestId": "req-s"})),
        )
        await social.upload_social_media("https://twitter.com/example")

        assert self._snapshot() == before

    @pytest.mark.asyncio
    async def test_enabled_client_records_poll_and_requests(self, settings):
        before = self._snapshot()

        client = self._client(settings, ScriptedAPI((200, media_payload("AUTHENTIC", score=3.0))))
        await client.get_result("req-123")

        after = self._snapshot()
        assert after[0] == before[0] + 1
        assert after[1] == before[1] + 1
        assert after[2] == before[2] + 1
        assert after[3] == before[3]

    @pytest.mark.asyncio
    async def test_explicit_settings_ignore_broken_environment(self, settings, monkeypatch):
        monkeypatch.setenv("REALITY_DEFENDER_MAX_ATTEMPTS", "not-a-number")
        get_settings.cache_clear()
        try:
            client = self._client(settings, ScriptedAPI((200, media_payload("AUTHENTIC"))))
            result = await client.get_result("req-123")
        finally:
            get_settings.cache_clear()

        assert result.status == "AUTHENTIC"
