"""Tests for the step bootstrap: logging setup and per-invocation sessions."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from config.config import LoggingSettings, MarketoConfig
from core.logging.context import clear_log_context, get_log_context
from marketo.cache.backends import InMemoryCacheBackend
from marketo.cache.caching_client import CachingMarketoClient
from marketo.client import MarketoClient
from marketo.step import configure_logging, step_session

ID_MAP = {"scenarioId": "scn-1", "requestorId": "req-9", "requestId": "r-42"}


@pytest.fixture(autouse=True)
def reset_log_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def config():
    return MarketoConfig(
        endpoint="https://123-abc-456.mktorest.com",
        client_id="id",
        client_secret="secret",
        cache_ttl_seconds=120,
        logging_settings=LoggingSettings(level="DEBUG", log_dir="/tmp/mkto", log_to_stdout=True),
    )


@pytest.fixture
def transport():
    mock = MagicMock()
    mock.get = AsyncMock(return_value={"success": True, "result": []})
    mock.post = AsyncMock(return_value={"success": True, "result": []})
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def backend():
    backend = InMemoryCacheBackend()
    backend.close = AsyncMock()
    return backend


# ============================================================================
# configure_logging
# ============================================================================


class TestConfigureLogging:
    def test_passes_logging_section_to_setup(self, config):
        with patch("marketo.step.setup_logging") as setup:
            configure_logging(config, step="lead-discover")

        setup.assert_called_once_with(
            name="marketo",
            step="lead-discover",
            level="DEBUG",
            log_dir=Path("/tmp/mkto"),
            json_format=True,
            log_to_stdout=True,
        )

    def test_defaults_to_singleton_config(self, config):
        with patch("marketo.step.get_config", return_value=config), patch(
            "marketo.step.setup_logging"
        ) as setup:
            configure_logging()

        assert setup.call_args.kwargs["level"] == "DEBUG"


# ============================================================================
# step_session
# ============================================================================


class TestStepSession:
    async def test_yields_scoped_caching_client(self, config, transport, backend):
        client = MarketoClient(transport)

        async with step_session(ID_MAP, "lead-discover", config, backend, client) as session:
            assert isinstance(session, CachingMarketoClient)
            assert session.client is client
            assert session.cache.backend is backend
            assert session.cache.scope.components == ("scn-1", "req-9")
            assert session.cache.ttl_seconds == 120

    async def test_log_context_covers_the_session_only(self, config, transport, backend):
        async with step_session(ID_MAP, "lead-discover", config, backend, MarketoClient(transport)):
            assert get_log_context() == {
                "scenario_id": "scn-1",
                "requestor_id": "req-9",
                "request_id": "r-42",
                "step": "lead-discover",
            }

        assert get_log_context()["scenario_id"] == ""
        assert get_log_context()["step"] == ""

    async def test_closes_backend_and_client(self, config, transport, backend):
        async with step_session(ID_MAP, "lead-discover", config, backend, MarketoClient(transport)):
            pass

        backend.close.assert_awaited_once()
        transport.close.assert_awaited_once()

    async def test_closes_backend_when_step_fails(self, config, transport, backend):
        with pytest.raises(RuntimeError, match="step blew up"):
            async with step_session(
                ID_MAP, "lead-discover", config, backend, MarketoClient(transport)
            ):
                raise RuntimeError("step blew up")

        backend.close.assert_awaited_once()
        transport.close.assert_awaited_once()

    async def test_incomplete_id_map_opens_nothing(self, config, transport, backend):
        with pytest.raises(ValueError, match="requestorId"):
            async with step_session(
                {"scenarioId": "scn-1"}, "lead-discover", config, backend, MarketoClient(transport)
            ):
                pass

        backend.close.assert_not_awaited()
        transport.close.assert_not_awaited()

    async def test_reads_go_through_the_cache(self, config, transport, backend):
        async with step_session(
            ID_MAP, "lead-describe", config, backend, MarketoClient(transport)
        ) as session:
            transport.get.return_value = {"success": True, "result": [{"name": "email"}]}
            first = await session.describe_lead_fields()
            second = await session.describe_lead_fields()

        assert first == second
        assert transport.get.await_count == 1

    async def test_builds_backend_and_client_from_config(self, config, transport, backend):
        with patch("marketo.step.build_backend", return_value=backend) as build, patch(
            "marketo.step.MarketoClient.from_config", return_value=MarketoClient(transport)
        ) as from_config:
            async with step_session(ID_MAP, "lead-discover", config):
                pass

        build.assert_called_once_with("")
        from_config.assert_called_once_with(config)
