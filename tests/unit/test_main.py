"""Tests for the service entry point."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from dashboard_producer import main as main_module
from dashboard_producer.exceptions import StartupError
from dashboard_producer.main import ProducerService
from dashboard_producer.scheduler import ManualTicker
from dashboard_producer.serializer import decode_sample


class TestMain:
    """Test startup failure handling."""

    @pytest.mark.asyncio
    async def test_missing_config_file_exits(self, clean_env, restore_root_logger, tmp_path):
        """Test a missing config file exits with status 1."""
        clean_env.setenv("CONFIG_FILE", str(tmp_path / "missing.yaml"))

        with pytest.raises(SystemExit) as exc_info:
            await main_module.main()

        assert exc_info.value.code == 1

    @pytest.mark.asyncio
    async def test_startup_error_exits(self, clean_env, restore_root_logger):
        """Test a startup failure exits with status 1."""
        with patch.object(
            main_module.ProducerService, 'initialize',
            side_effect=StartupError("Cannot access stream dashboard-updates")
        ), patch.object(main_module.ProducerService, 'start', new=AsyncMock()) as start:
            with pytest.raises(SystemExit) as exc_info:
                await main_module.main()

        assert exc_info.value.code == 1
        start.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_catalog_exits(self, clean_env, restore_root_logger, tmp_path):
        """Test a malformed configured catalog exits with status 1."""
        config_path = tmp_path / "bad-catalog.yaml"
        config_path.write_text(yaml.safe_dump({
            "verify_stream_on_startup": False,
            "catalog": [
                {"id": "cpu", "label": "CPU Usage", "min": 0, "max": 100, "unit": "%"},
                {"id": "cpu", "label": "CPU Again", "min": 0, "max": 100, "unit": "%"}
            ]
        }))
        clean_env.setenv("CONFIG_FILE", str(config_path))

        with patch.object(main_module.ProducerService, 'start', new=AsyncMock()) as start:
            with pytest.raises(SystemExit) as exc_info:
                await main_module.main()

        assert exc_info.value.code == 1
        start.assert_not_called()

    @pytest.mark.asyncio
    async def test_runs_service(self, clean_env, restore_root_logger):
        """Test main initializes and starts the service."""
        with patch.object(main_module.ProducerService, 'initialize') as initialize, \
                patch.object(main_module.ProducerService, 'start', new=AsyncMock()) as start:
            await main_module.main()

        initialize.assert_called_once()
        start.assert_awaited_once()


class TestProducerService:
    """Test service wiring with an injected sink."""

    def test_initialize_uses_injected_sink(self, test_settings, mock_sink):
        """Test initialize keeps an injected sink."""
        service = ProducerService(test_settings, sink=mock_sink)

        service.initialize()

        assert service.sink is mock_sink
        assert service.emission_loop.stream_name == "test-dashboard-updates"
        assert service.catalog.ids() == ["cpu", "memory", "network", "users"]

    @pytest.mark.asyncio
    async def test_emits_through_injected_sink(self, test_settings, mock_sink):
        """Test the service emits through an injected sink."""
        service = ProducerService(test_settings, sink=mock_sink)
        ticker = ManualTicker()
        ticker.fire(3)
        ticker.close()

        await service.start(ticker)

        assert mock_sink.submit.call_count == 3
        stream_name, partition_key, payload = mock_sink.submit.call_args.args
        assert stream_name == "test-dashboard-updates"
        assert decode_sample(payload).id == partition_key

    def test_invalid_catalog_is_startup_error(self, test_settings, mock_sink):
        """Test a malformed catalog is reported as StartupError."""
        test_settings.catalog[0].max = -1.0
        service = ProducerService(test_settings, sink=mock_sink)

        with pytest.raises(StartupError, match="Invalid metric catalog"):
            service.initialize()

        assert service.emission_loop is None

    @pytest.mark.asyncio
    async def test_runs_on_interval_ticker_until_shutdown(self, test_settings, mock_sink):
        """Test the default interval ticker drives emission until shutdown."""
        service = ProducerService(test_settings, sink=mock_sink)
        task = asyncio.create_task(service.start())

        for _ in range(200):
            if mock_sink.submit.call_count >= 3:
                break
            await asyncio.sleep(0.01)

        service.request_shutdown()
        await asyncio.wait_for(task, timeout=5)

        assert mock_sink.submit.call_count >= 3
        assert service.emission_loop.running is False
        assert 2 <= service.emission_loop.get_stats()['records_sent'] <= mock_sink.submit.call_count
