"""Dashboard Producer Service - synthetic metric records streamed to Kinesis."""

import asyncio
import logging
import os
import random
import signal
import sys
from datetime import datetime, timezone
from typing import AsyncIterable, Optional

from pydantic import ValidationError

from .catalog import MetricCatalog
from .clients.kinesis_client import KinesisStreamSink, StreamSink
from .config.aws_config import AWSClientManager
from .config.settings import ProducerSettings, load_settings
from .emitter import EmissionLoop
from .exceptions import StartupError
from .generator import SampleGenerator
from .health import HealthCheckServer
from .metrics import ProducerMetrics
from .scheduler import IntervalTicker, Tick
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


class ProducerService:
    """Wires configuration, the stream sink and the emission loop together."""

    def __init__(
        self,
        settings: ProducerSettings,
        sink: Optional[StreamSink] = None,
        rng: Optional[random.Random] = None
    ):
        self.settings = settings
        self.catalog: Optional[MetricCatalog] = None
        self.sink = sink
        self.rng = rng

        self.metrics: Optional[ProducerMetrics] = None
        self.emission_loop: Optional[EmissionLoop] = None
        self.health_server: Optional[HealthCheckServer] = None
        self._shutdown_event: Optional[asyncio.Event] = None

    def initialize(self):
        """
        Build the catalog, sink, generator and loop.

        Raises:
            StartupError: If the configured catalog is invalid, the Kinesis
                client cannot be created or the target stream cannot be verified
        """
        try:
            self.catalog = self.settings.build_catalog()
        except ValueError as e:
            raise StartupError(f"Invalid metric catalog: {e}") from e

        if self.sink is None:
            self.sink = self._build_kinesis_sink()

        self.metrics = ProducerMetrics()
        generator = SampleGenerator(self.catalog, rng=self.rng)
        self.emission_loop = EmissionLoop(
            generator=generator,
            sink=self.sink,
            stream_name=self.settings.stream_name,
            metrics=self.metrics,
            submit_timeout_seconds=self.settings.submit_timeout_seconds
        )

        logger.info(f"Metric catalog: {self.catalog.ids()}")

    def _build_kinesis_sink(self) -> KinesisStreamSink:
        client_manager = AWSClientManager(self.settings.aws)

        if self.settings.verify_stream_on_startup:
            client_manager.verify_stream(self.settings.stream_name)
        else:
            # Fail fast on client construction even without verification
            client_manager.kinesis_client

        return KinesisStreamSink(client_manager)

    async def start(self, ticker: Optional[AsyncIterable[Tick]] = None):
        """Run until a shutdown is requested or the ticker is exhausted."""
        if self.emission_loop is None:
            self.initialize()

        self._shutdown_event = asyncio.Event()
        self._setup_signal_handlers()

        logger.info(
            f"Starting Kinesis data producer for stream: {self.settings.stream_name} "
            f"in region: {self.settings.aws.region} with interval: {self.settings.interval_ms}ms"
        )

        if self.settings.metrics.enable_prometheus:
            self.metrics.serve(self.settings.metrics.prometheus_port)

        if self.settings.health.enabled:
            self.health_server = HealthCheckServer(
                self.health_check,
                host=self.settings.health.host,
                port=self.settings.health.port,
                service_name=self.settings.service_name
            )
            await self.health_server.start()

        if ticker is None:
            ticker = IntervalTicker(self.settings.interval_ms)

        loop_task = asyncio.create_task(self.emission_loop.run(ticker))
        shutdown_task = asyncio.create_task(self._shutdown_event.wait())

        try:
            await asyncio.wait({loop_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            logger.info("Shutting down Dashboard Producer Service")
            self.emission_loop.stop()

            for task in (loop_task, shutdown_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(loop_task, shutdown_task, return_exceptions=True)

            if self.health_server:
                await self.health_server.stop()

            self._remove_signal_handlers()

        if not loop_task.cancelled() and loop_task.exception():
            raise loop_task.exception()

        logger.info("Dashboard Producer Service stopped")

    def request_shutdown(self):
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    def _setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            logger.info(f"Received signal {signum}, initiating shutdown")
            self.request_shutdown()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, signal_handler, signum)
            except (NotImplementedError, RuntimeError):
                # Not available outside the main thread or on Windows
                logger.debug(f"Signal handler for {signum} not installed")

    def _remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(signum)
            except (NotImplementedError, RuntimeError):
                pass

    async def health_check(self) -> dict:
        """Perform health check."""
        health_status = {
            "service": self.settings.service_name,
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {}
        }

        if self.emission_loop:
            loop_health = await self.emission_loop.health_check()
            health_status["components"]["emission_loop"] = loop_health
            health_status["status"] = loop_health["status"]
        else:
            health_status["status"] = "starting"

        return health_status


async def main():
    """Main entry point."""
    # Bootstrap handler so configuration warnings are visible before setup_logging
    logging.basicConfig(level=logging.INFO)

    config_file = os.getenv("CONFIG_FILE")

    try:
        settings = load_settings(config_file)
    except (ValidationError, ValueError, FileNotFoundError) as e:
        logger.critical(f"Failed to load configuration: {e}")
        sys.exit(1)

    setup_logging(settings.logging, settings.service_name)
    if config_file:
        logger.info(f"Loaded configuration from: {config_file}")

    try:
        service = ProducerService(settings)
        service.initialize()
    except StartupError as e:
        logger.critical(f"Failed to start producer: {e}")
        sys.exit(1)

    try:
        await service.start()
    except Exception as e:
        logger.error(f"Service failed: {e}", exc_info=True)
        sys.exit(1)


def run():
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
