"""Pytest configuration and shared fixtures."""

import logging
import random
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from dashboard_producer.catalog import MetricCatalog, MetricDefinition, default_catalog
from dashboard_producer.clients.kinesis_client import PutResult, StreamSink
from dashboard_producer.config.settings import AWSConfig, ProducerSettings
from dashboard_producer.generator import Sample, SampleGenerator

FIXED_TIME = datetime(2024, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)

PRODUCER_ENV_VARS = [
    'STREAM_NAME', 'INTERVAL_MS', 'AWS_REGION', 'AWS__REGION', 'AWS__ENDPOINT_URL',
    'SUBMIT_TIMEOUT_SECONDS', 'VERIFY_STREAM_ON_STARTUP', 'ENVIRONMENT',
    'SERVICE_NAME', 'LOGGING__LEVEL', 'LOGGING__FORMAT', 'CATALOG', 'CONFIG_FILE'
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run with no producer env vars and no stray .env file."""
    for name in PRODUCER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def test_settings(clean_env) -> ProducerSettings:
    """Create test configuration."""
    return ProducerSettings(
        service_name="test-producer",
        environment="local",
        stream_name="test-dashboard-updates",
        interval_ms=10,
        verify_stream_on_startup=False,
        aws=AWSConfig(region="us-east-1", endpoint_url="http://localhost:4566")
    )


@pytest.fixture
def catalog() -> MetricCatalog:
    return default_catalog()


@pytest.fixture
def cpu_catalog() -> MetricCatalog:
    return MetricCatalog([MetricDefinition(id="cpu", label="CPU Usage", min=0, max=100, unit="%")])


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_TIME


@pytest.fixture
def seeded_generator(catalog, fixed_clock) -> SampleGenerator:
    return SampleGenerator(catalog, rng=random.Random(42), clock=fixed_clock)


@pytest.fixture
def sample_cpu() -> Sample:
    """Sample CPU reading for testing."""
    return Sample(
        id="cpu",
        label="CPU Usage",
        value=42.123456789,
        unit="%",
        timestamp="2024-01-01T12:00:00.123Z"
    )


@pytest.fixture
def put_result() -> PutResult:
    return PutResult(
        shard_id="shardId-000000000000",
        sequence_number="49546986683135544286507457936321625675700192471156785154"
    )


@pytest.fixture
def mock_sink(put_result):
    """Mock stream sink that accepts every record."""
    sink = Mock(spec=StreamSink)
    sink.submit = Mock(return_value=put_result)
    return sink


@pytest.fixture
def restore_root_logger():
    """Undo handler changes made by setup_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
