"""Configuration settings using Pydantic for validation."""

import logging
import os
import re
from typing import Any, List, Optional

import yaml
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..catalog import DEFAULT_METRICS, MetricCatalog

logger = logging.getLogger(__name__)

DEFAULT_STREAM_NAME = "dashboard-updates"
DEFAULT_REGION = "us-east-1"
DEFAULT_INTERVAL_MS = 100
MIN_INTERVAL_MS = 1

PLACEHOLDER_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_interval_ms(raw: Any) -> int:
    """
    Turn a configured tick interval into a usable millisecond period.

    Missing or unparseable values fall back to the default, non-positive values
    fall back to the default, and values below the minimum are raised to it.
    Bad values are logged as warnings and never raised.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return DEFAULT_INTERVAL_MS

    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for INTERVAL_MS ({raw!r}), using default: {DEFAULT_INTERVAL_MS}")
        return DEFAULT_INTERVAL_MS

    if value <= 0:
        logger.warning(f"INTERVAL_MS must be positive, using default: {DEFAULT_INTERVAL_MS}")
        return DEFAULT_INTERVAL_MS

    if value < MIN_INTERVAL_MS:
        logger.warning(f"INTERVAL_MS={value} is too small, using minimum value: {MIN_INTERVAL_MS}")
        return MIN_INTERVAL_MS

    return value


class MetricConfig(BaseModel):
    """One catalog entry as it appears in configuration."""
    id: str = Field(description="Stable metric identifier, also the partition key")
    label: str = Field(description="Human-readable metric name")
    min: float = Field(description="Lower bound of generated values")
    max: float = Field(description="Upper bound of generated values")
    unit: str = Field(description="Unit shown next to the value")


def _default_catalog_config() -> List[MetricConfig]:
    return [
        MetricConfig(id=m.id, label=m.label, min=m.min, max=m.max, unit=m.unit)
        for m in DEFAULT_METRICS
    ]


class AWSConfig(BaseModel):
    """AWS services configuration."""
    region: str = Field(
        default_factory=lambda: os.getenv("AWS_REGION") or DEFAULT_REGION,
        description="AWS region"
    )

    # AWS credentials (optional - use IAM roles or the default chain in production)
    access_key_id: Optional[str] = Field(default=None, description="AWS access key ID")
    secret_access_key: Optional[str] = Field(default=None, description="AWS secret access key")

    connect_timeout_seconds: float = Field(default=5.0, description="Kinesis connect timeout")
    read_timeout_seconds: float = Field(default=10.0, description="Kinesis read timeout")
    max_sdk_retries: int = Field(default=0, ge=0, description="botocore retries per put_record call")

    # LocalStack overrides for local development
    endpoint_url: Optional[str] = Field(default=None, description="LocalStack endpoint URL")

    @field_validator('region')
    @classmethod
    def default_blank_region(cls, v):
        return v.strip() or DEFAULT_REGION


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")
    output: str = Field(default="stdout", description="Log output destination")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        if v.upper() not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        if v.lower() not in ['json', 'text']:
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class MetricsConfig(BaseModel):
    """Prometheus metrics configuration."""
    enable_prometheus: bool = Field(default=False, description="Serve Prometheus metrics")
    prometheus_port: int = Field(default=8081, description="Prometheus metrics port")


class HealthConfig(BaseModel):
    """Health check server configuration."""
    enabled: bool = Field(default=False, description="Run the health check server")
    host: str = Field(default="0.0.0.0", description="Health check server host")
    port: int = Field(default=8080, description="Health check server port")


class ProducerSettings(BaseSettings):
    """Main producer service settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    # Service configuration
    service_name: str = Field(default="dashboard-producer", description="Service name")
    environment: str = Field(default="local", description="Environment: local, dev, prod")

    # Emission
    stream_name: str = Field(default=DEFAULT_STREAM_NAME, description="Target Kinesis stream")
    interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, description="Tick interval in milliseconds")
    submit_timeout_seconds: Optional[float] = Field(
        default=None,
        description=(
            "Upper bound on a single put_record call (disabled when unset). "
            "The call is abandoned, not cancelled, so a timed-out record may "
            "still land in the stream while counting as a submission error"
        )
    )
    verify_stream_on_startup: bool = Field(default=True, description="Describe the stream before emitting")

    # Plain AWS_REGION from the environment or .env, applied when aws.region is not given
    aws_region: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("aws_region", "AWS_REGION"),
        exclude=True
    )

    # Component configurations
    aws: AWSConfig = Field(default_factory=AWSConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    catalog: List[MetricConfig] = Field(default_factory=_default_catalog_config)

    @field_validator('stream_name', mode='before')
    @classmethod
    def default_blank_stream_name(cls, v):
        if v is None or not str(v).strip():
            return DEFAULT_STREAM_NAME
        return str(v).strip()

    @field_validator('interval_ms', mode='before')
    @classmethod
    def clamp_interval(cls, v):
        return resolve_interval_ms(v)

    @field_validator('submit_timeout_seconds')
    @classmethod
    def validate_submit_timeout(cls, v):
        if v is not None and v <= 0:
            raise ValueError("submit_timeout_seconds must be positive")
        return v

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        if v not in ['local', 'dev', 'prod']:
            raise ValueError("Environment must be 'local', 'dev', or 'prod'")
        return v

    @model_validator(mode='after')
    def apply_plain_region(self):
        if self.aws_region and self.aws_region.strip() and 'region' not in self.aws.model_fields_set:
            self.aws.region = self.aws_region.strip()
        return self

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    def build_catalog(self) -> MetricCatalog:
        """Construct the immutable metric catalog from the configured entries."""
        return MetricCatalog.from_dicts(entry.model_dump() for entry in self.catalog)


def _expand_placeholder(match: re.Match) -> str:
    name, has_default, default = match.group(1).partition(':-')
    value = os.getenv(name.strip())

    if value is not None:
        return value
    if has_default:
        return default
    raise ValueError(f"Required environment variable '{name.strip()}' is not set")


def substitute_env_vars(obj: Any) -> Any:
    """
    Expand ``${NAME}`` and ``${NAME:-fallback}`` placeholders in parsed YAML.

    Dicts and lists are walked; only string leaves are rewritten, so numbers and
    booleans keep their YAML types.

    Raises:
        ValueError: If a placeholder without a fallback names an unset variable
    """
    if isinstance(obj, dict):
        return {key: substitute_env_vars(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [substitute_env_vars(item) for item in obj]
    if isinstance(obj, str):
        return PLACEHOLDER_PATTERN.sub(_expand_placeholder, obj)
    return obj


def load_settings(config_file: Optional[str] = None) -> ProducerSettings:
    """
    Build producer settings, optionally layering a YAML file over the environment.

    Keys present in the file win over environment variables and ``.env``.
    Keys it leaves out (stream name, interval, region, catalog and so on) fall
    through to the environment and then to the built-in defaults. An empty file
    is the same as no file.

    Raises:
        FileNotFoundError: If ``config_file`` is given but does not exist
        ValueError: If the file references an unset required variable
    """
    if not config_file:
        return ProducerSettings()

    if not os.path.exists(config_file):
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    with open(config_file, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    return ProducerSettings(**substitute_env_vars(raw_config))
