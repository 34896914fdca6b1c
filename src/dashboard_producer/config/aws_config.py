"""AWS-specific configuration and client setup."""

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import StartupError
from .settings import AWSConfig

logger = logging.getLogger(__name__)


class AWSClientManager:
    """Manages the Kinesis client instance with proper configuration."""

    def __init__(self, aws_config: AWSConfig):
        self.config = aws_config
        self._kinesis_client = None

        # Retries stay off by default: a failed put is reported, not replayed
        self._boto_config = Config(
            region_name=aws_config.region,
            retries={
                'max_attempts': aws_config.max_sdk_retries,
                'mode': 'standard'
            },
            connect_timeout=aws_config.connect_timeout_seconds,
            read_timeout=aws_config.read_timeout_seconds
        )

    @property
    def kinesis_client(self):
        """Get or create Kinesis client."""
        if self._kinesis_client is None:
            try:
                if self.config.endpoint_url:
                    # LocalStack configuration for local development
                    self._kinesis_client = boto3.client(
                        'kinesis',
                        endpoint_url=self.config.endpoint_url,
                        aws_access_key_id=self.config.access_key_id or 'test',
                        aws_secret_access_key=self.config.secret_access_key or 'test',
                        config=self._boto_config
                    )
                    logger.info(f"Created LocalStack Kinesis client: {self.config.endpoint_url}")
                else:
                    self._kinesis_client = boto3.client(
                        'kinesis',
                        aws_access_key_id=self.config.access_key_id,
                        aws_secret_access_key=self.config.secret_access_key,
                        config=self._boto_config
                    )
                    logger.info(f"Created AWS Kinesis client in region: {self.config.region}")
            except (BotoCoreError, ValueError) as e:
                raise StartupError(f"Failed to create Kinesis client: {e}") from e

        return self._kinesis_client

    def verify_stream(self, stream_name: str) -> dict:
        """
        Confirm the target stream exists and is accepting writes.

        Returns:
            The stream summary reported by Kinesis

        Raises:
            StartupError: If the stream is missing, not active, or the
                credentials are rejected
        """
        try:
            response = self.kinesis_client.describe_stream_summary(StreamName=stream_name)
        except ClientError as e:
            code = e.response.get('Error', {}).get('Code', 'Unknown')
            raise StartupError(f"Cannot access stream {stream_name} ({code}): {e}") from e
        except BotoCoreError as e:
            raise StartupError(f"Cannot reach Kinesis for stream {stream_name}: {e}") from e

        summary = response['StreamDescriptionSummary']
        status = summary.get('StreamStatus')
        if status not in ('ACTIVE', 'UPDATING'):
            raise StartupError(f"Stream {stream_name} is not writable (status: {status})")

        logger.info(
            f"Verified stream {stream_name}: status={status}, "
            f"open_shards={summary.get('OpenShardCount')}"
        )
        return summary
