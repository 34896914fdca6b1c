"""Stream sink contract and its AWS Kinesis Data Streams implementation."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from botocore.exceptions import BotoCoreError, ClientError

from ..config.aws_config import AWSClientManager
from ..exceptions import SubmissionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PutResult:
    """Placement assigned by the stream to an accepted record."""
    shard_id: str
    sequence_number: str


class StreamSink(ABC):
    """
    Append-only, partitioned delivery target.

    ``submit`` is atomic per call: the record is either accepted and its
    placement returned, or rejected with ``SubmissionError``. Implementations
    may block on network I/O.
    """

    @abstractmethod
    def submit(self, stream_name: str, partition_key: str, payload: bytes) -> PutResult:
        """Append one record to the stream."""


class KinesisStreamSink(StreamSink):
    """Writes single records with ``PutRecord``; never retries on its own."""

    def __init__(self, aws_client_manager: AWSClientManager):
        self.aws_client_manager = aws_client_manager

    def submit(self, stream_name: str, partition_key: str, payload: bytes) -> PutResult:
        kinesis_client = self.aws_client_manager.kinesis_client

        try:
            response = kinesis_client.put_record(
                StreamName=stream_name,
                Data=payload,
                PartitionKey=partition_key
            )
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            raise SubmissionError(
                f"Failed to put record to Kinesis: {e}",
                stream_name=stream_name,
                error_code=error_code
            ) from e
        except BotoCoreError as e:
            raise SubmissionError(
                f"Failed to reach Kinesis: {e}",
                stream_name=stream_name,
                error_code=type(e).__name__
            ) from e

        return PutResult(
            shard_id=response['ShardId'],
            sequence_number=response['SequenceNumber']
        )
