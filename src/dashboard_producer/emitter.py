"""Tick-driven generate, encode and submit loop."""

import asyncio
import functools
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterable, Dict, Optional

from .clients.kinesis_client import PutResult, StreamSink
from .exceptions import EncodingError, SubmissionError
from .generator import Sample, SampleGenerator
from .metrics import ProducerMetrics
from .scheduler import Tick
from .serializer import encode_sample, partition_key_for

logger = logging.getLogger(__name__)

# Consecutive failed ticks before health reports degraded
DEGRADED_FAILURE_THRESHOLD = 10


class LoopState(Enum):
    IDLE = "idle"
    EMITTING = "emitting"


@dataclass
class EmissionResult:
    """Outcome of one tick."""
    sample: Optional[Sample] = None
    put_result: Optional[PutResult] = None
    error: Optional[Exception] = None
    payload_size: int = 0
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None and self.put_result is not None


class EmissionLoop:
    """
    Emits one synthetic sample to the stream per tick.

    Each tick moves the loop from IDLE to EMITTING, generates a sample,
    encodes it, submits it with the metric id as partition key and returns to
    IDLE. Failures are logged and counted; they never end the loop and are
    never retried.
    """

    def __init__(
        self,
        generator: SampleGenerator,
        sink: StreamSink,
        stream_name: str,
        metrics: Optional[ProducerMetrics] = None,
        submit_timeout_seconds: Optional[float] = None
    ):
        self.generator = generator
        self.sink = sink
        self.stream_name = stream_name
        self.metrics = metrics
        self.submit_timeout_seconds = submit_timeout_seconds

        self.state = LoopState.IDLE
        self._running = False
        self._consecutive_failures = 0

        self.stats = {
            'ticks': 0,
            'records_sent': 0,
            'bytes_sent': 0,
            'encoding_errors': 0,
            'submission_errors': 0,
            'unexpected_errors': 0,
            'last_shard_id': None,
            'last_sequence_number': None,
            'last_success_time': None,
            'last_error': None
        }

    @property
    def running(self) -> bool:
        return self._running

    async def run(self, ticker: AsyncIterable[Tick]):
        """Emit once per tick until the ticker is exhausted or ``stop`` is called."""
        self._running = True
        logger.info(f"Emission loop started for stream: {self.stream_name}")

        try:
            async for tick in ticker:
                if not self._running:
                    break
                self.stats['ticks'] += 1
                logger.debug(f"Tick {tick.sequence}")
                await self.emit_once()
        finally:
            self._running = False
            self.state = LoopState.IDLE
            logger.info(f"Emission loop stopped after {self.stats['ticks']} ticks")

    def stop(self):
        """Stop consuming ticks; the tick in progress is allowed to finish."""
        self._running = False

    async def emit_once(self) -> EmissionResult:
        """Run one generate, encode, submit cycle. Never raises for per-tick errors."""
        self.state = LoopState.EMITTING
        start_time = time.monotonic()
        result = EmissionResult()

        try:
            result.sample = self.generator.generate()
            payload = encode_sample(result.sample)
            result.payload_size = len(payload)

            result.put_result = await self._submit(partition_key_for(result.sample), payload)

        except EncodingError as e:
            result.error = e
            self.stats['encoding_errors'] += 1
            logger.error(
                f"Error encoding sample for stream {self.stream_name}: {e}",
                extra={'stream_name': self.stream_name, 'error_type': 'encoding'}
            )

        except SubmissionError as e:
            result.error = e
            self.stats['submission_errors'] += 1
            logger.error(
                f"Error sending data to Kinesis stream {self.stream_name}: {e}",
                extra={
                    'stream_name': self.stream_name,
                    'error_type': 'submission',
                    'error_code': e.error_code
                }
            )

        except Exception as e:
            result.error = e
            self.stats['unexpected_errors'] += 1
            logger.error(
                f"Unexpected error emitting to stream {self.stream_name}: {e}",
                exc_info=True,
                extra={'stream_name': self.stream_name, 'error_type': 'unexpected'}
            )

        finally:
            result.duration_ms = (time.monotonic() - start_time) * 1000
            self.state = LoopState.IDLE

        if result.success:
            self._record_success(result)
        else:
            self._record_failure(result)

        return result

    async def _submit(self, partition_key: str, payload: bytes) -> PutResult:
        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(
            None,
            functools.partial(self.sink.submit, self.stream_name, partition_key, payload)
        )

        if self.submit_timeout_seconds is None:
            return await call

        try:
            return await asyncio.wait_for(call, timeout=self.submit_timeout_seconds)
        except asyncio.TimeoutError as e:
            raise SubmissionError(
                f"put_record timed out after {self.submit_timeout_seconds}s",
                stream_name=self.stream_name,
                error_code='Timeout'
            ) from e

    def _record_success(self, result: EmissionResult):
        sample = result.sample
        put_result = result.put_result

        self._consecutive_failures = 0
        self.stats['records_sent'] += 1
        self.stats['bytes_sent'] += result.payload_size
        self.stats['last_shard_id'] = put_result.shard_id
        self.stats['last_sequence_number'] = put_result.sequence_number
        self.stats['last_success_time'] = time.time()

        if self.metrics:
            self.metrics.record_success(sample.id, result.duration_ms / 1000)

        logger.info(f"Message sent to Kinesis stream {self.stream_name}: {sample.to_dict()}")
        logger.info(
            f"Shard ID: {put_result.shard_id}, Sequence Number: {put_result.sequence_number}"
        )

    def _record_failure(self, result: EmissionResult):
        self._consecutive_failures += 1
        self.stats['last_error'] = str(result.error)

        if self.metrics:
            if isinstance(result.error, EncodingError):
                error_type = 'encoding'
            elif isinstance(result.error, SubmissionError):
                error_type = 'submission'
            else:
                error_type = 'unexpected'
            self.metrics.record_failure(error_type, result.duration_ms / 1000)

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            'state': self.state.value,
            'running': self._running,
            'consecutive_failures': self._consecutive_failures
        }

    async def health_check(self) -> Dict[str, Any]:
        """Report loop health for the health endpoint."""
        issues = []

        if not self._running:
            status = 'stopped'
            issues.append('Emission loop not running')
        elif self._consecutive_failures >= DEGRADED_FAILURE_THRESHOLD:
            status = 'degraded'
            issues.append(f'{self._consecutive_failures} consecutive failed emissions')
        else:
            status = 'healthy'

        return {
            'status': status,
            'stream_name': self.stream_name,
            'issues': issues,
            'stats': self.get_stats()
        }
