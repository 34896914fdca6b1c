"""JSON wire format for samples sent to the stream."""

import json
import math
from typing import Any, Dict

from .exceptions import EncodingError
from .generator import Sample

REQUIRED_FIELDS = ('id', 'label', 'value', 'unit', 'timestamp')


def encode_sample(sample: Sample) -> bytes:
    """
    Serialize a sample into a compact UTF-8 JSON object.

    Args:
        sample: Sample to encode

    Returns:
        JSON bytes with fields id, label, value, unit and timestamp

    Raises:
        EncodingError: If the sample holds a non-finite value or content
            that JSON cannot represent
    """
    if not isinstance(sample.value, (int, float)) or isinstance(sample.value, bool):
        raise EncodingError(f"Sample value for '{sample.id}' is not a number: {sample.value!r}")
    if not math.isfinite(sample.value):
        raise EncodingError(f"Sample value for '{sample.id}' is not finite: {sample.value}")

    try:
        return json.dumps(
            sample.to_dict(),
            separators=(',', ':'),
            ensure_ascii=False,
            allow_nan=False
        ).encode('utf-8')
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Failed to encode sample '{sample.id}': {e}") from e


def decode_sample(payload: bytes) -> Sample:
    """Parse a payload produced by ``encode_sample`` back into a Sample."""
    try:
        data: Dict[str, Any] = json.loads(payload.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        raise EncodingError(f"Payload is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise EncodingError("Payload is not a JSON object")

    missing = [field for field in REQUIRED_FIELDS if field not in data]
    if missing:
        raise EncodingError(f"Payload missing fields: {', '.join(missing)}")

    value = data['value']
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise EncodingError(f"Payload value is not a number: {value!r}")

    return Sample(
        id=str(data['id']),
        label=str(data['label']),
        value=float(value),
        unit=str(data['unit']),
        timestamp=str(data['timestamp'])
    )


def partition_key_for(sample: Sample) -> str:
    """All records of one metric route to the same shard."""
    return sample.id
