"""Random sample generation over a metric catalog."""

import random
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .catalog import MetricCatalog, MetricDefinition


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """
    Render an instant as fixed-width ISO-8601 UTC with millisecond precision.

    Example: ``2024-01-01T12:00:00.123Z``. Naive datetimes are assumed to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class Sample:
    """One generated data point for a metric."""
    id: str
    label: str
    value: float
    unit: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SampleGenerator:
    """
    Fabricates samples by picking a metric uniformly at random and drawing a
    value uniformly from its range.

    The random source and clock are injected so that a seeded generator
    produces a reproducible sequence of samples.
    """

    def __init__(
        self,
        catalog: MetricCatalog,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.catalog = catalog
        self.rng = rng if rng is not None else random.Random()
        self.clock = clock

    def generate(self) -> Sample:
        """Produce one sample stamped with the current capture time."""
        definition = self.catalog[self.rng.randrange(len(self.catalog))]
        value = self._draw_value(definition)

        return Sample(
            id=definition.id,
            label=definition.label,
            value=value,
            unit=definition.unit,
            timestamp=format_timestamp(self.clock())
        )

    def _draw_value(self, definition: MetricDefinition) -> float:
        value = definition.min + self.rng.random() * (definition.max - definition.min)
        # Float rounding can land a hair outside the closed range
        return float(min(max(value, definition.min), definition.max))
