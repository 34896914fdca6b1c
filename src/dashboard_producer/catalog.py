"""Static catalog of the metrics the producer can fabricate."""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class MetricDefinition:
    """Description of one telemetry signal and its valid value range."""
    id: str
    label: str
    min: float
    max: float
    unit: str

    def __post_init__(self):
        for name in ('id', 'label', 'unit'):
            if not getattr(self, name):
                raise ValueError(f"Metric definition field '{name}' must not be empty")
        if self.min > self.max:
            raise ValueError(
                f"Metric '{self.id}' has min {self.min} greater than max {self.max}"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'MetricDefinition':
        return cls(
            id=str(data['id']),
            label=str(data['label']),
            min=float(data['min']),
            max=float(data['max']),
            unit=str(data['unit'])
        )


class MetricCatalog:
    """
    Immutable, ordered collection of metric definitions.

    A catalog is built once at startup and handed to the sample generator.
    Malformed catalogs (empty, duplicate ids, invalid ranges) are programming
    errors and raise ``ValueError`` on construction.
    """

    def __init__(self, definitions: Iterable[MetricDefinition]):
        self._definitions: Tuple[MetricDefinition, ...] = tuple(definitions)

        if not self._definitions:
            raise ValueError("Metric catalog must contain at least one definition")

        self._by_id: Dict[str, MetricDefinition] = {}
        for definition in self._definitions:
            if definition.id in self._by_id:
                raise ValueError(f"Duplicate metric id in catalog: {definition.id}")
            self._by_id[definition.id] = definition

    @classmethod
    def from_dicts(cls, entries: Iterable[Mapping[str, Any]]) -> 'MetricCatalog':
        """Build a catalog from plain mappings, e.g. a YAML ``catalog:`` list."""
        return cls(MetricDefinition.from_dict(entry) for entry in entries)

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[MetricDefinition]:
        return iter(self._definitions)

    def __getitem__(self, index: int) -> MetricDefinition:
        return self._definitions[index]

    def __repr__(self) -> str:
        return f"MetricCatalog(ids={self.ids()})"

    def ids(self) -> List[str]:
        return [definition.id for definition in self._definitions]

    def get(self, metric_id: str) -> Optional[MetricDefinition]:
        return self._by_id.get(metric_id)


DEFAULT_METRICS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(id="cpu", label="CPU Usage", min=0, max=100, unit="%"),
    MetricDefinition(id="memory", label="Memory Usage", min=0, max=16, unit="GB"),
    MetricDefinition(id="network", label="Network Traffic", min=0, max=1000, unit="Mbps"),
    MetricDefinition(id="users", label="Active Users", min=10, max=1000, unit="users"),
)


def default_catalog() -> MetricCatalog:
    """Return the catalog used by the dashboard producer out of the box."""
    return MetricCatalog(DEFAULT_METRICS)
