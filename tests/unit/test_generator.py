"""Tests for sample generation."""

import random
import re
from collections import Counter
from datetime import datetime, timedelta, timezone

from dashboard_producer.catalog import MetricCatalog, MetricDefinition
from dashboard_producer.generator import Sample, SampleGenerator, format_timestamp

TIMESTAMP_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$')


class TestFormatTimestamp:
    """Test timestamp rendering."""

    def test_utc_with_milliseconds(self):
        """Test millisecond UTC formatting."""
        moment = datetime(2024, 1, 2, 3, 4, 5, 678900, tzinfo=timezone.utc)
        assert format_timestamp(moment) == "2024-01-02T03:04:05.678Z"

    def test_converts_other_timezones_to_utc(self):
        """Test aware datetimes are converted to UTC."""
        seoul = timezone(timedelta(hours=9))
        moment = datetime(2024, 1, 1, 9, 0, 0, tzinfo=seoul)

        assert format_timestamp(moment) == "2024-01-01T00:00:00.000Z"

    def test_naive_datetime_treated_as_utc(self):
        """Test naive datetimes are read as UTC."""
        assert format_timestamp(datetime(2024, 6, 30, 23, 59, 59)) == "2024-06-30T23:59:59.000Z"

    def test_fixed_width_sorts_chronologically(self):
        """Test timestamps sort as plain strings."""
        earlier = format_timestamp(datetime(2024, 1, 1, 9, 59, 59, 999000, tzinfo=timezone.utc))
        later = format_timestamp(datetime(2024, 1, 1, 10, 0, 0, 0, tzinfo=timezone.utc))

        assert len(earlier) == len(later)
        assert earlier < later


class TestSampleGenerator:
    """Test SampleGenerator behaviour."""

    def test_single_metric_catalog(self, cpu_catalog):
        """Test a one-metric catalog always yields that metric."""
        generator = SampleGenerator(cpu_catalog)

        sample = generator.generate()

        assert isinstance(sample, Sample)
        assert sample.id == "cpu"
        assert sample.label == "CPU Usage"
        assert sample.unit == "%"
        assert 0 <= sample.value <= 100
        assert TIMESTAMP_PATTERN.match(sample.timestamp)

    def test_values_stay_in_range(self, catalog):
        """Test every value lies within its metric's bounds."""
        generator = SampleGenerator(catalog, rng=random.Random(7))

        for _ in range(5000):
            sample = generator.generate()
            definition = catalog.get(sample.id)
            assert definition.min <= sample.value <= definition.max
            assert sample.label == definition.label
            assert sample.unit == definition.unit

    def test_degenerate_range(self):
        """Test a zero-width range yields its bound."""
        catalog = MetricCatalog([MetricDefinition(id="const", label="Constant", min=3, max=3, unit="u")])
        generator = SampleGenerator(catalog, rng=random.Random(1))

        assert all(generator.generate().value == 3.0 for _ in range(100))

    def test_value_clamped_when_rng_returns_upper_edge(self, cpu_catalog):
        """Test values are clamped to max."""
        rng = random.Random()
        rng.random = lambda: 1.0
        generator = SampleGenerator(cpu_catalog, rng=rng)

        assert generator.generate().value == 100.0

    def test_selection_covers_catalog_uniformly(self, catalog):
        """Test metric selection is roughly uniform."""
        generator = SampleGenerator(catalog, rng=random.Random(2024))
        draws = 20000

        counts = Counter(generator.generate().id for _ in range(draws))

        assert set(counts) == set(catalog.ids())
        expected = draws / len(catalog)
        for metric_id, count in counts.items():
            assert abs(count - expected) < expected * 0.1, metric_id

    def test_timestamp_from_injected_clock(self, catalog, fixed_clock):
        """Test the timestamp comes from the clock."""
        generator = SampleGenerator(catalog, clock=fixed_clock)

        assert generator.generate().timestamp == "2024-01-01T12:00:00.123Z"

    def test_seeded_generators_are_reproducible(self, catalog, fixed_clock):
        """Test equal seeds give equal sample sequences."""
        first = SampleGenerator(catalog, rng=random.Random(99), clock=fixed_clock)
        second = SampleGenerator(catalog, rng=random.Random(99), clock=fixed_clock)

        assert [first.generate() for _ in range(2)] == [second.generate() for _ in range(2)]

    def test_different_seeds_diverge(self, catalog, fixed_clock):
        """Test different seeds give different sequences."""
        first = SampleGenerator(catalog, rng=random.Random(1), clock=fixed_clock)
        second = SampleGenerator(catalog, rng=random.Random(2), clock=fixed_clock)

        assert [first.generate() for _ in range(10)] != [second.generate() for _ in range(10)]

    def test_to_dict_field_names(self, sample_cpu):
        """Test sample field names on the wire."""
        assert sample_cpu.to_dict() == {
            'id': 'cpu',
            'label': 'CPU Usage',
            'value': 42.123456789,
            'unit': '%',
            'timestamp': '2024-01-01T12:00:00.123Z'
        }
