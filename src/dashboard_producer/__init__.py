"""
Dashboard Data Producer - synthetic telemetry for real-time dashboards.

This package periodically fabricates metric readings (CPU, memory, network,
active users) and publishes them as JSON records to a Kinesis data stream.
"""

__version__ = "1.0.0"
__author__ = "Dashboard Pipeline Team"
