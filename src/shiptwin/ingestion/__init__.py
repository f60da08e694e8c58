"""Ingestion layer.

Turns raw telemetry (validated models or JSON mappings from the HTTP layer)
into twin updates.
"""

from shiptwin.ingestion.telemetry import TelemetryIngestor

__all__ = ["TelemetryIngestor"]
