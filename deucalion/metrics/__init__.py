"""Metrics package public interface.

Stable import surfaces:
	from deucalion.metrics import ExporterMetrics, MetricsServer
"""
from .self_metrics import ExporterMetrics
from .server import MetricsServer

__all__ = ["ExporterMetrics", "MetricsServer"]
