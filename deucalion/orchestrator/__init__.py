"""Scheduling of poller passes."""
from .periodic import PeriodicRunner

__all__ = ["PeriodicRunner"]
