"""Rewrite client metadata per resource for traces, logs and metrics from resource attributes."""

__version__ = "0.1.0"