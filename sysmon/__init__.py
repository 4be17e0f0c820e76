"""Threshold evaluation and alert dispatch for single-node system monitoring."""

__version__ = "0.1.0"
