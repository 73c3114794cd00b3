"""Declarative reconciliation of rendered manifests for custom objects, through caller-supplied cluster clients."""

__version__ = "0.1.0"