"""Video identification, reconciliation and frame capture core."""

__version__ = "0.1.0"
