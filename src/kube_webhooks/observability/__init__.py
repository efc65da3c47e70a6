"""
Observability utilities for kube-webhooks.

This module provides metrics and structured logging capabilities for
production monitoring and troubleshooting.
"""

from .logging import setup_structured_logging
from .metrics import get_metrics_registry

__all__ = [
    "get_metrics_registry",
    "setup_structured_logging",
]
