"""
Service layer for kube-webhooks.

This module provides the certificate bootstrap and the caBundle propagation,
separated from the entrypoint and the kopf integration.
"""

from .ca_bundle_propagation import (
    update_admission_webhook_configs,
    update_crd_conversion_configs,
)
from .tls_bootstrap import BootstrapState, ensure_certificates

__all__ = [
    "BootstrapState",
    "ensure_certificates",
    "update_admission_webhook_configs",
    "update_crd_conversion_configs",
]
