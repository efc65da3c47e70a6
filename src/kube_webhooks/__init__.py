"""
kube-webhooks - TLS lifecycle and request dispatch for Kubernetes webhooks.

The certificate secret is created once, renewed before it expires, and its
CA is propagated to the admission configurations and CRD conversion webhooks
that call the webhook server.
"""

__version__ = "0.1.0"

from kube_webhooks.services.ca_bundle_propagation import (
    update_admission_webhook_configs,
    update_crd_conversion_configs,
)
from kube_webhooks.services.tls_bootstrap import ensure_certificates

__all__ = [
    "__version__",
    "ensure_certificates",
    "update_admission_webhook_configs",
    "update_crd_conversion_configs",
]
