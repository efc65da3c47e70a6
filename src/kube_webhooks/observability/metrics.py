"""
Prometheus metrics for kube-webhooks.

This module provides metrics for the certificate bootstrap, the caBundle
propagation and the webhook request handling.
"""

import logging
from datetime import datetime

from prometheus_client import CollectorRegistry, Counter, Gauge

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

# Metrics definitions
CERTIFICATE_BOOTSTRAP_TOTAL = Counter(
    "kube_webhooks_certificate_bootstrap_total",
    "Outcomes of ensure_certificates (created, existing, renewed, adopted)",
    ["result"],
    registry=None,  # Will be set during initialization
)

LEAF_CERTIFICATE_EXPIRY_TIMESTAMP = Gauge(
    "kube_webhooks_leaf_certificate_expiry_timestamp_seconds",
    "Unix timestamp when the webhook leaf certificate expires",
    ["namespace", "secret_name"],
    registry=None,
)

CA_BUNDLE_PATCHES_TOTAL = Counter(
    "kube_webhooks_ca_bundle_patches_total",
    "Total number of resources patched with a new caBundle",
    ["kind"],
    registry=None,
)

WEBHOOK_REQUESTS_TOTAL = Counter(
    "kube_webhooks_webhook_requests_total",
    "Total number of webhook review requests handled",
    ["path", "kind", "allowed"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry
    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()
        for metric in [
            CERTIFICATE_BOOTSTRAP_TOTAL,
            LEAF_CERTIFICATE_EXPIRY_TIMESTAMP,
            CA_BUNDLE_PATCHES_TOTAL,
            WEBHOOK_REQUESTS_TOTAL,
        ]:
            _metrics_registry.register(metric)
    return _metrics_registry


def record_bootstrap(
    result: str, namespace: str, secret_name: str, leaf_expiry: datetime
) -> None:
    """
    Record the outcome of a certificate bootstrap.

    Args:
        result: created, existing, renewed or adopted
        namespace: Namespace of the certificate secret
        secret_name: Name of the certificate secret
        leaf_expiry: notAfter of the leaf certificate now in the secret
    """
    CERTIFICATE_BOOTSTRAP_TOTAL.labels(result=result).inc()
    LEAF_CERTIFICATE_EXPIRY_TIMESTAMP.labels(
        namespace=namespace, secret_name=secret_name
    ).set(leaf_expiry.timestamp())


def record_ca_bundle_patch(kind: str) -> None:
    """Record a resource patched with a new caBundle."""
    CA_BUNDLE_PATCHES_TOTAL.labels(kind=kind).inc()


def record_webhook_request(path: str, kind: str | None, allowed: bool | None) -> None:
    """Record a handled webhook review."""
    WEBHOOK_REQUESTS_TOTAL.labels(
        path=path,
        kind=kind or "unknown",
        allowed="n/a" if allowed is None else str(allowed).lower(),
    ).inc()
