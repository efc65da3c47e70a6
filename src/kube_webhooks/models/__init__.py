"""
Models package - Pydantic models for type-safe resource handling.

Defines data models for:
- The certificate bundle kept in the webhook TLS secret
- Admission webhook configurations and CRDs carrying a caBundle
"""

from kube_webhooks.models.bundle import CertificateBundle
from kube_webhooks.models.targets import CRDConversionTarget, WebhookConfigTarget

__all__ = ["CertificateBundle", "CRDConversionTarget", "WebhookConfigTarget"]
