"""
Webhook request dispatch for kube-webhooks.

This module provides the request token, admission control helpers, the
conversion handler base class, and the aiohttp server that routes
AdmissionReview and ConversionReview requests to them. The server presents
the leaf certificate managed by ``kube_webhooks.services.tls_bootstrap``.
"""

from .admission import (
    AdmissionControlHandler,
    add_warning,
    allow,
    check_allowed_values,
    check_immutable,
    deny,
)
from .conversion import ResourceConversionHandler
from .review import WebhookRequest
from .server import WebhookServer

__all__ = [
    "AdmissionControlHandler",
    "ResourceConversionHandler",
    "WebhookRequest",
    "WebhookServer",
    "add_warning",
    "allow",
    "check_allowed_values",
    "check_immutable",
    "deny",
]
