"""
Error handling module for kube-webhooks.

This module provides the error hierarchy raised by the TLS bootstrap,
the caBundle propagation and the conversion webhook helpers.
"""

from .webhook_errors import (
    ApplyFailureError,
    CertificateBootstrapError,
    ConfigurationError,
    ConversionError,
    MalformedRecordError,
    NoTargetsFoundError,
    TransportError,
    WebhookTLSError,
)

__all__ = [
    "WebhookTLSError",
    "TransportError",
    "MalformedRecordError",
    "CertificateBootstrapError",
    "ApplyFailureError",
    "NoTargetsFoundError",
    "ConfigurationError",
    "ConversionError",
]
