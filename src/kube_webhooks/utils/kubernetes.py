"""
Kubernetes utilities for kube-webhooks.

This module provides helper functions for interacting with the Kubernetes API:
- Kubernetes client management and configuration
- Conversion of API objects to plain manifests
- Server-side apply with consistent error translation
"""

import copy
import logging
from collections.abc import Callable
from typing import Any

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from kube_webhooks.constants import APPLY_PATCH_CONTENT_TYPE, FIELD_MANAGER
from kube_webhooks.errors import ApplyFailureError, TransportError

logger = logging.getLogger(__name__)


def get_kubernetes_client() -> client.ApiClient:
    """
    Get configured Kubernetes API client.

    Tries the in-cluster service account first (when running in a pod) and
    falls back to the local kubeconfig for development.

    Returns:
        Configured Kubernetes API client

    Raises:
        TransportError: If neither configuration can be loaded
    """
    try:
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise TransportError(
                f"Failed to load Kubernetes configuration: {e}", cause=e
            ) from e

    return client.ApiClient()


def to_manifest(k8s_client: client.ApiClient, obj: Any) -> dict[str, Any]:
    """Serialize a typed API object to the camelCase dict the API server speaks."""
    return k8s_client.sanitize_for_serialization(obj)


def strip_managed_fields(manifest: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``manifest`` without ``metadata.managedFields``."""
    manifest = copy.deepcopy(manifest)
    metadata = manifest.get("metadata")
    if isinstance(metadata, dict):
        metadata.pop("managedFields", None)
    return manifest


def transport_error(action: str, error: Exception) -> TransportError:
    """
    Translate a client-side failure into a TransportError.

    Args:
        action: What was attempted, e.g. "read secret default/tls"
        error: ApiException or urllib3 error raised by the client

    Returns:
        TransportError chained to ``error``
    """
    if isinstance(error, ApiException):
        return TransportError(
            f"Failed to {action}", reason=error.reason, status=error.status, cause=error
        )
    return TransportError(f"Failed to {action}: {error}", cause=error)


def server_side_apply(
    patch: Callable[..., Any], kind: str, name: str, manifest: dict[str, Any]
) -> None:
    """
    Apply ``manifest`` with server-side apply.

    Args:
        patch: Bound ``patch_*`` method of a typed API (e.g.
            ``AdmissionregistrationV1Api.patch_validating_webhook_configuration``)
        kind: Resource kind (for logs and errors)
        name: Resource name
        manifest: Full manifest to apply

    Raises:
        ApplyFailureError: If the API server rejects the apply
        TransportError: If the API server cannot be reached
    """
    try:
        patch(
            name=name,
            body=manifest,
            field_manager=FIELD_MANAGER,
            force=True,
            _content_type=APPLY_PATCH_CONTENT_TYPE,
        )
    except ApiException as e:
        if e.status in (401, 403):
            raise transport_error(f"apply {kind} {name}", e) from e
        raise ApplyFailureError(kind, name, reason=e.reason, cause=e) from e
    except urllib3.exceptions.HTTPError as e:
        raise transport_error(f"apply {kind} {name}", e) from e

    logger.info(
        f"Applied {kind} {name}",
        extra={"resource_kind": kind, "resource_name": name, "operation": "apply"},
    )
