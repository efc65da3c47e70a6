"""
Environment driven TLS bootstrap, meant to run as an init container.

Creates or renews the certificate secret and pushes the CA bundle to the
admission configuration and the CRD conversion webhooks named in the
environment. Any failure exits with status 1 so that the pod restarts and
the bootstrap runs again from scratch.

Usage:
    kube-webhooks-bootstrap
    python -m kube_webhooks.bootstrap
"""

import logging
import sys

from kubernetes import client

from kube_webhooks.errors import ConfigurationError, WebhookTLSError
from kube_webhooks.observability.logging import setup_structured_logging
from kube_webhooks.services.ca_bundle_propagation import (
    update_admission_webhook_configs,
    update_crd_conversion_configs,
)
from kube_webhooks.services.tls_bootstrap import ensure_certificates
from kube_webhooks.settings import Settings
from kube_webhooks.settings import settings as default_settings
from kube_webhooks.utils.kubernetes import get_kubernetes_client

logger = logging.getLogger(__name__)


def bootstrap_tls(k8s_client: client.ApiClient, settings: Settings) -> str:
    """
    Run the full bootstrap described by ``settings``.

    Args:
        k8s_client: Kubernetes API client
        settings: Bootstrap configuration

    Returns:
        The base64 encoded CA bundle

    Raises:
        ConfigurationError: If no service name is configured
        WebhookTLSError: If any bootstrap step fails
    """
    if not settings.service_name:
        raise ConfigurationError(
            "SERVICE_NAME is not set",
            user_action="Set SERVICE_NAME to the Service in front of the webhook server",
        )

    ca_bundle = ensure_certificates(
        k8s_client,
        settings.service_namespace,
        settings.service_name,
        settings.secret_namespace,
        settings.secret_name,
        validity_days=settings.cert_validity_days,
        renewal_threshold_days=settings.renewal_threshold_days,
    )

    if settings.admission_config_name:
        update_admission_webhook_configs(
            k8s_client, settings.admission_config_name, ca_bundle
        )
    else:
        logger.info("ADMISSION_CONFIG_NAME is not set, skipping admission configs")

    if settings.crd_group:
        update_crd_conversion_configs(k8s_client, settings.crd_group, ca_bundle)
    else:
        logger.debug("CRD_GROUP is not set, skipping CRD conversion webhooks")

    return ca_bundle


def configure_logging(settings: Settings) -> None:
    """Configure structured logging from ``settings``."""
    setup_structured_logging(
        log_level=settings.log_level,
        enable_json_formatting=settings.json_logs,
        correlation_id_enabled=settings.correlation_ids,
        log_health_probes=settings.log_health_probes,
    )


def main(settings: Settings | None = None) -> int:
    """
    Entry point of the bootstrap init container.

    Returns:
        Process exit status: 0 on success, 1 on failure
    """
    settings = settings or default_settings
    configure_logging(settings)

    try:
        bootstrap_tls(get_kubernetes_client(), settings)
    except WebhookTLSError as e:
        logger.error(
            f"Webhook TLS bootstrap failed: {e}",
            extra={"error_type": type(e).__name__},
        )
        return 1

    logger.info("Webhook TLS bootstrap finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
