"""
Get-or-create-or-renew of the webhook certificate bundle.

The Secret is the only source of truth. Every call re-reads it and decides
from its current content, so calling ``ensure_certificates`` again with a
fresh bundle in place performs no write at all.

Concurrent first-time bootstraps are serialized by the API server: exactly
one ``create`` succeeds, every other caller sees AlreadyExists and reads the
winner's bundle back once. Renewal is not serialized; concurrent renewals
issue equivalent certificates and the last ``replace`` wins.
"""

import logging
from enum import Enum

from kubernetes import client

from kube_webhooks.constants import DEFAULT_RENEWAL_THRESHOLD_DAYS, DEFAULT_VALIDITY_DAYS
from kube_webhooks.errors import CertificateBootstrapError, MalformedRecordError
from kube_webhooks.models.bundle import CertificateBundle
from kube_webhooks.observability.metrics import record_bootstrap
from kube_webhooks.utils.certificate_store import CertificateStore
from kube_webhooks.utils.certificates import (
    generate_bundle,
    is_stale,
    leaf_not_after,
    renew_bundle,
)

logger = logging.getLogger(__name__)


class BootstrapState(str, Enum):
    """States the bootstrap moves through for one secret."""

    ABSENT = "absent"
    CREATING = "creating"
    PRESENT = "present"
    STALE = "stale"
    RENEWING = "renewing"


def _enter(state: BootstrapState, namespace: str, name: str) -> None:
    logger.debug(
        f"Certificate secret {namespace}/{name} is {state.value}",
        extra={
            "namespace": namespace,
            "secret_name": name,
            "bootstrap_state": state.value,
        },
    )


def _check_staleness(
    bundle: CertificateBundle,
    namespace: str,
    name: str,
    threshold_days: int,
) -> bool:
    try:
        return is_stale(bundle.tls_crt, threshold_days=threshold_days)
    except ValueError as e:
        raise MalformedRecordError(
            namespace, name, detail="tls.crt is not a valid PEM certificate"
        ) from e


def _renew(
    bundle: CertificateBundle, namespace: str, name: str, validity_days: int
) -> CertificateBundle:
    try:
        return renew_bundle(bundle, validity_days=validity_days)
    except (ValueError, TypeError) as e:
        raise MalformedRecordError(
            namespace, name, detail=f"certificate material cannot be parsed: {e}"
        ) from e


def ensure_certificates(
    k8s_client: client.ApiClient,
    service_namespace: str,
    service_name: str,
    secret_namespace: str,
    secret_name: str,
    *,
    validity_days: int = DEFAULT_VALIDITY_DAYS,
    renewal_threshold_days: int = DEFAULT_RENEWAL_THRESHOLD_DAYS,
) -> str:
    """
    Make sure a valid certificate bundle exists in the given Secret.

    Args:
        k8s_client: Kubernetes API client
        service_namespace: Namespace of the webhook service
        service_name: Name of the webhook service
        secret_namespace: Namespace of the certificate secret
        secret_name: Name of the certificate secret
        validity_days: Lifetime of newly issued leaf certificates
        renewal_threshold_days: Renew when the leaf expires within this many days

    Returns:
        The CA certificate, base64 encoded, ready for ``caBundle`` fields

    Raises:
        MalformedRecordError: If the Secret exists but is not a certificate bundle
        CertificateBootstrapError: If the create race was lost and the
            bundle still cannot be read back
        TransportError: If the Kubernetes API cannot be reached
    """
    store = CertificateStore(k8s_client)
    log_extra = {"namespace": secret_namespace, "secret_name": secret_name}

    bundle = store.get(secret_namespace, secret_name)
    result = "existing"

    if bundle is None:
        _enter(BootstrapState.ABSENT, secret_namespace, secret_name)
        logger.info(
            "Secret with certificate bundle was not found. Attempting to create it.",
            extra=log_extra,
        )

        _enter(BootstrapState.CREATING, secret_namespace, secret_name)
        bundle = generate_bundle(
            service_name, service_namespace, validity_days=validity_days
        )
        if store.create(secret_namespace, secret_name, bundle):
            record_bootstrap(
                "created",
                secret_namespace,
                secret_name,
                leaf_not_after(bundle.tls_crt),
            )
            return bundle.ca_bundle_base64

        _enter(BootstrapState.ABSENT, secret_namespace, secret_name)
        logger.info(
            "Certificate secret was created concurrently, reading it back",
            extra=log_extra,
        )
        bundle = store.get(secret_namespace, secret_name)
        if bundle is None:
            raise CertificateBootstrapError(
                f"Certificate secret {secret_namespace}/{secret_name} was reported "
                "as existing but could not be read back"
            )
        result = "adopted"

    _enter(BootstrapState.PRESENT, secret_namespace, secret_name)
    if not _check_staleness(
        bundle, secret_namespace, secret_name, renewal_threshold_days
    ):
        record_bootstrap(
            result, secret_namespace, secret_name, leaf_not_after(bundle.tls_crt)
        )
        return bundle.ca_bundle_base64

    _enter(BootstrapState.STALE, secret_namespace, secret_name)
    logger.info("Certificate is too old. Renewing it", extra=log_extra)

    _enter(BootstrapState.RENEWING, secret_namespace, secret_name)
    renewed = _renew(bundle, secret_namespace, secret_name, validity_days)
    store.replace(secret_namespace, secret_name, renewed)

    new_expiry = leaf_not_after(renewed.tls_crt)
    logger.info(
        f"Renewed leaf certificate, now valid until {new_expiry.isoformat()}",
        extra={**log_extra, "operation": "renew"},
    )
    record_bootstrap("renewed", secret_namespace, secret_name, new_expiry)
    return renewed.ca_bundle_base64
