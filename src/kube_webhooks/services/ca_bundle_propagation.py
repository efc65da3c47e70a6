"""
Propagation of the CA bundle to resources that call the webhook server.

Both operations only write resources whose caBundle differs from the given
one, so re-running them with an unchanged bundle issues zero patches.
"""

import logging

import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from kube_webhooks.constants import (
    CRD_KIND,
    CRD_LIST_PAGE_SIZE,
    MUTATING_WEBHOOK_CONFIGURATION,
    VALIDATING_WEBHOOK_CONFIGURATION,
)
from kube_webhooks.errors import NoTargetsFoundError
from kube_webhooks.models.targets import CRDConversionTarget, WebhookConfigTarget
from kube_webhooks.observability.metrics import record_ca_bundle_patch
from kube_webhooks.utils.kubernetes import (
    server_side_apply,
    to_manifest,
    transport_error,
)

logger = logging.getLogger(__name__)


def _read_admission_config(
    k8s_client: client.ApiClient,
    read,
    kind: str,
    name: str,
) -> WebhookConfigTarget | None:
    try:
        obj = read(name=name)
    except ApiException as e:
        if e.status == 404:
            logger.debug(
                f"{kind} {name} not found",
                extra={"resource_kind": kind, "resource_name": name},
            )
            return None
        raise transport_error(f"read {kind} {name}", e) from e
    except urllib3.exceptions.HTTPError as e:
        raise transport_error(f"read {kind} {name}", e) from e

    return WebhookConfigTarget.from_manifest(kind, to_manifest(k8s_client, obj))


def update_admission_webhook_configs(
    k8s_client: client.ApiClient, config_name: str, ca_bundle: str
) -> None:
    """
    Set ``ca_bundle`` on every webhook of the named admission configurations.

    Both the ValidatingWebhookConfiguration and the
    MutatingWebhookConfiguration called ``config_name`` are considered; either
    may be missing, but not both.

    Args:
        k8s_client: Kubernetes API client
        config_name: Name shared by the admission configurations
        ca_bundle: Base64 encoded CA certificate

    Raises:
        NoTargetsFoundError: If neither configuration exists
        ApplyFailureError: If the API server rejects an apply
        TransportError: If the Kubernetes API cannot be reached
    """
    api = client.AdmissionregistrationV1Api(k8s_client)
    accessors = [
        (
            VALIDATING_WEBHOOK_CONFIGURATION,
            api.read_validating_webhook_configuration,
            api.patch_validating_webhook_configuration,
        ),
        (
            MUTATING_WEBHOOK_CONFIGURATION,
            api.read_mutating_webhook_configuration,
            api.patch_mutating_webhook_configuration,
        ),
    ]

    found = 0
    for kind, read, patch in accessors:
        target = _read_admission_config(k8s_client, read, kind, config_name)
        if target is None:
            continue
        found += 1

        if target.is_up_to_date(ca_bundle):
            logger.debug(
                f"{kind} {config_name} already trusts the current CA",
                extra={"resource_kind": kind, "resource_name": config_name},
            )
            continue

        server_side_apply(patch, kind, config_name, target.with_ca_bundle(ca_bundle))
        record_ca_bundle_patch(kind)

    if not found:
        logger.error(
            "No admission configuration was found on the cluster.",
            extra={"resource_name": config_name},
        )
        raise NoTargetsFoundError(config_name)


def _list_crds(k8s_client: client.ApiClient, api: client.ApiextensionsV1Api):
    """Yield every CRD on the cluster, fetching one page at a time."""
    continue_token = None
    while True:
        kwargs = {"limit": CRD_LIST_PAGE_SIZE}
        if continue_token:
            kwargs["_continue"] = continue_token
        try:
            page = api.list_custom_resource_definition(**kwargs)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise transport_error("list CustomResourceDefinitions", e) from e

        for item in page.items or []:
            yield to_manifest(k8s_client, item)

        continue_token = page.metadata._continue if page.metadata else None
        if not continue_token:
            return


def update_crd_conversion_configs(
    k8s_client: client.ApiClient, group: str, ca_bundle: str
) -> None:
    """
    Set ``ca_bundle`` on the conversion webhook of every CRD in ``group``.

    Only CRDs with the Webhook conversion strategy are touched. A cluster
    without matching CRDs is not an error.

    Args:
        k8s_client: Kubernetes API client
        group: API group of the CRDs
        ca_bundle: Base64 encoded CA certificate

    Raises:
        ApplyFailureError: If the API server rejects an apply
        TransportError: If the Kubernetes API cannot be reached
    """
    api = client.ApiextensionsV1Api(k8s_client)

    patched = 0
    for manifest in _list_crds(k8s_client, api):
        target = CRDConversionTarget.from_manifest(manifest)
        if not target.needs_ca_bundle(group, ca_bundle):
            continue

        server_side_apply(
            api.patch_custom_resource_definition,
            CRD_KIND,
            target.name,
            target.with_ca_bundle(ca_bundle),
        )
        record_ca_bundle_patch(CRD_KIND)
        patched += 1

    logger.info(
        f"Updated conversion webhook caBundle on {patched} CRD(s) in group {group}",
        extra={"resource_kind": CRD_KIND, "operation": "propagate"},
    )
