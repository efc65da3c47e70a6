"""
Cluster resources that carry a caBundle.

The manifests come straight from the Kubernetes API (serialized to plain
dicts). These models are the only place that knows where the caBundle lives
inside each kind, so the propagation service never digs through raw dicts.
"""

import copy
from typing import Any

from pydantic import BaseModel, Field

from kube_webhooks.constants import (
    ADMISSION_REGISTRATION_API_VERSION,
    CONVERSION_STRATEGY_WEBHOOK,
    CRD_API_VERSION,
    CRD_KIND,
)
from kube_webhooks.utils.kubernetes import strip_managed_fields


class WebhookConfigTarget(BaseModel):
    """A ValidatingWebhookConfiguration or MutatingWebhookConfiguration."""

    kind: str = Field(..., description="Kind of the admission configuration")
    name: str = Field(..., description="Name of the admission configuration")
    manifest: dict[str, Any] = Field(..., description="Manifest as read from the API")

    @classmethod
    def from_manifest(cls, kind: str, manifest: dict[str, Any]) -> "WebhookConfigTarget":
        metadata = manifest.get("metadata") or {}
        return cls(kind=kind, name=metadata.get("name"), manifest=manifest)

    @property
    def ca_bundles(self) -> list[str | None]:
        """Current caBundle of every webhook entry, in order."""
        return [
            (webhook.get("clientConfig") or {}).get("caBundle")
            for webhook in self.manifest.get("webhooks") or []
        ]

    def is_up_to_date(self, ca_bundle: str) -> bool:
        """True if every webhook entry already trusts ``ca_bundle``."""
        return all(current == ca_bundle for current in self.ca_bundles)

    def with_ca_bundle(self, ca_bundle: str) -> dict[str, Any]:
        """
        Build the manifest to apply with ``ca_bundle`` set on every webhook.

        Args:
            ca_bundle: Base64 encoded CA certificate

        Returns:
            A new manifest without server-managed bookkeeping fields
        """
        manifest = copy.deepcopy(self.manifest)
        for webhook in manifest.get("webhooks") or []:
            client_config = webhook.get("clientConfig") or {}
            client_config["caBundle"] = ca_bundle
            webhook["clientConfig"] = client_config

        manifest["apiVersion"] = ADMISSION_REGISTRATION_API_VERSION
        manifest["kind"] = self.kind
        return strip_managed_fields(manifest)


class CRDConversionTarget(BaseModel):
    """A CustomResourceDefinition, viewed through its conversion webhook."""

    name: str = Field(..., description="Name of the CRD")
    group: str | None = Field(None, description="API group served by the CRD")
    strategy: str | None = Field(None, description="Conversion strategy")
    ca_bundle: str | None = Field(
        None, description="Current caBundle of the conversion webhook"
    )
    manifest: dict[str, Any] = Field(..., description="Manifest as read from the API")

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> "CRDConversionTarget":
        metadata = manifest.get("metadata") or {}
        spec = manifest.get("spec") or {}
        conversion = spec.get("conversion") or {}
        client_config = (conversion.get("webhook") or {}).get("clientConfig") or {}
        return cls(
            name=metadata.get("name"),
            group=spec.get("group"),
            strategy=conversion.get("strategy"),
            ca_bundle=client_config.get("caBundle"),
            manifest=manifest,
        )

    def needs_ca_bundle(self, group: str, ca_bundle: str) -> bool:
        """True if this CRD belongs to ``group``, converts via webhook and trusts another CA."""
        return (
            self.group == group
            and self.strategy == CONVERSION_STRATEGY_WEBHOOK
            and self.ca_bundle != ca_bundle
        )

    def with_ca_bundle(self, ca_bundle: str) -> dict[str, Any]:
        """Build the manifest to apply with the conversion webhook trusting ``ca_bundle``."""
        manifest = copy.deepcopy(self.manifest)
        conversion = manifest.setdefault("spec", {}).setdefault("conversion", {})
        webhook = conversion.setdefault("webhook", {})
        client_config = webhook.get("clientConfig") or {}
        client_config["caBundle"] = ca_bundle
        webhook["clientConfig"] = client_config

        manifest["apiVersion"] = CRD_API_VERSION
        manifest["kind"] = CRD_KIND
        return strip_managed_fields(manifest)
