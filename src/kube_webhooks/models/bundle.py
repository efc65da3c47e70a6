"""
Certificate bundle stored in the webhook TLS secret.

The bundle is decoded from and encoded to Secret data in exactly one place
so that shape problems surface as a single MalformedRecordError.
"""

import base64
import binascii

from pydantic import BaseModel, ConfigDict, Field

from kube_webhooks.constants import (
    BUNDLE_KEYS,
    CA_CERT_KEY,
    CA_KEY_KEY,
    TLS_CERT_KEY,
    TLS_KEY_KEY,
)
from kube_webhooks.errors import MalformedRecordError


class CertificateBundle(BaseModel):
    """PEM encoded CA and leaf certificates together with their private keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ca_crt: bytes = Field(..., alias=CA_CERT_KEY, description="CA certificate (PEM)")
    ca_key: bytes = Field(..., alias=CA_KEY_KEY, description="CA private key (PEM)")
    tls_crt: bytes = Field(
        ..., alias=TLS_CERT_KEY, description="Leaf certificate (PEM)"
    )
    tls_key: bytes = Field(
        ..., alias=TLS_KEY_KEY, description="Leaf private key (PEM)"
    )

    @classmethod
    def from_secret_data(
        cls, data: dict[str, str] | None, namespace: str, name: str
    ) -> "CertificateBundle":
        """
        Build a bundle from the base64 encoded data of a Secret.

        Args:
            data: The Secret's ``data`` mapping
            namespace: Secret namespace (for error messages)
            name: Secret name (for error messages)

        Returns:
            Decoded certificate bundle

        Raises:
            MalformedRecordError: If a key is missing or not valid base64
        """
        data = data or {}
        missing = [key for key in BUNDLE_KEYS if key not in data]
        if missing:
            raise MalformedRecordError(namespace, name, missing_keys=missing)

        decoded: dict[str, bytes] = {}
        for key in BUNDLE_KEYS:
            try:
                decoded[key] = base64.b64decode(data[key], validate=True)
            except (binascii.Error, TypeError) as e:
                raise MalformedRecordError(
                    namespace, name, detail=f"{key} is not valid base64"
                ) from e

        return cls.model_validate(decoded)

    def to_secret_data(self) -> dict[str, str]:
        """Encode the bundle as Secret ``data``."""
        return {
            key: base64.b64encode(value).decode()
            for key, value in self.model_dump(by_alias=True).items()
        }

    @property
    def ca_bundle_base64(self) -> str:
        """The CA certificate as it is expected in ``caBundle`` fields."""
        return base64.b64encode(self.ca_crt).decode()
