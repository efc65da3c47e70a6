"""
Secret storage for the webhook certificate bundle.

Every operation issues exactly one call against the Kubernetes API and
nothing is cached: the Secret is the only source of truth.
"""

import logging

import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from kube_webhooks.constants import MANAGED_BY_LABEL_KEY, MANAGED_BY_LABEL_VALUE
from kube_webhooks.models.bundle import CertificateBundle
from kube_webhooks.utils.kubernetes import transport_error

logger = logging.getLogger(__name__)


class CertificateStore:
    """Reads and writes the certificate bundle Secret."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        """
        Initialize certificate store.

        Args:
            k8s_client: Kubernetes API client used for every call
        """
        self.k8s_client = k8s_client
        self._v1: client.CoreV1Api | None = None

    @property
    def v1(self) -> client.CoreV1Api:
        """Get CoreV1Api client."""
        if self._v1 is None:
            if self.k8s_client:
                self._v1 = client.CoreV1Api(self.k8s_client)
            else:
                self._v1 = client.CoreV1Api()
        return self._v1

    def get(self, namespace: str, name: str) -> CertificateBundle | None:
        """
        Read and decode the certificate bundle.

        Args:
            namespace: Secret namespace
            name: Secret name

        Returns:
            Decoded bundle, or None if the Secret does not exist

        Raises:
            MalformedRecordError: If the Secret lacks one of the bundle keys
            TransportError: If the read fails for reasons other than 404
        """
        try:
            secret = self.v1.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise transport_error(f"read secret {namespace}/{name}", e) from e
        except urllib3.exceptions.HTTPError as e:
            raise transport_error(f"read secret {namespace}/{name}", e) from e

        return CertificateBundle.from_secret_data(secret.data, namespace, name)

    def create(self, namespace: str, name: str, bundle: CertificateBundle) -> bool:
        """
        Create the Secret holding ``bundle``. Never overwrites.

        Args:
            namespace: Secret namespace
            name: Secret name
            bundle: Certificate bundle to store

        Returns:
            True if the Secret was created, False if it already existed

        Raises:
            TransportError: If creation fails for reasons other than 409
        """
        try:
            self.v1.create_namespaced_secret(
                namespace=namespace, body=self._secret_body(namespace, name, bundle)
            )
        except ApiException as e:
            if e.status == 409:
                logger.debug(
                    f"Certificate secret already exists: {namespace}/{name}",
                    extra={"namespace": namespace, "secret_name": name},
                )
                return False
            raise transport_error(f"create secret {namespace}/{name}", e) from e
        except urllib3.exceptions.HTTPError as e:
            raise transport_error(f"create secret {namespace}/{name}", e) from e

        logger.info(
            f"Created certificate secret: {namespace}/{name}",
            extra={"namespace": namespace, "secret_name": name, "operation": "create"},
        )
        return True

    def replace(self, namespace: str, name: str, bundle: CertificateBundle) -> None:
        """
        Overwrite the existing Secret with ``bundle``.

        The body carries no resourceVersion, so the last writer wins.

        Args:
            namespace: Secret namespace
            name: Secret name
            bundle: Certificate bundle to store

        Raises:
            TransportError: If the update fails
        """
        try:
            self.v1.replace_namespaced_secret(
                name=name,
                namespace=namespace,
                body=self._secret_body(namespace, name, bundle),
            )
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise transport_error(f"replace secret {namespace}/{name}", e) from e

        logger.info(
            f"Replaced certificate secret: {namespace}/{name}",
            extra={"namespace": namespace, "secret_name": name, "operation": "replace"},
        )

    @staticmethod
    def _secret_body(
        namespace: str, name: str, bundle: CertificateBundle
    ) -> client.V1Secret:
        return client.V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=namespace,
                labels={MANAGED_BY_LABEL_KEY: MANAGED_BY_LABEL_VALUE},
            ),
            type="Opaque",
            data=bundle.to_secret_data(),
        )
