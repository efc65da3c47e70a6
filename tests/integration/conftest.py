"""
Pytest configuration and fixtures for integration tests.

These tests run against a real Kubernetes cluster reachable through the
in-cluster service account or the local kubeconfig. They are skipped when
no cluster is reachable.
"""

import uuid

import pytest
from kubernetes import client, config
from kubernetes.client.rest import ApiException


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session")
def kube_config():
    """Load Kubernetes configuration, or skip when there is no cluster."""
    try:
        # Try to load in-cluster config first
        config.load_incluster_config()
    except config.ConfigException:
        try:
            # Fallback to kubeconfig
            config.load_kube_config()
        except config.ConfigException as e:
            pytest.skip(f"No Kubernetes cluster configured: {e}")

    configuration = client.Configuration.get_default_copy()
    try:
        client.VersionApi(client.ApiClient(configuration)).get_code()
    except Exception as e:  # noqa: BLE001
        pytest.skip(f"Kubernetes cluster not reachable: {e}")
    return configuration


@pytest.fixture(scope="session")
def k8s_client(kube_config):
    """Create Kubernetes API client."""
    return client.ApiClient(kube_config)


@pytest.fixture(scope="session")
def k8s_core_v1(k8s_client):
    """Create Core V1 API client."""
    return client.CoreV1Api(k8s_client)


@pytest.fixture(scope="session")
def k8s_admission_v1(k8s_client):
    """Create Admissionregistration V1 API client."""
    return client.AdmissionregistrationV1Api(k8s_client)


@pytest.fixture
def test_namespace(k8s_core_v1):
    """Create a throwaway namespace and delete it afterwards."""
    name = f"kube-webhooks-test-{uuid.uuid4().hex[:8]}"
    k8s_core_v1.create_namespace(
        client.V1Namespace(metadata=client.V1ObjectMeta(name=name))
    )
    yield name
    try:
        k8s_core_v1.delete_namespace(name)
    except ApiException as e:
        if e.status != 404:
            raise
