"""Shared fixtures for unit tests."""

import pytest

from kube_webhooks.utils.certificates import generate_bundle
from tests.fixtures.fake_cluster import FakeCluster
from tests.fixtures.manifests import SERVICE_NAME, SERVICE_NAMESPACE


@pytest.fixture
def fake_cluster():
    """An empty in-memory cluster wired into ``kubernetes.client``."""
    cluster = FakeCluster()
    with cluster.installed():
        yield cluster


@pytest.fixture(scope="session")
def bundle():
    """A fresh certificate bundle for the test service."""
    return generate_bundle(SERVICE_NAME, SERVICE_NAMESPACE)
