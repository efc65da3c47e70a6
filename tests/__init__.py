"""
Tests package - Test suite for kube-webhooks.

Contains:
- unit/: Unit tests against an in-memory fake of the Kubernetes API
- integration/: End-to-end tests against a real cluster
- fixtures/: Fake cluster and resource manifests
"""
