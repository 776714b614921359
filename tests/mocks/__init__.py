"""Test doubles for the Butler console backend."""

from tests.mocks.mock_backend import MockBackend, RecordedRequest
from tests.mocks.payloads import API_URL, CLUSTER_BASE, catalog_payload, discovery_payload

__all__ = [
    "API_URL",
    "CLUSTER_BASE",
    "MockBackend",
    "RecordedRequest",
    "catalog_payload",
    "discovery_payload",
]
