"""Backend API clients for the Butler console."""

from butler_console.api.addons import AddonsApi, ClusterTarget
from butler_console.api.client import ApiClient
from butler_console.api.gitops import GitOpsApi
from butler_console.api.schema import SchemaProvider

__all__ = ["AddonsApi", "ApiClient", "ClusterTarget", "GitOpsApi", "SchemaProvider"]
