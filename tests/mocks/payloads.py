"""Canned backend payloads shared by the tests."""

from typing import Any

API_URL = "http://butler.test/api"

CLUSTER_BASE = "/clusters/team-a/dev"


def catalog_payload() -> dict[str, Any]:
    """Catalog with two platform addons and four optional ones."""
    return {
        "addons": [
            {
                "name": "cilium",
                "displayName": "Cilium",
                "description": "eBPF networking",
                "category": "networking",
                "platform": True,
                "defaultVersion": "1.15.0",
                "chartName": "cilium",
                "chartRepository": "https://helm.cilium.io",
            },
            {
                "name": "cert-manager",
                "displayName": "cert-manager",
                "description": "Certificate management",
                "category": "security",
                "platform": True,
                "defaultVersion": "1.14.0",
            },
            {
                "name": "prometheus-operator",
                "displayName": "Prometheus Operator",
                "description": "Metrics and alerting",
                "category": "observability",
                "defaultVersion": "45.0.0",
                "chartName": "kube-prometheus-stack",
            },
            {
                "name": "velero",
                "displayName": "Velero",
                "description": "Backup and restore",
                "category": "backup",
                "defaultVersion": "5.0.0",
            },
            {
                "name": "flux",
                "displayName": "Flux",
                "description": "GitOps toolkit",
                "category": "gitops",
                "defaultVersion": "2.2.0",
            },
            {
                "name": "loki",
                "displayName": "Loki",
                "description": "Log aggregation",
                "category": "observability",
                "defaultVersion": "5.41.0",
            },
        ],
        "categories": [
            {"name": "networking", "displayName": "Networking"},
            {"name": "security", "displayName": "Security"},
            {"name": "observability", "displayName": "Observability"},
            {"name": "backup", "displayName": "Backup"},
            {"name": "gitops", "displayName": "GitOps"},
        ],
    }


def discovery_payload(engine_installed: bool = True) -> dict[str, Any]:
    return {
        "gitopsEngine": {"installed": engine_installed, "provider": "flux", "version": "2.2.0"},
        "matched": [
            {
                "name": "kube-prometheus-stack",
                "namespace": "monitoring",
                "chart": "kube-prometheus-operator:45.0",
                "chartVersion": "45.0.0",
                "repoUrl": "https://prometheus-community.github.io/helm-charts",
                "addonDefinition": {"name": "prometheus-operator"},
            }
        ],
        "unmatched": [
            {
                "name": "my-app",
                "namespace": "apps",
                "chart": "my-app",
                "chartVersion": "0.1.0",
            }
        ],
    }
