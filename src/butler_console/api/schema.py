"""Values schema provider.

Supplies the per-addon configuration schema that drives the values form. Built-in
schemas cover the common catalog addons; additional schemas can be loaded from a
directory of YAML documents named ``<addon>.yaml``.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from butler_console.models import ValuesSchema

logger = logging.getLogger(__name__)

BUILTIN_SCHEMAS: dict[str, dict[str, Any]] = {
    "prometheus-operator": {
        "sections": [
            {
                "name": "prometheus",
                "title": "Prometheus",
                "important": True,
                "fields": [
                    {
                        "path": "prometheus.enabled",
                        "label": "Enable Prometheus",
                        "type": "boolean",
                        "description": "Deploy Prometheus server",
                    },
                    {
                        "path": "prometheus.prometheusSpec.retention",
                        "label": "Retention",
                        "type": "string",
                        "placeholder": "15d",
                        "description": "How long to retain metrics",
                    },
                    {
                        "path": "prometheus.prometheusSpec.replicas",
                        "label": "Replicas",
                        "type": "number",
                        "placeholder": "1",
                        "description": "Number of Prometheus replicas",
                    },
                ],
            },
            {
                "name": "grafana",
                "title": "Grafana",
                "important": True,
                "fields": [
                    {
                        "path": "grafana.enabled",
                        "label": "Enable Grafana",
                        "type": "boolean",
                        "description": "Deploy Grafana for visualization",
                    },
                    {
                        "path": "grafana.adminPassword",
                        "label": "Admin Password",
                        "type": "string",
                        "placeholder": "admin",
                        "description": "Grafana admin password",
                    },
                ],
            },
            {
                "name": "alertmanager",
                "title": "Alertmanager",
                "fields": [
                    {
                        "path": "alertmanager.enabled",
                        "label": "Enable Alertmanager",
                        "type": "boolean",
                        "description": "Deploy Alertmanager for alerts",
                    },
                ],
            },
        ],
        "defaults": {
            "prometheus": {"enabled": True, "prometheusSpec": {"retention": "15d", "replicas": 1}},
            "grafana": {"enabled": True, "adminPassword": ""},
            "alertmanager": {"enabled": True},
        },
    },
    "velero": {
        "sections": [
            {
                "name": "configuration",
                "title": "Backup Configuration",
                "important": True,
                "fields": [
                    {
                        "path": "configuration.provider",
                        "label": "Provider",
                        "type": "select",
                        "options": [
                            {"label": "AWS", "value": "aws"},
                            {"label": "GCP", "value": "gcp"},
                            {"label": "Azure", "value": "azure"},
                        ],
                    },
                    {
                        "path": "configuration.bucket",
                        "label": "Bucket Name",
                        "type": "string",
                        "placeholder": "my-backup-bucket",
                    },
                    {
                        "path": "configuration.region",
                        "label": "Region",
                        "type": "string",
                        "placeholder": "us-west-2",
                    },
                ],
            },
        ],
        "defaults": {"configuration": {"provider": "aws", "bucket": "", "region": ""}},
    },
}

GENERIC_SCHEMA: dict[str, Any] = {
    "sections": [{"name": "general", "title": "General Settings", "important": True, "fields": []}],
    "defaults": {},
}


class SchemaProvider:
    """Resolves addon names to values schemas."""

    def __init__(self, schema_dir: Path | None = None):
        """Initialize schema provider.

        Args:
            schema_dir: Optional directory of ``<addon>.yaml`` schema documents;
                these take precedence over the built-in schemas
        """
        self._registry: dict[str, dict[str, Any]] = {}
        self._register_schemas()
        if schema_dir is not None:
            self.load_directory(schema_dir)

    def _register_schemas(self) -> None:
        """Register built-in schemas."""
        self._registry = {name.lower(): schema for name, schema in BUILTIN_SCHEMAS.items()}

    def register(self, addon_name: str, schema: dict[str, Any] | ValuesSchema) -> None:
        if isinstance(schema, ValuesSchema):
            schema = schema.model_dump(by_alias=True)
        # Validate eagerly so a broken document fails at registration time
        ValuesSchema.model_validate(schema)
        self._registry[addon_name.lower()] = schema

    def load_directory(self, schema_dir: Path) -> int:
        """Load every ``*.yaml`` schema document from a directory.

        Args:
            schema_dir: Directory to scan

        Returns:
            Number of schemas loaded
        """
        loaded = 0
        for schema_file in sorted(Path(schema_dir).glob("*.yaml")):
            try:
                document = yaml.safe_load(schema_file.read_text(encoding="utf-8")) or {}
                self.register(schema_file.stem, document)
                loaded += 1
            except (yaml.YAMLError, ValueError) as e:
                logger.warning(f"Skipping invalid schema {schema_file.name}: {e}")
        logger.debug(f"Loaded {loaded} schema(s) from {schema_dir}")
        return loaded

    def has_schema(self, addon_name: str) -> bool:
        return addon_name.lower() in self._registry

    async def load_schema(self, addon_name: str) -> ValuesSchema:
        """Load the values schema for an addon.

        Unknown addons get a generic schema with an empty section and no defaults.

        Args:
            addon_name: Catalog addon name (case-insensitive)

        Returns:
            A fresh ValuesSchema (defaults are never shared between callers)
        """
        document = self._registry.get(addon_name.lower(), GENERIC_SCHEMA)
        return ValuesSchema.model_validate(document).model_copy(deep=True)
