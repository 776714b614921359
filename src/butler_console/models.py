"""Data model for the addon lifecycle engine.

All models accept the backend's camelCase JSON and expose snake_case attributes.
``to_payload()`` renders a model back into the camelCase request body.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ConsoleModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict[str, Any]:
        """Serialize for a request body (camelCase, unset optionals dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ManagedBy(str, Enum):
    """Authority that owns an addon's desired state."""

    PLATFORM = "platform"
    BUTLER = "butler"
    GITOPS = "gitops"


class AddonStatus(str, Enum):
    """Observed addon status as reported by the backend."""

    INSTALLED = "Installed"
    INSTALLING = "Installing"
    UPGRADING = "Upgrading"
    PENDING = "Pending"
    FAILED = "Failed"
    DEGRADED = "Degraded"
    HEALTHY = "Healthy"
    DELETING = "Deleting"
    UNKNOWN = "Unknown"

    @classmethod
    def _missing_(cls, value: object) -> "AddonStatus":
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return cls.UNKNOWN

    @property
    def is_transitional(self) -> bool:
        return self in (AddonStatus.INSTALLING, AddonStatus.UPGRADING, AddonStatus.PENDING)

    @property
    def is_healthy(self) -> bool:
        return self in (AddonStatus.INSTALLED, AddonStatus.HEALTHY)

    @property
    def is_failing(self) -> bool:
        return self in (AddonStatus.FAILED, AddonStatus.DEGRADED)


class AddonLinks(ConsoleModel):
    documentation: str | None = None
    source: str | None = None
    homepage: str | None = None


class AddonDefinition(ConsoleModel):
    """A catalog entry describing an installable addon."""

    name: str
    display_name: str = ""
    description: str = ""
    category: str = "other"
    icon: str | None = None
    platform: bool = False
    default_version: str = ""
    chart_name: str = ""
    chart_repository: str = ""
    default_namespace: str | None = None
    depends_on: list[str] = Field(default_factory=list)
    source: Literal["builtin", "custom"] = "builtin"
    links: AddonLinks | None = None

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def label(self) -> str:
        return self.display_name or self.name


class CategoryInfo(ConsoleModel):
    name: str
    display_name: str = ""
    description: str = ""
    icon: str = ""


class CatalogResponse(ConsoleModel):
    addons: list[AddonDefinition] = Field(default_factory=list)
    categories: list[CategoryInfo] = Field(default_factory=list)


class InstalledAddon(ConsoleModel):
    """Canonical installed-addon record shared by every view."""

    name: str
    status: AddonStatus = AddonStatus.UNKNOWN
    version: str | None = None
    display_name: str | None = None
    managed_by: ManagedBy | None = None
    namespace: str | None = None
    message: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> AddonStatus:
        if isinstance(value, AddonStatus):
            return value
        return AddonStatus(value or "Unknown")

    @field_validator("managed_by", mode="before")
    @classmethod
    def _coerce_managed_by(cls, value: Any) -> ManagedBy | None:
        if value is None or isinstance(value, ManagedBy):
            return value
        try:
            return ManagedBy(str(value).lower())
        except ValueError:
            return None

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @classmethod
    def from_management(cls, payload: dict[str, Any]) -> "InstalledAddon":
        """Normalize a management-cluster addon record.

        Management addons arrive as ``{name, addon, version, status: {phase,
        installedVersion, message}}``; the catalog addon name is authoritative.

        Args:
            payload: Raw management addon record

        Returns:
            Canonical InstalledAddon
        """
        status = payload.get("status") or {}
        return cls(
            name=payload.get("addon") or payload["name"],
            status=AddonStatus(status.get("phase") or "Unknown"),
            version=status.get("installedVersion") or payload.get("version"),
            managed_by=payload.get("managedBy"),
            message=status.get("message"),
        )


class DiscoveredRelease(ConsoleModel):
    """A live Helm release observed on the cluster."""

    name: str
    namespace: str
    chart: str = ""
    version: str = Field(
        default="",
        validation_alias=AliasChoices("version", "chartVersion", "chart_version"),
        serialization_alias="chartVersion",
    )
    repo_url: str | None = None
    values: dict[str, Any] | None = None
    status: str | None = None
    category: str | None = None
    platform: bool = False
    addon_definition: dict[str, Any] | None = None

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def chart_name(self) -> str:
        """Chart name without any ``:version`` suffix."""
        return self.chart.split(":", 1)[0]


class GitOpsEngineStatus(ConsoleModel):
    installed: bool = False
    provider: str | None = None
    version: str | None = None
    namespace: str | None = None


class DiscoveryResult(ConsoleModel):
    gitops_engine: GitOpsEngineStatus = Field(default_factory=GitOpsEngineStatus)
    matched: list[DiscoveredRelease] = Field(default_factory=list)
    unmatched: list[DiscoveredRelease] = Field(default_factory=list)

    @property
    def releases(self) -> list[DiscoveredRelease]:
        """All releases in discovery order, matched first."""
        return [*self.matched, *self.unmatched]


class SelectOption(ConsoleModel):
    label: str
    value: str


class SchemaField(ConsoleModel):
    path: str
    label: str
    type: Literal["string", "number", "boolean", "select"] = "string"
    description: str | None = None
    required: bool = False
    placeholder: str | None = None
    options: list[SelectOption] = Field(default_factory=list)


class SchemaSection(ConsoleModel):
    name: str
    title: str
    important: bool = False
    fields: list[SchemaField] = Field(default_factory=list)


class ValuesSchema(ConsoleModel):
    sections: list[SchemaSection] = Field(default_factory=list)
    defaults: dict[str, Any] = Field(default_factory=dict)

    def iter_fields(self):
        for section in self.sections:
            yield from section.fields


class GitOpsExportConfig(ConsoleModel):
    """Where and how generated manifests are written."""

    repository: str
    branch: str = "main"
    path: str = ""
    create_pr: bool = Field(default=True, alias="createPR")
    helm_repo_url: str | None = None


class GitProviderConfig(ConsoleModel):
    configured: bool = False
    provider: str | None = None
    username: str | None = None
    organization: str | None = None


class Repository(ConsoleModel):
    name: str = ""
    full_name: str
    default_branch: str | None = None
    private: bool = False
    url: str | None = None

    @property
    def label(self) -> str:
        return f"{self.full_name} (private)" if self.private else self.full_name


class Branch(ConsoleModel):
    name: str
    protected: bool = False


class GitOpsStatus(ConsoleModel):
    enabled: bool = False
    provider: str | None = None
    repository: str | None = None
    branch: str | None = None
    path: str | None = None


class ExportResult(ConsoleModel):
    success: bool
    pr_url: str | None = None
    message: str | None = None


class MigrationRelease(ConsoleModel):
    name: str
    namespace: str
    repo_url: str = ""
    chart_name: str = ""
    chart_version: str = ""
    values: dict[str, Any] | None = None
    category: str | None = None


class MigrationRequest(ConsoleModel):
    releases: list[MigrationRelease]
    repository: str
    branch: str
    base_path: str
    create_pr: bool = Field(default=True, alias="createPR")
    pr_title: str | None = None


class InstallAddonRequest(ConsoleModel):
    addon: str
    version: str | None = None
    values: dict[str, Any] | None = None
