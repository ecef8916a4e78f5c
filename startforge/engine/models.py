"""Pydantic v2 models for the compilation engine.

Defines integration descriptors (as fetched from a registry), custom template
presets, the manifest index, and the input/output shapes of a compile. JSON
on the wire uses camelCase keys; Python attributes are snake_case and both
spellings are accepted on construction.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class PackageManager(str, Enum):
    """Package managers with distinct install/run syntax."""
    NPM = "npm"
    PNPM = "pnpm"
    YARN = "yarn"
    BUN = "bun"
    DENO = "deno"


class RouterMode(str, Enum):
    """How routes are declared in the generated project."""
    FILE_ROUTER = "file-router"
    CODE_ROUTER = "code-router"


class IntegrationType(str, Enum):
    """Classification of an integration."""
    INTEGRATION = "integration"
    EXAMPLE = "example"
    TOOLCHAIN = "toolchain"
    DEPLOYMENT = "deployment"


class IntegrationPhase(str, Enum):
    """Coarse ordering bucket. Setup runs first, examples last."""
    SETUP = "setup"
    INTEGRATION = "integration"
    EXAMPLE = "example"


class Category(str, Enum):
    """UI grouping for integrations."""
    TANSTACK = "tanstack"
    DATABASE = "database"
    ORM = "orm"
    AUTH = "auth"
    DEPLOY = "deploy"
    TOOLING = "tooling"
    MONITORING = "monitoring"
    API = "api"
    I18N = "i18n"
    CMS = "cms"
    OTHER = "other"


class HookType(str, Enum):
    """Which base generator consumes a hook."""
    HEADER_USER = "header-user"
    PROVIDER = "provider"
    ROOT_PROVIDER = "root-provider"
    LAYOUT = "layout"
    VITE_PLUGIN = "vite-plugin"
    DEVTOOLS = "devtools"
    ENTRY_CLIENT = "entry-client"


BASE_ID = "base"
BASE_NAME = "Base Template"


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump with camelCase keys, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Integration building blocks
# ---------------------------------------------------------------------------

class Hook(_Model):
    """A code-injection point contributed by an integration."""
    type: Optional[HookType] = Field(default=None, description="Generator that consumes the hook")
    path: Optional[str] = Field(default=None, description="File the injected symbol lives in")
    js_name: Optional[str] = Field(default=None, description="Symbol name to import")
    import_: Optional[str] = Field(
        default=None, alias="import", description="Literal import statement overriding the generated one"
    )
    code: Optional[str] = Field(default=None, description="Literal call-site code")


class Route(_Model):
    """A navigation entry contributed by an integration."""
    url: Optional[str] = None
    name: Optional[str] = None
    icon: Optional[str] = None
    path: str
    js_name: str
    children: Optional[list[Route]] = None


class EnvVar(_Model):
    """An environment variable required or supported by an integration."""
    name: str
    description: str
    required: Optional[bool] = None
    example: Optional[str] = None


class Command(_Model):
    command: str
    args: Optional[list[str]] = None


class PackageAdditions(_Model):
    """Manifest contributions: name -> version (or script body) maps."""
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)
    scripts: dict[str, str] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.dependencies or self.dev_dependencies or self.scripts)


class SelectChoice(_Model):
    value: str
    label: str


class SelectOption(_Model):
    type: Literal["select"]
    label: str
    description: Optional[str] = None
    default: str
    options: list[SelectChoice]


class BooleanOption(_Model):
    type: Literal["boolean"]
    label: str
    description: Optional[str] = None
    default: bool


class StringOption(_Model):
    type: Literal["string"]
    label: str
    description: Optional[str] = None
    default: str


IntegrationOption = Annotated[
    Union[SelectOption, BooleanOption, StringOption], Field(discriminator="type")
]


# ---------------------------------------------------------------------------
# Integrations & templates
# ---------------------------------------------------------------------------

class IntegrationInfo(_Model):
    """The contents of an integration's ``info.json``."""

    # Identity
    id: Optional[str] = None
    name: str
    description: str
    author: Optional[str] = None
    version: Optional[str] = None
    link: Optional[str] = None
    license: Optional[str] = None
    warning: Optional[str] = None

    # Classification
    type: IntegrationType
    phase: IntegrationPhase
    category: Optional[Category] = None
    modes: list[RouterMode]
    priority: Optional[int] = Field(default=None, description="Lower sorts first within a phase")
    default: Optional[bool] = None

    requires_tailwind: Optional[bool] = None
    demo_requires_tailwind: Optional[bool] = None

    depends_on: Optional[list[str]] = None
    conflicts: Optional[list[str]] = None
    partner_id: Optional[str] = None

    options: Optional[dict[str, IntegrationOption]] = None

    hooks: Optional[list[Hook]] = None
    routes: Optional[list[Route]] = None
    package_additions: Optional[PackageAdditions] = None
    shadcn_components: Optional[list[str]] = None
    gitignore_patterns: Optional[list[str]] = None
    env_vars: Optional[list[EnvVar]] = None
    command: Optional[Command] = None

    integration_special_steps: Optional[list[str]] = None
    create_special_steps: Optional[list[str]] = None
    post_init_special_steps: Optional[list[str]] = None

    small_logo: Optional[str] = None
    logo: Optional[str] = None
    readme: Optional[str] = None


class Integration(IntegrationInfo):
    """A compiled integration: descriptor plus its virtual file set."""
    id: str
    files: dict[str, str] = Field(default_factory=dict)
    deleted_files: Optional[list[str]] = None


class CustomTemplateInfo(_Model):
    """An integration preset: project defaults plus integration ids."""
    id: Optional[str] = None
    name: str
    description: str
    framework: str
    mode: RouterMode
    typescript: bool
    tailwind: bool
    integrations: list[str]
    integration_options: Optional[dict[str, dict[str, Any]]] = None
    banner: Optional[str] = None


class CustomTemplate(CustomTemplateInfo):
    id: str


class ManifestIntegration(_Model):
    id: str
    name: str
    description: str
    type: IntegrationType
    category: Optional[Category] = None
    modes: list[RouterMode]
    depends_on: Optional[list[str]] = None
    conflicts: Optional[list[str]] = None
    partner_id: Optional[str] = None
    has_options: Optional[bool] = None
    link: Optional[str] = None
    color: Optional[str] = None
    requires_tailwind: Optional[bool] = None
    demo_requires_tailwind: Optional[bool] = None


class ManifestCustomTemplate(_Model):
    id: str
    name: str
    description: str
    banner: Optional[str] = None
    icon: Optional[str] = None
    features: Optional[list[str]] = None


class Manifest(_Model):
    """Lightweight index of everything a registry offers."""
    version: str
    generated: str
    integrations: list[ManifestIntegration]
    custom_templates: Optional[list[ManifestCustomTemplate]] = None

    def get(self, integration_id: str) -> Optional[ManifestIntegration]:
        for entry in self.integrations:
            if entry.id == integration_id:
                return entry
        return None


# ---------------------------------------------------------------------------
# Compile input / output
# ---------------------------------------------------------------------------

class CompileOptions(_Model):
    """Everything one compile needs, fully resolved and immutable."""

    model_config = ConfigDict(frozen=True)

    project_name: str = Field(..., description="Used for package.json and README")
    framework: str = Field(default="react")
    mode: RouterMode = Field(default=RouterMode.FILE_ROUTER)
    typescript: bool = Field(default=True)
    tailwind: bool = Field(default=True)
    package_manager: PackageManager = Field(default=PackageManager.NPM)
    chosen_integrations: list[Integration] = Field(default_factory=list)
    integration_options: dict[str, dict[str, Any]] = Field(default_factory=dict)
    custom_template: Optional[CustomTemplate] = None


class CompileOutput(_Model):
    files: dict[str, str] = Field(default_factory=dict)
    packages: PackageAdditions = Field(default_factory=PackageAdditions)
    env_vars: list[EnvVar] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class LineAttribution(_Model):
    line_number: int = Field(..., ge=1)
    feature_id: str
    feature_name: str


class AttributedFile(_Model):
    path: str
    content: str
    attributions: list[LineAttribution] = Field(default_factory=list)


class AttributedCompileOutput(CompileOutput):
    attributed_files: dict[str, AttributedFile] = Field(default_factory=dict)


class PersistedOptions(_Model):
    """The minimal project descriptor written next to a generated project."""
    version: int = 1
    project_name: str
    framework: str
    mode: RouterMode
    typescript: bool
    tailwind: bool
    package_manager: PackageManager
    chosen_integrations: list[str] = Field(default_factory=list)
    custom_template: Optional[str] = None
