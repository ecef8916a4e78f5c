"""startforge engine -- compiles integrations into a project file tree.

The engine is pure: it takes fully resolved ``CompileOptions`` (integration
descriptors already fetched) and returns in-memory output without touching
the network or the filesystem.

Quick usage::

    from startforge.engine import CompileOptions, compile_with_attribution

    output = compile_with_attribution(CompileOptions(project_name="my-app"))
    for line in output.attributed_files["vite.config.ts"].attributions:
        print(line.line_number, line.feature_id)
"""

from startforge.engine.base import (
    collect_hooks,
    generate_entry_client,
    generate_gitignore,
    generate_root_route,
    generate_vite_config,
    get_base_files,
    get_base_files_with_attribution,
)
from startforge.engine.compile import build_package_json, compile, compile_with_attribution
from startforge.engine.config_file import CONFIG_FILE, read_config_file, write_config_file
from startforge.engine.models import (
    AttributedCompileOutput,
    AttributedFile,
    CompileOptions,
    CompileOutput,
    CustomTemplate,
    EnvVar,
    Hook,
    Integration,
    LineAttribution,
    PackageAdditions,
    PersistedOptions,
    Route,
)
from startforge.engine.paths import convert_dot_files, relative_path, strip_option_prefix
from startforge.engine.template import (
    ProcessedFile,
    SkipFile,
    TemplateRenderError,
    create_template_context,
    process_template_file,
)

__all__ = [
    "AttributedCompileOutput",
    "AttributedFile",
    "CONFIG_FILE",
    "CompileOptions",
    "CompileOutput",
    "CustomTemplate",
    "EnvVar",
    "Hook",
    "Integration",
    "LineAttribution",
    "PackageAdditions",
    "PersistedOptions",
    "ProcessedFile",
    "Route",
    "SkipFile",
    "TemplateRenderError",
    "build_package_json",
    "collect_hooks",
    "compile",
    "compile_with_attribution",
    "convert_dot_files",
    "create_template_context",
    "generate_entry_client",
    "generate_gitignore",
    "generate_root_route",
    "generate_vite_config",
    "get_base_files",
    "get_base_files_with_attribution",
    "process_template_file",
    "read_config_file",
    "relative_path",
    "strip_option_prefix",
    "write_config_file",
]
