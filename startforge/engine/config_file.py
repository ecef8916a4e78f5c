"""Read and write the ``.startforge.json`` project descriptor."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .models import CompileOptions, PersistedOptions

CONFIG_FILE = ".startforge.json"


def create_persisted_options(options: CompileOptions) -> PersistedOptions:
    return PersistedOptions(
        version=1,
        project_name=options.project_name,
        framework=options.framework,
        mode=options.mode,
        typescript=options.typescript,
        tailwind=options.tailwind,
        package_manager=options.package_manager,
        chosen_integrations=[integration.id for integration in options.chosen_integrations],
        custom_template=options.custom_template.id if options.custom_template else None,
    )


def write_config_file(target_dir: str | Path, options: CompileOptions) -> Path:
    """Persist the descriptor for *options* into *target_dir*.

    Returns:
        The path of the written file.
    """
    config_path = Path(target_dir) / CONFIG_FILE
    persisted = create_persisted_options(options)
    config_path.write_text(json.dumps(persisted.to_json_dict(), indent=2), encoding="utf-8")
    return config_path


def read_config_file(target_dir: str | Path) -> Optional[PersistedOptions]:
    """Load the descriptor from *target_dir*.

    Returns ``None`` when the file is missing, is not JSON, or does not match
    the descriptor schema.
    """
    config_path = Path(target_dir) / CONFIG_FILE
    if not config_path.is_file():
        return None
    try:
        return PersistedOptions.model_validate_json(config_path.read_text(encoding="utf-8"))
    except (ValidationError, UnicodeDecodeError):
        return None
