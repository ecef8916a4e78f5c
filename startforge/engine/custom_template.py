"""Turn an existing project into a reusable custom template.

A custom template is only an integration preset: project defaults plus the
ids of the integrations to include.  ``template-info.json`` is the editable
source; ``template.json`` is the compiled file users share.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .models import CustomTemplate, CustomTemplateInfo, PersistedOptions
from .shared import ProjectConfigError, read_current_project_options

INFO_FILE = "template-info.json"
COMPILED_FILE = "template.json"


def default_template_info(persisted: PersistedOptions) -> CustomTemplateInfo:
    return CustomTemplateInfo(
        id=f"{persisted.project_name}-template",
        name=f"{persisted.project_name} Template",
        description="A curated project template",
        framework=persisted.framework,
        mode=persisted.mode,
        typescript=persisted.typescript,
        tailwind=persisted.tailwind,
        integrations=list(persisted.chosen_integrations),
    )


def read_or_generate_template_info(
    persisted: PersistedOptions, target_dir: str | Path
) -> CustomTemplateInfo:
    info_path = Path(target_dir) / INFO_FILE
    if not info_path.is_file():
        return default_template_info(persisted)
    try:
        return CustomTemplateInfo.model_validate_json(info_path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise ProjectConfigError(target_dir, f"Invalid {INFO_FILE} in {target_dir}: {exc}") from exc


def build_custom_template(
    persisted: PersistedOptions, info: Optional[CustomTemplateInfo] = None
) -> CustomTemplate:
    """Compile template info into a ``CustomTemplate``, filling in a default id."""
    info = info or default_template_info(persisted)
    data = info.model_dump()
    data["id"] = info.id or f"{persisted.project_name}-template"
    return CustomTemplate.model_validate(data)


def compile_template(target_dir: str | Path) -> CustomTemplate:
    """Write ``template.json`` for the project in *target_dir*.

    Raises:
        ProjectConfigError: The project has no ``.startforge.json`` or its
            ``template-info.json`` is invalid.
    """
    persisted = read_current_project_options(target_dir)
    template = build_custom_template(
        persisted, read_or_generate_template_info(persisted, target_dir)
    )
    (Path(target_dir) / COMPILED_FILE).write_text(
        json.dumps(template.to_json_dict(), indent=2), encoding="utf-8"
    )
    return template


def init_template(target_dir: str | Path) -> CustomTemplate:
    """Write an editable ``template-info.json`` and compile it."""
    persisted = read_current_project_options(target_dir)
    info = read_or_generate_template_info(persisted, target_dir)
    (Path(target_dir) / INFO_FILE).write_text(
        json.dumps(info.to_json_dict(), indent=2), encoding="utf-8"
    )
    return compile_template(target_dir)
