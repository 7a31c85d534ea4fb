"""Configuration management for StoryForge."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from storyforge.exceptions import ConfigError

STORYFORGE_DIR = ".storyforge"
CONFIG_FILE = "config.json"
STORY_DB_FILE = "story.db"


class ContextConfig(BaseModel):
    """Defaults applied when a selection request leaves a knob unset."""

    max_elements: int | None = None
    include_recent: bool = True
    recent_window_days: float = Field(default=7.0, gt=0)
    max_workers: int = Field(default=5, ge=1)


class StorageConfig(BaseModel):
    """Story store configuration."""

    db_file: str = STORY_DB_FILE


class ProjectConfig(BaseModel):
    """Full workspace configuration."""

    name: str = ""
    root_path: str = "."
    default_project: str = ""
    context: ContextConfig = Field(default_factory=ContextConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)



def find_project_root(start: Path | None = None) -> Path | None:
    """Nearest directory at or above `start` holding a .storyforge workspace."""
    here = (start or Path.cwd()).resolve()
    for candidate in (here, *here.parents):
        if get_storyforge_dir(candidate).is_dir():
            return candidate
    return None


def get_storyforge_dir(root: Path) -> Path:
    """Get the .storyforge directory for a workspace root."""
    return root / STORYFORGE_DIR


def get_db_path(root: Path, config: ProjectConfig) -> Path:
    """Resolve the story database path for a workspace."""
    return get_storyforge_dir(root) / config.storage.db_file


def load_config(root: Path) -> ProjectConfig:
    """Load configuration from .storyforge/config.json."""
    config_path = get_storyforge_dir(root) / CONFIG_FILE
    if not config_path.exists():
        return ProjectConfig(name=root.name, root_path=str(root))
    try:
        return ProjectConfig.model_validate_json(config_path.read_text())
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e


def save_config(root: Path, config: ProjectConfig) -> None:
    """Write configuration to .storyforge/config.json, creating the directory."""
    config_path = get_storyforge_dir(root) / CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(config.model_dump_json(indent=2))


def _resolve_key(config: ProjectConfig, key: str) -> tuple[BaseModel, str]:
    """Split a dotted key into the model owning the field and the field name."""
    *path, field = key.split(".")
    owner: Any = config
    for part in path:
        owner = getattr(owner, part, None)
        if not isinstance(owner, BaseModel):
            raise KeyError(key)
    if field not in type(owner).model_fields:
        raise KeyError(key)
    return owner, field


def get_config_value(config: ProjectConfig, key: str) -> Any:
    """Read a config value by dotted key (e.g. 'context.recent_window_days')."""
    owner, field = _resolve_key(config, key)
    return getattr(owner, field)


def set_config_value(config: ProjectConfig, key: str, value: Any) -> ProjectConfig:
    """Return a copy of `config` with one dotted key changed and revalidated.

    Raises:
        KeyError: `key` names no config field.
        ConfigError: `value` fails that field's validation.
    """
    _resolve_key(config, key)
    data = config.model_dump()
    *path, field = key.split(".")
    section = data
    for part in path:
        section = section[part]
    section[field] = value
    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid value for {key}: {value!r}") from e
