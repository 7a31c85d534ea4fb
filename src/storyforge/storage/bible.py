"""Read and write story bibles as JSON files.

A story bible holds one project and its elements:

    {
      "project": {"id": "p1", "title": "...", "genre": "fantasy", ...},
      "characters": [{"id": "c1", "name": "Mira", "traits": [...], ...}],
      "settings": [...],
      "plot_points": [...],
      "chapters": [...]
    }

camelCase keys ("plotPoints", "updatedAt", ...) are accepted as well.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from storyforge.context.models import StoryBible
from storyforge.exceptions import StorageError


def read_bible(path: str | Path) -> StoryBible:
    """Parse a story bible JSON file."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise StorageError(f"Could not read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise StorageError(f"{path} is not valid JSON: {e}") from e

    try:
        return StoryBible.model_validate(data)
    except ValidationError as e:
        raise StorageError(f"{path} is not a valid story bible: {e}") from e


def write_bible(bible: StoryBible, path: str | Path) -> None:
    """Write a story bible as pretty-printed JSON."""
    Path(path).write_text(
        json.dumps(bible.model_dump(mode="json", exclude_none=True), indent=2),
        encoding="utf-8",
    )
