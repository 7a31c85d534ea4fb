"""In-memory story data source, backed by story bibles."""

from __future__ import annotations

from typing import Sequence

from storyforge.context.models import (
    Chapter,
    Character,
    PlotPoint,
    ProjectRecord,
    Setting,
    StoryBible,
)
from storyforge.exceptions import ProjectNotFoundError


class InMemoryDataSource:
    """Serves candidate pools straight from StoryBible objects.

    Always returns the full pool for a kind; the id hint is ignored.
    """

    def __init__(self, bibles: Sequence[StoryBible] = ()) -> None:
        self._bibles: dict[str, StoryBible] = {}
        for bible in bibles:
            self.add(bible)

    def add(self, bible: StoryBible) -> None:
        self._bibles[bible.project.id] = bible

    def project_ids(self) -> list[str]:
        return list(self._bibles)

    def _bible(self, project_id: str) -> StoryBible | None:
        return self._bibles.get(project_id)

    def get_project(self, project_id: str) -> ProjectRecord:
        bible = self._bible(project_id)
        if bible is None:
            raise ProjectNotFoundError(project_id)
        return bible.project

    def list_characters(self, project_id: str, ids: Sequence[str] = ()) -> list[Character]:
        bible = self._bible(project_id)
        return list(bible.characters) if bible else []

    def list_settings(self, project_id: str, ids: Sequence[str] = ()) -> list[Setting]:
        bible = self._bible(project_id)
        return list(bible.settings) if bible else []

    def list_plot_points(self, project_id: str, ids: Sequence[str] = ()) -> list[PlotPoint]:
        bible = self._bible(project_id)
        return list(bible.plot_points) if bible else []

    def list_chapters(self, project_id: str, ids: Sequence[str] = ()) -> list[Chapter]:
        bible = self._bible(project_id)
        return list(bible.chapters) if bible else []
