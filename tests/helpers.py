"""Test helpers shared across test modules: a fixed clock and a fake data source."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

from storyforge.context.models import ProjectRecord
from storyforge.exceptions import ProjectNotFoundError

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


class FakeDataSource:
    """A StoryDataSource serving fixed pools, with optional injected failures."""

    def __init__(
        self,
        project: ProjectRecord | None = None,
        characters: Sequence[Any] = (),
        settings: Sequence[Any] = (),
        plot_points: Sequence[Any] = (),
        chapters: Sequence[Any] = (),
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self.project = project
        self.pools = {
            "list_characters": list(characters),
            "list_settings": list(settings),
            "list_plot_points": list(plot_points),
            "list_chapters": list(chapters),
        }
        self.failures = failures or {}
        self.calls: list[tuple[str, str, list[str]]] = []

    def _serve(self, method: str, project_id: str, ids: Sequence[str]) -> list[Any]:
        self.calls.append((method, project_id, list(ids)))
        if method in self.failures:
            raise self.failures[method]
        return list(self.pools[method])

    def get_project(self, project_id: str) -> ProjectRecord:
        self.calls.append(("get_project", project_id, []))
        if "get_project" in self.failures:
            raise self.failures["get_project"]
        if self.project is None:
            raise ProjectNotFoundError(project_id)
        return self.project

    def list_characters(self, project_id: str, ids: Sequence[str] = ()) -> list[Any]:
        return self._serve("list_characters", project_id, ids)

    def list_settings(self, project_id: str, ids: Sequence[str] = ()) -> list[Any]:
        return self._serve("list_settings", project_id, ids)

    def list_plot_points(self, project_id: str, ids: Sequence[str] = ()) -> list[Any]:
        return self._serve("list_plot_points", project_id, ids)

    def list_chapters(self, project_id: str, ids: Sequence[str] = ()) -> list[Any]:
        return self._serve("list_chapters", project_id, ids)
