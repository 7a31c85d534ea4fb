"""The story data source interface and an optional caching decorator."""

from __future__ import annotations

import threading
from typing import Any, Callable, Protocol, Sequence, runtime_checkable

from storyforge.context.models import (
    Chapter,
    Character,
    PlotPoint,
    ProjectRecord,
    Setting,
)


@runtime_checkable
class StoryDataSource(Protocol):
    """Read access to one storage backend.

    `ids` is a hint carrying the request's explicit id filter for that kind.
    Implementations may return more than the listed elements, since ranking
    needs the full pool. An empty list means the project has no candidates
    of that kind; a failure must raise.
    """

    def get_project(self, project_id: str) -> ProjectRecord: ...

    def list_characters(
        self, project_id: str, ids: Sequence[str] = ()
    ) -> list[Character]: ...

    def list_settings(
        self, project_id: str, ids: Sequence[str] = ()
    ) -> list[Setting]: ...

    def list_plot_points(
        self, project_id: str, ids: Sequence[str] = ()
    ) -> list[PlotPoint]: ...

    def list_chapters(
        self, project_id: str, ids: Sequence[str] = ()
    ) -> list[Chapter]: ...


class CachingDataSource:
    """Memoizes another data source's reads for the lifetime of this wrapper.

    The cache belongs to the instance. Wrap a source per unit of work (a
    CLI invocation, a batch job) and drop it afterwards, or call
    `invalidate()` after writes.
    """

    def __init__(self, source: StoryDataSource) -> None:
        self.source = source
        self._cache: dict[tuple, Any] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _cached(self, method: str, project_id: str, ids: Sequence[str] | None,
                load: Callable[[], Any]) -> Any:
        key = (method, project_id, tuple(ids) if ids is not None else None)
        with self._lock:
            if key in self._cache:
                self.hits += 1
                return self._cache[key]
        # Failures are not cached.
        value = load()
        with self._lock:
            self.misses += 1
            self._cache[key] = value
        return value

    def get_project(self, project_id: str) -> ProjectRecord:
        return self._cached(
            "project", project_id, None,
            lambda: self.source.get_project(project_id),
        )

    def list_characters(self, project_id: str, ids: Sequence[str] = ()) -> list[Character]:
        return list(self._cached(
            "characters", project_id, ids,
            lambda: self.source.list_characters(project_id, ids),
        ))

    def list_settings(self, project_id: str, ids: Sequence[str] = ()) -> list[Setting]:
        return list(self._cached(
            "settings", project_id, ids,
            lambda: self.source.list_settings(project_id, ids),
        ))

    def list_plot_points(self, project_id: str, ids: Sequence[str] = ()) -> list[PlotPoint]:
        return list(self._cached(
            "plot_points", project_id, ids,
            lambda: self.source.list_plot_points(project_id, ids),
        ))

    def list_chapters(self, project_id: str, ids: Sequence[str] = ()) -> list[Chapter]:
        return list(self._cached(
            "chapters", project_id, ids,
            lambda: self.source.list_chapters(project_id, ids),
        ))

    def invalidate(self, project_id: str | None = None) -> None:
        """Drop cached reads for one project, or everything."""
        with self._lock:
            if project_id is None:
                self._cache.clear()
            else:
                self._cache = {
                    k: v for k, v in self._cache.items() if k[1] != project_id
                }
