"""Story context assembly.

Pipeline, run once per selection request:
  1. Validate the request (no fetch happens for an invalid one)
  2. Fan out: fetch the project record and the four candidate pools
  3. Drop malformed candidates (missing or mismatched element kind)
  4. Score every candidate and rank each pool, stable on ties
  5. Allocate max_elements across kinds and keep each pool's prefix
  6. Compact survivors and the project record into a ContextPayload

The four kinds share one pipeline. A KindPipeline descriptor carries what
differs between them: the data source method and the compaction rule.

Failure semantics:
  - project fetch fails   -> ProjectFetchError, no payload
  - one pool fetch fails  -> empty pool, logged warning, ContextWarning
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Mapping

from pydantic import BaseModel

from storyforge.context.budget import allocate_budget
from storyforge.context.compaction import (
    compact_chapter,
    compact_character,
    compact_plot_point,
    compact_project,
    compact_setting,
)
from storyforge.context.models import (
    ContextPayload,
    ContextWarning,
    ElementKind,
    ProjectRecord,
    RankedElement,
    SelectionRequest,
    StoryElement,
    TokenEstimator,
)
from storyforge.context.scoring import ScoreBreakdown, explain
from storyforge.exceptions import (
    InvalidRequestError,
    ProjectFetchError,
    ProjectNotFoundError,
)

if TYPE_CHECKING:
    from storyforge.storage.base import StoryDataSource

logger = logging.getLogger("storyforge.context")


# ---------------------------------------------------------------------------
# Kind descriptors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KindPipeline:
    """What the shared pipeline needs to know about one element kind."""

    kind: ElementKind
    group: str  # ContextPayload field receiving the compacted elements
    fetcher: str  # StoryDataSource method name
    compact: Callable[[Any], BaseModel]


KIND_PIPELINES: tuple[KindPipeline, ...] = (
    KindPipeline(ElementKind.CHARACTER, "characters", "list_characters", compact_character),
    KindPipeline(ElementKind.SETTING, "settings", "list_settings", compact_setting),
    KindPipeline(ElementKind.PLOT_POINT, "plot_points", "list_plot_points", compact_plot_point),
    KindPipeline(ElementKind.CHAPTER, "recent_content", "list_chapters", compact_chapter),
)


@dataclass
class ScoredElement:
    element: StoryElement
    breakdown: ScoreBreakdown

    @property
    def score(self) -> float:
        return self.breakdown.total


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------

class ContextAssembler:
    """Builds relevance-ranked, size-bounded story context.

    The assembler holds no state between calls. Everything it reads comes
    from the injected data source, fetched fresh for each request.

    Usage:
        assembler = ContextAssembler(StoryStore(db_path))
        payload = assembler.build_context({"projectId": "p1", "maxElements": 12})
        prompt_context = payload.render()
    """

    def __init__(
        self,
        source: StoryDataSource,
        max_workers: int = 5,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.source = source
        self.max_workers = max(1, max_workers)
        self._clock = clock or _utc_now

    # -------------------------------------------------------------------
    # Main entry point
    # -------------------------------------------------------------------

    def build_context(
        self, request: SelectionRequest | Mapping[str, Any]
    ) -> ContextPayload:
        """Assemble the context payload for one selection request.

        Args:
            request: A SelectionRequest, or a JSON-shaped mapping with the
                same fields (camelCase or snake_case keys).

        Returns:
            A complete ContextPayload. Kind groups may be empty when a pool
            fetch failed; the failure is listed in `payload.warnings`.

        Raises:
            InvalidRequestError: The request is malformed. Nothing is fetched.
            ProjectFetchError: The project record could not be fetched.
        """
        start_time = time.time()
        request = self._validate(request)
        now = self._clock()
        warnings: list[ContextWarning] = []

        # Phase 1: Concurrent fetch
        project, pools = self._fetch_all(request, warnings)

        # Phase 2: Score and rank each pool
        ranked = {
            p.kind: self._rank(p, pools[p.kind], request, now, warnings)
            for p in KIND_PIPELINES
        }

        # Phase 3: Budget truncation (prefix of each ranked pool)
        allocation = allocate_budget(
            {kind: len(items) for kind, items in ranked.items()},
            request.max_elements,
        )

        # Phase 4: Compaction
        groups: dict[str, list[BaseModel]] = {}
        ranking: list[RankedElement] = []
        for p in KIND_PIPELINES:
            keep = allocation[p.kind]
            groups[p.group] = [p.compact(s.element) for s in ranked[p.kind][:keep]]
            for i, s in enumerate(ranked[p.kind]):
                ranking.append(
                    RankedElement(
                        kind=p.kind,
                        id=s.element.id,
                        score=round(s.score, 3),
                        reason=s.breakdown.reason(),
                        included=i < keep,
                    )
                )

        available = sum(len(items) for items in ranked.values())
        included = sum(len(items) for items in groups.values())

        payload = ContextPayload(
            project_id=request.project_id,
            task=request.task,
            project=compact_project(project),
            warnings=warnings,
            ranking=ranking,
            max_elements=request.max_elements,
            elements_available=available,
            elements_included=included,
            **groups,
        )
        payload.token_estimate = TokenEstimator.estimate_json(payload.to_prompt_dict())
        payload.assembly_time_ms = round((time.time() - start_time) * 1000, 1)

        logger.debug(
            "Built context for project %s: %d/%d elements, ~%d tokens",
            request.project_id, included, available, payload.token_estimate,
        )
        return payload

    # -------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------

    def _validate(
        self, request: SelectionRequest | Mapping[str, Any]
    ) -> SelectionRequest:
        if isinstance(request, SelectionRequest):
            if not isinstance(request.project_id, str) or not request.project_id.strip():
                raise InvalidRequestError("Selection request is missing project_id")
            return request
        if isinstance(request, Mapping):
            return SelectionRequest.from_payload(request)
        raise InvalidRequestError(
            f"Expected a selection request, got {type(request).__name__}"
        )

    # -------------------------------------------------------------------
    # Fetch (fan-out / join)
    # -------------------------------------------------------------------

    def _fetch_all(
        self, request: SelectionRequest, warnings: list[ContextWarning]
    ) -> tuple[ProjectRecord, dict[ElementKind, list[Any]]]:
        """Fetch the project and all pools concurrently, then join."""
        project_id = request.project_id

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="storyforge-fetch"
        ) as executor:
            project_future = executor.submit(self.source.get_project, project_id)
            pool_futures: dict[ElementKind, Future] = {
                p.kind: executor.submit(
                    getattr(self.source, p.fetcher),
                    project_id,
                    list(request.ids_for(p.kind)),
                )
                for p in KIND_PIPELINES
            }

            try:
                project = project_future.result()
                if project is None:
                    raise ProjectNotFoundError(project_id)
            except Exception as e:
                for future in pool_futures.values():
                    future.cancel()
                logger.error("Project fetch failed for %s: %s", project_id, e)
                raise ProjectFetchError(project_id, e) from e

            pools: dict[ElementKind, list[Any]] = {}
            for p in KIND_PIPELINES:
                try:
                    pools[p.kind] = list(pool_futures[p.kind].result() or [])
                except Exception as e:
                    logger.warning(
                        "Fetching %s candidates for project %s failed: %s",
                        p.kind.value, project_id, e,
                    )
                    warnings.append(
                        ContextWarning(
                            kind=p.kind,
                            message=f"{p.kind.value} fetch failed: {e}",
                        )
                    )
                    pools[p.kind] = []

        return project, pools

    # -------------------------------------------------------------------
    # Scoring / ranking
    # -------------------------------------------------------------------

    def _rank(
        self,
        pipeline: KindPipeline,
        candidates: list[Any],
        request: SelectionRequest,
        now: datetime,
        warnings: list[ContextWarning],
    ) -> list[ScoredElement]:
        """Score a pool and sort it by descending score, stable on ties."""
        scored: list[ScoredElement] = []

        for element in candidates:
            kind = getattr(element, "element_kind", None)
            if kind != pipeline.kind or not isinstance(element, StoryElement):
                element_id = str(getattr(element, "id", "") or "")
                if kind is None:
                    problem = "has no element kind"
                else:
                    problem = f"has kind '{getattr(kind, 'value', kind)}'"
                message = (
                    f"Skipped element '{element_id}' in the "
                    f"{pipeline.kind.value} pool: {problem}"
                )
                logger.warning(message)
                warnings.append(
                    ContextWarning(
                        kind=pipeline.kind, element_id=element_id, message=message
                    )
                )
                continue

            scored.append(ScoredElement(element, explain(element, request, now)))

        scored.sort(key=lambda s: -s.score)
        return scored
