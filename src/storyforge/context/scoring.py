"""Relevance scoring for story elements.

Formulation:
  For an element v and a selection request R evaluated at time `now`:

    score(v) = importance(v)
             + mention(v, R)      10 if id(v) is in R's id list for kind(v)
             + recency(v, R)      linear decay 5 -> 0 across the recent window
             + referenced(v)      3 if v was referenced within the last day

  recency(v, R) = max(0, 5 - days / window * 5)  when R.include_recent and
                  days = (now - updated_at(v)) in days is within the window,
                  0 otherwise. A future updated_at counts as days = 0.
                  A zero or unset window means the 7 day default.

The score only orders candidates. It is reported in the ranking trace, never
in the prompt groups.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

from pydantic import BaseModel

from storyforge.context.models import (
    DEFAULT_RECENT_WINDOW_DAYS,
    SelectionRequest,
    StoryElement,
)

# Fixed policy constants. Callers tune selection only through the request.
DIRECT_MENTION_BONUS = 10.0
RECENT_REFERENCE_BONUS = 3.0
RECENT_REFERENCE_WINDOW_DAYS = 1.0
RECENCY_MAX_BONUS = 5.0

_SECONDS_PER_DAY = 86400.0


def policy_constants() -> dict[str, float]:
    """The scoring constants, keyed the way the HTTP layer reports them."""
    return {
        "directMentionBonus": DIRECT_MENTION_BONUS,
        "recentReferenceBonus": RECENT_REFERENCE_BONUS,
        "recentReferenceWindowDays": RECENT_REFERENCE_WINDOW_DAYS,
        "defaultRecentWindowDays": DEFAULT_RECENT_WINDOW_DAYS,
        "recencyMaxBonus": RECENCY_MAX_BONUS,
    }


class ScoreBreakdown(BaseModel):
    """Per-term contributions to one element's relevance score."""

    importance: float = 0.0
    direct_mention: float = 0.0
    recency: float = 0.0
    recent_reference: float = 0.0
    days_since_update: float | None = None

    @property
    def total(self) -> float:
        return self.importance + self.direct_mention + self.recency + self.recent_reference

    def reason(self) -> str:
        """Short explanation of the non-zero terms."""
        parts: list[str] = []
        if self.direct_mention:
            parts.append("explicitly requested")
        if self.importance:
            parts.append(f"importance {self.importance:g}")
        if self.recency:
            parts.append(
                f"edited {self.days_since_update:.1f}d ago (+{self.recency:.2f})"
            )
        if self.recent_reference:
            parts.append("referenced in the last day")
        return "; ".join(parts)


def _as_utc(ts: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _days_since(now: datetime, then: datetime) -> float:
    return (_as_utc(now) - _as_utc(then)).total_seconds() / _SECONDS_PER_DAY


def _importance(element: StoryElement) -> float:
    value = element.importance
    if value is None or math.isnan(value) or value < 0:
        return 0.0
    return float(value)


def explain(
    element: StoryElement,
    request: SelectionRequest,
    now: datetime | None = None,
) -> ScoreBreakdown:
    """Compute each term of the relevance score for `element`.

    Pure: reads the element and request, never modifies them. Absent optional
    fields contribute zero.
    """
    now = now or datetime.now(timezone.utc)
    breakdown = ScoreBreakdown(importance=_importance(element))

    kind = element.element_kind
    if kind is not None and element.id in request.ids_for(kind):
        breakdown.direct_mention = DIRECT_MENTION_BONUS

    if request.include_recent and element.updated_at is not None:
        days = max(0.0, _days_since(now, element.updated_at))
        window = request.recent_window_days or DEFAULT_RECENT_WINDOW_DAYS
        breakdown.days_since_update = days
        if days <= window:
            breakdown.recency = max(
                0.0, RECENCY_MAX_BONUS - (days / window) * RECENCY_MAX_BONUS
            )

    if element.last_referenced_at is not None:
        if _days_since(now, element.last_referenced_at) <= RECENT_REFERENCE_WINDOW_DAYS:
            breakdown.recent_reference = RECENT_REFERENCE_BONUS

    return breakdown


def score(
    element: StoryElement,
    request: SelectionRequest,
    now: datetime | None = None,
) -> float:
    """Relevance score of `element` for `request`. Higher is more relevant."""
    return explain(element, request, now).total
