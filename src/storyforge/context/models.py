"""Data models for story context selection."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from storyforge.exceptions import InvalidRequestError

DEFAULT_RECENT_WINDOW_DAYS = 7.0


class ElementKind(str, Enum):
    """Discriminant partitioning story elements into four pools."""

    CHARACTER = "character"
    SETTING = "setting"
    PLOT_POINT = "plot_point"
    CHAPTER = "chapter"


class TaskType(str, Enum):
    """Downstream generation purpose. Recorded, never used for scoring."""

    CHARACTER = "character"
    PLOT = "plot"
    SETTING = "setting"
    CHAPTER = "chapter"
    EDITORIAL = "editorial"


class WireModel(BaseModel):
    """Accepts and emits camelCase keys alongside the snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Story elements
# ---------------------------------------------------------------------------

class StoryElement(WireModel):
    """A read-only snapshot of one story element fetched for a request."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str
    element_kind: ElementKind | None = None
    name: str = ""
    description: str = ""
    importance: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_referenced_at: datetime | None = None  # Set when the element is used/mentioned


class Relationship(WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    with_id: str = ""
    type: str = ""
    notes: str = ""


class Character(StoryElement):
    element_kind: ElementKind | None = ElementKind.CHARACTER
    role: str = ""
    traits: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    background: str = ""
    relationships: list[Relationship] = Field(default_factory=list)


class Setting(StoryElement):
    element_kind: ElementKind | None = ElementKind.SETTING
    location_type: str = ""
    time_period: str = ""
    key_features: list[str] = Field(default_factory=list)


class PlotPoint(StoryElement):
    element_kind: ElementKind | None = ElementKind.PLOT_POINT
    sequence: int = 0
    resolved: bool = False
    characters_involved: list[str] = Field(default_factory=list)
    settings_involved: list[str] = Field(default_factory=list)


class Chapter(StoryElement):
    """A chapter. `name` is its title and `description` its summary."""

    element_kind: ElementKind | None = ElementKind.CHAPTER
    sequence: int = 0
    content: str = ""
    characters_present: list[str] = Field(default_factory=list)
    settings_present: list[str] = Field(default_factory=list)
    plot_points_resolved: list[str] = Field(default_factory=list)


ELEMENT_MODELS: dict[ElementKind, type[StoryElement]] = {
    ElementKind.CHARACTER: Character,
    ElementKind.SETTING: Setting,
    ElementKind.PLOT_POINT: PlotPoint,
    ElementKind.CHAPTER: Chapter,
}


class ProjectRecord(WireModel):
    """Project-level context. Always included, never ranked."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str
    title: str = ""
    genre: str = ""
    target_audience: str = ""
    tone: str = ""
    style: str = ""
    description: str = ""


class StoryBible(WireModel):
    """Everything stored for one project: the import/export unit."""

    project: ProjectRecord
    characters: list[Character] = Field(default_factory=list)
    settings: list[Setting] = Field(default_factory=list)
    plot_points: list[PlotPoint] = Field(default_factory=list)
    chapters: list[Chapter] = Field(default_factory=list)

    def elements(self, kind: ElementKind) -> list[StoryElement]:
        return {
            ElementKind.CHARACTER: self.characters,
            ElementKind.SETTING: self.settings,
            ElementKind.PLOT_POINT: self.plot_points,
            ElementKind.CHAPTER: self.chapters,
        }[kind]


# ---------------------------------------------------------------------------
# Selection request
# ---------------------------------------------------------------------------

class SelectionRequest(WireModel):
    """The query driving one context build. Constructed per call."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    project_id: str = Field(min_length=1)
    task: TaskType | None = None
    character_ids: list[str] = Field(default_factory=list)
    setting_ids: list[str] = Field(default_factory=list)
    plot_point_ids: list[str] = Field(default_factory=list)
    chapter_ids: list[str] = Field(default_factory=list)
    max_elements: int | None = Field(default=None, ge=0)
    include_recent: bool = False
    recent_window_days: float = Field(default=DEFAULT_RECENT_WINDOW_DAYS, ge=0)

    @field_validator("project_id")
    @classmethod
    def _project_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("project_id must not be blank")
        return value

    @field_validator(
        "character_ids", "setting_ids", "plot_point_ids", "chapter_ids",
        mode="before",
    )
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("recent_window_days", mode="before")
    @classmethod
    def _default_window(cls, value: Any) -> Any:
        # An unset or zero window means the default window
        return value or DEFAULT_RECENT_WINDOW_DAYS

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SelectionRequest:
        """Build a request from a JSON-shaped mapping (camelCase or snake_case)."""
        if not isinstance(payload, Mapping):
            raise InvalidRequestError("Selection request must be a JSON object")
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
                for err in e.errors()
            )
            raise InvalidRequestError(f"Invalid selection request: {problems}") from e

    def ids_for(self, kind: ElementKind) -> list[str]:
        """The explicit id list matching an element kind."""
        return {
            ElementKind.CHARACTER: self.character_ids,
            ElementKind.SETTING: self.setting_ids,
            ElementKind.PLOT_POINT: self.plot_point_ids,
            ElementKind.CHAPTER: self.chapter_ids,
        }[kind]


# ---------------------------------------------------------------------------
# Compact forms
# ---------------------------------------------------------------------------

class CompactCharacter(WireModel):
    name: str = ""
    role: str = ""
    description: str = ""
    key_traits: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)


class CompactSetting(WireModel):
    name: str = ""
    description: str = ""
    type: str = ""
    key_features: list[str] = Field(default_factory=list)


class CompactPlotPoint(WireModel):
    description: str = ""
    sequence: int = 0
    resolved: bool = False


class CompactChapter(WireModel):
    title: str = ""
    summary: str = ""
    sequence: int = 0


class CompactProject(WireModel):
    title: str = ""
    genre: str = ""
    audience: str = ""
    tone: str = ""
    style: str = ""


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------

class ContextWarning(WireModel):
    """A recovered problem: a failed per-kind fetch or a malformed element."""

    kind: ElementKind | None = None
    element_id: str = ""
    message: str


class RankedElement(WireModel):
    """Ranking trace for one candidate. Never part of the prompt groups."""

    kind: ElementKind
    id: str
    score: float
    reason: str = ""
    included: bool = True


PROMPT_GROUPS = ("project", "characters", "settings", "plot_points", "recent_content")


class ContextPayload(WireModel):
    """The assembled context, ready for a generation request."""

    project_id: str
    task: TaskType | None = None
    project: CompactProject
    characters: list[CompactCharacter] = Field(default_factory=list)
    settings: list[CompactSetting] = Field(default_factory=list)
    plot_points: list[CompactPlotPoint] = Field(default_factory=list)
    recent_content: list[CompactChapter] = Field(default_factory=list)
    warnings: list[ContextWarning] = Field(default_factory=list)
    ranking: list[RankedElement] = Field(default_factory=list)
    max_elements: int | None = None
    elements_available: int = 0
    elements_included: int = 0
    token_estimate: int = 0
    assembly_time_ms: float = 0.0

    def to_prompt_dict(self, by_alias: bool = False) -> dict[str, Any]:
        """The five labeled groups only, JSON-ready."""
        return self.model_dump(mode="json", include=set(PROMPT_GROUPS), by_alias=by_alias)

    def render(self) -> str:
        """Render the payload as a text block for a generation prompt."""
        p = self.project
        sections: list[str] = [f"# Story Context: {p.title or self.project_id}"]
        details = [
            f"{label}: {value}"
            for label, value in (
                ("Genre", p.genre),
                ("Audience", p.audience),
                ("Tone", p.tone),
                ("Style", p.style),
            )
            if value
        ]
        if details:
            sections.append(" | ".join(details))
        sections.append("")

        if self.characters:
            sections.append("## Characters")
            for c in self.characters:
                head = f"- {c.name} ({c.role})" if c.role else f"- {c.name}"
                sections.append(f"{head}: {c.description}" if c.description else head)
                if c.key_traits:
                    sections.append(f"  Traits: {', '.join(c.key_traits)}")
                if c.goals:
                    sections.append(f"  Goals: {', '.join(c.goals)}")
            sections.append("")

        if self.settings:
            sections.append("## Settings")
            for s in self.settings:
                head = f"- {s.name} [{s.type}]" if s.type else f"- {s.name}"
                sections.append(f"{head}: {s.description}" if s.description else head)
                if s.key_features:
                    sections.append(f"  Key features: {', '.join(s.key_features)}")
            sections.append("")

        if self.plot_points:
            sections.append("## Plot Points")
            for pp in self.plot_points:
                state = "resolved" if pp.resolved else "unresolved"
                sections.append(f"- #{pp.sequence} {pp.description} ({state})")
            sections.append("")

        if self.recent_content:
            sections.append("## Recent Chapters")
            for ch in self.recent_content:
                line = f"- Chapter {ch.sequence}: {ch.title}"
                sections.append(f"{line}. {ch.summary}" if ch.summary else line)
            sections.append("")

        return "\n".join(sections).rstrip() + "\n"

    def summary(self) -> str:
        """Human-readable summary of what's in the payload."""
        limit = "none" if self.max_elements is None else str(self.max_elements)
        lines = [
            f"Story context for project: {self.project_id}",
            f"Task: {self.task.value if self.task else '-'}",
            f"Elements: {self.elements_included} included, "
            f"{self.elements_available} candidates (limit: {limit})",
            f"Tokens: ~{self.token_estimate:,}",
            f"Assembly time: {self.assembly_time_ms:.1f}ms",
        ]
        if self.warnings:
            lines.append(f"Warnings: {len(self.warnings)}")
            for w in self.warnings:
                lines.append(f"  ! {w.message}")
        lines.append("")
        lines.append("Ranking:")
        for r in self.ranking:
            marker = ">" if r.included else " "
            lines.append(f"  {marker} [{r.kind.value}] {r.id} score={r.score:.2f}")
            if r.reason:
                lines.append(f"    reason: {r.reason}")
        return "\n".join(lines)


class TokenEstimator:
    """Estimate token counts for prompt text."""

    # Rough heuristic: 1 token ≈ 4 characters of English prose
    CHARS_PER_TOKEN = 4.0

    @classmethod
    def estimate(cls, text: str) -> int:
        """Estimate token count for a string."""
        return max(1, int(len(text) / cls.CHARS_PER_TOKEN))

    @classmethod
    def estimate_json(cls, data: Any) -> int:
        """Estimate tokens for a JSON-serializable value as it would be sent."""
        return cls.estimate(json.dumps(data, separators=(",", ":")))
