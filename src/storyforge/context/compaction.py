"""Compaction: reduce story elements to the fields a prompt needs.

Every rule keeps an allow-list of fields and the prefix of list fields. Each
rule also accepts its own compact form, so compacting twice gives the same
result as compacting once.
"""

from __future__ import annotations

from storyforge.context.models import (
    Chapter,
    Character,
    CompactChapter,
    CompactCharacter,
    CompactPlotPoint,
    CompactProject,
    CompactSetting,
    PlotPoint,
    ProjectRecord,
    Setting,
)

MAX_TRAITS = 3
MAX_GOALS = 2
MAX_KEY_FEATURES = 3


def compact_character(char: Character | CompactCharacter) -> CompactCharacter:
    if isinstance(char, CompactCharacter):
        traits = char.key_traits
    else:
        traits = char.traits
    return CompactCharacter(
        name=char.name,
        role=char.role,
        description=char.description,
        key_traits=list(traits[:MAX_TRAITS]),
        goals=list(char.goals[:MAX_GOALS]),
    )


def compact_setting(setting: Setting | CompactSetting) -> CompactSetting:
    if isinstance(setting, CompactSetting):
        location_type = setting.type
    else:
        location_type = setting.location_type
    return CompactSetting(
        name=setting.name,
        description=setting.description,
        type=location_type,
        key_features=list(setting.key_features[:MAX_KEY_FEATURES]),
    )


def compact_plot_point(point: PlotPoint | CompactPlotPoint) -> CompactPlotPoint:
    return CompactPlotPoint(
        description=point.description,
        sequence=point.sequence,
        resolved=point.resolved,
    )


def compact_chapter(chapter: Chapter | CompactChapter) -> CompactChapter:
    if isinstance(chapter, CompactChapter):
        return CompactChapter(
            title=chapter.title, summary=chapter.summary, sequence=chapter.sequence
        )
    return CompactChapter(
        title=chapter.name,
        summary=chapter.description,
        sequence=chapter.sequence,
    )


def compact_project(project: ProjectRecord | CompactProject) -> CompactProject:
    if isinstance(project, CompactProject):
        audience = project.audience
    else:
        audience = project.target_audience
    return CompactProject(
        title=project.title,
        genre=project.genre,
        audience=audience,
        tone=project.tone,
        style=project.style,
    )
