"""Shared test fixtures for StoryForge."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from helpers import days_ago
from storyforge.context.models import (
    Chapter,
    Character,
    PlotPoint,
    ProjectRecord,
    Setting,
    StoryBible,
)


@pytest.fixture
def project_record() -> ProjectRecord:
    return ProjectRecord(
        id="p1",
        title="The Lantern Road",
        genre="fantasy",
        target_audience="young adult",
        tone="adventurous",
        style="descriptive",
        description="A courier crosses a drowned kingdom.",
    )


@pytest.fixture
def sample_bible(project_record: ProjectRecord) -> StoryBible:
    """A small but complete project with every element kind."""
    return StoryBible(
        project=project_record,
        characters=[
            Character(
                id="c1",
                name="Mira",
                role="Protagonist",
                description="A courier who never misses a delivery.",
                traits=["stubborn", "quick", "loyal", "curious"],
                goals=["deliver the lantern", "find her brother", "open a shop"],
                background="Raised on the river docks.",
                importance=2,
                created_at=days_ago(60),
                updated_at=days_ago(1),
            ),
            Character(
                id="c2",
                name="Osric",
                role="Antagonist",
                description="Toll-keeper of the flooded bridges.",
                traits=["patient", "greedy"],
                goals=["control the river"],
                importance=4,
                created_at=days_ago(90),
                updated_at=days_ago(30),
            ),
            Character(
                id="c3",
                name="Pell",
                role="Supporting",
                description="A talking heron.",
                importance=1,
            ),
        ],
        settings=[
            Setting(
                id="s1",
                name="Saltmarsh",
                description="Reeds and sunken towers.",
                location_type="Region",
                time_period="after the flood",
                key_features=["tides", "towers", "fog", "ferries"],
                importance=3,
            ),
            Setting(
                id="s2",
                name="Bridge Gate",
                description="Osric's toll house.",
                location_type="Building",
                importance=1,
            ),
        ],
        plot_points=[
            PlotPoint(
                id="pp1",
                description="Mira accepts the lantern.",
                sequence=1,
                resolved=True,
                importance=2,
            ),
            PlotPoint(
                id="pp2",
                description="The bridges close.",
                sequence=2,
                resolved=False,
                importance=3,
                characters_involved=["c2"],
            ),
        ],
        chapters=[
            Chapter(
                id="ch1",
                name="The Courier",
                description="Mira takes a strange job.",
                sequence=1,
                content="It was raining when the lantern arrived...",
                importance=1,
                updated_at=days_ago(10),
            ),
            Chapter(
                id="ch2",
                name="High Water",
                description="The river rises.",
                sequence=2,
                content="By morning the docks were gone...",
                importance=1,
                updated_at=days_ago(0.5),
            ),
        ],
    )


@pytest.fixture
def bible_file(tmp_path: Path, sample_bible: StoryBible) -> Path:
    """The sample bible written in camelCase JSON, the way the web app sends it."""
    path = tmp_path / "bible.json"
    path.write_text(json.dumps(sample_bible.model_dump(mode="json", by_alias=True)))
    return path
