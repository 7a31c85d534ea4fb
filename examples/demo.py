#!/usr/bin/env python3
"""Demo: Using StoryForge as a Python library.

This shows how to build story context programmatically, not just through
the CLI. Pass a story bible JSON file, or run without arguments to use a
small built-in project.
"""

import sys
from datetime import datetime, timedelta, timezone

from storyforge.context import ContextAssembler, SelectionRequest
from storyforge.context.models import (
    Chapter,
    Character,
    PlotPoint,
    ProjectRecord,
    Setting,
    StoryBible,
)
from storyforge.storage import CachingDataSource, InMemoryDataSource, read_bible


def sample_bible() -> StoryBible:
    now = datetime.now(timezone.utc)
    return StoryBible(
        project=ProjectRecord(
            id="demo", title="The Lantern Road", genre="fantasy",
            target_audience="young adult", tone="adventurous",
        ),
        characters=[
            Character(id="mira", name="Mira", role="Protagonist",
                      traits=["stubborn", "quick", "loyal", "curious"],
                      importance=2, updated_at=now - timedelta(days=1)),
            Character(id="osric", name="Osric", role="Antagonist",
                      importance=4, updated_at=now - timedelta(days=30)),
        ],
        settings=[
            Setting(id="marsh", name="Saltmarsh", location_type="Region",
                    key_features=["tides", "towers", "fog"], importance=3),
        ],
        plot_points=[
            PlotPoint(id="bridges", description="The bridges close.", sequence=2),
        ],
        chapters=[
            Chapter(id="ch2", name="High Water", description="The river rises.",
                    sequence=2, updated_at=now - timedelta(hours=6)),
        ],
    )


def main():
    bible = read_bible(sys.argv[1]) if len(sys.argv) > 1 else sample_bible()
    source = CachingDataSource(InMemoryDataSource([bible]))
    assembler = ContextAssembler(source)

    # 1. Everything, ranked
    request = SelectionRequest(
        project_id=bible.project.id,
        character_ids=[c.id for c in bible.characters[:1]],
        include_recent=True,
    )
    payload = assembler.build_context(request)
    print(payload.summary())

    # 2. The same request, capped
    print("\n--- Capped at 3 elements ---")
    capped = assembler.build_context(request.model_copy(update={"max_elements": 3}))
    print(capped.render())

    # 3. A request as it would arrive over the wire
    print("--- camelCase request ---")
    wire = assembler.build_context({
        "projectId": bible.project.id,
        "task": "chapter",
        "maxElements": 2,
    })
    print(wire.to_prompt_dict(by_alias=True))

    print(f"\nCache: {source.hits} hits, {source.misses} misses")


if __name__ == "__main__":
    main()
