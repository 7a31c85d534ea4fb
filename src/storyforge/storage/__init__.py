"""Story data sources: the interface the assembler reads through, and backends."""

from storyforge.storage.base import CachingDataSource, StoryDataSource
from storyforge.storage.bible import read_bible, write_bible
from storyforge.storage.memory import InMemoryDataSource
from storyforge.storage.store import StoryStore

__all__ = [
    "CachingDataSource",
    "InMemoryDataSource",
    "StoryDataSource",
    "StoryStore",
    "read_bible",
    "write_bible",
]
