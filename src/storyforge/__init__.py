"""StoryForge - relevance-ranked story context for AI-assisted writing."""

__version__ = "0.1.0"
