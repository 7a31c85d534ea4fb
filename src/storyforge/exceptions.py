"""Custom exceptions for StoryForge."""


class StoryForgeError(Exception):
    """Base exception for all StoryForge errors."""


class ConfigError(StoryForgeError):
    """Configuration-related errors."""


class InvalidRequestError(StoryForgeError):
    """A selection request is malformed or missing its project id."""


class StorageError(StoryForgeError):
    """Story store read/write errors."""


class DataSourceError(StoryForgeError):
    """A story data source failed to return candidates."""


class ProjectNotFoundError(DataSourceError):
    """Raised when a data source has no record for the requested project."""

    def __init__(self, project_id: str):
        super().__init__(f"Project '{project_id}' not found")
        self.project_id = project_id


class ProjectFetchError(DataSourceError):
    """The project record could not be fetched; no context can be built."""

    def __init__(self, project_id: str, cause: Exception):
        super().__init__(f"Could not fetch project '{project_id}': {cause}")
        self.project_id = project_id
        self.cause = cause
