class WorkflowError(Exception):
    """Base class for errors raised while running a workflow."""


class ValidationError(WorkflowError):
    """Required request fields are missing. Nothing has been persisted."""


class UpstreamGenerationError(WorkflowError):
    """The text generator failed or returned something unusable."""


class UpstreamProviderError(WorkflowError):
    """A data provider failed. ``message`` is shown to the user as-is."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PersistenceError(WorkflowError):
    """The run store could not create or update a record."""
