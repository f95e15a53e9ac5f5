"""Errors raised by the task state engine."""


class TaskSyncError(Exception):
    """Base class for task engine failures."""


class UnknownStateError(TaskSyncError):
    """A custom state token is not among the states known to the index."""

    def __init__(self, state: str) -> None:
        super().__init__(f"Unknown task state: {state!r}")
        self.state = state


class StaleReferenceError(TaskSyncError):
    """A backlink no longer points at a task marker holding the expected state."""

    def __init__(self, ref: str, reason: str) -> None:
        super().__init__(f"Reference {ref} is out of date: {reason}")
        self.ref = ref
        self.reason = reason
