"""Exceptions raised by the progress stores and the transcription client."""


class ProgressStoreError(Exception):
    """Base exception for progress persistence."""

    pass


class ProgressReadError(ProgressStoreError):
    """Raised when stored progress cannot be read or is not a JSON object."""

    pass


class ProgressCorruptError(ProgressReadError):
    """Raised when the store is reachable but holds unparseable data."""

    pass


class ProgressWriteError(ProgressStoreError):
    """Raised when progress cannot be written back to the store."""

    pass


class TranscriptionError(Exception):
    """Raised when every transcription attempt against the provider failed."""

    pass
