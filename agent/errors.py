# agent/errors.py
"""
Error taxonomy.

Most of these never escape a run: the orchestrator turns them into a
RunResult, and the dispatcher turns store errors into failed tool results.
Only programmer errors (an unknown mode) propagate to the caller.
"""


class SitewrightError(Exception):
    """Base class for every error raised by the engine."""


class UserInputError(SitewrightError):
    """Missing or empty instruction. Raised before any state is touched."""


class NoExistingProjectError(SitewrightError):
    """MODIFY requested but there are no pages on disk."""


class IterationCapReached(SitewrightError):
    """MODIFY applied-iteration counter is at its cap."""


class CompletionServiceError(SitewrightError):
    """The completion service declared an error."""


class DecisionParseError(SitewrightError):
    """A reply could not be coerced into a valid Decision."""


class ArtifactWriteError(SitewrightError):
    """Directory/file conflict, rejected name, or write-verification mismatch."""


class ArtifactNotFoundError(ArtifactWriteError):
    """The artifact to splice into does not exist."""
