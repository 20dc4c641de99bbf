"""
Custom exception classes for unified error handling.

Provider, lookup and configuration errors are raised by the collaborators.
The analyzer, the retrieval engine and repository import wrap everything
they catch into one coarse, operation-scoped error.
"""

from typing import Optional


class StudyAssistantError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ProviderError(StudyAssistantError):
    """Raised when GitHub, the LLM or the embedding API fails (network, auth, quota)."""


class RemoteNotFoundError(ProviderError):
    """Raised when a remote resource does not exist (HTTP 404)."""


class RecordNotFoundError(StudyAssistantError):
    """Raised when a database record is missing or owned by another user."""
    def __init__(self, kind: str, record_id: str):
        super().__init__(
            message=f"{kind} not found",
            detail=f"No {kind.lower()} with id '{record_id}' for this user.",
        )


class ConfigurationError(StudyAssistantError):
    """Raised when a provider credential is not configured."""


class AnalysisFailedError(StudyAssistantError):
    """Raised when a repository analysis cannot be completed. Nothing is saved."""
    def __init__(self, detail: Optional[str] = None):
        super().__init__(message="Failed to analyze repository", detail=detail)


class SearchFailedError(StudyAssistantError):
    """Raised when retrieval fails. No partial answer is returned."""
    def __init__(self, detail: Optional[str] = None):
        super().__init__(message="Failed to generate answer", detail=detail)


class RepositoryImportError(StudyAssistantError):
    """Raised when the user's repositories cannot be listed or stored."""
    def __init__(self, detail: Optional[str] = None):
        super().__init__(message="Failed to fetch repositories", detail=detail)
