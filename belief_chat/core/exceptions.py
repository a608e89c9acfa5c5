"""
Custom exception hierarchy for the interview service.

All application exceptions inherit from StudyServiceError.
"""


class StudyServiceError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(StudyServiceError):
    """Invalid or missing configuration."""

    pass


# =============================================================================
# Input Errors
# =============================================================================


class ValidationError(StudyServiceError):
    """Input validation failed."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


# =============================================================================
# Lookup Errors
# =============================================================================


class NotFoundError(StudyServiceError):
    """Referenced document does not exist."""

    pass


class ParticipantNotFoundError(NotFoundError):
    """Participant does not exist."""

    pass


class ConversationNotFoundError(NotFoundError):
    """Conversation does not exist."""

    pass


class ConversationTerminatedError(StudyServiceError):
    """Attempted to continue a terminated conversation."""

    pass


# =============================================================================
# Reply Generator Errors
# =============================================================================


class GeneratorError(StudyServiceError):
    """Base for Reply Generator failures (recovered with a fallback reply)."""

    pass


class GeneratorUnavailableError(GeneratorError):
    """Transport error or unusable response from the text model."""

    pass


class GeneratorTimeoutError(GeneratorError):
    """Text model call exceeded its deadline."""

    pass


# =============================================================================
# Storage Errors
# =============================================================================


class PersistenceError(StudyServiceError):
    """Participant or conversation document could not be written."""

    pass
