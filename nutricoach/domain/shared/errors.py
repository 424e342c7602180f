"""
Domain exceptions.

Typed exceptions for the collaborator boundaries of a conversation turn.
Classifiers never raise; only the text-completion and record store
boundaries do.
"""

from __future__ import annotations


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all nutricoach errors.

    Allows catching every project error with a single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# CONVERSATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ConversationError(DomainError):
    """Base exception for the conversation domain."""

    pass


class ExtractionError(ConversationError):
    """
    Structured extraction output unusable.

    Raised when:
    - Completion text is not JSON
    - JSON does not match the expected schema
    - Declared confidence is below threshold

    Extractors catch this themselves and degrade to "nothing found";
    it never reaches the user.

    Example:
        >>> raise ExtractionError("Meal extraction returned non-JSON content")
    """

    pass


class MealNotFoundError(ConversationError):
    """
    No logged meal matches an edit/delete request.

    Example:
        >>> raise MealNotFoundError("No meal matching 'pancakes' logged today")
    """

    pass


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Example:
        >>> raise ValidationError("Utterance cannot be empty")
    """

    pass


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    External service call failed.

    Base class for text-completion service errors.

    Example:
        >>> raise ExternalServiceError("OpenAI API failed: timeout")
    """

    pass


class RateLimitError(ExternalServiceError):
    """API rate limit exceeded."""

    pass


class TimeoutError(ExternalServiceError):  # noqa: A001
    """
    API call timed out.

    Example:
        >>> raise TimeoutError("OpenAI API timeout after 30s")
    """

    pass


class ServiceUnavailableError(ExternalServiceError):
    """
    External service unavailable.

    Raised when the network is down, the service answers with an HTTP
    error, or the response carries no content.
    """

    pass


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class InfrastructureError(DomainError):
    """Infrastructure layer error."""

    pass


class PersistenceError(InfrastructureError):
    """
    Record store operation failed.

    Raised when:
    - Create/delete request fails (network, auth, HTTP error)
    - Store returns an unexpected payload

    The orchestrator reports this to the user as retryable and leaves
    the pending action unresolved.

    Example:
        >>> raise PersistenceError("Supabase insert failed: 401")
    """

    pass
