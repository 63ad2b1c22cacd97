"""
LinguaLens - Custom Exceptions
==============================
Centralized exception hierarchy for structured error handling.
"""

from typing import Optional, Dict, Any


class LinguaLensBaseException(Exception):
    """Base exception for all LinguaLens errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/API responses."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }
        if self.original_error:
            result["original_error"] = str(self.original_error)
        return result


# =============================================================================
# Storage Errors
# =============================================================================

class DatabaseConnectionError(LinguaLensBaseException):
    """Database query or connection failure."""

    status_code = 503

    def __init__(
        self,
        message: str = "Failed to reach the database",
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        context = {"operation": operation} if operation else {}
        super().__init__(message, context, original_error)


class NotFoundError(LinguaLensBaseException):
    """Requested row does not exist (or is not owned by the caller)."""

    status_code = 404

    def __init__(
        self,
        resource: str,
        resource_id: Optional[str] = None,
    ):
        context = {"resource": resource}
        if resource_id:
            context["resource_id"] = str(resource_id)
        super().__init__(f"{resource.capitalize()} not found", context)


# =============================================================================
# Auth Errors
# =============================================================================

class AuthenticationError(LinguaLensBaseException):
    """Missing, invalid or rejected credentials."""

    status_code = 401

    def __init__(
        self,
        message: str = "Please sign in to continue",
        email: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        context = {"email": email} if email else {}
        super().__init__(message, context, original_error)


class AccountLockedError(AuthenticationError):
    """Too many failed sign-in attempts."""

    status_code = 429

    def __init__(self, email: str, retry_after: float):
        super().__init__(
            f"Too many failed attempts. Try again in {max(1, round(retry_after / 60))} minutes.",
            email=email,
        )
        self.retry_after = retry_after
        self.context["retry_after"] = round(retry_after, 1)


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(LinguaLensBaseException):
    """Input validation failure."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None
    ):
        context = {}
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]  # Truncate
        super().__init__(message, context)


# =============================================================================
# External Service Errors
# =============================================================================

class ExternalServiceError(LinguaLensBaseException):
    """A hosted API (OpenAI, ElevenLabs, download origin) failed."""

    status_code = 502

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        context = {"service": service} if service else {}
        super().__init__(message, context, original_error)


class LLMServiceError(ExternalServiceError):
    """OpenAI request failure (translation, analysis, chat, etc.)."""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, service="openai", original_error=original_error)
        if model:
            self.context["model"] = model
        if operation:
            self.context["operation"] = operation


class QuotaExceededError(LLMServiceError):
    status_code = 429

    def __init__(self, model: Optional[str] = None, original_error: Optional[Exception] = None):
        super().__init__(
            "OpenAI API quota exceeded. Please check your billing details.",
            model=model,
            original_error=original_error,
        )


class InvalidAPIKeyError(LLMServiceError):
    status_code = 401

    def __init__(self, model: Optional[str] = None, original_error: Optional[Exception] = None):
        super().__init__("Invalid OpenAI API key.", model=model, original_error=original_error)


class ServiceUnavailableError(LLMServiceError):
    status_code = 503

    def __init__(self, model: Optional[str] = None, original_error: Optional[Exception] = None):
        super().__init__(
            "OpenAI service is temporarily unavailable. Please try again later.",
            model=model,
            original_error=original_error,
        )


class ServiceNotConfiguredError(ExternalServiceError):
    status_code = 503


class OCRError(ExternalServiceError):
    """Text extraction from an image failed."""

    status_code = 422

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, service="tesseract", original_error=original_error)
        if filename:
            self.context["filename"] = filename


class SpeechSynthesisError(ExternalServiceError):
    """ElevenLabs text-to-speech failure."""

    def __init__(
        self,
        message: str,
        voice_id: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, service="elevenlabs", original_error=original_error)
        if voice_id:
            self.context["voice_id"] = voice_id


class PDFExportError(LinguaLensBaseException):
    """PDF rendering failure."""

    status_code = 500

    def __init__(
        self,
        message: str = "Failed to generate PDF",
        document_id: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        context = {"document_id": document_id} if document_id else {}
        super().__init__(message, context, original_error)
