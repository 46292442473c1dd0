"""ErrorClassifier implementation for mapping failures onto the taxonomy.

Classification precedence:
1. A ClassifiedError, or an object carrying one in ``.error``, is used as-is.
2. An object exposing a boolean ``retryable`` attribute is trusted: with a
   recognised ``kind`` it keeps that kind, otherwise it becomes an
   Unclassified error carrying the flag.
3. Otherwise the failure message is matched against case-insensitive
   transient patterns. A match yields a retryable Unclassified error,
   anything else a non-retryable Unclassified error.

Classification is a pure function of its input.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from steadfast.core.logging import get_logger

from .codes import (
    CIRCUIT_OPEN_CODE,
    KIND_DEFAULTS,
    TRANSIENT_CODE,
    TRANSIENT_DEFAULTS,
    UNCLASSIFIED_CODE,
    ErrorKind,
)
from .models import ClassifiedError

if TYPE_CHECKING:
    from steadfast.core.config import ClassifierConfig

_logger = get_logger("errors")


DEFAULT_TRANSIENT_PATTERNS: list[str] = [
    r"timeout",
    r"connection",
    r"network",
    r"unavailable",
]

DEFAULT_LOCALE = "en"

# User-facing messages keyed by stable code. Never include error internals here.
MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        KIND_DEFAULTS[ErrorKind.AUTHENTICATION_FAILED].code: (
            "Invalid credentials. Please check your email and password."
        ),
        KIND_DEFAULTS[ErrorKind.PROFILE_NOT_FOUND].code: (
            "We could not find your profile. You can create a new one from your settings."
        ),
        KIND_DEFAULTS[ErrorKind.PROFILE_CREATION_FAILED].code: (
            "We could not create your profile. Please try again in a few moments."
        ),
        KIND_DEFAULTS[ErrorKind.STORAGE_CONNECTION_ERROR].code: (
            "We are having trouble reaching our database. Please try again in a few moments."
        ),
        TRANSIENT_CODE: (
            "A temporary connection problem occurred. Please check your connection and try again."
        ),
        CIRCUIT_OPEN_CODE: (
            "This service is temporarily unavailable. Please try again later."
        ),
        UNCLASSIFIED_CODE: (
            "An unexpected error occurred. Please try again or contact support."
        ),
    },
    "es": {
        KIND_DEFAULTS[ErrorKind.AUTHENTICATION_FAILED].code: (
            "Credenciales inválidas. Por favor, verifica tu email y contraseña."
        ),
        KIND_DEFAULTS[ErrorKind.PROFILE_NOT_FOUND].code: (
            "No se encontró tu perfil. Puedes crear uno nuevo desde la configuración."
        ),
        KIND_DEFAULTS[ErrorKind.PROFILE_CREATION_FAILED].code: (
            "No se pudo crear tu perfil. Por favor, intenta nuevamente en unos momentos."
        ),
        KIND_DEFAULTS[ErrorKind.STORAGE_CONNECTION_ERROR].code: (
            "Problemas de conexión con la base de datos. "
            "Por favor, intenta nuevamente en unos momentos."
        ),
        TRANSIENT_CODE: (
            "Problemas de conexión. Por favor, verifica tu conexión a internet "
            "e intenta nuevamente."
        ),
        CIRCUIT_OPEN_CODE: (
            "El servicio no está disponible temporalmente. Intenta nuevamente más tarde."
        ),
        UNCLASSIFIED_CODE: (
            "Ha ocurrido un error inesperado. Por favor, intenta nuevamente "
            "o contacta al soporte técnico."
        ),
    },
}


def _compile_patterns(strings: list[str]) -> list[re.Pattern[str]]:
    """Compile a list of regex strings into case-insensitive Pattern objects."""
    return [re.compile(p, re.IGNORECASE) for p in strings]


def _error_message(error: object) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error)


def _coerce_kind(value: object) -> ErrorKind | None:
    if isinstance(value, ErrorKind):
        return value
    if isinstance(value, str):
        try:
            return ErrorKind(value.lower())
        except ValueError:
            return None
    return None


class ErrorClassifier:
    """Classifies arbitrary failures into ClassifiedError values.

    Thread-safe: holds only compiled patterns and the locale, both read-only.

    Example:
        classifier = ErrorClassifier()
        error = classifier.classify(TimeoutError("read timeout"))
        assert error.retryable
    """

    def __init__(
        self,
        transient_patterns: list[str] | None = None,
        locale: str = DEFAULT_LOCALE,
    ) -> None:
        self._transient = _compile_patterns(
            transient_patterns if transient_patterns is not None else DEFAULT_TRANSIENT_PATTERNS
        )
        self.locale = locale if locale in MESSAGES else DEFAULT_LOCALE

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> ErrorClassifier:
        return cls(transient_patterns=list(config.transient_patterns), locale=config.locale)

    def classify(self, error: object) -> ClassifiedError:
        """Classify a failure into exactly one kind.

        Args:
            error: An exception, a ClassifiedError, or any object carrying a
                classification.

        Returns:
            The ClassifiedError for the failure.
        """
        if isinstance(error, ClassifiedError):
            return error

        carried = getattr(error, "error", None)
        if isinstance(carried, ClassifiedError):
            return carried

        cause = error if isinstance(error, BaseException) else None
        message = _error_message(error)

        kind = _coerce_kind(getattr(error, "kind", None))
        retryable = getattr(error, "retryable", None)
        if isinstance(retryable, bool):
            if kind is not None:
                return ClassifiedError.of_kind(kind, message, cause=cause, retryable=retryable)
            classified = self._unclassified(message, retryable, cause)
            _logger.debug(
                "errors.classified_by_flag",
                error_code=classified.code,
                retryable=retryable,
                error_type=type(error).__name__,
            )
            return classified

        classified = self._unclassified(message, self.is_transient_message(message), cause)
        _logger.debug(
            "errors.classified_by_message",
            error_code=classified.code,
            retryable=classified.retryable,
            error_type=type(error).__name__,
        )
        return classified

    @staticmethod
    def _unclassified(
        message: str,
        transient: bool,
        cause: BaseException | None,
    ) -> ClassifiedError:
        defaults = TRANSIENT_DEFAULTS if transient else KIND_DEFAULTS[ErrorKind.UNCLASSIFIED]
        return ClassifiedError(
            kind=ErrorKind.UNCLASSIFIED,
            code=defaults.code,
            message=message,
            retryable=defaults.retryable,
            status_code=defaults.status_code,
            cause=cause,
        )

    def is_transient_message(self, message: str) -> bool:
        return any(p.search(message) for p in self._transient)

    def is_retryable_error(self, error: object) -> bool:
        """Return the retryable flag of the failure's classification."""
        return self.classify(error).retryable

    def get_user_friendly_message(self, error: object, locale: str | None = None) -> str:
        """Return a stable, non-technical message for the failure.

        Args:
            error: Any failure accepted by classify().
            locale: Optional locale override; unknown locales fall back to "en".

        Returns:
            Localized message keyed by the classification's code.
        """
        classified = self.classify(error)
        catalog = MESSAGES.get(locale or self.locale, MESSAGES[DEFAULT_LOCALE])
        return catalog.get(classified.code, catalog[UNCLASSIFIED_CODE])


_default_classifier = ErrorClassifier()


def classify_error(error: object) -> ClassifiedError:
    """Classify with the default patterns."""
    return _default_classifier.classify(error)


def is_retryable_error(error: object) -> bool:
    """Return whether the failure is retryable under the default patterns."""
    return _default_classifier.is_retryable_error(error)


def get_user_friendly_message(error: object, locale: str | None = None) -> str:
    """Return the default-locale friendly message for a failure."""
    return _default_classifier.get_user_friendly_message(error, locale)


__all__ = [
    "DEFAULT_TRANSIENT_PATTERNS",
    "ErrorClassifier",
    "MESSAGES",
    "classify_error",
    "get_user_friendly_message",
    "is_retryable_error",
]
