"""Ошибки Librarian и их перевод в понятные пользователю сообщения."""
import asyncio
from typing import Optional

from .models import ClassifiedError, ErrorKind


class LibrarianError(Exception):
    """Базовая ошибка Librarian."""

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class EmptyInputError(LibrarianError):
    """Ни текста, ни файла: в сеть не ходим."""

    def __init__(self) -> None:
        super().__init__("Nothing submitted: both text and file are empty")


class FileReadError(LibrarianError):
    """Не удалось прочитать выбранный файл."""


class SessionClosedError(LibrarianError):
    """Оркестратор уже остановлен."""


# === Ошибки обращения к Gemini ===

class GenerationError(LibrarianError):
    """Базовая ошибка вызова генерации."""


class TransportError(GenerationError):
    """Сеть недоступна, DNS, таймаут."""


class HttpError(GenerationError):
    """Бэкенд ответил не-2xx."""

    def __init__(self, status: int, detail: str = "") -> None:
        self.status = status
        self.detail = detail
        super().__init__(f"API call failed: {status}")


class AuthError(GenerationError):
    """API-ключ не задан или невалиден."""


class MalformedResponseError(GenerationError):
    """Тело ответа не соответствует контракту."""


class EmptyPromptError(GenerationError):
    """Пустой промпт для генерации картинки."""

    def __init__(self) -> None:
        super().__init__("Image generation prompt is empty or invalid.")


MESSAGES = {
    ErrorKind.EMPTY_INPUT: "Please enter a question or upload a file.",
    ErrorKind.AUTH: (
        "Your Google AI API Key is not valid. "
        "Please check the GEMINI_API_KEY setting of the service."
    ),
    ErrorKind.FORBIDDEN: (
        "API call failed (Error 403): This usually means there is a problem with the API key. "
        "Please ensure your key is correct, active, and enabled for the Gemini & Imagen APIs "
        "in your Google Cloud project (check API enablement and billing)."
    ),
    ErrorKind.TRANSPORT: "A network error occurred. Please check your internet connection and try again.",
    ErrorKind.MALFORMED_RESPONSE: "Unexpected response from the AI service. Please try again later.",
    ErrorKind.FILE_READ: "Could not read the selected file. Please select it again.",
    ErrorKind.CANCELLED: "The request was superseded by a newer one.",
    ErrorKind.UNKNOWN: "An error occurred. Please check the logs and try again.",
}


def _http_message(status: int) -> str:
    return f"API call failed (Error {status}). Please try again later."


def classify_error(exc: BaseException) -> ClassifiedError:
    """
    Перевод исключения в ClassifiedError.

    Чистая функция: без сети и побочных эффектов.
    """
    if isinstance(exc, EmptyInputError):
        kind = ErrorKind.EMPTY_INPUT
    elif isinstance(exc, AuthError):
        kind = ErrorKind.AUTH
    elif isinstance(exc, HttpError):
        if exc.status == 403:
            return ClassifiedError(kind=ErrorKind.FORBIDDEN, message=MESSAGES[ErrorKind.FORBIDDEN], status=403)
        return ClassifiedError(kind=ErrorKind.HTTP, message=_http_message(exc.status), status=exc.status)
    elif isinstance(exc, TransportError):
        kind = ErrorKind.TRANSPORT
    elif isinstance(exc, MalformedResponseError):
        kind = ErrorKind.MALFORMED_RESPONSE
    elif isinstance(exc, FileReadError):
        kind = ErrorKind.FILE_READ
    elif isinstance(exc, asyncio.CancelledError):
        kind = ErrorKind.CANCELLED
    else:
        kind = ErrorKind.UNKNOWN

    return ClassifiedError(kind=kind, message=MESSAGES[kind])
