"""Pydantic модели для Librarian."""
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EncodedFile(BaseModel):
    """Файл пользователя, закодированный в base64 для inlineData."""
    model_config = ConfigDict(frozen=True)

    data: str
    mime_type: str
    name: str
    size: int

    @property
    def size_label(self) -> str:
        return f"{self.size / 1024:.1f} KB"


class AttachmentInfo(BaseModel):
    """Метаданные прикреплённого файла (без содержимого)."""
    name: str
    mime_type: str
    size: int
    size_label: str


class GenerationRequest(BaseModel):
    """Запрос на генерацию: текст и/или файл."""
    model_config = ConfigDict(frozen=True)

    user_text: Optional[str] = None
    file: Optional[EncodedFile] = None

    @model_validator(mode="after")
    def require_input(self):
        if not self.user_text and self.file is None:
            raise ValueError("Нужен текст запроса или файл")
        return self


# === Ответ модели (wire-формат, camelCase) ===

class Recommendation(BaseModel):
    """Одна рекомендация (книга, статья, туториал)."""
    title: str = ""
    type: str = ""
    reason: str = ""


class CodeBlock(BaseModel):
    language: str = ""
    code: str = ""


class PrimaryResponse(BaseModel):
    """
    Декодированный JSON от Gemini.

    Все поля опциональны: тип ответа определяется наличием полей,
    а не тегом (см. classifier.classify_response).
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    answer: Optional[str] = None
    recommendations: Optional[List[Recommendation]] = None
    code_block: Optional[CodeBlock] = Field(default=None, alias="codeBlock")
    image_prompt: Optional[str] = Field(default=None, alias="imagePrompt")
    video_prompt: Optional[str] = Field(default=None, alias="videoPrompt")


# === Итоговый результат для клиента ===

class AnswerResult(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["answer"] = "answer"
    text: str


class RecommendationsResult(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["recommendations"] = "recommendations"
    items: List[Recommendation]


class CodeResult(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["code"] = "code"
    language: str
    source: str


class ImageResult(BaseModel):
    """Картинка; image_data = None, если генерация не удалась (показываем только промпт)."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["image"] = "image"
    prompt: str
    image_data: Optional[str] = None


class VideoResult(BaseModel):
    """Концепт видео: бэкенда для видео нет, только описание сцены."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["video"] = "video"
    prompt: str


class EmptyResult(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["empty"] = "empty"
    message: str = "Could not determine response type."


ResultItem = Annotated[
    Union[AnswerResult, RecommendationsResult, CodeResult, ImageResult, VideoResult, EmptyResult],
    Field(discriminator="kind"),
]


class ResultView(BaseModel):
    """
    Финальный результат одного запуска.

    Содержит не больше одного медиа-элемента (image/video) и не больше
    одного текстового (answer/recommendations/code). Медиа идёт первым.
    """
    model_config = ConfigDict(frozen=True)

    items: List[ResultItem]

    @property
    def kinds(self) -> List[str]:
        return [item.kind for item in self.items]

    def get(self, kind: str) -> Optional[BaseModel]:
        for item in self.items:
            if item.kind == kind:
                return item
        return None


# === Состояние оркестратора ===

class Phase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ErrorKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    AUTH = "auth"
    FORBIDDEN = "forbidden"
    HTTP = "http"
    TRANSPORT = "transport"
    MALFORMED_RESPONSE = "malformed_response"
    FILE_READ = "file_read"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class ClassifiedError(BaseModel):
    """Ошибка в виде, пригодном для показа пользователю."""
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    status: Optional[int] = None


class OrchestrationState(BaseModel):
    """Снимок состояния оркестратора. Не мутируется, только заменяется целиком."""
    model_config = ConfigDict(frozen=True)

    phase: Phase = Phase.IDLE
    result: Optional[ResultView] = None
    error: Optional[ClassifiedError] = None
    run_id: int = 0
