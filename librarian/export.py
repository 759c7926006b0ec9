"""Выгрузка результатов в файлы (кнопки Download)."""
import base64
import binascii
import logging
from typing import List, Optional

from pydantic import BaseModel

from .models import Recommendation

logger = logging.getLogger(__name__)

LANGUAGE_EXTENSIONS = {
    "python": "py",
    "javascript": "js",
    "typescript": "ts",
    "html": "html",
    "css": "css",
    "java": "java",
    "csharp": "cs",
    "cpp": "cpp",
    "ruby": "rb",
    "go": "go",
    "rust": "rs",
    "shell": "sh",
    "json": "json",
    "sql": "sql",
}

TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"


class ExportedFile(BaseModel):
    filename: str
    content: bytes
    media_type: str = TEXT_MEDIA_TYPE


def language_extension(language: Optional[str]) -> str:
    return LANGUAGE_EXTENSIONS.get((language or "").lower(), "txt")


def format_recommendations(items: List[Recommendation]) -> str:
    return "\n\n---\n\n".join(
        f"Title: {rec.title}\nType: {rec.type}\nReason: {rec.reason}"
        for rec in items
    )


def _text(filename: str, text: str) -> ExportedFile:
    return ExportedFile(filename=filename, content=text.encode("utf-8"))


def export_item(item) -> Optional[ExportedFile]:
    """Файл для скачивания по элементу ResultView; None, если выгружать нечего."""
    if item.kind == "answer":
        return _text("answer.txt", item.text)

    if item.kind == "recommendations":
        return _text("recommendations.txt", format_recommendations(item.items))

    if item.kind == "code":
        return _text(f"code.{language_extension(item.language)}", item.source)

    if item.kind == "video":
        return _text("video_prompt.txt", item.prompt)

    if item.kind == "image" and item.image_data:
        try:
            content = base64.b64decode(item.image_data, validate=True)
        except binascii.Error as e:
            logger.error(f"Image data is not valid base64: {e}")
            return None
        return ExportedFile(filename="ai-generated-image.png", content=content, media_type="image/png")

    return None
