"""Кодирование пользовательских файлов в inlineData (base64)."""
import asyncio
import base64
import logging
import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Union

from .config import config
from .errors import FileReadError
from .models import EncodedFile

if TYPE_CHECKING:
    from fastapi import UploadFile

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def is_supported_mime_type(mime_type: str, allowed: Optional[Iterable[str]] = None) -> bool:
    """Проверка MIME по списку, маски вида "image/*" поддерживаются."""
    allowed = config.ALLOWED_MIME_TYPES if allowed is None else allowed
    mime_type = (mime_type or "").lower()

    for pattern in allowed:
        if pattern.endswith("/*"):
            if mime_type.startswith(pattern[:-1]):
                return True
        elif mime_type == pattern:
            return True
    return False


async def _read_source(source) -> bytes:
    if isinstance(source, (str, Path)):
        return await asyncio.to_thread(Path(source).read_bytes)

    # UploadFile и подобные объекты с async read()
    await source.seek(0)
    return await source.read()


async def encode_file(
    source: Union[str, Path, "UploadFile"],
    name: Optional[str] = None,
    mime_type: Optional[str] = None,
) -> EncodedFile:
    """
    Прочитать файл целиком и упаковать в EncodedFile.

    Либо весь файл, либо FileReadError: частичных результатов нет,
    повторных попыток тоже (пользователь выбирает файл заново).
    """
    if isinstance(source, (str, Path)):
        name = name or Path(source).name
    else:
        name = name or getattr(source, "filename", None) or "upload"
        mime_type = mime_type or getattr(source, "content_type", None)

    try:
        content = await _read_source(source)
    except OSError as e:
        logger.error(f"Failed to read file {name}: {e}")
        raise FileReadError(f"Could not read file {name}: {e}") from e

    if not mime_type:
        mime_type = mimetypes.guess_type(name)[0] or DEFAULT_MIME_TYPE

    logger.info(f"Encoded {name} ({mime_type}, {len(content)} bytes)")

    return EncodedFile(
        data=base64.b64encode(content).decode("ascii"),
        mime_type=mime_type,
        name=name,
        size=len(content),
    )
