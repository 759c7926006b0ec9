"""Librarian API.

Эндпоинты:
- GET    /health                        — простая проверка
- POST   /api/attachment                — прикрепить файл к сессии (кодируется в base64)
- DELETE /api/attachment                — убрать прикреплённый файл
- POST   /api/generate                  — текст + прикреплённый файл -> OrchestrationState
- GET    /api/result/{kind}/download    — скачать элемент последнего результата
- DELETE /api/session                   — завершить сессию (отменяет активный запрос)

Идентификация пользователя: заголовок user-id (аутентификация вне сервиса).
"""
import logging
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, UploadFile
from fastapi.responses import Response

from . import __version__
from .config import config
from .encoder import encode_file, is_supported_mime_type
from .errors import EmptyInputError, FileReadError, classify_error
from .export import export_item
from .models import AttachmentInfo, EncodedFile, OrchestrationState, Phase
from .orchestrator import Orchestrator
from .request_builder import has_input
from .services import GenerationClient

# Настройка логирования
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


class Session:
    """Сессия пользователя: свой оркестратор и текущее вложение."""

    def __init__(self, orchestrator: Orchestrator):
        self.orchestrator = orchestrator
        self.attachment: Optional[EncodedFile] = None
        self.last_used = time.monotonic()

    def touch(self):
        self.last_used = time.monotonic()


class SessionStore:
    """
    Сессии по user_id (в памяти процесса).

    Неактивные дольше ttl сессии удаляются при следующем get(),
    сверх max_sessions вытесняется самая давно использованная.
    Сессии с активным запросом не вытесняются.
    """

    def __init__(
        self,
        client_factory: Callable[[], GenerationClient] = GenerationClient,
        ttl: Optional[float] = None,
        max_sessions: Optional[int] = None,
    ):
        self.client_factory = client_factory
        self.ttl = config.SESSION_TTL_SECONDS if ttl is None else ttl
        self.max_sessions = config.MAX_SESSIONS if max_sessions is None else max_sessions
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    async def get(self, user_id: str) -> Session:
        session = self._sessions.get(user_id)
        if session is None:
            await self._evict()
            session = Session(Orchestrator(self.client_factory()))
            self._sessions[user_id] = session
            logger.info(f"Session created for {user_id}")
        else:
            self._sessions.move_to_end(user_id)
        session.touch()
        return session

    def find(self, user_id: str) -> Optional[Session]:
        return self._sessions.get(user_id)

    async def _evict(self):
        now = time.monotonic()
        idle = [
            user_id for user_id, session in self._sessions.items()
            if not session.orchestrator.is_running
        ]

        expired = [user_id for user_id in idle if now - self._sessions[user_id].last_used > self.ttl]
        for user_id in expired:
            logger.info(f"Session expired for {user_id}")
            await self.close(user_id)

        # место под новую сессию: самые старые неактивные
        overflow = len(self._sessions) - self.max_sessions + 1
        for user_id in [u for u in idle if u not in expired][:max(overflow, 0)]:
            logger.info(f"Session evicted for {user_id}")
            await self.close(user_id)

    async def close(self, user_id: str) -> bool:
        session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        await session.orchestrator.close()
        logger.info(f"Session closed for {user_id}")
        return True

    async def close_all(self):
        for user_id in list(self._sessions):
            await self.close(user_id)


sessions = SessionStore()


def get_sessions() -> SessionStore:
    return sessions


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle: startup и shutdown."""
    logger.info("Librarian запущен")
    logger.info(f"Text model: {config.TEXT_MODEL}, image model: {config.IMAGE_MODEL}")
    if not config.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY не установлен, запросы будут отклонены")
    yield
    await sessions.close_all()
    logger.info("Librarian остановлен")


app = FastAPI(
    title="Personal AI Librarian",
    description="Ответы, рекомендации, код и картинки от Gemini",
    version=__version__,
    lifespan=lifespan
)


@app.get("/health")
async def health():
    """Health check."""
    return {
        "status": "ok",
        "service": config.SERVICE_NAME,
        "version": __version__,
        "api_key": "configured" if config.GEMINI_API_KEY else "not_configured",
    }


@app.post("/api/attachment", response_model=AttachmentInfo)
async def upload_attachment(
    file: UploadFile = File(...),
    user_id: str = Header(..., description="ID пользователя"),
    store: SessionStore = Depends(get_sessions),
):
    """
    Прикрепить файл к следующему запросу.

    - Новый файл заменяет предыдущий
    - Допустимые типы: ALLOWED_MIME_TYPES, размер до MAX_FILE_SIZE_MB
    """
    limit = config.MAX_FILE_SIZE_MB * 1024 * 1024
    # размер из multipart известен до чтения: не кодируем заведомо большой файл
    if file.size is not None and file.size > limit:
        raise HTTPException(413, f"Файл больше {config.MAX_FILE_SIZE_MB} MB")

    try:
        encoded = await encode_file(file)
    except FileReadError as e:
        raise HTTPException(422, classify_error(e).message)

    if not is_supported_mime_type(encoded.mime_type):
        raise HTTPException(415, f"Неподдерживаемый тип файла: {encoded.mime_type}")

    if encoded.size > limit:
        raise HTTPException(413, f"Файл больше {config.MAX_FILE_SIZE_MB} MB")

    session = await store.get(user_id)
    session.attachment = encoded
    logger.info(f"Attachment for {user_id}: {encoded.name} ({encoded.size_label})")

    return AttachmentInfo(
        name=encoded.name,
        mime_type=encoded.mime_type,
        size=encoded.size,
        size_label=encoded.size_label,
    )


@app.delete("/api/attachment")
async def clear_attachment(
    user_id: str = Header(..., description="ID пользователя"),
    store: SessionStore = Depends(get_sessions),
):
    session = store.find(user_id)
    if session is not None:
        session.attachment = None
    return {"status": "cleared"}


@app.post("/api/generate", response_model=OrchestrationState)
async def generate(
    text: str = Form("", description="Текст запроса"),
    user_id: str = Header(..., description="ID пользователя"),
    store: SessionStore = Depends(get_sessions),
):
    """
    Один запрос к Gemini.

    Ошибки возвращаются в поле error (phase = failed), а не HTTP-статусом:
    это ответ для показа пользователю.
    """
    session = store.find(user_id)
    if session is None and not has_input(text, None):
        # без сессии нечего отменять: отвечаем, не заводя оркестратор
        logger.info(f"Empty generate request without session: user_id={user_id}")
        return OrchestrationState(phase=Phase.FAILED, error=classify_error(EmptyInputError()))

    session = await store.get(user_id)
    logger.info(
        f"Generate request: user_id={user_id}, text={len(text)} chars, "
        f"file={session.attachment.name if session.attachment else None}"
    )
    return await session.orchestrator.generate(text, session.attachment)


@app.get("/api/result/{kind}/download")
async def download_result(
    kind: str,
    user_id: str = Header(..., description="ID пользователя"),
    store: SessionStore = Depends(get_sessions),
):
    """Скачать answer / recommendations / code / video / image из последнего результата."""
    session = store.find(user_id)
    result = session.orchestrator.state.result if session else None
    if result is None:
        raise HTTPException(404, "Нет результата")

    item = result.get(kind)
    exported = export_item(item) if item is not None else None
    if exported is None:
        raise HTTPException(404, f"Нечего скачивать: {kind}")

    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


@app.delete("/api/session")
async def close_session(
    user_id: str = Header(..., description="ID пользователя"),
    store: SessionStore = Depends(get_sessions),
):
    closed = await store.close(user_id)
    return {"status": "closed" if closed else "not_found"}


def run():
    """Запуск сервера."""
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
