"""Основная логика оркестрации."""
import asyncio
import logging
from typing import Optional

from .classifier import Branch, Classification, Secondary, classify_response
from .errors import EmptyInputError, SessionClosedError, classify_error
from .models import (
    AnswerResult,
    CodeResult,
    EmptyResult,
    EncodedFile,
    ImageResult,
    OrchestrationState,
    Phase,
    PrimaryResponse,
    RecommendationsResult,
    ResultView,
    VideoResult,
)
from .request_builder import build_request, has_input
from .services import GenerationClient

logger = logging.getLogger(__name__)


def synthesize_video(prompt: str) -> VideoResult:
    """Видео-бэкенда нет: просто упаковываем описание сцены."""
    return VideoResult(prompt=prompt)


def assemble_result(
    response: PrimaryResponse,
    classification: Classification,
    image_data: Optional[str] = None,
) -> ResultView:
    """Сборка ResultView: сначала медиа, потом текстовая ветка."""
    items = []

    if classification.secondary is Secondary.IMAGE:
        items.append(ImageResult(prompt=response.image_prompt, image_data=image_data))
    elif classification.secondary is Secondary.VIDEO:
        items.append(synthesize_video(response.video_prompt))

    if classification.branch is Branch.RECOMMENDATIONS:
        items.append(RecommendationsResult(items=list(response.recommendations)))
    elif classification.branch is Branch.ANSWER:
        items.append(AnswerResult(text=response.answer))
    elif classification.branch is Branch.CODE:
        items.append(CodeResult(
            language=response.code_block.language or "text",
            source=response.code_block.code,
        ))

    if not items:
        items.append(EmptyResult())

    return ResultView(items=items)


class Orchestrator:
    """
    Один запрос пользователя -> один ResultView.

    Idle -> Running -> Succeeded | Failed. Одновременно выполняется
    только один запуск: новый вызов generate() вытесняет предыдущий
    (его задача отменяется). Каждый запуск помечен токеном поколения,
    после каждого await токен сверяется, чтобы устаревший запуск
    не перезаписал чужое состояние.
    """

    def __init__(self, client: Optional[GenerationClient] = None):
        self.client = client or GenerationClient()
        self.state = OrchestrationState()
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def is_running(self) -> bool:
        return self.state.phase is Phase.RUNNING

    @property
    def closed(self) -> bool:
        return self._closed

    def _is_current(self, token: int) -> bool:
        return not self._closed and token == self._generation

    def _commit(self, token: int, state: OrchestrationState) -> bool:
        if not self._is_current(token):
            logger.info(f"Discarding stale state of run {token} (current run {self._generation})")
            return False
        self.state = state
        return True

    def _cancelled_state(self, token: int) -> OrchestrationState:
        return OrchestrationState(
            phase=Phase.FAILED,
            error=classify_error(asyncio.CancelledError()),
            run_id=token,
        )

    def _supersede(self) -> int:
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            logger.info(f"Run {self._generation - 1} superseded by run {self._generation}")
            task.cancel()
        return self._generation

    async def generate(
        self,
        user_text: Optional[str],
        file: Optional[EncodedFile] = None,
    ) -> OrchestrationState:
        """
        Выполнить запрос и вернуть итоговое состояние.

        Ошибки не пробрасываются: они классифицируются и лежат
        в state.error (phase = FAILED).
        """
        if self._closed:
            raise SessionClosedError("Orchestrator is closed")

        token = self._supersede()

        # Локальная валидация, в Running не переходим
        if not has_input(user_text, file):
            state = OrchestrationState(
                phase=Phase.FAILED,
                error=classify_error(EmptyInputError()),
                run_id=token,
            )
            self._commit(token, state)
            logger.info(f"Run {token}: empty input rejected")
            return state

        self._commit(token, OrchestrationState(phase=Phase.RUNNING, run_id=token))

        task = asyncio.create_task(self._run(token, user_text, file))
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled() and not self._is_current(token):
                return self._cancelled_state(token)
            # отменили самого вызывающего: не оставляем Running навсегда
            self._commit(token, self._cancelled_state(token))
            raise
        finally:
            if self._task is task:
                self._task = None

    async def _run(
        self,
        token: int,
        user_text: Optional[str],
        file: Optional[EncodedFile],
    ) -> OrchestrationState:
        # === ШАГ 1: основной вызов ===
        try:
            request = build_request(user_text, file)
            response = await self.client.generate_structured(request)
        except Exception as e:
            logger.error(f"Run {token}: primary generation failed: {e}")
            state = OrchestrationState(phase=Phase.FAILED, error=classify_error(e), run_id=token)
            self._commit(token, state)
            return state

        if not self._is_current(token):
            return self._cancelled_state(token)

        # === ШАГ 2: классификация ===
        classification = classify_response(response)
        logger.info(
            f"Run {token}: branch={classification.branch.value}, "
            f"secondary={classification.secondary.value if classification.secondary else None}"
        )

        # === ШАГ 3: картинка (ошибка не роняет запуск) ===
        image_data = None
        if classification.needs_secondary_call:
            try:
                image_data = await self.client.generate_image(response.image_prompt)
            except Exception as e:
                logger.warning(f"Run {token}: image generation failed, showing prompt only: {e}")

            if not self._is_current(token):
                return self._cancelled_state(token)

        # === ШАГ 4: итог ===
        state = OrchestrationState(
            phase=Phase.SUCCEEDED,
            result=assemble_result(response, classification, image_data),
            run_id=token,
        )
        self._commit(token, state)
        return state

    async def close(self):
        """Остановка сессии: активный запуск отменяется, его ответ уже ничего не изменит."""
        if self._closed:
            return

        self._closed = True
        self._generation += 1
        task, self._task = self._task, None

        if task is not None and not task.done():
            logger.info("Cancelling in-flight run on close")
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        self.state = OrchestrationState()
