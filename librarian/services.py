"""Клиент Gemini: структурированный ответ и генерация картинок."""
import json
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .config import config
from .errors import (
    AuthError,
    EmptyPromptError,
    HttpError,
    MalformedResponseError,
    TransportError,
)
from .models import GenerationRequest, PrimaryResponse
from .request_builder import PROMPT_VERSION, build_payload

logger = logging.getLogger(__name__)

INVALID_KEY_MARKER = "API key not valid"


def _error_detail(response: httpx.Response) -> str:
    """Достаём error.message из тела ошибки Google API (если есть)."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]

    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", ""))
    return ""


class GenerationClient:
    """
    Обёртка над Gemini REST API.

    Одна попытка на вызов, без ретраев. Сетевые и HTTP-ошибки
    нормализуются в исключения из errors.py.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        text_model: Optional[str] = None,
        image_model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.base_url = (base_url or config.GEMINI_API_URL).rstrip("/")
        self.text_model = text_model or config.TEXT_MODEL
        self.image_model = image_model or config.IMAGE_MODEL
        # None: таймаут httpx отключён, ждём транспорт
        self.timeout = timeout if timeout is not None else config.TIMEOUT_GENERATION
        self.transport = transport

    @property
    def text_url(self) -> str:
        return f"{self.base_url}/models/{self.text_model}:generateContent"

    @property
    def image_url(self) -> str:
        return f"{self.base_url}/models/{self.image_model}:predict"

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise AuthError("GEMINI_API_KEY is not configured", "Set GEMINI_API_KEY in the environment or .env")

        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.TransportError as e:
            logger.error(f"Transport error calling {url}: {e!r}")
            raise TransportError(f"Network error: {e}") from e

        logger.info(f"Gemini response status: {response.status_code}")

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.error(f"Gemini error response {response.status_code}: {detail}")

            if response.status_code == 401 or INVALID_KEY_MARKER in detail:
                raise AuthError("API key not valid", "Check GEMINI_API_KEY")
            raise HttpError(response.status_code, detail)

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponseError("Response body is not JSON") from e

        if not isinstance(body, dict):
            raise MalformedResponseError("Response body is not a JSON object")

        return body

    async def generate_structured(self, request: GenerationRequest) -> PrimaryResponse:
        """
        Основной вызов: generateContent со схемой ответа.

        Текст ответа лежит в candidates[0].content.parts[0].text
        и сам является JSON-строкой.
        """
        logger.info(
            f"Structured generation: prompt v{PROMPT_VERSION}, "
            f"text={len(request.user_text or '')} chars, "
            f"file={request.file.name if request.file else None}"
        )

        body = await self._post(self.text_url, build_payload(request))

        try:
            text = body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError("Invalid response from text AI.") from e

        if not text:
            raise MalformedResponseError("Invalid response from text AI.")

        try:
            return PrimaryResponse.model_validate(json.loads(text))
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse model output: {text[:200]}")
            raise MalformedResponseError("Model output is not valid JSON") from e
        except ValidationError as e:
            raise MalformedResponseError(f"Model output does not match schema: {e}") from e

    async def generate_image(self, prompt: str) -> str:
        """Вторичный вызов: картинка по промпту. Возвращает base64."""
        if not prompt or not prompt.strip():
            raise EmptyPromptError()

        logger.info(f"Generating image, prompt length: {len(prompt)}")

        body = await self._post(self.image_url, {
            "instances": [{"prompt": prompt}],
            "parameters": {"sampleCount": 1},
        })

        try:
            image_data = body["predictions"][0]["bytesBase64Encoded"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError("Image response has no predictions") from e

        if not image_data:
            raise MalformedResponseError("Image response is empty")

        logger.info(f"Image generated: {len(image_data)} base64 chars")
        return image_data
