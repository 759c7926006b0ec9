"""Общие фикстуры: подменный Gemini через httpx.MockTransport."""
import json
from typing import Any, Dict, List

import httpx
import pytest

from librarian.services import GenerationClient

BASE_URL = "https://gemini.test/v1beta"


def gemini_body(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Ответ generateContent, в котором JSON модели лежит строкой."""
    return {"candidates": [{"content": {"parts": [{"text": json.dumps(payload)}]}}]}


def text_response(payload: Dict[str, Any], status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=gemini_body(payload))


def image_response(data: str = "aW1hZ2U=") -> httpx.Response:
    return httpx.Response(200, json={"predictions": [{"bytesBase64Encoded": data}]})


class FakeGemini:
    """
    Очереди ответов для текстового и image-эндпоинтов.

    Элемент очереди: httpx.Response, исключение (будет брошено)
    или callable(request) -> Response / coroutine. Последний элемент
    очереди переиспользуется.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.text_queue: List[Any] = []
        self.image_queue: List[Any] = []

    def handler(self, request: httpx.Request):
        self.requests.append(request)
        queue = self.text_queue if request.url.path.endswith(":generateContent") else self.image_queue
        if not queue:
            return httpx.Response(500, json={"error": {"message": "no fake response queued"}})

        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        # свежая копия: один и тот же Response может понадобиться несколько раз
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    def reply(self, payload: Dict[str, Any]):
        self.text_queue.append(text_response(payload))

    def reply_image(self, data: str = "aW1hZ2U="):
        self.image_queue.append(image_response(data))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def text_calls(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(":generateContent")]

    @property
    def image_calls(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(":predict")]


@pytest.fixture
def gemini():
    return FakeGemini()


@pytest.fixture
def client(gemini):
    return GenerationClient(
        api_key="test-key",
        base_url=BASE_URL,
        text_model="gemini-test",
        image_model="imagen-test",
        transport=gemini.transport,
    )
