"""Сборка запроса к Gemini: системный промпт + схема ответа."""
from typing import Any, Dict, List, Optional

from .models import EncodedFile, GenerationRequest

PROMPT_VERSION = "1"

SYSTEM_PROMPT = """You are a helpful AI assistant. Your goal is to provide accurate and relevant information to the user.

You can respond in several ways:
- If the user asks a question, provide a clear and concise answer.
- If the user asks for code, you MUST provide a code block in the requested language.
- If the user's query is best answered with a list of resources (e.g., books, articles, tutorials), you can provide recommendations.
- You can also generate prompts for images and videos if the user's query suggests it.

Please adhere to the following rules:
- When asked for code, prioritize generating the code over providing recommendations.
- Use the codeBlock field in the response for code.
- Use the recommendations field for books, articles, etc.
- Use the answer field for plain text answers.
- Use imagePrompt or videoPrompt for multimedia generation prompts."""

# Контракт с бэкендом: любое изменение ломает протокол
RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "recommendations": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING"},
                    "type": {"type": "STRING"},
                    "reason": {"type": "STRING"},
                },
            },
        },
        "answer": {"type": "STRING"},
        "imagePrompt": {"type": "STRING"},
        "videoPrompt": {"type": "STRING"},
        "codeBlock": {
            "type": "OBJECT",
            "properties": {
                "language": {"type": "STRING"},
                "code": {"type": "STRING"},
            },
        },
    },
}


def has_input(user_text: Optional[str], file: Optional[EncodedFile]) -> bool:
    return bool((user_text or "").strip()) or file is not None


def build_request(user_text: Optional[str], file: Optional[EncodedFile]) -> GenerationRequest:
    """Новый запрос на каждое действие пользователя. Пустой ввод отсекает оркестратор."""
    text = (user_text or "").strip() or None
    return GenerationRequest(user_text=text, file=file)


def build_payload(request: GenerationRequest) -> Dict[str, Any]:
    """Тело запроса generateContent."""
    parts: List[Dict[str, Any]] = []

    if request.user_text:
        parts.append({"text": request.user_text})

    if request.file is not None:
        parts.append({
            "inlineData": {
                "mimeType": request.file.mime_type,
                "data": request.file.data,
            }
        })

    return {
        "contents": [{"parts": parts}],
        "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }
