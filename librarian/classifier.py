"""Классификация ответа Gemini по наличию полей."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .models import PrimaryResponse


class Branch(str, Enum):
    RECOMMENDATIONS = "recommendations"
    ANSWER = "answer"
    CODE = "code"
    IMAGE = "image"
    VIDEO = "video"
    EMPTY = "empty"


class Secondary(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    branch: Branch
    secondary: Optional[Secondary] = None

    @property
    def needs_secondary_call(self) -> bool:
        # видео синтезируется локально, сетевой вызов только для картинки
        return self.secondary is Secondary.IMAGE


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def has_recommendations(response: PrimaryResponse) -> bool:
    return bool(response.recommendations)


def has_answer(response: PrimaryResponse) -> bool:
    return _has_text(response.answer)


def has_code(response: PrimaryResponse) -> bool:
    return response.code_block is not None and _has_text(response.code_block.code)


def has_image_prompt(response: PrimaryResponse) -> bool:
    return _has_text(response.image_prompt)


def has_video_prompt(response: PrimaryResponse) -> bool:
    return _has_text(response.video_prompt)


def classify_response(response: PrimaryResponse) -> Classification:
    """
    Решение, что показывать.

    Текстовая ветка, первое совпадение: recommendations > answer > codeBlock.
    Независимо от неё: imagePrompt > videoPrompt (медиа).
    Ответ может одновременно нести answer и imagePrompt: тогда будут
    и текст, и картинка.
    """
    secondary = None
    if has_image_prompt(response):
        secondary = Secondary.IMAGE
    elif has_video_prompt(response):
        secondary = Secondary.VIDEO

    if has_recommendations(response):
        branch = Branch.RECOMMENDATIONS
    elif has_answer(response):
        branch = Branch.ANSWER
    elif has_code(response):
        branch = Branch.CODE
    elif secondary is Secondary.IMAGE:
        branch = Branch.IMAGE
    elif secondary is Secondary.VIDEO:
        branch = Branch.VIDEO
    else:
        branch = Branch.EMPTY

    return Classification(branch=branch, secondary=secondary)
