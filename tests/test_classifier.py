"""Tests for response classification precedence."""
import pytest

from librarian.classifier import Branch, Secondary, classify_response
from librarian.models import PrimaryResponse

RECS = [{"title": "SICP", "type": "book", "reason": "classic"}]
CODE = {"language": "python", "code": "print(1)"}


def classify(**fields):
    return classify_response(PrimaryResponse.model_validate(fields))


def test_answer_only():
    result = classify(answer="4")
    assert result.branch is Branch.ANSWER
    assert result.secondary is None
    assert not result.needs_secondary_call


@pytest.mark.parametrize("fields, expected", [
    ({"recommendations": RECS, "answer": "a", "codeBlock": CODE}, Branch.RECOMMENDATIONS),
    ({"answer": "a", "codeBlock": CODE}, Branch.ANSWER),
    ({"codeBlock": CODE}, Branch.CODE),
    ({"imagePrompt": "a cat"}, Branch.IMAGE),
    ({"videoPrompt": "a sunset timelapse"}, Branch.VIDEO),
    ({}, Branch.EMPTY),
])
def test_textual_precedence(fields, expected):
    assert classify(**fields).branch is expected


def test_answer_and_image_prompt_are_orthogonal():
    result = classify(answer="Here is a cat", imagePrompt="a cat")
    assert result.branch is Branch.ANSWER
    assert result.secondary is Secondary.IMAGE
    assert result.needs_secondary_call


def test_image_prompt_wins_over_video_prompt():
    result = classify(imagePrompt="a cat", videoPrompt="a cat walking")
    assert result.branch is Branch.IMAGE
    assert result.secondary is Secondary.IMAGE


def test_video_is_scheduled_without_network_call():
    result = classify(codeBlock=CODE, videoPrompt="a cat walking")
    assert result.branch is Branch.CODE
    assert result.secondary is Secondary.VIDEO
    assert not result.needs_secondary_call


@pytest.mark.parametrize("fields", [
    {"answer": "   "},
    {"recommendations": []},
    {"codeBlock": {"language": "python", "code": ""}},
    {"imagePrompt": ""},
    {"videoPrompt": None},
])
def test_blank_fields_count_as_absent(fields):
    result = classify(**fields)
    assert result.branch is Branch.EMPTY
    assert result.secondary is None
