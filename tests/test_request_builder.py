"""Tests for request building and the Gemini payload."""
import pytest
from pydantic import ValidationError

from librarian.models import EncodedFile, GenerationRequest
from librarian.request_builder import (
    RESPONSE_SCHEMA,
    SYSTEM_PROMPT,
    build_payload,
    build_request,
    has_input,
)

PDF = EncodedFile(data="JVBERi0=", mime_type="application/pdf", name="doc.pdf", size=5)


class TestBuildRequest:

    def test_text_only(self):
        request = build_request("  What is 2+2?  ", None)
        assert request.user_text == "What is 2+2?"
        assert request.file is None

    def test_blank_text_with_file_drops_text(self):
        request = build_request("   ", PDF)
        assert request.user_text is None
        assert request.file == PDF

    def test_each_call_builds_new_request(self):
        assert build_request("hi", None) is not build_request("hi", None)

    def test_request_requires_text_or_file(self):
        with pytest.raises(ValidationError):
            GenerationRequest()

    def test_has_input(self):
        assert has_input("hi", None)
        assert has_input(None, PDF)
        assert not has_input("", None)
        assert not has_input("  \n", None)
        assert not has_input(None, None)


class TestBuildPayload:

    def test_text_and_file_parts(self):
        payload = build_payload(build_request("Summarize", PDF))

        parts = payload["contents"][0]["parts"]
        assert parts[0] == {"text": "Summarize"}
        assert parts[1] == {"inlineData": {"mimeType": "application/pdf", "data": "JVBERi0="}}

    def test_file_only_has_single_part(self):
        payload = build_payload(build_request("", PDF))
        assert len(payload["contents"][0]["parts"]) == 1
        assert "inlineData" in payload["contents"][0]["parts"][0]

    def test_schema_and_system_instruction(self):
        payload = build_payload(build_request("hi", None))

        assert payload["systemInstruction"] == {"parts": [{"text": SYSTEM_PROMPT}]}
        config = payload["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"] is RESPONSE_SCHEMA
        assert set(RESPONSE_SCHEMA["properties"]) == {
            "recommendations", "answer", "imagePrompt", "videoPrompt", "codeBlock",
        }
