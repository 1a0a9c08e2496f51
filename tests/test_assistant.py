# tests/test_assistant.py

import pytest
import requests
from pydantic import SecretStr

from lit_curation.services.assistant import OpenRouterAssistant, split_keywords
from lit_curation.services.base import AssistantServiceError


class DummyResponse:
    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json = json_data
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json


class DummyHttp:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _reply(content):
    return DummyResponse(json_data={"choices": [{"message": {"content": content}}]})


def _assistant(response, key="sk-test"):
    http = DummyHttp(response)
    assistant = OpenRouterAssistant(
        SecretStr(key) if key is not None else None,
        url="https://router.test/chat",
        model="test/model",
        session=http,
    )
    return assistant, http


def test_split_keywords():
    assert split_keywords(" CRISPR, off-target ,, Cas9 ") == ["CRISPR", "off-target", "Cas9"]


def test_generate_keywords_posts_prompt_and_splits_reply():
    assistant, http = _assistant(_reply("CRISPR, gene editing, Cas9"))

    keywords = assistant.generate_keywords("genome editing safety")

    assert keywords == ["CRISPR", "gene editing", "Cas9"]
    call = http.calls[0]
    assert call["url"] == "https://router.test/chat"
    assert call["json"]["model"] == "test/model"
    assert "genome editing safety" in call["json"]["messages"][0]["content"]
    assert call["headers"]["Authorization"] == "Bearer sk-test"


@pytest.mark.parametrize(
    "reply, expected",
    [("YES", True), ("yes.", True), ("NO", False), ("", False)],
)
def test_verify_claim_reads_yes_no(reply, expected):
    assistant, http = _assistant(_reply(reply))

    assert assistant.verify_claim("claim", "context") is expected
    prompt = http.calls[0]["json"]["messages"][0]["content"]
    assert "'claim'" in prompt
    assert "Text: context" in prompt


def test_missing_key_raises_without_request():
    assistant, http = _assistant(_reply("YES"), key=None)

    assert not assistant.configured
    with pytest.raises(AssistantServiceError):
        assistant.verify_claim("claim", "context")
    assert http.calls == []


@pytest.mark.parametrize(
    "response",
    [
        DummyResponse(status_code=402, text="insufficient credits"),
        DummyResponse(json_data={"choices": []}),
        requests.ConnectionError("down"),
    ],
)
def test_failures_raise_assistant_error(response):
    assistant, _ = _assistant(response)

    with pytest.raises(AssistantServiceError):
        assistant.generate_keywords("topic")
