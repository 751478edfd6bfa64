"""Tests for Gemini response parsing and retry classification."""

import pytest

from playlist_digest.exceptions import SummarizerError
from playlist_digest.gemini import is_retryable_error, parse_summary, user_prompt


def test_parse_summary():
    text = """{
        "overview": "About things",
        "sections": [
            {"timestamp": "00:01:00", "title": "Intro", "content": "Hello", "screenshotTimestamp": "00:01:05"},
            {"timestamp": "00:05:00", "title": "Main", "summary": "Body"}
        ],
        "keyPoints": ["one", "two"]
    }"""

    summary = parse_summary(text)

    assert summary.overview == "About things"
    assert summary.timestamps == ["00:01:00", "00:05:00"]
    assert summary.sections[0].screenshot_timestamp == "00:01:05"
    assert summary.sections[1].content == "Body"
    assert summary.key_points == ["one", "two"]


def test_parse_summary_strips_code_fence():
    summary = parse_summary('```json\n{"overview": "x", "sections": []}\n```')
    assert summary.overview == "x"
    assert summary.sections == []


def test_sections_without_timestamp_are_skipped():
    summary = parse_summary('{"sections": [{"title": "no time"}, {"timestamp": "01:00"}]}')
    assert summary.timestamps == ["01:00"]


def test_invalid_json_raises():
    with pytest.raises(SummarizerError):
        parse_summary("this is not json")


def test_non_object_raises():
    with pytest.raises(SummarizerError):
        parse_summary("[1, 2, 3]")


def test_is_retryable_error():
    assert is_retryable_error(Exception("429 Resource exhausted"))
    assert is_retryable_error(TimeoutError("request timed out"))
    assert not is_retryable_error(ValueError("invalid argument"))


def test_user_prompt_locale():
    assert "English" in user_prompt("en")
    assert "한국어" in user_prompt("ko")
    assert "English" in user_prompt("fr")
