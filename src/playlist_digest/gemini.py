"""Gemini summarizer.

Sends the YouTube URL as file data and asks for a JSON summary with
timestamped sections. Transient API errors are retried with exponential
backoff; everything else surfaces as SummarizerError.
"""

import json
import logging
import time
from typing import Any, Dict

import google.generativeai as genai

from .exceptions import SummarizerError
from .jobs.backends import Summarizer
from .jobs.models import SummarySection, VideoSummary

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a professional content summarizer creating documentation for a wiki.
Analyze the YouTube video and produce a COMPREHENSIVE summary of its full content.

Respond with valid JSON only, in exactly this structure:
{
  "overview": "1-2 paragraphs: purpose, context, presenter, audience",
  "sections": [
    {
      "timestamp": "MM:SS or HH:MM:SS where the key slide or visual of the topic is shown",
      "screenshotTimestamp": "MM:SS or HH:MM:SS of the most informative frame",
      "title": "Descriptive section title",
      "content": "Detailed explanation of everything discussed in the section"
    }
  ],
  "keyPoints": ["Actionable key point with specific details"]
}

Divide the video into 5-15 logical sections depending on its length.
Include code, commands, numbers and tools mentioned. No markdown code fences."""

LOCALE_INSTRUCTIONS = {
    "ko": "한국어로 응답해주세요.",
    "en": "Please respond in English.",
    "ja": "日本語で回答してください。",
    "zh": "请用中文回答。",
}

_RETRYABLE_MARKERS = (
    "timeout",
    "timed out",
    "network",
    "connection",
    "503",
    "502",
    "500",
    "429",
    "rate limit",
    "unavailable",
    "resource exhausted",
)


def user_prompt(locale: str) -> str:
    instruction = LOCALE_INSTRUCTIONS.get(locale, LOCALE_INSTRUCTIONS["en"])
    return f"Analyze this video and create a comprehensive wiki-style summary.\n\n{instruction}"


def is_retryable_error(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _RETRYABLE_MARKERS)


def parse_summary(text: str) -> VideoSummary:
    """Parse the model's JSON answer into a VideoSummary.

    Raises:
        SummarizerError: If the text is not the expected JSON object
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
        cleaned = cleaned.strip()

    try:
        data: Dict[str, Any] = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise SummarizerError(f"Failed to parse Gemini response as JSON: {e}") from e

    if not isinstance(data, dict):
        raise SummarizerError("Failed to parse Gemini response: expected a JSON object")

    sections = []
    for raw in data.get("sections") or []:
        if not isinstance(raw, dict) or not raw.get("timestamp"):
            continue
        sections.append(
            SummarySection(
                timestamp=str(raw["timestamp"]),
                title=raw.get("title", ""),
                content=raw.get("content") or raw.get("summary", ""),
                screenshot_timestamp=raw.get("screenshotTimestamp"),
            )
        )

    return VideoSummary(
        overview=data.get("overview", ""),
        sections=sections,
        key_points=[str(p) for p in data.get("keyPoints") or []],
    )


class GeminiSummarizer(Summarizer):
    """Summarizer backed by the Gemini API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        max_retries: int = 3,
        retry_delay_s: float = 5.0,
        max_output_tokens: int = 65536,
    ):
        self.model_name = model
        self.max_retries = max_retries
        self.retry_delay_s = retry_delay_s

        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(
            model_name=model,
            system_instruction=SYSTEM_PROMPT,
            generation_config={
                "response_mime_type": "application/json",
                "max_output_tokens": max_output_tokens,
            },
        )

    def summarize(self, video_url: str, locale: str) -> VideoSummary:
        contents = [
            {"file_data": {"file_uri": video_url, "mime_type": "video/mp4"}},
            user_prompt(locale),
        ]

        for attempt in range(self.max_retries + 1):
            try:
                response = self._model.generate_content(contents)
                text = response.text
            except Exception as e:
                if attempt < self.max_retries and is_retryable_error(e):
                    delay = self.retry_delay_s * (2**attempt)
                    logger.warning(
                        "Gemini request failed (attempt %d/%d): %s. Retrying in %.1fs",
                        attempt + 1,
                        self.max_retries + 1,
                        e,
                        delay,
                    )
                    time.sleep(delay)
                    continue
                raise SummarizerError(f"Gemini API error for {video_url}: {e}") from e

            if not text:
                raise SummarizerError("No text content in Gemini response")
            return parse_summary(text)

        raise SummarizerError(f"Gemini API error for {video_url}: retries exhausted")
