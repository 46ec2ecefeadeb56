"""
AI-written assessment of a measurement via the Gemini REST API.

Purely advisory: every failure surfaces as ``AnalysisUnavailable`` and the
session carries on without it.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Optional

import aiohttp

from .constants import ANALYSIS_TIMEOUT, DEFAULT_GEMINI_MODEL, GEMINI_API_URL
from .errors import AnalysisUnavailable
from .models import AnalysisSummary, MeasurementResult

logger = logging.getLogger(__name__)

API_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "summary": {
            "type": "STRING",
            "description": "A 1-2 sentence technical summary of the connection quality.",
        },
        "streaming": {"type": "STRING", "description": "Can it handle 4K/8K HDR? Buffer risk?"},
        "gaming": {"type": "STRING", "description": "Latency analysis. Good for FPS/MOBA?"},
        "videoCalls": {"type": "STRING", "description": "Zoom/Teams quality assessment."},
    },
    "required": ["summary", "streaming", "gaming", "videoCalls"],
}


def api_key_from_env() -> Optional[str]:
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


def build_prompt(result: MeasurementResult) -> str:
    # A 0 ms ping reads as "no data" to the model.
    ping = result.ping_ms or 1
    return (
        "You are a specialized Network Engineer. Analyze these speed test results:\n"
        f"- Ping: {ping:.0f} ms\n"
        f"- Download: {result.download_mbps:.2f} Mbps\n"
        f"- Upload: {result.upload_mbps:.2f} Mbps (estimated)\n\n"
        "Based strictly on these numbers, provide a JSON response evaluating "
        "capabilities for:\n"
        "1. Overall connection summary (professional tone).\n"
        "2. 4K Streaming capability.\n"
        "3. Competitive Gaming suitability.\n"
        "4. Video Conferencing stability.\n"
    )


def parse_response(payload: dict) -> AnalysisSummary:
    """Pull the JSON answer out of a ``generateContent`` response."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
        return AnalysisSummary.from_dict(json.loads(text))
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise AnalysisUnavailable(f"Malformed analysis response: {exc}") from exc


class NetworkAnalyst:
    """Thin client for one ``generateContent`` call."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_GEMINI_MODEL,
        timeout: float = ANALYSIS_TIMEOUT,
        base_url: str = GEMINI_API_URL,
    ) -> None:
        self.api_key = api_key if api_key is not None else api_key_from_env()
        self.model = model
        self.timeout = timeout
        self.base_url = base_url

    async def analyze(self, result: MeasurementResult) -> AnalysisSummary:
        if not self.api_key:
            raise AnalysisUnavailable("API key not found. Analysis skipped.")

        body = {
            "contents": [{"parts": [{"text": build_prompt(result)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        url = f"{self.base_url}/{self.model}:generateContent"
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    url, json=body, headers={"x-goog-api-key": self.api_key}
                ) as resp:
                    resp.raise_for_status()
                    payload = await resp.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise AnalysisUnavailable("Analysis timed out.") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise AnalysisUnavailable(f"Analysis request failed: {exc}") from exc

        return parse_response(payload)


async def analyze_network(result: MeasurementResult) -> Optional[AnalysisSummary]:
    """Like ``NetworkAnalyst().analyze`` but returns None instead of raising."""
    try:
        return await NetworkAnalyst().analyze(result)
    except AnalysisUnavailable as exc:
        logger.warning("%s", exc)
        return None
