"""
Resume Analyzer - LLM Analysis
Handles the completion call for resume/job-description matching.
Parsing strategy: parse JSON (retrying without code fences), validate shape; anything
else degrades to the fallback structure carrying the raw reply.
"""

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from .config import Settings
from .models import AnalysisOutcome, AnalysisResult
from .prompts import build_analysis_prompt

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """The completion endpoint could not produce a reply."""


def _strip_code_fences(text: str) -> str:
    """Remove markdown code blocks if present."""
    if "```json" in text:
        return text.split("```json")[1].split("```")[0].strip()
    if "```" in text:
        return text.split("```")[1].split("```")[0].strip()
    return text.strip()


def _load_json(raw_text: str) -> Any:
    """Parse the reply as-is, then retry with markdown fences removed."""
    try:
        return json.loads(raw_text.strip())
    except json.JSONDecodeError:
        return json.loads(_strip_code_fences(raw_text))


def fallback_analysis(raw_text: str, match_percentage: int = 75) -> AnalysisResult:
    return AnalysisResult(
        skills_match_percentage=max(0, min(100, match_percentage)),
        overall_feedback=raw_text,
    )


def parse_analysis(raw_text: str, fallback_percentage: int = 75) -> AnalysisOutcome:
    """
    Parse a model reply into an AnalysisResult.

    Never raises: a reply that is not a JSON object with the expected
    fields yields the fallback structure with degraded=True.
    """
    try:
        data = _load_json(raw_text)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        result = AnalysisResult.model_validate(data)
        return AnalysisOutcome(result=result, raw_text=raw_text)
    except (json.JSONDecodeError, ValueError, ValidationError) as e:
        logger.warning(f"⚠️ AI response is not valid analysis JSON, using raw text: {e}")
        return AnalysisOutcome(
            result=fallback_analysis(raw_text, fallback_percentage),
            degraded=True,
            raw_text=raw_text,
        )


class ResumeAnalyzer:
    """Calls the OpenRouter chat-completions endpoint and parses the reply."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.settings.openrouter_api_key)

    async def complete(self, prompt: str) -> str:
        """Send one prompt, return the raw reply text."""
        if not self.settings.openrouter_api_key:
            logger.error("❌ OPENROUTER_API_KEY is not set in environment variables")
            raise LLMError("OpenRouter API key is not configured")

        logger.info(f"📝 Prompt length: {len(prompt)}")
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.llm_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.settings.openrouter_url,
                    headers={
                        "Authorization": f"Bearer {self.settings.openrouter_api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.settings.openrouter_model,
                        "messages": [
                            {"role": "system", "content": self.settings.system_prompt},
                            {"role": "user", "content": prompt},
                        ],
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Error calling OpenRouter: {e}")
            raise LLMError(f"Error calling OpenRouter: {e}") from e

        logger.info(f"📡 OpenRouter response status: {response.status_code}")
        if response.status_code != 200:
            logger.error(f"OpenRouter API error: {response.status_code} - {response.text[:200]}")
            raise LLMError(f"OpenRouter API error ({response.status_code})")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Malformed OpenRouter response: {e}") from e
        if content is None:
            raise LLMError("No response from model")
        return content

    async def analyze(self, job_description: str, resume: str) -> AnalysisOutcome:
        """
        Analyze a resume against a job description.

        Flow:
        1. Build prompt with job description + resume
        2. Call completion endpoint (LLMError on transport failure)
        3. Parse JSON, falling back to the degraded structure
        """
        prompt = build_analysis_prompt(job_description, resume)
        logger.info("Calling AI for resume analysis...")
        content = await self.complete(prompt)
        return parse_analysis(content, self.settings.fallback_match_percentage)
