"""
Analysis Service - scores clip transcripts for virality with the OpenAI API
Implements ITranscriptAnalyzer
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import AsyncOpenAI

from core.config import settings
from core.exceptions import AnalysisError
from core.logging import get_logger, performance_logger
from domain.interfaces import ITranscriptAnalyzer
from domain.schemas import AnalysisResult

logger = get_logger("analysis_service")

ANALYSIS_FAILED_MESSAGE = "Failed to analyze clip. Please try again."

SYSTEM_PROMPT = """You are a social media content strategist. Analyze the given video transcript and provide:
1. A virality score from 1-100 based on engagement potential, emotional impact, uniqueness, and shareability
2. 3 suggested hook titles for social media (attention-grabbing, under 60 characters each)
3. A brief explanation (2-3 sentences) of why you gave this virality score

Respond in JSON format:
{
  "virality_score": number,
  "hooks": ["hook1", "hook2", "hook3"],
  "explanation": "string"
}"""


def map_openai_error(error: openai.APIError) -> AnalysisError:
    """Translate an OpenAI client error to the status the API returns"""
    status = getattr(error, "status_code", None)
    code = getattr(error, "code", None)

    if status == 401 or code == "invalid_api_key":
        return AnalysisError(
            "Invalid OpenAI API key. Please check your key in Settings.", status_code=401
        )
    # Quota exhaustion is reported as a 429 too
    if status == 402 or code == "insufficient_quota":
        return AnalysisError(
            "OpenAI quota exceeded. Please check your account billing.", status_code=402
        )
    if status == 429:
        return AnalysisError("Rate limit exceeded. Please try again later.", status_code=429)

    return AnalysisError(ANALYSIS_FAILED_MESSAGE, status_code=500)


def parse_analysis(content: Optional[str]) -> AnalysisResult:
    """Build a result from the model's JSON reply"""
    try:
        data: Dict[str, Any] = json.loads(content or "{}")
    except json.JSONDecodeError:
        raise AnalysisError(ANALYSIS_FAILED_MESSAGE, status_code=500)

    if not isinstance(data, dict):
        raise AnalysisError(ANALYSIS_FAILED_MESSAGE, status_code=500)

    score = data.get("virality_score", data.get("viralityScore"))
    try:
        score = min(100, max(1, int(round(float(score)))))
    except (TypeError, ValueError):
        raise AnalysisError(ANALYSIS_FAILED_MESSAGE, status_code=500)

    hooks: List[str] = [str(hook) for hook in data.get("hooks") or [] if hook][:3]

    return AnalysisResult(
        virality_score=score,
        hooks=hooks,
        explanation=str(data.get("explanation") or ""),
    )


class AnalysisService(ITranscriptAnalyzer):
    """Transcript analysis with a user's OpenAI key"""

    def __init__(self, api_key: str, http_client: Optional[httpx.AsyncClient] = None) -> None:
        # Single attempt; errors are reported to the user instead of retried
        self.client = AsyncOpenAI(
            api_key=api_key,
            max_retries=0,
            timeout=settings.external_api_timeout,
            http_client=http_client,
        )

    async def analyze(self, transcript: str) -> AnalysisResult:
        """
        Score a transcript and suggest hooks

        Raises:
            AnalysisError: With the HTTP status to report for the failure
        """
        start_time = datetime.now()

        try:
            completion = await self.client.chat.completions.create(
                model=settings.openai_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": f"Analyze this video transcript:\n\n{transcript}"},
                ],
                response_format={"type": "json_object"},
                max_tokens=settings.openai_max_tokens,
            )
        except openai.APIError as e:
            mapped = map_openai_error(e)
            logger.warning(
                f"OpenAI request failed: {type(e).__name__}",
                extra={"status_code": mapped.status_code},
            )
            raise mapped

        duration = (datetime.now() - start_time).total_seconds() * 1000
        performance_logger.log_request_duration("openai_chat", "POST", duration, 200)

        content = completion.choices[0].message.content if completion.choices else None
        return parse_analysis(content)
