"""
Google Gemini adapter for contextual phishing analysis.

Layer 2 of the scan pipeline. The email text is embedded in a fixed prompt,
Gemini answers with a JSON verdict, and the verdict is normalized against the
shared score thresholds. A local quota keeps usage inside the free tier
(15 requests/minute, 1,500 requests/day).
"""

import asyncio
import json
import re
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Deque, Dict, List, Optional

import aiohttp

from smells_phishy.config.logging import get_logger
from smells_phishy.config.settings import Settings, get_settings
from smells_phishy.core.metrics import pipeline_metrics
from smells_phishy.schemas.scan import Verdict, verdict_for_score

from .threat_intel.base import (
    AdapterError, APIStatus, HTTPStatusError, QuotaExceededError,
    RateLimitError, RequestTimeoutError, UnauthorizedError,
)

logger = get_logger(__name__)

MAX_REASONS = 5
CONSERVATIVE_SCORE = 50

DAILY_LIMIT_MESSAGE = "Daily AI analysis limit reached. Try again tomorrow."
MINUTE_LIMIT_MESSAGE = "Rate limit reached. Please wait a moment and try again."
ERROR_REASON = "Unable to complete AI analysis - proceed with caution"

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

PHISHING_DETECTION_PROMPT = """You are a cybersecurity expert specializing in phishing detection. Analyze the following email content for signs of phishing or social engineering attacks.

Evaluate the email based on these criteria:

1. **Urgency Tactics**: Look for phrases like "act now", "account suspended", "24 hours", "immediately", "urgent action required"

2. **Authority Impersonation**: Check if the sender claims to be from a well-known company (PayPal, Amazon, Google, banks) but the email domain doesn't match

3. **Suspicious Links**: Look for URLs that:
   - Use lookalike domains (paypa1.com, amaz0n.com)
   - Use URL shorteners
   - Use suspicious TLDs (.xyz, .tk, .ml, .ga, .cf)
   - Don't match the claimed sender

4. **Generic Greetings**: "Dear Valued Customer", "Dear User", "Dear Account Holder" instead of using the recipient's name

5. **Grammar and Spelling**: Poor grammar, spelling mistakes, or awkward phrasing in supposedly professional emails

6. **Request for Sensitive Info**: Asking for passwords, credit card numbers, SSN, or to "verify" account details

7. **Mismatched Headers**: Reply-To address different from From address, or suspicious routing

8. **Threatening Language**: Threats of account closure, legal action, or other consequences

Provide your analysis in the following JSON format:
{
  "score": <number 0-100, where 0 is completely safe and 100 is definitely phishing>,
  "verdict": "<SAFE if score < 30, SUSPICIOUS if 30-70, DANGER if > 70>",
  "reasons": [<array of specific findings, max 5 most important>],
  "summary": "<one sentence summary of your assessment>"
}

Only output valid JSON, nothing else."""


def build_prompt(email_content: str) -> str:
    """Embed the email between fences after the fixed instructions."""
    return (
        f"{PHISHING_DETECTION_PROMPT}\n\n"
        f"EMAIL CONTENT TO ANALYZE:\n---\n{email_content}\n---\n\n"
        f"Analyze this email and provide your assessment in JSON format:"
    )


@dataclass
class GeminiAnalysisResult:
    """Normalized Layer 2 verdict."""
    score: int
    verdict: Verdict
    reasons: List[str] = field(default_factory=list)
    summary: str = "Analysis complete"
    quota_exceeded: bool = False


class GeminiQuota:
    """
    In-process guard for the Gemini free tier.

    The daily counter resets when the calendar date changes; the per-minute
    limit is a sliding 60 second window of call timestamps. Counters live in
    process memory and start over on restart.
    """

    def __init__(self, daily_limit: int = 1400, minute_limit: int = 14,
                 clock: Callable[[], float] = time.time,
                 today: Callable[[], date] = date.today):
        self.daily_limit = daily_limit
        self.minute_limit = minute_limit
        self._clock = clock
        self._today = today
        self.daily_count = 0
        self.last_reset_date = today()
        self.minute_calls: Deque[float] = deque()

    def _reset_if_new_day(self) -> None:
        today = self._today()
        if today != self.last_reset_date:
            self.daily_count = 0
            self.last_reset_date = today

    def _prune(self, now: float) -> None:
        one_minute_ago = now - 60
        while self.minute_calls and self.minute_calls[0] < one_minute_ago:
            self.minute_calls.popleft()

    def acquire(self) -> None:
        """Consume one call or raise QuotaExceededError."""
        now = self._clock()
        self._reset_if_new_day()

        if self.daily_count >= self.daily_limit:
            raise QuotaExceededError(DAILY_LIMIT_MESSAGE)

        self._prune(now)
        if len(self.minute_calls) >= self.minute_limit:
            retry_after = int(self.minute_calls[0] + 60 - now) + 1
            raise QuotaExceededError(MINUTE_LIMIT_MESSAGE, retry_after=retry_after)

        self.daily_count += 1
        self.minute_calls.append(now)

    def status(self) -> Dict[str, int]:
        """Remaining capacity without consuming any."""
        now = self._clock()
        self._reset_if_new_day()
        one_minute_ago = now - 60
        recent_calls = sum(1 for t in self.minute_calls if t >= one_minute_ago)
        return {
            "daily_remaining": max(0, self.daily_limit - self.daily_count),
            "minute_remaining": max(0, self.minute_limit - recent_calls),
            "daily_limit": self.daily_limit,
        }


class GeminiClient:
    """Google Gemini REST client for email content analysis."""

    def __init__(self, api_key: Optional[str], model: str = "gemini-1.5-flash",
                 quota: Optional[GeminiQuota] = None, timeout: float = 30.0,
                 session: Optional[aiohttp.ClientSession] = None):
        self.api_key = api_key
        self.model = model
        self.base_url = "https://generativelanguage.googleapis.com/v1beta"
        self.quota = quota or GeminiQuota()
        self.timeout = timeout
        self.session = session

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GeminiClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.get_gemini_api_key(),
            model=settings.GEMINI_MODEL,
            quota=GeminiQuota(settings.GEMINI_DAILY_LIMIT, settings.GEMINI_MINUTE_LIMIT),
            timeout=settings.GEMINI_TIMEOUT,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            headers = {
                'Content-Type': 'application/json',
                'User-Agent': 'SmellsPhishy-Gemini/1.0'
            }
            self.session = aiohttp.ClientSession(timeout=timeout, headers=headers)
        return self.session

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.1,  # Low temperature for consistent analysis
                "maxOutputTokens": 1024,
            },
        }

    async def _generate(self, prompt: str) -> str:
        """Call generateContent and return the response text."""
        session = await self._get_session()
        url = f"{self.base_url}/models/{self.model}:generateContent"

        try:
            async with session.post(url, json=self.build_payload(prompt),
                                    params={"key": self.api_key}) as response:
                if response.status == 200:
                    data = await response.json()
                elif response.status in (401, 403):
                    raise UnauthorizedError("Invalid Gemini API key", response.status)
                elif response.status == 429:
                    raise RateLimitError("Gemini rate limit exceeded")
                else:
                    raise HTTPStatusError(f"Gemini API error {response.status}", response.status)
        except asyncio.TimeoutError:
            raise RequestTimeoutError("Gemini API request timed out")
        except aiohttp.ClientError as e:
            raise AdapterError(f"Gemini API connection error: {e}", APIStatus.ERROR)

        return self.extract_text(data)

    @staticmethod
    def extract_text(data: Any) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not isinstance(candidates, list) or not candidates:
            raise ValueError("No analysis results in response")

        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            raise ValueError("No content parts in response")

        text = "".join(
            part["text"] for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
        if not text:
            raise ValueError("No content parts in response")
        return text

    @staticmethod
    def parse_analysis(text: str) -> GeminiAnalysisResult:
        """
        Parse the model's JSON answer, tolerating a markdown code fence.

        The verdict is recomputed from the clamped score; the model's own
        verdict string is ignored.
        """
        json_str = text
        fence = CODE_FENCE_PATTERN.search(text)
        if fence:
            json_str = fence.group(1).strip()

        analysis = json.loads(json_str)
        if not isinstance(analysis, dict):
            raise ValueError("Gemini response is not a JSON object")

        raw_score = analysis.get("score")
        if isinstance(raw_score, bool) or not isinstance(raw_score, (int, float)):
            raise ValueError(f"Invalid score in Gemini response: {raw_score!r}")
        clamped = max(0.0, min(100.0, float(raw_score)))

        reasons = analysis.get("reasons")
        reasons = [str(r) for r in reasons[:MAX_REASONS]] if isinstance(reasons, list) else []

        # Thresholds apply to the exact score, rounding is for display only
        return GeminiAnalysisResult(
            score=int(round(clamped)),
            verdict=verdict_for_score(clamped),
            reasons=reasons,
            summary=str(analysis.get("summary") or "Analysis complete"),
        )

    async def analyze(self, email_content: str) -> GeminiAnalysisResult:
        """Analyze sanitized email content; never raises."""
        if not self.api_key:
            logger.warning("Gemini API key not configured")
            pipeline_metrics.record_ai_failure()
            return self._error_result()

        try:
            self.quota.acquire()
        except QuotaExceededError as e:
            window = "daily" if str(e) == DAILY_LIMIT_MESSAGE else "minute"
            logger.warning("Gemini quota exhausted", window=window, retry_after=e.retry_after)
            pipeline_metrics.record_ai_quota_rejection(window)
            return GeminiAnalysisResult(
                score=CONSERVATIVE_SCORE,
                verdict=Verdict.SUSPICIOUS,
                reasons=[str(e)],
                summary="Quota limit reached - using conservative assessment",
                quota_exceeded=True,
            )

        start_time = time.time()
        try:
            text = await self._generate(build_prompt(email_content))
            result = self.parse_analysis(text)
        except (AdapterError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            logger.error("Gemini analysis failed", error=str(e), model=self.model)
            pipeline_metrics.record_ai_failure()
            return self._error_result()

        logger.info(
            "Gemini analysis complete",
            model=self.model,
            score=result.score,
            verdict=result.verdict.value,
            content_length=len(email_content),
            duration=round(time.time() - start_time, 3),
        )
        return result

    @staticmethod
    def _error_result() -> GeminiAnalysisResult:
        return GeminiAnalysisResult(
            score=CONSERVATIVE_SCORE,
            verdict=Verdict.SUSPICIOUS,
            reasons=[ERROR_REASON],
            summary="AI analysis encountered an error",
        )

    def get_quota_status(self) -> Dict[str, int]:
        return self.quota.status()

    async def close(self):
        """Close HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()
            self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


_gemini_client: Optional[GeminiClient] = None


def get_gemini_client() -> GeminiClient:
    """Get global Gemini client instance."""
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClient.from_settings()
    return _gemini_client


async def analyze_with_gemini(email_content: str) -> GeminiAnalysisResult:
    """Run Layer 2 with the global client."""
    return await get_gemini_client().analyze(email_content)


def get_quota_status() -> Dict[str, int]:
    """Current AI quota status of the global client."""
    return get_gemini_client().get_quota_status()
