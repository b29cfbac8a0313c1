"""Reasoning service adapter used by every analysis phase.

``ReasoningService.generate`` sends one system/user prompt pair to the chat
model configured for a quality tier and returns the text plus token usage.
Each call is bounded by a timeout and retried with exponential backoff on
transient failures; whatever still fails is raised as ``ExternalServiceError``
for the calling phase to absorb.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.analysis.exceptions import ConfigurationError, ExternalServiceError
from src.config import settings
from src.llm.factory import check_provider_configured, get_llm_for_tier, provider_for
from src.llm.schemas import GenerationResult, QualityTier

logger = logging.getLogger(__name__)

# HTTP statuses that will not succeed on retry
_PERMANENT_STATUS_CODES = {400, 401, 403, 404, 422}


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, ExternalServiceError) and exc.transient


def _status_code(exc: BaseException) -> Optional[int]:
    code = getattr(exc, "status_code", None)
    if code is None:
        response = getattr(exc, "response", None)
        code = getattr(response, "status_code", None)
    return code if isinstance(code, int) else None


def _content_text(content: Any) -> str:
    """Flatten an AIMessage content (str or list of content blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


class ReasoningService:
    def __init__(
        self,
        model_provider: Callable[[QualityTier, int], Any] = get_llm_for_tier,
        *,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        min_wait: Optional[float] = None,
        max_wait: Optional[float] = None,
    ):
        self.model_provider = model_provider
        self.timeout = timeout if timeout is not None else settings.ANALYSIS_LLM_TIMEOUT_SECONDS
        self.max_attempts = max_attempts if max_attempts is not None else settings.ANALYSIS_LLM_MAX_ATTEMPTS
        self.min_wait = min_wait if min_wait is not None else settings.ANALYSIS_LLM_RETRY_MIN_WAIT
        self.max_wait = max_wait if max_wait is not None else settings.ANALYSIS_LLM_RETRY_MAX_WAIT

    def ensure_configured(self) -> None:
        """Raise ``ConfigurationError`` if either tier's provider is unusable."""
        for tier in QualityTier:
            check_provider_configured(provider_for(tier))

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        tier: QualityTier,
    ) -> GenerationResult:
        llm = self.model_provider(tier, max_tokens)
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=wait_exponential(multiplier=1, min=self.min_wait, max=self.max_wait),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._invoke_once(llm, messages, tier)

    async def _invoke_once(self, llm, messages, tier: QualityTier) -> GenerationResult:
        try:
            response = await asyncio.wait_for(llm.ainvoke(messages), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ExternalServiceError(
                f"{tier.value} tier call timed out after {self.timeout:.0f}s"
            ) from e
        except (ExternalServiceError, ConfigurationError):
            raise
        except Exception as e:
            status = _status_code(e)
            raise ExternalServiceError(
                f"{tier.value} tier call failed: {type(e).__name__}: {e}",
                transient=status not in _PERMANENT_STATUS_CODES,
            ) from e

        usage = getattr(response, "usage_metadata", None) or {}
        result = GenerationResult(
            text=_content_text(response.content),
            input_tokens=usage.get("input_tokens", 0) or 0,
            output_tokens=usage.get("output_tokens", 0) or 0,
        )
        logger.debug(
            "%s tier call used %d input / %d output tokens",
            tier.value, result.input_tokens, result.output_tokens,
        )
        return result
