from __future__ import annotations

from typing import TYPE_CHECKING

from src.analysis.exceptions import ConfigurationError
from src.config import settings
from src.llm.schemas import QualityTier, TierConfig

if TYPE_CHECKING:
    from langchain_core.language_models.chat_models import BaseChatModel

# Valid provider identifiers
VALID_PROVIDERS = ("ollama", "openai", "azure_openai", "anthropic")

# Module-level cache keyed by (tier, max_tokens)
_llm_cache: dict[tuple[QualityTier, int], BaseChatModel] = {}


def clear_llm_cache() -> None:
    """Drop all cached chat model instances so they're recreated on next call."""
    _llm_cache.clear()


# ---------------------------------------------------------------------------
# Tier resolution
# ---------------------------------------------------------------------------

_TIER_TEMPERATURE = {
    QualityTier.FAST: 0.0,
    QualityTier.REASONING: 0.1,
}


def provider_for(tier: QualityTier) -> str:
    if tier == QualityTier.FAST:
        return settings.LLM_PROVIDER_FAST
    return settings.LLM_PROVIDER_REASONING


def model_for(provider: str, tier: QualityTier) -> str:
    attr = f"{provider.upper()}_MODEL_{tier.value.upper()}"
    return getattr(settings, attr, "unknown")


def tier_config(tier: QualityTier) -> TierConfig:
    provider = provider_for(tier)
    return TierConfig(tier=tier, provider=provider, model=model_for(provider, tier))


def check_provider_configured(provider: str) -> None:
    """Raise ``ConfigurationError`` when ``provider`` is unknown or lacks credentials."""
    if provider not in VALID_PROVIDERS:
        raise ConfigurationError(f"Unknown provider: {provider!r}. Valid: {VALID_PROVIDERS}")
    if provider == "anthropic" and not settings.ANTHROPIC_API_KEY:
        raise ConfigurationError("ANTHROPIC_API_KEY is required when using the anthropic provider")
    if provider == "openai" and not settings.OPENAI_API_KEY:
        raise ConfigurationError("OPENAI_API_KEY is required when using the openai provider")
    if provider == "azure_openai":
        if not settings.AZURE_OPENAI_API_KEY:
            raise ConfigurationError("AZURE_OPENAI_API_KEY is required when using the azure_openai provider")
        if not settings.AZURE_OPENAI_ENDPOINT:
            raise ConfigurationError("AZURE_OPENAI_ENDPOINT is required when using the azure_openai provider")


# ---------------------------------------------------------------------------
# Internal constructor (lazy imports to avoid hard dep on unused packages)
# ---------------------------------------------------------------------------

def _create_chat_model(
    provider: str,
    *,
    model: str,
    temperature: float,
    max_tokens: int,
) -> BaseChatModel:
    check_provider_configured(provider)

    if provider == "ollama":
        from langchain_ollama import ChatOllama

        return ChatOllama(
            base_url=settings.OLLAMA_BASE_URL,
            model=model,
            temperature=temperature,
            num_predict=max_tokens,
            format="json",
        )

    if provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=settings.OPENAI_API_KEY,
            max_retries=0,
        )

    if provider == "azure_openai":
        from langchain_openai import AzureChatOpenAI

        return AzureChatOpenAI(
            azure_deployment=model,
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
            api_key=settings.AZURE_OPENAI_API_KEY,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            temperature=temperature,
            max_tokens=max_tokens,
            max_retries=0,
        )

    from langchain_anthropic import ChatAnthropic

    # Retries are handled by ReasoningService.
    return ChatAnthropic(
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        api_key=settings.ANTHROPIC_API_KEY,
        max_retries=0,
    )


# ---------------------------------------------------------------------------
# Public factory functions
# ---------------------------------------------------------------------------

def get_llm_for_tier(tier: QualityTier, max_tokens: int) -> BaseChatModel:
    key = (tier, max_tokens)
    if key not in _llm_cache:
        config = tier_config(tier)
        _llm_cache[key] = _create_chat_model(
            config.provider,
            model=config.model,
            temperature=_TIER_TEMPERATURE[tier],
            max_tokens=max_tokens,
        )
    return _llm_cache[key]


def get_fast_llm(max_tokens: int = 2048) -> BaseChatModel:
    """Fast Engine. Used for: fact extraction, claim inference, timeline."""
    return get_llm_for_tier(QualityTier.FAST, max_tokens)


def get_reasoning_llm(max_tokens: int = 4096) -> BaseChatModel:
    """Reasoning Engine. Used for: fact comparison, contradictions, credibility."""
    return get_llm_for_tier(QualityTier.REASONING, max_tokens)
