"""
Multi-LLM provider configuration for PydanticAI
"""

import logging
import os
from typing import Optional

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from pydantic_ai.models import Model
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from threadline.config.settings import get_settings
from threadline.exceptions import AIProviderException, ConfigurationException

logger = logging.getLogger(__name__)

SUPPORTED_PREFIXES = ("openai", "anthropic", "gemini")


def split_model_name(model_name: str) -> tuple[str, Optional[str]]:
    """Split 'provider:model' into its parts; the model part may be absent"""
    provider, _, model_id = model_name.partition(":")
    return provider.strip().lower(), (model_id.strip() or None)


def get_openai_model(model_id: Optional[str] = None) -> OpenAIChatModel:
    """Configure an OpenAI chat model; each run sends exactly one request"""
    settings = get_settings()
    model_id = model_id or settings.openai_model_name
    try:
        api_key = settings.openai_api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ConfigurationException(
                message="OpenAI API key not found",
                config_key="openai_api_key",
                details={"model_name": model_id},
            )

        base_url = settings.openai_base_url or os.getenv("OPENAI_BASE_URL")
        if base_url:
            logger.info(f"Using custom OpenAI base URL: {base_url}")

        # SDK transport retries are off; a failed call becomes an error verdict
        client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        return OpenAIChatModel(model_id, provider=OpenAIProvider(openai_client=client))
    except Exception as e:
        logger.error(f"Failed to initialize OpenAI model: {e}")
        raise AIProviderException(
            message="Failed to initialize OpenAI model",
            provider="openai",
            model=model_id,
            original_error=e,
        )


def get_anthropic_model(model_id: Optional[str] = None) -> AnthropicModel:
    """Configure an Anthropic Claude model"""
    settings = get_settings()
    model_id = model_id or settings.anthropic_model_name
    try:
        api_key = settings.anthropic_api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ConfigurationException(
                message="Anthropic API key not found",
                config_key="anthropic_api_key",
                details={"model_name": model_id},
            )

        base_url = settings.anthropic_base_url or os.getenv("ANTHROPIC_BASE_URL")
        if base_url:
            logger.info(f"Using custom Anthropic base URL: {base_url}")

        client = AsyncAnthropic(api_key=api_key, base_url=base_url, max_retries=0)
        return AnthropicModel(
            model_id, provider=AnthropicProvider(anthropic_client=client)
        )
    except Exception as e:
        logger.error(f"Failed to initialize Anthropic model: {e}")
        raise AIProviderException(
            message="Failed to initialize Anthropic model",
            provider="anthropic",
            model=model_id,
            original_error=e,
        )


def get_google_model(model_id: Optional[str] = None) -> GoogleModel:
    """Configure a Google Gemini model"""
    settings = get_settings()
    model_id = model_id or settings.gemini_model_name
    try:
        api_key = (
            settings.google_api_key
            or os.getenv("GOOGLE_API_KEY")
            or os.getenv("GEMINI_API_KEY")
        )
        if not api_key:
            raise ConfigurationException(
                message="Google API key not found",
                config_key="google_api_key",
                details={"model_name": model_id},
            )

        return GoogleModel(model_id, provider=GoogleProvider(api_key=api_key))
    except Exception as e:
        logger.error(f"Failed to initialize Google model: {e}")
        raise AIProviderException(
            message="Failed to initialize Google model",
            provider="google",
            model=model_id,
            original_error=e,
        )


def get_llm_model(model_name: Optional[str] = None) -> Model:
    """
    Get configured LLM model based on settings

    Args:
        model_name: Provider-prefixed model ('openai:gpt-4o-mini')

    Returns:
        Configured PydanticAI model
    """
    settings = get_settings()
    model_name = model_name or settings.ai_model
    provider, model_id = split_model_name(model_name)

    if provider == "openai":
        return get_openai_model(model_id)
    elif provider == "anthropic":
        return get_anthropic_model(model_id)
    elif provider == "gemini":
        return get_google_model(model_id)

    raise ConfigurationException(
        message=f"Unsupported AI model provider '{provider}'",
        config_key="ai_model",
        details={
            "requested_model": model_name,
            "supported": list(SUPPORTED_PREFIXES),
        },
    )
