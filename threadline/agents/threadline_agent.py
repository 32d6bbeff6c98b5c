"""
PydanticAI-based generation client for threadline verdicts
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic_ai import Agent, RunContext
from pydantic_ai.settings import ModelSettings

from threadline.agents.prompt_builder import GenerationRequest
from threadline.agents.providers import get_llm_model
from threadline.config.settings import get_settings
from threadline.exceptions import AIProviderException
from threadline.models.threadline_models import GenerationVerdict, TokenUsage

logger = logging.getLogger(__name__)


@dataclass
class GenerationResponse:
    """Structured verdict plus token usage reported by the provider"""

    verdict: GenerationVerdict
    usage: Optional[TokenUsage] = None


def _system_instruction(ctx: RunContext[GenerationRequest]) -> str:
    return ctx.deps.system_instruction


class ThreadlineAgent:
    """Generation-service client shared read-only across concurrent evaluations"""

    def __init__(self, model_name: Optional[str] = None, model: Optional[Any] = None):
        """Initialize with a provider-prefixed model name or an explicit model"""
        settings = get_settings()
        self.model_name = model_name or settings.ai_model
        self.model = model if model is not None else get_llm_model(self.model_name)

        # Malformed output fails the run instead of re-prompting
        self.agent = Agent(
            model=self.model,
            output_type=GenerationVerdict,
            deps_type=GenerationRequest,
            retries=0,
            model_settings=ModelSettings(temperature=settings.ai_temperature),
        )
        self.agent.system_prompt(_system_instruction)

        logger.info(f"Initialized ThreadlineAgent with model: {self.model_name}")

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """
        Run one generation call

        Raises:
            AIProviderException: On network, authentication or output parsing failure
        """
        try:
            result = await self.agent.run(request.user_prompt, deps=request)
        except Exception as e:
            raise AIProviderException(
                message=f"Generation service call failed: {e}",
                provider=self.model_name,
                details={"error_type": type(e).__name__},
                original_error=e,
            )

        if not hasattr(result, "output") or not isinstance(
            result.output, GenerationVerdict
        ):
            raise AIProviderException(
                message="Generation service returned unexpected result structure",
                provider=self.model_name,
                details={"result_type": type(result).__name__},
            )

        return GenerationResponse(verdict=result.output, usage=self._token_usage(result))

    @staticmethod
    def _token_usage(result: Any) -> Optional[TokenUsage]:
        if not hasattr(result, "usage"):
            return None
        usage = result.usage()
        prompt_tokens = getattr(usage, "input_tokens", None)
        if prompt_tokens is None:
            prompt_tokens = getattr(usage, "request_tokens", 0)
        completion_tokens = getattr(usage, "output_tokens", None)
        if completion_tokens is None:
            completion_tokens = getattr(usage, "response_tokens", 0)
        prompt_tokens = prompt_tokens or 0
        completion_tokens = completion_tokens or 0
        return TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=getattr(usage, "total_tokens", None)
            or prompt_tokens + completion_tokens,
        )


async def initialize_threadline_agent() -> ThreadlineAgent:
    """Factory function to initialize the generation client"""
    settings = get_settings()
    try:
        agent = ThreadlineAgent(model_name=settings.ai_model)
        logger.info(
            f"Threadline agent initialized successfully with model: {settings.ai_model}"
        )
        return agent
    except Exception as e:
        logger.error(f"Failed to initialize threadline agent: {e}")
        raise AIProviderException(
            message="Failed to initialize threadline agent",
            model=settings.ai_model,
            original_error=e,
        )
