"""
LLM service for long-form drafting, reports and chat.

Supports Claude (Anthropic) and GPT-4o (OpenAI) with automatic fallback.
"""

from functools import lru_cache

import structlog
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from advdesk.config import get_settings

logger = structlog.get_logger(__name__)

Message = dict[str, str]


class LLMService:
    """
    Text generation service.

    Supports Claude Sonnet (primary) and GPT-4o (fallback); chat turns use
    the lighter chat model on the primary provider.
    """

    def __init__(self):
        settings = get_settings()
        self.settings = settings

        # Initialize clients
        self._anthropic: AsyncAnthropic | None = None
        self._openai: AsyncOpenAI | None = None

        if settings.anthropic_api_key:
            self._anthropic = AsyncAnthropic(api_key=settings.anthropic_api_key)
        if settings.openai_api_key:
            self._openai = AsyncOpenAI(api_key=settings.openai_api_key)

        self.primary_provider = settings.primary_llm_provider
        self.primary_model = settings.primary_llm_model
        self.fallback_provider = settings.fallback_llm_provider
        self.fallback_model = settings.fallback_llm_model
        self.chat_model = settings.chat_llm_model

    @property
    def anthropic(self) -> AsyncAnthropic:
        if not self._anthropic:
            raise ValueError("Anthropic client not configured. Set ANTHROPIC_API_KEY.")
        return self._anthropic

    @property
    def openai(self) -> AsyncOpenAI:
        if not self._openai:
            raise ValueError("OpenAI client not configured. Set OPENAI_API_KEY.")
        return self._openai

    def health_check(self) -> dict[str, bool]:
        """Report which providers are configured."""
        return {
            "anthropic": self._anthropic is not None,
            "openai": self._openai is not None,
        }

    def _available(self, provider: str) -> bool:
        if provider == "anthropic":
            return self._anthropic is not None
        return self._openai is not None

    # =========================================================================
    # Core LLM Calls
    # =========================================================================

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _call_anthropic(
        self,
        system_prompt: str,
        messages: list[Message],
        max_tokens: int,
        model: str,
    ) -> str:
        """Call Anthropic Claude API."""
        response = await self.anthropic.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=self.settings.llm_temperature,
            system=system_prompt,
            messages=messages,
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _call_openai(
        self,
        system_prompt: str,
        messages: list[Message],
        max_tokens: int,
        model: str,
    ) -> str:
        """Call OpenAI GPT-4o API."""
        response = await self.openai.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            temperature=self.settings.llm_temperature,
            messages=[{"role": "system", "content": system_prompt}, *messages],
        )
        return response.choices[0].message.content or ""

    async def _call(
        self,
        provider: str,
        model: str,
        system_prompt: str,
        messages: list[Message],
        max_tokens: int,
    ) -> str:
        if provider == "anthropic":
            return await self._call_anthropic(system_prompt, messages, max_tokens, model)
        return await self._call_openai(system_prompt, messages, max_tokens, model)

    async def _complete(
        self,
        system_prompt: str,
        messages: list[Message],
        max_tokens: int,
        primary_model: str,
        use_fallback: bool,
    ) -> tuple[str, str]:
        # Try primary provider
        if self._available(self.primary_provider):
            try:
                response = await self._call(
                    self.primary_provider, primary_model, system_prompt, messages, max_tokens
                )
                return response, primary_model
            except Exception as e:
                logger.warning(
                    "primary_llm_failed",
                    provider=self.primary_provider,
                    error=str(e),
                )
                if not use_fallback:
                    raise

        # Try fallback provider
        if use_fallback and self._available(self.fallback_provider):
            try:
                response = await self._call(
                    self.fallback_provider,
                    self.fallback_model,
                    system_prompt,
                    messages,
                    max_tokens,
                )
                return response, self.fallback_model
            except Exception as e:
                logger.error(
                    "fallback_llm_failed",
                    provider=self.fallback_provider,
                    error=str(e),
                )
                raise

        raise ValueError("No LLM provider available")

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
        use_fallback: bool = True,
    ) -> tuple[str, str]:
        """
        Generate LLM response with automatic fallback.

        Returns (response_text, model_used).
        """
        return await self._complete(
            system_prompt,
            [{"role": "user", "content": user_prompt}],
            max_tokens or self.settings.petition_max_tokens,
            self.primary_model,
            use_fallback,
        )

    async def chat(
        self,
        system_prompt: str,
        messages: list[Message],
        max_tokens: int | None = None,
        model: str | None = None,
    ) -> tuple[str, str]:
        """
        Multi-turn generation over an alternating user/assistant history.

        Returns (response_text, model_used).
        """
        if not messages or messages[-1]["role"] != "user":
            raise ValueError("chat history must end with a user message")
        return await self._complete(
            system_prompt,
            messages,
            max_tokens or self.settings.chat_max_tokens,
            model or self.chat_model,
            use_fallback=True,
        )


@lru_cache()
def get_llm_service() -> LLMService:
    """Get LLM service instance."""
    return LLMService()
