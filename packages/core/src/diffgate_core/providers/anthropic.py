from __future__ import annotations

from typing import TYPE_CHECKING

from diffgate_core.providers.base import BaseEvaluator

if TYPE_CHECKING:
    from diffgate_core.profiles import ReviewProfile


class AnthropicEvaluator(BaseEvaluator):
    # Profiles name OpenAI models; these stand in for them by tier.
    MODELS = {
        "fast": "claude-3-5-haiku-latest",
        "standard": "claude-sonnet-4-20250514",
    }

    def __init__(self, api_key: str | None):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'diffgate[anthropic]'"
            )
        super().__init__(api_key)
        self.client = Anthropic(api_key=api_key) if api_key else None

    def resolve_model(self, profile: ReviewProfile) -> str:
        if profile.model.startswith("claude"):
            return profile.model
        return self.MODELS.get(profile.tier, self.MODELS["standard"])

    def _call_api(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> str:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
