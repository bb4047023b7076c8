"""
Reasoning capability used to write the analysis section of insight reports.

The assembler only needs "question + serialized rows in, prose out";
ClaudeReasoningProvider implements that with the Anthropic API.
"""

import logging
import time
from abc import ABC, abstractmethod

from anthropic import Anthropic, APIError, RateLimitError

from .config import ReasoningConfig
from .exceptions import ConfigurationError, ReasoningError

logger = logging.getLogger(__name__)


ANALYSIS_PROMPT = (
    "Analyze this data to answer: {question}\n\n"
    "Data: {data}\n\n"
    "Provide a summary and key findings."
)


class ReasoningProvider(ABC):
    """Abstract base class for reasoning capabilities."""

    @abstractmethod
    def analyze(self, question: str, data: str) -> str:
        """
        Produce free-form analysis of ``data`` with respect to ``question``.

        Args:
            question: The user's natural-language question
            data: Serialized query rows, passed through verbatim

        Raises:
            ReasoningError: If no analysis could be produced
        """
        pass


class ClaudeReasoningProvider(ReasoningProvider):
    """
    Reasoning provider using the Anthropic Claude API.

    Rate limits are retried with exponential backoff; other API errors
    fail immediately.
    """

    MODEL_SHORTCUTS = {
        "haiku": "claude-haiku-4-5",
        "sonnet": "claude-sonnet-4-5",
        "opus": "claude-opus-4-1",
    }

    def __init__(self, config: ReasoningConfig, client=None):
        if client is None and not config.api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY required for anthropic provider")

        self.client = client or Anthropic(api_key=config.api_key)
        self.model = self.MODEL_SHORTCUTS.get(config.model.lower(), config.model)
        self.temperature = config.temperature
        self.max_tokens = config.max_tokens
        self.max_retries = max(1, config.max_retries)
        self.retry_delay = config.retry_delay

        logger.info(f"Initialized Claude reasoning provider with model: {self.model}")

    def analyze(self, question: str, data: str) -> str:
        prompt = ANALYSIS_PROMPT.format(question=question, data=data)

        for attempt in range(self.max_retries):
            try:
                logger.debug(f"Calling Claude API (attempt {attempt + 1}/{self.max_retries})")

                message = self.client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    messages=[{"role": "user", "content": prompt}],
                )

                text = "".join(
                    block.text for block in message.content if getattr(block, "type", "text") == "text"
                ).strip()

                logger.debug(
                    f"Generated {len(text)} characters "
                    f"using {message.usage.input_tokens + message.usage.output_tokens} tokens"
                )
                return text

            except RateLimitError as e:
                if attempt < self.max_retries - 1:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(f"Rate limit hit, retrying in {delay}s... (attempt {attempt + 1})")
                    time.sleep(delay)
                else:
                    raise ReasoningError(
                        f"Rate limit exceeded after {self.max_retries} retries", cause=e
                    ) from e

            except APIError as e:
                raise ReasoningError(f"Claude API error: {e}", cause=e) from e

        raise ReasoningError(f"Failed to generate analysis after {self.max_retries} attempts")


def create_reasoning_provider(config: ReasoningConfig) -> ReasoningProvider:
    if config.provider == "anthropic":
        return ClaudeReasoningProvider(config)
    raise ConfigurationError(f"Unsupported reasoning provider: {config.provider}")
