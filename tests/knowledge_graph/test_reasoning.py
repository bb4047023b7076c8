"""
Unit tests for the Claude reasoning provider (client mocked).
"""

from unittest.mock import MagicMock, patch

import httpx
import pytest
from anthropic import InternalServerError, RateLimitError

from src.knowledge_graph.config import ReasoningConfig
from src.knowledge_graph.exceptions import ConfigurationError, ReasoningError
from src.knowledge_graph.reasoning import (
    ANALYSIS_PROMPT,
    ClaudeReasoningProvider,
    create_reasoning_provider,
)

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _rate_limit_error():
    return RateLimitError(
        "rate limited", response=httpx.Response(429, request=_REQUEST), body=None
    )


def _server_error():
    return InternalServerError(
        "overloaded", response=httpx.Response(500, request=_REQUEST), body=None
    )


def _message(text):
    message = MagicMock()
    block = MagicMock()
    block.type = "text"
    block.text = text
    message.content = [block]
    message.usage.input_tokens = 10
    message.usage.output_tokens = 5
    return message


class TestClaudeReasoningProvider:
    def setup_method(self):
        self.client = MagicMock()
        self.config = ReasoningConfig(api_key="test-key", max_retries=3, retry_delay=0.5)
        self.provider = ClaudeReasoningProvider(self.config, client=self.client)

    def test_prompt_contains_question_and_data(self):
        self.client.messages.create.return_value = _message("  Two people.  ")

        result = self.provider.analyze("Who?", '[{"name": "Ada"}]')

        assert result == "Two people."
        kwargs = self.client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-haiku-4-5"
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"][0]["content"] == ANALYSIS_PROMPT.format(
            question="Who?", data='[{"name": "Ada"}]'
        )

    def test_model_shortcut_resolved(self):
        provider = ClaudeReasoningProvider(
            ReasoningConfig(api_key="k", model="sonnet"), client=self.client
        )
        assert provider.model == "claude-sonnet-4-5"

    @patch("src.knowledge_graph.reasoning.time.sleep")
    def test_rate_limit_retried_with_backoff(self, sleep):
        self.client.messages.create.side_effect = [
            _rate_limit_error(),
            _rate_limit_error(),
            _message("ok"),
        ]

        assert self.provider.analyze("Q", "[]") == "ok"
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]

    @patch("src.knowledge_graph.reasoning.time.sleep")
    def test_rate_limit_exhausted(self, sleep):
        self.client.messages.create.side_effect = _rate_limit_error()

        with pytest.raises(ReasoningError, match="Rate limit exceeded"):
            self.provider.analyze("Q", "[]")
        assert self.client.messages.create.call_count == 3

    def test_api_error_not_retried(self):
        self.client.messages.create.side_effect = _server_error()

        with pytest.raises(ReasoningError):
            self.provider.analyze("Q", "[]")
        assert self.client.messages.create.call_count == 1

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError):
            ClaudeReasoningProvider(ReasoningConfig(api_key=None))


class TestCreateReasoningProvider:
    def test_anthropic(self):
        with patch("src.knowledge_graph.reasoning.Anthropic") as anthropic_cls:
            provider = create_reasoning_provider(ReasoningConfig(api_key="k"))

        assert isinstance(provider, ClaudeReasoningProvider)
        anthropic_cls.assert_called_once_with(api_key="k")

    def test_unsupported(self):
        with pytest.raises(ConfigurationError):
            create_reasoning_provider(ReasoningConfig(provider="other", api_key="k"))
