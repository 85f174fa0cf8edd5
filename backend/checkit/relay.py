from __future__ import annotations
import logging
from typing import Any, Callable, Optional

from .bedrock_client import BedrockRuntimeClient, ModelInvoker, build_strategies
from .errors import EmptyOutputError, InvocationError, RelayError, ValidationError
from .interpreter import FeedbackResult, interpret_feedback
from .prompts import build_feedback_prompt
from .settings import Credentials, Settings

logger = logging.getLogger(__name__)


class EssayAnalysisRelay:
	"""Validate an essay, ask the configured Bedrock model for feedback, reshape the reply.

	Holds only immutable configuration, so one instance can serve concurrent requests.
	"""

	def __init__(self, settings: Settings, *, client_factory: Optional[Callable[..., Any]] = None) -> None:
		self.settings = settings
		self._client_factory = client_factory or BedrockRuntimeClient

	def validate_essay(self, essay: Any) -> str:
		if not isinstance(essay, str) or not essay.strip():
			raise ValidationError("Essay text is required and cannot be empty")
		text = essay.strip()
		if len(text) < self.settings.min_essay_chars:
			raise ValidationError(f"Missing or too-short essay text (min {self.settings.min_essay_chars} chars).")
		if len(text) > self.settings.max_essay_chars:
			raise ValidationError(f"Essay text is too long (max {self.settings.max_essay_chars} chars).")
		return text

	async def analyze(self, essay: Any) -> FeedbackResult:
		logger.info("Essay analysis request started")
		text = self.validate_essay(essay)
		credentials = self.settings.credentials()
		logger.info("Essay length: %d characters", len(text))

		prompt = build_feedback_prompt(text, max_items=self.settings.feedback_max_items)
		raw = await self._invoke(credentials, prompt)
		if not raw or not raw.strip():
			raise EmptyOutputError("Model returned empty output")

		try:
			result = interpret_feedback(raw, fallback=self.settings.feedback_fallback)
		except Exception as exc:
			logger.exception("Failed to interpret model output")
			raise InvocationError("Failed to interpret model output", details=str(exc)) from exc
		logger.info(
			"Analysis completed: %d positive, %d negative feedback items",
			len(result.positive_feedback),
			len(result.negative_feedback),
		)
		return result

	async def _invoke(self, credentials: Credentials, prompt: str) -> str:
		client = self._client_factory(credentials, timeout=self.settings.bedrock_timeout_seconds)
		try:
			invoker = ModelInvoker(client, build_strategies(self.settings, credentials.model_id))
			return await invoker.invoke(prompt)
		except RelayError:
			raise
		except Exception as exc:
			logger.exception("Unexpected error while invoking Bedrock")
			raise InvocationError(
				"Failed to analyze essay. Please check your AWS Bedrock configuration and try again.",
				details=str(exc),
			) from exc
		finally:
			await client.aclose()
