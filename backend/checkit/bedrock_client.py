from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from .errors import InvocationError, SigningError
from .settings import Credentials, Settings, mask_secret
from .sigv4 import sign_request

logger = logging.getLogger(__name__)


class BedrockRuntimeClient:
	"""Minimal Bedrock Runtime client: SigV4-signed JSON POSTs over httpx."""

	def __init__(
		self,
		credentials: Credentials,
		*,
		timeout: float = 60.0,
		clock: Optional[Callable[[], datetime]] = None,
	) -> None:
		self.credentials = credentials
		self.host = f"bedrock-runtime.{credentials.region}.amazonaws.com"
		self._clock = clock or (lambda: datetime.now(timezone.utc))
		self._client = httpx.AsyncClient(timeout=timeout)

	def model_path(self, action: str) -> str:
		return f"/model/{quote(self.credentials.model_id, safe='')}/{action}"

	async def converse(self, payload: Dict[str, Any]) -> Dict[str, Any]:
		return await self._post("converse", payload)

	async def invoke_model(self, payload: Dict[str, Any]) -> Dict[str, Any]:
		return await self._post("invoke", payload)

	async def _post(self, action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
		path = self.model_path(action)
		body = json.dumps(payload).encode("utf-8")
		signed = sign_request(
			host=self.host,
			path=path,
			body=body,
			region=self.credentials.region,
			access_key_id=self.credentials.access_key_id,
			secret_access_key=self.credentials.secret_access_key,
			now=self._clock(),
		)
		endpoint = f"https://{self.host}{path}"
		logger.info(
			"Invoking Bedrock model %s (%s) in %s with key %s",
			self.credentials.model_id,
			action,
			self.credentials.region,
			mask_secret(self.credentials.access_key_id),
		)
		headers = {**signed.headers, "Accept": "application/json"}
		try:
			r = await self._client.post(endpoint, content=body, headers=headers)
		except httpx.RequestError as net_err:
			raise InvocationError(f"Bedrock request failed: {net_err.__class__.__name__}: {net_err}") from net_err
		logger.info("Bedrock response status: %s", r.status_code)
		if r.is_error:
			raise InvocationError(
				f"Bedrock API error: {r.status_code} {r.reason_phrase}",
				details=r.text,
			)
		try:
			return r.json()
		except ValueError as err:
			raise InvocationError("Bedrock returned a non-JSON response", details=r.text[:500]) from err

	async def aclose(self) -> None:
		await self._client.aclose()


def detect_model_family(model_id: str) -> str:
	mid = model_id.lower()
	# Imported custom models are served with the Anthropic messages contract
	if "anthropic" in mid or "imported-model" in mid:
		return "anthropic"
	if "meta." in mid or "llama" in mid:
		return "llama"
	if "amazon.titan" in mid:
		return "titan"
	return "completion"


def build_invoke_body(family: str, prompt: str, settings: Settings) -> Dict[str, Any]:
	if family == "anthropic":
		return {
			"anthropic_version": settings.bedrock_anthropic_version,
			"max_tokens": settings.bedrock_max_tokens,
			"temperature": settings.bedrock_temperature,
			"messages": [{"role": "user", "content": prompt}],
		}
	if family == "llama":
		return {
			"prompt": prompt,
			"temperature": settings.bedrock_temperature,
			"top_p": settings.bedrock_top_p,
			"max_gen_len": settings.bedrock_max_tokens,
		}
	if family == "titan":
		return {
			"inputText": prompt,
			"textGenerationConfig": {
				"maxTokenCount": settings.bedrock_max_tokens,
				"temperature": settings.bedrock_temperature,
				"topP": settings.bedrock_top_p,
			},
		}
	return {
		"prompt": prompt,
		"max_tokens_to_sample": settings.bedrock_max_tokens,
		"temperature": settings.bedrock_temperature,
		"top_p": settings.bedrock_top_p,
	}


def extract_invoke_text(data: Any) -> str:
	if not isinstance(data, dict):
		raise InvocationError("Unexpected response format from Bedrock model")
	content = data.get("content")
	if isinstance(content, list) and content:
		first = content[0]
		if isinstance(first, dict) and isinstance(first.get("text"), str):
			return first["text"]
	for key in ("completion", "output_text", "generated_text", "generation"):
		value = data.get(key)
		if isinstance(value, str):
			return value
	for key, inner in (("results", "outputText"), ("outputs", "text")):
		items = data.get(key)
		if isinstance(items, list) and items and isinstance(items[0], dict) and isinstance(items[0].get(inner), str):
			return items[0][inner]
	raise InvocationError(
		"Unexpected response format from Bedrock model",
		details=f"response keys: {sorted(data.keys())}",
	)


class ConverseStrategy:
	"""Conversational interface: structured message list plus inference parameters."""

	name = "converse"

	def __init__(self, settings: Settings) -> None:
		self.settings = settings

	async def run(self, client: BedrockRuntimeClient, prompt: str) -> str:
		data = await client.converse({
			"messages": [{"role": "user", "content": [{"text": prompt}]}],
			"inferenceConfig": {
				"temperature": self.settings.bedrock_temperature,
				"maxTokens": self.settings.bedrock_max_tokens,
				"topP": self.settings.bedrock_top_p,
			},
		})
		try:
			content = data["output"]["message"]["content"]
		except (KeyError, TypeError) as err:
			raise InvocationError("Unexpected Converse response format from Bedrock model") from err
		if not isinstance(content, list):
			raise InvocationError("Unexpected Converse response format from Bedrock model")
		texts = [part["text"] for part in content if isinstance(part, dict) and isinstance(part.get("text"), str)]
		return "".join(texts)


class InvokeModelStrategy:
	"""Raw invocation interface: model-family specific JSON body."""

	name = "invoke"

	def __init__(self, settings: Settings, family: str) -> None:
		self.settings = settings
		self.family = family

	async def run(self, client: BedrockRuntimeClient, prompt: str) -> str:
		data = await client.invoke_model(build_invoke_body(self.family, prompt, self.settings))
		return extract_invoke_text(data)


def build_strategies(settings: Settings, model_id: str) -> List[Any]:
	family = settings.bedrock_model_family
	if family == "auto":
		family = detect_model_family(model_id)
	mode = settings.bedrock_invocation_mode
	strategies: List[Any] = []
	if mode in ("auto", "converse"):
		strategies.append(ConverseStrategy(settings))
	if mode in ("auto", "invoke"):
		strategies.append(InvokeModelStrategy(settings, family))
	return strategies


class ModelInvoker:
	"""Tries each strategy in order; the first one that returns text wins."""

	def __init__(self, client: BedrockRuntimeClient, strategies: Sequence[Any]) -> None:
		self.client = client
		self.strategies = list(strategies)

	async def invoke(self, prompt: str) -> str:
		failures: List[str] = []
		for strategy in self.strategies:
			try:
				return await strategy.run(self.client, prompt)
			except SigningError:
				raise
			except InvocationError as err:
				logger.warning("Bedrock %s strategy failed: %s", strategy.name, err.message)
				failures.append(f"{strategy.name}: {err.message}" + (f" - {err.details}" if err.details else ""))
		raise InvocationError(
			"All Bedrock invocation strategies failed",
			details="; ".join(failures) or "no invocation strategy configured",
		)
