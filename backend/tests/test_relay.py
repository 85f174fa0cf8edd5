"""Tests for the relay service with a stubbed Bedrock client."""

from __future__ import annotations

import json
import logging

import pytest

from checkit.errors import ConfigurationError, EmptyOutputError, InvocationError, ValidationError
from checkit.relay import EssayAnalysisRelay
from checkit.settings import Credentials

from conftest import ESSAY, MODEL_ID, converse_reply, make_settings


class StubClient:
	"""Stands in for BedrockRuntimeClient; records calls instead of using the network."""

	instances: list["StubClient"] = []

	def __init__(self, credentials: Credentials, *, timeout: float, reply: object = None, error: Exception | None = None) -> None:
		self.credentials = credentials
		self.timeout = timeout
		self.reply = reply
		self.error = error
		self.payloads: list[dict] = []
		self.closed = False
		StubClient.instances.append(self)

	async def converse(self, payload: dict) -> object:
		self.payloads.append(payload)
		if self.error is not None:
			raise self.error
		return self.reply

	async def invoke_model(self, payload: dict) -> object:
		raise InvocationError("invoke not stubbed")

	async def aclose(self) -> None:
		self.closed = True


def stub_factory(**kwargs: object):
	def factory(credentials: Credentials, *, timeout: float) -> StubClient:
		return StubClient(credentials, timeout=timeout, **kwargs)

	return factory


@pytest.fixture(autouse=True)
def reset_stub_instances() -> None:
	StubClient.instances.clear()


@pytest.mark.asyncio
async def test_analyze_returns_feedback_and_closes_client() -> None:
	reply = converse_reply(json.dumps({"positiveFeedback": ["Good"], "negativeFeedback": ["Bad"]}))
	relay = EssayAnalysisRelay(make_settings(), client_factory=stub_factory(reply=reply))

	result = await relay.analyze(f"   {ESSAY}   ")

	assert result.success is True
	assert result.positive_feedback == ["Good"]
	assert result.negative_feedback == ["Bad"]
	(client,) = StubClient.instances
	assert client.closed is True
	assert client.credentials.model_id == MODEL_ID
	assert client.timeout == 60.0
	prompt = client.payloads[0]["messages"][0]["content"][0]["text"]
	assert f'"""\n{ESSAY}\n"""' in prompt


@pytest.mark.asyncio
async def test_minimum_length_is_configurable() -> None:
	relay = EssayAnalysisRelay(make_settings(MIN_ESSAY_CHARS=200), client_factory=stub_factory())

	with pytest.raises(ValidationError, match="min 200 chars"):
		await relay.analyze(ESSAY)
	assert StubClient.instances == []


@pytest.mark.asyncio
async def test_missing_access_key_fails_before_client_is_built() -> None:
	relay = EssayAnalysisRelay(make_settings(AWS_ACCESS_KEY_ID=None), client_factory=stub_factory())

	with pytest.raises(ConfigurationError) as exc_info:
		await relay.analyze(ESSAY)

	assert "AWS_ACCESS_KEY_ID" in exc_info.value.message
	assert exc_info.value.status_code == 500
	assert StubClient.instances == []


@pytest.mark.asyncio
async def test_empty_output_raises_empty_output_error() -> None:
	relay = EssayAnalysisRelay(
		make_settings(BEDROCK_INVOCATION_MODE="converse"),
		client_factory=stub_factory(reply=converse_reply("   ")),
	)

	with pytest.raises(EmptyOutputError) as exc_info:
		await relay.analyze(ESSAY)

	assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_invocation_error() -> None:
	relay = EssayAnalysisRelay(
		make_settings(BEDROCK_INVOCATION_MODE="converse"),
		client_factory=stub_factory(error=RuntimeError("socket exploded")),
	)

	with pytest.raises(InvocationError) as exc_info:
		await relay.analyze(ESSAY)

	assert exc_info.value.details == "socket exploded"
	assert StubClient.instances[0].closed is True


@pytest.mark.asyncio
async def test_split_fallback_setting_is_applied() -> None:
	text = "\n".join(f"point {i}" for i in range(6))
	relay = EssayAnalysisRelay(
		make_settings(FEEDBACK_FALLBACK="split", BEDROCK_INVOCATION_MODE="converse"),
		client_factory=stub_factory(reply=converse_reply(text)),
	)

	result = await relay.analyze(ESSAY)

	assert result.positive_feedback == ["point 0", "point 1", "point 2", "point 3"]
	assert result.negative_feedback == ["point 4", "point 5"]


def test_credentials_repr_hides_secret() -> None:
	credentials = make_settings().credentials()

	assert credentials.secret_access_key not in repr(credentials)
	assert credentials.access_key_id not in repr(credentials)


@pytest.mark.asyncio
async def test_request_start_is_logged_before_validation(caplog: pytest.LogCaptureFixture) -> None:
	caplog.set_level(logging.INFO, logger="checkit.relay")
	relay = EssayAnalysisRelay(make_settings(), client_factory=stub_factory())

	with pytest.raises(ValidationError):
		await relay.analyze("short")

	assert "Essay analysis request started" in caplog.text
