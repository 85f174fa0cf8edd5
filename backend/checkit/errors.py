from __future__ import annotations
from typing import Any, Dict, Iterable, Optional


class RelayError(Exception):
	"""Base error for the essay-analysis relay.

	Each subclass carries the HTTP status it maps to. ``details`` is optional
	operator-facing text (e.g. the provider's error body).
	"""

	status_code = 500

	def __init__(self, message: str, *, details: Optional[str] = None) -> None:
		super().__init__(message)
		self.message = message
		self.details = details

	def to_payload(self, secrets: Iterable[Optional[str]] = ()) -> Dict[str, Any]:
		payload: Dict[str, Any] = {"success": False, "error": redact(self.message, secrets)}
		if self.details:
			payload["details"] = redact(self.details, secrets)
		return payload


class ValidationError(RelayError):
	status_code = 400


class ConfigurationError(RelayError):
	status_code = 500


class InvocationError(RelayError):
	status_code = 500


class SigningError(InvocationError):
	pass


class EmptyOutputError(RelayError):
	status_code = 502


def redact(text: str, secrets: Iterable[Optional[str]]) -> str:
	for secret in secrets:
		if secret:
			text = text.replace(secret, "****")
	return text
