from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


@dataclass(frozen=True)
class Credentials:
	region: str
	access_key_id: str
	secret_access_key: str
	model_id: str

	def __repr__(self) -> str:
		return f"Credentials(region={self.region!r}, access_key_id={mask_secret(self.access_key_id)!r}, model_id={self.model_id!r})"


def mask_secret(value: Optional[str], visible: int = 8) -> str:
	if not value:
		return "Not set"
	return f"{value[:visible]}..."


class Settings(BaseSettings):
	# AWS / Bedrock
	aws_region: str = Field(default="us-east-1", validation_alias=AliasChoices("AWS_REGION", "AWS_DEFAULT_REGION"))
	aws_access_key_id: Optional[str] = Field(default=None, validation_alias="AWS_ACCESS_KEY_ID")
	aws_secret_access_key: Optional[str] = Field(default=None, validation_alias="AWS_SECRET_ACCESS_KEY")
	bedrock_model_id: Optional[str] = Field(default=None, validation_alias="BEDROCK_MODEL_ID")
	# "auto" tries the Converse API first and falls back to InvokeModel
	bedrock_invocation_mode: Literal["auto", "converse", "invoke"] = Field(default="auto", validation_alias="BEDROCK_INVOCATION_MODE")
	# Request body flavour for InvokeModel; "auto" detects it from the model id
	bedrock_model_family: Literal["auto", "anthropic", "llama", "titan", "completion"] = Field(default="auto", validation_alias="BEDROCK_MODEL_FAMILY")
	bedrock_anthropic_version: str = Field(default="bedrock-2023-05-31", validation_alias="BEDROCK_ANTHROPIC_VERSION")
	bedrock_temperature: float = Field(default=0.3, validation_alias="BEDROCK_TEMPERATURE")
	bedrock_top_p: float = Field(default=0.9, validation_alias="BEDROCK_TOP_P")
	bedrock_max_tokens: int = Field(default=800, validation_alias="BEDROCK_MAX_TOKENS")
	bedrock_timeout_seconds: float = Field(default=60.0, validation_alias="BEDROCK_TIMEOUT_SECONDS")

	# Essay validation and feedback shaping
	min_essay_chars: int = Field(default=20, validation_alias="MIN_ESSAY_CHARS")
	max_essay_chars: int = Field(default=20000, validation_alias="MAX_ESSAY_CHARS")
	feedback_max_items: Optional[int] = Field(default=None, validation_alias="FEEDBACK_MAX_ITEMS")
	feedback_fallback: Literal["classify", "split"] = Field(default="classify", validation_alias="FEEDBACK_FALLBACK")

	# HTTP server
	cors_allow_origin: str = Field(default="*", validation_alias="CORS_ALLOW_ORIGIN")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	host: str = Field(default="0.0.0.0", validation_alias="HOST")
	port: int = Field(default=8787, validation_alias="PORT")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

	@property
	def bedrock_configured(self) -> bool:
		return bool(self.aws_access_key_id and self.aws_secret_access_key and self.bedrock_model_id)

	def credentials(self) -> Credentials:
		missing = [
			name
			for name, value in (
				("AWS_ACCESS_KEY_ID", self.aws_access_key_id),
				("AWS_SECRET_ACCESS_KEY", self.aws_secret_access_key),
				("BEDROCK_MODEL_ID", self.bedrock_model_id),
			)
			if not value
		]
		if missing:
			raise ConfigurationError(
				f"AWS credentials or model ID not configured. Please set {', '.join(missing)}.",
				details=(
					f"Access Key ID: {'Set' if self.aws_access_key_id else 'Missing'}, "
					f"Secret Access Key: {'Set' if self.aws_secret_access_key else 'Missing'}, "
					f"Model ID: {'Set' if self.bedrock_model_id else 'Missing'}"
				),
			)
		return Credentials(
			region=self.aws_region or "us-east-1",
			access_key_id=self.aws_access_key_id,
			secret_access_key=self.aws_secret_access_key,
			model_id=self.bedrock_model_id,
		)


@lru_cache
def get_settings() -> Settings:
	return Settings()
