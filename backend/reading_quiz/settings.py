from __future__ import annotations
from typing import Any, List, Literal

from pydantic import AliasChoices, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
	# Either variable name is accepted so both deployment setups keep working
	gemini_api_key: str | None = Field(default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"))
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: Literal["ai_studio", "vertex"] = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Quiz generation reads the whole document, grading only compares two short strings
	gemini_quiz_model: str = Field(default="gemini-2.5-pro", validation_alias="GEMINI_QUIZ_MODEL")
	gemini_grading_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_GRADING_MODEL")
	gemini_timeout_seconds: float = Field(default=30.0, validation_alias="GEMINI_TIMEOUT_SECONDS")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# Upload constraints; max_upload_bytes <= 0 disables the size check
	accepted_media_types: List[str] = Field(default_factory=lambda: ["application/pdf"], validation_alias="ACCEPTED_MEDIA_TYPES")
	max_upload_bytes: int = Field(default=10 * 1024 * 1024, validation_alias="MAX_UPLOAD_BYTES")

	# "all_or_nothing" fails the whole grading phase on any error, "partial" scores failed questions as incorrect
	grading_policy: Literal["all_or_nothing", "partial"] = Field(default="all_or_nothing", validation_alias="GRADING_POLICY")

	# Idle sessions are dropped after this many seconds; the oldest are evicted past max_sessions (<= 0 disables)
	session_ttl_seconds: float = Field(default=24 * 3600, validation_alias="SESSION_TTL_SECONDS")
	max_sessions: int = Field(default=2000, validation_alias="MAX_SESSIONS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	host: str = Field(default="127.0.0.1", validation_alias="HOST")
	port: int = Field(default=8000, validation_alias="PORT")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

	def require_api_key(self) -> str:
		if not self.gemini_api_key:
			raise ConfigurationError("GEMINI_API_KEY is not configured")
		return self.gemini_api_key


def load_settings(**overrides: Any) -> Settings:
	"""Load settings from the environment and fail fast when the credential is missing."""
	try:
		settings = Settings(**overrides)
	except PydanticValidationError as e:
		raise ConfigurationError(f"Invalid configuration: {e}") from e
	settings.require_api_key()
	return settings
