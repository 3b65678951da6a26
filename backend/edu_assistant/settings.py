from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

DEFAULT_JWT_SECRET = "change-me"

class Settings(BaseSettings):
	# Any OpenAI-compatible chat-completion endpoint (DashScope, OpenRouter, vLLM, ...)
	ai_provider: str = Field(default="qwen", validation_alias="AI_PROVIDER")
	ai_api_key: str = Field(default="", validation_alias="AI_API_KEY")
	ai_endpoint: str = Field(default="https://dashscope.aliyuncs.com/compatible-mode/v1", validation_alias="AI_ENDPOINT")
	ai_model: str = Field(default="qwen-plus", validation_alias="AI_MODEL")
	# Milliseconds
	ai_timeout: int = Field(default=30000, validation_alias="AI_TIMEOUT")
	ai_max_retries: int = Field(default=3, validation_alias="AI_MAX_RETRIES")
	ai_retry_initial_delay: int = Field(default=1000, validation_alias="AI_RETRY_INITIAL_DELAY")
	# Optional ceiling for the backoff delay, unset keeps pure doubling
	ai_retry_max_delay: int | None = Field(default=None, validation_alias="AI_RETRY_MAX_DELAY")
	ai_temperature: float = Field(default=0.7, validation_alias="AI_TEMPERATURE")
	ai_max_tokens: int = Field(default=2000, validation_alias="AI_MAX_TOKENS")

	# Auth configuration
	jwt_secret_key: str = Field(default=DEFAULT_JWT_SECRET, validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=1440, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	# Comma separated list of allowed origins for the SPA
	cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@property
	def ai_configured(self) -> bool:
		return bool(self.ai_api_key)

	def cors_origin_list(self) -> list[str]:
		return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def config_warnings(cfg: Settings) -> list[str]:
	warnings: list[str] = []
	if not cfg.ai_api_key:
		warnings.append("AI_API_KEY is not configured; material generation will use local placeholders")
	if cfg.jwt_secret_key == DEFAULT_JWT_SECRET:
		warnings.append("JWT_SECRET_KEY is using the default value; set it before deploying")
	if cfg.ai_max_retries < 0:
		warnings.append("AI_MAX_RETRIES is negative; AI calls will not be retried")
	return warnings

settings = Settings()
