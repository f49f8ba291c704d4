from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# LM Studio exposes an OpenAI-compatible chat completions endpoint
	lm_studio_api_url: str = Field(default="http://127.0.0.1:1234/v1/chat/completions", validation_alias="LM_STUDIO_API_URL")
	lm_studio_model: str = Field(default="oreal-deepseek-r1-distill-qwen-7b", validation_alias="LM_STUDIO_MODEL")
	lm_studio_timeout: float = Field(default=30.0, validation_alias="LM_STUDIO_TIMEOUT")

	# Grading defaults; low temperature keeps marks consistent between runs
	evaluation_temperature: float = Field(default=0.3, validation_alias="EVALUATION_TEMPERATURE")
	evaluation_max_tokens: int = Field(default=500, validation_alias="EVALUATION_MAX_TOKENS")
	# Pause between sequential batch requests (seconds)
	evaluation_batch_delay: float = Field(default=0.5, validation_alias="EVALUATION_BATCH_DELAY")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	# Seed admin account, created on first login attempt
	seed_username: str | None = Field(default=None, validation_alias="SEED_USERNAME")
	seed_password_plain: str | None = Field(default=None, validation_alias="SEED_PASSWORD")

	# Idle auth sessions older than this are purged
	session_retention_days: int = Field(default=7, validation_alias="SESSION_RETENTION_DAYS")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
