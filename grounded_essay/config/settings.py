from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	ANTHROPIC_API_KEY: str | None = None
	OPENAI_API_KEY: str | None = None
	OPENROUTER_API_KEY: str | None = None

	# LLM settings
	LLM_PROVIDER: str = 'openrouter'
	WRITING_MODEL: str = 'anthropic/claude-3.5-sonnet'
	LLM_TEMPERATURE: float = 0.4
	LLM_MAX_TOKENS: int = 2000
	OPENROUTER_SITE_URL: str | None = None
	GENERATION_TIMEOUT_SECONDS: float = 90.0

	# Essay settings
	MAX_TARGET_WORD_COUNT: int = 5000
	MAX_PARAGRAPHS: int = 12
	MAX_SUPPLEMENTARY_CHUNKS: int = 5
	MIN_SUBSTANTIVE_WORDS: int = 3
	REFERENCE_MIN_SCORE: float = 0.15
	REFERENCE_TOP_K: int = 5

	# App Settings
	APP_NAME: str = 'Grounded Essay'
	LOG_LEVEL: str = 'INFO'

	# Paths
	BASE_DIR: Path = Path(__file__).parent.parent.parent
	DATA_DIR: Path = BASE_DIR / 'data'
	STORAGE_PATH: Path = DATA_DIR / 'storage'
	LOG_DIR: Path = BASE_DIR / 'logs'
	PERSIST_OUTLINES: bool = False

	model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')


settings = Settings()
