from typing import List, Optional
from pydantic import PostgresDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Arbitration Case Analysis"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/v1"
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "arbitration"
    POSTGRES_PORT: int = 5432
    # Full URL override (e.g. sqlite+aiosqlite:///./analysis.db for local runs)
    DATABASE_URL: Optional[str] = None

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return str(PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        ))

    # LLM providers per quality tier: anthropic | openai | azure_openai | ollama
    LLM_PROVIDER_FAST: str = "anthropic"
    LLM_PROVIDER_REASONING: str = "anthropic"

    # Anthropic
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL_FAST: str = "claude-3-5-haiku-latest"
    ANTHROPIC_MODEL_REASONING: str = "claude-sonnet-4-5"

    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL_FAST: str = "gpt-4o-mini"
    OPENAI_MODEL_REASONING: str = "gpt-4o"

    # Azure OpenAI
    AZURE_OPENAI_API_KEY: Optional[str] = None
    AZURE_OPENAI_ENDPOINT: Optional[str] = None
    AZURE_OPENAI_API_VERSION: str = "2024-10-21"
    AZURE_OPENAI_MODEL_FAST: str = "gpt-4o-mini"
    AZURE_OPENAI_MODEL_REASONING: str = "gpt-4o"

    # Ollama
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL_FAST: str = "gemma3:12b"
    OLLAMA_MODEL_REASONING: str = "gpt-oss:20b"

    # Analysis pipeline
    ANALYSIS_LLM_TIMEOUT_SECONDS: float = 120.0
    ANALYSIS_LLM_MAX_ATTEMPTS: int = 2
    ANALYSIS_LLM_RETRY_MIN_WAIT: float = 1.0
    ANALYSIS_LLM_RETRY_MAX_WAIT: float = 8.0
    ANALYSIS_COST_PER_MILLION_TOKENS: float = 4.5
    ANALYSIS_BATCH_SIZE: int = 5
    ANALYSIS_MAX_CONCURRENT_JOBS: int = 2

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")

settings = Settings()
