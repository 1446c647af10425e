from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "HackEx Scanner"
    API_V1_STR: str = "/api/v1"

    MONGODB_URL: str
    DATABASE_NAME: str = "hackex"

    # Redis Cache Settings (public-token views live here)
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_PREFIX: str = "hx:"
    TOKEN_TTL_HOURS: int = 2

    # Worker Settings
    WORKER_COUNT: int = 2
    SCAN_TIMEOUT_SECONDS: int = 300
    SCAN_MAX_ATTEMPTS: int = 3

    # Runtime probes
    PROBE_TIMEOUT_SECONDS: float = 5.0
    HEADER_PROBE_TIMEOUT_SECONDS: float = 10.0
    PORT_PROBE_TIMEOUT_SECONDS: float = 2.0
    RATE_LIMIT_PROBE_TIMEOUT_SECONDS: float = 3.0
    PROBE_USER_AGENT: str = "HackEx-Scanner/1.0"

    # Static scanner
    SCRATCH_PATH: str = "/tmp/hackex/scans"
    MAX_UPLOAD_MB: int = 50

    # Retention
    RETENTION_HOURS: int = 24

    # Explanation backend (OpenAI compatible)
    OPENAI_API_KEY: str = ""
    OPENAI_API_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_MODEL: str = "gpt-4"
    EXPLANATION_TIMEOUT_SECONDS: float = 30.0

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
