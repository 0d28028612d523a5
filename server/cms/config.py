from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = Field(default="blog-cms", alias="APP_NAME")
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(default="sqlite:///./data.db", alias="DATABASE_URL")

    # Empty disables the read cache entirely
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    redis_cache_ttl_seconds: int = Field(default=300, alias="REDIS_CACHE_TTL_SECONDS")

    backend_cors_origins: str = Field(default="http://localhost:3000,http://localhost:3001", alias="BACKEND_CORS_ORIGINS")
    backend_cors_regex: str | None = Field(default=None, alias="BACKEND_CORS_REGEX")
    site_base_url: str = Field(default="http://localhost:3000", alias="SITE_BASE_URL")

    slug_max_length: int = Field(default=100, alias="SLUG_MAX_LENGTH")
    # Suffixed probes tried by the slug resolver before giving up
    slug_max_attempts: int = Field(default=100, alias="SLUG_MAX_ATTEMPTS")
    words_per_minute: int = Field(default=200, alias="WORDS_PER_MINUTE")
    feed_size: int = Field(default=50, alias="FEED_SIZE")

    def model_post_init(self, __context) -> None:  # type: ignore[override]
        def _clean(v: str | None) -> str | None:
            if v is None:
                return None
            s = v.strip()
            if len(s) >= 2 and s[0] == s[-1] and s[0] in ('"', "'"):
                s = s[1:-1].strip()
            # Treat empty strings as unset so REDIS_URL="" switches caching off
            if s == "":
                return None
            return s

        # Normalize common string envs (handles quoted values in .env)
        self.database_url = _clean(self.database_url) or "sqlite:///./data.db"  # type: ignore[assignment]
        self.redis_url = _clean(self.redis_url)  # type: ignore[assignment]
        self.log_level = _clean(self.log_level) or "INFO"  # type: ignore[assignment]
        self.backend_cors_origins = _clean(self.backend_cors_origins) or "http://localhost:3000"  # type: ignore[assignment]
        self.backend_cors_regex = _clean(self.backend_cors_regex)  # type: ignore[assignment]
        self.site_base_url = _clean(self.site_base_url) or "http://localhost:3000"  # type: ignore[assignment]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()  # singleton
