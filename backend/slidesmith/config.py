from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Slidesmith"

    log_level: str = "INFO"
    log_preview_chars: int = 180

    engine_version: str = "1.0.0"
    renderer_cache_size: int = 256
    pipeline_cache_size: int = 128
    pipeline_cache_ttl_seconds: float | None = None
    cache_cleanup_interval_seconds: float = 0.0

    max_lines_per_slide: int = 20
    min_lines_per_slide: int = 3
    key_topics_limit: int = 7
    words_per_slide: int = 120
    quality_checks: bool = False

    model_config = SettingsConfigDict(
        env_prefix="SLIDESMITH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
