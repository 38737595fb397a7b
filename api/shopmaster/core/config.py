from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite:///./shopmaster.db"
    seed_default_catalog: bool = True
    log_level: str = "INFO"
    log_json: bool = True
    cors_origins: list[str] = ["*"]
    dashboard_days: int = 7
    max_open_carts: int = 1000

    model_config = SettingsConfigDict(
        env_prefix="SHOPMASTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
