from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    llm_model: str = "gemini-2.5-flash"
    gemini_api_key: str = ""
    gemini_api_url: str = ""
    llm_timeout_seconds: float = 30.0
    llm_max_output_tokens: int = 8192

    rate_limit_enabled: bool = True
    rate_limit_max_requests: int = 10
    rate_limit_window_seconds: float = 60.0

    runtime_data_dir: str = "data/system"
    preferences_file: str = "preferences.json"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
