from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    anthropic_api_key: str = ""

    llm_timeout_seconds: float = 30.0
    llm_temperature: float = 0.2

    user_timezone: str = "Asia/Seoul"

    # Reminder offset applied to confirmed schedules
    default_remind_minutes: int = 10
    # Tasks listed per bucket in the digest message
    digest_bucket_limit: int = 5

    # Sentry error tracking
    sentry_dsn: str = ""
    sentry_environment: str = "production"

    log_level: str = "INFO"
    data_dir: str = "~/.planchat"

    @property
    def has_openai(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def has_gemini(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def has_anthropic(self) -> bool:
        return bool(self.anthropic_api_key)

    @property
    def has_llm(self) -> bool:
        return self.has_openai or self.has_gemini or self.has_anthropic

    @property
    def has_sentry(self) -> bool:
        return bool(self.sentry_dsn)


settings = Settings()
