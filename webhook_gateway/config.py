from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_TITLE: str = "Webhook Gateway"
    GITHUB_WEBHOOK_SECRET: str = ""
    # Raw forward target for generic activity events
    ACTIVITY_WEBHOOK_URL: str = ""
    # Issues sink: a plain webhook URL, or a channel resolved with the bot token
    ISSUES_WEBHOOK_URL: str = ""
    DISCORD_BOT_TOKEN: str = ""
    ISSUES_CHANNEL_ID: str = ""
    RELAY_TIMEOUT_SECONDS: float = 10.0
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
