from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    APP_ENV: str = "development"
    LOG_LEVEL: str = "WARNING"

    # Slack Web API
    SLACK_BOT_TOKEN: str = ""
    SLACK_API_BASE_URL: str = "https://slack.com/api"
    SLACK_REQUEST_TIMEOUT: float = 10.0  # seconds, per request

    # Broadcast
    BROADCAST_PACING_SECONDS: float = 1.0  # flat delay after every send attempt
    CHANNEL_LIST_PAGE_SIZE: int = 200
    CHANNEL_CONFIG_PATH: str = "./channels.yaml"


settings = Settings()
