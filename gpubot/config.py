from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Bot settings loaded from environment variables."""

    # Telegram
    token: str = ""
    chat_id: int | None = None  # The only chat allowed to request /state
    gpubot_api_base_url: str = "https://api.telegram.org"

    # Polling
    gpubot_poll_timeout: int = 9  # Long-poll seconds passed to getUpdates
    gpubot_request_timeout: float = 10.0  # Must exceed the long-poll timeout
    gpubot_drop_pending_updates: bool = True
    gpubot_max_concurrent_updates: int = 50

    # nvidia-smi
    gpubot_smi_binary: str = "nvidia-smi"
    gpubot_smi_timeout: float = 30.0

    # Logging
    gpubot_log_level: str = "info"

    model_config = {"env_prefix": "", "case_sensitive": False, "env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
