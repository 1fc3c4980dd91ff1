from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_MAX_FAILED_TESTS_TO_SHOW = 5
DISCORD_FIELD_CHAR_LIMIT = 1024
TELEGRAM_API_BASE_URL = "https://api.telegram.org"


class ReportOptions(BaseModel):
    enabled: bool = False
    include_failed_tests: bool = True
    max_failed_tests_to_show: int = Field(DEFAULT_MAX_FAILED_TESTS_TO_SHOW, ge=0)


class DiscordConfig(BaseModel):
    webhook_url: str = ""
    # Discord rejects embed field values longer than this
    field_char_limit: Optional[int] = Field(DISCORD_FIELD_CHAR_LIMIT, ge=4)
    timeout: float = 10.0

    def is_configured(self) -> bool:
        return bool(self.webhook_url)


class TelegramConfig(BaseModel):
    bot_token: str = ""
    chat_id: str = ""
    api_base_url: str = TELEGRAM_API_BASE_URL
    field_char_limit: Optional[int] = Field(None, ge=4)
    timeout: float = 10.0

    def is_configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    @property
    def send_message_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/bot{self.bot_token}/sendMessage"
