import logging
from typing import List, Literal, Optional

import requests
from pydantic import BaseModel

from pytest_chatreport.config import DiscordConfig, TelegramConfig

logger = logging.getLogger(__name__)


class Dto(BaseModel):
    pass


def map_to_json(dto: Dto) -> str:
    return dto.model_dump_json(exclude_none=True)


def api_request(
    method: str,
    url: str,
    request: Optional[Dto] = None,
    timeout: Optional[float] = None,
) -> requests.Response:
    headers = {"Content-Type": "application/json"}
    json_str: Optional[str] = None
    if request:
        json_str = map_to_json(request)
    resp = requests.request(
        method=method, url=url, data=json_str, headers=headers, timeout=timeout
    )
    resp.raise_for_status()
    if not 200 <= resp.status_code < 300:
        raise requests.HTTPError(
            f"{resp.status_code} response from {url}", response=resp
        )
    return resp


class DiscordEmbedField(Dto):
    name: str
    value: str
    inline: Optional[bool] = None


class DiscordEmbedFooter(Dto):
    text: str


class DiscordEmbed(Dto):
    title: str
    description: Optional[str] = None
    color: int
    fields: List[DiscordEmbedField] = []
    footer: Optional[DiscordEmbedFooter] = None
    timestamp: Optional[str] = None


class DiscordWebhookPayload(Dto):
    content: Optional[str] = None
    embeds: List[DiscordEmbed] = []


class TelegramSendMessageRequest(Dto):
    chat_id: str
    text: str
    parse_mode: Literal["HTML"] = "HTML"
    disable_web_page_preview: bool = True


def _post(url: str, request: Dto, timeout: float, log_prefix: str) -> bool:
    try:
        api_request(method="POST", url=url, request=request, timeout=timeout)
    except requests.HTTPError as e:
        resp = e.response
        logger.error(
            "[%s] Failed to send message - Status: %s, Error: %s",
            log_prefix,
            resp.status_code if resp is not None else "?",
            resp.text if resp is not None else e,
        )
        return False
    except requests.RequestException as e:
        logger.error("[%s] Error sending message - %s", log_prefix, e)
        return False
    logger.info("[%s] Notification sent successfully", log_prefix)
    return True


class DiscordWebhookClient:
    def __init__(
        self, config: DiscordConfig, log_prefix: str = "Discord Reporter"
    ) -> None:
        self.config = config
        self.log_prefix = log_prefix

    def is_configured(self) -> bool:
        return self.config.is_configured()

    def send(
        self, payload: DiscordWebhookPayload, webhook_url: Optional[str] = None
    ) -> bool:
        """POST one payload to the webhook. Never raises.

        ``webhook_url`` overrides the configured webhook for this call only.
        """
        url = webhook_url or self.config.webhook_url
        if not url:
            logger.warning("[%s] Skipped - missing webhook URL", self.log_prefix)
            return False
        return _post(
            url=url,
            request=payload,
            timeout=self.config.timeout,
            log_prefix=self.log_prefix,
        )

    def send_message(self, content: str, webhook_url: Optional[str] = None) -> bool:
        return self.send(
            DiscordWebhookPayload(content=content, embeds=[]), webhook_url=webhook_url
        )


class TelegramBotClient:
    def __init__(
        self, config: TelegramConfig, log_prefix: str = "Telegram Reporter"
    ) -> None:
        self.config = config
        self.log_prefix = log_prefix

    def is_configured(self) -> bool:
        return self.config.is_configured()

    def send(self, text: str) -> bool:
        """Send an HTML message through the bot API. Never raises."""
        if not self.is_configured():
            logger.warning(
                "[%s] Skipped - missing bot token or chat id", self.log_prefix
            )
            return False
        request = TelegramSendMessageRequest(chat_id=self.config.chat_id, text=text)
        return _post(
            url=self.config.send_message_url,
            request=request,
            timeout=self.config.timeout,
            log_prefix=self.log_prefix,
        )
