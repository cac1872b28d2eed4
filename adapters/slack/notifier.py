"""
Slack 알림 서비스

Ledger 보상(롤백) 실패처럼 운영자가 직접 확인해야 하는 상황을
Slack Incoming Webhook으로 전송.
INotifier Protocol 준수.
"""

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from core.config.loader import AppSettings

logger = logging.getLogger(__name__)


# 레벨별 이모지
LEVEL_EMOJI = {
    "INFO": ":information_source:",
    "WARNING": ":warning:",
    "ERROR": ":x:",
    "CRITICAL": ":rotating_light:",
}

# 레벨별 attachment 색상
LEVEL_COLOR = {
    "INFO": "#36A64F",
    "WARNING": "#FFA500",
    "ERROR": "#FF0000",
    "CRITICAL": "#8B0000",
}


class SlackNotifier:
    """Slack 알림 서비스

    사용 예시:
    ```python
    async with SlackNotifier(webhook_url="https://hooks.slack.com/...") as notifier:
        orchestrator = LedgerOrchestrator(store, notifier=notifier)
        ...
    ```

    Args:
        webhook_url: Slack Incoming Webhook URL
        channel: 채널 오버라이드 (기본값은 Webhook 설정 사용)
        username: 메시지 발송자 이름
        timeout: HTTP 요청 타임아웃 (초)
    """

    def __init__(
        self,
        webhook_url: str,
        channel: str | None = None,
        username: str = "BizLedger",
        timeout: float = 10.0,
    ):
        if not webhook_url:
            raise ValueError("webhook_url은 필수입니다")

        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.timeout = timeout

        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: "AppSettings") -> "SlackNotifier | None":
        """설정에 webhook URL이 있을 때만 생성"""
        if not settings.slack_webhook_url:
            return None
        return cls(webhook_url=settings.slack_webhook_url)

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTP 클라이언트 반환 (lazy initialization)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def build_payload(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Slack 페이로드 구성

        extra 항목은 attachment field로 표시 (값은 문자열 변환).
        """
        emoji = LEVEL_EMOJI.get(level, ":bell:")
        attachment: dict[str, Any] = {
            "color": LEVEL_COLOR.get(level, "#808080"),
            "text": f"{emoji} *[{level}]* {message}",
            "footer": f"BizLedger | {self._format_timestamp()}",
        }

        if extra:
            attachment["fields"] = [
                {"title": key, "value": str(value), "short": True}
                for key, value in extra.items()
            ]

        payload: dict[str, Any] = {
            "username": self.username,
            "attachments": [attachment],
        }
        if self.channel:
            payload["channel"] = self.channel
        return payload

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """알림 전송

        전송 실패는 로그만 남기고 False 반환 (호출한 Ledger 오퍼레이션에 영향 없음).
        """
        payload = self.build_payload(message, level, extra)

        try:
            client = await self._get_client()
            response = await client.post(self.webhook_url, json=payload)
        except httpx.TimeoutException:
            logger.error("Slack 알림 전송 타임아웃")
            return False
        except httpx.HTTPError as e:
            logger.error("Slack 알림 전송 HTTP 에러: %s", e)
            return False

        if response.status_code != 200:
            logger.warning(
                "Slack 알림 전송 실패: status=%s, body=%s",
                response.status_code,
                response.text,
            )
            return False

        logger.debug("Slack 알림 전송 성공")
        return True

    @staticmethod
    def _format_timestamp() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

    async def __aenter__(self) -> "SlackNotifier":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
