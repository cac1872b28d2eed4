"""
Mock 알림 서비스

Ledger 보상/되돌리기 실패 알림을 메모리에 쌓아 두는 INotifier 구현체.
테스트에서 어떤 오퍼레이션의 어떤 단계가 복구되지 못했는지 확인할 때 사용.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

ALERT_LEVEL = "CRITICAL"


@dataclass
class NotificationRecord:
    """수신된 알림 1건"""

    message: str
    level: str
    extra: dict[str, Any] = field(default_factory=dict)
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    delivered: bool = True

    @property
    def is_alert(self) -> bool:
        return self.level == ALERT_LEVEL

    @property
    def failed_steps(self) -> list[str]:
        """extra["failed_steps"] ("a, b") → ["a", "b"]"""
        raw = self.extra.get("failed_steps")
        if not raw:
            return []
        return [step.strip() for step in str(raw).split(",")]


class MockNotifier:
    """Mock 알림 서비스

    사용 예시:
    ```python
    notifier = MockNotifier()
    orchestrator = LedgerOrchestrator(store, notifier=notifier)

    ...  # 보상 실패 유발

    assert notifier.failed_steps() == ["stock:10#1"]
    ```

    Args:
        should_fail: True면 발송 실패를 흉내 냄 (기록은 남김)
    """

    def __init__(self, should_fail: bool = False):
        self.should_fail = should_fail
        self.notifications: list[NotificationRecord] = []

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        delivered = not self.should_fail
        self.notifications.append(
            NotificationRecord(
                message=message,
                level=level,
                extra=dict(extra or {}),
                delivered=delivered,
            )
        )
        return delivered

    # -------------------------------------------------------------------------
    # 테스트 헬퍼
    # -------------------------------------------------------------------------

    def get_critical(self) -> list[NotificationRecord]:
        """보상/되돌리기 실패 알림"""
        return [n for n in self.notifications if n.is_alert]

    def alerts_for(self, operation: str) -> list[NotificationRecord]:
        """메시지에 오퍼레이션 이름이 포함된 CRITICAL 알림"""
        return [n for n in self.get_critical() if operation in n.message]

    def failed_steps(self) -> list[str]:
        """모든 CRITICAL 알림의 실패 단계 (수신 순서)"""
        return [step for n in self.get_critical() for step in n.failed_steps]

    @property
    def message_count(self) -> int:
        return len(self.notifications)

    @property
    def undelivered_count(self) -> int:
        return sum(1 for n in self.notifications if not n.delivered)
