"""
Saga 코디네이터

여러 레코드에 걸친 오퍼레이션을 (실행, 보상) 단계 목록으로 실행.
k번째 단계가 실패하면 1..k-1 단계의 보상을 역순으로 실행한 뒤
원래 오류를 그대로 다시 던진다.

보상은 best-effort:
- 보상 단계 실패는 재시도하지 않음
- ERROR 로그 + 원래 오류의 compensation_failures에 기록
- notifier가 있으면 CRITICAL 알림 전송
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from core.ledger.errors import CompensationFailure, LedgerError

if TYPE_CHECKING:
    from adapters.interfaces import INotifier

logger = logging.getLogger(__name__)


Action = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class SagaStep:
    """Saga 단계

    Attributes:
        name: 단계 이름 (로그/알림용)
        action: 실행 함수
        compensation: 보상 함수 (없으면 되돌릴 것이 없는 단계)
    """

    name: str
    action: Action
    compensation: Action | None = None


class Saga:
    """Saga 실행기

    Args:
        name: Saga 이름 (예: "record_sale")
        notifier: 보상 실패 알림용 (선택)
        context: 로그/알림에 함께 남길 정보

    사용 예시:
    ```python
    saga = Saga("record_sale", context={"business_id": 1})
    saga.add_step("create_header", create_header, compensation=delete_header)
    saga.add_step("apply_balance", apply_balance)
    results = await saga.execute()
    ```
    """

    def __init__(
        self,
        name: str,
        notifier: "INotifier | None" = None,
        context: dict[str, Any] | None = None,
    ):
        self.name = name
        self.notifier = notifier
        self.context = context or {}
        self._steps: list[SagaStep] = []
        self._completed: list[SagaStep] = []

    @property
    def steps(self) -> list[SagaStep]:
        return list(self._steps)

    @property
    def completed_steps(self) -> list[str]:
        """실행 완료된 단계 이름 (보상 전 기준)"""
        return [step.name for step in self._completed]

    def add_step(
        self,
        name: str,
        action: Action,
        compensation: Action | None = None,
    ) -> "Saga":
        """단계 추가 (체이닝 가능)"""
        self._steps.append(SagaStep(name=name, action=action, compensation=compensation))
        return self

    async def execute(self) -> list[Any]:
        """모든 단계 순차 실행

        Returns:
            단계별 실행 결과 목록

        Raises:
            실패한 단계의 원래 예외 (보상 실행 후)
        """
        results: list[Any] = []
        self._completed = []

        for step in self._steps:
            try:
                result = await step.action()
            except Exception as e:
                logger.warning(
                    f"Saga step failed: {self.name}.{step.name}: {e}",
                    extra={**self.context, "completed": self.completed_steps},
                )
                failures = await self._compensate()
                if isinstance(e, LedgerError):
                    e.compensation_failures.extend(failures)
                raise

            self._completed.append(step)
            results.append(result)
            logger.debug(f"Saga step done: {self.name}.{step.name}")

        return results

    async def _compensate(self) -> list[CompensationFailure]:
        """완료된 단계를 역순으로 보상"""
        failures: list[CompensationFailure] = []

        for step in reversed(self._completed):
            if step.compensation is None:
                continue

            try:
                await step.compensation()
                logger.info(f"Saga compensated: {self.name}.{step.name}")
            except Exception as e:
                failure = CompensationFailure(step=step.name, error=str(e))
                failures.append(failure)
                logger.error(
                    f"Saga compensation failed: {self.name}.{step.name}: {e}",
                    extra=self.context,
                    exc_info=True,
                )

        if failures:
            await self._alert(failures)

        return failures

    async def _alert(self, failures: list[CompensationFailure]) -> None:
        """보상 실패 알림 (운영자 확인 필요)"""
        if self.notifier is None:
            return

        extra: dict[str, Any] = dict(self.context)
        extra["failed_steps"] = ", ".join(f.step for f in failures)
        await self.notifier.send(
            f"Ledger compensation incomplete: {self.name}",
            level="CRITICAL",
            extra=extra,
        )
