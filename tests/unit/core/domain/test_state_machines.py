"""
core/domain/state_machines.py 테스트
"""

import pytest

from core.domain.state_machines import (
    StateMachine,
    StateMachineError,
    TransactionStateMachine,
)
from core.types import TransactionStatus


class TestStateMachine:
    """기본 상태 머신 테스트"""

    def test_transition_records_history(self) -> None:
        machine = StateMachine("a", {"a": ["b"], "b": ["c"]})

        machine.transition("b")
        machine.transition("c")

        assert machine.state == "c"
        assert machine.history == [("a", "b"), ("b", "c")]

    def test_invalid_transition(self) -> None:
        machine = StateMachine("a", {"a": ["b"]}, name="Test")

        with pytest.raises(StateMachineError, match="Cannot transition from a to c"):
            machine.transition("c")
        assert machine.state == "a"

    def test_allowed_targets_of_unknown_state(self) -> None:
        assert StateMachine("z", {"a": ["b"]}).allowed_targets() == []


class TestTransactionStateMachine:
    """거래 상태 전이 테스트"""

    def test_default_pending(self) -> None:
        assert TransactionStateMachine().state == "pending"

    @pytest.mark.parametrize(
        "source,target",
        [
            (TransactionStatus.PENDING, TransactionStatus.COMPLETE),
            (TransactionStatus.PENDING, TransactionStatus.CANCEL),
            (TransactionStatus.COMPLETE, TransactionStatus.CANCEL),
        ],
    )
    def test_allowed(self, source: TransactionStatus, target: TransactionStatus) -> None:
        assert TransactionStateMachine(source).can_transition(target)

    @pytest.mark.parametrize(
        "source,target",
        [
            (TransactionStatus.CANCEL, TransactionStatus.CANCEL),
            (TransactionStatus.CANCEL, TransactionStatus.COMPLETE),
            (TransactionStatus.COMPLETE, TransactionStatus.PENDING),
        ],
    )
    def test_rejected(self, source: TransactionStatus, target: TransactionStatus) -> None:
        machine = TransactionStateMachine(source)

        with pytest.raises(StateMachineError):
            machine.transition(target)

    def test_affects_aggregates_only_when_complete(self) -> None:
        assert TransactionStateMachine(TransactionStatus.COMPLETE).affects_aggregates
        assert not TransactionStateMachine(TransactionStatus.PENDING).affects_aggregates
        assert not TransactionStateMachine(TransactionStatus.CANCEL).affects_aggregates

    def test_cancel_is_terminal(self) -> None:
        machine = TransactionStateMachine(TransactionStatus.COMPLETE)
        machine.transition(TransactionStatus.CANCEL)

        assert machine.is_terminal
        assert machine.allowed_targets() == []
