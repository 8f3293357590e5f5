from dataclasses import dataclass
from typing import Optional


class OperationState:
    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class PendingOperation:
    """Оптимистичная операция: pending -> committed | failed"""
    temp_id: str
    state: str = OperationState.PENDING
    resolved_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.state == OperationState.PENDING

    @property
    def is_committed(self) -> bool:
        return self.state == OperationState.COMMITTED

    @property
    def is_failed(self) -> bool:
        return self.state == OperationState.FAILED

    @property
    def current_id(self) -> str:
        return self.resolved_id or self.temp_id

    def commit(self, server_id: Optional[str] = None) -> str:
        """Фиксирует операцию и сверяет идентификатор с серверным"""
        self.state = OperationState.COMMITTED
        self.resolved_id = server_id or self.temp_id
        self.error = None
        return self.resolved_id

    def fail(self, error: str):
        self.state = OperationState.FAILED
        self.error = error

    def restart(self):
        """Повторная попытка после ошибки"""
        self.state = OperationState.PENDING
        self.error = None
