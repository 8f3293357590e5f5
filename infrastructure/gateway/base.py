from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from domain.models.ticket import Ticket
from domain.models.chat import Contact, Message
from domain.models.user import AuthSession, User


class Gateway(ABC):
    """Граница с удаленным сервисом.

    Оба варианта (RemoteGateway и FixtureGateway) возвращают одни и те же
    модели и выбрасывают одни и те же исключения из core.exceptions, поэтому
    хранилищам не нужно знать, в каком режиме они работают.
    """

    @abstractmethod
    def set_token(self, token: Optional[str]):
        """Устанавливает bearer-токен для авторизованных вызовов"""
        pass

    @abstractmethod
    async def check_status(self) -> bool:
        """Проверка доступности сервиса"""
        pass

    # === Авторизация ===
    @abstractmethod
    async def login(self, email: str, password: str) -> AuthSession:
        pass

    @abstractmethod
    async def register(self, user_data: Dict[str, Any]) -> User:
        pass

    # === Заявки на обслуживание ===
    @abstractmethod
    async def list_tickets(self) -> List[Ticket]:
        pass

    @abstractmethod
    async def create_ticket(self, fields: Dict[str, Any]) -> Ticket:
        pass

    @abstractmethod
    async def update_ticket(self, ticket_id: str, fields: Dict[str, Any]) -> Ticket:
        pass

    @abstractmethod
    async def delete_ticket(self, ticket_id: str):
        pass

    # === Чат ===
    @abstractmethod
    async def list_contacts(self) -> List[Contact]:
        pass

    @abstractmethod
    async def list_messages(self, contact_id: str) -> List[Message]:
        pass

    @abstractmethod
    async def send_message(self, contact_id: str, text: str) -> Message:
        pass

    @abstractmethod
    async def mark_read(self, contact_id: str):
        pass

    async def close(self):
        """Закрытие соединения"""
        pass
