import asyncio
import logging
import time
from datetime import datetime
from typing import Dict, Any, List, Optional

from core.exceptions import GatewayError, NotFoundError, AuthenticationError
from core.security import issue_offline_token, decode_token_claims
from domain.models.ticket import Ticket, editable_fields
from domain.models.chat import Contact, Message, MessageStatus, CURRENT_USER
from domain.models.user import AuthSession, User
from infrastructure.cache.local_cache import LocalCache, TICKETS_KEY, REGISTERED_USERS_KEY
from infrastructure.gateway.base import Gateway
from infrastructure.gateway.fixture_data import (
    default_tickets,
    default_users,
    default_contacts,
    default_messages,
)

logger = logging.getLogger(__name__)


class FixtureGateway(Gateway):
    """Офлайн-вариант шлюза: фикстуры в памяти плюс локальный кэш"""

    def __init__(self, cache: LocalCache, latency: float = 0.0):
        self.cache = cache
        self.latency = latency
        self.token = None
        self.tickets: Optional[List[Dict[str, Any]]] = None
        self.users = default_users()
        self.contacts = default_contacts()
        self.messages = default_messages()
        self._sequence = 0
        logger.info("Режим фикстур: данные сохраняются только локально")

    def set_token(self, token: Optional[str]):
        self.token = token

    async def _simulate_latency(self):
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    def _next_id(self, prefix: str) -> str:
        self._sequence += 1
        return f"{prefix}-{int(time.time() * 1000)}-{self._sequence}"

    def _current_user_id(self) -> Optional[str]:
        claims = decode_token_claims(self.token) if self.token else None
        return claims.get("sub") if claims else None

    async def check_status(self) -> bool:
        return True

    # === Авторизация ===
    async def _all_users(self) -> List[Dict[str, Any]]:
        return self.users + await self.cache.get_list(REGISTERED_USERS_KEY)

    async def login(self, email: str, password: str) -> AuthSession:
        await self._simulate_latency()
        email = email.lower().strip()
        for user_data in await self._all_users():
            if user_data.get("email", "").lower() == email and user_data.get("password") == password:
                user = User.from_api_data(user_data)
                session = AuthSession(token=issue_offline_token(user.id, user.role), user=user)
                self.set_token(session.token)
                logger.info(f"Офлайн-вход пользователя {email}")
                return session
        raise AuthenticationError("Invalid email or password", status_code=401)

    async def register(self, user_data: Dict[str, Any]) -> User:
        await self._simulate_latency()
        email = (user_data.get("email") or "").lower().strip()
        if not email or not user_data.get("password"):
            raise GatewayError("Email and password are required", status_code=400)
        if any(u.get("email", "").lower() == email for u in await self._all_users()):
            raise GatewayError("User already exists", status_code=400)

        record = {
            "id": self._next_id("user"),
            "email": email,
            "password": user_data["password"],
            "name": user_data.get("name") or email.split("@")[0],
            "role": user_data.get("role") or "tenant",
            "avatar": user_data.get("avatar"),
        }
        registered = await self.cache.get_list(REGISTERED_USERS_KEY)
        registered.append(record)
        await self.cache.set_json(REGISTERED_USERS_KEY, registered)
        logger.info(f"Зарегистрирован пользователь {email}")
        return User.from_api_data(record)

    # === Заявки на обслуживание ===
    async def _ticket_rows(self) -> List[Dict[str, Any]]:
        """Массив заявок: из кэша, если он не пуст, иначе из фикстур"""
        if self.tickets is None:
            cached = await self.cache.get_list(TICKETS_KEY)
            self.tickets = cached if cached else default_tickets()
        return self.tickets

    async def _save_tickets(self):
        await self.cache.set_json(TICKETS_KEY, self.tickets)

    async def _find_index(self, ticket_id: str) -> int:
        for index, row in enumerate(await self._ticket_rows()):
            if str(row.get("_id")) == ticket_id:
                return index
        raise NotFoundError("Request not found", status_code=404)

    async def list_tickets(self) -> List[Ticket]:
        await self._simulate_latency()
        return [Ticket.from_api_data(row) for row in await self._ticket_rows()]

    async def create_ticket(self, fields: Dict[str, Any]) -> Ticket:
        await self._simulate_latency()
        now = datetime.now().isoformat()
        row = {
            **editable_fields(fields),
            "_id": self._next_id("maintenance"),
            "createdBy": self._current_user_id(),
            "createdAt": now,
            "updatedAt": now,
        }
        ticket = Ticket.from_api_data(row)
        rows = await self._ticket_rows()
        rows.insert(0, ticket.to_api_data())
        await self._save_tickets()
        return ticket

    async def update_ticket(self, ticket_id: str, fields: Dict[str, Any]) -> Ticket:
        await self._simulate_latency()
        index = await self._find_index(ticket_id)
        row = {
            **self.tickets[index],
            **editable_fields(fields),
            "updatedAt": datetime.now().isoformat(),
        }
        self.tickets[index] = row
        await self._save_tickets()
        return Ticket.from_api_data(row)

    async def delete_ticket(self, ticket_id: str):
        await self._simulate_latency()
        index = await self._find_index(ticket_id)
        del self.tickets[index]
        await self._save_tickets()

    # === Чат ===
    async def list_contacts(self) -> List[Contact]:
        await self._simulate_latency()
        return [Contact.from_api_data(item) for item in self.contacts]

    async def list_messages(self, contact_id: str) -> List[Message]:
        await self._simulate_latency()
        return [Message.from_api_data(item, contact_id) for item in self.messages.get(contact_id, [])]

    async def send_message(self, contact_id: str, text: str) -> Message:
        await self._simulate_latency()
        return Message(
            id=self._next_id("msg"),
            contact_id=contact_id,
            sender_id=CURRENT_USER,
            text=text,
            status=MessageStatus.DELIVERED,
        )

    async def mark_read(self, contact_id: str):
        logger.debug(f"Сообщения контакта {contact_id} отмечены прочитанными")
