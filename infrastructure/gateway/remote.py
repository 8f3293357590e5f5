import logging
from typing import Callable, Dict, Any, List, Optional

import httpx

from core.exceptions import GatewayError, NotFoundError, AuthenticationError
from core.security import bearer_header
from domain.models.ticket import Ticket, editable_fields
from domain.models.chat import Contact, Message
from domain.models.user import AuthSession, User
from infrastructure.gateway.base import Gateway

logger = logging.getLogger(__name__)


class RemoteGateway(Gateway):
    CHAT_PREFIX = "/api/chat"

    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.token = None
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        logger.info(f"API настроен на {self.base_url}")

    def set_token(self, token: Optional[str]):
        self.token = token

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Достает текст ошибки из тела ответа, если сервер его прислал"""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"Request failed with status code {response.status_code}"

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
                       authenticated: bool = True) -> Any:
        headers = bearer_header(self.token) if authenticated else {}
        try:
            response = await self.client.request(method, path, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Сетевая ошибка {method} {path}: {e}")
            raise GatewayError(f"Network error: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(self._error_message(response), status_code=404)
        if response.status_code == 401:
            raise AuthenticationError(self._error_message(response), status_code=401)
        if response.is_error:
            message = self._error_message(response)
            logger.error(f"Ошибка API {method} {path}: {response.status_code} {message}")
            raise GatewayError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(f"Invalid JSON from {path}") from e

    @staticmethod
    def _parse(path: str, build: Callable[[], Any]) -> Any:
        """Превращает ответ неожиданной формы в GatewayError"""
        try:
            return build()
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Неожиданный формат ответа {path}: {e}")
            raise GatewayError(f"Unexpected response from {path}") from e

    async def check_status(self) -> bool:
        """Проверка доступности сервера"""
        try:
            await self._request("GET", "/auth/status", authenticated=False)
            return True
        except GatewayError as e:
            logger.warning(f"Сервер недоступен: {e}")
            return False

    # === Авторизация ===
    async def login(self, email: str, password: str) -> AuthSession:
        data = await self._request("POST", "/auth/login", {"email": email, "password": password},
                                   authenticated=False)
        if not isinstance(data, dict) or not data.get("token"):
            raise AuthenticationError("Login failed. Please try again.")
        session = AuthSession.from_api_data(data)
        self.set_token(session.token)
        return session

    async def register(self, user_data: Dict[str, Any]) -> User:
        data = await self._request("POST", "/auth/register", user_data, authenticated=False)
        if not isinstance(data, dict):
            raise GatewayError("Registration failed. Please try again.")
        return User.from_api_data(data.get("user") or data)

    # === Заявки на обслуживание ===
    async def list_tickets(self) -> List[Ticket]:
        data = await self._request("GET", "/maintenance")
        if not isinstance(data, list):
            raise GatewayError("No data received from server")
        return self._parse("/maintenance", lambda: [Ticket.from_api_data(item) for item in data])

    async def create_ticket(self, fields: Dict[str, Any]) -> Ticket:
        data = await self._request("POST", "/maintenance", editable_fields(fields))
        return self._parse("/maintenance", lambda: Ticket.from_api_data(data or {}))

    async def update_ticket(self, ticket_id: str, fields: Dict[str, Any]) -> Ticket:
        path = f"/maintenance/{ticket_id}"
        data = await self._request("PUT", path, editable_fields(fields))
        return self._parse(path, lambda: Ticket.from_api_data(data or {}))

    async def delete_ticket(self, ticket_id: str):
        data = await self._request("DELETE", f"/maintenance/{ticket_id}")
        if isinstance(data, dict) and data.get("success") is False:
            raise GatewayError(data.get("message") or "Failed to delete maintenance request")

    # === Чат ===
    async def list_contacts(self) -> List[Contact]:
        path = f"{self.CHAT_PREFIX}/contacts"
        data = await self._request("GET", path)
        return self._parse(path, lambda: [Contact.from_api_data(item) for item in data or []])

    async def list_messages(self, contact_id: str) -> List[Message]:
        path = f"{self.CHAT_PREFIX}/messages/{contact_id}"
        data = await self._request("GET", path)
        return self._parse(path, lambda: [Message.from_api_data(item, contact_id) for item in data or []])

    async def send_message(self, contact_id: str, text: str) -> Message:
        data = await self._request("POST", f"{self.CHAT_PREFIX}/messages",
                                   {"contactId": contact_id, "content": text})
        return self._parse(f"{self.CHAT_PREFIX}/messages", lambda: Message.from_api_data(data or {}, contact_id))

    async def mark_read(self, contact_id: str):
        await self._request("POST", f"{self.CHAT_PREFIX}/messages/{contact_id}/read")

    async def close(self):
        await self.client.aclose()
        logger.info("Соединение с API закрыто")
