import logging
from typing import Optional, Dict, Any

from core.exceptions import GatewayError, InvalidTokenError
from core.security import is_token_well_formed, is_token_expired
from domain.models.user import AuthSession, AuthStatus, User
from infrastructure.cache.local_cache import LocalCache, SESSION_KEY, TICKETS_KEY
from infrastructure.gateway.base import Gateway

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, gateway: Gateway, cache: LocalCache):
        self.gateway = gateway
        self.cache = cache
        self.session: Optional[AuthSession] = None

    @property
    def user(self) -> Optional[User]:
        return self.session.user if self.session else None

    @property
    def token(self) -> Optional[str]:
        return self.session.token if self.session else None

    async def login(self, email: str, password: str) -> AuthSession:
        """Вход пользователя и сохранение сессии"""
        email = email.lower().strip()
        logger.info(f"Попытка входа: {email}")
        try:
            session = await self.gateway.login(email, password)
        except GatewayError as e:
            logger.error(f"Ошибка входа {email}: {e}")
            raise

        await self._store_session(session)
        logger.info(f"Вход выполнен: {email}")
        return session

    async def register(self, user_data: Dict[str, Any]) -> User:
        """Регистрация нового пользователя"""
        user_data = dict(user_data)
        user_data["email"] = (user_data.get("email") or "").lower().strip()
        user = await self.gateway.register(user_data)
        logger.info(f"Пользователь зарегистрирован: {user.email}")
        return user

    async def logout(self):
        """Выход: сессия и кэш заявок очищаются"""
        self.session = None
        self.gateway.set_token(None)
        await self.cache.remove_item(SESSION_KEY)
        await self.cache.remove_item(TICKETS_KEY)
        logger.info("Сессия завершена")

    async def check_status(self) -> AuthStatus:
        """Восстанавливает сессию из кэша и проверяет токен"""
        data = await self.cache.get_json(SESSION_KEY)
        if not isinstance(data, dict) or not data.get("token") or not data.get("user"):
            return AuthStatus(is_authenticated=False)

        try:
            session = AuthSession.from_api_data(data)
        except (KeyError, TypeError) as e:
            logger.error(f"Ошибка чтения сессии из кэша: {e}")
            await self.cache.remove_item(SESSION_KEY)
            return AuthStatus(is_authenticated=False)

        if not is_token_well_formed(session.token):
            logger.warning("Обнаружен токен неверного формата")
            return AuthStatus(is_authenticated=False)
        if not session.user.email:
            logger.warning("Обнаружены неполные данные пользователя")
            return AuthStatus(is_authenticated=False)
        try:
            expired = is_token_expired(session.token)
        except InvalidTokenError as e:
            logger.error(f"Сессия в кэше повреждена: {e}")
            await self.cache.remove_item(SESSION_KEY)
            return AuthStatus(is_authenticated=False)
        if expired:
            logger.warning("Срок действия токена истек")
            return AuthStatus(is_authenticated=False, expired=True)

        self.session = session
        self.gateway.set_token(session.token)
        return AuthStatus(is_authenticated=True, user=session.user)

    async def update_user(self, fields: Dict[str, Any]) -> User:
        """Обновляет данные пользователя в сохраненной сессии"""
        if not self.session:
            raise GatewayError("Not authenticated", status_code=401)
        merged = {**self.session.user.to_api_data(), **fields}
        self.session.user = User.from_api_data(merged)
        await self._store_session(self.session)
        return self.session.user

    async def _store_session(self, session: AuthSession):
        self.session = session
        self.gateway.set_token(session.token)
        await self.cache.set_json(SESSION_KEY, session.to_api_data())
