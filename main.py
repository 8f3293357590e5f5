#main.py
import logging
import asyncio
from core.config import config
from core.exceptions import GatewayError
from infrastructure.cache.local_cache import LocalCache
from infrastructure.gateway.base import Gateway
from infrastructure.gateway.fixture import FixtureGateway
from infrastructure.gateway.remote import RemoteGateway
from infrastructure.realtime.channel import SimulatedChannel
from domain.services.auth_service import AuthService
from domain.services.request_store import RequestStore
from domain.services.conversation_store import ConversationStore
from domain.services.schedule_store import ScheduleStore

# Настройка логирования
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger(__name__)


def build_gateway(cache: LocalCache) -> Gateway:
    """Выбор варианта шлюза один раз при старте"""
    if config.USE_MOCK_DATA:
        return FixtureGateway(cache, latency=config.MOCK_LATENCY)
    return RemoteGateway(config.API_URL, timeout=config.REQUEST_TIMEOUT)


async def main():
    """Основная функция запуска сессии"""

    # Инициализация инфраструктуры
    cache = LocalCache(config.CACHE_PATH)
    gateway = build_gateway(cache)
    channel = SimulatedChannel(
        config.CHAT_URL,
        event_interval=config.MOCK_EVENT_INTERVAL,
        event_probability=config.MOCK_EVENT_PROBABILITY,
    )

    # Инициализация сервисов
    auth_service = AuthService(gateway, cache)
    request_store = RequestStore(gateway, cache)
    conversation_store = ConversationStore(
        gateway,
        cache,
        channel,
        typing_timeout=config.TYPING_TIMEOUT,
        assistant_delay=(config.ASSISTANT_DELAY_MIN, config.ASSISTANT_DELAY_MAX),
    )
    schedule_store = ScheduleStore(cache)

    logger.info(f"Режим шлюза: {config.mode_name()}")
    logger.info(f"API: {config.API_URL}")
    logger.info(f"Кэш: {config.CACHE_PATH}")

    try:
        status = await auth_service.check_status()
        if not status.is_authenticated and config.has_credentials():
            try:
                await auth_service.login(config.PROPCONNECT_EMAIL, config.PROPCONNECT_PASSWORD)
            except GatewayError as e:
                logger.error(f"Не удалось войти: {e}")
        if auth_service.user:
            logger.info(f"Пользователь: {auth_service.user.email} ({auth_service.user.role})")

        await request_store.load_cached()
        if not await request_store.fetch_all():
            logger.warning(f"Заявки взяты из кэша: {request_store.error}")
        logger.info(f"Заявок: {len(request_store.requests)}, по статусам: {request_store.status_counts()}")

        await conversation_store.load_cached()
        await conversation_store.connect(auth_service.token, mock_events=config.MOCK_EVENTS_ENABLED)
        await conversation_store.load_contacts()
        logger.info(f"Контактов: {len(conversation_store.contacts)}, канал: {conversation_store.status}")

        appointments = await schedule_store.load()
        logger.info(f"Запланировано визитов: {len(appointments)}")

        request_store.start_auto_refresh(config.AUTO_REFRESH_INTERVAL)
        logger.info("Сессия запущена...")
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Сессия остановлена")
    finally:
        await request_store.close()
        await conversation_store.close()
        await gateway.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
