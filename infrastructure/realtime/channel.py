import asyncio
import logging
import random
from typing import Callable, Dict, Any, List, Optional, Sequence

from domain.models.chat import ConnectionStatus

logger = logging.getLogger(__name__)

EventListener = Callable[[Dict[str, Any]], None]
StatusListener = Callable[[str], None]


class SimulatedChannel:
    """Имитация push-канала (WebSocket) для чата.

    Соединение проходит disconnected -> connecting -> connected, состояние
    error достижимо из любого состояния через fail(). Переподключение
    только явное. Входящие события имеют вид {"type": ..., "payload": ...}.
    """

    def __init__(self, url: str, connect_delay: float = 0.5, event_interval: float = 10.0,
                 event_probability: float = 0.2, mock_contacts: Sequence[str] = ("contact-1", "contact-2"),
                 rng: Optional[random.Random] = None):
        self.url = url
        self.connect_delay = connect_delay
        self.event_interval = event_interval
        self.event_probability = event_probability
        self.mock_contacts = list(mock_contacts)
        self.rng = rng or random.Random()
        self.status = ConnectionStatus.DISCONNECTED
        self.outbox: List[Dict[str, Any]] = []
        self._event_listeners: List[EventListener] = []
        self._status_listeners: List[StatusListener] = []
        self._mock_task: Optional[asyncio.Task] = None
        self._timers: set = set()

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    # === Подписки ===
    @staticmethod
    def _subscribe(listeners: list, callback) -> Callable[[], None]:
        listeners.append(callback)

        def unsubscribe():
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def add_event_listener(self, callback: EventListener) -> Callable[[], None]:
        return self._subscribe(self._event_listeners, callback)

    def add_status_listener(self, callback: StatusListener) -> Callable[[], None]:
        return self._subscribe(self._status_listeners, callback)

    def _set_status(self, status: str):
        self.status = status
        for callback in list(self._status_listeners):
            callback(status)

    def emit(self, event: Dict[str, Any]):
        """Доставляет входящее событие подписчикам"""
        for callback in list(self._event_listeners):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Ошибка обработчика события {event.get('type')}: {e}", exc_info=True)

    # === Соединение ===
    async def connect(self, token: Optional[str] = None, mock_events: bool = False):
        """Имитирует установку соединения"""
        logger.info(f"Имитация подключения к {self.url}")
        self._set_status(ConnectionStatus.CONNECTING)
        if self.connect_delay > 0:
            await asyncio.sleep(self.connect_delay)
        if self.status != ConnectionStatus.CONNECTING:
            # За время ожидания канал закрыли или он упал
            return
        self._set_status(ConnectionStatus.CONNECTED)
        if mock_events:
            self.start_mock_events()

    def disconnect(self):
        logger.info("Отключение канала")
        self.stop_mock_events()
        self._cancel_timers()
        self._set_status(ConnectionStatus.DISCONNECTED)

    def fail(self, reason: str = "Connection to chat server failed"):
        """Переводит канал в состояние ошибки"""
        logger.error(f"Ошибка канала: {reason}")
        self.stop_mock_events()
        self._set_status(ConnectionStatus.ERROR)

    # === Исходящие ===
    def send_message(self, message: Dict[str, Any]) -> bool:
        if not self.is_connected:
            logger.warning("Невозможно отправить сообщение: канал не подключен")
            return False
        self.outbox.append({"type": "message", "payload": message})
        return True

    def send_typing(self, recipient_id: str, is_typing: bool) -> bool:
        if not self.is_connected:
            return False
        self.outbox.append({"type": "typing", "payload": {"recipientId": recipient_id, "isTyping": is_typing}})
        return True

    # === Генератор случайных событий ===
    def start_mock_events(self):
        self.stop_mock_events()
        self._mock_task = asyncio.get_running_loop().create_task(self._mock_events_loop())

    def stop_mock_events(self):
        if self._mock_task:
            self._mock_task.cancel()
            self._mock_task = None

    def next_mock_event(self) -> Optional[Dict[str, Any]]:
        """Случайное событие или None, если в этот тик событий нет"""
        if not self.mock_contacts or self.rng.random() > self.event_probability:
            return None
        contact_id = self.rng.choice(self.mock_contacts)
        if self.rng.random() < 0.5:
            return {"type": "typing_status", "payload": {"contactId": contact_id, "isTyping": True}}
        return {"type": "user_status", "payload": {"contactId": contact_id, "isOnline": self.rng.random() > 0.5}}

    async def _mock_events_loop(self):
        while True:
            await asyncio.sleep(self.event_interval)
            event = self.next_mock_event()
            if not event:
                continue
            self.emit(event)
            if event["type"] == "typing_status":
                contact_id = event["payload"]["contactId"]
                self._schedule(3 + self.rng.random() * 5, lambda: self.emit({
                    "type": "typing_status",
                    "payload": {"contactId": contact_id, "isTyping": False},
                }))

    def _schedule(self, delay: float, callback: Callable[[], None]):
        def fire():
            self._timers.discard(handle)
            callback()

        handle = asyncio.get_running_loop().call_later(delay, fire)
        self._timers.add(handle)

    def _cancel_timers(self):
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()
