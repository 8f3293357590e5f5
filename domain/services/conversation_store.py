import asyncio
import logging
import random
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple

from core.exceptions import GatewayError
from domain.models.chat import Contact, Message, MessageStatus, ConnectionStatus, CURRENT_USER
from domain.models.operation import PendingOperation
from domain.services.assistant_replies import synthesize_reply, ERROR_REPLY
from infrastructure.cache.local_cache import LocalCache, MESSAGES_KEY, ASSISTANTS_KEY
from infrastructure.gateway.base import Gateway
from infrastructure.realtime.channel import SimulatedChannel

logger = logging.getLogger(__name__)

SEND_FAILED = "Failed to send message. Please try again."
LOAD_CONTACTS_FAILED = "Failed to load contacts. Please try again."
LOAD_MESSAGES_FAILED = "Failed to load messages for this conversation"
CONNECTION_FAILED = "Connection to chat server failed"
NO_ACTIVE_CONTACT = "Select a conversation first"
MESSAGE_NOT_FOUND = "Message not found"
CONTACT_NOT_FOUND = "Contact not found"


class ConversationStore:
    """Контакты, история сообщений, индикаторы набора и статус канала.

    Все ошибки пишутся в единственный слот error, предыдущее состояние при
    этом не портится. Автоматических повторов нет: повтор отправки только
    через retry().
    """

    def __init__(self, gateway: Gateway, cache: LocalCache, channel: SimulatedChannel,
                 typing_timeout: float = 5.0, indicator_timeout: float = 3.0,
                 assistant_delay: Tuple[float, float] = (0.8, 2.8), reply_linger: float = 0.5,
                 rng: Optional[random.Random] = None):
        self.gateway = gateway
        self.cache = cache
        self.channel = channel
        self.typing_timeout = typing_timeout
        self.indicator_timeout = indicator_timeout
        self.assistant_delay = assistant_delay
        self.reply_linger = reply_linger
        self.rng = rng or random.Random()

        self.contacts: List[Contact] = []
        self.messages: Dict[str, List[Message]] = {}
        self.operations: Dict[str, PendingOperation] = {}
        self.active_contact_id: Optional[str] = None
        self.typing: Dict[str, bool] = {}
        self.local_typing: Dict[str, bool] = {}
        self.status = channel.status
        self.loading = False
        self.error: Optional[str] = None

        self._local_assistants: List[Contact] = []
        self._typing_timers: Dict[str, asyncio.TimerHandle] = {}
        self._indicator_timers: Dict[str, asyncio.TimerHandle] = {}
        self._tasks: set = set()
        self._unsubscribers = [
            channel.add_event_listener(self.handle_event),
            channel.add_status_listener(self._on_status),
        ]

    # === Соединение ===
    def _on_status(self, status: str):
        self.status = status
        if status == ConnectionStatus.ERROR:
            self.error = CONNECTION_FAILED

    async def connect(self, token: Optional[str] = None, mock_events: bool = False):
        if self.status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED):
            return
        await self.channel.connect(token, mock_events=mock_events)

    async def reconnect(self, token: Optional[str] = None, mock_events: bool = False):
        """Явное переподключение после ошибки или отключения"""
        if self.status == ConnectionStatus.CONNECTED:
            return
        self.error = None
        await self.connect(token, mock_events)

    def disconnect(self):
        self.channel.disconnect()

    # === Кэш ===
    async def load_cached(self):
        """Восстанавливает историю сообщений и созданных ассистентов из кэша"""
        for row in await self.cache.get_list(ASSISTANTS_KEY):
            if isinstance(row, dict) and row.get("id"):
                self._add_contact(Contact.from_api_data(row), local=True)

        stored = await self.cache.get_json(MESSAGES_KEY, {})
        if not isinstance(stored, dict):
            logger.warning("Запись кэша сообщений повреждена, игнорируется")
            return
        for contact_id, rows in stored.items():
            if not isinstance(rows, list):
                continue
            messages = [Message.from_api_data(row, contact_id) for row in rows if isinstance(row, dict)]
            for message in messages:
                # Отправка, прерванная закрытием сессии, считается неудачной
                if message.status == MessageStatus.SENDING:
                    message.status = MessageStatus.FAILED
            self.messages[contact_id] = messages

    async def _persist_messages(self):
        await self.cache.set_json(MESSAGES_KEY, {
            contact_id: [message.to_api_data() for message in messages]
            for contact_id, messages in self.messages.items()
        })

    async def _persist_assistants(self):
        await self.cache.set_json(ASSISTANTS_KEY, [contact.to_api_data() for contact in self._local_assistants])

    # === Контакты ===
    def get_contact(self, contact_id: str) -> Optional[Contact]:
        for contact in self.contacts:
            if contact.id == contact_id:
                return contact
        return None

    def _add_contact(self, contact: Contact, local: bool = False):
        if self.get_contact(contact.id):
            return
        self.contacts.append(contact)
        if local:
            self._local_assistants.append(contact)

    async def load_contacts(self) -> bool:
        """Загружает список контактов"""
        self.loading = True
        try:
            contacts = await self.gateway.list_contacts()
        except GatewayError as e:
            logger.error(f"Ошибка загрузки контактов: {e}")
            self.error = LOAD_CONTACTS_FAILED
            return False
        finally:
            self.loading = False

        fetched_ids = {contact.id for contact in contacts}
        self.contacts = list(contacts) + [c for c in self._local_assistants if c.id not in fetched_ids]
        return True

    async def select_contact(self, contact_id: str) -> bool:
        """Делает контакт активным, один раз загружает историю и отмечает ее прочитанной"""
        if not self.get_contact(contact_id):
            self.error = CONTACT_NOT_FOUND
            return False

        self.active_contact_id = contact_id
        if contact_id not in self.messages:
            self.loading = True
            try:
                history = await self.gateway.list_messages(contact_id)
            except GatewayError as e:
                logger.error(f"Ошибка загрузки сообщений контакта {contact_id}: {e}")
                self.error = LOAD_MESSAGES_FAILED
                return False
            finally:
                self.loading = False
            self.messages[contact_id] = list(history)

        await self.mark_read(contact_id)
        return True

    async def mark_read(self, contact_id: str):
        for message in self.messages.get(contact_id, []):
            if not message.is_outgoing:
                message.status = MessageStatus.READ
        contact = self.get_contact(contact_id)
        if contact:
            contact.unread = 0
        await self._persist_messages()

        try:
            await self.gateway.mark_read(contact_id)
        except GatewayError as e:
            logger.error(f"Не удалось отправить отметку о прочтении для {contact_id}: {e}")

    def get_messages(self, contact_id: str) -> List[Message]:
        return self.messages.get(contact_id, [])

    def _find_message(self, contact_id: str, message_id: str) -> Optional[Message]:
        for message in self.messages.get(contact_id, []):
            if message.id == message_id:
                return message
        return None

    def _touch_contact(self, contact_id: str, message: Message, incoming: bool = False):
        """Обновляет превью последнего сообщения и счетчик непрочитанных"""
        contact = self.get_contact(contact_id)
        if not contact:
            return
        contact.last_message = message.text or "Attachment"
        contact.last_message_time = message.timestamp
        if contact_id == self.active_contact_id:
            contact.unread = 0
        elif incoming:
            contact.unread += 1

    # === Отправка ===
    async def send(self, text: str) -> Optional[PendingOperation]:
        """Оптимистично добавляет сообщение и отправляет его активному контакту"""
        contact_id = self.active_contact_id
        if not contact_id:
            self.error = NO_ACTIVE_CONTACT
            return None
        text = (text or "").strip()
        if not text:
            return None

        operation = PendingOperation(temp_id=f"temp-{uuid.uuid4().hex}")
        message = Message(
            id=operation.temp_id,
            contact_id=contact_id,
            sender_id=CURRENT_USER,
            text=text,
            status=MessageStatus.SENDING,
        )
        self.messages.setdefault(contact_id, []).append(message)
        self.operations[message.id] = operation

        await self._deliver(contact_id, message, operation)
        return operation

    async def retry(self, contact_id: str, message_id: str) -> Optional[PendingOperation]:
        """Повторная отправка сообщения в статусе failed"""
        message = self._find_message(contact_id, message_id)
        if not message:
            logger.error(f"Сообщение {message_id} для повтора не найдено")
            self.error = MESSAGE_NOT_FOUND
            return None
        if message.status != MessageStatus.FAILED:
            logger.warning(f"Сообщение {message_id} не в статусе failed, повтор пропущен")
            return self.operations.get(message_id)

        operation = self.operations.get(message_id) or PendingOperation(temp_id=message_id)
        operation.restart()
        self.operations[message_id] = operation
        message.status = MessageStatus.SENDING
        self.error = None

        await self._deliver(contact_id, message, operation)
        return operation

    async def _deliver(self, contact_id: str, message: Message, operation: PendingOperation):
        """Отправка через шлюз; сообщение всегда заканчивает в delivered или failed.

        Ассистенты существуют только на клиенте: сообщение им фиксируется
        локально, а ответ синтезируется без обращения к серверу.
        """
        contact = self.get_contact(contact_id)
        to_assistant = bool(contact and contact.is_assistant)
        try:
            if to_assistant:
                server_id = f"msg-{uuid.uuid4().hex}"
            else:
                sent = await self.gateway.send_message(contact_id, message.text)
                server_id = sent.id or None
        except Exception as e:
            logger.error(f"Ошибка отправки сообщения контакту {contact_id}: {e}")
            message.status = MessageStatus.FAILED
            operation.fail(str(e))
            self.error = SEND_FAILED
        else:
            previous_id = message.id
            message.id = operation.commit(server_id)
            message.status = MessageStatus.DELIVERED
            self.operations.pop(previous_id, None)
            self.operations[message.id] = operation
            self._touch_contact(contact_id, message)
            if not to_assistant and self.channel.is_connected:
                self.channel.send_message(message.to_api_data())

        await self._persist_messages()

        if operation.is_committed and to_assistant:
            self._spawn(self._process_assistant_reply(contact_id, message.text))

    async def delete_message(self, contact_id: str, message_id: str) -> bool:
        messages = self.messages.get(contact_id, [])
        message = self._find_message(contact_id, message_id)
        if not message:
            self.error = MESSAGE_NOT_FOUND
            return False

        was_last = messages[-1] is message
        messages.remove(message)
        self.operations.pop(message_id, None)
        if was_last and messages:
            contact = self.get_contact(contact_id)
            if contact:
                contact.last_message = messages[-1].text or "Attachment"
                contact.last_message_time = messages[-1].timestamp
        await self._persist_messages()
        return True

    def clear_error(self):
        self.error = None

    # === Индикаторы набора ===
    @property
    def typing_contacts(self) -> List[str]:
        return [contact_id for contact_id, is_typing in self.typing.items() if is_typing]

    @staticmethod
    def _cancel_timer(timers: Dict[str, asyncio.TimerHandle], contact_id: str):
        handle = timers.pop(contact_id, None)
        if handle:
            handle.cancel()

    def set_typing(self, contact_id: str, is_typing: bool):
        """Передает свой индикатор набора; он гасится сам через typing_timeout"""
        self._cancel_timer(self._typing_timers, contact_id)
        self.local_typing[contact_id] = is_typing
        self.channel.send_typing(contact_id, is_typing)
        if is_typing:
            self._typing_timers[contact_id] = asyncio.get_running_loop().call_later(
                self.typing_timeout, self._clear_local_typing, contact_id
            )

    def _clear_local_typing(self, contact_id: str):
        self._typing_timers.pop(contact_id, None)
        self.local_typing[contact_id] = False
        self.channel.send_typing(contact_id, False)

    def _set_indicator(self, contact_id: str, is_typing: bool, clear_after: Optional[float] = None):
        """Индикатор набора собеседника"""
        self._cancel_timer(self._indicator_timers, contact_id)
        self.typing[contact_id] = is_typing
        if is_typing and clear_after is not None:
            self._indicator_timers[contact_id] = asyncio.get_running_loop().call_later(
                clear_after, self._clear_indicator, contact_id
            )

    def _clear_indicator(self, contact_id: str):
        self._indicator_timers.pop(contact_id, None)
        self.typing[contact_id] = False

    # === Входящие события канала ===
    def handle_event(self, event: Dict[str, Any]):
        event_type = event.get("type")
        payload = event.get("payload") or {}

        contact_id = payload.get("contactId")

        if event_type == "new_message":
            self._receive(Message.from_api_data(payload))
        elif event_type == "typing_status":
            if not contact_id:
                logger.warning(f"Событие {event_type} без contactId пропущено")
                return
            self._set_indicator(contact_id, bool(payload.get("isTyping")), self.indicator_timeout)
        elif event_type == "user_status":
            contact = self.get_contact(contact_id) if contact_id else None
            if contact:
                contact.is_online = bool(payload.get("isOnline"))
        elif event_type == "new_contact":
            if not (payload.get("id") or payload.get("_id")):
                logger.warning("Событие new_contact без идентификатора пропущено")
                return
            self._add_contact(Contact.from_api_data(payload))
        else:
            logger.debug(f"Необработанный тип события: {event_type}")

    def _receive(self, message: Message):
        contact_id = message.contact_id or message.sender_id
        if not contact_id:
            logger.warning("Входящее сообщение без контакта пропущено")
            return
        if contact_id == self.active_contact_id:
            message.status = MessageStatus.READ
        # Если история еще не загружалась, сообщение придет вместе с ней
        if contact_id in self.messages:
            self.messages[contact_id].append(message)
            self._spawn(self._persist_messages())
        self._touch_contact(contact_id, message, incoming=True)

    # === Ассистенты ===
    async def create_assistant(self, name: str, specialty: str) -> Optional[Contact]:
        """Создает ассистента с приветственным сообщением и открывает диалог с ним"""
        name = (name or "").strip()
        if not name:
            self.error = "Assistant name is required"
            return None
        specialty = (specialty or "").strip() or "general"

        greeting = f"Hello, I'm {name}, your AI assistant for {specialty}. How can I help you today?"
        now = datetime.now()
        assistant = Contact(
            id=f"ai-{uuid.uuid4().hex[:12]}",
            name=name,
            is_online=True,
            is_assistant=True,
            last_message=greeting,
            last_message_time=now,
            unread=0,
            specialty=specialty,
        )
        self._add_contact(assistant, local=True)
        self.messages[assistant.id] = [Message(
            id=str(uuid.uuid4()),
            contact_id=assistant.id,
            sender_id=assistant.id,
            text=greeting,
            timestamp=now,
            status=MessageStatus.DELIVERED,
            is_assistant=True,
        )]
        self.active_contact_id = assistant.id

        await self._persist_assistants()
        await self._persist_messages()
        logger.info(f"Создан ассистент {name} ({specialty})")
        return assistant

    async def _process_assistant_reply(self, contact_id: str, user_text: str):
        """Имитирует обработку запроса ассистентом и добавляет ответ"""
        self._set_indicator(contact_id, True)
        try:
            await asyncio.sleep(self.rng.uniform(*self.assistant_delay))
            contact = self.get_contact(contact_id)
            try:
                _, reply = synthesize_reply(user_text, contact.specialty if contact else None)
                is_error = False
            except Exception as e:
                logger.error(f"Ошибка формирования ответа ассистента: {e}", exc_info=True)
                reply, is_error = ERROR_REPLY, True

            message = Message(
                id=str(uuid.uuid4()),
                contact_id=contact_id,
                sender_id=contact_id,
                text=reply,
                status=MessageStatus.DELIVERED,
                is_assistant=True,
                is_error=is_error,
            )
            self.messages.setdefault(contact_id, []).append(message)
            self._touch_contact(contact_id, message, incoming=True)
            await self._persist_messages()
        finally:
            self._set_indicator(contact_id, True, self.reply_linger)

    # === Фоновые задачи ===
    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self):
        """Ждет завершения запланированных ответов ассистентов и записей в кэш"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self):
        for task in list(self._tasks):
            task.cancel()
        await self.wait_idle()
        for timers in (self._typing_timers, self._indicator_timers):
            for handle in timers.values():
                handle.cancel()
            timers.clear()
        self.channel.disconnect()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
