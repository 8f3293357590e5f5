import asyncio
import logging
from typing import Optional, List, Dict, Any, Union

from core.exceptions import GatewayError
from domain.models.ticket import Ticket, TICKET_STATUSES
from infrastructure.cache.local_cache import LocalCache, TICKETS_KEY
from infrastructure.gateway.base import Gateway

logger = logging.getLogger(__name__)


class RequestStore:
    """Заявки на обслуживание текущей сессии.

    Память сессии считается рабочей копией, кэш только дублирует ее.
    Операции не защищены от гонок: при пересекающихся update() побеждает
    тот вызов, который завершился последним.
    """

    def __init__(self, gateway: Gateway, cache: LocalCache):
        self.gateway = gateway
        self.cache = cache
        self.requests: List[Ticket] = []
        self.loading = False
        self.error: Optional[str] = None
        self._refresh_task: Optional[asyncio.Task] = None

    # === Кэш ===
    async def load_cached(self) -> List[Ticket]:
        """Восстанавливает заявки из локального кэша"""
        rows = await self.cache.get_list(TICKETS_KEY)
        tickets = []
        for row in rows:
            if isinstance(row, dict):
                tickets.append(Ticket.from_api_data(row))
        self.requests = tickets
        logger.info(f"Из кэша восстановлено заявок: {len(tickets)}")
        return tickets

    async def _persist(self):
        await self.cache.set_json(TICKETS_KEY, [ticket.to_api_data() for ticket in self.requests])

    # === Операции ===
    async def fetch_all(self) -> bool:
        """Загружает все заявки. Ошибка не выбрасывается, а сохраняется в error"""
        self.loading = True
        self.error = None
        try:
            tickets = await self.gateway.list_tickets()
        except GatewayError as e:
            logger.error(f"Ошибка загрузки заявок: {e}")
            self.error = e.message or "Failed to fetch maintenance requests"
            return False
        finally:
            self.loading = False

        self.requests = list(tickets)
        await self._persist()
        return True

    async def create(self, fields: Dict[str, Any]) -> Ticket:
        """Создает заявку через шлюз и добавляет ее в начало списка"""
        self.error = None
        try:
            ticket = await self.gateway.create_ticket(fields)
        except GatewayError as e:
            logger.error(f"Ошибка создания заявки: {e}")
            self.error = e.message or "Failed to create maintenance request"
            raise

        self.requests.insert(0, ticket)
        await self._persist()
        logger.info(f"Создана заявка #{ticket.id}: {ticket.title}")
        return ticket

    async def update(self, changes: Union[Ticket, Dict[str, Any]]) -> Ticket:
        """Отправляет изменения и сливает ответ с записью в памяти"""
        if isinstance(changes, Ticket):
            ticket_id, fields = changes.id, changes.to_api_data()
        else:
            ticket_id = str(changes.get("id") or changes.get("_id") or "")
            fields = changes
        if not ticket_id:
            raise ValueError("Ticket id is required for update")

        self.error = None
        try:
            updated = await self.gateway.update_ticket(ticket_id, fields)
        except GatewayError as e:
            logger.error(f"Ошибка обновления заявки #{ticket_id}: {e}")
            self.error = e.message or "Failed to update maintenance request"
            raise

        self.requests = [updated if ticket.id == updated.id else ticket for ticket in self.requests]
        await self._persist()
        return updated

    async def delete(self, ticket_id: str) -> bool:
        """Удаляет заявку; запись остается на месте, если удаление не подтверждено"""
        self.error = None
        try:
            await self.gateway.delete_ticket(ticket_id)
        except GatewayError as e:
            logger.error(f"Ошибка удаления заявки #{ticket_id}: {e}")
            self.error = e.message or "Failed to delete maintenance request"
            raise

        self.requests = [ticket for ticket in self.requests if ticket.id != ticket_id]
        await self._persist()
        logger.info(f"Удалена заявка #{ticket_id}")
        return True

    def get(self, ticket_id: str) -> Optional[Ticket]:
        for ticket in self.requests:
            if ticket.id == ticket_id:
                return ticket
        return None

    def clear_error(self):
        self.error = None

    # === Сводки ===
    @property
    def latest(self) -> Optional[Ticket]:
        """Последняя заявка для карточки на дашборде"""
        return self.requests[0] if self.requests else None

    def status_counts(self) -> Dict[str, int]:
        counts = {status: 0 for status in TICKET_STATUSES}
        for ticket in self.requests:
            counts[ticket.display_status] += 1
        return counts

    # === Автообновление ===
    def start_auto_refresh(self, interval: float):
        """Периодически перечитывает список заявок"""
        self.stop_auto_refresh()
        self._refresh_task = asyncio.get_running_loop().create_task(self._auto_refresh_loop(interval))
        logger.info(f"Автообновление заявок каждые {interval} с")

    def stop_auto_refresh(self):
        if self._refresh_task:
            self._refresh_task.cancel()
            self._refresh_task = None

    @property
    def auto_refresh_enabled(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def _auto_refresh_loop(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            await self.fetch_all()

    async def close(self):
        self.stop_auto_refresh()
