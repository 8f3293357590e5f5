import logging
import time
from datetime import date, timedelta
from typing import List, Optional

from core.exceptions import NotFoundError, SlotUnavailableError
from domain.models.appointment import Appointment, TIME_SLOTS
from infrastructure.cache.local_cache import LocalCache, APPOINTMENTS_KEY

logger = logging.getLogger(__name__)


def start_of_week(day: date) -> date:
    """Воскресенье недели, в которую попадает день"""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_days(start: date) -> List[date]:
    return [start + timedelta(days=offset) for offset in range(7)]


class ScheduleStore:
    """Запись на визиты мастера; хранится только локально"""

    def __init__(self, cache: LocalCache):
        self.cache = cache
        self.appointments: List[Appointment] = []
        self._sequence = 0

    async def load(self) -> List[Appointment]:
        appointments = []
        for row in await self.cache.get_list(APPOINTMENTS_KEY):
            try:
                appointments.append(Appointment.from_api_data(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Пропущена поврежденная запись визита: {e}")
        self.appointments = appointments
        return appointments

    def _next_id(self) -> str:
        self._sequence += 1
        return f"{int(time.time() * 1000)}-{self._sequence}"

    async def _persist(self):
        await self.cache.set_json(APPOINTMENTS_KEY, [a.to_api_data() for a in self.appointments])

    def is_slot_booked(self, day: date, slot: str) -> bool:
        return any(a.date == day and a.time == slot for a in self.appointments)

    def free_slots(self, day: date) -> List[str]:
        return [slot for slot in TIME_SLOTS if not self.is_slot_booked(day, slot)]

    def for_day(self, day: date) -> List[Appointment]:
        return [a for a in self.appointments if a.date == day]

    async def book(self, day: date, slot: str, service_type: str) -> Appointment:
        """Записывает визит на свободный слот"""
        if slot not in TIME_SLOTS:
            raise SlotUnavailableError(f"Unknown time slot: {slot}")
        if self.is_slot_booked(day, slot):
            raise SlotUnavailableError("This time slot is already booked")

        appointment = Appointment(
            id=self._next_id(),
            date=day,
            time=slot,
            service_type=service_type,
        )
        self.appointments.append(appointment)
        await self._persist()
        logger.info(f"Визит записан: {day.isoformat()} {slot} ({service_type})")
        return appointment

    async def cancel(self, appointment_id: str) -> Appointment:
        appointment = self.get(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found", status_code=404)
        self.appointments = [a for a in self.appointments if a.id != appointment_id]
        await self._persist()
        logger.info(f"Визит {appointment_id} отменен")
        return appointment

    def get(self, appointment_id: str) -> Optional[Appointment]:
        for appointment in self.appointments:
            if appointment.id == appointment_id:
                return appointment
        return None
