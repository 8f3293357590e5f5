from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any

TICKET_PRIORITIES = ("low", "medium", "high")
TICKET_STATUSES = ("pending", "in-progress", "completed")

DEFAULT_PRIORITY = "medium"
DEFAULT_STATUS = "pending"

# Поля, которые клиент может передавать при создании/обновлении
EDITABLE_FIELDS = ("title", "description", "priority", "status", "category", "location")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Разбирает ISO-строку (в том числе с суффиксом Z) или unix-время в миллисекундах"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Ticket:
    id: str
    title: str = ""
    description: str = ""
    priority: str = DEFAULT_PRIORITY
    status: str = DEFAULT_STATUS
    category: str = ""
    location: str = ""
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_priority(self) -> str:
        return self.priority if self.priority in TICKET_PRIORITIES else DEFAULT_PRIORITY

    @property
    def display_status(self) -> str:
        return self.status if self.status in TICKET_STATUSES else DEFAULT_STATUS

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'Ticket':
        """Создает заявку из JSON-ответа API или из записи кэша"""
        created_by = data.get("createdBy")
        if isinstance(created_by, dict):
            created_by = created_by.get("_id") or created_by.get("id")

        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            title=data.get("title") or "",
            description=data.get("description") or "",
            priority=data.get("priority") or DEFAULT_PRIORITY,
            status=data.get("status") or DEFAULT_STATUS,
            category=data.get("category") or "",
            location=data.get("location") or "",
            created_by=str(created_by) if created_by else None,
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )

    def to_api_data(self) -> Dict[str, Any]:
        """Сериализует заявку в формат API (он же формат кэша)"""
        return {
            "_id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "category": self.category,
            "location": self.location,
            "createdBy": self.created_by,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }


def editable_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Оставляет только изменяемые поля заявки"""
    return {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
