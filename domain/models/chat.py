from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any

from domain.models.ticket import parse_timestamp, format_timestamp

CURRENT_USER = "currentUser"


class MessageStatus:
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"

    TERMINAL = (DELIVERED, READ, FAILED)


class ConnectionStatus:
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass
class Contact:
    id: str
    name: str
    is_online: bool = False
    is_assistant: bool = False
    last_message: str = ""
    last_message_time: Optional[datetime] = None
    unread: int = 0
    specialty: Optional[str] = None
    role: Optional[str] = None

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'Contact':
        return cls(
            id=str(data.get("id") or data["_id"]),
            name=data.get("name", ""),
            is_online=bool(data.get("isOnline", False)),
            is_assistant=bool(data.get("isAI", False)),
            last_message=data.get("lastMessage") or "",
            last_message_time=parse_timestamp(data.get("lastMessageTime")),
            unread=max(0, int(data.get("unread") or 0)),
            specialty=data.get("specialty"),
            role=data.get("role"),
        )

    def to_api_data(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "isOnline": self.is_online,
            "isAI": self.is_assistant,
            "lastMessage": self.last_message,
            "lastMessageTime": format_timestamp(self.last_message_time),
            "unread": self.unread,
            "specialty": self.specialty,
            "role": self.role,
        }


@dataclass
class Message:
    id: str
    contact_id: str
    sender_id: str
    text: str
    timestamp: datetime = field(default_factory=datetime.now)
    status: str = MessageStatus.DELIVERED
    is_assistant: bool = False
    is_error: bool = False

    @property
    def is_outgoing(self) -> bool:
        return self.sender_id == CURRENT_USER

    @classmethod
    def from_api_data(cls, data: Dict[str, Any], contact_id: Optional[str] = None) -> 'Message':
        return cls(
            id=str(data.get("id") or ""),
            contact_id=str(data.get("contactId") or contact_id or ""),
            sender_id=str(data.get("senderId") or ""),
            text=data.get("text") or "",
            timestamp=parse_timestamp(data.get("timestamp")) or datetime.now(),
            status=data.get("status") or MessageStatus.DELIVERED,
            is_assistant=bool(data.get("isAI", False)),
            is_error=bool(data.get("isError", False)),
        )

    def to_api_data(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "contactId": self.contact_id,
            "senderId": self.sender_id,
            "text": self.text,
            "timestamp": format_timestamp(self.timestamp),
            "status": self.status,
            "isAI": self.is_assistant,
            "isError": self.is_error,
        }
