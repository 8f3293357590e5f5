from dataclasses import dataclass
from datetime import date
from typing import Dict, Any

TIME_SLOTS = (
    "9:00 AM", "10:00 AM", "11:00 AM",
    "1:00 PM", "2:00 PM", "3:00 PM", "4:00 PM",
)


@dataclass
class Appointment:
    id: str
    date: date
    time: str
    service_type: str

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'Appointment':
        # В кэше дата хранится как ISO-строка, иногда с временем
        return cls(
            id=str(data["id"]),
            date=date.fromisoformat(str(data["date"])[:10]),
            time=data["time"],
            service_type=data.get("serviceType") or "",
        )

    def to_api_data(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "time": self.time,
            "serviceType": self.service_type,
        }
