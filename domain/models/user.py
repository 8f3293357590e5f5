from dataclasses import dataclass
from typing import Optional, Dict, Any

from core.security import is_admin, can_manage_requests


@dataclass
class User:
    id: str
    email: str
    name: str = ""
    role: str = "tenant"
    avatar: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)

    @property
    def can_manage_requests(self) -> bool:
        return can_manage_requests(self.role)

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            email=(data.get("email") or "").lower(),
            name=data.get("name") or "",
            role=data.get("role") or "tenant",
            avatar=data.get("avatar"),
        )

    def to_api_data(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "avatar": self.avatar,
        }


@dataclass
class AuthSession:
    token: str
    user: User

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'AuthSession':
        return cls(token=data["token"], user=User.from_api_data(data.get("user") or {}))

    def to_api_data(self) -> Dict[str, Any]:
        return {"token": self.token, "user": self.user.to_api_data()}


@dataclass
class AuthStatus:
    is_authenticated: bool
    user: Optional[User] = None
    expired: bool = False
