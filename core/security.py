# core/security.py
import time
from typing import Optional, Dict, Any

from jose import JWTError, jwt

from core.config import config
from core.exceptions import InvalidTokenError

ADMIN_ROLES = ("admin",)
MANAGER_ROLES = ("admin", "owner")


def is_token_well_formed(token: Optional[str]) -> bool:
    """Проверка: токен похож на JWT (три сегмента)"""
    return bool(token) and len(token.split(".")) == 3


def decode_token_claims(token: str) -> Optional[Dict[str, Any]]:
    """Читает payload токена без проверки подписи"""
    if not is_token_well_formed(token):
        return None
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        return None


def is_token_expired(token: str, now: Optional[float] = None) -> bool:
    """Проверка: истек ли срок действия токена по claim exp"""
    claims = decode_token_claims(token)
    if not claims or claims.get("exp") is None:
        return False
    exp = claims["exp"]
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise InvalidTokenError(f"Claim exp is not a timestamp: {exp!r}")
    now = time.time() if now is None else now
    return exp < now


def issue_offline_token(subject: str, role: str, ttl_seconds: int = 86400) -> str:
    """Выпускает токен для офлайн-режима, подписанный локальным секретом"""
    payload = {
        "sub": subject,
        "role": role,
        "iat": int(time.time()),
        "exp": int(time.time()) + ttl_seconds,
    }
    return jwt.encode(payload, config.OFFLINE_TOKEN_SECRET, algorithm=config.OFFLINE_TOKEN_ALGORITHM)


def bearer_header(token: Optional[str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


def is_admin(role: Optional[str]) -> bool:
    """Проверка: является ли пользователь администратором"""
    return role in ADMIN_ROLES


def can_manage_requests(role: Optional[str]) -> bool:
    """Проверка: может ли пользователь менять статус заявок"""
    return role in MANAGER_ROLES
