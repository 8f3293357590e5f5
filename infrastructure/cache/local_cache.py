import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, List, Optional

import aiosqlite

logger = logging.getLogger(__name__)

# Ключи локального хранилища
TICKETS_KEY = "maintenanceRequests"
MESSAGES_KEY = "chat_messages"
ASSISTANTS_KEY = "chat_assistants"
SESSION_KEY = "auth_session"
APPOINTMENTS_KEY = "maintenance_appointments"
REGISTERED_USERS_KEY = "propconnect_registered_users"


class LocalCache:
    """Долговременный key/value кэш JSON-документов (аналог localStorage)"""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        """Инициализация таблицы хранилища"""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS local_storage (
                    key TEXT PRIMARY KEY,
                    value TEXT,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')
            conn.commit()

    async def get_item(self, key: str) -> Optional[str]:
        """Возвращает сырое значение по ключу"""
        async with aiosqlite.connect(self.db_path) as conn:
            cursor = await conn.execute('SELECT value FROM local_storage WHERE key = ?', (key,))
            result = await cursor.fetchone()
            await cursor.close()
        return result[0] if result else None

    async def set_item(self, key: str, value: str):
        """Сохраняет сырое значение по ключу"""
        async with aiosqlite.connect(self.db_path) as conn:
            await conn.execute('''
                INSERT OR REPLACE INTO local_storage (key, value, updated_at)
                VALUES (?, ?, ?)
            ''', (key, value, datetime.now().isoformat()))
            await conn.commit()

    async def remove_item(self, key: str) -> bool:
        """Удаляет значение по ключу"""
        async with aiosqlite.connect(self.db_path) as conn:
            cursor = await conn.execute('DELETE FROM local_storage WHERE key = ?', (key,))
            await conn.commit()
            affected = cursor.rowcount
            await cursor.close()
        return affected > 0

    async def keys(self) -> List[str]:
        async with aiosqlite.connect(self.db_path) as conn:
            cursor = await conn.execute('SELECT key FROM local_storage ORDER BY key')
            results = await cursor.fetchall()
            await cursor.close()
        return [row[0] for row in results]

    async def get_json(self, key: str, default: Any = None) -> Any:
        """Читает JSON-документ; поврежденная запись считается пустой"""
        raw = await self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.error(f"Поврежденная запись кэша {key}: {e}")
            return default

    async def set_json(self, key: str, value: Any):
        await self.set_item(key, json.dumps(value))

    async def get_list(self, key: str) -> List[Any]:
        """Читает JSON-массив; все, что не массив, считается пустым списком"""
        value = await self.get_json(key, [])
        if not isinstance(value, list):
            logger.warning(f"Запись кэша {key} не является списком, игнорируется")
            return []
        return value
