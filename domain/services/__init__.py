from .request_store import RequestStore
from .conversation_store import ConversationStore
from .auth_service import AuthService
from .schedule_store import ScheduleStore

__all__ = ['RequestStore', 'ConversationStore', 'AuthService', 'ScheduleStore']
