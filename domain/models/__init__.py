from .ticket import Ticket
from .chat import Contact, Message, MessageStatus, ConnectionStatus, CURRENT_USER
from .operation import PendingOperation, OperationState
from .user import User, AuthSession, AuthStatus
from .appointment import Appointment, TIME_SLOTS

__all__ = [
    'Ticket', 'Contact', 'Message', 'MessageStatus', 'ConnectionStatus', 'CURRENT_USER',
    'PendingOperation', 'OperationState', 'User', 'AuthSession', 'AuthStatus',
    'Appointment', 'TIME_SLOTS',
]
