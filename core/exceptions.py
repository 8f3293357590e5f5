class PropConnectError(Exception):
    """Базовое исключение приложения"""
    pass


class GatewayError(PropConnectError):
    """Ошибка удаленного вызова (сеть недоступна или ответ не 2xx)"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(GatewayError):
    """Запись не найдена"""
    pass


class AuthenticationError(GatewayError):
    """Неверные учетные данные или недействительная сессия"""
    pass


class SlotUnavailableError(PropConnectError):
    """Время визита уже занято или не существует"""
    pass


class InvalidTokenError(PropConnectError):
    """Токен сессии поврежден или содержит некорректные claims"""
    pass
