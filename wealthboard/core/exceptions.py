class WealthboardError(Exception):
    """Базовый класс для ошибок сервиса."""
    pass

class NotFoundError(WealthboardError):
    """Запрошенная сущность не найдена."""
    pass

class InvalidFinancialDataError(WealthboardError):
    """Некорректные финансовые данные для операции."""
    pass
