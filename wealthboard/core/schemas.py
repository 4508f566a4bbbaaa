from decimal import Decimal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """
    Базовая модель: camelCase в JSON, snake_case в коде, чтение из ORM-объектов.
    Деньги хранятся в Decimal и отдаются клиенту числами.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        json_encoders={Decimal: float},
    )

class CamelRequest(CamelModel):
    """Тело запроса: неизвестные поля отклоняются."""
    model_config = ConfigDict(extra="forbid")
