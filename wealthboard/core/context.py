from contextvars import ContextVar
from uuid import UUID, uuid4

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="unknown")
user_id_ctx: ContextVar[UUID | None] = ContextVar("user_id", default=None)

def get_request_id() -> str:
    return request_id_ctx.get()

def set_request_id(req_id: str | None = None) -> str:
    """Берет X-Request-Id из запроса или генерирует новый."""
    req_id = req_id or uuid4().hex
    request_id_ctx.set(req_id)
    return req_id

def get_user_id() -> UUID | None:
    return user_id_ctx.get()

def set_user_id(user_id: UUID | None) -> None:
    user_id_ctx.set(user_id)
