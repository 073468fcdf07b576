import uuid
from contextvars import ContextVar

# Context variable storing request_id for the current request
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def short_error(e: BaseException, limit: int = 200) -> str:
    """Render an exception as `Type: message` on a single line for log records."""
    err_msg = str(e).replace("\n", " ")[:limit]
    return f"{type(e).__name__}: {err_msg}"
