import uuid

from loguru import logger


class UserActionError(Exception):
    """Generic failure raised by route handlers; carries only a descriptive message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def new_session_id() -> str:
    """
    Short readable id like 'stream-a3f2' so concurrent streams
    can be told apart in the logs.
    """
    return f"stream-{str(uuid.uuid4())[:4]}"


def log_connection(event: str, session_id: str, extra: dict | None = None) -> None:
    """
    Single structured log entry for a stream lifecycle change.
    Writes: event, session_id, and any extra fields.
    The stream route calls this once on connect and once on disconnect.
    """
    log_str = f"event={event} session_id={session_id}"
    for k, v in (extra or {}).items():
        log_str += f" {k}={v}"
    logger.info(log_str)
