from fastapi import Path

from .errors import NotFoundOrForbiddenError


def parse_task_id(task_id: str = Path(...)) -> int:
    """Path id -> int; a malformed id is answered exactly like an unknown one."""
    try:
        value = int(task_id)
    except (TypeError, ValueError) as err:
        raise NotFoundOrForbiddenError() from err
    if value < 1:
        raise NotFoundOrForbiddenError()
    return value
