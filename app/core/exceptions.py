# app/core/exceptions.py

import logging
from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DataIntegrityError(Exception):
    """
    Хранимое значение не удалось интерпретировать (битая денежная сумма,
    некорректная ставка и т.п.). Запрос должен упасть, а не считать с нулем.
    """

    def __init__(self, message: str, *, field: str | None = None, value=None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value


async def data_integrity_exception_handler(request: Request, exc: DataIntegrityError):
    user = getattr(request.state, "user", None)
    logger.error(
        f"Data integrity error on {request.method} {request.url.path} "
        f"(user_id={getattr(user, 'id', None)}, field={exc.field}, value={exc.value!r}): {exc.message}"
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Stored financial data is inconsistent. The operation was aborted."},
    )
