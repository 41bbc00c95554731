"""
Иерархия исключений trunker.

Только конфигурационные ошибки и сбои динамических проверок являются
настоящими ошибками. Неактивный флаг - обычный исход запроса (ответ 403),
а не сбой.
"""

from typing import Any, Optional

from starlette.exceptions import HTTPException
from starlette.responses import Response


class TrunkerError(Exception):
    """Базовое исключение trunker."""


class TrunkerConfigurationError(TrunkerError):
    """Ошибка развёртывания: gate сконфигурирован или подключён неверно."""


class FlagValueError(TrunkerConfigurationError):
    """Недопустимое значение флага в переменных окружения."""

    def __init__(self, flag_name: str, value: Any):
        self.flag_name = flag_name
        self.value = value
        super().__init__(
            f"Invalid value for flag {flag_name}: {value}. "
            "Only boolean values are supported."
        )


class FlagInactiveError(HTTPException):
    """
    Отказ в доступе из-за неактивного флага.

    Переносит уже сформированный ответ через систему зависимостей FastAPI.
    Обработчик, установленный Trunker.init_app(), возвращает ``response``
    без изменений; без него срабатывает стандартный обработчик HTTPException
    с тем же status_code.
    """

    def __init__(self, flag_name: str, message: str, response: Response):
        super().__init__(status_code=response.status_code, detail=message)
        self.flag_name = flag_name
        self.response = response

    def __str__(self) -> str:
        return f"{self.status_code}: {self.detail}"


def format_validation_error(exc: Any, prefix: Optional[str] = None) -> str:
    """Сжатое описание pydantic ValidationError для сообщений об ошибке."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location or 'options'}: {error.get('msg')}")
    message = "; ".join(parts)
    if prefix:
        return f"{prefix}: {message}"
    return message
