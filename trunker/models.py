"""
Модели trunker: флаг, набор флагов и конфигурация gate.

Pydantic v2, все модели неизменяемые (frozen) после создания.
"""

from collections.abc import Mapping
from typing import Any, Callable, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

DEFAULT_TEMPLATE = "Flag {flag} is not active"
DEFAULT_ERROR_KEY = "error"
DEFAULT_STATUS_CODE = 403

# Синхронная проверка возвращает bool, асинхронная - awaitable с bool
FlagCheck = Callable[..., Any]


class Flag(BaseModel):
    """
    Фича-флаг.

    ``active`` - литерал bool либо проверка (sync или async), которая
    получает текущий Request и возвращает bool.
    """

    model_config = ConfigDict(frozen=True)

    active: Union[StrictBool, FlagCheck]

    @property
    def is_dynamic(self) -> bool:
        return not isinstance(self.active, bool)


Flags = Mapping[str, Flag]


class ErrorOptions(BaseModel):
    """
    Параметры ответа при отказе в доступе.

    ``format``: ``json`` (структурированный, по умолчанию) или ``plain``.
    ``template``: ``{flag}`` заменяется на имя флага.
    ``key``: ключ сообщения, только для ``json``.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int = Field(default=DEFAULT_STATUS_CODE, ge=100, le=599)
    format: Literal["json", "plain"] = "json"
    template: str = DEFAULT_TEMPLATE
    key: str = DEFAULT_ERROR_KEY

    @field_validator("format", mode="before")
    @classmethod
    def normalize_format(cls, v):
        """structured - синоним json."""
        if isinstance(v, str) and v.strip().lower() == "structured":
            return "json"
        return v


class TrunkerOptions(BaseModel):
    """Конфигурация gate: флаги (обязательно) и параметры ошибки."""

    model_config = ConfigDict(frozen=True)

    flags: Dict[str, Flag]
    error: Optional[ErrorOptions] = None

    @field_validator("flags", mode="before")
    @classmethod
    def normalize_flags(cls, v):
        """Поддержка сокращённой записи: {"beta": True} или {"beta": check}."""
        if not isinstance(v, Mapping):
            return v
        normalized = {}
        for name, flag in v.items():
            if isinstance(flag, bool) or callable(flag):
                normalized[name] = {"active": flag}
            else:
                normalized[name] = flag
        return normalized
