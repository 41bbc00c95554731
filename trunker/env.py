"""
Загрузка флагов из переменных окружения.

Формат: TRUNKER_<UPPER_SNAKE_NAME>=true|false (точное совпадение, регистр
важен). Имя флага переводится в camelCase:

    TRUNKER_BETA_FEATURE_ONE=true  ->  betaFeatureOne

Использование:
    trunker = create_trunker(from_env())
    trunker = create_trunker(from_env(env_file=".env", options={"error": {...}}))
"""

import os
import re
from collections.abc import Mapping
from typing import Any, Dict, Optional, Union

import structlog
from dotenv import dotenv_values
from pydantic import ValidationError

from .exceptions import FlagValueError, TrunkerConfigurationError, format_validation_error
from .models import Flag, TrunkerOptions

logger = structlog.get_logger()

FLAG_PREFIX = "TRUNKER_"

_BOOLEAN_VALUES = {"true": True, "false": False}
_SEGMENT_RE = re.compile(r"_([a-z])")


def convert_flag_name(key: str) -> str:
    """TRUNKER_BETA_FEATURE -> betaFeature."""
    name = key[len(FLAG_PREFIX):] if key.startswith(FLAG_PREFIX) else key
    return _SEGMENT_RE.sub(lambda m: m.group(1).upper(), name.lower())


def _read_environment(
    env: Optional[Mapping[str, Any]],
    env_file: Optional[Union[str, os.PathLike]],
) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if env_file is not None:
        values.update(dotenv_values(env_file))
    # Явное окружение приоритетнее файла, как у dotenv: уже заданные переменные не перезаписываются
    values.update(os.environ if env is None else env)
    return values


def from_env(
    env: Optional[Mapping[str, Any]] = None,
    options: Optional[Union[TrunkerOptions, Mapping[str, Any]]] = None,
    *,
    env_file: Optional[Union[str, os.PathLike]] = None,
) -> TrunkerOptions:
    """
    Собрать TrunkerOptions из переменных окружения.

    Args:
        env: источник переменных (по умолчанию os.environ)
        options: дополнительные параметры (error); flags из них заменяются
        env_file: путь к .env файлу, читается через python-dotenv

    Raises:
        FlagValueError: значение TRUNKER_* не "true" и не "false"
        TrunkerConfigurationError: некорректные дополнительные параметры
    """
    flags: Dict[str, Flag] = {}

    for key, value in _read_environment(env, env_file).items():
        if not key.startswith(FLAG_PREFIX):
            continue

        flag_name = convert_flag_name(key)
        if not isinstance(value, str) or value not in _BOOLEAN_VALUES:
            raise FlagValueError(flag_name, value)
        flags[flag_name] = Flag(active=_BOOLEAN_VALUES[value])

    if isinstance(options, TrunkerOptions):
        extra = options.model_dump(exclude={"flags"})
    else:
        extra = {k: v for k, v in (options or {}).items() if k != "flags"}

    try:
        result = TrunkerOptions(**extra, flags=flags)
    except ValidationError as e:
        raise TrunkerConfigurationError(
            format_validation_error(e, "Invalid trunker options")
        ) from e

    logger.info("Feature flags loaded from environment",
                flags={name: flag.active for name, flag in flags.items()},
                env_file=str(env_file) if env_file is not None else None)
    return result
