"""
Вычисление состояния флагов.

Все три формы ``Flag.active`` (bool, sync-проверка, async-проверка)
сводятся к одному асинхронному пути. Отсутствующий флаг или отсутствующий
snapshot означают False (fail closed).
"""

import inspect
from collections.abc import Mapping
from typing import Any, Optional

import structlog
from starlette.requests import HTTPConnection

from .metrics import flag_evaluations_total
from .models import Flag, FlagCheck

logger = structlog.get_logger()

# Поле request.state, в котором лежит snapshot флагов
STATE_KEY = "trunker"

# Метка метрик для имён, которых нет в snapshot (имена могут прийти из запроса)
UNKNOWN_FLAG_LABEL = "__unknown__"


def get_snapshot(request: HTTPConnection) -> Optional[Mapping[str, Flag]]:
    """Snapshot флагов, прикреплённый к запросу, или None."""
    return request.scope.get("state", {}).get(STATE_KEY)


def metric_label(snapshot: Optional[Mapping[str, Flag]], flag_name: str) -> str:
    """Метка flag для prometheus: только сконфигурированные имена."""
    if snapshot is not None and flag_name in snapshot:
        return flag_name
    return UNKNOWN_FLAG_LABEL


def _accepts_request(check: FlagCheck) -> bool:
    """Принимает ли проверка позиционный аргумент (request)."""
    try:
        signature = inspect.signature(check)
    except (TypeError, ValueError):
        # builtins без сигнатуры
        return True

    for param in signature.parameters.values():
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        ):
            return True
    return False


async def _run_check(flag_name: str, check: FlagCheck, request: Any) -> bool:
    try:
        result = check(request) if _accepts_request(check) else check()
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        flag_evaluations_total.labels(flag=flag_name, result="error").inc()
        logger.error("Feature flag check failed",
                     flag=flag_name,
                     error=str(e),
                     error_type=type(e).__name__)
        raise
    return bool(result)


async def resolve_flag(
    snapshot: Optional[Mapping[str, Flag]],
    flag_name: str,
    request: Any = None,
) -> bool:
    """
    Вычислить, активен ли флаг ``flag_name``.

    Args:
        snapshot: набор флагов запроса (None, если gate не подключён)
        flag_name: имя флага
        request: текущий запрос, передаётся в динамическую проверку

    Returns:
        True/False. Отсутствие флага или snapshot даёт False.

    Raises:
        Любое исключение динамической проверки пробрасывается без изменений.
    """
    flag = snapshot.get(flag_name) if snapshot is not None else None
    if flag is None:
        flag_evaluations_total.labels(flag=UNKNOWN_FLAG_LABEL, result="missing").inc()
        return False

    if isinstance(flag.active, bool):
        active = flag.active
    else:
        active = await _run_check(flag_name, flag.active, request)

    flag_evaluations_total.labels(
        flag=flag_name,
        result="active" if active else "inactive"
    ).inc()
    return active


async def is_flag_active(request: HTTPConnection, flag_name: str) -> bool:
    """
    Проверка флага внутри обработчика (ручная обработка без restrict).

    Пример:
        if await is_flag_active(request, "betaFeature"):
            ...
    """
    return await resolve_flag(get_snapshot(request), flag_name, request)
