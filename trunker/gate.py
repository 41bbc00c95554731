"""
Request gate: прикрепление флагов к запросу и ограничение доступа к маршрутам.

Использование:
    trunker = create_trunker(flags={"betaFeature": Flag(active=True)})
    app = FastAPI()
    trunker.init_app(app)

    @app.get("/beta", dependencies=[Depends(trunker.restrict("betaFeature"))])
    async def beta():
        ...

Флаги цели проверяются строго последовательно слева направо; первый
неактивный флаг останавливает запрос, остальные не вычисляются.
"""

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any, List, Optional, Tuple, Union

import structlog
from fastapi import Depends, Request
from pydantic import ValidationError
from starlette import status
from starlette.exceptions import WebSocketException
from starlette.middleware import Middleware
from starlette.requests import HTTPConnection
from starlette.responses import Response

from .evaluator import get_snapshot, metric_label, resolve_flag
from .exceptions import (
    FlagInactiveError,
    TrunkerConfigurationError,
    format_validation_error,
)
from .metrics import access_denied_total
from .middleware import TrunkerMiddleware, attach_to_scope
from .models import Flag, TrunkerOptions
from .responses import build_error_message, build_error_response

logger = structlog.get_logger()

MISSING_SNAPSHOT_MESSAGE = (
    "TrunkerError: request.state.trunker not found. "
    "Did you `app.add_middleware(TrunkerMiddleware, trunker=trunker)`?"
)

Target = Union[str, Sequence[str]]


def _normalize_target(target: Target) -> Tuple[str, ...]:
    if isinstance(target, str):
        return (target,)
    if not isinstance(target, Sequence):
        raise TrunkerConfigurationError(
            f"Invalid restrict target: {target!r}. Expected a flag name or a list of flag names."
        )
    names = tuple(target)
    if not names:
        raise TrunkerConfigurationError("Restrict target must contain at least one flag name")
    for name in names:
        if not isinstance(name, str):
            raise TrunkerConfigurationError(
                f"Invalid flag name in restrict target: {name!r}"
            )
    return names


class Trunker:
    """
    Gate фича-флагов.

    Конфигурация неизменяема после создания и безопасно читается
    параллельными запросами.
    """

    def __init__(self, options: TrunkerOptions):
        self.options = options
        self._flags: Mapping[str, Flag] = MappingProxyType(dict(options.flags))

    @property
    def flags(self) -> Mapping[str, Flag]:
        return self._flags

    def middleware(self) -> Middleware:
        """Запись для FastAPI(middleware=[trunker.middleware()])."""
        return Middleware(TrunkerMiddleware, trunker=self)

    async def attach(self, request: HTTPConnection) -> None:
        """Зависимость FastAPI: прикрепить флаги, если их ещё нет."""
        attach_to_scope(request.scope, self)

    def restrict(self, target: Target) -> "RestrictAccess":
        """
        Зависимость FastAPI, ограничивающая доступ к маршруту.

        Args:
            target: имя флага или непустой упорядоченный список имён

        Raises:
            TrunkerConfigurationError: пустой или некорректный target
        """
        names = _normalize_target(target)
        unknown = [name for name in names if name not in self._flags]
        if unknown:
            logger.warning("Restrict target references unknown flags, access will be denied",
                           unknown=unknown)
        return RestrictAccess(self, names)

    def dependencies(self, target: Target) -> List[Any]:
        """
        attach + restrict одним списком для dependencies= маршрута/роутера.

        FastAPI разрешает зависимости списка по порядку, поэтому restrict
        всегда видит прикреплённый snapshot.
        """
        return [Depends(self.attach), Depends(self.restrict(target))]

    async def check(self, request: HTTPConnection, target: Target) -> Optional[Response]:
        """
        Решение gate для запроса.

        Returns:
            None, если все флаги активны; иначе ответ с отказом для первого
            неактивного флага.

        Raises:
            TrunkerConfigurationError: флаги не прикреплены к запросу
        """
        flag_name = await self._first_inactive(request, _normalize_target(target))
        if flag_name is None:
            return None
        return build_error_response(flag_name, self.options.error)

    async def _first_inactive(
        self,
        request: HTTPConnection,
        names: Tuple[str, ...],
    ) -> Optional[str]:
        snapshot = get_snapshot(request)
        if snapshot is None:
            raise TrunkerConfigurationError(MISSING_SNAPSHOT_MESSAGE)

        # Строго по порядку: флаги после первого неактивного не вычисляются
        for flag_name in names:
            if not await resolve_flag(snapshot, flag_name, request):
                access_denied_total.labels(flag=metric_label(snapshot, flag_name)).inc()
                logger.info("Access restricted by feature flag",
                            flag=flag_name,
                            path=request.scope.get("path"))
                return flag_name
        return None

    def init_app(self, app) -> None:
        """Подключить middleware и обработчик отказов к приложению."""
        app.add_middleware(TrunkerMiddleware, trunker=self)
        app.add_exception_handler(FlagInactiveError, flag_inactive_handler)


class RestrictAccess:
    """
    Зависимость FastAPI, созданная Trunker.restrict().

    Работает на HTTP и websocket маршрутах. HTTP отказ - FlagInactiveError
    с готовым ответом; websocket закрывается с кодом 1008 (policy violation).
    """

    def __init__(self, trunker: Trunker, targets: Tuple[str, ...]):
        self.trunker = trunker
        self.targets = targets

    async def __call__(self, connection: HTTPConnection) -> None:
        flag_name = await self.trunker._first_inactive(connection, self.targets)
        if flag_name is None:
            return
        error = self.trunker.options.error
        if connection.scope["type"] == "websocket":
            raise WebSocketException(
                code=status.WS_1008_POLICY_VIOLATION,
                reason=build_error_message(flag_name, error),
            )
        raise FlagInactiveError(
            flag_name,
            build_error_message(flag_name, error),
            build_error_response(flag_name, error),
        )

    def __repr__(self) -> str:
        return f"RestrictAccess(targets={list(self.targets)!r})"


async def flag_inactive_handler(request: Request, exc: FlagInactiveError) -> Response:
    """Обработчик FlagInactiveError: вернуть подготовленный ответ."""
    return exc.response


def create_trunker(
    options: Optional[Union[TrunkerOptions, Mapping[str, Any]]] = None,
    /,
    **kwargs: Any,
) -> Trunker:
    """
    Создать Trunker.

    Принимает TrunkerOptions, словарь опций или именованные аргументы
    (flags=..., error=...).

    Raises:
        TrunkerConfigurationError: не заданы flags или опции некорректны
    """
    if isinstance(options, TrunkerOptions) and not kwargs:
        return Trunker(options)

    if isinstance(options, TrunkerOptions):
        data = {**options.model_dump(exclude={"flags"}), "flags": dict(options.flags)}
    else:
        data = dict(options or {})
    data.update(kwargs)

    if data.get("flags") is None:
        raise TrunkerConfigurationError("TrunkerError: `flags` option is required")

    try:
        return Trunker(TrunkerOptions(**data))
    except ValidationError as e:
        raise TrunkerConfigurationError(
            format_validation_error(e, "Invalid trunker options")
        ) from e
