"""
ASGI middleware, прикрепляющий snapshot флагов к каждому запросу.

Snapshot сохраняется в scope["state"]["trunker"], то есть доступен в
обработчиках как request.state.trunker. Повторное прикрепление (например,
middleware на приложении и зависимость на роутере) ничего не меняет.
"""

from typing import TYPE_CHECKING, Any, MutableMapping

import structlog

from .evaluator import STATE_KEY

if TYPE_CHECKING:
    from .gate import Trunker

logger = structlog.get_logger()


def attach_to_scope(scope: MutableMapping[str, Any], trunker: "Trunker") -> bool:
    """
    Прикрепить флаги к scope запроса.

    Returns:
        True, если snapshot прикреплён этим вызовом; False, если он уже был.
    """
    state = scope.setdefault("state", {})
    if state.get(STATE_KEY) is not None:
        return False
    state[STATE_KEY] = trunker.flags
    return True


class TrunkerMiddleware:
    """Middleware для прикрепления флагов к request.state."""

    def __init__(self, app, trunker: "Trunker"):
        self.app = app
        self.trunker = trunker

    async def __call__(self, scope, receive, send):
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        if attach_to_scope(scope, self.trunker):
            logger.debug("Feature flags attached",
                         path=scope.get("path"),
                         flags=len(self.trunker.flags))

        await self.app(scope, receive, send)
