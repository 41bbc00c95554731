"""
trunker: feature flags для FastAPI / Starlette.

Флаги прикрепляются к каждому запросу (request.state.trunker), а маршруты
ограничиваются зависимостью trunker.restrict(...), которая отвечает 403,
если требуемый флаг не активен.
"""

from .env import FLAG_PREFIX, convert_flag_name, from_env
from .evaluator import get_snapshot, is_flag_active, resolve_flag
from .exceptions import (
    FlagInactiveError,
    FlagValueError,
    TrunkerConfigurationError,
    TrunkerError,
)
from .gate import (
    MISSING_SNAPSHOT_MESSAGE,
    RestrictAccess,
    Trunker,
    create_trunker,
    flag_inactive_handler,
)
from .middleware import TrunkerMiddleware, attach_to_scope
from .models import ErrorOptions, Flag, Flags, TrunkerOptions
from .responses import build_error_body, build_error_message, build_error_response

__all__ = [
    "FLAG_PREFIX",
    "MISSING_SNAPSHOT_MESSAGE",
    "ErrorOptions",
    "Flag",
    "FlagInactiveError",
    "FlagValueError",
    "Flags",
    "RestrictAccess",
    "Trunker",
    "TrunkerConfigurationError",
    "TrunkerError",
    "TrunkerMiddleware",
    "TrunkerOptions",
    "attach_to_scope",
    "build_error_body",
    "build_error_message",
    "build_error_response",
    "convert_flag_name",
    "create_trunker",
    "flag_inactive_handler",
    "from_env",
    "get_snapshot",
    "is_flag_active",
    "resolve_flag",
]
