"""Формирование ответа при отказе в доступе."""

from typing import Dict, Optional, Union

from starlette.responses import JSONResponse, PlainTextResponse, Response

from .models import DEFAULT_ERROR_KEY, DEFAULT_STATUS_CODE, DEFAULT_TEMPLATE, ErrorOptions

FLAG_MARKER = "{flag}"


def build_error_message(flag_name: str, error: Optional[ErrorOptions] = None) -> str:
    """Подставить имя флага в первое вхождение {flag} шаблона."""
    template = error.template if error is not None else DEFAULT_TEMPLATE
    return template.replace(FLAG_MARKER, flag_name, 1)


def build_error_body(
    flag_name: str,
    error: Optional[ErrorOptions] = None,
) -> Union[Dict[str, str], str]:
    """
    Тело ответа: {key: message} для json (и когда error не задан),
    строка сообщения для plain.
    """
    message = build_error_message(flag_name, error)
    if error is None or error.format == "json":
        key = error.key if error is not None else DEFAULT_ERROR_KEY
        return {key: message}
    return message


def build_error_response(flag_name: str, error: Optional[ErrorOptions] = None) -> Response:
    status_code = error.status_code if error is not None else DEFAULT_STATUS_CODE
    body = build_error_body(flag_name, error)
    if isinstance(body, dict):
        return JSONResponse(status_code=status_code, content=body)
    return PlainTextResponse(body, status_code=status_code)
