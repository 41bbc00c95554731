"""
Глобальные фикстуры для pytest.

Добавляем корень репозитория в sys.path, чтобы тесты импортировали trunker
без установки пакета.
"""

import sys
from pathlib import Path

import pytest
from fastapi import FastAPI
from starlette.requests import Request


def _extend_sys_path() -> None:
    root = Path(__file__).resolve().parent.parent
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_extend_sys_path()


@pytest.fixture
def make_request():
    """Фабрика starlette Request с заданным snapshot и заголовками."""

    def _make(snapshot=None, headers=None, path="/test"):
        scope = {
            "type": "http",
            "method": "GET",
            "path": path,
            "query_string": b"",
            "headers": [
                (name.lower().encode(), value.encode())
                for name, value in (headers or {}).items()
            ],
            "state": {},
        }
        if snapshot is not None:
            scope["state"]["trunker"] = snapshot
        return Request(scope)

    return _make


@pytest.fixture
def build_app():
    """Фабрика FastAPI приложения с подключённым trunker."""

    def _build(trunker=None):
        app = FastAPI()
        if trunker is not None:
            trunker.init_app(app)
        return app

    return _build
