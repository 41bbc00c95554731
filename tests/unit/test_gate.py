import json

import pytest
from prometheus_client import REGISTRY
from starlette.requests import Request

from trunker import (
    MISSING_SNAPSHOT_MESSAGE,
    FlagInactiveError,
    TrunkerConfigurationError,
    create_trunker,
)
from trunker.evaluator import UNKNOWN_FLAG_LABEL


def _attached(trunker, make_request):
    return make_request(snapshot=trunker.flags)


@pytest.mark.asyncio
async def test_check_admits_when_all_active(make_request):
    trunker = create_trunker(flags={"a": True, "b": lambda: True})
    assert await trunker.check(_attached(trunker, make_request), ["a", "b"]) is None


@pytest.mark.asyncio
async def test_check_returns_rejection(make_request):
    trunker = create_trunker(flags={"a": True, "b": False, "c": False})
    response = await trunker.check(_attached(trunker, make_request), ["a", "b", "c"])

    assert response.status_code == 403
    assert json.loads(response.body) == {"error": "Flag b is not active"}


@pytest.mark.asyncio
async def test_check_requires_attach(make_request):
    trunker = create_trunker(flags={"a": True})
    for target in ("a", ["a"], ["missing"]):
        with pytest.raises(TrunkerConfigurationError) as exc_info:
            await trunker.check(make_request(), target)
        assert str(exc_info.value) == MISSING_SNAPSHOT_MESSAGE


@pytest.mark.asyncio
async def test_attach_dependency(make_request):
    trunker = create_trunker(flags={"a": True})
    request = make_request()

    await trunker.attach(request)
    assert request.state.trunker is trunker.flags


@pytest.mark.asyncio
async def test_restrict_dependency_raises_flag_inactive(make_request):
    trunker = create_trunker(
        flags={"a": False},
        error={"format": "plain", "status_code": 404},
    )
    guard = trunker.restrict("a")

    with pytest.raises(FlagInactiveError) as exc_info:
        await guard(_attached(trunker, make_request))

    exc = exc_info.value
    assert exc.flag_name == "a"
    assert exc.status_code == 404
    assert exc.detail == "Flag a is not active"
    assert exc.response.body == b"Flag a is not active"


@pytest.mark.asyncio
async def test_restrict_dependency_admits(make_request):
    trunker = create_trunker(flags={"a": True})
    assert await trunker.restrict("a")(_attached(trunker, make_request)) is None


@pytest.mark.asyncio
async def test_short_circuit_counter(make_request):
    counter = {"calls": 0}

    async def side_effect():
        counter["calls"] += 1
        return True

    trunker = create_trunker(flags={"off": False, "counted": side_effect})
    response = await trunker.check(_attached(trunker, make_request), ["off", "counted"])

    assert response.status_code == 403
    assert counter["calls"] == 0


@pytest.mark.asyncio
async def test_check_with_minimal_scope():
    """Отказ не требует полного URL в scope."""
    trunker = create_trunker(flags={"off": False})
    request = Request({"type": "http", "state": {"trunker": trunker.flags}})

    response = await trunker.check(request, "off")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_denied_unknown_flag_uses_shared_label(make_request):
    trunker = create_trunker(flags={"known": True})
    labels = {"flag": UNKNOWN_FLAG_LABEL}
    before = REGISTRY.get_sample_value("trunker_access_denied_total", labels) or 0.0

    response = await trunker.check(_attached(trunker, make_request), ["known", "notConfigured"])

    assert json.loads(response.body) == {"error": "Flag notConfigured is not active"}
    assert REGISTRY.get_sample_value("trunker_access_denied_total", labels) == before + 1
    assert REGISTRY.get_sample_value(
        "trunker_access_denied_total", {"flag": "notConfigured"}
    ) is None
