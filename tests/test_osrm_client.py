import httpx
import pytest

from rostering.services.routing import osrm_client
from rostering.services.routing.osrm_client import OSRMClient


def _client_with(handler, **kwargs) -> OSRMClient:
    client = OSRMClient(base_url="http://osrm.test", profile="driving", backoff_seconds=0, **kwargs)
    client._get_client = lambda: httpx.Client(transport=httpx.MockTransport(handler))
    return client


def test_table_returns_matrices_and_builds_lon_lat_url():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(200, json={"code": "Ok", "durations": [[0, 60], [60, 0]], "distances": [[0, 500], [500, 0]]})

    data = _client_with(handler).table([(51.5, -0.1), (51.6, -0.2)])

    assert data["durations"] == [[0, 60], [60, 0]]
    assert seen[0].path == "/table/v1/driving/-0.1,51.5;-0.2,51.6"
    assert seen[0].params["annotations"] == "duration,distance"


def test_table_retries_server_errors():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"durations": [[0]], "distances": [[0]]})

    assert _client_with(handler, max_retries=2).table([(51.5, -0.1)])["distances"] == [[0]]
    assert calls["count"] == 2


def test_table_gives_up_after_retries():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    with pytest.raises(httpx.HTTPStatusError):
        _client_with(handler, max_retries=1).table([(51.5, -0.1)])


def test_connection_errors_become_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ConnectionError):
        _client_with(handler, max_retries=0).table([(51.5, -0.1)])


def test_error_code_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "InvalidQuery", "message": "bad coordinates"})

    with pytest.raises(ValueError, match="bad coordinates"):
        _client_with(handler).table([(51.5, -0.1)])


def test_request_size_limit():
    with pytest.raises(ValueError):
        _client_with(lambda request: httpx.Response(200), max_coordinates_per_request=2).table([(0, 0)] * 3)


def test_client_requires_base_url(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(osrm_client.settings, "osrm_base_url", None)
    with pytest.raises(ValueError):
        OSRMClient()
    assert osrm_client.check_health() is False
