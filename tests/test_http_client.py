from __future__ import annotations

import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from adapters.http_client import AUTH_HEADER, build_request, send_request, render_json, render_query
from core.domain.params import ParameterBag
from core.errors import BridgeTransportError, RequestBuildError
from core.interfaces.transport import TrustMode

from conftest import MockResolver, json_response, refuse


def _bag() -> ParameterBag:
    bag = ParameterBag()
    bag.set_int_list("account_ids", [1, None, 2, 3])
    bag.set_str("reason", "cleanup")
    bag.set_bool("delete_permanently", True)
    bag.set_int("folder_id", 0)
    return bag


def test_render_query_repeats_list_keys() -> None:
    assert render_query(_bag()) == [
        ("account_ids", "1"),
        ("account_ids", "2"),
        ("account_ids", "3"),
        ("delete_permanently", "true"),
        ("folder_id", "0"),
        ("reason", "cleanup"),
    ]


def test_render_json_unwraps_identifier_list() -> None:
    assert render_json(_bag()) == {
        "account_ids": [1, 2, 3],
        "reason": "cleanup",
        "delete_permanently": True,
        "folder_id": 0,
    }


def test_delete_query_round_trips_identifiers(settings_factory) -> None:
    ids = [42, 7, 1001, 7]
    bag = ParameterBag()
    bag.set_int_list("account_ids", ids)

    with httpx.Client() as client:
        request = build_request(client, settings_factory(), bag, "/api/delete_accounts", "DELETE")

    decoded = parse_qs(urlsplit(str(request.url)).query)["account_ids"]
    assert sorted(int(v) for v in decoded) == sorted(ids)
    assert request.content == b""


def test_get_request_headers_and_url(settings_factory) -> None:
    bag = ParameterBag()
    bag.set_int("account_id", 42)
    bag.set_str("account_type", "")

    with httpx.Client() as client:
        request = build_request(client, settings_factory(), bag, "/secretsmanagement/get_account", "get")

    assert request.method == "GET"
    assert str(request.url) == "http://localhost:5959/secretsmanagement/get_account?account_id=42"
    assert request.headers[AUTH_HEADER] == "token-123"
    assert "content-type" not in request.headers


def test_post_request_has_json_body(settings_factory) -> None:
    bag = ParameterBag()
    bag.set_str("account_title", "t1")
    bag.set_str("account_type", "Windows")

    with httpx.Client() as client:
        request = build_request(client, settings_factory(), bag, "/api/add_account", "POST")

    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {"account_title": "t1", "account_type": "Windows"}
    assert request.url.query == b""


def test_unsupported_method(settings_factory) -> None:
    with httpx.Client() as client, pytest.raises(RequestBuildError):
        build_request(client, settings_factory(), ParameterBag(), "/x", "HEAD")


def test_send_request_returns_raw_body(settings_factory) -> None:
    resolver = MockResolver(lambda request: json_response({"status_code": 200}))
    body = send_request(resolver, settings_factory(), ParameterBag(), "/x", "GET")
    assert json.loads(body) == {"status_code": 200}
    assert resolver.insecure_requests == []


def test_non_2xx_http_status_still_returns_body(settings_factory) -> None:
    resolver = MockResolver(lambda request: json_response({"status_code": 401, "message": "bad token"}, 401))
    body = send_request(resolver, settings_factory(), ParameterBag(), "/x", "GET")
    assert json.loads(body)["message"] == "bad token"


@pytest.mark.parametrize("mode", [TrustMode.PINNED, TrustMode.FETCHED])
def test_verified_transport_failure_retries_insecure_once(settings_factory, mode: TrustMode) -> None:
    resolver = MockResolver(
        refuse,
        mode=mode,
        insecure_handler=lambda request: json_response({"status_code": 200, "ok": True}),
    )
    body = send_request(resolver, settings_factory(), ParameterBag(), "/x", "POST")

    assert json.loads(body)["ok"] is True
    assert len(resolver.requests) == 1
    assert len(resolver.insecure_requests) == 1
    assert resolver.insecure_requests[0].headers[AUTH_HEADER] == "token-123"


def test_both_transports_failing_surface_request_failed(settings_factory) -> None:
    resolver = MockResolver(refuse, mode=TrustMode.PINNED, insecure_handler=refuse)
    with pytest.raises(BridgeTransportError, match="request failed"):
        send_request(resolver, settings_factory(), ParameterBag(), "/x", "GET")
    assert len(resolver.insecure_requests) == 1


def test_unverified_transport_failure_is_not_retried(settings_factory) -> None:
    resolver = MockResolver(refuse, mode=TrustMode.INSECURE)
    with pytest.raises(BridgeTransportError, match="request failed"):
        send_request(resolver, settings_factory(), ParameterBag(), "/x", "GET")
    assert resolver.insecure_requests == []
