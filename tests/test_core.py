"""Tests for small core helpers: event scrubbing, percent formatting, the result envelope."""

import json

import pytest
from starlette.requests import Request

from land_gateway.core.errors import global_exception_handler
from land_gateway.core.sentry import REDACTED, scrub_event
from land_gateway.modules.land.service import format_basis_points
from land_gateway.schemas.common import OperationResult, OperationStatus


def test_scrub_event_redacts_headers_and_key_material():
    event = {
        "request": {
            "headers": {"Authorization": "Bearer x", "Accept": "application/json"},
            "data": {"privateKey": "0xdead", "plotId": 1},
        }
    }

    scrubbed = scrub_event(event, {})

    assert scrubbed["request"]["headers"] == {"Authorization": REDACTED, "Accept": "application/json"}
    assert scrubbed["request"]["data"] == {"privateKey": REDACTED, "plotId": 1}


def test_scrub_event_without_request():
    assert scrub_event({"message": "boom"}, {}) == {"message": "boom"}


@pytest.mark.parametrize(
    ("bps", "expected"),
    [("2500", "25.00%"), ("10000", "100.00%"), ("1", "0.01%"), ("0", "0.00%")],
)
def test_format_basis_points(bps, expected):
    assert format_basis_points(bps) == expected


def test_operation_result_status_codes():
    assert OperationResult.ok("done").as_response().status_code == 200

    partial = OperationResult.ok("done", warnings=["mirror stale"])
    assert partial.status is OperationStatus.PARTIAL_SUCCESS
    assert partial.as_response().status_code == 207

    assert OperationResult.pending("waiting", {"txHash": "0x1"}).as_response().status_code == 202
    assert OperationResult.failure("nope", code="X").as_response().status_code == 500


async def test_unhandled_exception_hides_internals():
    request = Request(
        {"type": "http", "scheme": "http", "method": "GET", "path": "/api/land/1", "headers": [], "query_string": b""}
    )

    resp = await global_exception_handler(request, RuntimeError("SELECT secret FROM plot_registry"))

    assert resp.status_code == 500
    body = json.loads(resp.body)
    assert body["error"]["code"] == "INTERNAL_ERROR"
    assert body["error"]["details"] is None
    assert "secret" not in resp.body.decode()
