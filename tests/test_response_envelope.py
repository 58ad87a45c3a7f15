from fastapi import HTTPException

from core.errors import ErrorCode, resource_not_found
from core.response_envelope import error_payload, http_exception_response, success_payload


def test_success_payload_includes_request_id():
    payload = success_payload(
        data={"value": 1},
        message="ok",
        request_id="req-123",
    )
    assert payload["success"] is True
    assert payload["data"]["value"] == 1
    assert payload["requestId"] == "req-123"


def test_error_payload_includes_request_id():
    payload = error_payload(
        message="failed",
        data={"code": "X"},
        request_id="req-999",
    )
    assert payload["success"] is False
    assert payload["data"]["code"] == "X"
    assert payload["requestId"] == "req-999"


def test_http_exception_response_unwraps_app_exception_detail():
    response = http_exception_response(resource_not_found("File", "abc"))

    assert response.status_code == 404
    assert b'"success":false' in response.body
    assert ErrorCode.RESOURCE_NOT_FOUND.value.encode() in response.body


def test_http_exception_response_with_plain_detail():
    response = http_exception_response(HTTPException(status_code=400, detail="bad input"))

    assert response.status_code == 400
    assert b'"message":"bad input"' in response.body
