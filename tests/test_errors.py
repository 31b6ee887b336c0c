"""Tests for errors.py: status classification, validation details, ApiError."""
import httpx
import pytest
from pydantic import ValidationError

from wealthify.errors import (
    ApiError,
    ClassifiedError,
    ErrorKind,
    SessionExpiredError,
    classify,
    classify_response,
    classify_transport_error,
    extract_validation_details,
)


# ── classify: status mapping ────────────────────────────────────────

def test_no_response_is_network():
    err = classify(None)
    assert err.kind is ErrorKind.NETWORK
    assert err.http_status is None
    assert err.retryable is True


def test_401_is_unauthorized_not_retryable():
    err = classify(401, {"message": "Token expired"})
    assert err.kind is ErrorKind.UNAUTHORIZED
    assert err.retryable is False
    assert err.message == "Token expired"


def test_400_without_details_is_client_error():
    err = classify(400, {"message": "Bad input"})
    assert err.kind is ErrorKind.CLIENT_ERROR
    assert err.retryable is False


def test_400_with_field_errors_is_validation():
    err = classify(400, {"message": "Invalid", "errors": {"amount": ["must be positive"]}})
    assert err.kind is ErrorKind.VALIDATION
    assert err.validation_details == {"amount": ["must be positive"]}


def test_404_and_409_are_client_errors():
    assert classify(404).kind is ErrorKind.CLIENT_ERROR
    assert classify(409).kind is ErrorKind.CLIENT_ERROR
    assert classify(404).retryable is False


def test_403_is_client_error():
    err = classify(403)
    assert err.kind is ErrorKind.CLIENT_ERROR
    assert "permission" in err.message


def test_422_is_validation():
    err = classify(422, {"errors": {"email": ["required"], "name": ["too short"]}})
    assert err.kind is ErrorKind.VALIDATION
    assert err.retryable is False
    assert err.validation_details["name"] == ["too short"]


def test_429_is_rate_limited_and_retryable():
    err = classify(429)
    assert err.kind is ErrorKind.RATE_LIMITED
    assert err.retryable is True


def test_5xx_is_server_error_and_retryable():
    for status in (500, 502, 503, 504, 599):
        err = classify(status)
        assert err.kind is ErrorKind.SERVER_ERROR
        assert err.retryable is True


def test_503_default_message():
    assert "temporarily unavailable" in classify(503).message


def test_other_status_is_unknown():
    err = classify(418)
    assert err.kind is ErrorKind.UNKNOWN
    assert err.retryable is False
    assert "418" in err.message


def test_payload_message_wins_over_default():
    assert classify(500, {"message": "DB down"}).message == "DB down"


def test_payload_code_is_kept():
    assert classify(409, {"code": "DUPLICATE"}).code == "DUPLICATE"


def test_classification_is_idempotent():
    payload = {"message": "Invalid", "errors": {"amount": ["must be positive"]}}
    assert classify(422, payload) == classify(422, payload)
    assert classify(None) == classify(None)


# ── extract_validation_details ──────────────────────────────────────

def test_details_wraps_single_strings():
    assert extract_validation_details({"errors": {"amount": "required"}}) == {"amount": ["required"]}


def test_details_none_when_missing():
    assert extract_validation_details({"message": "x"}) is None
    assert extract_validation_details({"errors": {}}) is None
    assert extract_validation_details("not a dict") is None


def test_details_ignores_list_shaped_errors():
    assert extract_validation_details({"errors": ["a", "b"]}) is None


# ── classify_response / classify_transport_error ────────────────────

def test_classify_response_reads_json():
    response = httpx.Response(422, json={"message": "Nope", "errors": {"date": ["invalid"]}})
    err = classify_response(response)
    assert err.kind is ErrorKind.VALIDATION
    assert err.message == "Nope"


def test_classify_response_non_json_body():
    response = httpx.Response(418, text="I'm a teapot")
    err = classify_response(response)
    assert err.kind is ErrorKind.UNKNOWN
    assert err.message == "I'm a teapot"


def test_connect_error_is_network():
    err = classify_transport_error(httpx.ConnectError("connection refused"))
    assert err.kind is ErrorKind.NETWORK
    assert err.retryable is True


def test_timeout_is_network():
    err = classify_transport_error(httpx.ReadTimeout("read timed out"))
    assert err.kind is ErrorKind.NETWORK
    assert "timed out" in err.message


# ── ApiError ────────────────────────────────────────────────────────

def test_api_error_exposes_classification():
    classified = classify(422, {"message": "Invalid", "errors": {"amount": ["must be positive"]}})
    e = ApiError(classified)
    assert e.kind is ErrorKind.VALIDATION
    assert e.status_code == 422
    assert e.retryable is False
    assert e.validation_details == {"amount": ["must be positive"]}
    assert str(e) == "API error (HTTP 422): Invalid"


def test_api_error_without_status():
    assert "no response" in str(ApiError(classify(None)))


def test_session_expired_is_unauthorized_api_error():
    e = SessionExpiredError("refresh rejected", http_status=401)
    assert isinstance(e, ApiError)
    assert e.kind is ErrorKind.UNAUTHORIZED
    assert e.status_code == 401
    assert "Session expired" in str(e)


def test_classified_error_is_frozen():
    err = ClassifiedError(kind=ErrorKind.NETWORK, message="x")
    with pytest.raises(ValidationError):
        err.message = "y"
