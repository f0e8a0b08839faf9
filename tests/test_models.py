"""Tests for simulator data models."""

from pathlib import Path

from stubsim.modules.simulator import HookFailure, HookRole, SimulatorResponse


class TestSimulatorResponse:
    def test_defaults(self):
        response = SimulatorResponse()
        assert response.status_code == 200
        assert response.matching_request is None
        assert response.forwarded is False
        assert response.headers == {}

    def test_body_bytes(self):
        assert SimulatorResponse(body="é").body_bytes() == "é".encode()
        assert SimulatorResponse(body=b"\x00\x01").body_bytes() == b"\x00\x01"

    def test_from_dict_fills_missing_fields(self):
        response = SimulatorResponse.from_dict({"body": "x", "matching_request": "/r/A-Request.txt"})
        assert response.matching_request == Path("/r/A-Request.txt")
        assert response.status_code == 200

    def test_coerce_keeps_instances(self):
        response = SimulatorResponse(body="x")
        assert SimulatorResponse.coerce(response) is response
        assert SimulatorResponse.coerce(None) is None

    def test_coerce_bytes_uses_content_type(self):
        response = SimulatorResponse.coerce(b"raw", "application/octet-stream")
        assert response.body == b"raw"
        assert response.content_type == "application/octet-stream"

    def test_to_dict_is_json_safe(self):
        data = SimulatorResponse(body=b"abc", matching_request=Path("/r/A-Request.txt")).to_dict()
        assert data["body"] == "abc"
        assert data["matching_request"] == "/r/A-Request.txt"


class TestHookFailure:
    def test_to_dict(self):
        failure = HookFailure(HookRole.GLOBAL_REQUEST, "/r/GlobalRequest.py", "CustomizationError", "boom")
        data = failure.to_dict()
        assert data["role"] == "global-request"
        assert data["message"] == "boom"
        assert "timestamp" in data
