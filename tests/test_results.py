import json

import pytest

from fmcsadmin import results


def test_format_error_uses_description_table():
    assert results.format_error(10904) == "Error: 10904 (No applicable files for this operation)"
    assert results.format_error(9) == "Error: 9 (Access denied)"


def test_unknown_code_has_empty_description():
    assert results.describe(424242) == ""
    assert results.format_error(424242) == "Error: 424242 ()"


def test_server_stopping_is_reported_as_host_unreachable():
    assert results.normalize_code(results.SERVER_STOPPING) == results.HOST_UNREACHABLE
    assert results.format_error(1701) == "Error: 10502 (Host unreachable)"


def test_decode_reads_first_message_code_and_status():
    result = results.decode(
        {"response": {"status": "RUNNING"}, "messages": [{"code": "0"}, {"code": "5"}]}
    )
    assert result.ok
    assert result.status == "RUNNING"


def test_decode_without_messages_is_unknown_error():
    assert results.decode({"response": {}}).code == results.UNKNOWN_ERROR


@pytest.mark.parametrize("content", [b"<html>busy</html>", b"[1, 2]"])
def test_decode_response_rejects_non_envelope_bodies(content):
    result, payload = results.decode_response(200, content)
    assert result.code == results.UNAVAILABLE_COMMAND
    assert payload == {}


def test_decode_response_keeps_envelope_code_for_reads():
    body = json.dumps({"response": {}, "messages": [{"code": "10600"}]}).encode()
    result, _ = results.decode_response(404, body)
    assert result.code == 10600


def test_decode_response_maps_failed_mutations_to_invalid_parameter():
    body = json.dumps({"response": {}, "messages": [{"code": "10600"}]}).encode()
    result, payload = results.decode_response(404, body, http_errors_are_invalid=True)
    assert result.code == results.INVALID_PARAMETER
    assert payload == {}


def test_decode_response_empty_bodies():
    assert results.decode_response(204, b"")[0].ok
    assert results.decode_response(500, b"")[0].code == results.INVALID_PARAMETER
