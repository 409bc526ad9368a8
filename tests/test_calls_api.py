from __future__ import annotations

import json

from tests.conftest import calls_payload


CALL_A = "4f9c3c3e-2c55-4b59-9d1e-7c1b0f2a9a01"
CALL_B = "a7d6e0c1-8b1f-4e52-bb37-3a1f25c6c002"
OTHER_CALL = "0b5f8a44-1d0e-4d4e-9c6e-1b9f6f2e7e03"

ACME = {"X-Allowed-Contexts": "acme.com"}


def _script_calls(switch, *rows) -> None:
    switch.reply_json("api show calls as json", calls_payload(*rows))


def _acme_call(**extra):
    row = {"uuid": CALL_A, "b_uuid": "", "accountcode": "acme.com", "direction": "inbound"}
    row.update(extra)
    return row


def test_restricted_hangup_of_own_call_sends_default_cause(client, switch) -> None:
    _script_calls(switch, _acme_call())

    response = client.post(f"/v1/calls/{CALL_A}/hangup", json={}, headers=ACME)

    assert response.status_code == 200
    assert response.json() == {
        "status": "success",
        "message": f"Call {CALL_A} hung up with cause NORMAL_CLEARING",
    }
    assert switch.commands() == [
        "api show calls as json",
        f"api uuid_kill {CALL_A} NORMAL_CLEARING",
    ]


def test_restricted_hangup_of_foreign_call_is_denied_before_any_write(client, switch) -> None:
    _script_calls(switch, _acme_call(accountcode="other.com"))

    response = client.post(f"/v1/calls/{CALL_A}/hangup", json={"cause": "USER_BUSY"}, headers=ACME)

    assert response.status_code == 403
    assert response.json() == {
        "status": "error",
        "message": (
            f"Call {CALL_A} belongs to context 'other.com' which is not in your allowed contexts: [acme.com]"
        ),
    }
    assert not any("uuid_kill" in line for line in switch.lines)


def test_hangup_without_body_uses_default_cause(client, switch) -> None:
    _script_calls(switch, _acme_call())

    response = client.post(f"/v1/calls/{CALL_A}/hangup")

    assert response.status_code == 200
    assert switch.lines[-1] == f"api uuid_kill {CALL_A} NORMAL_CLEARING"


def test_unknown_call_returns_404(client, switch) -> None:
    _script_calls(switch)

    response = client.post(f"/v1/calls/{CALL_A}/answer")

    assert response.status_code == 404
    assert response.json()["message"] == f"Call {CALL_A} not found"


def test_call_is_found_by_its_b_leg(client, switch) -> None:
    _script_calls(switch, _acme_call(b_uuid=CALL_B))

    response = client.post(f"/v1/calls/{CALL_B}/park", headers=ACME)

    assert response.status_code == 200
    assert response.json()["message"] == f"Call {CALL_B} parked"
    assert switch.lines[-1] == f"api uuid_park {CALL_B}"


def test_invalid_uuid_is_rejected_without_contacting_switch(client, switch) -> None:
    response = client.post("/v1/calls/not-a-uuid/answer")

    assert response.status_code == 400
    assert response.json()["message"] == "invalid UUID format: not-a-uuid"
    assert switch.lines == []


def test_transfer_builds_leg_flag_and_dialplan_context_pair(client, switch) -> None:
    _script_calls(switch, _acme_call())

    response = client.post(
        f"/v1/calls/{CALL_A}/transfer",
        json={"destination": "1000", "context": "acme.com", "leg": "BOTH"},
        headers=ACME,
    )

    assert response.status_code == 200
    assert switch.lines[-1] == f"api uuid_transfer {CALL_A} -both 1000 XML acme.com"
    assert response.json()["message"] == f"Call {CALL_A} (both legs) transferred to 1000 context acme.com"


def test_transfer_omits_dialplan_without_context(client, switch) -> None:
    _script_calls(switch, _acme_call())

    response = client.post(
        f"/v1/calls/{CALL_A}/transfer",
        json={"destination": "2000", "dialplan": "XML", "leg": "bleg"},
    )

    assert response.status_code == 200
    assert switch.lines[-1] == f"api uuid_transfer {CALL_A} -bleg 2000"
    assert response.json()["message"] == f"Call {CALL_A} (B-leg) transferred to 2000 dialplan XML"


def test_transfer_validation_messages(client, switch) -> None:
    missing = client.post(f"/v1/calls/{CALL_A}/transfer", json={})
    bad_leg = client.post(f"/v1/calls/{CALL_A}/transfer", json={"destination": "1000", "leg": "cleg"})
    injected = client.post(f"/v1/calls/{CALL_A}/transfer", json={"destination": "1000 XML\nevil"})

    assert missing.json()["message"] == "destination is required"
    assert bad_leg.json()["message"] == "leg must be 'aleg', 'bleg', or 'both'"
    assert injected.status_code == 400
    assert switch.lines == []


def test_bridge_authorizes_both_calls(client, switch) -> None:
    _script_calls(
        switch,
        _acme_call(),
        {"uuid": OTHER_CALL, "b_uuid": "", "accountcode": "other.com"},
    )

    response = client.post(
        "/v1/calls/bridge",
        json={"uuid_a": CALL_A, "uuid_b": OTHER_CALL},
        headers=ACME,
    )

    assert response.status_code == 403
    assert "other.com" in response.json()["message"]
    assert not any("uuid_bridge" in line for line in switch.lines)


def test_bridge_sends_both_uuids(client, switch) -> None:
    _script_calls(switch, _acme_call(), {"uuid": CALL_B, "b_uuid": "", "accountcode": "acme.com"})

    response = client.post("/v1/calls/bridge", json={"uuid_a": CALL_A, "uuid_b": CALL_B}, headers=ACME)

    assert response.status_code == 200
    assert response.json()["message"] == f"Calls {CALL_A} and {CALL_B} bridged"
    assert switch.lines[-1] == f"api uuid_bridge {CALL_A} {CALL_B}"


def test_bridge_requires_both_uuids(client) -> None:
    response = client.post("/v1/calls/bridge", json={"uuid_a": CALL_A})

    assert response.status_code == 400
    assert response.json()["message"] == "uuid_a and uuid_b are required"


def test_hold_and_unhold_commands(client, switch) -> None:
    _script_calls(switch, _acme_call())

    hold = client.post(f"/v1/calls/{CALL_A}/hold", json={"action": "hold"})
    assert switch.lines[-1] == f"api uuid_hold {CALL_A}"
    unhold = client.post(f"/v1/calls/{CALL_A}/hold", json={"action": "unhold"})
    assert switch.lines[-1] == f"api uuid_hold off {CALL_A}"
    invalid = client.post(f"/v1/calls/{CALL_A}/hold", json={"action": "pause"})

    assert hold.json()["message"] == f"Call {CALL_A} hold"
    assert unhold.json()["message"] == f"Call {CALL_A} unhold"
    assert invalid.status_code == 400
    assert invalid.json()["message"] == "action must be 'hold' or 'unhold'"


def test_record_start_and_stop(client, switch) -> None:
    _script_calls(switch, _acme_call())

    start = client.post(
        f"/v1/calls/{CALL_A}/record",
        json={"action": "start", "filename": "/var/lib/freeswitch/recordings/a.wav"},
    )
    assert switch.lines[-1] == f"api uuid_record {CALL_A} start /var/lib/freeswitch/recordings/a.wav"
    stop = client.post(f"/v1/calls/{CALL_A}/record", json={"action": "stop"})
    assert switch.lines[-1] == f"api uuid_record {CALL_A} stop all"

    assert start.json()["message"] == f"Recording start for call {CALL_A}"
    assert stop.json()["message"] == f"Recording stop for call {CALL_A}"


def test_record_rejects_bad_filenames(client, switch) -> None:
    missing = client.post(f"/v1/calls/{CALL_A}/record", json={"action": "start"})
    relative = client.post(f"/v1/calls/{CALL_A}/record", json={"action": "start", "filename": "a.wav"})
    traversal = client.post(
        f"/v1/calls/{CALL_A}/record",
        json={"action": "start", "filename": "/tmp/../etc/passwd"},
    )

    assert missing.json()["message"] == "filename is required for start action"
    assert relative.json()["message"] == "Invalid filename: path must be absolute"
    assert traversal.json()["message"] == "Invalid filename: path traversal not allowed"
    assert switch.lines == []


def test_dtmf_uses_default_and_explicit_duration(client, switch) -> None:
    _script_calls(switch, _acme_call())

    client.post(f"/v1/calls/{CALL_A}/dtmf", json={"digits": "12#"})
    assert switch.lines[-1] == f"api uuid_send_dtmf {CALL_A} 12#@100"
    response = client.post(f"/v1/calls/{CALL_A}/dtmf", json={"digits": "9", "duration": 250})
    assert switch.lines[-1] == f"api uuid_send_dtmf {CALL_A} 9@250"

    assert response.json()["message"] == f"DTMF 9 sent to call {CALL_A}"


def test_dtmf_zero_duration_falls_back_to_default(client, switch) -> None:
    _script_calls(switch, _acme_call())

    response = client.post(f"/v1/calls/{CALL_A}/dtmf", json={"digits": "1", "duration": 0})
    negative = client.post(f"/v1/calls/{CALL_A}/dtmf", json={"digits": "1", "duration": -5})

    assert response.status_code == 200
    assert switch.commands() == ["api show calls as json", f"api uuid_send_dtmf {CALL_A} 1@100"]
    assert negative.status_code == 400
    assert negative.json()["message"] == "duration must not be negative"


def test_dtmf_rejects_invalid_digits(client, switch) -> None:
    empty = client.post(f"/v1/calls/{CALL_A}/dtmf", json={})
    junk = client.post(f"/v1/calls/{CALL_A}/dtmf", json={"digits": "12 hangup"})

    assert empty.json()["message"] == "digits are required"
    assert junk.status_code == 400
    assert switch.lines == []


def test_originate_without_bleg_parks(client, switch) -> None:
    switch.reply("api originate", "+OK 5b1f3a1e-0000-4000-8000-000000000001\n")

    response = client.post("/v1/calls/originate", json={"aleg": "user/1000"})

    assert response.status_code == 200
    assert response.json() == {
        "status": "success",
        "data": {"response": "+OK 5b1f3a1e-0000-4000-8000-000000000001"},
    }
    assert switch.lines == ["api originate user/1000 &park()"]


def test_originate_builds_variables_and_positional_arguments(client, switch) -> None:
    response = client.post(
        "/v1/calls/originate",
        json={
            "aleg": "sofia/gateway/gw1/15551234567",
            "bleg": "1000",
            "dialplan": "XML",
            "context": "acme.com",
            "caller_id_name": "Front Desk",
            "caller_id_number": "15550000000",
            "timeout_sec": 30,
            "channel_variables": {"ignore_early_media": True},
        },
        headers=ACME,
    )

    assert response.status_code == 200
    assert switch.lines == [
        "api originate {ignore_early_media=true,origination_caller_id_number=15550000000,"
        "origination_caller_id_name='Front Desk'}sofia/gateway/gw1/15551234567 1000 XML acme.com 30"
    ]


def test_originate_zero_timeout_is_omitted(client, switch) -> None:
    response = client.post("/v1/calls/originate", json={"aleg": "user/1000", "bleg": "1000", "timeout_sec": 0})

    assert response.status_code == 200
    assert switch.lines == ["api originate user/1000 1000"]


def test_originate_rejects_variable_values_that_break_out_of_the_prefix(client, switch) -> None:
    smuggled = client.post(
        "/v1/calls/originate",
        json={
            "aleg": "user/1000",
            "context": "acme.com",
            "channel_variables": {"x": "1}user/1000 &park() XML other.com"},
        },
        headers=ACME,
    )
    brace = client.post(
        "/v1/calls/originate",
        json={"aleg": "user/1000", "channel_variables": {"x": "1},y=2"}},
    )
    bad_name = client.post(
        "/v1/calls/originate",
        json={"aleg": "user/1000", "channel_variables": {"a}b": "1"}},
    )

    assert smuggled.status_code == 400
    assert smuggled.json()["message"] == (
        "channel variable 'x' must not contain whitespace or control characters"
    )
    assert brace.status_code == 400
    assert brace.json()["message"] == (
        "channel variable 'x' must not contain ',', '{', '}' or single quotes"
    )
    assert bad_name.status_code == 400
    assert not any(line.startswith("api originate") for line in switch.lines)


def test_restricted_originate_checks_accountcode_variable(client, switch) -> None:
    switch.reply("api originate", "+OK 5b1f3a1e-0000-4000-8000-000000000002\n")

    foreign = client.post(
        "/v1/calls/originate",
        json={"aleg": "user/1000", "context": "acme.com", "channel_variables": {"accountcode": "other.com"}},
        headers=ACME,
    )
    own = client.post(
        "/v1/calls/originate",
        json={"aleg": "user/1000", "context": "acme.com", "channel_variables": {"accountcode": "acme.com"}},
        headers=ACME,
    )

    assert foreign.status_code == 403
    assert foreign.json()["message"] == (
        "Cannot originate call with accountcode 'other.com' - not in your allowed contexts: [acme.com]"
    )
    assert own.status_code == 200
    assert switch.lines == ["api originate {accountcode=acme.com}user/1000 &park() acme.com"]


def test_originate_requires_aleg(client, switch) -> None:
    response = client.post("/v1/calls/originate", json={"bleg": "1000"})

    assert response.status_code == 400
    assert response.json()["message"] == "aleg is required"
    assert switch.lines == []


def test_restricted_originate_requires_allowed_context(client, switch) -> None:
    missing = client.post("/v1/calls/originate", json={"aleg": "user/1000"}, headers=ACME)
    foreign = client.post(
        "/v1/calls/originate",
        json={"aleg": "user/1000", "context": "other.com"},
        headers=ACME,
    )

    assert missing.status_code == 400
    assert missing.json()["message"] == "context is required for authorization"
    assert foreign.status_code == 403
    assert foreign.json()["message"] == (
        "Cannot originate call in context 'other.com' - not in your allowed contexts: [acme.com]"
    )
    assert switch.lines == []


def test_remote_error_maps_to_502_with_prefix(client, switch) -> None:
    _script_calls(switch, _acme_call())
    switch.reply("api uuid_answer", "-ERR No such channel!\n")

    response = client.post(f"/v1/calls/{CALL_A}/answer")

    assert response.status_code == 502
    assert response.json()["message"] == "Failed to answer call: ESL error: -ERR No such channel!"


def test_call_details_compose_both_legs(client, switch) -> None:
    _script_calls(switch, _acme_call(b_uuid=CALL_B))
    switch.reply_json(f"api uuid_dump {CALL_A} json", {"Unique-ID": CALL_A, "Channel-State": "CS_EXECUTE"})
    switch.reply_json(f"api uuid_dump {CALL_B} json", {"Unique-ID": CALL_B})

    response = client.get(f"/v1/calls/{CALL_B}", headers=ACME)

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "success"
    assert payload["call_info"]["uuid"] == CALL_A
    assert payload["aleg"] == {"uuid": CALL_A, "details": {"Unique-ID": CALL_A, "Channel-State": "CS_EXECUTE"}}
    assert payload["bleg"] == {"uuid": CALL_B, "details": {"Unique-ID": CALL_B}}


def test_call_details_omit_b_leg_when_dump_fails(client, switch) -> None:
    _script_calls(switch, _acme_call(b_uuid=CALL_B))
    switch.reply_json(f"api uuid_dump {CALL_A} json", {"Unique-ID": CALL_A})
    switch.reply(f"api uuid_dump {CALL_B} json", "-ERR No such channel!\n")

    response = client.get(f"/v1/calls/{CALL_A}")

    assert response.status_code == 200
    assert "bleg" not in response.json()


def test_call_details_fail_when_a_leg_dump_fails(client, switch) -> None:
    _script_calls(switch, _acme_call())
    switch.reply(f"api uuid_dump {CALL_A} json", "not json")

    response = client.get(f"/v1/calls/{CALL_A}")

    assert response.status_code == 500
    assert response.json()["message"].startswith("Failed to retrieve A-leg details: ")


def test_list_calls_filters_by_accountcode(client, switch) -> None:
    _script_calls(switch, _acme_call(), {"uuid": OTHER_CALL, "b_uuid": "", "accountcode": "other.com"})

    restricted = client.get("/v1/calls", headers=ACME)
    unrestricted = client.get("/v1/calls", headers={"X-Allowed-Contexts": "acme.com, *"})

    assert restricted.json()["row_count"] == 1
    assert restricted.json()["rows"][0]["uuid"] == CALL_A
    assert unrestricted.json()["row_count"] == 2


def test_status_unwraps_response_field(client, switch) -> None:
    switch.reply_json("api json", {"command": "status", "status": "success", "response": {"uptime": {"years": 0}}})

    response = client.get("/v1/status")

    assert response.status_code == 200
    assert response.json() == {"status": "success", "data": {"uptime": {"years": 0}}}
    assert switch.lines == ['api json {"command":"status","data":""}']


def test_status_without_response_field_is_an_upstream_error(client, switch) -> None:
    switch.reply("api json", json.dumps({"status": "success"}))

    response = client.get("/v1/status")

    assert response.status_code == 500
    assert response.json()["message"] == "FreeSWITCH response missing 'response' field"


def test_channel_failure_maps_to_503(client, switch) -> None:
    switch.connect_error = ConnectionRefusedError("connection refused")

    response = client.get("/v1/status")

    assert response.status_code == 503
    assert response.json()["message"].startswith("Failed to get FreeSWITCH status: ESL connection failed")


def test_reply_text_error_is_remote_error(client, switch) -> None:
    switch.reply("api json", "", reply_text="-ERR invalid command")

    response = client.get("/v1/status")

    assert response.status_code == 502
    assert response.json()["message"] == "Failed to get FreeSWITCH status: ESL error: -ERR invalid command"
