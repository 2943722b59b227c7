import random

import pytest

from sims.flightaxis_telemetry import (KEY_TABLE, FLAG_KEYS, TelemetryRecord, MissingKey, FlightAxisTelemetry,
                                       extract_fields, parse_reply)
from common.soap_tx_rx import ExchangeError


def reply_body(values, keys=None):
    keys = [key for key, name in KEY_TABLE] if keys is None else keys
    items = "\n".join(f"<{key}>{values[key]}</{key}>" for key in keys)
    return ("<SOAP-ENV:Envelope><SOAP-ENV:Body><ExchangeDataResponse>"
            "<m-aircraftState>\n" + items + "\n</m-aircraftState>"
            "<m-currentAircraftStatus>CAS-FLYING</m-currentAircraftStatus>"
            "</ExchangeDataResponse></SOAP-ENV:Body></SOAP-ENV:Envelope>")


@pytest.fixture
def values():
    # distinct value per key so a shifted field would be noticed
    return {key: round(i * 1.5 - 7.25, 3) for i, (key, name) in enumerate(KEY_TABLE)}


def test_all_fields_extracted(values):
    record = parse_reply(reply_body(values))
    for key, name in KEY_TABLE:
        assert getattr(record, name) == values[key]


def test_key_table_covers_record():
    assert [name for key, name in KEY_TABLE] == list(TelemetryRecord._fields)


def test_field_order_does_not_matter(values):
    keys = [key for key, name in KEY_TABLE]
    random.Random(4).shuffle(keys)
    assert parse_reply(reply_body(values, keys)) == parse_reply(reply_body(values))


def test_missing_key_reported(values):
    keys = [key for key, name in KEY_TABLE if key != "m-velocityWorldU-MPS"]
    with pytest.raises(MissingKey) as excinfo:
        parse_reply(reply_body(values, keys))

    err = excinfo.value
    assert err.missing == ("m-velocityWorldU-MPS",)
    assert isinstance(err, ExchangeError)
    # fields after the missing one are still read correctly
    assert err.partial["velocity_world_v_mps"] == values["m-velocityWorldV-MPS"]
    assert err.partial["velocity_world_w_mps"] == values["m-velocityWorldW-MPS"]
    assert err.partial["airspeed_mps"] == values["m-airspeed-MPS"]
    assert "velocity_world_u_mps" not in err.partial
    assert len(err.partial) == len(KEY_TABLE) - 1


def test_several_missing_keys_all_named(values):
    drop = {"m-airspeed-MPS", "m-flightAxisControllerIsActive"}
    keys = [key for key, name in KEY_TABLE if key not in drop]
    with pytest.raises(MissingKey) as excinfo:
        parse_reply(reply_body(values, keys))
    assert set(excinfo.value.missing) == drop


def test_flags_sent_as_text(values):
    values.update({"m-isLocked": "false", "m-hasLostComponents": "false",
                   "m-anEngineIsRunning": "true", "m-isTouchingGround": "true",
                   "m-flightAxisControllerIsActive": "true"})
    record = parse_reply(reply_body(values))
    assert record.is_locked == 0.0
    assert record.has_lost_components == 0.0
    assert record.an_engine_is_running == 1.0
    assert record.is_touching_ground == 1.0
    assert record.controller_is_active == 1.0
    assert record.airspeed_mps == values["m-airspeed-MPS"]


def test_all_flags_false(values):
    for key in FLAG_KEYS:
        values[key] = "false"
    values["m-airspeed-MPS"] = 1.5
    record = parse_reply(reply_body(values))
    assert record.airspeed_mps == 1.5
    assert record.is_touching_ground == 0.0
    assert record.controller_is_active == 0.0


def test_unreadable_value_counts_as_missing(values):
    values["m-roll-DEG"] = "n/a"
    with pytest.raises(MissingKey) as excinfo:
        parse_reply(reply_body(values))
    assert excinfo.value.missing == ("m-roll-DEG",)


def test_number_formats():
    fields = extract_fields("<a>-1.5e2</a><b> 42 </b><c>nan</c><d>CAS-FLYING</d><e></e>"
                            "<f>true</f><g> False </g>")
    assert fields["a"] == -150.0
    assert fields["b"] == 42.0
    assert fields["c"] != fields["c"]  # nan passes through unchecked
    assert "d" not in fields
    assert "e" not in fields
    assert fields["f"] == 1.0
    assert fields["g"] == 0.0


def test_key_is_not_matched_as_prefix():
    fields = extract_fields("<m-propRPMx>1</m-propRPMx><m-propRPM>2</m-propRPM>")
    assert fields["m-propRPM"] == 2.0


def test_record_kept_when_parse_fails(values):
    telemetry = FlightAxisTelemetry()
    assert not telemetry.valid
    first = telemetry.update(reply_body(values))
    assert telemetry.valid

    keys = [key for key, name in KEY_TABLE if key != "m-roll-DEG"]
    changed = {key: value + 100 for key, value in values.items()}
    with pytest.raises(MissingKey):
        telemetry.update(reply_body(changed, keys))
    assert telemetry.record == first


def test_flag_keys_are_in_key_table():
    keys = [key for key, name in KEY_TABLE]
    assert all(key in keys for key in FLAG_KEYS)
