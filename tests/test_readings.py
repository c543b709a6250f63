import dataclasses

import pytest

from aranet.errors import MalformedPayload
from aranet.readings import PAYLOAD_SIZE, SensorReading, Status, decode_payload
from conftest import SAMPLE_PAYLOAD


def test_decode_sample_payload() -> None:
    reading = decode_payload(SAMPLE_PAYLOAD, timestamp=1700000000)

    assert reading.co2 == 712
    assert reading.temperature == 16.0
    assert reading.pressure == 96
    assert reading.humidity == 50
    assert reading.battery == 85
    assert reading.status is Status.GREEN
    assert reading.timestamp == 1700000000


def test_decode_uses_wall_clock_when_no_timestamp(monkeypatch) -> None:
    monkeypatch.setattr("aranet.readings.time.time", lambda: 1234.9)

    assert decode_payload(SAMPLE_PAYLOAD).timestamp == 1234


def test_pressure_discards_fractional_hpa() -> None:
    payload = bytearray(SAMPLE_PAYLOAD)
    payload[4:6] = (10139).to_bytes(2, "little")

    assert decode_payload(bytes(payload)).pressure == 1013


def test_decode_full_scale_values() -> None:
    payload = bytes([0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x02, 0, 0, 0, 0])
    reading = decode_payload(payload)

    assert reading.co2 == 65535
    assert reading.temperature == 65535 / 20.0
    assert reading.pressure == 6553
    assert reading.humidity == 255
    assert reading.battery == 255
    assert reading.status is Status.YELLOW


@pytest.mark.parametrize("length", range(PAYLOAD_SIZE))
def test_decode_rejects_truncated_payload(length) -> None:
    with pytest.raises(MalformedPayload):
        decode_payload(SAMPLE_PAYLOAD[:length])


def test_decode_ignores_trailing_bytes() -> None:
    reading = decode_payload(SAMPLE_PAYLOAD + b"\x99\x99", timestamp=1)

    assert reading == decode_payload(SAMPLE_PAYLOAD, timestamp=1)


def test_decode_accepts_bytearray() -> None:
    assert decode_payload(bytearray(SAMPLE_PAYLOAD)).co2 == 712


def test_status_mapping_is_total() -> None:
    expected = {1: Status.GREEN, 2: Status.YELLOW, 3: Status.RED}
    for value in range(256):
        assert Status.from_byte(value) is expected.get(value, Status.UNKNOWN)


def test_out_of_range_status_degrades_to_unknown() -> None:
    payload = bytearray(SAMPLE_PAYLOAD)
    payload[8] = 7

    assert decode_payload(bytes(payload)).status is Status.UNKNOWN


def test_reading_is_immutable() -> None:
    reading = decode_payload(SAMPLE_PAYLOAD)

    with pytest.raises(dataclasses.FrozenInstanceError):
        reading.co2 = 400


def test_to_dict_uses_status_label() -> None:
    reading = decode_payload(SAMPLE_PAYLOAD, timestamp=42)

    assert reading.to_dict() == {
        "co2": 712,
        "temperature": 16.0,
        "humidity": 50,
        "pressure": 96,
        "battery": 85,
        "timestamp": 42,
        "status": "GREEN",
    }


def test_from_row_restores_reading() -> None:
    reading = decode_payload(SAMPLE_PAYLOAD, timestamp=42)

    assert SensorReading.from_row(reading.to_dict()) == reading


def test_from_row_unknown_label() -> None:
    row = dict(decode_payload(SAMPLE_PAYLOAD).to_dict(), status="PURPLE")

    assert SensorReading.from_row(row).status is Status.UNKNOWN
