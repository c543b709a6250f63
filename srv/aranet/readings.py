import struct
import time
from dataclasses import asdict, dataclass
from enum import Enum

from .errors import MalformedPayload

# co2, temperature, pressure, humidity, battery, status, interval, ago
PAYLOAD_FORMAT = "<HHHBBBHH"
PAYLOAD_SIZE = struct.calcsize(PAYLOAD_FORMAT)


class Status(str, Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_byte(cls, value):
        return _STATUS_BYTES.get(value, cls.UNKNOWN)


_STATUS_BYTES = {1: Status.GREEN, 2: Status.YELLOW, 3: Status.RED}


@dataclass(frozen=True)
class SensorReading:
    co2: int
    temperature: float
    humidity: int
    pressure: int
    battery: int
    timestamp: int
    status: Status

    def to_dict(self):
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_row(cls, row):
        """Builds a reading from a history row (mapping or sqlite3.Row)."""
        return cls(
            co2=row["co2"],
            temperature=row["temperature"],
            humidity=row["humidity"],
            pressure=row["pressure"],
            battery=row["battery"],
            timestamp=row["timestamp"],
            status=Status(row["status"]) if row["status"] in Status.__members__ else Status.UNKNOWN,
        )

    def summary(self):
        return (f"CO2={self.co2} ppm, Temp={self.temperature:.1f}°C, "
                f"Humidity={self.humidity}%, Pressure={self.pressure} hPa, "
                f"Battery={self.battery}%, Status={self.status.value}")


def decode_payload(data, timestamp=None):
    """Decodes the current-readings block of an Aranet4.

    The interval and ago fields are consumed so that a short buffer is
    rejected, but they are not part of the reading. Bytes past the fixed
    block are ignored.
    """
    if len(data) < PAYLOAD_SIZE:
        raise MalformedPayload(
            f"Expected {PAYLOAD_SIZE} bytes, got {len(data)}")

    (co2, temperature_raw, pressure_raw, humidity, battery, status,
     _interval, _ago) = struct.unpack_from(PAYLOAD_FORMAT, bytes(data))

    return SensorReading(
        co2=co2,
        temperature=temperature_raw / 20.0,
        humidity=humidity,
        pressure=pressure_raw // 10,
        battery=battery,
        timestamp=int(time.time()) if timestamp is None else timestamp,
        status=Status.from_byte(status),
    )
