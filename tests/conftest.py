"""In-memory stand-ins for the BLE stack, plus shared fixtures."""

from types import SimpleNamespace

import pytest

from aranet import config
from aranet.database_handler import HistoryStore
from aranet.errors import TransportError

# co2=712, temp_raw=320, pressure_raw=968, humidity=50, battery=85, status=1
SAMPLE_PAYLOAD = bytes([0xC8, 0x02, 0x40, 0x01, 0xC8, 0x03, 0x32, 0x55, 0x01,
                        0x00, 0x00, 0x00, 0x00])


class FakePeripheral:
    def __init__(self, name, payload=SAMPLE_PAYLOAD, address="AA:BB:CC:DD:EE:FF",
                 rssi=-60, uuids=(config.CURRENT_READINGS_UUID,), service_uuids=()):
        self.name = name
        self.payload = payload
        self.address = address
        self.rssi = rssi
        self.service_uuids = list(service_uuids)
        self.uuids = list(uuids)
        self.connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.name_error = False
        self.connect_error = False
        self.read_error = False
        self.disconnect_error = False

    async def advertised_name(self):
        if self.name_error:
            raise TransportError("properties unavailable")
        return self.name

    async def is_connected(self):
        return self.connected

    async def connect(self):
        self.connect_calls += 1
        if self.connect_error:
            raise TransportError("connection refused")
        self.connected = True

    async def characteristics(self):
        return [SimpleNamespace(uuid=uuid) for uuid in self.uuids]

    async def read(self, characteristic):
        if self.read_error:
            raise TransportError("read timed out")
        return self.payload

    async def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False
        if self.disconnect_error:
            raise TransportError("already gone")


class FakeAdapter:
    def __init__(self, peripherals=()):
        self._peripherals = list(peripherals)
        self.scanning = False
        self.start_calls = 0
        self.stop_calls = 0

    async def start_scan(self):
        self.start_calls += 1
        self.scanning = True

    async def stop_scan(self):
        self.stop_calls += 1
        self.scanning = False

    async def peripherals(self):
        return list(self._peripherals)


class FakeTransport:
    def __init__(self, adapters=()):
        self._adapters = list(adapters)
        self.cycles = 0

    async def adapters(self):
        self.cycles += 1
        return list(self._adapters)


def transport_with(*peripherals):
    return FakeTransport([FakeAdapter(peripherals)])


@pytest.fixture
def store(tmp_path):
    history = HistoryStore(str(tmp_path / "history.db"))
    history.setup()
    return history
