import asyncio
import contextlib
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from . import config
from .errors import (CharacteristicNotFound, ConnectFailed, DeviceNotFound,
                     NoAdapter, ReadError, StorageError, TransportError)
from .readings import SensorReading, decode_payload

logger = logging.getLogger(__name__)

SYSFS_BLUETOOTH = "/sys/class/bluetooth"

# --- BLE TRANSPORT ---
#
# The read cycle only needs a few capabilities from the radio stack:
#
#   transport:  await adapters() -> [adapter, ...]
#   adapter:    await start_scan(), await stop_scan(), await peripherals()
#   peripheral: address, rssi, service_uuids, await advertised_name(),
#               await is_connected(), await connect(), await characteristics(),
#               await read(char), await disconnect()
#
# Implementations raise TransportError when the link misbehaves. The classes
# below back that contract with bleak.


@contextlib.contextmanager
def _transport_errors(action):
    try:
        yield
    except (BleakError, asyncio.TimeoutError, OSError) as e:
        raise TransportError(f"{action} failed: {e}") from e


class BleakPeripheral:
    def __init__(self, device, advertisement=None):
        self._device = device
        self._advertisement = advertisement
        self._client = None

    @property
    def address(self):
        return self._device.address

    @property
    def rssi(self):
        return self._advertisement.rssi if self._advertisement else None

    @property
    def service_uuids(self):
        return list(self._advertisement.service_uuids) if self._advertisement else []

    async def advertised_name(self):
        if self._advertisement and self._advertisement.local_name:
            return self._advertisement.local_name
        return self._device.name

    async def is_connected(self):
        return self._client is not None and self._client.is_connected

    async def connect(self):
        self._client = BleakClient(self._device, timeout=config.CONNECT_TIMEOUT)
        with _transport_errors("Connect"):
            await self._client.connect()

    async def characteristics(self):
        with _transport_errors("Service discovery"):
            services = self._client.services
        return [char for service in services for char in service.characteristics]

    async def read(self, characteristic):
        with _transport_errors("Read"):
            return bytes(await self._client.read_gatt_char(characteristic))

    async def disconnect(self):
        if self._client is None:
            return
        with _transport_errors("Disconnect"):
            await self._client.disconnect()


class BleakAdapter:
    def __init__(self, name=None):
        self.name = name
        self._scanner = None

    async def start_scan(self):
        kwargs = {"adapter": self.name} if self.name else {}
        self._scanner = BleakScanner(**kwargs)
        with _transport_errors("Scan start"):
            await self._scanner.start()

    async def stop_scan(self):
        if self._scanner is None:
            return
        with _transport_errors("Scan stop"):
            await self._scanner.stop()

    async def peripherals(self):
        if self._scanner is None:
            return []
        found = self._scanner.discovered_devices_and_advertisement_data
        return [BleakPeripheral(device, adv) for device, adv in found.values()]


class BleakTransport:
    """Radio access through bleak.

    BlueZ exposes one hciN entry per adapter under sysfs. CoreBluetooth and
    WinRT only offer the system default adapter, which bleak picks itself.
    """

    def __init__(self, sysfs_path=SYSFS_BLUETOOTH):
        self.sysfs_path = sysfs_path

    async def adapters(self):
        if not sys.platform.startswith("linux"):
            return [BleakAdapter()]
        try:
            entries = os.listdir(self.sysfs_path)
        except OSError:
            return []
        # hci0:64 style entries are open connections, not adapters.
        names = sorted(e for e in entries if e.startswith("hci") and ":" not in e)
        return [BleakAdapter(name) for name in names]


# --- READ CYCLE ---


@dataclass
class CycleResult:
    reading: Optional[SensorReading] = None
    error: Optional[ReadError] = None

    @property
    def ok(self):
        return self.reading is not None


class ReadCycle:
    """One discover -> connect -> read -> disconnect pass against the sensor.

    Each step either returns what the next step needs or raises a ReadError
    that ends the cycle. Nothing is retried here; the polling task decides
    when to try again. With several matching sensors in range the first one
    enumerated wins, which depends on discovery order.
    """

    def __init__(self, transport, scan_window=config.SCAN_WINDOW,
                 name_prefix=config.DEVICE_NAME_PREFIX,
                 characteristic_uuid=config.CURRENT_READINGS_UUID):
        self.transport = transport
        self.scan_window = scan_window
        self.name_prefix = name_prefix
        self.characteristic_uuid = characteristic_uuid.lower()

    async def run(self):
        adapter = await self.check_adapter()
        await self.scan(adapter)
        try:
            peripheral = await self.select(adapter)
        finally:
            await self.stop_scan(adapter)

        await self.connect(peripheral)
        try:
            characteristics = await self.discover(peripheral)
            target = self.locate_target(characteristics)
            return await self.read(peripheral, target)
        finally:
            await self.disconnect(peripheral)

    async def check_adapter(self):
        adapters = await self.transport.adapters()
        if not adapters:
            raise NoAdapter("No Bluetooth adapters found")
        logger.debug("Using Bluetooth adapter (%d available)", len(adapters))
        return adapters[0]

    async def scan(self, adapter):
        logger.info("Scanning for %s device...", self.name_prefix)
        await adapter.start_scan()
        await asyncio.sleep(self.scan_window)

    async def select(self, adapter):
        peripherals = await adapter.peripherals()
        logger.info("Found %d BLE device(s)", len(peripherals))
        for peripheral in peripherals:
            try:
                name = await peripheral.advertised_name()
            except TransportError as e:
                logger.debug("Skipping %s: %s", peripheral.address, e)
                continue
            if not name:
                continue
            logger.debug("Found device: %s", name)
            if name.startswith(self.name_prefix):
                logger.info("Found %s at %s", name, peripheral.address)
                return peripheral
        raise DeviceNotFound(f"{self.name_prefix} not found")

    async def stop_scan(self, adapter):
        try:
            await adapter.stop_scan()
        except TransportError as e:
            logger.warning("Could not stop scan: %s", e)

    async def connect(self, peripheral):
        try:
            if not await peripheral.is_connected():
                logger.info("Connecting to %s...", peripheral.address)
                await peripheral.connect()
                logger.info("Connected")
        except TransportError as e:
            raise ConnectFailed(str(e)) from e

    async def discover(self, peripheral):
        logger.debug("Discovering services...")
        return await peripheral.characteristics()

    def locate_target(self, characteristics):
        for char in characteristics:
            if str(char.uuid).lower() == self.characteristic_uuid:
                return char
        raise CharacteristicNotFound("Current readings characteristic not found")

    async def read(self, peripheral, characteristic):
        data = await peripheral.read(characteristic)
        logger.debug("Read %d bytes", len(data))
        return decode_payload(data)

    async def disconnect(self, peripheral):
        try:
            await peripheral.disconnect()
            logger.debug("Disconnected")
        except TransportError as e:
            logger.warning("Disconnect failed: %s", e)


async def read_cycle(transport, scan_window=config.SCAN_WINDOW):
    """Runs a single read cycle and reports its outcome instead of raising."""
    try:
        reading = await ReadCycle(transport, scan_window=scan_window).run()
    except ReadError as e:
        return CycleResult(error=e)
    return CycleResult(reading=reading)


# --- MAIN BLE TASK ---


def _record_result(result, cell, store):
    if not result.ok:
        logger.error("Failed to read from Aranet4 (%s): %s",
                     type(result.error).__name__, result.error)
        return

    reading = result.reading
    logger.info("Read from Aranet4: %s", reading.summary())
    cell.set(reading)
    try:
        store.append(reading)
    except StorageError as e:
        logger.error("Failed to store reading: %s", e)


async def sensor_polling_task(transport, cell, store, interval=config.POLL_INTERVAL,
                              scan_window=config.SCAN_WINDOW, stop_event=None):
    """Polls the sensor until `stop_event` is set, or forever without one.

    A failed cycle leaves the last good reading in `cell`. The pause is
    measured from the end of one cycle to the start of the next.
    """
    stop_event = stop_event or asyncio.Event()

    while not stop_event.is_set():
        try:
            result = await read_cycle(transport, scan_window=scan_window)
            _record_result(result, cell, store)
        except Exception:
            # Anything outside the ReadError family is still one bad cycle.
            logger.exception("Unexpected error while polling Aranet4")

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass

    logger.info("Polling task stopped")


async def scan_nearby(transport, window=10.0):
    """Lists every advertising device seen during `window` seconds.

    Returns a list of (name, address, rssi, service_uuids) tuples; raises
    NoAdapter when the host has no radio.
    """
    adapters = await transport.adapters()
    if not adapters:
        raise NoAdapter("No Bluetooth adapters found")
    adapter = adapters[0]

    await adapter.start_scan()
    try:
        await asyncio.sleep(window)
        devices = []
        for peripheral in await adapter.peripherals():
            try:
                name = await peripheral.advertised_name()
            except TransportError:
                name = None
            devices.append((name, peripheral.address, peripheral.rssi,
                            peripheral.service_uuids))
    finally:
        await adapter.stop_scan()
    return devices
