"""Lists nearby BLE devices, to check that the sensor is advertising."""

import asyncio

from aranet.ble_handler import BleakTransport, scan_nearby
from aranet.errors import NoAdapter

SCAN_SECONDS = 10.0


async def main():
    print("Starting BLE scanner...\n")
    try:
        print(f"Starting scan for {SCAN_SECONDS:.0f} seconds...\n")
        devices = await scan_nearby(BleakTransport(), window=SCAN_SECONDS)
    except NoAdapter:
        print("No Bluetooth adapters found!")
        return

    print(f"Found {len(devices)} device(s):\n")
    for i, (name, address, rssi, services) in enumerate(devices, start=1):
        print(f"Device {i}:")
        print(f"  Name: {name or '<unnamed>'}")
        print(f"  Address: {address}")
        print(f"  RSSI: {rssi}")
        if services:
            print(f"  Services: {', '.join(services)}")
        print()


if __name__ == '__main__':
    asyncio.run(main())
