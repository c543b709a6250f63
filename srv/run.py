import asyncio
import logging
import sys
import threading
import time

from aranet.ble_handler import BleakTransport, sensor_polling_task
from aranet.database_handler import HistoryStore
from aranet.errors import StorageError
from aranet.logging_config import configure_logging
from aranet.state_manager import ReadingCell
from aranet.web_routes import create_app, run_flask_app

logger = logging.getLogger("aranet")

if __name__ == '__main__':
    configure_logging()
    logger.info("Starting Aranet4 HTTP Server")

    # Set up the history database first.
    store = HistoryStore()
    try:
        store.setup()
        logger.info("History holds %d reading(s)", store.count())
    except StorageError as e:
        logger.critical("Cannot open history database: %s", e)
        sys.exit(1)

    cell = ReadingCell()

    # Start the Flask web server in a separate thread.
    app = create_app(cell, store)
    threading.Thread(target=run_flask_app, args=(app,), daemon=True).start()

    # Allow the server to initialize.
    time.sleep(1)

    try:
        logger.info("Starting BLE polling task...")
        asyncio.run(sensor_polling_task(BleakTransport(), cell, store))
    except KeyboardInterrupt:
        logger.info("Program stopped by user.")
