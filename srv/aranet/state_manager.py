# This module holds the in-memory state shared by the web server threads
# and the BLE polling task.

import threading


class ReadingCell:
    """Holds the most recent sensor reading.

    One writer (the polling task) replaces the value wholesale; any number of
    request threads copy it out. Readings are immutable, so handing out the
    reference is a consistent snapshot.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._reading = None

    def set(self, reading):
        with self._lock:
            self._reading = reading

    def get(self):
        with self._lock:
            return self._reading
