"""Failure kinds raised while polling the sensor or touching the history."""


class ReadError(Exception):
    """Base class for everything that can end a read cycle early."""


class NoAdapter(ReadError):
    pass


class DeviceNotFound(ReadError):
    pass


class ConnectFailed(ReadError):
    pass


class CharacteristicNotFound(ReadError):
    pass


class MalformedPayload(ReadError):
    pass


class TransportError(ReadError):
    """A scan, discover, read or disconnect call failed on the radio link."""


class StorageError(Exception):
    """The history database rejected a read or write."""
