import os


def _env_str(name, default):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_number(name, default, cast=int):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = cast(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


# --- PATHS ---
# Resolves the project root to the 'srv' directory.
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
DB_PATH = _env_str('ARANET_DB_PATH', os.path.join(ROOT_DIR, 'aranet4.db'))

# --- WEB SERVER ---
HTTP_HOST = _env_str('ARANET_HTTP_HOST', '0.0.0.0')
HTTP_PORT = _env_number('ARANET_HTTP_PORT', 3000)
HISTORY_DEFAULT_LIMIT = 10000

# --- POLLING ---
POLL_INTERVAL = _env_number('ARANET_POLL_INTERVAL', 30.0, float)
SCAN_WINDOW = 5.0
CONNECT_TIMEOUT = 20.0

# --- BLE DEVICE & PROTOCOL ---
DEVICE_NAME_PREFIX = "Aranet4"

# Characteristic holding the current readings block.
CURRENT_READINGS_UUID = "f0cd3001-95da-4f4b-9ac8-aa55d312af0c"

# --- LOGGING ---
LOG_LEVEL = _env_str('LOG_LEVEL', 'INFO').upper()
