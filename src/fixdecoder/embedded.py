from pathlib import Path

DICT_PATH_PREFIX = Path(__file__).resolve().parent / "dict"
DEFAULT_VERSION = "44"

# Embedded dictionary id -> file under DICT_PATH_PREFIX
EMBEDDED_FILES = {
    "40": "FIX40.xml",
    "41": "FIX41.xml",
    "42": "FIX42.xml",
    "43": "FIX43.xml",
    "44": "FIX44.xml",
    "50": "FIX50.xml",
    "50SP1": "FIX50SP1.xml",
    "50SP2": "FIX50SP2.xml",
    "T11": "FIXT11.xml",
}


def choose_embedded_xml(version: str) -> bytes:
    """Return the raw XML of a bundled dictionary; unknown ids get FIX 4.4."""
    filename = EMBEDDED_FILES.get(version, EMBEDDED_FILES[DEFAULT_VERSION])
    return (DICT_PATH_PREFIX / filename).read_bytes()


def supported_fix_versions() -> str:
    return ",".join(EMBEDDED_FILES)
