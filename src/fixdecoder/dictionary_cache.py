import logging
import threading
import xml.etree.ElementTree as ET
from contextlib import contextmanager
from typing import Callable, Dict, Optional, Union

from .embedded import choose_embedded_xml
from .fix_protocol import FixTagLookup, merge_lookups, parse_dictionary
from .tag_parser import get_tag_value

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_KEY = "FIX44"
SESSION_SCHEMA_KEY = "FIXT11"
FIXT_BEGIN_STRING = "FIXT.1.1"

# ApplVerID(1128) -> schema key
APPL_VER_ID_KEYS = {
    "0": "FIX27",
    "1": "FIX30",
    "2": "FIX40",
    "3": "FIX41",
    "4": "FIX42",
    "5": "FIX43",
    "6": "FIX44",
    "7": "FIX50",
    "8": "FIX50SP1",
    "9": "FIX50SP2",
}
DEFAULT_APPL_VER_KEY = "FIX50"

# Schema key -> embedded dictionary id. FIX 2.7 and 3.0 use FIX 4.0 as the closest superset.
SCHEMA_TO_XML_ID = {
    "FIX27": "40",
    "FIX30": "40",
    "FIX40": "40",
    "FIX41": "41",
    "FIX42": "42",
    "FIX43": "43",
    "FIX44": "44",
    "FIX50": "50",
    "FIX50SP1": "50SP1",
    "FIX50SP2": "50SP2",
    "FIXT11": "T11",
}

# Application versions whose session layer lives in FIXT.1.1
FIXT_APPLICATION_KEYS = ("FIX50", "FIX50SP1", "FIX50SP2")


def detect_schema_key(msg: str) -> str:
    """Pick the dictionary key for a message from BeginString(8) and ApplVerID(1128)."""
    begin = get_tag_value(msg, 8)
    if begin is None:
        return DEFAULT_SCHEMA_KEY

    if begin == FIXT_BEGIN_STRING:
        appl_ver_id = get_tag_value(msg, 1128)
        return APPL_VER_ID_KEYS.get(appl_ver_id, DEFAULT_APPL_VER_KEY)

    # Classic BeginString, e.g. FIX.4.2 -> FIX42
    return begin.replace(".", "")


class ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read_locked(self):
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self):
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class DictionaryCache:
    """Process-wide store of parsed dictionaries keyed by schema key.

    Lookups take the read lock only. A miss parses outside any lock and then
    publishes under the write lock; if another thread published the same key
    first, its instance is kept so every caller ends up with one object.
    """

    def __init__(self, xml_source: Callable[[str], Union[str, bytes]] = choose_embedded_xml,
                 xml_ids: Optional[Dict[str, str]] = None):
        self.xml_source = xml_source
        self.xml_ids = dict(SCHEMA_TO_XML_ID if xml_ids is None else xml_ids)
        self._dicts: Dict[str, FixTagLookup] = {}
        self._lock = ReadWriteLock()

    def get(self, key: str) -> Optional[FixTagLookup]:
        with self._lock.read_locked():
            cached = self._dicts.get(key)
        if cached is not None:
            return cached

        xml_id = self.xml_ids.get(key)
        if xml_id is None:
            logger.debug(f"No dictionary registered for schema key {key!r}")
            return None

        try:
            parsed = parse_dictionary(self.xml_source(xml_id), key)
        except (ET.ParseError, ValueError, OSError) as e:
            logger.error(f"Failed to load dictionary {key}: {e}")
            return None

        if key in FIXT_APPLICATION_KEYS:
            merge_lookups(parsed, self.get(SESSION_SCHEMA_KEY))

        with self._lock.write_locked():
            published = self._dicts.setdefault(key, parsed)
        if published is parsed:
            logger.info(f"Loaded dictionary {parsed}")
        return published

    def load_for_message(self, msg: str) -> Optional[FixTagLookup]:
        """Return the dictionary for a message, falling back to FIX 4.4."""
        key = detect_schema_key(msg)
        lookup = self.get(key)
        if lookup is not None:
            return lookup

        logger.debug(f"Falling back to {DEFAULT_SCHEMA_KEY} for schema key {key!r}")
        return self.get(DEFAULT_SCHEMA_KEY)

    def cached_keys(self):
        with self._lock.read_locked():
            return sorted(self._dicts)

    def reset(self):
        with self._lock.write_locked():
            self._dicts.clear()


default_cache = DictionaryCache()


def get_dictionary(key: str) -> Optional[FixTagLookup]:
    return default_cache.get(key)


def load_dictionary(msg: str) -> Optional[FixTagLookup]:
    return default_cache.load_for_message(msg)
