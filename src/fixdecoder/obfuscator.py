import logging
import threading
from typing import Dict, Optional

from .tag_parser import SOH

logger = logging.getLogger(__name__)


class Obfuscator:
    """Replaces values of sensitive tags with stable aliases such as Account0001.

    The same tag=value pair always maps to the same alias for the lifetime of
    the instance. Safe for concurrent use.
    """

    def __init__(self, tags: Optional[Dict[int, str]] = None, enabled: bool = True):
        self.enabled = enabled
        self.tags = dict(tags or {})
        self._lock = threading.Lock()
        self._aliases: Dict[str, str] = {}
        self._counters: Dict[int, int] = {}

    def apply(self, line: str) -> str:
        if not self.enabled:
            return line
        return self.obfuscate_line(line)

    def obfuscate_line(self, line: str) -> str:
        fields = line.split(SOH)

        for i, f in enumerate(fields):
            tag_str, sep, value = f.partition("=")
            if not sep or not tag_str.isdigit():
                continue

            tag = int(tag_str)
            name = self.tags.get(tag)
            if name is None:
                continue

            fields[i] = f"{tag_str}={self._alias_for(tag, name, value)}"

        return SOH.join(fields)

    def _alias_for(self, tag: int, name: str, value: str) -> str:
        key = f"{tag}={value}"
        with self._lock:
            alias = self._aliases.get(key)
            if alias is None:
                self._counters[tag] = self._counters.get(tag, 0) + 1
                alias = f"{name}{self._counters[tag]:04d}"
                self._aliases[key] = alias
                logger.info(f"first use: tag {tag} ({name}) value [{value}] -> [{alias}]")
        return alias
