import logging
import re
import shutil
import sys
from typing import List, Optional, Tuple

from .dictionary_cache import DictionaryCache, default_cache
from .fix_protocol import FixTagLookup
from .obfuscator import Obfuscator
from .tag_parser import parse_fix
from .validator import validate_fix_message

logger = logging.getLogger(__name__)

FIX_MESSAGE_RE = re.compile(r"8=FIX.*?10=\d{3}\x01")


class Colours:
    """ANSI escape sequences used by the decoder output."""

    def __init__(self, enabled: bool = True):
        if enabled:
            self.enable()
        else:
            self.disable()

    def enable(self):
        self.reset = "\033[0m"
        self.line = "\033[38;5;244m"
        self.tag = "\033[38;5;81m"
        self.name = "\033[38;5;151m"
        self.value = "\033[38;5;228m"
        self.enum = "\033[38;5;214m"
        self.file = "\033[95m"
        self.error = "\033[31m"
        self.msg = "\033[97m"
        self.title = "\033[31m"

    def disable(self):
        for attr in ("reset", "line", "tag", "name", "value", "enum", "file", "error", "msg", "title"):
            setattr(self, attr, "")


def get_terminal_width(fallback: int = 80) -> int:
    return shutil.get_terminal_size((fallback, 24)).columns


def prettify(msg: str, lookup: FixTagLookup, colours: Optional[Colours] = None) -> str:
    """Render one field per line: tag, field name, value and enum description."""
    c = colours or Colours(enabled=False)
    lines = []

    for tag, value in parse_fix(msg):
        name = lookup.get_field_name(tag)
        desc = lookup.get_enum_description(tag, value)

        line = f"    {c.tag}{tag:4d}{c.reset} ({c.name}{name}{c.reset}): {c.value}{value}{c.reset}"
        if desc:
            line += f" ({c.enum}{desc}{c.reset})"
        lines.append(line + "\n")

    return "".join(lines)


def find_fix_message_indices(line: str) -> List[Tuple[int, int]]:
    return [m.span() for m in FIX_MESSAGE_RE.finditer(line)]


class LogPrettifier:
    """Streams log text, decoding every embedded FIX message it finds."""

    def __init__(self, out=None, err=None, cache: DictionaryCache = default_cache,
                 validate: bool = False, obfuscator: Optional[Obfuscator] = None,
                 colours: Optional[Colours] = None, terminal_width: Optional[int] = None):
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.cache = cache
        self.validate = validate
        self.obfuscator = obfuscator or Obfuscator(enabled=False)
        self.colours = colours or Colours()
        self.terminal_width = terminal_width or get_terminal_width()

    @property
    def separator(self) -> str:
        c = self.colours
        return f"{c.title}{'=' * self.terminal_width}{c.reset}\n"

    def prettify_files(self, paths: List[str]) -> int:
        """Decode every file in `paths` ('-' or no paths means stdin); return an exit code."""
        c = self.colours
        if not paths:
            try:
                self.stream_log(sys.stdin)
            except OSError as e:
                self.err.write(f"{c.error}Error reading input: {e}{c.reset}\n")
                return 1
            return 0

        had_error = False
        for path in paths:
            if path == "-":
                self.out.write("Processing: (stdin)\n\n")
                stream = sys.stdin
            else:
                self.out.write(f"Processing: {c.file}{path}{c.reset}\n\n")
                try:
                    stream = open(path, 'r', encoding='utf-8', errors='surrogateescape')
                except OSError as e:
                    logger.warning(f"Cannot open {path}: {e}")
                    self.err.write(f"{c.error}Cannot open file: {e}{c.reset}\n")
                    had_error = True
                    continue

            try:
                self.stream_log(stream)
            except OSError as e:
                self.err.write(f"{c.error}Error reading file: {e}{c.reset}\n")
                had_error = True
            finally:
                if stream is not sys.stdin:
                    stream.close()

        return 1 if had_error else 0

    def stream_log(self, stream):
        for raw_line in stream:
            line = self.obfuscator.apply(raw_line.rstrip("\r\n"))
            self.handle_log_line(line)

    def handle_log_line(self, line: str):
        c = self.colours
        matches = find_fix_message_indices(line)

        if not matches:
            self.out.write(f"{c.line}{line}{c.reset}\n")
            return

        messages, coloured_line = self.extract_fix_messages(line, matches)
        self.out.write(coloured_line)
        self.out.write(self.separator)

        for msg in messages:
            self.process_fix_message(msg)

    def extract_fix_messages(self, line: str, matches) -> Tuple[List[str], str]:
        c = self.colours
        parts = []
        messages = []
        last_index = 0

        for start, end in matches:
            parts.append(f"{c.line}{line[last_index:start]}{c.msg}{line[start:end]}")
            messages.append(line[start:end])
            last_index = end

        parts.append(f"{c.line}{line[last_index:]}{c.reset}\n")
        return messages, "".join(parts)

    def process_fix_message(self, msg: str):
        c = self.colours
        lookup = self.cache.load_for_message(msg)
        self.out.write(prettify(msg, lookup, c))

        if self.validate:
            errors = validate_fix_message(msg, lookup)
            if errors:
                self.out.write(self.separator)
                for error in errors:
                    self.out.write(f"{c.error}== {error}{c.reset}\n")

        self.out.write(self.separator)
