"""Tests for sensitive tag obfuscation."""

import threading

from conftest import pipes

from src.fixdecoder.obfuscator import Obfuscator
from src.fixdecoder.settings import DEFAULT_CONFIG

TAGS = {49: "SenderCompID", 56: "TargetCompID", 1: "Account"}


class TestObfuscator:
    """Obfuscator"""

    def test_replaces_sensitive_values(self):
        ob = Obfuscator(TAGS)
        line = ob.apply(pipes("8=FIX.4.4|49=BANK|56=BROKER|55=IBM|"))
        assert line == pipes("8=FIX.4.4|49=SenderCompID0001|56=TargetCompID0001|55=IBM|")

    def test_stable_aliases(self):
        """The same value always gets the same alias, new values the next number."""
        ob = Obfuscator(TAGS)
        first = ob.apply(pipes("1=ACC-A|"))
        second = ob.apply(pipes("1=ACC-B|"))
        again = ob.apply(pipes("1=ACC-A|"))
        assert first == again == pipes("1=Account0001|")
        assert second == pipes("1=Account0002|")

    def test_counters_per_tag(self):
        ob = Obfuscator(TAGS)
        assert ob.apply(pipes("49=X|56=X|")) == pipes("49=SenderCompID0001|56=TargetCompID0001|")

    def test_disabled_passthrough(self):
        ob = Obfuscator(TAGS, enabled=False)
        line = pipes("49=BANK|")
        assert ob.apply(line) == line

    def test_surrounding_text_untouched(self):
        """Log prefixes and malformed segments survive unchanged."""
        ob = Obfuscator(TAGS)
        line = "2024-01-02 IN: " + pipes("8=FIX.4.4|49=BANK|junk|")
        assert ob.apply(line) == "2024-01-02 IN: " + pipes("8=FIX.4.4|49=SenderCompID0001|junk|")

    def test_default_tags(self):
        ob = Obfuscator(DEFAULT_CONFIG["sensitive_tags"])
        assert ob.apply(pipes("554=secret|")) == pipes("554=Password0001|")

    def test_concurrent_use(self):
        """Threads sharing an instance agree on one alias per value."""
        ob = Obfuscator(TAGS)
        results = []
        lock = threading.Lock()

        def worker(i):
            out = ob.apply(pipes(f"1=ACC-{i % 4}|"))
            with lock:
                results.append((i % 4, out))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(32)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        by_value = {}
        for key, out in results:
            by_value.setdefault(key, set()).add(out)
        assert all(len(aliases) == 1 for aliases in by_value.values())
        assert len({next(iter(a)) for a in by_value.values()}) == 4
