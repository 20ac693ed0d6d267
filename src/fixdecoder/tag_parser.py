from typing import List, NamedTuple, Optional

SOH = "\x01"


class FieldValue(NamedTuple):
    tag: int
    value: str


def parse_fix(msg: str) -> List[FieldValue]:
    """Split a SOH-delimited FIX message into ordered tag/value pairs.

    Input without a single SOH is not message-shaped and yields an empty list.
    Segments lacking '=' or carrying a non-numeric tag are skipped.
    """
    if SOH not in msg:
        return []

    fields = []
    for part in msg.split(SOH):
        if not part:
            continue

        tag, sep, value = part.partition("=")
        if not sep or not tag.isdigit() or not tag.isascii():
            continue

        fields.append(FieldValue(int(tag), value))

    return fields


def get_tag_value(msg: str, tag) -> Optional[str]:
    """Return the first value carried by `tag`, or None when it is absent."""
    wanted = str(tag)
    for part in msg.split(SOH):
        key, sep, value = part.partition("=")
        if sep and key == wanted:
            return value
    return None
