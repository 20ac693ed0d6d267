import re
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from .fix_protocol import MSG_TYPE_TAG, FixTagLookup, MessageDef
from .tag_parser import SOH, FieldValue, parse_fix

CHECKSUM_TAG = 10

_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_FLOAT_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)
_MONTH_YEAR_RE = re.compile(r"\d{6}([0-9]{2}|(-[0-9]{1,2})|(-?w[1-5]))?", re.ASCII)

# (shape, strptime format) pairs; the shape pins exact digit counts strptime would relax.
_TIMESTAMP_LAYOUTS = [
    (re.compile(r"\d{8}-\d{2}:\d{2}:\d{2}", re.ASCII), "%Y%m%d-%H:%M:%S"),
    (re.compile(r"\d{8}-\d{2}:\d{2}:\d{2}\.\d{3}", re.ASCII), "%Y%m%d-%H:%M:%S.%f"),
]
_DATE_LAYOUTS = [
    (re.compile(r"\d{8}", re.ASCII), "%Y%m%d"),
]
_TIME_LAYOUTS = [
    (re.compile(r"\d{2}:\d{2}", re.ASCII), "%H:%M"),
    (re.compile(r"\d{2}:\d{2}:\d{2}", re.ASCII), "%H:%M:%S"),
    (re.compile(r"\d{2}:\d{2}:\d{2}\.\d{3}", re.ASCII), "%H:%M:%S.%f"),
]


class FieldKind(Enum):
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    CHAR = "char"
    UTC_TIMESTAMP = "utctimestamp"
    UTC_DATE_ONLY = "utcdateonly"
    UTC_TIME_ONLY = "utctimeonly"
    MONTH_YEAR = "monthyear"
    STRING = "string"
    PERMISSIVE = "permissive"

    @classmethod
    def from_type_name(cls, type_name: str) -> "FieldKind":
        return _KIND_BY_TYPE.get(type_name.upper(), cls.PERMISSIVE)

    def accepts(self, value: str) -> bool:
        return _RULES[self](value)


_KIND_BY_TYPE = {
    **dict.fromkeys(["INT", "LENGTH", "NUMINGROUP", "SEQNUM", "DAYOFMONTH"], FieldKind.INTEGER),
    **dict.fromkeys(["FLOAT", "QTY", "PRICE", "PRICEOFFSET", "AMT", "PERCENTAGE"], FieldKind.FLOAT),
    "BOOLEAN": FieldKind.BOOLEAN,
    "CHAR": FieldKind.CHAR,
    "UTCTIMESTAMP": FieldKind.UTC_TIMESTAMP,
    "UTCDATEONLY": FieldKind.UTC_DATE_ONLY,
    "UTCTIMEONLY": FieldKind.UTC_TIME_ONLY,
    "MONTHYEAR": FieldKind.MONTH_YEAR,
    **dict.fromkeys(
        ["STRING", "DATA", "CURRENCY", "EXCHANGE", "COUNTRY", "MULTIPLEVALUESTRING", "MULTIPLESTRINGVALUE"],
        FieldKind.STRING,
    ),
}


def _matches_layout(value: str, layouts) -> bool:
    for shape, fmt in layouts:
        if not shape.fullmatch(value):
            continue
        try:
            datetime.strptime(value, fmt)
            return True
        except ValueError:
            continue
    return False


_RULES = {
    FieldKind.INTEGER: lambda v: bool(_INT_RE.fullmatch(v)),
    FieldKind.FLOAT: lambda v: bool(_FLOAT_RE.fullmatch(v)),
    FieldKind.BOOLEAN: lambda v: v in ("Y", "N"),
    FieldKind.CHAR: lambda v: len(v) == 1,
    FieldKind.UTC_TIMESTAMP: lambda v: _matches_layout(v, _TIMESTAMP_LAYOUTS),
    FieldKind.UTC_DATE_ONLY: lambda v: _matches_layout(v, _DATE_LAYOUTS),
    FieldKind.UTC_TIME_ONLY: lambda v: _matches_layout(v, _TIME_LAYOUTS),
    FieldKind.MONTH_YEAR: lambda v: bool(_MONTH_YEAR_RE.fullmatch(v)),
    FieldKind.STRING: lambda v: True,
    FieldKind.PERMISSIVE: lambda v: True,
}


def is_valid_type(value: str, type_name: str) -> bool:
    return FieldKind.from_type_name(type_name).accepts(value)


def validate_fix_message(msg: str, lookup: FixTagLookup) -> List[str]:
    """Check a message against a dictionary and return one finding per violation.

    Findings come in a fixed order: MsgType problems (which stop validation),
    missing required tags, enum and type problems, ordering, then checksum.
    """
    fields = parse_fix(msg)
    field_map, seen_tags = build_field_map(fields)

    errors, msg_def = validate_msg_type(field_map, lookup)
    if msg_def is None:
        return errors

    errors.extend(validate_required_fields(msg_def.required, seen_tags, lookup))
    errors.extend(validate_field_enums_and_types(fields, lookup))
    errors.extend(validate_field_ordering(fields, msg_def.field_order))
    errors.extend(validate_checksum_field(msg, field_map))
    return errors


def build_field_map(fields: List[FieldValue]) -> Tuple[Dict[int, str], Set[int]]:
    field_map = {}
    seen_tags = set()
    for fv in fields:
        field_map[fv.tag] = fv.value
        seen_tags.add(fv.tag)
    return field_map, seen_tags


def validate_msg_type(field_map: Dict[int, str], lookup: FixTagLookup) -> Tuple[List[str], Optional[MessageDef]]:
    msg_type = field_map.get(MSG_TYPE_TAG)
    if msg_type is None:
        return [f"Missing required tag {MSG_TYPE_TAG} (MsgType)"], None

    msg_def = lookup.get_message(msg_type)
    if msg_def is None:
        return [f"Unknown MsgType: {msg_type}"], None
    return [], msg_def


def validate_required_fields(required: List[int], seen_tags: Set[int], lookup: FixTagLookup) -> List[str]:
    return [
        f"Missing required tag {tag} ({lookup.get_field_name(tag)})"
        for tag in required
        if tag not in seen_tags
    ]


def validate_field_enums_and_types(fields: List[FieldValue], lookup: FixTagLookup) -> List[str]:
    errors = []
    for tag, value in fields:
        enums = lookup.enum_map.get(tag)
        if enums is not None and value not in enums:
            errors.append(f"Invalid enum value '{value}' for tag {tag}")

        typ = lookup.get_field_type(tag)
        if typ and not is_valid_type(value, typ):
            errors.append(f"Invalid type for tag {tag}: expected {typ}, got '{value}'")
    return errors


def validate_field_ordering(fields: List[FieldValue], expected_order: List[int]) -> List[str]:
    order_index = {tag: i for i, tag in enumerate(expected_order)}

    errors = []
    last_idx = -1
    for fv in fields:
        idx = order_index.get(fv.tag)
        if idx is None:
            continue
        if idx < last_idx:
            errors.append(f"Tag {fv.tag} out of order")
        else:
            last_idx = idx
    return errors


def validate_checksum_field(msg: str, field_map: Dict[int, str]) -> List[str]:
    check_val = field_map.get(CHECKSUM_TAG)
    if check_val is None:
        return [f"Missing required checksum tag {CHECKSUM_TAG}"]

    expected = f"{calculate_checksum(msg):03d}"
    if check_val != expected:
        return [f"Checksum mismatch: got {check_val}, expected {expected}"]
    return []


def calculate_checksum(msg: str) -> int:
    """Sum of the bytes up to and including the SOH before 10=, modulo 256; -1 without a 10= field.

    A message that opens with 10= sums an empty prefix.
    """
    if msg.startswith(f"{CHECKSUM_TAG}="):
        return 0
    cutoff = msg.find(f"{SOH}{CHECKSUM_TAG}=")
    if cutoff == -1:
        return -1
    return sum(msg[:cutoff + 1].encode("utf-8", errors="surrogateescape")) % 256
