import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Union

from .dictionary_source import (
    MAX_DEPTH,
    ComponentRef,
    DictionarySource,
    FieldRef,
    GroupDefinition,
    SchemaDepthError,
    component_map,
    parse_source,
)

logger = logging.getLogger(__name__)

MSG_TYPE_TAG = 35


@dataclass
class MessageDef:
    name: str
    msg_type: str
    field_order: List[int] = field(default_factory=list)
    required: List[int] = field(default_factory=list)


@dataclass
class GroupDef:
    num_in_group_tag: int
    field_order: List[int] = field(default_factory=list)


class FixTagLookup:
    """Flat, validation-oriented view of one FIX dictionary.

    Instances are filled once by build_lookup() and only read afterwards, so
    a published lookup can be shared between threads without locking.
    """

    def __init__(self, key: str = ""):
        self.key = key
        self.tag_to_name: Dict[int, str] = {}
        self.name_to_tag: Dict[str, int] = {}
        self.enum_map: Dict[int, Dict[str, str]] = {}
        self.field_types: Dict[int, str] = {}
        self.group_counts: Set[int] = set()
        self.group_owners: Dict[int, int] = {}
        self.group_defs: Dict[int, GroupDef] = {}
        self.messages: Dict[str, MessageDef] = {}

    def get_field_name(self, tag: int) -> str:
        return self.tag_to_name.get(tag) or str(tag)

    def get_enum_description(self, tag: int, value: str) -> str:
        return self.enum_map.get(tag, {}).get(value, "")

    def get_field_type(self, tag: int) -> str:
        return self.field_types.get(tag, "")

    def get_tag_by_name(self, name: str) -> int:
        return self.name_to_tag.get(name, -1)

    def is_group_count_field(self, tag: int) -> bool:
        return tag in self.group_counts

    def get_group_owner(self, tag: int) -> int:
        return self.group_owners.get(tag, 0)

    def get_message(self, msg_type: str) -> Optional[MessageDef]:
        return self.messages.get(msg_type)

    def __str__(self):
        return f"<FixTagLookup '{self.key}': {len(self.tag_to_name)} tags, {len(self.messages)} messages>"


def parse_dictionary(xml_data: Union[str, bytes], key: str = "") -> FixTagLookup:
    """Parse dictionary XML into a FixTagLookup.

    xml.etree.ElementTree.ParseError propagates for malformed XML.
    """
    return build_lookup(parse_source(xml_data), key)


def build_lookup(source: DictionarySource, key: str = "") -> FixTagLookup:
    lookup = FixTagLookup(key)
    _parse_fields(source, lookup)
    _parse_messages(source, lookup)
    _parse_groups(source, lookup)
    logger.debug(f"Built {lookup}")
    return lookup


def _parse_fields(source: DictionarySource, lookup: FixTagLookup):
    for f in source.fields:
        lookup.tag_to_name[f.number] = f.name
        lookup.name_to_tag.setdefault(f.name, f.number)
        lookup.field_types[f.number] = f.type

        enums = {}
        for v in f.values:
            enums.setdefault(v.enum, v.description)
        if enums:
            lookup.enum_map[f.number] = enums


def _parse_messages(source: DictionarySource, lookup: FixTagLookup):
    components = component_map(source)

    for msg in source.messages:
        msg_def = MessageDef(name=msg.name, msg_type=msg.msg_type)
        _expand_members(msg.members, components, lookup, msg_def.field_order, msg_def.required, True, 0)
        lookup.messages[msg.msg_type] = msg_def
        lookup.enum_map.setdefault(MSG_TYPE_TAG, {})[msg.msg_type] = msg.name

    # Header and trailer groups (e.g. NoHops) are registered but add no message fields.
    for envelope in (source.header, source.trailer):
        _expand_members(envelope.members, components, lookup, [], [], False, 0)


def _expand_members(members, components, lookup, order, required, parent_required, depth):
    """Flatten field, component and group references into `order`.

    Required tags are collected only along a chain of required references.
    Repeating group members are kept in the group's own GroupDef.
    """
    if depth > MAX_DEPTH:
        raise SchemaDepthError(f"Component nesting deeper than {MAX_DEPTH} levels")

    for member in members:
        is_required = parent_required and member.required == 'Y'

        if isinstance(member, FieldRef):
            tag = lookup.get_tag_by_name(member.name)
            if tag == -1:
                continue
            order.append(tag)
            if is_required and tag not in required:
                required.append(tag)

        elif isinstance(member, ComponentRef):
            comp = components.get(member.name)
            if comp is None:
                continue
            _expand_members(comp.members, components, lookup, order, required, is_required, depth + 1)

        elif isinstance(member, GroupDefinition):
            tag = lookup.get_tag_by_name(member.name)
            if tag == -1:
                continue
            order.append(tag)
            if is_required and tag not in required:
                required.append(tag)

            group_order = []
            _expand_members(member.members, components, lookup, group_order, [], False, depth + 1)
            _register_group(lookup, tag, group_order)


def _register_group(lookup: FixTagLookup, count_tag: int, member_tags: List[int]):
    lookup.group_counts.add(count_tag)
    for tag in member_tags:
        lookup.group_owners[tag] = count_tag
    lookup.group_defs[count_tag] = GroupDef(count_tag, list(member_tags))


def _parse_groups(source: DictionarySource, lookup: FixTagLookup):
    for group in source.groups:
        _register_group(lookup, group.num_in_group, group.tags)


def merge_lookups(dst: Optional[FixTagLookup], src: Optional[FixTagLookup]):
    """Graft src into dst without overwriting anything dst already defines.

    Used to give application dictionaries (FIX 5.0+) the session-layer tags
    and admin messages of FIXT.1.1.
    """
    if dst is None or src is None:
        return

    for tag, name in src.tag_to_name.items():
        if tag not in dst.tag_to_name:
            dst.tag_to_name[tag] = name
            dst.name_to_tag.setdefault(name, tag)

    for tag, typ in src.field_types.items():
        dst.field_types.setdefault(tag, typ)

    for tag, enums in src.enum_map.items():
        target = dst.enum_map.setdefault(tag, {})
        for value, desc in enums.items():
            target.setdefault(value, desc)

    for msg_type, msg_def in src.messages.items():
        dst.messages.setdefault(msg_type, msg_def)

    for tag, group_def in src.group_defs.items():
        dst.group_defs.setdefault(tag, group_def)
    dst.group_counts.update(src.group_counts)
    for tag, owner in src.group_owners.items():
        dst.group_owners.setdefault(tag, owner)
