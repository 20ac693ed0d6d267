"""
Intermediate representation of a FIX XML dictionary.

Both the flat tag lookup (fix_protocol.py) and the nested display tree
(schema.py) are built from a DictionarySource, so the XML is walked in
exactly one place.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

logger = logging.getLogger(__name__)

MAX_DEPTH = 64


class SchemaDepthError(ValueError):
    """Component/group nesting exceeded MAX_DEPTH, usually a reference cycle."""


@dataclass(frozen=True)
class DictionaryValue:
    enum: str
    description: str


@dataclass(frozen=True)
class Field:
    name: str
    number: int
    type: str
    values: List[DictionaryValue] = field(default_factory=list)


@dataclass(frozen=True)
class FieldRef:
    name: str
    required: str = "N"


@dataclass(frozen=True)
class ComponentRef:
    name: str
    required: str = "N"


class MemberContainer:
    """Typed views over the ordered `members` list of a definition."""

    @property
    def fields(self) -> List[FieldRef]:
        return [m for m in self.members if isinstance(m, FieldRef)]

    @property
    def components(self) -> List[ComponentRef]:
        return [m for m in self.members if isinstance(m, ComponentRef)]

    @property
    def groups(self) -> List["GroupDefinition"]:
        return [m for m in self.members if isinstance(m, GroupDefinition)]


@dataclass
class GroupDefinition(MemberContainer):
    """A <group> nested inside a message, component, header or trailer."""
    name: str
    required: str = "N"
    members: list = field(default_factory=list)


@dataclass
class ComponentDefinition(MemberContainer):
    name: str
    members: list = field(default_factory=list)


@dataclass
class MessageDefinition(MemberContainer):
    name: str
    msg_type: str
    msg_cat: str = ""
    members: list = field(default_factory=list)


@dataclass(frozen=True)
class CountedGroup:
    """An entry of the flat <groups> section: a counting tag and its member tags."""
    num_in_group: int
    tags: List[int]


@dataclass
class DictionarySource:
    type: str = "FIX"
    major: str = ""
    minor: str = ""
    service_pack: str = ""
    fields: List[Field] = field(default_factory=list)
    messages: List[MessageDefinition] = field(default_factory=list)
    components: List[ComponentDefinition] = field(default_factory=list)
    groups: List[CountedGroup] = field(default_factory=list)
    header: ComponentDefinition = field(default_factory=lambda: ComponentDefinition("Header"))
    trailer: ComponentDefinition = field(default_factory=lambda: ComponentDefinition("Trailer"))


Member = Union[FieldRef, ComponentRef, GroupDefinition]


def parse_source(xml_data: Union[str, bytes]) -> DictionarySource:
    """Parse dictionary XML text into a DictionarySource.

    Raises xml.etree.ElementTree.ParseError for malformed XML.
    """
    try:
        root = ET.fromstring(xml_data)
    except ET.ParseError as e:
        logger.error(f"Error parsing FIX dictionary XML: {e}")
        raise

    source = DictionarySource(
        type=root.get('type', 'FIX'),
        major=root.get('major', ''),
        minor=root.get('minor', ''),
        service_pack=root.get('servicepack', ''),
    )

    for field_node in root.findall('fields/field'):
        number = _parse_int(field_node.get('number'))
        if number is None:
            logger.debug(f"Skipping field {field_node.get('name')!r} without a numeric tag")
            continue
        source.fields.append(Field(
            name=field_node.get('name', ''),
            number=number,
            type=field_node.get('type', ''),
            values=_parse_values(field_node),
        ))

    for msg_node in root.findall('messages/message'):
        source.messages.append(MessageDefinition(
            name=msg_node.get('name', ''),
            msg_type=msg_node.get('msgtype', ''),
            msg_cat=msg_node.get('msgcat', ''),
            members=_parse_members(msg_node, 0),
        ))

    for comp_node in root.findall('components/component'):
        source.components.append(ComponentDefinition(
            name=comp_node.get('name', ''),
            members=_parse_members(comp_node, 0),
        ))

    for group_node in root.findall('groups/group'):
        num_in_group = _parse_int(group_node.get('numInGroup'))
        if num_in_group is None:
            continue
        tags = [_parse_int(f.text) for f in group_node.findall('field')]
        source.groups.append(CountedGroup(num_in_group, [t for t in tags if t is not None]))

    header = root.find('header')
    if header is not None:
        source.header.members = _parse_members(header, 0)

    trailer = root.find('trailer')
    if trailer is not None:
        source.trailer.members = _parse_members(trailer, 0)

    return source


def _parse_values(field_node) -> List[DictionaryValue]:
    # Dialects put enums either directly under <field> or inside <values>.
    values = []
    seen = set()
    for value_node in field_node.findall('value') + field_node.findall('values/value'):
        enum = value_node.get('enum')
        if enum is None or enum in seen:
            continue
        seen.add(enum)
        values.append(DictionaryValue(enum, value_node.get('description', '')))
    return values


def _parse_members(node, depth: int) -> List[Member]:
    if depth > MAX_DEPTH:
        raise SchemaDepthError(f"Group nesting deeper than {MAX_DEPTH} levels at {node.get('name')!r}")

    members = []
    for child in node:
        name = child.get('name')
        if name is None:
            continue
        required = child.get('required', 'N')
        if child.tag == 'field':
            members.append(FieldRef(name, required))
        elif child.tag == 'component':
            members.append(ComponentRef(name, required))
        elif child.tag == 'group':
            members.append(GroupDefinition(name, required, _parse_members(child, depth + 1)))
    return members


def _parse_int(text) -> Optional[int]:
    try:
        return int(text)
    except (TypeError, ValueError):
        return None


def component_map(source: DictionarySource) -> Dict[str, ComponentDefinition]:
    return {c.name: c for c in source.components}
