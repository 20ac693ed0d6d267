"""
Display-oriented view of a FIX dictionary.

build_schema() resolves every message, component and group of a
DictionarySource into a fully nested tree of nodes. References to names the
dictionary never declares are dropped.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from .dictionary_source import (
    MAX_DEPTH,
    ComponentDefinition,
    DictionarySource,
    Field,
    FieldRef,
    GroupDefinition,
    MessageDefinition,
    SchemaDepthError,
    component_map,
    parse_source,
)
from .embedded import choose_embedded_xml

logger = logging.getLogger(__name__)

NO_SERVICE_PACK = "n/a"


@dataclass
class FieldNode:
    ref: FieldRef
    field: Field


@dataclass
class GroupNode:
    name: str
    required: str = "N"
    fields: List[FieldNode] = field(default_factory=list)
    components: List["ComponentNode"] = field(default_factory=list)
    groups: List["GroupNode"] = field(default_factory=list)


@dataclass
class ComponentNode:
    name: str
    fields: List[FieldNode] = field(default_factory=list)
    components: List["ComponentNode"] = field(default_factory=list)
    groups: List[GroupNode] = field(default_factory=list)


@dataclass
class MessageNode:
    name: str = ""
    msg_type: str = ""
    msg_cat: str = ""
    fields: List[FieldNode] = field(default_factory=list)
    components: List[ComponentNode] = field(default_factory=list)
    groups: List[GroupNode] = field(default_factory=list)


@dataclass
class SchemaTree:
    fields: Dict[str, Field] = field(default_factory=dict)
    messages: Dict[str, MessageNode] = field(default_factory=dict)
    components: Dict[str, ComponentNode] = field(default_factory=dict)
    version: str = ""
    service_pack: str = NO_SERVICE_PACK

    def find_field(self, tag: int) -> Optional[Field]:
        for f in self.fields.values():
            if f.number == tag:
                return f
        return None

    def find_message(self, name_or_type: str) -> Optional[MessageNode]:
        """Look a message up by name (NewOrderSingle) or MsgType (D)."""
        if name_or_type in self.messages:
            return self.messages[name_or_type]
        for m in self.messages.values():
            if m.msg_type == name_or_type:
                return m
        return None


def build_schema(source: DictionarySource) -> SchemaTree:
    field_map = {f.name: f for f in source.fields}
    comp_map = component_map(source)

    schema = SchemaTree(
        fields=field_map,
        version=f"{source.major}.{source.minor}",
        service_pack=source.service_pack or NO_SERVICE_PACK,
    )

    for comp in source.components:
        schema.components[comp.name] = _build_component_node(comp, field_map, comp_map, 0)

    for msg in source.messages:
        schema.messages[msg.name] = _build_message_node(msg, field_map, comp_map)

    # Header and Trailer are always present, even when the dictionary leaves them empty.
    header = ComponentDefinition("Header", source.header.members)
    schema.components["Header"] = _build_component_node(header, field_map, comp_map, 0)

    trailer = ComponentDefinition("Trailer", source.trailer.members)
    schema.components["Trailer"] = _build_component_node(trailer, field_map, comp_map, 0)

    return schema


def _build_field_nodes(refs, field_map) -> List[FieldNode]:
    return [FieldNode(ref, field_map[ref.name]) for ref in refs if ref.name in field_map]


def _build_component_node(comp, field_map, comp_map, depth) -> ComponentNode:
    if depth > MAX_DEPTH:
        raise SchemaDepthError(f"Component {comp.name!r} nested deeper than {MAX_DEPTH} levels")

    node = ComponentNode(name=comp.name, fields=_build_field_nodes(comp.fields, field_map))

    for cref in comp.components:
        sub = comp_map.get(cref.name)
        if sub is not None:
            node.components.append(_build_component_node(sub, field_map, comp_map, depth + 1))

    for group in comp.groups:
        node.groups.append(_build_group_node(group, field_map, comp_map, depth + 1))

    return node


def _build_group_node(group: GroupDefinition, field_map, comp_map, depth) -> GroupNode:
    if depth > MAX_DEPTH:
        raise SchemaDepthError(f"Group {group.name!r} nested deeper than {MAX_DEPTH} levels")

    node = GroupNode(
        name=group.name,
        required=group.required,
        fields=_build_field_nodes(group.fields, field_map),
    )

    for cref in group.components:
        sub = comp_map.get(cref.name)
        if sub is not None:
            node.components.append(_build_component_node(sub, field_map, comp_map, depth + 1))

    for sub_group in group.groups:
        node.groups.append(_build_group_node(sub_group, field_map, comp_map, depth + 1))

    return node


def _build_message_node(msg: MessageDefinition, field_map, comp_map) -> MessageNode:
    node = MessageNode(
        name=msg.name,
        msg_type=msg.msg_type,
        msg_cat=msg.msg_cat,
        fields=_build_field_nodes(msg.fields, field_map),
    )

    for cref in msg.components:
        sub = comp_map.get(cref.name)
        if sub is not None:
            node.components.append(_build_component_node(sub, field_map, comp_map, 1))

    for group in msg.groups:
        node.groups.append(_build_group_node(group, field_map, comp_map, 1))

    return node


def parse_schema(xml_data: Union[str, bytes]) -> SchemaTree:
    return build_schema(parse_source(xml_data))


def load_schema(path) -> SchemaTree:
    """Build a SchemaTree from a dictionary file on disk."""
    try:
        data = Path(path).read_bytes()
    except FileNotFoundError:
        logger.critical(f"FIX dictionary file not found at: {path}")
        raise
    return parse_schema(data)


def load_embedded_schema(version: str) -> SchemaTree:
    return parse_schema(choose_embedded_xml(version))
