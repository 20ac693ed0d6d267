"""
Human-readable rendering of a SchemaTree: tag, message and component listings
and the nested structure of messages, components and repeating groups.
"""

from typing import List, Optional

import click

from .embedded import supported_fix_versions
from .fix_protocol import MSG_TYPE_TAG
from .prettifier import get_terminal_width
from .schema import ComponentNode, FieldNode, GroupNode, MessageNode, SchemaTree


def format_required(required: str) -> str:
    return " - (Y)" if required == "Y" else ""


def format_field(field) -> str:
    return f"{field.number:<4}: {field.name} ({field.type})"


def string_columns(items: List[str], width: int, indent: int = 0) -> List[str]:
    """Lay items out column-major in as many columns as fit in `width`."""
    if not items:
        return []

    max_len = max(len(s) for s in items)
    cols = max(1, (width - indent) // (max_len + 2))
    rows = (len(items) + cols - 1) // cols

    lines = []
    for r in range(rows):
        cells = [f"{items[i]:<{max_len + 2}}" for i in range(r, len(items), rows)]
        lines.append(" " * indent + "".join(cells))
    return lines


class SchemaPrinter:
    def __init__(self, schema: SchemaTree, verbose: bool = False, column: bool = False,
                 width: Optional[int] = None):
        self.schema = schema
        self.verbose = verbose
        self.column = column
        self.width = width or get_terminal_width()

    def print_string_columns(self, items: List[str], indent: int = 0):
        for line in string_columns(items, self.width, indent):
            click.echo(line)

    # --- summary ---

    def print_summary(self):
        s = self.schema
        click.echo(f"Fields: {len(s.fields)}   Components: {len(s.components)}   "
                   f"Messages: {len(s.messages)}   Version: {s.version}  Service Pack: {s.service_pack}")

    def print_info(self):
        s = self.schema
        click.echo(f"Available FIX Dictionaries: {supported_fix_versions()}")
        click.echo("Current Schema:")
        click.echo(f"  FIX Version:  {s.version}")
        click.echo(f"  Service Pack: {s.service_pack}")
        click.echo(f"  Messages:     {len(s.messages)}")
        click.echo(f"  Components:   {len(s.components)}")
        click.echo(f"  Fields:       {len(s.fields)}")

    # --- tags ---

    def sorted_fields(self):
        return sorted(self.schema.fields.values(), key=lambda f: f.number)

    def list_tags(self):
        lines = [format_field(f) for f in self.sorted_fields()]
        if self.column:
            self.print_string_columns(lines)
        else:
            for line in lines:
                click.echo(line)

    def print_tag(self, tag: int) -> bool:
        field = self.schema.find_field(tag)
        if field is None:
            click.echo(f"Tag not found: {tag}")
            return False

        click.echo(format_field(field))
        if self.verbose:
            self.print_enums(field.values, 4)
        return True

    # --- enums ---

    def print_enums(self, values, indent: int):
        if self.column:
            items = [f"{v.enum}: {v.description}" for v in sorted(values, key=lambda v: v.enum)]
            self.print_string_columns(items, indent)
        else:
            for v in values:
                self.print_enum(v.enum, v.description, indent)

    def print_enum(self, enum: str, description: str, indent: int):
        click.echo(f"{' ' * (indent + 4)}{enum} : {description}")

    def print_field(self, node: FieldNode, indent: int):
        click.echo(f"{' ' * indent}{format_field(node.field)}{format_required(node.ref.required)}")

    def print_field_enums(self, node: FieldNode, msg: MessageNode, indent: int):
        if node.field.number == MSG_TYPE_TAG and msg.msg_type:
            # MsgType only shows the message being displayed
            for v in node.field.values:
                if v.enum == msg.msg_type:
                    self.print_enum(v.enum, v.description, indent)
                    break
            return
        self.print_enums(node.field.values, indent)

    # --- messages ---

    def list_messages(self):
        msgs = sorted(self.schema.messages.values(), key=lambda m: m.msg_type)
        if self.column:
            self.print_string_columns(sorted(f"{m.msg_type:>2}: {m.name} ({m.msg_cat})" for m in msgs))
        else:
            for m in msgs:
                click.echo(f"{m.msg_type:<4}: {m.name} ({m.msg_cat})")

    def print_message(self, name_or_type: str, include_header=False, include_trailer=False,
                      indent: int = 4) -> bool:
        msg = self.schema.find_message(name_or_type)
        if msg is None:
            click.echo(f"Message not found: {name_or_type}")
            return False

        self.display_message(msg, include_header, include_trailer, indent)
        return True

    def display_message(self, msg: MessageNode, include_header=False, include_trailer=False,
                        indent: int = 4):
        click.echo(f"Message: {msg.name} ({msg.msg_type})")

        if include_header:
            self.display_component(self.schema.components["Header"], msg, indent)

        for f in msg.fields:
            self.print_field(f, indent)
            if self.verbose:
                self.print_field_enums(f, msg, indent + 2)

        for comp in msg.components:
            self.display_component(comp, msg, indent)

        for group in msg.groups:
            self.display_group(group, indent)

        if include_trailer:
            self.display_component(self.schema.components["Trailer"], msg, indent)

    # --- components and groups ---

    def list_components(self):
        names = sorted(self.schema.components)
        if self.column:
            self.print_string_columns(names)
        else:
            for name in names:
                click.echo(name)

    def print_component(self, name: str) -> bool:
        comp = self.schema.components.get(name)
        if comp is None:
            click.echo(f"Component not found: {name}")
            return False

        self.display_component(comp, MessageNode(), 0)
        return True

    def display_component(self, comp: ComponentNode, msg: MessageNode, indent: int):
        click.echo(f"{' ' * indent}Component: {comp.name}")

        for f in comp.fields:
            self.print_field(f, indent + 4)
            if self.verbose:
                self.print_field_enums(f, msg, indent + 6)

        for sub in comp.components:
            self.display_component(sub, msg, indent + 4)

        for group in comp.groups:
            self.display_group(group, indent + 4)

    def display_group(self, group: GroupNode, indent: int):
        click.echo(f"{' ' * indent}Group: {group.name}{format_required(group.required)}")

        for f in group.fields:
            self.print_field(f, indent + 4)
            if self.verbose:
                self.print_enums(f.field.values, indent + 6)

        for comp in group.components:
            self.display_component(comp, MessageNode(), indent + 4)

        for sub in group.groups:
            self.display_group(sub, indent + 4)
