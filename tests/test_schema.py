"""Tests for the nested schema tree used by the display commands."""

import pytest

from src.fixdecoder.dictionary_source import SchemaDepthError, parse_source
from src.fixdecoder.embedded import EMBEDDED_FILES, choose_embedded_xml
from src.fixdecoder.fix_protocol import parse_dictionary
from src.fixdecoder.schema import build_schema, load_embedded_schema, load_schema, parse_schema


@pytest.fixture
def sample_schema(sample_xml):
    return parse_schema(sample_xml)


class TestBuildSchema:
    """build_schema()"""

    def test_version_and_placeholder_service_pack(self, sample_schema):
        """A dictionary without servicepack exposes 'n/a'."""
        assert sample_schema.version == "4.4"
        assert sample_schema.service_pack == "n/a"

    def test_declared_service_pack(self):
        assert load_embedded_schema("50SP2").service_pack == "2"

    def test_header_and_trailer_always_present(self):
        """Envelope components exist even for a dictionary that declares none."""
        schema = parse_schema('<fix major="5" minor="0"><fields/></fix>')
        assert schema.components["Header"].fields == []
        assert schema.components["Trailer"].fields == []

    def test_header_fields(self, sample_schema):
        names = [f.field.name for f in sample_schema.components["Header"].fields]
        assert names == ["BeginString", "BodyLength", "MsgType"]

    def test_counts(self, sample_schema):
        assert len(sample_schema.fields) == 15
        assert sorted(sample_schema.components) == ["Header", "Instrument", "Parties", "PtysSubGrp", "Trailer"]
        assert sorted(sample_schema.messages) == ["Logon", "NewOrderSingle"]

    def test_dangling_references_dropped(self, sample_schema):
        """Undeclared fields and components disappear from the tree."""
        msg = sample_schema.messages["NewOrderSingle"]
        assert [f.field.name for f in msg.fields] == ["ClOrdID", "Side", "OrderQty"]
        assert [c.name for c in msg.components] == ["Instrument", "Parties"]

    def test_required_flags_kept(self, sample_schema):
        msg = sample_schema.messages["NewOrderSingle"]
        assert [f.ref.required for f in msg.fields] == ["Y", "Y", "N"]

    def test_nested_groups_and_components(self, sample_schema):
        """Components inside groups inside components are fully expanded."""
        parties = sample_schema.components["Parties"]
        group = parties.groups[0]
        assert group.name == "NoPartyIDs"
        assert [f.field.number for f in group.fields] == [448, 447]

        sub = group.components[0]
        assert sub.name == "PtysSubGrp"
        assert sub.groups[0].name == "NoPartySubIDs"
        assert sub.groups[0].fields[0].field.name == "PartySubID"

    def test_enum_values_on_fields(self, sample_schema):
        side = sample_schema.fields["Side"]
        assert [(v.enum, v.description) for v in side.values] == [("1", "BUY"), ("2", "SELL")]

    def test_component_cycle_raises(self):
        xml = """<fix major="4" minor="4">
          <components><component name="A"><component name="A" required="Y"/></component></components>
          <fields/>
        </fix>"""
        with pytest.raises(SchemaDepthError):
            parse_schema(xml)

    def test_is_pure(self, sample_xml):
        """The same source builds equal trees."""
        source = parse_source(sample_xml)
        assert build_schema(source) == build_schema(source)


class TestSchemaTreeLookups:
    """SchemaTree.find_field() and find_message()"""

    def test_find_field(self, sample_schema):
        assert sample_schema.find_field(54).name == "Side"
        assert sample_schema.find_field(9999) is None

    def test_find_message_by_name_or_type(self, sample_schema):
        assert sample_schema.find_message("NewOrderSingle").msg_type == "D"
        assert sample_schema.find_message("D").name == "NewOrderSingle"
        assert sample_schema.find_message("Nope") is None


class TestBundledDictionaries:
    """The embedded dictionaries load and agree between both views"""

    @pytest.mark.parametrize("version", list(EMBEDDED_FILES))
    def test_flat_and_tree_agree_on_messages(self, version):
        """Every msgtype in the tree is also known to the flat lookup."""
        xml = choose_embedded_xml(version)
        schema = parse_schema(xml)
        lookup = parse_dictionary(xml)

        assert schema.messages
        assert {m.msg_type for m in schema.messages.values()} == set(lookup.messages)

    def test_unknown_version_uses_fix44(self):
        assert choose_embedded_xml("99") == choose_embedded_xml("44")

    def test_fixt_version(self):
        assert load_embedded_schema("T11").version == "1.1"


class TestLoadSchema:
    """load_schema()"""

    def test_from_file(self, tmp_path, sample_xml):
        path = tmp_path / "dict.xml"
        path.write_text(sample_xml)
        assert load_schema(path).find_message("A").name == "Logon"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_schema(tmp_path / "missing.xml")
