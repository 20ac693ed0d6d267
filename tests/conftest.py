"""
pytest configuration and fixtures for the FIX decoder tests.

Provides:
- A small hand-written dictionary exercising components, groups and both enum dialects
- Fresh dictionary caches so tests never share parsed state
- A simplefix-based factory for well-formed messages with correct checksums
"""

import pytest
import simplefix

from src.fixdecoder.dictionary_cache import DictionaryCache
from src.fixdecoder.fix_protocol import parse_dictionary
from src.fixdecoder.tag_parser import SOH
from src.fixdecoder.validator import calculate_checksum

SAMPLE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<fix type="FIX" major="4" minor="4">
 <header>
  <field name="BeginString" required="Y"/>
  <field name="BodyLength" required="Y"/>
  <field name="MsgType" required="Y"/>
 </header>
 <trailer>
  <field name="CheckSum" required="Y"/>
 </trailer>
 <messages>
  <message name="Logon" msgtype="A" msgcat="admin">
   <field name="MsgType" required="Y"/>
   <field name="ClOrdID" required="Y"/>
   <field name="Side" required="Y"/>
  </message>
  <message name="NewOrderSingle" msgtype="D" msgcat="app">
   <field name="ClOrdID" required="Y"/>
   <component name="Instrument" required="Y"/>
   <component name="Parties" required="N"/>
   <field name="Side" required="Y"/>
   <field name="OrderQty" required="N"/>
   <field name="UnknownField" required="Y"/>
   <component name="MissingComponent" required="Y"/>
  </message>
 </messages>
 <components>
  <component name="Instrument">
   <field name="Symbol" required="Y"/>
   <field name="SecurityID" required="N"/>
  </component>
  <component name="Parties">
   <group name="NoPartyIDs" required="N">
    <field name="PartyID" required="Y"/>
    <field name="PartyIDSource" required="N"/>
    <component name="PtysSubGrp" required="N"/>
   </group>
  </component>
  <component name="PtysSubGrp">
   <group name="NoPartySubIDs" required="N">
    <field name="PartySubID" required="N"/>
   </group>
  </component>
 </components>
 <groups>
  <group numInGroup="453">
   <field>448</field>
   <field>447</field>
  </group>
 </groups>
 <fields>
  <field number="8" name="BeginString" type="STRING"/>
  <field number="9" name="BodyLength" type="LENGTH"/>
  <field number="10" name="CheckSum" type="STRING"/>
  <field number="11" name="ClOrdID" type="STRING"/>
  <field number="35" name="MsgType" type="STRING">
   <value enum="A" description="LOGON"/>
  </field>
  <field number="38" name="OrderQty" type="QTY"/>
  <field number="48" name="SecurityID" type="STRING"/>
  <field number="52" name="SendingTime" type="UTCTIMESTAMP"/>
  <field number="54" name="Side" type="CHAR">
   <value enum="1" description="BUY"/>
   <value enum="2" description="SELL"/>
  </field>
  <field number="55" name="Symbol" type="STRING"/>
  <field number="447" name="PartyIDSource" type="CHAR">
   <value enum="C" description="GENERALLY_ACCEPTED_MARKET_PARTICIPANT_IDENTIFIER"/>
   <values>
    <value enum="B" description="BIC"/>
    <value enum="D" description="PROPRIETARY"/>
    <value enum="C" description="SHADOWED"/>
   </values>
  </field>
  <field number="448" name="PartyID" type="STRING"/>
  <field number="453" name="NoPartyIDs" type="NUMINGROUP"/>
  <field number="523" name="PartySubID" type="STRING"/>
  <field number="802" name="NoPartySubIDs" type="NUMINGROUP"/>
  <field name="NoNumber" type="STRING"/>
 </fields>
</fix>
"""


def with_checksum(body: str) -> str:
    """Append a correct 10= field to a SOH-terminated message body."""
    checksum = calculate_checksum(body + "10=")
    return f"{body}10={checksum:03d}{SOH}"


def pipes(text: str) -> str:
    """Readable test messages: '|' stands for SOH."""
    return text.replace("|", SOH)


@pytest.fixture
def sample_xml():
    return SAMPLE_XML


@pytest.fixture
def sample_lookup():
    return parse_dictionary(SAMPLE_XML, "SAMPLE")


@pytest.fixture
def cache():
    """A dictionary cache backed by the bundled dictionaries, empty at start."""
    return DictionaryCache()


@pytest.fixture
def fix_message():
    """Factory building an encoded FIX message from (tag, value) pairs."""

    def build(begin_string, msg_type, pairs=()):
        msg = simplefix.FixMessage()
        msg.append_pair(8, begin_string, header=True)
        msg.append_pair(35, msg_type, header=True)
        for tag, value in pairs:
            msg.append_pair(tag, value)
        return msg.encode().decode("ascii")

    return build
