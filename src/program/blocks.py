"""
Authored block programs and their persisted XML form.

The XML follows the visual editor's workspace format:

    <xml xmlns="https://developers.google.com/blockly/xml">
      <block type="robot_move_forward" id="a1" x="20" y="20">
        <field name="DISTANCE">2</field>
        <next>
          <block type="robot_repeat_while_moving">
            <field name="TIMES">3</field>
            <statement name="DO">
              <block type="robot_toggle_hatch"/>
            </statement>
          </block>
        </next>
      </block>
    </xml>

`<next>` chains are flattened into lists; parsing then serialising a
workspace gives back an equal Workspace.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from src.core.error_handling import ProgramFormatError

logger = logging.getLogger(__name__)

BLOCKLY_XML_NS = "https://developers.google.com/blockly/xml"

_KNOWN_ATTRS = ("type", "id", "x", "y")


@dataclass
class Block:
    """One block of an authored program."""
    type: str
    id: Optional[str] = None
    fields: Dict[str, str] = field(default_factory=dict)
    values: Dict[str, List["Block"]] = field(default_factory=dict)
    statements: Dict[str, List["Block"]] = field(default_factory=dict)
    shadow: bool = False
    x: Optional[str] = None
    y: Optional[str] = None
    attrs: Dict[str, str] = field(default_factory=dict)   # e.g. disabled, collapsed
    extras: List[str] = field(default_factory=list)       # unparsed child elements

    @property
    def disabled(self) -> bool:
        return self.attrs.get("disabled") == "true"


@dataclass
class Workspace:
    """Top-level block stacks in document order."""
    stacks: List[List[Block]] = field(default_factory=list)
    namespace: Optional[str] = BLOCKLY_XML_NS
    extras: List[str] = field(default_factory=list)

    @classmethod
    def of(cls, *blocks: Block) -> "Workspace":
        """Workspace holding a single stack of `blocks`."""
        return cls(stacks=[list(blocks)] if blocks else [])


# =============================================================================
# Parsing
# =============================================================================

def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _raw(elem: ET.Element) -> str:
    """Serialise an element we do not interpret, without namespace prefixes."""
    elem.tail = None
    return ET.tostring(_strip_namespace(elem), encoding="unicode")


def _block_children(elem: ET.Element) -> List[ET.Element]:
    return [child for child in elem if _local(child.tag) in ("block", "shadow")]


def _parse_block(elem: ET.Element) -> Block:
    block_type = elem.get("type")
    if not block_type:
        raise ProgramFormatError(f"<{_local(elem.tag)}> element without a type")

    block = Block(
        type=block_type,
        id=elem.get("id"),
        shadow=_local(elem.tag) == "shadow",
        x=elem.get("x"),
        y=elem.get("y"),
        attrs={k: v for k, v in elem.attrib.items() if k not in _KNOWN_ATTRS},
    )

    for child in elem:
        tag = _local(child.tag)
        name = child.get("name")
        if tag == "field":
            block.fields[name] = child.text or ""
        elif tag == "value":
            block.values[name] = [_parse_block(c) for c in _block_children(child)]
        elif tag == "statement":
            inner = _block_children(child)
            block.statements[name] = _parse_chain(inner[0]) if inner else []
        elif tag == "next":
            continue
        else:
            block.extras.append(_raw(child))

    return block


def _parse_chain(elem: ET.Element) -> List[Block]:
    chain = []
    current: Optional[ET.Element] = elem
    while current is not None:
        chain.append(_parse_block(current))
        nxt = None
        for child in current:
            if _local(child.tag) == "next":
                inner = _block_children(child)
                nxt = inner[0] if inner else None
        current = nxt
    return chain


def workspace_from_xml(text: str) -> Workspace:
    """
    Parse persisted program text.

    Raises:
        ProgramFormatError: malformed XML or unexpected structure
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ProgramFormatError(f"Invalid program XML: {e}") from e

    if _local(root.tag) != "xml":
        raise ProgramFormatError(f"Expected <xml> root, got <{_local(root.tag)}>")

    namespace = root.tag[1:].split("}", 1)[0] if root.tag.startswith("{") else None
    workspace = Workspace(namespace=namespace)
    for child in root:
        if _local(child.tag) in ("block", "shadow"):
            workspace.stacks.append(_parse_chain(child))
        else:
            workspace.extras.append(_raw(child))

    logger.debug(f"Parsed workspace with {len(workspace.stacks)} stacks")
    return workspace


# =============================================================================
# Serialisation
# =============================================================================

def _block_element(block: Block) -> ET.Element:
    elem = ET.Element("shadow" if block.shadow else "block")
    elem.set("type", block.type)
    if block.id is not None:
        elem.set("id", block.id)
    for key, value in block.attrs.items():
        elem.set(key, value)
    if block.x is not None:
        elem.set("x", block.x)
    if block.y is not None:
        elem.set("y", block.y)

    for extra in block.extras:
        elem.append(ET.fromstring(extra))
    for name, value in block.fields.items():
        field_elem = ET.SubElement(elem, "field", name=name)
        field_elem.text = value
    for name, inputs in block.values.items():
        value_elem = ET.SubElement(elem, "value", name=name)
        for inner in inputs:
            value_elem.append(_block_element(inner))
    for name, chain in block.statements.items():
        statement_elem = ET.SubElement(elem, "statement", name=name)
        if chain:
            statement_elem.append(_chain_element(chain))
    return elem


def _chain_element(chain: List[Block]) -> ET.Element:
    head = _block_element(chain[0])
    tail = head
    for block in chain[1:]:
        next_elem = ET.SubElement(tail, "next")
        tail = _block_element(block)
        next_elem.append(tail)
    return head


def workspace_to_xml(workspace: Workspace) -> str:
    root = ET.Element("xml")
    if workspace.namespace:
        root.set("xmlns", workspace.namespace)
    for extra in workspace.extras:
        root.append(ET.fromstring(extra))
    for chain in workspace.stacks:
        if chain:
            root.append(_chain_element(chain))
    return ET.tostring(root, encoding="unicode")


def _strip_namespace(elem: ET.Element) -> ET.Element:
    for node in elem.iter():
        node.tag = _local(node.tag)
    return elem


# =============================================================================
# Files
# =============================================================================

def save_program(path: Union[str, Path], workspace: Workspace) -> Path:
    path = Path(path)
    path.write_text(workspace_to_xml(workspace), encoding="utf-8")
    logger.info(f"Program saved to {path}")
    return path


def load_program(path: Union[str, Path]) -> Workspace:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ProgramFormatError(f"Cannot read program {path}: {e}") from e
    workspace = workspace_from_xml(text)
    logger.info(f"Program loaded from {path}")
    return workspace
