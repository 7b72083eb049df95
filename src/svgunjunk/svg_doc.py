# Copyright 2020 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Mutable view of an svg document.

lxml keeps text on the .text and .tail of elements and has no way to drop
comments or processing instructions that sit next to the root. SVGDocument
hides both quirks: every text run is a TextNode child and document level
nodes live in plain lists around the root.
"""

import itertools
import re
from lxml import etree  # pytype: disable=import-error
from typing import (
    Dict,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Tuple,
    Union,
)
from svgunjunk.svg_meta import (
    format_css_declarations,
    parse_css_declarations,
    svgns,
    xlinkns,
)


class ParseError(ValueError):
    """Input is not a well-formed single root svg document."""


class TextNode(NamedTuple):
    owner: etree.Element
    slot: str  # "text" or "tail"

    @property
    def value(self) -> str:
        return getattr(self.owner, self.slot) or ""


class Doctype(NamedTuple):
    text: str


Node = Union[etree.Element, TextNode, Doctype]


# An explicit empty default namespace on the root start tag
_RE_EMPTY_DEFAULT_NS = re.compile(r"^([^>]*?)\s+xmlns=(?:\"\"|'')")


def _xlink_href_attr_name() -> str:
    return f"{{{xlinkns()}}}href"


def _split_tag(tag: str) -> Tuple[Optional[str], str]:
    # etree.QName rejects the prefixed names of unbound namespaces
    if tag.startswith("{"):
        ns, _, localname = tag[1:].partition("}")
        return ns, localname
    return None, tag


def is_element(node) -> bool:
    return isinstance(getattr(node, "tag", None), str)


def _concat(text: Optional[str], more: Optional[str]) -> Optional[str]:
    if not more:
        return text
    return (text or "") + more


def _append_text_before(el: etree.Element, text: Optional[str]):
    if not text:
        return
    prev = el.getprevious()
    if prev is not None:
        prev.tail = _concat(prev.tail, text)
    else:
        parent = el.getparent()
        parent.text = _concat(parent.text, text)


def _remove_el(el: etree.Element):
    # lxml drops the tail with the element, the text that followed must stay
    _append_text_before(el, el.tail)
    el.tail = None
    el.getparent().remove(el)


def _replace_with_children(el: etree.Element):
    parent = el.getparent()
    children = list(el)
    _append_text_before(el, el.text)
    if children:
        children[-1].tail = _concat(children[-1].tail, el.tail)
    else:
        _append_text_before(el, el.tail)
    el.tail = None
    idx = parent.index(el)
    parent.remove(el)
    for child_idx, child in enumerate(children):
        parent.insert(idx + child_idx, child)


def _set_or_drop(el: etree.Element, attr_name: str, value: str):
    if value:
        el.attrib[attr_name] = value
    else:
        remove_attribute(el, attr_name)


def remove_attribute(el: etree.Element, attr_name: str):
    if attr_name in el.attrib:
        del el.attrib[attr_name]


def class_list(el: etree.Element) -> List[str]:
    return list(dict.fromkeys(el.attrib.get("class", "").split()))


def remove_class(el: etree.Element, class_name: str):
    _set_or_drop(el, "class", " ".join(c for c in class_list(el) if c != class_name))


def style_properties(el: etree.Element) -> Dict[str, str]:
    properties = {}
    parse_css_declarations(el.attrib.get("style", ""), properties)
    return properties


def set_style_properties(el: etree.Element, properties: Mapping[str, str]):
    _set_or_drop(el, "style", format_css_declarations(properties))


def remove_style_property(el: etree.Element, property_name: str):
    """Drop every declaration of property_name; the rest stays in place.

    Declarations the CSS parser can't make sense of are kept verbatim.
    """
    kept = []
    for declaration in el.attrib.get("style", "").split(";"):
        declaration = declaration.strip()
        if not declaration:
            continue
        name, colon, value = declaration.partition(":")
        name = name.strip()
        if colon and name:
            if name == property_name:
                continue
            declaration = format_css_declarations({name: value.strip()})
        kept.append(declaration)
    _set_or_drop(el, "style", ";".join(kept))


def replace_xlink_href(el: etree.Element):
    """Swap xlink:href for plain href, retaining attribute order."""
    attrs = [(k, v) for k, v in el.attrib.items()]
    el.attrib.clear()
    for name, value in attrs:
        if name == _xlink_href_attr_name():
            name = "href"
        el.attrib[name] = value


def namespace_attr_name(prefix: Optional[str]) -> str:
    return "xmlns" if prefix is None else f"xmlns:{prefix}"


def declared_namespaces(el: etree.Element) -> Dict[Optional[str], str]:
    """Namespace declarations made on el itself rather than inherited."""
    parent = el.getparent()
    inherited = parent.nsmap if parent is not None else {}
    return {
        prefix: uri for prefix, uri in el.nsmap.items() if inherited.get(prefix) != uri
    }


def remove_namespace_declaration(el: etree.Element, prefix: str):
    """Drop the declaration of prefix on el; no-op while it is still in use."""
    keep = {
        p
        for e in el.iter()
        if is_element(e)
        for p in e.nsmap
        if p is not None and p != prefix
    }
    etree.cleanup_namespaces(el, keep_ns_prefixes=sorted(keep))


def _node_tostring(node) -> str:
    if isinstance(node, Doctype):
        return node.text
    return etree.tostring(node, encoding="unicode", with_tail=False)


class SVGDocument:

    svg_root: etree.Element
    prolog: List[Node]
    epilog: List[Node]

    def __init__(self, svg_root, prolog=(), epilog=()):
        self.svg_root = svg_root
        self.prolog = list(prolog)
        self.epilog = list(epilog)

    def xpath(self, xpath: str, el: etree.Element = None):
        if el is None:
            el = self.svg_root
        return el.xpath(xpath, namespaces={"svg": svgns()})

    def children(self, parent: Optional[etree.Element] = None) -> List[Node]:
        """Child nodes of parent, or of the document itself if parent is None."""
        if parent is None:
            return [*self.prolog, self.svg_root, *self.epilog]
        nodes = []
        if parent.text:
            nodes.append(TextNode(parent, "text"))
        for child in parent:
            nodes.append(child)
            if child.tail:
                nodes.append(TextNode(child, "tail"))
        return nodes

    def remove(self, node: Node):
        if isinstance(node, TextNode):
            setattr(node.owner, node.slot, None)
            return
        for siblings in (self.prolog, self.epilog):
            for idx, sibling in enumerate(siblings):
                if sibling is node:
                    del siblings[idx]
                    return
        if node.getparent() is None:
            raise ValueError("The root element cannot be removed")
        _remove_el(node)

    def unwrap(self, el: etree.Element):
        """Replace el with its children in place."""
        if el.getparent() is None:
            raise ValueError("The root element cannot be unwrapped")
        _replace_with_children(el)

    def tostring(self) -> str:
        return self._join(etree.tostring(self.svg_root, encoding="unicode"))

    def _join(self, root_code: str) -> str:
        return "".join(
            itertools.chain(
                (_node_tostring(n) for n in self.prolog),
                (root_code,),
                (_node_tostring(n) for n in self.epilog),
            )
        )

    def _tostring_with_default_ns(self) -> str:
        root_code = etree.tostring(self.svg_root, encoding="unicode")
        start = len(self.svg_root.tag) + 1  # <tag
        # xmlns="" would clash with the declaration added below
        rest = _RE_EMPTY_DEFAULT_NS.sub(r"\1", root_code[start:], count=1)
        return self._join(f'{root_code[:start]} xmlns="{svgns()}"{rest}')

    @classmethod
    def _fromstring(cls, string: str) -> "SVGDocument":
        parser = etree.XMLParser()
        try:
            # encode because fromstring dislikes xml encoding decl if input is str
            svg_root = etree.fromstring(string.encode("utf-8"), parser)
        except etree.XMLSyntaxError as e:
            raise ParseError(f"SVG parse error: {e}") from e
        prolog = list(svg_root.itersiblings(preceding=True))
        prolog.reverse()
        doctype = svg_root.getroottree().docinfo.doctype
        if doctype:
            prolog.insert(0, Doctype(doctype))
        return cls(svg_root, prolog, svg_root.itersiblings())

    @classmethod
    def fromstring(cls, string) -> "SVGDocument":
        if isinstance(string, bytes):
            string = string.decode("utf-8")

        doc = cls._fromstring(string)
        ns, localname = _split_tag(doc.svg_root.tag)
        if ns is None:
            # Declaring xmlns on a parsed tree doesn't rebind the elements, reparse
            doc = cls._fromstring(doc._tostring_with_default_ns())
            ns, localname = _split_tag(doc.svg_root.tag)

        if ns != svgns():
            raise ParseError(f'SVG parse error: The namespace should be "{svgns()}"')
        if localname != "svg":
            raise ParseError(
                'SVG parse error: The document element tag should be "svg" in lowercase'
            )
        return doc

    @classmethod
    def parse(cls, file_or_path):
        if hasattr(file_or_path, "read"):
            raw_svg = file_or_path.read()
        else:
            with open(file_or_path, encoding="utf-8") as f:
                raw_svg = f.read()
        return cls.fromstring(raw_svg)
