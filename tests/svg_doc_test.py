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

from lxml import etree
import pytest
from svgunjunk.svg_doc import (
    Doctype,
    ParseError,
    SVGDocument,
    TextNode,
    class_list,
    declared_namespaces,
    remove_class,
    remove_namespace_declaration,
    remove_style_property,
    replace_xlink_href,
    style_properties,
)
from svgunjunk.svg_meta import svgns, xlinkns
from svg_test_helpers import *


@pytest.mark.parametrize(
    "svg_code",
    [
        # not xml at all
        "I love kittens",
        # unclosed
        f"<svg {SVG_NS_DECL}><g></svg>",
        # wrong namespace, not recoverable
        '<svg xmlns="http://example.com/not-svg"/>',
        # no namespace, recovers to svg namespace but the tag is wrong
        "<html><body/></html>",
        # svg namespace, wrong tag
        f"<rect {SVG_NS_DECL}/>",
        # case matters
        f"<SVG {SVG_NS_DECL}/>",
    ],
)
def test_parse_errors(svg_code):
    with pytest.raises(ParseError):
        SVGDocument.fromstring(svg_code)


def test_parse_error_is_value_error():
    assert issubclass(ParseError, ValueError)


def test_recover_unbound_namespace():
    doc = SVGDocument.fromstring('<svg width="1"><rect/></svg>')
    assert etree.QName(doc.svg_root).namespace == svgns()
    assert etree.QName(doc.svg_root[0]).namespace == svgns()
    assert doc.tostring() == f'<svg {SVG_NS_DECL} width="1"><rect/></svg>'


@pytest.mark.parametrize(
    "svg_code",
    [
        '<svg xmlns="" width="1"><rect/></svg>',
        "<svg xmlns='' width=\"1\"><rect/></svg>",
        '<svg width="1" xmlns=""><rect/></svg>',
    ],
)
def test_recover_empty_default_namespace(svg_code):
    doc = SVGDocument.fromstring(svg_code)
    assert etree.QName(doc.svg_root).namespace == svgns()
    assert etree.QName(doc.svg_root[0]).namespace == svgns()
    assert doc.tostring() == f'<svg {SVG_NS_DECL} width="1"><rect/></svg>'


@pytest.mark.parametrize(
    "svg_code",
    [
        svg_string("<rect width='1'/>"),
        # document level comments and instructions survive
        f"<?config skip-lossless?><!--a--><svg {SVG_NS_DECL}><!--b--> <g/> </svg><!--c-->",
        # text content
        svg_string("<text>Hello &amp; bye</text>"),
    ],
)
def test_round_trip(svg_code):
    assert SVGDocument.fromstring(svg_code).tostring() == svg_code.replace("'", '"')


def test_xml_declaration_dropped():
    svg_code = f'<?xml version="1.0" encoding="UTF-8"?>\n<svg {SVG_NS_DECL}/>'
    assert SVGDocument.fromstring(svg_code).tostring() == f"<svg {SVG_NS_DECL}/>"


def test_doctype_is_a_document_child():
    doctype = (
        '<!DOCTYPE svg PUBLIC "-//W3C//DTD SVG 1.1//EN" '
        '"http://www.w3.org/Graphics/SVG/1.1/DTD/svg11.dtd">'
    )
    doc = SVGDocument.fromstring(doctype + f"<svg {SVG_NS_DECL}/>")
    children = doc.children()
    assert children[0] == Doctype(doctype)
    assert children[1] is doc.svg_root
    assert doc.tostring() == doctype + f"<svg {SVG_NS_DECL}/>"

    doc.remove(children[0])
    assert doc.tostring() == f"<svg {SVG_NS_DECL}/>"


def test_children_include_text():
    doc = svg_doc("a<g/>b<!--c-->d")
    root = doc.svg_root
    g, comment = root[0], root[1]
    assert doc.children(root) == [
        TextNode(root, "text"),
        g,
        TextNode(g, "tail"),
        comment,
        TextNode(comment, "tail"),
    ]
    assert [n.value for n in doc.children(root) if isinstance(n, TextNode)] == [
        "a",
        "b",
        "d",
    ]


@pytest.mark.parametrize(
    "remove_idx, expected",
    [
        (0, "<g/>b<!--c-->d"),
        (1, "ab<!--c-->d"),
        (2, "a<g/><!--c-->d"),
        (3, "a<g/>bd"),
        (4, "a<g/>b<!--c-->"),
    ],
)
def test_remove_keeps_neighbouring_text(remove_idx, expected):
    doc = svg_doc("a<g/>b<!--c-->d")
    doc.remove(doc.children(doc.svg_root)[remove_idx])
    assert doc.tostring() == svg_string(expected)


def test_remove_document_level_nodes():
    doc = SVGDocument.fromstring(f"<!--a--><svg {SVG_NS_DECL}/><?pi data?>")
    comment, root, pi = doc.children()
    assert root is doc.svg_root

    doc.remove(pi)
    assert doc.tostring() == f"<!--a--><svg {SVG_NS_DECL}/>"
    doc.remove(comment)
    assert doc.tostring() == f"<svg {SVG_NS_DECL}/>"

    with pytest.raises(ValueError):
        doc.remove(root)


@pytest.mark.parametrize(
    "content, expected",
    [
        (
            'a<g fill="red">b<rect/>c<circle/>d</g>e',
            "ab<rect/>c<circle/>de",
        ),
        # empty group, text only
        ("x<g>y</g>z", "xyz"),
        # nothing around
        ("<g><rect/></g>", "<rect/>"),
        # siblings keep their place
        ("<circle/><g><rect/><path/></g><line/>", "<circle/><rect/><path/><line/>"),
    ],
)
def test_unwrap(content, expected):
    doc = svg_doc(content)
    g = next(el for el in doc.svg_root.iter() if el.tag == f"{{{svgns()}}}g")
    doc.unwrap(g)
    assert doc.tostring() == svg_string(expected)


def test_unwrap_root_fails():
    doc = svg_doc("<rect/>")
    with pytest.raises(ValueError):
        doc.unwrap(doc.svg_root)


def test_classes():
    doc = svg_doc("<rect class=' a b  a'/>")
    rect = doc.svg_root[0]
    assert class_list(rect) == ["a", "b"]

    remove_class(rect, "a")
    assert rect.attrib["class"] == "b"

    remove_class(rect, "b")
    assert "class" not in rect.attrib


def test_style_properties():
    doc = svg_doc("<rect style='fill: red; stroke-width:2;;bogus'/>")
    rect = doc.svg_root[0]
    assert style_properties(rect) == {"fill": "red", "stroke-width": "2"}
    assert list(style_properties(rect)) == ["fill", "stroke-width"]

    remove_style_property(rect, "fill")
    assert rect.attrib["style"] == "stroke-width:2;bogus"

    remove_style_property(rect, "stroke-width")
    assert rect.attrib["style"] == "bogus"


@pytest.mark.parametrize(
    "style, property_name, expected",
    [
        # declarations that don't parse stay where they were
        ("fill:red;garbage;stroke:blue", "stroke", "fill:red;garbage"),
        ("fill:red;garbage;stroke:blue", "fill", "garbage;stroke:blue"),
        (":nameless;fill:red", "fill", ":nameless"),
        # repeated declarations all go
        ("fill:red;opacity:1;fill:blue", "fill", "opacity:1"),
        # unknown property is a no-op apart from spacing
        ("fill: red", "stroke", "fill:red"),
        ("fill:red", "fill", None),
    ],
)
def test_remove_style_property(style, property_name, expected):
    doc = svg_doc(f'<rect style="{style}"/>')
    rect = doc.svg_root[0]
    remove_style_property(rect, property_name)
    assert rect.attrib.get("style") == expected


def test_style_value_with_colon():
    doc = svg_doc("<rect style=\"fill:url('data:a');opacity:.5\"/>")
    assert style_properties(doc.svg_root[0]) == {
        "fill": "url('data:a')",
        "opacity": ".5",
    }


def test_replace_xlink_href_keeps_attr_order():
    doc = SVGDocument.fromstring(
        f'<svg {SVG_NS_DECL} xmlns:xlink="{xlinkns()}">'
        '<use x="1" xlink:href="#a" y="2"/></svg>'
    )
    use = doc.svg_root[0]
    replace_xlink_href(use)
    assert list(use.attrib.items()) == [("x", "1"), ("href", "#a"), ("y", "2")]


def test_declared_namespaces():
    doc = SVGDocument.fromstring(
        f'<svg {SVG_NS_DECL} xmlns:xlink="{xlinkns()}">'
        '<g xmlns:ex="http://example.com"/></svg>'
    )
    assert declared_namespaces(doc.svg_root) == {None: svgns(), "xlink": xlinkns()}
    assert declared_namespaces(doc.svg_root[0]) == {"ex": "http://example.com"}


def test_remove_unused_namespace_declaration():
    doc = SVGDocument.fromstring(
        f'<svg {SVG_NS_DECL} xmlns:xlink="{xlinkns()}"><rect/></svg>'
    )
    remove_namespace_declaration(doc.svg_root, "xlink")
    assert doc.tostring() == svg_string("<rect/>")


def test_remove_used_namespace_declaration_is_noop():
    svg_code = (
        f'<svg {SVG_NS_DECL} xmlns:xlink="{xlinkns()}"><use xlink:href="#a"/></svg>'
    )
    doc = SVGDocument.fromstring(svg_code)
    remove_namespace_declaration(doc.svg_root, "xlink")
    assert doc.tostring() == svg_code
