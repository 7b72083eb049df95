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

import re
from lxml import etree  # pytype: disable=import-error
from typing import (
    Any,
    Container,
    Mapping,
    MutableMapping,
    Optional,
)


def svgns():
    return "http://www.w3.org/2000/svg"


def xlinkns():
    return "http://www.w3.org/1999/xlink"


def xmlns():
    return "http://www.w3.org/XML/1998/namespace"


def splitns(name):
    qn = etree.QName(name)
    return qn.namespace, qn.localname


def strip_ns(tagname):
    return splitns(tagname)[1]


def is_svg_tag(tag, *localnames) -> bool:
    if not isinstance(tag, str):
        return False
    ns, localname = splitns(tag)
    return ns == svgns() and localname in localnames


# Geometry and identity attributes are never offered for removal
DO_NOT_REMOVE_ATTRS = frozenset(
    {
        "xmlns",
        "viewBox",
        "width",
        "height",
        "r",
        "rx",
        "ry",
        "cx",
        "cy",
        "x",
        "y",
        "x1",
        "x2",
        "y1",
        "y2",
        "d",
        "offset",
        "stop-color",
        "filterUnits",
    }
)

UNWRAP_ELEMENTS = ("g", "svg")

GRADIENT_ELEMENTS = ("linearGradient", "radialGradient")

# Namespace declarations are offered last
RE_XMLNS_ATTR = re.compile(r"^xmlns(?::|$)")

RE_URL_FUNCTION = re.compile(r"^\s*url\(\s*(.*?)\s*\)$", re.IGNORECASE)


def is_stroke_property(name: str) -> bool:
    return name.startswith("stroke-")


def qualified_name(el: etree.Element, attr_name: str) -> str:
    """Name of an attribute as it appears in markup, e.g. xlink:href."""
    ns, localname = splitns(attr_name)
    if ns is None:
        return localname
    if ns == xmlns():
        return f"xml:{localname}"
    for prefix, uri in el.nsmap.items():
        if uri == ns and prefix is not None:
            return f"{prefix}:{localname}"
    return attr_name


def parse_css_declarations(
    style: str,
    output: MutableMapping[str, Any],
    property_names: Optional[Container[str]] = None,
) -> str:
    """Parse CSS declaration list into an ordered {property: value} mapping.

    Args:
        style: CSS declaration list without the enclosing braces,
            as found in an SVG element's "style" attribute.
        output: a dictionary where to store the parsed properties, in
            declaration order. A repeated property keeps its first position
            and its last value.
        property_names: optional set of property names to limit the declarations
            to be parsed; if not provided, all will be parsed.

    Returns:
        A string containing the unparsed style declarations, if any. Declarations
        without a colon or with an empty name end up here rather than raising,
        the way a browser drops invalid declarations.

    References:
    https://www.w3.org/TR/SVG/styling.html#ElementSpecificStyling
    https://www.w3.org/TR/2013/REC-css-style-attr-20131107/#syntax
    """
    unparsed = []
    for declaration in style.split(";"):
        declaration = declaration.strip()
        if not declaration:
            continue
        property_name, colon, value = declaration.partition(":")
        property_name, value = property_name.strip(), value.strip()
        if not colon or not property_name:
            unparsed.append(declaration)
            continue
        if property_names is None or property_name in property_names:
            output[property_name] = value
        else:
            unparsed.append(declaration)
    return "; ".join(unparsed) + ";" if unparsed else ""


def format_css_declarations(properties: Mapping[str, str]) -> str:
    return ";".join(f"{name}:{value}" for name, value in properties.items())
