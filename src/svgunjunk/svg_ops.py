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

"""Candidate edits for an svg document.

candidate_ops walks a document and returns the ordered list of edits the
minimizer may try. Each op mutates the document it was generated from; the
list is a plan for one snapshot and is discarded once any op changed it.
"""

import functools
import math
from lxml import etree  # pytype: disable=import-error
from typing import Callable, Generator, List, NamedTuple, Optional, Union
from svgunjunk.svg_doc import (
    Doctype,
    SVGDocument,
    TextNode,
    _xlink_href_attr_name,
    class_list,
    declared_namespaces,
    is_element,
    namespace_attr_name,
    remove_attribute,
    remove_class,
    remove_namespace_declaration,
    remove_style_property,
    replace_xlink_href,
    style_properties,
)
from svgunjunk.svg_meta import (
    DO_NOT_REMOVE_ATTRS,
    GRADIENT_ELEMENTS,
    RE_URL_FUNCTION,
    RE_XMLNS_ATTR,
    UNWRAP_ELEMENTS,
    is_stroke_property,
    is_svg_tag,
    qualified_name,
    strip_ns,
)


# Backtrack value that sends the minimizer back to the very first op
RESTART = math.inf


class CandidateOp(NamedTuple):
    description: str
    apply: Callable[[], None]
    # how many preceding ops to offer again once this one is accepted
    backtrack: Union[int, float] = 0
    # require a zero defect score regardless of the global mode
    force_lossless: bool = False


def _describe(node) -> str:
    if isinstance(node, TextNode):
        return "text"
    if isinstance(node, Doctype):
        return "doctype"
    if node.tag is etree.Comment:
        return "comment"
    if node.tag is etree.PI:
        return f"<?{node.target}?>"
    if is_element(node):
        return f"<{strip_ns(node.tag)}>"
    return "node"


def _sort_attrs(attr_names: List[str]) -> List[str]:
    # xmlns: attributes should be the last ones to be removed
    return sorted(attr_names, key=lambda n: bool(RE_XMLNS_ATTR.match(n)))


def _removable_attrs(el: etree.Element) -> Generator[CandidateOp, None, None]:
    removals = {}
    for attr_name in el.attrib:
        removals[qualified_name(el, attr_name)] = functools.partial(
            remove_attribute, el, attr_name
        )
    for prefix in declared_namespaces(el):
        if prefix is None:
            continue  # default namespace is allow-listed as xmlns
        removals[namespace_attr_name(prefix)] = functools.partial(
            remove_namespace_declaration, el, prefix
        )

    for name in _sort_attrs(list(removals)):
        if name in DO_NOT_REMOVE_ATTRS:
            continue
        yield CandidateOp(
            f"remove {name}= from {_describe(el)}",
            removals[name],
            force_lossless=is_stroke_property(name),
        )


def _inline_gradient(
    doc: SVGDocument, grad: etree.Element
) -> Generator[CandidateOp, None, None]:
    grad_id = grad.attrib.get("id")
    if grad_id is None:
        return
    ref_stop = next((e for e in grad.iter() if is_svg_tag(e.tag, "stop")), None)
    if ref_stop is None:
        return
    grad_ref = f"#{grad_id}"
    ref_color = ref_stop.attrib.get("stop-color") or "black"
    ref_opacity = ref_stop.attrib.get("stop-opacity") or "1"

    def apply():
        for attr_name in ("fill", "stroke"):
            for el in doc.xpath(f"//*[@{attr_name}]"):
                match = RE_URL_FUNCTION.match(el.attrib[attr_name])
                if match and match.group(1) == grad_ref:
                    el.attrib[attr_name] = ref_color
                    el.attrib[f"{attr_name}-opacity"] = ref_opacity
        doc.remove(grad)

    # References anywhere in the document changed, start over
    yield CandidateOp(
        f"inline gradient {grad_ref} as {ref_color}", apply, backtrack=RESTART
    )


def _cleaning_ops(
    doc: SVGDocument, parent: Optional[etree.Element]
) -> Generator[CandidateOp, None, None]:
    for child in doc.children(parent):
        if parent is not None or not is_element(child):
            yield CandidateOp(
                f"remove {_describe(child)}", functools.partial(doc.remove, child)
            )

        if not is_element(child):
            continue

        el = child

        yield from _cleaning_ops(doc, el)

        if _xlink_href_attr_name() in el.attrib:
            yield CandidateOp(
                f"replace xlink:href with href on {_describe(el)}",
                functools.partial(replace_xlink_href, el),
            )

        yield from _removable_attrs(el)

        for class_name in class_list(el):
            yield CandidateOp(
                f"remove class {class_name} from {_describe(el)}",
                functools.partial(remove_class, el, class_name),
            )

        for property_name in style_properties(el):
            yield CandidateOp(
                f"remove style {property_name} from {_describe(el)}",
                functools.partial(remove_style_property, el, property_name),
                force_lossless=is_stroke_property(property_name),
            )

        if is_svg_tag(el.tag, *GRADIENT_ELEMENTS):
            yield from _inline_gradient(doc, el)

        if is_svg_tag(el.tag, *UNWRAP_ELEMENTS) and parent is not None:
            yield CandidateOp(
                f"unwrap {_describe(el)}",
                functools.partial(doc.unwrap, el),
                backtrack=1,
            )


def candidate_ops(doc: SVGDocument) -> List[CandidateOp]:
    """Every edit worth trying on doc, in the order they should be tried.

    Children come before their parent's own attributes so that leaf cleanup
    happens first, and an element's removal is offered before anything inside
    it. The root element itself is never offered for removal.
    """
    return list(_cleaning_ops(doc, None))
