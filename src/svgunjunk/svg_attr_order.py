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

"""Put the root attributes of a cleaned svg back in their original order.

lxml always writes namespace declarations first. Restoring the input's order
keeps the diff against the original file minimal.

The scan is not a real XML parser, only good enough to reorder
attributes. It looks at the first "<svg" in the text, so a comment mentioning
"<svg" before the root confuses it, as does a quote character inside an
attribute value that is quoted with the same character.
"""

import re
from typing import List, NamedTuple, Sequence


_RE_ATTR = re.compile(r"""\s+([^\s<>&'"]+)\s*=\s*("|')[\s\S]*?\2""")


class PhysAttr(NamedTuple):
    name: str
    raw: str
    start: int
    end: int


def get_attrs(svg_code: str) -> List[PhysAttr]:
    attrs = []
    start = svg_code.find("<svg")
    if start == -1:
        return attrs

    pos = start + len("<svg")
    match = _RE_ATTR.match(svg_code, pos)
    while match is not None:
        attrs.append(PhysAttr(match.group(1), match.group(0), match.start(), match.end()))
        match = _RE_ATTR.match(svg_code, match.end())
    return attrs


def fix_attr_order(svg_code: str, original_attrs: Sequence[PhysAttr]) -> str:
    """Reorder the root attributes of svg_code to follow original_attrs.

    Attributes the original had come first, in the original order. Attributes
    new to svg_code follow in their current order.
    """
    new_attrs = get_attrs(svg_code)
    if not new_attrs:
        return svg_code
    slice_start = new_attrs[0].start
    slice_end = new_attrs[-1].end

    original_order = {}
    for idx, attr in enumerate(original_attrs):
        original_order.setdefault(attr.name, idx)

    def _sort_key(idx_attr):
        idx, attr = idx_attr
        if attr.name in original_order:
            return (0, original_order[attr.name])
        return (1, idx)

    ordered = [attr for _, attr in sorted(enumerate(new_attrs), key=_sort_key)]
    return (
        svg_code[:slice_start]
        + "".join(attr.raw for attr in ordered)
        + svg_code[slice_end:]
    )
