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

"""Greedy svg minimization.

Edits are tried one at a time against a fresh parse of the best svg so far
and kept only if the result looks the same. After every accepted edit the
candidate list is rebuilt from the new svg; a skip counter avoids retrying
edits that were already rejected.
"""

from absl import logging
import dataclasses
from typing import NamedTuple, Optional, Sequence
from svgunjunk.svg_attr_order import fix_attr_order, get_attrs
from svgunjunk.svg_compare import (
    ImageComparator,
    RenderError,
    RenderSession,
    SizeMismatchError,
    is_visually_same,
)
from svgunjunk.svg_doc import SVGDocument
from svgunjunk.svg_ops import candidate_ops


DEFAULT_MAX_ITERATIONS = 1000


@dataclasses.dataclass(frozen=True)
class Options:
    # How to scale the svg when rasterizing, 2 is "retina"
    scale: float = 2
    # Require every edit to be pixel identical. Lossless may leave seemingly
    # useless content in place because of antialiasing artifacts.
    lossless: bool = False
    max_iterations: int = DEFAULT_MAX_ITERATIONS


class UnjunkResult(NamedTuple):
    svg_code: str
    # False if max_iterations ran out before every candidate was tried
    converged: bool
    iterations: int


async def unjunk(
    svg_code: str,
    comparators: Sequence[ImageComparator],
    *,
    lossless: bool = False,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> UnjunkResult:
    """Remove everything from svg_code that doesn't change how it looks.

    Raises:
        ParseError if svg_code isn't a single root svg document.
    """
    skip_ops = 0
    for iteration in range(max_iterations):
        doc = SVGDocument.fromstring(svg_code)
        for op_number, op in enumerate(candidate_ops(doc)):
            if op_number < skip_ops:
                continue
            skip_ops = op_number + 1

            op.apply()
            new_svg_code = doc.tostring()
            if new_svg_code == svg_code:
                # Changed nothing, keep going with the same document
                continue

            try:
                accepted = await is_visually_same(
                    new_svg_code,
                    svg_code,
                    comparators,
                    lossless=lossless or op.force_lossless,
                )
            except RenderError as e:
                logging.debug("Rejected %s: %s", op.description, e)
                accepted = False
            except SizeMismatchError as e:
                logging.warning("Rejected %s: %s", op.description, e)
                accepted = False

            if accepted:
                logging.debug("Accepted %s", op.description)
                svg_code = new_svg_code
                skip_ops = int(max(op_number - op.backtrack, 0))
            else:
                logging.debug("Rejected %s", op.description)
            break
        else:
            return UnjunkResult(svg_code, converged=True, iterations=iteration + 1)

    logging.info("Bailing out after %d iterations", max_iterations)
    return UnjunkResult(svg_code, converged=False, iterations=max_iterations)


async def minimize(
    svg_code: str,
    options: Optional[Options] = None,
    comparators: Optional[Sequence[ImageComparator]] = None,
) -> str:
    """Returns the smallest svg found that looks like svg_code.

    If nothing smaller is found svg_code is returned unchanged.

    Raises:
        ParseError if svg_code isn't a single root svg document.
    """
    if options is None:
        options = Options()

    # Fail on bad input before spinning up any rendering
    SVGDocument.fromstring(svg_code)

    session = None
    if comparators is None:
        session = RenderSession()
        comparators = session.comparators(options.scale)
    try:
        result = await unjunk(
            svg_code,
            comparators,
            lossless=options.lossless,
            max_iterations=options.max_iterations,
        )
    finally:
        if session is not None:
            session.close()

    return finalize(svg_code, result.svg_code)


def finalize(original_svg_code: str, svg_code: str) -> str:
    """Restore the original root attribute order; never return something bigger."""
    svg_code = fix_attr_order(svg_code, get_attrs(original_svg_code))
    if len(svg_code.encode("utf-8")) >= len(original_svg_code.encode("utf-8")):
        return original_svg_code
    return svg_code
