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

"""Decide whether two svgs look the same by rasterizing them."""

import asyncio
from absl import logging
from concurrent.futures import Executor, ThreadPoolExecutor
import io
import numpy as np
from PIL import Image
from typing import Dict, NamedTuple, Optional, Sequence, Tuple
from svgunjunk.svg_doc import SVGDocument, set_style_properties, style_properties


# Scaling up 2x gives 4x the pixels. A defect along edges grows ~2x, a defect
# over an area grows ~4x; anything at or above this ratio is an area defect.
_AREA_DEFECT_RATIO = 2 ** 1.5


class RenderError(Exception):
    """The renderer could not rasterize an svg."""


class SizeMismatchError(ValueError):
    """Two rasterizations with different pixel dimensions were compared."""


class ComparisonPolicy(NamedTuple):
    """Defaults to paint under when the svg doesn't set its own.

    Rendering under more than one policy unmasks attributes whose effect is
    hidden by a coincidence with a default color, e.g. a white fill on the
    default white page.
    """

    name: str
    background: str
    fill: Optional[str] = None
    color: Optional[str] = None


DEFAULT_POLICY = ComparisonPolicy("default", background="#fff")
RECOLORED_POLICY = ComparisonPolicy(
    "recolored", background="#000", fill="#f0f", color="#ff0"
)
COMPARISON_POLICIES = (DEFAULT_POLICY, RECOLORED_POLICY)


def apply_policy(svg_code: str, policy: ComparisonPolicy) -> Tuple[str, str]:
    """Returns svg_code with the policy defaults applied and the page background."""
    doc = SVGDocument.fromstring(svg_code)
    root = doc.svg_root
    properties = style_properties(root)

    background = (
        properties.get("background")
        or properties.get("background-color")
        or policy.background
    )
    if (
        policy.fill is not None
        and not (properties.get("fill") or root.attrib.get("fill") or "").strip()
    ):
        properties["fill"] = policy.fill
    if policy.color is not None and not properties.get("color"):
        properties["color"] = policy.color

    set_style_properties(root, properties)
    return doc.tostring(), background


def rasterize(svg_code: str, scale: float, background: str) -> np.ndarray:
    """Render svg to an (height, width, 3) array of RGB values."""
    import cairosvg

    try:
        png_data = cairosvg.svg2png(
            bytestring=svg_code.encode("utf-8"),
            scale=scale,
            background_color=background,
        )
        image = Image.open(io.BytesIO(png_data)).convert("RGB")
    except Exception as e:
        raise RenderError(f"Unable to render svg: {e}") from e
    return np.asarray(image, dtype=np.int32)


def compare_image_data(image_a: np.ndarray, image_b: np.ndarray) -> float:
    """Sum over pixels of the euclidean distance between RGB values."""
    if image_a.shape != image_b.shape:
        raise SizeMismatchError(
            f"Images with different sizes are not comparable, "
            f"{image_a.shape} vs {image_b.shape}"
        )
    diff = (image_a - image_b).astype(np.float64)
    return float(np.sqrt(np.sum(diff * diff, axis=-1)).sum())


class SvgRasterizer:
    """Rasterizations of one svg under one policy, cached by scale."""

    def __init__(self, svg_code: str, policy: ComparisonPolicy):
        self._svg_code = svg_code
        self._policy = policy
        self._prepared: Optional[Tuple[str, str]] = None
        self._image_data_cache: Dict[float, np.ndarray] = {}

    def image_data(self, scale: float) -> np.ndarray:
        image_data = self._image_data_cache.get(scale)
        if image_data is None:
            if self._prepared is None:
                self._prepared = apply_policy(self._svg_code, self._policy)
            svg_code, background = self._prepared
            image_data = rasterize(svg_code, scale, background)
            self._image_data_cache[scale] = image_data
        return image_data


class ImageComparator:
    """Scores the visual difference of two svgs under one policy.

    Rasterization runs in executor; pass a single worker executor to have the
    comparator render one image at a time.
    """

    def __init__(
        self,
        policy: ComparisonPolicy,
        base_scale: float,
        executor: Optional[Executor] = None,
    ):
        self.policy = policy
        self._base_scale = base_scale
        self._executor = executor
        self._rasterizer_cache: Dict[str, SvgRasterizer] = {}

    def _rasterizer(self, svg_code: str) -> SvgRasterizer:
        rasterizer = self._rasterizer_cache.get(svg_code)
        if rasterizer is None:
            rasterizer = SvgRasterizer(svg_code, self.policy)
        return rasterizer

    async def compare(self, svg_code_a: str, svg_code_b: str, scale: float) -> float:
        """Zero if the images are identical, positive if not."""
        rasterizer_a = self._rasterizer(svg_code_a)
        rasterizer_b = self._rasterizer(svg_code_b)

        loop = asyncio.get_running_loop()
        image_a, image_b = await asyncio.gather(
            loop.run_in_executor(
                self._executor, rasterizer_a.image_data, scale * self._base_scale
            ),
            loop.run_in_executor(
                self._executor, rasterizer_b.image_data, scale * self._base_scale
            ),
        )

        # Only keep the last pair so the cache doesn't fill up with stale svgs
        self._rasterizer_cache = {svg_code_a: rasterizer_a, svg_code_b: rasterizer_b}

        return compare_image_data(image_a, image_b)


class RenderSession:
    """A rendering worker that handles one comparison at a time.

    Comparators are kept per scale so consecutive comparisons of a
    minimization run reuse the rasterization of the last svg.
    """

    def __init__(self):
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="svgunjunk-render"
        )
        self._comparators: Dict[float, Tuple[ImageComparator, ...]] = {}
        self.closed = False

    def comparators(self, base_scale: float) -> Tuple[ImageComparator, ...]:
        if self.closed:
            raise ValueError("RenderSession is closed")
        if base_scale not in self._comparators:
            self._comparators[base_scale] = tuple(
                ImageComparator(policy, base_scale, self._executor)
                for policy in COMPARISON_POLICIES
            )
        return self._comparators[base_scale]

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._comparators.clear()
        self._executor.shutdown(wait=False)


async def is_visually_same(
    svg_code_a: str,
    svg_code_b: str,
    comparators: Sequence[ImageComparator],
    lossless: bool = False,
) -> bool:
    """True if the svgs look the same under every comparator.

    A comparator passes when the 1x images are identical. Otherwise, unless
    lossless, it renders again at 2x and passes when the defect grows like an
    edge (antialiasing) rather than like an area.
    """
    for comparator in comparators:
        name = getattr(getattr(comparator, "policy", None), "name", "comparator")
        defect_score_1x = await comparator.compare(svg_code_a, svg_code_b, 1)
        if defect_score_1x <= 0:
            continue
        if lossless:
            logging.debug("[%s] Not lossless, defect score is %s", name, defect_score_1x)
            return False
        defect_score_2x = await comparator.compare(svg_code_a, svg_code_b, 2)
        defect_scale = defect_score_2x / defect_score_1x
        if defect_scale >= _AREA_DEFECT_RATIO:
            logging.debug("[%s] Area defect, scales as %s", name, defect_scale)
            return False
    return True
