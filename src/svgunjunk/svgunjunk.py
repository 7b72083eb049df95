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

"""Remove junk from svg files, in place.

Usage:
svgunjunk.py [--lossless] [--parallel N] [--scale S] icon1.svg icon2.svg ...
<each file is overwritten only if the result is smaller>
"""
from absl import app
from absl import flags
from absl import logging
import asyncio
import sys
from svgunjunk.runner import SvgUnjunk


FLAGS = flags.FLAGS


flags.DEFINE_bool("lossless", False, "Lossless transformations (default is near-lossless)")
flags.DEFINE_integer(
    "parallel", 0, "Max parallel processings (default is # of CPUs)", lower_bound=0
)
flags.DEFINE_float("scale", 2, "How to scale svg when rasterizing")


async def _run_for_file(svg_unjunk: SvgUnjunk, filename: str) -> bool:
    try:
        with open(filename, encoding="utf-8") as f:
            input_svg = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logging.error("Could not read file %s: %s", filename, e)
        return False

    try:
        output_svg = await svg_unjunk.process(
            input_svg, scale=FLAGS.scale, lossless=FLAGS.lossless
        )
    except ValueError as e:
        logging.error("Could not process %s: %s", filename, e)
        return False
    except Exception:
        # one broken file must not take the others down
        logging.exception("Unexpected error processing %s", filename)
        return False

    size_before = len(input_svg.encode("utf-8"))
    size_after = len(output_svg.encode("utf-8"))
    if size_after >= size_before:
        return True

    try:
        with open(filename, "w", encoding="utf-8") as f:
            f.write(output_svg)
    except OSError as e:
        logging.error("Could not write file %s: %s", filename, e)
        return False
    print(f"{filename}: {size_before} -> {size_after}")
    return True


async def _bulk_overwrite(filenames) -> bool:
    svg_unjunk = SvgUnjunk(parallel=FLAGS.parallel)
    try:
        results = await asyncio.gather(
            *(_run_for_file(svg_unjunk, filename) for filename in filenames)
        )
    finally:
        svg_unjunk.close()
    logging.info(
        "Processed %d files, %d failed", len(results), results.count(False)
    )
    return all(results)


def _run(argv):
    filenames = argv[1:]
    if not filenames:
        if sys.stderr.isatty():
            sys.stderr.write("No files to process. Run --help for help.\n")
        return 0

    if not asyncio.run(_bulk_overwrite(filenames)):
        return 1
    return 0


def main(argv=None):
    # We don't seem to be __main__ when run as cli tool installed by setuptools
    app.run(_run, argv=argv)


if __name__ == "__main__":
    main()
