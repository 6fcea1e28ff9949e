# Copyright 2024 The quadren Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

r"""Composites background layer images into a single PNG.

Example:
  python -m quadren.tools.compose_layers \
    --bga=background.png --layer=overlay.bmp --output=/tmp/frame.png
"""

from typing import Sequence

from absl import app
from absl import flags
from absl import logging
from quadren.common import compare_images
from quadren.jax import constants
from quadren.jax import layers
from quadren.jax import placement
from quadren.jax import render
from quadren.jax.utils import textures

_BGA = flags.DEFINE_string('bga', None, 'Image for the base BGA slot.')
_LAYER = flags.DEFINE_string('layer', None, 'Image for the LAYER slot.')
_LAYER2 = flags.DEFINE_string('layer2', None, 'Image for the LAYER2 slot.')
_POOR = flags.DEFINE_string('poor', None, 'Image for the POOR slot.')
_SHOW_POOR = flags.DEFINE_bool(
    'show_poor', False, 'Whether the POOR slot is visible.')
_OUTPUT = flags.DEFINE_string('output', None, 'Output image path.')
_WIDTH = flags.DEFINE_integer(
    'width', int(constants.VISIBLE_HEIGHT), 'Output width in pixels.')
_HEIGHT = flags.DEFINE_integer(
    'height', int(constants.VISIBLE_HEIGHT), 'Output height in pixels.')
_FILTER = flags.DEFINE_enum_class(
    'filter', constants.FilterMode.LINEAR, constants.FilterMode,
    'Texture filter mode.')

flags.mark_flag_as_required('output')


def build_stack(paths_by_slot, show_poor, cache=None) -> layers.LayerStack:
  """Loads images into a LayerStack, each fitted to the panel origin.

  Args:
    paths_by_slot: a mapping from LayerSlot to image path (or None).
    show_poor: whether the POOR slot is visible.
    cache: an optional TextureCache to decode through.

  Returns:
    a LayerStack.
  """
  cache = cache or textures.TextureCache()
  stack = layers.LayerStack.empty()
  for slot in constants.LayerSlot:
    path = paths_by_slot.get(slot)
    if not path:
      continue
    texture = cache.get_for_slot(path, slot)
    rect = layers.fit_rect(texture.shape[1], texture.shape[0],
                           center=(0.0, 0.0))
    stack = stack.with_image(slot, texture, rect)
    logging.info('Loaded %s into slot %s (%dx%d).', path, slot.name,
                 texture.shape[1], texture.shape[0])
  return stack.with_visible(constants.LayerSlot.POOR, show_poor)


def compose(paths_by_slot,
            output_path,
            width,
            height,
            show_poor=False,
            filter_mode=constants.FilterMode.LINEAR):
  """Composites the images in `paths_by_slot` and writes `output_path`.

  The panel spans the full output width; its height follows the output
  aspect ratio.

  Args:
    paths_by_slot: a mapping from LayerSlot to image path (or None).
    output_path: where to write the composited image.
    width: output width in pixels.
    height: output height in pixels.
    show_poor: whether the POOR slot is visible.
    filter_mode: a FilterMode for the texture lookups.

  Returns:
    the [height, width, 4] composited image.
  """
  stack = build_stack(paths_by_slot, show_poor)
  if not stack.any_enabled:
    logging.warning('No visible layers; writing a transparent image.')

  screen = placement.Screen(
      width=constants.VISIBLE_HEIGHT,
      height=constants.VISIBLE_HEIGHT * height / width)
  rendered = render.render_layers(
      stack, screen, width, height, center=(0.0, 0.0), filter_mode=filter_mode)
  compare_images.save_image(output_path, rendered)
  logging.info('Wrote %s.', output_path)
  return rendered


def main(argv: Sequence[str]) -> None:
  if len(argv) > 1:
    raise app.UsageError('Too many command-line arguments.')

  compose(
      {
          constants.LayerSlot.BGA: _BGA.value,
          constants.LayerSlot.LAYER: _LAYER.value,
          constants.LayerSlot.LAYER2: _LAYER2.value,
          constants.LayerSlot.POOR: _POOR.value,
      },
      _OUTPUT.value,
      _WIDTH.value,
      _HEIGHT.value,
      show_poor=_SHOW_POOR.value,
      filter_mode=_FILTER.value)


if __name__ == '__main__':
  app.run(main)
