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

"""Main entry points for the quadren renderer.

Every program rasterizes its rectangles into a Framebuffer, shades each
covered pixel independently and returns a [height, width, 4] straight-alpha
image. Uncovered pixels are transparent black.
"""

from typing import Sequence, Union

from absl import logging
from quadren.jax import composite
from quadren.jax import constants
from quadren.jax import layers as layers_lib
from quadren.jax import placement
from quadren.jax.internal import rasterize
from quadren.jax.utils import image
import jax
import jax.numpy as jnp


def _mask_colors(colors, foreground_mask):
  return jnp.where(foreground_mask > 0.0, colors, 0.0)


def render_solid_rects(instances: placement.Instance,
                       colors: jnp.ndarray,
                       screen: placement.Screen,
                       image_width: int,
                       image_height: int) -> jnp.ndarray:
  """Renders solid-color rectangles, later instances drawn over earlier ones.

  Args:
    instances: an Instance with offsets and sizes of shape [n, 2].
    colors: a [n, 4] array of straight-alpha RGBA colors, one per instance.
    screen: the Screen the image spans.
    image_width: int specifying desired output image width in pixels.
    image_height: int specifying desired output image height in pixels.

  Returns:
    a [image_height, image_width, 4] array of colors.

  Raises:
    ValueError: if the colors do not match the instances.
  """
  colors = jnp.asarray(colors, dtype=jnp.float32)
  offsets = jnp.asarray(instances.offset)
  if offsets.ndim != 2 or colors.shape != (offsets.shape[0], 4):
    raise ValueError(
        f'Expected [n, 2] instances with [n, 4] colors, but found '
        f'{offsets.shape} and {colors.shape}')

  rasterized = rasterize.rasterize_instance(instances, screen, image_width,
                                            image_height)
  shaded = _mask_colors(colors[:, jnp.newaxis, jnp.newaxis, :],
                        rasterized.foreground_mask)
  return composite.over_stack(shaded)


def render_textured_rect(
    instance: placement.Instance,
    texture: jnp.ndarray,
    screen: placement.Screen,
    image_width: int,
    image_height: int,
    filter_mode=constants.FilterMode.LINEAR,
    address_mode=constants.AddressMode.CLAMP_TO_EDGE) -> jnp.ndarray:
  """Renders one rectangle with a texture stretched across it.

  Args:
    instance: an Instance with offset and size of shape [2].
    texture: a [H, W, 3] or [H, W, 4] texture stored top row first.
    screen: the Screen the image spans.
    image_width: int specifying desired output image width in pixels.
    image_height: int specifying desired output image height in pixels.
    filter_mode: a FilterMode for the texture lookup.
    address_mode: an AddressMode for the texture lookup.

  Returns:
    a [image_height, image_width, 4] array of colors.
  """
  texture = layers_lib.Layer.create(texture, layers_lib.LayerRect.empty())
  rasterized = rasterize.rasterize_instance(instance, screen, image_width,
                                            image_height)
  colors = image.sample_texture(texture.texture, rasterized.uv, filter_mode,
                                address_mode)
  return _mask_colors(colors, rasterized.foreground_mask)


def render_layers(
    layers: Union[layers_lib.LayerStack, Sequence[layers_lib.Layer]],
    screen: placement.Screen,
    image_width: int,
    image_height: int,
    instance: placement.Instance = None,
    center=None,
    filter_mode=constants.FilterMode.LINEAR,
    address_mode=constants.AddressMode.CLAMP_TO_EDGE) -> jnp.ndarray:
  """Composites four texture layers onto one destination rectangle.

  The destination rectangle is rasterized, then every covered pixel is shaded
  independently by `layers.composite_layers` at its world-space position.

  Args:
    layers: a LayerStack, or a sequence of exactly four Layers in bottom to
      top order.
    screen: the Screen the image spans.
    image_width: int specifying desired output image width in pixels.
    image_height: int specifying desired output image height in pixels.
    instance: the destination rectangle. Defaults to the bounding instance of
      the LayerStack; required when `layers` is a sequence.
    center: center of the default destination rectangle. Defaults to the panel
      center.
    filter_mode: a FilterMode for the texture lookups.
    address_mode: an AddressMode for the texture lookups.

  Returns:
    a [image_height, image_width, 4] array of colors.

  Raises:
    ValueError: if the layer count is wrong or no destination is given.
  """
  if isinstance(layers, layers_lib.LayerStack):
    if not layers.any_enabled:
      logging.debug('No enabled layers; skipping layer composite.')
      return jnp.zeros((image_height, image_width, 4), dtype=jnp.float32)
    if instance is None:
      instance = layers.bounding_instance(center)
    layers = layers.layers()
  else:
    layers = tuple(layers)
    if instance is None:
      raise ValueError('A destination instance is required for raw layers.')

  if len(layers) != constants.NUM_LAYERS:
    raise ValueError(
        f'Expected {constants.NUM_LAYERS} layers but found {len(layers)}')

  rasterized = rasterize.rasterize_instance(instance, screen, image_width,
                                            image_height)

  def shade_pixel(world):
    return layers_lib.composite_layers(world, layers, filter_mode,
                                       address_mode)

  flat_world = jnp.reshape(rasterized.world_position, (-1, 2))
  colors = jax.vmap(shade_pixel)(flat_world)
  colors = jnp.reshape(colors, (image_height, image_width, 4))
  return _mask_colors(colors, rasterized.foreground_mask)


def composite_onto(target: jnp.ndarray, rendered: jnp.ndarray) -> jnp.ndarray:
  """Draws a rendered image over an existing color target."""
  return composite.over(target, rendered)
