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

"""Functions to rasterize rectangles into framebuffers."""

from quadren.jax import placement
from quadren.jax.internal import framebuffer as fb
import jax
import jax.numpy as jnp


def _check_image_size(image_width, image_height):
  if not image_width > 0:
    raise ValueError(f'image_width must be > 0 but is {image_width}.')
  if not image_height > 0:
    raise ValueError(f'image_height must be > 0 but is {image_height}.')


def pixel_ndc(image_width: int, image_height: int) -> jnp.ndarray:
  """Returns the [height, width, 2] NDC positions of the pixel centers.

  Row 0 is the top of the image, so y decreases with the row index.
  """
  _check_image_size(image_width, image_height)
  cols = (jnp.arange(image_width, dtype=jnp.float32) + 0.5) / image_width
  rows = (jnp.arange(image_height, dtype=jnp.float32) + 0.5) / image_height
  x, y = jnp.meshgrid(cols * 2.0 - 1.0, 1.0 - rows * 2.0)
  return jnp.stack([x, y], axis=-1)


def pixel_world_positions(screen: placement.Screen, image_width: int,
                          image_height: int) -> jnp.ndarray:
  """Returns the [height, width, 2] world positions of the pixel centers."""
  return placement.ndc_to_world(pixel_ndc(image_width, image_height), screen)


def _rasterize_single(offset, size, world):
  """Rasterizes one rectangle given pixel-center world positions."""
  half = size / 2.0
  covered = jnp.all((world >= offset - half) & (world < offset + half),
                    axis=-1)
  covered = covered & jnp.all(size > 0.0)

  safe_size = jnp.where(size > 0.0, size, 1.0)
  local = placement.local_position(
      world, placement.Instance(offset=offset, size=safe_size))
  return fb.Framebuffer(
      world_position=world,
      uv=placement.quad_uv(local),
      foreground_mask=jnp.expand_dims(covered.astype(jnp.float32), axis=-1))


def rasterize_instance(instance: placement.Instance, screen: placement.Screen,
                       image_width: int, image_height: int) -> fb.Framebuffer:
  """Rasterizes one or more rectangles onto a pixel grid covering the screen.

  A pixel is covered when its center lies in the half-open box
  [offset - size / 2, offset + size / 2) on both axes. Rectangles with a
  non-positive size cover nothing.

  Args:
    instance: an Instance with offset and size of shape [2] or [n, 2].
    screen: the Screen the pixel grid spans.
    image_width: int specifying the output width in pixels.
    image_height: int specifying the output height in pixels.

  Returns:
    A Framebuffer with [height, width, c] buffers, or [n, height, width, c]
    buffers for batched instances.

  Raises:
    ValueError: if an argument has an invalid value or shape.
  """
  offset = jnp.asarray(instance.offset, dtype=jnp.float32)
  size = jnp.asarray(instance.size, dtype=jnp.float32)
  if offset.shape != size.shape or offset.shape[-1:] != (2,):
    raise ValueError(
        f'Instance offset and size must both have shape [2] or [n, 2], but '
        f'found {offset.shape} and {size.shape}')
  if offset.ndim > 2:
    raise ValueError(
        f'Instances must have shape [2] or [n, 2], but found {offset.shape}')

  world = pixel_world_positions(screen, image_width, image_height)
  if offset.ndim == 1:
    return _rasterize_single(offset, size, world)
  return jax.vmap(_rasterize_single, in_axes=(0, 0, None))(offset, size, world)
