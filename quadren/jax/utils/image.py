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

"""Texture sampling functions."""

from quadren.jax import constants
import jax.numpy as jnp


def _check_image(image):
  image = jnp.asarray(image, dtype=jnp.float32)
  if image.ndim != 3:
    raise ValueError(
        f'Expected an image with shape [H, W, C] but got {image.shape}')
  return image


def _fetch(image, x, y, address_mode):
  """Reads texels at integer locations, resolving out-of-range indices.

  Args:
    image: a [H, W, C] array.
    x: an int32 array of column indices with shape [...].
    y: an int32 array of row indices with shape [...].
    address_mode: an AddressMode.

  Returns:
    a [..., C] array of texel values.
  """
  height, width = image.shape[0], image.shape[1]
  if address_mode == constants.AddressMode.REPEAT:
    return image[jnp.mod(y, height), jnp.mod(x, width)]

  texels = image[jnp.clip(y, 0, height - 1), jnp.clip(x, 0, width - 1)]
  if address_mode == constants.AddressMode.CLAMP_TO_BORDER:
    inside = (x >= 0) & (x < width) & (y >= 0) & (y < height)
    texels = jnp.where(inside[..., jnp.newaxis], texels, 0.0)
  return texels


def _lerp(a, b, t):
  # a + (b - a) * t reproduces a exactly when a == b.
  return a + (b - a) * t


def resample(image,
             locations,
             filter_mode=constants.FilterMode.LINEAR,
             address_mode=constants.AddressMode.CLAMP_TO_EDGE):
  """Resamples image data at pixel-space locations.

  The domain of the image is (0,0) to (width, height). Texel centers lie at
  half-integer coordinates: a sample at location (0.5, 0.5) takes the exact
  value of image[0, 0].

  Args:
    image: A [H, W, C] array of image data.
    locations: A [..., 2] array of floating point locations to sample. The
      coordinate order is 'xy', not 'ij'.
    filter_mode: a FilterMode.
    address_mode: an AddressMode.

  Returns:
    A [..., C] array of samples.

  Raises:
    ValueError: if the image or locations have bad shapes, or a mode is not
      recognized.
  """
  image = _check_image(image)
  locations = jnp.asarray(locations, dtype=jnp.float32)
  if locations.shape[-1] != 2:
    raise ValueError(
        f'Expected locations with shape [..., 2] but got {locations.shape}')
  if not isinstance(filter_mode, constants.FilterMode):
    raise ValueError(f'Unsupported filter mode: {filter_mode}')
  if not isinstance(address_mode, constants.AddressMode):
    raise ValueError(f'Unsupported address mode: {address_mode}')

  if filter_mode == constants.FilterMode.NEAREST:
    texel = jnp.floor(locations).astype(jnp.int32)
    return _fetch(image, texel[..., 0], texel[..., 1], address_mode)

  centered = locations - 0.5
  floor = jnp.floor(centered)
  weight = centered - floor
  x0 = floor[..., 0].astype(jnp.int32)
  y0 = floor[..., 1].astype(jnp.int32)
  wx = weight[..., 0:1]
  wy = weight[..., 1:2]

  top = _lerp(
      _fetch(image, x0, y0, address_mode),
      _fetch(image, x0 + 1, y0, address_mode), wx)
  bottom = _lerp(
      _fetch(image, x0, y0 + 1, address_mode),
      _fetch(image, x0 + 1, y0 + 1, address_mode), wx)
  return _lerp(top, bottom, wy)


def sample_texture(texture,
                   uv,
                   filter_mode=constants.FilterMode.LINEAR,
                   address_mode=constants.AddressMode.CLAMP_TO_EDGE):
  """Samples a texture at normalized texture coordinates.

  (0, 0) is the top-left corner of the first stored row and (1, 1) the
  bottom-right corner of the last. Callers flip v for quads whose y axis
  points up (see `placement.quad_uv`).

  Args:
    texture: a [H, W, C] array.
    uv: a [..., 2] array of texture coordinates.
    filter_mode: a FilterMode. Defaults to LINEAR.
    address_mode: an AddressMode. Defaults to CLAMP_TO_EDGE.

  Returns:
    a [..., C] array of samples.
  """
  texture = _check_image(texture)
  uv = jnp.asarray(uv, dtype=jnp.float32)
  size = jnp.array((texture.shape[1], texture.shape[0]), dtype=jnp.float32)
  return resample(texture, uv * size, filter_mode, address_mode)
