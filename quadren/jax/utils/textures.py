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

"""Texture loading, preprocessing and caching.

All textures are float32 RGBA arrays in [0, 1] with shape [height, width, 4],
stored top row first.
"""

import io
from typing import Dict, Iterable, Tuple

from absl import logging
from etils import epath
import jax
import jax.numpy as jnp
import numpy as np
from PIL import Image as PilImage
from quadren.jax import constants
from quadren.jax.utils import image


def load_texture(texture_filename) -> np.ndarray:
  """Returns a texture image loaded from a file (float32 RGBA in [0,1])."""
  texture_bytes = epath.Path(texture_filename).read_bytes()
  pil_image = PilImage.open(io.BytesIO(texture_bytes)).convert('RGBA')
  return np.asarray(pil_image).astype(np.float32) / 255.0


def solid_texture(color, width=1, height=1) -> np.ndarray:
  """Returns a [height, width, 4] texture filled with a single RGBA color."""
  color = np.asarray(color, dtype=np.float32)
  if color.shape != (4,):
    raise ValueError(f'Expected an RGBA color but got shape {color.shape}')
  if width <= 0 or height <= 0:
    raise ValueError(
        f'Texture size must be positive but is {width}x{height}.')
  return np.tile(color, (height, width, 1))


def _grow(reached):
  """Dilates a [H, W] boolean mask by one pixel in the four axis directions."""
  padded = jnp.pad(reached, 1)
  return (reached | padded[:-2, 1:-1] | padded[2:, 1:-1] | padded[1:-1, :-2]
          | padded[1:-1, 2:])


@jax.jit
def _corner_connected(mask):
  """Marks the 4-connected regions of `mask` that touch an image corner."""
  seeds = jnp.zeros_like(mask)
  for row, col in ((0, 0), (0, -1), (-1, 0), (-1, -1)):
    seeds = seeds.at[row, col].set(mask[row, col])

  def cond(state):
    _, changed = state
    return changed

  def body(state):
    reached, _ = state
    grown = _grow(reached) & mask
    return grown, jnp.any(grown != reached)

  reached, _ = jax.lax.while_loop(cond, body, (seeds, jnp.array(True)))
  return reached


def remove_background(texture) -> np.ndarray:
  """Makes a black background transparent.

  Pixels that are exactly black and not fully transparent form a mask. Every
  4-connected region of that mask touching one of the four image corners is
  set to (0, 0, 0, 0). Black regions enclosed by other colors are kept.

  Args:
    texture: a [height, width, 4] RGBA texture.

  Returns:
    a [height, width, 4] float32 texture.
  """
  texture = np.asarray(texture, dtype=np.float32)
  if texture.ndim != 3 or texture.shape[-1] != 4:
    raise ValueError(
        f'Expected an RGBA texture with shape [H, W, 4] but got '
        f'{texture.shape}')
  if texture.shape[0] == 0 or texture.shape[1] == 0:
    return texture

  black = np.all(texture[..., :3] == 0.0, axis=-1) & (texture[..., 3] != 0.0)
  background = np.asarray(_corner_connected(jnp.asarray(black)))
  return np.where(background[..., np.newaxis], 0.0, texture).astype(np.float32)


def preprocess(texture, variant: constants.DecodeVariant) -> np.ndarray:
  if variant == constants.DecodeVariant.REMOVE_BACKGROUND:
    return remove_background(texture)
  return np.asarray(texture, dtype=np.float32)


def variant_for_slot(slot: constants.LayerSlot) -> constants.DecodeVariant:
  """Overlay slots drop their black background; the others load as-is."""
  if slot in (constants.LayerSlot.LAYER, constants.LayerSlot.LAYER2):
    return constants.DecodeVariant.REMOVE_BACKGROUND
  return constants.DecodeVariant.RAW


class TextureCache(object):
  """Memoizes decoded and preprocessed textures by (path, variant)."""

  def __init__(self):
    self._textures: Dict[Tuple[str, constants.DecodeVariant], np.ndarray] = {}

  def __len__(self):
    return len(self._textures)

  def __contains__(self, key):
    path, variant = key
    return (str(path), variant) in self._textures

  def get(self, path, variant=constants.DecodeVariant.RAW) -> np.ndarray:
    """Returns the texture for `path`, decoding it on a cache miss.

    Args:
      path: path of an image file readable by PIL.
      variant: the DecodeVariant to apply after decoding.

    Returns:
      a read-only [height, width, 4] float32 texture, shared between callers.

    Raises:
      OSError: if the file cannot be read or decoded.
    """
    key = (str(path), variant)
    texture = self._textures.get(key)
    if texture is None:
      if variant == constants.DecodeVariant.RAW:
        logging.debug('Decoding texture %s.', path)
        texture = load_texture(path)
      else:
        # Other variants are derived from the cached raw pixels.
        texture = preprocess(self.get(path), variant)
      texture.flags.writeable = False
      self._textures[key] = texture
    return texture

  def get_for_slot(self, path, slot: constants.LayerSlot) -> np.ndarray:
    return self.get(path, variant_for_slot(slot))

  def preload(self, paths: Iterable[str], slot: constants.LayerSlot) -> int:
    """Decodes `paths` into the cache, skipping files that fail to decode.

    Args:
      paths: image file paths.
      slot: the LayerSlot the images are meant for, which selects the variant.

    Returns:
      the number of textures available in the cache for `paths`.
    """
    loaded = 0
    for path in paths:
      try:
        self.get_for_slot(path, slot)
      except OSError as e:
        logging.warning('Skipping texture %s: %s', path, e)
        continue
      loaded += 1
    logging.info('Preloaded %d textures for slot %s.', loaded, slot.name)
    return loaded

  def clear(self):
    self._textures.clear()


def texture_map(uv_image,
                texture_image_or_filename,
                filter_mode=constants.FilterMode.LINEAR,
                address_mode=constants.AddressMode.CLAMP_TO_EDGE):
  """Applies a texture map to a UV image.

  Args:
    uv_image: a [height, width, 2] array of UV coordinates with range [0.0,
      1.0], already flipped to the texture's storage order.
    texture_image_or_filename: texture as returned by load_texture or a path to
      pass to load_texture.
    filter_mode: a FilterMode.
    address_mode: an AddressMode.

  Returns:
    a [height, width, channels] array of sampled values.
  """
  if isinstance(texture_image_or_filename, (str, epath.Path)):
    texture_image = load_texture(texture_image_or_filename)
  else:
    texture_image = texture_image_or_filename
  return image.sample_texture(texture_image, uv_image, filter_mode,
                              address_mode)
