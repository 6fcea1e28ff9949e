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

"""Multi-layer texture compositing.

Each layer places a texture on its own world-space rectangle. A world point is
shaded by sampling every layer that covers it and compositing the samples in
layer index order, layer 0 at the bottom.
"""

from typing import Optional, Sequence, Tuple

from flax import struct
from quadren.jax import composite
from quadren.jax import constants
from quadren.jax import placement
from quadren.jax.utils import image
import jax.numpy as jnp
import numpy as np


@struct.dataclass
class LayerRect(object):
  """World-space placement of a layer texture.

  `pos` is the center of the rectangle and `size` its full width and height.
  A rectangle with a non-positive size on either axis covers nothing.
  """
  pos: jnp.ndarray
  size: jnp.ndarray

  @classmethod
  def create(cls, pos, size):
    return cls(
        pos=jnp.asarray(pos, dtype=jnp.float32),
        size=jnp.asarray(size, dtype=jnp.float32))

  @classmethod
  def empty(cls):
    return cls.create((0.0, 0.0), (0.0, 0.0))


@struct.dataclass
class Layer(object):
  """A texture, where it is placed, and whether it is drawn at all."""
  texture: jnp.ndarray
  rect: LayerRect
  enabled: jnp.ndarray

  @classmethod
  def create(cls, texture, rect: LayerRect, enabled=True):
    """Creates a layer, adding an opaque alpha channel to RGB textures."""
    texture = jnp.asarray(texture, dtype=jnp.float32)
    if texture.ndim != 3 or texture.shape[-1] not in (3, 4):
      raise ValueError(
          f'Expected a [H, W, 3] or [H, W, 4] texture but got {texture.shape}')
    if texture.shape[-1] == 3:
      texture = jnp.pad(
          texture, ((0, 0), (0, 0), (0, 1)), constant_values=1.0)
    return cls(texture=texture, rect=rect, enabled=jnp.asarray(enabled, bool))

  @classmethod
  def disabled(cls):
    return cls.create(
        np.zeros((1, 1, 4), dtype=np.float32), LayerRect.empty(), False)


def sample_layer(world,
                 layer: Layer,
                 filter_mode=constants.FilterMode.LINEAR,
                 address_mode=constants.AddressMode.CLAMP_TO_EDGE):
  """Samples one layer at world-space points.

  Returns transparent black where the layer is disabled, where its rectangle
  is degenerate, or where the point falls outside the rectangle. Inside, the
  rectangle's extent maps onto the whole texture with the top edge reading the
  first stored row.

  Args:
    world: a [..., 2] array of world-space points.
    layer: the Layer to sample.
    filter_mode: a FilterMode for the texture lookup.
    address_mode: an AddressMode for the texture lookup.

  Returns:
    a [..., 4] array of straight-alpha colors.
  """
  world = jnp.asarray(world, dtype=jnp.float32)
  size = layer.rect.size
  has_area = (size[0] > 0.0) & (size[1] > 0.0)
  safe_size = jnp.where(size > 0.0, size, 1.0)

  local = (world - layer.rect.pos) / safe_size + 0.5
  inside = jnp.all((local >= 0.0) & (local <= 1.0), axis=-1)
  uv = jnp.stack([local[..., 0], 1.0 - local[..., 1]], axis=-1)
  color = image.sample_texture(layer.texture, uv, filter_mode, address_mode)

  keep = layer.enabled & has_area & inside
  return jnp.where(keep[..., jnp.newaxis], color, 0.0)


def composite_layers(world,
                     layers: Sequence[Layer],
                     filter_mode=constants.FilterMode.LINEAR,
                     address_mode=constants.AddressMode.CLAMP_TO_EDGE):
  """Composites layers at world-space points, layer 0 at the bottom.

  Args:
    world: a [..., 2] array of world-space points.
    layers: an ordered sequence of Layers.
    filter_mode: a FilterMode for the texture lookups.
    address_mode: an AddressMode for the texture lookups.

  Returns:
    a [..., 4] array of straight-alpha colors.
  """
  world = jnp.asarray(world, dtype=jnp.float32)
  output_color = jnp.zeros(world.shape[:-1] + (4,), dtype=jnp.float32)
  for layer in layers:
    output_color = composite.over(
        output_color, sample_layer(world, layer, filter_mode, address_mode))
  return output_color


def fit_rect(image_width,
             image_height,
             side=constants.VISIBLE_HEIGHT,
             center=None) -> LayerRect:
  """Scales an image uniformly so its longer side spans `side`.

  Args:
    image_width: width of the image in pixels.
    image_height: height of the image in pixels.
    side: length in world units of the square the image is fitted into.
    center: world-space center of the result. Defaults to the panel center.

  Returns:
    a LayerRect. Images with a zero dimension get an empty rectangle.
  """
  if center is None:
    center = constants.panel_center()
  if image_width <= 0 or image_height <= 0:
    return LayerRect.create(center, (0.0, 0.0))
  if image_width >= image_height:
    scale = side / image_width
  else:
    scale = side / image_height
  return LayerRect.create(center, (image_width * scale, image_height * scale))


@struct.dataclass
class LayerStack(object):
  """The four layer slots of a compositor, updated functionally.

  A slot is enabled only while it is visible and holds a texture. Immutable
  once created; the `with_*` methods return updated copies.
  """
  textures: Tuple[Optional[jnp.ndarray], ...]
  rects: Tuple[LayerRect, ...]
  visible: Tuple[bool, ...] = struct.field(pytree_node=False)

  def __post_init__(self):
    for name in ('textures', 'rects', 'visible'):
      count = len(getattr(self, name))
      if count != constants.NUM_LAYERS:
        raise ValueError(
            f'Expected {constants.NUM_LAYERS} {name} but found {count}')

  @classmethod
  def empty(cls):
    return cls(
        textures=(None,) * constants.NUM_LAYERS,
        rects=(LayerRect.empty(),) * constants.NUM_LAYERS,
        visible=(False,) * constants.NUM_LAYERS)

  def with_image(self, slot: constants.LayerSlot, texture,
                 rect: Optional[LayerRect] = None) -> 'LayerStack':
    """Installs a texture in a slot.

    Loading an image makes its slot visible, except for POOR, which keeps its
    visibility and is shown on demand with `with_visible`.

    Args:
      slot: the LayerSlot to fill.
      texture: a [H, W, 3] or [H, W, 4] texture.
      rect: where to place the texture. Defaults to fitting it to the panel.

    Returns:
      the updated LayerStack.
    """
    texture = Layer.create(texture, LayerRect.empty()).texture
    if rect is None:
      rect = fit_rect(texture.shape[1], texture.shape[0])
    textures = list(self.textures)
    rects = list(self.rects)
    visible = list(self.visible)
    textures[slot] = texture
    rects[slot] = rect
    if slot != constants.LayerSlot.POOR:
      visible[slot] = True
    return self.replace(
        textures=tuple(textures), rects=tuple(rects), visible=tuple(visible))

  def with_visible(self, slot: constants.LayerSlot,
                   visible: bool) -> 'LayerStack':
    flags = list(self.visible)
    flags[slot] = bool(visible)
    return self.replace(visible=tuple(flags))

  def is_enabled(self, slot: constants.LayerSlot) -> bool:
    return self.visible[slot] and self.textures[slot] is not None

  @property
  def enabled_flags(self) -> Tuple[bool, ...]:
    return tuple(
        self.is_enabled(slot) for slot in constants.LayerSlot)

  @property
  def any_enabled(self) -> bool:
    return any(self.enabled_flags)

  def layers(self) -> Tuple[Layer, ...]:
    """Returns the four Layers to composite. Disabled slots get empty rects."""
    output = []
    for slot in constants.LayerSlot:
      if self.is_enabled(slot):
        output.append(Layer.create(self.textures[slot], self.rects[slot]))
      else:
        output.append(Layer.disabled())
    return tuple(output)

  def bounding_instance(self, center=None) -> placement.Instance:
    """Returns the destination rectangle covering every enabled layer.

    The rectangle is centered at `center` (the panel center by default) and is
    as large on each axis as the largest enabled layer.
    """
    if center is None:
      center = constants.panel_center()
    size = np.zeros((2,), dtype=np.float32)
    for slot in constants.LayerSlot:
      if self.is_enabled(slot):
        size = np.maximum(size, np.asarray(self.rects[slot].size))
    return placement.Instance.create(center, size)
