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

"""Storage classes for framebuffers and related data."""

from flax import struct
import jax
import jax.numpy as jnp


@struct.dataclass
class Framebuffer(object):
  """Per-pixel values produced by rasterizing rectangles, for deferred shading.

  Framebuffers have [height, width, channels] dimensions, optionally with a
  leading instance dimension: [num_instances, height, width, channels].

  Immutable once created.
  """
  # World-space position of each pixel center.
  world_position: jnp.ndarray
  # Texture coordinates of each pixel center, v flipped to storage order.
  uv: jnp.ndarray
  # A mask of the pixels covered by the rectangle. 1 if covered, 0 if not.
  foreground_mask: jnp.ndarray

  def __post_init__(self):
    values = [self.world_position, self.uv, self.foreground_mask]

    # JAX may rebuild the dataclass with placeholder leaves during tracing;
    # those have no shape, so skip the check.
    try:
      shapes = [v.shape for v in values]
    except AttributeError:
      return

    try:
      for i in range(1, len(shapes)):
        if tuple(shapes[0][:-1]) != tuple(shapes[i][:-1]):
          raise ValueError(
              f'Expected all input shapes to match (up to channels), '
              f'but found {shapes}')
    except jax.errors.ConcretizationTypeError:
      pass

  @property
  def is_batched(self):
    return self.foreground_mask.ndim == 4

  @property
  def num_instances(self):
    return self.foreground_mask.shape[0] if self.is_batched else 1

  @property
  def height(self):
    return self.foreground_mask.shape[-3]

  @property
  def width(self):
    return self.foreground_mask.shape[-2]

  @property
  def pixel_count(self):
    return self.num_instances * self.height * self.width

  def instance(self, index):
    """Slices at the given instance index, returning an unbatched Framebuffer."""
    if not self.is_batched:
      if index > 0:
        raise ValueError(
            f'Invalid instance index {index} for unbatched Framebuffer.')
      return self

    return Framebuffer(
        world_position=self.world_position[index, ...],
        uv=self.uv[index, ...],
        foreground_mask=self.foreground_mask[index, ...])
