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

"""Placement of unit quads in world space and normalized device coordinates.

World space is centered on the screen with +y pointing up. A rectangle is
drawn as the unit quad with corners at (-0.5, -0.5) and (0.5, 0.5), scaled by
its instance size and moved to its instance offset.

Texture convention: texture rows are stored top row first, so any time local
quad coordinates are mapped into [0, 1]^2 for sampling, y is flipped with
`1 - y`. Every program in quadren samples through `quad_uv` or
`layers.sample_layer`, which both apply this flip.
"""

from flax import struct
import jax.numpy as jnp

# Corners of the unit quad, counter-clockwise from the bottom left.
QUAD_VERTICES = ((-0.5, -0.5), (0.5, -0.5), (0.5, 0.5), (-0.5, 0.5))


@struct.dataclass
class Screen(object):
  """Size of the render target in world units. Must be positive."""
  width: float
  height: float

  @property
  def half_extent(self):
    return jnp.array([self.width, self.height], dtype=jnp.float32) / 2.0


@struct.dataclass
class Instance(object):
  """Per-instance placement of one rectangle.

  `offset` is the rectangle center in world space and `size` its full width
  and height. Both may carry leading batch dimensions, i.e. [..., 2].
  """
  offset: jnp.ndarray
  size: jnp.ndarray

  @classmethod
  def create(cls, offset, size):
    return cls(
        offset=jnp.asarray(offset, dtype=jnp.float32),
        size=jnp.asarray(size, dtype=jnp.float32))


def world_position(vertex, instance: Instance) -> jnp.ndarray:
  """Maps a local quad vertex in [-0.5, 0.5]^2 to world space."""
  vertex = jnp.asarray(vertex, dtype=jnp.float32)
  return vertex * instance.size + instance.offset


def to_ndc(world, screen: Screen) -> jnp.ndarray:
  """Maps world-space points [..., 2] to normalized device coordinates."""
  world = jnp.asarray(world, dtype=jnp.float32)
  return world / screen.half_extent


def ndc_to_world(ndc, screen: Screen) -> jnp.ndarray:
  """Inverse of `to_ndc`."""
  ndc = jnp.asarray(ndc, dtype=jnp.float32)
  return ndc * screen.half_extent


def clip_position(vertex, instance: Instance, screen: Screen) -> jnp.ndarray:
  """Computes the homogeneous clip-space position (x, y, 0, 1) of a vertex."""
  ndc = to_ndc(world_position(vertex, instance), screen)
  zeros = jnp.zeros_like(ndc[..., :1])
  return jnp.concatenate([ndc, zeros, jnp.ones_like(zeros)], axis=-1)


def quad_uv(vertex, flip_y=True) -> jnp.ndarray:
  """Maps a local quad vertex to texture coordinates in [0, 1]^2.

  Args:
    vertex: a [..., 2] array of local quad coordinates in [-0.5, 0.5].
    flip_y: whether to flip v so that the top edge of the quad samples the
      first stored texture row. Leave enabled for textures loaded with
      `textures.load_texture`.

  Returns:
    a [..., 2] array of UV coordinates.
  """
  uv = jnp.asarray(vertex, dtype=jnp.float32) + 0.5
  if flip_y:
    uv = uv.at[..., 1].set(1.0 - uv[..., 1])
  return uv


def local_position(world, instance: Instance) -> jnp.ndarray:
  """Inverse of `world_position`; the local quad coordinate of a world point.

  Instances with a zero-sized axis give non-finite values on that axis.
  """
  world = jnp.asarray(world, dtype=jnp.float32)
  return (world - instance.offset) / instance.size


def quad_clip_positions(instance: Instance, screen: Screen) -> jnp.ndarray:
  """Returns the [..., 4, 4] clip-space corners of one or more instances."""
  vertices = jnp.array(QUAD_VERTICES, dtype=jnp.float32)
  offset = jnp.asarray(instance.offset)[..., jnp.newaxis, :]
  size = jnp.asarray(instance.size)[..., jnp.newaxis, :]
  return clip_position(vertices, Instance(offset=offset, size=size), screen)
