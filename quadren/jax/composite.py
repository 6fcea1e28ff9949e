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

"""Alpha compositing functions for quadren.

Colors enter and leave these functions with straight (non-premultiplied)
alpha. Blending itself happens in premultiplied space.
"""

import jax.numpy as jnp

TRANSPARENT = (0.0, 0.0, 0.0, 0.0)


def premultiply(color: jnp.ndarray) -> jnp.ndarray:
  """Converts a [..., 4] straight-alpha color to premultiplied form."""
  alpha = color[..., 3:]
  return jnp.concatenate([color[..., :3] * alpha, alpha], axis=-1)


def unpremultiply(color: jnp.ndarray) -> jnp.ndarray:
  """Converts a [..., 4] premultiplied color to straight alpha.

  Colors with alpha <= 0 map to fully transparent black.

  Args:
    color: a [..., 4] array of premultiplied RGBA colors.

  Returns:
    a [..., 4] array of straight-alpha colors.
  """
  alpha = color[..., 3:]
  visible = alpha > 0.0
  # Keeps the untaken branch finite so gradients stay clean.
  safe_alpha = jnp.where(visible, alpha, 1.0)
  straight = jnp.concatenate([color[..., :3] / safe_alpha, alpha], axis=-1)
  return jnp.where(visible, straight, jnp.zeros_like(straight))


def over(bottom: jnp.ndarray, top: jnp.ndarray) -> jnp.ndarray:
  """Composites `top` over `bottom`.

  Both inputs and the output are [..., 4] straight-alpha RGBA arrays. When the
  combined alpha is zero the result is fully transparent black.

  Args:
    bottom: the color underneath.
    top: the color on top.

  Returns:
    a [..., 4] array of composited straight-alpha colors.
  """
  bottom = jnp.asarray(bottom, dtype=jnp.float32)
  top = jnp.asarray(top, dtype=jnp.float32)
  top_alpha = top[..., 3:]
  out_pm = premultiply(top) + premultiply(bottom) * (1.0 - top_alpha)
  return unpremultiply(out_pm)


def over_stack(color_layers: jnp.ndarray) -> jnp.ndarray:
  """Perform 'over' compositing for a stack of straight-alpha RGBA layers.

  Layers are in bottom-to-top order: layer 0 is composited first and ends up
  beneath every later layer.

  Args:
    color_layers: a [l, ..., 4] array of RGBA layers.

  Returns:
    a [..., 4] array of composited colors.
  """
  color_layers = jnp.asarray(color_layers, dtype=jnp.float32)
  output_color = jnp.zeros_like(color_layers[0, ...])
  for i in range(color_layers.shape[0]):
    output_color = over(output_color, color_layers[i, ...])
  return output_color
