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

"""Tests for quad placement transforms."""

from absl.testing import absltest
from absl.testing import parameterized
import chex
from quadren.jax import placement
import jax
import numpy as np


class PlacementTest(chex.TestCase, parameterized.TestCase):

  def setUp(self):
    super().setUp()
    self.screen = placement.Screen(width=800.0, height=600.0)
    self.instance = placement.Instance.create((100.0, -50.0), (200.0, 40.0))

  @parameterized.named_parameters(
      ('bottom_left', (-0.5, -0.5), (0.0, -70.0)),
      ('top_right', (0.5, 0.5), (200.0, -30.0)),
      ('center', (0.0, 0.0), (100.0, -50.0)),
  )
  def test_world_position(self, vertex, expected):
    world = placement.world_position(vertex, self.instance)
    np.testing.assert_allclose(world, expected)

  def test_to_ndc_divides_by_half_extent(self):
    ndc = placement.to_ndc((400.0, -150.0), self.screen)
    np.testing.assert_allclose(ndc, (1.0, -0.5))

  def test_ndc_to_world_inverts_to_ndc(self):
    world = np.array([[12.5, -37.0], [-400.0, 300.0]], dtype=np.float32)
    roundtrip = placement.ndc_to_world(
        placement.to_ndc(world, self.screen), self.screen)
    np.testing.assert_allclose(roundtrip, world, rtol=1e-6)

  def test_clip_position(self):
    clip = placement.clip_position((0.5, 0.5), self.instance, self.screen)
    np.testing.assert_allclose(clip, (0.5, -0.1, 0.0, 1.0), rtol=1e-6)

  def test_full_screen_quad_spans_ndc(self):
    instance = placement.Instance.create((0.0, 0.0), (800.0, 600.0))
    corners = placement.quad_clip_positions(instance, self.screen)
    np.testing.assert_allclose(
        corners,
        [[-1.0, -1.0, 0.0, 1.0], [1.0, -1.0, 0.0, 1.0], [1.0, 1.0, 0.0, 1.0],
         [-1.0, 1.0, 0.0, 1.0]])

  def test_batched_quad_clip_positions(self):
    instances = placement.Instance.create([(0.0, 0.0), (200.0, 150.0)],
                                          [(800.0, 600.0), (2.0, 2.0)])
    corners = placement.quad_clip_positions(instances, self.screen)
    self.assertEqual(corners.shape, (2, 4, 4))
    np.testing.assert_allclose(corners[1, 0], (0.4975, 0.49666667, 0.0, 1.0),
                               rtol=1e-5)

  @parameterized.named_parameters(
      ('flipped_top_left', (-0.5, 0.5), True, (0.0, 0.0)),
      ('flipped_bottom_right', (0.5, -0.5), True, (1.0, 1.0)),
      ('unflipped_top_left', (-0.5, 0.5), False, (0.0, 1.0)),
  )
  def test_quad_uv(self, vertex, flip_y, expected):
    np.testing.assert_allclose(placement.quad_uv(vertex, flip_y), expected)

  def test_local_position_inverts_world_position(self):
    vertex = np.array([0.25, -0.125], dtype=np.float32)
    world = placement.world_position(vertex, self.instance)
    np.testing.assert_allclose(
        placement.local_position(world, self.instance), vertex, atol=1e-6)

  def test_transform_is_vmappable(self):
    vertices = np.array(placement.QUAD_VERTICES, dtype=np.float32)
    clip = jax.vmap(
        lambda v: placement.clip_position(v, self.instance, self.screen))(
            vertices)
    self.assertEqual(clip.shape, (4, 4))


if __name__ == '__main__':
  absltest.main()
