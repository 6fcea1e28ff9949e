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

"""Tests for rectangle rasterization."""

from absl.testing import absltest
from absl.testing import parameterized
import chex
from quadren.jax import placement
from quadren.jax.internal import rasterize
import numpy as np


class RasterizeTest(chex.TestCase, parameterized.TestCase):

  def setUp(self):
    super().setUp()
    self.screen = placement.Screen(width=80.0, height=60.0)

  def test_pixel_centers(self):
    world = rasterize.pixel_world_positions(self.screen, 8, 6)
    self.assertEqual(world.shape, (6, 8, 2))
    np.testing.assert_allclose(world[0, 0], (-35.0, 25.0), atol=1e-5)
    np.testing.assert_allclose(world[5, 7], (35.0, -25.0), atol=1e-5)

  def test_full_screen_instance_covers_everything(self):
    instance = placement.Instance.create((0.0, 0.0), (80.0, 60.0))
    rasterized = rasterize.rasterize_instance(instance, self.screen, 8, 6)
    np.testing.assert_array_equal(rasterized.foreground_mask,
                                  np.ones((6, 8, 1)))

  def test_coverage_is_half_open(self):
    # Both edges pass through pixel centers: x = -35 is covered, x = 5 is not.
    instance = placement.Instance.create((-15.0, 0.0), (40.0, 60.0))
    rasterized = rasterize.rasterize_instance(instance, self.screen, 8, 6)
    covered_columns = np.nonzero(rasterized.foreground_mask[0, :, 0])[0]
    np.testing.assert_array_equal(covered_columns, [0, 1, 2, 3])

  @parameterized.named_parameters(('zero', (0.0, 60.0)),
                                  ('negative', (-80.0, 60.0)))
  def test_degenerate_instance_covers_nothing(self, size):
    instance = placement.Instance.create((0.0, 0.0), size)
    rasterized = rasterize.rasterize_instance(instance, self.screen, 8, 6)
    np.testing.assert_array_equal(rasterized.foreground_mask,
                                  np.zeros((6, 8, 1)))
    self.assertTrue(np.all(np.isfinite(rasterized.uv)))

  def test_uv_is_flipped(self):
    instance = placement.Instance.create((0.0, 0.0), (80.0, 60.0))
    rasterized = rasterize.rasterize_instance(instance, self.screen, 8, 6)
    np.testing.assert_allclose(rasterized.uv[0, 0], (1 / 16, 1 / 12),
                               atol=1e-6)
    np.testing.assert_allclose(rasterized.uv[5, 7], (15 / 16, 11 / 12),
                               atol=1e-6)

  def test_batched_instances(self):
    instances = placement.Instance.create([(0.0, 0.0), (20.0, 0.0)],
                                          [(80.0, 60.0), (40.0, 60.0)])
    rasterized = rasterize.rasterize_instance(instances, self.screen, 8, 6)
    self.assertTrue(rasterized.is_batched)
    self.assertEqual(rasterized.foreground_mask.shape, (2, 6, 8, 1))
    self.assertEqual(np.count_nonzero(rasterized.instance(1).foreground_mask),
                     6 * 4)

  def test_mismatched_instance_shapes_raise(self):
    instance = placement.Instance.create((0.0, 0.0), [(1.0, 1.0)])
    with self.assertRaisesRegex(ValueError, 'must both have shape'):
      rasterize.rasterize_instance(instance, self.screen, 8, 6)

  @parameterized.parameters((0, 6), (8, -1))
  def test_bad_image_size_raises(self, width, height):
    instance = placement.Instance.create((0.0, 0.0), (1.0, 1.0))
    with self.assertRaisesRegex(ValueError, 'must be > 0'):
      rasterize.rasterize_instance(instance, self.screen, width, height)


if __name__ == '__main__':
  absltest.main()
