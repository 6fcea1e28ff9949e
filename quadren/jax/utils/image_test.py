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

from absl.testing import absltest
from absl.testing import parameterized
import chex
from quadren.jax import constants
from quadren.jax.utils import image

import numpy as np


class ImageTest(chex.TestCase, parameterized.TestCase):

  @parameterized.parameters(constants.FilterMode.LINEAR,
                            constants.FilterMode.NEAREST)
  def test_resample_recovers_input_at_texel_centers(self, filter_mode):
    image_size = 16
    x, y = np.meshgrid(np.arange(image_size), np.arange(image_size))
    input_image = np.reshape(
        np.arange(3 * image_size**2, dtype=np.float32),
        (image_size, image_size, 3))
    samples = np.stack((x, y), axis=-1) + 0.5

    output_image = image.resample(input_image, samples, filter_mode)

    np.testing.assert_array_equal(input_image, output_image)

  def test_linear_interpolates_between_texels(self):
    input_image = np.array([[[0.0], [1.0]], [[2.0], [3.0]]], dtype=np.float32)
    output = image.resample(input_image, [[1.0, 0.5], [1.0, 1.0]])
    np.testing.assert_allclose(output, [[0.5], [1.5]])

  # Each row is [(x, y) sample location, expected value] for a 1x4 image
  # holding [1, 2, 3, 4].
  @parameterized.named_parameters(
      ('clamp_left', constants.AddressMode.CLAMP_TO_EDGE, (-3.0, 0.5), 1.0),
      ('clamp_right', constants.AddressMode.CLAMP_TO_EDGE, (9.0, 0.5), 4.0),
      ('repeat_right', constants.AddressMode.REPEAT, (4.5, 0.5), 1.0),
      ('repeat_left', constants.AddressMode.REPEAT, (-0.5, 0.5), 4.0),
      ('border_far', constants.AddressMode.CLAMP_TO_BORDER, (9.0, 0.5), 0.0),
      ('border_half', constants.AddressMode.CLAMP_TO_BORDER, (0.0, 0.5), 0.5),
      ('border_inside', constants.AddressMode.CLAMP_TO_BORDER, (2.5, 0.5),
       3.0),
  )
  def test_address_modes(self, address_mode, location, expected):
    input_image = np.array([[[1.0], [2.0], [3.0], [4.0]]], dtype=np.float32)
    output = image.resample(input_image, location,
                            constants.FilterMode.LINEAR, address_mode)
    np.testing.assert_allclose(output, [expected], atol=1e-6)

  def test_constant_texture_is_exact_everywhere(self):
    texture = np.tile(np.array([0.3, 0.7, 0.1, 0.9], dtype=np.float32),
                      (3, 5, 1))
    uv = np.random.default_rng(2).uniform(-0.5, 1.5, size=(100, 2))
    samples = image.sample_texture(texture, uv)
    np.testing.assert_array_equal(
        samples, np.broadcast_to(texture[0, 0], (100, 4)))

  @parameterized.named_parameters(
      ('top_left', (0.1, 0.1), 0.0),
      ('top_right', (0.9, 0.1), 1.0),
      ('bottom_left', (0.1, 0.9), 2.0),
      ('bottom_right', (0.9, 0.9), 3.0),
  )
  def test_sample_texture_uv_origin_is_first_row(self, uv, expected):
    texture = np.array([[[0.0], [1.0]], [[2.0], [3.0]]], dtype=np.float32)
    sample = image.sample_texture(texture, uv, constants.FilterMode.NEAREST)
    np.testing.assert_array_equal(sample, [expected])

  def test_bad_shapes_raise(self):
    with self.assertRaisesRegex(ValueError, 'Expected an image'):
      image.resample(np.zeros((4, 4)), (0.5, 0.5))
    with self.assertRaisesRegex(ValueError, 'Expected locations'):
      image.resample(np.zeros((4, 4, 1)), (0.5, 0.5, 0.5))

  def test_bad_mode_raises(self):
    with self.assertRaisesRegex(ValueError, 'Unsupported filter mode'):
      image.resample(np.zeros((4, 4, 1)), (0.5, 0.5), filter_mode='cubic')


if __name__ == '__main__':
  absltest.main()
