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

"""Conversion of rendered images to 8-bit form and soft image comparison."""

from etils import epath
import numpy as np
from PIL import Image as PilImage


def get_pil_formatted_image(image, add_transparency=True):
  """Converts a [0,1] scaled numpy array containing an image to the PIL format.

  Elements are mapped to uint8s; values that map outside [0.0, 255.0] are
  clipped. Single-channel images are replicated to RGB. Images without alpha
  get an opaque alpha channel when add_transparency is enabled.

  Args:
    image: numpy array with shape [h, w], [h, w, 1], [h, w, 3], or [h, w, 4].
    add_transparency: boolean specifying whether to add an opaque alpha
      channel to input images that do not have transparency information.

  Raises:
    ValueError: If the function catches an invalid argument.

  Returns:
    C-contiguous uint8 numpy array with shape [h, w, 3] or [h, w, 4].
  """
  if not isinstance(image, np.ndarray):
    raise ValueError(
        f'Input image must be a numpy array, but has type {type(image)}')
  if image.ndim not in [2, 3]:
    raise ValueError(f'Image rank must be 2 or 3, but is {image.ndim}')
  if image.ndim == 2:
    image = np.expand_dims(image, axis=2)
  channel_count = image.shape[2]
  if channel_count not in [1, 3, 4]:
    raise ValueError(
        f'Image channel count must be in [1, 3, 4], but is {channel_count}')
  if channel_count == 1:
    image = np.tile(image, [1, 1, 3])
  if channel_count in [1, 3] and add_transparency:
    alpha_channel = np.ones(image.shape[:2] + (1,), dtype=np.float32)
    image = np.concatenate([image, alpha_channel], axis=2)
  return np.clip(255.0 * image, 0.0, 255.0).astype(np.uint8).copy(order='C')


def save_image(path, image):
  """Writes a [0,1] scaled RGBA or RGB image to `path` (format from suffix)."""
  pil_image = PilImage.fromarray(get_pil_formatted_image(np.asarray(image)))
  path = epath.Path(path)
  path.parent.mkdir(parents=True, exist_ok=True)
  suffix = path.suffix.lstrip('.').upper() or 'PNG'
  if suffix == 'JPG':
    suffix = 'JPEG'
  with path.open('wb') as f:
    pil_image.save(f, format=suffix)


def images_are_near(baseline_image,
                    result_image,
                    max_outlier_fraction=0.005,
                    pixel_error_threshold=0.04):
  """Compares two image arrays.

  The images are considered identical if no more than max_outlier_fraction of
  the pixels differ by more than pixel_error_threshold in any channel. Inputs
  are [0,1] scaled float images.

  Args:
    baseline_image: a numpy array containing the baseline image.
    result_image: a numpy array containing the result image.
    max_outlier_fraction: fraction of pixels that may vary by more than the
      error threshold. 0.005 means 0.5% of pixels.
    pixel_error_threshold: pixel values are considered to differ if their
      difference exceeds this amount.

  Returns:
    A (boolean, string) tuple where the first value is whether the images
    matched, and the second is a summary of the differences.
  """
  baseline_image = np.asarray(baseline_image, dtype=np.float64)
  result_image = np.asarray(result_image, dtype=np.float64)
  if baseline_image.shape != result_image.shape:
    return False, (f'Image shapes {baseline_image.shape} and '
                   f'{result_image.shape} do not match')

  outlier_channels = np.abs(baseline_image -
                            result_image) > pixel_error_threshold
  if baseline_image.ndim > 2:
    outlier_pixels = np.any(outlier_channels, axis=2)
  else:
    outlier_pixels = outlier_channels
  outlier_fraction = np.count_nonzero(outlier_pixels) / np.prod(
      baseline_image.shape[:2])
  images_match = outlier_fraction <= max_outlier_fraction
  message = (f' ({outlier_fraction:f} of pixels are outliers, maximum allowed '
             f'is {max_outlier_fraction:f}) ')
  return images_match, message


def expect_images_are_near(test,
                           baseline_image,
                           result_image,
                           max_outlier_fraction=0.005,
                           pixel_error_threshold=0.04):
  """A convenience wrapper around images_are_near that adds a test assertion."""
  images_match, message = images_are_near(baseline_image, result_image,
                                          max_outlier_fraction,
                                          pixel_error_threshold)
  test.assertTrue(images_match, msg=message)
