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

"""Constants and enums shared across quadren."""

import enum

# Number of texture layers a compositor invocation reads.
NUM_LAYERS = 4

# Side length of the square background panel, in world units.
VISIBLE_HEIGHT = 600.0
# Gap between the lane area and the background panel, in world units.
RIGHT_PANEL_GAP = 16.0


def panel_center():
  """Returns the default world-space center of the background panel."""
  return ((RIGHT_PANEL_GAP + VISIBLE_HEIGHT) / 2.0, 0.0)


class LayerSlot(enum.IntEnum):
  """Named layer indices. Lower values are composited beneath higher ones."""
  BGA = 0
  LAYER = 1
  LAYER2 = 2
  POOR = 3


class FilterMode(enum.Enum):
  NEAREST = 'nearest'
  LINEAR = 'linear'


class AddressMode(enum.Enum):
  """How texture samples outside [0, 1] are resolved."""
  CLAMP_TO_EDGE = 'clamp_to_edge'
  REPEAT = 'repeat'
  # Out-of-range samples read transparent black.
  CLAMP_TO_BORDER = 'clamp_to_border'


class DecodeVariant(enum.Enum):
  """Preprocessing applied to a decoded texture before it is cached."""
  RAW = 'raw'
  REMOVE_BACKGROUND = 'remove_background'
