# Copyright 2024 Gergely Bencsik
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#     http://www.apache.org/licenses/LICENSE-2.0
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import numpy as np

DEG2RAD = np.pi / 180
RAD2DEG = 180 / np.pi
PI = np.pi

# Path normalization thresholds, squared distances
# arcs shorter than this are dropped
DEGENERATE_ARC_SQ = 1e-14
# arcs shorter than this are recorded as straight lines
STRAIGHT_ARC_SQ = 1e-8

# |turn| below this is drawn as a line by the public pen adapter
STRAIGHT_TURN = 1e-4

# Conventions
# Internal paths use units where the circular pitch of the rack is 1,
# so the module is 1/PI and a gear of N teeth has pitch radius N/(2*PI).
# Angles of the internal pen protocol are in radians, positive turns rotate
# the +X axis toward +Y. The public Pen2D protocol uses degrees.


class GearConfigError(ValueError):
    """Invalid gear pair configuration, detected before any curve is generated."""


class GearGeometryError(RuntimeError):
    """The requested parameters have no valid tooth geometry."""
