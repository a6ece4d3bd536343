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

from rackgears import *
import matplotlib.pyplot as plt
import numpy as np
import time
import logging

# These examples are meant to showcase the functionality of the library,
# and serve as manual testing templates for the developer.

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)


def spur_pair():
    return GearPairParam(gear_teeth=30, pinion_teeth=11, size=2, backlash_mod_percent=5)


def max_fillet_pair():
    return GearPairParam(
        gear_teeth=24,
        pinion_teeth=8,
        size=1.5,
        clearance_mod_percent=25,
        is_max_fillet=True,
        profile_shift_percent=30,
    )


def ring_and_pinion():
    return GearPairParam(
        gear_teeth=45,
        pinion_teeth=13,
        size_type=SizeType.CENTER_DISTANCE,
        size=40,
        is_internal_gear=True,
        is_max_fillet=True,
    )


def plot_pair(param, ax):
    start = time.time()
    result = create_gear_pair(param)
    logging.info(f"Gear pair generated in {time.time()-start:.5f} seconds")

    gear_rec = RecordingPen2D()
    result.gear(gear_rec)
    pinion_rec = RecordingPen2D()
    result.pinion(pinion_rec)
    gear_pts = gear_rec.path_points(0)
    pinion_pts = pinion_rec.path_points(0)

    # an external pinion faces the gear tooth on +X with a gap, an internal one with a tooth
    rot = 0.0 if param.is_internal_gear else PI + PI / param.pinion_teeth
    c = np.cos(rot)
    s = np.sin(rot)
    pinion_pts = pinion_pts @ np.array([[c, s], [-s, c]])
    pinion_pts[:, 0] += result.center_distance

    ax.plot(gear_pts[:, 0], gear_pts[:, 1])
    ax.plot(pinion_pts[:, 0], pinion_pts[:, 1])
    ax.axis("equal")


if __name__ == "__main__":
    for example in (spur_pair, max_fillet_pair, ring_and_pinion):
        plot_pair(example(), plt.figure().add_subplot())
    plt.show()
