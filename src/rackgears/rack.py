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

import dataclasses
import numpy as np
from rackgears.defs import *
from rackgears.pens import PathFunc


@dataclasses.dataclass(frozen=True)
class RackParam:
    """Data class for the rack that generates a gear.

    Percentages are relative to the module.

    Attributes
    ----------
    contact_ratio : float
        Target (maximum) contact ratio, sets the working depth of the rack.
    pressure_angle : float
        Pressure angle in degrees.
    profile_shift : float
        Upward shift of the profile, in module %.
    balance_percent : float
        50 means upward and downward teeth are balanced, 0 makes upward teeth pointy.
    balance_abs_percent : float
        Amount to thicken upward teeth and narrow downward teeth by, in module %.
    top_clr_percent : float
        Additional extension of upward teeth, in module %.
    bot_clr_percent : float
        Additional extension of downward teeth, in module %.
    """

    contact_ratio: float = 1.5
    pressure_angle: float = 20.0
    profile_shift: float = 0.0
    balance_percent: float = 50.0
    balance_abs_percent: float = 0.0
    top_clr_percent: float = 0.0
    bot_clr_percent: float = 0.0


def make_rack(param: RackParam) -> PathFunc:
    """Make a path function that draws one pitch of a rack.

    The rack uses units where the circular pitch is 1 (module is 1/PI). The pitch
    line is the X axis, the upward tooth is centered on the Y axis. The path runs in
    the +X direction, from the middle of one bottom land to the middle of the next,
    as four straight segments.
    """
    sin_pa = np.sin(param.pressure_angle * DEG2RAD)
    cos_pa = np.cos(param.pressure_angle * DEG2RAD)
    tan_pa = sin_pa / cos_pa
    # working depth
    ah = param.contact_ratio * sin_pa * cos_pa
    cy = param.profile_shift / (100 * PI)
    miny = cy - ah / 2
    maxy = cy + ah / 2
    bkw = param.balance_abs_percent / (200 * PI)
    # width of the free land at balance 50
    freew = 0.5 - ah * tan_pa
    cx = -0.25 - freew * (param.balance_percent - 50) / 100
    maxy += param.top_clr_percent / (100 * PI)
    miny -= param.bot_clr_percent / (100 * PI)
    topx = (maxy - cy) * tan_pa + cx
    botx = (miny - cy) * tan_pa + cx

    def rack_path(pen, do_move=True):
        if do_move:
            pen.move_to(-1.0 - botx + bkw, miny)
        pen.arc_to(botx - bkw, miny, 0)
        pen.arc_to(topx - bkw, maxy, 0)
        pen.arc_to(-topx + bkw, maxy, 0)
        pen.arc_to(-botx + bkw, miny, 0)

    return rack_path
