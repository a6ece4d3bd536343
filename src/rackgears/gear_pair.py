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
import logging
import time
from enum import Enum
import numpy as np
from rackgears.defs import *
from rackgears.pens import Pen, PathFunc, RecordingPen, LastPointCapturePen
from rackgears.xform import XForm
from rackgears.rack import RackParam, make_rack
from rackgears.tooth_cutter import ToothCutter
from rackgears.fillet import apply_max_tooth_fillet, apply_internal_tooth_fillet
from rackgears.sketch import Pen2D, Sketch

DEFAULT_CLEARANCE_PERCENT = 15.0
DEFAULT_BACKLASH_PERCENT = 0.0
DEFAULT_BALANCE_PERCENT = 50.0
DEFAULT_PRESSURE_ANGLE = 20.0
DEFAULT_CONTACT_RATIO = 1.5
DEFAULT_PROFILE_SHIFT_PERCENT = 0.0
DEFAULT_IS_INTERNAL = False
DEFAULT_MAX_FILLET = False
DEFAULT_FACE_TOL = 0.05
DEFAULT_FILLET_TOL = 0.5


class SizeType(str, Enum):
    """How the size of a gear pair is given."""

    MODULE = "mod"
    DIAMETRAL_PITCH = "diaPitch"
    CENTER_DISTANCE = "centerDist"


DEFAULT_SIZE_TYPE = SizeType.MODULE


@dataclasses.dataclass(frozen=True)
class GearPairParam:
    """Data class for the parameters of a gear pair.

    Percentages are relative to the module.

    Attributes
    ----------
    gear_teeth : int
        Number of teeth of the gear (the ring, for internal gearing).
    pinion_teeth : int
        Number of teeth of the pinion.
    clearance_mod_percent : float
        Root clearance of both members.
    backlash_mod_percent : float
        Total backlash, split evenly between the two members.
    balance_percent : float
        Tooth thickness balance between pinion and gear, 50 is even.
    pressure_angle : float
        Pressure angle in degrees.
    target_contact_ratio : float
        Contact ratio the working depth is designed for.
    profile_shift_percent : float
        Profile shift, positive shifts the pinion outward and the gear inward.
    is_internal_gear : bool
        Make the gear a ring with teeth on the inside.
    is_max_fillet : bool
        Replace root fillets with the largest non-interfering ones.
    face_tolerance_mod_percent : float
        Tessellation tolerance of tooth faces.
    fillet_tolerance_mod_percent : float
        Tessellation tolerance of root fillets.
    size_type : SizeType or str
        Interpretation of `size`: module, diametral pitch or center distance.
    size : float
        Size of the pair, in output units.
    """

    gear_teeth: int
    pinion_teeth: int
    clearance_mod_percent: float = DEFAULT_CLEARANCE_PERCENT
    backlash_mod_percent: float = DEFAULT_BACKLASH_PERCENT
    balance_percent: float = DEFAULT_BALANCE_PERCENT
    pressure_angle: float = DEFAULT_PRESSURE_ANGLE
    target_contact_ratio: float = DEFAULT_CONTACT_RATIO
    profile_shift_percent: float = DEFAULT_PROFILE_SHIFT_PERCENT
    is_internal_gear: bool = DEFAULT_IS_INTERNAL
    is_max_fillet: bool = DEFAULT_MAX_FILLET
    face_tolerance_mod_percent: float = DEFAULT_FACE_TOL
    fillet_tolerance_mod_percent: float = DEFAULT_FILLET_TOL
    size_type: SizeType = DEFAULT_SIZE_TYPE
    size: float = 1.0


@dataclasses.dataclass(frozen=True)
class GearPairResult:
    """Sketches and dimensions of a generated gear pair.

    Both sketches draw a single closed outline centered on the origin, with a tooth
    centered on the +X axis.
    """

    gear: Sketch
    pinion: Sketch
    gear_pitch_diameter: float
    pinion_pitch_diameter: float
    gear_arcs_per_tooth: int
    pinion_arcs_per_tooth: int
    center_distance: float


class GearCutterPenAdapter(Pen):
    """Feeds internal pen calls to a Pen2D, with turns converted to degrees."""

    def __init__(self, pen2d: Pen2D):
        self.pen2d = pen2d

    def move_to(self, x, y):
        self.pen2d.move(x, y)

    def arc_to(self, x, y, turn):
        if abs(turn) < STRAIGHT_TURN:
            self.pen2d.line(x, y)
        else:
            self.pen2d.arc(x, y, turn * RAD2DEG)


def _validate(param: GearPairParam) -> SizeType:
    try:
        size_type = SizeType(param.size_type)
    except ValueError as err:
        raise GearConfigError(f"Unknown size type {param.size_type!r}") from err
    if param.gear_teeth < 4:
        raise GearConfigError(f"Can't have less than 4 gear teeth, got {param.gear_teeth}")
    if param.pinion_teeth < 4:
        raise GearConfigError(f"Can't have less than 4 pinion teeth, got {param.pinion_teeth}")
    if param.is_internal_gear and param.gear_teeth <= param.pinion_teeth:
        raise GearConfigError("Pinion must have fewer teeth than internal gear")
    if not np.isfinite(param.size) or param.size <= 0:
        raise GearConfigError(f"Invalid size {param.size}")
    if not 0 < param.pressure_angle < 90:
        raise GearConfigError(f"Pressure angle must be between 0 and 90, got {param.pressure_angle}")
    if not param.target_contact_ratio > 0:
        raise GearConfigError(f"Contact ratio must be positive, got {param.target_contact_ratio}")
    if not (param.face_tolerance_mod_percent > 0 and param.fillet_tolerance_mod_percent > 0):
        raise GearConfigError("Tolerances must be positive")
    return size_type


def cut_tooth(
    n_teeth: int, rack: PathFunc, face_tolerance: float, fillet_tolerance: float
) -> RecordingPen:
    """Generate one tooth of a gear with the given rack.

    In the recorded path the gear center is the origin, the tooth is centered on the
    +X axis and the path runs from -Y to +Y, between the middles of the adjacent gaps.
    """
    radius = n_teeth * 0.5 / PI
    cutter = ToothCutter(n_teeth, radius, face_tolerance, fillet_tolerance)
    XForm().rotate(-90).translate(0, radius).process_path(cutter, rack, True)
    recorder = RecordingPen()
    cutter.draw_tooth_path(recorder, True)
    return recorder


def draw_gear_from_tooth(pen: Pen, do_move: bool, scale: float, path: PathFunc, n_teeth: int):
    """Draw a full gear by repeating a tooth path n_teeth times around the origin."""
    if do_move:
        # the outline starts where the last tooth ends
        capture = LastPointCapturePen()
        XForm().rotate((n_teeth - 1) * 360 / n_teeth).scale(scale).process_path(
            capture, path, True
        )
        capture.transfer_move(pen)
    for i in range(n_teeth):
        XForm().rotate(i * 360 / n_teeth).scale(scale).process_path(pen, path, False)


def _make_sketch(scale: float, path: PathFunc, n_teeth: int) -> Sketch:
    def sketch(pen: Pen2D):
        draw_gear_from_tooth(GearCutterPenAdapter(pen), True, scale, path, n_teeth)

    return sketch


def create_gear_pair(param: GearPairParam) -> GearPairResult:
    """Generate a meshing gear and pinion.

    Parameters
    ----------
    param : GearPairParam
        Gearing parameters.

    Returns
    -------
    GearPairResult
        Outline sketches of both members and their dimensions.

    Raises
    ------
    GearConfigError
        If the parameters are invalid. Nothing is generated in that case.
    GearGeometryError
        If the parameters have no valid tooth geometry.
    """
    size_type = _validate(param)
    is_internal = param.is_internal_gear
    gear_radius = param.gear_teeth * 0.5 / PI
    pinion_radius = param.pinion_teeth * 0.5 / PI
    center_radius = gear_radius - pinion_radius if is_internal else gear_radius + pinion_radius

    # internal units have module 1/PI
    if size_type == SizeType.DIAMETRAL_PITCH:
        scale = PI / param.size
    elif size_type == SizeType.CENTER_DISTANCE:
        scale = param.size / center_radius
    else:
        scale = param.size * PI

    rack_param = RackParam(
        contact_ratio=param.target_contact_ratio,
        pressure_angle=param.pressure_angle,
        profile_shift=param.profile_shift_percent,
        balance_percent=param.balance_percent,
    )
    pinion_rack = make_rack(
        dataclasses.replace(
            rack_param,
            bot_clr_percent=param.clearance_mod_percent,
            balance_abs_percent=param.backlash_mod_percent * -0.5,
        )
    )
    if is_internal:
        gear_rack = make_rack(
            dataclasses.replace(
                rack_param,
                top_clr_percent=param.clearance_mod_percent,
                balance_abs_percent=param.backlash_mod_percent * 0.5,
            )
        )
    else:
        gear_rack = make_rack(
            dataclasses.replace(
                rack_param,
                balance_percent=100 - param.balance_percent,
                profile_shift=-param.profile_shift_percent,
                bot_clr_percent=param.clearance_mod_percent,
                balance_abs_percent=param.backlash_mod_percent * -0.5,
            )
        )

    face_tolerance = param.face_tolerance_mod_percent / (100 * PI)
    fillet_tolerance = param.fillet_tolerance_mod_percent / (100 * PI)

    start = time.time()
    pinion_recorder = cut_tooth(param.pinion_teeth, pinion_rack, face_tolerance, fillet_tolerance)
    pinion_path = pinion_recorder.path
    if param.is_max_fillet:
        pinion_path = apply_max_tooth_fillet(pinion_path)
        pinion_recorder.reset()
        pinion_path(pinion_recorder, True)
    pinion_arcs = pinion_recorder.count_segments()
    logging.info(f"Pinion tooth generated in {time.time()-start:.5f} seconds")

    start = time.time()
    gear_recorder = cut_tooth(param.gear_teeth, gear_rack, face_tolerance, fillet_tolerance)
    gear_path = gear_recorder.path
    if param.is_max_fillet:
        if is_internal:
            gear_path = apply_internal_tooth_fillet(gear_path)
        else:
            gear_path = apply_max_tooth_fillet(gear_path)
        gear_recorder.reset()
        gear_path(gear_recorder, True)
    gear_arcs = gear_recorder.count_segments()
    logging.info(f"Gear tooth generated in {time.time()-start:.5f} seconds")

    return GearPairResult(
        gear=_make_sketch(scale, gear_path, param.gear_teeth),
        pinion=_make_sketch(scale, pinion_path, param.pinion_teeth),
        gear_pitch_diameter=gear_radius * 2.0 * scale,
        pinion_pitch_diameter=pinion_radius * 2.0 * scale,
        gear_arcs_per_tooth=gear_arcs,
        pinion_arcs_per_tooth=pinion_arcs,
        center_distance=center_radius * scale,
    )
