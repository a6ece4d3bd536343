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
import pytest as pytest
from rackgears.defs import *
from rackgears.arc_utils import interpolate_arc_turn
from rackgears.pens import RecordingPen
from rackgears.xform import XForm
from rackgears.rack import RackParam, make_rack
from rackgears.cut_curves import (
    ConstantRadiusCut,
    InvoluteCut,
    TrochoidCut,
    arc_deviation,
)
import rackgears.tooth_cutter
from rackgears.tooth_cutter import ToothCutter


def cut(n_teeth, param=RackParam(), face_tolerance=1e-4, fillet_tolerance=1e-3):
    radius = n_teeth * 0.5 / PI
    cutter = ToothCutter(n_teeth, radius, face_tolerance, fillet_tolerance)
    XForm().rotate(-90).translate(0, radius).process_path(cutter, make_rack(param), True)
    return cutter


def radius_at(cutter, angle):
    """Envelope radius at a polar angle given in teeth."""
    for seg in cutter.segments:
        if seg.angle_from <= angle <= seg.angle_to:
            return seg.curve.get_r((angle - seg.rotation) * cutter.pitch_angle)
    raise AssertionError(f"angle {angle} not covered")


def half_depth(param):
    sin_pa = np.sin(param.pressure_angle * DEG2RAD)
    cos_pa = np.cos(param.pressure_angle * DEG2RAD)
    return param.contact_ratio * sin_pa * cos_pa * 0.5


@pytest.mark.parametrize("n_teeth", [8, 12, 25, 40, 101])
def test_segments_cover_tooth(n_teeth):
    cutter = cut(n_teeth)
    segments = cutter.segments
    assert segments[0].angle_from == pytest.approx(-0.5)
    assert segments[-1].angle_to == pytest.approx(0.5)
    for prev, seg in zip(segments[:-1], segments[1:]):
        assert prev.angle_to == seg.angle_from
        assert seg.angle_from < seg.angle_to
    assert all(-0.5 <= sample.angle <= 0.5 for sample in cutter.samples)
    # root fillets are cut by the rack corners
    assert any(isinstance(seg.curve, TrochoidCut) for seg in segments)
    assert any(isinstance(seg.curve, InvoluteCut) for seg in segments)


@pytest.mark.parametrize("n_teeth", [12, 40, 101])
@pytest.mark.parametrize("clearance", [0, 25])
def test_tip_root_and_pitch(n_teeth, clearance):
    param = RackParam(bot_clr_percent=clearance)
    cutter = cut(n_teeth, param)
    radius = cutter.radius
    h = half_depth(param)
    assert radius_at(cutter, 0) == pytest.approx(radius + h, abs=1e-12)
    assert radius_at(cutter, 0.5) == pytest.approx(radius - h - clearance / (100 * PI), abs=1e-12)
    assert radius_at(cutter, -0.5) == pytest.approx(radius - h - clearance / (100 * PI), abs=1e-12)
    # balanced tooth is half a pitch thick on the pitch circle
    assert radius_at(cutter, 0.25) == pytest.approx(radius, abs=1e-9)
    assert radius_at(cutter, -0.25) == pytest.approx(radius, abs=1e-9)


@pytest.mark.parametrize("angle", [0.05, 0.15, 0.3, 0.45])
def test_symmetry(angle):
    cutter = cut(40)
    assert radius_at(cutter, angle) == pytest.approx(radius_at(cutter, -angle), rel=1e-9)


@pytest.mark.parametrize("n_teeth", [8, 12, 40])
def test_draw_tooth_path(n_teeth):
    cutter = cut(n_teeth, RackParam(bot_clr_percent=15))
    rec = RecordingPen()
    cutter.draw_tooth_path(rec, True)
    pts = np.array(rec.points)
    assert rec.turns[0] is None
    assert all(turn is not None for turn in rec.turns[1:])

    angles = np.arctan2(pts[:, 1], pts[:, 0])
    radii = np.linalg.norm(pts, axis=1)
    half = cutter.pitch_angle / 2
    assert angles[0] == pytest.approx(-half)
    assert angles[-1] == pytest.approx(half)
    assert radii[0] == pytest.approx(radii[-1])
    # star shaped around the gear center
    assert np.all(np.diff(angles) > -1e-12)
    assert np.max(radii) == pytest.approx(cutter.radius + half_depth(RackParam()), abs=1e-9)

    # continuing an open path draws a line to the tooth start
    cont = RecordingPen()
    cont.move_to(0, 0)
    cutter.draw_tooth_path(cont, False)
    assert cont.turns[1] == 0
    assert cont.points[1] == pytest.approx(tuple(pts[0]))
    assert cont.count_segments() == rec.count_segments() + 1


def test_involute_tessellation_tolerance():
    tol = 1e-5
    curve = InvoluteCut(1.0, 0.3, 0.05, 0.9, tol)
    pieces = curve.tessellate(curve.theta_max, curve.theta_min)
    assert pieces[0].theta_a == curve.theta_max
    assert pieces[-1].theta_b == curve.theta_min
    for piece in pieces:
        for theta in np.linspace(piece.theta_a, piece.theta_b, 9):
            assert arc_deviation(piece.pa, piece.pb, piece.turn, curve.point(theta)) < 2 * tol
    # points are on the curve
    r = curve.get_r(curve.theta_of_delta(0.5))
    assert r == pytest.approx(1.0 / np.cos(0.5))


def test_involute_cusp():
    curve = InvoluteCut(1.0, 0.2, -0.5, 0.5)
    assert curve.get_discontinuity_thetas(-1, 1) == [0.2]
    assert curve.get_discontinuity_thetas(0.3, 1) == []
    assert curve.get_r(0.2) == pytest.approx(1.0)
    assert curve.get_r(curve.theta_max + 0.01) == np.inf


def test_constant_radius_split():
    curve = ConstantRadiusCut(2.0)
    rec = RecordingPen()
    curve.draw_segment(rec, 0, 2 * PI, True)
    assert rec.count_segments() == 4
    assert rec.turns[1:] == pytest.approx([PI / 2] * 4)
    assert rec.points[-1] == pytest.approx((2.0, 0.0))
    for (x1, y1), (x2, y2), turn in zip(rec.points[:-1], rec.points[1:], rec.turns[1:]):
        mx, my = interpolate_arc_turn(x1, y1, x2, y2, turn, turn / 2)
        assert np.hypot(mx, my) == pytest.approx(2.0)


def test_trochoid_loop():
    radius = 2.0
    curve = TrochoidCut(1.5, 0.3, radius, 1.5)
    # the loop turns back twice
    assert len(curve.get_discontinuity_thetas(-10, 10)) == 2
    # the corner is closest to the center when it passes the X axis
    assert curve.get_r(0.3 / radius) == pytest.approx(1.5)
    thetas = np.linspace(curve.theta_min, curve.theta_max, 50)
    assert all(curve.get_r(theta) >= 1.5 - 1e-12 for theta in thetas)


def test_trochoid_outside_pitch_circle():
    curve = TrochoidCut(2.5, 0.0, 2.0, 1.0)
    assert curve.get_discontinuity_thetas(-10, 10) == []
    assert len(curve.branches) == 1
    assert curve.get_r(0.0) == pytest.approx(2.5)


def test_config_errors():
    with pytest.raises(GearConfigError):
        ToothCutter(3, 1.0, 1e-4, 1e-4)


def test_geometry_errors():
    n_teeth = 20
    radius = n_teeth * 0.5 / PI

    short = ToothCutter(n_teeth, radius, 1e-4, 1e-4)
    short.move_to(radius, 0.4)
    short.arc_to(radius + 0.1, 0, 0)
    short.arc_to(radius, -0.4, 0)
    with pytest.raises(GearGeometryError):
        short.segments

    # an edge square to the pitch line
    square = ToothCutter(n_teeth, radius, 1e-4, 1e-4)
    square.move_to(radius - 0.2, 0.5)
    square.arc_to(radius - 0.2, 0.25, 0)
    square.arc_to(radius + 0.2, 0.25, 0)
    square.arc_to(radius + 0.2, -0.25, 0)
    square.arc_to(radius - 0.2, -0.25, 0)
    square.arc_to(radius - 0.2, -0.5, 0)
    with pytest.raises(GearGeometryError):
        square.segments

    curved = ToothCutter(n_teeth, radius, 1e-4, 1e-4)
    curved.move_to(radius, 0.5)
    with pytest.raises(GearGeometryError):
        curved.arc_to(radius, -0.5, 0.3)

    with pytest.raises(ValueError):
        ToothCutter(n_teeth, radius, 1e-4, 1e-4).arc_to(0, 0, 0)

    # top land running backwards, the flanks cross before reaching it
    thin = cut(40, RackParam(pressure_angle=30, contact_ratio=2.0, balance_abs_percent=-5))
    with pytest.raises(GearGeometryError):
        thin.segments


def test_switch_limit(monkeypatch):
    monkeypatch.setattr(rackgears.tooth_cutter, "MAX_SWITCHES", 0)
    with pytest.raises(GearGeometryError):
        cut(40).segments
