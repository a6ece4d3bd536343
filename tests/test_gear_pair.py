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
import matplotlib.pyplot as plt
import numpy as np
import pytest as pytest
import shapely as shp
import shapely.affinity
import shapely.geometry
import rackgears.gear_pair
from rackgears.defs import *
from rackgears.sketch import RecordingPen2D
from rackgears.gear_pair import *


def outline(sketch):
    rec = RecordingPen2D()
    sketch(rec)
    assert rec.path_count() == 1
    return rec


def polygon(sketch):
    return shp.geometry.Polygon(outline(sketch).path_points(0, 4))


def test_dimensions():
    result = create_gear_pair(GearPairParam(gear_teeth=40, pinion_teeth=12, size=2))
    assert result.gear_pitch_diameter == pytest.approx(80)
    assert result.pinion_pitch_diameter == pytest.approx(24)
    assert result.center_distance == pytest.approx(52)

    internal = create_gear_pair(
        GearPairParam(gear_teeth=40, pinion_teeth=12, size=2, is_internal_gear=True)
    )
    assert internal.center_distance == pytest.approx(28)


@pytest.mark.parametrize(
    "size_type, size",
    [(SizeType.MODULE, 2), ("diaPitch", 0.5), (SizeType.CENTER_DISTANCE, 52)],
)
def test_size_types(size_type, size):
    result = create_gear_pair(
        GearPairParam(gear_teeth=40, pinion_teeth=12, size_type=size_type, size=size)
    )
    assert result.gear_pitch_diameter == pytest.approx(80)
    assert result.center_distance == pytest.approx(52)


@pytest.mark.parametrize("is_internal", [False, True])
@pytest.mark.parametrize("is_max_fillet", [False, True])
def test_outlines(is_internal, is_max_fillet):
    param = GearPairParam(
        gear_teeth=40,
        pinion_teeth=12,
        size=2,
        is_internal_gear=is_internal,
        is_max_fillet=is_max_fillet,
    )
    result = create_gear_pair(param)
    for sketch, n_teeth, arcs, diameter in (
        (result.gear, 40, result.gear_arcs_per_tooth, result.gear_pitch_diameter),
        (result.pinion, 12, result.pinion_arcs_per_tooth, result.pinion_pitch_diameter),
    ):
        rec = outline(sketch)
        path = rec.paths[0]
        assert len(path) == 1 + n_teeth * arcs
        assert path[-1][:2] == pytest.approx(path[0][:2])

        pts = rec.path_points(0, 4)
        poly = shp.geometry.Polygon(pts)
        assert poly.is_valid
        # every tooth crosses the pitch circle twice
        inside = np.linalg.norm(pts, axis=1) < diameter * 0.5
        assert np.count_nonzero(inside[:-1] != inside[1:]) == 2 * n_teeth


def test_logging(caplog):
    with caplog.at_level(logging.INFO):
        create_gear_pair(GearPairParam(gear_teeth=20, pinion_teeth=10))
    assert "Pinion tooth generated" in caplog.text
    assert "Gear tooth generated" in caplog.text


@pytest.mark.parametrize("gear_teeth, pinion_teeth", [(40, 12), (31, 17)])
@pytest.mark.parametrize("is_max_fillet", [False, True])
@pytest.mark.parametrize("angle", [0.0, 3.0, 6.0])
def test_external_mesh(gear_teeth, pinion_teeth, is_max_fillet, angle, enable_plotting=False):
    """
    Gear and pinion in meshing position with backlash should not intersect,
    while turning the gear further should make them collide.
    """
    param = GearPairParam(
        gear_teeth=gear_teeth,
        pinion_teeth=pinion_teeth,
        size=2,
        backlash_mod_percent=10,
        fillet_tolerance_mod_percent=0.1,
        is_max_fillet=is_max_fillet,
    )
    result = create_gear_pair(param)
    gear = polygon(result.gear)
    pinion = polygon(result.pinion)

    # the gear has a tooth on +X, the pinion faces it with a gap
    pinion_angle = 180 + 180 / pinion_teeth - angle * gear_teeth / pinion_teeth
    pinion = shp.affinity.rotate(pinion, pinion_angle, origin=(0, 0))
    pinion = shp.affinity.translate(pinion, result.center_distance, 0)
    gear_meshed = shp.affinity.rotate(gear, angle, origin=(0, 0))
    gear_ahead = shp.affinity.rotate(gear, angle + 5, origin=(0, 0))

    if enable_plotting:
        ax = plt.axes()
        ax.plot(gear_meshed.exterior.xy[0], gear_meshed.exterior.xy[1])
        ax.plot(pinion.exterior.xy[0], pinion.exterior.xy[1])
        ax.axis("equal")
        plt.show()

    assert gear_meshed.intersection(pinion).area == pytest.approx(0, abs=1e-6)
    assert gear_ahead.intersection(pinion).area > 1e-2


@pytest.mark.parametrize("is_max_fillet", [False, True])
@pytest.mark.parametrize("angle", [0.0, 3.0, 6.0])
def test_internal_mesh(is_max_fillet, angle, enable_plotting=False):
    """
    The pinion should stay inside the hole of the ring gear.
    """
    param = GearPairParam(
        gear_teeth=40,
        pinion_teeth=12,
        size=2,
        backlash_mod_percent=10,
        fillet_tolerance_mod_percent=0.1,
        is_internal_gear=True,
        is_max_fillet=is_max_fillet,
    )
    result = create_gear_pair(param)
    ring_hole = polygon(result.gear)
    pinion = polygon(result.pinion)

    # the ring has a gap on +X, the pinion faces it with a tooth
    pinion = shp.affinity.rotate(pinion, angle * 40 / 12, origin=(0, 0))
    pinion = shp.affinity.translate(pinion, result.center_distance, 0)
    hole_meshed = shp.affinity.rotate(ring_hole, angle, origin=(0, 0))
    hole_ahead = shp.affinity.rotate(ring_hole, angle + 5, origin=(0, 0))

    if enable_plotting:
        ax = plt.axes()
        ax.plot(hole_meshed.exterior.xy[0], hole_meshed.exterior.xy[1])
        ax.plot(pinion.exterior.xy[0], pinion.exterior.xy[1])
        ax.axis("equal")
        plt.show()

    assert pinion.difference(hole_meshed).area == pytest.approx(0, abs=1e-6)
    assert pinion.difference(hole_ahead).area > 1e-2


@pytest.mark.parametrize(
    "changes",
    [
        dict(gear_teeth=3),
        dict(pinion_teeth=2),
        dict(is_internal_gear=True, pinion_teeth=40),
        dict(size=0),
        dict(size=-1),
        dict(size=float("nan")),
        dict(pressure_angle=0),
        dict(pressure_angle=90),
        dict(target_contact_ratio=0),
        dict(face_tolerance_mod_percent=0),
        dict(size_type="inch"),
    ],
)
def test_config_errors(monkeypatch, changes):
    def no_rack(param):
        raise AssertionError("rack generated for invalid parameters")

    monkeypatch.setattr(rackgears.gear_pair, "make_rack", no_rack)
    param = dataclasses.replace(GearPairParam(gear_teeth=40, pinion_teeth=12), **changes)
    with pytest.raises(GearConfigError):
        create_gear_pair(param)


def test_geometry_error():
    # deep teeth at 30 degrees leave no top land, backlash thins them further
    param = GearPairParam(
        gear_teeth=40,
        pinion_teeth=12,
        pressure_angle=30,
        target_contact_ratio=2.0,
        backlash_mod_percent=5,
    )
    with pytest.raises(GearGeometryError):
        create_gear_pair(param)


if __name__ == "__main__":

    test_external_mesh(
        gear_teeth=40,
        pinion_teeth=12,
        is_max_fillet=True,
        angle=3.0,
        enable_plotting=True,
    )
