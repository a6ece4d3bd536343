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

import warnings
import pytest as pytest
from rackgears.defs import *
from rackgears.pens import RecordingPen, ResettablePen
from rackgears.clipping import ClippingPen, make_clipping_pen
from rackgears.xform import XForm


def polyarc(pen, do_move=True):
    if do_move:
        pen.move_to(1, 1)
    pen.arc_to(3, 1, 0.5)
    pen.arc_to(3, 4, -0.3)
    pen.arc_to(1, 2, 0)


def ops(rec):
    return list(zip(rec.xs, rec.ys, rec.turns))


def clipped(path, nx, ny, min_product):
    return XForm().clip(nx, ny, min_product).transform_path(path)


def test_inside_is_unchanged():
    rec = RecordingPen()
    polyarc(rec)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert ops(clipped(polyarc, 0, 1, 0)) == ops(rec)
        # normal need not be unit length
        assert ops(clipped(polyarc, 0, 5, -2)) == ops(rec)


def test_outside_is_empty():
    assert len(clipped(polyarc, 0, 1, 10)) == 0
    assert len(clipped(polyarc, -1, 0, 0)) == 0


def test_line_crossing():
    def line(pen, do_move=True):
        pen.move_to(0, -1)
        pen.arc_to(0, 1, 0)
        pen.arc_to(0, -3, 0)

    rec = clipped(line, 0, 1, 0)
    assert ops(rec) == [(0, 0, None), (0, 1, 0), (0, 0, 0)]


def test_arc_entering():
    # half circle around the origin through (1, 0)
    def half_circle(pen, do_move=True):
        pen.move_to(0, -1)
        pen.arc_to(0, 1, PI)

    rec = clipped(half_circle, 0, 1, 0)
    assert len(rec) == 2
    assert rec.points[0] == pytest.approx((1, 0), abs=1e-9)
    assert rec.points[1] == (0, 1)
    assert rec.turns[1] == pytest.approx(PI / 2, abs=1e-9)


def test_arc_leaving():
    def half_circle(pen, do_move=True):
        pen.move_to(0, 1)
        pen.arc_to(0, -1, -PI)

    rec = clipped(half_circle, 0, 1, 0)
    assert len(rec) == 2
    assert rec.points[0] == (0, 1)
    assert rec.points[1] == pytest.approx((1, 0), abs=1e-9)
    assert rec.turns[1] == pytest.approx(-PI / 2, abs=1e-9)


def test_bulge_warning():
    def sagging(pen, do_move=True):
        pen.move_to(-1, 0.1)
        pen.arc_to(1, 0.1, 1.0)

    with pytest.warns(RuntimeWarning):
        rec = clipped(sagging, 0, 1, 0)
    # the arc is passed unchanged
    assert ops(rec) == [(-1, 0.1, None), (1, 0.1, 1.0)]


def test_resettable():
    rec = RecordingPen()
    assert isinstance(make_clipping_pen(rec, 1, 0, 0), ResettablePen)
    assert not isinstance(ClippingPen(rec, 1, 0, 0), ResettablePen)
