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
from rackgears.defs import *
from rackgears.arc_utils import angle_from_to, arc_center, bulge_factor, interpolate_arc_turn
from rackgears.pens import Pen, ResettablePen, PathFunc
from rackgears.xform import XForm

# bend toward the tooth that starts the fillet zone
QUALIFY_BEND = PI * 0.125
# the fillet zone ends when the path turns back within this of the start direction
DONE_BEND = PI * 0.1
# direction jump that counts as an inside corner
CORNER_JUMP = 0.1
# arcs turning less than this are not checked for curvature
CURVATURE_TURN = 1e-5


class _MaxFilletPenBase(ResettablePen):
    """Filtering pen that maximizes the first fillet of a tooth path.

    The path is expected to start on the symmetry line of a tooth gap (the start
    radius) and move away from it. Directions are measured from the tangent of the
    start radius, with `bend` being the sign of the turn toward the tooth.

    Phases:
        unqualified: segments pass until the path bends toward the tooth by
            QUALIFY_BEND.
        filleting: arcs curving tighter than a circle centered on the start radius
            are replaced. Everything drawn so far is discarded from the target and a
            single arc is drawn from the start radius to the current point, with the
            current end direction.
        done: once the path turns back or reaches the perpendicular of the start
            radius, everything passes unchanged.

    Raises
    ------
    TypeError
        If `target` is not a ResettablePen.
    """

    bend = -1.0

    def __init__(self, target: Pen):
        if not isinstance(target, ResettablePen):
            raise TypeError(f"{type(self).__name__} requires a resettable pen")
        self.target = target
        self._clear()

    def _clear(self):
        self.have_start = False
        self.have_arcs = False
        self.is_done = False
        self.qualified = False
        # unit vector toward the start point
        self.snx = 0.0
        self.sny = 0.0
        self.tx = 0.0
        self.ty = 0.0
        self.tdir = 0.0
        self.start_direction = 0.0
        self.limit_direction = 0.0

    def reset(self):
        self.target.reset()
        self._clear()

    def _set_start(self, x, y):
        self.have_start = True
        self.tx = x
        self.ty = y
        mag = np.sqrt(x * x + y * y)
        self.snx = x / mag
        self.sny = y / mag
        out_from_start = angle_from_to(-self.sny, self.snx, x, y)
        self.start_direction = out_from_start + PI * 0.5
        self.limit_direction = self.start_direction + self.bend * PI * 0.5

    def _rel(self, direction):
        return (direction - self.start_direction) * self.bend

    def move_to(self, x, y):
        if self.have_arcs:
            self.is_done = True
        else:
            self._set_start(x, y)
        self.target.move_to(x, y)

    def arc_to(self, x, y, turn):
        if self.is_done:
            self.target.arc_to(x, y, turn)
            return
        if not self.have_start:
            self._set_start(x, y)
            self.target.arc_to(x, y, turn)
            return
        line_dir = angle_from_to(-self.sny, self.snx, x - self.tx, y - self.ty)
        start_dir = line_dir - turn * 0.5
        end_dir = line_dir + turn * 0.5

        if not self.qualified:
            if self._rel(end_dir) > QUALIFY_BEND:
                self.qualified = True
            else:
                self._advance(x, y, end_dir)
                self.target.arc_to(x, y, turn)
                return

        if self._rel(start_dir) > PI * 0.5 or self._rel(end_dir) < DONE_BEND:
            # through the fillet
            self.is_done = True
            self.target.arc_to(x, y, turn)
            return

        if self.have_arcs and (start_dir - self.tdir) * self.bend > CORNER_JUMP:
            # inside corner at start
            self._refillet(self.tx, self.ty, start_dir)

        bad_arc = False
        if turn * self.bend > CURVATURE_TURN:
            cx, cy = arc_center(self.tx, self.ty, x, y, turn)
            # center beyond the start radius: curvature is too tight
            bad_arc = angle_from_to(self.snx, self.sny, cx, cy) > 0

        if not bad_arc:
            self.target.arc_to(x, y, turn)
        elif self._rel(end_dir) > PI * 0.5:
            # a fillet to the end of this arc would be more than a quarter circle,
            # so it ends where the arc is perpendicular to the start radius
            mx, my = interpolate_arc_turn(
                self.tx, self.ty, x, y, turn, self.limit_direction - start_dir
            )
            self._refillet(mx, my, self.limit_direction)
            self.target.arc_to(x, y, end_dir - self.limit_direction)
            self.is_done = True
        else:
            self._refillet(x, y, end_dir)
        self._advance(x, y, end_dir)

    def _advance(self, x, y, end_dir):
        self.tx = x
        self.ty = y
        self.tdir = end_dir
        self.have_arcs = True

    def _refillet(self, x, y, direction):
        turn = direction - self.start_direction
        # projection onto the start radius
        fxy = x * self.snx + y * self.sny
        # distance from the start radius
        cxy = self.snx * y - self.sny * x
        # the arc mirrored over the start radius turns 2*turn, its bulge is on it
        fxy -= bulge_factor(turn * 2.0) * cxy * 2.0
        self.target.reset()
        self.target.move_to(self.snx * fxy, self.sny * fxy)
        self.target.arc_to(x, y, turn)


class MaxFilletPen(_MaxFilletPenBase):
    """Maximizes the root fillet of an external gear tooth gap."""

    bend = -1.0


class MaxInsideFilletPen(_MaxFilletPenBase):
    """Maximizes the root fillet of an internal gear, where gaps open inward."""

    bend = 1.0


def reverse_and_flip_path(path: PathFunc) -> PathFunc:
    rec = XForm().scale(1, True).transform_path(path)
    return rec.reversed_path


def apply_leading_fillet(path: PathFunc) -> PathFunc:
    rec = XForm().process_input(MaxFilletPen).transform_path(path)
    return rec.path


def apply_max_tooth_fillet(tooth_path: PathFunc) -> PathFunc:
    """Maximize the fillets at both ends of an external tooth path.

    The tooth path must run from the middle of one gap to the middle of the next.
    The second end is handled by mirroring the path over the X axis and reversing it,
    which turns it into a leading fillet, then flipping it back.
    """
    tooth_path = apply_leading_fillet(tooth_path)
    tooth_path = reverse_and_flip_path(tooth_path)
    tooth_path = apply_leading_fillet(tooth_path)
    tooth_path = reverse_and_flip_path(tooth_path)
    return tooth_path


def apply_internal_tooth_fillet(tooth_path: PathFunc) -> PathFunc:
    """Maximize the root fillets of an internal gear tooth path.

    Only the half at y >= 0 is filleted, the other half is its mirror image.
    """
    fixed_from_mid = (
        XForm().process_input(MaxInsideFilletPen).clip(0, 1, 0).transform_path(tooth_path)
    )
    out_rec = XForm().scale(1, True).transform_path(fixed_from_mid.reversed_path)
    fixed_from_mid.path(out_rec, False)
    return out_rec.path
