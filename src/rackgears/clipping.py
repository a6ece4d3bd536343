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
import warnings
from rackgears.arc_utils import interpolate_arc_turn, arc_midpoint, search_for_float
from rackgears.pens import Pen, ResettablePen

# arcs with less turn than this are clipped as lines
CLIP_STRAIGHT_TURN = 1e-6
# bulge overshoot tolerated before warning
BULGE_SLACK = 1e-12


class ClippingPen(Pen):
    """Filtering pen that keeps the part of a path on one side of a line.

    Only portions with x*nx + y*ny >= min_product are passed to the target.

    An arc that has both endpoints on the kept side but bulges across the line is
    not clipped, a RuntimeWarning is issued instead.

    Parameters
    ----------
    target : Pen
        Receiver of the clipped path.
    nx, ny : float
        Normal of the clipping line, pointing to the kept side. Need not be unit length.
    min_product : float
        Offset of the clipping line, in the same scale as the normal.
    """

    def __init__(self, target: Pen, nx: float, ny: float, min_product: float):
        self.target = target
        mag = np.sqrt(nx * nx + ny * ny)
        self.nx = nx / mag
        self.ny = ny / mag
        self.min_product = min_product / mag
        self.tx = 0.0
        self.ty = 0.0
        self.have_point = False
        self.is_inside = False

    def _product(self, x, y):
        return x * self.nx + y * self.ny

    def move_to(self, x, y):
        self.tx = x
        self.ty = y
        self.have_point = True
        self.is_inside = self._product(x, y) > self.min_product
        if self.is_inside:
            self.target.move_to(x, y)

    def arc_to(self, x, y, turn):
        if not self.have_point:
            self.move_to(x, y)
            return
        was_inside = self.is_inside
        if was_inside:
            self.is_inside = self._product(x, y) >= self.min_product
        else:
            self.is_inside = self._product(x, y) > self.min_product

        if was_inside == self.is_inside:
            if was_inside:
                if abs(turn) >= CLIP_STRAIGHT_TURN:
                    mx, my = arc_midpoint(self.tx, self.ty, x, y, turn)
                    if self._product(mx, my) < self.min_product - BULGE_SLACK:
                        warnings.warn(
                            "Arc bulge crosses the clipping line, arc is not clipped",
                            RuntimeWarning,
                            stacklevel=2,
                        )
                self.target.arc_to(x, y, turn)
            self.tx = x
            self.ty = y
            return

        if abs(turn) < CLIP_STRAIGHT_TURN:
            # straight enough to clip the line directly
            p0 = self._product(self.tx, self.ty)
            p1 = self._product(x, y)
            t = (self.min_product - p0) / (p1 - p0)
            mx = self.tx + (x - self.tx) * t
            my = self.ty + (y - self.ty) * t
            if self.is_inside:
                self.target.move_to(mx, my)
                if x != mx or y != my:
                    self.target.arc_to(x, y, 0)
            elif mx != self.tx or my != self.ty:
                self.target.arc_to(mx, my, 0)
        elif self.is_inside:
            # entering: find the first turn that is inside
            x0, y0 = self.tx, self.ty
            mid_turn = search_for_float(
                0.0,
                turn,
                lambda t: self._product(*interpolate_arc_turn(x0, y0, x, y, turn, t))
                >= self.min_product,
            )[1]
            mx, my = interpolate_arc_turn(x0, y0, x, y, turn, mid_turn)
            self.target.move_to(mx, my)
            if x != mx or y != my:
                self.target.arc_to(x, y, turn - mid_turn)
        else:
            # leaving: find the last turn that is inside
            x0, y0 = self.tx, self.ty
            mid_turn = search_for_float(
                0.0,
                turn,
                lambda t: self._product(*interpolate_arc_turn(x0, y0, x, y, turn, t))
                < self.min_product,
            )[0]
            mx, my = interpolate_arc_turn(x0, y0, x, y, turn, mid_turn)
            if mx != self.tx or my != self.ty:
                self.target.arc_to(mx, my, mid_turn)
        self.tx = x
        self.ty = y


class ResettableClippingPen(ClippingPen, ResettablePen):
    """ClippingPen over a resettable target, resetting clears the clip state too."""

    def reset(self):
        self.target.reset()
        self.tx = 0.0
        self.ty = 0.0
        self.have_point = False
        self.is_inside = False


def make_clipping_pen(target: Pen, nx: float, ny: float, min_product: float) -> Pen:
    """Create a clipping pen that is resettable when `target` is."""
    if isinstance(target, ResettablePen):
        return ResettableClippingPen(target, nx, ny, min_product)
    return ClippingPen(target, nx, ny, min_product)
