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
from collections.abc import Callable
from rackgears.defs import *
from rackgears.pens import Pen, ResettablePen, RecordingPen, PathFunc
from rackgears.clipping import make_clipping_pen

# stage factory: wraps the downstream pen into a filtering pen
PenStage = Callable[[Pen], Pen]


class XFormPen(Pen):
    """Pen that maps points and turns before passing them to a delegate."""

    def __init__(self, delegate: Pen, transform_point, transform_turn):
        self.delegate = delegate
        self.transform_point = transform_point
        self.transform_turn = transform_turn

    def move_to(self, x, y):
        new_x, new_y = self.transform_point(x, y)
        self.delegate.move_to(new_x, new_y)

    def arc_to(self, x, y, turn):
        new_x, new_y = self.transform_point(x, y)
        self.delegate.arc_to(new_x, new_y, self.transform_turn(turn))


class ResettableXFormPen(XFormPen, ResettablePen):
    def reset(self):
        self.delegate.reset()


def make_xform_pen(delegate: Pen, transform_point, transform_turn) -> Pen:
    if isinstance(delegate, ResettablePen):
        return ResettableXFormPen(delegate, transform_point, transform_turn)
    return XFormPen(delegate, transform_point, transform_turn)


class _AffineStage:
    """Frozen rotate/scale/flip/translate, used as a stage of an XForm."""

    def __init__(self, xx, xy, tx, ty, flip):
        self.xx = xx
        self.xy = xy
        self.tx = tx
        self.ty = ty
        self.flip = flip

    def transform_point(self, x, y):
        return (
            self.tx + x * self.xx - y * self.flip * self.xy,
            self.ty + x * self.xy + y * self.flip * self.xx,
        )

    def transform_turn(self, turn):
        return turn * self.flip

    def __call__(self, pen: Pen) -> Pen:
        return make_xform_pen(pen, self.transform_point, self.transform_turn)


class XForm:
    """Lazy composition of 2D transforms and path filters.

    Every builder call modifies the coordinate system of the input, relative to
    everything specified before it, like a canvas transform stack. So
    `XForm().rotate(-90).translate(0, r)` moves the input origin to (0, r), then
    rotates the result by -90 degrees.

    The scalar part (rotation, uniform scale, Y flip, translation) is kept pending.
    When a filter stage is inserted with `process_input`, the pending scalars are
    frozen into a stage of their own, so the stages form a single ordered list.
    Input flows through the pending scalars first, then through the stages from the
    last inserted to the first one, then into the target pen.

    Methods
    -------
    rotate(degrees)
        Rotate +X toward +Y.
    translate(x, y)
        Move the origin to (x, y) in the current coordinate system.
    scale(fac, flip_y=False)
        Scale around the current origin, optionally flipping the current Y axis.
    clip(nx, ny, min_product)
        Insert a half-plane clipping stage.
    process_input(stage)
        Insert an arbitrary filter stage.
    apply(target)
        Build the transforming pen in front of `target`.
    """

    def __init__(self):
        self.stages = []
        self.rot_degrees = 0.0
        self.scale_factor = 1.0
        self.flip_y_fac = 1.0
        self.tx = 0.0
        self.ty = 0.0

    @property
    def is_identity(self):
        return (
            self.rot_degrees == 0
            and self.flip_y_fac == 1.0
            and self.scale_factor == 1.0
            and self.tx == 0.0
            and self.ty == 0.0
        )

    def rotate(self, degrees: float) -> "XForm":
        self.rot_degrees += degrees * self.flip_y_fac
        self.rot_degrees -= np.floor(self.rot_degrees / 360.0) * 360.0
        return self

    def translate(self, x: float, y: float) -> "XForm":
        xx, xy = self.x_projection()
        self.tx = self.tx + x * xx - y * self.flip_y_fac * xy
        self.ty = self.ty + x * xy + y * self.flip_y_fac * xx
        return self

    def scale(self, fac: float, flip_y: bool = False) -> "XForm":
        if fac < 0.0:
            self.rotate(180)
            self.scale_factor *= -fac
        else:
            self.scale_factor *= fac
        if flip_y:
            self.flip_y_fac = -self.flip_y_fac
        return self

    def clip(self, nx: float, ny: float, min_product: float) -> "XForm":
        return self.process_input(
            lambda pen: make_clipping_pen(pen, nx, ny, min_product)
        )

    def process_input(self, stage: PenStage) -> "XForm":
        if not self.is_identity:
            xx, xy = self.x_projection()
            self.stages.append(_AffineStage(xx, xy, self.tx, self.ty, self.flip_y_fac))
            self.rot_degrees = 0.0
            self.scale_factor = 1.0
            self.flip_y_fac = 1.0
            self.tx = 0.0
            self.ty = 0.0
        self.stages.append(stage)
        return self

    def apply(self, target: Pen) -> Pen:
        for stage in self.stages:
            target = stage(target)
        if self.is_identity and self.stages:
            return target
        xx, xy = self.x_projection()
        return _AffineStage(xx, xy, self.tx, self.ty, self.flip_y_fac)(target)

    def transform_path(self, path: PathFunc) -> RecordingPen:
        """Record the transformed path into a new RecordingPen."""
        rec = RecordingPen()
        path(self.apply(rec), True)
        return rec

    def process_path(self, pen: Pen, path: PathFunc, do_move: bool = True) -> "XForm":
        path(self.apply(pen), do_move)
        return self

    def x_projection(self):
        """Image of the unit X vector, scaled. Exact for multiples of 90 degrees."""
        rads = self.rot_degrees * DEG2RAD
        xx = np.cos(rads)
        xy = np.sin(rads)
        quarters = self.rot_degrees / 90
        if np.floor(quarters) == quarters:
            if int(quarters) % 2 == 0:
                xx = np.sign(xx)
                xy = 0.0
            else:
                xx = 0.0
                xy = np.sign(xy)
        return xx * self.scale_factor, xy * self.scale_factor
