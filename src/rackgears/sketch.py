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

from typing import Protocol, runtime_checkable
from collections.abc import Callable
import numpy as np
from rackgears.defs import *
from rackgears.arc_utils import interpolate_arc_turn

ROOT2BY2 = np.sqrt(2) * 0.5


@runtime_checkable
class Pen2D(Protocol):
    """Public 2D drawing protocol, used by sketches.

    Unlike the internal pen protocol, arc turns are given in degrees.
    """

    def move(self, x: float, y: float, tag: str | None = None) -> None:
        """Start a new path at the given point."""

    def line(self, x: float, y: float) -> None:
        """Draw a line to the given point."""

    def arc(self, x: float, y: float, turn_degrees: float) -> None:
        """Draw an arc to the given point, turning by `turn_degrees` along the way.

        Positive turns rotate the +X axis toward +Y.
        """

    def conic(self, x1: float, y1: float, x2: float, y2: float, w: float) -> None:
        """Draw a rational quadratic Bezier with control point (x1, y1) of weight w.

        w < 1 is elliptical, 1 parabolic, > 1 hyperbolic. See `conic_arc_params`.
        """

    def circle(self, x: float, y: float, d: float, tag: str | None = None) -> None:
        """Draw a full circle of diameter d as a closed path of its own."""


# sketch: draws closed outlines onto a Pen2D
Sketch = Callable[[Pen2D], None]


def conic_arc_params(turn_degrees):
    """Parameters of a conic that draws a circular arc.

    Returns
    -------
    tuple
        (deflection, w). The control point is at the chord midpoint, offset by
        deflection * chord length / 2 perpendicular to the chord (toward +90 degrees
        from the chord direction). w is the weight of the control point.
    """
    half_turn = turn_degrees * DEG2RAD * 0.5
    return -np.tan(half_turn), np.cos(half_turn)


def conic_points(x0, y0, x1, y1, x2, y2, w, n):
    """Sample n points of a rational quadratic Bezier, excluding the start point."""
    t = np.linspace(0, 1, n + 1)[1:]
    b0 = (1 - t) ** 2
    b1 = 2 * w * t * (1 - t)
    b2 = t**2
    den = b0 + b1 + b2
    return np.stack(
        [(b0 * x0 + b1 * x1 + b2 * x2) / den, (b0 * y0 + b1 * y1 + b2 * y2) / den],
        axis=1,
    )


class RecordingPen2D(Pen2D):
    """Pen2D that records paths, to replay, close, measure or flatten them later.

    Each path is a list of segments, the first one being the start point:
        (x, y): start point or line
        (x, y, turn_degrees): arc
        (x2, y2, x1, y1, w): conic, end point first
    """

    def __init__(self):
        self.paths = []
        self.tags = []

    def clear(self):
        self.paths.clear()
        self.tags.clear()

    def path_count(self) -> int:
        count = len(self.paths)
        if count > 0 and len(self.paths[-1]) < 2:
            count -= 1
        return count

    def _get_path(self, path_index):
        if path_index < 0 or path_index >= len(self.paths) or len(self.paths[path_index]) < 2:
            raise IndexError(f"Invalid path number {path_index} in RecordingPen2D")
        return self.paths[path_index]

    def replay(self, pen: Pen2D):
        for k in range(self.path_count()):
            self.replay_path(pen, k)

    def replay_path(self, pen: Pen2D, path_index: int):
        path = self._get_path(path_index)
        pen.move(path[0][0], path[0][1], self.tags[path_index])
        for seg in path[1:]:
            if len(seg) == 2:
                pen.line(seg[0], seg[1])
            elif len(seg) == 3:
                pen.arc(seg[0], seg[1], seg[2])
            else:
                pen.conic(seg[2], seg[3], seg[0], seg[1], seg[4])

    def replay_path_reversed(self, pen: Pen2D, path_index: int):
        path = self._get_path(path_index)
        pen.move(path[-1][0], path[-1][1], self.tags[path_index])
        for k in range(len(path) - 1, 0, -1):
            seg = path[k]
            prex, prey = path[k - 1][0], path[k - 1][1]
            if len(seg) == 2:
                pen.line(prex, prey)
            elif len(seg) == 3:
                pen.arc(prex, prey, -seg[2])
            else:
                pen.conic(seg[2], seg[3], prex, prey, seg[4])

    def close_path(self, path_index: int, snap_distance: float, snap_prop: float):
        """Exactly close the given path.

        A path that already ends on its start point is left alone. If the end point
        is within `snap_distance` of the start point, and that gap is smaller than
        `snap_prop` times the length of the last segment, the last segment is moved to
        end on the start point. Otherwise a closing line is added.
        """
        if path_index < 0 or path_index >= len(self.paths):
            return
        path = self.paths[path_index]
        if len(path) < 2:
            return
        sx, sy = path[0][0], path[0][1]
        end_seg = path[-1]
        tx, ty = end_seg[0], end_seg[1]
        if sx == tx and sy == ty:
            return
        errx = sx - tx
        erry = sy - ty
        err2 = errx * errx + erry * erry
        if err2 > snap_distance * snap_distance:
            path.append((sx, sy))
            return
        x0, y0 = path[-2][0], path[-2][1]
        lx = tx - x0
        ly = ty - y0
        if err2 >= snap_prop * snap_prop * (lx * lx + ly * ly):
            path.append((sx, sy))
            return
        if len(end_seg) == 5:
            # keep the control point centered on the moved chord
            path[-1] = (sx, sy, end_seg[2] + errx * 0.5, end_seg[3] + erry * 0.5, end_seg[4])
        else:
            path[-1] = (sx, sy, *end_seg[2:])

    def get_path_signed_area_approx(self, path_index: int) -> float:
        """Signed area of the polygon of the path's control points, positive for CCW."""
        path = self._get_path(path_index)
        points = [path[0][:2]]
        for seg in path[1:]:
            if len(seg) == 3:
                tx, ty = points[-1]
                dx = (seg[0] - tx) * 0.5
                dy = (seg[1] - ty) * 0.5
                deflection, _ = conic_arc_params(seg[2])
                points.append((tx + dx - dy * deflection, ty + dy + dx * deflection))
            elif len(seg) == 5:
                points.append((seg[2], seg[3]))
            points.append((seg[0], seg[1]))
        xy = np.asarray(points, dtype=float)
        x = xy[:, 0]
        y = xy[:, 1]
        return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))

    def path_points(self, path_index: int, segments_per_arc: int = 8) -> np.ndarray:
        """Flatten a path into an (n, 2) array of points, sampling arcs and conics."""
        path = self._get_path(path_index)
        out = [np.array([path[0][:2]], dtype=float)]
        tx, ty = path[0][0], path[0][1]
        for seg in path[1:]:
            x, y = seg[0], seg[1]
            if len(seg) == 3 and seg[2] != 0:
                turn = seg[2] * DEG2RAD
                out.append(
                    np.array(
                        [
                            interpolate_arc_turn(tx, ty, x, y, turn, turn * k / segments_per_arc)
                            for k in range(1, segments_per_arc)
                        ]
                        + [(x, y)],
                        dtype=float,
                    )
                )
            elif len(seg) == 5:
                out.append(conic_points(tx, ty, seg[2], seg[3], x, y, seg[4], segments_per_arc))
            else:
                out.append(np.array([(x, y)], dtype=float))
            tx, ty = x, y
        return np.concatenate(out, axis=0)

    def move(self, x, y, tag=None):
        if self.paths and len(self.paths[-1]) < 2:
            # replace a bare move
            self.paths[-1] = []
            self.tags.pop()
        else:
            self.paths.append([])
        self.tags.append(tag)
        self.paths[-1].append((x, y))

    def _current(self, op):
        if not self.paths:
            raise ValueError(f"Pen2D .{op} without .move")
        return self.paths[-1]

    def line(self, x, y):
        self._current("line").append((x, y))

    def arc(self, x, y, turn_degrees):
        self._current("arc").append((x, y, turn_degrees))

    def conic(self, x1, y1, x2, y2, w):
        self._current("conic").append((x2, y2, x1, y1, w))

    def circle(self, x, y, d, tag=None):
        r = d * 0.5
        self.move(x + r, y, tag)
        self.conic(x + r, y + r, x, y + r, ROOT2BY2)
        self.conic(x - r, y + r, x - r, y, ROOT2BY2)
        self.conic(x - r, y - r, x, y - r, ROOT2BY2)
        self.conic(x + r, y - r, x + r, y, ROOT2BY2)
