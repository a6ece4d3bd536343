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
import heapq
import itertools
import numpy as np
from scipy.optimize import brentq
from rackgears.defs import *
from rackgears.arc_utils import (
    angle_from_to,
    arc_center,
    distance,
    radius_from_distance,
)
from rackgears.pens import Pen

# angles closer than this to a domain end are treated as being on it
THETA_EPS = 1e-12
# initial piece size of adaptive tessellation, in polar angle
MAX_PIECE_ANGLE = PI / 32
# hard limit of pieces per tessellated segment
MAX_PIECES = 4096
# constant radius arcs are split above this turn
MAX_ARC_TURN = PI * 0.6


def _solve_monotone(func, lo, hi, target):
    """Solve func(x) = target on [lo, hi] where func is monotone."""
    f_lo = func(lo) - target
    f_hi = func(hi) - target
    if f_lo == 0:
        return lo
    if f_hi == 0:
        return hi
    if np.sign(f_lo) == np.sign(f_hi):
        # target is within THETA_EPS of an end
        return lo if abs(f_lo) < abs(f_hi) else hi
    return brentq(lambda x: func(x) - target, lo, hi, xtol=1e-15, maxiter=200)


@dataclasses.dataclass
class ArcPiece:
    """One arc of a tessellated polar curve, with its error estimate."""

    theta_a: float
    theta_b: float
    pa: tuple
    pm: tuple
    pb: tuple
    turn: float
    error: float


def arc_deviation(pa, pb, turn, p):
    """Distance of point p from the arc (or line) from pa to pb with the given turn."""
    if abs(turn) < 1e-9:
        dx = pb[0] - pa[0]
        dy = pb[1] - pa[1]
        length = np.sqrt(dx * dx + dy * dy)
        if length == 0:
            return distance(pa[0], pa[1], p[0], p[1])
        return abs(dx * (p[1] - pa[1]) - dy * (p[0] - pa[0])) / length
    cx, cy = arc_center(pa[0], pa[1], pb[0], pb[1], turn)
    radius = abs(radius_from_distance(distance(pa[0], pa[1], pb[0], pb[1]), turn))
    return abs(distance(cx, cy, p[0], p[1]) - radius)


class CutCurve:
    """Polar curve of a gear cut, r as a function of theta.

    Subclasses implement `radius_at` on their own domain. `get_r` returns infinity
    outside the domain [theta_min, theta_max].

    Attributes
    ----------
    theta_min, theta_max : float
        Angular domain of the curve, in radians.
    tolerance : float
        Maximum deviation of the tessellated arcs from the curve.
    """

    def __init__(self, theta_min=-np.inf, theta_max=np.inf, tolerance=1e-4):
        self.theta_min = theta_min
        self.theta_max = theta_max
        self.tolerance = tolerance

    def radius_at(self, theta):
        raise NotImplementedError

    def get_r(self, theta):
        if theta < self.theta_min - THETA_EPS or theta > self.theta_max + THETA_EPS:
            return np.inf
        return self.radius_at(min(max(theta, self.theta_min), self.theta_max))

    def get_discontinuity_thetas(self, min_theta, max_theta):
        """Angles strictly between min_theta and max_theta with a tangent break."""
        return []

    def point(self, theta):
        r = self.get_r(theta)
        return (r * np.cos(theta), r * np.sin(theta))

    def draw_segment(self, pen: Pen, theta_from, theta_to, do_initial_move):
        """Draw the curve from theta_from to theta_to as arcs within tolerance.

        When `do_initial_move` is False, the start point is connected to the current
        point of the pen with a line instead.
        """
        sx, sy = self.point(theta_from)
        if do_initial_move:
            pen.move_to(sx, sy)
        else:
            pen.arc_to(sx, sy, 0)
        for piece in self.tessellate(theta_from, theta_to):
            pen.arc_to(piece.pb[0], piece.pb[1], piece.turn)

    def _fit_piece(self, theta_a, theta_b, pa, pb) -> ArcPiece:
        pm = self.point((theta_a + theta_b) * 0.5)
        # an arc turns twice the angle between its chords through an inner point
        turn = 2.0 * angle_from_to(
            pm[0] - pa[0], pm[1] - pa[1], pb[0] - pm[0], pb[1] - pm[1]
        )
        error = max(
            arc_deviation(pa, pb, turn, self.point(theta_a * 0.75 + theta_b * 0.25)),
            arc_deviation(pa, pb, turn, self.point(theta_a * 0.25 + theta_b * 0.75)),
        )
        return ArcPiece(theta_a, theta_b, pa, pm, pb, turn, error)

    def tessellate(self, theta_from, theta_to):
        """Adaptively split the curve into arcs, worst fitting piece first.

        Returns
        -------
        list of ArcPiece
            Pieces ordered from theta_from to theta_to.
        """
        span = theta_to - theta_from
        if abs(span) < THETA_EPS:
            return []
        n_init = max(2, int(np.ceil(abs(span) / MAX_PIECE_ANGLE)))
        thetas = np.linspace(theta_from, theta_to, n_init + 1)
        points = [self.point(theta) for theta in thetas]
        counter = itertools.count()
        queue = []
        for k in range(n_init):
            piece = self._fit_piece(thetas[k], thetas[k + 1], points[k], points[k + 1])
            heapq.heappush(queue, (-piece.error, next(counter), piece))

        while -queue[0][0] > self.tolerance:
            if len(queue) >= MAX_PIECES:
                raise GearGeometryError(
                    f"Tessellation of {type(self).__name__} did not converge "
                    f"within {MAX_PIECES} arcs"
                )
            _, _, piece = heapq.heappop(queue)
            theta_m = (piece.theta_a + piece.theta_b) * 0.5
            for child in (
                self._fit_piece(piece.theta_a, theta_m, piece.pa, piece.pm),
                self._fit_piece(theta_m, piece.theta_b, piece.pm, piece.pb),
            ):
                heapq.heappush(queue, (-child.error, next(counter), child))

        pieces = [entry[2] for entry in queue]
        pieces.sort(key=lambda piece: piece.theta_a * np.sign(span))
        return pieces


class ConstantRadiusCut(CutCurve):
    """Circular cut, made by a rack edge parallel to the pitch line."""

    def __init__(self, r, theta_min=-np.inf, theta_max=np.inf, tolerance=1e-4):
        super().__init__(theta_min, theta_max, tolerance)
        self.r = r

    def radius_at(self, theta):
        return self.r

    def draw_segment(self, pen: Pen, theta_from, theta_to, do_initial_move):
        if abs(theta_to - theta_from) > MAX_ARC_TURN:
            mid = theta_from + (theta_to - theta_from) * 0.5
            self.draw_segment(pen, theta_from, mid, do_initial_move)
            self.draw_segment(pen, mid, theta_to, False)
            return
        sx = np.cos(theta_from) * self.r
        sy = np.sin(theta_from) * self.r
        if do_initial_move:
            pen.move_to(sx, sy)
        else:
            pen.arc_to(sx, sy, 0)
        pen.arc_to(np.cos(theta_to) * self.r, np.sin(theta_to) * self.r, theta_to - theta_from)


class InvoluteCut(CutCurve):
    """Envelope of a sloped rack edge rolled on the pitch circle.

    The envelope is the involute of the circle with radius `base_radius`:

        r(delta) = base_radius / cos(delta)
        theta(delta) = theta0 + delta - tan(delta)

    where delta is limited to the interval in which the contact point stays on the
    rack edge. theta decreases with delta, the cusp on the base circle (delta = 0) is
    a tangent break.
    """

    def __init__(self, base_radius, theta0, delta_lo, delta_hi, tolerance=1e-4):
        self.base_radius = base_radius
        self.theta0 = theta0
        self.delta_lo = delta_lo
        self.delta_hi = delta_hi
        super().__init__(
            self.theta_of_delta(delta_hi), self.theta_of_delta(delta_lo), tolerance
        )

    def theta_of_delta(self, delta):
        return self.theta0 + delta - np.tan(delta)

    def radius_at(self, theta):
        delta = _solve_monotone(self.theta_of_delta, self.delta_lo, self.delta_hi, theta)
        return self.base_radius / np.cos(delta)

    def get_discontinuity_thetas(self, min_theta, max_theta):
        if self.delta_lo < 0 < self.delta_hi and min_theta < self.theta0 < max_theta:
            return [self.theta0]
        return []


class TrochoidCut(CutCurve):
    """Path of a rack corner rolled on the pitch circle.

    The corner is at (ax, ay) when the rack touches the pitch circle at (radius, 0).
    With v = ay - radius * phi as the rolling parameter:

        r(v) = hypot(ax, v)
        theta(v) = (ay - v) / radius + atan2(v, ax)

    Corners inside the pitch circle trace a loop, theta is not monotone in v then.
    The curve is split into monotone branches and `radius_at` picks the smallest
    radius among them. Where the loop turns back, the smallest radius jumps to another
    branch, these angles are reported as discontinuities.
    """

    def __init__(self, ax, ay, radius, v_max, tolerance=1e-4):
        self.ax = ax
        self.ay = ay
        self.radius = radius
        self.v_max = v_max
        turning = []
        if ax < radius:
            v_turn = np.sqrt(ax * (radius - ax))
            turning = [v for v in (-v_turn, v_turn) if -v_max < v < v_max]
        self.turning_thetas = [self.theta_of_v(v) for v in turning]
        bounds = [-v_max, *turning, v_max]
        self.branches = []
        for v_a, v_b in zip(bounds[:-1], bounds[1:]):
            th_a = self.theta_of_v(v_a)
            th_b = self.theta_of_v(v_b)
            self.branches.append((v_a, v_b, min(th_a, th_b), max(th_a, th_b)))
        super().__init__(
            min(branch[2] for branch in self.branches),
            max(branch[3] for branch in self.branches),
            tolerance,
        )

    def theta_of_v(self, v):
        return (self.ay - v) / self.radius + np.arctan2(v, self.ax)

    def radius_at(self, theta):
        best = np.inf
        for v_a, v_b, th_lo, th_hi in self.branches:
            if th_lo - THETA_EPS <= theta <= th_hi + THETA_EPS:
                v = _solve_monotone(self.theta_of_v, v_a, v_b, theta)
                best = min(best, np.sqrt(self.ax * self.ax + v * v))
        return best

    def get_discontinuity_thetas(self, min_theta, max_theta):
        return [theta for theta in self.turning_thetas if min_theta < theta < max_theta]


@dataclasses.dataclass(frozen=True)
class PolarCutSegment:
    """A span of the tooth outline governed by one cut curve.

    Angles are in teeth (1 tooth = one pitch angle), `rotation` rotates the curve
    around the gear axis by whole teeth.
    """

    angle_from: float
    angle_to: float
    curve: CutCurve
    rotation: int


@dataclasses.dataclass(frozen=True)
class PolarPathSample:
    """The cut curve found to be innermost at a sample angle, in teeth."""

    angle: float
    curve: CutCurve
    rotation: int
