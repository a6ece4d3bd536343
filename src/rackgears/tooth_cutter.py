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

import logging
import numpy as np
from rackgears.defs import *
from rackgears.arc_utils import search_for_float
from rackgears.pens import Pen
from rackgears.xform import XForm
from rackgears.cut_curves import (
    CutCurve,
    ConstantRadiusCut,
    InvoluteCut,
    TrochoidCut,
    PolarCutSegment,
    PolarPathSample,
)

# samples per interval between break angles when scanning for the innermost cut
SAMPLES_PER_INTERVAL = 4
# winner changes resolved between two samples before giving up on the gap
MAX_SWITCHES = 16
# rack edges closer than this to a direction are treated as parallel to it
EDGE_DIR_EPS = 1e-12
# rack span error tolerated, relative to the pitch
SPAN_TOL = 1e-9


class ToothCutter(Pen):
    """Pen that cuts a gear tooth with the rack drawn into it.

    The rack must be drawn in the gear frame, with its pitch line tangent to the
    pitch circle at (radius, 0) and running along the Y axis, cutter material on
    the +X side. The path has to span exactly one pitch in Y with straight edges.
    The gear is what remains when the rack is rolled on the pitch circle: at every
    polar angle, the tooth boundary is the smallest radius reached by any point of
    the rack in any rolling position.

    The boundary is computed lazily on first access, as a list of polar segments
    covering one tooth pitch centered on the +X axis.

    Parameters
    ----------
    n_teeth : int
        Number of teeth, at least 4.
    radius : float
        Pitch radius.
    face_tolerance : float
        Tessellation tolerance of flanks and lands.
    fillet_tolerance : float
        Tessellation tolerance of the trochoids traced by rack corners.
    """

    def __init__(self, n_teeth: int, radius: float, face_tolerance: float, fillet_tolerance: float):
        if n_teeth < 4:
            raise GearConfigError(f"A gear needs at least 4 teeth, got {n_teeth}")
        self.n_teeth = n_teeth
        self.radius = radius
        self.face_tolerance = face_tolerance
        self.fillet_tolerance = fillet_tolerance
        self.pitch_angle = 2 * PI / n_teeth
        self.xs = []
        self.ys = []
        self._segments = None
        self._samples = None

    def move_to(self, x, y):
        # a new move starts a new rack
        self.xs = [x]
        self.ys = [y]
        self._segments = None

    def arc_to(self, x, y, turn):
        if not self.xs:
            raise ValueError("arc without preceding move in ToothCutter")
        if abs(turn) > STRAIGHT_TURN:
            raise GearGeometryError("ToothCutter only supports racks with straight edges")
        if x == self.xs[-1] and y == self.ys[-1]:
            return
        self.xs.append(x)
        self.ys.append(y)
        self._segments = None

    @property
    def segments(self) -> list[PolarCutSegment]:
        if self._segments is None:
            self._compute()
        return self._segments

    @property
    def samples(self) -> list[PolarPathSample]:
        if self._segments is None:
            self._compute()
        return self._samples

    def _edge_curve(self, ax, ay, bx, by):
        length = np.sqrt((bx - ax) ** 2 + (by - ay) ** 2)
        dx = (bx - ax) / length
        dy = (by - ay) / length
        # edge normal and line offset, normal pointing away from the gear center
        mx = -dy
        my = dx
        k = mx * ax + my * ay
        if my < 0:
            mx, my, k = -mx, -my, -k
        if my < EDGE_DIR_EPS:
            # parallel to the pitch line, cuts a circle
            return ConstantRadiusCut(
                abs(ax),
                min(ay, by) / self.radius,
                max(ay, by) / self.radius,
                self.face_tolerance,
            )
        if abs(mx) < EDGE_DIR_EPS:
            raise GearGeometryError("Rack edge perpendicular to the pitch line cannot cut a tooth")
        base_radius = self.radius * my
        theta0 = np.arctan2(my, mx) - PI / 2 + k / base_radius

        # contact point of involute parameter delta is at distance s along the edge
        def delta_at(px, py):
            s = -my * px + mx * py
            return np.arctan(k / base_radius - (s + base_radius) / (self.radius * mx))

        delta_a = delta_at(ax, ay)
        delta_b = delta_at(bx, by)
        return InvoluteCut(
            base_radius, theta0, min(delta_a, delta_b), max(delta_a, delta_b), self.face_tolerance
        )

    def _build_curves(self) -> list[CutCurve]:
        if len(self.xs) < 3:
            raise GearGeometryError("No rack was drawn into ToothCutter")
        period = self.radius * self.pitch_angle
        span_x = self.xs[-1] - self.xs[0]
        span_y = self.ys[-1] - self.ys[0]
        if abs(span_x) > SPAN_TOL * period or abs(abs(span_y) - period) > SPAN_TOL * period:
            raise GearGeometryError(
                f"Rack must span exactly one pitch ({period}), spans ({span_x}, {span_y})"
            )
        curves = []
        for k in range(len(self.xs) - 1):
            # a land running backwards means the rack flanks cross each other
            if (self.ys[k + 1] - self.ys[k]) * np.sign(span_y) < -SPAN_TOL * period:
                raise GearGeometryError(
                    f"Rack outline turns back at ({self.xs[k]}, {self.ys[k]}), its teeth are too thin"
                )
            if min(self.xs[k], self.xs[k + 1]) <= 0:
                raise GearGeometryError("Rack reaches the gear center, the root circle collapses")
            curves.append(self._edge_curve(self.xs[k], self.ys[k], self.xs[k + 1], self.ys[k + 1]))
        # nothing beyond the outermost rack line survives the cut
        r_max = max(self.xs)
        # the last point repeats the first one, shifted by a pitch
        for ax, ay in zip(self.xs[:-1], self.ys[:-1]):
            v_max = np.sqrt(max(r_max * r_max - ax * ax, 0.0))
            if v_max > 1e-9:
                curves.append(TrochoidCut(ax, ay, self.radius, v_max, self.fillet_tolerance))
        return curves

    def _compute(self):
        curves = self._build_curves()
        alpha = self.pitch_angle
        half = alpha * 0.5

        # each curve, rotated by whole teeth wherever it reaches into the window
        candidates = []
        for curve in curves:
            k_lo = int(np.floor((-half - curve.theta_max) / alpha))
            k_hi = int(np.ceil((half - curve.theta_min) / alpha))
            for k in range(k_lo, k_hi + 1):
                if curve.theta_max + k * alpha < -half or curve.theta_min + k * alpha > half:
                    continue
                candidates.append((curve, k))

        breaks = [-half, half]
        for curve, k in candidates:
            offset = k * alpha
            for theta in (curve.theta_min + offset, curve.theta_max + offset):
                if -half < theta < half:
                    breaks.append(theta)
            breaks.extend(
                theta + offset
                for theta in curve.get_discontinuity_thetas(-half - offset, half - offset)
            )
        breaks = np.unique(breaks)

        def radius_of(index, theta):
            curve, k = candidates[index]
            return curve.get_r(theta - k * alpha)

        def innermost(theta):
            radii = [radius_of(index, theta) for index in range(len(candidates))]
            index = int(np.argmin(radii))
            if not np.isfinite(radii[index]):
                raise GearGeometryError(f"No cutting edge reaches polar angle {theta}")
            return index

        spans = []
        samples = []
        for b0, b1 in zip(breaks[:-1], breaks[1:]):
            if b1 - b0 < 1e-13:
                continue
            current = None
            start = b0
            prev_theta = b0
            for theta in b0 + (b1 - b0) * (np.arange(SAMPLES_PER_INTERVAL) + 0.5) / SAMPLES_PER_INTERVAL:
                winner = innermost(theta)
                curve, k = candidates[winner]
                samples.append(PolarPathSample(theta / alpha, curve, k))
                if current is None:
                    current = winner
                for _ in range(MAX_SWITCHES):
                    if winner == current:
                        break
                    cross = search_for_float(
                        prev_theta,
                        theta,
                        lambda t: radius_of(winner, t) < radius_of(current, t),
                    )[1]
                    spans.append((start, cross, current))
                    start = cross
                    at_cross = innermost(cross)
                    current = winner if at_cross == current else at_cross
                    prev_theta = cross
                else:
                    if winner != current:
                        raise GearGeometryError(
                            f"Innermost cut changes more than {MAX_SWITCHES} times near polar angle {theta}"
                        )
                prev_theta = theta
            spans.append((start, b1, current))

        merged = []
        for start, end, index in spans:
            if end <= start:
                continue
            if merged and merged[-1][2] == index:
                merged[-1][1] = end
            else:
                merged.append([start, end, index])

        self._segments = [
            PolarCutSegment(start / alpha, end / alpha, *candidates[index])
            for start, end, index in merged
        ]
        self._samples = samples
        logging.debug(
            f"Tooth of {self.n_teeth} cut from {len(candidates)} candidate curves "
            f"into {len(self._segments)} polar segments"
        )

    def draw_tooth_path(self, pen: Pen, do_move: bool = True):
        """Draw one tooth pitch, from polar angle -pitch/2 to +pitch/2."""
        alpha = self.pitch_angle
        first = True
        for segment in self.segments:
            target = pen
            if segment.rotation != 0:
                target = XForm().rotate(segment.rotation * 360.0 / self.n_teeth).apply(pen)
            segment.curve.draw_segment(
                target,
                (segment.angle_from - segment.rotation) * alpha,
                (segment.angle_to - segment.rotation) * alpha,
                do_move and first,
            )
            first = False
