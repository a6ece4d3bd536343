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
from rackgears.defs import *


@runtime_checkable
class Pen(Protocol):
    """Receiver of the internal path protocol.

    A path is a sequence of `move_to` and `arc_to` calls. The `turn` of an arc is the
    total rotation of the drawing direction along the arc, in radians, positive when
    it turns the +X axis toward +Y. A turn of 0 is a straight line.
    """

    def move_to(self, x: float, y: float) -> None:
        pass

    def arc_to(self, x: float, y: float, turn: float) -> None:
        pass


@runtime_checkable
class ResettablePen(Pen, Protocol):
    """Pen that can discard everything it received so far."""

    def reset(self) -> None:
        pass


# path function: path(pen, do_move)
# do_move=False continues an already open path, leading moves are skipped
PathFunc = Callable[[Pen, bool], None]


class RecordingPen(ResettablePen):
    """Pen that stores a path and can replay it forward or reversed.

    Bare moves followed by another move are collapsed. Arcs shorter than
    `DEGENERATE_ARC_SQ` (squared) are dropped, arcs shorter than `STRAIGHT_ARC_SQ`
    are recorded as straight lines.
    """

    def __init__(self):
        self.xs = []
        self.ys = []
        # None for a move, the turn of the arc otherwise
        self.turns = []

    def reset(self):
        self.xs.clear()
        self.ys.clear()
        self.turns.clear()

    def move_to(self, x, y):
        if self.turns and self.turns[-1] is None:
            self.xs.pop()
            self.ys.pop()
            self.turns.pop()
        self.xs.append(x)
        self.ys.append(y)
        self.turns.append(None)

    def arc_to(self, x, y, turn):
        if not self.turns:
            raise ValueError("arc without preceding move in RecordingPen")
        dx = x - self.xs[-1]
        dy = y - self.ys[-1]
        mag2 = dx * dx + dy * dy
        if mag2 < DEGENERATE_ARC_SQ:
            return
        if mag2 < STRAIGHT_ARC_SQ:
            turn = 0
        self.xs.append(x)
        self.ys.append(y)
        self.turns.append(turn)

    def path(self, pen: Pen, do_move: bool = True):
        """Replay the recorded path onto `pen`."""
        i = 0
        if not do_move:
            while i < len(self.turns) and self.turns[i] is None:
                i += 1
        for k in range(i, len(self.turns)):
            turn = self.turns[k]
            if turn is None:
                pen.move_to(self.xs[k], self.ys[k])
            else:
                pen.arc_to(self.xs[k], self.ys[k], turn)

    def reversed_path(self, pen: Pen, do_move: bool = True):
        """Replay the recorded path backwards, with negated turns."""
        n = len(self.turns)
        i = n
        if not do_move:
            # skip the trailing move, and the point where the last arc ends
            while i >= 0 and (i >= n or self.turns[i] is None):
                i -= 1
        while i > 0:
            turn = self.turns[i] if i < n else None
            if turn is None:
                pen.move_to(self.xs[i - 1], self.ys[i - 1])
            else:
                pen.arc_to(self.xs[i - 1], self.ys[i - 1], -turn)
            i -= 1

    def count_segments(self) -> int:
        return sum(1 for turn in self.turns if turn is not None)

    @property
    def points(self):
        return list(zip(self.xs, self.ys))

    def __len__(self):
        return len(self.turns)


class LastPointCapturePen(Pen):
    """Pen that only remembers the last point it was sent."""

    def __init__(self):
        self.x = None
        self.y = None

    def move_to(self, x, y):
        self.x = x
        self.y = y

    def arc_to(self, x, y, turn):
        self.x = x
        self.y = y

    def transfer_move(self, target: Pen) -> bool:
        """Start a path on `target` at the captured point."""
        if self.x is None or self.y is None:
            return False
        target.move_to(self.x, self.y)
        return True
