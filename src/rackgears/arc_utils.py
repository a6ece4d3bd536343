'''
Copyright 2024 Gergely Bencsik
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at
    http://www.apache.org/licenses/LICENSE-2.0
Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
'''

import numpy as np
from typing import Callable


def vec_length(dx, dy):
    return np.sqrt(dx * dx + dy * dy)


def distance(x1, y1, x2, y2):
    return vec_length(x2 - x1, y2 - y1)


def angle_from_to(fromx, fromy, tox, toy):
    '''
    Measure the angle from vector 1 to vector 2.
    Result is in (-PI, PI]. From +x to +y is PI/2.
    '''
    return np.arctan2(fromx * toy - fromy * tox, fromx * tox + fromy * toy)


def radius_from_distance(chord_distance, turn):
    '''
    Circle radius from the straight-line (chord) distance and the turn angle.
    The radius has the same sign as the turn.
    Check that the turn is significant before calling this.
    '''
    return chord_distance * 0.5 / np.sin(turn * 0.5)


def center_distance_factor(turn):
    '''
    Distance from the chord midpoint to the circle center, in chord lengths.
    Sign is the same as the turn, the center is at
    (midx - dy * fac, midy + dx * fac).
    Check that the turn is significant before calling this.
    '''
    return 0.5 / np.tan(turn * 0.5)


def bulge_factor(turn):
    '''
    Maximum distance from the chord to the arc, in chord lengths.
    Sign is opposite to the turn, the arc midpoint is at
    (midx - dy * fac, midy + dx * fac).
    '''
    return np.tan(turn * 0.25) * -0.5


def arc_length_factor(turn):
    '''Arc length / chord length for a given turn angle.'''
    if turn == 0:
        return 1.0
    # r*theta / (2*r*sin(theta/2))
    return turn * 0.5 / np.sin(turn * 0.5)


def versine(theta):
    '''1-cos(theta), stable for small angles.'''
    x = np.sin(theta * 0.5)
    return 2.0 * x * x


def point_from_cross_factor(x1, y1, x2, y2, cfac):
    dx = x2 - x1
    dy = y2 - y1
    return x1 + dx * 0.5 - dy * cfac, y1 + dy * 0.5 + dx * cfac


def point_from_forward_and_cross_factors(x1, y1, x2, y2, ffac, cfac):
    dx = x2 - x1
    dy = y2 - y1
    return x1 + dx * ffac - dy * cfac, y1 + dy * ffac + dx * cfac


def arc_midpoint(x1, y1, x2, y2, turn):
    return point_from_cross_factor(x1, y1, x2, y2, bulge_factor(turn))


def arc_center(x1, y1, x2, y2, turn):
    '''
    Center of the circle of an arc.
    Check that the turn is significant before calling this.
    '''
    return point_from_cross_factor(x1, y1, x2, y2, center_distance_factor(turn))


def interpolate_arc_turn(x1, y1, x2, y2, turn, target_turn):
    '''
    Find the point on an arc where the direction has turned by target_turn.

    The calculation is done on a unit circle arc with the same turn, then mapped onto
    the p1-p2 chord, so it stays stable for very small turns. It still only makes
    sense for arcs with a meaningful turn.

    Parameters
    ----------
    x1, y1 : float
        Start point of the arc.
    x2, y2 : float
        End point of the arc.
    turn : float
        Total turn along the arc, positive turns +X toward +Y.
    target_turn : float
        Turn at which to break the arc, between 0 and turn.

    Returns
    -------
    tuple
        x and y coordinates of the point.
    '''
    halfturn = turn * 0.5
    # unit circle arc from heading -halfturn to +halfturn, in chord coordinates
    # (forward along the chord, cross to the left of it)
    chord = 2.0 * np.sin(halfturn)
    fwd = np.sin(target_turn - halfturn) + np.sin(halfturn)
    cross = versine(target_turn - halfturn) - versine(halfturn)
    return point_from_forward_and_cross_factors(
        x1, y1, x2, y2, fwd / chord, cross / chord
    )


def search_for_float(false_val: float, true_val: float, predicate: Callable, max_iter=200):
    '''
    Bisect between a value where predicate is False and one where it is True.

    The two inputs can be in any order. Iteration stops when the midpoint can no
    longer be distinguished from the ends in floating point.

    Returns
    -------
    tuple
        (last value found False, first value found True)
    '''
    lo = false_val
    hi = true_val
    for _ in range(max_iter):
        mid = lo + (hi - lo) * 0.5
        if mid == lo or mid == hi:
            break
        if predicate(mid):
            hi = mid
        else:
            lo = mid
    return lo, hi
