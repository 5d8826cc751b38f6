import collections
import time

import numpy as np


def norm(V):
    ''' Find the norm of the vector V (faster than np.linalg.norm).  '''
    return np.sqrt(np.dot(V, V))

def normalize(V):
    ''' Normalize the vector V.  A null vector is returned unchanged. '''
    n = norm(V)
    if n == 0.0:
        return V
    return V / n

def distance(P1, P2):
    ''' Calculate the distance between two points. '''
    return norm(np.asarray(P2, dtype=float) - P1)

def distance_v(P1, P2):
    ''' Idem distance, vectorized in P1 (an (N x 3) array). '''
    P12 = np.asarray(P1, dtype=float) - np.asarray(P2, dtype=float)
    return np.sqrt(np.sum(P12**2, axis=-1))

def cosine(V1, V2):
    ''' Return the absolute cosine of the angle between V1 and V2, or 0.0
    if any of them is a null vector. '''
    den = norm(V1) * norm(V2)
    if den == 0.0:
        return 0.0
    return abs(np.dot(V1, V2)) / den


# BOUNDING BOXES


class BoundingBox(collections.namedtuple('BoundingBox', 'min max')):

    ''' An axis-aligned box given by its two diagonal vertices. '''

    @property
    def size(self):
        return self.max - self.min

    @property
    def center(self):
        return (self.min + self.max) / 2.0

    def contains(self, xyz, tol=0.0):
        xyz = np.asarray(xyz, dtype=float)
        return bool(((self.min - tol <= xyz) & (xyz <= self.max + tol)).all())

    def union(self, other):
        return BoundingBox(np.minimum(self.min, other.min),
                           np.maximum(self.max, other.max))

def bounding_box(P):
    ''' Return the BoundingBox of a set of xyz coordinates (... x 3). '''
    P = np.asarray(P, dtype=float).reshape((-1, 3))
    return BoundingBox(P.min(axis=0), P.max(axis=0))

def bounds(*os):
    ''' Return the global BoundingBox of the given Curves and/or
    Surfaces. '''
    if not os:
        raise EmptyInput()
    bb = os[0].bounding_box()
    for o in os[1:]:
        bb = bb.union(o.bounding_box())
    return bb


# GRIDS


def construct_flat_grid(Us, nums=None):
    ''' Construct a flattened, nonuniform (or optionally uniform)
    two-dimensional parametric grid, u varying fastest. '''
    Us = [np.asarray(U, dtype=float) for U in Us]
    if nums is not None:
        Us = [np.linspace(U[0], U[-1], num)
              for U, num in zip(Us, nums)]
    if len(Us) == 1:
        return Us
    U, V = Us
    us = U[np.newaxis,:].repeat(len(V), axis=0)
    vs = V[:,np.newaxis].repeat(len(U), axis=1)
    return [us.flatten(), vs.flatten()]


# TIMING


class Stopwatch(object):

    ''' Measure the wall-clock duration of a block.

    >>> with Stopwatch() as sw:
    ...     do_something()
    >>> sw.seconds

    '''

    def __init__(self):
        self.start = self.seconds = None

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, *exc):
        self.seconds = time.perf_counter() - self.start
        return False

    def elapsed(self):
        return time.perf_counter() - self.start


# EXCEPTIONS


class UtilException(Exception):
    pass

class EmptyInput(UtilException):
    pass
