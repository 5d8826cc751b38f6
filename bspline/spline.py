import numpy as np

from . import config
from . import util


# Default RGBA color of a control point.
WHITE = (1.0, 1.0, 1.0, 1.0)


class SplineObject(object):

    ''' A SplineObject is meant to be subclassed into either a B-spline
    Curve or Surface.  It is fully defined by an object matrix and one
    Basis per parametric direction.

    An object matrix, denoted by Pw, is a matrix that contains the 4D
    homogeneous coordinates of all control points of the SplineObject,
    i.e. Pw[i,:] = (xi, yi, zi, 1) for Curves and Pw[i,j,:] for Surfaces.
    All weights are fixed at unity; they are only kept so that control
    points can be combined uniformly.  Each control point also carries an
    RGBA color, stored in a matrix of the same shape.

    '''

    def _set(self, Pw, bases, colors=None):
        ''' Replace the object matrix, Bases and colors, checking their
        consistency. '''
        Pw = obj_mat_to_4D(Pw)
        n = tuple(s - 1 for s in Pw.shape[:-1])
        if len(n) != len(bases):
            raise InvalidControlPoints(Pw.shape, len(bases))
        for ni, b in zip(n, bases):
            if ni < b.p:
                raise TooFewControlPoints(ni, b.p)
            if ni != b.n:
                raise NonMatchingControlPointCount(ni + 1, b.count)
        if colors is None:
            colors = np.empty(Pw.shape)
            colors[...] = WHITE
        else:
            colors = np.array(colors, dtype=float)
            if colors.shape != Pw.shape:
                raise InvalidControlPoints(colors.shape, Pw.shape)
        self._Pw, self._bases, self._colors = Pw, tuple(bases), colors

    @property
    def bases(self):
        ''' Get the Basis of each parametric direction. '''
        return self._bases

    @property
    def p(self):
        ''' Get the degree(s). '''
        return tuple(b.p for b in self._bases)

    @property
    def U(self):
        ''' Get the expanded knot vector(s). '''
        return tuple(b.U for b in self._bases)

    @property
    def Pw(self):
        ''' Get a read-only view of the object matrix. '''
        Pw = self._Pw.view()
        Pw.flags.writeable = False
        return Pw

    @property
    def cpts(self):
        ''' Get the xyz coordinates of all control points. '''
        return obj_mat_to_3D(self._Pw)

    @property
    def colors(self):
        ''' Get a copy of the control point colors. '''
        return self._colors.copy()

    def set_cpoint(self, ij, xyz):
        ''' Move the control point ij (an index or a tuple of indices).
        '''
        self._Pw[ij] = obj_mat_to_4D(xyz)

    def set_color(self, ij, rgba):
        ''' Recolor the control point ij. '''
        self._colors[ij] = rgba

    def bounding_box(self):
        ''' Get the BoundingBox of the control points, which, by the
        convex hull property, also bounds the SplineObject. '''
        return util.bounding_box(self.cpts)

    def isequivalent(self, other, TOL=1e-8):
        ''' Is self equivalent to another SplineObject? '''
        if self.p != other.p:
            return False
        if self._Pw.shape != other._Pw.shape:
            return False
        for U1, U2 in zip(self.U, other.U):
            if U1.shape != U2.shape or not np.allclose(U1, U2, atol=TOL):
                return False
        return np.allclose(self._Pw, other._Pw, atol=TOL)

    def var(self):
        ''' Return copies of internal variables. '''
        v = ()
        for b in self._bases:
            v += b.n, b.p, b.U.copy()
        v += self._Pw.copy(),
        return v


def resolve_candidates(Cs, u, tol=None):

    ''' Reduce the span-wise evaluations Cs of a SplineObject at u to a
    single result.  When u lies on an interior knot, the evaluations of
    its adjacent spans must all agree within tol, in which case their
    average is returned.

    '''

    if tol is None:
        tol = config.KNOT_AGREEMENT_TOL
    if len(Cs) == 1:
        return Cs[0]
    C0 = Cs[0]
    dist = max(util.norm(np.ravel(C - C0)) for C in Cs[1:])
    if dist > tol:
        raise AmbiguousKnotEvaluation(u, Cs, dist)
    return sum(Cs) / float(len(Cs))


def obj_mat_to_3D(Pw):
    ''' Convert a 4D (homogeneous) object matrix to a 3D object matrix,
    i.e. a (... x 4) to a (... x 3) matrix. '''
    Pw = np.asarray(Pw, dtype=float)
    if Pw.shape[-1] == 3:
        return Pw.copy()
    return Pw[...,:-1] / Pw[...,-1:]

def obj_mat_to_4D(P):
    ''' Idem obj_mat_to_3D, vice versa.  All weights are set to unity;
    a 4D matrix must already have unit weights. '''
    P = np.array(P, dtype=float)
    s = P.shape
    if s[-1] == 4:
        if not np.allclose(P[...,-1], 1.0):
            raise RationalSplineObjectDetected(P[...,-1])
        P[...,-1] = 1.0
        return P
    if s[-1] != 3:
        raise InvalidControlPoints(s)
    Pw = np.ones(s[:-1] + (4,))
    Pw[...,:-1] = P
    return Pw


# EXCEPTIONS


class SplineException(Exception):
    pass

class InvalidControlPoints(SplineException):
    pass

class TooFewControlPoints(SplineException):
    pass

class NonMatchingControlPointCount(SplineException):
    pass

class RationalSplineObjectDetected(SplineException):
    pass

class NonMatchingDegrees(SplineException):
    pass

class NonMatchingDomains(SplineException):
    pass

class AmbiguousKnotEvaluation(SplineException):

    ''' The evaluations of the spans adjacent to an interior knot differ
    by more than the agreement tolerance, e.g. because the SplineObject
    is discontinuous there. '''

    def __init__(self, u, candidates, dist):
        super(AmbiguousKnotEvaluation, self).__init__(u, dist)
        self.u, self.candidates, self.distance = u, candidates, dist
