''' A B-spline surface of degree p in the u direction and degree q in the
v direction is a bivariate vector-valued piecewise polynomial function
of the form

    S(u,v) = sum_(i=0)^(n) sum_(j=0)^(m) (Nip(u) * Njq(v) * Pij)

(a <= u <= b), (c <= v <= d).  The {Pij} form a bidirectional control
net and the {Nip(u)} and {Njq(v)} are the B-spline basis functions
defined on the knot vectors

    U = {a,...,a, u_(p+1),...,u_(r-p-1), b,...,b}

    V = {c,...,c, v_(q+1),...,v_(s-q-1), d,...,d}

where (r = n + p + 1) and (s = m + q + 1).

The control net is stored as an object matrix whose rows follow v and
whose columns follow u, i.e. Pij is found at Pw[j,i].  Every row is
thus the control polygon of a u-directional Curve, and every column the
control polygon of a v-directional Curve.

'''

import logging

import numpy as np

from . import basis
from . import config
from . import curve
from . import knot
from . import spline


logger = logging.getLogger(__name__)


__all__ = ['Surface',
           'make_surfaces_compatible']


class Surface(spline.SplineObject):

    def __init__(self, cnet, pq, UV=None, colors=None):

        ''' See bspline.spline.SplineObject.

        Parameters
        ----------
        cnet = the xyz (or xyz1) coordinates of the control net, with
               cnet[j][i] the ith control point of the jth row
        pq = the u, v degrees (order p + 1, q + 1) of the Surface
        UV = the u, v knot vectors, each either in compact (Knots) or in
             expanded form; if None, uniform knot vectors are used
        colors = the RGBA colors of the control points

        Examples
        --------

          v|
           |
        P2 ._________. P3
           |         |
           |         |
           |         |
           |         |
        P0 ._________. P1 ____ u

        >>> P0, P1 = (-1,-1, 0), (1,-1, 0)
        >>> P2, P3 = (-1, 1, 0), (1, 1, 0)
        >>> s = Surface([[P0, P1], [P2, P3]], (1, 1))

        '''

        Pw = spline.obj_mat_to_4D(cnet)
        if Pw.ndim != 3:
            raise spline.InvalidControlPoints(Pw.shape)
        p, q = pq
        m, n = Pw.shape[0] - 1, Pw.shape[1] - 1
        if n < p or m < q:
            raise spline.TooFewControlPoints((n, p), (m, q))
        if UV is None:
            UV = knot.uniform_knots(n, p), knot.uniform_knots(m, q)
        U, V = UV
        self._set(Pw, (basis.Basis(q, V), basis.Basis(p, U)), colors)

    def __repr__(self):
        return 'Surface(n={}, u={!r}, v={!r})'.format(self.n, self.ubasis,
                                                      self.vbasis)

    @property
    def ubasis(self):
        return self._bases[1]

    @property
    def vbasis(self):
        return self._bases[0]

    def basis(self, di):
        ''' Get the Basis of the di direction (0 or 1). '''
        if di not in (0, 1):
            raise InvalidDirection(di)
        return self._bases[1-di]

    @property
    def p(self):
        ''' Get the u, v degrees. '''
        return self.ubasis.p, self.vbasis.p

    @property
    def U(self):
        ''' Get the expanded u, v knot vectors. '''
        return self.ubasis.U, self.vbasis.U

    @property
    def knots(self):
        return self.ubasis.knots, self.vbasis.knots

    @property
    def n(self):
        ''' There are (n + 1) x (m + 1) control points. '''
        return self._Pw.shape[1] - 1, self._Pw.shape[0] - 1

    @property
    def domain(self):
        return self.ubasis.domain, self.vbasis.domain

    def var(self):
        ''' Return copies of internal variables. '''
        bu, bv = self.ubasis, self.vbasis
        return (bu.n, bu.p, bu.U.copy(), bv.n, bv.p, bv.U.copy(),
                self._Pw.copy())

    def copy(self):
        ''' Self copy. '''
        return Surface(self._Pw, self.p, self.knots, self._colors)

# EVALUATION OF POINTS AND DERIVATIVES

    def points(self, u, v, du=0, dv=0, both=False):

        ''' Evaluate a point (or a partial derivative) span by span.

        Parameters
        ----------
        u, v = the parameter values of the point
        du, dv = the derivative orders with respect to u and v
        both = whether to return both one-sided derivatives on interior
               knots (see bspline.basis.Basis.evaluate)

        Returns
        -------
        [S] = the xyz coordinates of the point (derivative), one per
              pair of u, v KnotSpans containing (u, v), v varying
              fastest

        '''

        P = self.cpts
        bus = self.ubasis.evaluate(u, du, both=both)
        bvs = self.vbasis.evaluate(v, dv, both=both)
        return [contract(P, bu, bv) for bu in bus for bv in bvs]

    def point(self, u, v, du=0, dv=0, tol=None):

        ''' Evaluate a point (or a partial derivative).

        When u or v lies on an interior knot, the evaluations on all
        adjacent spans must agree within tol, otherwise
        AmbiguousKnotEvaluation is raised.

        Parameters
        ----------
        u, v = the parameter values of the point
        du, dv = the derivative orders with respect to u and v
        tol = the agreement tolerance (default config.KNOT_AGREEMENT_TOL)

        Returns
        -------
        S = the xyz coordinates of the point

        '''

        return spline.resolve_candidates(self.points(u, v, du, dv),
                                         (u, v), tol)

    def eval_point(self, u, v):
        ''' Idem point. '''
        return self.point(u, v)

    def eval_points(self, us, vs):

        ''' Evaluate multiple points.

        Parameters
        ----------
        us, vs = the parameter values of each point

        Returns
        -------
        S = the xyz coordinates of all points, one per row

        '''

        S = [self.point(u, v) for u, v in zip(us, vs)]
        return np.array(S).reshape((-1, 3))

    def eval_derivatives(self, u, v, d):

        ''' Evaluate derivatives at a point, using the left-limit spans
        on interior knots.

        Parameters
        ----------
        u, v = the parameter values of the point
        d = the number of derivatives to evaluate

        Returns
        -------
        SKL = all derivatives, where SKL[k,l,:] is the derivative of
              S(u,v) with respect to u k times and v l times (0 <= k +
              l <= d); the remaining entries are 0

        Source
        ------
        The NURBS Book (2nd Ed.), Pg. 111.

        '''

        P = self.cpts
        SKL = np.zeros((d + 1, d + 1, 3))
        for k in range(d + 1):
            bu = self.ubasis.evaluate(u, k)[0]
            for l in range(d - k + 1):
                bv = self.vbasis.evaluate(v, l)[0]
                SKL[k,l] = contract(P, bu, bv)
        return SKL

# ISOPARAMETRIC CURVES

    def isocurve(self, u=None, v=None, tol=None):

        ''' Extract an isoparametric Curve.  Exactly one of u or v must
        be given; the control net is contracted along that direction
        with the corresponding basis function values.

        Parameters
        ----------
        u = the u value at which to extract a v-directional Curve
        v = the v value at which to extract a u-directional Curve
        tol = the agreement tolerance used on interior knots

        Returns
        -------
        Curve = the extracted Curve

        '''

        if (u is None) == (v is None):
            raise ImproperInput(u, v)
        if v is not None:
            bvs = self.vbasis.evaluate(v)
            Qs = [np.tensordot(bv.values, self._Pw[bv.first:bv.last+1], 1)
                  for bv in bvs]
            Qw = spline.resolve_candidates(Qs, v, tol)
            b = self.ubasis
        else:
            bus = self.ubasis.evaluate(u)
            Qs = [np.tensordot(self._Pw[:,bu.first:bu.last+1], bu.values,
                               ([1], [0])) for bu in bus]
            Qw = spline.resolve_candidates(Qs, u, tol)
            b = self.vbasis
        Qw[:,-1] = 1.0
        return curve.Curve(Qw, b.p, b.knots)

    def lines(self, di):

        ''' Return the control polygons of the net as Curves along the di
        direction, i.e. one u-directional Curve per row (di = 0) or one
        v-directional Curve per column (di = 1).

        '''

        b = self.basis(di)
        if di == 0:
            Pws, Cs = self._Pw, self._colors
        else:
            Pws = self._Pw.transpose((1, 0, 2))
            Cs = self._colors.transpose((1, 0, 2))
        return [curve.Curve(Pw, b.p, b.knots, C) for Pw, C in zip(Pws, Cs)]

    def _set_lines(self, di, Cs):
        ''' Rebuild the net from Curves along the di direction (see
        lines). '''
        Pw = np.array([c.Pw for c in Cs])
        colors = np.array([c.colors for c in Cs])
        if di == 1:
            Pw = Pw.transpose((1, 0, 2))
            colors = colors.transpose((1, 0, 2))
        bases = list(self._bases)
        bases[1-di] = Cs[0].basis.copy()
        self._set(Pw, bases, colors)

# KNOT INSERTION

    def insert(self, u, e=1, di=0):

        ''' Insert a knot in one direction multiple times (IN-PLACE).

        Every row (di = 0) or column (di = 1) of the control net is
        refined as the control polygon of a Curve.

        Parameters
        ----------
        u = the knot value to insert
        e = the number of times to insert u
        di = the parametric direction in which to insert u (0 or 1)

        '''

        if e < 1:
            return
        b = self.basis(di)
        n, p, U = b.n, b.p, b.U
        u = float(knot.clean_knot(u))
        knots = knot.insert_knot(b.knots, p, u, e)
        k, s = basis.find_span_mult(n, p, U, u)
        ax = 1 if di == 0 else 0
        Pw = np.swapaxes(self._Pw, 0, ax)
        U, Qw = curve.curve_knot_ins(n, p, U, Pw, u, k, s, e)
        Qw = np.swapaxes(Qw, 0, ax)
        j, i = curve.removal_window(k + e, s + e, p, e)
        colors = np.insert(self._colors, [j] * e, spline.WHITE, axis=ax)
        bases = list(self._bases)
        bases[1-di] = basis.Basis(p, knots)
        self._set(Qw, bases, colors)

    def refine(self, X, di=0):

        ''' Insert several knots in one direction at once (IN-PLACE).

        Parameters
        ----------
        X = a list of the knots to insert
        di = the parametric direction in which to refine (0 or 1)

        '''

        X = knot.clean_knot(np.asarray(X, dtype=float))
        for x, e in zip(*np.unique(X, return_counts=True)):
            self.insert(x, e, di)

# KNOT REMOVAL

    def remove(self, u, num=1, di=0, d=None):

        ''' Try to remove an interior knot in one direction multiple
        times (IN-PLACE).

        The knot removal algorithm is first tried on every row (di = 0)
        or column (di = 1) of the control net.  The knot is then removed
        from all of them the minimum number of times found, which must
        succeed everywhere for the Surface to be modified.

        Parameters
        ----------
        u = the knot to remove
        num = the number of times to remove u
        di = the parametric direction in which to remove u (0 or 1)
        d = the maximum deviation allowed (default config.REMOVAL_TOL)

        Returns
        -------
        e = the number of times u has been successfully removed; the
            Surface is left untouched if e is 0

        '''

        if d is None:
            d = config.REMOVAL_TOL
        b = self.basis(di)
        u = float(knot.clean_knot(u))
        if num < 1 or b.multiplicity(u) == 0 or u in b.domain:
            return 0
        e = min(c.remove(u, num, d) for c in self.lines(di))
        if e == 0:
            return 0
        Cs = self.lines(di)
        for i, c in enumerate(Cs):
            ei = c.remove(u, e, d)
            if ei != e:
                logger.warning('bspline.surface.remove :: line {} removed '
                               'the knot {} {} times instead of {}'
                               .format(i, u, ei, e))
                return 0
        self._set_lines(di, Cs)
        return e

# MISCELLANEA

    def swap(self):

        ''' Swap the u and v directions.

        Returns
        -------
        Surface = the swapped Surface

        '''

        Pw = self._Pw.transpose((1, 0, 2))
        colors = self._colors.transpose((1, 0, 2))
        (pu, pv), (ku, kv) = self.p, self.knots
        return Surface(Pw, (pv, pu), (kv, ku), colors)

    def reverse(self, di):

        ''' Reverse (flip) the Surface's direction.

        Parameters
        ----------
        di = the reversal direction (0 or 1)

        Returns
        -------
        Surface = the reversed Surface

        '''

        ku, kv = self.knots
        if di == 0:
            ku = knot.reverse_knots(ku)
            Pw, colors = self._Pw[:,::-1], self._colors[:,::-1]
        elif di == 1:
            kv = knot.reverse_knots(kv)
            Pw, colors = self._Pw[::-1], self._colors[::-1]
        else:
            raise InvalidDirection(di)
        return Surface(Pw, self.p, (ku, kv), colors)


def contract(P, bu, bv):
    ''' Contract the block of the net P (rows = v) spanned by the
    BasisValues bu and bv. '''
    B = P[bv.first:bv.last+1, bu.first:bu.last+1]
    return np.einsum('j,i,ji...->...', bv.values, bu.values, B)


# TOOLBOX


def make_surfaces_compatible(Ss):

    ''' Ensure that all Surfaces share the same knot vectors, by
    inserting into each of them, in both directions, the knots it misses
    from the common knots of all Surfaces.

    Parameters
    ----------
    Ss = the Surfaces, all of the same degrees and domains

    Returns
    -------
    Ss = the compatible Surfaces (copies)

    '''

    if not Ss:
        return []
    if any(s.p != Ss[0].p for s in Ss):
        raise spline.NonMatchingDegrees([s.p for s in Ss])
    if any(s.domain != Ss[0].domain for s in Ss):
        raise spline.NonMatchingDomains([s.domain for s in Ss])
    Ss = [s.copy() for s in Ss]
    for di in (0, 1):
        knots = knot.common_knots(*[s.knots[di] for s in Ss])
        for s in Ss:
            X = knot.missing_knots(knots, s.knots[di])
            if len(X):
                s.refine(X, di)
    return Ss


# EXCEPTIONS


class SurfaceException(Exception):
    pass

class ImproperInput(SurfaceException):
    pass

class InvalidDirection(SurfaceException):
    pass
