''' A pth-degree B-spline curve is defined by

    C(u) = sum_(i=0)^(n) (Nip(u) * Pi)

(a <= u <= b).  The {Pi} are the control points (forming a control
polygon) and the {Nip(u)} are the pth-degree B-spline basis functions
defined on the nonperiodic and nonuniform knot vector

    U = {a,...,a, u_(p+1),...,u_(m-p-1), b,...,b}.

where (m = n + p + 1).

The control points are stored in homogeneous form, Pwi = (xi, yi, zi,
1), so that the algorithms below, which all act linearly on the control
points, treat them as four-dimensional points.

'''

import logging

import numpy as np

from . import basis
from . import config
from . import knot
from . import spline
from . import util


logger = logging.getLogger(__name__)


__all__ = ['Curve',
           'make_composite_curve',
           'make_curves_compatible',
           'make_linear_curve']


class Curve(spline.SplineObject):

    def __init__(self, cpts, p, U=None, colors=None):

        ''' See bspline.spline.SplineObject.

        Parameters
        ----------
        cpts = the xyz (or xyz1) coordinates of the control points
        p = the degree (order p + 1) of the Curve
        U = the knot vector, either in compact (Knots) or in expanded
            form; if None, a uniform knot vector is used
        colors = the RGBA colors of the control points

        Examples
        --------
        >>> P = [(-4, 2, 0), (-2, 3, 1), (0, 4, 2), (2, 3, 1)]
        >>> c = Curve(P, 2, [(0, 3), (0.5, 1), (1, 3)])

        '''

        Pw = spline.obj_mat_to_4D(cpts)
        if Pw.ndim != 2:
            raise spline.InvalidControlPoints(Pw.shape)
        n = Pw.shape[0] - 1
        if n < p:
            raise spline.TooFewControlPoints(n, p)
        if U is None:
            U = knot.uniform_knots(n, p)
        self._set(Pw, (basis.Basis(p, U),), colors)

    def __repr__(self):
        return 'Curve(n={}, {!r})'.format(self.n, self.basis)

    @property
    def basis(self):
        return self._bases[0]

    @property
    def knots(self):
        return self.basis.knots

    @property
    def n(self):
        ''' There are (n + 1) control points. '''
        return self._Pw.shape[0] - 1

    @property
    def domain(self):
        return self.basis.domain

    def copy(self):
        ''' Self copy. '''
        return Curve(self._Pw, self.basis.p, self.basis.knots, self._colors)

# EVALUATION OF POINTS AND DERIVATIVES

    def points(self, u, d=0, both=False):

        ''' Evaluate a point (or a derivative) span by span.

        Parameters
        ----------
        u = the parameter value of the point
        d = the derivative order
        both = whether to return both one-sided derivatives when u lies
               on an interior knot (see bspline.basis.Basis.evaluate)

        Returns
        -------
        [C] = the xyz coordinates of the point (derivative), one per
              KnotSpan containing u

        '''

        P = self.cpts
        return [np.dot(bv.values, P[bv.first:bv.last+1])
                for bv in self.basis.evaluate(u, d, both=both)]

    def point(self, u, d=0, tol=None):

        ''' Evaluate a point (or a derivative).

        If u lies on an interior knot, the point is evaluated on both of
        the knot's adjacent spans, and these evaluations must agree
        within tol, or AmbiguousKnotEvaluation is raised.

        Parameters
        ----------
        u = the parameter value of the point
        d = the derivative order
        tol = the agreement tolerance (default config.KNOT_AGREEMENT_TOL)

        Returns
        -------
        C = the xyz coordinates of the point

        '''

        return spline.resolve_candidates(self.points(u, d), u, tol)

    def eval_point(self, u):
        ''' Idem point. '''
        return self.point(u)

    def eval_points(self, us, d=0):

        ''' Evaluate multiple points.

        Parameters
        ----------
        us = the parameter values of each point
        d = the derivative order

        Returns
        -------
        C = the xyz coordinates of all points, one per row

        '''

        return np.array([self.point(u, d) for u in us]).reshape((-1, 3))

    def eval_derivatives(self, u, d):

        ''' Evaluate derivatives at a point, using the left-limit span
        on interior knots.

        Parameters
        ----------
        u = the parameter value of the point
        d = the number of derivatives to evaluate

        Returns
        -------
        CK = all derivatives, where CK[k,:] is the derivative of C(u)
             with respect to u k times (0 <= k <= d)

        '''

        CK = np.zeros((d + 1, 3))
        for k in range(d + 1):
            CK[k] = self.points(u, k)[0]
        return CK

# KNOT INSERTION

    def insert(self, u, e=1):

        ''' Insert a knot multiple times (IN-PLACE).

        Parameters
        ----------
        u = the knot value to insert, strictly inside the domain
        e = the number of times to insert u

        '''

        if e < 1:
            return
        n, p, U, Pw = self.var()
        u = float(knot.clean_knot(u))
        knots = knot.insert_knot(self.knots, p, u, e)
        k, s = basis.find_span_mult(n, p, U, u)
        U, Pw = curve_knot_ins(n, p, U, Pw, u, k, s, e)
        j, i = removal_window(k + e, s + e, p, e)
        colors = np.insert(self._colors, [j] * e, spline.WHITE, axis=0)
        self._set(Pw, (basis.Basis(p, knots),), colors)

    def refine(self, X):

        ''' Insert several knots at once (IN-PLACE).

        Parameters
        ----------
        X = a list of the knots to insert (repeated values are inserted
            as many times as they appear)

        '''

        X = knot.clean_knot(np.asarray(X, dtype=float))
        for x, e in zip(*np.unique(X, return_counts=True)):
            self.insert(x, e)

    def split(self, u):

        ''' Split the Curve.

        The knot u is first raised to full multiplicity p, after which
        the control points are partitioned at u; both parts share the
        control point located at u.

        Parameters
        ----------
        u = the parameter value at which to split the Curve

        Returns
        -------
        [Curve, Curve] = the two split Curves (or a copy of self only if
                         u is an end of the domain)

        '''

        n, p, U, Pw = self.var()
        u = float(knot.clean_knot(u))
        knot.check_knot(U, u)
        if u == U[0] or u == U[-1]:
            return [self.copy()]
        k, s = basis.find_span_mult(n, p, U, u)
        r = p - s
        colors = self._colors
        if r > 0:
            U, Pw = curve_knot_ins(n, p, U, Pw, u, k, s, r)
            colors = np.insert(colors, k - s, [spline.WHITE] * r, axis=0)
        Ulr = (np.append(U[:k+r+1], u), np.insert(U[k-s+1:], 0, u))
        Pwlr = Pw[:k-s+1], Pw[k-s:]
        Clr = colors[:k-s+1], colors[k-s:]
        return [Curve(Pw, p, U, colors)
                for Pw, U, colors in zip(Pwlr, Ulr, Clr)]

    def split_at(self, us):

        ''' Split the Curve at several parameter values.

        Parameters
        ----------
        us = the parameter values at which to split the Curve; domain
             ends and duplicates are ignored

        Returns
        -------
        Cs = the (len(us) + 1) split Curves, in parametric order

        '''

        a, b = self.domain
        us = np.unique(knot.clean_knot(np.asarray(us, dtype=float)))
        Cs, c = [], self
        for u in us:
            if u <= a or u >= b:
                continue
            cl, c = c.split(u)
            Cs.append(cl)
        Cs.append(c if c is not self else self.copy())
        return Cs

# KNOT REMOVAL

    def remove(self, u, num=1, d=None):

        ''' Try to remove an interior knot multiple times (IN-PLACE).

        Parameters
        ----------
        u = the knot to remove
        num = the number of times to remove u; clipped to the
              multiplicity of u
        d = the maximum deviation allowed (default config.REMOVAL_TOL)

        Returns
        -------
        e = the number of times u has been successfully removed; the
            Curve is left untouched if e is 0, which in particular is
            always the case for end knots

        '''

        if d is None:
            d = config.REMOVAL_TOL
        u = float(knot.clean_knot(u))
        s = self.basis.multiplicity(u)
        a, b = self.domain
        if num < 1 or s == 0 or u in (a, b):
            return 0
        n, p, U, Pw = self.var()
        r = self.basis.indexed_knots[[k.value for k in self.knots].index(u)].last
        e, U, Pw = remove_curve_knot(n, p, U, Pw, u, r, s, min(num, s), d)
        if e:
            colors = np.delete(self._colors, range(*removal_window(r, s, p, e)),
                               axis=0)
            self._set(Pw, (basis.Basis(p, U),), colors)
        return e

# MISCELLANEA

    def reparameterize(self, u0, um):

        ''' Linearly map the domain of the Curve onto [u0, um],
        preserving the relative spacing of the knots.

        Returns
        -------
        Curve = the reparameterized Curve

        '''

        knots = knot.remap_knots(self.knots, u0, um)
        return Curve(self._Pw, self.basis.p, knots, self._colors)

    def reverse(self):

        ''' Reverse the Curve's direction; the domain is unchanged.

        Returns
        -------
        Curve = the reversed Curve

        '''

        knots = knot.reverse_knots(self.knots)
        return Curve(self._Pw[::-1], self.basis.p, knots, self._colors[::-1])


# TOOLBOX


def make_linear_curve(P0, P1, u0=0.0, um=1.0):

    ''' Construct a straight line segment between P0 and P1.

    Parameters
    ----------
    P0, P1 = the xyz coordinates of the end points
    u0, um = the parametric domain

    Returns
    -------
    Curve = the linear Curve

    '''

    return Curve([P0, P1], 1, [(u0, 2), (um, 2)])


def make_composite_curve(Cs, start=None, joints=None, end=None):

    ''' Link a sequence of Curves together, end to end.

    The ith Curve is first mapped onto [t_i, t_(i+1)], where t = [start]
    + joints + [end].  The Curves are then joined by a knot of
    multiplicity p at every joint, the two control points adjoining a
    joint being replaced by their average.  The Curves are thus expected
    to (nearly) share their end points.

    Parameters
    ----------
    Cs = the Curves to link, all of the same degree
    start, end = the parametric domain of the composite Curve (default:
                 the domain of the first Curve, resp. the sum of all
                 domain lengths)
    joints = the (len(Cs) - 1) joint parameter values (default: the
             cumulated domain lengths)

    Returns
    -------
    Curve = the composite Curve

    '''

    if not Cs:
        raise ImproperInput(Cs)
    p = Cs[0].basis.p
    if any(c.basis.p != p for c in Cs):
        raise spline.NonMatchingDegrees([c.basis.p for c in Cs])
    lengths = [c.domain[1] - c.domain[0] for c in Cs]
    if start is None:
        start = Cs[0].domain[0]
    if joints is None:
        joints = list(start + np.cumsum(lengths)[:-1])
    if end is None:
        end = start + sum(lengths)
    if len(joints) != len(Cs) - 1:
        raise ImproperInput(len(joints), len(Cs))
    t = knot.clean_knot(np.array([start] + list(joints) + [end], dtype=float))
    if (np.diff(t) <= 0.0).any():
        raise ImproperInput(t)
    Cs = [c.reparameterize(t[i], t[i+1]) for i, c in enumerate(Cs)]
    knots = Cs[0].knots[:-1]
    Pw, colors = [Cs[0].Pw[:-1]], [Cs[0].colors[:-1]]
    for i in range(1, len(Cs)):
        cl, cr = Cs[i-1], Cs[i]
        gap = util.distance(cl.cpts[-1], cr.cpts[0])
        if gap > config.KNOT_AGREEMENT_TOL:
            logger.debug('bspline.curve.make_composite_curve :: '
                         'averaging seam {} (gap {})'.format(i, gap))
        knots.append(knot.Knot(float(t[i]), p))
        knots += cr.knots[1:-1]
        Pw.append([(cl.Pw[-1] + cr.Pw[0]) / 2.0])
        Pw.append(cr.Pw[1:-1])
        colors.append([(cl.colors[-1] + cr.colors[0]) / 2.0])
        colors.append(cr.colors[1:-1])
    knots.append(knot.Knot(float(t[-1]), p + 1))
    Pw.append(Cs[-1].Pw[-1:]); colors.append(Cs[-1].colors[-1:])
    return Curve(np.vstack(Pw), p, knots, np.vstack(colors))


def make_curves_compatible(Cs):

    ''' Ensure that all Curves are defined on the same knot vector, by
    inserting into each of them the knots it misses from the common
    knots of all Curves.

    Parameters
    ----------
    Cs = the Curves, all of the same degree and domain

    Returns
    -------
    Cs = the compatible Curves (copies)

    '''

    if not Cs:
        return []
    p = Cs[0].basis.p
    if any(c.basis.p != p for c in Cs):
        raise spline.NonMatchingDegrees([c.basis.p for c in Cs])
    if any(c.domain != Cs[0].domain for c in Cs):
        raise spline.NonMatchingDomains([c.domain for c in Cs])
    knots = knot.common_knots(*[c.knots for c in Cs])
    Cs = [c.copy() for c in Cs]
    for c in Cs:
        X = knot.missing_knots(knots, c.knots)
        if len(X):
            c.refine(X)
    return Cs


# HEAVY LIFTING FUNCTIONS

# From here on out most functions are the direct equivalent of the
# pseudo-algorithms found in 'The NURBS Book (2nd Ed.)', hence their
# not-so pythonic nature.


# Knot insertion.
#
#   Let Cw(u) = sum_(i=0)^(n) (Nip(u) * Pwi) be a curve defined on U =
#   {u0,...,um}.  Let ub in [ u_k, u_(k+1) ), and insert ub into U to
#   form the new knot vector Ub.  Then Cw(u) also has a representation
#   of the form Cw(u) = sum_(i=0)^(n+1) (Nbip(u) * Qwi) where the
#   {Nbip(u)} are the pth-degree basis functions on Ub.  Knot insertion
#   is only a change of vector space basis; the curve is not changed,
#   either geometrically or parametrically.  The new control points are
#
#       Qwi = alpha_i * Pwi + (1 - alpha_i) * Pw_(i-1)
#
#   with alpha_i = (ub - u_i) / (u_(i+p) - u_i) for (k-p+1 <= i <= k),
#   alpha_i = 1 below and alpha_i = 0 above that range.


def curve_knot_ins(n, p, UP, Pw, u, k, s, r):

    ''' Compute the new curve corresponding to the insertion of u into
    [u_k, u_(k+1) ) r times, where it is assumed that (r + s <= p), s
    being the initial multiplicity of the knot.  Pw may hold any number
    of coordinates per control point.

    Source: The NURBS Book (2nd Ed.), Pg. 151.

    '''

    m = n + p + 1; nq = n + r
    UQ = np.zeros(m + r + 1)
    Qw = np.zeros((nq + 1,) + Pw.shape[1:])
    Rw = np.zeros((p + 1,) + Pw.shape[1:])
    UQ[:k+1] = UP[:k+1]
    UQ[k+1:k+r+1] = u
    UQ[k+r+1:] = UP[k+1:]
    Qw[:k-p+1] = Pw[:k-p+1]
    Qw[k-s+r:n+r+1] = Pw[k-s:n+1]
    Rw[:p-s+1] = Pw[k-p:k-s+1]
    for j in range(1, r + 1):
        L = k - p + j
        for i in range(p - j - s + 1):
            alpha = (u - UP[L+i]) / (UP[i+k+1] - UP[L+i])
            Rw[i] = alpha * Rw[i+1] + (1.0 - alpha) * Rw[i]
        Qw[L] = Rw[0]
        Qw[k+r-j-s] = Rw[p-j-s]
    Qw[L+1:k-s] = Rw[1:k-s-L]
    return UQ, Qw


# Knot removal.
#
#   Knot removal is the reverse of knot insertion.  Let ur be an
#   interior knot of multiplicity s in U; end knots are not removed.  ur
#   is said to be t times removable if Cw(u) has a precise
#   representation on the knot vector obtained by removing ur t times
#   from U (1 <= t <= s).  The new control points are computed from
#   both ends of the affected range towards its middle, where the two
#   computations must meet within the given tolerance.


def removal_window(r, s, p, num):

    ''' Return the index range [j, i) of the control points that are
    deleted when the knot ur of multiplicity s is removed num times.
    The window starts at (2 * r - s - p) // 2 and grows alternately
    up and down.  Inserting a knot num times at span k, with initial
    multiplicity s, places the new control points at
    removal_window(k + num, s + num, p, num).

    Source: The NURBS Book (2nd Ed.), Pg. 185.

    '''

    j = i = (2 * r - s - p) // 2
    for k in range(1, num):
        if k % 2 == 1:
            i += 1
        else:
            j -= 1
    return j, i + 1


def remove_curve_knot(n, p, U, Pw, u, r, s, num, d):

    ''' Try to remove the knot (u = ur != u_(r+1)) num times, where (1
    <= num <= s).  It returns nr, the actual number of times the knot is
    removed, together with the new knot vector and control points.  The
    acceptance test compares squared distances against d**2.

    Source: The NURBS Book (2nd Ed.), Pg. 185.

    '''

    TOL2 = d**2
    tmp = np.zeros((2 * p + 1,) + Pw.shape[1:])
    U = U.copy(); Pw = Pw.copy()
    m = n + p + 1; o = p + 1
    first = r - p; last = r - s; nr = 0
    for t in range(num):
        off = first - 1
        tmp[0] = Pw[off]; tmp[last+1-off] = Pw[last+1]
        i = first; j = last; ii = 1; jj = last - off
        remflag = False
        while j - i > t:
            alfi = (u - U[i]) / (U[i+o+t] - U[i])
            alfj = (u - U[j-t]) / (U[j+o] - U[j-t])
            tmp[ii] = (Pw[i] - (1.0 - alfi) * tmp[ii-1]) / alfi
            tmp[jj] = (Pw[j] - alfj * tmp[jj+1]) / (1.0 - alfj)
            i += 1; ii += 1; j -= 1; jj -= 1
        if j - i < t:
            if np.sum((tmp[ii-1] - tmp[jj+1])**2) <= TOL2:
                remflag = True
        else:
            alfi = (u - U[i]) / (U[i+o+t] - U[i])
            R = alfi * tmp[ii+t+1] + (1.0 - alfi) * tmp[ii-1]
            if np.sum((Pw[i] - R)**2) <= TOL2:
                remflag = True
        if not remflag:
            break
        nr += 1
        i = first; j = last
        while j - i > t:
            Pw[i], Pw[j] = tmp[i-off], tmp[j-off]
            i += 1; j -= 1
        first -= 1; last += 1
    if nr == 0:
        return nr, U, Pw
    U[r+1-nr:m+1-nr] = U[r+1:m+1]
    j, i = removal_window(r, s, p, nr)
    for k in range(i, n + 1):
        Pw[j] = Pw[k]
        j += 1
    return nr, U[:-nr], Pw[:-nr]


# EXCEPTIONS


class CurveException(Exception):
    pass

class ImproperInput(CurveException):
    pass
