''' Point inversion and projection.

Given a point P, the parameter u (or (u, v)) of the point C(u) on a
Curve (S(u,v) on a Surface) closest to P is computed by Newton
iteration on the orthogonality condition

    f(u) = C'(u) . (C(u) - P) = 0

started from the closest of a set of precomputed candidate points.  On
an interior knot the one-sided derivatives of a Curve may differ; the
side whose tangent is closest to orthogonal to the offset C(u) - P is
then retained.

Iterations stop when either

    |C(u) - P| < e1 (point coincidence) or
    |C'(u) . (C(u) - P)| / (|C'(u)| * |C(u) - P|) < e2 (zero cosine)

holds, or when the parameter no longer changes significantly, i.e.
|(u_(i+1) - u_i) * C'(u_i)| < e1.

Source: The NURBS Book (2nd Ed.), Pg. 229.

'''

import collections
import logging

import numpy as np
import scipy.spatial.distance

from . import config
from . import surface
from . import util


logger = logging.getLogger(__name__)


__all__ = ['curve_candidates',
           'invert_curve',
           'invert_surface',
           'invert_surface_points',
           'nearest_parameters',
           'project_curve',
           'project_curves',
           'surface_candidates']


Candidates = collections.namedtuple('Candidates', 'params points')

Inversion = collections.namedtuple('Inversion',
                                   'param point distance converged '
                                   'iterations')

ProjectionResult = collections.namedtuple('ProjectionResult',
                                          'params point projected')


# CANDIDATES


def curve_candidates(C, density=None):

    ''' Sample start values for the inversion of points onto a Curve.
    Every KnotSpan is sampled proportionally to its share of the domain
    (at least once), and the end of the domain is added.

    Parameters
    ----------
    C = the Curve
    density = the number of samples over the whole domain (default
              config.CURVE_CANDIDATE_DENSITY)

    Returns
    -------
    Candidates = the parameters and the corresponding points

    '''

    if density is None:
        density = config.CURVE_CANDIDATE_DENSITY
    a, b = C.domain
    us = []
    for s in C.basis.spans:
        num = max(int(s.length / (b - a) * density), 1)
        us += [s.lower + s.length * k / num for k in range(num)]
    us.append(b)
    us = np.array(us)
    return Candidates(us, C.eval_points(us))


def surface_candidates(S):

    ''' Sample start values for the inversion of points onto a Surface,
    on the tensor grid formed by (p + 2) * 2 samples per KnotSpan in
    each direction (p being the degree of that direction) plus the ends
    of the domain.

    Returns
    -------
    Candidates = the (u, v) parameters and the corresponding points, u
                 varying slowest

    '''

    uvs = []
    for b in S.ubasis, S.vbasis:
        num = (b.p + 2) * 2
        us = [s.lower + s.length * k / num for s in b.spans
              for k in range(num)]
        us.append(b.domain[1])
        uvs.append(us)
    params = np.array([(u, v) for u in uvs[0] for v in uvs[1]])
    return Candidates(params, S.eval_points(params[:,0], params[:,1]))


def closest_candidate(cands, P):
    ''' Return the parameter of the candidate closest to P. '''
    return cands.params[np.argmin(util.distance_v(cands.points, P))]


def _pick_side(Ts, R):
    ''' Index of the one-sided derivative closest to orthogonal to R.
    '''
    return min(range(len(Ts)),
               key=lambda k: abs(np.dot(util.normalize(Ts[k]), R)))


def _bounds(b, u):
    ''' The union of the KnotSpans of the Basis b containing u. '''
    ss = b.containing_spans(u)
    return ss[0].lower, ss[-1].upper


def _clamp(u, bounds):
    return min(max(u, bounds[0]), bounds[1])


# CURVE INVERSION


def invert_curve(C, P, u0=None, span=None, e1=None, e2=None,
                 max_iter=None, candidates=None):

    ''' Find the parameter of the point on a Curve closest to P.

    Parameters
    ----------
    C = the Curve
    P = the xyz coordinates of the point to invert
    u0 = the start value (default: the closest candidate)
    span = the interval (u_min, u_max) the iterates are clamped to
           (default: the KnotSpans containing the closest candidate, or
           the whole domain if u0 is given)
    e1 = the point coincidence tolerance (default config.NEWTON_E1)
    e2 = the zero cosine tolerance (default config.NEWTON_E2)
    max_iter = the maximum number of Newton iterations (default
               config.NEWTON_MAX_ITERATIONS)
    candidates = the precomputed curve_candidates of C

    Returns
    -------
    Inversion = the parameter, the point, its distance to P, whether
                convergence was reached and the number of iterations

    '''

    e1, e2, max_iter = _newton_settings(e1, e2, max_iter)
    P = np.asarray(P, dtype=float)
    if u0 is None:
        if candidates is None:
            candidates = curve_candidates(C)
        u0 = closest_candidate(candidates, P)
        if span is None:
            span = _bounds(C.basis, u0)
    if span is None:
        span = C.domain
    ui = _clamp(u0, span)
    with np.errstate(divide='ignore', invalid='ignore'):
        for it in range(1, max_iter + 1):
            R = C.point(ui) - P
            Ts = C.points(ui, 1, both=True)
            k = _pick_side(Ts, R)
            T, A = Ts[k], C.points(ui, 2, both=True)[k]
            coincident = util.norm(R) < e1
            cos_zero = util.cosine(T, R) < e2
            if coincident and cos_zero:
                return _curve_inversion(C, P, ui, True, it - 1)
            uj = ui
            ui = uj - np.dot(T, R) / (np.dot(A, R) + np.dot(T, T))
            if np.isnan(ui):
                logger.warning('bspline.project.invert_curve :: '
                               'NaN step at u = {}'.format(uj))
                return _curve_inversion(C, P, uj, False, it)
            ui = _clamp(ui, span)
            if util.norm((ui - uj) * T) < e1 or coincident or cos_zero:
                return _curve_inversion(C, P, ui, True, it)
    logger.warning('bspline.project.invert_curve :: no convergence after '
                   '{} iterations'.format(max_iter))
    return _curve_inversion(C, P, ui, False, max_iter)


def _curve_inversion(C, P, u, converged, iterations):
    Cu = C.point(u)
    return Inversion(float(u), Cu, util.distance(Cu, P), converged,
                     iterations)


# CURVE-CURVE NEAREST PARAMETERS


def nearest_parameters(Ca, Cb, uv0=None, spans=None, e1=None, e2=None,
                       max_iter=None, candidates=None):

    ''' Find the parameters (u, v) at which two Curves come closest to
    each other, by Newton iteration on the two orthogonality conditions

        f(u,v) = Ca'(u) . (Ca(u) - Cb(v)) = 0
        g(u,v) = Cb'(v) . (Cb(v) - Ca(u)) = 0

    whose 2 x 2 Jacobian system is solved in closed form.  This is a
    local search; it does not find all intersections of the Curves.

    Parameters
    ----------
    Ca, Cb = the two Curves
    uv0 = the start values (default: the closest pair of candidates)
    spans = the intervals ((u_min, u_max), (v_min, v_max)) the iterates
            are clamped to (see invert_curve)
    e1, e2, max_iter = see invert_curve
    candidates = the precomputed curve_candidates of Ca and Cb

    Returns
    -------
    Inversion = the parameters (u, v), the midpoint of Ca(u) and Cb(v),
                the distance between them, whether convergence was
                reached and the number of iterations

    '''

    e1, e2, max_iter = _newton_settings(e1, e2, max_iter)
    if uv0 is None:
        if candidates is None:
            candidates = curve_candidates(Ca), curve_candidates(Cb)
        ca, cb = candidates
        D = scipy.spatial.distance.cdist(ca.points, cb.points)
        i, j = np.unravel_index(np.argmin(D), D.shape)
        uv0 = ca.params[i], cb.params[j]
        if spans is None:
            spans = _bounds(Ca.basis, uv0[0]), _bounds(Cb.basis, uv0[1])
    if spans is None:
        spans = Ca.domain, Cb.domain
    ui, vi = _clamp(uv0[0], spans[0]), _clamp(uv0[1], spans[1])
    with np.errstate(divide='ignore', invalid='ignore'):
        for it in range(1, max_iter + 1):
            R = Cb.point(vi) - Ca.point(ui)
            TAs, TBs = Ca.points(ui, 1, both=True), Cb.points(vi, 1, both=True)
            ka, kb = _pick_side(TAs, R), _pick_side(TBs, -R)
            TA, TB = TAs[ka], TBs[kb]
            AA = Ca.points(ui, 2, both=True)[ka]
            BB = Cb.points(vi, 2, both=True)[kb]
            coincident = util.norm(R) < e1
            cos_zero = (util.cosine(TA, R) < e2 and
                        util.cosine(TB, R) < e2)
            if coincident and cos_zero:
                return _pair_inversion(Ca, Cb, ui, vi, True, it - 1)
            uj, vj = ui, vi
            a = np.dot(AA, R) - np.dot(TA, TA)
            b = np.dot(TA, TB)
            c = -np.dot(BB, R) - np.dot(TB, TB)
            n = -np.dot(TA, R)
            m = np.dot(TB, R)
            den = b * b - a * c
            ui = uj + (b * m - c * n) / den
            vi = vj + (b * n - a * m) / den
            if np.isnan(ui) or np.isnan(vi):
                logger.warning('bspline.project.nearest_parameters :: '
                               'NaN step at (u, v) = ({}, {})'
                               .format(uj, vj))
                return _pair_inversion(Ca, Cb, uj, vj, False, it)
            ui, vi = _clamp(ui, spans[0]), _clamp(vi, spans[1])
            if util.norm((ui - uj) * TA + (vi - vj) * TB) < e1:
                return _pair_inversion(Ca, Cb, ui, vi, True, it)
            if coincident or cos_zero:
                return _pair_inversion(Ca, Cb, uj, vj, True, it)
    logger.warning('bspline.project.nearest_parameters :: no convergence '
                   'after {} iterations'.format(max_iter))
    return _pair_inversion(Ca, Cb, ui, vi, False, max_iter)


def _pair_inversion(Ca, Cb, u, v, converged, iterations):
    A, B = Ca.point(u), Cb.point(v)
    return Inversion((float(u), float(v)), (A + B) / 2.0,
                     util.distance(A, B), converged, iterations)


# SURFACE INVERSION


def invert_surface(S, P, uv0=None, spans=None, e1=None, e2=None,
                   max_iter=None, candidates=None):

    ''' Find the parameters (u, v) of the point on a Surface closest to
    P, by Newton iteration on

        f(u,v) = Su(u,v) . (S(u,v) - P) = 0
        g(u,v) = Sv(u,v) . (S(u,v) - P) = 0

    Parameters
    ----------
    S = the Surface
    P = the xyz coordinates of the point to invert
    uv0 = the start values (default: the closest candidate)
    spans = the intervals ((u_min, u_max), (v_min, v_max)) the iterates
            are clamped to (see invert_curve)
    e1, e2, max_iter = see invert_curve
    candidates = the precomputed surface_candidates of S

    Returns
    -------
    Inversion = the parameters (u, v), the point, its distance to P,
                whether convergence was reached and the number of
                iterations

    Source
    ------
    The NURBS Book (2nd Ed.), Pg. 232.

    '''

    e1, e2, max_iter = _newton_settings(e1, e2, max_iter)
    P = np.asarray(P, dtype=float)
    if uv0 is None:
        if candidates is None:
            candidates = surface_candidates(S)
        uv0 = closest_candidate(candidates, P)
        if spans is None:
            spans = _bounds(S.ubasis, uv0[0]), _bounds(S.vbasis, uv0[1])
    if spans is None:
        spans = S.domain
    ui, vi = _clamp(uv0[0], spans[0]), _clamp(uv0[1], spans[1])
    with np.errstate(divide='ignore', invalid='ignore'):
        for it in range(1, max_iter + 1):
            R = S.point(ui, vi) - P
            Su, Sv, Suu, Suv, Svv = _surface_derivatives(S, ui, vi, R)
            coincident = util.norm(R) < e1
            cos_zero = (util.cosine(Su, R) < e2 and
                        util.cosine(Sv, R) < e2)
            if coincident and cos_zero:
                return _surface_inversion(S, P, ui, vi, True, it - 1)
            uj, vj = ui, vi
            a = np.dot(Su, Su) + np.dot(R, Suu)
            b = np.dot(Su, Sv) + np.dot(R, Suv)
            c = np.dot(Sv, Sv) + np.dot(R, Svv)
            n, m = -np.dot(R, Su), -np.dot(R, Sv)
            den = b * b - a * c
            ui = uj + (b * m - c * n) / den
            vi = vj + (b * n - a * m) / den
            if np.isnan(ui) or np.isnan(vi):
                logger.warning('bspline.project.invert_surface :: '
                               'NaN step at (u, v) = ({}, {})'
                               .format(uj, vj))
                return _surface_inversion(S, P, uj, vj, False, it)
            ui, vi = _clamp(ui, spans[0]), _clamp(vi, spans[1])
            if (util.norm((ui - uj) * Su + (vi - vj) * Sv) < e1 or
                    coincident or cos_zero):
                return _surface_inversion(S, P, ui, vi, True, it)
    logger.warning('bspline.project.invert_surface :: no convergence '
                   'after {} iterations'.format(max_iter))
    return _surface_inversion(S, P, ui, vi, False, max_iter)


def _surface_derivatives(S, u, v, R):
    ''' Evaluate Su, Sv, Suu, Suv and Svv at (u, v), retaining on
    interior knots the one-sided derivatives closest to orthogonal to R.
    '''
    contract = surface.contract
    P = S.cpts
    bus = [S.ubasis.evaluate(u, k, both=True) for k in range(3)]
    bvs = [S.vbasis.evaluate(v, l, both=True) for l in range(3)]
    iu = _pick_side([contract(P, bu, bvs[0][0]) for bu in bus[1]], R)
    iv = _pick_side([contract(P, bus[0][0], bv) for bv in bvs[1]], R)
    Su = contract(P, bus[1][iu], bvs[0][iv])
    Sv = contract(P, bus[0][iu], bvs[1][iv])
    Suu = contract(P, bus[2][iu], bvs[0][iv])
    Suv = contract(P, bus[1][iu], bvs[1][iv])
    Svv = contract(P, bus[0][iu], bvs[2][iv])
    return Su, Sv, Suu, Suv, Svv


def _surface_inversion(S, P, u, v, converged, iterations):
    Suv = S.point(u, v)
    return Inversion((float(u), float(v)), Suv, util.distance(Suv, P),
                     converged, iterations)


def invert_surface_points(S, Ps, candidates=None, **kwargs):

    ''' Invert several points onto a Surface, sharing one set of
    candidates.  The keyword arguments are passed on to invert_surface.

    Returns
    -------
    [Inversion] = one Inversion per point

    '''

    if candidates is None:
        candidates = surface_candidates(S)
    return [invert_surface(S, P, candidates=candidates, **kwargs)
            for P in Ps]


# CURVE PROJECTION


def project_curve(S, C, count=None, shift=0.0, candidates=None, **kwargs):

    ''' Project a Curve onto a Surface, sample by sample.  The Curve is
    sampled at

        u_k = a + (k + shift) * (b - a) / (count + 1)    k = 1,...,count

    where [a, b] is its domain, and every sample is inverted onto the
    Surface.  The keyword arguments are passed on to invert_surface.

    Parameters
    ----------
    S = the Surface
    C = the Curve to project
    count = the number of samples (default
            config.PROJECTION_SAMPLE_COUNT)
    shift = the shift of the samples, as a fraction of a step (0 <=
            shift < 1)
    candidates = the precomputed surface_candidates of S

    Returns
    -------
    [ProjectionResult] = the (u, v) parameters, the Curve point and the
                         projected Surface point of every sample

    '''

    if count is None:
        count = config.PROJECTION_SAMPLE_COUNT
    if not 0.0 <= shift < 1.0:
        raise InvalidShift(shift)
    if candidates is None:
        candidates = surface_candidates(S)
    a, b = C.domain
    step = (b - a) / (count + 1)
    prs = []
    for k in range(1, count + 1):
        Cu = C.point(a + (k + shift) * step)
        inv = invert_surface(S, Cu, candidates=candidates, **kwargs)
        prs.append(ProjectionResult(inv.param, Cu, inv.point))
    return prs


def project_curves(S, Cs, count=None, shift=0.0, candidates=None,
                   **kwargs):
    ''' Idem project_curve, for several Curves at once; the results are
    concatenated. '''
    if candidates is None:
        candidates = surface_candidates(S)
    prs = []
    for C in Cs:
        prs += project_curve(S, C, count, shift, candidates, **kwargs)
    return prs


def _newton_settings(e1, e2, max_iter):
    if e1 is None:
        e1 = config.NEWTON_E1
    if e2 is None:
        e2 = config.NEWTON_E2
    if max_iter is None:
        max_iter = config.NEWTON_MAX_ITERATIONS
    return e1, e2, max_iter


# EXCEPTIONS


class ProjectionException(Exception):
    pass

class InvalidShift(ProjectionException):
    pass
