''' Least-squares approximation of scattered samples by B-spline
surfaces, and guidance of existing surfaces towards target samples.

A sample is a triple (uv, xyz, w): the parameters at which the surface
should pass through the point xyz, with a weight w.  Given a pair of
bases, the control points P (flattened row by row, i.e. P[j*ucount+i]
is the ith control point of the jth row) are found by solving

    N P = S    (in the weighted least-squares sense)
    M P = T    (exactly)

where N[k,j*ucount+i] = Nj(v_k) * Ni(u_k), S holds the sample points,
and M, T express linear constraints on the control points.

Guiding a surface amounts to fitting a deviation surface, which is zero
along the boundary and along a set of isoparametric curves, to the
offsets between the target samples and the surface, and then adding it
to the surface.

'''

import collections
import logging

import numpy as np
import scipy.linalg

from . import basis
from . import config
from . import knot
from . import linalg
from . import project
from . import surface
from . import util


logger = logging.getLogger(__name__)


__all__ = ['approximate',
           'deviation_surface',
           'fit_constrained',
           'guide',
           'guide_error_controlled',
           'guide_pcurve',
           'surface_basis_matrix']


class Sample(collections.namedtuple('Sample', 'uv xyz weight')):

    ''' A parameterized target point. '''

    def __new__(cls, uv, xyz, weight=1.0):
        return super(Sample, cls).__new__(cls, tuple(uv),
                                          np.asarray(xyz, dtype=float),
                                          float(weight))


Guidance = collections.namedtuple('Guidance',
                                  'original modified mean_error max_error')

GuidanceHistory = collections.namedtuple('GuidanceHistory',
                                         'max_errors knots seconds')

KnotRecord = collections.namedtuple('KnotRecord', 'iteration uknots vknots')


def as_samples(samples):
    ''' Convert (uv, xyz) or (uv, xyz, w) tuples into Samples. '''
    return [s if isinstance(s, Sample) else Sample(*s) for s in samples]


# LINEAR SYSTEMS


def surface_basis_matrix(uvs, ubasis, vbasis):

    ''' Assemble the matrix N of the tensor product basis functions at
    the parameters uvs, i.e. N[k,j*ucount+i] = Nj(v_k) * Ni(u_k).

    '''

    N = np.zeros((len(uvs), ubasis.count * vbasis.count))
    for k, (u, v) in enumerate(uvs):
        N[k] = np.outer(vbasis.row(v), ubasis.row(u)).ravel()
    return N


def constraint_matrix(ubasis, vbasis, inner_iso_u=(), inner_iso_v=()):

    ''' Assemble the constraints keeping a deviation surface at zero
    along its boundary and along the isoparametric curves located at
    inner_iso_u (v-directional curves) and inner_iso_v (u-directional
    curves).

    The boundary control points are pinned individually: the first and
    last one of every row, then the first and last one of every
    interior column.  Along an inner v* the combinations sum_j (Nj(v*)
    * P[j,i]) of every interior column i are constrained, and likewise
    along an inner u* for every interior row.

    '''

    nu, nv = ubasis.count, vbasis.count
    M = []

    def pin(j, i):
        row = np.zeros(nu * nv)
        row[j*nu+i] = 1.0
        M.append(row)

    for j in range(nv):
        pin(j, 0); pin(j, nu - 1)
    for i in range(1, nu - 1):
        pin(0, i); pin(nv - 1, i)
    for v in inner_iso_v:
        Nv = vbasis.row(v)
        for i in range(1, nu - 1):
            row = np.zeros((nv, nu))
            row[:,i] = Nv
            M.append(row.ravel())
    for u in inner_iso_u:
        Nu = ubasis.row(u)
        for j in range(1, nv - 1):
            row = np.zeros((nv, nu))
            row[j,:] = Nu
            M.append(row.ravel())
    return np.array(M).reshape((-1, nu * nv))


def independent_rows(M, rtol=None):

    ''' Return the (sorted) indices of a maximal set of linearly
    independent rows of M, using a QR decomposition of M^T with column
    pivoting.  The isoparametric constraints of both directions, for
    instance, are dependent wherever their curves cross.

    '''

    if rtol is None:
        rtol = config.CONSTRAINT_RANK_TOL
    if not len(M):
        return np.arange(0)
    R, piv = scipy.linalg.qr(M.T, mode='r', pivoting=True)
    d = np.abs(np.diag(R))
    rank = int(np.sum(d > rtol * d[0])) if d[0] > 0.0 else 0
    return np.sort(piv[:rank])


def approximate(samples, ubasis, vbasis, context=None):

    ''' Approximate samples by a Surface defined on the given bases, by
    solving the normal equations N^T N P = N^T S.

    Parameters
    ----------
    samples = the (uv, xyz) samples
    ubasis, vbasis = the Bases of the Surface
    context = the NumericContext to use

    Returns
    -------
    Surface = the approximating Surface

    '''

    if context is None:
        context = linalg.NumericContext('approximate')
    ss = as_samples(samples)
    N = surface_basis_matrix([s.uv for s in ss], ubasis, vbasis)
    S = np.array([s.xyz for s in ss]).reshape((-1, 3))
    NtN = context.multiply(N, N, ta=True)
    NtS = context.multiply(N, S, ta=True)
    P = context.solve_spd(NtN, NtS)
    return surface_from_solution(P, ubasis, vbasis)


def fit_constrained(N, S, W, M, T, context=None):

    ''' Solve the weighted least-squares problem N P = S subject to the
    constraints M P = T.  With K = N^T W N, the Lagrange multipliers
    satisfy

        (M K^-1 M^T) lambda = M K^-1 N^T W S - T

    after which K P = N^T W S - M^T lambda.  Linearly dependent
    constraint rows are dropped beforehand.

    Parameters
    ----------
    N = the basis matrix (see surface_basis_matrix)
    S = the sample points, one per row
    W = the sample weights (the diagonal of W)
    M, T = the constraints, one per row
    context = the NumericContext to use

    Returns
    -------
    P = the control points, one per row

    Source
    ------
    The NURBS Book (2nd Ed.), Pg. 413.

    '''

    if context is None:
        context = linalg.NumericContext('fit_constrained')
    N, S = np.asarray(N, dtype=float), np.asarray(S, dtype=float)
    WN = N * np.asarray(W, dtype=float)[:,np.newaxis]
    K = context.multiply(N, WN, ta=True)
    NtWS = context.multiply(WN, S, ta=True)
    M = np.asarray(M, dtype=float).reshape((-1, N.shape[1]))
    if not len(M):
        return context.solve_spd(K, NtWS)
    T = np.asarray(T, dtype=float).reshape((len(M), -1))
    keep = independent_rows(M)
    if len(keep) < len(M):
        logger.debug('bspline.fit.fit_constrained :: dropping {} dependent '
                     'constraints'.format(len(M) - len(keep)))
        M, T = M[keep], T[keep]
    Ki = context.inverse_spd(K)
    Mi = context.multiply(M, Ki)
    MiMt = context.multiply(Mi, M, tb=True)
    MiNtWS = context.multiply(Mi, NtWS)
    lam = context.solve(MiMt, MiNtWS - T)
    rhs = context.fma(-1.0, M, lam, 1.0, NtWS.copy(), ta=True)
    return context.solve_spd(K, rhs)


def surface_from_solution(P, ubasis, vbasis):
    ''' Build the Surface whose flattened control points are P. '''
    P = np.asarray(P).reshape((vbasis.count, ubasis.count, 3))
    return surface.Surface(P, (ubasis.p, vbasis.p),
                           (ubasis.knots, vbasis.knots))


# DEVIATION SURFACES


def deviation_bases(p, q, iso_u, iso_v):
    ''' Build the Bases of a deviation Surface able to vanish along the
    isoparametric curves located at iso_u and iso_v. '''
    return (basis.Basis(p, knot.biconstrained_knots(iso_u, p)),
            basis.Basis(q, knot.biconstrained_knots(iso_v, q)))


def deviation_surface(ubasis, vbasis, deviations, inner_iso_u=(),
                      inner_iso_v=(), context=None):

    ''' Fit a deviation Surface to the given offsets.

    Besides the given samples (weight 1), the Surface is pulled towards
    zero at the tensor grid of the Greville abscissae of both bases;
    each of these blank samples is weighted by its squared parametric
    distance to the nearest given sample, capped at 1, so that it
    yields wherever data is available.  The Surface is constrained to
    zero along its boundary and along the inner isoparametric curves.

    Parameters
    ----------
    ubasis, vbasis = the Bases of the deviation Surface
    deviations = the (uv, dxyz) offsets to fit
    inner_iso_u = the u values of the v-directional curves to preserve
    inner_iso_v = the v values of the u-directional curves to preserve
    context = the NumericContext to use

    Returns
    -------
    Surface = the deviation Surface

    '''

    given = as_samples(deviations)
    guv = np.array([s.uv for s in given]).reshape((-1, 2))
    blanks = []
    for u in knot.greville_abscissae(ubasis.p, ubasis.U):
        for v in knot.greville_abscissae(vbasis.p, vbasis.U):
            w = 1.0
            if len(guv):
                d2 = np.sum((guv - (u, v))**2, axis=1)
                w = min(w, np.min(d2))
            blanks.append(Sample((u, v), (0.0, 0.0, 0.0), w))
    ss = blanks + given
    N = surface_basis_matrix([s.uv for s in ss], ubasis, vbasis)
    S = np.array([s.xyz for s in ss])
    W = np.array([s.weight for s in ss])
    M = constraint_matrix(ubasis, vbasis, inner_iso_u, inner_iso_v)
    T = np.zeros((len(M), 3))
    P = fit_constrained(N, S, W, M, T, context)
    return surface_from_solution(P, ubasis, vbasis)


def add_deviation(S, D):
    ''' Add the deviation Surface D to S, once both are made compatible.
    The colors of S are kept. '''
    D, S = surface.make_surfaces_compatible([D, S])
    return surface.Surface(S.cpts + D.cpts, S.p, S.knots, S.colors)


# GUIDANCE


def guide(S, samples, iso_u=None, iso_v=None, context=None):

    ''' Guide a Surface towards target samples while keeping its
    boundary and the isoparametric curves at iso_u and iso_v unchanged.

    Parameters
    ----------
    S = the Surface to guide
    samples = the (uv, xyz) target samples
    iso_u = the u values of the v-directional curves to preserve,
            including both ends of the domain (default: the ends only)
    iso_v = idem iso_u, in v
    context = the NumericContext to use

    Returns
    -------
    Guidance = the original and the guided Surface, together with the
               mean and maximum distances between the targets and the
               guided Surface at the sample parameters

    '''

    ss = as_samples(samples)
    if not ss:
        raise NoSamples()
    iso_u, iso_v = _isos(S, iso_u, iso_v)
    devs = [Sample(s.uv, s.xyz - S.point(*s.uv)) for s in ss]
    ubasis, vbasis = deviation_bases(S.p[0], S.p[1], iso_u, iso_v)
    D = deviation_surface(ubasis, vbasis, devs, iso_u[1:-1], iso_v[1:-1],
                          context)
    Sg = add_deviation(S, D)
    e = np.array([util.distance(s.xyz, Sg.point(*s.uv)) for s in ss])
    return Guidance(S, Sg, e.mean(), e.max())


def guide_pcurve(S, pcurve, target, count=None, iso_u=None, iso_v=None,
                 context=None):

    ''' Guide a Surface towards a target Curve, whose parameters on the
    Surface are given by a proxy Curve living in parameter space (its
    x, y coordinates being u, v).  Both Curves are sampled at the same
    relative parameters, (k / (count + 1)) k = 1,...,count; samples
    falling outside the domain of the Surface are dropped.

    Parameters
    ----------
    S = the Surface to guide
    pcurve = the parameter space proxy Curve
    target = the target Curve
    count = the number of samples (default config.PCURVE_SAMPLE_COUNT)
    iso_u, iso_v, context = see guide

    Returns
    -------
    Guidance = see guide

    '''

    if count is None:
        count = config.PCURVE_SAMPLE_COUNT
    (a, b), (c, d) = pcurve.domain, target.domain
    (u0, u1), (v0, v1) = S.domain
    samples = []
    for k in range(1, count + 1):
        t = float(k) / (count + 1)
        u, v = pcurve.point(a + t * (b - a))[:2]
        if not (u0 <= u <= u1 and v0 <= v <= v1):
            continue
        samples.append(Sample((u, v), target.point(c + t * (d - c))))
    return guide(S, samples, iso_u, iso_v, context)


def guide_error_controlled(S, samples, iso_u=None, iso_v=None,
                           tolerance=None, max_iterations=None,
                           context=None):

    ''' Guide a Surface towards target samples until the maximum error
    falls below tolerance.

    Each iteration fits a deviation Surface on the current deviation
    bases and adds it to the current Surface; the samples are then
    re-inverted onto the result, starting from their previous
    parameters, to measure the new errors.  The error decrease is
    smoothed into a moment; whenever it predicts more than
    config.GUIDE_STEP_THRESHOLD remaining iterations (or the error
    grows), one knot is inserted in each direction of the deviation
    bases, within the span holding the worst sample (see refine_span).

    Parameters
    ----------
    S = the Surface to guide
    samples = the (uv, xyz) target samples
    iso_u, iso_v = see guide
    tolerance = the maximum error allowed (default
                config.GUIDE_TOLERANCE)
    max_iterations = the maximum number of iterations (default
                     config.GUIDE_MAX_ITERATIONS)
    context = the NumericContext to use

    Returns
    -------
    Guidance, GuidanceHistory = the final Guidance together with the
                                maximum error, the elapsed time (in
                                seconds) after each iteration and the
                                deviation knot vectors after each
                                refinement

    '''

    if tolerance is None:
        tolerance = config.GUIDE_TOLERANCE
    if max_iterations is None:
        max_iterations = config.GUIDE_MAX_ITERATIONS
    ss = as_samples(samples)
    if not ss:
        raise NoSamples()
    iso_u, iso_v = _isos(S, iso_u, iso_v)
    p, q = S.p
    uknots = knot.biconstrained_knots(iso_u, p)
    vknots = knot.biconstrained_knots(iso_v, q)
    uvs = [s.uv for s in ss]
    xyzs = [s.xyz for s in ss]
    e = np.array([util.distance(P, S.point(*uv)) for uv, P in zip(uvs, xyzs)])
    history = GuidanceHistory([e.max()], [KnotRecord(0, uknots, vknots)],
                              [0.0])
    if e.max() <= tolerance:
        return Guidance(S, S, e.mean(), e.max()), history
    Sc, moment, ratio = S, None, config.GUIDE_MOMENT_RATIO
    with util.Stopwatch() as sw:
        for it in range(1, max_iterations + 1):
            devs = [Sample(uv, P - Sc.point(*uv)) for uv, P in zip(uvs, xyzs)]
            D = deviation_surface(basis.Basis(p, uknots),
                                  basis.Basis(q, vknots), devs,
                                  iso_u[1:-1], iso_v[1:-1], context)
            Sc = add_deviation(Sc, D)
            invs = [project.invert_surface(
                        Sc, P, uv0=uv,
                        max_iter=config.GUIDE_NEWTON_MAX_ITERATIONS)
                    for uv, P in zip(uvs, xyzs)]
            uvs = [inv.param for inv in invs]
            delta = e.max()
            e = np.array([inv.distance for inv in invs])
            delta -= e.max()
            history.max_errors.append(e.max())
            history.seconds.append(sw.elapsed())
            logger.debug('bspline.fit.guide_error_controlled :: iteration '
                         '{}, max error {}'.format(it, e.max()))
            if e.max() < tolerance:
                return Guidance(S, Sc, e.mean(), e.max()), history
            moment = delta if moment is None else \
                    (1.0 - ratio) * moment + ratio * delta
            if (delta < 0.0 or moment <= 0.0 or
                    (e.max() - tolerance) / moment >
                    config.GUIDE_STEP_THRESHOLD):
                uknots, vknots = refine_span(uvs, e, tolerance, uknots,
                                             vknots, p, q)
                history.knots.append(KnotRecord(it, uknots, vknots))
    logger.warning('bspline.fit.guide_error_controlled :: max error {} '
                   'still above {} after {} iterations'
                   .format(e.max(), tolerance, max_iterations))
    return Guidance(S, Sc, e.mean(), e.max()), history


def refine_span(uvs, errors, tolerance, uknots, vknots, p, q):

    ''' Insert one knot in each direction within the (u, v) span
    holding the worst sample.  Each new knot lies halfway between the
    midpoint of the span and the error-weighted centroid of the samples
    of the span whose error exceeds tolerance.

    Returns
    -------
    uknots, vknots = the refined Knots

    '''

    uvs, errors = np.asarray(uvs, dtype=float), np.asarray(errors)
    um, vm = uvs[np.argmax(errors)]
    us, ue = _span_of(uknots, um)
    vs, ve = _span_of(vknots, vm)
    inside = ((errors > tolerance) &
              (us <= uvs[:,0]) & (uvs[:,0] <= ue) &
              (vs <= uvs[:,1]) & (uvs[:,1] <= ve))
    w = errors[inside] / np.sum(errors[inside])
    cu, cv = np.dot(w, uvs[inside])
    return (_insert_simple(uknots, p, (cu + (us + ue) / 2.0) / 2.0),
            _insert_simple(vknots, q, (cv + (vs + ve) / 2.0) / 2.0))


def _span_of(knots, u):
    values = [k.value for k in knots]
    i = int(np.searchsorted(values, u, side='left')) - 1
    i = min(max(i, 0), len(values) - 2)
    return values[i], values[i+1]


def _insert_simple(knots, p, u):
    u = float(knot.clean_knot(u))
    if not knots[0].value < u < knots[-1].value or \
            knot.find_mult(knots, u) >= p:
        logger.debug('bspline.fit.refine_span :: cannot insert {}'.format(u))
        return knots
    return knot.insert_knot(knots, p, u)


def _isos(S, iso_u, iso_v):
    (a, b), (c, d) = S.domain
    iso_u = [a, b] if iso_u is None else list(iso_u)
    iso_v = [c, d] if iso_v is None else list(iso_v)
    if len(iso_u) < 2 or len(iso_v) < 2:
        raise InvalidIsoParameters(iso_u, iso_v)
    ends = np.array([iso_u[0] - a, iso_u[-1] - b, iso_v[0] - c, iso_v[-1] - d])
    if (np.abs(ends) > config.KNOT_AGREEMENT_TOL).any():
        raise InvalidIsoParameters(iso_u, iso_v)
    # Ends snapped onto the domain
    iso_u[0], iso_u[-1], iso_v[0], iso_v[-1] = a, b, c, d
    return iso_u, iso_v


# EXCEPTIONS


class FitException(Exception):
    pass

class NoSamples(FitException):
    pass

class InvalidIsoParameters(FitException):
    pass
