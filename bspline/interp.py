''' Global interpolation of point sequences and lofting (skinning) of
section curves.

Both operations set up the same (K + 1) x (K + 1) collocation system

    Qk = C(ubk) = sum_(i=0)^(K) (Nip(ubk) * Pi)    k = 0,...,K

where the {ubk} are the parameters assigned to the data and the knot
vector is obtained by averaging them.  Interpolation solves it once with
three right-hand sides (x, y, z); lofting solves it once per control
point index of the (compatible) sections.

'''

import collections
import logging

import numpy as np

from . import basis
from . import config
from . import curve
from . import knot
from . import linalg
from . import spline
from . import surface


logger = logging.getLogger(__name__)


__all__ = ['chord_length_param',
           'interpolate',
           'loft',
           'sections_param']


Interpolation = collections.namedtuple('Interpolation', 'curve params')

Loft = collections.namedtuple('Loft', 'surface params sections blend')


# PARAMETERIZATION


def chord_length_param(Q):
    ''' See bspline.knot.chord_length_param. '''
    return knot.chord_length_param(Q)


def sections_param(Cs):

    ''' Compute chord length parameters for a sequence of section
    Curves, each section being represented by the centroid of its
    control points.

    Parameters
    ----------
    Cs = the section Curves

    Returns
    -------
    vk = the parameters of the sections, in [0, 1]

    '''

    Q = [np.mean(c.cpts, axis=0) for c in Cs]
    return knot.chord_length_param(Q)


def check_params(uk, num):
    ''' Check that num parameters are given in nondecreasing order. '''
    uk = np.asarray(uk, dtype=float)
    if uk.ndim != 1 or len(uk) != num:
        raise NonMatchingParameters(uk, num)
    if (np.diff(uk) < 0.0).any():
        raise NonMatchingParameters(uk)
    return uk


def collocation_matrix(uk, p):

    ''' Build the Basis of degree p whose knot vector averages the
    parameters uk, together with the collocation matrix A[k,i] =
    Nip(ubk).

    Repeated parameters yield identical rows, which is reported as a
    SingularMatrix straight away since the averaged knot vector would be
    invalid anyway.

    '''

    if (np.diff(uk) == 0.0).any():
        raise linalg.SingularMatrix(uk)
    b = basis.Basis(p, knot.average_knots(uk, p))
    return b, b.matrix(uk)


# INTERPOLATION


def interpolate(Q, uk=None, p=None, context=None):

    ''' Construct a Curve interpolating the points Q.

    Parameters
    ----------
    Q = the points to interpolate, one per row (at least 2)
    uk = the parameter values of the points (default: chord length)
    p = the ideal degree of the interpolant (default
        config.IDEAL_DEGREE); it is clamped to (len(Q) - 1)
    context = the NumericContext to use

    Returns
    -------
    Interpolation = the interpolating Curve together with the
                    parameters used

    Source
    ------
    The NURBS Book (2nd Ed.), Pg. 369.

    '''

    Q = spline.obj_mat_to_3D(Q)
    if Q.ndim != 2 or len(Q) < 2:
        raise NotEnoughDataPoints(Q)
    if p is None:
        p = config.IDEAL_DEGREE
    if context is None:
        context = linalg.NumericContext('interpolate')
    if uk is None:
        uk = knot.chord_length_param(Q)
    uk = check_params(uk, len(Q))
    p = min(len(Q) - 1, p)
    b, A = collocation_matrix(uk, p)
    P = context.solve(A, Q)
    return Interpolation(curve.Curve(P, p, b.knots), uk)


# LOFTING


def loft(Cs, vk=None, blend='v', p=None, context=None):

    ''' Skin a Surface through a set of section Curves.

    The sections are first made compatible.  A degree is then chosen
    for the blending direction, and (n + 1) interpolations are carried
    out across the control points of the sections, so that the sections
    become isoparametric curves of the Surface.

    Parameters
    ----------
    Cs = the section Curves (at least 2), all of the same degree and
         domain
    vk = the parameters of the sections (default: sections_param)
    blend = the parametric direction ('u' or 'v') across which the
            sections are blended; with 'v' the sections are u-isocurves
            S(u, vk), with 'u' they are v-isocurves S(uk, v)
    p = the ideal blending degree (default config.IDEAL_DEGREE)
    context = the NumericContext to use

    Returns
    -------
    Loft = the lofted Surface, the section parameters, the compatible
           sections and the blending direction

    Source
    ------
    The NURBS Book (2nd Ed.), Pg. 457.

    '''

    if blend not in ('u', 'v'):
        raise InvalidBlendDirection(blend)
    if len(Cs) < 2:
        raise NotEnoughSections(len(Cs))
    ps = [c.basis.p for c in Cs]
    if len(set(ps)) != 1:
        raise spline.NonMatchingDegrees(ps)
    if p is None:
        p = config.IDEAL_DEGREE
    if context is None:
        context = linalg.NumericContext('loft')
    if vk is None:
        vk = sections_param(Cs)
    vk = check_params(vk, len(Cs))
    p = min(len(Cs) - 1, p)
    Cs = curve.make_curves_compatible(Cs)
    b, A = collocation_matrix(vk, p)
    sb = Cs[0].basis
    Q = np.array([c.cpts for c in Cs])
    P = np.zeros(Q.shape)
    for i in range(Q.shape[1]):
        P[:,i] = context.solve(A, Q[:,i])
    logger.debug('bspline.interp.loft :: {} sections, {} control points '
                 'each, blending in {}'.format(len(Cs), Q.shape[1], blend))
    if blend == 'v':
        S = surface.Surface(P, (sb.p, p), (sb.knots, b.knots))
    else:
        S = surface.Surface(P.transpose((1, 0, 2)), (p, sb.p),
                            (b.knots, sb.knots))
    return Loft(S, vk, Cs, blend)


# EXCEPTIONS


class InterpolationException(Exception):
    pass

class NotEnoughSections(InterpolationException):
    pass

class NotEnoughDataPoints(InterpolationException):
    pass

class NonMatchingParameters(InterpolationException):
    pass

class InvalidBlendDirection(InterpolationException):
    pass
