''' Gordon surfaces, i.e. surfaces interpolating a bidirectional network
of curves.

Let Ck(u) (k = 0,...,r) be the u-sections and Cl(v) (l = 0,...,s) the
v-sections of the network, intersecting at the points

    Qlk = Ck(ul) = Cl(vk)

The Gordon surface is the Boolean sum

    S(u,v) = Lu(u,v) + Lv(u,v) - T(u,v)

where Lu skins the u-sections across v, Lv skins the v-sections across u
and T interpolates the intersection points.  All three surfaces are
made compatible first, so that the sum is carried out on their control
nets.

Real networks rarely meet the compatibility conditions exactly; a
GordonSurface therefore preprocesses its sections: the sections are
oriented consistently, their intersections are located, and every
section is split at its intersections and reassembled so that it
reaches them at common parameter values.

'''

import collections
import logging

import numpy as np

from . import config
from . import curve
from . import fit
from . import interp
from . import knot
from . import linalg
from . import project
from . import spline
from . import surface
from . import util


logger = logging.getLogger(__name__)


__all__ = ['GordonSurface',
           'build_gordon_surface']


GordonConstruction = collections.namedtuple('GordonConstruction',
                                            'u_loft v_loft tensor surface')

GuidanceError = collections.namedtuple('GuidanceError', 'max min mean')


class GordonSurface(object):

    ''' A Gordon surface built from two possibly imperfect families of
    section Curves, optionally guided towards additional Curves.

    Intended usage:

    >>> gs = GordonSurface(u_sections, v_sections, guides)
    >>> S = gs.construct()
    >>> gs.guide(times=2)
    >>> gs.surface

    '''

    def __init__(self, u_sections, v_sections, guides=(), context=None,
                 e1=None, e2=None, sample_count=None, max_iter=None):

        ''' Preprocess the network.

        Parameters
        ----------
        u_sections = the u-directional section Curves, ordered in v (at
                     least 2)
        v_sections = the v-directional section Curves, ordered in u (at
                     least 2)
        guides = the Curves the Surface is guided towards (see guide)
        context = the NumericContext to use
        e1, e2, max_iter = the Newton settings used to intersect the
                           sections and to project the guides (default
                           e2: config.GORDON_E2)
        sample_count = the number of samples per guide Curve (default
                       config.GORDON_SAMPLE_COUNT)

        '''

        if len(u_sections) < 2:
            raise NotEnoughCurves('u', len(u_sections))
        if len(v_sections) < 2:
            raise NotEnoughCurves('v', len(v_sections))
        if context is None:
            context = linalg.NumericContext('gordon')
        if e2 is None:
            e2 = config.GORDON_E2
        if sample_count is None:
            sample_count = config.GORDON_SAMPLE_COUNT
        self.context = context
        self.guides = list(guides)
        self.sample_count = sample_count
        self._newton = dict(e1=e1, e2=e2, max_iter=max_iter)

        self.construction = None
        self.surfaces, self.projections, self.errors = [], [], []

        self._preprocess(list(u_sections), list(v_sections))

    def __repr__(self):
        return ('GordonSurface({} u-sections, {} v-sections, {} guides)'
                .format(len(self.u_sections), len(self.v_sections),
                        len(self.guides)))

    @property
    def surface(self):
        ''' The latest (constructed or guided) Surface. '''
        if not self.surfaces:
            raise NotConstructed()
        return self.surfaces[-1]

# PREPROCESSING

    def _preprocess(self, us, vs):

        ''' Compute the iso parameters, orient the sections, intersect
        them and align them onto the iso parameters. '''

        self.iso_v = interp.sections_param(us)
        self.iso_u = interp.sections_param(vs)
        us = [self._orient(c, vs[0], vs[-1]) for c in us]
        vs = [self._orient(c, us[0], us[-1]) for c in vs]
        self.intersections = self._intersect(us, vs)
        self.Q = np.array([[x.point for x in row]
                           for row in self.intersections])
        inner_u, inner_v = range(1, len(vs) - 1), range(1, len(us) - 1)
        self.u_sections = [
            self._align(c, [self.intersections[j][i].param[1]
                            for j in inner_u], self.iso_u)
            for i, c in enumerate(us)]
        self.v_sections = [
            self._align(c, [self.intersections[j][i].param[0]
                            for i in inner_v], self.iso_v)
            for j, c in enumerate(vs)]

    def _orient(self, C, first, last):
        ''' Reverse C if it meets first after last. '''
        start = project.nearest_parameters(C, first, **self._newton)
        end = project.nearest_parameters(C, last, **self._newton)
        if start.param[0] > end.param[0]:
            logger.debug('bspline.gordon.GordonSurface._orient :: '
                         'reversing {}'.format(C))
            return C.reverse()
        return C

    def _intersect(self, us, vs):

        ''' Locate the intersection of every v-section j with every
        u-section i; X[j][i].param holds the parameters on both Curves
        and X[j][i].point the midpoint of the nearest pair. '''

        ucands = [project.curve_candidates(c) for c in us]
        vcands = [project.curve_candidates(c) for c in vs]
        X = []
        for cv, vc in zip(vs, vcands):
            row = []
            for cu, uc in zip(us, ucands):
                x = project.nearest_parameters(cv, cu, candidates=(vc, uc),
                                               **self._newton)
                if x.distance > 1e-3:
                    logger.warning('bspline.gordon.GordonSurface._intersect '
                                   ':: sections {} apart'.format(x.distance))
                row.append(x)
            X.append(row)
        return X

    def _align(self, C, params, iso):

        ''' Make C reach its intersections at the iso parameters, by
        splitting it at params and mapping the pieces onto the iso
        intervals. '''

        if len(iso) == 2:
            return C.reparameterize(iso[0], iso[-1])
        a, b = C.domain
        params = knot.clean_knot(np.asarray(params, dtype=float))
        if ((np.diff(params) <= 0.0).any() or params[0] <= a or
                params[-1] >= b):
            raise UnorderedIntersections(params)
        pieces = C.split_at(params)
        if len(pieces) != len(iso) - 1:
            raise NonMatchingParameterCount(len(pieces), len(iso) - 1)
        return curve.make_composite_curve(pieces, iso[0], list(iso[1:-1]),
                                          iso[-1])

# CONSTRUCTION

    def construct(self):

        ''' Construct the Gordon Surface from the preprocessed network,
        then project the guide Curves (if any) onto it.

        Returns
        -------
        Surface = the Gordon Surface

        '''

        try:
            self.construction = build_gordon_surface(
                self.u_sections, self.v_sections, self.iso_u, self.iso_v,
                self.Q, self.context)
        except (GordonException, interp.InterpolationException,
                spline.SplineException, linalg.LinAlgException,
                knot.KnotVectorException, curve.CurveException,
                surface.SurfaceException) as e:
            logger.error('bspline.gordon.GordonSurface.construct :: '
                         'construction failed ({!r})'.format(e))
            raise
        self.surfaces = [self.construction.surface]
        self.projections, self.errors = [], []
        if self.guides:
            self._project()
        return self.construction.surface

    def _project(self):
        prs = project.project_curves(self.surface, self.guides,
                                     count=self.sample_count,
                                     **self._newton)
        d = np.array([util.distance(r.point, r.projected) for r in prs])
        self.projections.append(prs)
        self.errors.append(GuidanceError(d.max(), d.min(), d.mean()))

# GUIDANCE

    def guide(self, times=1):

        ''' Guide the Surface towards the guide Curves, times over.

        Every round fits a deviation Surface, vanishing along the
        sections, to the offsets between the guide samples and their
        projections onto the Surface, and adds it to the Surface.  The
        guides are then projected again to measure the new errors.

        Returns
        -------
        [GuidanceError] = the max, min and mean guide errors after every
                          round

        '''

        if not self.surfaces:
            raise NotConstructed()
        if not self.guides:
            raise NoGuideCurves()
        errors = []
        for t in range(times):
            samples = [(r.params, r.point) for r in self.projections[-1]]
            g = fit.guide(self.surface, samples, self.iso_u, self.iso_v,
                          self.context)
            self.surfaces.append(g.modified)
            self._project()
            errors.append(self.errors[-1])
            logger.debug('bspline.gordon.GordonSurface.guide :: round {}, '
                         '{}'.format(t + 1, self.errors[-1]))
        return errors


# TOOLBOX


def build_gordon_surface(Ck, Cl, ul, vk, Q=None, context=None):

    ''' Interpolate a bidirectional Curve network.

    Let

     Ck(u) = sum_(i=0)^(n) (Nip(u) * Pki)  k = 0,...,r
     Cl(v) = sum_(j=0)^(m) (Njq(v) * Plj)  l = 0,...,s

    be two sets of Curves such that all the Ck share a common domain and
    degree, as do all the Cl, and such that there exist parameters (u_0
    < u_1 < ... < u_s) and (v_0 < v_1 < ... < v_r) with

        Qlk = Ck(ul) = Cl(vk)  k = 0,...,r  l = 0,...,s

    The resulting Surface S satisfies S(ul,v) = Cl(v) and S(u,vk) =
    Ck(u).  Its degrees are those of the sections, hence (p + 1)
    v-sections and (q + 1) u-sections are needed at least.

    Parameters
    ----------
    Ck, Cl = the u- and v-sections
    ul, vk = the parameters of the curve intersection points
    Q = the intersection points, Q[l,k] (default: the averages of
        Cl(vk) and Ck(ul))
    context = the NumericContext to use

    Returns
    -------
    GordonConstruction = the two skinned Surfaces, the tensor product
                         interpolant and the Gordon Surface

    Source
    ------
    The NURBS Book (2nd Ed.), Pg. 494.

    '''

    s, r = len(Cl) - 1, len(Ck) - 1
    if len(ul) - 1 != s or len(vk) - 1 != r:
        raise NonMatchingParameterCount(len(ul), len(Cl), len(vk), len(Ck))
    if context is None:
        context = linalg.NumericContext('build_gordon_surface')
    p, q = Ck[0].basis.p, Cl[0].basis.p
    if min(p, s) != p:
        raise NotEnoughCurves('v', s + 1, p + 1)
    if min(q, r) != q:
        raise NotEnoughCurves('u', r + 1, q + 1)
    if Q is None:
        Q = np.zeros((s + 1, r + 1, 3))
        for l in range(s + 1):
            for k in range(r + 1):
                Qlk1, Qlk2 = Cl[l].point(vk[k]), Ck[k].point(ul[l])
                l2n = util.distance(Qlk1, Qlk2)
                if l2n > 1e-3:
                    logger.warning('bspline.gordon.build_gordon_surface :: '
                                   'point inconsistency ({})'.format(l2n))
                Q[l,k] = (Qlk1 + Qlk2) / 2.0
    Q = np.asarray(Q, dtype=float)
    if Q.shape[:2] != (s + 1, r + 1):
        raise NonMatchingParameterCount(Q.shape, s + 1, r + 1)
    Lu = interp.loft(Ck, vk, 'v', q, context).surface
    Lv = interp.loft(Cl, ul, 'u', p, context).surface
    Cq = [interp.interpolate(Q[l], vk, q, context).curve
          for l in range(s + 1)]
    T = interp.loft(Cq, ul, 'u', p, context).surface
    Lu, Lv, Tc = surface.make_surfaces_compatible([Lu, Lv, T])
    P = Lu.cpts + Lv.cpts - Tc.cpts
    S = surface.Surface(P, Lu.p, Lu.knots)
    logger.debug('bspline.gordon.build_gordon_surface :: {} x {} network, '
                 'control net {}'.format(r + 1, s + 1, P.shape[:2]))
    return GordonConstruction(Lu, Lv, T, S)


# EXCEPTIONS


class GordonException(Exception):
    pass

class NotEnoughCurves(GordonException):
    pass

class NonMatchingParameterCount(GordonException):
    pass

class UnorderedIntersections(GordonException):
    pass

class NoGuideCurves(GordonException):
    pass

class NotConstructed(GordonException):
    pass
