"""Surface approximation and guidance tests."""

import numpy as np
import pytest

from bspline import basis
from bspline import curve
from bspline import fit
from bspline import knot
from bspline import linalg


def plane_samples(num=8):
    us = np.linspace(0, 1, num)
    return [((u, v), (u, v, 0.5 * u - 0.25 * v)) for u in us for v in us]


class TestBasisMatrix:
    def test_column_index(self):
        bu = basis.Basis(1, [(0, 2), (1, 2)])
        bv = basis.Basis(2, [(0, 3), (1, 3)])

        N = fit.surface_basis_matrix([(1.0, 0.0), (0.0, 1.0)], bu, bv)

        assert N.shape == (2, 6)
        assert np.allclose(N[0], [0, 1, 0, 0, 0, 0])
        assert np.allclose(N[1], [0, 0, 0, 0, 1, 0])

    def test_rows_sum_to_one(self, rng):
        bu = basis.Basis(3, [(0, 4), (0.5, 1), (1, 4)])
        bv = basis.Basis(2, [(0, 3), (0.3, 1), (1, 3)])

        N = fit.surface_basis_matrix(rng.rand(20, 2), bu, bv)

        assert np.allclose(N.sum(axis=1), 1.0)


class TestApproximation:
    def test_plane_is_reproduced(self, context):
        bu = basis.Basis(2, [(0, 3), (0.5, 1), (1, 3)])
        bv = basis.Basis(2, [(0, 3), (1, 3)])

        S = fit.approximate(plane_samples(), bu, bv, context)

        assert S.n == (3, 2)
        for u, v in [(0.1, 0.2), (0.7, 0.9), (0.5, 0.5)]:
            assert np.allclose(S.point(u, v), (u, v, 0.5 * u - 0.25 * v))
        assert "solve_spd" in [r.name for r in context.records]

    def test_rank_deficient(self):
        bu = basis.Basis(1, [(0, 2), (0.5, 1), (1, 2)])
        bv = basis.Basis(1, [(0, 2), (1, 2)])
        samples = [((0.1, 0.1), (0, 0, 0)), ((0.2, 0.3), (0, 0, 1))]

        with pytest.raises(linalg.NotPositiveDefinite):
            fit.approximate(samples, bu, bv)


class TestConstrainedFit:
    def test_pinned_rows(self, rng):
        N = rng.rand(12, 5)
        S = rng.rand(12, 3)
        M = np.zeros((2, 5))
        M[0, 0] = M[1, 4] = 1.0
        T = np.array([[1.0, 2.0, 3.0], [-1.0, 0.0, 1.0]])

        P = fit.fit_constrained(N, S, np.ones(12), M, T)

        assert np.allclose(P[0], T[0])
        assert np.allclose(P[4], T[1])

    def test_unconstrained_is_least_squares(self, rng):
        N = rng.rand(12, 4)
        S = rng.rand(12, 3)

        P = fit.fit_constrained(N, S, np.ones(12), np.zeros((0, 4)),
                                np.zeros((0, 3)))

        assert np.allclose(P, np.linalg.lstsq(N, S, rcond=None)[0])

    def test_weights(self, rng):
        N = rng.rand(6, 2)
        S = rng.rand(6, 3)
        W = np.array([1.0, 1.0, 1e6, 1.0, 1.0, 1.0])

        P = fit.fit_constrained(N, S, W, np.zeros((0, 2)), np.zeros((0, 3)))

        assert np.allclose(np.dot(N[2], P), S[2], atol=1e-3)

    def test_dependent_constraints_are_dropped(self, rng):
        N = rng.rand(12, 5)
        S = rng.rand(12, 3)
        M = np.zeros((3, 5))
        M[0, 1] = M[1, 1] = 1.0
        M[2, 2] = 1.0

        P = fit.fit_constrained(N, S, np.ones(12), M, np.zeros((3, 3)))

        assert np.allclose(P[1], 0.0) and np.allclose(P[2], 0.0)

    def test_independent_rows(self):
        M = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 1.0, 0.0],
                      [0.0, 0.0, 2.0]])

        rows = fit.independent_rows(M)

        assert len(rows) == 3
        assert 3 in rows


class TestDeviationSurface:
    def test_constraint_matrix(self):
        bu = basis.Basis(2, [(0, 3), (0.25, 1), (0.5, 1), (0.75, 1), (1, 3)])
        bv = basis.Basis(2, [(0, 3), (0.5, 1), (1, 3)])

        M = fit.constraint_matrix(bu, bv, [0.5], [0.5])

        nu, nv = bu.count, bv.count
        assert M.shape == (2 * nv + 2 * (nu - 2) + (nu - 2) + (nv - 2),
                           nu * nv)

    def test_vanishes_on_boundary_and_isos(self):
        iso = [0.0, 0.5, 1.0]
        bu, bv = fit.deviation_bases(2, 2, iso, iso)
        devs = [((u, v), (0, 0, np.sin(np.pi * u) * np.sin(np.pi * v)))
                for u in (0.2, 0.3, 0.7, 0.8) for v in (0.2, 0.3, 0.7, 0.8)]

        D = fit.deviation_surface(bu, bv, devs, [0.5], [0.5])

        for t in np.linspace(0, 1, 11):
            for uv in [(t, 0.0), (t, 1.0), (0.0, t), (1.0, t), (0.5, t),
                       (t, 0.5)]:
                assert np.allclose(D.point(*uv), 0.0, atol=1e-8)
        assert D.point(0.25, 0.25)[2] > 0.1


class TestGuidance:
    def test_guide_towards_bump(self, flat_patch):
        samples = [((u, v), (u, v, 0.2)) for u in (0.4, 0.5, 0.6)
                   for v in (0.4, 0.5, 0.6)]

        g = fit.guide(flat_patch, samples)

        assert g.original is flat_patch
        assert g.max_error < 0.2
        assert g.mean_error <= g.max_error
        for t in np.linspace(0, 1, 5):
            assert abs(g.modified.point(t, 0.0)[2]) < 1e-8
            assert abs(g.modified.point(1.0, t)[2]) < 1e-8

    def test_guide_keeps_isocurves(self, flat_patch):
        samples = [((u, v), (u, v, 0.1)) for u in (0.2, 0.7)
                   for v in (0.3, 0.8)]

        g = fit.guide(flat_patch, samples, [0.0, 0.5, 1.0], [0.0, 1.0])

        for v in np.linspace(0, 1, 7):
            assert abs(g.modified.point(0.5, v)[2]) < 1e-8

    def test_no_samples(self, flat_patch):
        with pytest.raises(fit.NoSamples):
            fit.guide(flat_patch, [])

    def test_invalid_isos(self, flat_patch):
        with pytest.raises(fit.InvalidIsoParameters):
            fit.guide(flat_patch, [((0.5, 0.5), (0.5, 0.5, 1))], [0.1, 1.0])

    def test_guide_pcurve(self, flat_patch):
        pcurve = curve.make_linear_curve((0.2, 0.5, 0), (1.3, 0.5, 0))
        target = curve.make_linear_curve((0.2, 0.5, 0.1), (1.3, 0.5, 0.1))

        g = fit.guide_pcurve(flat_patch, pcurve, target, count=11)

        assert g.max_error < 0.1
        assert g.modified.point(0.5, 0.5)[2] > 0.0

    def test_error_controlled(self, flat_patch):
        samples = [((u, v), (u, v, 0.3 * np.sin(np.pi * u) *
                             np.sin(np.pi * v)))
                   for u in np.linspace(0.1, 0.9, 5)
                   for v in np.linspace(0.1, 0.9, 5)]

        g, history = fit.guide_error_controlled(flat_patch, samples,
                                                tolerance=0.05,
                                                max_iterations=10)

        assert history.max_errors[0] > 0.05
        assert len(history.max_errors) == len(history.seconds)
        assert history.knots[0].iteration == 0
        assert g.max_error == history.max_errors[-1]

    def test_error_controlled_within_tolerance(self, flat_patch):
        samples = [((0.5, 0.5), (0.5, 0.5, 0.01))]

        g, history = fit.guide_error_controlled(flat_patch, samples,
                                                tolerance=0.1)

        assert g.modified is flat_patch
        assert history.max_errors == pytest.approx([0.01])

    def test_refine_span(self):
        knots = knot.as_knots([(0.0, 2), (0.5, 1), (1.0, 2)])
        uvs = [(0.6, 0.6), (0.9, 0.2), (0.1, 0.1)]

        uk, vk = fit.refine_span(uvs, [0.5, 0.2, 0.01], 0.1, knots, knots,
                                 1, 1)

        assert len(uk) == 4 and len(vk) == 4
        assert 0.5 < uk[2].value < 1.0
