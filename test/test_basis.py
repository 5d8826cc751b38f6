"""Basis function evaluation tests."""

import numpy as np
import pytest

from bspline import basis
from bspline import knot


BASES = [
    (1, [(0, 2), (0.5, 1), (1, 2)]),
    (2, [(0, 3), (0.5, 1), (1, 3)]),
    (2, [(0, 3), (0.3, 2), (0.6, 1), (1, 3)]),
    (3, [(0, 4), (0.2, 1), (0.5, 3), (0.8, 1), (1, 4)]),
    (4, [(-1, 5), (2, 5)]),
]


class TestPartitionOfUnity:
    @pytest.mark.parametrize("p, knots", BASES)
    def test_values_sum_to_one(self, p, knots):
        b = basis.Basis(p, knots)
        a, z = b.domain

        for u in np.linspace(a, z, 101):
            for bv in b.evaluate(u):
                assert abs(bv.values.sum() - 1.0) < 1e-5
                assert (bv.values >= -1e-12).all()

    @pytest.mark.parametrize("p, knots", BASES)
    def test_derivatives_sum_to_zero(self, p, knots):
        b = basis.Basis(p, knots)
        a, z = b.domain

        for u in np.linspace(a, z, 37):
            assert abs(b.row(u, 1).sum()) < 1e-8

    @pytest.mark.parametrize("p, knots", BASES)
    def test_derivative_above_degree_vanishes(self, p, knots):
        b = basis.Basis(p, knots)
        a, z = b.domain
        inner = [v for v, m in knots[1:-1]]

        for u in list(np.linspace(a, z, 23)) + inner:
            for bv in b.evaluate(u, p + 1, both=True):
                assert len(bv.values) == p + 1
                assert not bv.values.any()
            assert not b.row(u, p + 1).any()

    def test_matches_single_function(self):
        b = basis.Basis(3, [(0, 4), (0.2, 1), (0.5, 2), (0.8, 1), (1, 4)])

        for u in [0.0, 0.1, 0.3, 0.55, 0.99]:
            R = b.row(u)
            for i in range(b.count):
                assert abs(R[i] - basis.one_basis_fun(3, b.U, i, u)) < 1e-10


class TestSpans:
    def test_find_span(self):
        U = np.array([0, 0, 0, 1, 2, 3, 4, 4, 5, 5, 5], dtype=float)

        assert basis.find_span(7, 2, U, 2.5) == 4
        assert basis.find_span(7, 2, U, 5.0) == 7
        assert basis.find_span_mult(7, 2, U, 4.0) == (7, 2)

    def test_interior_knot_values_return_both_spans(self):
        b = basis.Basis(2, [(0, 3), (0.5, 1), (1, 3)])

        assert len(b.evaluate(0.5)) == 2
        assert len(b.evaluate(0.25)) == 1
        assert len(b.evaluate(1.0)) == 1

    def test_interior_knot_derivatives_use_left_span(self):
        b = basis.Basis(2, [(0, 3), (0.5, 1), (1, 3)])

        bvs = b.evaluate(0.5, 1)
        assert len(bvs) == 1
        assert bvs[0].span.upper == 0.5

    def test_both_forces_two_spans(self):
        b = basis.Basis(2, [(0, 3), (0.5, 2), (1, 3)])

        left, right = b.evaluate(0.5, 1, both=True)
        assert left.span.upper == 0.5 and right.span.lower == 0.5

    def test_snaps_onto_knots(self):
        b = basis.Basis(2, [(0, 3), (0.5, 1), (1, 3)])

        assert len(b.evaluate(0.5 + 1e-12)) == 2


class TestBasis:
    def test_count(self):
        b = basis.Basis(2, [0, 0, 0, 0.5, 1, 1, 1])

        assert b.count == 4 and b.n == 3 and b.order == 3

    def test_caches_follow_knots(self):
        b = basis.Basis(2, [(0, 3), (1, 3)])
        assert len(b.spans) == 1

        b.knots = [(0, 3), (0.5, 1), (1, 3)]

        assert b.dirty
        assert len(b.spans) == 2
        assert not b.dirty

    def test_matrix(self):
        b = basis.Basis(2, [(0, 3), (0.5, 1), (1, 3)])

        M = b.matrix([0.0, 0.5, 1.0])
        assert M.shape == (3, 4)
        assert np.allclose(M[0], [1, 0, 0, 0])
        assert np.allclose(M[-1], [0, 0, 0, 1])

    def test_samples_are_cached(self):
        b = basis.Basis(2, [(0, 3), (0.5, 1), (1, 3)])

        sss = b.samples(8)
        assert sss is b.samples(8)
        assert sss[0].N.shape == (8, 3)
        assert np.allclose(sss[0].N.sum(axis=1), 1.0)

    def test_invalid_degree(self):
        b = basis.Basis(2, [(0, 3), (1, 3)])

        with pytest.raises(basis.InvalidDegree):
            b.evaluate(0.5, p=3)

    def test_invalid_derivative_order(self):
        b = basis.Basis(2, [(0, 3), (1, 3)])

        with pytest.raises(basis.InvalidDerivativeOrder):
            b.evaluate(0.5, -1)

    def test_unclamped_knots(self):
        with pytest.raises(knot.UnclampedKnotVector):
            basis.Basis(2, [(0, 2), (1, 3)])

    def test_equality(self):
        assert basis.Basis(1, [0, 0, 1, 1]) == basis.Basis(1, [(0, 2),
                                                               (1, 2)])
        assert basis.Basis(1, [0, 0, 1, 1]) != basis.Basis(2, [(0, 3),
                                                               (1, 3)])
