"""Surface evaluation and knot editing tests."""

import numpy as np
import pytest

from bspline import spline
from bspline import surface


GRID = [(u, v) for u in np.linspace(0, 1, 11) for v in np.linspace(0, 1, 13)]


def sample(S):
    return np.array([S.point(u, v) for u, v in GRID])


class TestConstruction:
    def test_net_layout(self, cubic_surface):
        assert cubic_surface.n == (4, 5)
        assert cubic_surface.Pw.shape == (6, 5, 4)
        assert cubic_surface.p == (3, 3)
        assert cubic_surface.ubasis.count == 5
        assert cubic_surface.vbasis.count == 6

    def test_basis_by_direction(self, cubic_surface):
        assert cubic_surface.basis(0) is cubic_surface.ubasis
        assert cubic_surface.basis(1) is cubic_surface.vbasis
        with pytest.raises(surface.InvalidDirection):
            cubic_surface.basis(2)

    def test_too_few_control_points(self):
        with pytest.raises(spline.TooFewControlPoints):
            surface.Surface([[(0, 0, 0), (1, 0, 0)], [(0, 1, 0), (1, 1, 0)]],
                            (2, 1))

    def test_not_a_net(self):
        with pytest.raises(spline.InvalidControlPoints):
            surface.Surface([(0, 0, 0), (1, 0, 0)], (1, 1))

    def test_pw_is_read_only(self, flat_patch):
        with pytest.raises(ValueError):
            flat_patch.Pw[0, 0, 0] = 5.0


class TestEvaluation:
    def test_corners(self, flat_patch):
        assert np.allclose(flat_patch.point(1, 0), (1, 0, 0))
        assert np.allclose(flat_patch.point(0, 1), (0, 1, 0))
        assert np.allclose(flat_patch.point(0.25, 0.5), (0.25, 0.5, 0))

    def test_partials_match_finite_differences(self, cubic_surface):
        h = 1e-6
        u, v = 0.37, 0.71
        Su = (cubic_surface.point(u + h, v) -
              cubic_surface.point(u - h, v)) / (2 * h)
        Sv = (cubic_surface.point(u, v + h) -
              cubic_surface.point(u, v - h)) / (2 * h)

        assert np.allclose(cubic_surface.point(u, v, 1, 0), Su, atol=1e-4)
        assert np.allclose(cubic_surface.point(u, v, 0, 1), Sv, atol=1e-4)

    def test_eval_derivatives(self, cubic_surface):
        SKL = cubic_surface.eval_derivatives(0.2, 0.4, 2)

        assert np.allclose(SKL[0, 0], cubic_surface.point(0.2, 0.4))
        assert np.allclose(SKL[1, 1], cubic_surface.point(0.2, 0.4, 1, 1))
        assert np.allclose(SKL[2, 0], cubic_surface.point(0.2, 0.4, 2, 0))
        assert np.allclose(SKL[1, 2], 0.0)

    def test_knot_crossing_points(self, cubic_surface):
        assert len(cubic_surface.points(0.5, 0.3)) == 4
        assert len(cubic_surface.points(0.5, 0.2)) == 2

    def test_eval_points(self, cubic_surface):
        S = cubic_surface.eval_points([0.1, 0.2], [0.3, 0.4])

        assert S.shape == (2, 3)
        assert np.allclose(S[1], cubic_surface.point(0.2, 0.4))


class TestIsocurves:
    def test_u_directional(self, cubic_surface):
        c = cubic_surface.isocurve(v=0.45)

        assert c.knots == cubic_surface.ubasis.knots
        for u in np.linspace(0, 1, 9):
            assert np.allclose(c.point(u), cubic_surface.point(u, 0.45))

    def test_v_directional_on_knot(self, cubic_surface):
        c = cubic_surface.isocurve(u=0.5)

        assert c.knots == cubic_surface.vbasis.knots
        for v in np.linspace(0, 1, 9):
            assert np.allclose(c.point(v), cubic_surface.point(0.5, v))

    def test_exactly_one_direction(self, cubic_surface):
        with pytest.raises(surface.ImproperInput):
            cubic_surface.isocurve()
        with pytest.raises(surface.ImproperInput):
            cubic_surface.isocurve(0.1, 0.2)

    def test_lines(self, cubic_surface):
        rows, cols = cubic_surface.lines(0), cubic_surface.lines(1)

        assert len(rows) == 6 and len(cols) == 5
        assert np.allclose(rows[2].cpts, cubic_surface.cpts[2])
        assert np.allclose(cols[3].cpts, cubic_surface.cpts[:, 3])


class TestKnotEditing:
    @pytest.mark.parametrize("di", [0, 1])
    def test_insertion_keeps_shape(self, cubic_surface, di):
        S = cubic_surface.copy()
        S.insert(0.45, 2, di)

        assert S.basis(di).count == cubic_surface.basis(di).count + 2
        assert np.allclose(sample(S), sample(cubic_surface), atol=1e-5)

    def test_insertion_colors(self, cubic_surface):
        S = cubic_surface.copy()
        S.insert(0.45, 1, 1)

        assert S.colors.shape == S.Pw.shape

    @pytest.mark.parametrize("di", [0, 1])
    def test_double_insertion_colors(self, cubic_surface, di):
        S = cubic_surface.copy()
        S.set_color((0, 0), (1, 0, 0, 1))
        S.set_color((-1, -1), (0, 0, 1, 1))
        S.insert(0.45, 2, di)

        assert S.colors.shape == S.Pw.shape
        assert np.allclose(S.colors[0, 0], (1, 0, 0, 1))
        assert np.allclose(S.colors[-1, -1], (0, 0, 1, 1))

    @pytest.mark.parametrize("di", [0, 1])
    def test_colors_survive_insert_then_remove(self, cubic_surface, di):
        S = cubic_surface.copy()
        for ij in np.ndindex(S.Pw.shape[:2]):
            S.set_color(ij, (ij[0] / 10.0, ij[1] / 10.0, 0, 1))
        before = S.colors
        S.insert(0.45, 2, di)

        assert S.remove(0.45, 2, di) == 2
        assert np.allclose(S.colors, before)

    def test_refine(self, bezier_surface):
        S = bezier_surface.copy()
        S.refine([0.25, 0.5, 0.5], 0)

        assert [k.multiplicity for k in S.knots[0]] == [3, 1, 2, 3]
        assert np.allclose(sample(S), sample(bezier_surface), atol=1e-5)

    @pytest.mark.parametrize("di", [0, 1])
    def test_remove_after_insert(self, bezier_surface, di):
        S = bezier_surface.copy()
        S.insert(0.5, 1, di)

        assert S.remove(0.5, 1, di) == 1
        assert np.allclose(S.cpts, bezier_surface.cpts)

    def test_remove_takes_minimum_over_lines(self, bezier_surface):
        S = bezier_surface.copy()
        S.insert(0.5, 1, 0)
        S.set_cpoint((1, 1), S.cpts[1, 1] + (0, 0, 1))
        before = S.cpts

        assert S.remove(0.5, 1, 0) == 0
        assert np.allclose(S.cpts, before)
        assert S.ubasis.multiplicity(0.5) == 1

    def test_boundary_knot_is_not_removed(self, bezier_surface):
        assert bezier_surface.copy().remove(0.0, 1, 1) == 0


class TestMiscellanea:
    def test_swap(self, cubic_surface):
        S = cubic_surface.swap()

        assert S.n == (5, 4)
        assert np.allclose(S.point(0.3, 0.6), cubic_surface.point(0.6, 0.3))

    @pytest.mark.parametrize("di", [0, 1])
    def test_reverse(self, cubic_surface, di):
        S = cubic_surface.reverse(di)

        for u, v in GRID:
            ru, rv = (1 - u, v) if di == 0 else (u, 1 - v)
            assert np.allclose(S.point(ru, rv), cubic_surface.point(u, v))

    def test_make_compatible(self, cubic_surface):
        P = cubic_surface.cpts[:, :4]
        other = surface.Surface(P, (3, 3), ([(0, 4), (1, 4)],
                                            cubic_surface.knots[1]))

        S1, S2 = surface.make_surfaces_compatible([cubic_surface, other])

        assert S1.knots == S2.knots
        assert np.allclose(sample(S2), sample(other), atol=1e-5)

    def test_make_compatible_double_knot(self, cubic_surface):
        other = cubic_surface.copy()
        other.insert(0.5, 2, 0)

        S1, S2 = surface.make_surfaces_compatible([cubic_surface, other])

        assert S1.knots == S2.knots
        assert S1.ubasis.multiplicity(0.5) == 3
        assert S1.colors.shape == S1.Pw.shape
        assert np.allclose(sample(S1), sample(cubic_surface), atol=1e-5)

    def test_make_compatible_domain_mismatch(self, bezier_surface):
        other = surface.Surface(bezier_surface.cpts, (2, 2),
                                ([(0, 3), (2, 3)], [(0, 3), (1, 3)]))

        with pytest.raises(spline.NonMatchingDomains):
            surface.make_surfaces_compatible([bezier_surface, other])

    def test_isequivalent(self, cubic_surface):
        assert cubic_surface.isequivalent(cubic_surface.copy())
        assert not cubic_surface.isequivalent(cubic_surface.swap())
