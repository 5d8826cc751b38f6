"""Knot vector algebra tests."""

import numpy as np
import pytest

from bspline import knot


class TestConversion:
    def test_compact_round_trip(self):
        U = [0, 0, 0, 0.5, 0.5, 1, 1, 1]
        knots = knot.knot_vec_to_knots(U)

        assert knots == [knot.Knot(0.0, 3), knot.Knot(0.5, 2),
                         knot.Knot(1.0, 3)]
        assert np.allclose(knot.knots_to_knot_vec(knots), U)

    def test_as_knots_accepts_pairs(self):
        knots = knot.as_knots([(0, 3), (0.25, 1), (1, 3)])

        assert knots[1] == knot.Knot(0.25, 1)

    def test_as_knots_rejects_fractional_multiplicity(self):
        with pytest.raises(knot.NonIntegerMultiplicity):
            knot.as_knots([(0, 3), (0.5, 1.5), (1, 3)])

    def test_close_values_merge_when_cleaned(self):
        knots = knot.knot_vec_to_knots([0, 0, 0.3, 0.3 + 1e-12, 1, 1])

        assert knots[1] == knot.Knot(0.3, 2)

    def test_index_knots(self):
        iks = knot.index_knots(knot.as_knots([(0, 3), (0.5, 2), (1, 3)]))

        assert [(ik.first, ik.last) for ik in iks] == [(0, 2), (3, 4),
                                                        (5, 7)]
        spans = knot.knot_spans(iks)
        assert [s.index for s in spans] == [2, 4]
        assert spans[0].contains(0.5) and spans[1].contains(0.5)


class TestChecks:
    def test_unclamped(self):
        with pytest.raises(knot.UnclampedKnotVector):
            knot.check_knots(2, knot.as_knots([(0, 2), (1, 3)]))

    def test_interior_multiplicity(self):
        with pytest.raises(knot.InteriorKnotMultiplicityGreaterThanOrder):
            knot.check_knots(2, knot.as_knots([(0, 3), (0.5, 3), (1, 3)]))

    def test_negative_degree(self):
        with pytest.raises(knot.NegativeDegree):
            knot.check_knots(-1, knot.as_knots([(0, 1), (1, 1)]))

    def test_outside_range(self):
        with pytest.raises(knot.KnotOutsideKnotVectorRange):
            knot.check_knot(np.array([0.0, 0.0, 1.0, 1.0]), 1.5)

    def test_vector_length(self):
        with pytest.raises(knot.NonMatchingKnotVectorLength):
            knot.check_knot_vec(3, 2, [0, 0, 0, 1, 1, 1])


class TestParameters:
    def test_chord_length(self):
        Q = [(0, 0, 0), (1, 0, 0), (3, 0, 0)]

        assert np.allclose(knot.chord_length_param(Q), [0, 1 / 3.0, 1])

    def test_degenerate_chord_length(self):
        with pytest.raises(knot.DegenerateParameterization):
            knot.chord_length_param([(1, 1, 1), (1, 1, 1)])

    def test_greville(self):
        U = [0, 0, 0, 0.5, 1, 1, 1]

        assert np.allclose(knot.greville_abscissae(2, U),
                           [0, 0.25, 0.75, 1])


class TestBuilding:
    def test_uniform(self):
        knots = knot.uniform_knots(4, 2)

        assert [k.multiplicity for k in knots] == [3, 1, 1, 3]
        assert np.allclose([k.value for k in knots], [0, 1 / 3.0, 2 / 3.0, 1])

    def test_average(self):
        knots = knot.average_knots([0, 0.2, 0.6, 1], 2)

        assert np.allclose(knot.knots_to_knot_vec(knots),
                           [0, 0, 0, 0.4, 1, 1, 1])

    def test_average_with_few_parameters(self):
        knots = knot.average_knots([0, 1], 3)

        assert knots == [knot.Knot(0.0, 4), knot.Knot(1.0, 4)]

    def test_fill_bisects_longest_spans(self):
        knots = knot.fill_knots(knot.as_knots([(0, 2), (0.2, 1), (1, 2)]), 2)

        assert np.allclose([k.value for k in knots], [0, 0.2, 0.4, 0.6, 1])

    def test_biconstrained(self):
        knots = knot.biconstrained_knots([0, 0.5, 1], 2)

        knot.check_knots(2, knots)
        assert sum(k.multiplicity for k in knots) - 3 == 3 + 4


class TestManipulation:
    def test_insert(self):
        knots = knot.insert_knot(knot.as_knots([(0, 3), (1, 3)]), 2, 0.5, 2)

        assert knots[1] == knot.Knot(0.5, 2)

    def test_insert_beyond_degree(self):
        knots = knot.as_knots([(0, 3), (0.5, 2), (1, 3)])

        with pytest.raises(knot.InteriorKnotMultiplicityGreaterThanOrder):
            knot.insert_knot(knots, 2, 0.5)

    def test_insert_at_end(self):
        with pytest.raises(knot.KnotOutsideKnotVectorRange):
            knot.insert_knot(knot.as_knots([(0, 3), (1, 3)]), 2, 1.0)

    def test_remap(self):
        knots = knot.remap_knots(knot.as_knots([(0, 3), (0.25, 1), (1, 3)]),
                                 2.0, 6.0)

        assert [k.value for k in knots] == [2.0, 3.0, 6.0]

    def test_remap_invalid_domain(self):
        with pytest.raises(knot.InvalidDomain):
            knot.remap_knots(knot.as_knots([(0, 2), (1, 2)]), 1.0, 1.0)

    def test_reverse(self):
        knots = knot.reverse_knots(knot.as_knots([(0, 3), (0.25, 2),
                                                  (1, 3)]))

        assert knots == [knot.Knot(0.0, 3), knot.Knot(0.75, 2),
                         knot.Knot(1.0, 3)]

    def test_find_mult(self):
        knots = knot.as_knots([(0, 3), (0.25, 2), (1, 3)])

        assert knot.find_mult(knots, 0.25) == 2
        assert knot.find_mult(knots, 0.3) == 0


class TestMerging:
    def test_common_knots_take_maximum_multiplicity(self):
        a = knot.as_knots([(0, 3), (0.5, 1), (1, 3)])
        b = knot.as_knots([(0, 3), (0.5, 2), (0.7, 1), (1, 3)])

        assert knot.common_knots(a, b) == b

    def test_missing_knots(self):
        a = knot.as_knots([(0, 3), (0.5, 1), (1, 3)])
        b = knot.as_knots([(0, 3), (0.5, 2), (0.7, 1), (1, 3)])

        assert np.allclose(knot.missing_knots(b, a), [0.5, 0.7])
