"""Shared test fixtures."""

import numpy as np
import pytest

from bspline import curve
from bspline import linalg
from bspline import surface


@pytest.fixture
def context():
    return linalg.NumericContext("test")


@pytest.fixture
def quadratic_curve():
    P = [(-4, 2, 0), (-2, 3, 1), (0, 4, 2), (2, 3, 1)]
    return curve.Curve(P, 2, [(0, 3), (0.5, 1), (1, 3)])


@pytest.fixture
def cubic_curve():
    P = [(0, 0, 0), (1, 2, 0), (2, -1, 1), (3, 3, 0), (4, 0, -1),
         (5, 1, 0), (6, 0, 0)]
    return curve.Curve(P, 3, [(0, 4), (0.25, 1), (0.4, 1), (0.7, 1), (1, 4)])


@pytest.fixture
def bezier_surface():
    """Biquadratic single-patch surface over [0, 1] x [0, 1]."""
    z = [[0.0, 0.2, 0.0], [0.1, 0.4, 0.1], [0.0, 0.2, 0.0]]
    P = [[(0.5 * i, 0.5 * j, z[j][i]) for i in range(3)] for j in range(3)]
    return surface.Surface(P, (2, 2))


@pytest.fixture
def cubic_surface():
    """Bicubic surface with interior knots in both directions."""
    P = [[(float(i), float(j), np.sin(i) * np.cos(j) / 2.0)
          for i in range(5)] for j in range(6)]
    U = [(0, 4), (0.5, 1), (1, 4)]
    V = [(0, 4), (0.3, 1), (0.6, 1), (1, 4)]
    return surface.Surface(P, (3, 3), (U, V))


@pytest.fixture
def flat_patch():
    """Bilinear unit square in the z = 0 plane."""
    P = [[(0, 0, 0), (1, 0, 0)], [(0, 1, 0), (1, 1, 0)]]
    return surface.Surface(P, (1, 1))


@pytest.fixture
def rng():
    return np.random.RandomState(7)
