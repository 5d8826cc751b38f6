''' Knot vectors come in two flavours throughout this package:

- the compact form, an ordered list of distinct Knots (value,
  multiplicity), which is what a Basis stores and what is edited;

- the expanded form, a flat array U in which every knot value is
  repeated as many times as its multiplicity, which is what the
  algorithms from 'The NURBS Book' operate on.

A clamped knot vector of degree p has its end knots repeated (p + 1)
times, and none of its interior knots repeated more than p times.  Its
expanded form then holds (n + p + 2) knots, (n + 1) being the number of
control points.

'''

import collections

import numpy as np

from . import config
from . import util


# Many functions in this module rely on the fact the given knot vectors
# are "clean", i.e. any given knot is at least +/- a certain tolerance
# from any other knot.  This is achieved by making sure all knot values
# are rounded to config.KNOT_DECIMALS decimal places.


class Knot(collections.namedtuple('Knot', 'value multiplicity')):

    ''' A distinct knot value together with its multiplicity. '''

    def __str__(self):
        return '{} ({})'.format(self.value, self.multiplicity)


class IndexedKnot(collections.namedtuple('IndexedKnot', 'knot first last')):

    ''' A Knot together with the index of its first and last occurrence
    in the expanded knot vector. '''

    @property
    def value(self):
        return self.knot.value


class KnotSpan(collections.namedtuple('KnotSpan', 'start end')):

    ''' The non-empty parametric interval [start.value, end.value]
    bounded by two adjacent IndexedKnots.  Within the span, the nonzero
    basis functions are N_(i-p),...,N_i, with i = start.last. '''

    @property
    def lower(self):
        return self.start.value

    @property
    def upper(self):
        return self.end.value

    @property
    def length(self):
        return self.upper - self.lower

    @property
    def index(self):
        ''' The knot span index, as returned by basis.find_span. '''
        return self.start.last

    def contains(self, u):
        return self.lower <= u <= self.upper


# CLEANING KNOTS


def clean_knot(u, ndec=None):
    ''' Clean the single knot u (or an array thereof), i.e. simply round
    it to config.KNOT_DECIMALS decimal places. '''
    if ndec is None:
        ndec = config.KNOT_DECIMALS
    return np.round(u, decimals=ndec)

def clean_knot_vec(U):
    ''' Clean the entire expanded knot vector U, i.e. ensure there are
    no close knots.  A cleaned copy is returned. '''
    U = clean_knot(np.asarray(U, dtype=float))
    Ui, ind = np.unique(U, return_inverse=True)
    return Ui[ind]


# CONVERTING KNOT VECTORS


def knots_to_knot_vec(knots):
    ''' Expand a list of Knots into a flat knot vector. '''
    U = [np.repeat(k.value, k.multiplicity) for k in knots]
    return np.hstack(U) if U else np.zeros(0)

def knot_vec_to_knots(U):
    ''' Compact a flat knot vector into a list of Knots. '''
    U = clean_knot_vec(U)
    values, mults = np.unique(U, return_counts=True)
    return [Knot(float(v), int(m)) for v, m in zip(values, mults)]

def as_knots(K):
    ''' Return K as a list of Knots, K being either a list of Knots
    (or (value, multiplicity) pairs) or a flat knot vector. '''
    K = list(K)
    if K and all(isinstance(k, Knot) or np.ndim(k) == 1 for k in K):
        knots = []
        for v, m in K:
            if int(m) != m:
                raise NonIntegerMultiplicity(v, m)
            knots.append(Knot(float(clean_knot(v)), int(m)))
        return knots
    return knot_vec_to_knots(K)

def index_knots(knots):
    ''' Attach to every Knot its first/last index in the expanded knot
    vector. '''
    iks, first = [], 0
    for k in knots:
        last = first + k.multiplicity - 1
        iks.append(IndexedKnot(k, first, last))
        first = last + 1
    return iks

def knot_spans(iknots):
    ''' Return the KnotSpans bounded by the IndexedKnots. '''
    return [KnotSpan(s, e) for s, e in zip(iknots[:-1], iknots[1:])]


# CHECKING KNOTS


def check_knot(U, u):
    ''' Check if u is within the bounds of U, assuming U is clean.
    Here, the returned knot must not be rounded. '''
    ur = clean_knot(u)
    if U[0] == ur:
        return U[0]
    if U[-1] == ur:
        return U[-1]
    if not U[0] < u < U[-1]:
        raise KnotOutsideKnotVectorRange(U[0], U[-1], u)
    return u

def check_knot_v(U, u):
    ''' Idem check_knot, vectorized in u. '''
    u = np.array(u, dtype=float)
    ur = clean_knot(u)
    u[U[0] == ur] = U[0]; u[U[-1] == ur] = U[-1]
    if (u < U[0]).any() or (u > U[-1]).any():
        raise KnotOutsideKnotVectorRange(U[0], U[-1], u)
    return u

def check_knots(p, knots):
    ''' Perform some consistency checks on the Knots of a degree p
    basis. '''
    if p < 0:
        raise NegativeDegree(p)
    if len(knots) < 2:
        raise TooFewKnots(knots)
    mults = np.array([k.multiplicity for k in knots])
    if (mults < 1).any():
        raise NonPositiveMultiplicity(knots)
    values = np.array([k.value for k in knots])
    if (np.diff(values) <= 0.0).any():
        raise NonStrictlyIncreasingKnotVector(values)
    if mults[0] != p + 1 or mults[-1] != p + 1:
        raise UnclampedKnotVector(mults[0], mults[-1], p)
    if (mults[1:-1] > p).any():
        raise InteriorKnotMultiplicityGreaterThanOrder(p, knots)

def check_knot_vec(n, p, U):
    ''' Perform some consistency checks on the expanded knot vector U,
    assuming U is clean. '''
    m = len(U) - 1
    if m != n + p + 1:
        raise NonMatchingKnotVectorLength(m, n, p)
    check_knots(p, knot_vec_to_knots(U))


# COMPUTING PARAMETERS


def chord_length_param(Q):
    ''' Compute parameter values based on chord length parameterization.
    The parameters lie in the range u in [0, 1]. '''
    Q = np.asarray(Q, dtype=float)
    clk = util.distance_v(Q[1:], Q[:-1])
    d = np.sum(clk)
    if d == 0.0:
        raise DegenerateParameterization(Q)
    Ub = np.zeros(len(Q))
    Ub[1:] = np.cumsum(clk) / d
    Ub[-1] = 1.0
    return Ub

def greville_abscissae(p, U):
    ''' Compute the (n + 1) Greville abscissae of U, i.e. the averages
    of p consecutive interior knots; these are the parameter values at
    which each basis function is most influential. '''
    U = np.asarray(U, dtype=float)
    n = len(U) - p - 2
    if p == 0:
        return (U[:-1] + U[1:]) / 2.0
    return np.array([np.sum(U[i+1:i+p+1]) / p for i in range(n + 1)])


# BUILDING KNOT VECTORS


def uniform_knots(n, p, u0=0.0, um=1.0):
    ''' Construct a uniform clamped knot vector, i.e. all interior knots
    are equally spaced and lie in [u0, um]. '''
    U = np.zeros(n + p + 2)
    for j in range(1, n - p + 1):
        U[j+p] = float(j) / (n - p + 1)
    U[-p-1:] = 1.0
    return knot_vec_to_knots(u0 + U * (um - u0))

def average_knots(Ub, p):
    ''' Construct a knot vector based on averaging, a method that
    reflects the distribution of the parameter values Ub.  Every
    interior knot is the average of p consecutive parameters.

    If there are fewer than (p + 1) parameters, the knot vector only
    holds its two end knots.

    Source: The NURBS Book (2nd Ed.), Pg. 365.

    '''

    Ub = np.asarray(Ub, dtype=float)
    n = len(Ub) - 1
    X = [np.sum(Ub[j:j+p]) / p for j in range(1, n - p + 1)]
    U = np.hstack(((p + 1) * [Ub[0]], X, (p + 1) * [Ub[-1]]))
    return knot_vec_to_knots(U)

def fill_knots(knots, count):
    ''' Densify the Knots by inserting count new simple knots, each one
    at the midpoint of the (then) longest knot span. '''
    if count < 1:
        return list(knots)
    values = np.array([k.value for k in knots])
    X = midpoints_longest_knot_vec(values, count)
    mult = dict((k.value, k.multiplicity) for k in knots)
    for x in clean_knot(X):
        mult[float(x)] = mult.get(float(x), 0) + 1
    return [Knot(v, m) for v, m in sorted(mult.items())]

def biconstrained_knots(iso, p):
    ''' Construct a knot vector suitable for a surface constrained along
    the isoparametric curves located at iso, i.e. the averaging knot
    vector of iso refined (len(iso) + 1) times. '''
    return fill_knots(average_knots(iso, p), len(iso) + 1)


# MANIPULATING KNOT VECTORS


def remap_knots(knots, u0, um):
    ''' Linearly remap the Knots onto [u0, um]. '''
    a, b = knots[0].value, knots[-1].value
    if not um > u0:
        raise InvalidDomain(u0, um)
    f = (um - u0) / (b - a)
    rknots = [Knot(float(clean_knot(u0 + (k.value - a) * f)), k.multiplicity)
              for k in knots]
    rknots[0] = Knot(float(clean_knot(u0)), rknots[0].multiplicity)
    rknots[-1] = Knot(float(clean_knot(um)), rknots[-1].multiplicity)
    return rknots

def reverse_knots(knots):
    ''' Mirror the Knots within their domain, i.e. map u to (a + b - u).
    '''
    a, b = knots[0].value, knots[-1].value
    rknots = [Knot(float(clean_knot(a + b - k.value)), k.multiplicity)
              for k in reversed(knots)]
    rknots[0], rknots[-1] = Knot(a, rknots[0][1]), Knot(b, rknots[-1][1])
    return rknots

def insert_knot(knots, p, u, e=1):
    ''' Return new Knots with u inserted e times.  u must lie strictly
    inside the domain, and its resulting multiplicity may not exceed p.
    '''
    u = float(clean_knot(u))
    if not knots[0].value < u < knots[-1].value:
        raise KnotOutsideKnotVectorRange(knots[0].value, knots[-1].value, u)
    mult = dict(knots)
    s = mult.get(u, 0)
    if s + e > p:
        raise InteriorKnotMultiplicityGreaterThanOrder(p, u, s + e)
    mult[u] = s + e
    return [Knot(v, m) for v, m in sorted(mult.items())]


# MULTIPLICITIES


def find_mult(knots, u):
    ''' Find the multiplicity of u (0 if u is not a knot). '''
    u = clean_knot(u)
    for k in knots:
        if k.value == u:
            return k.multiplicity
    return 0


# MIDPOINTS


def midpoint_longest_knot_vec(U):
    ''' Return the midpoint of the longest knot span. '''
    spans = U[1:] - U[:-1]
    m = np.argmax(spans)
    return U[m] + spans[m] / 2.0

def midpoints_longest_knot_vec(U, n):
    ''' Return n knots that shall refine U at its longest n mid spans.
    '''
    U = np.unique(U)
    X = []
    while len(X) < n:
        x = midpoint_longest_knot_vec(U)
        X.append(x)
        U = np.append(U, x); U.sort()
    return np.sort(X)


# MERGING KNOT VECTORS


def common_knots(*knot_lists):
    ''' Merge all lists of Knots into one, i.e. a knot is in the result
    if it is in any of the lists, with the maximum multiplicity found
    amongst them. '''
    mult = {}
    for knots in knot_lists:
        for v, m in knots:
            mult[v] = max(mult.get(v, 0), m)
    return [Knot(v, m) for v, m in sorted(mult.items())]

def missing_knots(target, knots):
    ''' Return the (expanded) knot values that, once inserted into
    knots, yield target.  Assumes every knot of knots is also in target
    with a multiplicity at least as large. '''
    mult = dict(knots)
    X = []
    for v, m in target:
        X += (m - mult.get(v, 0)) * [v]
    return np.array(X)


# EXCEPTIONS


class KnotVectorException(Exception):
    pass

class NegativeDegree(KnotVectorException):
    pass

class TooFewKnots(KnotVectorException):
    pass

class NonIntegerMultiplicity(KnotVectorException):
    pass

class NonPositiveMultiplicity(KnotVectorException):
    pass

class NonMatchingKnotVectorLength(KnotVectorException):
    pass

class NonStrictlyIncreasingKnotVector(KnotVectorException):
    pass

class UnclampedKnotVector(KnotVectorException):
    pass

class InteriorKnotMultiplicityGreaterThanOrder(KnotVectorException):
    pass

class KnotOutsideKnotVectorRange(KnotVectorException):
    pass

class InvalidDomain(KnotVectorException):
    pass

class DegenerateParameterization(KnotVectorException):
    pass
