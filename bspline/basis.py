import collections

import numpy as np

from . import knot


def find_span(n, p, U, u):

    ''' Determine the knot span index, i.e. the index i such that u lies
    in [U[i], U[i+1]).  At the end of the domain, the last nonempty span
    is returned.

    Source: The NURBS Book (2nd Ed.), Pg. 68.

    '''

    u = knot.check_knot(U, u)
    if u == U[n+1]:
        return n
    low, high = p, n + 1
    mid = (low + high) // 2
    while u < U[mid] or u >= U[mid+1]:
        if u < U[mid]:
            high = mid
        else:
            low = mid
        mid = (low + high) // 2
    return mid


def find_span_mult(n, p, U, u):

    ''' Determine the knot span index and multiplicity.

    '''

    return find_span(n, p, U, u), int(np.sum(U == u))


# The following functions are based on the property that, in any given
# knot span, [ u_i, u_(i+1) ), at most p + 1 of the B-spline basis
# functions are nonzero, namely the functions (N_(i-p,p)(u),...,
# N_(i,p)(u)).
# NOTE: i is the knot span index of u


def span_basis_funs(i, u, p, d, U):

    ''' Compute the dth derivative of all nonvanishing basis functions
    and store them in the array (N[0],...,N[p]), N[j] being the
    derivative of N_(i-p+j,p)(u).

    The triangular Cox-de Boor recursion is first carried out up to
    degree (p - d), yielding plain basis function values.  The
    remaining d passes apply the derivative recurrence

        N'_(i,p) = p * (N_(i,p-1) / (u_(i+p) - u_i) -
                        N_(i+1,p-1) / (u_(i+p+1) - u_(i+1)))

    so that pass j differentiates the degree j functions once more.  At
    repeated knots a vanishing denominator always comes with a vanishing
    numerator; such 0/0 terms contribute 0.  If (d > p), all derivatives
    are 0.

    Source: The NURBS Book (2nd Ed.), Pg. 70 and 61.

    '''

    N = np.zeros(p + 1)
    if d > p:
        return N
    left = np.zeros(p + 1)
    right = np.zeros(p + 1)
    N[0] = 1.0
    for j in range(1, p + 1):
        left[j], right[j] = u - U[i+1-j], U[i+j] - u
        saved = 0.0
        for r in range(j):
            den = right[r+1] + left[j-r]
            tmp = N[r] / den if den != 0.0 else 0.0
            if j <= p - d:
                N[r] = saved + right[r+1] * tmp
                saved = left[j-r] * tmp
            else:
                N[r] = saved - j * tmp
                saved = j * tmp
        N[j] = saved
    return N


def one_basis_fun(p, U, i, u):

    ''' Compute the single basis function N_(i,p)(u).

    Source: The NURBS Book (2nd Ed.), Pg. 74.

    '''

    m = len(U) - 1
    if (i == 0 and u == U[0]) or (i == m - p - 1 and u == U[m]):
        return 1.0
    if u < U[i] or u >= U[i+p+1]:
        return 0.0
    N = np.zeros(p + 1)
    for j in range(p + 1):
        N[j] = 1.0 if U[i+j] <= u < U[i+j+1] else 0.0
    for k in range(1, p + 1):
        saved = 0.0
        if N[0] != 0.0:
            saved = ((u - U[i]) * N[0]) / (U[i+k] - U[i])
        for j in range(p - k + 1):
            Uleft, Uright = U[i+j+1], U[i+j+k+1]
            if N[j+1] == 0.0:
                N[j] = saved; saved = 0.0
            else:
                tmp = N[j+1] / (Uright - Uleft)
                N[j] = saved + (Uright - u) * tmp
                saved = (u - Uleft) * tmp
    return N[0]


BasisValues = collections.namedtuple('BasisValues', 'values first last span')

SpanSamples = collections.namedtuple('SpanSamples', 'span first us N dN')


class Basis(object):

    ''' A Basis is the set of (n + 1) pth-degree B-spline basis functions
    defined on a clamped knot vector.

    The knot vector is stored in its compact form (see knot.Knot); the
    expanded knot vector, the IndexedKnots, the KnotSpans and the
    charting samples are derived from it lazily, and recomputed the first
    time they are needed after either the degree or the knots have been
    modified.

    '''

    def __init__(self, p, knots):

        ''' Initialize the Basis.

        Parameters
        ----------
        p = the degree of the basis functions
        knots = either a list of Knots, a list of (value, multiplicity)
                pairs or a flat (expanded) knot vector

        Examples
        --------
        >>> b = Basis(2, [(0, 3), (0.5, 1), (1, 3)])

        or, equivalently,

        >>> b = Basis(2, [0, 0, 0, 0.5, 1, 1, 1])

        '''

        knots = knot.as_knots(knots)
        knot.check_knots(p, knots)
        self._p, self._knots = int(p), knots
        self._dirty = True

    def __repr__(self):
        ks = ', '.join(str(k) for k in self._knots)
        return 'Basis(p={}, knots=[{}])'.format(self._p, ks)

    def __eq__(self, other):
        if not isinstance(other, Basis):
            return NotImplemented
        return self._p == other._p and self._knots == other._knots

    def __ne__(self, other):
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    __hash__ = None

    def _update(self):
        if self._dirty:
            self._U = knot.knots_to_knot_vec(self._knots)
            self._iknots = knot.index_knots(self._knots)
            self._spans = knot.knot_spans(self._iknots)
            self._samples = {}
            self._dirty = False

    @property
    def p(self):
        ''' Get the degree. '''
        return self._p

    @p.setter
    def p(self, p):
        ''' Set the degree; the knots must remain valid for it. '''
        knot.check_knots(p, self._knots)
        self._p = int(p); self._dirty = True

    degree = p

    @property
    def knots(self):
        ''' Get a copy of the Knots. '''
        return list(self._knots)

    @knots.setter
    def knots(self, knots):
        ''' Set the Knots. '''
        knots = knot.as_knots(knots)
        knot.check_knots(self._p, knots)
        self._knots = knots; self._dirty = True

    @property
    def dirty(self):
        ''' Do the derived quantities need recomputing? '''
        return self._dirty

    @property
    def order(self):
        return self._p + 1

    @property
    def U(self):
        ''' Get the expanded knot vector. '''
        self._update()
        return self._U

    @property
    def indexed_knots(self):
        self._update()
        return self._iknots

    @property
    def spans(self):
        self._update()
        return self._spans

    @property
    def count(self):
        ''' The number of basis functions (control points). '''
        return sum(k.multiplicity for k in self._knots) - self.order

    @property
    def n(self):
        ''' There are (n + 1) basis functions. '''
        return self.count - 1

    @property
    def domain(self):
        return self._knots[0].value, self._knots[-1].value

    def copy(self):
        ''' Self copy. '''
        return Basis(self._p, self._knots)

    def multiplicity(self, u):
        ''' Get the multiplicity of u (0 if u is not a knot). '''
        return knot.find_mult(self._knots, u)

    def snap(self, u):
        ''' Check that u lies within the domain, and snap it onto a knot
        value if it is within the knot cleaning tolerance of one. '''
        u = knot.check_knot(self.U, u)
        ur = float(knot.clean_knot(u))
        return ur if self.multiplicity(ur) else u

    def containing_spans(self, u):
        ''' Return the (one or two) KnotSpans containing u. '''
        return [s for s in self.spans if s.contains(u)]

    def find_span(self, u):
        ''' See find_span. '''
        return find_span(self.n, self._p, self.U, u)

# EVALUATION

    def evaluate(self, u, d=0, p=None, both=False):

        ''' Evaluate the dth derivative of all nonvanishing basis
        functions at u, span by span.

        When u lies on an interior knot, it belongs to two KnotSpans.
        The values of both spans are returned if (d == 0), so that the
        caller can detect a discontinuity by comparing the results;
        otherwise only the left-limit span is used.  Passing both=True
        forces the evaluation of both spans for any d.

        Parameters
        ----------
        u = the parameter value
        d = the derivative order
        p = the degree of the basis functions to evaluate, if different
            from (and lower than) the degree of the Basis
        both = whether to return both one-sided results at a knot

        Returns
        -------
        [BasisValues] = one BasisValues per span, containing the (p +
                        1) nonvanishing values N_first,...,N_last

        '''

        q = self._p if p is None else p
        if not 0 <= q <= self._p:
            raise InvalidDegree(q, self._p)
        if d < 0:
            raise InvalidDerivativeOrder(d)
        u = self.snap(u)
        U = self.U
        spans = self.containing_spans(u)
        if len(spans) > 1 and d > 0 and not both:
            spans = spans[:1]
        bvs = []
        for s in spans:
            i = s.index
            N = span_basis_funs(i, u, q, d, U)
            bvs.append(BasisValues(N, i - q, i, s))
        return bvs

    def row(self, u, d=0):
        ''' Return the dth derivatives of all (n + 1) basis functions at
        u, using the left-limit span on interior knots. '''
        bv = self.evaluate(u, d)[0]
        R = np.zeros(self.count)
        R[bv.first:bv.last+1] = bv.values
        return R

    def matrix(self, us, d=0):
        ''' Stack the rows of all parameter values us. '''
        return np.array([self.row(u, d) for u in us]).reshape((-1, self.count))

    def samples(self, num=32):

        ''' Sample the nonvanishing basis functions and their first
        derivatives over every KnotSpan, for charting purposes.  The
        result is cached until the Basis is modified.

        Parameters
        ----------
        num = the number of samples per KnotSpan

        Returns
        -------
        [SpanSamples] = one SpanSamples per KnotSpan, where N[k,j] and
                        dN[k,j] are the value and derivative of the
                        function N_(first+j) at us[k]

        '''

        self._update()
        if num not in self._samples:
            U, p = self.U, self._p
            sss = []
            for s in self._spans:
                i = s.index
                us = np.linspace(s.lower, s.upper, num)
                N = np.array([span_basis_funs(i, u, p, 0, U) for u in us])
                dN = np.array([span_basis_funs(i, u, p, 1, U) for u in us])
                sss.append(SpanSamples(s, i - p, us, N, dN))
            self._samples[num] = sss
        return self._samples[num]


# EXCEPTIONS


class BasisException(Exception):
    pass

class InvalidDegree(BasisException):
    pass

class InvalidDerivativeOrder(BasisException):
    pass
