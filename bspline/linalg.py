''' The dense linear algebra service consumed by the interpolation,
lofting and fitting algorithms.

All requests go through a NumericContext, which owns nothing global: one
context is created per logical operation (or passed in by the caller to
share it across several), every request is blocking, and each request is
recorded together with its operand shapes and duration so that the cost
of long-running fits can be inspected afterwards via
NumericContext.records.

'''

import collections
import logging
import warnings

import numpy as np
import scipy.linalg

from . import util


logger = logging.getLogger(__name__)


Request = collections.namedtuple('Request', 'name shapes seconds')


class NumericContext(object):

    ''' Dense matrix operations backed by numpy and scipy.linalg. '''

    def __init__(self, label=None):
        self.label = label
        self.records = []

    def reset(self):
        ''' Forget all recorded requests. '''
        self.records = []

    @property
    def seconds(self):
        ''' The total time spent serving requests. '''
        return sum(r.seconds for r in self.records)

    def _record(self, name, sw, *ms):
        shapes = tuple(np.shape(m) for m in ms)
        self.records.append(Request(name, shapes, sw.seconds))
        logger.debug('bspline.linalg.%s :: %s in %.6fs', name, shapes,
                     sw.seconds)

# MULTIPLICATION

    def multiply(self, A, B, ta=False, tb=False):

        ''' Compute op(A) * op(B), where op(X) is either X or its
        transpose.

        '''

        with util.Stopwatch() as sw:
            A, B = _op(A, ta), _op(B, tb)
            if A.shape[1] != B.shape[0]:
                raise NonMatchingShapes(A.shape, B.shape)
            C = np.dot(A, B)
        self._record('multiply', sw, A, B)
        return C

    def fma(self, alpha, A, B, beta, C, ta=False, tb=False):

        ''' Fused multiply-add, C <- alpha * op(A) * op(B) + beta * C
        (IN-PLACE).  C is also returned for convenience.

        '''

        with util.Stopwatch() as sw:
            A, B = _op(A, ta), _op(B, tb)
            if (A.shape[1] != B.shape[0] or
                    C.shape != (A.shape[0], B.shape[1])):
                raise NonMatchingShapes(A.shape, B.shape, C.shape)
            C *= beta
            C += alpha * np.dot(A, B)
        self._record('fma', sw, A, B, C)
        return C

# SOLVING

    def solve(self, A, B):

        ''' Solve the square system A * X = B by LU decomposition with
        partial pivoting.  B may hold several right-hand sides (one per
        column).

        '''

        with util.Stopwatch() as sw:
            A = _square(A)
            with warnings.catch_warnings():
                warnings.simplefilter('ignore', scipy.linalg.LinAlgWarning)
                lu, piv = scipy.linalg.lu_factor(A)
            d = np.abs(np.diag(lu))
            if (d <= _rtol(A) * max(d.max(), 1.0)).any():
                raise SingularMatrix(A.shape)
            X = scipy.linalg.lu_solve((lu, piv), B)
        self._record('solve', sw, A, B)
        return X

    def solve_spd(self, A, B):

        ''' Solve the symmetric positive definite system A * X = B by
        Cholesky decomposition.

        '''

        with util.Stopwatch() as sw:
            A = _square(A)
            try:
                c = scipy.linalg.cho_factor(A)
            except (scipy.linalg.LinAlgError, ValueError) as e:
                raise NotPositiveDefinite(str(e))
            d = np.abs(np.diag(c[0]))
            if (d**2 <= _rtol(A) * max(np.abs(A).max(), 1.0)).any():
                raise NotPositiveDefinite(A.shape)
            X = scipy.linalg.cho_solve(c, B)
        self._record('solve_spd', sw, A, B)
        return X

# INVERSION

    def inverse(self, A):
        ''' Invert A, i.e. solve A * X = I by LU decomposition. '''
        I = np.identity(np.shape(A)[0])
        return self.solve(A, I)

    def inverse_spd(self, A):
        ''' Invert the symmetric positive definite matrix A. '''
        I = np.identity(np.shape(A)[0])
        return self.solve_spd(A, I)


def _op(A, t):
    A = np.atleast_2d(np.asarray(A, dtype=float))
    return A.T if t else A

def _square(A):
    A = np.atleast_2d(np.asarray(A, dtype=float))
    if A.shape[0] != A.shape[1]:
        raise NonSquareMatrix(A.shape)
    if not np.isfinite(A).all():
        raise SingularMatrix(A.shape)
    return A

def _rtol(A):
    return A.shape[0] * np.finfo(float).eps


# EXCEPTIONS


class LinAlgException(Exception):
    pass

class NonMatchingShapes(LinAlgException):
    pass

class NonSquareMatrix(LinAlgException):
    pass

class SingularMatrix(LinAlgException):
    pass

class NotPositiveDefinite(LinAlgException):
    pass
