''' Default tolerances and limits used throughout the package.

Every function that relies on one of these values takes it as a keyword
argument, so the constants below are only defaults; override them per
call rather than by mutating this module.

'''

import logging


# KNOTS


# Knot values are rounded to KNOT_DECIMALS decimal places, so that knots
# computed along different paths (e.g. remapped or averaged) compare
# equal when merging knot vectors.
KNOT_DECIMALS = 8

# Two span-wise evaluations at an interior knot must agree within this
# distance, otherwise the evaluation is ambiguous.
KNOT_AGREEMENT_TOL = 1e-6

# Maximum deviation allowed when removing a knot.
REMOVAL_TOL = 1e-3


# INTERPOLATION


# Preferred degree of interpolating curves and lofts.
IDEAL_DEGREE = 3


# PROJECTION


NEWTON_E1 = 1e-6 # point coincidence
NEWTON_E2 = 1e-6 # zero cosine
NEWTON_MAX_ITERATIONS = 100

# Curve start-value candidates per unit of relative span length.
CURVE_CANDIDATE_DENSITY = 50

# Number of samples taken along a curve when projecting it onto a
# Surface.
PROJECTION_SAMPLE_COUNT = 50


# GUIDANCE


GUIDE_TOLERANCE = 0.1
GUIDE_MAX_ITERATIONS = 50
GUIDE_NEWTON_MAX_ITERATIONS = 50
# Insert new knots once the remaining number of steps, extrapolated from
# the error decrease, exceeds this threshold.
GUIDE_STEP_THRESHOLD = 10.0
GUIDE_MOMENT_RATIO = 0.5
# Samples taken along a target curve guided through its parametric
# proxy curve.
PCURVE_SAMPLE_COUNT = 100
# Constraint rows whose pivot falls below this fraction of the largest
# one are linearly dependent on the others and dropped.
CONSTRAINT_RANK_TOL = 1e-10
GORDON_SAMPLE_COUNT = 100
# cos(90 - 1 deg), i.e. offset and tangent within 1 deg of orthogonal.
GORDON_E2 = 0.01745240643728351


# LOGGING


LOG_LEVEL = logging.WARNING
LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'
