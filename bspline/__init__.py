import logging

from . import config
from . import util
from . import linalg
from . import knot
from . import basis
from . import spline
from . import curve
from . import surface
from . import interp
from . import fit
from . import project
from . import gordon


tools = (curve.make_linear_curve,
         curve.make_composite_curve,
         curve.make_curves_compatible,

         surface.make_surfaces_compatible,

         interp.interpolate,
         interp.loft,

         fit.approximate,
         fit.guide,
         fit.guide_pcurve,
         fit.guide_error_controlled,

         project.invert_curve,
         project.invert_surface,
         project.nearest_parameters,
         project.project_curve,

         gordon.build_gordon_surface)

class _VirtualModule(object):
    def __init__(self, tools):
        for tool in tools:
            setattr(self, tool.__name__, tool)
tb = _VirtualModule(tools) # toolbox


def configure_logging(level=None):
    ''' Attach a stream handler to the root logger, with
    config.LOG_FORMAT at config.LOG_LEVEL (or level).  Meant for
    scripts and tests; the library itself never configures logging. '''
    if level is None:
        level = config.LOG_LEVEL
    logging.basicConfig(level=level, format=config.LOG_FORMAT)
    logging.getLogger(__name__).setLevel(level)
