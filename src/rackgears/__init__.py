from importlib.metadata import version, PackageNotFoundError
from rackgears.defs import *
from rackgears.arc_utils import *
from rackgears.pens import *
from rackgears.clipping import *
from rackgears.xform import *
from rackgears.rack import *
from rackgears.cut_curves import *
from rackgears.tooth_cutter import *
from rackgears.fillet import *
from rackgears.sketch import *
from rackgears.gear_pair import *


try:
    __version__ = version("rackgears")
except PackageNotFoundError:
    __version__ = "unknown version"
