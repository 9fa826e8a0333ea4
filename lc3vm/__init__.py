"""An LC-3 virtual machine that runs object images, with a Jupyter kernel"""

from ._version import __version__
from .errors import DeviceError, ExecutionFault, LC3Error, LoadError
from .lc3 import LC3
