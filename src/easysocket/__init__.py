# -*- coding: utf-8 -*-
# Copyright (c) 2021-2025, Francis Clairicia-Rose-Claire-Josephine
#
#
"""A host-language object model over the operating system's socket API

EasySocket gives addresses, socket options and connection establishment
a uniform interface across address families and socket types.
"""

from __future__ import annotations

__all__ = []  # type: list[str]

__author__ = "FrankySnow9"
__contact__ = "clairicia.rcj.francis@gmail.com"
__copyright__ = "Copyright (c) 2021-2025, Francis Clairicia-Rose-Claire-Josephine"
__credits__ = ["FrankySnow9"]
__deprecated__ = False
__email__ = "clairicia.rcj.francis@gmail.com"
__license__ = "Apache-2.0"
__maintainer__ = "FrankySnow9"
__status__ = "Development"
__version__ = "1.0.0"

from .addrinfo import *
from .constants import *
from .exceptions import *
from .option import *
from .resolver import *
from .socket import *

############ Package initialization ############
from . import addrinfo as _addrinfo, constants as _constants, exceptions as _exceptions
from . import option as _option, resolver as _resolver, socket as _socket

__all__ += _addrinfo.__all__
__all__ += _constants.__all__
__all__ += _exceptions.__all__
__all__ += _option.__all__
__all__ += _resolver.__all__
__all__ += _socket.__all__

del _addrinfo, _constants, _exceptions, _option, _resolver, _socket
