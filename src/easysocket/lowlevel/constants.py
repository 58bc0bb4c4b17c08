# Copyright 2021-2025, Francis Clairicia-Rose-Claire-Josephine
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
#
"""EasySocket's constants module."""

from __future__ import annotations

__all__ = [
    "CLOSED_SOCKET_ERRNOS",
    "DEFAULT_LISTEN_BACKLOG",
    "GETSOCKOPT_BUFSIZE",
    "SOCKADDR_BSD_LAYOUT",
    "SOCKADDR_IN6_SIZE",
    "SOCKADDR_IN_SIZE",
    "SOCKADDR_UN_SIZE",
    "UNIX_PATH_MAX",
]

import errno as _errno
import socket as _socket
import sys
from typing import Final

# BSD-derived systems prefix every sockaddr structure with a length byte (sa_len)
SOCKADDR_BSD_LAYOUT: Final[bool] = sys.platform.startswith(("darwin", "freebsd", "openbsd", "netbsd", "dragonfly"))

# Capacity of sockaddr_un.sun_path
# https://manpages.debian.org/bookworm/manpages/unix.7.en.html
UNIX_PATH_MAX: Final[int] = 104 if SOCKADDR_BSD_LAYOUT else 108

# sizeof(struct sockaddr_in)
SOCKADDR_IN_SIZE: Final[int] = 16

# sizeof(struct sockaddr_in6)
SOCKADDR_IN6_SIZE: Final[int] = 28

# sizeof(struct sockaddr_un)
SOCKADDR_UN_SIZE: Final[int] = 2 + UNIX_PATH_MAX

# Backlog used by listen(2) when the caller does not give one
DEFAULT_LISTEN_BACKLOG: Final[int] = getattr(_socket, "SOMAXCONN", 128)

# Buffer size for a raw getsockopt(2) read
GETSOCKOPT_BUFSIZE: Final[int] = 256

# Errors that socket operations can return if the socket is closed
CLOSED_SOCKET_ERRNOS: Final[frozenset[int]] = frozenset(
    {
        # Unix
        _errno.EBADF,
        # Windows
        _errno.ENOTSOCK,
    }
)
