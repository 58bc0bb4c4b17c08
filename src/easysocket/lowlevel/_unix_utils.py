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
from __future__ import annotations

__all__ = [
    "convert_unix_socket_address",
    "get_unix_socket_family",
    "is_unix_socket_family",
]

import os
import socket as _socket


def get_unix_socket_family() -> int:
    try:
        return _socket.AddressFamily["AF_UNIX"]
    except KeyError:
        raise NotImplementedError("AF_UNIX is not supported on this platform") from None


def is_unix_socket_family(family: int) -> bool:
    try:
        AF_UNIX: _socket.AddressFamily = _socket.AddressFamily["AF_UNIX"]
    except KeyError:
        return False
    return family == AF_UNIX


def convert_unix_socket_address(path: str | os.PathLike[str] | bytes) -> bytes:
    """Returns the ``sun_path`` content of `path`.

    A leading NUL byte denotes an address in the abstract namespace and is kept as is.
    """
    match path:
        case bytes():
            raw = path
        case str():
            raw = os.fsencode(path)
        case _:
            fspath = os.fspath(path)
            if not isinstance(fspath, str):
                raise TypeError(f"Expected a str object or an os.PathLike object, got {path!r}")
            raw = os.fsencode(fspath)
    if raw[:1] != b"\0" and b"\0" in raw:
        raise ValueError("paths must not contain interior null bytes")
    return raw
