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
    "check_inet_socket_family",
    "convert_native_error",
    "is_inet_socket_family",
    "validate_optional_timeout_delay",
    "validate_port",
    "validate_timeout_delay",
]

import errno as _errno
import math
import os
import socket as _socket
from typing import Any

from ..exceptions import NativeOperationError


def convert_native_error(exc: OSError, operation: str, addr: Any = None) -> NativeOperationError:
    if isinstance(exc, NativeOperationError):
        return exc
    errno: int | None = exc.errno
    if not errno:
        errno = _errno.ETIMEDOUT if isinstance(exc, TimeoutError) else _errno.EINVAL
    strerror: str = exc.strerror or str(exc) or os.strerror(errno)
    if addr is None:
        msg = f"{operation}(2) failed: {strerror}"
    else:
        msg = f"error while attempting to {operation} on address {addr!r}: {strerror}"
    return NativeOperationError(errno, msg).with_traceback(exc.__traceback__)


def is_inet_socket_family(family: int) -> bool:
    return family in {_socket.AF_INET, _socket.AF_INET6}


def check_inet_socket_family(family: int) -> None:
    if not is_inet_socket_family(family):
        raise ValueError("Only these families are supported: AF_INET, AF_INET6")


def validate_port(port: int) -> int:
    if not 0 <= port <= 65535:
        raise ValueError("port must be 0-65535.")
    return port


def validate_timeout_delay(delay: float, *, positive_check: bool) -> float:
    if math.isnan(delay):
        raise ValueError("Invalid delay: NaN (not a number)")
    if positive_check and delay < 0.0:
        raise ValueError("Invalid delay: negative value")
    return float(delay)


def validate_optional_timeout_delay(delay: float | None, *, positive_check: bool) -> float | None:
    match delay:
        case None:
            return None
        case _:
            return validate_timeout_delay(delay, positive_check=positive_check)
