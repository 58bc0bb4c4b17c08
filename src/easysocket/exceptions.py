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
"""Exceptions definition module.

Here are all the exception classes defined and used by the library.
"""

from __future__ import annotations

__all__ = [
    "AddressAccessError",
    "AddressDecodingError",
    "NativeOperationError",
    "OptionDecodingError",
    "PathTooLongError",
    "ResolutionError",
    "SocketError",
    "UnknownConstantError",
]


class SocketError(OSError):
    """Base class of the socket errors raised by the library."""


class ResolutionError(SocketError):
    """Error raised when a host name or a service name could not be resolved.

    :attr:`~OSError.errno` is set to the ``EAI_*`` error code when the resolver reported one.
    """


class AddressAccessError(SocketError):
    """Error raised when an address accessor is used on an address of the wrong family.

    For example, reading :attr:`.Addrinfo.ip_address` of a Unix socket address.
    """


class NativeOperationError(SocketError):
    """Error reported by a native socket operation (bind, connect, listen, setsockopt, ...).

    :attr:`~OSError.errno` always holds the underlying OS error code.
    """


class AddressDecodingError(ValueError):
    """Error raised when a packed socket address is malformed, truncated,
    or does not match the expected address family."""

    def __init__(self, message: str, data: bytes = b"") -> None:
        """
        Parameters:
            message: Error message.
            data: The rejected address bytes.
        """

        super().__init__(message)

        self.data: bytes = data
        """The rejected address bytes."""


class PathTooLongError(ValueError):
    """Error raised when a Unix socket path does not fit in a ``sockaddr_un`` structure."""

    def __init__(self, path_length: int, max_length: int) -> None:
        """
        Parameters:
            path_length: Length of the given path in bytes.
            max_length: Capacity of the platform's ``sun_path`` field.
        """

        super().__init__(f"too long unix socket path ({path_length} bytes given but {max_length} bytes max)")

        self.path_length: int = path_length
        """Length of the given path in bytes."""

        self.max_length: int = max_length
        """Capacity of the platform's ``sun_path`` field."""


class OptionDecodingError(TypeError):
    """Error raised when a socket option payload is decoded with the wrong interpretation."""

    def __init__(self, expected_size: int, actual_size: int, interpretation: str) -> None:
        """
        Parameters:
            expected_size: Size of the requested layout.
            actual_size: Size of the stored payload.
            interpretation: Name of the requested layout (``"int"``, ``"linger"``, ...).
        """

        super().__init__(f"size differ. expected as sizeof({interpretation})={expected_size} but {actual_size}")

        self.expected_size: int = expected_size
        """Size of the requested layout."""

        self.actual_size: int = actual_size
        """Size of the stored payload."""


class UnknownConstantError(NameError):
    """Error raised when a symbolic socket constant cannot be resolved."""
