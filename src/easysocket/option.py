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
"""Socket option value type."""

from __future__ import annotations

__all__ = [
    "SocketOption",
    "get_socket_linger_struct",
    "socket_linger",
]

import functools
import os
import socket as _socket
import struct
from typing import TYPE_CHECKING, Any, NamedTuple, Self, final

from .constants import ConstantCategory, constant_name, resolve
from .exceptions import OptionDecodingError

if TYPE_CHECKING:
    from _typeshed import ReadableBuffer


class socket_linger(NamedTuple):
    """Decoded ``struct linger``."""

    enabled: bool
    timeout: int


@functools.cache
def get_socket_linger_struct() -> struct.Struct:
    # Unix: struct linger { int l_onoff; int l_linger; }
    # Windows: struct linger { u_short l_onoff; u_short l_linger; }
    if os.name == "nt":
        return struct.Struct("@HH")
    return struct.Struct("@ii")


_INT_STRUCT = struct.Struct("@i")


@final
class SocketOption:
    """
    A socket option: the option identity (family, level, name) and its raw payload.

    Names are resolved through the constants registry, so short aliases can be used:

    >>> SocketOption.from_bool("INET", "SOCKET", "KEEPALIVE", True).as_bool()
    True
    """

    __slots__ = ("__family", "__level", "__optname", "__data", "__weakref__")

    def __init__(self, family: str | int, level: str | int, optname: str | int, data: ReadableBuffer) -> None:
        """
        Parameters:
            family: The address family of the socket.
            level: The option level.
            optname: The option name, resolved according to `level`.
            data: The raw option payload.

        Raises:
            UnknownConstantError: Unknown `family`, `level` or `optname`.
        """
        self.__family: int = resolve(ConstantCategory.FAMILY, family)
        self.__level: int = resolve(ConstantCategory.LEVEL, level)
        self.__optname: int = resolve(ConstantCategory.OPTION, optname, level=self.__level)
        self.__data: bytes = bytes(data)

    @classmethod
    def from_bool(cls, family: str | int, level: str | int, optname: str | int, value: bool) -> Self:
        """Builds a boolean option, stored as a native ``int``."""
        return cls(family, level, optname, _INT_STRUCT.pack(1 if value else 0))

    @classmethod
    def from_int(cls, family: str | int, level: str | int, optname: str | int, value: int) -> Self:
        """Builds an integer option, stored as a native ``int``."""
        return cls(family, level, optname, _INT_STRUCT.pack(value))

    @classmethod
    def from_linger(cls, family: str | int, level: str | int, optname: str | int, value: tuple[bool, int]) -> Self:
        """Builds a ``struct linger`` option from an ``(enabled, seconds)`` pair."""
        enabled, seconds = value
        return cls(family, level, optname, get_socket_linger_struct().pack(1 if enabled else 0, seconds))

    def __repr__(self) -> str:
        family = _short_name(constant_name(ConstantCategory.FAMILY, self.__family), self.__family)
        level = _short_name(constant_name(ConstantCategory.LEVEL, self.__level), self.__level)
        optname = _short_name(constant_name(ConstantCategory.OPTION, self.__optname, level=self.__level), self.__optname)
        return f"<{type(self).__name__}: {family} {level} {optname} {self.__inspect_data()}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SocketOption):
            return NotImplemented
        return self.__key() == other.__key()

    def __hash__(self) -> int:
        return hash(self.__key())

    def __bytes__(self) -> bytes:
        return self.__data

    def __key(self) -> tuple[int, int, int, bytes]:
        return (self.__family, self.__level, self.__optname, self.__data)

    def __inspect_data(self) -> str:
        if self.__level == _socket.SOL_SOCKET and self.__optname == getattr(_socket, "SO_LINGER", None):
            try:
                linger = self.as_linger()
            except OptionDecodingError:
                pass
            else:
                return f"{'on' if linger.enabled else 'off'} {linger.timeout}sec"
        if len(self.__data) == _INT_STRUCT.size:
            return str(self.as_int())
        return repr(self.__data)

    def to_bytes(self) -> bytes:
        """Returns the raw option payload."""
        return self.__data

    def as_bool(self) -> bool:
        """
        Decodes the payload as a boolean.

        Raises:
            OptionDecodingError: The payload is not a native ``int`` nor a single byte.
        """
        return self.__decode_int("bool") != 0

    def as_int(self) -> int:
        """
        Decodes the payload as an integer.

        Raises:
            OptionDecodingError: The payload is not a native ``int`` nor a single byte.
        """
        return self.__decode_int("int")

    def as_linger(self) -> socket_linger:
        """
        Decodes the payload as a ``struct linger``.

        On Windows, ``struct linger`` has the size of an ``int``, so a 4-byte integer payload is decoded too.

        Raises:
            OptionDecodingError: The payload is not a ``struct linger``.
        """
        linger_struct = get_socket_linger_struct()
        if len(self.__data) != linger_struct.size:
            raise OptionDecodingError(linger_struct.size, len(self.__data), "struct linger")
        enabled, timeout = linger_struct.unpack(self.__data)
        return socket_linger(bool(enabled), int(timeout))

    def __decode_int(self, interpretation: str) -> int:
        match len(self.__data):
            case _INT_STRUCT.size:
                (value,) = _INT_STRUCT.unpack(self.__data)
                return int(value)
            case 1:
                return self.__data[0]
            case size:
                raise OptionDecodingError(_INT_STRUCT.size, size, interpretation)

    @property
    def family(self) -> int:
        """The address family."""
        return self.__family

    @property
    def level(self) -> int:
        """The option level."""
        return self.__level

    @property
    def optname(self) -> int:
        """The option name."""
        return self.__optname

    @property
    def data(self) -> bytes:
        """The raw option payload."""
        return self.__data


def _short_name(name: str | None, value: Any) -> str:
    if name is None:
        return str(value)
    return name.partition("_")[2]
