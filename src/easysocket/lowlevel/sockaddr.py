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
"""Binary socket address codec.

Converts between the platform's ``struct sockaddr_in``, ``struct sockaddr_in6`` and ``struct sockaddr_un``
byte layouts and structured address values.
"""

from __future__ import annotations

__all__ = [
    "InetSockaddr",
    "RawAddress",
    "UnixSockaddr",
    "decode_sockaddr_un",
    "from_socket_address",
    "inet_sockaddr",
    "pack_sockaddr",
    "pack_sockaddr_in",
    "pack_sockaddr_un",
    "sockaddr_family",
    "sockaddr_in",
    "sockaddr_un",
    "to_socket_address",
    "unpack_sockaddr",
    "unpack_sockaddr_in",
    "unpack_sockaddr_un",
]

import dataclasses
import ipaddress
import os
import socket as _socket
import struct
from typing import TYPE_CHECKING, Any, Final, TypeAlias

from ..exceptions import AddressDecodingError, PathTooLongError, ResolutionError
from . import _unix_utils, _utils, constants

if TYPE_CHECKING:
    from _typeshed import ReadableBuffer

    from ..resolver import Resolver


# sa_family_t on Linux, (sa_len, sa_family) on BSD
_HEADER_STRUCT: Final[struct.Struct] = struct.Struct("@BB" if constants.SOCKADDR_BSD_LAYOUT else "@H")
_HEADER_SIZE: Final[int] = _HEADER_STRUCT.size

# sin_port, sin_addr (sin_zero is not read)
_SIN_STRUCT: Final[struct.Struct] = struct.Struct("!H4s")
# sin6_port, sin6_flowinfo, sin6_addr
_SIN6_STRUCT: Final[struct.Struct] = struct.Struct("!HI16s")
# sin6_scope_id
_SIN6_SCOPE_STRUCT: Final[struct.Struct] = struct.Struct("@I")

_IP_BYTES_LENGTH: Final[dict[int, int]] = {
    _socket.AF_INET: 4,
    _socket.AF_INET6: 16,
}


@dataclasses.dataclass(frozen=True, slots=True)
class InetSockaddr:
    """
    An IPv4 or IPv6 socket address.
    """

    family: int
    """``AF_INET`` or ``AF_INET6``."""

    ip_bytes: bytes
    """The IP address in network byte order (4 bytes for IPv4, 16 bytes for IPv6)."""

    port: int = 0
    """Port number."""

    flowinfo: int = 0
    """IPv6 flow information. Always zero for IPv4."""

    scope_id: int = 0
    """IPv6 scope identifier. Always zero for IPv4."""

    def __post_init__(self) -> None:
        _utils.check_inet_socket_family(self.family)
        if len(self.ip_bytes) != _IP_BYTES_LENGTH[self.family]:
            raise ValueError(f"Invalid IP address length for family {self.family!r}: {len(self.ip_bytes)}")
        _utils.validate_port(self.port)

    @property
    def version(self) -> int:
        """The IP version (4 or 6)."""
        return 4 if self.family == _socket.AF_INET else 6

    @property
    def ip_address(self) -> str:
        """The IP address in its text form. IPv6 addresses with a scope identifier end with ``%scope_id``."""
        address = str(ipaddress.ip_address(self.ip_bytes))
        if self.scope_id:
            address = f"{address}%{self.scope_id}"
        return address

    def with_port(self, port: int) -> InetSockaddr:
        return dataclasses.replace(self, port=port)


@dataclasses.dataclass(frozen=True, slots=True)
class UnixSockaddr:
    """
    A Unix socket address.
    """

    path: bytes
    """The raw path. For abstract addresses, this is the name without the leading null byte."""

    is_abstract: bool = False
    """:data:`True` for an address in the Linux abstract namespace."""

    def __post_init__(self) -> None:
        size = len(self.path) + 1 if self.is_abstract else len(self.path)
        if size > constants.UNIX_PATH_MAX:
            raise PathTooLongError(size, constants.UNIX_PATH_MAX)
        if not self.is_abstract and b"\0" in self.path:
            raise ValueError("paths must not contain interior null bytes")

    @property
    def family(self) -> int:
        return _unix_utils.get_unix_socket_family()

    def is_unnamed(self) -> bool:
        """Checks if this address is an unnamed address (no path)."""
        return not self.is_abstract and not self.path

    def sun_path(self) -> bytes:
        """The ``sun_path`` content (with the leading null byte for abstract addresses)."""
        if self.is_abstract:
            return b"\0" + self.path
        return self.path


RawAddress: TypeAlias = InetSockaddr | UnixSockaddr
"""A decoded socket address."""


def sockaddr_family(data: ReadableBuffer) -> int:
    """
    Reads the address family field of a packed socket address.

    Raises:
        AddressDecodingError: `data` is too short to contain the address family.
    """
    data = bytes(data)
    if len(data) < _HEADER_SIZE:
        raise AddressDecodingError(f"truncated sockaddr ({len(data)} bytes)", data)
    if constants.SOCKADDR_BSD_LAYOUT:
        _, family = _HEADER_STRUCT.unpack_from(data)
    else:
        (family,) = _HEADER_STRUCT.unpack_from(data)
    return int(family)


def _pack_header(family: int, size: int) -> bytes:
    if constants.SOCKADDR_BSD_LAYOUT:
        return _HEADER_STRUCT.pack(size, family)
    return _HEADER_STRUCT.pack(family)


def pack_sockaddr(address: RawAddress) -> bytes:
    """
    Packs a structured socket address into the platform's ``struct sockaddr_*`` layout.
    """
    match address:
        case InetSockaddr(family=_socket.AF_INET):
            body = _SIN_STRUCT.pack(address.port, address.ip_bytes)
            return _pack_header(address.family, constants.SOCKADDR_IN_SIZE) + body.ljust(
                constants.SOCKADDR_IN_SIZE - _HEADER_SIZE, b"\0"
            )
        case InetSockaddr():
            return b"".join(
                [
                    _pack_header(address.family, constants.SOCKADDR_IN6_SIZE),
                    _SIN6_STRUCT.pack(address.port, address.flowinfo, address.ip_bytes),
                    _SIN6_SCOPE_STRUCT.pack(address.scope_id),
                ]
            )
        case UnixSockaddr(is_abstract=True):
            sun_path = address.sun_path()
            return _pack_header(address.family, _HEADER_SIZE + len(sun_path)) + sun_path
        case UnixSockaddr():
            return _pack_header(address.family, constants.SOCKADDR_UN_SIZE) + address.path.ljust(constants.UNIX_PATH_MAX, b"\0")
        case _:
            raise TypeError(f"Expected a RawAddress, got {address!r}")


def inet_sockaddr(port: int | str | bytes | None, host: str | bytes | None, *, resolver: Resolver | None = None) -> InetSockaddr:
    """
    Builds an IPv4 or IPv6 socket address from a host and a port.

    IP literals with a numeric port are converted directly. Host names and service names
    are given to `resolver` and the first IP record is used. With an IP literal host,
    only the port of that record is kept.

    Parameters:
        port: A port number, a numeric string or a service name. :data:`None` means port 0.
        host: An IP literal, the raw IP bytes (4 or 16 bytes), a host name (ASCII bytes are accepted),
              ``""`` or :data:`None` (``INADDR_ANY``) or ``"<broadcast>"`` (``INADDR_BROADCAST``).
        resolver: The resolver to use for names. Defaults to :func:`.get_default_resolver`.

    Raises:
        ValueError: Port out of range, or `host` bytes are not ASCII.
        ResolutionError: `host` or `port` could not be resolved.
    """
    numeric_port = _numeric_port(port)
    literal = _ip_literal(host)
    if literal is not None and numeric_port is not None:
        return literal.with_port(numeric_port)

    if resolver is None:
        from ..resolver import get_default_resolver

        resolver = get_default_resolver()

    if isinstance(port, bytes):
        port = port.decode("ascii")
    family: int = _socket.AF_UNSPEC
    if literal is not None:
        # Only the service name is resolved
        host, family = literal.ip_address, literal.family
    elif isinstance(host, bytes):
        host = host.decode("ascii")
    records = resolver.resolve(host, port, family, 0)
    for record in records:
        if _utils.is_inet_socket_family(record.family):
            address = unpack_sockaddr_in(record.address)
            return address if literal is None else literal.with_port(address.port)
    raise ResolutionError(f"{host!r}: no IP address found")


def pack_sockaddr_in(port: int | str | bytes | None, host: str | bytes | None, *, resolver: Resolver | None = None) -> bytes:
    """
    Packs an IPv4 or IPv6 socket address. See :func:`inet_sockaddr` for the accepted values.

    Example:
        >>> unpack_sockaddr_in(pack_sockaddr_in(80, "127.0.0.1"))
        InetSockaddr(family=<AddressFamily.AF_INET: 2>, ip_bytes=b'\\x7f\\x00\\x00\\x01', port=80, flowinfo=0, scope_id=0)
    """
    return pack_sockaddr(inet_sockaddr(port, host, resolver=resolver))


def pack_sockaddr_un(path: str | os.PathLike[str] | bytes) -> bytes:
    """
    Packs a Unix socket address.

    A path starting with a null byte is an address in the abstract namespace.

    Raises:
        PathTooLongError: `path` does not fit in ``sun_path``.
    """
    sun_path = _unix_utils.convert_unix_socket_address(path)
    if len(sun_path) > constants.UNIX_PATH_MAX:
        raise PathTooLongError(len(sun_path), constants.UNIX_PATH_MAX)
    if sun_path[:1] == b"\0":
        return pack_sockaddr(UnixSockaddr(sun_path[1:], is_abstract=True))
    return pack_sockaddr(UnixSockaddr(sun_path))


sockaddr_in = pack_sockaddr_in
sockaddr_un = pack_sockaddr_un


def unpack_sockaddr_in(data: ReadableBuffer) -> InetSockaddr:
    """
    Decodes a packed IPv4 or IPv6 socket address.

    Raises:
        AddressDecodingError: Truncated data, or `data` is not an ``AF_INET``/``AF_INET6`` address.
    """
    data = bytes(data)
    family = sockaddr_family(data)
    match family:
        case _socket.AF_INET:
            if len(data) < _HEADER_SIZE + _SIN_STRUCT.size:
                raise AddressDecodingError(f"truncated sockaddr_in ({len(data)} bytes)", data)
            port, ip_bytes = _SIN_STRUCT.unpack_from(data, _HEADER_SIZE)
            return InetSockaddr(_socket.AF_INET, ip_bytes, port)
        case _socket.AF_INET6:
            if len(data) < _HEADER_SIZE + _SIN6_STRUCT.size:
                raise AddressDecodingError(f"truncated sockaddr_in6 ({len(data)} bytes)", data)
            port, flowinfo, ip_bytes = _SIN6_STRUCT.unpack_from(data, _HEADER_SIZE)
            scope_id = 0
            if len(data) >= _HEADER_SIZE + _SIN6_STRUCT.size + _SIN6_SCOPE_STRUCT.size:
                (scope_id,) = _SIN6_SCOPE_STRUCT.unpack_from(data, _HEADER_SIZE + _SIN6_STRUCT.size)
            return InetSockaddr(_socket.AF_INET6, ip_bytes, port, flowinfo, scope_id)
        case _:
            raise AddressDecodingError(f"not an AF_INET/AF_INET6 sockaddr (family={family})", data)


def decode_sockaddr_un(data: ReadableBuffer) -> UnixSockaddr:
    """
    Decodes a packed Unix socket address.

    Raises:
        AddressDecodingError: Malformed data, or `data` is not an ``AF_UNIX`` address.
    """
    data = bytes(data)
    family = sockaddr_family(data)
    if not _unix_utils.is_unix_socket_family(family):
        raise AddressDecodingError(f"not an AF_UNIX sockaddr (family={family})", data)
    sun_path = data[_HEADER_SIZE:]
    if len(sun_path) > constants.UNIX_PATH_MAX:
        raise AddressDecodingError(f"too long sockaddr_un ({len(data)} bytes)", data)
    if not sun_path.strip(b"\0"):
        return UnixSockaddr(b"")
    if sun_path[0] == 0:
        return UnixSockaddr(sun_path[1:], is_abstract=True)
    return UnixSockaddr(sun_path.split(b"\0", 1)[0])


def unpack_sockaddr_un(data: ReadableBuffer) -> str | bytes:
    """
    Decodes a packed Unix socket address.

    Returns:
        the path as a :class:`str`, or the raw name (with its leading null byte) as :class:`bytes`
        for an abstract address.
    """
    address = decode_sockaddr_un(data)
    if address.is_abstract:
        return address.sun_path()
    return os.fsdecode(address.path)


def unpack_sockaddr(data: ReadableBuffer) -> RawAddress:
    """
    Decodes any supported packed socket address.

    Raises:
        AddressDecodingError: Malformed data or unsupported address family.
    """
    data = bytes(data)
    family = sockaddr_family(data)
    if _utils.is_inet_socket_family(family):
        return unpack_sockaddr_in(data)
    if _unix_utils.is_unix_socket_family(family):
        return decode_sockaddr_un(data)
    raise AddressDecodingError(f"unsupported address family: {family}", data)


def to_socket_address(address: RawAddress) -> Any:
    """
    Converts a structured socket address to the representation used by :mod:`socket`.
    """
    match address:
        case InetSockaddr(family=_socket.AF_INET):
            return (str(ipaddress.IPv4Address(address.ip_bytes)), address.port)
        case InetSockaddr():
            return (str(ipaddress.IPv6Address(address.ip_bytes)), address.port, address.flowinfo, address.scope_id)
        case UnixSockaddr(is_abstract=True):
            return address.sun_path()
        case UnixSockaddr():
            return os.fsdecode(address.path)
        case _:
            raise TypeError(f"Expected a RawAddress, got {address!r}")


def from_socket_address(family: int, address: Any) -> RawAddress:
    """
    Converts an address returned by :mod:`socket` (``getsockname()``, ``getaddrinfo()``, ...)
    to a structured socket address.

    Raises:
        ValueError: Unsupported address family.
    """
    match family:
        case _socket.AF_INET:
            host, port = address[:2]
            return InetSockaddr(family, ipaddress.IPv4Address(host).packed, port)
        case _socket.AF_INET6:
            host, port, flowinfo, scope_id = address[:4]
            host = host.partition("%")[0]
            return InetSockaddr(family, ipaddress.IPv6Address(host).packed, port, flowinfo, scope_id)
        case _ if _unix_utils.is_unix_socket_family(family):
            return decode_sockaddr_un(pack_sockaddr_un(address))
        case _:
            raise ValueError(f"Unsupported address family {family!r}")


def _numeric_port(port: int | str | bytes | None) -> int | None:
    match port:
        case None:
            return 0
        case bytes():
            return _numeric_port(port.decode("ascii"))
        case str() if port.isdecimal():
            return _numeric_port(int(port))
        case str():
            return None
        case int():
            return _utils.validate_port(port)
        case _:
            raise TypeError(f"Expected an int or a str object, got {port!r}")


def _ip_literal(host: str | bytes | None) -> InetSockaddr | None:
    match host:
        case None | "":
            return InetSockaddr(_socket.AF_INET, bytes(4))
        case "<broadcast>":
            return InetSockaddr(_socket.AF_INET, b"\xff" * 4)
        case bytes() if len(host) == 4:
            return InetSockaddr(_socket.AF_INET, host)
        case bytes() if len(host) == 16:
            return InetSockaddr(_socket.AF_INET6, host)
        case bytes():
            return _ip_literal(host.decode("ascii"))
        case str():
            literal, _, scope = host.partition("%")
            try:
                ip = ipaddress.ip_address(literal)
            except ValueError:
                return None
            if isinstance(ip, ipaddress.IPv4Address):
                return None if scope else InetSockaddr(_socket.AF_INET, ip.packed)
            if scope and not scope.isdecimal():
                # Interface names are resolved by getaddrinfo()
                return None
            return InetSockaddr(_socket.AF_INET6, ip.packed, scope_id=int(scope) if scope else 0)
        case _:
            raise TypeError(f"Expected a str or bytes object, got {host!r}")
