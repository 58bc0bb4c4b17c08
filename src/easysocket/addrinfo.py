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
"""Socket address information module."""

from __future__ import annotations

__all__ = [
    "Addrinfo",
    "local_address",
    "remote_address",
]

import ipaddress
import os
import socket as _socket
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Self, TypeVar, final, overload

from .constants import ConstantCategory, resolve
from .exceptions import AddressAccessError, AddressDecodingError, ResolutionError
from .lowlevel import constants, sockaddr
from .lowlevel.sockaddr import InetSockaddr, RawAddress, UnixSockaddr

if TYPE_CHECKING:
    from _typeshed import ReadableBuffer

    from .lowlevel.socket import Addressable, NativeSocketOperations
    from .resolver import NameInfoResolver, Resolver

_T_Handle = TypeVar("_T_Handle")
_T_Return = TypeVar("_T_Return")


@final
class Addrinfo:
    """
    A socket address with the family, socket type and protocol to use it with.

    Instances are immutable, hashable and compared by value.

    Example:
        >>> ai = Addrinfo.tcp("93.184.216.34", 80)
        >>> ai
        <Addrinfo: 93.184.216.34:80 TCP>
        >>> ai.ip_unpack()
        ('93.184.216.34', 80)
    """

    __slots__ = ("__address", "__family", "__socktype", "__protocol", "__canonname", "__weakref__")

    def __init__(
        self,
        sockaddr: ReadableBuffer | RawAddress,
        family: str | int | None = None,
        socktype: str | int | None = 0,
        protocol: str | int | None = 0,
        canonname: str | None = None,
    ) -> None:
        """
        Parameters:
            sockaddr: The packed socket address, or a decoded one.
            family: The protocol family. Defaults to the family of `sockaddr`.
            socktype: The socket type. ``0`` for unspecified.
            protocol: The protocol. ``0`` for unspecified.
            canonname: The canonical name of the host.

        Raises:
            AddressDecodingError: `sockaddr` is malformed, or its family is not `family`.
        """
        address: RawAddress
        match sockaddr:
            case InetSockaddr() | UnixSockaddr():
                address = sockaddr
            case _:
                address = _unpack(sockaddr)

        if family is None:
            family = address.family
        else:
            family = resolve(ConstantCategory.FAMILY, family)
            if family != address.family:
                raise AddressDecodingError(f"address family mismatch: expected {family}, got {address.family}")

        self.__address: RawAddress = address
        self.__family: int = family
        self.__socktype: int = resolve(ConstantCategory.SOCKTYPE, socktype or 0)
        self.__protocol: int = resolve(ConstantCategory.PROTOCOL, protocol or 0)
        self.__canonname: str | None = canonname

    @classmethod
    def getaddrinfo(
        cls,
        host: str | None,
        service: str | int | None,
        family: str | int = _socket.AF_UNSPEC,
        socktype: str | int = 0,
        *,
        resolver: Resolver | None = None,
    ) -> list[Self]:
        """
        Resolves `host` and `service`.

        Parameters:
            host: The host name or IP literal. ``""`` or :data:`None` for the wildcard address.
            service: The service name or port number.
            family: The address family to look for.
            socktype: The socket type to look for.
            resolver: The resolver to use. Defaults to :func:`.get_default_resolver`.

        Raises:
            ResolutionError: The resolver failed or returned no records.

        Returns:
            one :class:`Addrinfo` per record, in resolver order.
        """
        if resolver is None:
            from .resolver import get_default_resolver

            resolver = get_default_resolver()

        records = resolver.resolve(
            host or None,
            service,
            resolve(ConstantCategory.FAMILY, family),
            resolve(ConstantCategory.SOCKTYPE, socktype),
        )
        if not records:
            raise ResolutionError(f"getaddrinfo({host!r}) returned empty list")
        return [cls(record.address, record.family, record.socktype, record.protocol, record.canonname) for record in records]

    @classmethod
    def from_sockaddr(
        cls,
        data: ReadableBuffer,
        family_hint: str | int | None = None,
        socktype: str | int | None = None,
        protocol: str | int | None = None,
    ) -> Self:
        """
        Decodes a packed socket address.

        Raises:
            AddressDecodingError: Malformed data, or the address family is not `family_hint`.
        """
        return cls(data, family_hint, socktype, protocol)

    @classmethod
    def ip(cls, address: str | bytes) -> Self:
        """
        Builds an address from an IP address, with port 0.

        Raises:
            ResolutionError: `address` is not an IP literal and cannot be resolved.
        """
        return cls(sockaddr.inet_sockaddr(0, address), socktype=0, protocol=_socket.IPPROTO_IP)

    @classmethod
    def tcp(cls, address: str | bytes, port: int | str) -> Self:
        """
        Builds a TCP address.

        Raises:
            ResolutionError: `address` or `port` is not numeric and cannot be resolved.
        """
        return cls(sockaddr.inet_sockaddr(port, address), socktype=_socket.SOCK_STREAM, protocol=_socket.IPPROTO_TCP)

    @classmethod
    def udp(cls, address: str | bytes, port: int | str) -> Self:
        """
        Builds an UDP address.

        Raises:
            ResolutionError: `address` or `port` is not numeric and cannot be resolved.
        """
        return cls(sockaddr.inet_sockaddr(port, address), socktype=_socket.SOCK_DGRAM, protocol=_socket.IPPROTO_UDP)

    @classmethod
    def unix(cls, path: str | os.PathLike[str] | bytes, socktype: str | int = _socket.SOCK_STREAM) -> Self:
        """
        Builds a Unix socket address.

        Raises:
            PathTooLongError: `path` does not fit in ``sun_path``.
        """
        return cls(sockaddr.pack_sockaddr_un(path), socktype=socktype, protocol=0)

    def __repr__(self) -> str:
        parts: list[str] = [self.inspect_sockaddr()]
        if self.is_ip():
            # IP addresses are labelled by protocol only
            match self.__protocol:
                case _socket.IPPROTO_TCP:
                    parts.append("TCP")
                case _socket.IPPROTO_UDP:
                    parts.append("UDP")
        else:
            match self.__socktype:
                case _socket.SOCK_STREAM:
                    parts.append("SOCK_STREAM")
                case _socket.SOCK_DGRAM:
                    parts.append("SOCK_DGRAM")
                case 0:
                    pass
                case socktype:
                    parts.append(f"socktype={socktype}")
        if self.__canonname:
            parts.append(f"({self.__canonname})")
        return f"<{type(self).__name__}: {' '.join(parts)}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Addrinfo):
            return NotImplemented
        return self.__key() == other.__key()

    def __hash__(self) -> int:
        return hash(self.__key())

    def __bytes__(self) -> bytes:
        return self.to_sockaddr()

    def __key(self) -> tuple[Any, ...]:
        return (self.__address, self.__family, self.__socktype, self.__protocol, self.__canonname)

    def to_sockaddr(self) -> bytes:
        """Returns the packed socket address."""
        return sockaddr.pack_sockaddr(self.__address)

    def is_ipv4(self) -> bool:
        """Checks if this is an IPv4 address."""
        return self.__family == _socket.AF_INET

    def is_ipv6(self) -> bool:
        """Checks if this is an IPv6 address."""
        return self.__family == _socket.AF_INET6

    def is_ip(self) -> bool:
        """Checks if this is an IPv4 or IPv6 address."""
        return isinstance(self.__address, InetSockaddr)

    def is_unix(self) -> bool:
        """Checks if this is a Unix socket address."""
        return isinstance(self.__address, UnixSockaddr)

    def is_ipv4_loopback(self) -> bool:
        """Checks if this is an IPv4 address in 127.0.0.0/8."""
        return self.is_ipv4() and self.__ip_bytes()[0] == 127

    def is_ipv4_multicast(self) -> bool:
        """Checks if this is an IPv4 address in 224.0.0.0/4."""
        return self.is_ipv4() and 224 <= self.__ip_bytes()[0] <= 239

    def is_ipv4_private(self) -> bool:
        """Checks if this is an IPv4 address in 10.0.0.0/8, 172.16.0.0/12 or 192.168.0.0/16."""
        if not self.is_ipv4():
            return False
        first, second = self.__ip_bytes()[:2]
        return first == 10 or (first == 172 and 16 <= second <= 31) or (first == 192 and second == 168)

    def is_ipv6_loopback(self) -> bool:
        """Checks if this is the IPv6 loopback address (::1)."""
        return self.is_ipv6() and self.__ipv6_address().is_loopback

    def is_ipv6_multicast(self) -> bool:
        """Checks if this is an IPv6 multicast address (ff00::/8)."""
        return self.is_ipv6() and self.__ipv6_address().is_multicast

    def is_ipv6_linklocal(self) -> bool:
        """Checks if this is an IPv6 link-local address (fe80::/10)."""
        return self.is_ipv6() and self.__ipv6_address().is_link_local

    def is_ipv6_unspecified(self) -> bool:
        """Checks if this is the IPv6 unspecified address (::)."""
        return self.is_ipv6() and self.__ipv6_address().is_unspecified

    def is_ipv6_v4mapped(self) -> bool:
        """Checks if this is an IPv4-mapped IPv6 address (::ffff:0:0/96)."""
        return self.is_ipv6() and self.__ipv6_address().ipv4_mapped is not None

    def ipv6_to_ipv4(self) -> Addrinfo | None:
        """
        Converts an IPv4-mapped or IPv4-compatible IPv6 address to an IPv4 address.

        Returns:
            the IPv4 address with the same port, socket type and protocol, or :data:`None`.
        """
        if not self.is_ipv6():
            return None
        ip_bytes = self.__ip_bytes()
        ipv4_mapped = ip_bytes[:12] == bytes(10) + b"\xff\xff"
        # ::a.b.c.d, except for :: and ::1
        ipv4_compatible = ip_bytes[:12] == bytes(12) and ip_bytes[12:] not in (bytes(4), bytes(3) + b"\x01")
        if not (ipv4_mapped or ipv4_compatible):
            return None
        address = InetSockaddr(_socket.AF_INET, ip_bytes[12:], self.ip_port)
        return Addrinfo(address, _socket.AF_INET, self.__socktype, self.__protocol)

    def ip_unpack(self) -> tuple[str, int]:
        """
        Returns the IP address and the port.

        Raises:
            AddressAccessError: Not an IPv4 or IPv6 address.
        """
        address = self.__inet_address()
        return (address.ip_address, address.port)

    def getnameinfo(self, flags: int = 0, *, resolver: NameInfoResolver | None = None) -> tuple[str, str]:
        """
        Returns the host name and the service name of this address. Similar to :manpage:`getnameinfo(3)`.

        ``NI_DGRAM`` is added to `flags` for datagram sockets.

        Parameters:
            flags: ``NI_*`` flags, such as ``NI_NUMERICHOST``.
            resolver: The resolver to use. Defaults to :func:`.get_default_resolver`.

        Raises:
            AddressAccessError: Not an IPv4 or IPv6 address.
            ResolutionError: The address could not be translated.
        """
        self.__inet_address()
        if resolver is None:
            from .resolver import get_default_resolver

            resolver = get_default_resolver()
        if self.__socktype == _socket.SOCK_DGRAM:
            flags |= _socket.NI_DGRAM
        return resolver.getnameinfo(self.to_sockaddr(), flags)

    def inspect_sockaddr(self) -> str:
        """
        Returns a human readable representation of the socket address.

        * IPv4: ``ip`` or ``ip:port`` (port shown only if non-zero);
        * IPv6: ``ip`` or ``[ip]:port``;
        * Unix: the path if absolute, ``UNIX path`` otherwise, ``UNIX @name`` for an abstract address
          and ``UNIX`` for an unnamed address.
        """
        match self.__address:
            case InetSockaddr(port=0) as address:
                return address.ip_address
            case InetSockaddr(family=_socket.AF_INET) as address:
                return f"{address.ip_address}:{address.port}"
            case InetSockaddr() as address:
                return f"[{address.ip_address}]:{address.port}"
            case UnixSockaddr(is_abstract=True) as address:
                return f"UNIX @{os.fsdecode(address.path)}"
            case UnixSockaddr() as address:
                if address.is_unnamed():
                    return "UNIX"
                path = os.fsdecode(address.path)
                if path.startswith("/"):
                    return path
                return f"UNIX {path}"
            case _:  # pragma: no cover
                raise AssertionError(self.__address)

    @overload
    def connect(
        self,
        *,
        timeout: float | None = ...,
        local: Addrinfo | None = ...,
        action: None = ...,
        ops: NativeSocketOperations[Any] | None = ...,
    ) -> Any: ...

    @overload
    def connect(
        self,
        *,
        timeout: float | None = ...,
        local: Addrinfo | None = ...,
        action: Callable[[Any], _T_Return],
        ops: NativeSocketOperations[Any] | None = ...,
    ) -> _T_Return: ...

    def connect(
        self,
        *,
        timeout: float | None = None,
        local: Addrinfo | None = None,
        action: Callable[[Any], Any] | None = None,
        ops: NativeSocketOperations[Any] | None = None,
    ) -> Any:
        """
        Opens a socket connected to this address.

        Parameters:
            timeout: Maximum time to wait for the connection, in seconds. :data:`None` means no limit.
            local: Local address to bind before connecting.
            action: If given, called with the socket handle; the handle is closed when it returns
                    and its result is returned.
            ops: The native socket operations. Defaults to :func:`.get_default_socket_operations`.

        Raises:
            OSError: A native operation failed. The socket is closed.

        Returns:
            the socket handle, or the result of `action`.
        """
        from .socket import SocketBuilder

        return SocketBuilder(ops=ops).open_connection(self, local=local, timeout=timeout, action=action)

    @overload
    def bind(self, *, action: None = ..., ops: NativeSocketOperations[Any] | None = ...) -> Any: ...

    @overload
    def bind(self, *, action: Callable[[Any], _T_Return], ops: NativeSocketOperations[Any] | None = ...) -> _T_Return: ...

    def bind(self, *, action: Callable[[Any], Any] | None = None, ops: NativeSocketOperations[Any] | None = None) -> Any:
        """
        Opens a socket bound to this address.

        ``SO_REUSEADDR`` is set for IP addresses, and ``IPV6_V6ONLY`` for IPv6 addresses.

        See :meth:`connect` for the meaning of `action` and `ops`.
        """
        from .socket import SocketBuilder

        return SocketBuilder(ops=ops).open_bound_socket(self, action=action)

    @overload
    def listen(
        self,
        backlog: int = ...,
        *,
        action: None = ...,
        ops: NativeSocketOperations[Any] | None = ...,
    ) -> Any: ...

    @overload
    def listen(
        self,
        backlog: int = ...,
        *,
        action: Callable[[Any], _T_Return],
        ops: NativeSocketOperations[Any] | None = ...,
    ) -> _T_Return: ...

    def listen(
        self,
        backlog: int = constants.DEFAULT_LISTEN_BACKLOG,
        *,
        action: Callable[[Any], Any] | None = None,
        ops: NativeSocketOperations[Any] | None = None,
    ) -> Any:
        """
        Opens a socket bound to this address and listening for connections.

        See :meth:`bind`.
        """
        from .socket import SocketBuilder

        return SocketBuilder(ops=ops).open_listener(self, backlog, action=action)

    def __ip_bytes(self) -> bytes:
        return self.__inet_address().ip_bytes

    def __ipv6_address(self) -> ipaddress.IPv6Address:
        return ipaddress.IPv6Address(self.__ip_bytes())

    def __inet_address(self) -> InetSockaddr:
        address = self.__address
        if not isinstance(address, InetSockaddr):
            raise AddressAccessError("need IPv4 or IPv6 address")
        return address

    @property
    def afamily(self) -> int:
        """The address family."""
        return _cast_socket_family(self.__address.family)

    @property
    def pfamily(self) -> int:
        """The protocol family."""
        return _cast_socket_family(self.__family)

    @property
    def family(self) -> int:
        """The protocol family. Same as :attr:`pfamily`."""
        return self.pfamily

    @property
    def socktype(self) -> int:
        """The socket type. ``0`` if unspecified."""
        return _cast_socket_kind(self.__socktype)

    @property
    def protocol(self) -> int:
        """The protocol. ``0`` if unspecified."""
        return self.__protocol

    @property
    def canonname(self) -> str | None:
        """The canonical name of the host, if known."""
        return self.__canonname

    @property
    def raw_address(self) -> RawAddress:
        """The decoded socket address."""
        return self.__address

    @property
    def ip_address(self) -> str:
        """
        The IP address in text form.

        Raises:
            AddressAccessError: Not an IPv4 or IPv6 address.
        """
        return self.__inet_address().ip_address

    @property
    def ip_port(self) -> int:
        """
        The port number.

        Raises:
            AddressAccessError: Not an IPv4 or IPv6 address.
        """
        return self.__inet_address().port

    @property
    def unix_path(self) -> str | bytes:
        """
        The Unix socket path. Abstract names are returned as :class:`bytes`, with the leading null byte.

        Raises:
            AddressAccessError: Not a Unix socket address.
        """
        address = self.__address
        if not isinstance(address, UnixSockaddr):
            raise AddressAccessError("need AF_UNIX address")
        if address.is_abstract:
            return address.sun_path()
        return os.fsdecode(address.path)


def local_address(ops: Addressable[_T_Handle], handle: _T_Handle, socktype: str | int = 0) -> Addrinfo:
    """Returns the local address of `handle`. Similar to :manpage:`getsockname(2)`."""
    return Addrinfo(ops.getsockname(handle), socktype=socktype)


def remote_address(ops: Addressable[_T_Handle], handle: _T_Handle, socktype: str | int = 0) -> Addrinfo:
    """Returns the remote address of `handle`. Similar to :manpage:`getpeername(2)`."""
    return Addrinfo(ops.getpeername(handle), socktype=socktype)


def _unpack(data: ReadableBuffer) -> RawAddress:
    return sockaddr.unpack_sockaddr(data)


def _cast_socket_family(family: int) -> int:
    try:
        return _socket.AddressFamily(family)
    except ValueError:
        return family


def _cast_socket_kind(kind: int) -> int:
    try:
        return _socket.SocketKind(kind)
    except ValueError:
        return kind
