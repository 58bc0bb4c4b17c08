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
"""Host name and service name resolution interface."""

from __future__ import annotations

__all__ = [
    "AddressRecord",
    "GetaddrinfoResolver",
    "NameInfoResolver",
    "Resolver",
    "get_default_resolver",
    "getaddress",
    "gethostname",
    "getservbyname",
    "getservbyport",
]

import functools
import logging
import socket as _socket
from abc import abstractmethod
from collections.abc import Sequence
from typing import NamedTuple, Protocol, final, runtime_checkable

from .exceptions import ResolutionError
from .lowlevel import sockaddr
from .lowlevel._utils import convert_native_error, validate_port

logger = logging.getLogger(__name__)


class AddressRecord(NamedTuple):
    """A resolved address."""

    family: int
    socktype: int
    protocol: int
    canonname: str | None
    address: bytes
    """The packed socket address."""


@runtime_checkable
class Resolver(Protocol):
    """
    Resolves a host name and a service name to socket addresses.
    """

    @abstractmethod
    def resolve(self, host: str | None, service: str | int | None, family: int, socktype: int, /) -> Sequence[AddressRecord]:
        """
        Parameters:
            host: The host name or IP literal. :data:`None` for the wildcard address.
            service: The service name or port number.
            family: The address family to look for. ``AF_UNSPEC`` means any family.
            socktype: The socket type to look for. ``0`` means any type.

        Raises:
            ResolutionError: The resolution failed.

        Returns:
            the records, in resolver order.
        """
        raise NotImplementedError


@runtime_checkable
class NameInfoResolver(Protocol):
    """
    Translates a socket address back to a host name and a service name.
    """

    @abstractmethod
    def getnameinfo(self, address: bytes, flags: int, /) -> tuple[str, str]:
        """
        Parameters:
            address: The packed IPv4 or IPv6 socket address.
            flags: ``NI_*`` flags.

        Raises:
            ResolutionError: The translation failed.

        Returns:
            the ``(host, service)`` pair.
        """
        raise NotImplementedError


@final
class GetaddrinfoResolver:
    """
    Resolver implementation calling :func:`socket.getaddrinfo`.
    """

    __slots__ = ("__flags",)

    def __init__(self, *, flags: int = 0) -> None:
        """
        Parameters:
            flags: ``AI_*`` flags given to :func:`socket.getaddrinfo`.
                   ``AI_CANONNAME`` is added when a host is given, ``AI_PASSIVE`` otherwise.
        """
        self.__flags: int = flags

    def __repr__(self) -> str:
        return f"<{type(self).__name__} flags={self.__flags:#x}>"

    def resolve(self, host: str | None, service: str | int | None, family: int, socktype: int, /) -> Sequence[AddressRecord]:
        flags = self.__flags
        if host is None:
            # getaddrinfo() rejects AI_CANONNAME without a host name
            flags |= _socket.AI_PASSIVE
        else:
            flags |= _socket.AI_CANONNAME
        try:
            infos = _socket.getaddrinfo(host, service, family, socktype, 0, flags)
        except _socket.gaierror as exc:
            raise ResolutionError(exc.errno, exc.strerror) from exc

        records: list[AddressRecord] = []
        for info_family, info_socktype, info_proto, canonname, info_address in infos:
            try:
                address = sockaddr.from_socket_address(info_family, info_address)
            except ValueError:
                logger.debug("Ignoring getaddrinfo() record of unsupported family %r", info_family)
                continue
            records.append(AddressRecord(info_family, info_socktype, info_proto, canonname or None, sockaddr.pack_sockaddr(address)))

        if not records:
            raise ResolutionError(f"getaddrinfo({host!r}) returned empty list")
        return records

    def getnameinfo(self, address: bytes, flags: int, /) -> tuple[str, str]:
        socket_address = sockaddr.to_socket_address(sockaddr.unpack_sockaddr_in(address))
        try:
            return _socket.getnameinfo(socket_address, flags)
        except _socket.gaierror as exc:
            raise ResolutionError(exc.errno, exc.strerror) from exc


@functools.cache
def get_default_resolver() -> GetaddrinfoResolver:
    """Returns the resolver used when none is given."""
    return GetaddrinfoResolver()


def getaddress(host: str, *, resolver: Resolver | None = None) -> str:
    """
    Resolves `host` and returns the text form of its first IP address.

    Raises:
        ResolutionError: `host` could not be resolved.
    """
    if resolver is None:
        resolver = get_default_resolver()
    for record in resolver.resolve(host, None, _socket.AF_UNSPEC, 0):
        address = sockaddr.unpack_sockaddr(record.address)
        if isinstance(address, sockaddr.InetSockaddr):
            return address.ip_address
    raise ResolutionError(f"{host!r}: no IP address found")


def getservbyname(name: str, protocol: str = "tcp") -> int:
    """
    Returns the port number of the service `name`. Similar to :manpage:`getservbyname(3)`.

    A numeric `name` is returned as is.

    Raises:
        ValueError: Numeric `name` out of the port range.
        ResolutionError: Unknown service.
    """
    if name.isdecimal():
        return validate_port(int(name))
    try:
        return _socket.getservbyname(name, protocol)
    except OSError as exc:
        raise ResolutionError(f"no such service {name}/{protocol}") from exc


def getservbyport(port: int, protocol: str = "tcp") -> str:
    """
    Returns the name of the service using `port`. Similar to :manpage:`getservbyport(3)`.

    Raises:
        ValueError: Port out of range.
        ResolutionError: No service is registered for `port`.
    """
    port = validate_port(port)
    try:
        return _socket.getservbyport(port, protocol)
    except OSError as exc:
        raise ResolutionError(f"no such service for port {port}/{protocol}") from exc


def gethostname() -> str:
    """Returns the host name of the current machine. Similar to :manpage:`gethostname(2)`."""
    try:
        return _socket.gethostname()
    except OSError as exc:
        raise convert_native_error(exc, "gethostname") from None
