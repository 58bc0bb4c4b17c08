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
"""Connection builders module.

Compose address resolution, socket creation, bind, connect and listen,
with a scoped mode which closes the socket once the given action returns.

Example:
    >>> from easysocket.socket import tcp
    >>> tcp("localhost", 8080, action=lambda sock: sock.getpeername())  # doctest: +SKIP
    ('127.0.0.1', 8080)
"""

from __future__ import annotations

__all__ = [
    "SocketBuilder",
    "pair",
    "socketpair",
    "tcp",
    "udp",
    "unix",
    "unix_pair",
    "unix_server_socket",
]

import logging
import os
import socket as _socket
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar, cast, overload

from .addrinfo import Addrinfo
from .constants import ConstantCategory, resolve
from .exceptions import SocketError
from .lowlevel import _unix_utils, constants
from .lowlevel.socket import NativeSocketOperations, SupportsSocketPair, get_default_socket_operations, setsockopt
from .option import SocketOption
from .resolver import Resolver, get_default_resolver

if TYPE_CHECKING:
    from .lowlevel.socket import StdlibSocketOperations

_T_Handle = TypeVar("_T_Handle")
_T_Return = TypeVar("_T_Return")


class SocketBuilder(Generic[_T_Handle]):
    """
    Opens sockets through injected native socket operations and resolver.

    Without `action`, the methods return the socket handle and the caller owns it.
    With `action`, the handle is given to `action` and closed on every exit path;
    the result of `action` is returned.

    In all cases, a socket which fails to be bound, connected or put in listening mode is closed
    before the error is propagated.
    """

    __slots__ = ("__ops", "__resolver", "__logger", "__weakref__")

    @overload
    def __init__(
        self: SocketBuilder[_socket.socket],
        ops: StdlibSocketOperations | None = ...,
        resolver: Resolver | None = ...,
        logger: logging.Logger | None = ...,
    ) -> None: ...

    @overload
    def __init__(
        self,
        ops: NativeSocketOperations[_T_Handle],
        resolver: Resolver | None = ...,
        logger: logging.Logger | None = ...,
    ) -> None: ...

    def __init__(
        self,
        ops: NativeSocketOperations[Any] | None = None,
        resolver: Resolver | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Parameters:
            ops: The native socket operations. Defaults to :func:`.get_default_socket_operations`.
            resolver: The resolver used by :meth:`tcp` and :meth:`udp`. Defaults to :func:`.get_default_resolver`.
            logger: If given, the logger instance to use.
        """
        if ops is None:
            ops = get_default_socket_operations()
        if not isinstance(ops, NativeSocketOperations):
            raise TypeError(f"Expected a NativeSocketOperations object, got {ops!r}")
        if resolver is None:
            resolver = get_default_resolver()
        if not isinstance(resolver, Resolver):
            raise TypeError(f"Expected a Resolver object, got {resolver!r}")

        self.__ops: NativeSocketOperations[_T_Handle] = cast(NativeSocketOperations[_T_Handle], ops)
        self.__resolver: Resolver = resolver
        self.__logger: logging.Logger = logger or logging.getLogger(__name__)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} ops={self.__ops!r} resolver={self.__resolver!r}>"

    @overload
    def tcp(
        self,
        host: str | None,
        port: int | str | None,
        local_host: str | None = ...,
        local_port: int | str | None = ...,
        *,
        connect_timeout: float | None = ...,
        action: None = ...,
    ) -> _T_Handle: ...

    @overload
    def tcp(
        self,
        host: str | None,
        port: int | str | None,
        local_host: str | None = ...,
        local_port: int | str | None = ...,
        *,
        connect_timeout: float | None = ...,
        action: Callable[[_T_Handle], _T_Return],
    ) -> _T_Return: ...

    def tcp(
        self,
        host: str | None,
        port: int | str | None,
        local_host: str | None = None,
        local_port: int | str | None = None,
        *,
        connect_timeout: float | None = None,
        action: Callable[[_T_Handle], Any] | None = None,
    ) -> Any:
        """
        Opens a TCP connection to `host` and `port`.

        Every address `host` resolves to is tried in resolver order until one accepts the connection.

        Parameters:
            host: The remote host name or IP literal.
            port: The remote port number or service name.
            local_host: If given, the local host to bind before connecting. Only local addresses
                        of the same family as the remote address are used.
            local_port: If given, the local port to bind before connecting.
            connect_timeout: Maximum time to wait for each connection attempt, in seconds.
            action: See :class:`SocketBuilder`.

        Raises:
            ResolutionError: `host` or `local_host` could not be resolved.
            OSError: The only connection attempt failed.
            ExceptionGroup: Several connection attempts failed; it contains each error.
        """
        handle = self.__connect_first(host, port, local_host, local_port, _socket.SOCK_STREAM, connect_timeout)
        return self.__scoped(handle, action)

    @overload
    def udp(
        self,
        host: str | None,
        port: int | str | None,
        local_host: str | None = ...,
        local_port: int | str | None = ...,
        *,
        action: None = ...,
    ) -> _T_Handle: ...

    @overload
    def udp(
        self,
        host: str | None,
        port: int | str | None,
        local_host: str | None = ...,
        local_port: int | str | None = ...,
        *,
        action: Callable[[_T_Handle], _T_Return],
    ) -> _T_Return: ...

    def udp(
        self,
        host: str | None,
        port: int | str | None,
        local_host: str | None = None,
        local_port: int | str | None = None,
        *,
        action: Callable[[_T_Handle], Any] | None = None,
    ) -> Any:
        """
        Opens an UDP socket connected to `host` and `port`.

        Same as :meth:`tcp` for datagram sockets.
        """
        handle = self.__connect_first(host, port, local_host, local_port, _socket.SOCK_DGRAM, None)
        return self.__scoped(handle, action)

    @overload
    def unix(
        self,
        path: str | os.PathLike[str] | bytes,
        *,
        connect_timeout: float | None = ...,
        action: None = ...,
    ) -> _T_Handle: ...

    @overload
    def unix(
        self,
        path: str | os.PathLike[str] | bytes,
        *,
        connect_timeout: float | None = ...,
        action: Callable[[_T_Handle], _T_Return],
    ) -> _T_Return: ...

    def unix(
        self,
        path: str | os.PathLike[str] | bytes,
        *,
        connect_timeout: float | None = None,
        action: Callable[[_T_Handle], Any] | None = None,
    ) -> Any:
        """
        Opens a connection to the Unix stream socket at `path`.

        Parameters:
            path: The socket path. A leading null byte denotes an abstract address.
            connect_timeout: Maximum time to wait for the connection, in seconds.
            action: See :class:`SocketBuilder`.

        Raises:
            PathTooLongError: `path` does not fit in a Unix socket address.
            OSError: The connection failed.
        """
        return self.open_connection(Addrinfo.unix(path, _socket.SOCK_STREAM), timeout=connect_timeout, action=action)

    @overload
    def unix_server_socket(
        self,
        path: str | os.PathLike[str] | bytes,
        *,
        backlog: int = ...,
        action: None = ...,
    ) -> _T_Handle: ...

    @overload
    def unix_server_socket(
        self,
        path: str | os.PathLike[str] | bytes,
        *,
        backlog: int = ...,
        action: Callable[[_T_Handle], _T_Return],
    ) -> _T_Return: ...

    def unix_server_socket(
        self,
        path: str | os.PathLike[str] | bytes,
        *,
        backlog: int = constants.DEFAULT_LISTEN_BACKLOG,
        action: Callable[[_T_Handle], Any] | None = None,
    ) -> Any:
        """
        Opens a Unix stream socket bound to `path` and listening for connections.

        Parameters:
            path: The socket path. A leading null byte denotes an abstract address.
            backlog: The maximum length of the pending connections queue.
            action: See :class:`SocketBuilder`.
        """
        return self.open_listener(Addrinfo.unix(path, _socket.SOCK_STREAM), backlog, action=action)

    @overload
    def pair(
        self,
        family: str | int | None = ...,
        socktype: str | int = ...,
        protocol: str | int = ...,
        *,
        action: None = ...,
    ) -> tuple[_T_Handle, _T_Handle]: ...

    @overload
    def pair(
        self,
        family: str | int | None = ...,
        socktype: str | int = ...,
        protocol: str | int = ...,
        *,
        action: Callable[[tuple[_T_Handle, _T_Handle]], _T_Return],
    ) -> _T_Return: ...

    def pair(
        self,
        family: str | int | None = None,
        socktype: str | int = _socket.SOCK_STREAM,
        protocol: str | int = 0,
        *,
        action: Callable[[tuple[_T_Handle, _T_Handle]], Any] | None = None,
    ) -> Any:
        """
        Opens a pair of connected sockets.

        Parameters:
            family: The address family. Defaults to ``AF_UNIX`` where available, ``AF_INET`` otherwise.
            socktype: The socket type.
            protocol: The protocol. ``0`` for the default one.
            action: If given, called with both handles; they are closed on every exit path
                    and the result of `action` is returned.

        Raises:
            TypeError: The native socket operations cannot open socket pairs.
            OSError: The native operation failed.

        Returns:
            the two handles, or the result of `action`.
        """
        ops = self.__ops
        if not isinstance(ops, SupportsSocketPair):
            raise TypeError(f"{ops!r} cannot open socket pairs")
        if family is None:
            family = getattr(_socket, "AF_UNIX", _socket.AF_INET)
        family = resolve(ConstantCategory.FAMILY, family)
        socktype = resolve(ConstantCategory.SOCKTYPE, socktype)
        protocol = resolve(ConstantCategory.PROTOCOL, protocol)

        self.__logger.debug("Creating socket pair (family=%r, socktype=%r, protocol=%r)", family, socktype, protocol)
        handles: tuple[_T_Handle, _T_Handle] = ops.socketpair(family, socktype, protocol)
        if action is None:
            return handles
        return self.__scoped_pair(handles, action)

    @overload
    def unix_pair(self, socktype: str | int = ..., *, action: None = ...) -> tuple[_T_Handle, _T_Handle]: ...

    @overload
    def unix_pair(
        self,
        socktype: str | int = ...,
        *,
        action: Callable[[tuple[_T_Handle, _T_Handle]], _T_Return],
    ) -> _T_Return: ...

    def unix_pair(
        self,
        socktype: str | int = _socket.SOCK_STREAM,
        *,
        action: Callable[[tuple[_T_Handle, _T_Handle]], Any] | None = None,
    ) -> Any:
        """
        Opens a pair of connected Unix sockets. See :meth:`pair`.

        Raises:
            NotImplementedError: ``AF_UNIX`` is not supported on this platform.
        """
        return self.pair(_unix_utils.get_unix_socket_family(), socktype, action=action)

    @overload
    def open_connection(
        self,
        addrinfo: Addrinfo,
        *,
        local: Addrinfo | None = ...,
        timeout: float | None = ...,
        action: None = ...,
    ) -> _T_Handle: ...

    @overload
    def open_connection(
        self,
        addrinfo: Addrinfo,
        *,
        local: Addrinfo | None = ...,
        timeout: float | None = ...,
        action: Callable[[_T_Handle], _T_Return],
    ) -> _T_Return: ...

    def open_connection(
        self,
        addrinfo: Addrinfo,
        *,
        local: Addrinfo | None = None,
        timeout: float | None = None,
        action: Callable[[_T_Handle], Any] | None = None,
    ) -> Any:
        """
        Opens a socket connected to `addrinfo`. See :meth:`.Addrinfo.connect`.
        """
        return self.__scoped(self.__connect(addrinfo, local, timeout), action)

    @overload
    def open_bound_socket(self, addrinfo: Addrinfo, *, action: None = ...) -> _T_Handle: ...

    @overload
    def open_bound_socket(self, addrinfo: Addrinfo, *, action: Callable[[_T_Handle], _T_Return]) -> _T_Return: ...

    def open_bound_socket(self, addrinfo: Addrinfo, *, action: Callable[[_T_Handle], Any] | None = None) -> Any:
        """
        Opens a socket bound to `addrinfo`. See :meth:`.Addrinfo.bind`.
        """
        return self.__scoped(self.__bind(addrinfo), action)

    @overload
    def open_listener(self, addrinfo: Addrinfo, backlog: int = ..., *, action: None = ...) -> _T_Handle: ...

    @overload
    def open_listener(
        self,
        addrinfo: Addrinfo,
        backlog: int = ...,
        *,
        action: Callable[[_T_Handle], _T_Return],
    ) -> _T_Return: ...

    def open_listener(
        self,
        addrinfo: Addrinfo,
        backlog: int = constants.DEFAULT_LISTEN_BACKLOG,
        *,
        action: Callable[[_T_Handle], Any] | None = None,
    ) -> Any:
        """
        Opens a socket bound to `addrinfo` and listening for connections. See :meth:`.Addrinfo.listen`.
        """
        handle = self.__bind(addrinfo)
        try:
            self.__logger.debug("Listening on %s (backlog=%d)", addrinfo.inspect_sockaddr(), backlog)
            self.__ops.listen(handle, backlog)
        except BaseException:
            self.__close(handle)
            raise
        return self.__scoped(handle, action)

    def __connect_first(
        self,
        host: str | None,
        port: int | str | None,
        local_host: str | None,
        local_port: int | str | None,
        socktype: int,
        timeout: float | None,
    ) -> _T_Handle:
        remote_addrinfos = Addrinfo.getaddrinfo(host, port, _socket.AF_UNSPEC, socktype, resolver=self.__resolver)
        local_addrinfos: list[Addrinfo] | None = None
        if local_host is not None or local_port is not None:
            local_addrinfos = Addrinfo.getaddrinfo(local_host, local_port, _socket.AF_UNSPEC, socktype, resolver=self.__resolver)

        errors: list[OSError] = []
        try:
            for remote in remote_addrinfos:
                local: Addrinfo | None = None
                if local_addrinfos is not None:
                    # skip local addresses of different family
                    local = next((ai for ai in local_addrinfos if ai.afamily == remote.afamily), None)
                    if local is None:
                        errors.append(SocketError(f"no matching local address with family={remote.afamily!r} found"))
                        continue
                try:
                    return self.__connect(remote, local, timeout)
                except OSError as exc:
                    self.__logger.debug("Connection attempt to %s failed: %s", remote.inspect_sockaddr(), exc)
                    errors.append(exc)

            if len(errors) == 1:
                raise errors[0]
            raise ExceptionGroup(f"connection to {host!r} (port {port!r}) failed", errors)
        finally:
            errors.clear()

    def __connect(self, remote: Addrinfo, local: Addrinfo | None, timeout: float | None) -> _T_Handle:
        handle = self.__create(remote)
        try:
            if local is not None:
                self.__logger.debug("Binding to %s", local.inspect_sockaddr())
                self.__ops.bind(handle, local.to_sockaddr())
            self.__logger.debug("Connecting to %s", remote.inspect_sockaddr())
            self.__ops.connect(handle, remote.to_sockaddr(), timeout)
        except BaseException:
            self.__close(handle)
            raise
        return handle

    def __bind(self, addrinfo: Addrinfo) -> _T_Handle:
        handle = self.__create(addrinfo)
        try:
            if addrinfo.is_ipv6():
                setsockopt(self.__ops, handle, SocketOption.from_bool(addrinfo.afamily, "IPV6", "V6ONLY", True))
            if addrinfo.is_ip() and os.name not in ("nt", "cygwin"):
                setsockopt(self.__ops, handle, SocketOption.from_bool(addrinfo.afamily, "SOCKET", "REUSEADDR", True))
            self.__logger.debug("Binding to %s", addrinfo.inspect_sockaddr())
            self.__ops.bind(handle, addrinfo.to_sockaddr())
        except BaseException:
            self.__close(handle)
            raise
        return handle

    def __create(self, addrinfo: Addrinfo) -> _T_Handle:
        self.__logger.debug(
            "Creating socket (family=%r, socktype=%r, protocol=%r)",
            addrinfo.pfamily,
            addrinfo.socktype,
            addrinfo.protocol,
        )
        return self.__ops.create(addrinfo.pfamily, addrinfo.socktype, addrinfo.protocol)

    def __close(self, handle: _T_Handle) -> None:
        self.__logger.debug("Closing %r", handle)
        self.__ops.close(handle)

    def __scoped(self, handle: _T_Handle, action: Callable[[_T_Handle], _T_Return] | None) -> _T_Handle | _T_Return:
        if action is None:
            return handle
        try:
            result = action(handle)
        except BaseException as exc:
            try:
                self.__close(handle)
            except Exception as close_exc:
                # The action's error stays the one raised
                exc.add_note(f"Closing {handle!r} failed: {close_exc!r}")
            raise
        self.__close(handle)
        return result

    def __scoped_pair(
        self,
        handles: tuple[_T_Handle, _T_Handle],
        action: Callable[[tuple[_T_Handle, _T_Handle]], Any],
    ) -> Any:
        first, second = handles
        return self.__scoped(first, lambda _: self.__scoped(second, lambda _: action(handles)))

    @property
    def ops(self) -> NativeSocketOperations[_T_Handle]:
        """The native socket operations."""
        return self.__ops

    @property
    def resolver(self) -> Resolver:
        """The resolver."""
        return self.__resolver


def tcp(
    host: str | None,
    port: int | str | None,
    local_host: str | None = None,
    local_port: int | str | None = None,
    *,
    connect_timeout: float | None = None,
    action: Callable[[Any], Any] | None = None,
    ops: NativeSocketOperations[Any] | None = None,
    resolver: Resolver | None = None,
) -> Any:
    """
    Opens a TCP connection. Shorthand for ``SocketBuilder(ops, resolver).tcp(...)``.

    See :meth:`SocketBuilder.tcp`.
    """
    builder: SocketBuilder[Any] = SocketBuilder(ops, resolver)
    return builder.tcp(host, port, local_host, local_port, connect_timeout=connect_timeout, action=action)


def udp(
    host: str | None,
    port: int | str | None,
    local_host: str | None = None,
    local_port: int | str | None = None,
    *,
    action: Callable[[Any], Any] | None = None,
    ops: NativeSocketOperations[Any] | None = None,
    resolver: Resolver | None = None,
) -> Any:
    """
    Opens a connected UDP socket. Shorthand for ``SocketBuilder(ops, resolver).udp(...)``.

    See :meth:`SocketBuilder.udp`.
    """
    builder: SocketBuilder[Any] = SocketBuilder(ops, resolver)
    return builder.udp(host, port, local_host, local_port, action=action)


def unix(
    path: str | os.PathLike[str] | bytes,
    *,
    connect_timeout: float | None = None,
    action: Callable[[Any], Any] | None = None,
    ops: NativeSocketOperations[Any] | None = None,
) -> Any:
    """
    Opens a Unix stream connection. Shorthand for ``SocketBuilder(ops).unix(...)``.

    See :meth:`SocketBuilder.unix`.
    """
    builder: SocketBuilder[Any] = SocketBuilder(ops)
    return builder.unix(path, connect_timeout=connect_timeout, action=action)


def unix_server_socket(
    path: str | os.PathLike[str] | bytes,
    *,
    backlog: int = constants.DEFAULT_LISTEN_BACKLOG,
    action: Callable[[Any], Any] | None = None,
    ops: NativeSocketOperations[Any] | None = None,
) -> Any:
    """
    Opens a listening Unix stream socket. Shorthand for ``SocketBuilder(ops).unix_server_socket(...)``.

    See :meth:`SocketBuilder.unix_server_socket`.
    """
    builder: SocketBuilder[Any] = SocketBuilder(ops)
    return builder.unix_server_socket(path, backlog=backlog, action=action)


def pair(
    family: str | int | None = None,
    socktype: str | int = _socket.SOCK_STREAM,
    protocol: str | int = 0,
    *,
    action: Callable[[Any], Any] | None = None,
    ops: NativeSocketOperations[Any] | None = None,
) -> Any:
    """
    Opens a pair of connected sockets. Shorthand for ``SocketBuilder(ops).pair(...)``.

    See :meth:`SocketBuilder.pair`.
    """
    builder: SocketBuilder[Any] = SocketBuilder(ops)
    return builder.pair(family, socktype, protocol, action=action)


socketpair = pair


def unix_pair(
    socktype: str | int = _socket.SOCK_STREAM,
    *,
    action: Callable[[Any], Any] | None = None,
    ops: NativeSocketOperations[Any] | None = None,
) -> Any:
    """
    Opens a pair of connected Unix sockets. Shorthand for ``SocketBuilder(ops).unix_pair(...)``.

    See :meth:`SocketBuilder.unix_pair`.
    """
    builder: SocketBuilder[Any] = SocketBuilder(ops)
    return builder.unix_pair(socktype, action=action)
