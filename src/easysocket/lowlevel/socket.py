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
"""Native socket operations interface and socket option helpers."""

from __future__ import annotations

__all__ = [
    "Addressable",
    "Connectable",
    "Listenable",
    "NativeSocketOperations",
    "Optionable",
    "StdlibSocketOperations",
    "SupportsSocketCreation",
    "SupportsSocketPair",
    "disable_socket_linger",
    "enable_socket_linger",
    "get_default_socket_operations",
    "get_socket_linger",
    "getsockopt",
    "set_tcp_keepalive",
    "set_tcp_nodelay",
    "setsockopt",
]

import contextlib
import functools
import socket as _socket
from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, TypeVar, final, runtime_checkable

from ..constants import ConstantCategory, resolve
from ..exceptions import UnknownConstantError
from ..option import SocketOption, socket_linger
from . import _utils, constants, sockaddr

if TYPE_CHECKING:
    from _typeshed import ReadableBuffer

_T_Handle = TypeVar("_T_Handle")


@runtime_checkable
class SupportsSocketCreation(Protocol[_T_Handle]):
    """
    Interface for an object which can open and close socket handles.
    """

    @abstractmethod
    def create(self, family: int, socktype: int, protocol: int, /) -> _T_Handle:
        """
        Similar to :manpage:`socket(2)`.
        """
        ...

    @abstractmethod
    def close(self, handle: _T_Handle, /) -> None:
        """
        Similar to :manpage:`close(2)`.

        Closing a handle twice must not fail.
        """
        ...


@runtime_checkable
class SupportsSocketPair(Protocol[_T_Handle]):
    """
    Interface for an object which can open a pair of connected socket handles.
    """

    @abstractmethod
    def socketpair(self, family: int, socktype: int, protocol: int, /) -> tuple[_T_Handle, _T_Handle]:
        """
        Similar to :manpage:`socketpair(2)`.
        """
        ...


@runtime_checkable
class Addressable(Protocol[_T_Handle]):
    """
    Interface for an object which can read the addresses of a socket handle.
    """

    @abstractmethod
    def getsockname(self, handle: _T_Handle, /) -> bytes:
        """
        Similar to :manpage:`getsockname(2)`. Returns the packed socket address.
        """
        ...

    @abstractmethod
    def getpeername(self, handle: _T_Handle, /) -> bytes:
        """
        Similar to :manpage:`getpeername(2)`. Returns the packed socket address.
        """
        ...


@runtime_checkable
class Connectable(Protocol[_T_Handle]):
    """
    Interface for an object which can connect a socket handle.
    """

    @abstractmethod
    def connect(self, handle: _T_Handle, address: bytes, /, timeout: float | None = None) -> None:
        """
        Similar to :manpage:`connect(2)`. `address` is a packed socket address.

        An expired `timeout` is reported as an error with ``ETIMEDOUT``.
        """
        ...


@runtime_checkable
class Listenable(Protocol[_T_Handle]):
    """
    Interface for an object which can bind a socket handle and put it in listening mode.
    """

    @abstractmethod
    def bind(self, handle: _T_Handle, address: bytes, /) -> None:
        """
        Similar to :manpage:`bind(2)`. `address` is a packed socket address.
        """
        ...

    @abstractmethod
    def listen(self, handle: _T_Handle, backlog: int, /) -> None:
        """
        Similar to :manpage:`listen(2)`.
        """
        ...


@runtime_checkable
class Optionable(Protocol[_T_Handle]):
    """
    Interface for an object which support getting and setting socket options.
    """

    @abstractmethod
    def setsockopt(self, handle: _T_Handle, level: int, optname: int, value: bytes, /) -> None:
        """
        Similar to :manpage:`setsockopt(2)`.
        """
        ...

    @abstractmethod
    def getsockopt(self, handle: _T_Handle, level: int, optname: int, /) -> bytes:
        """
        Similar to :manpage:`getsockopt(2)`. Returns the raw option payload.
        """
        ...


@runtime_checkable
class NativeSocketOperations(
    SupportsSocketCreation[_T_Handle],
    Addressable[_T_Handle],
    Connectable[_T_Handle],
    Listenable[_T_Handle],
    Optionable[_T_Handle],
    Protocol[_T_Handle],
):
    """
    The full set of native socket operations used by the connection builders.

    Socket pairs are opened only through implementations which also support :class:`SupportsSocketPair`.

    Every failure is reported as an :exc:`OSError` (:exc:`.NativeOperationError` for the default implementation)
    with :attr:`~OSError.errno` set.
    """


@final
class StdlibSocketOperations:
    """
    Native socket operations implemented with the :mod:`socket` module.

    Handles are :class:`socket.socket` objects.
    """

    __slots__ = ("__weakref__",)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"

    def create(self, family: int, socktype: int, protocol: int, /) -> _socket.socket:
        try:
            return _socket.socket(family, socktype, protocol)
        except OSError as exc:
            raise _utils.convert_native_error(exc, "socket") from None

    def socketpair(self, family: int, socktype: int, protocol: int, /) -> tuple[_socket.socket, _socket.socket]:
        try:
            return _socket.socketpair(family, socktype, protocol)
        except OSError as exc:
            raise _utils.convert_native_error(exc, "socketpair") from None

    def close(self, handle: _socket.socket, /) -> None:
        try:
            handle.close()
        except OSError as exc:
            if exc.errno in constants.CLOSED_SOCKET_ERRNOS:
                return
            raise _utils.convert_native_error(exc, "close") from None

    def bind(self, handle: _socket.socket, address: bytes, /) -> None:
        socket_address = sockaddr.to_socket_address(sockaddr.unpack_sockaddr(address))
        try:
            handle.bind(socket_address)
        except OSError as exc:
            raise _utils.convert_native_error(exc, "bind", socket_address) from None

    def connect(self, handle: _socket.socket, address: bytes, /, timeout: float | None = None) -> None:
        timeout = _utils.validate_optional_timeout_delay(timeout, positive_check=True)
        socket_address = sockaddr.to_socket_address(sockaddr.unpack_sockaddr(address))
        previous_timeout = handle.gettimeout()
        handle.settimeout(timeout)
        try:
            handle.connect(socket_address)
        except OSError as exc:
            raise _utils.convert_native_error(exc, "connect", socket_address) from None
        finally:
            handle.settimeout(previous_timeout)

    def listen(self, handle: _socket.socket, backlog: int, /) -> None:
        try:
            handle.listen(backlog)
        except OSError as exc:
            raise _utils.convert_native_error(exc, "listen") from None

    def setsockopt(self, handle: _socket.socket, level: int, optname: int, value: ReadableBuffer, /) -> None:
        try:
            handle.setsockopt(level, optname, value)
        except OSError as exc:
            raise _utils.convert_native_error(exc, "setsockopt") from None

    def getsockopt(self, handle: _socket.socket, level: int, optname: int, /) -> bytes:
        try:
            return handle.getsockopt(level, optname, constants.GETSOCKOPT_BUFSIZE)
        except OSError as exc:
            raise _utils.convert_native_error(exc, "getsockopt") from None

    def getsockname(self, handle: _socket.socket, /) -> bytes:
        try:
            address = handle.getsockname()
        except OSError as exc:
            raise _utils.convert_native_error(exc, "getsockname") from None
        return sockaddr.pack_sockaddr(sockaddr.from_socket_address(handle.family, address))

    def getpeername(self, handle: _socket.socket, /) -> bytes:
        try:
            address = handle.getpeername()
        except OSError as exc:
            raise _utils.convert_native_error(exc, "getpeername") from None
        return sockaddr.pack_sockaddr(sockaddr.from_socket_address(handle.family, address))


@functools.cache
def get_default_socket_operations() -> StdlibSocketOperations:
    """Returns the native socket operations used when none are given."""
    return StdlibSocketOperations()


def setsockopt(ops: Optionable[_T_Handle], handle: _T_Handle, option: SocketOption) -> None:
    """
    Applies `option` on `handle`.

    This is equivalent to::

        ops.setsockopt(handle, option.level, option.optname, option.to_bytes())
    """
    ops.setsockopt(handle, option.level, option.optname, option.to_bytes())


def getsockopt(
    ops: Optionable[_T_Handle],
    handle: _T_Handle,
    family: str | int,
    level: str | int,
    optname: str | int,
) -> SocketOption:
    """
    Reads an option of `handle`.

    `level` and `optname` can be symbolic names (see :func:`.constants.resolve`).

    Returns:
        the option with its raw payload.
    """
    level = resolve(ConstantCategory.LEVEL, level)
    optname = resolve(ConstantCategory.OPTION, optname, level=level)
    return SocketOption(family, level, optname, ops.getsockopt(handle, level, optname))


def set_tcp_nodelay(ops: Optionable[_T_Handle], handle: _T_Handle, state: bool) -> None:
    """
    Enables/Disable Nagle's algorithm on a TCP socket.

    This is equivalent to::

        setsockopt(ops, handle, SocketOption.from_bool("UNSPEC", "TCP", "NODELAY", state))

    *except* that if ``TCP_NODELAY`` is not defined, it is silently ignored.

    Parameters:
        ops: The native socket operations.
        handle: The socket handle.
        state: :data:`True` to disable, :data:`False` to enable.
    """
    with contextlib.suppress(UnknownConstantError):
        setsockopt(ops, handle, SocketOption.from_bool("UNSPEC", "TCP", "NODELAY", state))


def set_tcp_keepalive(ops: Optionable[_T_Handle], handle: _T_Handle, state: bool) -> None:
    """
    Enables/Disable keep-alive protocol on a TCP socket.

    This is equivalent to::

        setsockopt(ops, handle, SocketOption.from_bool("UNSPEC", "SOCKET", "KEEPALIVE", state))

    *except* that if ``SO_KEEPALIVE`` is not defined, it is silently ignored.
    """
    with contextlib.suppress(UnknownConstantError):
        setsockopt(ops, handle, SocketOption.from_bool("UNSPEC", "SOCKET", "KEEPALIVE", state))


def get_socket_linger(ops: Optionable[_T_Handle], handle: _T_Handle) -> socket_linger:
    """
    Gets socket linger.

    See the Unix manual page :manpage:`socket(7)` for details.

    See Also:
        :func:`enable_socket_linger`

        :func:`disable_socket_linger`
    """
    return getsockopt(ops, handle, "UNSPEC", "SOCKET", "LINGER").as_linger()


def enable_socket_linger(ops: Optionable[_T_Handle], handle: _T_Handle, timeout: int) -> None:
    """
    Enables socket linger.

    Parameters:
        ops: The native socket operations.
        handle: The socket handle.
        timeout: How many seconds to linger for.
    """
    setsockopt(ops, handle, SocketOption.from_linger("UNSPEC", "SOCKET", "LINGER", (True, timeout)))


def disable_socket_linger(ops: Optionable[_T_Handle], handle: _T_Handle) -> None:
    """
    Disables socket linger.
    """
    setsockopt(ops, handle, SocketOption.from_linger("UNSPEC", "SOCKET", "LINGER", (False, 0)))
