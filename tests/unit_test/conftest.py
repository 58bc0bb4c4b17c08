from __future__ import annotations

import itertools
from collections.abc import Callable, Sequence
from socket import AF_INET, AF_INET6, IPPROTO_TCP, SOCK_STREAM, socket as Socket
from typing import TYPE_CHECKING

from easysocket.lowlevel.socket import StdlibSocketOperations
from easysocket.resolver import AddressRecord, GetaddrinfoResolver

import pytest

from ._utils import stream_address_records

if TYPE_CHECKING:
    from unittest.mock import MagicMock

    from pytest_mock import MockerFixture


@pytest.fixture
def mock_socket_factory(mocker: MockerFixture) -> Callable[..., MagicMock]:
    fileno_counter = itertools.count()

    def factory(family: int = AF_INET, type: int = SOCK_STREAM, proto: int = 0) -> MagicMock:
        mock_socket = mocker.NonCallableMagicMock(spec=Socket)
        mock_socket.family = family
        mock_socket.type = type
        mock_socket.proto = proto
        mock_socket.fileno.return_value = 123 + next(fileno_counter)

        def close_side_effect() -> None:
            mock_socket.fileno.return_value = -1

        mock_socket.close.side_effect = close_side_effect
        mock_socket.gettimeout.return_value = None
        mock_socket.connect.return_value = None
        mock_socket.bind.return_value = None
        return mock_socket

    return factory


@pytest.fixture
def mock_socket(mock_socket_factory: Callable[..., MagicMock]) -> MagicMock:
    return mock_socket_factory(AF_INET, SOCK_STREAM, IPPROTO_TCP)


@pytest.fixture
def mock_native_ops(mocker: MockerFixture, mock_socket_factory: Callable[..., MagicMock]) -> MagicMock:
    mock_native_ops = mocker.NonCallableMagicMock(spec=StdlibSocketOperations, name="mock_native_ops")
    created_sockets: list[MagicMock] = []

    def create_side_effect(family: int, socktype: int, protocol: int) -> MagicMock:
        mock_socket = mock_socket_factory(family, socktype, protocol)
        created_sockets.append(mock_socket)
        return mock_socket

    def socketpair_side_effect(family: int, socktype: int, protocol: int) -> tuple[MagicMock, MagicMock]:
        return (create_side_effect(family, socktype, protocol), create_side_effect(family, socktype, protocol))

    mock_native_ops.create.side_effect = create_side_effect
    mock_native_ops.socketpair.side_effect = socketpair_side_effect
    mock_native_ops.created_sockets = created_sockets
    mock_native_ops.bind.return_value = None
    mock_native_ops.connect.return_value = None
    mock_native_ops.listen.return_value = None
    mock_native_ops.close.return_value = None
    mock_native_ops.setsockopt.return_value = None
    return mock_native_ops


@pytest.fixture
def mock_resolver(mocker: MockerFixture) -> MagicMock:
    mock_resolver = mocker.NonCallableMagicMock(spec=GetaddrinfoResolver, name="mock_resolver")

    def resolve_side_effect(host: str | None, service: str | int | None, family: int, socktype: int) -> Sequence[AddressRecord]:
        return stream_address_records(int(service or 0), families=[AF_INET6, AF_INET])

    mock_resolver.resolve.side_effect = resolve_side_effect
    return mock_resolver
