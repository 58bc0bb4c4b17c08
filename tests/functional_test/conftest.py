from __future__ import annotations

import socket
from collections.abc import Iterator

from easysocket.lowlevel.socket import StdlibSocketOperations
from easysocket.socket import SocketBuilder

import pytest

from ..fixtures.socket import has_ipv6_support


@pytest.fixture(params=["AF_INET", "AF_INET6"])
def ip_family(request: pytest.FixtureRequest) -> int:
    family: int = getattr(socket, request.param)
    if family == socket.AF_INET6 and not has_ipv6_support():
        pytest.skip("IPv6 is not supported on this host")
    return family


@pytest.fixture
def localhost_ip(ip_family: int) -> str:
    return "::1" if ip_family == socket.AF_INET6 else "127.0.0.1"


@pytest.fixture
def builder() -> SocketBuilder[socket.socket]:
    return SocketBuilder(StdlibSocketOperations())


@pytest.fixture
def tcp_server(ip_family: int, localhost_ip: str) -> Iterator[socket.socket]:
    with socket.socket(ip_family, socket.SOCK_STREAM) as server:
        server.bind((localhost_ip, 0))
        server.listen()
        server.settimeout(5)
        yield server


@pytest.fixture
def udp_server(ip_family: int, localhost_ip: str) -> Iterator[socket.socket]:
    with socket.socket(ip_family, socket.SOCK_DGRAM) as server:
        server.bind((localhost_ip, 0))
        server.settimeout(5)
        yield server
