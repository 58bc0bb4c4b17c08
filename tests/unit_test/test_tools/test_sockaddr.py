from __future__ import annotations

import os
import pathlib
import socket
import struct
import sys
from socket import AF_INET, AF_INET6
from typing import TYPE_CHECKING, Any

from easysocket.exceptions import AddressDecodingError, PathTooLongError, ResolutionError
from easysocket.lowlevel import constants
from easysocket.lowlevel.sockaddr import (
    InetSockaddr,
    UnixSockaddr,
    decode_sockaddr_un,
    from_socket_address,
    inet_sockaddr,
    pack_sockaddr,
    pack_sockaddr_in,
    pack_sockaddr_un,
    sockaddr_family,
    sockaddr_in,
    sockaddr_un,
    to_socket_address,
    unpack_sockaddr,
    unpack_sockaddr_in,
    unpack_sockaddr_un,
)
from easysocket.resolver import AddressRecord

import pytest

from ...fixtures.socket import AF_UNIX_or_skip
from ...tools import PlatformMarkers

if TYPE_CHECKING:
    from unittest.mock import MagicMock

    from pytest_mock import MockerFixture


class TestInetSockaddr:
    @pytest.mark.parametrize(
        ["family", "ip_bytes"],
        [
            pytest.param(AF_INET, bytes(16), id="AF_INET-16-bytes"),
            pytest.param(AF_INET6, bytes(4), id="AF_INET6-4-bytes"),
        ],
    )
    def test____dunder_init____ip_length_must_match_family(self, family: int, ip_bytes: bytes) -> None:
        # Arrange

        # Act & Assert
        with pytest.raises(ValueError, match=r"^Invalid IP address length"):
            InetSockaddr(family, ip_bytes)

    @pytest.mark.parametrize("port", [-1, 65536])
    def test____dunder_init____port_out_of_range(self, port: int) -> None:
        # Arrange

        # Act & Assert
        with pytest.raises(ValueError, match=r"^port must be 0-65535\.$"):
            InetSockaddr(AF_INET, bytes(4), port)

    def test____dunder_init____unsupported_family(self) -> None:
        # Arrange

        # Act & Assert
        with pytest.raises(ValueError, match=r"^Only these families are supported: AF_INET, AF_INET6$"):
            InetSockaddr(socket.AF_UNSPEC, bytes(4))

    @pytest.mark.parametrize(
        ["address", "expected_version", "expected_text"],
        [
            pytest.param(InetSockaddr(AF_INET, b"\x7f\x00\x00\x01", 80), 4, "127.0.0.1"),
            pytest.param(InetSockaddr(AF_INET6, bytes(15) + b"\x01", 80), 6, "::1"),
            pytest.param(InetSockaddr(AF_INET6, b"\xfe\x80" + bytes(13) + b"\x01", 80, scope_id=3), 6, "fe80::1%3"),
        ],
    )
    def test____properties____version_and_text(self, address: InetSockaddr, expected_version: int, expected_text: str) -> None:
        # Arrange

        # Act & Assert
        assert address.version == expected_version
        assert address.ip_address == expected_text


class TestSockaddrFamily:
    def test____sockaddr_family____truncated_header(self) -> None:
        # Arrange

        # Act & Assert
        with pytest.raises(AddressDecodingError, match=r"^truncated sockaddr") as exc_info:
            sockaddr_family(b"\x02")

        assert exc_info.value.data == b"\x02"

    @PlatformMarkers.linux_sockaddr_layout
    def test____sockaddr_family____native_uint16_on_linux(self) -> None:
        # Arrange
        data = struct.pack("@H", AF_INET6) + bytes(26)

        # Act & Assert
        assert sockaddr_family(data) == AF_INET6


class TestPackSockaddrIn:
    @pytest.mark.parametrize("host", ["127.0.0.1", "::1", "192.168.1.254", "2001:db8::8:800:200c:417a"])
    @pytest.mark.parametrize("port", [0, 1, 65535])
    def test____pack_sockaddr_in____round_trip(self, host: str, port: int) -> None:
        # Arrange

        # Act
        address = unpack_sockaddr_in(pack_sockaddr_in(port, host))

        # Assert
        assert address.port == port
        assert address.ip_address == host

    def test____pack_sockaddr_in____ipv4_layout(self) -> None:
        # Arrange

        # Act
        data = pack_sockaddr_in(80, "93.184.216.34")

        # Assert
        assert len(data) == constants.SOCKADDR_IN_SIZE
        assert sockaddr_family(data) == AF_INET
        assert data[2:4] == b"\x00\x50"
        assert data[4:8] == bytes([93, 184, 216, 34])
        assert data[8:] == bytes(8)

    def test____pack_sockaddr_in____ipv6_layout(self) -> None:
        # Arrange

        # Act
        data = pack_sockaddr_in(443, "fe80::1%7")

        # Assert
        assert len(data) == constants.SOCKADDR_IN6_SIZE
        assert sockaddr_family(data) == AF_INET6
        assert data[2:4] == b"\x01\xbb"
        assert data[4:8] == bytes(4)
        assert data[8:24] == b"\xfe\x80" + bytes(13) + b"\x01"
        assert struct.unpack("@I", data[24:28]) == (7,)

    @pytest.mark.parametrize(
        ["host", "expected_ip"],
        [
            pytest.param(None, "0.0.0.0", id="None"),
            pytest.param("", "0.0.0.0", id="empty-string"),
            pytest.param("<broadcast>", "255.255.255.255", id="broadcast"),
            pytest.param(b"\x0a\x00\x00\x01", "10.0.0.1", id="ipv4-bytes"),
            pytest.param(bytes(15) + b"\x01", "::1", id="ipv6-bytes"),
        ],
    )
    def test____pack_sockaddr_in____special_hosts(self, host: str | bytes | None, expected_ip: str) -> None:
        # Arrange

        # Act
        address = unpack_sockaddr_in(pack_sockaddr_in(8080, host))

        # Assert
        assert address.ip_address == expected_ip
        assert address.port == 8080

    @pytest.mark.parametrize("port", [-1, 65536, "70000"])
    def test____pack_sockaddr_in____port_out_of_range(self, port: int | str) -> None:
        # Arrange

        # Act & Assert
        with pytest.raises(ValueError, match=r"^port must be 0-65535\.$"):
            pack_sockaddr_in(port, "127.0.0.1")

    @pytest.mark.parametrize("host", [b"127.0.0.1", b"::1"], ids=repr)
    def test____pack_sockaddr_in____ip_literal_as_bytes(self, host: bytes) -> None:
        # Arrange

        # Act & Assert
        assert pack_sockaddr_in(80, host) == pack_sockaddr_in(80, host.decode())

    def test____pack_sockaddr_in____hostname_as_bytes(self, mocker: MockerFixture) -> None:
        # Arrange
        mock_resolver: MagicMock = mocker.NonCallableMagicMock(spec=["resolve"])
        mock_resolver.resolve.return_value = [
            AddressRecord(AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, None, pack_sockaddr_in(80, "127.0.0.1")),
        ]

        # Act
        data = pack_sockaddr_in(80, b"localhost", resolver=mock_resolver)

        # Assert
        mock_resolver.resolve.assert_called_once_with("localhost", 80, socket.AF_UNSPEC, 0)
        assert data == pack_sockaddr_in(80, "127.0.0.1")

    def test____pack_sockaddr_in____non_ascii_bytes(self) -> None:
        # Arrange

        # Act & Assert
        with pytest.raises(ValueError):
            pack_sockaddr_in(80, b"\xff\xfe\xfd")

    def test____pack_sockaddr_in____numeric_string_port(self) -> None:
        # Arrange

        # Act & Assert
        assert pack_sockaddr_in("8080", "127.0.0.1") == pack_sockaddr_in(8080, "127.0.0.1")

    def test____pack_sockaddr_in____hostname_uses_first_resolver_record(self, mocker: MockerFixture) -> None:
        # Arrange
        mock_resolver: MagicMock = mocker.NonCallableMagicMock(spec=["resolve"])
        mock_resolver.resolve.return_value = [
            AddressRecord(AF_INET6, socket.SOCK_STREAM, socket.IPPROTO_TCP, None, pack_sockaddr_in(80, "::1")),
            AddressRecord(AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, None, pack_sockaddr_in(80, "127.0.0.1")),
        ]

        # Act
        data = pack_sockaddr_in(80, "localhost", resolver=mock_resolver)

        # Assert
        mock_resolver.resolve.assert_called_once_with("localhost", 80, socket.AF_UNSPEC, 0)
        assert data == pack_sockaddr_in(80, "::1")

    def test____pack_sockaddr_in____service_name_goes_to_resolver(self, mocker: MockerFixture) -> None:
        # Arrange
        mock_resolver: MagicMock = mocker.NonCallableMagicMock(spec=["resolve"])
        mock_resolver.resolve.return_value = [
            AddressRecord(AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, None, pack_sockaddr_in(80, "127.0.0.1")),
        ]

        # Act
        address = inet_sockaddr("http", "127.0.0.1", resolver=mock_resolver)

        # Assert
        mock_resolver.resolve.assert_called_once_with("127.0.0.1", "http", AF_INET, 0)
        assert address == InetSockaddr(AF_INET, b"\x7f\x00\x00\x01", 80)

    @pytest.mark.parametrize(
        ["host", "expected_ip"],
        [
            pytest.param(None, "0.0.0.0", id="None"),
            pytest.param("", "0.0.0.0", id="empty-string"),
            pytest.param("<broadcast>", "255.255.255.255", id="broadcast"),
        ],
    )
    def test____pack_sockaddr_in____service_name_with_special_host(
        self,
        host: str | None,
        expected_ip: str,
        mocker: MockerFixture,
    ) -> None:
        # Arrange
        mock_resolver: MagicMock = mocker.NonCallableMagicMock(spec=["resolve"])
        mock_resolver.resolve.return_value = [
            AddressRecord(AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, None, pack_sockaddr_in(80, expected_ip)),
        ]

        # Act
        address = inet_sockaddr("http", host, resolver=mock_resolver)

        # Assert
        mock_resolver.resolve.assert_called_once_with(expected_ip, "http", AF_INET, 0)
        assert address.ip_address == expected_ip
        assert address.port == 80

    def test____pack_sockaddr_in____service_name_with_default_resolver(self) -> None:
        # Arrange
        try:
            expected_port = socket.getservbyname("http", "tcp")
        except OSError:
            pytest.skip("'http' service is not registered on this system")

        # Act
        address = inet_sockaddr("http", None)

        # Assert
        assert address.ip_address == "0.0.0.0"
        assert address.port == expected_port

    def test____pack_sockaddr_in____resolution_failure_propagates(self, mocker: MockerFixture) -> None:
        # Arrange
        mock_resolver: MagicMock = mocker.NonCallableMagicMock(spec=["resolve"])
        mock_resolver.resolve.side_effect = ResolutionError(socket.EAI_NONAME, "Name or service not known")

        # Act & Assert
        with pytest.raises(ResolutionError):
            pack_sockaddr_in(80, "unknown.invalid", resolver=mock_resolver)

    def test____sockaddr_in____alias(self) -> None:
        # Arrange

        # Act & Assert
        assert sockaddr_in is pack_sockaddr_in
        assert sockaddr_un is pack_sockaddr_un


class TestUnpackSockaddrIn:
    @pytest.mark.parametrize("size", [0, 1, 7])
    def test____unpack_sockaddr_in____truncated_ipv4(self, size: int) -> None:
        # Arrange
        data = pack_sockaddr_in(80, "127.0.0.1")[:size]

        # Act & Assert
        with pytest.raises(AddressDecodingError):
            unpack_sockaddr_in(data)

    def test____unpack_sockaddr_in____truncated_ipv6(self) -> None:
        # Arrange
        data = pack_sockaddr_in(80, "::1")[:20]

        # Act & Assert
        with pytest.raises(AddressDecodingError, match=r"^truncated sockaddr_in6"):
            unpack_sockaddr_in(data)

    def test____unpack_sockaddr_in____ipv6_without_scope_id(self) -> None:
        # Arrange
        data = pack_sockaddr_in(80, "::1")[:24]

        # Act
        address = unpack_sockaddr_in(data)

        # Assert
        assert address.scope_id == 0
        assert address.ip_address == "::1"

    def test____unpack_sockaddr_in____accepts_bytearray(self) -> None:
        # Arrange
        data = bytearray(pack_sockaddr_in(80, "127.0.0.1"))

        # Act & Assert
        assert unpack_sockaddr_in(data).port == 80

    def test____unpack_sockaddr_in____unix_address(self) -> None:
        # Arrange
        AF_UNIX_or_skip()
        data = pack_sockaddr_un("/tmp/sock")

        # Act & Assert
        with pytest.raises(AddressDecodingError, match=r"^not an AF_INET/AF_INET6 sockaddr"):
            unpack_sockaddr_in(data)


@PlatformMarkers.skipif_platform_win32
class TestUnixSockaddr:
    @pytest.fixture(autouse=True)
    def skip_without_AF_UNIX(self) -> None:
        AF_UNIX_or_skip()

    @pytest.mark.parametrize(
        "path",
        ["/tmp/sock", "relative/sock", pathlib.Path("/tmp/sock"), b"/tmp/sock"],
        ids=repr,
    )
    def test____pack_sockaddr_un____pathname_round_trip(self, path: str | bytes | pathlib.Path) -> None:
        # Arrange
        expected = os.fsdecode(path)

        # Act
        unpacked = unpack_sockaddr_un(pack_sockaddr_un(path))

        # Assert
        assert unpacked == expected

    def test____pack_sockaddr_un____pathname_padded_to_full_size(self) -> None:
        # Arrange

        # Act
        data = pack_sockaddr_un("/tmp/sock")

        # Assert
        assert len(data) == constants.SOCKADDR_UN_SIZE
        assert sockaddr_family(data) == socket.AF_UNIX

    def test____pack_sockaddr_un____path_at_capacity(self) -> None:
        # Arrange
        path = "/" + "a" * (constants.UNIX_PATH_MAX - 1)

        # Act
        unpacked = unpack_sockaddr_un(pack_sockaddr_un(path))

        # Assert
        assert unpacked == path

    def test____pack_sockaddr_un____path_too_long(self) -> None:
        # Arrange
        path = "/" + "a" * constants.UNIX_PATH_MAX

        # Act & Assert
        with pytest.raises(PathTooLongError) as exc_info:
            pack_sockaddr_un(path)

        assert exc_info.value.path_length == constants.UNIX_PATH_MAX + 1
        assert exc_info.value.max_length == constants.UNIX_PATH_MAX

    def test____pack_sockaddr_un____interior_null_byte(self) -> None:
        # Arrange

        # Act & Assert
        with pytest.raises(ValueError, match=r"^paths must not contain interior null bytes$"):
            pack_sockaddr_un("/tmp/\0sock")

    @PlatformMarkers.supports_abstract_sockets
    def test____pack_sockaddr_un____abstract_name(self) -> None:
        # Arrange

        # Act
        data = pack_sockaddr_un(b"\0easysocket")

        # Assert
        assert len(data) == 2 + len(b"\0easysocket")
        assert unpack_sockaddr_un(data) == b"\0easysocket"
        assert decode_sockaddr_un(data) == UnixSockaddr(b"easysocket", is_abstract=True)

    def test____decode_sockaddr_un____unnamed_address(self) -> None:
        # Arrange
        data = pack_sockaddr_un("")

        # Act
        address = decode_sockaddr_un(data)

        # Assert
        assert address.is_unnamed()
        assert unpack_sockaddr_un(data) == ""

    def test____decode_sockaddr_un____header_only_is_unnamed(self) -> None:
        # Arrange
        data = pack_sockaddr_un("")[:2]

        # Act & Assert
        assert decode_sockaddr_un(data).is_unnamed()

    def test____decode_sockaddr_un____inet_address(self) -> None:
        # Arrange
        data = pack_sockaddr_in(80, "127.0.0.1")

        # Act & Assert
        with pytest.raises(AddressDecodingError, match=r"^not an AF_UNIX sockaddr"):
            decode_sockaddr_un(data)

    def test____decode_sockaddr_un____too_long(self) -> None:
        # Arrange
        data = pack_sockaddr_un("/tmp/sock") + b"\0"

        # Act & Assert
        with pytest.raises(AddressDecodingError, match=r"^too long sockaddr_un"):
            decode_sockaddr_un(data)

    def test____UnixSockaddr____path_too_long(self) -> None:
        # Arrange

        # Act & Assert
        with pytest.raises(PathTooLongError):
            UnixSockaddr(b"a" * constants.UNIX_PATH_MAX, is_abstract=True)


class TestUnpackSockaddr:
    @pytest.mark.parametrize(
        "address",
        [
            pytest.param(InetSockaddr(AF_INET, b"\x0a\x01\x02\x03", 5000), id="ipv4"),
            pytest.param(InetSockaddr(AF_INET6, bytes(15) + b"\x01", 5000, flowinfo=4, scope_id=2), id="ipv6"),
        ],
    )
    def test____unpack_sockaddr____inet(self, address: InetSockaddr) -> None:
        # Arrange

        # Act & Assert
        assert unpack_sockaddr(pack_sockaddr(address)) == address

    @PlatformMarkers.skipif_platform_win32
    def test____unpack_sockaddr____unix(self) -> None:
        # Arrange
        AF_UNIX_or_skip()
        address = UnixSockaddr(b"/run/easysocket.sock")

        # Act & Assert
        assert unpack_sockaddr(pack_sockaddr(address)) == address

    @PlatformMarkers.linux_sockaddr_layout
    def test____unpack_sockaddr____unsupported_family(self) -> None:
        # Arrange
        data = struct.pack("@H", socket.AF_UNSPEC) + bytes(14)

        # Act & Assert
        with pytest.raises(AddressDecodingError, match=r"^unsupported address family"):
            unpack_sockaddr(data)

    def test____pack_sockaddr____invalid_type(self) -> None:
        # Arrange

        # Act & Assert
        with pytest.raises(TypeError):
            pack_sockaddr(("127.0.0.1", 80))  # type: ignore[arg-type]


class TestSocketAddressConversion:
    @pytest.mark.parametrize(
        ["family", "socket_address", "expected"],
        [
            pytest.param(AF_INET, ("127.0.0.1", 80), ("127.0.0.1", 80), id="ipv4"),
            pytest.param(AF_INET6, ("::1", 80, 0, 0), ("::1", 80, 0, 0), id="ipv6"),
            pytest.param(AF_INET6, ("fe80::1%2", 80, 0, 2), ("fe80::1", 80, 0, 2), id="ipv6-scoped"),
        ],
    )
    def test____from_socket_address____to_socket_address(self, family: int, socket_address: Any, expected: Any) -> None:
        # Arrange

        # Act
        address = from_socket_address(family, socket_address)

        # Assert
        assert to_socket_address(address) == expected

    @pytest.mark.skipif(sys.platform != "linux", reason="abstract sockets are available only on Linux")
    def test____from_socket_address____unix_abstract(self) -> None:
        # Arrange

        # Act
        address = from_socket_address(socket.AF_UNIX, b"\0name")

        # Assert
        assert address == UnixSockaddr(b"name", is_abstract=True)
        assert to_socket_address(address) == b"\0name"

    def test____from_socket_address____unsupported_family(self) -> None:
        # Arrange

        # Act & Assert
        with pytest.raises(ValueError, match=r"^Unsupported address family"):
            from_socket_address(socket.AF_UNSPEC, ("127.0.0.1", 80))
