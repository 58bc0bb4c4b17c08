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
"""Symbolic socket constants registry.

Maps the names of address families, socket types, protocols, option levels and option names
to the integers of the running platform, and back.

Example:
    >>> import socket
    >>> from easysocket.constants import ConstantCategory, resolve
    >>> resolve(ConstantCategory.FAMILY, "INET6") == socket.AF_INET6
    True
    >>> resolve(ConstantCategory.OPTION, "KEEPALIVE", level="SOCKET") == socket.SO_KEEPALIVE
    True
"""

from __future__ import annotations

__all__ = [
    "SHORT_CONSTANTS",
    "ConstantCategory",
    "constant_name",
    "const_name_to_i",
    "resolve",
    "short_constant_categories",
]

import enum
import socket as _socket
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Final

from .exceptions import UnknownConstantError


@enum.unique
class ConstantCategory(enum.Enum):
    """Categories of the registry."""

    FAMILY = ("address family", ("AF_",))
    SOCKTYPE = ("socket type", ("SOCK_",))
    PROTOCOL = ("protocol", ("IPPROTO_",))
    LEVEL = ("socket option level", ("SOL_", "IPPROTO_"))
    OPTION = ("socket option name", ("SO_", "IP_", "IPV6_", "TCP_", "UDP_"))

    def __init__(self, label: str, prefixes: tuple[str, ...]) -> None:
        self.label: str = label
        """Human readable name of the category."""

        self.prefixes: tuple[str, ...] = prefixes
        """Prefixes of the canonical names, in lookup order."""


def _build_table(prefixes: tuple[str, ...], *, preferred: Iterable[str] = (), exclude: Iterable[str] = ()) -> dict[str, int]:
    excluded = frozenset(exclude)
    table: dict[str, int] = {}
    # Preferred names come first so that the reverse lookup picks them over their synonyms.
    for name in (*preferred, *sorted(dir(_socket))):
        if name in table or name in excluded or not name.startswith(prefixes):
            continue
        value = getattr(_socket, name, None)
        if isinstance(value, int) and not isinstance(value, bool):
            table[name] = int(value)
    return table


def _build_reverse_table(table: Mapping[str, int]) -> dict[int, str]:
    reverse: dict[int, str] = {}
    for name, value in table.items():
        reverse.setdefault(value, name)
    return reverse


_TABLES: Final[Mapping[ConstantCategory, Mapping[str, int]]] = MappingProxyType(
    {
        ConstantCategory.FAMILY: MappingProxyType(
            _build_table(ConstantCategory.FAMILY.prefixes, preferred=_socket.AddressFamily.__members__)
        ),
        ConstantCategory.SOCKTYPE: MappingProxyType(
            _build_table(
                ConstantCategory.SOCKTYPE.prefixes,
                preferred=_socket.SocketKind.__members__,
                # Creation flags, not socket types
                exclude=("SOCK_CLOEXEC", "SOCK_NONBLOCK"),
            )
        ),
        ConstantCategory.PROTOCOL: MappingProxyType(
            _build_table(
                ConstantCategory.PROTOCOL.prefixes,
                preferred=("IPPROTO_IP", "IPPROTO_TCP", "IPPROTO_UDP", "IPPROTO_IPV6", "IPPROTO_ICMP", "IPPROTO_ICMPV6"),
            )
        ),
        ConstantCategory.LEVEL: MappingProxyType(
            _build_table(
                ConstantCategory.LEVEL.prefixes,
                preferred=("SOL_SOCKET", "IPPROTO_IP", "IPPROTO_IPV6", "IPPROTO_TCP", "IPPROTO_UDP", "IPPROTO_ICMPV6"),
            )
        ),
        ConstantCategory.OPTION: MappingProxyType(_build_table(ConstantCategory.OPTION.prefixes)),
    }
)

_REVERSE_TABLES: Final[Mapping[ConstantCategory, Mapping[int, str]]] = MappingProxyType(
    {category: MappingProxyType(_build_reverse_table(table)) for category, table in _TABLES.items()}
)

# (alias, canonical name, categories)
_SHORT_CONSTANT_DEFINITIONS: Final[tuple[tuple[str, str, frozenset[ConstantCategory]], ...]] = (
    ("DGRAM", "SOCK_DGRAM", frozenset({ConstantCategory.SOCKTYPE})),
    ("INET", "AF_INET", frozenset({ConstantCategory.FAMILY})),
    ("INET6", "AF_INET6", frozenset({ConstantCategory.FAMILY})),
    ("IP", "IPPROTO_IP", frozenset({ConstantCategory.LEVEL, ConstantCategory.PROTOCOL})),
    ("IPV6", "IPPROTO_IPV6", frozenset({ConstantCategory.LEVEL, ConstantCategory.PROTOCOL})),
    ("KEEPALIVE", "SO_KEEPALIVE", frozenset({ConstantCategory.OPTION})),
    ("LINGER", "SO_LINGER", frozenset({ConstantCategory.OPTION})),
    ("NODELAY", "TCP_NODELAY", frozenset({ConstantCategory.OPTION})),
    ("OOBINLINE", "SO_OOBINLINE", frozenset({ConstantCategory.OPTION})),
    ("REUSEADDR", "SO_REUSEADDR", frozenset({ConstantCategory.OPTION})),
    ("SOCKET", "SOL_SOCKET", frozenset({ConstantCategory.LEVEL})),
    ("STREAM", "SOCK_STREAM", frozenset({ConstantCategory.SOCKTYPE})),
    ("TCP", "IPPROTO_TCP", frozenset({ConstantCategory.LEVEL, ConstantCategory.PROTOCOL})),
    ("TTL", "IP_TTL", frozenset({ConstantCategory.OPTION})),
    ("TYPE", "SO_TYPE", frozenset({ConstantCategory.OPTION})),
    ("UDP", "IPPROTO_UDP", frozenset({ConstantCategory.LEVEL, ConstantCategory.PROTOCOL})),
    ("UNIX", "AF_UNIX", frozenset({ConstantCategory.FAMILY})),
    ("V6ONLY", "IPV6_V6ONLY", frozenset({ConstantCategory.OPTION})),
)

SHORT_CONSTANTS: Final[Mapping[str, int]] = MappingProxyType(
    {
        alias: int(getattr(_socket, canonical_name))
        for alias, canonical_name, _ in _SHORT_CONSTANT_DEFINITIONS
        if hasattr(_socket, canonical_name)
    }
)
"""Short aliases available on this platform."""

_SHORT_CONSTANT_CATEGORIES: Final[Mapping[str, frozenset[ConstantCategory]]] = MappingProxyType(
    {alias: categories for alias, canonical_name, categories in _SHORT_CONSTANT_DEFINITIONS if alias in SHORT_CONSTANTS}
)

# Prefix of option names, per option level
_OPTION_PREFIX_BY_LEVEL: Final[Mapping[int, str]] = MappingProxyType(
    {
        int(getattr(_socket, level_name)): prefix
        for level_name, prefix in [
            ("SOL_SOCKET", "SO_"),
            ("IPPROTO_IP", "IP_"),
            ("IPPROTO_IPV6", "IPV6_"),
            ("IPPROTO_TCP", "TCP_"),
            ("IPPROTO_UDP", "UDP_"),
        ]
        if hasattr(_socket, level_name)
    }
)


def short_constant_categories(alias: str) -> frozenset[ConstantCategory]:
    """
    Gets the categories a short alias is registered for.

    Parameters:
        alias: A key of :data:`SHORT_CONSTANTS`.

    Raises:
        UnknownConstantError: `alias` is not a short alias.

    Returns:
        the categories in which `alias` can be used.
    """
    try:
        return _SHORT_CONSTANT_CATEGORIES[alias]
    except KeyError:
        raise UnknownConstantError(f"unknown short constant: {alias!r}") from None


def resolve(category: ConstantCategory, name: str | bytes | int, *, level: str | bytes | int | None = None) -> int:
    """
    Converts a symbolic constant (or an integer) to the platform integer.

    Lookup order:

    1. integers are returned unchanged;
    2. canonical names (``"AF_INET"``, ``"SOL_SOCKET"``, ``"SO_KEEPALIVE"``, ...);
       for address families, ``"PF_*"`` is accepted as a synonym of ``"AF_*"``;
    3. short aliases registered for `category` (see :data:`SHORT_CONSTANTS`);
    4. names without their prefix (``"INET6"``, ``"DGRAM"``, ``"ICMP"``, ...).

    Parameters:
        category: The kind of constant to resolve.
        name: The constant name or value.
        level: For :attr:`ConstantCategory.OPTION` only, the option level used to pick the option name prefix.

    Raises:
        UnknownConstantError: `name` is not a known constant of `category`.
        TypeError: Invalid `name` type.

    Returns:
        the integer value.
    """
    match name:
        case bool():
            raise TypeError(f"Expected a str, bytes or int object, got {name!r}")
        case int():
            return int(name)
        case bytes():
            name = name.decode("ascii")
        case str():
            pass
        case _:
            raise TypeError(f"Expected a str, bytes or int object, got {name!r}")

    table = _TABLES[category]

    if name in table:
        return table[name]
    if category is ConstantCategory.FAMILY and name.startswith("PF_") and f"AF_{name[3:]}" in table:
        return table[f"AF_{name[3:]}"]
    if name in SHORT_CONSTANTS and category in _SHORT_CONSTANT_CATEGORIES[name]:
        return SHORT_CONSTANTS[name]

    for prefix in _prefixes_of(category, level):
        if f"{prefix}{name}" in table:
            return table[f"{prefix}{name}"]

    raise UnknownConstantError(f"unknown {category.label}: {name}")


def const_name_to_i(name: str | bytes | int) -> int:
    """
    Converts a symbolic constant to an integer without category.

    Accepts integers, short aliases and canonical names of any category.

    Raises:
        UnknownConstantError: `name` is not a known constant.
        TypeError: Invalid `name` type.
    """
    match name:
        case bool():
            raise TypeError(f"Expected a str, bytes or int object, got {name!r}")
        case int():
            return int(name)
        case bytes():
            name = name.decode("ascii")
        case str():
            pass
        case _:
            raise TypeError(f"Expected a str, bytes or int object, got {name!r}")

    if name in SHORT_CONSTANTS:
        return SHORT_CONSTANTS[name]
    for table in _TABLES.values():
        if name in table:
            return table[name]
    raise UnknownConstantError(f"unknown socket constant: {name}")


def constant_name(category: ConstantCategory, value: int, *, level: str | bytes | int | None = None) -> str | None:
    """
    Reverse lookup: gets the canonical name of `value`.

    For :attr:`ConstantCategory.OPTION`, `level` restricts the search to the names of this level,
    because option values overlap between levels.

    Returns:
        the canonical name, or :data:`None` if `value` is unknown.
    """
    if category is not ConstantCategory.OPTION or level is None:
        return _REVERSE_TABLES[category].get(value)
    prefixes = _prefixes_of(category, level)
    for name, candidate in _TABLES[category].items():
        if candidate == value and name.startswith(prefixes):
            return name
    return None


def _prefixes_of(category: ConstantCategory, level: str | bytes | int | None) -> tuple[str, ...]:
    if category is not ConstantCategory.OPTION or level is None:
        return category.prefixes
    level = resolve(ConstantCategory.LEVEL, level)
    try:
        return (_OPTION_PREFIX_BY_LEVEL[level],)
    except KeyError:
        return category.prefixes
