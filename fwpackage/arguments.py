"""Command-line argument parsing with typed options, aliases and wildcards."""

from __future__ import annotations

import enum
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

_UINT_MAX = 0xFFFFFFFF
UNSIGNED_WILDCARD = "%d"
STRING_WILDCARD = "%s"


class ArgumentType(enum.Enum):
    """The kind of value an option carries."""

    FLAG = 0
    STRING = 1
    UNSIGNED_INTEGER = 2


class ArgumentError(ValueError):
    """Raised when a command line cannot be parsed."""


def parse_unsigned_int(text: str) -> int:
    """Parse a decimal unsigned 32-bit integer, raising ``ValueError`` otherwise."""
    if not text or not text.isascii() or not text.isdigit():
        raise ValueError(f"not an unsigned integer: {text!r}")
    value = int(text)
    if value > _UINT_MAX:
        raise ValueError(f"unsigned integer out of range: {text!r}")
    return value


@dataclass(frozen=True)
class Argument:
    """An option found on the command line."""

    name: str

    @property
    def type(self) -> ArgumentType:
        return ArgumentType.FLAG


@dataclass(frozen=True)
class FlagArgument(Argument):
    """An option that takes no value."""


@dataclass(frozen=True)
class StringArgument(Argument):
    """An option followed by a text value."""

    value: str

    @property
    def type(self) -> ArgumentType:
        return ArgumentType.STRING


@dataclass(frozen=True)
class UnsignedIntegerArgument(Argument):
    """An option followed by an unsigned integer value."""

    value: int

    @property
    def type(self) -> ArgumentType:
        return ArgumentType.UNSIGNED_INTEGER


class Arguments:
    """Parses options against a table of known names and types.

    The type table may hold the wildcards ``"%d"`` (any name that is an
    unsigned integer) and ``"%s"`` (any other name); options matched by a
    wildcard are stored under their own name.
    """

    def __init__(
        self,
        argument_types: Mapping[str, ArgumentType],
        short_aliases: Mapping[str, str] | None = None,
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        self.argument_types = dict(argument_types)
        self.short_aliases = dict(short_aliases or {})
        self.aliases = dict(aliases or {})
        self.arguments: list[Argument] = []
        self._by_name: dict[str, Argument] = {}

    def _resolve(self, token: str) -> tuple[str, ArgumentType | None]:
        if token.startswith("--"):
            name = token[2:]
        elif token.startswith("-"):
            short = token[1:]
            if short not in self.short_aliases:
                raise ArgumentError(f"Unknown argument: {token}")
            name = self.short_aliases[short]
        else:
            raise ArgumentError(f"Invalid argument: {token}")

        argument_type = self.argument_types.get(name)
        if argument_type is None and name in self.aliases:
            name = self.aliases[name]
            argument_type = self.argument_types.get(name)

        if argument_type is None:
            try:
                parse_unsigned_int(name)
            except ValueError:
                pass
            else:
                argument_type = self.argument_types.get(UNSIGNED_WILDCARD)
            if argument_type is None:
                argument_type = self.argument_types.get(STRING_WILDCARD)
        return name, argument_type

    def parse(self, argv: Sequence[str], start: int = 0) -> list[Argument]:
        """Parse ``argv`` from index ``start`` and return the arguments found."""
        position = start
        while position < len(argv):
            token = argv[position]
            name, argument_type = self._resolve(token)
            if argument_type is None:
                raise ArgumentError(f"Unknown argument: {token}")

            argument: Argument
            if argument_type is ArgumentType.FLAG:
                argument = FlagArgument(name)
            else:
                position += 1
                if position >= len(argv):
                    raise ArgumentError(f"Missing parameter for argument: {token}")
                raw_value = argv[position]
                if argument_type is ArgumentType.STRING:
                    argument = StringArgument(name, raw_value)
                else:
                    try:
                        value = parse_unsigned_int(raw_value)
                    except ValueError as error:
                        raise ArgumentError(
                            f"{token} must be a positive integer."
                        ) from error
                    argument = UnsignedIntegerArgument(name, value)

            if name in self._by_name:
                raise ArgumentError(f"Duplicate argument: {token} ({name})")
            self._by_name[name] = argument
            self.arguments.append(argument)
            position += 1
        return list(self.arguments)

    def get(self, name: str) -> Argument | None:
        """Return the argument stored under ``name``, or ``None``."""
        return self._by_name.get(name)