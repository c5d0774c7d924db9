"""The tri-state `Elective` value.

An `Elective[T]` distinguishes a property that was left out of a message (`ABSENT`) from a property
that was sent with a value (`Present(value)`). The value of a `Present` may itself be `None`, so a field
typed `Elective[str | None]` has three states: absent, present null and present string.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, NoReturn, TypeVar, final, override

T = TypeVar("T")
U = TypeVar("U")


class Elective(ABC, Generic[T]):
    """Base of the two elective states.

    Calling `Elective()` returns the `ABSENT` singleton, which is also the default of every elective field.
    """

    __slots__ = ()

    def __new__(cls, *args: Any, **kwargs: Any):
        if cls is Elective:
            return ABSENT
        return super().__new__(cls)

    @classmethod
    def default(cls) -> Elective[Any]:
        """The default elective value, `ABSENT`."""
        return ABSENT

    def is_absent(self) -> bool:
        """Whether the property was left out."""
        return isinstance(self, Absent)

    def is_present(self) -> bool:
        """Whether the property carries a value."""
        return not self.is_absent()

    @abstractmethod
    def unwrap(self) -> T:
        """Return the present value.

        Raises:
            ValueError: If the value is absent.
        """

    @abstractmethod
    def unwrap_or(self, default: U) -> T | U:
        """Return the present value, or `default` if absent."""


@final
class Absent(Elective[Any]):
    """The property is not part of the message."""

    __slots__ = ()
    _instance: Absent | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = object.__new__(cls)
        return cls._instance

    @override
    def unwrap(self) -> NoReturn:
        raise ValueError("Cannot unwrap an absent elective value.")

    @override
    def unwrap_or(self, default: U) -> U:
        return default

    @override
    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT = Absent()


@final
@dataclass(frozen=True, slots=True)
class Present(Elective[T]):
    """The property is part of the message and holds `value`."""

    value: T

    @override
    def unwrap(self) -> T:
        return self.value

    @override
    def unwrap_or(self, default: U) -> T:
        return self.value
