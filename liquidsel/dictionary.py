"""Dictionary-encoded byte and string arrays with unique dictionary values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Union

Value = Union[bytes, str]

_MAX_KEYS = 1 << 16


@dataclass(frozen=True)
class DictionaryArray:
    """Keys (``None`` for null) indexing into a list of bytes or str values."""

    keys: tuple[int | None, ...]
    values: tuple[Value, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "keys", tuple(self.keys))
        object.__setattr__(self, "values", tuple(self.values))
        if self.values:
            if all(isinstance(v, bytes) for v in self.values):
                pass
            elif not all(isinstance(v, str) for v in self.values):
                kinds = sorted({type(v).__name__ for v in self.values})
                raise TypeError(f"Unsupported dictionary type: {kinds}")
        for key in self.keys:
            if key is not None and not 0 <= key < min(len(self.values), _MAX_KEYS):
                raise IndexError(f"dictionary key {key} out of bounds 0..{len(self.values)}")

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[Value | None]:
        return (None if key is None else self.values[key] for key in self.keys)


def _encode(items: Iterable[Value | None]) -> DictionaryArray:
    index: dict[Value, int] = {}
    keys: list[int | None] = []
    for item in items:
        if item is None:
            keys.append(None)
            continue
        key = index.get(item)
        if key is None:
            if len(index) >= _MAX_KEYS:
                raise OverflowError("dictionary key overflow: more than 65536 distinct values")
            key = index[item] = len(index)
        keys.append(key)
    return DictionaryArray(tuple(keys), tuple(index))


class CheckedDictionaryArray:
    """A :class:`DictionaryArray` whose dictionary values are known to be unique.

    Lookups may stop at the first matching value because of this.
    """

    __slots__ = ("_array",)

    def __init__(self, array: DictionaryArray) -> None:
        self._array = array

    @classmethod
    def new_checked(cls, array: DictionaryArray) -> CheckedDictionaryArray:
        """Re-encode ``array`` keeping only referenced values, each once."""
        return cls(_encode(array))

    @classmethod
    def from_values(cls, values: Iterable[Value | None]) -> CheckedDictionaryArray:
        return cls(_encode(values))

    @classmethod
    def new_unchecked(cls, array: DictionaryArray) -> CheckedDictionaryArray:
        """Wrap ``array`` as is, after confirming its values are unique and all used."""
        if len(_encode(array).values) != len(array.values):
            raise ValueError("the input dictionary values are not unique")
        return cls(array)

    def into_inner(self) -> DictionaryArray:
        return self._array

    @property
    def array(self) -> DictionaryArray:
        return self._array

    def __repr__(self) -> str:
        return f"CheckedDictionaryArray({self._array!r})"