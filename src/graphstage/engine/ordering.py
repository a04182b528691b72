"""Typed value handling and shuffle ordering.

Stages that extract or order values declare one of a closed set of value
types (``OrderingType``). A ``TypedValueHandler`` turns whatever a property
holds into a ``TypedValue`` of the declared type, failing fast on values
that do not fit. A ``Comparator`` orders typed values ascending or
descending; the shuffle sorts keys with it before reduce.

Conversion rules:

    LONG    int; floats truncate toward zero; must fit signed 64-bit
    INT     int; floats truncate toward zero; wraps to signed 32-bit
    FLOAT   rounded to IEEE single precision
    DOUBLE  float
    TEXT    to_text(value), so None becomes "null"

Numeric types reject None, booleans, and non-numbers.
"""

from __future__ import annotations

import functools
import math
import struct
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from graphstage.contracts.enums import OrderingType, SortOrder
from graphstage.contracts.errors import ValueTypeMismatchError
from graphstage.contracts.graph import is_number, to_text

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass(frozen=True)
class TypedValue:
    """A value tagged with its declared ordering type.

    Equality and hashing cover both the type and the value, so typed values
    can be used directly as shuffle keys.
    """

    type: OrderingType
    value: int | float | str

    def __str__(self) -> str:
        return to_text(self.value)


def _truncate(value: int | float, key: str | None, expected: str) -> int:
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueTypeMismatchError(expected, value, key=key)
        return int(value)
    return value


def _to_long(value: Any, key: str | None) -> int:
    if not is_number(value):
        raise ValueTypeMismatchError("long", value, key=key)
    result = _truncate(value, key, "long")
    if not _INT64_MIN <= result <= _INT64_MAX:
        raise ValueTypeMismatchError("long (signed 64-bit)", value, key=key)
    return result


def _to_int(value: Any, key: str | None) -> int:
    if not is_number(value):
        raise ValueTypeMismatchError("int", value, key=key)
    result = _truncate(value, key, "int")
    # Two's complement narrowing to 32 bits
    result &= 0xFFFFFFFF
    return result - 0x100000000 if result >= 0x80000000 else result


def _to_float(value: Any, key: str | None) -> float:
    if not is_number(value):
        raise ValueTypeMismatchError("float", value, key=key)
    as_double = float(value)
    if math.isinf(as_double) or math.isnan(as_double):
        return as_double
    try:
        packed = struct.pack("f", as_double)
    except OverflowError:
        return math.copysign(math.inf, as_double)
    narrowed: float = struct.unpack("f", packed)[0]
    return narrowed


def _to_double(value: Any, key: str | None) -> float:
    if not is_number(value):
        raise ValueTypeMismatchError("double", value, key=key)
    return float(value)


def _to_text(value: Any, key: str | None) -> str:
    return to_text(value)


_CONVERTERS: dict[OrderingType, Callable[[Any, str | None], int | float | str]] = {
    OrderingType.LONG: _to_long,
    OrderingType.INT: _to_int,
    OrderingType.FLOAT: _to_float,
    OrderingType.DOUBLE: _to_double,
    OrderingType.TEXT: _to_text,
}


class TypedValueHandler:
    """Wraps raw property values into TypedValues of one declared type.

    One handler is created per task at setup time.

    Example:
        handler = TypedValueHandler(OrderingType.LONG)
        handler.wrap(3.9)       # TypedValue(LONG, 3)
        handler.wrap("three")   # raises ValueTypeMismatchError
    """

    def __init__(self, value_type: OrderingType) -> None:
        self._type = OrderingType(value_type)
        self._convert = _CONVERTERS[self._type]

    @property
    def value_type(self) -> OrderingType:
        return self._type

    def convert(self, value: Any, *, key: str | None = None) -> int | float | str:
        """Convert a raw value to the declared type's primitive."""
        return self._convert(value, key)

    def wrap(self, value: Any, *, key: str | None = None) -> TypedValue:
        """Convert and tag a raw value.

        Args:
            value: Raw property value
            key: Property name, used in error messages

        Raises:
            ValueTypeMismatchError: If the value does not fit the declared type
        """
        return TypedValue(self._type, self._convert(value, key))

    def __repr__(self) -> str:
        return f"TypedValueHandler({self._type.value})"


def _float_order_key(value: float) -> tuple[int, float, float]:
    # Total order: -0.0 < 0.0 and NaN above +inf, all NaNs equal
    if math.isnan(value):
        return (1, 0.0, 0.0)
    return (0, value, math.copysign(1.0, value))


def _compare_raw(value_type: OrderingType, left: Any, right: Any) -> int:
    if value_type == OrderingType.TEXT:
        a: Any = str(left).encode("utf-8")
        b: Any = str(right).encode("utf-8")
    elif value_type in (OrderingType.FLOAT, OrderingType.DOUBLE):
        a = _float_order_key(float(left))
        b = _float_order_key(float(right))
    else:
        a, b = left, right
    return (a > b) - (a < b)


@dataclass(frozen=True)
class Comparator:
    """Ascending or descending ordering for one value type.

    Ten canonical forms exist: INCR and DECR for each of LONG, INT, FLOAT,
    DOUBLE, and TEXT. TEXT compares UTF-8 bytes. FLOAT and DOUBLE use a
    total order (-0.0 sorts before 0.0, NaN sorts after +inf).
    """

    value_type: OrderingType
    order: SortOrder = SortOrder.INCR

    def compare(self, left: TypedValue | Any, right: TypedValue | Any) -> int:
        """Three-way comparison of two keys (-1, 0, 1)."""
        a = left.value if isinstance(left, TypedValue) else left
        b = right.value if isinstance(right, TypedValue) else right
        result = _compare_raw(self.value_type, a, b)
        return -result if self.order == SortOrder.DECR else result

    @functools.cached_property
    def sort_key(self) -> Callable[[Any], Any]:
        """Key function for sorted(); wraps compare()."""
        return functools.cmp_to_key(self.compare)


def create_comparator(order: SortOrder | str, value_type: OrderingType | str) -> Comparator:
    """Select the canonical comparator for a declared type and direction."""
    return Comparator(OrderingType(value_type), SortOrder(order))


def natural_sort_key(key: Any) -> tuple[bool, Any]:
    """Shuffle ordering for stages without a declared comparator.

    None keys (single-group stages such as count) sort first.
    """
    return (key is not None, key)
