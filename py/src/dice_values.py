# Value model for dice expressions.
#
# Values come in three stages:
#   lazy ("LazyValue"): int | float | Char | LazyArray | Place | LazyDice
#   single-resolved ("RVal"): int | float | Char | LazyArray
#       (dice are sampled, variables read, but array elements stay lazy)
#   deep-resolved ("RRVal"): int | float | Char | list of RRVal
#       (nothing lazy is left anywhere in the tree)
# Moving between the stages is done by dice_details.resolve / deep_resolve
# and by `unresolve` here, which is total.
#
# Arithmetic and comparison operate on deep-resolved values and broadcast
# over arrays.

import functools
import math
import time
import typing
from dataclasses import dataclass, field

from config import FLOAT_DIGITS
from dice_errors import EvalTypeError, EvaluationHalted


class Char(typing.NamedTuple):
    char: str

    def __str__(self):
        return f"'{self.char}'"


# Array literal whose elements have not been forced yet.
@dataclass
class LazyArray:
    items: list = field(default_factory=list)


# A variable name plus zero or more array indices. Usable as an lvalue.
@dataclass(frozen=True)
class Place:
    name: str
    indices: tuple[int, ...] = ()

    def __str__(self):
        return self.name + "".join(f"[{i}]" for i in self.indices)


# An unrolled dice term. `sides` and `explode` hold deep-resolved values.
# The closed range [lowest_idx, highest_idx] selects which of the sorted
# rolls are summed.
@dataclass
class LazyDice:
    num: int
    sides: list
    lowest_idx: int
    highest_idx: int
    explode: list = field(default_factory=list)

    @classmethod
    def of(cls, num: int, sides: list) -> "LazyDice":
        return cls(num=num, sides=sides, lowest_idx=0, highest_idx=num - 1)

    def is_full_range(self) -> bool:
        return self.lowest_idx == 0 and self.highest_idx == self.num - 1


LazyValue = typing.Union[int, float, Char, LazyArray, Place, LazyDice]
RVal = typing.Union[int, float, Char, LazyArray]
RRVal = typing.Union[int, float, Char, list]


# Cooperative checkpoint. Long loops call `tick`; once the optional
# deadline has passed the evaluation is abandoned.
class Budget:
    def __init__(self, timeout: float | None = None):
        self.timeout = timeout
        self.deadline = None if timeout is None else time.monotonic() + timeout
        self.steps = 0

    def tick(self):
        self.steps += 1
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise EvaluationHalted(self.timeout)


# Deep-resolved value back to the lazy representation.
def unresolve(value: RRVal) -> LazyValue:
    if isinstance(value, list):
        return LazyArray([unresolve(item) for item in value])
    return value


def is_array(value) -> bool:
    return isinstance(value, (list, LazyArray))


def kind_name(value) -> str:
    if isinstance(value, (list, LazyArray)):
        return "arrays"
    if isinstance(value, Char):
        return "characters"
    if isinstance(value, float):
        return "numbers"
    if isinstance(value, LazyDice):
        return "dice"
    return "integers"


def normalize_float(f: float) -> float:
    return round(f, FLOAT_DIGITS)


def to_float(n: int) -> float:
    try:
        return float(n)
    except OverflowError:
        return math.inf if n > 0 else -math.inf


def _code(c: Char) -> int:
    return ord(c.char)


def _char_or_space(code: int) -> Char:
    if 0 <= code <= 0x10FFFF and not 0xD800 <= code <= 0xDFFF:
        return Char(chr(code))
    return Char(" ")


# Bring two scalars to a common numeric type: both ints, or both floats.
def _widen(a, b):
    if isinstance(a, Char):
        a = _code(a)
    if isinstance(b, Char):
        b = _code(b)
    if isinstance(a, float) or isinstance(b, float):
        return (
            a if isinstance(a, float) else to_float(a),
            b if isinstance(b, float) else to_float(b),
        )
    return a, b


def _fdiv(x: float, y: float) -> float:
    try:
        return x / y
    except ZeroDivisionError:
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)


def _scalar_add(a, b):
    if isinstance(a, Char) and isinstance(b, Char):
        return _char_or_space(_code(a) + _code(b))
    x, y = _widen(a, b)
    return x + y


def _scalar_sub(a, b):
    if isinstance(a, Char) and isinstance(b, Char):
        return _char_or_space(_code(a) - _code(b))
    x, y = _widen(a, b)
    return x - y


def _scalar_mul(a, b):
    if isinstance(a, Char) and isinstance(b, Char):
        return _char_or_space(_code(a) * _code(b))
    x, y = _widen(a, b)
    return x * y


def _scalar_div(a, b):
    x, y = _widen(a, b)
    if isinstance(x, int):
        x, y = to_float(x), to_float(y)
    return _fdiv(x, y)


def _scalar_eq(a, b):
    return int(compare(a, b) == 0)


def _scalar_lt(a, b):
    return int(compare(a, b) < 0)


def _scalar_gt(a, b):
    return int(compare(a, b) > 0)


def _scalar_or(a, b):
    return a if truthy(a) else b


def _scalar_and(a, b):
    return b if truthy(a) else a


# Apply `scalar_fn` elementwise. Two arrays are zipped with the shorter one
# cycled; an array and a scalar pair the scalar with every element.
def _broadcast(scalar_fn, left: RRVal, right: RRVal, budget: Budget) -> RRVal:
    if isinstance(left, list) and isinstance(right, list):
        if not left or not right:
            return []
        size = max(len(left), len(right))
        out = []
        for i in range(size):
            out.append(
                _broadcast(
                    scalar_fn, left[i % len(left)], right[i % len(right)], budget
                )
            )
            budget.tick()
        return out
    if isinstance(left, list):
        out = []
        for item in left:
            out.append(_broadcast(scalar_fn, item, right, budget))
            budget.tick()
        return out
    if isinstance(right, list):
        out = []
        for item in right:
            out.append(_broadcast(scalar_fn, left, item, budget))
            budget.tick()
        return out
    return scalar_fn(left, right)


def add(left: RRVal, right: RRVal, budget: Budget) -> RRVal:
    return _broadcast(_scalar_add, left, right, budget)


def sub(left: RRVal, right: RRVal, budget: Budget) -> RRVal:
    return _broadcast(_scalar_sub, left, right, budget)


def mul(left: RRVal, right: RRVal, budget: Budget) -> RRVal:
    return _broadcast(_scalar_mul, left, right, budget)


# Division always produces floats.
def div(left: RRVal, right: RRVal, budget: Budget) -> RRVal:
    return _broadcast(_scalar_div, left, right, budget)


def op_eq(left: RRVal, right: RRVal, budget: Budget) -> RRVal:
    return _broadcast(_scalar_eq, left, right, budget)


def op_lt(left: RRVal, right: RRVal, budget: Budget) -> RRVal:
    return _broadcast(_scalar_lt, left, right, budget)


def op_gt(left: RRVal, right: RRVal, budget: Budget) -> RRVal:
    return _broadcast(_scalar_gt, left, right, budget)


def op_or(left: RRVal, right: RRVal, budget: Budget) -> RRVal:
    return _broadcast(_scalar_or, left, right, budget)


def op_and(left: RRVal, right: RRVal, budget: Budget) -> RRVal:
    return _broadcast(_scalar_and, left, right, budget)


def negate(value: RRVal, budget: Budget) -> RRVal:
    if isinstance(value, list):
        out = []
        for item in value:
            out.append(negate(item, budget))
            budget.tick()
        return out
    if isinstance(value, Char):
        return -_code(value)
    return -value


def truthy(value) -> bool:
    if isinstance(value, list):
        return len(value) > 0
    if isinstance(value, Char):
        return value.char != "\0"
    return value != 0


def _ordered_number(value):
    if isinstance(value, Char):
        return _code(value)
    if isinstance(value, float):
        return normalize_float(value)
    return value


# Total order over deep-resolved values. Returns -1, 0 or 1.
# NaN equals NaN and sorts below everything else. Arrays compare by length,
# then element by element. A scalar against an array compares against the
# array's first element; an empty array on either side makes the left
# operand the greater one.
def compare(a: RRVal, b: RRVal) -> int:
    if isinstance(a, list) and isinstance(b, list):
        if len(a) != len(b):
            return -1 if len(a) < len(b) else 1
        for x, y in zip(a, b):
            result = compare(x, y)
            if result != 0:
                return result
        return 0
    if isinstance(b, list):
        if not b:
            return 1
        return compare(a, b[0])
    if isinstance(a, list):
        if not a:
            return 1
        return compare(a[0], b)

    x, y = _ordered_number(a), _ordered_number(b)
    x_nan = isinstance(x, float) and math.isnan(x)
    y_nan = isinstance(y, float) and math.isnan(y)
    if x_nan or y_nan:
        if x_nan and y_nan:
            return 0
        return -1 if x_nan else 1
    return (x > y) - (x < y)


order_key = functools.cmp_to_key(compare)


def values_equal(a: RRVal, b: RRVal) -> bool:
    return compare(a, b) == 0


def sort_values(values: list) -> list:
    return sorted(values, key=order_key)


# Convert a single-resolved value to a Python int, for counts and indices.
def to_int(value) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, Char):
        return _code(value)
    if isinstance(value, float):
        normalized = normalize_float(value)
        if math.isfinite(normalized) and normalized.is_integer():
            return int(normalized)
        raise EvalTypeError(f"{display(value)} is not an integer value")
    if is_array(value):
        raise EvalTypeError("cannot cast array to integer")
    raise EvalTypeError(f"cannot cast {kind_name(value)} to integer")


def _display_int(n: int) -> str:
    try:
        return str(n)
    except ValueError:
        # too many digits for a decimal conversion
        return f"<integer of {n.bit_length()} bits>"


def _display_float(f: float) -> str:
    if math.isnan(f):
        return "NaN"
    if math.isinf(f):
        return "inf" if f > 0 else "-inf"
    return repr(f)


def quote_string(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


# Render a deep-resolved value. Arrays made entirely of characters render
# as strings.
def display(value: RRVal) -> str:
    if isinstance(value, list):
        if not value:
            return "[]"
        if all(isinstance(item, Char) for item in value):
            return quote_string("".join(item.char for item in value))
        return "[" + ", ".join(display(item) for item in value) + "]"
    if isinstance(value, Char):
        return str(value)
    if isinstance(value, float):
        return _display_float(value)
    return _display_int(value)
