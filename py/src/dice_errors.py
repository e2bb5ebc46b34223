# Errors raised while lexing, parsing, and evaluating dice expressions.
# Everything a user can trigger with bad input is an EvalError.


class EvalError(Exception):
    pass


# Malformed token reached the parser.
class LexError(EvalError):
    pass


class ParseError(EvalError):
    pass


# Operator applied to an operand of the wrong kind.
class EvalTypeError(EvalError):
    pass


# Counts or sizes outside what the evaluator accepts.
class EvalRangeError(EvalError):
    pass


class ResolveError(EvalError):
    def __init__(self, message: str, name: str | None, path: list[int] | None = None):
        super().__init__(message)
        self.name = name
        self.path = list(path) if path else []


def _format_place(name: str | None, path: list[int]) -> str:
    base = name if name is not None else "<array>"
    return base + "".join(f"[{i}]" for i in path)


class UndefinedVariable(ResolveError):
    def __init__(self, name: str):
        super().__init__(f"undefined variable `{name}`", name)


class IndexOutOfBounds(ResolveError):
    def __init__(self, name: str | None, path: list[int], length: int):
        super().__init__(
            f"index out of bounds: `{_format_place(name, path)}` (length {length})",
            name,
            path,
        )


class IndexIntoNonArray(ResolveError):
    def __init__(self, name: str | None, path: list[int]):
        super().__init__(
            f"cannot index into non-array: `{_format_place(name, path)}`", name, path
        )


# Not an EvalError: the expression was fine, it just ran out of time.
class EvaluationHalted(Exception):
    def __init__(self, timeout: float | None = None):
        if timeout is None:
            message = "evaluation exceeded its time budget, execution halted"
        else:
            message = (
                f"evaluation exceeded max duration of {timeout * 1000:g} milliseconds,"
                " execution halted"
            )
        super().__init__(message)
        self.timeout = timeout
