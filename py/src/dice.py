# Dicerolling.
# Evaluator for dice roll expressions, driven directly by the parser.

import logging
import random

import config
from dice_details import (
    deep_resolve,
    keep_array,
    keep_highest_dice,
    keep_lowest_dice,
    resolve,
)
from dice_env import Variables
from dice_errors import (
    EvalError,
    EvalRangeError,
    EvalTypeError,
    IndexIntoNonArray,
    IndexOutOfBounds,
    ParseError,
)
from dice_lex import Op, Token, TokenKind, operator_list
from dice_parse import ParseInstructions, run_parser
from dice_values import (
    Budget,
    Char,
    LazyArray,
    LazyDice,
    Place,
    RRVal,
    add,
    display,
    div,
    kind_name,
    mul,
    negate,
    op_and,
    op_eq,
    op_gt,
    op_lt,
    op_or,
    order_key,
    sub,
    to_int,
    unresolve,
)
from utils import codeblock, escape

log = logging.getLogger(__name__)

ARITHMETICS = {
    Op.PLUS: add,
    Op.MINUS: sub,
    Op.STAR: mul,
    Op.SLASH: div,
    Op.EQUAL: op_eq,
    Op.LESS: op_lt,
    Op.GREATER: op_gt,
    Op.OR: op_or,
    Op.AND: op_and,
}


def seeded_rng(seed: int | None = None) -> random.Random:
    return random.Random(config.TEST_SEED if seed is None else seed)


# Turn a count-like operand into a non-negative int within the dice limit.
def _count(value, what: str) -> int:
    try:
        n = to_int(value)
    except EvalTypeError as err:
        raise EvalTypeError(f"invalid number of {what}: {err}") from err
    if n < 0:
        raise EvalRangeError(f"invalid number of {what}: negative number of {what}")
    if n > config.DICE_LIMIT:
        raise EvalRangeError(f"too many {what}: {n} > {config.DICE_LIMIT}")
    return n


# Computes values as the parser reduces the expression.
# Owns everything an evaluation touches: RNG stream, variables and budget.
class Evaluator(ParseInstructions):
    def __init__(self, rng: random.Random | None = None, budget: Budget | None = None):
        self.rng = rng if rng is not None else random.Random()
        self.budget = budget if budget is not None else Budget()
        self.variables = Variables()

    def lookup(self, place: Place) -> RRVal:
        return self.variables.get(place)

    def resolve(self, value):
        return resolve(value, self)

    def deep_resolve(self, value) -> RRVal:
        return deep_resolve(value, self)

    def literal(self, token: Token):
        if token.kind == TokenKind.NUMBER:
            return token.value
        if token.kind == TokenKind.IDENT:
            return Place(token.value)
        if token.kind == TokenKind.CHAR:
            return Char(token.value)
        if token.kind == TokenKind.STRING:
            return LazyArray([Char(c) for c in token.value])
        raise ParseError(f"invalid literal `{token}`")

    def binop(self, left, right, op: Op):
        if op in ARITHMETICS:
            result = ARITHMETICS[op](
                self.deep_resolve(left), self.deep_resolve(right), self.budget
            )
            return unresolve(result)
        if op == Op.COMMA:
            return self._concat(self.resolve(left), self.resolve(right))
        if op == Op.SEMICOLON:
            return right
        if op == Op.ASSIGN:
            if not isinstance(left, Place):
                raise EvalTypeError(f"cannot assign to {kind_name(left)}")
            self.variables.set(left, self.deep_resolve(right))
            return left
        raise ParseError(f"invalid infix operator `{op}`")

    @staticmethod
    def _concat(left, right) -> LazyArray:
        if isinstance(left, LazyArray) and isinstance(right, LazyArray):
            return LazyArray(left.items + right.items)
        if isinstance(left, LazyArray):
            return LazyArray(left.items + [right])
        if isinstance(right, LazyArray):
            return LazyArray([left] + right.items)
        return LazyArray([left, right])

    def prefix(self, inner, op: Op):
        if op == Op.PLUS:
            return inner
        if op == Op.MINUS:
            return unresolve(negate(self.deep_resolve(inner), self.budget))
        if op == Op.COMMA:
            # enlist
            return LazyArray([inner])
        if op == Op.HASH:
            value = self.resolve(inner)
            if not isinstance(value, LazyArray):
                raise EvalTypeError(f"cannot take the length of {kind_name(value)}")
            return len(value.items)
        raise ParseError(f"invalid prefix operator `{op}`")

    def suffix(self, inner, op: Op):
        if op == Op.PERCENT:
            return unresolve(div(self.deep_resolve(inner), 100, self.budget))
        if op == Op.BANG:
            if isinstance(inner, LazyDice):
                if not inner.sides:
                    return inner
                top = max(inner.sides, key=order_key)
                return LazyDice(
                    inner.num,
                    inner.sides,
                    inner.lowest_idx,
                    inner.highest_idx,
                    inner.explode + [top],
                )
            value = self.resolve(inner)
            if isinstance(value, LazyArray):
                raise EvalTypeError("the operator `!` is not defined on arrays yet")
            if isinstance(value, float):
                raise EvalTypeError("floating point factorial isn't implemented yet")
            raise EvalTypeError("factorial isn't implemented yet")
        raise ParseError(f"invalid suffix operator `{op}`")

    def dice(self, num, sides):
        count = 1 if num is None else _count(self.resolve(num), "dice")
        value = self.resolve(sides)
        if isinstance(value, LazyArray):
            if len(value.items) > config.DICE_LIMIT:
                raise EvalRangeError(
                    f"too many sides: {len(value.items)} > {config.DICE_LIMIT}"
                )
            faces = [self.deep_resolve(item) for item in value.items]
        else:
            faces = list(range(1, _count(value, "sides") + 1))
        return LazyDice.of(count, faces)

    def _keep_amount(self, keep, operation: str) -> int:
        try:
            k = to_int(self.resolve(keep))
        except EvalTypeError as err:
            raise EvalTypeError(f"invalid {operation} criterion: {err}") from err
        if k < 0:
            raise EvalRangeError(f"invalid {operation} criterion: is negative {k}")
        return k

    def _keep(self, dice, keep, highest: bool):
        operation = "keep-highest" if highest else "keep-lowest"
        k = self._keep_amount(keep, operation)
        if isinstance(dice, LazyDice):
            if highest:
                return keep_highest_dice(dice, k)
            return keep_lowest_dice(dice, k)
        value = self.resolve(dice)
        if isinstance(value, LazyArray):
            return LazyArray(keep_array(value.items, k, highest, self, operation))
        raise EvalTypeError(f"{operation} operation is invalid on {kind_name(value)}")

    def keep_highest(self, dice, keep):
        return self._keep(dice, keep, highest=True)

    def keep_lowest(self, dice, keep):
        return self._keep(dice, keep, highest=False)

    def explode(self, dice, inner):
        if not isinstance(dice, LazyDice):
            raise EvalTypeError(f"cannot explode {kind_name(self.resolve(dice))}")
        triggers = self.deep_resolve(inner)
        if not isinstance(triggers, list):
            triggers = [triggers]
        return LazyDice(
            dice.num,
            dice.sides,
            dice.lowest_idx,
            dice.highest_idx,
            dice.explode + triggers,
        )

    def make_array(self, items: list):
        return LazyArray(items)

    def index(self, target, idx):
        i = to_int(self.resolve(idx))
        if isinstance(target, Place):
            return Place(target.name, target.indices + (i,))
        value = self.resolve(target)
        if not isinstance(value, LazyArray):
            raise IndexIntoNonArray(None, [i])
        if i < 0 or i >= len(value.items):
            raise IndexOutOfBounds(None, [i], len(value.items))
        return value.items[i]


# Rebuilds the expression as fully parenthesized text without evaluating
# anything.
class Describer(ParseInstructions):
    def literal(self, token: Token) -> str:
        return str(token)

    def binop(self, left, right, op: Op) -> str:
        if op == Op.SEMICOLON:
            return f"{left}; {right}"
        if op == Op.COMMA:
            return f"({left}, {right})"
        return f"({left} {op} {right})"

    def prefix(self, inner, op: Op) -> str:
        return f"({op}{inner})"

    def suffix(self, inner, op: Op) -> str:
        return f"({inner}{op})"

    def dice(self, num, sides) -> str:
        if num is None:
            return f"(d{sides})"
        return f"({num}d{sides})"

    def keep_highest(self, dice, keep) -> str:
        return f"({dice}kh{keep})"

    def keep_lowest(self, dice, keep) -> str:
        return f"({dice}kl{keep})"

    def explode(self, dice, inner) -> str:
        return f"({dice}!({inner})!)"

    def make_array(self, items: list) -> str:
        return "[" + ", ".join(items) + "]"

    def index(self, target, idx) -> str:
        return f"{target}[{idx}]"


# Evaluate an expression to a deep-resolved value.
# Raises EvalError for any bad input, and EvaluationHalted if `timeout`
# (seconds) runs out first.
def evaluate(
    text: str, rng: random.Random | None = None, timeout: float | None = None
) -> RRVal:
    evaluator = Evaluator(rng=rng, budget=Budget(timeout))
    try:
        result = evaluator.deep_resolve(run_parser(text, evaluator))
    except RecursionError as err:
        raise ParseError("expression is nested too deeply") from err
    log.debug(f"Evaluated {text!r} => {result!r}")
    return result


def describe(text: str) -> str:
    try:
        return run_parser(text, Describer())
    except RecursionError as err:
        raise ParseError("expression is nested too deeply") from err


# One line for a chat reply: the parsed expression and its value.
def format_result(text: str, value: RRVal) -> str:
    return f"{codeblock(describe(text))} ⇒ **{escape(display(value))}**"


if __name__ == "__main__":
    from cmds import EvalSupervisor
    from dice_errors import EvaluationHalted

    logging.basicConfig(level=logging.INFO)
    with EvalSupervisor(timeout=config.get_eval_timeout()) as supervisor:
        while True:
            try:
                intext = input("> ")
            except EOFError:
                break
            if intext.strip() == "help":
                print(f"operators: {operator_list()}")
                continue
            sort = intext.startswith("sort ")
            if sort:
                intext = intext[len("sort ") :]
            try:
                print(supervisor.evaluate(intext, seed=config.get_seed(), sort=sort))
            except (EvalError, EvaluationHalted) as err:
                print(f"error: {err}")
