# Precedence-climbing parser for dice expressions.
# Based on Pratt top-down operator precedence, as the roller always was,
# but no parse tree is kept: every reduction is handed straight to a
# ParseInstructions implementation, whose return value is carried forward.

import typing

from dice_errors import LexError, ParseError
from dice_lex import EOF, Lexer, Op, Token, TokenKind

# (left, right) binding powers. Left-associative operators bind their
# right operand one tighter; assignment is the other way round.
# fmt: off
INFIX_BP = {
    Op.SEMICOLON: (1, 2),
    Op.ASSIGN:    (4, 3),
    Op.COMMA:     (5, 6),
    Op.OR:        (7, 8),
    Op.AND:       (7, 8),
    Op.EQUAL:     (9, 10),
    Op.LESS:      (9, 10),
    Op.GREATER:   (9, 10),
    Op.PLUS:      (13, 14),
    Op.MINUS:     (13, 14),
    Op.STAR:      (15, 16),
    Op.SLASH:     (15, 16),
}
PREFIX_BP = {
    Op.COMMA: 6,
    Op.PLUS:  20,
    Op.MINUS: 20,
    Op.HASH:  20,
}
SUFFIX_BP = {
    Op.PERCENT: 20,
    Op.BANG:    30,
}
EXPLODE_BP = 20
KEEP_BP = (35, 36)
DICE_BP = (39, 40)
INDEX_BP = 50
# fmt: on

DICE_WORD = "d"
KEEP_HIGHEST_WORDS = {"KH", "kh", "Kh", "kH", "H", "h", "K"}
KEEP_LOWEST_WORDS = {"KL", "kl", "Kl", "kL", "L", "l"}


# The semantic actions the parser drives. Subclasses decide what a "value"
# is: the evaluator computes results, the describer builds text.
class ParseInstructions:
    # A number, identifier, character or string token.
    def literal(self, token: Token):
        raise NotImplementedError("Literal behavior is missing.")

    def binop(self, left, right, op: Op):
        raise NotImplementedError("Infix behavior is missing.")

    def prefix(self, inner, op: Op):
        raise NotImplementedError("Prefix behavior is missing.")

    def suffix(self, inner, op: Op):
        raise NotImplementedError("Suffix behavior is missing.")

    # `num` is None for the prefix form `dN`.
    def dice(self, num, sides):
        raise NotImplementedError("Dice behavior is missing.")

    def keep_highest(self, dice, keep):
        raise NotImplementedError("Keep-highest behavior is missing.")

    def keep_lowest(self, dice, keep):
        raise NotImplementedError("Keep-lowest behavior is missing.")

    # `dice!( inner )!`
    def explode(self, dice, inner):
        raise NotImplementedError("Explode behavior is missing.")

    def make_array(self, items: list):
        raise NotImplementedError("Array behavior is missing.")

    # `target[idx]`
    def index(self, target, idx):
        raise NotImplementedError("Index behavior is missing.")


class Parser:
    def __init__(self, lexer: typing.Iterator[Token], instructions: ParseInstructions):
        self.lexer = lexer
        self.ins = instructions
        self._peeked: Token | None = None

    def peek(self) -> Token:
        if self._peeked is None:
            self._peeked = next(self.lexer, EOF)
        return self._peeked

    def advance(self) -> Token:
        token = self.peek()
        self._peeked = None
        return token

    def _is_op(self, op: Op) -> bool:
        token = self.peek()
        return token.kind == TokenKind.OP and token.value == op

    def eat(self, op: Op) -> bool:
        if self._is_op(op):
            self.advance()
            return True
        return False

    def expect(self, op: Op):
        if not self.eat(op):
            raise ParseError(f"expected `{op}` but got `{self.peek()}`")

    # `)!` lexes as one token; where a plain `)` is expected, split it so
    # `(2d6)!` still explodes.
    def expect_close_paren(self):
        if self._is_op(Op.RPAR_BANG):
            self._peeked = Token(TokenKind.OP, Op.BANG)
            return
        self.expect(Op.RPAR)

    # Parse the whole input. Anything left over is an error.
    def parse(self):
        value = self.expr(0)
        token = self.peek()
        if token.kind != TokenKind.EOF:
            self._unexpected(token)
        return value

    def _unexpected(self, token: Token):
        if token.kind in (TokenKind.BAD_CHAR, TokenKind.BAD_TEXT):
            raise LexError(f"invalid input `{token.value}`")
        raise ParseError(f"unexpected token `{token}`")

    # Parse and evaluate an expression whose operators bind at least as
    # tightly as `min_bp`. Recursive.
    def expr(self, min_bp: int = 0):
        left = self.primary()
        while True:
            token = self.peek()
            if token.kind == TokenKind.OP:
                op = token.value
                if op in SUFFIX_BP and min_bp <= SUFFIX_BP[op]:
                    self.advance()
                    left = self.ins.suffix(left, op)
                    continue
                if op == Op.BANG_LPAR and min_bp <= EXPLODE_BP:
                    # a long suffix operator, the contents don't care about precedence
                    self.advance()
                    inner = self.expr(0)
                    self.expect(Op.RPAR_BANG)
                    left = self.ins.explode(left, inner)
                    continue
                if op == Op.LBRACK and min_bp <= INDEX_BP:
                    self.advance()
                    idx = self.expr(0)
                    self.expect(Op.RBRACK)
                    left = self.ins.index(left, idx)
                    continue
                if op in INFIX_BP and min_bp <= INFIX_BP[op][0]:
                    self.advance()
                    right = self.expr(INFIX_BP[op][1])
                    left = self.ins.binop(left, right, op)
                    continue
                return left
            if token.kind == TokenKind.IDENT:
                # contextual keywords in infix position
                word = token.value
                if word == DICE_WORD:
                    if min_bp > DICE_BP[0]:
                        return left
                    self.advance()
                    left = self.ins.dice(left, self.expr(DICE_BP[1]))
                    continue
                if word in KEEP_HIGHEST_WORDS or word in KEEP_LOWEST_WORDS:
                    if min_bp > KEEP_BP[0]:
                        return left
                    self.advance()
                    keep = self.expr(KEEP_BP[1])
                    if word in KEEP_HIGHEST_WORDS:
                        left = self.ins.keep_highest(left, keep)
                    else:
                        left = self.ins.keep_lowest(left, keep)
                    continue
            if token.kind == TokenKind.EOF:
                return left
            self._unexpected(token)

    # Literals, groupings, array literals, prefix operators and prefix `d`.
    def primary(self):
        token = self.peek()
        if token.kind == TokenKind.OP:
            op = token.value
            self.advance()
            if op == Op.LBRACK:
                return self._array_literal()
            if op in PREFIX_BP:
                inner = self.expr(PREFIX_BP[op])
                return self.ins.prefix(inner, op)
            if op == Op.LPAR:
                inner = self.expr(0)
                self.expect_close_paren()
                return inner
            raise ParseError(f"invalid prefix operator `{op}`")
        if token.kind == TokenKind.IDENT and token.value == DICE_WORD:
            self.advance()
            sides = self.expr(DICE_BP[1])
            return self.ins.dice(None, sides)
        if token.kind == TokenKind.EOF:
            raise ParseError("incomplete expression")
        if token.kind in (TokenKind.BAD_CHAR, TokenKind.BAD_TEXT):
            self._unexpected(token)
        value = self.ins.literal(token)
        self.advance()
        return value

    # `[` already consumed. Elements bind tighter than `,`; a trailing comma
    # is allowed.
    def _array_literal(self):
        items = []
        if self.eat(Op.RBRACK):
            return self.ins.make_array(items)
        element_bp = INFIX_BP[Op.COMMA][1]
        while True:
            items.append(self.expr(element_bp))
            if self.eat(Op.RBRACK):
                break
            self.expect(Op.COMMA)
            if self.eat(Op.RBRACK):
                break
        return self.ins.make_array(items)


def run_parser(text: str, instructions: ParseInstructions):
    return Parser(Lexer(text), instructions).parse()
