# Tokenizer for dice expressions.
# Produces tokens lazily from the input text; malformed pieces become
# BAD_TEXT / BAD_CHAR tokens so the parser decides whether they are fatal.

import enum
import re
import typing

U64_MAX = 2**64 - 1


class Op(enum.Enum):
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    PERCENT = "%"
    LPAR = "("
    RPAR = ")"
    LBRACK = "["
    RBRACK = "]"
    BANG = "!"
    BANG_LPAR = "!("
    RPAR_BANG = ")!"
    COMMA = ","
    SEMICOLON = ";"
    ASSIGN = "="
    EQUAL = "=="
    LESS = "<"
    GREATER = ">"
    OR = "||"
    AND = "&&"
    HASH = "#"

    def __str__(self):
        return self.value


class TokenKind:
    NUMBER = "NUMBER"
    IDENT = "IDENT"
    OP = "OP"
    CHAR = "CHAR"
    STRING = "STRING"
    BAD_TEXT = "BAD_TEXT"
    BAD_CHAR = "BAD_CHAR"
    EOF = "EOF"


class Token(typing.NamedTuple):
    kind: str
    value: typing.Any = None

    def __str__(self):
        if self.kind == TokenKind.EOF:
            return "end of input"
        if self.kind == TokenKind.CHAR:
            return f"'{self.value}'"
        if self.kind == TokenKind.STRING:
            return f'"{self.value}"'
        return str(self.value)


EOF = Token(TokenKind.EOF)

# fmt: off
TOKEN_SPEC = [
    ("END",      r"\x00"),                          # NUL ends the input
    ("SKIP",     r"[ \t\r\n\f\v]+"),                # ASCII whitespace
    ("NUMBER",   r"[0-9]+"),                        # Unsigned integer
    ("IDENT",    r"[A-Za-z_]+"),                    # Names and contextual keywords
    ("CHAR",     r"'(?P<char>.)'"),                 # Character literal
    ("STRING",   r'"(?P<string>[^"]*)"?'),          # String literal, may run to the end
    ("OP",       r"\)!|!\(|==|\|\||&&|[-+*/%()\[\]!,;=#<>]"),  # Longest operators first
    ("MISMATCH", r"."),                             # Any other character
]
TOKEN_PATTERN = re.compile(
    "|".join(f"(?P<{pair[0]}>{pair[1]})" for pair in TOKEN_SPEC), re.DOTALL
)
# fmt: on


# Iterator over the tokens of `text`. Not restartable.
class Lexer:
    def __init__(self, text: str):
        self.text = text
        self._matches = TOKEN_PATTERN.finditer(text)
        self._done = False

    def __iter__(self):
        return self

    def __next__(self) -> Token:
        if self._done:
            raise StopIteration
        for item in self._matches:
            kind = item.lastgroup
            value = item.group()
            if kind == "SKIP":
                continue
            if kind == "END":
                break
            return self._make_token(kind, value, item)
        self._done = True
        raise StopIteration

    @staticmethod
    def _make_token(kind, value: str, item: re.Match) -> Token:
        if kind == "NUMBER":
            # anything past 20 digits cannot fit, skip the conversion entirely
            if len(value) > 20 or int(value) > U64_MAX:
                return Token(TokenKind.BAD_TEXT, value)
            return Token(TokenKind.NUMBER, int(value))
        if kind == "IDENT":
            return Token(TokenKind.IDENT, value)
        if kind == "CHAR":
            return Token(TokenKind.CHAR, item.group("char"))
        if kind == "STRING":
            if not value.endswith('"') or len(value) < 2:
                return Token(TokenKind.BAD_TEXT, value)
            return Token(TokenKind.STRING, item.group("string"))
        if kind == "OP":
            return Token(TokenKind.OP, Op(value))
        return Token(TokenKind.BAD_CHAR, value)


def tokenize(text: str) -> list[Token]:
    return list(Lexer(text))


# All operator display forms, for help text.
def operator_list() -> str:
    return ", ".join(f"`{op.value}`" for op in Op)
