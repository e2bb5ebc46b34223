import unittest

from dice_errors import LexError, ParseError
from dice_lex import Token
from dice_parse import ParseInstructions, run_parser


# Builds nested tuples so tests can check the shape of a parse.
class TreeBuilder(ParseInstructions):
    def literal(self, token: Token):
        return token.value

    def binop(self, left, right, op):
        return (str(op), left, right)

    def prefix(self, inner, op):
        return ("prefix", str(op), inner)

    def suffix(self, inner, op):
        return ("suffix", str(op), inner)

    def dice(self, num, sides):
        return ("d", num, sides)

    def keep_highest(self, dice, keep):
        return ("kh", dice, keep)

    def keep_lowest(self, dice, keep):
        return ("kl", dice, keep)

    def explode(self, dice, inner):
        return ("explode", dice, inner)

    def make_array(self, items):
        return list(items)

    def index(self, target, idx):
        return ("index", target, idx)


class ParseTest(unittest.TestCase):
    def assertParsesTo(self, text, expected):
        self.assertEqual(run_parser(text, TreeBuilder()), expected)

    def test_arithmetic_precedence(self):
        self.assertParsesTo("1+2*3", ("+", 1, ("*", 2, 3)))
        self.assertParsesTo("(1+2)*3", ("*", ("+", 1, 2), 3))
        self.assertParsesTo("1-2-3", ("-", ("-", 1, 2), 3))
        self.assertParsesTo("1 == 2 < 3", ("<", ("==", 1, 2), 3))
        self.assertParsesTo("1 + 2 == 3", ("==", ("+", 1, 2), 3))

    def test_comma_is_looser_than_logic(self):
        self.assertParsesTo("1,2||3", (",", 1, ("||", 2, 3)))
        self.assertParsesTo("1||2&&3", ("&&", ("||", 1, 2), 3))

    def test_assignment_is_right_associative(self):
        self.assertParsesTo("x=y=1", ("=", "x", ("=", "y", 1)))
        self.assertParsesTo("x=1,2", ("=", "x", (",", 1, 2)))
        self.assertParsesTo("a;b;c", (";", (";", "a", "b"), "c"))

    def test_dice(self):
        self.assertParsesTo("d20", ("d", None, 20))
        self.assertParsesTo("2*3d6", ("*", 2, ("d", 3, 6)))
        self.assertParsesTo("3d4d5", ("d", ("d", 3, 4), 5))
        self.assertParsesTo("d[1,2]", ("d", None, [1, 2]))

    def test_keep(self):
        self.assertParsesTo("4d6kh3", ("kh", ("d", 4, 6), 3))
        self.assertParsesTo("4d6L1", ("kl", ("d", 4, 6), 1))
        self.assertParsesTo("4d6kh3+1", ("+", ("kh", ("d", 4, 6), 3), 1))
        self.assertParsesTo("[3,1]K1", ("kh", [3, 1], 1))

    def test_keywords_elsewhere_are_names(self):
        self.assertParsesTo("h", "h")
        self.assertParsesTo("kh + 1", ("+", "kh", 1))

    def test_suffixes(self):
        self.assertParsesTo("2d6!", ("suffix", "!", ("d", 2, 6)))
        self.assertParsesTo("(2d6)!", ("suffix", "!", ("d", 2, 6)))
        self.assertParsesTo("-3%", ("prefix", "-", ("suffix", "%", 3)))
        self.assertParsesTo("2d6!(1,2)!", ("explode", ("d", 2, 6), (",", 1, 2)))
        self.assertParsesTo("2d(6)!", ("suffix", "!", ("d", 2, 6)))

    def test_prefixes(self):
        self.assertParsesTo(",2", ("prefix", ",", 2))
        self.assertParsesTo("#x", ("prefix", "#", "x"))
        self.assertParsesTo("+-1", ("prefix", "+", ("prefix", "-", 1)))

    def test_arrays_and_indexing(self):
        self.assertParsesTo("[]", [])
        self.assertParsesTo("[1,2,]", [1, 2])
        self.assertParsesTo("[1+1, 2||3]", [("+", 1, 1), ("||", 2, 3)])
        self.assertParsesTo("x[0][1]", ("index", ("index", "x", 0), 1))
        self.assertParsesTo("x[0] = 1", ("=", ("index", "x", 0), 1))

    def test_literals(self):
        self.assertParsesTo("'a'", "a")
        self.assertParsesTo('"ab"', "ab")

    def test_errors(self):
        bad = ("", "1 2", "(1", "1)", "[1,2", "d", "x kh", "#", ";", "!(1)!", "[,]")
        for text in bad:
            with self.assertRaises(ParseError, msg=text):
                run_parser(text, TreeBuilder())
        for text in ("1 | 2", "@", '"abc', "2.5"):
            with self.assertRaises(LexError, msg=text):
                run_parser(text, TreeBuilder())

    def test_missing_behavior(self):
        with self.assertRaises(NotImplementedError):
            run_parser("1", ParseInstructions())


if __name__ == "__main__":
    unittest.main()
