import unittest

from dice_env import Variables
from dice_errors import IndexIntoNonArray, IndexOutOfBounds, UndefinedVariable
from dice_values import Place


class VariablesTest(unittest.TestCase):
    def setUp(self):
        self.variables = Variables()

    def test_set_and_get(self):
        self.variables.set(Place("x"), [1, [2, 3]])
        self.assertIn("x", self.variables)
        self.assertEqual(len(self.variables), 1)
        self.assertEqual(self.variables.get(Place("x")), [1, [2, 3]])
        self.assertEqual(self.variables.get(Place("x", (1, 0))), 2)

    def test_values_are_copied(self):
        value = [1, 2]
        self.variables.set(Place("x"), value)
        value.append(3)
        got = self.variables.get(Place("x"))
        got.append(4)
        self.assertEqual(self.variables.get(Place("x")), [1, 2])

    def test_indexed_set_is_in_place(self):
        self.variables.set(Place("x"), [1, [2, 3]])
        self.variables.set(Place("x", (1, 0)), 9)
        self.assertEqual(self.variables.get(Place("x")), [1, [9, 3]])
        self.variables.set(Place("x", (0,)), [4])
        self.assertEqual(self.variables.get(Place("x")), [[4], [9, 3]])

    def test_order(self):
        self.variables.set(Place("b"), 1)
        self.variables.set(Place("a"), 2)
        self.variables.set(Place("b"), 3)
        self.assertEqual(self.variables.names(), ["b", "a"])
        self.assertEqual(self.variables.items(), [("b", 3), ("a", 2)])

    def test_undefined(self):
        with self.assertRaises(UndefinedVariable) as cm:
            self.variables.get(Place("y"))
        self.assertEqual(cm.exception.name, "y")
        self.assertEqual(cm.exception.path, [])
        with self.assertRaises(UndefinedVariable):
            self.variables.set(Place("y", (0,)), 1)

    def test_out_of_bounds_path_is_truncated(self):
        self.variables.set(Place("x"), [1, [2]])
        with self.assertRaises(IndexOutOfBounds) as cm:
            self.variables.get(Place("x", (1, 5, 2)))
        self.assertEqual(cm.exception.path, [1, 5])
        self.assertIn("x[1][5]", str(cm.exception))
        with self.assertRaises(IndexOutOfBounds):
            self.variables.set(Place("x", (2,)), 0)
        with self.assertRaises(IndexOutOfBounds):
            self.variables.get(Place("x", (-1,)))

    def test_index_into_non_array(self):
        self.variables.set(Place("x"), [1])
        with self.assertRaises(IndexIntoNonArray) as cm:
            self.variables.get(Place("x", (0, 0)))
        self.assertEqual(cm.exception.path, [0, 0])
        self.variables.set(Place("y"), 3)
        with self.assertRaises(IndexIntoNonArray) as cm:
            self.variables.set(Place("y", (0,)), 1)
        self.assertEqual(cm.exception.path, [0])


if __name__ == "__main__":
    unittest.main()
