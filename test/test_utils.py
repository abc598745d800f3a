"""
Tests for the small helpers in argot.utils.

This module verifies:
- The Unset sentinel: singleton identity, falsy semantics, copy/pickle identity, finality.
- rename(): both call forms and their argument checks.
- dashed() and isgraph(): option-name derivation and short-name validation.
"""
import copy
import pickle
import unittest
from unittest import TestCase

from argot.utils import Unset, UnsetType, dashed, isgraph, rename


class UnsetTest(TestCase):
    """
    The `Unset` sentinel behaves like a process-wide singleton.
    """

    def testSingleton(self) -> None:
        """
        The constructor returns the exported instance on every call.
        """
        self.assertIs(UnsetType(), Unset)
        self.assertIs(UnsetType(), UnsetType())

    def testFalsyButDistinct(self) -> None:
        """
        Unset is falsy without being equal to the other falsy values.
        """
        self.assertFalse(Unset)
        for value in (None, 0, "", [], False):
            self.assertIsNot(Unset, value)
            self.assertNotEqual(Unset, value)

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")

    def testCopyPreservesIdentity(self) -> None:
        """
        copy, deepcopy and pickle hand back the same object.
        """
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)
        self.assertIs(copy.deepcopy([Unset])[0], Unset)
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testFinal(self) -> None:
        """
        The sentinel type cannot be subclassed.
        """
        with self.assertRaises(TypeError):
            type("Derived", (UnsetType,), {})


class RenameTest(TestCase):

    def testDirectForm(self) -> None:
        def handler(name, arg):
            pass

        self.assertIs(rename(handler, "help"), handler)
        self.assertEqual(handler.__name__, "help")
        self.assertEqual(handler.__qualname__, "help")

    def testDecoratorForm(self) -> None:
        @rename("version")
        def handler(name, arg):
            pass

        self.assertEqual(handler.__name__, "version")

    def testArgumentChecks(self) -> None:
        with self.assertRaises(TypeError):
            rename(3, "x")
        with self.assertRaises(TypeError):
            rename(print, 3)
        with self.assertRaises(TypeError):
            rename(print, "x")
        with self.assertRaises(TypeError):
            rename()


class NameTest(TestCase):

    def testDashed(self) -> None:
        """
        snake_case and CamelCase identifiers become dashed lowercase names.
        """
        cases = {
            "verbose": "verbose",
            "dry_run": "dry-run",
            "ListenAddr": "listen-addr",
            "global_": "global",
            "_private__name_": "private-name",
            "HTTPPort": "httpport",
        }
        for name, expected in cases.items():
            with self.subTest(name=name):
                self.assertEqual(dashed(name), expected)

    def testIsGraph(self) -> None:
        for char in ("a", "Z", "0", ":", "é"):
            self.assertTrue(isgraph(char), char)
        for char in ("", " ", "\t", "\x01", "ab", None):
            self.assertFalse(isgraph(char), char)


if __name__ == "__main__":
    unittest.main()
