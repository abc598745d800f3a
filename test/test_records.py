"""
Record schema tests (record, arg, parse_struct, FieldMetadata, StructMetadata).

Scope
- Tag parsing: short/long names, derived long names, positional, required,
  env, subcommand and the trailing help: clause.
- Default conversion at schema time and invalid defaults.
- Subcommand declarations and their misuse.
- Positional layout rules and duplicate option names.
- The @record decorator's zero-value defaults.

Conventions
- Test method names follow CamelCase per project convention.
- Records are declared at module level so their annotations resolve.
"""
import dataclasses
import unittest
from typing import ClassVar
from unittest import TestCase

from argot.faults import (
    InvalidAnnotationError,
    InvalidDefaultError,
    InvalidTargetError,
    PositionalLayoutError,
    SubcommandMisuseError,
)
from argot.parser import ArgKind
from argot.records import arg, parse_struct, record
from argot.utils import Unset
from argot.values import uint8


@record
class Basic:
    verbose: bool = arg("-v,--verbose", help="talk more")
    count: int = arg("-c,--count")
    dry_run: bool
    listen_addr: str = arg(help="address to bind")
    level: int | None = arg("--level")
    quiet: bool | None = arg("-q")
    tags: list[str] = arg("--tag", default="a, b,,c")
    jobs: uint8 = arg("-j", default=4, min=1, max=64)
    _private: int = 0


@record
class Tagged:
    token: str = arg("--token,env:TEST_TOKEN,required")
    home: str = arg("env")
    user: str = arg("--user", env="APP_USER")
    note: str = arg("--note,help: free text, commas included")
    name: str = arg("positional,required", placeholder="NAME")


@record
class Leaf:
    force: bool = arg("-f")


@record
class Middle:
    leaf: Leaf | None = arg("subcommand:l2")


@record
class Tree:
    middle: Middle | None = arg("subcommand:l1", help="first level")
    run_all: Leaf | None = arg("subcommand")


@record
class NotOptional:
    leaf: Leaf = arg("subcommand")


@record
class NotRecord:
    name: str | None = arg("subcommand")


@record
class NamedSubcommand:
    leaf: Leaf | None = arg("subcommand,--leaf")


@record
class DuplicateSubcommand:
    first: Leaf | None = arg("subcommand:go")
    second: Middle | None = arg("subcommand:go")


@record
class Node:
    child: "Node | None" = arg("subcommand")


@record
class BadShort:
    value: str = arg("-vv")


@record
class UnknownItem:
    value: str = arg("--value,sometimes")


@record
class PositionalWithName:
    value: str = arg("positional,--value")


@record
class BadDefault:
    count: int = arg("--count", default="many")


@record
class BadListDefault:
    counts: list[int] = arg("--counts", default="1,two")


@record
class Duplicated:
    first: str = arg("-x")
    second: str = arg("-x,--second")


@record
class Collide:
    alpha: bool = arg("-v")
    beta: bool = arg("--v")


@record
class SequenceNotLast:
    files: list[str] = arg("positional")
    target: str = arg("positional")


@record
class RequiredAfterOptional:
    first: str = arg("positional")
    second: str = arg("positional,required")


@record
class RequiredBeforeSequence:
    first: str = arg("positional,required")
    rest: list[str] = arg("positional")


@record
class GoodLayout:
    source: str = arg("positional,required")
    target: str = arg("positional")
    extra: str = arg("positional")


@record
class Defaults:
    retries: int = 3
    name: str = arg("--name")
    tags: list[str] = arg("--tag")
    leaf: Leaf | None = arg("subcommand")
    limit: ClassVar[int] = 10


def field(metadata, name):
    for declared in metadata.fields:
        if declared.name == name:
            return declared
    raise KeyError(name)


class TestTags(TestCase):
    """Tag items and the metadata keys next to them."""

    def setUp(self):
        self.metadata = parse_struct(Basic)

    def testShortAndLong(self):
        verbose = field(self.metadata, "verbose")
        self.assertEqual((verbose.short, verbose.long), ("v", "verbose"))
        self.assertEqual(verbose.has_arg, ArgKind.NO_ARGUMENT)
        self.assertEqual(verbose.help, "talk more")
        count = field(self.metadata, "count")
        self.assertEqual(count.has_arg, ArgKind.REQUIRED_ARGUMENT)
        self.assertEqual(count.display, "--count")

    def testDerivedLongName(self):
        self.assertEqual(field(self.metadata, "dry_run").long, "dry-run")
        self.assertEqual(field(self.metadata, "listen_addr").long, "listen-addr")
        self.assertEqual(field(self.metadata, "listen_addr").help, "address to bind")

    def testShortOnlyKeepsNoLongName(self):
        quiet = field(self.metadata, "quiet")
        self.assertEqual((quiet.short, quiet.long), ("q", ""))
        self.assertEqual(quiet.display, "-q")

    def testPointerArgumentKinds(self):
        self.assertEqual(field(self.metadata, "level").has_arg, ArgKind.REQUIRED_ARGUMENT)
        self.assertEqual(field(self.metadata, "quiet").has_arg, ArgKind.NO_ARGUMENT)

    def testPrivateFieldsAreSkipped(self):
        self.assertNotIn("_private", [declared.name for declared in self.metadata.fields])

    def testDefaultsAreConverted(self):
        self.assertEqual(field(self.metadata, "tags").default, ["a", "b", "c"])
        self.assertTrue(field(self.metadata, "tags").sequence)
        self.assertEqual(field(self.metadata, "jobs").default, 4)
        self.assertIs(field(self.metadata, "count").default, Unset)

    def testConstraintsAreKeptAsText(self):
        self.assertEqual(dict(field(self.metadata, "jobs").constraints), {"min": "1", "max": "64"})

    def testEnvForms(self):
        metadata = parse_struct(Tagged)
        self.assertEqual(field(metadata, "token").env, "TEST_TOKEN")
        self.assertTrue(field(metadata, "token").required)
        self.assertEqual(field(metadata, "home").env, "HOME")
        self.assertEqual(field(metadata, "user").env, "APP_USER")

    def testHelpClauseSwallowsCommas(self):
        note = field(parse_struct(Tagged), "note")
        self.assertEqual(note.long, "note")
        self.assertEqual(note.help, "free text, commas included")

    def testPositional(self):
        metadata = parse_struct(Tagged)
        name = field(metadata, "name")
        self.assertTrue(name.positional)
        self.assertEqual(name.display, "NAME")
        self.assertEqual(metadata.positionals, (name,))
        self.assertNotIn(name, metadata.options)

    def testLookup(self):
        self.assertIs(self.metadata.lookup("v"), field(self.metadata, "verbose"))
        self.assertIs(self.metadata.lookup("verbose"), field(self.metadata, "verbose"))
        self.assertIsNone(self.metadata.lookup("nope"))

    def testSchemaIsCached(self):
        self.assertIs(parse_struct(Basic), parse_struct(Basic()))


class TestInvalidDeclarations(TestCase):
    """Declarations rejected when the schema is built."""

    def testNotARecord(self):
        with self.assertRaises(InvalidTargetError):
            parse_struct(object())
        with self.assertRaises(InvalidTargetError):
            parse_struct(dict)

    def testBadShortName(self):
        with self.assertRaises(InvalidAnnotationError):
            parse_struct(BadShort)

    def testUnknownTagItem(self):
        with self.assertRaises(InvalidAnnotationError):
            parse_struct(UnknownItem)

    def testPositionalWithOptionName(self):
        with self.assertRaises(InvalidAnnotationError):
            parse_struct(PositionalWithName)

    def testInvalidDefault(self):
        with self.assertRaises(InvalidDefaultError) as context:
            parse_struct(BadDefault)
        self.assertEqual(context.exception.options["field"], "count")
        with self.assertRaises(InvalidDefaultError):
            parse_struct(BadListDefault)

    def testDuplicatedOptionName(self):
        with self.assertRaises(InvalidAnnotationError) as context:
            parse_struct(Duplicated)
        self.assertIn("-x", str(context.exception))

    def testShortClashesWithLong(self):
        with self.assertRaises(InvalidAnnotationError) as context:
            parse_struct(Collide)
        self.assertEqual(str(context.exception), "Collide: option --v clashes with -v of alpha")
        self.assertEqual(context.exception.options["field"], "beta")


class TestSubcommands(TestCase):

    def testNames(self):
        metadata = parse_struct(Tree)
        self.assertEqual(list(metadata.subcommands), ["l1", "run-all"])
        self.assertEqual(list(metadata.subcommands["l1"].subcommands), ["l2"])
        self.assertIs(metadata.subcommands["l1"].subcommands["l2"].type, Leaf)
        self.assertIs(metadata.subcommands["run-all"].type, Leaf)

    def testCommandLookup(self):
        metadata = parse_struct(Tree)
        self.assertEqual(metadata.command("l1").name, "middle")
        self.assertEqual(metadata.command("RUN-ALL").name, "run_all")
        self.assertIsNone(metadata.command("l3"))

    def testSubcommandFieldsAreNotOptions(self):
        metadata = parse_struct(Tree)
        self.assertEqual(metadata.options, ())
        self.assertEqual(field(metadata, "middle").help, "first level")

    def testMisuse(self):
        for cls in (NotOptional, NotRecord, NamedSubcommand, DuplicateSubcommand, Node):
            with self.subTest(record=cls.__name__):
                with self.assertRaises(SubcommandMisuseError):
                    parse_struct(cls)


class TestPositionalLayout(TestCase):

    def testRejectedLayouts(self):
        for cls in (SequenceNotLast, RequiredAfterOptional, RequiredBeforeSequence):
            with self.subTest(record=cls.__name__):
                with self.assertRaises(PositionalLayoutError):
                    parse_struct(cls)

    def testAcceptedLayout(self):
        metadata = parse_struct(GoodLayout)
        self.assertEqual([declared.name for declared in metadata.positionals], ["source", "target", "extra"])


class TestRecordDecorator(TestCase):

    def testZeroValueDefaults(self):
        instance = Defaults()
        self.assertEqual(instance.retries, 3)
        self.assertEqual(instance.name, "")
        self.assertEqual(instance.tags, [])
        self.assertIsNone(instance.leaf)
        self.assertEqual(Basic().jobs, 0)
        self.assertIsNone(Basic().level)

    def testFreshSequences(self):
        first, second = Defaults(), Defaults()
        first.tags.append("x")
        self.assertEqual(second.tags, [])

    def testClassVarIsNotAField(self):
        self.assertNotIn("limit", [declared.name for declared in dataclasses.fields(Defaults)])

    def testIsDataclass(self):
        self.assertTrue(dataclasses.is_dataclass(Defaults))
        self.assertEqual(Defaults(name="x").name, "x")

    def testArgLiterals(self):
        declared = arg("--x", default=[1, 2], required=True, min=1.5, help="h")
        self.assertEqual(declared.metadata["default"], "1,2")
        self.assertEqual(declared.metadata["required"], "true")
        self.assertEqual(declared.metadata["min"], "1.5")
        self.assertEqual(declared.metadata["arg"], "--x")
        with self.assertRaises(TypeError):
            arg("--x", default=object())


if __name__ == "__main__":
    unittest.main()
