"""
Argot entry points.

    @record
    class Args:
        verbose: bool = arg("-v,--verbose")
        files: list[str] = arg("positional")

    args = Args()
    must_parse(args)

- parse(target) / parse_args(target, args): bind sys.argv[1:] (or args) into
  the record instance and raise the first fault.
- must_parse(target): same, but faults are printed to stderr with the usage
  and the process exits with status 1 through Config.exit. "--help" prints
  the help of the selected command and exits with status 1 as well.
- Program(config, target): the object behind all three, for callers that
  want to print usage/help themselves.
"""
import copy
import os
import sys
from collections.abc import Callable
from typing import Any, NamedTuple

from rich.text import Text

from .binder import Binder, build_parser
from .faults import Fault, HelpRequested, InvalidTargetError, console
from .help import write_help, write_usage
from .parser import ArgKind, Flag
from .records import parse_struct
from .utils import rename


class Config(NamedTuple):
    program: str = ""
    description: str = ""
    version: str = ""
    ignore_env: bool = False
    ignore_default: bool = False
    exit: Callable[[int], Any] = sys.exit


def _sanitize_target(target):
    if target is None:
        raise InvalidTargetError("target cannot be None")
    if isinstance(target, type):
        raise InvalidTargetError(
            f"target must be a record instance, not the class {target.__qualname__}",
            hint=f"pass {target.__qualname__}() instead",
        )
    return target


@rename("help")
def _help(name, arg, /):
    raise HelpRequested("help requested", option=name)


class Program:
    """
    a record bound to a configuration.

    The schema is validated on construction: a bad target or bad declarations
    raise before the target is touched.
    """

    def __init__(self, config=None, target=None, /):
        if config is None:
            config = Config()
        elif not isinstance(config, Config):
            raise TypeError("Program() config must be a Config")
        self.config = config
        self.target = _sanitize_target(target)
        self.metadata = parse_struct(self.target)
        self.path = []
        self._parser = None

    def __repr__(self):
        return f"<Program {self.name!r} {self.metadata.type.__qualname__}>"

    @property
    def name(self):
        return self.config.program or os.path.basename(sys.argv[0] if sys.argv and sys.argv[0] else "program")

    def parse(self, args, /):
        """
        bind args into the target; raises the first fault.
        """
        self.path = []
        self._parser = parser = build_parser(self.metadata, list(args))
        if self.metadata.lookup("help") is None:
            parser.long_opts.setdefault("help", Flag("help", ArgKind.NO_ARGUMENT, _help))
        if self.metadata.lookup("h") is None:
            parser.short_opts.setdefault("h", Flag("h", ArgKind.NO_ARGUMENT, _help))
        try:
            return Binder(
                self.metadata,
                self.target,
                ignore_env=self.config.ignore_env,
                ignore_default=self.config.ignore_default,
            ).bind(parser)
        finally:
            self.path = self._selected()

    def _selected(self):
        path = []
        parser = self._parser
        while parser is not None and parser.invoked is not None:
            name, parser = parser.invoked
            path.append(name)
        return path

    def _chain(self):
        chain = [self.metadata]
        for name in self.path:
            chain.append(chain[-1].subcommands[chain[-1].command(name).subcommand])
        return chain

    def _active(self):
        return self._chain()[-1]

    def write_usage(self, file=None, /):
        write_usage(self._active(), self.name, file, self.path)

    def write_help(self, file=None, /):
        *ancestors, active = self._chain()
        write_help(
            active,
            self.name,
            file,
            self.path,
            ancestors=ancestors,
            description=self.config.description if not self.path else "",
            version=self.config.version,
        )

    def fail(self, error, /):
        """
        print the usage and the error to stderr, then exit with status 1.
        """
        self.write_usage(sys.stderr)
        if isinstance(error, Fault):
            console.print(copy.replace(error, prog=self.name))
        else:
            console.print(Text(f"error: {error}"))
        return self.config.exit(1)


def parse(target, /, config=None):
    return Program(config, target).parse(sys.argv[1:])


def parse_args(target, args, /, config=None):
    return Program(config, target).parse(args)


def must_parse(target, /, config=None, args=None):
    """
    parse, printing any failure and exiting with status 1 through config.exit.
    """
    config = config if config is not None else Config()
    try:
        program = Program(config, target)
    except Fault as error:
        console.print(error)
        config.exit(1)
        return None
    try:
        program.parse(sys.argv[1:] if args is None else args)
    except HelpRequested:
        program.write_help()
        program.config.exit(1)
    except Exception as error:
        program.fail(error)
    return program


__all__ = (
    "Config",
    "Program",
    "parse",
    "parse_args",
    "must_parse",
)
