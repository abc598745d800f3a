"""
Argot tokenizer: a GNU getopt_long compatible option scanner.

Scope
- Flag: one registered option (name, argument kind, optional handler).
- Option: one yielded result (name, whether an argument is present, argument text).
- Parser: tokenizes an argument vector against short and long option tables,
  walking a parent chain for options it does not know, and dispatching to
  child parsers registered as commands.
- getopt(), getopt_long(), getopt_long_only(): build Parsers from the classic
  libc inputs (an optstring plus long option records).

Behavior
- Parser.options() is a generator of (Option, error) pairs. Exactly one side is
  meaningful: a successful step yields (Option, None); a failed step yields
  (Option(), fault). Faults are yielded, never raised, so the consumer decides
  whether to stop.
- A Flag with a handler is invoked inline and produces no yield. If the handler
  raises, the raised exception itself is yielded and the rest of a short cluster
  is abandoned.
- Non-options are either stashed and returned in Parser.args (PERMUTE), stop the
  scan (STOP_AT_FIRST_NONOPTION) or are yielded in order as Option(NONOPT, True, token)
  (RETURN_IN_ORDER).
- Parser.args always ends up holding the stashed non-options followed by every
  token that was not consumed, even when the consumer stops iterating early.

Notes
- Optional arguments are never taken from the next token: "--color=auto" and
  "-cauto" carry one, "--color auto" does not.
- Long names may contain "=": the longest registered name that matches the
  token up to an "=" wins.
- Child definitions shadow their ancestors. A lookup only moves up the chain
  when the option is unknown, never when it is ambiguous.
"""
import logging
import os
from collections import deque
from collections.abc import Mapping
from enum import IntEnum
from typing import NamedTuple

from .faults import (
    AmbiguousOptionError,
    CommandTreeError,
    ExcessArgumentError,
    HandlerRegistrationError,
    InvalidOptionNameError,
    InvalidOptionStringError,
    MissingArgumentError,
    TokenizationError,
    UnknownOptionError,
)
from .utils import isgraph

logger = logging.getLogger(__name__)

NONOPT = "\x01"
"""Name carried by a non-option yielded under RETURN_IN_ORDER (getopt_long returns 1)."""

PROHIBITED = frozenset(":;-")


class ArgKind(IntEnum):
    NO_ARGUMENT = 0
    REQUIRED_ARGUMENT = 1
    OPTIONAL_ARGUMENT = 2


class ParseMode(IntEnum):
    PERMUTE = 0
    DEFAULT = 0
    STOP_AT_FIRST_NONOPTION = 1
    RETURN_IN_ORDER = 2


class ParserState(IntEnum):
    OPTION_PHASE = 0
    AFTER_DOUBLE_DASH = 1
    STOP_AT_NONOPT = 2
    DRAINED = 3


class ParserConfig(NamedTuple):
    """
    behaviour switches for a Parser.

    - mode: how non-options are treated (see ParseMode).
    - enable_errors: yield tokenization faults; when off they are dropped.
    - long_case_ignore / short_case_ignore: case-insensitive table lookups.
    - long_opts_only: "-name" is tried as a long option before the short table.
    - gnu_words: "-W name[=value]" names a long option.
    - command_case_ignore: command names are matched case-insensitively.
    """
    mode: ParseMode = ParseMode.PERMUTE
    enable_errors: bool = True
    long_case_ignore: bool = False
    short_case_ignore: bool = False
    long_opts_only: bool = False
    gnu_words: bool = False
    command_case_ignore: bool = False


class Flag:
    """
    a registered option.

    handle is None (the option is yielded) or a callable handle(name, arg)
    invoked in place of the yield. A handler reports failure by raising.
    """
    __slots__ = ("name", "has_arg", "handle")

    def __init__(self, name, has_arg=ArgKind.NO_ARGUMENT, handle=None):
        if not isinstance(name, str):
            raise TypeError("Flag() name must be a string")
        elif not name:
            raise ValueError("Flag() name must be a non-empty string")
        if handle is not None and not callable(handle):
            raise TypeError("Flag() handle must be callable or None")
        self.name = name
        self.has_arg = ArgKind(has_arg)
        self.handle = handle

    def __repr__(self):
        handle = "" if self.handle is None else f", handle={self.handle!r}"
        return f"Flag({self.name!r}, {self.has_arg.name}{handle})"

    def __rich_repr__(self):
        yield self.name
        yield "has_arg", self.has_arg.name
        yield "handle", self.handle, None


class Option(NamedTuple):
    """
    one tokenizer result; Option() is the zero value yielded next to a fault.
    """
    name: str = ""
    has_arg: bool = False
    arg: str = ""

    def __bool__(self):
        return bool(self.name)


def _sanitize_short(key):
    if not isinstance(key, str) or not isgraph(key):
        raise InvalidOptionNameError(f"invalid short option: {key!r}", option=key)
    if key in PROHIBITED:
        raise InvalidOptionNameError(f"prohibited short option: {key!r}", option=key)
    return key


def _sanitize_long(key):
    if not isinstance(key, str) or not key:
        raise InvalidOptionNameError(f"invalid long option: {key!r}", option=key)
    if not key.isprintable() or any(char.isspace() for char in key):
        raise InvalidOptionNameError(f"invalid long option: {key!r}", option=key)
    return key


def _table(options, sanitize):
    if options is None:
        return {}
    if not isinstance(options, Mapping):
        options = {flag.name: flag for flag in options}
    table = {}
    for key, flag in options.items():
        if not isinstance(flag, Flag):
            raise TypeError(f"option table values must be flags, not {type(flag).__name__!r}")
        table[sanitize(key)] = flag
    return table


class Parser:
    """
    getopt_long style tokenizer over one argument vector.

    Parser(config, short_opts, long_opts, args) validates every table key and
    raises InvalidOptionNameError on the first bad one. Tables may be given as
    mappings (key -> Flag) or as iterables of Flags keyed by their names.
    """

    def __init__(self, config=None, short_opts=None, long_opts=None, args=None):
        if config is None:
            config = ParserConfig()
        elif not isinstance(config, ParserConfig):
            raise TypeError("Parser() config must be a ParserConfig")
        self.config = config
        self.short_opts = _table(short_opts, _sanitize_short)
        self.long_opts = _table(long_opts, _sanitize_long)
        self.args = list(args or ())
        self.parent = None
        self.commands = {}
        self.invoked = None
        self.state = ParserState.OPTION_PHASE

    def __repr__(self):
        return f"<Parser short={''.join(self.short_opts)!r} long={list(self.long_opts)!r} commands={list(self.commands)!r}>"

    def __rich_repr__(self):
        yield "short_opts", self.short_opts
        yield "long_opts", self.long_opts
        yield "commands", list(self.commands), []
        yield "args", self.args

    # --- commands ---

    def add_cmd(self, name, child, /):
        """
        register child as the command `name` and make this parser its parent.
        """
        if not isinstance(name, str) or not name:
            raise CommandTreeError(f"invalid command name: {name!r}", command=name)
        if not isinstance(child, Parser):
            raise TypeError("add_cmd() child must be a Parser")
        if child is self or child in self.ancestors():
            raise CommandTreeError(f"command {name!r} would create a cycle", command=name)
        if child.parent is not None and child.parent is not self:
            raise CommandTreeError(f"command {name!r} already belongs to another parser", command=name)
        child.parent = self
        self.commands[name] = child
        logger.debug("registered command %r", name)
        return child

    def add_alias(self, alias, name, /):
        if (child := self.commands.get(name)) is None:
            raise CommandTreeError(f"unknown command: {name}", command=name)
        if not isinstance(alias, str) or not alias:
            raise CommandTreeError(f"invalid command alias: {alias!r}", command=alias)
        self.commands[alias] = child
        return child

    def get_command(self, name, /):
        if (child := self.commands.get(name)) is not None:
            return child
        if self.config.command_case_ignore:
            lowered = name.lower()
            for key, child in self.commands.items():
                if key.lower() == lowered:
                    return child
        return None

    def ancestors(self):
        parent = self.parent
        while parent is not None:
            yield parent
            parent = parent.parent

    def _chain(self):
        yield self
        yield from self.ancestors()

    # --- handlers ---

    def set_short_handler(self, char, handle, /):
        if handle is not None and not callable(handle):
            raise TypeError("set_short_handler() handle must be callable or None")
        if (flag := self.short_opts.get(char)) is None:
            raise HandlerRegistrationError(f"unknown short option: -{char}", option=char)
        flag.handle = handle

    def set_long_handler(self, name, handle, /):
        if handle is not None and not callable(handle):
            raise TypeError("set_long_handler() handle must be callable or None")
        if (flag := self.long_opts.get(name)) is None:
            raise HandlerRegistrationError(f"unknown long option: --{name}", option=name)
        flag.handle = handle

    def set_handler(self, name, handle, /):
        """
        dispatch on the prefix: "--name" to set_long_handler, "-c" to set_short_handler.
        """
        if not isinstance(name, str):
            raise TypeError("set_handler() name must be a string")
        if name.startswith("--") and len(name) > 2:
            return self.set_long_handler(name[2:], handle)
        if name.startswith("-") and len(name) == 2:
            return self.set_short_handler(name[1:], handle)
        raise HandlerRegistrationError(f"invalid option name: {name!r}", option=name)

    # --- lookups ---

    def _find_short(self, char):
        for parser in self._chain():
            if (flag := parser.short_opts.get(char)) is not None:
                return flag
            if parser.config.short_case_ignore:
                for key, flag in parser.short_opts.items():
                    if key.lower() == char.lower():
                        return flag
        return None

    def _exact_long(self, body):
        fold = str.lower if self.config.long_case_ignore else str
        best = None
        for key, flag in self.long_opts.items():
            if fold(body) == fold(key):
                inline = None
            elif len(body) > len(key) and body[len(key)] == "=" and fold(body[:len(key)]) == fold(key):
                inline = body[len(key) + 1:]
            else:
                continue
            if best is None or len(key) > len(best[0]):
                best = (key, flag, inline)
        return best

    def _abbreviated_long(self, name):
        fold = str.lower if self.config.long_case_ignore else str
        matches = {}
        for key, flag in self.long_opts.items():
            if fold(key).startswith(fold(name)):
                matches.setdefault(id(flag), (key, flag))
        return list(matches.values())

    def _find_long(self, body, prefix="--"):
        """
        resolve a long option body ("name" or "name=value") to (flag, inline).

        raises UnknownOptionError or AmbiguousOptionError; both are turned into
        yields by the caller.
        """
        for parser in self._chain():
            if (found := parser._exact_long(body)) is not None:
                _, flag, inline = found
                return flag, inline
        name, equals, inline = body.partition("=")
        inline = inline if equals else None
        if name:
            for parser in self._chain():
                matches = parser._abbreviated_long(name)
                if len(matches) == 1:
                    return matches[0][1], inline
                if len(matches) > 1:
                    possibilities = " ".join(f"'{prefix}{key}'" for key, _ in matches)
                    raise AmbiguousOptionError(
                        f"option '{prefix}{name}' is ambiguous; possibilities: {possibilities}",
                        option=name,
                        hint="spell out more of the option name",
                    )
        raise UnknownOptionError(f"unknown option: {prefix}{name or body}", option=name or body)

    # --- scanning ---

    def options(self):
        """
        scan self.args, yielding (Option, error) pairs.
        """
        pending = deque(self.args)
        nonopts = []
        self.args = []
        self.invoked = None
        self.state = ParserState.OPTION_PHASE
        try:
            while pending:
                token = pending.popleft()
                if token == "--":
                    self.state = ParserState.AFTER_DOUBLE_DASH
                    nonopts.extend(pending)
                    pending.clear()
                    break
                if token.startswith("--"):
                    steps = self._scan_long(token[2:], pending)
                elif token.startswith("-") and token != "-":
                    steps = self._scan_short(token[1:], pending)
                else:
                    if (child := self.get_command(token)) is not None:
                        logger.debug("dispatching to command %r", token)
                        child.args = list(pending)
                        pending.clear()
                        self.invoked = (token, child)
                        break
                    match self.config.mode:
                        case ParseMode.RETURN_IN_ORDER:
                            yield Option(NONOPT, True, token), None
                        case ParseMode.STOP_AT_FIRST_NONOPTION:
                            self.state = ParserState.STOP_AT_NONOPT
                            nonopts.append(token)
                            nonopts.extend(pending)
                            pending.clear()
                            break
                        case _:
                            nonopts.append(token)
                    continue
                for option, error in steps:
                    if isinstance(error, TokenizationError) and not self.config.enable_errors:
                        logger.debug("dropped: %s", error)
                        continue
                    if error is None:
                        logger.debug("option %r arg=%r", option.name, option.arg)
                    yield option, error
        finally:
            self.args = nonopts + list(pending)
            self.state = ParserState.DRAINED

    parse_all = options

    def _emit(self, flag, arg, has_arg):
        # generator returning True when a handler failed
        if flag.handle is None:
            yield Option(flag.name, has_arg, arg), None
            return False
        try:
            flag.handle(flag.name, arg)
        except Exception as error:
            logger.debug("handler for %r failed: %r", flag.name, error)
            yield Option(), error
            return True
        return False

    def _take(self, flag, inline, pending, prefix):
        match flag.has_arg:
            case ArgKind.NO_ARGUMENT:
                if inline is not None:
                    yield Option(), ExcessArgumentError(
                        f"option '{prefix}{flag.name}' doesn't allow an argument", option=flag.name
                    )
                    return
                yield from self._emit(flag, "", False)
            case ArgKind.REQUIRED_ARGUMENT:
                if inline is None:
                    if not pending:
                        yield Option(), MissingArgumentError(
                            f"option requires an argument: {prefix}{flag.name}", option=flag.name
                        )
                        return
                    inline = pending.popleft()
                yield from self._emit(flag, inline, True)
            case ArgKind.OPTIONAL_ARGUMENT:
                yield from self._emit(flag, inline or "", inline is not None)

    def _scan_long(self, body, pending, prefix="--"):
        try:
            flag, inline = self._find_long(body, prefix)
        except TokenizationError as error:
            yield Option(), error
            return
        yield from self._take(flag, inline, pending, prefix)

    def _scan_short(self, body, pending):
        if self.config.long_opts_only and (len(body) > 1 or self._find_short(body) is None):
            try:
                flag, inline = self._find_long(body, "-")
            except UnknownOptionError as error:
                if self._find_short(body[0]) is None:
                    yield Option(), error
                    return
            except TokenizationError as error:
                yield Option(), error
                return
            else:
                yield from self._take(flag, inline, pending, "-")
                return

        position = 0
        while position < len(body):
            char = body[position]
            position += 1
            if (flag := self._find_short(char)) is None:
                yield Option(), UnknownOptionError(f"unknown option: -{char}", option=char)
                continue
            rest = body[position:]
            if self.config.gnu_words and char == "W":
                yield from self._scan_word(flag, rest, pending)
                return
            match flag.has_arg:
                case ArgKind.NO_ARGUMENT:
                    if (yield from self._emit(flag, "", False)):
                        return
                case ArgKind.REQUIRED_ARGUMENT:
                    if not rest:
                        if not pending:
                            yield Option(), MissingArgumentError(
                                f"option requires an argument: -{char}", option=char
                            )
                            return
                        rest = pending.popleft()
                    yield from self._emit(flag, rest, True)
                    return
                case ArgKind.OPTIONAL_ARGUMENT:
                    yield from self._emit(flag, rest, bool(rest))
                    return

    def _scan_word(self, flag, word, pending):
        # -W name[=value]
        if not word:
            if not pending:
                yield Option(), MissingArgumentError("option requires an argument: -W", option="W")
                return
            word = pending.popleft()
        try:
            target, inline = self._find_long(word)
        except UnknownOptionError:
            yield from self._emit(flag, word, True)
            return
        except TokenizationError as error:
            yield Option(), error
            return
        yield from self._take(target, inline, pending, "--")


def _parse_optstring(optstring):
    if not isinstance(optstring, str):
        raise TypeError("optstring must be a string")

    mode = ParseMode.STOP_AT_FIRST_NONOPTION if os.environ.get("POSIXLY_CORRECT") else ParseMode.PERMUTE
    enable_errors = True
    index = 0
    while index < len(optstring) and optstring[index] in ":+-":
        match optstring[index]:
            case ":":
                enable_errors = True
            case "+":
                mode = ParseMode.STOP_AT_FIRST_NONOPTION
            case "-":
                mode = ParseMode.RETURN_IN_ORDER
        index += 1

    short = {}
    gnu_words = False
    while index < len(optstring):
        char = optstring[index]
        if not isgraph(char):
            raise InvalidOptionStringError(f"invalid short option: {char!r}", option=char, optstring=optstring)
        if char in PROHIBITED:
            raise InvalidOptionStringError(f"prohibited short option: {char!r}", option=char, optstring=optstring)
        if optstring.startswith("::", index + 1):
            short[char] = Flag(char, ArgKind.OPTIONAL_ARGUMENT)
            index += 3
        elif optstring.startswith(":", index + 1):
            short[char] = Flag(char, ArgKind.REQUIRED_ARGUMENT)
            index += 2
        elif char == "W" and optstring.startswith(";", index + 1):
            short[char] = Flag(char, ArgKind.REQUIRED_ARGUMENT)
            gnu_words = True
            index += 2
        else:
            short[char] = Flag(char, ArgKind.NO_ARGUMENT)
            index += 1

    return ParserConfig(mode=mode, enable_errors=enable_errors, gnu_words=gnu_words), short


def getopt(args, optstring):
    """
    POSIX getopt: short options only.
    """
    config, short = _parse_optstring(optstring)
    return Parser(config, short, None, args)


def getopt_long(args, optstring, longopts=None):
    """
    GNU getopt_long: short options from optstring plus long option Flags.
    """
    config, short = _parse_optstring(optstring)
    return Parser(config, short, longopts, args)


def getopt_long_only(args, optstring, longopts=None):
    """
    GNU getopt_long_only: "-name" is tried as a long option before the short table.
    """
    config, short = _parse_optstring(optstring)
    return Parser(config._replace(long_opts_only=True), short, longopts, args)


__all__ = (
    "NONOPT",
    "ArgKind",
    "ParseMode",
    "ParserState",
    "ParserConfig",
    "Flag",
    "Option",
    "Parser",
    "getopt",
    "getopt_long",
    "getopt_long_only",
)
