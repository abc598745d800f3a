"""
Argot binder: fill a record instance from the tokenizer's output.

Phases, per record frame
1. options: every yielded Option is converted and assigned to the field that
   owns its name. Names this record does not own belong to an ancestor and
   are assigned in the ancestor's frame.
2. positionals: the residual non-options are bound in declaration order; a
   list positional takes everything left.
3. subcommand: when the parser dispatched to a command, the matching record
   field is instantiated and bound recursively by a child frame.
4. environment: still-zero fields with an env var take its value.
5. defaults: still-zero fields with a default take (a copy of) it.
6. validation: required fields must be non-zero, then min/max/minlen/maxlen.

The first failure is raised; values assigned before it stay assigned.
"""
import contextlib
import copy
import logging
import os

from .faults import (
    ConversionError,
    MissingPositionalError,
    MissingRequiredError,
    TooManyPositionalsError,
)
from .parser import ArgKind, Flag, Parser, ParserConfig
from .utils import Unset
from .values import convert, convert_all, is_zero, split, strip_optional, zero
from .values import validate as check_constraints

logger = logging.getLogger(__name__)


def build_parser(metadata, args=(), /, config=None):
    """
    build the tokenizer for a record schema, with one child parser per subcommand.
    """
    if config is None:
        config = ParserConfig(command_case_ignore=True)
    short, long = {}, {}
    for field in metadata.options:
        if field.short:
            short[field.short] = Flag(field.short, field.has_arg)
        if field.long:
            long[field.long] = Flag(field.long, field.has_arg)
    parser = Parser(config, short, long, args)
    for name, schema in metadata.subcommands.items():
        parser.add_cmd(name, build_parser(schema, config=config))
    return parser


class Binder:
    """
    one record frame; child frames keep a reference to their parent so
    inherited options land in the record that declares them.
    """

    def __init__(self, metadata, target, /, *, parent=None, ignore_env=False, ignore_default=False):
        self.metadata = metadata
        self.target = target
        self.parent = parent
        self.ignore_env = ignore_env
        self.ignore_default = ignore_default
        self._touched = set()

    def __repr__(self):
        return f"<Binder {self.metadata.type.__qualname__}>"

    def bind(self, parser, /):
        logger.debug("binding %s", self.metadata.type.__qualname__)
        with contextlib.closing(parser.options()) as options:
            for option, error in options:
                if error is not None:
                    raise error
                self.dispatch(option)

        self.bind_positionals(parser.args)

        if parser.invoked is not None:
            name, child = parser.invoked
            self.bind_subcommand(name, child)

        if not self.ignore_env:
            self.fill_env()
        if not self.ignore_default:
            self.fill_defaults()
        self.validate()
        return self.target

    def dispatch(self, option, /):
        """
        assign an option in the frame that owns it; False when nobody does.
        """
        if (field := self.metadata.lookup(option.name)) is not None:
            self.assign(field, option.arg if option.has_arg else "")
            return True
        if self.parent is not None:
            return self.parent.dispatch(option)
        logger.debug("no field owns option %r", option.name)
        return False

    def assign(self, field, text, /):
        try:
            if field.sequence:
                values = convert(text, field.type)
                if field.name in self._touched:
                    getattr(self.target, field.name).extend(values)
                else:
                    setattr(self.target, field.name, values)
            elif field.has_arg == ArgKind.NO_ARGUMENT:
                setattr(self.target, field.name, True)
            else:
                setattr(self.target, field.name, convert(text, field.type))
        except ConversionError as error:
            raise type(error)(f"{field.display}: {error}", **{**error.options, "field": field.name}) from error
        self._touched.add(field.name)
        logger.debug("%s.%s <- %r", self.metadata.type.__qualname__, field.name, text)

    def bind_positionals(self, args, /):
        remaining = list(args)
        for field in self.metadata.positionals:
            if not remaining:
                if field.required and not field.env and field.default is Unset:
                    raise MissingPositionalError(f"{field.metavar} is required", field=field.name)
                continue
            try:
                if field.sequence:
                    setattr(self.target, field.name, convert_all(remaining, field.type))
                    remaining = []
                else:
                    setattr(self.target, field.name, convert(remaining.pop(0), field.type))
            except ConversionError as error:
                raise type(error)(f"{field.display}: {error}", **{**error.options, "field": field.name}) from error
            self._touched.add(field.name)
        if remaining:
            raise TooManyPositionalsError(
                f"too many positional arguments at {remaining[0]!r}",
                value=remaining[0],
                hint="use -- before arguments that start with a dash",
            )

    def bind_subcommand(self, name, child, /):
        field = self.metadata.command(name)
        schema = self.metadata.subcommands[field.subcommand]
        instance = getattr(self.target, field.name)
        if instance is None:
            instance = zero(strip_optional(field.type)[0])
            setattr(self.target, field.name, instance)
        logger.debug("subcommand %r -> %s", name, schema.type.__qualname__)
        Binder(
            schema,
            instance,
            parent=self,
            ignore_env=self.ignore_env,
            ignore_default=self.ignore_default,
        ).bind(child)

    def _unset(self, field):
        return not field.is_subcommand and is_zero(getattr(self.target, field.name), field.type)

    def fill_env(self):
        for field in self.metadata.fields:
            if not field.env or not self._unset(field):
                continue
            if (text := os.environ.get(field.env)) is None:
                continue
            try:
                value = convert_all(split(text), field.type) if field.sequence else convert(text, field.type)
            except ConversionError as error:
                raise type(error)(
                    f"environment variable {field.env}: {error}", **{**error.options, "field": field.name}
                ) from error
            setattr(self.target, field.name, value)
            logger.debug("%s.%s <- $%s", self.metadata.type.__qualname__, field.name, field.env)

    def fill_defaults(self):
        for field in self.metadata.fields:
            if field.default is Unset or not self._unset(field):
                continue
            setattr(self.target, field.name, copy.deepcopy(field.default))

    def validate(self):
        for field in self.metadata.fields:
            value = getattr(self.target, field.name)
            if field.is_subcommand:
                if field.required and value is None:
                    raise MissingRequiredError(f"{field.subcommand} command is required", field=field.name)
                continue
            if field.required and is_zero(value, field.type):
                message = f"{field.display} is required"
                if field.env:
                    message += f" (or environment variable {field.env})"
                fault = MissingPositionalError if field.positional else MissingRequiredError
                raise fault(message, field=field.name)
            check_constraints(field.name, value, field.constraints)


def bind(metadata, target, args, /, *, ignore_env=False, ignore_default=False):
    """
    build the parser for `metadata` over `args` and bind the results into `target`.
    """
    parser = build_parser(metadata, args)
    return Binder(metadata, target, ignore_env=ignore_env, ignore_default=ignore_default).bind(parser)


__all__ = (
    "Binder",
    "build_parser",
    "bind",
)
