"""
Argot records: declarative option schemas built from dataclasses.

A record is a dataclass whose fields carry their command-line meaning in the
field metadata, the same way a struct carries tags:

    @record
    class Remote:
        verbose: bool = arg("-v,--verbose", help="talk more")
        name: str = arg("positional,required")
        port: int = arg("--port", default=22, env="REMOTE_PORT", min=1, max=65535)

Metadata keys
- arg: comma separated items; "-c" (short), "--name" (long), "positional",
  "required", "subcommand" or "subcommand:NAME", "env" or "env:VAR".
  Without any name, an option field gets a long name derived from the
  field name (dry_run -> --dry-run).
- help, default, env, placeholder: free text.
- required: "true"/"false".
- min, max, minlen, maxlen: literal limits checked after binding.

parse_struct() validates the declarations once, converts the defaults and
returns an immutable StructMetadata; every problem is a ConfigurationError.
"""
import dataclasses
import functools
import inspect
import typing
from types import MappingProxyType

from .faults import (
    ConversionError,
    InvalidAnnotationError,
    InvalidDefaultError,
    InvalidTargetError,
    PositionalLayoutError,
    SubcommandMisuseError,
)
from .parser import ArgKind
from .utils import Unset, dashed
from .values import (
    convert,
    convert_all,
    is_sequence,
    split,
    strip_optional,
    typename,
    unannotate,
    zero,
)

CONSTRAINTS = ("min", "max", "minlen", "maxlen")


class FieldMetadata:
    __slots__ = (
        "name",
        "type",
        "short",
        "long",
        "has_arg",
        "positional",
        "is_subcommand",
        "subcommand",
        "required",
        "env",
        "default",
        "help",
        "placeholder",
        "sequence",
        "constraints",
        "tag",
    )

    def __init__(self, name, type, /, **options):
        self.name = name
        self.type = type
        self.short = options.get("short", "")
        self.long = options.get("long", "")
        self.has_arg = options.get("has_arg", ArgKind.REQUIRED_ARGUMENT)
        self.positional = options.get("positional", False)
        self.is_subcommand = options.get("is_subcommand", False)
        self.subcommand = options.get("subcommand", "")
        self.required = options.get("required", False)
        self.env = options.get("env", "")
        self.default = options.get("default", Unset)
        self.help = options.get("help", "")
        self.placeholder = options.get("placeholder", "")
        self.sequence = options.get("sequence", False)
        self.constraints = MappingProxyType(dict(options.get("constraints", {})))
        self.tag = options.get("tag", "")

    @property
    def display(self):
        """the name used in messages: --long, -s or the positional placeholder."""
        if self.positional:
            return self.metavar
        if self.long:
            return f"--{self.long}"
        if self.short:
            return f"-{self.short}"
        return self.name

    @property
    def metavar(self):
        return self.placeholder or dashed(self.name).upper()

    def __repr__(self):
        return f"<FieldMetadata {self.name!r} {self.display!r}>"

    def __rich_repr__(self):
        yield self.name
        yield "type", typename(self.type)
        yield "short", self.short, ""
        yield "long", self.long, ""
        yield "has_arg", self.has_arg.name
        yield "positional", self.positional, False
        yield "subcommand", self.subcommand, ""
        yield "required", self.required, False
        yield "env", self.env, ""
        yield "default", self.default, Unset
        yield "help", self.help, ""
        yield "constraints", dict(self.constraints), {}


class StructMetadata:
    """
    the validated schema of one record type.

    fields keeps declaration order and includes subcommand fields (their
    schemas live in subcommands, keyed by command name).
    """
    __slots__ = ("type", "fields", "subcommands")

    def __init__(self, type, fields=(), subcommands=None):
        self.type = type
        self.fields = tuple(fields)
        self.subcommands = MappingProxyType(subcommands if subcommands is not None else {})

    @property
    def options(self):
        return tuple(field for field in self.fields if not field.positional and not field.is_subcommand)

    @property
    def positionals(self):
        return tuple(field for field in self.fields if field.positional)

    def lookup(self, name, /):
        """find the option field registered under a short or long name."""
        for field in self.options:
            if name in (field.short, field.long):
                return field
        return None

    def command(self, name, /):
        """find the subcommand field for a command name (exact first, then case-insensitive)."""
        candidates = [field for field in self.fields if field.is_subcommand]
        for field in candidates:
            if field.subcommand == name:
                return field
        for field in candidates:
            if field.subcommand.lower() == name.lower():
                return field
        return None

    def __repr__(self):
        return f"<StructMetadata {self.type.__qualname__} fields={len(self.fields)} subcommands={list(self.subcommands)}>"

    def __rich_repr__(self):
        yield self.type.__qualname__
        yield "fields", self.fields
        yield "subcommands", dict(self.subcommands), {}


def _truthy(text, name, key):
    match str(text).strip().lower():
        case "true" | "1" | "yes" | "on":
            return True
        case "false" | "0" | "no" | "off" | "":
            return False
    raise InvalidAnnotationError(f"field {name}: invalid {key} value {text!r}", field=name)


def _parse_tag(name, hint, metadata):
    tag = metadata.get("arg", "")
    if not isinstance(tag, str):
        raise InvalidAnnotationError(f"field {name}: arg tag must be a string", field=name)

    options = {"tag": tag}
    # help: swallows the rest of the tag, commas included
    tag, clause, help = tag.partition("help:")
    if clause and tag.strip() and not tag.rstrip().endswith(","):
        raise InvalidAnnotationError(f"field {name}: help: must start a clause", field=name)
    if clause:
        options["help"] = help.strip()
    for item in (item.strip() for item in tag.split(",")):
        match item:
            case "":
                continue
            case "positional":
                options["positional"] = True
            case "required":
                options["required"] = True
            case "subcommand":
                options["is_subcommand"] = True
            case "env":
                options["env"] = name.upper()
            case _ if item.startswith("subcommand:"):
                options["is_subcommand"] = True
                options["subcommand"] = item.removeprefix("subcommand:").strip()
            case _ if item.startswith("env:"):
                options["env"] = item.removeprefix("env:").strip()
            case _ if item.startswith("--"):
                if options.get("long"):
                    raise InvalidAnnotationError(f"field {name}: more than one long name in {tag!r}", field=name)
                options["long"] = item[2:]
            case _ if item.startswith("-"):
                if len(item) != 2:
                    raise InvalidAnnotationError(
                        f"field {name}: short name {item!r} must be a single character", field=name
                    )
                options["short"] = item[1:]
            case _:
                raise InvalidAnnotationError(f"field {name}: unknown tag item {item!r}", field=name)

    if "required" in metadata and _truthy(metadata["required"], name, "required"):
        options["required"] = True
    if "env" not in options and metadata.get("env"):
        options["env"] = str(metadata["env"])
    options["help"] = str(metadata.get("help", options.get("help", "")))
    options["placeholder"] = str(metadata.get("placeholder", ""))
    options["constraints"] = {key: str(metadata[key]) for key in CONSTRAINTS if key in metadata}
    return options


def _parse_default(name, hint, text):
    try:
        if is_sequence(hint):
            return convert_all(split(text), hint)
        return convert(text, hint)
    except ConversionError as error:
        raise InvalidDefaultError(f"field {name}: invalid default {text!r}: {error}", field=name) from error


def _build(cls, memo):
    if cls in memo:
        if memo[cls] is None:
            raise SubcommandMisuseError(f"{cls.__qualname__} is reachable from its own subcommands")
        return memo[cls]
    memo[cls] = None
    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as error:
        raise InvalidAnnotationError(f"cannot resolve annotations of {cls.__qualname__}: {error}") from error

    fields = []
    subcommands = {}

    for declared in dataclasses.fields(cls):
        if declared.name.startswith("_"):
            continue
        name, hint = declared.name, hints[declared.name]
        options = _parse_tag(name, hint, declared.metadata)

        if options.get("is_subcommand"):
            if options.get("positional") or options.get("short") or options.get("long"):
                raise SubcommandMisuseError(
                    f"field {name}: a subcommand cannot be positional or carry option names", field=name
                )
            inner, optional = strip_optional(hint)
            if not optional or not (isinstance(inner, type) and dataclasses.is_dataclass(inner)):
                raise SubcommandMisuseError(
                    f"field {name}: a subcommand must be annotated as `Record | None`, not {typename(hint)}",
                    field=name,
                )
            command = options.setdefault("subcommand", "") or dashed(name)
            options["subcommand"] = command
            if command in subcommands:
                raise SubcommandMisuseError(f"field {name}: duplicated subcommand {command!r}", field=name)
            subcommands[command] = _build(inner, memo)
            options["has_arg"] = ArgKind.NO_ARGUMENT
            fields.append(FieldMetadata(name, hint, **options))
            continue

        if options.get("positional") and (options.get("short") or options.get("long")):
            raise InvalidAnnotationError(f"field {name}: a positional cannot carry option names", field=name)
        if not options.get("positional") and not options.get("short") and not options.get("long"):
            options["long"] = dashed(name)

        base, _ = unannotate(strip_optional(hint)[0])
        options["has_arg"] = ArgKind.NO_ARGUMENT if base is bool else ArgKind.REQUIRED_ARGUMENT
        options["sequence"] = is_sequence(hint)

        if (text := declared.metadata.get("default")) is not None:
            options["default"] = _parse_default(name, hint, str(text))

        fields.append(FieldMetadata(name, hint, **options))

    _check_names(cls, fields)
    _check_positionals(cls, fields)
    memo[cls] = metadata = StructMetadata(cls, fields, subcommands)
    return metadata


def _check_names(cls, fields):
    # the binder resolves options by bare name, so -v and --v name the same thing
    seen = {}
    for field in fields:
        for name, key in ((field.short, f"-{field.short}"), (field.long, f"--{field.long}")):
            if not name:
                continue
            if name in seen and seen[name][0] != field.name:
                raise InvalidAnnotationError(
                    f"{cls.__qualname__}: option {key} clashes with {seen[name][1]} of {seen[name][0]}"
                    if key != seen[name][1]
                    else f"{cls.__qualname__}: option {key} is declared by both {seen[name][0]} and {field.name}",
                    field=field.name,
                )
            seen.setdefault(name, (field.name, key))


def _check_positionals(cls, fields):
    positionals = [field for field in fields if field.positional]
    for index, field in enumerate(positionals):
        if field.sequence and index != len(positionals) - 1:
            raise PositionalLayoutError(
                f"{cls.__qualname__}: list positional {field.name} must be the last positional", field=field.name
            )
        if field.required and any(not previous.required for previous in positionals[:index]):
            raise PositionalLayoutError(
                f"{cls.__qualname__}: required positional {field.name} cannot follow an optional one",
                field=field.name,
            )
        if field.required and not field.sequence and positionals[-1].sequence:
            raise PositionalLayoutError(
                f"{cls.__qualname__}: required positional {field.name} cannot be followed by "
                f"list positional {positionals[-1].name}",
                field=field.name,
            )


@functools.cache
def _schema(cls):
    return _build(cls, {})


def parse_struct(target, /):
    """
    build (or fetch) the StructMetadata of a record class or instance.
    """
    cls = target if isinstance(target, type) else type(target)
    if not dataclasses.is_dataclass(cls):
        raise InvalidTargetError(f"{cls.__qualname__} is not a record (dataclass)", target=cls.__qualname__)
    return _schema(cls)


def _literal(value, key):
    match value:
        case bool():
            return "true" if value else "false"
        case str():
            return value
        case int() | float():
            return str(value)
        case list() | tuple():
            return ",".join(_literal(item, key) for item in value)
    raise TypeError(f"arg() {key} must be a string, a number, a bool or a list of those")


def arg(tag="", /, *, help=Unset, default=Unset, env=Unset, required=Unset, placeholder=Unset,
        min=Unset, max=Unset, minlen=Unset, maxlen=Unset, metadata=None, **options):
    """
    declare a record field.

    `default` is the command-line default (a literal converted at schema
    time), not the dataclass default. Remaining keyword options are passed to
    dataclasses.field(); @record supplies the zero value as the dataclass
    default when none is given.
    """
    if not isinstance(tag, str):
        raise TypeError("arg() tag must be a string")
    tags = dict(metadata or {})
    if tag:
        tags["arg"] = tag
    for key, value in (
        ("help", help),
        ("default", default),
        ("env", env),
        ("required", required),
        ("placeholder", placeholder),
        ("min", min),
        ("max", max),
        ("minlen", minlen),
        ("maxlen", maxlen),
    ):
        if value is not Unset:
            tags[key] = _literal(value, key)
    return dataclasses.field(metadata=tags, **options)


@functools.cache
def _hints(cls):
    return typing.get_type_hints(cls, include_extras=True)


def _zero_of(cls, name):
    return zero(_hints(cls)[name])


def _is_classvar(annotation):
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return annotation is typing.ClassVar or typing.get_origin(annotation) is typing.ClassVar


def record(cls=None, /, **options):
    """
    dataclass decorator that gives every field without a default its zero
    value ("", 0, False, [], None, ...), so records can always be built
    with no arguments. Keyword options are passed to dataclasses.dataclass().
    """
    def wrapper(cls):
        for name, annotation in inspect.get_annotations(cls).items():
            if _is_classvar(annotation):
                continue
            factory = functools.partial(_zero_of, cls, name)
            current = cls.__dict__.get(name, dataclasses.MISSING)
            if current is dataclasses.MISSING:
                setattr(cls, name, dataclasses.field(default_factory=factory))
            elif (
                isinstance(current, dataclasses.Field)
                and current.default is dataclasses.MISSING
                and current.default_factory is dataclasses.MISSING
            ):
                current.default_factory = factory
        return dataclasses.dataclass(cls, **options)

    if cls is None:
        return wrapper
    return wrapper(cls)


__all__ = (
    "FieldMetadata",
    "StructMetadata",
    "parse_struct",
    "arg",
    "record",
)
