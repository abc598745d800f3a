"""
Argot faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every fault the library
  can raise or yield. Codes are grouped by domain so logs and searches stay
  predictable.
- Fault: base exception that carries a message plus keyword options and knows
  how to render itself through rich.
- The fault tree mirrors where a fault is born:
  • ConfigurationError: the programmer's declarations are wrong (bad target,
    bad optstring, bad annotation or tag). Raised before anything is mutated.
  • TokenizationError: the command line does not fit the option tables. These
    are yielded by the tokenizer and raised by the binder.
  • ConversionError: a text value could not become the field's type.
  • ValidationError: values bound but required/positional/min/max rules fail.
  • HelpRequested: not an error in the user's input, a signal for the exit wrapper.

Handler errors are not wrapped: whatever a Flag handler raises is handed back
to the caller untouched.

Rendering
- str(fault) is the plain message (stable, used by tests and logs).
- console.print(fault) renders a header "[ prog — code | title ]", the message
  and, when available, a single "→ hint" line.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping (by high-level domain)
    - configuration (10xxx)
      • INVALID_TARGET, INVALID_OPTION_STRING, INVALID_OPTION_NAME,
        INVALID_ANNOTATION, INVALID_DEFAULT, SUBCOMMAND_MISUSE,
        POSITIONAL_LAYOUT, HANDLER_REGISTRATION, COMMAND_TREE
    - tokenization (11xxx)
      • UNKNOWN_OPTION, MISSING_ARGUMENT, EXCESS_ARGUMENT, AMBIGUOUS_OPTION
    - conversion (13xxx)
      • INVALID_VALUE, OUT_OF_RANGE, UNSUPPORTED_KIND
    - validation (14xxx)
      • CONSTRAINT_VIOLATION, INVALID_CONSTRAINT, MISSING_REQUIRED,
        MISSING_POSITIONAL, TOO_MANY_POSITIONALS
    - signals (15xxx)
      • HELP_REQUESTED
    """
    # --- configuration errors (10xxx) ---
    INVALID_TARGET        = 10101
    INVALID_OPTION_STRING = 10102
    INVALID_OPTION_NAME   = 10103
    INVALID_ANNOTATION    = 10111
    INVALID_DEFAULT       = 10112
    SUBCOMMAND_MISUSE     = 10113
    POSITIONAL_LAYOUT     = 10114
    HANDLER_REGISTRATION  = 10121
    COMMAND_TREE          = 10122

    # --- tokenization errors (11xxx) ---
    UNKNOWN_OPTION        = 11101
    MISSING_ARGUMENT      = 11102
    EXCESS_ARGUMENT       = 11103
    AMBIGUOUS_OPTION      = 11104

    # --- conversion errors (13xxx) ---
    INVALID_VALUE         = 13101
    OUT_OF_RANGE          = 13102
    UNSUPPORTED_KIND      = 13103

    # --- validation errors (14xxx) ---
    CONSTRAINT_VIOLATION  = 14101
    INVALID_CONSTRAINT    = 14102
    MISSING_REQUIRED      = 14111
    MISSING_POSITIONAL    = 14112
    TOO_MANY_POSITIONALS  = 14113

    # --- signals (15xxx) ---
    HELP_REQUESTED        = 15101


class Fault(Exception):
    """
    base of every argot fault.

    subclasses bind their code and title at class creation:

        class UnknownOptionError(TokenizationError, code=FaultCode.UNKNOWN_OPTION, title="unknown option"): ...

    instances keep the message and a read-only mapping of options (context such
    as option, field, value, hint, prog). copy.replace(fault, prog="tool")
    returns a new fault with the options merged.
    """
    code = None
    title = "fault"

    def __init_subclass__(cls, /, code=None, title=None, **options):
        super().__init_subclass__(**options)
        if code is not None:
            cls.code = FaultCode(code)
        if title is not None:
            cls.title = title

    def __init__(self, message, /, **options):
        if not isinstance(message, str):
            raise TypeError(f"{type(self).__name__}() message must be a string")
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message

    def __reduce__(self):
        return _restore, (type(self), self.message, dict(self.options))

    def __rich__(self):
        styles = defaultdict(str, {
            "prog-name": "bold #F0F0F5",
            "code": "bold #00D7FF",
            "error-title": "bold #FF5FAF",
            "error-message": "#D0D0D8",
            "hint-arrow": "dim #87D787",
            "hint": "italic #87D787",
        } | dict(self.options.get("styles", {})))

        colorful = self.options.get("colorful", True)

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            return Text(str(fragment), styles[style] if colorful else "")

        parts = ["[ "]
        if prog := self.options.get("prog"):
            parts += [text(prog, "prog-name"), " — "]
        if self.code is not None:
            parts += [text(str(self.code.value), "code"), " | "]
        parts += [text(self.title, "error-title"), " ]"]

        header = Text.assemble(*parts)
        message = text(self.message, "error-message")
        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)

    def __replace__(self, /, **overrides):
        replaced = type(self)(self.message, **{**self.options, **overrides})
        replaced.__cause__ = self.__cause__
        return replaced


def _restore(cls, message, options, /):
    return cls(message, **options)


# --- configuration ---
class ConfigurationError(Fault, title="configuration error"): ...
class InvalidTargetError(ConfigurationError, TypeError, code=FaultCode.INVALID_TARGET, title="invalid target"): ...
class InvalidOptionStringError(ConfigurationError, ValueError, code=FaultCode.INVALID_OPTION_STRING, title="invalid option string"): ...
class InvalidOptionNameError(ConfigurationError, ValueError, code=FaultCode.INVALID_OPTION_NAME, title="invalid option name"): ...
class InvalidAnnotationError(ConfigurationError, code=FaultCode.INVALID_ANNOTATION, title="invalid annotation"): ...
class InvalidDefaultError(ConfigurationError, code=FaultCode.INVALID_DEFAULT, title="invalid default"): ...
class SubcommandMisuseError(ConfigurationError, code=FaultCode.SUBCOMMAND_MISUSE, title="subcommand misuse"): ...
class PositionalLayoutError(ConfigurationError, code=FaultCode.POSITIONAL_LAYOUT, title="positional layout"): ...
class HandlerRegistrationError(ConfigurationError, LookupError, code=FaultCode.HANDLER_REGISTRATION, title="handler registration"): ...
class CommandTreeError(ConfigurationError, code=FaultCode.COMMAND_TREE, title="command tree"): ...


# --- tokenization ---
class TokenizationError(Fault, title="tokenization error"): ...
class UnknownOptionError(TokenizationError, code=FaultCode.UNKNOWN_OPTION, title="unknown option"): ...
class MissingArgumentError(TokenizationError, code=FaultCode.MISSING_ARGUMENT, title="missing argument"): ...
class ExcessArgumentError(TokenizationError, code=FaultCode.EXCESS_ARGUMENT, title="excess argument"): ...
class AmbiguousOptionError(TokenizationError, code=FaultCode.AMBIGUOUS_OPTION, title="ambiguous option"): ...


# --- conversion ---
class ConversionError(Fault, ValueError, code=FaultCode.INVALID_VALUE, title="invalid value"): ...
class OutOfRangeError(ConversionError, code=FaultCode.OUT_OF_RANGE, title="out of range"): ...
class UnsupportedKindError(ConversionError, code=FaultCode.UNSUPPORTED_KIND, title="unsupported kind"): ...


# --- validation ---
class ValidationError(Fault, title="validation error"): ...
class ConstraintViolationError(ValidationError, code=FaultCode.CONSTRAINT_VIOLATION, title="constraint violation"): ...
class InvalidConstraintError(ValidationError, code=FaultCode.INVALID_CONSTRAINT, title="invalid constraint"): ...
class MissingRequiredError(ValidationError, code=FaultCode.MISSING_REQUIRED, title="missing required"): ...
class MissingPositionalError(MissingRequiredError, code=FaultCode.MISSING_POSITIONAL, title="missing positional"): ...
class TooManyPositionalsError(ValidationError, code=FaultCode.TOO_MANY_POSITIONALS, title="too many positionals"): ...


# --- signals ---
class HelpRequested(Fault, code=FaultCode.HELP_REQUESTED, title="help"): ...


__all__ = (
    "FaultCode",
    "Fault",
    "ConfigurationError",
    "InvalidTargetError",
    "InvalidOptionStringError",
    "InvalidOptionNameError",
    "InvalidAnnotationError",
    "InvalidDefaultError",
    "SubcommandMisuseError",
    "PositionalLayoutError",
    "HandlerRegistrationError",
    "CommandTreeError",
    "TokenizationError",
    "UnknownOptionError",
    "MissingArgumentError",
    "ExcessArgumentError",
    "AmbiguousOptionError",
    "ConversionError",
    "OutOfRangeError",
    "UnsupportedKindError",
    "ValidationError",
    "ConstraintViolationError",
    "InvalidConstraintError",
    "MissingRequiredError",
    "MissingPositionalError",
    "TooManyPositionalsError",
    "HelpRequested",
)
