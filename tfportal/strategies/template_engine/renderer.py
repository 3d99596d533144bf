"""Substitution engine.

Binds a ParameterRecord into a template variant using Jinja2 with strict
undefined handling. Conditional fragments are spliced into their slot lines
before compilation, so an omitted fragment leaves nothing behind.
"""

import base64
import enum
import logging
import re
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from jinja2 import Environment, StrictUndefined, Template, TemplateError

from tfportal.interfaces.template import (
    BaseTemplateRenderer,
    GeneratedDocument,
    RenderError,
    TemplateVariant,
)

logger = logging.getLogger(__name__)

SLOT_LINE = re.compile(
    r"^(?P<indent>[ \t]*)\{#\s*fragment:\s*(?P<slot>[A-Za-z_]\w*)\s*#\}[ \t]*(?:\n|$)",
    re.MULTILINE,
)

# Opens an HCL heredoc at the end of a line, e.g. `user_data = <<-EOF`
HEREDOC_OPENER = re.compile(r"<<-?(?P<marker>[A-Za-z_]\w*)[ \t]*$")

_HCL_ESCAPES = (
    ("\\", "\\\\"),
    ('"', '\\"'),
    ("\n", "\\n"),
    ("\r", "\\r"),
    ("\t", "\\t"),
    ("${", "$${"),
    ("%{", "%%{"),
)


def escape_hcl_string(value: str) -> str:
    """Escape text for use inside an HCL double-quoted string."""
    for raw, escaped in _HCL_ESCAPES:
        value = value.replace(raw, escaped)
    return value


def hcl_finalize(value: Any) -> str:
    """Format a placeholder value for its position in the document.

    Booleans and integers become bare literals; everything else is treated
    as quoted string content and escaped.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, enum.Enum):
        value = value.value
    return escape_hcl_string(str(value))


def base64_text(value: Any) -> str:
    """Encode a value as base64 text.

    The result only contains ``[A-Za-z0-9+/=]``, so it is inert inside heredocs
    and shell single quotes, where HCL string escaping does not apply.
    """
    if isinstance(value, enum.Enum):
        value = value.value
    return base64.b64encode(str(value).encode("utf-8")).decode("ascii")


def create_environment() -> Environment:
    environment = Environment(
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
        finalize=hcl_finalize,
    )
    environment.filters["b64"] = base64_text
    return environment


@dataclass(frozen=True)
class Placeholder:
    """A placeholder occurrence found in template source.

    Attributes:
        name: Field the placeholder reads.
        quoted: Whether it sits inside an HCL double-quoted string.
        lineno: Line of the placeholder in the composed source.
        heredoc: Whether it sits inside a heredoc body.
        filters: Filters applied to the value, in order.
    """

    name: str
    quoted: bool
    lineno: int
    heredoc: bool = False
    filters: tuple[str, ...] = ()


def heredoc_lines(source: str) -> frozenset[int]:
    """Return the 1-based numbers of lines that belong to heredoc bodies."""
    lines: set[int] = set()
    marker = None
    for lineno, line in enumerate(source.splitlines(), start=1):
        if marker is not None:
            if line.strip() == marker:
                marker = None
            else:
                lines.add(lineno)
            continue
        match = HEREDOC_OPENER.search(line)
        if match:
            marker = match.group("marker")
    return frozenset(lines)


def find_slots(body: str) -> list[str]:
    """Return slot names in the order they appear in a variant body."""
    return [match.group("slot") for match in SLOT_LINE.finditer(body)]


def compose(variant: TemplateVariant, active_slots: frozenset[str]) -> str:
    """Splice conditional fragments into a variant body.

    Active fragments are indented to their slot line; inactive slot lines
    are removed entirely.

    Raises:
        RenderError: If the body names a slot with no fragment.
    """
    fragments = {fragment.slot: fragment for fragment in variant.fragments}

    def _splice(match: re.Match) -> str:
        slot = match.group("slot")
        fragment = fragments.get(slot)
        if fragment is None:
            raise RenderError(f"Variant {variant.name} has no fragment for slot '{slot}'")
        if slot not in active_slots:
            return ""
        indent = match.group("indent")
        return "".join(
            f"{indent}{line}" if line.strip() else line
            for line in fragment.source.splitlines(keepends=True)
        )

    return SLOT_LINE.sub(_splice, variant.body)


def find_placeholders(source: str, environment: Environment | None = None) -> list[Placeholder]:
    """Locate every ``{{ name }}`` placeholder and the context it sits in.

    Quote state is tracked across template data and reset at each newline,
    since HCL quoted strings never span lines. Heredoc bodies have no quoted
    strings at all; placeholders there are reported with ``heredoc=True``.

    Raises:
        RenderError: If the source is not valid template syntax.
    """
    environment = environment or create_environment()
    in_heredoc = heredoc_lines(source)
    placeholders: list[Placeholder] = []
    quoted = False
    escaped = False
    line = 1
    # Open ``{{ ... }}`` expression: [start line, field name, filters, quoted]
    current: list | None = None
    expecting_filter = False

    try:
        for lineno, token, value in environment.lex(source):
            if token == "data":
                line = lineno
                for char in value:
                    if char == "\n":
                        line += 1
                        quoted = False
                        escaped = False
                    elif line in in_heredoc:
                        continue
                    elif escaped:
                        escaped = False
                    elif char == "\\" and quoted:
                        escaped = True
                    elif char == '"':
                        quoted = not quoted
            elif token == "variable_begin":
                current = [lineno, None, [], quoted]
                expecting_filter = False
            elif current is None:
                continue
            elif token == "name":
                if current[1] is None:
                    current[1] = value
                elif expecting_filter:
                    current[2].append(value)
                expecting_filter = False
            elif token == "operator" and value == "|":
                expecting_filter = True
            elif token == "variable_end":
                start, name, filters, was_quoted = current
                if name is not None:
                    heredoc = start in in_heredoc
                    placeholders.append(
                        Placeholder(
                            name=name,
                            quoted=was_quoted and not heredoc,
                            lineno=start,
                            heredoc=heredoc,
                            filters=tuple(filters),
                        )
                    )
                current = None
    except TemplateError as e:
        raise RenderError(f"Invalid template syntax: {e}") from e

    return placeholders


class SubstitutionEngine(BaseTemplateRenderer):
    """Renders template variants into Terraform documents.

    Composed templates are compiled once per (variant, active fragments)
    combination and reused across requests.
    """

    def __init__(self, constants: Mapping[str, Any] | None = None) -> None:
        """Initialize the engine.

        Args:
            constants: Deployment constants (state bucket, AMI, ...) bound
                alongside every record.
        """
        self._env = create_environment()
        self._constants = dict(constants or {})
        self._compiled: dict[tuple[TemplateVariant, frozenset[str]], Template] = {}
        self._lock = threading.Lock()

    def render(self, variant: TemplateVariant, params: Any) -> GeneratedDocument:
        """Bind a parameter record into a template variant.

        Args:
            variant: The selected template variant.
            params: The normalized ParameterRecord.

        Returns:
            The generated document.

        Raises:
            RenderError: If a fragment flag or placeholder cannot be resolved.
        """
        active_slots = self._active_slots(variant, params)
        template = self._template_for(variant, active_slots)

        context = dict(self._constants)
        context.update(params.model_dump())

        try:
            text = template.render(context)
        except TemplateError as e:
            logger.error(f"Rendering {variant.name} failed: {e}")
            raise RenderError(f"Cannot render variant {variant.name}: {e}") from e

        logger.debug(
            f"Rendered {variant.name} with fragments {sorted(active_slots)} "
            f"({len(text)} characters)"
        )
        return GeneratedDocument(text=text, variant=variant.name)

    def _active_slots(self, variant: TemplateVariant, params: Any) -> frozenset[str]:
        active = set()
        for fragment in variant.fragments:
            try:
                enabled = getattr(params, fragment.flag)
            except AttributeError as e:
                raise RenderError(
                    f"Variant {variant.name} gates slot '{fragment.slot}' on unknown "
                    f"field '{fragment.flag}'"
                ) from e
            if enabled is True:
                active.add(fragment.slot)
        return frozenset(active)

    def _template_for(self, variant: TemplateVariant, active_slots: frozenset[str]) -> Template:
        cache_key = (variant, active_slots)
        with self._lock:
            template = self._compiled.get(cache_key)
            if template is None:
                source = compose(variant, active_slots)
                try:
                    template = self._env.from_string(source)
                except TemplateError as e:
                    raise RenderError(f"Cannot compile variant {variant.name}: {e}") from e
                self._compiled[cache_key] = template
        return template
