"""Low-level rule markup handling.

SourceDocument turns rule text into an element tree and can point back
from any element to its line in the original text. RuleParser tracks the
stack of currently open rules (for mode inheritance and error paths) and
converts attribute strings into typed values, raising ParseError with
location context when something is wrong.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Iterator, NoReturn

from faith_encounter.core.config import ParserSettings
from faith_encounter.core.constants import (
    DEFAULT_MODE,
    ELLIPSIS,
    NUMERIC_ID_PATTERN,
    RULESET_TAG,
    RULESETS_TAG,
)
from faith_encounter.core.diagnostics import DiagnosticLog
from faith_encounter.core.exceptions import ParseError
from faith_encounter.models.enums import Mode


_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>", re.DOTALL)
_OPENING_TAG = re.compile(r"<([A-Za-z_][\w.:-]*)")
_NON_ELEMENT_MARKUP = re.compile(r"<!--.*?-->|<!\[CDATA\[.*?\]\]>|<\?.*?\?>", re.DOTALL)
_WRAPPER_TAG = "faith-encounter-source"


# =============================================================================
# Source Document
# =============================================================================


class SourceDocument:
    """Rule source text and the element tree parsed from it.

    Text sources may hold several sibling <ruleset> roots; they are wrapped
    in a synthetic root before parsing.

    Attributes:
        text: Original source text, or None for pre-parsed trees.
        root: Root element of the parsed tree.
        file_name: Name of the source for error messages.
    """

    def __init__(self, source: str | ET.Element, file_name: str | None = None) -> None:
        self.file_name = file_name
        self._wrapped = False
        if isinstance(source, ET.Element):
            self.text: str | None = None
            self.root = source
        else:
            self.text = source
            self.root = self._parse_text(source)
        self._tag_offsets: list[int] | None = None
        self._order: dict[int, int] | None = None

    def _parse_text(self, text: str) -> ET.Element:
        body = _XML_DECLARATION.sub(
            lambda m: re.sub(r"[^\n]", " ", m.group()), text, count=1
        )
        try:
            root = ET.fromstring(f"<{_WRAPPER_TAG}>{body}</{_WRAPPER_TAG}>")
        except ET.ParseError as exc:
            line, column = exc.position
            raise ParseError(
                f"Malformed rule markup: {exc}",
                file_name=self.file_name,
                line_number=line,
                details={"column": column},
            ) from exc
        self._wrapped = True
        return root

    def rulesets(self) -> list[ET.Element]:
        """Rule-set elements of the document, in document order."""
        if self.root.tag == RULESET_TAG:
            return [self.root]
        found: list[ET.Element] = []
        for child in self.root:
            if child.tag == RULESET_TAG:
                found.append(child)
            elif child.tag == RULESETS_TAG:
                found.extend(c for c in child if c.tag == RULESET_TAG)
        return found

    # =========================================================================
    # Locating Elements
    # =========================================================================

    def _offsets(self) -> list[int]:
        if self._tag_offsets is None:
            blanked = _NON_ELEMENT_MARKUP.sub(lambda m: " " * len(m.group()), self.text or "")
            self._tag_offsets = [m.start() for m in _OPENING_TAG.finditer(blanked)]
        return self._tag_offsets

    def offset_of(self, element: ET.Element) -> int | None:
        """Character offset of an element's opening tag in the source text."""
        if self.text is None:
            return None
        if self._order is None:
            elements = list(self.root.iter())
            if self._wrapped:
                elements = elements[1:]
            self._order = {id(el): index for index, el in enumerate(elements)}
        index = self._order.get(id(element))
        offsets = self._offsets()
        if index is None or index >= len(offsets):
            return None
        return offsets[index]

    def line_of(self, element: ET.Element) -> int | None:
        """1-based line number of an element in the source text."""
        offset = self.offset_of(element)
        if offset is None or self.text is None:
            return None
        return self.text.count("\n", 0, offset) + 1

    def context_of(
        self,
        element: ET.Element,
        *,
        pre: int,
        post: int,
        padded: bool,
    ) -> str | None:
        """Text snippet around an element's opening tag.

        Args:
            element: The element to show.
            pre: Characters to include before the tag when padded.
            post: Characters to include from the tag onwards.
            padded: Include the leading window and mark both cuts.

        Returns:
            The snippet, or None when there is no source text.
        """
        offset = self.offset_of(element)
        if offset is None or self.text is None:
            return None
        end = min(len(self.text), offset + post)
        if padded:
            start = max(0, offset - pre)
            return f"{ELLIPSIS}{self.text[start:end]}{ELLIPSIS}"
        return f"{self.text[offset:end]}{ELLIPSIS}"


# =============================================================================
# Rule Stack and Attribute Parsing
# =============================================================================


@dataclass
class RuleFrame:
    """One currently open rule."""

    tag: str
    rule_id: str | None
    mode: Mode
    element: ET.Element

    def describe(self) -> str:
        return f"<{self.tag}> {self.rule_id}" if self.rule_id else f"<{self.tag}>"


class RuleParser:
    """Parsing state for one document: open rules, settings and diagnostics.

    Attributes:
        document: The source being parsed.
        settings: Diagnostic verbosity switches.
        diagnostics: Where warnings are recorded.
        ruleset_mode: Mode declared by the current rule-set element.
    """

    def __init__(
        self,
        document: SourceDocument,
        settings: ParserSettings,
        diagnostics: DiagnosticLog,
    ) -> None:
        self.document = document
        self.settings = settings
        self.diagnostics = diagnostics
        self.ruleset_mode: Mode = Mode(DEFAULT_MODE)
        self._stack: list[RuleFrame] = []

    # -------------------------------------------------------------------------
    # Stack
    # -------------------------------------------------------------------------

    def open_rule(self, element: ET.Element, *, top_level: bool = False) -> RuleFrame:
        """Push an element onto the rule stack, resolving its id and mode.

        Args:
            element: The rule element.
            top_level: Whether the element is a direct child of a rule-set.

        Returns:
            The pushed frame.
        """
        mode = self.parse_mode(element)
        frame = RuleFrame(tag=element.tag, rule_id=None, mode=mode, element=element)
        self._stack.append(frame)
        frame.rule_id = self.parse_id(element, top_level=top_level)
        return frame

    def close_rule(self) -> RuleFrame:
        return self._stack.pop()

    @property
    def current(self) -> RuleFrame | None:
        return self._stack[-1] if self._stack else None

    def frames(self) -> Iterator[RuleFrame]:
        """Open rules from innermost to outermost."""
        return reversed(self._stack)

    def reset(self, ruleset_mode: Mode) -> None:
        self._stack.clear()
        self.ruleset_mode = ruleset_mode

    # -------------------------------------------------------------------------
    # Attribute Values
    # -------------------------------------------------------------------------

    def parse_mode(self, element: ET.Element) -> Mode:
        """Resolve an element's mode, inheriting from the nearest open rule.

        Raises:
            ParseError: If the mode attribute holds an unknown value.
        """
        raw = element.get("mode")
        if raw is None:
            if self._stack:
                return self._stack[-1].mode
            return self.ruleset_mode
        try:
            return Mode(raw.strip())
        except ValueError:
            self.fail(f"Invalid mode {raw!r}", element)

    def parse_id(self, element: ET.Element, *, top_level: bool = False) -> str | None:
        """Read an element's id.

        Numeric ids of nested rules are rewritten to ``<parent>-<tag>-<n>``.

        Raises:
            ParseError: If the id is empty, or a top-level id is missing or
                numeric.
        """
        raw = element.get("id")
        if raw is None:
            if top_level:
                self.fail(f"<{element.tag}> needs an id", element)
            return None
        value = raw.strip()
        if not value:
            self.fail(f"<{element.tag}> has an empty id", element)
        if NUMERIC_ID_PATTERN.match(value):
            if top_level:
                self.fail(f"Top-level <{element.tag}> id must not be numeric", element)
            parent_id = next(
                (f.rule_id for f in list(self.frames())[1:] if f.rule_id),
                None,
            )
            number = value.lstrip("+")
            return f"{parent_id}-{element.tag}-{number}" if parent_id else f"{element.tag}-{number}"
        return value

    def parse_boolean(self, raw: str, element: ET.Element, name: str) -> bool | None:
        """Read "true", "false" or "null".

        Raises:
            ParseError: For any other value.
        """
        value = raw.strip().lower()
        if value == "true":
            return True
        if value == "false":
            return False
        if value == "null":
            return None
        self.fail(f"Attribute {name}={raw!r} must be true, false or null", element)

    def parse_number(self, raw: str, element: ET.Element, name: str) -> int | float:
        """Read an integer or decimal number.

        Raises:
            ParseError: If the value is not a number.
        """
        value = raw.strip()
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            self.fail(f"Attribute {name}={raw!r} must be a number", element)

    def parse_integer(self, raw: str, element: ET.Element, name: str) -> int:
        value = self.parse_number(raw, element, name)
        if not float(value).is_integer():
            self.fail(f"Attribute {name}={raw!r} must be a whole number", element)
        return int(value)

    @staticmethod
    def parse_classes(raw: str) -> set[str]:
        """Split a comma-separated class list, trimming each entry."""
        return {part.strip() for part in raw.split(",") if part.strip()}

    def check_attributes(self, element: ET.Element, allowed: set[str] | frozenset[str]) -> None:
        """Reject attributes an element does not know.

        Raises:
            ParseError: On the first unknown attribute.
        """
        for name in element.attrib:
            if name not in allowed:
                self.fail(f"Unknown attribute {name!r} on <{element.tag}>", element)

    # -------------------------------------------------------------------------
    # Errors and Warnings
    # -------------------------------------------------------------------------

    def element_path(self) -> list[str]:
        return [frame.describe() for frame in self._stack]

    def fail(self, message: str, element: ET.Element) -> NoReturn:
        """Raise a ParseError located at an element.

        Raises:
            ParseError: Always.
        """
        settings = self.settings
        line = self.document.line_of(element)
        context = None
        if settings.display_context_on_errors:
            context = self.document.context_of(
                element,
                pre=settings.context_padding_pre,
                post=settings.context_padding_post,
                padded=settings.display_context_padded,
            )

        lines = [message]
        if self.document.file_name:
            lines.append(f"In {self.document.file_name}")
        lines.extend(f"In {frame.describe()}" for frame in self.frames())
        if line is not None:
            lines.append(f"Element with error in line {line} of source text.")
        if context:
            lines.append(context)
        if settings.display_dom_on_errors:
            lines.append(ET.tostring(element, encoding="unicode").strip())

        self.diagnostics.error(
            message,
            file_name=self.document.file_name,
            element_path=self.element_path(),
            line_number=line,
        )
        raise ParseError(
            "\n".join(lines),
            file_name=self.document.file_name,
            element_path=self.element_path(),
            line_number=line,
            context=context,
        )


__all__ = [
    "SourceDocument",
    "RuleFrame",
    "RuleParser",
]
