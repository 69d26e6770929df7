"""Field validation rules.

Each rule inspects one field of one row and returns at most one
Violation. validate_row runs every rule of every field and returns all
violations found; it never stops at the first one.

Empty optional values are skipped by every rule. Only a required field
reports its emptiness.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from .entities import Violation, ViolationKind
from .normalizers import cell_text, is_date_serial, normalize_text

if TYPE_CHECKING:
    from .policies import FieldSpec


class Charset(Enum):
    """Character sets a raw cell may be restricted to."""

    PRINTABLE_ASCII = "half-width alphanumerics and symbols"
    DIGITS_HYPHEN = "half-width digits and hyphens"


_NON_PRINTABLE_ASCII = re.compile(r"[^\x20-\x7E]")
_DIGITS_HYPHEN = re.compile(r"[0-9-]+")


@dataclass
class ValidationContext:
    """Per-batch data that rules may consult.

    allow_lists maps an allow-list name (e.g. "carrier") to its values.
    address_codes is None when reference checks are disabled.
    """

    allow_lists: dict[str, tuple[str, ...]] = field(default_factory=dict)
    address_codes: Optional[set[str]] = None


class Rule(ABC):
    """A single check applied to one field."""

    kind: ViolationKind = ViolationKind.FORMAT

    @abstractmethod
    def check(
        self,
        spec: "FieldSpec",
        raw: Any,
        value: Any,
        row_number: int,
        context: ValidationContext,
    ) -> Optional[Violation]:
        """Check one non-empty cell.

        Args:
            spec: Descriptor of the field being checked
            raw: Cell value as read from the sheet
            value: Cell value after normalization
            row_number: Row number as the user sees it
            context: Batch-level lookup data

        Returns:
            A Violation, or None when the value passes
        """
        ...

    def _violation(self, spec: "FieldSpec", row_number: int, message: str) -> Violation:
        return Violation(
            row_number=row_number,
            field=spec.name,
            message=f"Row {row_number}: {message}",
            kind=self.kind,
        )


class CharsetRule(Rule):
    """Reject raw text containing characters outside a charset.

    Runs on the raw text, before any full-width folding, so a
    full-width code is reported rather than silently fixed.
    """

    kind = ViolationKind.CHARSET

    def __init__(self, charset: Charset):
        self.charset = charset

    def check(self, spec, raw, value, row_number, context):
        text = cell_text(raw)
        bad = bool(_NON_PRINTABLE_ASCII.search(text))
        if not bad and self.charset is Charset.DIGITS_HYPHEN:
            bad = not _DIGITS_HYPHEN.fullmatch(text)
        if bad:
            return self._violation(
                spec,
                row_number,
                f"{spec.label} '{text}' may only contain {self.charset.value}",
            )
        return None


class PatternRule(Rule):
    """Require the half-width text to match a regular expression."""

    def __init__(self, pattern: str, description: str):
        self.pattern = re.compile(pattern)
        self.description = description

    def check(self, spec, raw, value, row_number, context):
        text = normalize_text(cell_text(raw))
        if not self.pattern.fullmatch(text):
            return self._violation(
                spec,
                row_number,
                f"{spec.label} '{text}' has an invalid format ({self.description})",
            )
        return None


class DateRule(Rule):
    """Accept spreadsheet serials, date cells, or YYYY-MM-DD / YYYY/MM/DD text.

    A number is only a serial when it falls in the spreadsheet date range;
    20240401 typed without separators is reported like malformed text.
    """

    _pattern = re.compile(r"\d{4}[-/]\d{1,2}[-/]\d{1,2}")

    def check(self, spec, raw, value, row_number, context):
        if isinstance(raw, date) or is_date_serial(raw):
            return None
        text = cell_text(raw)
        if self._pattern.fullmatch(text):
            return None
        return self._violation(
            spec,
            row_number,
            f"{spec.label} '{text}' must be written as YYYY-MM-DD or YYYY/MM/DD",
        )


class EnumerationRule(Rule):
    """Require the value to be one of a named allow-list."""

    kind = ViolationKind.ENUMERATION

    def __init__(self, allow_list: str):
        self.allow_list = allow_list

    def check(self, spec, raw, value, row_number, context):
        allowed = context.allow_lists.get(self.allow_list, ())
        text = cell_text(raw)
        if text in allowed:
            return None
        return self._violation(
            spec,
            row_number,
            f"{spec.label} '{text}' is not one of: {', '.join(allowed)}",
        )


class ReferenceRule(Rule):
    """Require an office code to belong to a registered address.

    Does nothing when the batch has reference checks disabled.
    """

    kind = ViolationKind.UNKNOWN_REFERENCE

    def check(self, spec, raw, value, row_number, context):
        if context.address_codes is None:
            return None
        if reference_key(str(value)) in context.address_codes:
            return None
        return self._violation(
            spec,
            row_number,
            f"{spec.label} '{value}' is not a registered address code",
        )


def reference_key(value: str) -> str:
    return normalize_text(value).replace("-", "")


IPV4 = PatternRule(r"\d{1,3}(\.\d{1,3}){3}", "e.g. 192.168.0.1")
MOBILE_NUMBER = PatternRule(r"\d{11}|\d{3}-\d{4}-\d{4}", "11 digits or xxx-xxxx-xxxx")
SIM_NUMBER = PatternRule(
    r"\d{11}|\d{3}-\d{4}-\d{4}|\d{14}",
    "11 digits, xxx-xxxx-xxxx or 14 digits",
)
ZIP_CODE = PatternRule(r"\d{7}|\d{3}-\d{4}", "7 digits or xxx-xxxx")
LANDLINE = PatternRule(r"\d{2,4}-\d{2,4}-\d{2,4}", "e.g. 03-1234-5678")
DATE = DateRule()
PRINTABLE = CharsetRule(Charset.PRINTABLE_ASCII)
DIGITS_HYPHEN = CharsetRule(Charset.DIGITS_HYPHEN)
OFFICE_REFERENCE = ReferenceRule()


def required_violation(spec: "FieldSpec", row_number: int) -> Violation:
    return Violation(
        row_number=row_number,
        field=spec.name,
        message=f"Row {row_number}: {spec.label} is empty",
        kind=ViolationKind.REQUIRED,
    )


def validate_row(
    specs: "tuple[FieldSpec, ...]",
    raw_cells: dict[str, Any],
    values: dict[str, Any],
    row_number: int,
    context: ValidationContext,
) -> list[Violation]:
    """Run every field's rules over one row and collect all violations."""
    violations: list[Violation] = []
    for spec in specs:
        raw = raw_cells.get(spec.label)
        if normalize_text(cell_text(raw)) == "":
            if spec.required:
                violations.append(required_violation(spec, row_number))
            continue
        for rule in spec.rules:
            violation = rule.check(spec, raw, values.get(spec.name), row_number, context)
            if violation is not None:
                violations.append(violation)
    return violations
