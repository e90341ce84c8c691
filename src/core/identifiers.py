"""
Identifier typing for loosely-typed user, department and unit references.

Clients may reference related records by internal id, email, code, name or a
"<departmentCode>:<unitName>" combo. Every resolver classifies its inputs
through the functions here, so the heuristic lives in exactly one place:

- user:       contains "@" -> email, otherwise -> id
- department: always code and name; also id when it carries RECORD_ID_PREFIX
- unit:       contains ":" -> combo, otherwise -> id or name
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from core.config import COMBO_SEPARATOR, RECORD_ID_PREFIX


class IdentifierKind(str, Enum):
    ID = "id"
    EMAIL = "email"
    CODE = "code"
    NAME = "name"
    COMBO = "combo"


@dataclass(frozen=True)
class TaggedIdentifier:
    """A normalized input plus the lookups it is eligible for."""

    value: str
    kinds: frozenset[IdentifierKind]
    department_code: str | None = None
    unit_name: str | None = None

    def is_kind(self, kind: IdentifierKind) -> bool:
        return kind in self.kinds


def new_record_id() -> str:
    """Generate an internal record id ("c" followed by 32 hex chars)."""
    return f"{RECORD_ID_PREFIX}{uuid.uuid4().hex}"


def normalize_inputs(inputs: Iterable[str] | None) -> list[str]:
    """Trim inputs and drop empties. Duplicates are kept."""
    if not inputs:
        return []
    return [value.strip() for value in inputs if value and value.strip()]


def looks_like_email(value: str) -> bool:
    return "@" in value


def looks_like_record_id(value: str) -> bool:
    return value.startswith(RECORD_ID_PREFIX)


def split_combo(value: str) -> tuple[str, str] | None:
    """
    Split 'ENG:Backend' into ('ENG', 'Backend').

    Returns None unless there is exactly one separator and both segments are
    non-blank.
    """
    # 'ENG:Back:end' is malformed, not truncated to its first two segments.
    if value.count(COMBO_SEPARATOR) != 1:
        return None
    code, _, name = value.partition(COMBO_SEPARATOR)
    code, name = code.strip(), name.strip()
    if not code or not name:
        return None
    return code, name


def tag_user_input(value: str) -> TaggedIdentifier:
    kind = IdentifierKind.EMAIL if looks_like_email(value) else IdentifierKind.ID
    return TaggedIdentifier(value=value, kinds=frozenset({kind}))


def tag_department_input(value: str) -> TaggedIdentifier:
    kinds = {IdentifierKind.CODE, IdentifierKind.NAME}
    if looks_like_record_id(value):
        kinds.add(IdentifierKind.ID)
    return TaggedIdentifier(value=value, kinds=frozenset(kinds))


def tag_unit_input(value: str) -> TaggedIdentifier:
    if COMBO_SEPARATOR not in value:
        return TaggedIdentifier(
            value=value, kinds=frozenset({IdentifierKind.ID, IdentifierKind.NAME})
        )

    parts = split_combo(value)
    if parts is None:
        # Malformed combo: eligible for nothing, reported as missing.
        return TaggedIdentifier(value=value, kinds=frozenset({IdentifierKind.COMBO}))
    code, name = parts
    return TaggedIdentifier(
        value=value,
        kinds=frozenset({IdentifierKind.COMBO}),
        department_code=code,
        unit_name=name,
    )
