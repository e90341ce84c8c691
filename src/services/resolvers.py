"""
Resolve free-form user, department and unit references to internal ids.

Each resolver classifies its inputs (core.identifiers), issues batch lookups
concurrently, merges the results by record id and reports exactly which inputs
matched nothing.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Hashable, Iterable, Protocol, Sequence, TypeVar

from core.identifiers import (
    IdentifierKind,
    normalize_inputs,
    tag_department_input,
    tag_unit_input,
    tag_user_input,
)
from models.events import DepartmentRecord, DepartmentRef, UnitRecord, UserRecord

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


class DirectoryStore(Protocol):
    async def find_users(self, field: str, values: list[str]) -> list[UserRecord]: ...

    async def find_departments(self, field: str, values: list[str]) -> list[DepartmentRecord]: ...

    async def find_units(self, field: str, values: list[str]) -> list[UnitRecord]: ...

    async def find_units_by_department_and_name(
        self, pairs: list[tuple[str, str]]
    ) -> list[UnitRecord]: ...


@dataclass
class Resolution:
    """Resolved ids (deduplicated, first-match order) and unmatched inputs."""

    resolved_ids: list[str] = field(default_factory=list)
    missing_inputs: list[str] = field(default_factory=list)

    def add(self, record_id: str) -> None:
        if record_id not in self.resolved_ids:
            self.resolved_ids.append(record_id)


@dataclass
class DepartmentResolution(Resolution):
    departments_by_code: dict[str, DepartmentRef] = field(default_factory=dict)


async def gather_by_key(
    lookups: Sequence[Awaitable[Iterable[T]]], key: Callable[[T], K]
) -> dict[K, T]:
    """
    Await all lookups concurrently and merge their records by `key`.

    Later results overwrite earlier ones for the same key; identity is the
    merge key so either copy is equivalent. Any failing lookup fails the whole
    call.
    """
    merged: dict[K, T] = {}
    for batch in await asyncio.gather(*lookups):
        for record in batch:
            merged[key(record)] = record
    return merged


def _unique(values: Iterable[T]) -> list[T]:
    return list(dict.fromkeys(values))


async def resolve_users(store: DirectoryStore, inputs: Iterable[str] | None) -> Resolution:
    """Emails are looked up by email, everything else by id."""
    tagged = [tag_user_input(value) for value in normalize_inputs(inputs)]
    result = Resolution()
    if not tagged:
        return result

    emails = _unique(t.value for t in tagged if t.is_kind(IdentifierKind.EMAIL))
    ids = _unique(t.value for t in tagged if t.is_kind(IdentifierKind.ID))

    lookups = []
    if emails:
        lookups.append(store.find_users("email", emails))
    if ids:
        lookups.append(store.find_users("id", ids))
    found = await gather_by_key(lookups, key=lambda user: user.id)
    ids_by_email = {user.email: user.id for user in found.values()}

    for item in tagged:
        if item.is_kind(IdentifierKind.EMAIL):
            match = ids_by_email.get(item.value)
        else:
            match = item.value if item.value in found else None

        if match is None:
            result.missing_inputs.append(item.value)
        else:
            result.add(match)
    return result


async def resolve_departments(
    store: DirectoryStore, inputs: Iterable[str] | None
) -> DepartmentResolution:
    """
    Match each input against department code and name, and against id when it
    looks like an internal id. Also returns a code -> ref map for unit combos.
    """
    tagged = [tag_department_input(value) for value in normalize_inputs(inputs)]
    result = DepartmentResolution()
    if not tagged:
        return result

    values = _unique(t.value for t in tagged)
    lookups = [
        store.find_departments("code", values),
        store.find_departments("name", values),
    ]
    id_candidates = _unique(t.value for t in tagged if t.is_kind(IdentifierKind.ID))
    if id_candidates:
        lookups.append(store.find_departments("id", id_candidates))
    found = await gather_by_key(lookups, key=lambda department: department.id)

    for item in tagged:
        matches = [
            department.id
            for department in found.values()
            if item.value in (department.code, department.name, department.id)
        ]
        if not matches:
            result.missing_inputs.append(item.value)
        for department_id in matches:
            result.add(department_id)

    result.departments_by_code = {
        department.code: DepartmentRef(id=department.id, code=department.code)
        for department in found.values()
    }
    return result


async def resolve_units(
    store: DirectoryStore,
    inputs: Iterable[str] | None,
    departments_by_code: dict[str, DepartmentRef] | None = None,
) -> Resolution:
    """
    Direct inputs match a unit id or name. 'CODE:Name' combos match the unit
    with that name inside the department with that code; department codes not
    already in `departments_by_code` are fetched in one extra lookup.
    """
    tagged = [tag_unit_input(value) for value in normalize_inputs(inputs)]
    result = Resolution()
    if not tagged:
        return result

    known = dict(departments_by_code or {})
    matched: set[str] = set()

    direct = [t for t in tagged if not t.is_kind(IdentifierKind.COMBO)]
    if direct:
        values = _unique(t.value for t in direct)
        found = await gather_by_key(
            [store.find_units("id", values), store.find_units("name", values)],
            key=lambda unit: unit.id,
        )
        for item in direct:
            for unit in found.values():
                if item.value in (unit.id, unit.name):
                    result.add(unit.id)
                    matched.add(item.value)

    combos = [t for t in tagged if t.is_kind(IdentifierKind.COMBO) and t.department_code]
    if combos:
        codes_to_fetch = _unique(
            t.department_code for t in combos if t.department_code not in known
        )
        if codes_to_fetch:
            for department in await store.find_departments("code", codes_to_fetch):
                known.setdefault(department.code, DepartmentRef(department.id, department.code))

        pairs = _unique(
            (known[t.department_code].id, t.unit_name)
            for t in combos
            if t.department_code in known
        )
        if pairs:
            units = await store.find_units_by_department_and_name(pairs)
            units_by_pair = {(unit.department_id, unit.name): unit for unit in units}
            for item in combos:
                department = known.get(item.department_code)
                if department is None:
                    continue
                unit = units_by_pair.get((department.id, item.unit_name))
                if unit is not None:
                    result.add(unit.id)
                    matched.add(item.value)

    result.missing_inputs = [t.value for t in tagged if t.value not in matched]
    return result
