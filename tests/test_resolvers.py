import asyncio

import pytest

from conftest import InMemoryDirectory
from core.exceptions import UnresolvedReferences
from models.events import DepartmentRef
from services.events import resolve_participants
from services.resolvers import (
    gather_by_key,
    resolve_departments,
    resolve_units,
    resolve_users,
)


def run(coro):
    return asyncio.run(coro)


# Users


def test_users_email_id_and_garbage(directory):
    result = run(resolve_users(directory, ["alice@co.com", "cuser-bob", "nobody"]))

    assert result.resolved_ids == ["cuser-alice", "cuser-bob"]
    assert result.missing_inputs == ["nobody"]


def test_users_issue_one_lookup_per_partition(directory):
    run(resolve_users(directory, ["alice@co.com", "bob@co.com", "cuser-alice"]))

    assert sorted(directory.calls) == [
        ("users", "email", ("alice@co.com", "bob@co.com")),
        ("users", "id", ("cuser-alice",)),
    ]


def test_users_deduplicate_resolved_ids(directory):
    result = run(resolve_users(directory, ["alice@co.com", " cuser-alice ", "alice@co.com"]))
    assert result.resolved_ids == ["cuser-alice"]
    assert result.missing_inputs == []


def test_users_empty_input_skips_store(directory):
    result = run(resolve_users(directory, ["", "  "]))
    assert result.resolved_ids == [] and result.missing_inputs == []
    assert directory.calls == []


def test_unknown_email_is_missing(directory):
    result = run(resolve_users(directory, ["ghost@co.com"]))
    assert result.missing_inputs == ["ghost@co.com"]


# Departments


def test_departments_by_code_and_name(directory):
    result = run(resolve_departments(directory, ["ENG", "Human Resources", "LEGAL"]))

    assert result.resolved_ids == ["cdept-eng", "cdept-hr"]
    assert result.missing_inputs == ["LEGAL"]
    assert result.departments_by_code == {
        "ENG": DepartmentRef("cdept-eng", "ENG"),
        "HR": DepartmentRef("cdept-hr", "HR"),
    }


def test_departments_id_lookup_only_for_id_like_inputs(directory):
    run(resolve_departments(directory, ["ENG", "HR"]))
    assert {call[1] for call in directory.calls} == {"code", "name"}

    directory.calls.clear()
    result = run(resolve_departments(directory, ["cdept-fin"]))
    assert {call[1] for call in directory.calls} == {"code", "name", "id"}
    assert result.resolved_ids == ["cdept-fin"]


# Units


def test_unit_combo_resolves(directory):
    result = run(resolve_units(directory, ["ENG:Backend"]))
    assert result.resolved_ids == ["cunit-backend"]
    assert result.missing_inputs == []


def test_unit_combo_with_unknown_unit_is_missing(directory):
    result = run(resolve_units(directory, ["ENG:Backend", "ENG:NoSuchUnit"]))
    assert result.resolved_ids == ["cunit-backend"]
    assert result.missing_inputs == ["ENG:NoSuchUnit"]


def test_unit_combo_disambiguates_same_name(directory):
    result = run(resolve_units(directory, ["FIN:Payroll"]))
    assert result.resolved_ids == ["cunit-fin-payroll"]


def test_unit_combo_reuses_known_departments(directory):
    known = {"ENG": DepartmentRef("cdept-eng", "ENG")}
    run(resolve_units(directory, ["ENG:Frontend"], known))

    assert not any(call[0] == "departments" for call in directory.calls)
    assert directory.calls == [("units_by_pair", (("cdept-eng", "Frontend"),))]


def test_unit_combo_fetches_unknown_department_codes_once(directory):
    run(resolve_units(directory, ["HR:Payroll", "FIN:Payroll", "HR:Recruitment"]))

    department_calls = [call for call in directory.calls if call[0] == "departments"]
    assert department_calls == [("departments", "code", ("HR", "FIN"))]


def test_unit_combo_does_not_mutate_callers_map(directory):
    known = {"ENG": DepartmentRef("cdept-eng", "ENG")}
    run(resolve_units(directory, ["HR:Payroll"], known))
    assert list(known) == ["ENG"]


def test_unit_direct_by_id_and_name(directory):
    result = run(resolve_units(directory, ["cunit-backend", "Frontend", "Nowhere"]))
    assert result.resolved_ids == ["cunit-backend", "cunit-frontend"]
    assert result.missing_inputs == ["Nowhere"]


def test_unit_direct_name_matches_every_unit_with_that_name(directory):
    result = run(resolve_units(directory, ["Payroll"]))
    assert sorted(result.resolved_ids) == ["cunit-fin-payroll", "cunit-hr-payroll"]


@pytest.mark.parametrize("value", ["ENG:", ":Backend", "ENG:Back:end", "OPS:Support"])
def test_unit_malformed_or_unknown_combo_is_missing(directory, value):
    result = run(resolve_units(directory, [value]))
    assert result.resolved_ids == []
    assert result.missing_inputs == [value]


def test_resolution_is_idempotent(directory):
    inputs = ["ENG:Backend", "Frontend", "bogus", "HR:Payroll"]
    first = run(resolve_units(directory, inputs))
    second = run(resolve_units(directory, inputs))
    assert first == second


# Shared utility


def test_gather_by_key_merges_and_deduplicates():
    async def batch(*items):
        return list(items)

    merged = run(
        gather_by_key(
            [batch(("a", 1), ("b", 2)), batch(("a", 3))],
            key=lambda item: item[0],
        )
    )
    assert merged == {"a": ("a", 3), "b": ("b", 2)}


def test_gather_by_key_propagates_lookup_failure():
    async def ok():
        return [1]

    async def broken():
        raise RuntimeError("store down")

    with pytest.raises(RuntimeError, match="store down"):
        run(gather_by_key([ok(), broken()], key=lambda item: item))


# Orchestration


def test_participants_resolve_all_categories(directory):
    participants = run(
        resolve_participants(
            directory, ["alice@co.com"], ["ENG"], ["ENG:Backend", "HR:Payroll"]
        )
    )
    assert participants.user_ids == ["cuser-alice"]
    assert participants.department_ids == ["cdept-eng"]
    assert participants.unit_ids == ["cunit-backend", "cunit-hr-payroll"]


def test_participants_report_each_missing_category(directory):
    with pytest.raises(UnresolvedReferences) as exc:
        run(
            resolve_participants(
                directory, ["ghost@co.com"], ["ENG", "LEGAL"], ["ENG:Nope"]
            )
        )

    assert exc.value.as_details() == {
        "missingUsers": ["ghost@co.com"],
        "missingDepartments": ["LEGAL"],
        "missingUnits": ["ENG:Nope"],
    }


def test_participants_empty_inputs():
    directory = InMemoryDirectory()
    participants = run(resolve_participants(directory, None, [], None))
    assert participants.user_ids == participants.department_ids == participants.unit_ids == []
    assert directory.calls == []
