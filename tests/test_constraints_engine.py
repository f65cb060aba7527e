"""
Tests for the Constraints orchestration layer.

The scripted engine returns canned answers for the two canonical queries,
so these tests cover marshalling, validation and ordering only.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from workspace_constraints.config import CONFIG_FILENAME
from workspace_constraints.constraints import Constraints, build_query_text
from workspace_constraints.constraints.engine import ENFORCED_DEPENDENCIES_QUERY, ENFORCED_FIELDS_QUERY
from workspace_constraints.logic.engine import SUPPORT_LIBRARY, Answer
from workspace_constraints.logic.errors import InvalidRuleError, LogicInstantiationError
from workspace_constraints.logic.terms import NIL, NULL, Num, Term
from workspace_constraints.project.loader import load_project
from workspace_constraints.project.models import DependencyType, stringify_ident

from conftest import ScriptedEngine


def _dependency(cwd: str, ident: str, range_: Term, dependency_type: str) -> Answer:
    return Answer(
        links={
            "WorkspaceCwd": Term(cwd),
            "DependencyIdent": Term(ident),
            "DependencyRange": range_,
            "DependencyType": Term(dependency_type),
        }
    )


def _field(cwd: str, path: str, value: Term | Num) -> Answer:
    return Answer(links={"WorkspaceCwd": Term(cwd), "FieldPath": Term(path), "FieldValue": value})


def test_rule_source_is_read_from_configured_path(project_path: Path) -> None:
    (project_path / "rules").mkdir()
    (project_path / "rules" / "policy.pro").write_text("gen_enforced_field(_, 'x', 'y').\n", encoding="utf-8")
    (project_path / CONFIG_FILENAME).write_text("constraintsPath: rules/policy.pro\n", encoding="utf-8")

    constraints = Constraints.find(load_project(project_path))

    assert constraints.source == "gen_enforced_field(_, 'x', 'y').\n"
    assert constraints.full_source.index("workspace_has_dependency(_, _, _, _) :- false.") < constraints.full_source.index(
        "gen_enforced_field(_, 'x', 'y')."
    )
    assert constraints.full_source.endswith("gen_enforced_field(_, _, _) :- false.\n")


def test_missing_rule_file_means_empty_source(project_path: Path) -> None:
    constraints = Constraints(load_project(project_path))

    assert constraints.source == ""


def test_create_session_consults_linkage_library_and_full_source(project_path: Path) -> None:
    engine = ScriptedEngine()
    constraints = Constraints(load_project(project_path), engine=engine)

    asyncio.run(constraints.create_session())

    assert len(engine.consulted) == 3
    assert engine.consulted[0].startswith("workspace_field(")
    assert engine.consulted[1] == SUPPORT_LIBRARY
    assert engine.consulted[2] == constraints.full_source


def test_process_empty_answers(project_path: Path) -> None:
    engine = ScriptedEngine()
    constraints = Constraints(load_project(project_path), engine=engine)

    result = asyncio.run(constraints.process())

    assert result.enforced_dependencies == []
    assert result.enforced_fields == []
    assert engine.queries == [ENFORCED_DEPENDENCIES_QUERY, ENFORCED_FIELDS_QUERY]
    assert engine.closed == 1


def test_process_sorts_enforced_dependencies(project_path: Path) -> None:
    engine = ScriptedEngine(
        {
            ENFORCED_DEPENDENCIES_QUERY: [
                _dependency("packages/lib", "react", NULL, "peerDependencies"),
                _dependency("packages/lib", "lodash", Term("^4.17.21"), "dependencies"),
                _dependency("packages/app", "zod", Term("^3.0.0"), "dependencies"),
                _dependency("packages/app", "lodash", NULL, "devDependencies"),
                _dependency("packages/app", "lodash", Term("^4.17.21"), "dependencies"),
            ]
        }
    )
    constraints = Constraints(load_project(project_path), engine=engine)

    result = asyncio.run(constraints.process())

    assert [
        (stringify_ident(d.workspace.ident), stringify_ident(d.dependency_ident), d.dependency_range)
        for d in result.enforced_dependencies
    ] == [
        ("@acme/app", "lodash", "^4.17.21"),
        ("@acme/app", "zod", "^3.0.0"),
        ("@acme/lib", "lodash", "^4.17.21"),
        ("@acme/app", "lodash", None),
        ("@acme/lib", "react", None),
    ]
    assert result.enforced_dependencies[0].dependency_type is DependencyType.DEPENDENCIES
    assert result.enforced_dependencies[0].workspace.relative_cwd == "packages/app"


def test_null_range_sorts_after_non_null_for_same_dependency(project_path: Path) -> None:
    answers = [
        _dependency("packages/app", "lodash", NULL, "dependencies"),
        _dependency("packages/app", "lodash", Term("^4.0.0"), "dependencies"),
    ]
    forward = ScriptedEngine({ENFORCED_DEPENDENCIES_QUERY: answers})
    backward = ScriptedEngine({ENFORCED_DEPENDENCIES_QUERY: list(reversed(answers))})
    project = load_project(project_path)

    first = asyncio.run(Constraints(project, engine=forward).process())
    second = asyncio.run(Constraints(project, engine=backward).process())

    assert [d.dependency_range for d in first.enforced_dependencies] == ["^4.0.0", None]
    assert first.enforced_dependencies == second.enforced_dependencies


def test_process_sorts_and_marshals_enforced_fields(project_path: Path) -> None:
    engine = ScriptedEngine(
        {
            ENFORCED_FIELDS_QUERY: [
                _field("packages/lib", "license", Term("MIT")),
                _field("packages/app", "publishConfig", Term('{"access": "public"}')),
                _field("packages/app", "license", Term("MIT")),
                _field("packages/app", "private", NULL),
                _field("packages/lib", "engines.node", Num(18)),
            ]
        }
    )
    constraints = Constraints(load_project(project_path), engine=engine)

    result = asyncio.run(constraints.process())

    assert [
        (f.workspace.relative_cwd, f.field_path, f.field_value) for f in result.enforced_fields
    ] == [
        ("packages/app", "license", '"MIT"'),
        ("packages/app", "private", None),
        ("packages/app", "publishConfig", '{"access":"public"}'),
        ("packages/lib", "engines.node", "18"),
        ("packages/lib", "license", '"MIT"'),
    ]


@pytest.mark.parametrize(
    "answer",
    [
        Answer(
            links={
                "WorkspaceCwd": Term("packages/app"),
                "DependencyIdent": NULL,
                "DependencyRange": NIL,
                "DependencyType": Term("dependencies"),
            }
        ),
        _dependency("packages/app", "not a valid ident!", NULL, "dependencies"),
        _dependency("packages/nowhere", "lodash", NULL, "dependencies"),
        _dependency("packages/app", "lodash", NULL, "optionalDependencies"),
    ],
)
def test_invalid_dependency_answers_raise(project_path: Path, answer: Answer) -> None:
    engine = ScriptedEngine({ENFORCED_DEPENDENCIES_QUERY: [answer]})
    constraints = Constraints(load_project(project_path), engine=engine)

    with pytest.raises(InvalidRuleError):
        asyncio.run(constraints.process())


@pytest.mark.parametrize("cwd", ["packages/app/", "./packages/app", "packages/lib/../app"])
def test_workspace_paths_are_resolved_against_project_root(project_path: Path, cwd: str) -> None:
    engine = ScriptedEngine({ENFORCED_FIELDS_QUERY: [_field(cwd, "license", Term("MIT"))]})
    constraints = Constraints(load_project(project_path), engine=engine)

    result = asyncio.run(constraints.process())

    assert [f.workspace.relative_cwd for f in result.enforced_fields] == ["packages/app"]


@pytest.mark.parametrize("cwd", [".", "./"])
def test_root_workspace_path_variants(project_path: Path, cwd: str) -> None:
    engine = ScriptedEngine({ENFORCED_FIELDS_QUERY: [_field(cwd, "license", Term("MIT"))]})
    constraints = Constraints(load_project(project_path), engine=engine)

    result = asyncio.run(constraints.process())

    assert [f.workspace.relative_cwd for f in result.enforced_fields] == ["."]


def test_workspace_outside_project_raises(project_path: Path) -> None:
    engine = ScriptedEngine({ENFORCED_FIELDS_QUERY: [_field("../elsewhere", "license", Term("MIT"))]})
    constraints = Constraints(load_project(project_path), engine=engine)

    with pytest.raises(InvalidRuleError, match="unknown workspace"):
        asyncio.run(constraints.process())


def test_missing_field_path_raises(project_path: Path) -> None:
    answer = Answer(links={"WorkspaceCwd": Term("packages/app"), "FieldPath": NULL, "FieldValue": Term("y")})
    engine = ScriptedEngine({ENFORCED_FIELDS_QUERY: [answer]})
    constraints = Constraints(load_project(project_path), engine=engine)

    with pytest.raises(InvalidRuleError):
        asyncio.run(constraints.process())


def test_thrown_answer_aborts_process(project_path: Path) -> None:
    engine = ScriptedEngine(
        {ENFORCED_DEPENDENCIES_QUERY: [Answer(thrown=Term("error", (Term("instantiation_error"),)))]}
    )
    constraints = Constraints(load_project(project_path), engine=engine)

    with pytest.raises(LogicInstantiationError):
        asyncio.run(constraints.process())

    assert engine.closed == 1


def test_build_query_text() -> None:
    assert build_query_text("bar(Name,X)", [("Name", "foo")]) == "Name = 'foo', bar(Name,X)."
    assert build_query_text("bar(X).") == "bar(X)."
    assert build_query_text("bar(X)..  ") == "bar(X)."
    assert build_query_text("bar(A, B)", [("A", "x"), ("B", None)]) == "A = 'x', B = null, bar(A, B)."
    assert build_query_text("bar(A)", [("A", "it's")]) == "A = 'it\\'s', bar(A)."


def test_query_with_context_uses_new_session(project_path: Path) -> None:
    engine = ScriptedEngine(
        {
            "Name = 'foo', bar(Name,X).": [
                Answer(links={"Name": Term("foo"), "X": Term("1"), "_": Term("ignored")}),
                Answer(links={"Name": Term("foo"), "X": NULL}),
            ]
        }
    )
    constraints = Constraints(load_project(project_path), engine=engine)

    async def scenario() -> list:
        return [row async for row in constraints.query("bar(Name,X)", context=[["Name", "foo"]])]

    rows = asyncio.run(scenario())

    assert engine.queries == ["Name = 'foo', bar(Name,X)."]
    assert engine.sessions == 1
    assert engine.closed == 1
    assert rows == [{"Name": "foo", "X": "1"}, {"Name": "foo", "X": None}]


def test_query_reuses_given_session(project_path: Path) -> None:
    engine = ScriptedEngine({"workspace(W).": [Answer(links={"W": Term(".")})]})
    constraints = Constraints(load_project(project_path), engine=engine)

    async def scenario() -> tuple[list, list]:
        session = await constraints.create_session()
        first = [row async for row in constraints.query("workspace(W)", session=session)]
        second = [row async for row in constraints.query("workspace(W)", session=session)]
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second == [{"W": "."}]
    assert engine.sessions == 1
    assert engine.closed == 0


def test_query_closes_its_session_when_consumer_stops_early(project_path: Path) -> None:
    engine = ScriptedEngine(
        {"workspace(W).": [Answer(links={"W": Term(".")}), Answer(links={"W": Term("packages/app")})]}
    )
    constraints = Constraints(load_project(project_path), engine=engine)

    async def scenario() -> dict:
        rows = constraints.query("workspace(W)")
        first = await rows.__anext__()
        assert engine.closed == 0
        await rows.aclose()
        return first

    assert asyncio.run(scenario()) == {"W": "."}
    assert engine.closed == 1


def test_failed_session_init_is_closed(project_path: Path) -> None:
    engine = ScriptedEngine(consult_errors={2: Term("error", (Term("instantiation_error"),))})
    constraints = Constraints(load_project(project_path), engine=engine)

    with pytest.raises(LogicInstantiationError):
        asyncio.run(constraints.process())

    assert engine.queries == []
    assert engine.closed == 1
