from __future__ import annotations

import logging
from typing import AsyncIterator, Sequence

from ..logic.engine import LogicEngine
from ..logic.errors import InvalidRuleError
from ..logic.marshal import parse_link, parse_link_to_json
from ..logic.registry import get_engine
from ..logic.session import Session, Thread
from ..logic.terms import escape
from ..project.models import DependencyType, Project, Workspace, parse_ident, stringify_ident
from .database import build_declarations, build_project_database, link_project
from .schema import ConstraintsResult, EnforcedDependency, EnforcedField

logger = logging.getLogger(__name__)

ENFORCED_DEPENDENCIES_QUERY = (
    "workspace(WorkspaceCwd), dependency_type(DependencyType), "
    "gen_enforced_dependency(WorkspaceCwd, DependencyIdent, DependencyRange, DependencyType)."
)

ENFORCED_FIELDS_QUERY = (
    "workspace(WorkspaceCwd), gen_enforced_field(WorkspaceCwd, FieldPath, FieldValue)."
)


def build_query_text(query: str, context: Sequence[tuple[str, str | None]] | None = None) -> str:
    """Prefix `query` with `Name = 'Value', ` goals and end it with one period."""
    prefix = ""
    for name, value in context or ():
        rendered = "null" if value is None else escape(value)
        prefix += f"{name} = {rendered}, "

    body = f"{prefix}{query}".rstrip()
    while body.endswith("."):
        body = body[:-1].rstrip()
    return f"{body}."


class Constraints:
    """Evaluate the project's rule source against its workspaces."""

    def __init__(self, project: Project, *, engine: LogicEngine | None = None):
        self.project = project
        self.engine = engine
        self.source = ""

        constraints_path = project.configuration.constraints_path
        if constraints_path.exists():
            self.source = constraints_path.read_text(encoding="utf-8")
            logger.debug("Loaded rules from %s", constraints_path)

    @classmethod
    def find(cls, project: Project) -> "Constraints":
        return cls(project)

    def get_project_database(self) -> str:
        return build_project_database(self.project)

    def get_declarations(self) -> str:
        return build_declarations()

    @property
    def full_source(self) -> str:
        return f"{self.get_project_database()}\n{self.source}\n{self.get_declarations()}"

    def _engine(self) -> LogicEngine:
        if self.engine is None:
            self.engine = get_engine(self.project.configuration.logic_engine)
        return self.engine

    async def create_session(self) -> Session:
        session = Session(self._engine())
        await session.init(link_project(self.project), self.full_source)
        return session

    async def process(self) -> ConstraintsResult:
        session = await self.create_session()
        try:
            return ConstraintsResult(
                enforced_dependencies=await self._gen_enforced_dependencies(session.main),
                enforced_fields=await self._gen_enforced_fields(session.main),
            )
        finally:
            session.close()

    def _workspace(self, raw_cwd: str | None) -> Workspace:
        if raw_cwd is None:
            raise InvalidRuleError("Invalid rule: missing workspace")
        # Rules may spell the same workspace as './packages/app' or 'packages/app/'
        project_cwd = self.project.cwd.resolve()
        try:
            relative_cwd = (project_cwd / raw_cwd).resolve().relative_to(project_cwd).as_posix()
            return self.project.get_workspace_by_cwd(relative_cwd)
        except (KeyError, ValueError) as e:
            raise InvalidRuleError(f"Invalid rule: unknown workspace {raw_cwd!r}") from e

    async def _gen_enforced_dependencies(self, thread: Thread) -> list[EnforcedDependency]:
        enforced_dependencies: list[EnforcedDependency] = []

        async for links in thread.make_query(ENFORCED_DEPENDENCIES_QUERY):
            raw_cwd = parse_link(links["WorkspaceCwd"])
            raw_ident = parse_link(links["DependencyIdent"])
            dependency_range = parse_link(links["DependencyRange"])
            raw_type = parse_link(links["DependencyType"])

            if raw_cwd is None or raw_ident is None:
                raise InvalidRuleError("Invalid rule: missing workspace or dependency ident")

            workspace = self._workspace(raw_cwd)
            try:
                dependency_ident = parse_ident(raw_ident)
                dependency_type = DependencyType(raw_type)
            except ValueError as e:
                raise InvalidRuleError(f"Invalid rule: {e}") from e

            enforced_dependencies.append(
                EnforcedDependency(
                    workspace=workspace,
                    dependency_ident=dependency_ident,
                    dependency_range=dependency_range,
                    dependency_type=dependency_type,
                )
            )

        return sorted(
            enforced_dependencies,
            key=lambda d: (
                d.dependency_range is None,
                stringify_ident(d.workspace.ident),
                stringify_ident(d.dependency_ident),
                d.dependency_range or "",
                d.dependency_type.value,
            ),
        )

    async def _gen_enforced_fields(self, thread: Thread) -> list[EnforcedField]:
        enforced_fields: list[EnforcedField] = []

        async for links in thread.make_query(ENFORCED_FIELDS_QUERY):
            raw_cwd = parse_link(links["WorkspaceCwd"])
            field_path = parse_link(links["FieldPath"])
            field_value = parse_link_to_json(links["FieldValue"])

            if raw_cwd is None or field_path is None:
                raise InvalidRuleError("Invalid rule: missing workspace or field path")

            enforced_fields.append(
                EnforcedField(
                    workspace=self._workspace(raw_cwd),
                    field_path=field_path,
                    field_value=field_value,
                )
            )

        return sorted(
            enforced_fields,
            key=lambda f: (
                stringify_ident(f.workspace.ident),
                f.field_path,
                f.field_value is None,
                f.field_value or "",
            ),
        )

    async def query(
        self,
        query: str,
        *,
        context: Sequence[tuple[str, str | None]] | None = None,
        session: Session | None = None,
    ) -> AsyncIterator[dict[str, str | None]]:
        """Run an ad hoc query, yielding `{variable: value}` per answer.

        Without `session`, a fresh one is created and closed once the
        answers are exhausted or the consumer stops iterating.
        """
        owned = session is None
        if owned:
            session = await self.create_session()
            thread = session.main
        else:
            thread = session.create_thread()

        try:
            async for links in thread.make_query(build_query_text(query, context)):
                yield {name: parse_link(value) for name, value in links.items() if name != "_"}
        finally:
            if owned:
                session.close()
