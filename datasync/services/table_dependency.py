from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from datasync.errors import CircularDependencyError
from datasync.sqlmanager.shared import ForeignConstraint, dedupe

logger = logging.getLogger(__name__)


class RunType(str, Enum):
    INSERT = "insert"
    UPDATE = "update"


@dataclass(frozen=True)
class DependsOn:
    table: str
    columns: tuple[str, ...]


@dataclass(frozen=True)
class RunConfig:
    table: str
    run_type: RunType
    primary_keys: tuple[str, ...]
    select_columns: tuple[str, ...]
    insert_columns: tuple[str, ...]
    depends_on: tuple[DependsOn, ...]
    split: bool = False
    where_clause: Optional[str] = None


@dataclass(frozen=True)
class ReferenceKey:
    """A column that references a key column of another (or the same) table."""

    table: str
    column: str


@dataclass
class _TablePlan:
    index: int
    table: str
    insert: RunConfig
    update: RunConfig | None


class TableDependencyResolver:
    """Orders tables so that foreign keys are satisfied before dependent rows are written.

    Tables are handled as integer indices in schema enumeration order. Cycles are
    found with Tarjan's algorithm; a table whose circular foreign keys are all
    nullable is split into an insert pass without those columns and an update
    pass that fills them in once every table of the cycle has been inserted.
    """

    def __init__(
        self,
        dependency_map: Mapping[str, Sequence[ForeignConstraint]],
        primary_key_map: Mapping[str, Sequence[str]],
        table_columns_map: Mapping[str, Sequence[str]],
        where_clauses: Mapping[str, str] | None = None,
    ) -> None:
        self.tables: list[str] = list(table_columns_map)
        self.index: dict[str, int] = {table: idx for idx, table in enumerate(self.tables)}
        self.table_columns_map = table_columns_map
        self.primary_key_map = primary_key_map
        self.where_clauses = where_clauses or {}
        self.foreign_keys: list[list[ForeignConstraint]] = [
            self._filter_constraints(table, dependency_map.get(table, ())) for table in self.tables
        ]

    def build_run_configs(self) -> List[RunConfig]:
        adjacency = [
            sorted({self.index[constraint.foreign_key.table] for constraint in constraints})
            for constraints in self.foreign_keys
        ]
        components = _strongly_connected_components(adjacency)
        members: dict[int, list[int]] = {}
        for node, component in enumerate(components):
            members.setdefault(component, []).append(node)

        cyclic = [
            len(members[components[node]]) > 1 or node in adjacency[node] for node in range(len(self.tables))
        ]

        plans = [self._plan_table(node, components, cyclic[node]) for node in range(len(self.tables))]
        order = self._order(plans, components, members)

        if not is_valid_run_order(order):
            raise CircularDependencyError(
                "Unable to build table run order. Unsupported circular dependency detected.",
                tables=[config.table for config in order],
            )

        logger.debug(
            "Resolved %s run configs for %s tables (%s split)",
            len(order),
            len(self.tables),
            sum(1 for plan in plans if plan.update is not None),
        )
        return order

    def _filter_constraints(self, table: str, constraints: Iterable[ForeignConstraint]) -> list[ForeignConstraint]:
        kept: list[ForeignConstraint] = []
        for constraint in constraints:
            target = constraint.foreign_key.table
            if not target or not constraint.foreign_key.columns or not constraint.columns:
                continue
            if target not in self.index:
                # referenced table is not part of this job
                continue
            kept.append(constraint)
        return kept

    def _plan_table(self, node: int, components: list[int], is_cyclic: bool) -> _TablePlan:
        table = self.tables[node]
        constraints = self.foreign_keys[node]
        columns = tuple(dedupe(self.table_columns_map[table]))
        primary_keys = tuple(dedupe(self.primary_key_map.get(table, ())))
        where_clause = self.where_clauses.get(table)

        circular = [
            constraint
            for constraint in constraints
            if is_cyclic and components[self.index[constraint.foreign_key.table]] == components[node]
        ]
        deferred = [constraint for constraint in circular if constraint.is_nullable]
        kept = [constraint for constraint in constraints if constraint not in deferred]

        if any(constraint.foreign_key.table == table for constraint in kept):
            raise CircularDependencyError(
                f"Table {table} references itself through a NOT NULL foreign key and cannot be ordered.",
                tables=[table],
            )

        if not deferred:
            insert = RunConfig(
                table=table,
                run_type=RunType.INSERT,
                primary_keys=primary_keys,
                select_columns=columns,
                insert_columns=columns,
                depends_on=_depends_on(kept),
                where_clause=where_clause,
            )
            return _TablePlan(index=node, table=table, insert=insert, update=None)

        if not primary_keys:
            raise CircularDependencyError(
                f"Table {table} has circular foreign keys but no primary key to update deferred columns by.",
                tables=[table],
            )

        deferred_columns = tuple(dedupe(column for constraint in deferred for column in constraint.columns))
        insert = RunConfig(
            table=table,
            run_type=RunType.INSERT,
            primary_keys=primary_keys,
            select_columns=columns,
            insert_columns=tuple(column for column in columns if column not in deferred_columns),
            depends_on=_depends_on(kept),
            split=True,
            where_clause=where_clause,
        )
        update = RunConfig(
            table=table,
            run_type=RunType.UPDATE,
            primary_keys=primary_keys,
            select_columns=tuple(dedupe(primary_keys + deferred_columns)),
            insert_columns=deferred_columns,
            depends_on=tuple(dict.fromkeys((DependsOn(table=table, columns=primary_keys),) + _depends_on(deferred))),
            split=True,
            where_clause=where_clause,
        )
        return _TablePlan(index=node, table=table, insert=insert, update=update)

    def _order(
        self,
        plans: list[_TablePlan],
        components: list[int],
        members: dict[int, list[int]],
    ) -> list[RunConfig]:
        # node keys are (table index, 0 for insert / 1 for update)
        configs: dict[Tuple[int, int], RunConfig] = {}
        for plan in plans:
            configs[(plan.index, 0)] = plan.insert
            if plan.update is not None:
                configs[(plan.index, 1)] = plan.update

        predecessors: dict[Tuple[int, int], set[Tuple[int, int]]] = {key: set() for key in configs}
        for plan in plans:
            node = plan.index
            for dependency in plan.insert.depends_on:
                target = self.index[dependency.table]
                if components[target] == components[node]:
                    predecessors[(node, 0)].add((target, 0))
                else:
                    predecessors[(node, 0)].update(key for key in configs if key[0] == target)
            if plan.update is not None:
                predecessors[(node, 1)].update((member, 0) for member in members[components[node]])

        indegree = {key: len(preds) for key, preds in predecessors.items()}
        successors: dict[Tuple[int, int], list[Tuple[int, int]]] = {key: [] for key in configs}
        for key, preds in predecessors.items():
            for pred in preds:
                successors[pred].append(key)

        ready = [key for key, degree in indegree.items() if degree == 0]
        heapq.heapify(ready)
        order: list[RunConfig] = []

        while ready:
            current = heapq.heappop(ready)
            order.append(configs[current])
            for successor in successors[current]:
                indegree[successor] -= 1
                if indegree[successor] == 0:
                    heapq.heappush(ready, successor)

        if len(order) != len(configs):
            blocked = sorted({self.tables[key[0]] for key, degree in indegree.items() if degree > 0})
            raise CircularDependencyError(
                "Unable to build table run order. Circular dependency without a nullable foreign key: "
                + ", ".join(blocked),
                tables=blocked,
            )
        return order


def get_run_configs(
    dependency_map: Mapping[str, Sequence[ForeignConstraint]],
    primary_key_map: Mapping[str, Sequence[str]],
    table_columns_map: Mapping[str, Sequence[str]],
    where_clauses: Mapping[str, str] | None = None,
) -> List[RunConfig]:
    resolver = TableDependencyResolver(dependency_map, primary_key_map, table_columns_map, where_clauses)
    return resolver.build_run_configs()


def is_valid_run_order(configs: Sequence[RunConfig]) -> bool:
    """Return True when every dependency is written by an earlier run config."""

    completed: dict[str, set[str]] = {}
    for config in configs:
        for dependency in config.depends_on:
            written = completed.get(dependency.table)
            if written is None or not set(dependency.columns).issubset(written):
                return False
        completed.setdefault(config.table, set()).update(config.insert_columns)
    return True


def get_primary_key_dependency_map(
    dependency_map: Mapping[str, Sequence[ForeignConstraint]],
) -> dict[str, dict[str, list[ReferenceKey]]]:
    """Map each referenced table/column to the columns that point at it."""

    result: dict[str, dict[str, list[ReferenceKey]]] = {}
    for table, constraints in dependency_map.items():
        for constraint in constraints:
            foreign_key = constraint.foreign_key
            if not foreign_key.table or not foreign_key.columns:
                continue
            for referenced_column, column in zip(foreign_key.columns, constraint.columns):
                references = result.setdefault(foreign_key.table, {}).setdefault(referenced_column, [])
                references.append(ReferenceKey(table=table, column=column))
    return result


def filter_deferred_references(
    primary_key_dependency_map: Mapping[str, Mapping[str, Sequence[ReferenceKey]]],
    run_configs: Sequence[RunConfig],
) -> dict[str, dict[str, list[ReferenceKey]]]:
    """Keep only references made by columns that are filled in by an update pass."""

    deferred = {
        (config.table, column)
        for config in run_configs
        if config.run_type == RunType.UPDATE
        for column in config.insert_columns
    }
    result: dict[str, dict[str, list[ReferenceKey]]] = {}
    for table, columns in primary_key_dependency_map.items():
        for column, references in columns.items():
            kept = [reference for reference in references if (reference.table, reference.column) in deferred]
            if kept:
                result.setdefault(table, {})[column] = kept
    return result


def _depends_on(constraints: Iterable[ForeignConstraint]) -> tuple[DependsOn, ...]:
    dependencies: list[DependsOn] = []
    for constraint in constraints:
        dependency = DependsOn(table=constraint.foreign_key.table, columns=tuple(constraint.foreign_key.columns))
        if dependency not in dependencies:
            dependencies.append(dependency)
    return tuple(dependencies)


def _strongly_connected_components(adjacency: Sequence[Sequence[int]]) -> list[int]:
    """Return the component id of every node (iterative Tarjan)."""

    count = len(adjacency)
    index_of = [-1] * count
    lowlink = [0] * count
    on_stack = [False] * count
    component = [-1] * count
    stack: list[int] = []
    counter = 0
    component_count = 0

    for root in range(count):
        if index_of[root] != -1:
            continue
        work: list[Tuple[int, int]] = [(root, 0)]
        while work:
            node, position = work.pop()
            if position == 0:
                index_of[node] = lowlink[node] = counter
                counter += 1
                stack.append(node)
                on_stack[node] = True

            neighbours = adjacency[node]
            descended = False
            while position < len(neighbours):
                successor = neighbours[position]
                position += 1
                if index_of[successor] == -1:
                    work.append((node, position))
                    work.append((successor, 0))
                    descended = True
                    break
                if on_stack[successor]:
                    lowlink[node] = min(lowlink[node], index_of[successor])
            if descended:
                continue

            if lowlink[node] == index_of[node]:
                while True:
                    member = stack.pop()
                    on_stack[member] = False
                    component[member] = component_count
                    if member == node:
                        break
                component_count += 1

            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])

    return component
