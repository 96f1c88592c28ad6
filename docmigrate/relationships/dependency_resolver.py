# ==============================================
# DependencyResolver
# ==============================================
#
# PURPOSE:
#   Order destination tables so that every referenced table is
#   populated before the tables that reference it.
#
# CLASS: DependencyResolver
# -------------------------
#   Stateless.
#
#   Methods:
#   --------
#   - insertion_order(table_names, relationships) -> list[str]
#       Kahn's topological sort over the graph restricted to edges
#       whose both ends are in `table_names`:
#         referenced_table → table_name
#       Ready tables are taken by their position in `table_names`,
#       so equal inputs always give equal outputs.
#       Tables left over by a cycle are appended in input order.
#       The result is always a permutation of `table_names`.
#
# GRAPH:
# ------
#   successors: dict[str, set[str]]  (adjacency sets)
#   in_degree:  dict[str, int]
#   Duplicate edges count once; self-references are ignored.
#
# ==============================================

import heapq
import logging
from typing import Dict, Iterable, List, Set

from docmigrate.analysis.schema import TableRelationship

logger = logging.getLogger(__name__)


class DependencyResolver:
    """
    Computes a deterministic, cycle-tolerant table insertion order.
    """

    def insertion_order(
        self,
        table_names: Iterable[str],
        relationships: Iterable[TableRelationship],
    ) -> List[str]:
        """
        Args:
            table_names: Tables to order; repeated names are kept once
            relationships: Dependency edges, possibly with duplicates or
                           references to tables outside `table_names`

        Returns:
            Every table exactly once, dependencies first
        """
        tables = list(dict.fromkeys(table_names))
        position = {table: index for index, table in enumerate(tables)}

        successors: Dict[str, Set[str]] = {table: set() for table in tables}
        in_degree: Dict[str, int] = {table: 0 for table in tables}

        for rel in relationships:
            dependent, dependency = rel.table_name, rel.referenced_table
            if dependent not in position or dependency not in position:
                continue
            if dependent == dependency:
                continue
            if dependent in successors[dependency]:
                continue
            successors[dependency].add(dependent)
            in_degree[dependent] += 1

        ready = [position[table] for table in tables if in_degree[table] == 0]
        heapq.heapify(ready)
        order: List[str] = []

        while ready:
            table = tables[heapq.heappop(ready)]
            order.append(table)
            for dependent in successors[table]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, position[dependent])

        if len(order) < len(tables):
            resolved = set(order)
            remaining = [table for table in tables if table not in resolved]
            logger.warning(
                f"Circular dependencies detected between tables: {', '.join(remaining)}"
            )
            order.extend(remaining)

        logger.info(f"Table insertion order: {' -> '.join(order)}")
        return order
