# ==============================================
# Tests for DependencyResolver
# ==============================================
#
# Topological insertion order with cycle tolerance.
# ==============================================

import itertools

import pytest

from docmigrate.analysis import TableRelationship
from docmigrate.relationships import DependencyResolver


def rel(table, referenced, column="ref_id", referenced_column="id"):
    return TableRelationship(
        table_name=table,
        referenced_table=referenced,
        column_name=column,
        referenced_column=referenced_column,
    )


@pytest.fixture
def resolver():
    return DependencyResolver()


@pytest.fixture
def blog_relationships():
    return [
        rel("posts", "users", "author_id"),
        rel("comments", "posts", "post_id"),
        rel("comments", "users", "user_id"),
    ]


class TestOrdering:
    """Referenced tables come first."""

    def test_blog_example(self, resolver, blog_relationships):
        order = resolver.insertion_order(["posts", "users", "comments"], blog_relationships)
        assert order.index("users") < order.index("posts")
        assert order.index("posts") < order.index("comments")
        assert order.index("users") < order.index("comments")

    @pytest.mark.parametrize("tables", list(itertools.permutations(["posts", "users", "comments"])))
    def test_every_input_order_respects_edges(self, resolver, blog_relationships, tables):
        order = resolver.insertion_order(list(tables), blog_relationships)
        assert order == ["users", "posts", "comments"]

    def test_no_relationships_keeps_input_order(self, resolver):
        assert resolver.insertion_order(["b", "a", "c"], []) == ["b", "a", "c"]

    def test_independent_tables_keep_input_order(self, resolver):
        order = resolver.insertion_order(["z", "posts", "a", "users"], [rel("posts", "users")])
        assert order == ["z", "a", "users", "posts"]

    def test_deterministic(self, resolver, blog_relationships):
        tables = ["comments", "posts", "users", "tags"]
        first = resolver.insertion_order(tables, blog_relationships)
        for _ in range(5):
            assert resolver.insertion_order(tables, blog_relationships) == first


class TestDegradedInput:
    """Cycles, dangling references and repeated edges never break the result."""

    def test_two_table_cycle(self, resolver):
        order = resolver.insertion_order(["a", "b"], [rel("a", "b"), rel("b", "a")])
        assert sorted(order) == ["a", "b"]
        assert order == ["a", "b"]

    def test_cycle_with_free_tables(self, resolver):
        relationships = [rel("a", "b"), rel("b", "a"), rel("c", "root")]
        order = resolver.insertion_order(["a", "b", "c", "root"], relationships)
        assert sorted(order) == ["a", "b", "c", "root"]
        assert order.index("root") < order.index("c")
        assert order[-2:] == ["a", "b"]

    def test_references_outside_table_set_are_ignored(self, resolver):
        order = resolver.insertion_order(["posts"], [rel("posts", "users"), rel("audit", "posts")])
        assert order == ["posts"]

    def test_duplicate_edges(self, resolver):
        relationships = [rel("posts", "users")] * 3 + [rel("comments", "posts")] * 2
        order = resolver.insertion_order(["comments", "posts", "users"], relationships)
        assert order == ["users", "posts", "comments"]

    def test_self_reference(self, resolver):
        order = resolver.insertion_order(
            ["employees", "departments"],
            [rel("employees", "employees", "manager_id"), rel("employees", "departments")],
        )
        assert order == ["departments", "employees"]

    def test_repeated_table_names_appear_once(self, resolver):
        assert resolver.insertion_order(["a", "a", "b"], []) == ["a", "b"]

    def test_result_is_permutation(self, resolver, blog_relationships):
        tables = ["comments", "users", "posts", "tags"]
        order = resolver.insertion_order(tables, blog_relationships + [rel("users", "comments")])
        assert sorted(order) == sorted(tables)
        assert len(order) == len(tables)
