import pytest

from chainbind import Container, NoSuchToken


def test_dotted_token_resolves_nested_value():
    c = Container({"db": {"host": "localhost", "port": 5432}})
    assert c.get("db.host") == "localhost"
    assert c.get("db.port") == 5432


def test_deeply_nested_token():
    c = Container({"a": {"b": {"c": "deep"}}})
    assert c.has("a.b.c")
    assert c.get("a.b.c") == "deep"


def test_literal_dotted_key_takes_precedence_over_nesting():
    c = Container({"db.host": "literal", "db": {"host": "nested"}})
    assert c.get("db.host") == "literal"


def test_walk_through_non_namespace_is_missing():
    c = Container({"db": "sqlite"})
    assert not c.has("db.host")
    with pytest.raises(NoSuchToken):
        c.get("db.host")


def test_namespace_token_resolves_to_dict():
    c = Container({"db": {"host": "localhost", "port": 5432}})
    assert c.get("db") == {"host": "localhost", "port": 5432}


def test_namespace_children_are_shared_with_dotted_lookup():
    class Pool: ...

    c = Container({"db": {"pool": Pool}})
    assert c.get("db")["pool"] is c.get("db.pool")


def test_nested_entries_may_depend_on_top_level_tokens():
    c = Container({"host": "localhost", "db": {"url": (lambda host: f"postgres://{host}", "host")}})
    assert c.get("db.url") == "postgres://localhost"


def test_child_overrides_dotted_token_inside_parent_namespace():
    parent = Container({"db": {"host": "prod", "port": 5432}})
    child = Container(parent, {"db.host": "test"})

    assert child.get("db") == {"host": "test", "port": 5432}
    assert parent.get("db") == {"host": "prod", "port": 5432}


def test_child_namespace_merges_with_parent_namespace():
    parent = Container({"db": {"host": "prod", "port": 5432}})
    child = Container(parent, {"db": {"host": "test"}})

    assert child.get("db.port") == 5432
    assert child.get("db") == {"host": "test", "port": 5432}
    assert parent.get("db") == {"host": "prod", "port": 5432}


def test_child_namespace_adds_keys():
    parent = Container({"db": {"host": "prod"}})
    child = Container(parent, {"db": {"user": "admin"}})

    assert child.get("db") == {"host": "prod", "user": "admin"}
    assert parent.get("db") == {"host": "prod"}


def test_grandchild_namespace_merges_whole_chain():
    root = Container({"db": {"host": "prod"}})
    middle = Container(root, {"db": {"port": 5432}})
    leaf = Container(middle, {"db": {"user": "admin"}})

    assert leaf.get("db") == {"host": "prod", "port": 5432, "user": "admin"}
