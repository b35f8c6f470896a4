from csv_gateway.core.registry import QueryRegistry
from csv_gateway.core.schemas import QueryDefinition


def make_registry():
    return QueryRegistry(
        [
            QueryDefinition(name="Users", query="SELECT id, name FROM users"),
            QueryDefinition(name="orders", query="SELECT * FROM orders"),
            QueryDefinition(name="USERS", query="SELECT 'shadowed'"),
        ]
    )


def test_lookup_ignores_case():
    registry = make_registry()
    for query_id in ("users", "USERS", "Users", "uSERS"):
        definition = registry.lookup(query_id)
        assert definition is not None
        assert definition.statement == "SELECT id, name FROM users"


def test_lookup_returns_first_match_in_load_order():
    """Duplicate names are allowed, the earliest definition wins"""
    assert make_registry().lookup("users").name == "Users"


def test_lookup_miss_returns_none():
    registry = make_registry()
    assert registry.lookup("unknown") is None
    assert registry.lookup("") is None
    assert registry.lookup(None) is None
    assert registry.lookup("user") is None


def test_names_keep_definition_order():
    registry = make_registry()
    assert registry.names() == ["Users", "orders", "USERS"]
    assert len(registry) == 3
