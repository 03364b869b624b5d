import pytest

from backend.ingest.errors import ResolutionError
from backend.ingest.resolve import ReferenceResolver, unique_in_order
from conftest import make_tx


def test_unique_in_order():
    assert unique_in_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_existing_entities_are_reused(store):
    loc = store.seed("locations", name="sw_02")
    prod = store.seed("products", sku="889392014", name="Celsius Arctic")

    maps = ReferenceResolver(store).resolve([make_tx(), make_tx()])

    assert maps.locations == {"sw_02": loc["id"]}
    assert maps.products == {"889392014": prod["id"]}
    assert "insert_locations" not in store.calls
    assert "insert_products" not in store.calls


def test_missing_entities_created_in_one_batch(store):
    txs = [make_tx("sw_02", "889392014"), make_tx("ne_01", "889392014"), make_tx("sw_02", "111111111")]

    maps = ReferenceResolver(store).resolve(txs)

    assert set(maps.locations) == {"sw_02", "ne_01"}
    assert set(maps.products) == {"889392014", "111111111"}
    assert store.calls.count("insert_locations") == 1
    assert store.calls.count("insert_products") == 1
    assert [r["name"] for r in store.tables["locations"]] == ["sw_02", "ne_01"]


def test_new_products_get_placeholder_name_and_zero_price(store):
    ReferenceResolver(store).resolve([make_tx(upc_code="123456789")])
    product = store.tables["products"][0]
    assert product["sku"] == "123456789"
    assert product["name"] == "Product 123456789"
    assert product["unit_price"] == 0


def test_batch_failure_falls_back_to_single_creates(store):
    store.fail_when["insert_locations"] = lambda rows: len(rows) > 1
    txs = [make_tx("a_1"), make_tx("b_2")]

    maps = ReferenceResolver(store).resolve(txs)

    assert set(maps.locations) == {"a_1", "b_2"}
    assert store.calls.count("insert_locations") == 3
    assert maps.unresolved_locations == []


def test_duplicate_create_is_refetched(store):
    # Another upload creates the location between our fetch and insert
    original_fetch = store.fetch_locations
    state = {"first": True}

    def racing_fetch(names):
        rows = original_fetch(names)
        if state["first"]:
            state["first"] = False
            store.seed("locations", name="sw_02")
        return rows

    store.fetch_locations = racing_fetch
    maps = ReferenceResolver(store).resolve([make_tx()])

    assert maps.locations["sw_02"] == store.tables["locations"][0]["id"]
    assert len(store.tables["locations"]) == 1


def test_unresolvable_key_is_left_out(store):
    store.fail_when["insert_products"] = lambda rows: any(r["sku"] == "222222222" for r in rows)
    txs = [make_tx(upc_code="111111111"), make_tx(upc_code="222222222")]

    maps = ReferenceResolver(store).resolve(txs)

    assert "111111111" in maps.products
    assert "222222222" not in maps.products
    assert maps.unresolved_products == ["222222222"]


def test_fetch_failure_is_batch_level(store):
    store.fail_when["fetch_locations"] = True
    with pytest.raises(ResolutionError) as exc:
        ReferenceResolver(store).resolve([make_tx()])
    assert exc.value.status_code == 500


def test_empty_batch_touches_nothing(store):
    maps = ReferenceResolver(store).resolve([])
    assert maps.locations == {} and maps.products == {}
    assert store.calls == []
