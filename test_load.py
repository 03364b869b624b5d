"""Sales persistence"""
import logging

from backend.ingest.load import SalesLoader
from backend.ingest.models import ReferenceMaps
from conftest import make_tx


def test_rows_carry_upload_and_location(store):
    maps = ReferenceMaps(locations={"sw_02": "loc-1"}, products={"889392014": "prod-1"})

    assert SalesLoader(store).load([make_tx()], "u1", maps) == 1

    [row] = store.tables["sales_transactions"]
    assert row["csv_upload_id"] == "u1"
    assert row["location_id"] == "loc-1"


def test_unresolved_location_is_logged(store, caplog):
    maps = ReferenceMaps(locations={"sw_02": "loc-1"}, products={})
    txs = [make_tx(), make_tx(location_code="ne_01")]

    with caplog.at_level(logging.WARNING):
        SalesLoader(store).load(txs, "u1", maps)

    assert "1 sales rows saved without a location_id" in caplog.text
    assert "ne_01" in caplog.text
    assert [r["location_id"] for r in store.tables["sales_transactions"]] == ["loc-1", None]


def test_resolved_batch_logs_no_warning(store, caplog):
    maps = ReferenceMaps(locations={"sw_02": "loc-1"}, products={})
    with caplog.at_level(logging.WARNING):
        SalesLoader(store).load([make_tx()], "u1", maps)
    assert caplog.records == []
