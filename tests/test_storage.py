"""Tests for cart storage: record codec, local/remote backends, selection, SQLAlchemy store."""

import json
from dataclasses import replace

import pytest

from cartflow import CartEntry, CartErrorKind, Error, Ok
from cartflow import storage as St


def unwrap(result):
    match result:
        case Ok(value):
            return value
        case Error(e):
            pytest.fail(f"unexpected error: {e}")


def unwrap_error(result):
    match result:
        case Error(e):
            return e
        case Ok(value):
            pytest.fail(f"expected an error, got {value!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Record codec
# ═══════════════════════════════════════════════════════════════════════════════


class TestCartRecord:
    def test_encoded_record_is_versioned(self, book):
        payload = json.loads(St.encode_cart_record([CartEntry(book, 2)]))

        assert payload["version"] == St.CART_RECORD_VERSION
        assert payload["entries"][0]["quantity"] == 2
        assert payload["entries"][0]["product"]["id"] == "book-1"

    def test_decode_restores_entries(self, book, cd):
        payload = St.encode_cart_record([CartEntry(cd, 1), CartEntry(book, 2)])

        entries = unwrap(St.decode_cart_record(payload))

        assert [e.product_id for e in entries] == ["book-1", "cd-2"]
        assert entries[0].product == book

    def test_unversioned_list_is_read_as_legacy_layout(self):
        legacy = json.dumps(
            [
                {
                    "product": {
                        "productID": 7,
                        "title": "Norwegian Wood",
                        "price": 120000,
                        "quantity": 4,
                        "category": "BOOK",
                        "eligible": True,
                    },
                    "quantity": 2,
                }
            ]
        )

        entries = unwrap(St.decode_cart_record(legacy))

        assert len(entries) == 1
        assert entries[0].product_id == "7"
        assert entries[0].product.stock == 4
        assert entries[0].product.rush_eligible is True
        assert entries[0].quantity == 2

    def test_non_positive_quantities_are_dropped(self, book, cd):
        payload = json.loads(St.encode_cart_record([CartEntry(book, 1), CartEntry(cd, 1)]))
        payload["entries"][1]["quantity"] = 0

        entries = unwrap(St.decode_cart_record(json.dumps(payload)))

        assert [e.product_id for e in entries] == ["book-1"]

    def test_newer_version_is_a_storage_error(self):
        error = unwrap_error(St.decode_cart_record('{"version": 99, "entries": []}'))
        assert error.kind is CartErrorKind.STORAGE

    def test_malformed_record_is_a_storage_error(self):
        error = unwrap_error(St.decode_cart_record("{not json"))
        assert error.kind is CartErrorKind.STORAGE


# ═══════════════════════════════════════════════════════════════════════════════
# Local backend
# ═══════════════════════════════════════════════════════════════════════════════


class TestLocalBackend:
    async def test_upsert_persists_before_returning(self, local, records, book):
        unwrap(await local.upsert(book, 3))

        payload = unwrap(await records.load("aims_cart_items"))
        assert payload is not None
        assert json.loads(payload)["entries"][0]["quantity"] == 3

    async def test_upsert_overwrites_existing_entry(self, local, book):
        await local.upsert(book, 3)
        await local.upsert(book, 1)

        entries = unwrap(await local.list())
        assert [(e.product_id, e.quantity) for e in entries] == [("book-1", 1)]

    async def test_upsert_rejects_non_positive_quantity(self, local, book):
        error = unwrap_error(await local.upsert(book, 0))
        assert error.kind is CartErrorKind.VALIDATION

    async def test_remove_is_idempotent(self, local, book, cd):
        await local.upsert(book, 1)
        await local.upsert(cd, 1)

        unwrap(await local.remove("book-1"))
        once = unwrap(await local.list())
        unwrap(await local.remove("book-1"))
        twice = unwrap(await local.list())

        assert once == twice
        assert [e.product_id for e in twice] == ["cd-2"]

    async def test_clear_deletes_the_record(self, local, records, book):
        await local.upsert(book, 1)

        unwrap(await local.clear())

        assert unwrap(await records.load("aims_cart_items")) is None
        assert unwrap(await local.list()) == []

    async def test_list_keeps_stale_snapshot_without_refresh(self, local, catalog, book):
        await local.upsert(book, 1)
        catalog.products["book-1"] = replace(book, price=90_000)

        entries = unwrap(await local.list())

        assert entries[0].product.price == 100_000

    async def test_refresh_uses_live_snapshots_and_rewrites(self, local, records, catalog, book):
        await local.upsert(book, 1)
        catalog.products["book-1"] = replace(book, price=90_000)

        entries = unwrap(await local.list(refresh=True))

        assert entries[0].product.price == 90_000
        stored = json.loads(unwrap(await records.load("aims_cart_items")))
        assert stored["entries"][0]["product"]["price"] == 90_000

    async def test_refresh_drops_delisted_products(self, local, catalog, book, cd):
        await local.upsert(book, 1)
        await local.upsert(cd, 1)
        del catalog.products["cd-2"]

        entries = unwrap(await local.list(refresh=True))

        assert [e.product_id for e in entries] == ["book-1"]

    async def test_refresh_keeps_snapshot_when_catalog_is_down(self, local, catalog, book):
        await local.upsert(book, 1)
        catalog.fail = True

        entries = unwrap(await local.list(refresh=True))

        assert entries == [CartEntry(book, 1)]

    async def test_refresh_without_catalog_returns_stored_entries(self, records, book):
        backend = St.LocalBackend(records)
        await backend.upsert(book, 2)

        entries = unwrap(await backend.list(refresh=True))

        assert entries == [CartEntry(book, 2)]

    async def test_legacy_record_is_migrated_on_next_write(self, local, records, cd):
        legacy = [{"product": {"productID": "book-1", "title": "Old", "price": 1}, "quantity": 1}]
        await records.save("aims_cart_items", json.dumps(legacy))

        unwrap(await local.upsert(cd, 1))

        stored = json.loads(unwrap(await records.load("aims_cart_items")))
        assert stored["version"] == St.CART_RECORD_VERSION
        assert [e["product"]["id"] for e in stored["entries"]] == ["book-1", "cd-2"]

    async def test_write_failure_surfaces(self, failing_records, book):
        backend = St.LocalBackend(failing_records)

        error = unwrap_error(await backend.upsert(book, 1))

        assert error.kind is CartErrorKind.STORAGE
        assert error.is_retryable


# ═══════════════════════════════════════════════════════════════════════════════
# Remote backend
# ═══════════════════════════════════════════════════════════════════════════════


class TestRemoteBackend:
    async def test_upsert_and_list(self, remote, book):
        stored = unwrap(await remote.upsert(book, 2))
        entries = unwrap(await remote.list())

        assert stored == CartEntry(book, 2)
        assert entries == [CartEntry(book, 2)]

    async def test_list_refetches_live_snapshots(self, remote, api, catalog, book):
        await remote.upsert(book, 1)
        catalog.products["book-1"] = replace(book, price=80_000, stock=1)

        entries = unwrap(await remote.list())

        assert entries[0].product.price == 80_000
        assert entries[0].product.stock == 1

    async def test_stock_rejection_is_distinguishable(self, remote, book):
        error = unwrap_error(await remote.upsert(book, 11))

        assert error.kind is CartErrorKind.STOCK_INSUFFICIENT
        assert error.shortfalls[0].requested == 11
        assert error.shortfalls[0].available == 10

    async def test_network_failure_is_unavailable(self, remote, api, book):
        api.fail = True

        error = unwrap_error(await remote.upsert(book, 1))

        assert error.kind is CartErrorKind.UNAVAILABLE
        assert error.is_retryable

    async def test_removing_absent_item_is_not_an_error(self, remote):
        assert unwrap(await remote.remove("book-1")) is None

    async def test_remove(self, remote, api, book, cd):
        await remote.upsert(book, 1)
        await remote.upsert(cd, 1)

        unwrap(await remote.remove("book-1"))

        assert api.quantities == {"cd-2": 1}

    async def test_remove_network_failure_is_unavailable(self, remote, api, book):
        await remote.upsert(book, 1)
        api.fail = True

        error = unwrap_error(await remote.remove("book-1"))

        assert error.kind is CartErrorKind.UNAVAILABLE
        assert api.quantities == {"book-1": 1}

    async def test_unexpected_item_shape_is_invalid_response(self, remote, api):
        async def broken():
            return [{"productId": "book-1", "quantity": 1}]

        api.get_items = broken

        error = unwrap_error(await remote.list())
        assert error.kind is CartErrorKind.INVALID_RESPONSE

    async def test_clear(self, remote, api, book, cd):
        await remote.upsert(book, 1)
        await remote.upsert(cd, 1)

        unwrap(await remote.clear())

        assert api.quantities == {}


# ═══════════════════════════════════════════════════════════════════════════════
# Backend selection
# ═══════════════════════════════════════════════════════════════════════════════


class TestBackendSelector:
    def test_resolves_local_when_anonymous(self, selector):
        assert selector.resolve().kind is St.BackendKind.LOCAL

    def test_resolves_remote_when_authenticated(self, selector, auth):
        auth.login()
        assert selector.resolve().kind is St.BackendKind.REMOTE

    def test_resolution_follows_every_transition(self, selector, auth):
        auth.login()
        auth.logout()
        assert selector.resolve().kind is St.BackendKind.LOCAL

    def test_subscribers_see_only_real_changes(self, auth):
        seen = []
        unsubscribe = auth.subscribe(seen.append)

        auth.login()
        auth.login()
        auth.logout()
        unsubscribe()
        auth.login()

        assert seen == [True, False]


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemy record store
# ═══════════════════════════════════════════════════════════════════════════════


class TestSQLAlchemyRecordStore:
    @pytest.fixture
    def url(self, tmp_path):
        return f"sqlite+aiosqlite:///{tmp_path / 'cart.db'}"

    async def test_save_load_delete(self, url):
        store, engine = await St.create_record_store(url)
        try:
            assert unwrap(await store.load("k")) is None
            unwrap(await store.save("k", "one"))
            unwrap(await store.save("k", "two"))
            assert unwrap(await store.load("k")) == "two"
            assert unwrap(await store.delete("k")) is True
            assert unwrap(await store.delete("k")) is False
        finally:
            await engine.dispose()

    async def test_local_cart_survives_restart(self, url, book):
        store, engine = await St.create_record_store(url)
        try:
            unwrap(await St.LocalBackend(store).upsert(book, 2))
        finally:
            await engine.dispose()

        store, engine = await St.create_record_store(url)
        try:
            entries = unwrap(await St.LocalBackend(store).list())
        finally:
            await engine.dispose()

        assert entries == [CartEntry(book, 2)]
