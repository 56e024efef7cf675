"""
Storage — where the cart lives, and which store is active.

    from cartflow import storage as St

    local = St.LocalBackend(St.MemoryRecordStore())
    remote = St.RemoteBackend(cart_api, catalog)
    selector = St.BackendSelector(St.AuthState(), local, remote)

    backend = selector.resolve()   # local until login, remote after

Local persistence can be made durable with SQLAlchemy:

    records, engine = await St.create_record_store("sqlite+aiosqlite:///cart.db")
"""

from cartflow.storage._backend import BackendKind, StorageBackend
from cartflow.storage._local import (
    CART_RECORD_VERSION,
    RecordStore,
    MemoryRecordStore,
    encode_cart_record,
    decode_cart_record,
    LocalBackend,
)
from cartflow.storage._remote import CartApi, RemoteBackend
from cartflow.storage._selector import AuthListener, AuthState, BackendSelector
from cartflow.storage._sqlalchemy import (
    CartRecordTable,
    SQLAlchemyRecordStore,
    create_record_store,
)

__all__ = (
    # Protocol
    "BackendKind",
    "StorageBackend",
    # Local
    "CART_RECORD_VERSION",
    "RecordStore",
    "MemoryRecordStore",
    "encode_cart_record",
    "decode_cart_record",
    "LocalBackend",
    # SQLAlchemy
    "CartRecordTable",
    "SQLAlchemyRecordStore",
    "create_record_store",
    # Remote
    "CartApi",
    "RemoteBackend",
    # Selection
    "AuthListener",
    "AuthState",
    "BackendSelector",
)
