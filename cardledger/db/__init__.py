from cardledger.db.database import async_session_factory, get_session_factory, init_db
from cardledger.db.pagination import clamp_limit, clamp_offset
from cardledger.db.transaction import atomic, reading

__all__ = [
    "async_session_factory",
    "atomic",
    "clamp_limit",
    "clamp_offset",
    "get_session_factory",
    "init_db",
    "reading",
]
