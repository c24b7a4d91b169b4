from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def smart_transaction(session: Session) -> Iterator:
    """
    Unit of work on the given Session: commit on success, roll back on error.

    Sessions autobegin on the first read, so a transaction is often already
    open when a service starts writing; in that case that transaction is the
    unit of work and is committed here, together with anything the caller did
    before it. Otherwise a new one is begun. Calls do not nest: an inner
    smart_transaction commits the outer work too, so services never call one
    another from inside a block.
    Usage:
        with smart_transaction(db):
            ... DB work ...
    """
    if session.in_transaction():
        try:
            yield
        except Exception:
            session.rollback()
            raise
        session.commit()
    else:
        with session.begin():
            yield
