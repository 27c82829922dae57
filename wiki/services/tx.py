from contextlib import contextmanager
from functools import wraps

from django.db import DatabaseError, IntegrityError, connections, transaction

from ..errors import Conflict, Unavailable


def locked(qs):
    """SELECT FOR UPDATE where supported; SQLite serializes writers itself."""
    conn = connections[qs.db]
    if getattr(conn.features, "has_select_for_update", False):
        return qs.select_for_update()
    return qs


@contextmanager
def unit_of_work(using="default"):
    """One all-or-nothing transaction.

    Anything raised inside rolls the whole block back. Constraint violations
    that only show up at commit become Conflict, every other database failure
    becomes Unavailable.
    """
    try:
        with transaction.atomic(using=using):
            yield
    except IntegrityError as exc:
        raise Conflict(str(exc) or None) from exc
    except DatabaseError as exc:
        raise Unavailable(str(exc) or None) from exc


def storage_errors(fn):
    """Report database failures outside a unit of work as Unavailable."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except DatabaseError as exc:
            raise Unavailable(str(exc) or None) from exc

    return wrapper
