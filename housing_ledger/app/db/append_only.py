"""
Append-only enforcement for financial records.

Mapper events reject any flush that would change a column of, or delete,
an already persisted row.
"""

from sqlalchemy import event, inspect

from housing_ledger.app.core.exceptions import ValidationError


def _reject_update(mapper, connection, target):
    state = inspect(target)
    changed = [
        prop.key for prop in mapper.column_attrs
        if state.attrs[prop.key].history.has_changes()
    ]
    if changed:
        raise ValidationError(
            f"{mapper.class_.__name__} {target.id} is append-only; refused change to {', '.join(changed)}",
            field=changed[0]
        )


def _reject_delete(mapper, connection, target):
    raise ValidationError(f"{mapper.class_.__name__} {target.id} is append-only and cannot be deleted")


def append_only(cls):
    """Class decorator registering the update/delete guards on a model."""
    event.listen(cls, "before_update", _reject_update)
    event.listen(cls, "before_delete", _reject_delete)
    return cls
