"""
Row-level CRUD shared by the entity API clients.

Every entity table is tenant-scoped by ``organization_id``; list reads are
ordered newest first, deletes are scoped by id *and* organization.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel
from sqlalchemy import DateTime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inspectly.exceptions import BackendError, RecordNotFoundError

logger = logging.getLogger(__name__)

Payload = Union[BaseModel, Dict[str, Any]]

# columns a caller may never overwrite through an update
_PROTECTED_COLUMNS = {"id", "organization_id", "created_at", "updated_at"}


@contextmanager
def backend_call(db: Session, description: str):
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Backend error while trying to %s", description)
        raise BackendError(f"Could not {description}") from exc


def to_row_values(payload: Payload, *, partial: bool = False) -> Dict[str, Any]:
    """JSON-safe column values from a schema or a plain dict."""
    if isinstance(payload, BaseModel):
        if partial:
            return payload.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        return payload.model_dump(mode="json")
    values = dict(payload)
    for key, value in list(values.items()):
        if isinstance(value, BaseModel):
            values[key] = value.model_dump(mode="json")
        elif isinstance(value, list):
            values[key] = [v.model_dump(mode="json") if isinstance(v, BaseModel) else v for v in value]
        elif isinstance(value, dict):
            values[key] = {
                k: v.model_dump(mode="json") if isinstance(v, BaseModel) else v for k, v in value.items()
            }
    if partial:
        values = {k: v for k, v in values.items() if v is not None}
    return values


def coerce_columns(model: Type, values: Dict[str, Any]) -> Dict[str, Any]:
    """Turn ISO strings back into datetimes for DateTime columns."""
    for column in model.__table__.columns:
        value = values.get(column.key)
        if isinstance(value, str) and isinstance(column.type, DateTime):
            values[column.key] = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return values


def select_rows(db: Session, model: Type, organization_id: str) -> List[Dict[str, Any]]:
    with backend_call(db, f"select {model.__tablename__}"):
        rows = (
            db.query(model)
            .filter(model.organization_id == organization_id)
            .order_by(model.created_at.desc())
            .all()
        )
        return [row.as_dict() for row in rows]


def select_one(db: Session, model: Type, record_id: str, organization_id: Optional[str] = None) -> Dict[str, Any]:
    with backend_call(db, f"select {model.__tablename__} {record_id}"):
        query = db.query(model).filter(model.id == record_id)
        if organization_id is not None:
            query = query.filter(model.organization_id == organization_id)
        row = query.first()
    if row is None:
        raise RecordNotFoundError(model.__tablename__, record_id)
    return row.as_dict()


def insert_row(db: Session, model: Type, payload: Payload) -> Dict[str, Any]:
    values = coerce_columns(model, to_row_values(payload))
    with backend_call(db, f"insert into {model.__tablename__}"):
        columns = {c.key for c in model.__table__.columns} - _PROTECTED_COLUMNS | {"organization_id"}
        row = model(**{k: v for k, v in values.items() if k in columns})
        db.add(row)
        db.commit()
        return row.as_dict()


def update_row(db: Session, model: Type, record_id: str, patch: Payload) -> Dict[str, Any]:
    values = {k: v for k, v in to_row_values(patch, partial=True).items() if k not in _PROTECTED_COLUMNS}
    values = coerce_columns(model, values)
    with backend_call(db, f"update {model.__tablename__} {record_id}"):
        row = db.query(model).filter(model.id == record_id).first()
        if row is None:
            raise RecordNotFoundError(model.__tablename__, record_id)
        for key, value in values.items():
            if hasattr(model, key):
                setattr(row, key, value)
        db.commit()
        return row.as_dict()


def delete_row(db: Session, model: Type, record_id: str, organization_id: str) -> None:
    with backend_call(db, f"delete from {model.__tablename__} {record_id}"):
        row = (
            db.query(model)
            .filter(model.id == record_id, model.organization_id == organization_id)
            .first()
        )
        if row is None:
            # nothing to delete for this tenant
            return
        db.delete(row)
        db.commit()
