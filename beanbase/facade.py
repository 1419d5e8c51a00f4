"""
Helper layer over the bean store: soft CRUD (no implicit writes), relation
wiring and data validation. Business code holds one ``BeanBase`` and never
touches the store's primitives directly.
"""

from __future__ import annotations

from contextlib import nullcontext
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union

from flask import current_app

from beanbase.errors import ArgumentError, CrudError, RelationError, ValidationError
from beanbase.models.Bean import Bean
from beanbase.models.enumerations import Relation
from beanbase.orm.protocols import BeanStore
from beanbase.orm.store import SQLAlchemyBeanStore
from beanbase.utils.filters import exclude_data, is_assoc, strip_data
from beanbase.utils.logging_utils import get_logger, log_context
from beanbase.utils.model_utils.base import (
    _bean_identity,
    _is_empty,
    _is_storable,
    _sanitize_payload,
    _serialize_value,
)

crud_logger = get_logger("crud")
relation_logger = get_logger("relation")
validation_logger = get_logger("validation")

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
UNIQUE_META_KEY = "buildcommand.unique"


def _require_assoc(data: Any) -> None:
    if not is_assoc(data):
        raise ArgumentError("Data array must be associative")


def _require_storable(data: Mapping[str, Any]) -> None:
    for key, value in data.items():
        if not _is_storable(value):
            raise ArgumentError(f"Value of {key} cannot be stored as JSON: {type(value).__name__}")


class BeanBase:
    """Bean helpers bound to one store."""

    is_assoc = staticmethod(is_assoc)
    strip_data = staticmethod(strip_data)
    exclude_data = staticmethod(exclude_data)

    def __init__(
        self,
        store: Optional[BeanStore] = None,
        *,
        atomic: bool = True,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
    ) -> None:
        self.store: BeanStore = store if store is not None else SQLAlchemyBeanStore()
        self.atomic = atomic
        self.timestamp_format = timestamp_format
        self._dispatch = {
            Relation.ONE_TO_ONE: self._has_one,
            Relation.ONE_TO_MANY: self._has_many,
            Relation.MANY_TO_MANY: self._have_many,
            Relation.BELONGS_TO: self._belongs_to,
        }

    # ==================================================================
    # Soft CRUD (nothing is written until save())
    # ==================================================================
    def create(self, bean_type: str, data: Mapping[str, Any], filter: Optional[Iterable] = None) -> Bean:
        """
        Dispense a bean of ``bean_type`` and import ``data`` into it.

        Keys listed in ``filter`` are dropped from ``data`` first. The bean is
        returned unsaved.
        """

        _require_assoc(data)
        if filter:
            data = exclude_data(data, filter)
        _require_storable(data)

        with log_context(bean_type=bean_type, action="create"):
            crud_logger.info("create type=%s data=%s", bean_type, _sanitize_payload(dict(data)))
            bean = self.store.dispense(bean_type)
            bean.import_data(data)
        return bean

    def read(self, bean_id: Any, bean_type: str) -> Bean:
        """Load a bean by ID and type; raises ``CrudError(READ)`` when not found."""

        with log_context(bean_type=bean_type, action="read"):
            bean = self.store.load(bean_type, bean_id)
            if not bean.id:
                crud_logger.warning("read miss type=%s id=%s", bean_type, _serialize_value(bean_id))
                raise CrudError(f"Cannot find bean by ID = {bean_id} in type = {bean_type}", CrudError.READ)
            crud_logger.info("read %s", _bean_identity(bean))
        return bean

    def update(self, bean: Bean, data: Mapping[str, Any], filter: Optional[Iterable] = None) -> Bean:
        """
        Import ``data`` into an already loaded bean, minus the keys in
        ``filter``. The data itself is not validated and nothing is saved.
        """

        _require_assoc(data)
        if filter:
            data = exclude_data(data, filter)
        _require_storable(data)

        with log_context(bean_type=bean.bean_type, action="update"):
            crud_logger.info("update %s data=%s", _bean_identity(bean), _sanitize_payload(dict(data)))
            bean.import_data(data)
        return bean

    def save(self, bean: Bean) -> Bean:
        """Check the bean's unique field groups, then store it."""

        for fields in bean.get_meta(UNIQUE_META_KEY) or []:
            self._check_unique_group(bean, fields)
        with log_context(bean_type=bean.bean_type, action="save"):
            crud_logger.info("save %s", _bean_identity(bean))
            return self.store.store(bean)

    def _check_unique_group(self, bean: Bean, fields: Iterable[str]) -> None:
        """Reject ``bean`` when another bean of its type holds the same values for the whole group."""

        fields = [field for field in fields if field != "id"]
        values = strip_data(bean.export(), fields)
        # like a composite unique index, a group with an unset member never clashes
        if not fields or len(values) != len(set(fields)) or any(value is None for value in values.values()):
            return
        found = self.store.find_one(self.get_bean_type(bean), values)
        if found is not None and not bean.same_as(found):
            described = ", ".join(f"{key} = {value}" for key, value in values.items())
            validation_logger.info("unique group clash %s fields=%s", _bean_identity(bean), fields)
            raise ValidationError(f"A bean already exists with {described}", ValidationError.UNIQUE)

    def delete(self, bean: Bean) -> None:
        if not bean.id:
            raise CrudError(f"Cannot delete unsaved bean of type = {bean.bean_type}", CrudError.DELETE)
        with log_context(bean_type=bean.bean_type, action="delete"):
            crud_logger.info("delete %s", _bean_identity(bean))
            self.store.trash(bean)

    # ==================================================================
    # Relations
    # ==================================================================
    def relate(self, bean: Bean, data: Mapping[str, Any], filter: Mapping[str, Union[Relation, int]]) -> None:
        """
        Relate ``bean`` to every bean referenced in ``data``.

        ``filter`` maps a related bean type to a relation code; a related bean
        is picked up when ``data`` carries ``"<type>_id"``. Associations are
        written back to the store.
        """

        _require_assoc(data)

        for rel_type, code in filter.items():
            id_key = f"{rel_type}_id"
            if id_key in data:
                rel_bean = self.read(data[id_key], rel_type)
                self.associate(bean, rel_bean, code)

    def associate(self, bean: Bean, rel_bean: Bean, code: Union[Relation, int]) -> None:
        """
        Associate ``bean`` with ``rel_bean`` under ``code`` and store whichever
        of the two ended up modified.
        """

        try:
            relation = Relation(code)
        except (TypeError, ValueError):
            raise RelationError(
                "Unknown error when trying to establish relationship between beans",
                RelationError.UNKNOWN,
            ) from None

        scope = self.store.transaction() if self.atomic else nullcontext()
        with log_context(bean_type=bean.bean_type, related_type=rel_bean.bean_type, relation=relation.name):
            relation_logger.info("associate %s -> %s", _bean_identity(bean), _bean_identity(rel_bean))
            try:
                with scope:
                    self._dispatch[relation](bean, rel_bean)

                    if self.is_modified(bean):
                        self.store.store(bean)
                    if self.is_modified(rel_bean):
                        self.store.store(rel_bean)
            except RelationError as exc:
                relation_logger.warning("associate rejected: %s", exc.message)
                raise

    def _has_one(self, bean: Bean, rel_bean: Bean) -> None:
        mine = self.store.related_one(bean, rel_bean.bean_type)
        theirs = self.store.related_one(rel_bean, bean.bean_type)
        if mine is not None or theirs is not None:
            raise RelationError(
                "Relationship already exists with one or both of beans",
                RelationError.ONE_TO_ONE,
            )
        self.store.associate(bean, rel_bean)

    def _has_many(self, bean: Bean, rel_bean: Bean) -> None:
        if rel_bean.in_collection(bean.own_list(rel_bean.bean_type)):
            raise RelationError("Relationship already established", RelationError.ONE_TO_MANY)
        bean.add_own(rel_bean.bean_type, rel_bean)

    def _have_many(self, bean: Bean, rel_bean: Bean) -> None:
        if self.store.are_related(bean, rel_bean):
            raise RelationError("Two beans already associated", RelationError.MANY_TO_MANY)
        self.store.associate(bean, rel_bean)

    def _belongs_to(self, bean: Bean, rel_bean: Bean) -> None:
        if bean.parent(rel_bean.bean_type) is not None:
            raise RelationError("Parent already exists", RelationError.BELONGS_TO)
        if bean.in_collection(rel_bean.own_list(bean.bean_type)):
            raise RelationError("Relationship already established", RelationError.BELONGS_TO)
        rel_bean.add_own(bean.bean_type, bean)

    # ==================================================================
    # Validation
    # ==================================================================
    def completeness_check(self, bean: Bean, keys: Iterable[str]) -> None:
        """Raise ``ValidationError(INCOMPLETE)`` for the first required key that is missing or empty."""

        data = bean.export()
        for key in keys:
            if key not in data or _is_empty(data[key]):
                validation_logger.info("completeness_check failed %s key=%s", _bean_identity(bean), key)
                raise ValidationError(f"Missing {key} from given data", ValidationError.INCOMPLETE)

    def uniqueness_check(self, bean: Bean, keys: Iterable[str]) -> None:
        """
        Raise ``ValidationError(UNIQUE)`` for the first field whose value is
        already held by another bean of the same type. Run it before saving.
        """

        bean_type = self.get_bean_type(bean)
        for key, value in strip_data(bean.export(), keys).items():
            if key == "id":
                continue
            found = self.store.find_one(bean_type, {key: value})
            if found is not None and not bean.same_as(found):
                validation_logger.info("uniqueness_check failed %s key=%s", _bean_identity(bean), key)
                raise ValidationError(f"A bean already exists with {key} = {value}", ValidationError.UNIQUE)

    # ==================================================================
    # Other helpers
    # ==================================================================
    @staticmethod
    def get_bean_type(bean: Bean) -> str:
        return bean.get_meta("type")

    @staticmethod
    def is_modified(bean: Bean) -> bool:
        return bool(bean.get_meta("tainted"))

    def insert_time_stamp(
        self,
        bean: Bean,
        prop: str,
        time: Union[str, datetime] = "now",
        time_format: Optional[str] = None,
    ) -> Bean:
        """
        Write a formatted timestamp into ``bean[prop]``.

        ``time`` is a datetime, an ISO 8601 string or ``"now"`` (local time).
        Relative phrases such as ``"tomorrow"`` are not understood and raise
        ``ArgumentError``.
        """

        if not isinstance(prop, str):
            raise ArgumentError("Timestamp property must be a string")

        if isinstance(time, datetime):
            moment = time
        elif time == "now":
            moment = datetime.now()
        else:
            try:
                moment = datetime.fromisoformat(str(time))
            except ValueError:
                raise ArgumentError(f"Cannot parse time {time!r}") from None

        bean[prop] = moment.strftime(time_format or self.timestamp_format)
        return bean

    @staticmethod
    def set_unique(bean: Bean, fields: Iterable[str]) -> Bean:
        """Mark ``fields`` as one group whose combined values ``save`` keeps unique."""

        bean.set_meta(UNIQUE_META_KEY, [list(fields)])
        return bean


def get_beanbase() -> BeanBase:
    """Return the ``BeanBase`` registered on the current Flask application."""

    return current_app.extensions["beanbase"]
