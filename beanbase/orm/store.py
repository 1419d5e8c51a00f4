from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from sqlalchemy import and_, or_

from beanbase.errors import ArgumentError
from beanbase.extensions import db
from beanbase.models.Bean import Bean, BeanLink
from beanbase.models.enumerations import CrudEvent, LinkKind
from beanbase.utils.logging_utils import get_logger, log_context
from beanbase.utils.model_utils.audit_log_utils import record_event
from beanbase.utils.model_utils.base import _bean_identity, _build_context, _sanitize_payload

logger = get_logger("store")

_BEAN_TYPE_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


def _check_bean_type(bean_type: Any) -> str:
    if not isinstance(bean_type, str) or not _BEAN_TYPE_PATTERN.match(bean_type):
        raise ArgumentError(f"Invalid bean type: {bean_type!r}")
    return bean_type


def _property_clause(key: str, value: Any):
    element = Bean.properties[key]
    if value is None:
        return None
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, int):
        return element.as_integer() == value
    if isinstance(value, float):
        return element.as_float() == value
    if isinstance(value, str):
        return element.as_string() == value
    return None


class SQLAlchemyBeanStore:
    """Bean store backed by a SQLAlchemy session.

    Every write commits on its own unless it runs inside ``transaction()``,
    which flushes instead and commits once when the block exits.
    """

    def __init__(self, session=None, *, audit: bool = True, actor_id: Optional[str] = None) -> None:
        self._session = session
        self.audit = audit
        self.actor_id = actor_id
        self._depth = 0
        self._flushed = False

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # ------------------------------------------------------------------
    # transactions
    # ------------------------------------------------------------------
    @contextmanager
    def transaction(self) -> Iterator[None]:
        outermost = self._depth == 0
        self._depth += 1
        try:
            yield
        except Exception:
            self._depth -= 1
            if outermost:
                if self._flushed:
                    logger.warning("Rolling back bean transaction")
                    self.session.rollback()
                self._flushed = False
            raise
        self._depth -= 1
        if outermost:
            if self._flushed:
                self.session.commit()
            self._flushed = False

    def _commit(self) -> None:
        if self._depth:
            self.session.flush()
            self._flushed = True
        else:
            self.session.commit()

    def _fail(self) -> None:
        if self._depth:
            # a failed flush leaves the session unusable until the outermost block rolls back
            self._flushed = True
        else:
            self.session.rollback()

    def _audit(self, event: str, bean: Bean, detail: Dict[str, Any]) -> None:
        if not self.audit:
            return
        record_event(
            self.session,
            event=event,
            bean_type=bean.bean_type,
            bean_id=bean.id,
            actor_id=self.actor_id,
            detail=detail,
        )

    # ------------------------------------------------------------------
    # records
    # ------------------------------------------------------------------
    def dispense(self, bean_type: str) -> Bean:
        bean = Bean(_check_bean_type(bean_type))
        logger.debug("Dispensed bean type=%s", bean_type)
        return bean

    def load(self, bean_type: str, bean_id: Any) -> Bean:
        _check_bean_type(bean_type)
        bean = None
        try:
            key = int(bean_id)
        except (TypeError, ValueError):
            key = None
        if key is not None:
            bean = self.session.get(Bean, key)
        if bean is None or bean.bean_type != bean_type:
            logger.info("Load missed type=%s id=%s", bean_type, bean_id)
            return self.dispense(bean_type)
        logger.info("Loaded %s", _bean_identity(bean))
        return bean

    def store(self, bean: Bean) -> Bean:
        session = self.session
        is_new = bean.id is None
        collections = bean.owned_collections()
        with log_context(**_build_context(bean.bean_type, "store")):
            logger.info(
                "Storing %s new=%s collections=%s",
                _bean_identity(bean),
                is_new,
                {name: len(members) for name, members in collections.items()},
            )
            try:
                session.add(bean)
                for members in collections.values():
                    for member in members:
                        session.add(member)
                session.flush()

                for bean_type, members in collections.items():
                    self._sync_own_links(bean, bean_type, members)

                event = CrudEvent.CREATED if is_new else CrudEvent.UPDATED
                self._audit(
                    f"{bean.bean_type}.{event.value}",
                    bean,
                    {"operation": event.value, "target_id": bean.id, **_sanitize_payload(dict(bean.properties))},
                )
                self._commit()
            except Exception:
                logger.exception("Failed to store %s", _bean_identity(bean))
                self._fail()
                raise

            bean.mark_clean()
            for members in collections.values():
                for member in members:
                    member.mark_clean()
                    member.attach_parent(bean)
            logger.info("Stored %s", _bean_identity(bean))
        return bean

    def _sync_own_links(self, owner: Bean, bean_type: str, members: List[Bean]) -> None:
        session = self.session
        existing = {
            link.target_id: link
            for link in session.query(BeanLink)
            .join(Bean, BeanLink.target_id == Bean.id)
            .filter(
                BeanLink.kind == LinkKind.OWN,
                BeanLink.source_id == owner.id,
                Bean.bean_type == bean_type,
            )
        }

        seen = set()
        position = 0
        for member in members:
            if member.id in seen:
                continue
            seen.add(member.id)

            # a bean has at most one owner of a given type
            foreign = (
                session.query(BeanLink)
                .filter(
                    BeanLink.kind == LinkKind.OWN,
                    BeanLink.target_id == member.id,
                    BeanLink.source_id != owner.id,
                    BeanLink.source.has(Bean.bean_type == owner.bean_type),
                )
                .all()
            )
            for link in foreign:
                session.delete(link)

            link = existing.pop(member.id, None)
            if link is None:
                session.add(BeanLink(kind=LinkKind.OWN, source_id=owner.id, target_id=member.id, position=position))
            elif link.position != position:
                link.position = position
            position += 1

        for stale in existing.values():
            session.delete(stale)
        session.flush()

    def trash(self, bean: Bean) -> None:
        if bean.id is None:
            return
        session = self.session
        identity = _bean_identity(bean)
        with log_context(**_build_context(bean.bean_type, "trash")):
            logger.info("Trashing %s", identity)
            try:
                session.query(BeanLink).filter(
                    or_(BeanLink.source_id == bean.id, BeanLink.target_id == bean.id)
                ).delete(synchronize_session="fetch")
                self._audit(
                    f"{bean.bean_type}.{CrudEvent.DELETED.value}",
                    bean,
                    {"operation": CrudEvent.DELETED.value, "target_id": bean.id},
                )
                session.delete(bean)
                self._commit()
            except Exception:
                logger.exception("Failed to trash %s", identity)
                self._fail()
                raise
            logger.info("Trashed %s", identity)

    def find_one(self, bean_type: str, where: Mapping[str, Any]) -> Optional[Bean]:
        query = self.session.query(Bean).filter(Bean.bean_type == _check_bean_type(bean_type))
        for key, value in where.items():
            if key == "id":
                query = query.filter(Bean.id == value)
                continue
            clause = _property_clause(key, value)
            if clause is None:
                return None
            query = query.filter(clause)
        found = query.order_by(Bean.id).first()
        logger.debug("find_one type=%s where=%s found=%s", bean_type, _sanitize_payload(dict(where)), found is not None)
        return found

    # ------------------------------------------------------------------
    # associations
    # ------------------------------------------------------------------
    def _shared_links(self, bean: Bean):
        return self.session.query(BeanLink).filter(
            BeanLink.kind == LinkKind.SHARED,
            or_(BeanLink.source_id == bean.id, BeanLink.target_id == bean.id),
        )

    def related_one(self, bean: Bean, bean_type: str) -> Optional[Bean]:
        if bean.id is None:
            return None
        link = (
            self._shared_links(bean)
            .filter(
                or_(
                    and_(BeanLink.source_id == bean.id, BeanLink.target.has(Bean.bean_type == bean_type)),
                    and_(BeanLink.target_id == bean.id, BeanLink.source.has(Bean.bean_type == bean_type)),
                )
            )
            .order_by(BeanLink.id)
            .first()
        )
        return link.other(bean) if link is not None else None

    def are_related(self, first: Bean, second: Bean) -> bool:
        if first.id is None or second.id is None:
            return False
        link = (
            self.session.query(BeanLink.id)
            .filter(
                BeanLink.kind == LinkKind.SHARED,
                or_(
                    and_(BeanLink.source_id == first.id, BeanLink.target_id == second.id),
                    and_(BeanLink.source_id == second.id, BeanLink.target_id == first.id),
                ),
            )
            .first()
        )
        return link is not None

    def associate(self, first: Bean, second: Bean) -> BeanLink:
        with log_context(**_build_context(first.bean_type, "associate")):
            for bean in (first, second):
                if bean.id is None or bean.is_tainted:
                    self.store(bean)

            existing = (
                self._shared_links(first)
                .filter(or_(BeanLink.source_id == second.id, BeanLink.target_id == second.id))
                .first()
            )
            if existing is not None:
                logger.info("Association exists %s <-> %s", _bean_identity(first), _bean_identity(second))
                return existing

            try:
                link = BeanLink(kind=LinkKind.SHARED, source_id=first.id, target_id=second.id)
                self.session.add(link)
                self._audit(
                    f"{first.bean_type}_{second.bean_type}.{CrudEvent.CREATED.value}",
                    first,
                    {"operation": "associate", "source_id": first.id, "target_id": second.id},
                )
                self._commit()
            except Exception:
                logger.exception("Failed to associate %s <-> %s", _bean_identity(first), _bean_identity(second))
                self._fail()
                raise
            logger.info("Associated %s <-> %s", _bean_identity(first), _bean_identity(second))
        return link
