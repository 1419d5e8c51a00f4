from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import UniqueConstraint, and_
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import reconstructor

from ..extensions import db
from beanbase.models.enumerations import LinkKind


def _utcnow():
    return datetime.now(timezone.utc)


class Bean(db.Model):
    """A typed record holding a mapping of scalar fields.

    Fields live in the ``properties`` JSON column and are reached with item
    access (``bean["name"]``). Owned collections are kept as an explicit
    ``type -> [Bean]`` mapping and persisted by the store as ordered ``own``
    links. Meta values (``tainted``, ``buildcommand.unique``) exist only in
    memory.
    """

    __tablename__ = "beans"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    bean_type = db.Column("type", db.String(64), nullable=False, index=True)
    properties = db.Column(MutableDict.as_mutable(db.JSON), nullable=False, default=dict)

    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    own_links = db.relationship(
        "BeanLink",
        primaryjoin=lambda: and_(Bean.id == BeanLink.source_id, BeanLink.kind == LinkKind.OWN),
        foreign_keys=lambda: [BeanLink.source_id],
        order_by=lambda: BeanLink.position,
        viewonly=True,
        lazy=True,
    )

    parent_links = db.relationship(
        "BeanLink",
        primaryjoin=lambda: and_(Bean.id == BeanLink.target_id, BeanLink.kind == LinkKind.OWN),
        foreign_keys=lambda: [BeanLink.target_id],
        viewonly=True,
        lazy=True,
    )

    def __init__(self, bean_type: str, **kwargs: Any) -> None:
        kwargs.setdefault("properties", {})
        super().__init__(bean_type=bean_type, **kwargs)
        self._init_state(tainted=True)

    @reconstructor
    def _on_load(self) -> None:
        self._init_state(tainted=False)

    def _init_state(self, *, tainted: bool) -> None:
        self._meta: Dict[str, Any] = {"tainted": tainted}
        self._owned: Dict[str, List["Bean"]] = {}
        self._parents: Dict[str, "Bean"] = {}

    def __repr__(self) -> str:
        return f"<Bean {self.bean_type}#{self.id}>"

    # ------------------------------------------------------------------
    # fields
    # ------------------------------------------------------------------
    def __getitem__(self, key: str) -> Any:
        if key == "id":
            return self.id
        return self.properties[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if key == "id":
            raise KeyError("'id' is assigned by the store")
        self.properties[key] = value
        self.mark_tainted()

    def __contains__(self, key: object) -> bool:
        return key in self.properties

    def __iter__(self):
        return iter(self.properties)

    def get(self, key: str, default: Any = None) -> Any:
        if key == "id":
            return self.id
        return self.properties.get(key, default)

    def import_data(self, data: Dict[str, Any]) -> "Bean":
        """Copy ``data`` into the bean's fields; the ``id`` key is ignored."""

        for key, value in data.items():
            if key == "id":
                continue
            self.properties[key] = value
        self.mark_tainted()
        return self

    def export(self) -> Dict[str, Any]:
        exported: Dict[str, Any] = {"id": self.id}
        exported.update(self.properties or {})
        return exported

    # ------------------------------------------------------------------
    # meta
    # ------------------------------------------------------------------
    def get_meta(self, key: str, default: Any = None) -> Any:
        if key == "type":
            return self.bean_type
        return self._meta.get(key, default)

    def set_meta(self, key: str, value: Any) -> "Bean":
        if key == "type":
            self.bean_type = value
        else:
            self._meta[key] = value
        return self

    @property
    def is_tainted(self) -> bool:
        return bool(self._meta.get("tainted"))

    def mark_tainted(self) -> None:
        self._meta["tainted"] = True

    def mark_clean(self) -> None:
        self._meta["tainted"] = False

    # ------------------------------------------------------------------
    # owned collections and parents
    # ------------------------------------------------------------------
    def own_list(self, bean_type: str) -> Optional[List["Bean"]]:
        """Return the owned collection of ``bean_type``, or None if there is none."""

        if bean_type not in self._owned:
            persisted = [link.target for link in self.own_links if link.target.bean_type == bean_type]
            if persisted:
                self._owned[bean_type] = persisted
        return self._owned.get(bean_type)

    def add_own(self, bean_type: str, bean: "Bean") -> List["Bean"]:
        collection = self.own_list(bean_type)
        if collection is None:
            collection = self._owned[bean_type] = []
        collection.append(bean)
        self.mark_tainted()
        return collection

    def owned_collections(self) -> Dict[str, List["Bean"]]:
        """Owned collections loaded or modified in memory, keyed by bean type."""

        return dict(self._owned)

    def parent(self, bean_type: str) -> Optional["Bean"]:
        """Return the bean of ``bean_type`` that owns this bean, if any."""

        if bean_type in self._parents:
            return self._parents[bean_type]
        for link in self.parent_links:
            if link.source.bean_type == bean_type:
                self._parents[bean_type] = link.source
                return link.source
        return None

    def attach_parent(self, owner: "Bean") -> None:
        self._parents[owner.bean_type] = owner

    def same_as(self, other: "Bean") -> bool:
        if self is other:
            return True
        return (
            self.id is not None
            and self.id == other.id
            and self.bean_type == other.bean_type
        )

    def in_collection(self, collection: Optional[List["Bean"]]) -> bool:
        return any(self.same_as(member) for member in collection or [])


class BeanLink(db.Model):
    """A directed link between two beans.

    ``own`` links point from an owner to the beans in one of its owned
    collections, ordered by ``position``. ``shared`` links are symmetric
    associations created by the store's ``associate`` primitive.
    """

    __tablename__ = "bean_links"
    __table_args__ = (
        UniqueConstraint("kind", "source_id", "target_id", name="uq_bean_links_kind_pair"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    kind = db.Column(
        db.Enum(LinkKind, name="bean_link_kind", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    source_id = db.Column(db.Integer, db.ForeignKey("beans.id", ondelete="CASCADE"), nullable=False, index=True)
    target_id = db.Column(db.Integer, db.ForeignKey("beans.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    source = db.relationship("Bean", foreign_keys=[source_id])
    target = db.relationship("Bean", foreign_keys=[target_id])

    def other(self, bean: Bean) -> Bean:
        return self.target if self.source_id == bean.id else self.source
