from datetime import datetime

import pytest
from sqlalchemy.exc import StatementError

from beanbase.errors import ArgumentError
from beanbase.extensions import db
from beanbase.models import AuditLog, Bean, BeanLink, LinkKind, Relation
from beanbase.orm.store import SQLAlchemyBeanStore


@pytest.fixture
def store(app, clean_db):
    return SQLAlchemyBeanStore(db.session, audit=False)


class TestSQLAlchemyBeanStore:
    """Store primitives behind the helpers."""

    def test_dispense_and_load_miss(self, store):
        bean = store.dispense("user")
        assert bean.id is None
        assert bean.get_meta("tainted") is True

        missing = store.load("user", 123)
        assert missing.id is None
        assert missing.bean_type == "user"
        assert store.load("user", "not-a-number").id is None

    def test_dispense_rejects_bad_type(self, store):
        for bad in ("", "User", "has space", None, 5):
            with pytest.raises(ArgumentError):
                store.dispense(bad)

    def test_store_assigns_identity_and_cleans(self, store):
        bean = store.dispense("user").import_data({"name": "Alice"})
        store.store(bean)

        assert bean.id is not None
        assert bean.get_meta("tainted") is False
        assert db.session.query(AuditLog).count() == 0

    def test_find_one(self, store):
        store.store(store.dispense("user").import_data({"name": "Alice", "age": 30}))
        bob = store.store(store.dispense("user").import_data({"name": "Bob", "age": 41}))

        assert store.find_one("user", {"name": "Bob"}).id == bob.id
        assert store.find_one("user", {"age": 41, "name": "Bob"}).id == bob.id
        assert store.find_one("user", {"name": "Carol"}) is None
        assert store.find_one("group", {"name": "Bob"}) is None
        assert store.find_one("user", {"name": None}) is None

    def test_own_links_follow_collection_order(self, store):
        owner = store.dispense("user")
        orders = [store.dispense("order").import_data({"ref": ref}) for ref in ("a", "b", "c")]
        for order in orders:
            owner.add_own("order", order)
        store.store(owner)

        owner.own_list("order").reverse()
        owner.own_list("order").pop()
        store.store(owner)

        links = (
            db.session.query(BeanLink)
            .filter_by(kind=LinkKind.OWN, source_id=owner.id)
            .order_by(BeanLink.position)
            .all()
        )
        assert [link.target_id for link in links] == [orders[2].id, orders[1].id]

    def test_owned_bean_moves_to_new_owner(self, store):
        order = store.dispense("order").import_data({"ref": "a"})
        first = store.dispense("user")
        first.add_own("order", order)
        store.store(first)

        second = store.dispense("user")
        second.add_own("order", order)
        store.store(second)

        owners = db.session.query(BeanLink).filter_by(kind=LinkKind.OWN, target_id=order.id).all()
        assert [link.source_id for link in owners] == [second.id]
        assert order.parent("user") is second

    def test_associate_is_idempotent(self, store):
        first = store.dispense("book")
        second = store.dispense("tag")

        link = store.associate(first, second)
        again = store.associate(second, first)

        assert again.id == link.id
        assert store.are_related(first, second)
        assert store.related_one(second, "book").id == first.id
        assert store.related_one(first, "author") is None

    def test_trash_removes_links(self, store):
        first = store.dispense("book")
        second = store.dispense("tag")
        store.associate(first, second)

        store.trash(first)

        assert db.session.query(Bean).count() == 1
        assert db.session.query(BeanLink).count() == 0
        assert store.related_one(second, "book") is None

    def test_transaction_commits_once(self, store):
        with store.transaction():
            store.store(store.dispense("user").import_data({"name": "Alice"}))
            store.store(store.dispense("user").import_data({"name": "Bob"}))
        db.session.remove()
        assert db.session.query(Bean).count() == 2

    def test_transaction_rolls_back_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.store(store.dispense("user").import_data({"name": "Alice"}))
                raise RuntimeError("boom")
        assert db.session.query(Bean).count() == 0

    def test_audit_rows_are_written_with_the_change(self, app, clean_db):
        store = SQLAlchemyBeanStore(db.session, audit=True, actor_id="tester")
        bean = store.store(store.dispense("user").import_data({"name": "Alice", "api_token": "s3cret"}))

        entry = db.session.query(AuditLog).one()
        assert entry.event == "user.created"
        assert entry.actor_id == "tester"
        assert entry.bean_id == bean.id
        assert "s3cret" not in entry.detail
        assert entry.to_dict()["event"] == "user.created"
        assert entry.to_dict()["created_at"]

    def test_failed_flush_inside_associate_leaves_session_usable(self, bb):
        user = bb.create("user", {"name": "Alice"})
        user["seen"] = datetime(2024, 1, 1)
        order = bb.create("order", {"ref": "A-1"})

        with pytest.raises(StatementError):
            bb.associate(user, order, Relation.ONE_TO_MANY)

        group = bb.save(bb.create("group", {"name": "ok"}))
        assert group.id is not None
        assert db.session.query(Bean).filter(Bean.bean_type == "user").count() == 0
