"""In-memory stand-in for the SQLAlchemy bean store."""

import itertools
from contextlib import contextmanager

from beanbase.models.Bean import Bean


class InMemoryBeanStore:
    def __init__(self):
        self.rows = {}
        self.shared = []
        self.stored = []
        self.transactions = 0
        self._ids = itertools.count(1)

    def _persist(self, bean):
        if bean.id is None:
            bean.id = next(self._ids)
        self.rows[bean.id] = bean
        bean.mark_clean()

    def dispense(self, bean_type):
        return Bean(bean_type)

    def load(self, bean_type, bean_id):
        bean = self.rows.get(bean_id)
        if bean is None or bean.bean_type != bean_type:
            return Bean(bean_type)
        return bean

    def store(self, bean):
        for members in bean.owned_collections().values():
            for member in members:
                self._persist(member)
                member.attach_parent(bean)
        self._persist(bean)
        self.stored.append(bean)
        return bean

    def trash(self, bean):
        self.rows.pop(bean.id, None)
        self.shared = [pair for pair in self.shared if bean.id not in pair]

    def find_one(self, bean_type, where):
        for bean in self.rows.values():
            if bean.bean_type != bean_type:
                continue
            exported = bean.export()
            if all(key in exported and exported[key] == value for key, value in where.items()):
                return bean
        return None

    def related_one(self, bean, bean_type):
        for first, second in self.shared:
            if first == bean.id and self.rows[second].bean_type == bean_type:
                return self.rows[second]
            if second == bean.id and self.rows[first].bean_type == bean_type:
                return self.rows[first]
        return None

    def are_related(self, first, second):
        pair = {first.id, second.id}
        return any(set(link) == pair for link in self.shared)

    def associate(self, first, second):
        self._persist(first)
        self._persist(second)
        self.shared.append((first.id, second.id))
        return self.shared[-1]

    @contextmanager
    def transaction(self):
        self.transactions += 1
        yield
