"""
A small in-memory stand-in for the Firestore client, for flows that need real
read-after-write behaviour (checkout, category rename, dashboard reads).

Only the calls the services make are supported.
"""
import itertools
import operator
from datetime import datetime, timezone

from firebase_admin import firestore

_ids = itertools.count(1)

OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
}


def resolve(data: dict) -> dict:
    now = datetime.now(timezone.utc)
    return {k: (now if v is firestore.SERVER_TIMESTAMP else v) for k, v in data.items()}


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, store, collection, doc_id):
        self._store = store
        self._collection = collection
        self.id = doc_id

    def _docs(self):
        return self._store.setdefault(self._collection, {})

    def get(self, transaction=None):
        data = self._docs().get(self.id)
        return FakeSnapshot(self, dict(data) if data is not None else None)

    def set(self, data):
        self._docs()[self.id] = resolve(data)

    def update(self, data):
        if self.id not in self._docs():
            raise ValueError(f"No document to update: {self._collection}/{self.id}")
        self._docs()[self.id].update(resolve(data))

    def delete(self):
        self._docs().pop(self.id, None)


class FakeCount:
    def __init__(self, value):
        self.value = value


class FakeQuery:
    def __init__(self, store, collection, filters=None, orders=None, offset=0, limit=None):
        self._store = store
        self._collection = collection
        self._filters = filters or []
        self._orders = orders or []
        self._offset = offset
        self._limit = limit

    def _copy(self, **changes):
        state = {
            "filters": list(self._filters),
            "orders": list(self._orders),
            "offset": self._offset,
            "limit": self._limit,
        }
        state.update(changes)
        return FakeQuery(self._store, self._collection, **state)

    def where(self, field, op, value):
        return self._copy(filters=self._filters + [(field, op, value)])

    def order_by(self, field, direction="ASCENDING"):
        return self._copy(orders=self._orders + [(field, direction)])

    def offset(self, offset):
        return self._copy(offset=offset)

    def limit(self, limit):
        return self._copy(limit=limit)

    def _matches(self, data):
        for field, op, value in self._filters:
            if field not in data:
                return False
            try:
                if not OPERATORS[op](data[field], value):
                    return False
            except TypeError:
                return False
        return True

    def _results(self):
        docs = self._store.get(self._collection, {})
        rows = [(doc_id, data) for doc_id, data in docs.items() if self._matches(data)]
        for field, direction in reversed(self._orders):
            rows = [r for r in rows if field in r[1]]
            rows.sort(key=lambda r: r[1][field], reverse=str(direction).upper().startswith("DESC"))
        rows = rows[self._offset:]
        if self._limit is not None:
            rows = rows[:self._limit]
        return [
            FakeSnapshot(FakeDocumentRef(self._store, self._collection, doc_id), dict(data))
            for doc_id, data in rows
        ]

    def get(self, transaction=None):
        return self._results()

    def stream(self, transaction=None):
        return iter(self._results())

    def count(self):
        query = self

        class _Aggregation:
            def get(self):
                return [[FakeCount(len(query._results()))]]

        return _Aggregation()


class FakeCollection(FakeQuery):
    def __init__(self, store, name):
        super().__init__(store, name)

    def document(self, doc_id=None):
        return FakeDocumentRef(self._store, self._collection, doc_id or f"doc{next(_ids):06d}")


class FakeWriteBatch:
    """Buffers writes and applies them on commit."""

    def __init__(self):
        self._writes = []

    def set(self, ref, data):
        self._writes.append(lambda: ref.set(data))

    def update(self, ref, data):
        self._writes.append(lambda: ref.update(data))

    def delete(self, ref):
        self._writes.append(ref.delete)

    def commit(self):
        for write in self._writes:
            write()
        self._writes = []


class FakeTransaction(FakeWriteBatch):
    committed = False

    def commit(self):
        super().commit()
        self.committed = True


class FakeFirestore:
    def __init__(self):
        self.store = {}
        self.transactions = []

    def collection(self, name):
        return FakeCollection(self.store, name)

    def batch(self):
        return FakeWriteBatch()

    def transaction(self):
        txn = FakeTransaction()
        self.transactions.append(txn)
        return txn

    # Test helpers

    def add(self, collection, data, doc_id=None):
        ref = self.collection(collection).document(doc_id)
        ref.set(data)
        return ref.id

    def docs(self, collection):
        return dict(self.store.get(collection, {}))


def fake_transactional(fn):
    """Run the function once and commit its buffered writes only if it returns."""
    def wrapper(transaction, *args, **kwargs):
        result = fn(transaction, *args, **kwargs)
        transaction.commit()
        return result
    return wrapper
