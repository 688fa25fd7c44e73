"""Pytest fixtures for storefront tests.

Firestore is replaced by an in-memory double (`FakeFirestore`) injected through FastAPI's
dependency overrides; authentication by overriding `get_principal`.
"""

import copy
import hashlib
import hmac
import itertools
import json
import time
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from google.api_core.exceptions import NotFound as FirestoreNotFound
from google.cloud.firestore_v1.transforms import SERVER_TIMESTAMP, Increment

from storefront.config import get_db, settings
from storefront.core.auth import get_principal
from storefront.main import app
from storefront.schemas.principal import Principal


# ---------------------------------------------------------------------------
# In-memory Firestore
# ---------------------------------------------------------------------------

_OPS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
    "array_contains": lambda a, b: isinstance(a, list) and b in a,
}


class FakeSnapshot:
    def __init__(self, ref, data):
        self.reference = ref
        self.id = ref.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field):
        return (self._data or {}).get(field)


class FakeDocRef:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self._collection = collection
        self.id = doc_id

    @property
    def path(self):
        return f"{self._collection}/{self.id}"

    def _store(self):
        return self._db.store.setdefault(self._collection, {})

    def get(self):
        return FakeSnapshot(self, copy.deepcopy(self._store().get(self.id)))

    def set(self, data, merge=False):
        resolved = self._db.resolve(data, self._store().get(self.id) if merge else None)
        if merge and self.id in self._store():
            self._store()[self.id].update(resolved)
        else:
            self._store()[self.id] = resolved

    def update(self, data):
        if self.id not in self._store():
            raise FirestoreNotFound(f"No document to update: {self.path}")
        self._store()[self.id].update(self._db.resolve(data, self._store()[self.id]))

    def delete(self):
        self._store().pop(self.id, None)


class FakeQuery:
    def __init__(self, db, collection, filters=(), orders=(), limit=None):
        self._db = db
        self._collection = collection
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit

    def where(self, field_path=None, op_string=None, value=None, *, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return FakeQuery(self._db, self._collection, self._filters + ((field_path, op_string, value),), self._orders, self._limit)

    def order_by(self, field_path, direction="ASCENDING"):
        return FakeQuery(self._db, self._collection, self._filters, self._orders + ((field_path, direction),), self._limit)

    def limit(self, count):
        return FakeQuery(self._db, self._collection, self._filters, self._orders, count)

    def stream(self):
        docs = []
        for doc_id, data in self._db.store.get(self._collection, {}).items():
            if all(_OPS[op](data.get(field), value) for field, op, value in self._filters):
                docs.append((doc_id, data))
        for field, direction in reversed(self._orders):
            docs = [d for d in docs if d[1].get(field) is not None]
            docs.sort(key=lambda d: d[1][field], reverse=direction == "DESCENDING")
        if self._limit is not None:
            docs = docs[: self._limit]
        for doc_id, data in docs:
            yield FakeSnapshot(FakeDocRef(self._db, self._collection, doc_id), copy.deepcopy(data))

    def get(self):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        super().__init__(db, name)

    def document(self, document_id=None):
        return FakeDocRef(self._db, self._collection, document_id or uuid.uuid4().hex[:20])


class FakeBatch:
    """Yazımlar commit'e kadar biriktirilir; commit hepsini birlikte uygular."""

    def __init__(self, db):
        self._db = db
        self._ops = []

    def set(self, ref, data, merge=False):
        self._ops.append(("set", ref, data, merge))

    def update(self, ref, data):
        self._ops.append(("update", ref, data, None))

    def delete(self, ref):
        self._ops.append(("delete", ref, None, None))

    def commit(self):
        if self._db.fail_commits:
            raise RuntimeError("simulated commit failure")
        for kind, ref, _, _ in self._ops:
            if kind == "update" and not ref.get().exists:
                raise FirestoreNotFound(f"No document to update: {ref.path}")
        for kind, ref, data, merge in self._ops:
            if kind == "set":
                ref.set(data, merge=merge)
            elif kind == "update":
                ref.update(data)
            else:
                ref.delete()
        self._ops = []


class FakeFirestore:
    def __init__(self):
        self.store = {}
        self.fail_commits = False
        self._ticks = itertools.count(1)
        self._epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def now(self):
        # Her sunucu zaman damgası bir öncekinden büyük
        return self._epoch + timedelta(seconds=next(self._ticks))

    def resolve(self, data, current=None):
        current = current or {}
        out = {}
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                out[key] = self.now()
            elif isinstance(value, Increment):
                out[key] = (current.get(key) or 0) + value.value
            else:
                out[key] = copy.deepcopy(value)
        return out

    def docs(self, name):
        return copy.deepcopy(self.store.get(name, {}))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def client(db, monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_123")
    monkeypatch.setattr(settings, "stripe_webhook_secret", WEBHOOK_SECRET)
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Sets the authenticated caller for subsequent requests."""

    def _login(uid="user-1", role="user", email="shopper@example.com", name="Shopper"):
        principal = Principal(uid=uid, role=role, email=email, display_name=name)
        app.dependency_overrides[get_principal] = lambda: principal
        return principal

    return _login


@pytest.fixture
def as_user(login):
    return login()


@pytest.fixture
def add_product(db):
    def _add(product_id="p1", **fields):
        data = {
            "name": f"Product {product_id}",
            "price": 100,
            "category": "General",
            "description": "",
            "brand": "Acme",
            "images": [f"https://img.example.com/{product_id}.png"],
            "in_stock": True,
            "discount": 0,
            "rating": 0,
            "sales_count": 0,
            "created_at": db.now(),
        }
        data.update(fields)
        db.collection("products").document(product_id).set(data)
        return product_id

    return _add


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Stripe-Signature header for `payload` (Stripe's v1 HMAC-SHA256 scheme)."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def intent_event(event_type, intent_id, event_id=None, status=None, created=None, **intent_fields):
    intent = {
        "id": intent_id,
        "object": "payment_intent",
        "status": status or ("succeeded" if event_type.endswith("succeeded") else "requires_payment_method"),
        **intent_fields,
    }
    return {
        "id": event_id or f"evt_{uuid.uuid4().hex[:12]}",
        "object": "event",
        "type": event_type,
        "created": created if created is not None else int(time.time()),
        "data": {"object": intent},
    }


@pytest.fixture
def post_webhook(client):
    def _post(event, secret=WEBHOOK_SECRET, signature=None):
        payload = json.dumps(event)
        header = signature if signature is not None else sign_payload(payload, secret)
        return client.post(
            "/payment/webhook",
            content=payload,
            headers={"Stripe-Signature": header, "Content-Type": "application/json"},
        )

    return _post
