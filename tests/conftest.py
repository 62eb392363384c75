import hashlib
import hmac
import os
import time

# Le lifespan lit ce flag au démarrage: pas de Redis en tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional, Tuple
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from labstore.app import app as fastapi_app
from labstore.utils.security import require_user

WEBHOOK_SECRET = "whsec_test_secret"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def fake_user() -> Dict[str, Any]:
    return {"id": "test-user", "email": "test@example.com"}

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app, fake_user):
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

# Aucun accès réseau: clients Supabase mockés, secrets Stripe factices
@pytest.fixture(autouse=True)
def mock_external_services(monkeypatch):
    monkeypatch.setattr("labstore.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("labstore.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr("labstore.config.STRIPE_SECRET_KEY", "sk_test_dummy")
    monkeypatch.setattr("labstore.config.STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr("labstore.config.STRIPE_WEBHOOK_TOLERANCE_SECONDS", 300)
    monkeypatch.setattr("labstore.config.SUPPORTED_CURRENCIES", ["USD", "MXN"])
    monkeypatch.setattr("labstore.config.WEBHOOK_FALLBACK_CURRENCY", "MXN")
    monkeypatch.setattr("labstore.config.APP_URL", "https://labs.example.test")


class FakeStore:
    """
    Tables Supabase en mémoire, branchées à la place des repositories.
    Reproduit les deux contraintes d'unicité du schéma:
    lab_entitlements(user_id, lab_id) et payment_orders(stripe_session_id).
    """

    def __init__(self):
        self.labs: Dict[str, dict] = {}
        self.prices: List[dict] = []
        self.coupons: Dict[str, dict] = {}
        self.entitlements: Dict[Tuple[str, str], dict] = {}
        self.orders: Dict[str, dict] = {}
        self.order_writes = 0

    # --- données de départ ---
    def add_lab(self, lab_id: str, title: str, **prices: int) -> None:
        self.labs[lab_id] = {"id": lab_id, "title": title}
        for currency, amount in prices.items():
            self.prices.append({"lab_id": lab_id, "currency": currency.upper(), "amount_cents": amount, "is_active": True})

    def add_coupon(self, code: str, **fields: Any) -> None:
        row = {
            "code": code,
            "discount_type": "percent",
            "percent_off": None,
            "amount_off_cents": None,
            "currency": None,
            "lab_id": None,
            "is_active": True,
            "expires_at": None,
        }
        row.update(fields)
        self.coupons[code.upper()] = row

    def grant(self, user_id: str, lab_id: str, status: str = "active") -> None:
        self.entitlements[(user_id, lab_id)] = {"user_id": user_id, "lab_id": lab_id, "status": status, "source": "manual"}

    # --- catalog.repository ---
    def fetch_labs(self, lab_ids):
        return {i: self.labs[i] for i in lab_ids if i in self.labs}

    def fetch_active_prices(self, lab_ids):
        return [dict(p) for p in self.prices if p["lab_id"] in lab_ids and p["is_active"]]

    # --- coupons.repository ---
    def get_coupon_by_code(self, code):
        row = self.coupons.get(code)
        return dict(row) if row else None

    # --- entitlements.repository ---
    def fetch_active_lab_ids(self, user_id, lab_ids):
        return {
            lab_id for lab_id in lab_ids
            if self.entitlements.get((user_id, lab_id), {}).get("status") == "active"
        }

    def upsert_entitlements(self, user_id, lab_ids, source):
        now = datetime.now(timezone.utc).isoformat()
        rows = []
        for lab_id in lab_ids:
            row = {"user_id": user_id, "lab_id": lab_id, "status": "active", "source": source, "updated_at": now}
            self.entitlements[(user_id, lab_id)] = row
            rows.append(row)
        return rows

    # --- payments.repository ---
    def get_order(self, session_id):
        row = self.orders.get(session_id)
        return dict(row) if row else None

    def upsert_order(self, order):
        self.order_writes += 1
        self.orders[order["stripe_session_id"]] = dict(order)
        return dict(order)

    def active_labs(self, user_id: str) -> List[str]:
        return sorted(lab for (uid, lab), row in self.entitlements.items() if uid == user_id and row["status"] == "active")


@pytest.fixture
def store(monkeypatch) -> FakeStore:
    s = FakeStore()
    monkeypatch.setattr("labstore.catalog.repository.fetch_labs", s.fetch_labs)
    monkeypatch.setattr("labstore.catalog.repository.fetch_active_prices", s.fetch_active_prices)
    monkeypatch.setattr("labstore.coupons.repository.get_coupon_by_code", s.get_coupon_by_code)
    monkeypatch.setattr("labstore.entitlements.repository.fetch_active_lab_ids", s.fetch_active_lab_ids)
    monkeypatch.setattr("labstore.entitlements.repository.upsert_entitlements", s.upsert_entitlements)
    monkeypatch.setattr("labstore.payments.repository.get_order", s.get_order)
    monkeypatch.setattr("labstore.payments.repository.upsert_order", s.upsert_order)
    return s


@pytest.fixture
def stripe_sessions(monkeypatch) -> List[Dict[str, Any]]:
    """Capture les appels stripe_client.create_session et renvoie une session factice."""
    calls: List[Dict[str, Any]] = []

    def _fake_create_session(**kwargs):
        calls.append(kwargs)
        return {"id": f"cs_test_{len(calls)}", "url": f"https://checkout.stripe.test/pay/cs_test_{len(calls)}"}

    monkeypatch.setattr("labstore.payments.stripe_client.create_session", _fake_create_session)
    return calls


@pytest.fixture
def make_event():
    """Fabrique d'événements checkout.session.* au format Stripe."""
    return checkout_event


def checkout_event(
    event_type: str = "checkout.session.completed",
    session_id: str = "cs_test_1",
    user_id: Optional[str] = "test-user",
    lab_ids: str = "lab-x",
    payment_status: str = "paid",
    amount_total: Any = 1000,
    currency: Any = "usd",
    **extra: Any,
) -> Dict[str, Any]:
    metadata = {"lab_ids": lab_ids, "lab_id": lab_ids.split(",")[0] if lab_ids else "", "coupon_code": ""}
    if user_id is not None:
        metadata["user_id"] = user_id
    session = {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": payment_status,
        "amount_total": amount_total,
        "currency": currency,
        "payment_intent": "pi_test_1",
        "metadata": metadata,
    }
    session.update(extra)
    return {"id": "evt_test_1", "type": event_type, "data": {"object": session}}


def stripe_signature(raw: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """En-tête Stripe-Signature v1 pour un corps donné (même schéma que les envois Stripe)."""
    ts = int(time.time()) if timestamp is None else int(timestamp)
    digest = hmac.new(secret.encode("utf-8"), f"{ts}.".encode("utf-8") + raw, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


@pytest.fixture
def sign_payload():
    """Signe un corps brut comme le ferait Stripe (secret de test par défaut)."""
    return stripe_signature
