def test_checkout_returns_stripe_url(client, store, stripe_sessions):
    # Arrange
    store.add_lab("lab-x", "Lab X", usd=2000)
    # Act
    r = client.post("/api/v1/payments/checkout", json={"labId": "lab-x", "currency": "USD"})
    # Assert
    assert r.status_code == 200
    assert r.json() == {
        "url": "https://checkout.stripe.test/pay/cs_test_1",
        "amountCents": 2000,
        "discountCents": 0,
        "currency": "USD",
        "sessionId": "cs_test_1",
    }
    call = stripe_sessions[0]
    assert call["success_url"] == "https://labs.example.test/labs/lab-x?payment=success"
    assert call["cancel_url"] == "https://labs.example.test/?payment=cancelled&lab=lab-x"
    assert call["customer_email"] == "test@example.com"


def test_checkout_zero_amount_is_409(client, store, stripe_sessions):
    store.add_lab("lab-x", "Lab X", usd=2000)
    store.add_coupon("FREE25", discount_type="fixed", amount_off_cents=2500, currency="USD")

    r = client.post("/api/v1/payments/checkout", json={"labId": "lab-x", "currency": "USD", "couponCode": "FREE25"})

    assert r.status_code == 409
    assert "reduces the amount to zero" in r.json()["detail"]
    assert stripe_sessions == []


def test_checkout_already_entitled_is_409(client, store, stripe_sessions):
    store.add_lab("lab-x", "Lab X", usd=2000)
    store.grant("test-user", "lab-x")
    r = client.post("/api/v1/payments/checkout", json={"labId": "lab-x"})
    assert r.status_code == 409


def test_checkout_missing_and_unknown_lab(client, store, stripe_sessions):
    assert client.post("/api/v1/payments/checkout", json={}).status_code == 400
    assert client.post("/api/v1/payments/checkout", json={"labId": "nope"}).status_code == 404


def test_checkout_stripe_failure_is_500(client, store, monkeypatch):
    from labstore.errors import UpstreamError

    store.add_lab("lab-x", "Lab X", usd=2000)

    def _fail(**kwargs):
        raise UpstreamError("Could not create Stripe session")

    monkeypatch.setattr("labstore.payments.stripe_client.create_session", _fail)
    r = client.post("/api/v1/payments/checkout", json={"labId": "lab-x", "currency": "USD"})
    assert r.status_code == 500
    assert r.json() == {"detail": "Could not create Stripe session"}
