"""Session gate: login/logout/check-auth and 401 with no mutation on every /api route."""
import pytest

from conftest import ADMIN_PASSWORD


def test_check_auth_reflects_session(anon_client):
    assert anon_client.get("/check-auth").json() == {"authenticated": False}
    assert anon_client.post("/login", json={"username": "admin", "password": ADMIN_PASSWORD}).status_code == 200
    assert anon_client.get("/check-auth").json() == {"authenticated": True}
    anon_client.post("/logout")
    assert anon_client.get("/check-auth").json() == {"authenticated": False}


def test_wrong_password_is_401(anon_client):
    response = anon_client.post("/login", json={"username": "admin", "password": "nope"})
    assert response.status_code == 401
    assert anon_client.get("/check-auth").json() == {"authenticated": False}


@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/api/deals"),
        ("post", "/api/deals"),
        ("get", "/api/deals/1"),
        ("put", "/api/deals/1"),
        ("delete", "/api/deals/1"),
        ("patch", "/api/deals/1/archive"),
        ("get", "/api/deals/new-loan-number"),
        ("get", "/api/deals/1/engagement-agreement"),
        ("get", "/api/portfolios"),
        ("post", "/api/portfolios"),
        ("put", "/api/portfolios/1"),
        ("delete", "/api/portfolios/1"),
        ("patch", "/api/portfolios/1/archive"),
        ("post", "/api/generate-pdf/1"),
        ("post", "/api/generate-portfolio-pdf/1"),
        ("get", "/api/pdfs"),
    ],
)
def test_api_requires_session(anon_client, method, path):
    kwargs = {"json": {"loanNumber": "1", "address": "x", "investorName": "y"}} if method in ("post", "put") else {}
    response = getattr(anon_client, method)(path, **kwargs)
    assert response.status_code == 401
    assert response.json()["error_code"] == "UNAUTHORIZED"


def test_rejected_calls_mutate_nothing(app, anon_client, deal_payload):
    anon_client.post("/api/deals", json=deal_payload())
    anon_client.post("/api/portfolios", json={"investorName": "Jane", "loans": []})
    store = app.state.store
    assert store.deals.search(archived="all") == []
    assert store.portfolios.search(archived="all") == []


def test_logout_revokes_access(client):
    assert client.get("/api/deals").status_code == 200
    client.post("/logout")
    assert client.get("/api/deals").status_code == 401
