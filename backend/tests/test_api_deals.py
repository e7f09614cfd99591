"""Deal endpoints: CRUD, uniqueness, attachment preserve/replace, archive toggle, preview."""
from conftest import blank_pdf, data_url, png_bytes

from settings import MB


def _pdf_item(name: str, widths=(612,)):
    raw = blank_pdf(widths=widths)
    return {"name": name, "size": len(raw), "dataUrl": data_url("application/pdf", raw)}


def test_create_and_get_deal(client, deal_payload):
    response = client.post("/api/deals", json=deal_payload())
    assert response.status_code == 201
    created = response.json()
    assert created["id"] >= 1
    assert created["loanNumber"] == "123456"
    assert created["archived"] is False
    assert "X-Request-Id" in response.headers

    fetched = client.get(f"/api/deals/{created['id']}").json()
    assert fetched["amount"] == "$250,000"
    assert fetched["bedsBaths"] == "3 / 2"


def test_missing_address_is_400(client, deal_payload):
    response = client.post("/api/deals", json=deal_payload(address="   "))
    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_missing_loan_number_is_400(client, deal_payload):
    response = client.post("/api/deals", json=deal_payload(loan_number=""))
    assert response.status_code == 400


def test_duplicate_loan_number_is_409(client, deal_payload):
    assert client.post("/api/deals", json=deal_payload()).status_code == 201
    response = client.post("/api/deals", json=deal_payload(address="Somewhere else"))
    assert response.status_code == 409
    assert response.json()["error_code"] == "DUPLICATE_LOAN_NUMBER"
    listing = client.get("/api/deals").json()
    assert [d["address"] for d in listing] == ["123 Main St, Springfield"]


def test_unknown_deal_is_404(client):
    response = client.get("/api/deals/4040")
    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"


def test_short_image_names_accepted(client, deal_payload):
    hero = data_url("image/png", png_bytes())
    created = client.post("/api/deals", json=deal_payload(hero=hero)).json()
    assert created["heroImage"] == hero


def test_save_without_new_uploads_preserves_attachments(client, deal_payload):
    hero = data_url("image/png", png_bytes(color=(1, 2, 3)))
    int3 = data_url("image/png", png_bytes(color=(4, 5, 6)))
    pdfs = [_pdf_item("a.pdf"), _pdf_item("b.pdf", (300,))]
    created = client.post(
        "/api/deals", json=deal_payload(heroImage=hero, int3Image=int3, attachedPdfs=pdfs)
    ).json()

    response = client.put(f"/api/deals/{created['id']}", json=deal_payload(amount="$260,000"))
    assert response.status_code == 200
    saved = client.get(f"/api/deals/{created['id']}").json()
    assert saved["amount"] == "$260,000"
    assert saved["heroImage"] == hero
    assert saved["int3Image"] == int3
    assert saved["int1Image"] is None
    assert [p["dataUrl"] for p in saved["attachedPdfs"]] == [p["dataUrl"] for p in pdfs]


def test_new_pdf_list_replaces_old_one(client, deal_payload):
    created = client.post(
        "/api/deals", json=deal_payload(attachedPdfs=[_pdf_item("a.pdf"), _pdf_item("b.pdf")])
    ).json()
    client.put(f"/api/deals/{created['id']}", json=deal_payload(attachedPdfs=[_pdf_item("c.pdf")]))
    saved = client.get(f"/api/deals/{created['id']}").json()
    assert [p["name"] for p in saved["attachedPdfs"]] == ["c.pdf"]


def test_oversized_image_is_413_and_slot_unchanged(client, deal_payload, settings):
    hero = data_url("image/png", png_bytes())
    created = client.post("/api/deals", json=deal_payload(heroImage=hero)).json()
    settings.image_max_width = 0
    too_big = data_url("image/png", b"\x89PNG" + b"\x00" * (5 * MB))
    response = client.put(f"/api/deals/{created['id']}", json=deal_payload(heroImage=too_big))
    assert response.status_code == 413
    assert response.json()["slot"] == "heroImage"
    assert client.get(f"/api/deals/{created['id']}").json()["heroImage"] == hero


def test_malformed_pdf_payload_is_400_with_slot(client, deal_payload):
    bad = [{"name": "x.pdf", "size": 1, "dataUrl": "data:application/pdf;base64"}]
    response = client.post("/api/deals", json=deal_payload(attachedPdfs=bad))
    assert response.status_code == 400
    assert response.json()["slot"] == "attachedPdfs[0]"


def test_put_ignores_archived_field(client, deal_payload):
    created = client.post("/api/deals", json=deal_payload()).json()
    client.put(f"/api/deals/{created['id']}", json=deal_payload(archived=True))
    assert client.get(f"/api/deals/{created['id']}").json()["archived"] is False


def test_list_is_summary_without_payloads(client, deal_payload):
    client.post("/api/deals", json=deal_payload(heroImage=data_url("image/png", png_bytes())))
    rows = client.get("/api/deals").json()
    assert rows[0]["imageCount"] == 1
    assert "heroImage" not in rows[0]
    assert "attachedPdfs" not in rows[0]


def test_search_and_archive_filter(client, deal_payload):
    a = client.post("/api/deals", json=deal_payload("111111", address="1 Harbor Rd")).json()
    client.post("/api/deals", json=deal_payload("222222", address="2 Mill Ln"))
    assert [d["id"] for d in client.get("/api/deals", params={"search": "HARBOR"}).json()] == [a["id"]]

    client.patch(f"/api/deals/{a['id']}/archive", json={"archived": True})
    assert [d["loanNumber"] for d in client.get("/api/deals").json()] == ["222222"]
    assert [d["loanNumber"] for d in client.get("/api/deals", params={"archived": "true"}).json()] == ["111111"]
    assert len(client.get("/api/deals", params={"archived": "all"}).json()) == 2


def test_archive_without_body_toggles(client, deal_payload):
    created = client.post("/api/deals", json=deal_payload()).json()
    first = client.patch(f"/api/deals/{created['id']}/archive")
    assert first.json()["archived"] is True
    second = client.patch(f"/api/deals/{created['id']}/archive")
    assert second.json()["archived"] is False


def test_delete_deal(client, deal_payload):
    created = client.post("/api/deals", json=deal_payload()).json()
    assert client.delete(f"/api/deals/{created['id']}").status_code == 200
    assert client.get(f"/api/deals/{created['id']}").status_code == 404


def test_new_loan_number_is_six_unused_digits(client, deal_payload):
    number = client.get("/api/deals/new-loan-number").json()["loanNumber"]
    assert len(number) == 6 and number.isdigit()
    assert client.post("/api/deals", json=deal_payload(number)).status_code == 201


def test_preview_returns_html(client, deal_payload):
    created = client.post("/api/deals", json=deal_payload()).json()
    response = client.get(f"/api/deals/{created['id']}/preview")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "123 Main St, Springfield" in response.text


def test_engagement_agreement_requires_fields(client, deal_payload):
    created = client.post("/api/deals", json=deal_payload()).json()
    response = client.get(f"/api/deals/{created['id']}/engagement-agreement")
    assert response.status_code == 400


def test_engagement_agreement_pdf(client, deal_payload):
    body = deal_payload(clientName="Ann Client", lendingEntity="Safeguard Lending LLC", clientAddress="1 Client Way")
    created = client.post("/api/deals", json=body).json()
    response = client.get(f"/api/deals/{created['id']}/engagement-agreement")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
