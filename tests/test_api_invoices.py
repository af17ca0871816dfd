import json

import pytest

from storage import StorageError, INVOICES_FILE


def test_scenario_customer_then_invoice(client, create_customer):
    customer = create_customer(name="Acme", email="a@acme.com")
    assert customer["id"] == 1

    resp = client.post("/api/invoices", json={
        "customerId": 1,
        "items": [{"description": "Widget", "quantity": 2, "rate": 50}],
        "tax": 5,
    })
    assert resp.status_code == 201
    inv = resp.get_json()
    assert inv["id"] == 1
    assert inv["invoiceNum"] == "INV-0001"
    assert inv["client"]["name"] == "Acme"
    assert inv["client"]["email"] == "a@acme.com"
    assert inv["customerId"] == 1
    assert inv["items"][0]["amount"] == pytest.approx(100.0)
    assert inv["subtotal"] == pytest.approx(100.0)
    assert inv["total"] == pytest.approx(105.0)


def test_ids_are_sequential_and_never_reused(client, create_invoice):
    ids = [create_invoice()["id"] for _ in range(3)]
    assert ids == [1, 2, 3]

    assert client.delete("/api/invoices/3").status_code == 200
    nxt = create_invoice()
    assert nxt["id"] == 4
    assert nxt["invoiceNum"] == "INV-0004"


def test_list_invoices_in_insertion_order(client, create_invoice):
    assert client.get("/api/invoices").get_json() == []
    create_invoice(notes="first")
    create_invoice(notes="second")
    listed = client.get("/api/invoices").get_json()
    assert [inv["notes"] for inv in listed] == ["first", "second"]


def test_get_invoice(client, create_invoice):
    created = create_invoice()
    resp = client.get(f"/api/invoices/{created['id']}")
    assert resp.status_code == 200
    assert resp.get_json() == created


def test_get_invoice_bad_id_and_missing(client):
    resp = client.get("/api/invoices/abc")
    assert resp.status_code == 400
    assert "Invalid invoice ID" in resp.get_json()["error"]

    resp = client.get("/api/invoices/9999")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Invoice not found"


def test_create_invoice_rejects_bad_json(client):
    resp = client.post("/api/invoices", data="{not json", content_type="application/json")
    assert resp.status_code == 400
    assert resp.get_json()["error"].startswith("Invalid JSON")

    resp = client.post("/api/invoices", json=[1, 2, 3])
    assert resp.status_code == 400

    resp = client.post("/api/invoices", json={"items": [{"rate": "lots"}]})
    assert resp.status_code == 400
    assert client.get("/api/invoices").get_json() == []


@pytest.mark.parametrize("body", [
    '{"tax": NaN, "items": []}',
    '{"items": [{"rate": Infinity, "quantity": 1}]}',
    '{"items": [{"rate": 10, "percentage": -Infinity}]}',
    '{"items": [{"rate": "50", "quantity": 1}]}',
    '{"items": [{"rate": "inf", "quantity": 1}]}',
    '{"items": [{"rate": 1e308, "quantity": 10}]}',
])
def test_create_invoice_rejects_non_finite_and_string_numbers(client, body):
    resp = client.post("/api/invoices", data=body, content_type="application/json")
    assert resp.status_code == 400
    assert resp.get_json()["error"].startswith("Invalid JSON")
    assert client.get("/api/invoices").get_json() == []


def test_create_invoice_recomputes_client_amounts(client):
    resp = client.post("/api/invoices", json={
        "items": [
            {"description": "Share", "rate": 300, "percentage": 50, "amount": 1},
            {"description": "Hours", "quantity": 3, "rate": 20},
        ],
        "subtotal": 1,
        "total": 1,
        "tax": 0,
    })
    inv = resp.get_json()
    assert [it["amount"] for it in inv["items"]] == [150.0, 60.0]
    assert inv["subtotal"] == 210.0
    assert inv["total"] == 210.0


def test_delete_invoice(client, create_invoice):
    create_invoice()
    target = create_invoice()

    resp = client.delete(f"/api/invoices/{target['id']}")
    assert resp.status_code == 200
    assert resp.get_json() == {"message": "Invoice deleted successfully"}
    assert client.get(f"/api/invoices/{target['id']}").status_code == 404
    assert len(client.get("/api/invoices").get_json()) == 1


def test_delete_invoice_errors(client):
    assert client.delete("/api/invoices/x1").status_code == 400
    assert client.delete("/api/invoices/1").status_code == 404


def test_toggle_template(client, create_invoice):
    inv = create_invoice()
    url = f"/api/invoices/{inv['id']}/template"

    resp = client.put(url, json={"templateName": "Monthly rent"})
    assert resp.status_code == 200
    assert resp.get_json() == {
        "message": "Template status updated",
        "template": True,
        "templateName": "Monthly rent",
    }
    assert client.get(f"/api/invoices/{inv['id']}").get_json()["templateName"] == "Monthly rent"

    resp = client.put(url, json={"templateName": "ignored when turning off"})
    body = resp.get_json()
    assert body["template"] is False
    assert body["templateName"] == ""
    stored = client.get(f"/api/invoices/{inv['id']}").get_json()
    assert stored["template"] is False
    assert "templateName" not in stored


def test_toggle_template_without_body(client, create_invoice):
    inv = create_invoice()
    resp = client.put(f"/api/invoices/{inv['id']}/template")
    assert resp.status_code == 200
    assert resp.get_json()["template"] is True
    assert resp.get_json()["templateName"] == ""


def test_toggle_template_errors(client):
    assert client.put("/api/invoices/abc/template").status_code == 400
    assert client.put("/api/invoices/5/template", json={}).status_code == 404


def test_generate_pdf(client, create_invoice):
    inv = create_invoice(notes="")
    resp = client.get(f"/api/invoices/{inv['id']}/pdf")
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    disposition = resp.headers["Content-Disposition"]
    assert disposition.startswith("attachment")
    assert "invoice-INV-0001.pdf" in disposition
    assert resp.data.startswith(b"%PDF")


def test_generate_pdf_errors(client, monkeypatch, create_invoice):
    assert client.get("/api/invoices/abc/pdf").status_code == 400
    assert client.get("/api/invoices/1/pdf").status_code == 404

    create_invoice()

    def broken(*args, **kwargs):
        raise RuntimeError("font missing")

    monkeypatch.setattr("app.render_invoice_pdf", broken)
    resp = client.get("/api/invoices/1/pdf")
    assert resp.status_code == 500
    assert "font missing" in resp.get_json()["error"]


def test_invoices_persist_across_restart(make_app, data_dir, create_invoice):
    create_invoice(notes="keep me")

    stored = json.loads((data_dir / INVOICES_FILE).read_text(encoding="utf-8"))
    assert [inv["notes"] for inv in stored] == ["keep me"]

    restarted = make_app().test_client()
    assert restarted.get("/api/invoices/1").get_json()["notes"] == "keep me"
    resp = restarted.post("/api/invoices", json={})
    assert resp.get_json()["id"] == 2


def test_storage_failure_returns_500(client, state, monkeypatch):
    def boom(*args, **kwargs):
        raise StorageError("Error saving invoices.json: disk full")

    monkeypatch.setattr(state.storage, "save", boom)
    resp = client.post("/api/invoices", json={})
    assert resp.status_code == 500
    assert "disk full" in resp.get_json()["error"]


def test_cors_allows_any_origin(client):
    resp = client.get("/api/invoices", headers={"Origin": "http://example.com"})
    assert resp.headers["Access-Control-Allow-Origin"] == "*"

    resp = client.options(
        "/api/invoices/1",
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "DELETE",
        },
    )
    assert resp.status_code == 200
    assert "DELETE" in resp.headers["Access-Control-Allow-Methods"]
