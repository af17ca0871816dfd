import pytest

from app import create_app, get_state


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def static_dir(tmp_path):
    d = tmp_path / "static"
    d.mkdir()
    (d / "index.html").write_text("<h1>Invoices</h1>", encoding="utf-8")
    return d


@pytest.fixture
def make_app(data_dir, static_dir):
    """Builds an app over the test data dir; call again to simulate a restart."""
    def _make(**overrides):
        cfg = {
            "TESTING": True,
            "DATA_DIR": str(data_dir),
            "STATIC_DIR": str(static_dir),
            "COMPANY_NAME": "Test Household",
            "COMPANY_EMAIL": "billing@example.com",
            "COMPANY_PHONE": "555-0100",
            "COMPANY_ADDRESS": "1 Main St, Springfield",
        }
        cfg.update(overrides)
        return create_app(cfg)
    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def state(app):
    return get_state(app)


@pytest.fixture
def create_customer(client):
    def _create(**fields):
        payload = {"name": "Acme", "email": "a@acme.com"}
        payload.update(fields)
        resp = client.post("/api/customers", json=payload)
        assert resp.status_code == 201
        return resp.get_json()
    return _create


@pytest.fixture
def create_invoice(client):
    def _create(**fields):
        payload = {
            "date": "2024-01-15",
            "dueDate": "2024-02-14",
            "client": {"name": "Jane Doe", "email": "jane@example.com"},
            "items": [{"description": "Widget", "quantity": 2, "rate": 50}],
            "tax": 5,
        }
        payload.update(fields)
        resp = client.post("/api/invoices", json=payload)
        assert resp.status_code == 201
        return resp.get_json()
    return _create
