"""Tests des routes de chiffrage, d'enregistrement et d'export des devis."""

import json

import pytest

RATE_DOCS = [
    {"id": "r1", "service": "Data Engineer", "complexity": "Sr", "frequency": "Mensual",
     "base_price": 7000.0, "multiplier": 1.0},
    {"id": "r2", "service": "Pipelines", "complexity": "Media", "frequency": "Diaria",
     "base_price": 500.0, "multiplier": 1.0},
]

DRAFT = {
    "client_name": "Banco Global",
    "project_type": "medium",
    "service_type": "Project",
    "description": "Migración a Lakehouse.",
    "duration_months": 2,
    "profiles": [{"role": "Data Engineer", "level": "Sr", "allocation": 50, "count": 2}],
    "services": [{"service": "Pipelines", "quantity": 3}],
    "tech_stack": ["databricks"],
}


class FakeArchiver:
    def __init__(self, fail=False):
        self.uploads = []
        self.fail = fail

    def upload_bytes(self, blob_name, data, content_type):
        if self.fail:
            raise RuntimeError("blob down")
        self.uploads.append((blob_name, content_type, len(data)))
        return f"https://blob.local/quotes/{blob_name}"


@pytest.fixture
def archiver():
    return FakeArchiver()


@pytest.fixture(autouse=True)
def rates(store):
    for doc in RATE_DOCS:
        store.rates.docs[doc["id"]] = dict(doc)


@pytest.fixture
def saved_quote(client, login_as):
    login_as("ana@acme.io", name="Ana Pérez")
    r = client.post("/quotes", json=DRAFT)
    assert r.status_code == 201
    return r.json()


class TestEstimate:
    def test_requires_session(self, client):
        assert client.post("/quotes/estimate", json=DRAFT).status_code == 401

    def test_server_side_totals(self, client, login_as):
        login_as("ana@acme.io")
        r = client.post("/quotes/estimate", json=DRAFT)
        assert r.status_code == 200
        est = r.json()
        assert est["roles_cost"] == 7000.0
        assert est["services_cost"] == 1500.0
        assert est["l2_support_cost"] == 850.0
        assert est["total_project_cost"] == pytest.approx(18700.0)

    def test_unavailable_profile_is_422(self, client, login_as):
        login_as("ana@acme.io")
        draft = dict(DRAFT, profiles=[{"role": "Astronaut", "level": "Sr"}])
        assert client.post("/quotes/estimate", json=draft).status_code == 422

    def test_seniority_options(self, client, login_as):
        login_as("ana@acme.io")
        r = client.get("/rates/options", params={"role": "Data Engineer"})
        assert r.json() == [{"level": "Sr", "price": 7000.0}]

    def test_default_options_ignore_role_case(self, client, login_as):
        login_as("ana@acme.io")
        r = client.get("/rates/options", params={"role": "data scientist"})
        assert {o["level"]: o["price"] for o in r.json()} == {
            "Jr": 3570.0, "Med": 5100.0, "Sr": 6630.0, "Expert": 7650.0,
        }


class TestSave:
    def test_persisted_as_draft(self, client, store, saved_quote):
        assert saved_quote["status"] == "BORRADOR"
        assert saved_quote["user_id"] == "sb-ana"
        assert saved_quote["estimated_cost"] == 9350.0
        assert saved_quote["diagram_definition"].startswith("graph TD")
        assert "Azure Databricks" in saved_quote["diagram_definition"]

        params = json.loads(saved_quote["technical_parameters"])
        assert params["estimate"]["total_project_cost"] == pytest.approx(18700.0)
        staffing = json.loads(saved_quote["staffing_requirements"])
        assert staffing[0]["unit_price"] == 7000.0
        assert saved_quote["id"] in store.quotes.docs

    def test_client_diagram_is_kept(self, client, login_as):
        login_as("ana@acme.io")
        r = client.post("/quotes", json=dict(DRAFT, diagram_definition="graph LR\n  A --> B\n"))
        assert r.json()["diagram_definition"] == "graph LR\n  A --> B\n"

    def test_my_quotes_only(self, client, store, saved_quote):
        store.quotes.docs["other"] = dict(store.quotes.docs[saved_quote["id"]], id="other", user_id="sb-leo")
        r = client.get("/quotes/me")
        assert [q["id"] for q in r.json()] == [saved_quote["id"]]


class TestDiagramEditor:
    def test_requires_session(self, client):
        r = client.post("/quotes/diagram", json={"prompt": "crea flujo sap luego databricks"})
        assert r.status_code == 401

    def test_prompt_builds_graph(self, client, login_as):
        login_as("ana@acme.io")
        r = client.post("/quotes/diagram", json={
            "current_code": "graph TD\n    A --> B\n",
            "prompt": "Crea un flujo: SAP luego Databricks",
        })
        assert r.status_code == 200
        assert "SAP --> DB" in r.json()["diagram_definition"]

    def test_empty_prompt_is_422(self, client, login_as):
        login_as("ana@acme.io")
        assert client.post("/quotes/diagram", json={"prompt": ""}).status_code == 422


class TestVisibility:
    def test_owner_reads(self, client, saved_quote):
        r = client.get(f"/quotes/{saved_quote['id']}")
        assert r.status_code == 200

    def test_other_consultant_is_403(self, client, saved_quote, login_as):
        client.cookies.clear()
        login_as("leo@acme.io")
        assert client.get(f"/quotes/{saved_quote['id']}").status_code == 403

    def test_admin_reads_any(self, client, saved_quote, login_as):
        client.cookies.clear()
        login_as("boss@acme.io", role="ADMIN")
        assert client.get(f"/quotes/{saved_quote['id']}").status_code == 200

    def test_unknown_is_404(self, client, saved_quote):
        assert client.get("/quotes/nope").status_code == 404


class TestExport:
    def test_docx(self, client, archiver, saved_quote):
        r = client.get(f"/quotes/{saved_quote['id']}/export")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        )
        assert 'filename="cotizacion_Banco_Global_' in r.headers["content-disposition"]
        assert r.content[:2] == b"PK"
        assert archiver.uploads == []

    def test_pdf_is_archived(self, client, store, archiver, saved_quote):
        r = client.get(f"/quotes/{saved_quote['id']}/export", params={"format": "pdf"})
        assert r.status_code == 200
        assert r.content.startswith(b"%PDF")
        assert len(archiver.uploads) == 1
        blob_name, content_type, _ = archiver.uploads[0]
        assert blob_name.startswith(f"{saved_quote['id']}/cotizacion_Banco_Global_")
        assert content_type == "application/pdf"
        assert store.quotes.docs[saved_quote["id"]]["pdf_snapshot"].startswith("https://blob.local/")

    def test_archive_failure_still_returns_pdf(self, client, store, archiver, saved_quote):
        archiver.fail = True
        r = client.get(f"/quotes/{saved_quote['id']}/export", params={"format": "pdf"})
        assert r.status_code == 200
        assert store.quotes.docs[saved_quote["id"]]["pdf_snapshot"] is None

    def test_unknown_format_is_422(self, client, saved_quote):
        r = client.get(f"/quotes/{saved_quote['id']}/export", params={"format": "xlsx"})
        assert r.status_code == 422
