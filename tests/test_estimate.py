"""Tests d'agrégation : criticité, support L2, risque, totaux, chiffrage serveur."""

import pytest

from cotizador.models.quote import QuoteDraft
from cotizador.models.rate import ServiceRate
from cotizador.services.builder import UnavailableProfile, estimate_draft
from Quoting.diagram import build_architecture_diagram
from Quoting.estimate import aggregate_profiles, build_estimate, criticality_level

MULTIPLIERS = {"Jr": 0.7, "Med": 1.0, "Sr": 1.3, "Expert": 1.5}


class TestCriticality:
    def test_disabled_is_baja_with_zero_score(self):
        assert criticality_level(False, "high", "high", 10, 1000) == {"label": "BAJA", "margin": 0.0, "score": 0}

    def test_alta_threshold(self):
        # 5 + 5 + 5 (>3 pays) + 5 (>100 users) = 20
        level = criticality_level(True, "high", "high", 4, 150)
        assert level["label"] == "ALTA"
        assert level["margin"] == 0.20
        assert level["score"] == 20

    def test_media_threshold(self):
        # 5 + 1 + 2 + 1 = 9
        level = criticality_level(True, "high", "low", 2, 5)
        assert (level["label"], level["score"]) == ("MEDIA", 9)

    def test_baja_below_nine(self):
        # 3 + 1 + 1 + 3 = 8
        level = criticality_level(True, "medium", "low", 1, 11)
        assert (level["label"], level["margin"], level["score"]) == ("BAJA", 0.0, 8)


class TestAggregate:
    def test_sum_of_lines(self):
        lines = [
            {"unit_price": 1000.0, "allocation": 50, "count": 2},
            {"unit_price": 2000.0},
        ]
        assert aggregate_profiles(lines) == pytest.approx(3000.0)

    def test_empty(self):
        assert aggregate_profiles([]) == 0

    def test_l2_and_risk(self):
        totals = build_estimate(
            [{"unit_price": 1000.0, "allocation": 100, "count": 1}],
            [{"unit_price": 100.0, "quantity": 2}],
            "Project",
            6,
            {"label": "MEDIA", "margin": 0.10, "score": 10},
        )
        assert totals["roles_cost"] == 1000.0
        assert totals["services_cost"] == 200.0
        assert totals["l2_support_cost"] == 120.0
        assert totals["total_monthly_cost"] == 1320.0
        assert totals["risk_cost"] == 132.0
        assert totals["total_with_risk"] == 1452.0
        assert totals["total_project_cost"] == 8712.0

    def test_staffing_has_no_l2(self):
        totals = build_estimate(
            [{"unit_price": 1000.0}], [], "Staffing", 3, {"margin": 0.0},
        )
        assert totals["l2_support_cost"] == 0.0
        assert totals["total_project_cost"] == 3000.0


class TestEstimateDraft:
    RATES = [
        ServiceRate(id="1", service="Data Engineer", complexity="Sr", base_price=7000.0),
        ServiceRate(id="2", service="Pipelines", complexity="Media", frequency="Diaria",
                    base_price=500.0, multiplier=1.0),
    ]

    def test_prices_are_resolved_server_side(self):
        draft = QuoteDraft(
            client_name="Banco Global",
            service_type="Project",
            duration_months=2,
            profiles=[{"role": "Data Engineer", "level": "Sr", "allocation": 50, "count": 2}],
            services=[{"service": "pipelines", "quantity": 3}],
        )
        est = estimate_draft(draft, self.RATES, MULTIPLIERS)
        assert est.staffing[0].unit_price == 7000.0
        assert est.staffing[0].monthly_cost == 7000.0
        assert est.services[0].monthly_cost == 1500.0
        assert est.l2_support_cost == 850.0
        assert est.total_project_cost == pytest.approx(2 * 9350.0)
        assert est.criticality.label == "BAJA"

    def test_default_role_price_fallback(self):
        draft = QuoteDraft(
            client_name="Retail SA",
            profiles=[{"role": "Data Scientist", "level": "Sr"}],
        )
        est = estimate_draft(draft, self.RATES, MULTIPLIERS)
        assert est.staffing[0].unit_price == pytest.approx(5100.0 * 1.3)

    def test_default_role_price_ignores_case(self):
        draft = QuoteDraft(
            client_name="Retail SA",
            profiles=[{"role": "data scientist ", "level": "Sr"}],
        )
        est = estimate_draft(draft, self.RATES, MULTIPLIERS)
        assert est.staffing[0].unit_price == pytest.approx(5100.0 * 1.3)

    def test_unavailable_profile_rejected(self):
        draft = QuoteDraft(
            client_name="Retail SA",
            profiles=[{"role": "Astronaut", "level": "Sr"}],
        )
        with pytest.raises(UnavailableProfile):
            estimate_draft(draft, self.RATES, MULTIPLIERS)

    def test_zero_quantity_services_skipped(self):
        draft = QuoteDraft(client_name="X", services=[{"service": "Pipelines", "quantity": 0}])
        est = estimate_draft(draft, self.RATES, MULTIPLIERS)
        assert est.services == []
        assert est.total_monthly_cost == 0.0


class TestDiagram:
    def test_base_flow(self):
        d = build_architecture_diagram()
        assert d.startswith("graph TD\n")
        assert "Source --> Pipe" in d
        assert "Gov" not in d
        assert "Process" not in d

    def test_governance_ml_and_stack(self):
        d = build_architecture_diagram(["databricks", "powerbi", "unknown"], True, 0)
        assert "Gov -.-> Store" in d
        assert "Store --> Process" in d
        assert "Tech[Stack: Azure Databricks<br/>Power BI]" in d

    def test_ds_models_add_ml_node(self):
        assert "Process[Databricks ML]" in build_architecture_diagram([], False, 2)
