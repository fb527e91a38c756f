"""
Tests for read-side aggregation: hit ratio, averages, targets, team targets.
"""
import pytest

from kpiboard.models.target import PeriodUnit, Target
from kpiboard.schemas.records import CandidateBatch, RecruitmentRecord, SalesRecord
from kpiboard.services.aggregation import (
    add_target,
    current_recruitment,
    headcount,
    hit_ratio,
    latest_target,
    list_targets,
    recruitment_averages,
    sales_averages,
    team_targets,
    weekly_value,
)
from kpiboard.services.ingestion import ingest_candidates


class TestHitRatio:
    @pytest.mark.parametrize("placements, closed, expected", [
        (0, 0, 0),
        (5, 0, 0),
        (3, 10, 30),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),    # 12.5 rounds half up
        (4, 4, 100),
    ])
    def test_values(self, placements, closed, expected):
        assert hit_ratio(placements, closed) == expected


def _recruitment(db, *rows):
    ingest_candidates(db, CandidateBatch(recruitment=[RecruitmentRecord(**r) for r in rows]))


def _sales(db, *rows):
    ingest_candidates(db, CandidateBatch(sales=[SalesRecord(**r) for r in rows]))


class TestCurrentView:
    def test_joins_person_for_week(self, db):
        _recruitment(db, dict(name="Anna", role="sourcer", year=2024, week=10, weryfikacje=22))
        rows = current_recruitment(db, 2024, 10)
        assert rows == [{
            "name": "Anna", "role": "Sourcer", "dni_pracy": 5.0,
            "weryfikacje": 22, "rekomendacje": 0, "cv_dodane": 0, "placements": 0,
        }]
        assert current_recruitment(db, 2024, 11) == []


class TestAverages:
    def test_recruitment_rates_and_order(self, db):
        _recruitment(
            db,
            dict(name="Anna", role="sourcer", year=2024, week=1, weryfikacje=20, rekomendacje=10, dni_pracy=5),
            dict(name="Anna", role="sourcer", year=2024, week=2, weryfikacje=10, rekomendacje=5, dni_pracy=5),
            dict(name="Basia", role="sourcer", year=2024, week=1, rekomendacje=20, dni_pracy=5),
            dict(name="Celina", role="rekruter", year=2024, week=1, placements=1, dni_pracy=3),
            dict(name="Dorota", role="sourcer", year=2024, week=1, rekomendacje=20, cv_dodane=5, dni_pracy=5),
        )
        rows = recruitment_averages(db)
        assert [r["name"] for r in rows] == ["Celina", "Dorota", "Basia", "Anna"]
        anna = rows[-1]
        assert anna["weeks"] == 2
        assert anna["weryf_per_day"] == 3.0
        assert anna["reco_per_day"] == 1.5
        assert rows[0]["total_placements"] == 1

    def test_rate_rounding_two_places(self, db):
        _recruitment(db, dict(name="Ela", role="sourcer", year=2024, week=1, weryfikacje=10, dni_pracy=3))
        assert recruitment_averages(db)[0]["weryf_per_day"] == 3.33

    def test_sales_order_and_mrr_per_week(self, db):
        _sales(
            db,
            dict(name="Marek", role="HoT", year=2024, week=1, mrr=1000),
            dict(name="Marek", role="HoT", year=2024, week=2, mrr=2001),
            dict(name="Ola", role="SDR", year=2024, week=1, leady=10, oferty=1),
            dict(name="Piotr", role="BDM", year=2024, week=1, oferty=3),
        )
        rows = sales_averages(db)
        assert [r["name"] for r in rows] == ["Marek", "Piotr", "Ola"]
        assert rows[0]["mrr_per_week"] == 1501  # 1500.5 rounds half up
        assert rows[2]["leady_per_day"] == 2.0


class TestTargets:
    def test_latest_inserted_wins(self, db):
        add_target(db, "Sourcer", "weryfikacje", 20)
        add_target(db, "Sourcer", "weryfikacje", 25)
        targets = list_targets(db)
        assert targets[0].value == 25
        assert latest_target(targets, "weryfikacje").value == 25
        assert latest_target(list(reversed(targets)), "weryfikacje", role="Sourcer").value == 25

    def test_missing_target(self, db):
        assert latest_target(list_targets(db), "nope") is None
        assert weekly_value(None) == 0.0

    def test_monthly_target_divided_by_four(self):
        assert weekly_value(Target(id=1, role="all", kpi_name="placements", value=2, period_unit=PeriodUnit.month)) == 0.5
        assert weekly_value(Target(id=2, role="SDR", kpi_name="leady", value=10, period_unit="week")) == 10


class TestTeamTargets:
    def _roster(self, *roles):
        return [{"name": f"p{i}", "role": role} for i, role in enumerate(roles)]

    def test_recruitment(self, db):
        rows = self._roster("Sourcer", "Sourcer", "Recruiter", "TAC")
        result = team_targets(rows, list_targets(db), "recruitment")
        assert result["weryfikacje"] == 40
        assert result["rekomendacje"] == 30
        assert result["cv_dodane"] == 25
        assert result["placements"] == 1.0   # 4 people x 1/month / 4
        assert result["headcount"] == {"Sourcer": 2, "Recruiter": 1, "TAC": 1, "DeliveryLead": 0, "total": 4}

    def test_sales(self, db):
        rows = self._roster("SDR", "BDM", "BDM")
        result = team_targets(rows, list_targets(db), "sales")
        assert result["leady"] == 10
        assert result["oferty"] == 2
        assert result["mrr"] == 0

    def test_zero_headcount_yields_zero(self, db):
        add_target(db, "Recruiter", "cv_dodane", 1000)
        result = team_targets(self._roster("Sourcer"), list_targets(db), "recruitment")
        assert result["cv_dodane"] == 0

    def test_uses_most_recent_target(self, db):
        add_target(db, "Sourcer", "weryfikacje", 25)
        result = team_targets(self._roster("Sourcer"), list_targets(db), "recruitment")
        assert result["weryfikacje"] == 25

    def test_headcount_includes_unknown_roles_in_total(self):
        counts = headcount([{"role": "Sourcer"}, {"role": "Office Manager"}], [])
        assert counts == {"total": 2}
