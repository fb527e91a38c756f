"""
Tests for tolerant coercion and the candidate record models.
"""
from datetime import date, datetime

import pytest

from kpiboard.schemas.records import (
    BoardNoteRecord,
    CandidateBatch,
    HitRatioRecord,
    PrepCallRecord,
    RecruitmentRecord,
    SalesRecord,
    to_bool,
)
from kpiboard.services.coerce import is_blank, to_float, to_int, to_optional_int, to_percentage


class TestCoercion:
    @pytest.mark.parametrize("raw, expected", [
        (None, 0.0),
        ("", 0.0),
        ("n/a", 0.0),
        (True, 0.0),
        (float("nan"), 0.0),
        (3, 3.0),
        ("12", 12.0),
        ("4,5", 4.5),
        ("1 250,5", 1250.5),
        ("1,250.75", 1250.75),
        ("12.500,00", 12500.0),
        ("1.250.000", 1250000.0),
        ("-3,5", -3.5),
        ("4000 zł", 4000.0),
    ])
    def test_to_float(self, raw, expected):
        assert to_float(raw) == expected

    def test_to_int_truncates(self):
        assert to_int("2.9") == 2
        assert to_int("abc") == 0

    @pytest.mark.parametrize("raw, expected", [
        (None, None),
        ("", None),
        ("n/a", None),
        (0.3, 30),
        (0.125, 13),
        ("59.6", 60),
        ("40", 40),
        (0, 0),
    ])
    def test_to_percentage(self, raw, expected):
        assert to_percentage(raw) == expected

    def test_to_optional_int(self):
        assert to_optional_int(None) is None
        assert to_optional_int("  ") is None
        assert to_optional_int("week") is None
        assert to_optional_int(float("inf")) is None
        assert to_optional_int("10") == 10
        assert to_optional_int(10.0) == 10

    def test_is_blank(self):
        assert is_blank(None)
        assert is_blank("  ")
        assert not is_blank(0)


class TestRecords:
    def test_recruitment_defaults(self):
        rec = RecruitmentRecord(name=" Anna ", week="10", year=2024)
        assert rec.name == "Anna"
        assert rec.dni_pracy == 5.0
        assert (rec.weryfikacje, rec.rekomendacje, rec.cv_dodane, rec.placements) == (0, 0, 0, 0)

    @pytest.mark.parametrize("days", [None, "", 0, "brak"])
    def test_falsy_working_days_become_full_week(self, days):
        assert RecruitmentRecord(name="A", week=1, dni_pracy=days).dni_pracy == 5.0

    def test_polish_aliases(self):
        rec = RecruitmentRecord.model_validate(
            {"imie": "Anna", "stanowisko": "sourcer", "rok": 2024, "tydzien": 10, "weryfikacje": "22"}
        )
        assert (rec.name, rec.role, rec.year, rec.week, rec.weryfikacje) == ("Anna", "sourcer", 2024, 10, 22)

    def test_sales_money(self):
        rec = SalesRecord(name="Ola", week=3, mrr="4 500,50", leady="x")
        assert rec.mrr == 4500.5
        assert rec.leady == 0

    def test_hit_ratio_keeps_supplied_ratio(self):
        assert HitRatioRecord(name="DL", month=3, hit_ratio="40").hit_ratio == 40
        assert HitRatioRecord(name="DL", month=3).hit_ratio is None
        assert HitRatioRecord(name="DL", month=3, hit_ratio=0.3).hit_ratio == 30

    @pytest.mark.parametrize("raw, expected", [
        ("GREEN", "green"), ("red", "red"), ("purple", "yellow"), (None, "yellow"),
    ])
    def test_note_status(self, raw, expected):
        assert BoardNoteRecord(kpi_code="DD-01", status=raw).status == expected

    def test_prep_call_checklist_and_date(self):
        rec = PrepCallRecord(
            name="Kasia",
            call_date=datetime(2024, 3, 4, 10, 0),
            checklist={"CV sent": "tak", "Rate agreed": "nie", "Comment": "later"},
        )
        assert rec.call_date == date(2024, 3, 4)
        assert rec.checklist == {"CV sent": True, "Rate agreed": False}

    @pytest.mark.parametrize("raw, expected", [
        ("04.03.2024", date(2024, 3, 4)),
        ("2024-03-04", date(2024, 3, 4)),
        ("soon", None),
    ])
    def test_prep_call_date_formats(self, raw, expected):
        assert PrepCallRecord(name="K", call_date=raw).call_date == expected

    def test_to_bool(self):
        assert to_bool("Yes") is True
        assert to_bool(0) is False
        assert to_bool("") is False
        assert to_bool("maybe") is None


class TestCandidateBatch:
    def test_total_and_merge(self):
        a = CandidateBatch(recruitment=[RecruitmentRecord(name="A", week=1)], summary="first")
        b = CandidateBatch(
            sales=[SalesRecord(name="B", week=1)],
            hit_ratio=[HitRatioRecord(name="C", month=1)],
            warnings=["w"],
            summary="second",
        )
        a.merge(b)
        assert a.total() == 3
        assert a.warnings == ["w"]
        assert a.summary == "first second"
