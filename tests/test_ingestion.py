"""
Tests for the ingestion engine and the upload service.
"""
import json
from datetime import date
from pathlib import Path

import pytest

from kpiboard.core.errors import InterpretationError, NoRecordsImportedError
from kpiboard.models import (
    BoardKpiMeasurement,
    BoardKpiNote,
    HitRatio,
    ImportLog,
    Person,
    PrepCall,
    RecruitmentKpi,
    SalesKpi,
    WeekPeriod,
)
from kpiboard.schemas.records import (
    BoardMathRecord,
    BoardNoteRecord,
    CandidateBatch,
    HitRatioRecord,
    PrepCallRecord,
    RecruitmentRecord,
    SalesRecord,
)
from kpiboard.services.extraction import HeaderExtractor, SourceFile
from kpiboard.services.ingestion import (
    Upload,
    import_upload,
    ingest_candidates,
    period_labels,
    stored_uploads,
)


def _anna(**overrides):
    values = dict(name="Anna", role="sourcer", year=2024, week=10,
                  weryfikacje=22, rekomendacje=16, cv_dodane=0, placements=1)
    values.update(overrides)
    return RecruitmentRecord(**values)


class TestRecruitmentIngestion:
    def test_creates_person_period_and_fact(self, db):
        result = ingest_candidates(db, CandidateBatch(recruitment=[_anna()]))
        assert result.imported == 1
        assert result.by_type == {"recruitment": 1}
        assert result.periods == {(2024, "week", 10)}

        person = db.query(Person).filter_by(name="Anna").one()
        assert (person.role, person.department.value) == ("Sourcer", "recruitment")
        period = db.query(WeekPeriod).filter_by(year=2024, week=10).one()
        kpi = db.query(RecruitmentKpi).filter_by(person_id=person.id, period_id=period.id).one()
        assert (kpi.weryfikacje, kpi.rekomendacje, kpi.cv_dodane, kpi.placements, kpi.dni_pracy) == (22, 16, 0, 1, 5)

    def test_reimport_overwrites_every_measure(self, db):
        ingest_candidates(db, CandidateBatch(recruitment=[_anna()]))
        ingest_candidates(db, CandidateBatch(recruitment=[
            _anna(weryfikacje=3, rekomendacje=0, cv_dodane=7, placements=0, dni_pracy=2),
        ]))
        rows = db.query(RecruitmentKpi).all()
        assert len(rows) == 1
        db.refresh(rows[0])
        kpi = rows[0]
        assert (kpi.weryfikacje, kpi.rekomendacje, kpi.cv_dodane, kpi.placements, kpi.dni_pracy) == (3, 0, 7, 0, 2)

    def test_two_imports_of_new_person_create_one_row(self, db):
        ingest_candidates(db, CandidateBatch(recruitment=[_anna(name="Zofia", week=1)]))
        ingest_candidates(db, CandidateBatch(recruitment=[_anna(name="Zofia", week=2)]))
        assert db.query(Person).filter_by(name="Zofia").count() == 1
        assert db.query(RecruitmentKpi).count() == 2

    def test_records_without_identity_are_dropped(self, db):
        batch = CandidateBatch(recruitment=[
            _anna(),
            RecruitmentRecord(name=None, week=10, year=2024),
            RecruitmentRecord(name="Bez", week=None, year=2024),
        ])
        result = ingest_candidates(db, batch)
        assert result.imported == 1
        assert result.skipped == 2
        assert any("dropped 2" in w for w in result.warnings)


class TestSalesIngestion:
    def test_sales_department_and_overwrite(self, db):
        rec = SalesRecord(name="Marek", role="Head of Technology", year=2024, week=11, mrr=4000, oferty=1)
        ingest_candidates(db, CandidateBatch(sales=[rec]))
        ingest_candidates(db, CandidateBatch(sales=[rec.model_copy(update={"mrr": 1500.0, "oferty": 0})]))
        person = db.query(Person).filter_by(name="Marek").one()
        assert (person.role, person.department.value) == ("HeadOfTechnology", "sales")
        row = db.query(SalesKpi).one()
        db.refresh(row)
        assert (row.mrr, row.oferty) == (1500.0, 0)


class TestMonthlyIngestion:
    def test_hit_ratio_computed_and_person_is_delivery_lead(self, db):
        result = ingest_candidates(db, CandidateBatch(hit_ratio=[
            HitRatioRecord(name="Kasia", year=2024, month=3, closed_requests=3, placements=1),
        ]))
        assert result.periods == {(2024, "month", 3)}
        hr = db.query(HitRatio).one()
        assert hr.hit_ratio == 33
        assert db.get(Person, hr.person_id).role == "DeliveryLead"

    def test_sheet_ratio_column_is_ignored(self, db, make_workbook):
        path = make_workbook("rada.xlsx", {"Hit ratio": [
            ["Delivery Lead", "Rok", "Miesiąc", "Zamknięte Requesty", "Placements", "Hit Ratio"],
            ["Kasia", 2024, 3, 10, 3, 0.3],
            ["Piotr", 2024, 3, 5, 3, "59.6"],
        ]})
        batch = HeaderExtractor("board").extract([SourceFile(path, "rada.xlsx")])
        ingest_candidates(db, batch)
        rows = db.query(HitRatio).order_by(HitRatio.closed_requests.desc()).all()
        assert [r.hit_ratio for r in rows] == [30, 60]

    def test_supplied_hit_ratio_is_kept(self, db):
        ingest_candidates(db, CandidateBatch(hit_ratio=[
            HitRatioRecord(name="Kasia", year=2024, month=3, closed_requests=10, placements=3, hit_ratio=50),
        ]))
        assert db.query(HitRatio).one().hit_ratio == 50

    def test_monthly_board_measurement_overwritten_in_place(self, db):
        for value in (85, 88):
            ingest_candidates(db, CandidateBatch(board_math=[
                BoardMathRecord(kpi_code="CS-02", year=2024, month=3, week=None, value=value, target=90),
            ]))
        rows = db.query(BoardKpiMeasurement).filter_by(kpi_code="CS-02").all()
        assert len(rows) == 1
        db.refresh(rows[0])
        assert rows[0].value == 88
        assert rows[0].week is None

    def test_weekly_board_measurement_upsert(self, db):
        for value in (15, 19):
            ingest_candidates(db, CandidateBatch(board_math=[
                BoardMathRecord(kpi_code="TD-01", year=2024, month=3, week=10, value=value, target=20),
            ]))
        ingest_candidates(db, CandidateBatch(board_math=[
            BoardMathRecord(kpi_code="TD-01", year=2024, month=3, week=11, value=21, target=20),
        ]))
        rows = db.query(BoardKpiMeasurement).filter_by(kpi_code="TD-01").order_by(BoardKpiMeasurement.week).all()
        for row in rows:
            db.refresh(row)
        assert [(r.week, r.value) for r in rows] == [(10, 19), (11, 21)]

    def test_board_note_upsert(self, db):
        ingest_candidates(db, CandidateBatch(board_descriptive=[
            BoardNoteRecord(kpi_code="DD-01", year=2024, month=3, description="first", status="red"),
        ]))
        ingest_candidates(db, CandidateBatch(board_descriptive=[
            BoardNoteRecord(kpi_code="DD-01", year=2024, month=3, description="second"),
        ]))
        note = db.query(BoardKpiNote).one()
        db.refresh(note)
        assert note.description == "second"
        assert note.status.value == "yellow"

    def test_prep_call_checklist_round_trip(self, db):
        ingest_candidates(db, CandidateBatch(prep_calls=[
            PrepCallRecord(name="Kasia", call_date=date(2024, 3, 4), candidate_name="Jan",
                           checklist={"CV wysłane": True, "Stawka": False}, notes="ok"),
        ]))
        call = db.query(PrepCall).one()
        assert json.loads(call.checklist) == {"CV wysłane": True, "Stawka": False}
        assert db.get(Person, call.person_id).role == "DeliveryLead"


class TestPeriodLabels:
    def test_labels_sorted_by_year_unit_value(self):
        labels = period_labels({(2024, "week", 10), (2024, "month", 3), (2023, "week", 52)})
        assert labels == ["T52/2023", "M3/2024", "T10/2024"]


class TestStoredUploads:
    def test_files_removed_on_success_and_failure(self, tmp_path):
        with stored_uploads([Upload("a.xlsx", b"1"), Upload("b.XLSX", b"2")], tmp_path) as sources:
            paths = [s.path for s in sources]
            assert all(p.exists() for p in paths)
            assert [s.name for s in sources] == ["a.xlsx", "b.XLSX"]
            assert all(p.name != "a.xlsx" for p in paths)
        assert not any(p.exists() for p in paths)

        with pytest.raises(RuntimeError):
            with stored_uploads([Upload("c.xlsx", b"3")], tmp_path) as sources:
                path = sources[0].path
                raise RuntimeError("boom")
        assert not path.exists()

    def test_partly_written_file_removed(self, tmp_path, monkeypatch):
        def write_then_fail(self, data):
            with open(self, "wb") as fh:
                fh.write(data[:1])
            raise OSError("disk full")

        monkeypatch.setattr(Path, "write_bytes", write_then_fail)
        with pytest.raises(OSError):
            with stored_uploads([Upload("a.xlsx", b"12345")], tmp_path):
                pass
        assert list(tmp_path.iterdir()) == []


class TestImportUpload:
    def test_header_upload_writes_log(self, db, make_workbook):
        path = make_workbook("rek.xlsx", {"Rekrutacja": [
            ["Tydzien", "Rok", "Imie", "Stanowisko", "Weryfikacje"],
            [10, 2024, "Anna", "sourcer", 22],
            [11, 2024, "Anna", "sourcer", 18],
        ]})
        result = import_upload(db, [SourceFile(path, "rek.xlsx")], "recruitment", "headers")
        assert result.imported == 2
        log = db.query(ImportLog).one()
        assert log.filename == "rek.xlsx"
        assert log.records_imported == 2
        assert log.periods == "T10/2024, T11/2024"
        assert log.panel == "recruitment"
        assert "Imported 2 records" in log.summary

    def test_header_upload_keeps_earlier_files_when_later_fails(self, db, make_workbook, tmp_path):
        good = make_workbook("good.xlsx", {"Recruitment": [["Week", "Rok", "Name"], [5, 2024, "Ola"]]})
        bad = tmp_path / "bad.xlsx"
        bad.write_bytes(b"garbage")
        with pytest.raises(Exception):
            import_upload(db, [SourceFile(good, "good.xlsx"), SourceFile(bad, "bad.xlsx")], "recruitment", "headers")
        assert db.query(RecruitmentKpi).count() == 1
        assert db.query(ImportLog).count() == 0

    def test_zero_records_raises(self, db, make_workbook):
        path = make_workbook("empty.xlsx", {"Recruitment": [["Week", "Name"], [None, "Ola"]]})
        with pytest.raises(NoRecordsImportedError) as exc_info:
            import_upload(db, [SourceFile(path, "empty.xlsx")], "recruitment", "headers")
        assert exc_info.value.details["warnings"]
        assert db.query(ImportLog).count() == 0

    def test_model_upload_uses_reply_summary(self, db, make_workbook, fake_text):
        path = make_workbook("mix.xlsx", {"Dane": [["x"], [1]]})
        fake = fake_text(json.dumps({
            "summary": "One DL month",
            "records": {"hit_ratio": [{"name": "Kasia", "year": 2024, "month": 3,
                                       "closed_requests": 10, "placements": 3}]},
        }))
        result = import_upload(db, [SourceFile(path, "mix.xlsx")], "board", "model", fake)
        assert result.imported == 1
        log = db.query(ImportLog).one()
        assert (log.summary, log.periods, log.panel) == ("One DL month", "M3/2024", "board")

    def test_model_failure_writes_nothing(self, db, make_workbook, fake_text):
        path = make_workbook("mix.xlsx", {"Dane": [["x"], [1]]})
        fake = fake_text(error=InterpretationError("unreachable"))
        with pytest.raises(InterpretationError):
            import_upload(db, [SourceFile(path, "mix.xlsx")], "recruitment", "model", fake)
        assert db.query(Person).count() == 0
        assert db.query(ImportLog).count() == 0
