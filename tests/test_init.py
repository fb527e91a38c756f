"""
Tests for process initialisation: migrations and default target seeding.
"""
from sqlalchemy import create_engine, inspect

from kpiboard.core.config import settings
from kpiboard.db.base import Base
from kpiboard.db.init import DEFAULT_TARGETS, run_migrations, seed_default_targets
from kpiboard.models.target import Target


class TestMigrations:
    def test_upgrade_head_matches_models(self, tmp_path, monkeypatch):
        url = f"sqlite:///{tmp_path / 'migrated.db'}"
        monkeypatch.setattr(settings, "DATABASE_URL", url)
        run_migrations()
        run_migrations()  # second run is a no-op

        engine = create_engine(url)
        try:
            inspector = inspect(engine)
            tables = set(inspector.get_table_names())
            for table in Base.metadata.sorted_tables:
                assert table.name in tables
                migrated = {c["name"] for c in inspector.get_columns(table.name)}
                assert migrated == {c.name for c in table.columns}, table.name
        finally:
            engine.dispose()


class TestSeeding:
    def test_seeded_once(self, db):
        assert db.query(Target).count() == len(DEFAULT_TARGETS)
        assert seed_default_targets(db) == 0
        assert db.query(Target).count() == len(DEFAULT_TARGETS)

    def test_seeds_empty_table(self, db):
        db.query(Target).delete()
        db.commit()
        assert seed_default_targets(db) == len(DEFAULT_TARGETS)
        placements = db.query(Target).filter_by(kpi_name="placements").one()
        assert (placements.role, placements.value, placements.period_unit.value) == ("all", 1, "month")
