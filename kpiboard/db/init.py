"""
One-shot process initialisation: directories, migrations, default targets.

init_db() is safe to run on every boot:
- Alembic only applies revisions newer than the stored head.
- Default targets are inserted only when the targets table is empty.
"""
from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session

from kpiboard.core.config import settings
from kpiboard.db.base import SessionLocal
from kpiboard.models.target import Target, PeriodUnit
from kpiboard.services.identity import Role

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]

# (role, kpi_name, value, period_unit)
DEFAULT_TARGETS: list[tuple[str, str, float, PeriodUnit]] = [
    (Role.sourcer.value,            "weryfikacje",  20,   PeriodUnit.week),
    (Role.sourcer.value,            "rekomendacje", 15,   PeriodUnit.week),
    (Role.recruiter.value,          "cv_dodane",    25,   PeriodUnit.week),
    ("all",                         "placements",   1,    PeriodUnit.month),
    (Role.delivery_lead.value,      "hit_ratio",    30,   PeriodUnit.month),
    (Role.sdr.value,                "leady",        10,   PeriodUnit.week),
    (Role.bdm.value,                "oferty",       1,    PeriodUnit.week),
    (Role.head_of_technology.value, "mrr",          4000, PeriodUnit.week),
]


def ensure_directories() -> None:
    settings.upload_path.mkdir(parents=True, exist_ok=True)
    url = make_url(settings.DATABASE_URL)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def run_migrations() -> None:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    cfg.attributes["configure_logger"] = False
    command.upgrade(cfg, "head")


def seed_default_targets(db: Session) -> int:
    """Insert DEFAULT_TARGETS if the table is empty. Returns rows inserted."""
    if db.query(Target.id).first() is not None:
        return 0
    for role, kpi_name, value, unit in DEFAULT_TARGETS:
        db.add(Target(role=role, kpi_name=kpi_name, value=value, period_unit=unit))
    db.commit()
    logger.info("Seeded %d default targets", len(DEFAULT_TARGETS))
    return len(DEFAULT_TARGETS)


def init_db() -> None:
    ensure_directories()
    run_migrations()
    db = SessionLocal()
    try:
        seed_default_targets(db)
    finally:
        db.close()
