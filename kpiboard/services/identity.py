"""
Identity resolver: canonical roles, departments, and person lookup.

Role labels in the spreadsheets are free text ("Sourcerka", "Rekruter IT",
"DL", ...). They are mapped to a fixed set of canonical roles by an
ordered rule list; the first matching rule wins, so order matters for
labels that contain more than one keyword.
"""
from __future__ import annotations

import enum
from typing import Any, Callable

from sqlalchemy.orm import Session

from kpiboard.db.upsert import dialect_insert
from kpiboard.models.person import Department, Person


class Role(str, enum.Enum):
    sourcer = "Sourcer"
    recruiter = "Recruiter"
    tac = "TAC"
    delivery_lead = "DeliveryLead"
    sdr = "SDR"
    bdm = "BDM"
    head_of_technology = "HeadOfTechnology"


SALES_ROLES = frozenset({Role.sdr.value, Role.bdm.value, Role.head_of_technology.value})


def _contains(*needles: str) -> Callable[[str], bool]:
    return lambda label: any(n in label for n in needles)


# Evaluated top to bottom against the lower-cased label.
ROLE_RULES: list[tuple[Callable[[str], bool], Role]] = [
    (_contains("sourc"), Role.sourcer),
    (_contains("rekrut", "recruit"), Role.recruiter),
    (_contains("tac"), Role.tac),
    (lambda label: "delivery" in label or label.strip() == "dl", Role.delivery_lead),
    (_contains("sdr"), Role.sdr),
    (_contains("bdm"), Role.bdm),
    (_contains("head", "hot"), Role.head_of_technology),
]


def normalize_role(raw: Any) -> str:
    """
    Map a free-text role label to its canonical role.

    Missing or blank input defaults to Sourcer. Labels that match no rule
    are returned unchanged.
    """
    if raw is None or not str(raw).strip():
        return Role.sourcer.value
    label = str(raw).lower()
    for matches, role in ROLE_RULES:
        if matches(label):
            return role.value
    return raw if isinstance(raw, str) else str(raw)


def department_for_role(role: str) -> Department:
    return Department.sales if role in SALES_ROLES else Department.recruitment


def resolve_or_create_person(db: Session, name: str, raw_role: Any) -> int:
    """
    Return the id of the (name, canonical role) person, creating it if needed.

    A single INSERT ... ON CONFLICT DO UPDATE ... RETURNING statement, so two
    concurrent imports of a new person cannot create two rows. The conflict
    branch rewrites `name` with itself only to make RETURNING yield the id.
    """
    role = normalize_role(raw_role)
    stmt = dialect_insert(db, Person).values(
        name=name.strip(),
        role=role,
        department=department_for_role(role),
        active=True,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["name", "role"],
        set_={"name": stmt.excluded.name},
    ).returning(Person.id)
    return db.execute(stmt).scalar_one()
