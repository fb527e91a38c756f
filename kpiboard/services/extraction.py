"""
Spreadsheet extractor: uploaded workbooks -> CandidateBatch.

Two interchangeable strategies, each exposing `extract(files)`:

HeaderExtractor(panel)   fixed sheet keywords + header-name aliases
ModelExtractor(client)   renders the sheets as text and lets the
                         text-generation collaborator map them to records

Public helpers
--------------
read_sheet_rows(ws)          -> list[dict]   (header-keyed, lower-cased)
render_sheet(ws, ...)        -> str          (bounded text grid)
extract_json_object(text)    -> str | None
repair_json(text)            -> str
parse_reply(text)            -> CandidateBatch
get_extractor(strategy, panel, client)
"""
from __future__ import annotations

import json
import logging
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError

from kpiboard.core.errors import (
    InterpretationError,
    SpreadsheetReadError,
    UnknownPanelError,
    UnknownStrategyError,
)
from kpiboard.schemas.records import (
    RECORD_TYPES,
    BoardMathRecord,
    BoardNoteRecord,
    CandidateBatch,
    HitRatioRecord,
    PrepCallRecord,
    RecruitmentRecord,
    SalesRecord,
    to_bool,
)
from kpiboard.services.coerce import is_blank
from kpiboard.services.llm import TextGenerator
from kpiboard.services.periods import current_month, current_period

logger = logging.getLogger(__name__)

PANELS = ("recruitment", "sales", "board")
STRATEGIES = ("headers", "model")

# Rendering caps for the model-assisted strategy.
MAX_RENDER_ROWS = 60
MAX_RENDER_COLS = 20
MAX_CELL_CHARS = 40
EXTRACTION_MAX_TOKENS = 8000


@dataclass
class SourceFile:
    """An uploaded workbook on disk plus the name the user gave it."""
    path: Path
    name: str


# ---------------------------------------------------------------------------
# Header aliases (probed in order; first present, non-empty value wins)
# ---------------------------------------------------------------------------

WEEK = ("Tydzien", "Tydzień", "Week", "T")
YEAR = ("Rok", "Year")
MONTH = ("Miesiac", "Miesiąc", "Month")
NAME = ("Imie", "Imię", "Name", "Pracownik")
ROLE = ("Stanowisko", "Rola", "Role")
WORKING_DAYS = ("Dni pracy", "Dni")
VERIFICATIONS = ("Weryfikacje", "Weryf")
RECOMMENDATIONS = ("Rekomendacje", "Reco")
CVS = ("CV do bazy", "CV")
PLACEMENTS = ("Placements",)
LEADS = ("Leady", "Leads")
OFFERS = ("Oferty", "Wysłane oferty")
MRR = ("MRR", "Revenue")
DL_NAME = ("Delivery Lead", "DL", "Imie", "Imię")
CLOSED_REQUESTS = ("Zamkniete Requesty", "Zamknięte Requesty", "Closed")
KPI_CODE = ("KPI", "Code", "Kod")
VALUE = ("Wartosc", "Wartość", "Value")
TARGET = ("Target", "Cel")
DESCRIPTION = ("Opis", "Description")
STATUS = ("Status",)
CALL_DATE = ("Data", "Date")
CANDIDATE = ("Kandydat", "Candidate")
NOTES = ("Notatki", "Notes", "Uwagi")

_PREP_CALL_COLUMNS = {
    h.lower() for h in (*DL_NAME, *CALL_DATE, *CANDIDATE, *NOTES, *YEAR, *MONTH, *WEEK)
}


def pick(row: dict[str, Any], aliases: Sequence[str], default: Any = None) -> Any:
    for alias in aliases:
        value = row.get(alias.lower())
        if not is_blank(value):
            return value
    return default


# ---------------------------------------------------------------------------
# Workbook access
# ---------------------------------------------------------------------------

def open_workbook(source: SourceFile):
    try:
        return load_workbook(source.path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        logger.warning("Cannot open workbook %s: %s", source.name, exc)
        raise SpreadsheetReadError(source.name, str(exc) or exc.__class__.__name__) from exc


def _row_is_blank(values: Iterable[Any]) -> bool:
    return all(is_blank(v) for v in values)


def read_sheet_rows(ws) -> list[dict[str, Any]]:
    """
    Rows of a sheet as dicts keyed by lower-cased header text.

    The first non-blank row is the header row. Blank rows are skipped and
    columns without a header are ignored.
    """
    rows = ws.iter_rows(values_only=True)
    headers: Optional[list[Optional[str]]] = None
    records: list[dict[str, Any]] = []
    for values in rows:
        if _row_is_blank(values):
            continue
        if headers is None:
            headers = [None if is_blank(v) else str(v).strip().lower() for v in values]
            continue
        record = {
            header: value
            for header, value in zip(headers, values)
            if header is not None and not is_blank(value)
        }
        if record:
            records.append(record)
    return records


def find_sheet(
    sheet_names: Sequence[str],
    matches: Callable[[str], bool],
    fallback_first: bool = False,
) -> Optional[str]:
    for name in sheet_names:
        if matches(name.lower()):
            return name
    if fallback_first and sheet_names:
        return sheet_names[0]
    return None


def _has(*needles: str) -> Callable[[str], bool]:
    return lambda name: any(n in name for n in needles)


def _has_all(*needles: str) -> Callable[[str], bool]:
    return lambda name: all(n in name for n in needles)


# ---------------------------------------------------------------------------
# Fixed-header strategy
# ---------------------------------------------------------------------------

def recruitment_from_row(row: dict[str, Any], default_year: int) -> Optional[RecruitmentRecord]:
    name, week = pick(row, NAME), pick(row, WEEK)
    if name is None or week is None:
        return None
    return RecruitmentRecord(
        name=name,
        role=pick(row, ROLE),
        year=pick(row, YEAR, default_year),
        week=week,
        dni_pracy=pick(row, WORKING_DAYS),
        weryfikacje=pick(row, VERIFICATIONS),
        rekomendacje=pick(row, RECOMMENDATIONS),
        cv_dodane=pick(row, CVS),
        placements=pick(row, PLACEMENTS),
    )


def sales_from_row(row: dict[str, Any], default_year: int) -> Optional[SalesRecord]:
    name, week = pick(row, NAME), pick(row, WEEK)
    if name is None or week is None:
        return None
    return SalesRecord(
        name=name,
        role=pick(row, ROLE),
        year=pick(row, YEAR, default_year),
        week=week,
        dni_pracy=pick(row, WORKING_DAYS),
        leady=pick(row, LEADS),
        oferty=pick(row, OFFERS),
        mrr=pick(row, MRR),
        placements=pick(row, PLACEMENTS),
    )


def hit_ratio_from_row(row: dict[str, Any], default_year: int) -> Optional[HitRatioRecord]:
    name, month = pick(row, DL_NAME), pick(row, MONTH)
    if name is None or month is None:
        return None
    return HitRatioRecord(
        name=name,
        year=pick(row, YEAR, default_year),
        month=month,
        closed_requests=pick(row, CLOSED_REQUESTS),
        placements=pick(row, PLACEMENTS),
    )


def board_math_from_row(row: dict[str, Any], default_year: int) -> Optional[BoardMathRecord]:
    code = pick(row, KPI_CODE)
    if code is None:
        return None
    return BoardMathRecord(
        kpi_code=code,
        year=pick(row, YEAR, default_year),
        month=pick(row, MONTH, 1),
        week=pick(row, WEEK),
        value=pick(row, VALUE),
        target=pick(row, TARGET),
    )


def board_note_from_row(row: dict[str, Any], default_year: int) -> Optional[BoardNoteRecord]:
    code = pick(row, KPI_CODE)
    if code is None:
        return None
    return BoardNoteRecord(
        kpi_code=code,
        year=pick(row, YEAR, default_year),
        month=pick(row, MONTH, 1),
        description=pick(row, DESCRIPTION, ""),
        status=pick(row, STATUS),
    )


def prep_call_from_row(row: dict[str, Any], default_year: int) -> Optional[PrepCallRecord]:
    record = PrepCallRecord(
        name=pick(row, DL_NAME),
        call_date=pick(row, CALL_DATE),
        candidate_name=pick(row, CANDIDATE),
        notes=pick(row, NOTES),
    )
    if record.name is None or record.call_date is None:
        return None
    # Every other column whose value reads as yes/no is a checklist item.
    for header, value in row.items():
        if header in _PREP_CALL_COLUMNS:
            continue
        flag = to_bool(value)
        if flag is not None:
            record.checklist[header] = flag
    return record


RowParser = Callable[[dict[str, Any], int], Optional[Any]]


class HeaderExtractor:
    """
    Fixed-column parser. `panel` selects which sheets are read:

    recruitment  sheet name containing rekrut / recruit / body (else first sheet)
    sales        sheet name containing sprzeda / sales (else first sheet)
    board        hit / ratio, kpi+mat, kpi+opis and prep sheets (no fallback)
    """

    def __init__(self, panel: str, default_year: Optional[int] = None):
        if panel not in PANELS:
            raise UnknownPanelError(panel, list(PANELS))
        self.panel = panel
        self.default_year = default_year or current_period()[0]

    def _sheet_plan(self) -> list[tuple[str, Callable[[str], bool], bool, RowParser]]:
        """(record type, sheet matcher, fall back to first sheet, row parser)."""
        if self.panel == "recruitment":
            return [("recruitment", _has("rekrut", "recruit", "body"), True, recruitment_from_row)]
        if self.panel == "sales":
            return [("sales", _has("sprzeda", "sales"), True, sales_from_row)]
        return [
            ("hit_ratio", _has("hit", "ratio"), False, hit_ratio_from_row),
            ("board_math", _has_all("kpi", "mat"), False, board_math_from_row),
            ("board_descriptive", _has_all("kpi", "opis"), False, board_note_from_row),
            ("prep_calls", _has("prep"), False, prep_call_from_row),
        ]

    def extract(self, files: Sequence[SourceFile]) -> CandidateBatch:
        batch = CandidateBatch()
        for source in files:
            batch.merge(self.extract_file(source))
        batch.summary = self._summary(batch, len(files))
        return batch

    def extract_file(self, source: SourceFile) -> CandidateBatch:
        batch = CandidateBatch()
        wb = open_workbook(source)
        try:
            found_any = False
            for kind, matches, fallback, parse_row in self._sheet_plan():
                sheet_name = find_sheet(wb.sheetnames, matches, fallback_first=fallback)
                if sheet_name is None:
                    continue
                found_any = True
                skipped = 0
                for row in read_sheet_rows(wb[sheet_name]):
                    record = parse_row(row, self.default_year)
                    if record is None:
                        skipped += 1
                        continue
                    getattr(batch, kind).append(record)
                if skipped:
                    batch.warnings.append(
                        f"{source.name} / {sheet_name}: skipped {skipped} row(s) "
                        f"missing a required identity column"
                    )
                    logger.warning("%s / %s: skipped %d rows", source.name, sheet_name, skipped)
            if not found_any:
                batch.warnings.append(f"{source.name}: no {self.panel} sheet found")
        finally:
            wb.close()
        return batch

    @staticmethod
    def _summary(batch: CandidateBatch, file_count: int) -> str:
        parts = [f"{kind}: {len(getattr(batch, kind))}" for kind in RECORD_TYPES if getattr(batch, kind)]
        found = ", ".join(parts) if parts else "no records"
        return f"Read {file_count} file(s): {found}."


# ---------------------------------------------------------------------------
# Model-assisted strategy
# ---------------------------------------------------------------------------

def _cell_text(value: Any) -> str:
    if is_blank(value):
        return ""
    if hasattr(value, "isoformat"):
        text = value.isoformat()
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)
    text = " ".join(text.split())
    if len(text) > MAX_CELL_CHARS:
        text = text[: MAX_CELL_CHARS - 1] + "…"
    return text


def render_sheet(
    ws,
    max_rows: int = MAX_RENDER_ROWS,
    max_cols: int = MAX_RENDER_COLS,
) -> str:
    """Render a sheet as `|`-separated lines, capped in rows, columns and cell length."""
    lines: list[str] = []
    truncated = False
    for values in ws.iter_rows(values_only=True):
        cells = [_cell_text(v) for v in values[:max_cols]]
        if not any(cells):
            continue
        if len(lines) >= max_rows:
            truncated = True
            break
        while cells and not cells[-1]:
            cells.pop()
        lines.append(" | ".join(cells))
    if truncated:
        lines.append(f"... (truncated after {max_rows} rows)")
    return "\n".join(lines)


def render_workbooks(files: Sequence[SourceFile]) -> str:
    sections: list[str] = []
    for source in files:
        wb = open_workbook(source)
        try:
            for sheet_name in wb.sheetnames:
                body = render_sheet(wb[sheet_name])
                if body:
                    sections.append(f"### FILE: {source.name} | SHEET: {sheet_name}\n{body}")
        finally:
            wb.close()
    return "\n\n".join(sections)


EXTRACTION_PROMPT = """You receive KPI spreadsheets exported by a staffing company.
Identify every data row and return ONE JSON object, nothing else, shaped like:

{{
  "summary": "one or two sentences describing what was found",
  "warnings": ["anything ambiguous or skipped"],
  "records": {{
    "recruitment": [{{"name": "", "role": "", "year": 0, "week": 0, "dni_pracy": 5,
                     "weryfikacje": 0, "rekomendacje": 0, "cv_dodane": 0, "placements": 0}}],
    "sales": [{{"name": "", "role": "", "year": 0, "week": 0, "dni_pracy": 5,
               "leady": 0, "oferty": 0, "mrr": 0, "placements": 0}}],
    "hit_ratio": [{{"name": "", "year": 0, "month": 0, "closed_requests": 0, "placements": 0}}],
    "board_math": [{{"kpi_code": "", "year": 0, "month": 0, "week": null, "value": 0, "target": 0}}],
    "board_descriptive": [{{"kpi_code": "", "year": 0, "month": 0, "description": "",
                           "status": "green|yellow|red"}}],
    "prep_calls": [{{"name": "", "call_date": "YYYY-MM-DD", "candidate_name": "",
                    "checklist": {{"item": true}}, "notes": ""}}]
  }}
}}

Rules:
- Work out year, week and month from columns, sheet names or dates. Use week for
  weekly data, month for monthly data; leave them out if you cannot tell.
- "role" is the job title as written (Sourcer, Recruiter, TAC, Delivery Lead, SDR, BDM,
  Head of Technology).
- Numbers must be plain numbers; use 0 when a value is missing.
- Omit empty record lists.

Spreadsheets:

{sheets}
"""


def build_extraction_prompt(rendered: str) -> str:
    return EXTRACTION_PROMPT.format(sheets=rendered)


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced top-level {...} in `text`, or None."""
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start: i + 1]
    return None


_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_PY_LITERALS = (
    (re.compile(r"\bTrue\b"), "true"),
    (re.compile(r"\bFalse\b"), "false"),
    (re.compile(r"\bNone\b"), "null"),
)


def _close_open_brackets(text: str) -> str:
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack:
            stack.pop()
    if in_string:
        text += '"'
    text = text.rstrip().rstrip(",")
    return text + "".join(reversed(stack))


def repair_json(text: str) -> str:
    """
    Best-effort fixes for the usual ways a model breaks JSON: code fences,
    typographic quotes, Python literals, trailing commas and a reply cut
    off before its closing brackets.
    """
    fixed = _FENCE_RE.sub("", text).strip()
    start = fixed.find("{")
    if start > 0:
        fixed = fixed[start:]
    fixed = (
        fixed.replace("“", '"').replace("”", '"').replace("„", '"')
        .replace("‘", "'").replace("’", "'")
    )
    for pattern, replacement in _PY_LITERALS:
        fixed = pattern.sub(replacement, fixed)
    fixed = _close_open_brackets(fixed)
    return _TRAILING_COMMA_RE.sub(r"\1", fixed)


_TYPE_ALIASES = {
    "recruitment": "recruitment",
    "rekrutacja": "recruitment",
    "sales": "sales",
    "sprzedaz": "sales",
    "hit_ratio": "hit_ratio",
    "hit-ratio": "hit_ratio",
    "board_math": "board_math",
    "board-math": "board_math",
    "kpi_math": "board_math",
    "board_descriptive": "board_descriptive",
    "board-descriptive": "board_descriptive",
    "kpi_descriptive": "board_descriptive",
    "prep_calls": "prep_calls",
    "prep-calls": "prep_calls",
}


def _load_reply_json(text: str) -> Any:
    candidate = extract_json_object(text)
    if candidate is None:
        start = text.find("{")
        if start < 0:
            raise InterpretationError("Model reply contains no JSON object.", raw=text)
        candidate = text[start:]
    try:
        return json.loads(candidate)
    except ValueError:
        pass
    try:
        data = json.loads(repair_json(candidate))
    except ValueError as exc:
        raise InterpretationError(
            f"Model reply is not valid JSON even after repair: {exc}", raw=text
        ) from exc
    logger.warning("Model reply needed JSON repair")
    return data


def _grouped_items(records: Any) -> Iterator[tuple[str, Any]]:
    """Yield (type tag, item) from either a type-keyed dict or a tagged list."""
    if isinstance(records, dict):
        for key, items in records.items():
            if isinstance(items, list):
                for item in items:
                    yield str(key).lower(), item
    elif isinstance(records, list):
        for item in records:
            if isinstance(item, dict):
                yield str(item.get("type", "")).lower(), item


def parse_reply(text: str) -> CandidateBatch:
    """Turn the collaborator's free-text reply into a CandidateBatch."""
    data = _load_reply_json(text)
    if not isinstance(data, dict):
        raise InterpretationError("Model reply JSON is not an object.", raw=text)

    records = data.get("records")
    if records is None:
        records = {k: v for k, v in data.items() if k in _TYPE_ALIASES}

    batch = CandidateBatch(
        summary=str(data.get("summary") or ""),
        warnings=[str(w) for w in data.get("warnings") or [] if w],
    )
    for tag, item in _grouped_items(records):
        kind = _TYPE_ALIASES.get(tag)
        if kind is None or not isinstance(item, dict):
            batch.warnings.append(f"Ignored record of unknown type '{tag}'")
            continue
        try:
            getattr(batch, kind).append(RECORD_TYPES[kind].model_validate(item))
        except ValidationError as exc:
            batch.warnings.append(f"Ignored malformed {kind} record: {exc.errors()[0]['msg']}")
    return batch


def apply_period_defaults(batch: CandidateBatch, year: int, week: int, month: int) -> None:
    """Fill year / week / month the model left out with the current period."""
    for record in (*batch.recruitment, *batch.sales):
        record.year = record.year or year
        record.week = record.week or week
    for record in (*batch.hit_ratio, *batch.board_math, *batch.board_descriptive):
        record.year = record.year or year
        record.month = record.month or month


class ModelExtractor:
    def __init__(self, client: TextGenerator):
        self.client = client

    def extract(self, files: Sequence[SourceFile]) -> CandidateBatch:
        rendered = render_workbooks(files)
        if not rendered:
            raise SpreadsheetReadError(", ".join(f.name for f in files), "all sheets are empty")
        reply = self.client.complete(build_extraction_prompt(rendered), max_tokens=EXTRACTION_MAX_TOKENS)
        batch = parse_reply(reply)
        year, week = current_period()
        apply_period_defaults(batch, year, week, current_month()[1])
        logger.info("Model extraction found %d records in %d file(s)", batch.total(), len(files))
        return batch


def get_extractor(strategy: str, panel: str, client: Optional[TextGenerator]):
    if strategy == "headers":
        return HeaderExtractor(panel)
    if strategy == "model":
        if client is None:
            raise InterpretationError(
                "Model-assisted extraction needs the text-generation API key (ANTHROPIC_API_KEY)."
            )
        return ModelExtractor(client)
    raise UnknownStrategyError(strategy, list(STRATEGIES))
