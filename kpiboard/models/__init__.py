from .person import Person, Department
from .period import WeekPeriod
from .kpi import RecruitmentKpi, SalesKpi
from .board import HitRatio, BoardKpiMeasurement, BoardKpiNote, NoteStatus
from .target import Target, PeriodUnit
from .narrative import Narrative
from .import_log import ImportLog
from .prep_call import PrepCall

__all__ = [
    "Person",
    "Department",
    "WeekPeriod",
    "RecruitmentKpi",
    "SalesKpi",
    "HitRatio",
    "BoardKpiMeasurement",
    "BoardKpiNote",
    "NoteStatus",
    "Target",
    "PeriodUnit",
    "Narrative",
    "ImportLog",
    "PrepCall",
]
