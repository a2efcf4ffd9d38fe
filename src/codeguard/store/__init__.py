from .connection import Base, close_db, get_db, get_sessionmaker, init_db
from .jobs import JobStore, ReapResult
from .models import AlertRecord, DebtScoreRecord, Repository, ScanJob, ScanResultRecord, TeamMetricRecord
from .results import InsertReport, ResultStore

__all__ = [
    "AlertRecord",
    "Base",
    "DebtScoreRecord",
    "InsertReport",
    "JobStore",
    "ReapResult",
    "Repository",
    "ResultStore",
    "ScanJob",
    "ScanResultRecord",
    "TeamMetricRecord",
    "close_db",
    "get_db",
    "get_sessionmaker",
    "init_db",
]
