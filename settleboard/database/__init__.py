from .dbm import DBM, TransactionScope
from .repository import (
    ExpertDirectory,
    OutcomeSource,
    PositionStore,
    SqlExpertDirectory,
    SqlOutcomeSource,
    SqlPositionStore,
    SqlStatisticsStore,
    StatisticsStore,
)

__all__ = [
    "DBM",
    "TransactionScope",
    "OutcomeSource",
    "PositionStore",
    "ExpertDirectory",
    "StatisticsStore",
    "SqlOutcomeSource",
    "SqlPositionStore",
    "SqlExpertDirectory",
    "SqlStatisticsStore",
]
