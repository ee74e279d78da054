from .base import BatchJob
from .runner import JobRunner, next_backoff_delay
from .settle_positions import SettlePositionsJob

__all__ = ["BatchJob", "JobRunner", "SettlePositionsJob", "next_backoff_delay"]
