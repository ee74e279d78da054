"""Exception types shared across settlement and statistics."""

from __future__ import annotations


class SettlementError(Exception):
    """Base class for settlement failures."""

    pass


class ValidationError(SettlementError):
    """Raised when input validation fails."""

    pass


class ExpertNotFoundError(SettlementError):
    """Raised when statistics are requested for an unknown expert."""

    def __init__(self, expert_id: object):
        super().__init__(f"Expert with ID {expert_id} not found")
        self.expert_id = expert_id


__all__ = ["SettlementError", "ValidationError", "ExpertNotFoundError"]
