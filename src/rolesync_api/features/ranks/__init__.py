"""Rank ledger updater."""

from .ledger import RankEntry, RankLedger

__all__ = ["RankEntry", "RankLedger"]
