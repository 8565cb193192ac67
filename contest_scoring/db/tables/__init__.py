from contest_scoring.db.tables.contests import ContestRow

__all__ = ["ContestRow"]
