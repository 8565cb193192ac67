from .contest_store import DBContestStore
from .session import create_session, database_url, get_engine

__all__ = ["DBContestStore", "create_session", "database_url", "get_engine"]
