from medbox.stores.base import UserAccount, UserRecord, UserStore
from medbox.stores.sql_user_store import SqlUserStore

__all__ = ["UserAccount", "UserRecord", "UserStore", "SqlUserStore"]
