import threading
from typing import Optional

from loguru import logger
from sqlalchemy.engine import Engine

from ..db import Preference, make_session_factory

ACCESS_TOKEN_KEY = "auth_token"


class CredentialStore:
    """Persists the single OAuth token on this device.

    Reads are cached after the first hit; writes go straight to the
    database and are serialized.
    """

    def __init__(self, engine: Engine):
        Preference.__table__.create(bind=engine, checkfirst=True)
        self.session_factory = make_session_factory(engine)
        self._lock = threading.Lock()
        self._loaded = False
        self._token: Optional[str] = None

    def get(self) -> Optional[str]:
        with self._lock:
            if not self._loaded:
                with self.session_factory() as session:
                    record = session.get(Preference, ACCESS_TOKEN_KEY)
                    self._token = record.value if record else None
                self._loaded = True
            return self._token

    def set(self, token: str) -> None:
        with self._lock:
            with self.session_factory() as session, session.begin():
                session.merge(Preference(key=ACCESS_TOKEN_KEY, value=token))
            self._token = token
            self._loaded = True
        logger.info("[credentials] access token updated")
