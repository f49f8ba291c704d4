from __future__ import annotations
from datetime import datetime, timedelta
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import AuthSession
from .settings import settings


def purge_stale_sessions(db: Session, *, days: int | None = None) -> int:
	retention = settings.session_retention_days if days is None else days
	threshold = datetime.utcnow() - timedelta(days=retention)
	# Sessions with no authenticated request since the threshold
	res = db.execute(delete(AuthSession).where(AuthSession.last_activity_at < threshold))
	db.commit()
	return res.rowcount or 0
