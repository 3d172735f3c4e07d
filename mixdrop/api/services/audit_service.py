"""
Journal d'audit des actions privilégiées.

L'écriture est best-effort : un échec est journalisé et n'interrompt jamais
l'opération qui l'a déclenchée. À appeler après le commit de l'opération auditée.
"""
import json
from typing import Any, Optional

from sqlalchemy.orm import Session

from mixdrop.api.models.audit_log_model import AuditLog
from mixdrop.api.utils.logging import logger

USER_ROLE_CHANGE = "user.role.change"
USER_STATUS_CHANGE = "user.status.change"
USER_DELETE = "user.delete"
MIX_DELETE = "mix.delete"
MIX_UPDATE = "mix.update"
PLAYLIST_DELETE = "playlist.delete"
SETTING_UPDATE = "setting.update"
STORAGE_RECONCILE = "storage.reconcile"


class AuditService:
    def __init__(self, db: Session):
        self.db = db

    def record(self, action: str, actor_id: int, target_id: Optional[Any] = None,
               details: Optional[dict] = None) -> Optional[AuditLog]:
        try:
            entry = AuditLog(
                action=action,
                actor_id=actor_id,
                target_id=str(target_id) if target_id is not None else None,
                details=json.dumps(details, default=str) if details is not None else None,
            )
            self.db.add(entry)
            self.db.commit()
            logger.info(f"[AUDIT] Audit: {action} (actor={actor_id}, target={target_id})")
            return entry
        except Exception as e:
            self.db.rollback()
            logger.error(f"[AUDIT] Échec d'écriture du journal pour {action}: {e}")
            return None
