"""
Réconciliation entre le stockage objet et la table des mixes.

Deux écarts sont recherchés :
- objets sans mix associé (plus vieux que le délai de grâce, pour épargner
  les envois directs en cours de finalisation) ;
- mixes dont l'objet audio n'existe plus.
"""
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from mixdrop.api.models.mix_model import Mix
from mixdrop.api.models.user_model import User
from mixdrop.api.services.audit_service import STORAGE_RECONCILE, AuditService
from mixdrop.api.services.cache_service import CacheService
from mixdrop.api.services.storage_service import StorageService
from mixdrop.api.utils.constants import ORPHAN_GRACE_SECONDS
from mixdrop.api.utils.database import utcnow
from mixdrop.api.utils.logging import logger

PREFIXES = ("mixes/", "covers/")


class ReconciliationService:
    def __init__(self, db: Session, storage: StorageService, cache: CacheService):
        self.db = db
        self.storage = storage
        self.cache = cache

    async def reconcile(self, actor: User, dry_run: bool = True) -> dict:
        referenced = set()
        audio_by_mix = {}
        for mix_id, storage_key, cover_key in self.db.execute(
            select(Mix.id, Mix.storage_key, Mix.cover_art_key)
        ).all():
            referenced.add(storage_key)
            audio_by_mix[mix_id] = storage_key
            if cover_key:
                referenced.add(cover_key)

        stored = []
        for prefix in PREFIXES:
            stored.extend(await run_in_threadpool(self.storage.list_keys, prefix))
        stored_keys = {obj["key"] for obj in stored}

        cutoff = utcnow() - timedelta(seconds=ORPHAN_GRACE_SECONDS)
        orphaned_objects = sorted(
            obj["key"] for obj in stored
            if obj["key"] not in referenced and obj["last_modified"] < cutoff
        )
        dangling_mixes = sorted(mix_id for mix_id, key in audio_by_mix.items() if key not in stored_keys)

        deleted_objects, deleted_mixes = [], []
        if not dry_run:
            for key in orphaned_objects:
                try:
                    await run_in_threadpool(self.storage.delete, key)
                    deleted_objects.append(key)
                except Exception as e:
                    logger.error(f"[STORAGE] Suppression de l'objet orphelin {key} impossible: {e}")
            for mix_id in dangling_mixes:
                mix = self.db.get(Mix, mix_id)
                if mix is not None:
                    self.db.delete(mix)
                    deleted_mixes.append(mix_id)
            self.db.commit()
            for mix_id in deleted_mixes:
                await self.cache.invalidate_mix(mix_id)

        report = {
            "dryRun": dry_run,
            "orphanedObjects": orphaned_objects,
            "danglingMixes": dangling_mixes,
            "deletedObjects": deleted_objects,
            "deletedMixes": deleted_mixes,
        }
        logger.info(
            f"[STORAGE] Réconciliation (dryRun={dry_run}): {len(orphaned_objects)} objets orphelins, "
            f"{len(dangling_mixes)} mixes sans fichier"
        )
        AuditService(self.db).record(STORAGE_RECONCILE, actor.id, None, {
            "dryRun": dry_run,
            "orphanedObjects": len(orphaned_objects),
            "danglingMixes": len(dangling_mixes),
        })
        return report
