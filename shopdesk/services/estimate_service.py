from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from shopdesk.config import EstimateSettings, data_dir, load_settings
from shopdesk.errors import InvalidStatusTransition, NotFoundError
from shopdesk.models.common import ZERO, gen_id, utcnow
from shopdesk.models.estimate import ESTIMATE_STATUSES, EstimateDocument
from shopdesk.storage.json_repo import JsonRepository

logger = logging.getLogger(__name__)

# cycle de vie après création (toujours "draft" à la sortie de l'assistant)
STATUS_TRANSITIONS: Dict[str, set[str]] = {
    "draft": {"sent", "expired"},
    "sent": {"accepted", "rejected", "expired"},
    "accepted": set(),
    "rejected": set(),
    "expired": set(),
}


class EstimateService:
    """
    Stockage des devis validés (data/estimates.json) et numérotation.
    Sert de `DocumentNumbering` pour EstimateWizard.commit.
    """

    def __init__(
        self,
        data_dir_path: Optional[str | Path] = None,
        settings: Optional[EstimateSettings] = None,
    ) -> None:
        base = Path(data_dir_path) if data_dir_path else data_dir()
        self.repo = JsonRepository(base / "estimates.json", entity_name="estimate", key="id")
        self.settings = settings or load_settings(base / "settings.json")

    # ----- Numérotation ----- #

    def next_id(self) -> str:
        return gen_id()

    def next_number(self, issue_date: Optional[date] = None) -> str:
        """Séquence annuelle, sur l'année d'émission du devis (à défaut, aujourd'hui)."""
        year = (issue_date or date.today()).year
        prefix = f"{self.settings.number_prefix}-{year}-"
        max_n = 0
        for d in self.repo.list_all():
            num = d.get("number") or ""
            if isinstance(num, str) and num.startswith(prefix):
                tail = num[len(prefix):]
                if tail.isdigit():
                    max_n = max(max_n, int(tail))
        return f"{prefix}{max_n + 1:04d}"

    # ----- Hydratation ----- #

    @staticmethod
    def _hydrate(d: Dict[str, Any]) -> Optional[EstimateDocument]:
        try:
            return EstimateDocument.model_validate(d)
        except ValidationError as e:
            logger.warning("Skipping invalid estimate row %r: %s", d.get("id"), e)
            return None

    # ----- CRUD ----- #

    def save(self, document: EstimateDocument) -> EstimateDocument:
        """Ajoute ou remplace (réédition) le devis."""
        self.repo.upsert(document)
        logger.info("Estimate %s saved (%s, total %s)", document.number, document.status, document.total)
        return document

    def get_by_id(self, estimate_id: str) -> Optional[EstimateDocument]:
        d = self.repo.get_by_id(estimate_id)
        return self._hydrate(d) if d else None

    def list_estimates(self, status: Optional[str] = None) -> List[EstimateDocument]:
        out: List[EstimateDocument] = []
        for d in self.repo.list_all():
            doc = self._hydrate(d)
            if doc is None or (status and doc.status != status):
                continue
            out.append(doc)
        return out

    def delete_estimate(self, estimate_id: str) -> bool:
        return self.repo.delete(estimate_id)

    # ----- Cycle de vie ----- #

    def update_status(self, estimate_id: str, status: str) -> EstimateDocument:
        if status not in ESTIMATE_STATUSES:
            raise InvalidStatusTransition(f"Unknown status: {status}")
        doc = self.get_by_id(estimate_id)
        if doc is None:
            raise NotFoundError(f"estimate {estimate_id!r} not found")
        if status not in STATUS_TRANSITIONS[doc.status]:
            raise InvalidStatusTransition(f"Invalid transition: {doc.status} -> {status}")
        updated = doc.model_copy(update={"status": status, "updated_at": utcnow()})
        self.repo.upsert(updated)
        return updated

    def expire_overdue(self, today: Optional[date] = None) -> List[EstimateDocument]:
        """Passe en "expired" les devis draft/sent dont l'échéance est dépassée."""
        day = today or date.today()
        expired: List[EstimateDocument] = []
        for doc in self.list_estimates():
            if doc.status in ("draft", "sent") and doc.expiry_date < day:
                expired.append(self.update_status(doc.id, "expired"))
        if expired:
            logger.info("%d estimate(s) expired", len(expired))
        return expired

    def stats(self) -> Dict[str, Any]:
        docs = self.list_estimates()
        counts = {s: 0 for s in ESTIMATE_STATUSES}
        for doc in docs:
            counts[doc.status] += 1
        total_value = sum((doc.total for doc in docs), ZERO)
        accepted_value = sum((doc.total for doc in docs if doc.status == "accepted"), ZERO)
        rate = round(counts["accepted"] * 100 / len(docs)) if docs else 0
        return {
            "total": len(docs),
            **counts,
            "total_value": total_value,
            "accepted_value": accepted_value,
            "acceptance_rate": rate,
        }


__all__ = ["EstimateService", "STATUS_TRANSITIONS"]
