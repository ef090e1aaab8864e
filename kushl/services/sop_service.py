"""Standard operating procedures, one or more per task category."""

from __future__ import annotations

import logging
from typing import Optional

from kushl.core.utils import generate_id, now_ms
from kushl.domain.constants import SOP_KEY, TASK_CATEGORIES
from kushl.repositories.collection import JsonCollection

logger = logging.getLogger(__name__)

sops = JsonCollection(SOP_KEY)


def get_all_sops() -> list[dict]:
    return sops.all()


def get_sops_by_category(category: str) -> list[dict]:
    return sops.filter(lambda sop: sop.get("category") == category)


def get_sop_for_category(category: str) -> Optional[dict]:
    """Most recently updated SOP of the category."""
    matching = get_sops_by_category(category)
    if not matching:
        return None
    return max(matching, key=lambda sop: sop.get("updatedAt") or 0)


def add_sop(category: str, title: str, content: str, created_by: str, creator_name: str) -> dict:
    now = now_ms()
    sop = {
        "id": generate_id(),
        "category": category,
        "title": title,
        "content": content,
        "createdAt": now,
        "updatedAt": now,
        "createdBy": created_by,
        "creatorName": creator_name,
    }
    sops.append(sop)
    logger.info("SOP added for %s: %s", category, title)
    return sop


def update_sop(updated_sop: dict) -> bool:
    return sops.replace({**updated_sop, "updatedAt": now_ms()})


def delete_sop(sop_id: str) -> bool:
    return sops.remove(sop_id)


def get_available_categories() -> list[str]:
    return list(TASK_CATEGORIES)


def get_categories_with_sops() -> list[str]:
    seen: list[str] = []
    for sop in get_all_sops():
        category = sop.get("category")
        if category and category not in seen:
            seen.append(category)
    return seen


def get_categories_without_sops() -> list[str]:
    covered = set(get_categories_with_sops())
    return [category for category in TASK_CATEGORIES if category not in covered]
