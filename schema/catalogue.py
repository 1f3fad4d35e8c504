"""
schema.catalogue - Preventive-service catalogue (preventive_services.json).

Each service applies to an inclusive age range and a gender
(male / female / both).  The eligibility builder asks which services a
patient qualifies for.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class PreventiveService:
    service_id: str
    service_code: str
    service_name_ar: str
    service_name_en: str
    min_age: int
    max_age: int
    gender: str = "both"
    priority: str = "medium"

    def applies_to(self, age: int, gender: str) -> bool:
        if age < self.min_age or age > self.max_age:
            return False
        return self.gender == "both" or self.gender == gender


def load_services(path: str | Path) -> list[PreventiveService]:
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    return [PreventiveService(**item) for item in data.get("services", [])]


def eligible_services(
    services: list[PreventiveService], age: int, gender: str,
) -> list[PreventiveService]:
    return [s for s in services if s.applies_to(age, gender)]
