from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from visacheck.core.config import settings
from visacheck.schemas.visa import CountrySummary, VisaTypeDefinition, summarize_visa_type

_DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[2] / "config" / "visa_types.yaml"
_CATALOG_CACHE: VisaCatalog | None = None


@dataclass(frozen=True)
class VisaCatalog:
    visa_types: tuple[VisaTypeDefinition, ...]

    def find(self, country_code: str, visa_type_id: str) -> VisaTypeDefinition | None:
        code = (country_code or "").strip().upper()
        visa_id = (visa_type_id or "").strip().lower()
        for visa_type in self.visa_types:
            if visa_type.country_code == code and visa_type.visa_type_id == visa_id:
                return visa_type
        return None

    def for_country(self, country_code: str) -> list[VisaTypeDefinition]:
        code = (country_code or "").strip().upper()
        matches = [visa for visa in self.visa_types if visa.country_code == code]
        return sorted(matches, key=lambda visa: visa.visa_name)

    def countries(self) -> list[CountrySummary]:
        grouped: dict[str, CountrySummary] = {}
        ordered = sorted(self.visa_types, key=lambda visa: (visa.country_name, visa.visa_name))
        for visa_type in ordered:
            country = grouped.setdefault(
                visa_type.country_code,
                CountrySummary(country_code=visa_type.country_code, country_name=visa_type.country_name),
            )
            country.visa_types.append(summarize_visa_type(visa_type))
        return list(grouped.values())

    def search(self, query: str, limit: int = 20) -> list[VisaTypeDefinition]:
        needle = (query or "").strip().lower()
        if not needle:
            return []
        hits = [
            visa
            for visa in self.visa_types
            if needle in visa.visa_name.lower()
            or needle in visa.description.lower()
            or needle in visa.country_name.lower()
        ]
        return hits[:limit]


def catalog_path() -> Path:
    if settings.visa_catalog_path:
        return Path(settings.visa_catalog_path)
    return _DEFAULT_CATALOG_PATH


def parse_visa_catalog(raw: Any, *, source: str = "<memory>") -> VisaCatalog:
    """Validate raw catalog data (a mapping with a ``visa_types`` list)."""
    if not isinstance(raw, dict) or not isinstance(raw.get("visa_types"), list):
        raise RuntimeError(f"Invalid visa catalog '{source}': expected a top-level 'visa_types' list.")

    visa_types: list[VisaTypeDefinition] = []
    seen: set[tuple[str, str]] = set()
    for index, entry in enumerate(raw["visa_types"]):
        try:
            visa_type = VisaTypeDefinition.model_validate(entry)
        except ValidationError as exc:
            raise RuntimeError(f"Invalid visa type #{index} in '{source}': {exc}") from exc
        key = (visa_type.country_code, visa_type.visa_type_id)
        if key in seen:
            raise RuntimeError(f"Duplicate visa type '{key[0]}/{key[1]}' in '{source}'.")
        seen.add(key)
        visa_types.append(visa_type)
    return VisaCatalog(visa_types=tuple(visa_types))


def load_visa_catalog(path: Path) -> VisaCatalog:
    if not path.exists():
        raise RuntimeError(f"Visa catalog not found at '{path}'. Expected file: config/visa_types.yaml")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Failed to read visa catalog '{path}': {exc}") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in visa catalog '{path}': {exc}") from exc

    return parse_visa_catalog(parsed, source=str(path))


def get_visa_catalog() -> VisaCatalog:
    """Load the configured catalog once and cache it for the process."""
    global _CATALOG_CACHE

    if _CATALOG_CACHE is None:
        _CATALOG_CACHE = load_visa_catalog(catalog_path())
    return _CATALOG_CACHE
