"""
Engine settings: defaults, environment overrides and YAML loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml


PRODUCTION = "production"


@dataclass(frozen=True)
class Settings:
    """Settings shared by the query builder and the rendering dispatcher."""
    environment: str = "development"

    # Pagination
    default_per_page: int = 25
    max_per_page: int = 200

    # Column names ending with one of these are hidden by default
    audit_suffixes: tuple[str, ...] = ("_at",)

    # Display defaults
    truncate_length: int = 50
    preview_items: int = 3
    date_format: str = "%m/%d/%Y"
    time_format: str = "%H:%M"
    null_placeholder: str = "—"
    true_glyph: str = "✓"
    false_glyph: str = "✗"
    not_found_text: str = "Not found"

    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION

    def is_audit_column(self, name: str) -> bool:
        return any(name.endswith(suffix) for suffix in self.audit_suffixes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Create settings from a dictionary, keeping unknown keys in ``extra``."""
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in (data or {}).items():
            if key in known:
                kwargs[key] = value
            else:
                extra[key] = value

        if "audit_suffixes" in kwargs:
            suffixes = kwargs["audit_suffixes"]
            if isinstance(suffixes, str):
                suffixes = [suffixes]
            kwargs["audit_suffixes"] = tuple(suffixes)

        return cls(extra=extra, **kwargs)

    @classmethod
    def from_env(cls, base: "Settings | None" = None) -> "Settings":
        """Apply ``CRUDKIT_*`` environment variables on top of ``base``."""
        settings = base or cls()
        overrides: dict[str, Any] = {}

        env = os.getenv("CRUDKIT_ENV")
        if env:
            overrides["environment"] = env.strip().lower()

        per_page = os.getenv("CRUDKIT_PER_PAGE", "")
        if per_page.isdigit() and int(per_page) > 0:
            overrides["default_per_page"] = int(per_page)

        max_per_page = os.getenv("CRUDKIT_MAX_PER_PAGE", "")
        if max_per_page.isdigit() and int(max_per_page) > 0:
            overrides["max_per_page"] = int(max_per_page)

        return replace(settings, **overrides) if overrides else settings

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a dictionary for YAML serialization."""
        data = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "extra"
        }
        data["audit_suffixes"] = list(self.audit_suffixes)
        data.update(self.extra)
        return data

    def save(self, path: Path | str = "crudkit.yaml") -> None:
        """Save settings to a YAML file."""
        path = Path(path)
        content = yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False, allow_unicode=True)
        path.write_text(content, encoding="utf-8")


def load_settings(path: Path | str = "crudkit.yaml") -> Settings | None:
    """Load settings from a YAML file, or None when the file does not exist."""
    path = Path(path)
    if not path.exists():
        return None

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return Settings.from_env(Settings.from_dict(data))


def get_settings() -> Settings:
    """Settings from ``CRUDKIT_CONFIG`` (or ./crudkit.yaml) plus environment."""
    loaded = load_settings(os.getenv("CRUDKIT_CONFIG", "crudkit.yaml"))
    return loaded if loaded is not None else Settings.from_env()
