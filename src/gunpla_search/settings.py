from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dynaconf import Dynaconf

PACKAGE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_DIR.parent


def _resolve_config_dir() -> Path | None:
    env_override = os.environ.get("GUNPLA_CONFIG_DIR")
    candidates: list[Path] = []

    if env_override:
        candidates.append(Path(env_override).expanduser())

    candidates.append(PROJECT_ROOT / "config")
    candidates.append(PROJECT_ROOT.parent / "config")

    for candidate in candidates:
        expanded = candidate.expanduser()
        if expanded.is_dir():
            return expanded.resolve()

    if env_override:
        searched = ", ".join(str(path) for path in candidates)
        raise RuntimeError(
            f"Unable to locate configuration directory. Searched: {searched}. "
            "Set GUNPLA_CONFIG_DIR to a valid directory."
        )
    return None


CONFIG_DIR = _resolve_config_dir()


DEFAULT_VARIANT_KEYWORDS: list[str] = [
    "metallic",
    "clear",
    "ver",
    "version",
    "variant",
    "custom",
    "special",
    "plated",
    "titanium",
    "pearl",
    "chrome",
    "gold",
    "silver",
    "transparent",
    "sd",
    "hg",
    "mg",
    "rg",
    "pg",
    "re",
    "mega",
    "perfect",
    "real",
    "entry",
]

# The search-box preview has its own, narrower list: no grade abbreviations.
PREVIEW_VARIANT_KEYWORDS: list[str] = [
    "metallic",
    "clear",
    "ver",
    "version",
    "variant",
    "custom",
    "special",
    "plated",
    "titanium",
    "pearl",
    "chrome",
    "gold",
    "silver",
    "transparent",
    "expansion",
    "unit",
    "armor",
    "weapon",
    "accessory",
]

DEFAULTS: dict[str, Any] = {
    "APP_NAME": "Gunpla Search",
    "LOG_LEVEL": "INFO",
    "APP": {
        "host": "127.0.0.1",
        "port": 5000,
    },
    "MEILI": {
        "host_url": "",
        "master_key": "",
        "timeout": 10.0,
    },
    "INDEXES": {
        "kits": "kits",
        "mobile_suits": "mobile-suits",
        "series": "series",
        "product_lines": "product-lines",
        "grades": "grades",
    },
    "SEARCH": {
        "era_cutoff_year": 2010,
        "grade_priority": ["pg", "mg", "rg", "hg", "eg", "fm"],
        "variant_keywords": DEFAULT_VARIANT_KEYWORDS,
        "preview_variant_keywords": PREVIEW_VARIANT_KEYWORDS,
        "max_candidates": 100,
        "default_limit": 50,
        "preview_size": 8,
        "preview_candidates": 50,
        "preview_variant_candidates": 30,
        "suggestion_limit": 5,
        "min_suggestion_length": 2,
        "simple_search_limit": 20,
        "sync_batch_size": 500,
    },
    "DATABASE": {
        "path": "catalog.sqlite3",
        "pool_size": 10,
        "pool_acquire_timeout": 10,
        "timeout": 5.0,
        "busy_timeout": 5000,
    },
    "CACHE": {
        "taxonomy": {
            "maxsize": 1024,
            "ttl": 300,
        },
    },
}

_settings_files: list[Path] = []
if CONFIG_DIR is not None:
    _settings_files = [
        CONFIG_DIR / "settings.toml",
        CONFIG_DIR / ".secrets.toml",
        CONFIG_DIR / "settings.local.toml",
    ]

settings = Dynaconf(
    envvar_prefix="GUNPLA",
    settings_files=_settings_files,
    environments=True,
    env_switcher="GUNPLA_ENV",
    load_dotenv=True,
    envvar_parse_values=True,
    merge_enabled=True,
    defaults=DEFAULTS,
)


_MISSING = object()


def _ensure_defaults(prefix: str, defaults: dict[str, Any]) -> None:
    for key, value in defaults.items():
        dotted = f"{prefix}.{key}" if prefix else key
        existing = settings.get(dotted, _MISSING)

        if isinstance(value, dict):
            if existing is _MISSING:
                settings.set(dotted, value.copy())
                existing = settings.get(dotted, _MISSING)
            if isinstance(existing, Mapping):
                _ensure_defaults(dotted, value)
            continue

        if existing is _MISSING:
            settings.set(dotted, value)


_ensure_defaults("", DEFAULTS)


def _normalise_meili_credentials() -> None:
    # The plain MEILI_* variables are what the index deployment hands out.
    host = str(settings.get("MEILI.host_url") or "").strip()
    if not host:
        host = os.environ.get("MEILI_HOST_URL", "").strip()
    key = str(settings.get("MEILI.master_key") or "").strip()
    if not key:
        key = os.environ.get("MEILI_MASTER_KEY", "").strip()
    settings.set("MEILI.host_url", host)
    settings.set("MEILI.master_key", key)


_normalise_meili_credentials()

__all__ = ["settings"]
