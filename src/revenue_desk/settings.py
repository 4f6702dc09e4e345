"""Runtime configuration — parser knobs, upload limits, alias profiles."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

from revenue_desk.columns import DEFAULT_ALIASES, merge_aliases
from revenue_desk.models import _to_non_negative_int, _to_string_list
from revenue_desk.scanner import HEADER_SCAN_ROWS, SUMMARY_KEYWORDS

MEGABYTE = 1024 * 1024
DEFAULT_STORE_DIR = Path("revdesk_store")
ALLOWED_SUFFIXES: tuple[str, ...] = (".xls", ".xlsx")


@dataclass
class Settings:
    max_upload_bytes: int = 10 * MEGABYTE
    header_scan_rows: int = HEADER_SCAN_ROWS
    summary_keywords: list[str] = field(default_factory=lambda: list(SUMMARY_KEYWORDS))
    stored_error_limit: int = 50
    response_error_limit: int = 10
    uploads_list_limit: int = 20
    aliases: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_ALIASES.items()}
    )

    def __post_init__(self) -> None:
        for name in (
            "max_upload_bytes",
            "header_scan_rows",
            "stored_error_limit",
            "response_error_limit",
            "uploads_list_limit",
        ):
            setattr(self, name, _to_non_negative_int(getattr(self, name), name))
        self.summary_keywords = [
            kw.strip().lower()
            for kw in _to_string_list(self.summary_keywords, "summary_keywords")
            if kw.strip()
        ]
        self.aliases = merge_aliases({}, self.aliases)

    def with_extra_aliases(self, extra: Mapping[str, Sequence[str]]) -> Settings:
        """Return a copy whose alias lists end with *extra* names."""
        return replace(self, aliases=merge_aliases(self.aliases, extra))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings, honouring ``REVDESK_MAX_UPLOAD_MB``."""
        env = os.environ if environ is None else environ
        raw = env.get("REVDESK_MAX_UPLOAD_MB", "").strip()
        if not raw:
            return cls()
        try:
            megabytes = float(raw)
        except ValueError as exc:
            raise ValueError(f"REVDESK_MAX_UPLOAD_MB must be a number, got {raw!r}") from exc
        if megabytes < 0:
            raise ValueError("REVDESK_MAX_UPLOAD_MB must be >= 0")
        return cls(max_upload_bytes=int(megabytes * MEGABYTE))


def default_store_dir(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    raw = env.get("REVDESK_STORE", "").strip()
    return Path(raw) if raw else DEFAULT_STORE_DIR


def parse_alias_items(raw: Sequence[str] | None) -> dict[str, list[str]]:
    """Parse ``role=Header Name`` items into ``{role: [names...]}``."""
    if not raw:
        return {}
    extra: dict[str, list[str]] = {}
    for item in raw:
        if "=" not in item:
            raise ValueError(f"Invalid alias: {item!r}  (expected role=Header Name)")
        role, name = item.split("=", 1)
        role = role.strip().lower()
        name = name.strip()
        if not role or not name:
            raise ValueError("Alias entries must have a non-empty role and header (role=Header)")
        extra.setdefault(role, []).append(name)
    return extra


def load_alias_profile(profile: Path | None) -> list[str]:
    """Return ``role=Header`` lines from a profile file."""
    if not profile:
        return []
    if not profile.exists():
        raise ValueError(f"Profile not found: {profile} (expected lines like amount=Net Sales)")
    if profile.is_dir():
        raise ValueError(f"Profile is a directory, not a file: {profile}")
    try:
        text = profile.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read profile {profile}: {exc}") from exc

    lines: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        lines.append(stripped)
    return lines
