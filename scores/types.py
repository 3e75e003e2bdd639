"""Typed records for score resolution."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Mapping

# Accepts the camelCase keys the lesson generator and older rows use.
_DETAIL_ALIASES = {
    "timeSignature": "time_signature",
    "yearComposed": "year_composed",
}


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


@dataclass(frozen=True)
class MatchQuery:
    title: str
    composer: str

    @classmethod
    def create(cls, title: str | None, composer: str | None) -> "MatchQuery":
        for label, value in (("title", title), ("composer", composer)):
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{label} must be a string")
        clean_title = (title or "").strip()
        clean_composer = (composer or "").strip()
        if not clean_title:
            raise ValueError("title is required")
        if not clean_composer:
            raise ValueError("composer is required")
        return cls(title=clean_title, composer=clean_composer)


@dataclass(frozen=True)
class ScoreDetails:
    """Optional descriptive fields scraped from a catalog; ``None`` means absent."""

    key: str | None = None
    time_signature: str | None = None
    year_composed: str | None = None
    tempo: str | None = None
    instruments: tuple[str, ...] = ()
    about: str | None = None
    license: str | None = None
    duration: str | None = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "ScoreDetails":
        if not isinstance(payload, Mapping):
            return cls()
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for raw_key, value in payload.items():
            name = _DETAIL_ALIASES.get(raw_key, raw_key)
            if name not in known or name in values:
                continue
            if name == "instruments":
                if isinstance(value, str):
                    value = value.split(",")
                if isinstance(value, (list, tuple)):
                    values[name] = tuple(item for item in (_clean_text(v) for v in value) if item)
                continue
            values[name] = _clean_text(value)
        return cls(**values)

    def merged(self, other: "ScoreDetails | None") -> "ScoreDetails":
        """Fill fields missing here from ``other``; existing values win."""
        if other is None:
            return self
        updates: dict[str, Any] = {}
        for f in fields(self):
            if not getattr(self, f.name) and getattr(other, f.name):
                updates[f.name] = getattr(other, f.name)
        return replace(self, **updates) if updates else self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if not value:
                continue
            payload[f.name] = list(value) if isinstance(value, tuple) else value
        return payload


@dataclass(frozen=True)
class CandidateRecord:
    source_id: str
    title: str
    composer: str
    download_ref: str
    details: ScoreDetails = field(default_factory=ScoreDetails)


@dataclass(frozen=True)
class NotationLink:
    """What a detail page yields: the notation file location plus any extra metadata."""

    url: str | None
    details: ScoreDetails = field(default_factory=ScoreDetails)


@dataclass(frozen=True)
class ResolvedScore:
    title: str
    composer: str
    source: str
    id: str | None = None
    notation_payload: str | None = None
    metadata: ScoreDetails = field(default_factory=ScoreDetails)
    catalog_title: str | None = None
    catalog_composer: str | None = None
    download_url: str | None = None
    notation_url: str | None = None
    match_score: float | None = None

    @property
    def has_notation(self) -> bool:
        return bool(self.notation_payload)

    def to_record(self) -> dict[str, Any]:
        """Row shape for the ``scores`` table; provenance lives inside ``metadata``."""
        metadata = self.metadata.to_dict()
        for name in ("catalog_title", "catalog_composer", "download_url", "notation_url", "match_score"):
            value = getattr(self, name)
            if value is not None:
                metadata[name] = value
        record: dict[str, Any] = {
            "title": self.title,
            "composer": self.composer,
            "source": self.source,
            "music_xml": self.notation_payload,
            "metadata": metadata,
        }
        if self.id:
            record["id"] = self.id
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ResolvedScore":
        metadata = record.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            metadata = {}
        match_score = metadata.get("match_score")
        try:
            match_score = float(match_score) if match_score is not None else None
        except (TypeError, ValueError):
            match_score = None
        return cls(
            id=str(record["id"]) if record.get("id") is not None else None,
            title=str(record.get("title") or ""),
            composer=str(record.get("composer") or ""),
            source=str(record.get("source") or ""),
            notation_payload=record.get("music_xml") or None,
            metadata=ScoreDetails.from_dict(metadata),
            catalog_title=_clean_text(metadata.get("catalog_title")),
            catalog_composer=_clean_text(metadata.get("catalog_composer")),
            download_url=_clean_text(metadata.get("download_url") or metadata.get("pdfUrl")),
            notation_url=_clean_text(metadata.get("notation_url")),
            match_score=match_score,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "composer": self.composer,
            "source": self.source,
            "catalog_title": self.catalog_title,
            "catalog_composer": self.catalog_composer,
            "download_url": self.download_url,
            "notation_url": self.notation_url,
            "has_notation": self.has_notation,
            "match_score": self.match_score,
            "details": self.metadata.to_dict(),
        }


class ResolutionState(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    SOURCE_UNAVAILABLE = "source_unavailable"


@dataclass(frozen=True)
class ResolutionOutcome:
    source: str
    state: ResolutionState
    reason: str
    score: ResolvedScore | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "state": self.state.value, "reason": self.reason}
