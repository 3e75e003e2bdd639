"""Fill a generated listening activity's ``piece`` from a resolved score.

The generator's own values always win; only empty fields are filled.
"""

import copy
import logging

logger = logging.getLogger(__name__)

# Sources whose download link is a recording rather than a score page.
AUDIO_SOURCES = {"fma"}

_DETAIL_FIELDS = {
    "key": "key",
    "timeSignature": "time_signature",
    "yearComposed": "year_composed",
    "duration": "duration",
    "license": "license",
    "about": "about",
}


def _set_missing(target, key, value):
    if value and not target.get(key):
        target[key] = value


def enrich_piece(piece, resolved):
    """Return a copy of ``piece`` with details filled from ``resolved``."""
    enriched = copy.deepcopy(piece) if isinstance(piece, dict) else {}
    if resolved is None:
        return enriched
    details = enriched.get("details")
    details = dict(details) if isinstance(details, dict) else {}

    metadata = resolved.metadata
    for output_key, attr in _DETAIL_FIELDS.items():
        _set_missing(details, output_key, getattr(metadata, attr))
    _set_missing(details, "musicXmlUrl", resolved.notation_url)

    if resolved.source in AUDIO_SOURCES:
        _set_missing(enriched, "audioUrl", resolved.download_url)
    else:
        _set_missing(details, "sheetMusicUrl", resolved.download_url)

    if details:
        enriched["details"] = details
    return enriched


async def enrich_activity(activity, resolver):
    """Resolve the activity's piece and return a new, enriched activity dict."""
    if not isinstance(activity, dict):
        raise ValueError("activity must be an object")
    piece = activity.get("piece")
    if not isinstance(piece, dict):
        return copy.deepcopy(activity)
    title = str(piece.get("title") or "").strip()
    composer = str(piece.get("composer") or "").strip()
    if not title or not composer:
        logger.info("[ENRICH] piece has no title/composer; leaving activity unchanged")
        return copy.deepcopy(activity)

    resolved = await resolver.resolve(title, composer)
    enriched = copy.deepcopy(activity)
    if resolved is None:
        logger.info("[ENRICH] no score for title=%s composer=%s", title, composer)
        return enriched
    enriched["piece"] = enrich_piece(piece, resolved)
    return enriched
