"""Save envelope encoding, decoding and schema migration.

Current saves are ``<version tag> + base64(xor(json, key))``. Anything that
does not start with the tag is treated as a plaintext JSON save written by an
earlier build.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from itertools import cycle
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..config import settings
from ..models.player import PlayerState, fresh_state

logger = logging.getLogger(__name__)


class SaveFormatError(ValueError):
    """Raised when a save string cannot be turned back into a state."""


class SaveImportError(ValueError):
    """Raised when an imported save string is refused."""


def _xor(payload: bytes, key: bytes) -> bytes:
    return bytes(byte ^ mask for byte, mask in zip(payload, cycle(key)))


def to_payload(state: PlayerState) -> Dict[str, Any]:
    return state.model_dump(mode="json", by_alias=True)


def encode(state: PlayerState, *, tag: Optional[str] = None, key: Optional[str] = None) -> str:
    tag = settings.save_version_tag if tag is None else tag
    key = settings.save_xor_key if key is None else key

    text = json.dumps(to_payload(state), separators=(",", ":"))
    obfuscated = _xor(text.encode("utf-8"), key.encode("utf-8"))
    return tag + base64.b64encode(obfuscated).decode("ascii")


def migrate_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Bring older save shapes up to the current schema."""

    migrated = {name: value for name, value in data.items() if value is not None}

    ascended = migrated.get("ascendedRanks")
    if isinstance(ascended, list):
        # Before tiers existed an ascended rank was simply listed.
        migrated["ascendedRanks"] = {int(index): 1 for index in ascended}

    if "legitimateRuneRollCounts" not in migrated:
        migrated["legitimateRuneRollCounts"] = dict(migrated.get("runeRollCounts") or {})

    return migrated


def decode(blob: str, *, tag: Optional[str] = None, key: Optional[str] = None) -> PlayerState:
    tag = settings.save_version_tag if tag is None else tag
    key = settings.save_xor_key if key is None else key

    if blob.startswith(tag):
        try:
            obfuscated = base64.b64decode(blob[len(tag):], validate=True)
            text = _xor(obfuscated, key.encode("utf-8")).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise SaveFormatError("Save envelope is corrupt") from exc
    else:
        text = blob

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SaveFormatError("Save payload is not valid JSON") from exc
    if not isinstance(data, dict):
        raise SaveFormatError("Save payload must be a JSON object")

    try:
        return PlayerState.model_validate(migrate_payload(data))
    except (ValidationError, TypeError, ValueError) as exc:
        raise SaveFormatError("Save payload does not match the state schema") from exc


def load_state(blob: Optional[str]) -> PlayerState:
    """Decode ``blob``; a missing or corrupt save yields a fresh state."""

    if not blob:
        return fresh_state()
    try:
        return decode(blob)
    except SaveFormatError as exc:
        logger.warning("Discarding unreadable save: %s", exc)
        return fresh_state()


def validate_import(blob: str, *, tag: Optional[str] = None) -> str:
    """Check an imported save string before it replaces the stored one."""

    tag = settings.save_version_tag if tag is None else tag
    candidate = blob.strip()
    if not candidate.startswith(tag):
        raise SaveImportError("Invalid save data: missing version tag")
    return candidate
