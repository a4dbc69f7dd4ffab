"""
Incremental build manifest.

The manifest lives in the dashboard output directory and records a content
hash per page from the previous build::

    {
        "timestamp": "2026-01-31T12:00:00+00:00",
        "pages": {"overview": {"hash": "9f2c4e1a7b3d5e60", "built_at": "..."}}
    }

A page is rebuilt when there is no manifest yet, when the page is new, or
when the hash of its configuration changed.  Hashes serve change detection
only.  The manifest assumes a single build process: writes are atomic, but
read-modify-write cycles are not locked.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..core.config import HASH_DIGEST_SIZE, MANIFEST_FILENAME

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def compute_hash(page_config: Any) -> str:
    """Stable 64-bit hex digest of a JSON-serialisable page configuration.

    Keys are sorted, so dict insertion order does not change the hash.
    Objects JSON cannot encode (dates, paths, ...) hash by their ``str()``.
    """
    payload = json.dumps(page_config, sort_keys=True, default=str, separators=(',', ':'))
    return hashlib.blake2b(payload.encode('utf-8'), digest_size=HASH_DIGEST_SIZE).hexdigest()


def manifest_path(output_dir: PathLike) -> Path:
    return Path(output_dir) / MANIFEST_FILENAME


def new_manifest() -> Dict[str, Any]:
    return {'timestamp': datetime.now(timezone.utc).isoformat(), 'pages': {}}


def load_manifest(output_dir: PathLike) -> Optional[Dict[str, Any]]:
    """Manifest of the previous build, or None when there is none."""
    path = manifest_path(output_dir)
    if not path.exists():
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            manifest = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid build manifest {path}: {e}") from e
    logger.debug(f"Loaded manifest with {len(manifest.get('pages', {}))} page(s) from {path}")
    return manifest


def save_manifest(manifest: Mapping[str, Any], output_dir: PathLike) -> Path:
    """Write ``manifest`` atomically (temp file + replace)."""
    path = manifest_path(output_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + '.tmp')
    try:
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(manifest, f, indent=2, sort_keys=True)
        temp_path.replace(path)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise
    logger.info(f"Saved build manifest ({len(manifest.get('pages', {}))} page(s)) to {path}")
    return path


def needs_rebuild(page_name: str, page_config: Any, manifest: Optional[Mapping[str, Any]]) -> bool:
    """True for a first build, a new page, or a page whose config changed."""
    if manifest is None or not manifest.get('pages'):
        return True
    entry = manifest['pages'].get(page_name)
    if entry is None:
        return True
    return entry.get('hash') != compute_hash(page_config)


def record_page(manifest: Optional[Mapping[str, Any]], page_name: str, page_config: Any) -> Dict[str, Any]:
    """Copy of ``manifest`` with the current hash of ``page_name``."""
    updated = new_manifest() if manifest is None else {
        **manifest, 'pages': dict(manifest.get('pages', {})),
    }
    updated['pages'][page_name] = {
        'hash': compute_hash(page_config),
        'built_at': datetime.now(timezone.utc).isoformat(),
    }
    return updated


def plan_build(pages: Mapping[str, Any], manifest: Optional[Mapping[str, Any]]) -> Tuple[List[str], List[str]]:
    """Split ``{page_name: page_config}`` into (to rebuild, unchanged)."""
    rebuild, skipped = [], []
    for name, config in pages.items():
        (rebuild if needs_rebuild(name, config, manifest) else skipped).append(name)
    logger.info(f"Incremental build: {len(rebuild)} page(s) to rebuild, {len(skipped)} unchanged")
    return rebuild, skipped
