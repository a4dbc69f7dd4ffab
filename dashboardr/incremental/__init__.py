"""
Incremental build support: page hashes and the build manifest.
"""

from .manifest import (
    compute_hash,
    load_manifest,
    manifest_path,
    needs_rebuild,
    new_manifest,
    plan_build,
    record_page,
    save_manifest,
)

__all__ = [
    'compute_hash',
    'manifest_path',
    'new_manifest',
    'load_manifest',
    'save_manifest',
    'needs_rebuild',
    'record_page',
    'plan_build',
]
