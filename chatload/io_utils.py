from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from .image.interfaces import EncodedArtifact
from .models import UserTokenInfo


def generate_run_id(prefix: str) -> str:
    return f"{prefix}-{datetime.now(timezone.utc):%Y%m%d-%H%M%S}"


def artifact_filename(run_id: str, index: int, artifact: EncodedArtifact) -> str:
    return f"{run_id}_{index:03d}_{artifact.width}x{artifact.height}_{artifact.size_kb}kb.{artifact.format}"


def write_artifact(path: Path, artifact: EncodedArtifact, *, sidecar: bool = False) -> Path:
    """Persist the encoded bytes, plus a ``.json`` description when asked."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(artifact.data)
    if sidecar:
        path.with_suffix(".json").write_text(
            json.dumps(artifact.as_dict(), indent=2),
            encoding="utf-8",
        )
    return path


def default_token_path(start: int, count: int) -> Path:
    return Path(f"user_tokens_{start + 1}_to_{start + count}.json")


def write_token_file(path: Path, users: Iterable[UserTokenInfo], *, generated_at: Optional[datetime] = None) -> Path:
    entries = [user.as_dict() for user in users]
    stamp = (generated_at or datetime.now(timezone.utc)).isoformat()
    payload = {"users": entries, "total": len(entries), "generatedAt": stamp}
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2)
    return path


__all__ = [
    "artifact_filename",
    "default_token_path",
    "generate_run_id",
    "write_artifact",
    "write_token_file",
]
