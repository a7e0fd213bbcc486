from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from chatload.image.interfaces import EncodedArtifact
from chatload.io_utils import (
    artifact_filename,
    default_token_path,
    generate_run_id,
    write_artifact,
    write_token_file,
)
from chatload.models import UserTokenInfo


def _artifact() -> EncodedArtifact:
    return EncodedArtifact(
        data=b"x" * 3000,
        width=800,
        height=600,
        size_kb=2,
        target_kb=2,
        tier=0,
        encode_passes=1,
    )


def test_run_id_and_filename() -> None:
    run_id = generate_run_id("webp")
    assert run_id.startswith("webp-")
    assert artifact_filename("run", 3, _artifact()) == "run_003_800x600_2kb.webp"


def test_write_artifact_with_sidecar(tmp_path: Path) -> None:
    path = write_artifact(tmp_path / "nested" / "a.webp", _artifact(), sidecar=True)

    assert path.read_bytes() == b"x" * 3000
    meta = json.loads(path.with_suffix(".json").read_text(encoding="utf-8"))
    assert meta["tier"] == 0
    assert meta["width"] == 800


def test_token_file_layout(tmp_path: Path) -> None:
    assert default_token_path(0, 10) == Path("user_tokens_1_to_10.json")

    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    users = [UserTokenInfo(uid="u1", token="t1", username="0086138", index=0)]
    path = write_token_file(tmp_path / "tokens.json", users, generated_at=stamp)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["total"] == 1
    assert payload["generatedAt"] == "2024-01-02T03:04:05+00:00"
    assert payload["users"][0] == {"uid": "u1", "token": "t1", "username": "0086138", "index": 0}
