from __future__ import annotations

from pathlib import Path

import pytest
from PIL import features

import main as cli


def test_parser_requires_a_subcommand() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


@pytest.mark.skipif(not features.check("webp"), reason="Pillow built without WebP")
def test_image_command_writes_files(tmp_path: Path) -> None:
    out = tmp_path / "images"
    code = cli.main(
        [
            "image",
            "--out", str(out),
            "--count", "2",
            "--min-kb", "1",
            "--max-kb", "1",
            "--width", "120",
            "--height", "100",
            "--seed", "4",
            "--sidecar",
        ]
    )

    assert code == 0
    assert len(list(out.glob("*.webp"))) == 2
    assert len(list(out.glob("*.json"))) == 2


def test_invalid_request_exits_with_failure(tmp_path: Path) -> None:
    code = cli.main(["image", "--out", str(tmp_path), "--min-kb", "10", "--max-kb", "5"])
    assert code == 1
    assert list(tmp_path.iterdir()) == []


def test_missing_workbook_exits_with_failure(tmp_path: Path) -> None:
    code = cli.main(["tokens", "--workbook", str(tmp_path / "missing.xlsx")])
    assert code == 1
