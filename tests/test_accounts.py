from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import Workbook

from chatload.accounts import AccountSheetError, SheetColumns, read_credentials


def _workbook(path: Path, rows) -> Path:
    book = Workbook()
    sheet = book.active
    for row in rows:
        sheet.append(row)
    book.save(path)
    return path


def test_reads_username_as_area_code_plus_phone(tmp_path: Path) -> None:
    path = _workbook(
        tmp_path / "accounts.xlsx",
        [
            ["序号", "区号", "手机号", "登录密码"],
            [1, "0086", 13800000001, "pw1"],
            [None, None, None, None],
            [2, "0086", "13800000002", 123456],
        ],
    )

    users = read_credentials(path)

    assert [user.username for user in users] == ["008613800000001", "008613800000002"]
    assert [user.password for user in users] == ["pw1", "123456"]


def test_custom_column_names(tmp_path: Path) -> None:
    path = _workbook(tmp_path / "custom.xlsx", [["area", "phone", "pass"], ["1", "555", "x"]])
    users = read_credentials(path, SheetColumns(area_code="area", phone="phone", password="pass"))
    assert users[0].username == "1555"


def test_missing_columns_are_reported(tmp_path: Path) -> None:
    path = _workbook(tmp_path / "bad.xlsx", [["区号", "手机号"], ["0086", "1"]])
    with pytest.raises(AccountSheetError, match="登录密码"):
        read_credentials(path)


def test_unreadable_workbook(tmp_path: Path) -> None:
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a zip file")
    with pytest.raises(AccountSheetError):
        read_credentials(path)
    with pytest.raises(AccountSheetError):
        read_credentials(tmp_path / "missing.xlsx")
