"""Read test-account credentials from an ``.xlsx`` workbook."""
from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .models import Credentials

LOGGER = logging.getLogger("chatload.accounts")


class AccountSheetError(ValueError):
    """Raised when the credential workbook cannot be read or lacks columns."""


@dataclass(frozen=True)
class SheetColumns:
    area_code: str = "区号"
    phone: str = "手机号"
    password: str = "登录密码"


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _header_index(header: Sequence[Any], columns: SheetColumns) -> Dict[str, int]:
    names = [_cell_text(cell) for cell in header]
    index: Dict[str, int] = {}
    missing: List[str] = []
    for key in ("area_code", "phone", "password"):
        column = getattr(columns, key)
        if column in names:
            index[key] = names.index(column)
        else:
            missing.append(column)
    if missing:
        raise AccountSheetError(f"missing columns: {', '.join(missing)}")
    return index


def read_credentials(path: Path, columns: Optional[SheetColumns] = None) -> List[Credentials]:
    """Return one ``Credentials`` per data row of the first worksheet.

    The username is the area code followed by the phone number.
    """

    columns = columns or SheetColumns()
    try:
        workbook = load_workbook(str(path), read_only=True, data_only=True)
    except (OSError, InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise AccountSheetError(f"cannot read workbook {path}: {exc}") from exc

    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            raise AccountSheetError(f"workbook {path} is empty")
        index = _header_index(header, columns)

        credentials: List[Credentials] = []
        for row in rows:
            if row is None or all(cell in (None, "") for cell in row):
                continue
            area = _cell_text(row[index["area_code"]] if index["area_code"] < len(row) else None)
            phone = _cell_text(row[index["phone"]] if index["phone"] < len(row) else None)
            password = _cell_text(row[index["password"]] if index["password"] < len(row) else None)
            credentials.append(Credentials(username=area + phone, password=password))
    finally:
        workbook.close()

    LOGGER.info("read %d accounts from %s", len(credentials), path)
    return credentials


__all__ = ["AccountSheetError", "SheetColumns", "read_credentials"]
