from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str


@dataclass(frozen=True)
class AuthResult:
    uid: str
    token: str
    username: str = ""


@dataclass(frozen=True)
class UserInfo:
    uid: str
    vercode: str


@dataclass(frozen=True)
class ApplyResult:
    auth_uid: str
    target_uid: str
    success: bool
    message: str


@dataclass(frozen=True)
class UserTokenInfo:
    uid: str
    token: str
    username: str
    index: int

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UploadResult:
    path: str
    upload_url: str
    size_bytes: int
    status_code: int


__all__ = [
    "ApplyResult",
    "AuthResult",
    "Credentials",
    "UploadResult",
    "UserInfo",
    "UserTokenInfo",
]
