"""Thin ``requests`` wrapper around the chat backend's REST endpoints."""
from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import requests

from chatload.models import ApplyResult, AuthResult, Credentials, UploadResult, UserInfo

LOGGER = logging.getLogger("chatload.api")

DEFAULT_TIMEOUT = 10.0
DEFAULT_UPLOAD_PATH = "/file/upload"


class ChatApiError(RuntimeError):
    """Raised when the chat backend is unreachable or answers with an error."""


def _json_body(response: requests.Response, what: str) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise ChatApiError(f"{what}: response is not JSON") from exc
    if not isinstance(data, dict):
        raise ChatApiError(f"{what}: expected a JSON object, got {type(data).__name__}")
    return data


@dataclass
class ChatApiClient:
    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    upload_path: str = DEFAULT_UPLOAD_PATH
    session: requests.Session = field(default_factory=requests.Session)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        what: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        try:
            response = self.session.request(
                method,
                self._url(path),
                headers=dict(headers or {}),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise ChatApiError(f"{what}: {exc}") from exc
        if not response.ok:
            raise ChatApiError(f"{what}: HTTP {response.status_code} {response.text[:200]}")
        return response

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def login(self, credentials: Credentials) -> AuthResult:
        what = f"login {credentials.username}"
        response = self._request(
            "POST",
            "/user/login",
            what,
            json={"username": credentials.username, "password": credentials.password, "flag": 1},
        )
        data = _json_body(response, what)
        uid, token = data.get("uid"), data.get("token")
        if not uid or not token:
            raise ChatApiError(f"{what}: response lacks uid/token")
        return AuthResult(uid=str(uid), token=str(token), username=credentials.username)

    def search_user(self, keyword: str) -> Optional[UserInfo]:
        what = f"search {keyword}"
        response = self._request("GET", "/user/search", what, params={"keyword": keyword})
        data = _json_body(response, what)
        user = data.get("data")
        if data.get("exist") != 1 or not isinstance(user, Mapping):
            return None
        return UserInfo(uid=str(user.get("uid", "")), vercode=str(user.get("vercode", "")))

    # ------------------------------------------------------------------
    # Friends
    # ------------------------------------------------------------------
    def apply_friend(
        self,
        auth: AuthResult,
        target: UserInfo,
        *,
        remark: str,
        friend_group_id: int,
        remark_name: str,
    ) -> ApplyResult:
        """Send one friend request; failures are reported, never raised."""

        payload = {
            "to_uid": target.uid,
            "remark": f"{remark} (from user {auth.uid}...)",
            "vercode": target.vercode,
            "friend_group_id": friend_group_id,
            "remark_name": f"{remark_name}_{target.uid}",
        }
        try:
            response = self.session.request(
                "POST",
                self._url("/friend/apply"),
                headers={"token": auth.token},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            LOGGER.error("user %s -> %s raised: %s", auth.uid, target.uid, exc)
            return ApplyResult(auth.uid, target.uid, False, f"request error: {exc}")

        body = response.text
        if response.ok:
            LOGGER.info("user %s added %s", auth.uid, target.uid)
            return ApplyResult(auth.uid, target.uid, True, f"applied: {body}")
        LOGGER.error("user %s -> %s failed: %s", auth.uid, target.uid, response.status_code)
        return ApplyResult(auth.uid, target.uid, False, f"apply failed: {response.status_code} - {body}")

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------
    def request_upload_url(self, token: str, filename: str, content_type: str) -> str:
        what = f"upload negotiation for {filename}"
        response = self._request(
            "GET",
            self.upload_path,
            what,
            headers={"token": token},
            params={"path": f"/{filename}", "type": content_type},
        )
        url = _json_body(response, what).get("url")
        if not url:
            raise ChatApiError(f"{what}: response lacks url")
        return str(url)

    def upload_to_presigned_url(self, url: str, data: bytes, content_type: str) -> int:
        try:
            response = self.session.request(
                "PUT",
                url,
                data=data,
                headers={"Content-Type": content_type},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ChatApiError(f"upload to {url}: {exc}") from exc
        if not response.ok:
            raise ChatApiError(f"upload to {url}: HTTP {response.status_code} {response.text[:200]}")
        return response.status_code

    def upload_file(self, path: Path, token: str) -> UploadResult:
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        data = path.read_bytes()
        url = self.request_upload_url(token, path.name, content_type)
        status = self.upload_to_presigned_url(url, data, content_type)
        LOGGER.info("uploaded %s (%d bytes)", path.name, len(data))
        return UploadResult(path=str(path), upload_url=url, size_bytes=len(data), status_code=status)


__all__ = ["ChatApiClient", "ChatApiError", "DEFAULT_TIMEOUT", "DEFAULT_UPLOAD_PATH"]
