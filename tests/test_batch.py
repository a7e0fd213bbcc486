from __future__ import annotations

import threading
from typing import List

import pytest

from chatload.api import ChatApiError
from chatload.batch import (
    batch_add_friends,
    batch_add_friends_concurrent,
    batch_get_user_info,
    batch_login,
    fetch_user_tokens,
)
from chatload.models import ApplyResult, AuthResult, Credentials, UserInfo


class StubClient:
    def __init__(self, failing: tuple = (), missing: tuple = ()):
        self.failing = set(failing)
        self.missing = set(missing)
        self.applied: List[tuple] = []
        self._lock = threading.Lock()

    def login(self, credentials: Credentials) -> AuthResult:
        if credentials.username in self.failing:
            raise ChatApiError(f"login {credentials.username}: HTTP 401")
        return AuthResult(uid=f"uid-{credentials.username}", token=f"tok-{credentials.username}", username=credentials.username)

    def search_user(self, keyword: str):
        if keyword in self.missing:
            return None
        return UserInfo(uid=f"uid-{keyword}", vercode=f"vc-{keyword}")

    def apply_friend(self, auth, target, *, remark, friend_group_id, remark_name) -> ApplyResult:
        with self._lock:
            self.applied.append((auth.uid, target.uid, friend_group_id, remark_name))
        success = not target.uid.endswith("bad")
        return ApplyResult(auth.uid, target.uid, success, "applied: ok" if success else "apply failed: 400 - no")


def _users(*names: str) -> List[Credentials]:
    return [Credentials(name, "pw") for name in names]


def test_batch_login_drops_failures() -> None:
    client = StubClient(failing=("b",))
    results = batch_login(client, _users("a", "b", "c"), workers=2)
    assert sorted(auth.username for auth in results) == ["a", "c"]


def test_batch_login_handles_empty_input() -> None:
    assert batch_login(StubClient(), []) == []


def test_batch_get_user_info_skips_missing() -> None:
    infos = batch_get_user_info(StubClient(missing=("b",)), _users("a", "b", "c"))
    assert [info.uid for info in infos] == ["uid-a", "uid-c"]


def test_sequential_fan_out_skips_self_and_sleeps() -> None:
    client = StubClient()
    auth_users = [AuthResult("uid-a", "t"), AuthResult("uid-b", "t")]
    targets = [UserInfo("uid-a", "v"), UserInfo("uid-b", "v"), UserInfo("uid-c", "v")]
    pauses: List[float] = []

    results = batch_add_friends(client, auth_users, targets, delay=0.5, sleep=pauses.append)

    assert [(r.auth_uid, r.target_uid) for r in results] == [
        ("uid-a", "uid-b"),
        ("uid-a", "uid-c"),
        ("uid-b", "uid-a"),
        ("uid-b", "uid-c"),
    ]
    assert pauses == [0.5] * 4
    assert all(call[2] == 2 for call in client.applied)


def test_concurrent_fan_out_batches_requests() -> None:
    client = StubClient()
    auth_users = [AuthResult(f"uid-{i}", "t") for i in range(3)]
    targets = [UserInfo(f"uid-{i}", "v") for i in range(3)] + [UserInfo("uid-bad", "v")]
    pauses: List[float] = []

    results = batch_add_friends_concurrent(
        client,
        auth_users,
        targets,
        concurrency=4,
        batch_delay=0.2,
        sleep=pauses.append,
    )

    # 3 senders x (4 targets - self) = 9 requests in batches of 4
    assert len(results) == 9
    assert pauses == [0.2] * 3
    assert sum(1 for r in results if not r.success) == 3
    assert all(r.auth_uid != r.target_uid for r in results)
    assert all(call[2] == 0 for call in client.applied)


def test_concurrent_fan_out_rejects_zero_concurrency() -> None:
    with pytest.raises(ValueError):
        batch_add_friends_concurrent(StubClient(), [], [], concurrency=0)


def test_fetch_user_tokens_keeps_sheet_positions() -> None:
    client = StubClient(failing=("c",))
    users = _users("a", "b", "c", "d", "e")

    tokens = fetch_user_tokens(client, users, 1, 3)

    assert [(t.username, t.index) for t in tokens] == [("b", 1), ("d", 3)]
    assert tokens[0].as_dict() == {"uid": "uid-b", "token": "tok-b", "username": "b", "index": 1}


@pytest.mark.parametrize("start,count", [(-1, 2), (0, 0), (4, 2)])
def test_fetch_user_tokens_validates_range(start, count) -> None:
    with pytest.raises(ValueError):
        fetch_user_tokens(StubClient(), _users("a", "b", "c", "d", "e"), start, count)


def test_fetch_user_tokens_keeps_duplicate_rows_apart() -> None:
    users = _users("a", "dup", "dup", "b")

    tokens = fetch_user_tokens(StubClient(), users, 0, 4, workers=2)

    assert [(t.username, t.index) for t in tokens] == [("a", 0), ("dup", 1), ("dup", 2), ("b", 3)]
