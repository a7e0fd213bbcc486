from __future__ import annotations

import json
from pathlib import Path

import pytest

from chatload.models import AuthResult, Credentials, UserInfo
from chatload.scripts import (
    CHARSET,
    generate_chat_scripts,
    render_connection_script,
    render_message_script,
    script_name,
    write_ecosystem_config,
)


class StubClient:
    def __init__(self, failing=()):
        self.failing = set(failing)

    def login(self, credentials: Credentials) -> AuthResult:
        from chatload.api import ChatApiError

        if credentials.username in self.failing:
            raise ChatApiError("denied")
        return AuthResult(uid=f"uid-{credentials.username}", token=f"tok-{credentials.username}", username=credentials.username)

    def search_user(self, keyword: str):
        return UserInfo(uid=f"uid-{keyword}", vercode="v")


def _users(count: int):
    return [Credentials(f"user{i}", "pw") for i in range(count)]


def test_script_name_is_zero_padded() -> None:
    assert script_name(0) == "main00.ts"
    assert script_name(12) == "main12.ts"


def test_message_script_embeds_connection_details() -> None:
    text = render_message_script(
        AuthResult("u1", "t1"), "target-uid", 0, ws_url="ws://im.test:5200/", interval_ms=1500, message_length=42
    )
    assert "WKSDK.shared().config.addr = 'ws://im.test:5200/';" in text
    assert "const uid = 'u1';" in text
    assert "const token = 't1';" in text
    assert 'const targetChannel = "target-uid";' in text
    assert "randomString(42, charset)" in text
    assert "await sleep(1500);" in text
    assert CHARSET in text
    assert "$" not in text


def test_connection_script_only_connects() -> None:
    text = render_connection_script(AuthResult("u2", "t2"), 3, ws_url="ws://im.test/")
    assert "const uid = 'u2';" in text
    assert "chatManager.send" not in text
    assert "user 04" in text


def test_generate_chat_scripts_splits_senders_and_idlers(tmp_path: Path) -> None:
    written = generate_chat_scripts(
        StubClient(),
        _users(6),
        tmp_path / "cmd",
        ws_url="ws://im.test/",
        sender_start=1,
        sender_count=4,
        target_index=0,
        message_senders=2,
    )

    assert [path.name for path in written] == ["main00.ts", "main01.ts", "main02.ts", "main03.ts"]
    first = written[0].read_text(encoding="utf-8")
    assert 'const targetChannel = "uid-user0";' in first
    assert "const uid = 'uid-user1';" in first
    assert "chatManager.send" in written[1].read_text(encoding="utf-8")
    assert "chatManager.send" not in written[2].read_text(encoding="utf-8")


def test_generate_chat_scripts_clamps_message_senders(tmp_path: Path) -> None:
    written = generate_chat_scripts(
        StubClient(failing=("user2",)),
        _users(4),
        tmp_path,
        ws_url="ws://im.test/",
        sender_start=1,
        sender_count=3,
        message_senders=10,
    )
    assert len(written) == 2
    assert all("chatManager.send" in path.read_text(encoding="utf-8") for path in written)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"sender_start": -1},
        {"sender_count": 0},
        {"sender_start": 2, "sender_count": 5},
        {"target_index": 9},
    ],
)
def test_generate_chat_scripts_validates_ranges(tmp_path: Path, kwargs) -> None:
    params = {"ws_url": "ws://x/", "sender_start": 1, "sender_count": 2}
    params.update(kwargs)
    with pytest.raises(ValueError):
        generate_chat_scripts(StubClient(), _users(4), tmp_path, **params)


def test_no_logged_in_sender_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        generate_chat_scripts(
            StubClient(failing=("user1",)),
            _users(2),
            tmp_path,
            ws_url="ws://x/",
            sender_start=1,
            sender_count=1,
        )


def test_ecosystem_config_lists_every_script(tmp_path: Path) -> None:
    path = write_ecosystem_config(tmp_path, 3, scripts_dir="cmd")

    text = path.read_text(encoding="utf-8")
    assert path.name == "ecosystem.config.js"
    assert text.startswith("module.exports = ")
    config = json.loads(text[len("module.exports = "):].rstrip().rstrip(";"))
    apps = config["apps"]
    assert [app["name"] for app in apps] == ["main-00", "main-01", "main-02"]
    assert apps[2]["args"] == "-r ts-node/register cmd/main02.ts"
    assert apps[0]["env"]["INSTANCE_ID"] == "00"
