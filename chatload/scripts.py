"""Generate per-account chat-flood scripts for the WuKongIM JS SDK.

Each logged-in sender gets its own ``mainNN.ts``. The first
``message_senders`` scripts keep sending random text to one target
channel; the rest only hold a connection open. ``write_ecosystem_config``
emits a pm2 file that runs all of them as separate processes.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from string import Template
from typing import List, Sequence

from .api.client import ChatApiClient
from .batch import batch_get_user_info, batch_login
from .models import AuthResult, Credentials

LOGGER = logging.getLogger("chatload.scripts")

CHARSET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"

_CONNECT_LISTENER = """\
WKSDK.shared().connectManager.addConnectStatusListener(
    (status: ConnectStatus, reasonCode?: number) => {
        if (status === ConnectStatus.Connected) {
            $on_connected
        } else {
            console.log('connect failed', reasonCode); // reasonCode 2: bad uid or token
        }
    },
);
"""

MESSAGE_SCRIPT = Template(
    """\
// generated message sender - user $label
import { MessageText, Channel, WKSDK, ChannelTypePerson, ConnectStatus } from "wukongimjssdk";

WKSDK.shared().config.addr = '$ws_url';

const uid = '$uid';
const token = '$token';
const targetChannel = "$target";

WKSDK.shared().config.uid = uid;
WKSDK.shared().config.token = token;

const channelType = ChannelTypePerson
WKSDK.shared().connectManager.connect();

"""
    + _CONNECT_LISTENER.replace(
        "$on_connected", "console.log('connected');\n            sendMessages();"
    )
    + """
async function sendMessages() {
    while (true) {
        const text = new MessageText(randomString($length, charset));
        await WKSDK.shared().chatManager.send(text, new Channel(targetChannel, channelType));
        await sleep($interval_ms);
    }
}

function sleep(delay: number): Promise<void> {
    return new Promise(resolve => setTimeout(resolve, delay));
}

function randomString(length: number, chars: string): string {
    let result = '';
    for (let i = length; i > 0; --i) {
        result += chars[Math.floor(Math.random() * chars.length)];
    }
    return result;
}
const charset = '$charset';
"""
)

CONNECTION_SCRIPT = Template(
    """\
// generated idle connection - user $label
import { WKSDK, ConnectStatus } from "wukongimjssdk";

WKSDK.shared().config.addr = '$ws_url';

const uid = '$uid';
const token = '$token';

WKSDK.shared().config.uid = uid;
WKSDK.shared().config.token = token;

WKSDK.shared().connectManager.connect();

"""
    + _CONNECT_LISTENER.replace(
        "$on_connected", "console.log('connected - holding connection only');"
    )
    + """
console.log('connection script started');
"""
)


def script_name(index: int) -> str:
    return f"main{index:02d}.ts"


def render_message_script(
    user: AuthResult,
    target_uid: str,
    index: int,
    *,
    ws_url: str,
    interval_ms: int = 5000,
    message_length: int = 500,
) -> str:
    return MESSAGE_SCRIPT.substitute(
        label=f"{index + 1:02d}",
        ws_url=ws_url,
        uid=user.uid,
        token=user.token,
        target=target_uid,
        length=message_length,
        interval_ms=interval_ms,
        charset=CHARSET,
    )


def render_connection_script(user: AuthResult, index: int, *, ws_url: str) -> str:
    return CONNECTION_SCRIPT.substitute(
        label=f"{index + 1:02d}",
        ws_url=ws_url,
        uid=user.uid,
        token=user.token,
    )


def generate_chat_scripts(
    client: ChatApiClient,
    users: Sequence[Credentials],
    output_dir: Path,
    *,
    ws_url: str,
    sender_start: int = 1,
    sender_count: int = 10,
    target_index: int = 0,
    message_senders: int = 10,
    interval_ms: int = 5000,
    message_length: int = 500,
) -> List[Path]:
    if sender_start < 0 or sender_count < 1:
        raise ValueError(f"invalid sender range start={sender_start} count={sender_count}")
    if sender_start + sender_count > len(users):
        raise ValueError(
            f"sender range exceeds account list: {len(users)} accounts, "
            f"requested up to {sender_start + sender_count}"
        )
    if not 0 <= target_index < len(users):
        raise ValueError(f"target index {target_index} is out of range")
    if message_senders > sender_count:
        LOGGER.warning(
            "message sender count %d exceeds sender count %d; clamping",
            message_senders,
            sender_count,
        )
        message_senders = sender_count

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    target = batch_get_user_info(client, [users[target_index]])
    if not target:
        raise ValueError(f"target account {users[target_index].username} could not be found")
    target_uid = target[0].uid
    LOGGER.info("target uid %s", target_uid)

    senders = users[sender_start : sender_start + sender_count]
    logged_in = batch_login(client, senders)
    if not logged_in:
        raise ValueError("no sender account could log in")

    written: List[Path] = []
    for index, user in enumerate(logged_in):
        if index < message_senders:
            content = render_message_script(
                user,
                target_uid,
                index,
                ws_url=ws_url,
                interval_ms=interval_ms,
                message_length=message_length,
            )
            kind = "message"
        else:
            content = render_connection_script(user, index, ws_url=ws_url)
            kind = "connect-only"
        path = output_dir / script_name(index)
        path.write_text(content, encoding="utf-8")
        written.append(path)
        LOGGER.info("wrote %s for %s (%s)", path.name, user.uid, kind)

    LOGGER.info(
        "generated %d scripts: %d senders, %d idle",
        len(written),
        min(message_senders, len(written)),
        max(0, len(written) - message_senders),
    )
    return written


def write_ecosystem_config(output_dir: Path, count: int, *, scripts_dir: str = "cmd") -> Path:
    """pm2 config running ``count`` generated scripts through ts-node."""

    apps = []
    for index in range(count):
        num = f"{index:02d}"
        apps.append(
            {
                "name": f"main-{num}",
                "script": "node",
                "args": f"-r ts-node/register {scripts_dir}/main{num}.ts",
                "instances": 1,
                "exec_mode": "fork",
                "watch": False,
                "env": {
                    "NODE_ENV": "development",
                    "INSTANCE_ID": num,
                    "TS_NODE_PROJECT": "tsconfig.json",
                },
                "error_file": f"./logs/main-{num}-error.log",
                "out_file": f"./logs/main-{num}-out.log",
                "time": True,
            }
        )
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / "ecosystem.config.js"
    path.write_text(
        "module.exports = " + json.dumps({"apps": apps}, indent=2) + ";\n",
        encoding="utf-8",
    )
    return path


__all__ = [
    "CHARSET",
    "generate_chat_scripts",
    "render_connection_script",
    "render_message_script",
    "script_name",
    "write_ecosystem_config",
]
