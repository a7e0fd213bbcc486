from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .accounts import SheetColumns
from .api.client import DEFAULT_TIMEOUT, DEFAULT_UPLOAD_PATH

BASE_URL_ENV = "CHATLOAD_BASE_URL"
WS_URL_ENV = "CHATLOAD_WS_URL"


@dataclass
class ApiConfig:
    base_url: str = "http://localhost:8090/v1"
    ws_url: str = "ws://localhost:5200/"
    timeout: float = DEFAULT_TIMEOUT
    upload_path: str = DEFAULT_UPLOAD_PATH


@dataclass
class AccountsConfig:
    workbook: Path = Path("test_accounts.xlsx")
    columns: SheetColumns = field(default_factory=SheetColumns)


@dataclass
class FriendsConfig:
    remark: str = "Hi, adding you as part of a bulk invite"
    remark_name: str = "friend"
    friend_group_id: int = 0
    senders: int = 5
    concurrency: int = 10
    delay: float = 0.1
    batch_delay: float = 0.2


@dataclass
class ScriptsConfig:
    output_dir: Path = Path("cmd")
    sender_start: int = 1
    sender_count: int = 100
    target_index: int = 0
    message_senders: int = 20
    interval_ms: int = 5000
    message_length: int = 500


@dataclass
class ImageConfig:
    min_size_kb: int = 50
    max_size_kb: int = 200
    width: int = 1200
    height: int = 900
    quality: int = 90
    texture_layers: int = 8
    noise_intensity: float = 0.3
    gradient_blobs: int = 5
    workers: Optional[int] = None
    output_dir: Path = Path("output")


@dataclass
class LoggingConfig:
    level: str = "INFO"
    logfile: Optional[Path] = None


@dataclass
class LoadTestConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    accounts: AccountsConfig = field(default_factory=AccountsConfig)
    friends: FriendsConfig = field(default_factory=FriendsConfig)
    scripts: ScriptsConfig = field(default_factory=ScriptsConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "LoadTestConfig":
        api_data = _section(raw, "api")
        accounts_data = _section(raw, "accounts")
        columns_data = _section(accounts_data, "columns")
        friends_data = _section(raw, "friends")
        scripts_data = _section(raw, "scripts")
        image_data = _section(raw, "image")
        logging_data = _section(raw, "logging")

        api = ApiConfig(
            base_url=str(api_data.get("base_url", ApiConfig.base_url)),
            ws_url=str(api_data.get("ws_url", ApiConfig.ws_url)),
            timeout=float(api_data.get("timeout", DEFAULT_TIMEOUT)),
            upload_path=str(api_data.get("upload_path", DEFAULT_UPLOAD_PATH)),
        )

        default_columns = SheetColumns()
        accounts = AccountsConfig(
            workbook=Path(str(accounts_data.get("workbook", AccountsConfig.workbook))),
            columns=SheetColumns(
                area_code=str(columns_data.get("area_code", default_columns.area_code)),
                phone=str(columns_data.get("phone", default_columns.phone)),
                password=str(columns_data.get("password", default_columns.password)),
            ),
        )

        friends = FriendsConfig(
            remark=str(friends_data.get("remark", FriendsConfig.remark)),
            remark_name=str(friends_data.get("remark_name", FriendsConfig.remark_name)),
            friend_group_id=int(friends_data.get("friend_group_id", FriendsConfig.friend_group_id)),
            senders=int(friends_data.get("senders", FriendsConfig.senders)),
            concurrency=int(friends_data.get("concurrency", FriendsConfig.concurrency)),
            delay=float(friends_data.get("delay", FriendsConfig.delay)),
            batch_delay=float(friends_data.get("batch_delay", FriendsConfig.batch_delay)),
        )

        scripts = ScriptsConfig(
            output_dir=Path(str(scripts_data.get("output_dir", ScriptsConfig.output_dir))),
            sender_start=int(scripts_data.get("sender_start", ScriptsConfig.sender_start)),
            sender_count=int(scripts_data.get("sender_count", ScriptsConfig.sender_count)),
            target_index=int(scripts_data.get("target_index", ScriptsConfig.target_index)),
            message_senders=int(scripts_data.get("message_senders", ScriptsConfig.message_senders)),
            interval_ms=int(scripts_data.get("interval_ms", ScriptsConfig.interval_ms)),
            message_length=int(scripts_data.get("message_length", ScriptsConfig.message_length)),
        )

        workers = image_data.get("workers")
        image = ImageConfig(
            min_size_kb=int(image_data.get("min_size_kb", ImageConfig.min_size_kb)),
            max_size_kb=int(image_data.get("max_size_kb", ImageConfig.max_size_kb)),
            width=int(image_data.get("width", ImageConfig.width)),
            height=int(image_data.get("height", ImageConfig.height)),
            quality=int(image_data.get("quality", ImageConfig.quality)),
            texture_layers=int(image_data.get("texture_layers", ImageConfig.texture_layers)),
            noise_intensity=float(image_data.get("noise_intensity", ImageConfig.noise_intensity)),
            gradient_blobs=int(image_data.get("gradient_blobs", ImageConfig.gradient_blobs)),
            workers=int(workers) if workers is not None else None,
            output_dir=Path(str(image_data.get("output_dir", ImageConfig.output_dir))),
        )

        logging_cfg = LoggingConfig(
            level=str(logging_data.get("level", "INFO")).upper(),
            logfile=_optional_path(logging_data.get("logfile")),
        )

        return cls(
            api=api,
            accounts=accounts,
            friends=friends,
            scripts=scripts,
            image=image,
            logging=logging_cfg,
        )

    def apply_env(self, environ: Optional[Mapping[str, str]] = None) -> "LoadTestConfig":
        env = os.environ if environ is None else environ
        if env.get(BASE_URL_ENV):
            self.api.base_url = env[BASE_URL_ENV]
        if env.get(WS_URL_ENV):
            self.api.ws_url = env[WS_URL_ENV]
        return self


def load_config(path: Path) -> LoadTestConfig:
    text = Path(path).read_text(encoding="utf-8")
    if Path(path).suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")
    return LoadTestConfig.from_dict(data)


def _section(source: Any, key: str) -> Dict[str, Any]:
    if not isinstance(source, Mapping):
        return {}
    value = source.get(key, {})
    return dict(value) if isinstance(value, Mapping) else {}


def _optional_path(value: Any) -> Path | None:
    if value in (None, "", False):
        return None
    return Path(str(value))


__all__ = [
    "AccountsConfig",
    "ApiConfig",
    "FriendsConfig",
    "ImageConfig",
    "LoadTestConfig",
    "LoggingConfig",
    "ScriptsConfig",
    "load_config",
]
