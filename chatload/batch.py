"""Bulk account operations used to warm up a load test."""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

from .api.client import ChatApiClient, ChatApiError
from .models import ApplyResult, AuthResult, Credentials, UserInfo, UserTokenInfo

LOGGER = logging.getLogger("chatload.batch")

DEFAULT_REMARK = "Hi, adding you as part of a bulk invite"
DEFAULT_REMARK_NAME = "friend"
DEFAULT_WORKERS = 16


def _pool_map(func, items: Sequence, workers: Optional[int]) -> list:
    if not items:
        return []
    max_workers = max(1, min(workers or DEFAULT_WORKERS, len(items)))
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(func, items))


def _try_login(client: ChatApiClient, user: Credentials) -> Optional[AuthResult]:
    try:
        return client.login(user)
    except ChatApiError as exc:
        LOGGER.error("login failed for %s: %s", user.username, exc)
        return None


def batch_login(
    client: ChatApiClient,
    users: Sequence[Credentials],
    *,
    workers: Optional[int] = None,
) -> List[AuthResult]:
    """Log every account in; failures are logged and left out."""

    attempts = _pool_map(lambda user: _try_login(client, user), users, workers)
    results = [result for result in attempts if result is not None]
    LOGGER.info("batch login: %d/%d succeeded", len(results), len(users))
    return results


def batch_get_user_info(
    client: ChatApiClient,
    users: Sequence[Credentials],
    *,
    workers: Optional[int] = None,
) -> List[UserInfo]:
    def _lookup(user: Credentials) -> Optional[UserInfo]:
        try:
            info = client.search_user(user.username)
        except ChatApiError as exc:
            LOGGER.error("lookup failed for %s: %s", user.username, exc)
            return None
        if info is None:
            LOGGER.warning("user %s does not exist", user.username)
        return info

    return [info for info in _pool_map(_lookup, users, workers) if info is not None]


def _pairs(auth_users: Sequence[AuthResult], targets: Sequence[UserInfo]) -> List[Tuple[AuthResult, UserInfo]]:
    return [
        (auth, target)
        for auth in auth_users
        for target in targets
        if target.uid != auth.uid
    ]


def batch_add_friends(
    client: ChatApiClient,
    auth_users: Sequence[AuthResult],
    targets: Sequence[UserInfo],
    *,
    remark: str = DEFAULT_REMARK,
    friend_group_id: int = 2,
    remark_name: str = DEFAULT_REMARK_NAME,
    delay: float = 0.1,
    sleep: Callable[[float], None] = time.sleep,
) -> List[ApplyResult]:
    """Every sender applies to every other target, one request at a time."""

    results: List[ApplyResult] = []
    for auth, target in _pairs(auth_users, targets):
        results.append(
            client.apply_friend(
                auth,
                target,
                remark=remark,
                friend_group_id=friend_group_id,
                remark_name=remark_name,
            )
        )
        if delay > 0:
            sleep(delay)
    return results


def batch_add_friends_concurrent(
    client: ChatApiClient,
    auth_users: Sequence[AuthResult],
    targets: Sequence[UserInfo],
    *,
    remark: str = DEFAULT_REMARK,
    friend_group_id: int = 0,
    remark_name: str = DEFAULT_REMARK_NAME,
    concurrency: int = 5,
    batch_delay: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> List[ApplyResult]:
    """Same fan-out as :func:`batch_add_friends`, ``concurrency`` requests at a time."""

    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")
    tasks = _pairs(auth_users, targets)
    results: List[ApplyResult] = []

    def _apply(pair: Tuple[AuthResult, UserInfo]) -> ApplyResult:
        auth, target = pair
        return client.apply_friend(
            auth,
            target,
            remark=remark,
            friend_group_id=friend_group_id,
            remark_name=remark_name,
        )

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        for start in range(0, len(tasks), concurrency):
            batch = tasks[start : start + concurrency]
            results.extend(pool.map(_apply, batch))
            if batch_delay > 0:
                sleep(batch_delay)

    succeeded = sum(1 for result in results if result.success)
    LOGGER.info("friend fan-out: %d/%d requests succeeded", succeeded, len(results))
    return results


def fetch_user_tokens(
    client: ChatApiClient,
    users: Sequence[Credentials],
    start: int,
    count: int,
    *,
    workers: Optional[int] = None,
) -> List[UserTokenInfo]:
    """Log in ``users[start:start + count]`` and keep their sheet positions."""

    if start < 0 or count < 1:
        raise ValueError(f"invalid range start={start} count={count}")
    if start + count > len(users):
        raise ValueError(
            f"range exceeds account list: {len(users)} accounts, requested up to {start + count}"
        )
    selected = list(users[start : start + count])
    LOGGER.info("fetching tokens for accounts %d to %d", start + 1, start + len(selected))

    # usernames may repeat across rows; the index comes from the row offset
    def _login(item: Tuple[int, Credentials]) -> Optional[UserTokenInfo]:
        offset, user = item
        auth = _try_login(client, user)
        if auth is None:
            return None
        return UserTokenInfo(uid=auth.uid, token=auth.token, username=user.username, index=start + offset)

    tokens = [token for token in _pool_map(_login, list(enumerate(selected)), workers) if token is not None]
    LOGGER.info("token fetch: %d/%d succeeded", len(tokens), len(selected))
    return tokens


__all__ = [
    "batch_add_friends",
    "batch_add_friends_concurrent",
    "batch_get_user_info",
    "batch_login",
    "fetch_user_tokens",
]
