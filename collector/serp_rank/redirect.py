"""計測用リダイレクト URL (ader.*) の遷移先解決.

ページを開かずに HTTP で1回だけリクエストし、Location ヘッダを読む。
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urljoin

import requests

from serp_rank.config import ACCEPT_LANGUAGE, REDIRECT_TIMEOUT, USER_AGENT
from serp_rank.errors import RedirectResolutionError
from serp_rank.models import ResultItem, Section
from serp_rank.urls import hostname_of, is_indirect_url

logger = logging.getLogger(__name__)


def resolve_redirect(url: str) -> str:
    """リダイレクトを追わずにリクエストし、遷移先 URL を返す.

    Raises:
        RedirectResolutionError: 通信エラーまたは Location ヘッダがない場合。
    """
    headers = {
        "User-Agent": USER_AGENT,
        "Accept-Language": ACCEPT_LANGUAGE,
    }
    try:
        resp = requests.get(url, headers=headers, timeout=REDIRECT_TIMEOUT, allow_redirects=False)
    except requests.RequestException as e:
        raise RedirectResolutionError(f"{url}: {e}") from e

    location = resp.headers.get("Location")
    if not location:
        raise RedirectResolutionError(f"{url}: Location ヘッダなし (status={resp.status_code})")
    return urljoin(url, location)


def resolve_item(item: ResultItem) -> ResultItem:
    """計測 URL なら遷移先に置き換えた ResultItem を返す. 失敗時は元のまま."""
    if not is_indirect_url(item.url):
        return item
    try:
        real_url = resolve_redirect(item.url)
    except RedirectResolutionError as e:
        logger.warning("リダイレクト解決失敗。元の URL を使用: %s", e)
        return item
    return ResultItem(url=real_url, title=item.title, domain=hostname_of(real_url))


async def resolve_section_items(sections: list[Section]) -> list[Section]:
    """全セクションの計測 URL を並行して解決する.

    すべての解決が終わってから返すため、集計は最終 URL で行われる。
    """
    resolved = await asyncio.gather(*(
        asyncio.gather(*(asyncio.to_thread(resolve_item, item) for item in s.items))
        for s in sections
    ))
    return [
        Section(raw_id=s.raw_id, heading=s.heading, name=s.name, items=list(items))
        for s, items in zip(sections, resolved)
    ]
