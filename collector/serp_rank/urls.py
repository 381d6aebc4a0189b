"""URL の正規化・照合とホスト判定."""

from __future__ import annotations

import re
from urllib.parse import urlencode, urlparse

from serp_rank.config import (
    AD_CLICK_PATTERNS,
    CONTENT_HOSTS,
    INDIRECT_HOST_PREFIX,
    SEARCH_BASE_URL,
    SEARCH_ENGINE_DOMAIN,
)

_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_WWW_PATTERN = re.compile(r"^www\.", re.IGNORECASE)


def normalize_url(url: str) -> str:
    """比較用に URL を正規化する.

    スキーム, 先頭の www., 末尾のスラッシュを除去して小文字化する。
    変化がなくなるまで繰り返すため 2回適用しても結果は変わらない。
    """
    s = (url or "").lower()
    while True:
        stripped = _WWW_PATTERN.sub("", _SCHEME_PATTERN.sub("", s.strip()))
        if stripped.endswith("/"):
            stripped = stripped[:-1]
        if stripped == s:
            return s
        s = stripped


def urls_match(a: str, b: str) -> bool:
    """正規化した2つの URL の一方が他方を含めば同一とみなす."""
    na, nb = normalize_url(a), normalize_url(b)
    if not na or not nb:
        return False
    return na in nb or nb in na


def hostname_of(url: str) -> str:
    """URL のホスト名を返す. 取得できなければ空文字."""
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def is_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def is_engine_host(hostname: str, engine_domain: str = SEARCH_ENGINE_DOMAIN) -> bool:
    """検索エンジン自身のドメインかどうか."""
    hostname = hostname.lower()
    return hostname == engine_domain or hostname.endswith("." + engine_domain)


def is_ad_click(url: str, patterns: list[str] = AD_CLICK_PATTERNS) -> bool:
    return any(p in url for p in patterns)


def is_indirect_url(url: str, prefix: str = INDIRECT_HOST_PREFIX) -> bool:
    """リダイレクト経由の計測 URL (ader.* 等) かどうか."""
    return hostname_of(url).startswith(prefix)


def is_excluded_result(url: str) -> bool:
    """順位対象外のリンク (検索エンジン内部・広告クリック) かどうか."""
    return is_engine_host(hostname_of(url)) or is_ad_click(url)


def is_internal_link(url: str) -> bool:
    """統合検索のセクション内で除外する検索エンジン内部リンクかどうか.

    コンテンツホスト (ブログ, カフェ等) と計測 URL は結果として残す。
    """
    hostname = hostname_of(url)
    return (
        is_engine_host(hostname)
        and not is_indirect_url(url)
        and hostname not in CONTENT_HOSTS
    )


def build_search_url(keyword: str, tab: str, base_url: str = SEARCH_BASE_URL) -> str:
    """検索結果ページの URL を組み立てる."""
    return f"{base_url}?{urlencode({'where': tab, 'query': keyword})}"
