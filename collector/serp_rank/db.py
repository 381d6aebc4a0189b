"""Supabase データベース操作モジュール.

全テーブルは rank_tracker スキーマに配置。
順位履歴は (対象 ID, checked_at) をキーとする追記専用の行として保存する。
"""

from __future__ import annotations

import logging
from functools import lru_cache

from supabase import Client, create_client

from serp_rank.config import SUPABASE_SECRET_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _client() -> Client:
    return create_client(SUPABASE_URL, SUPABASE_SECRET_KEY)


def _table(name: str):
    """rank_tracker スキーマのテーブルを参照する."""
    return _client().schema("rank_tracker").table(name)


def get_active_keywords() -> list[dict]:
    """有効なキーワードとサイト URL の組み合わせを取得する.

    Returns:
        [{"keyword_id": int, "keyword": str, "site_url": str}, ...]
    """
    resp = (
        _table("keywords")
        .select("id, keyword, sites:site_id(url)")
        .eq("is_active", True)
        .execute()
    )

    results = []
    for row in resp.data:
        site = row.get("sites", {}) or {}
        results.append({
            "keyword_id": row["id"],
            "keyword": row.get("keyword", ""),
            "site_url": site.get("url", ""),
        })

    return results


def get_active_tracked_urls() -> list[dict]:
    """有効な追跡 URL を取得する.

    Returns:
        [{"tracked_url_id", "keyword", "target_url", "section"}, ...]
        section は指定セクション名。指定なしは None。
    """
    resp = (
        _table("tracked_urls")
        .select("id, keyword, target_url, section")
        .eq("is_active", True)
        .execute()
    )

    return [
        {
            "tracked_url_id": row["id"],
            "keyword": row.get("keyword", ""),
            "target_url": row.get("target_url", ""),
            "section": row.get("section"),
        }
        for row in resp.data
    ]


def insert_rankings(records: list[dict]) -> None:
    """サイト順位レコードを一括挿入する.

    Args:
        records: [{"keyword_id", "rank_position", "search_type", "result_url",
                   "result_title", "checked_at"}, ...]
    """
    if not records:
        return
    _table("rankings").insert(records).execute()
    logger.info("rankings に %d 件挿入", len(records))


def insert_url_rankings(records: list[dict]) -> None:
    """URL 露出レコードを一括挿入する.

    Args:
        records: [{"tracked_url_id", "rank_position", "section_name",
                   "section_rank", "checked_at"}, ...]
    """
    if not records:
        return
    _table("url_rankings").insert(records).execute()
    logger.info("url_rankings に %d 件挿入", len(records))
