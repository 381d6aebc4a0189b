"""検索順位取得 — メインエントリーポイント.

処理フロー:
  1. DB から有効なキーワード・追跡 URL を取得
  2. キーワード × サイトの順位をチェック (ウェブサイトタブ)
  3. 追跡 URL の露出位置をチェック (統合検索)。指定セクションがあれば反映
  4. 結果を履歴として一括書き込み
1件の失敗はエラーとして記録し、残りの処理は続ける。
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from datetime import datetime, timezone

from serp_rank.config import LOG_DIR, MAX_CONCURRENCY
from serp_rank.db import (
    get_active_keywords,
    get_active_tracked_urls,
    insert_rankings,
    insert_url_rankings,
)
from serp_rank.engine import check_site_ranks, check_url_exposures
from serp_rank.models import BatchRecord
from serp_rank.ranking import apply_section_override

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """ロギングの初期設定."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / f"collector_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def build_ranking_records(records: list[BatchRecord], checked_at: str) -> list[dict]:
    """サイト順位のバッチ結果から rankings 行を作る. エラー分は含めない."""
    rows = []
    for rec in records:
        if not rec.ok:
            continue
        rows.append({
            "keyword_id": rec.subject_id,
            "rank_position": rec.result.rank,
            "search_type": "view",
            "result_url": rec.result.url,
            "result_title": rec.result.title,
            "checked_at": checked_at,
        })
    return rows


def build_url_ranking_records(
    records: list[BatchRecord], tracked: dict[str, dict], checked_at: str
) -> list[dict]:
    """URL 露出のバッチ結果から url_rankings 行を作る.

    追跡 URL にセクション指定があれば、そのセクション内の順位に置き換える。
    """
    rows = []
    for rec in records:
        if not rec.ok:
            continue
        t = tracked[rec.subject_id]
        placement = apply_section_override(rec.result, t["target_url"], t.get("section"))
        rows.append({
            "tracked_url_id": rec.subject_id,
            "rank_position": rec.result.overall_rank,
            "section_name": placement.section_name,
            "section_rank": placement.section_rank,
            "checked_at": checked_at,
        })
    return rows


def _log_errors(records: list[BatchRecord]) -> int:
    errors = [r for r in records if not r.ok]
    for r in errors:
        logger.warning("エラー: id=%s, error=%s", r.subject_id, r.error)
    return len(errors)


def run(mode: str = "all", concurrency: int = 1) -> None:
    """メイン処理."""
    setup_logging()
    logger.info("=== 検索順位取得 開始 ===")
    start_time = time.time()
    checked_at = datetime.now(timezone.utc).isoformat()
    check_count = 0
    error_count = 0

    if mode in ("all", "site"):
        keywords = get_active_keywords()
        logger.info("対象キーワード: %d 件", len(keywords))
        if keywords:
            jobs = [(k["keyword_id"], k["keyword"], k["site_url"]) for k in keywords]
            records = asyncio.run(check_site_ranks(jobs, concurrency))
            check_count += len(records)
            error_count += _log_errors(records)
            insert_rankings(build_ranking_records(records, checked_at))

    if mode in ("all", "url"):
        tracked_urls = get_active_tracked_urls()
        logger.info("対象 URL: %d 件", len(tracked_urls))
        if tracked_urls:
            tracked = {t["tracked_url_id"]: t for t in tracked_urls}
            jobs = [(t["tracked_url_id"], t["keyword"], t["target_url"]) for t in tracked_urls]
            records = asyncio.run(check_url_exposures(jobs, concurrency))
            check_count += len(records)
            error_count += _log_errors(records)
            insert_url_rankings(build_url_ranking_records(records, tracked, checked_at))

    elapsed = time.time() - start_time
    logger.info("=== 検索順位取得 完了 ===")
    logger.info("チェック: %d 件, エラー: %d 件, 所要時間: %.1f 秒",
                check_count, error_count, elapsed)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="検索順位の取得")
    parser.add_argument("--mode", choices=["all", "site", "url"], default="all")
    parser.add_argument("--concurrency", type=int, default=1,
                        help=f"同時セッション数 (最大 {MAX_CONCURRENCY})")
    args = parser.parse_args(argv)
    run(args.mode, args.concurrency)


if __name__ == "__main__":
    main()
