"""順位チェックの公開エントリーポイント.

処理フロー:
  1. ブラウザを起動して検索結果ページを開く
  2. 結果リスト (SiteRank) またはセクション (UrlExposure) を抽出
  3. UrlExposure: セクション分類 → ブランドコンテンツ展開 → リダイレクト解決
  4. 対象の順位を照合
ブラウザはどの経路で抜けても閉じる。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from serp_rank.browser import navigate, open_session, snapshot
from serp_rank.config import (
    EXPOSURE_TAB,
    MAIN_REGION_SELECTOR,
    MAX_CONCURRENCY,
    MAX_RESULTS,
    SECTION_ID_ATTR,
    SITE_RANK_TAB,
)
from serp_rank.errors import ExtractionEmptyError
from serp_rank.expander import OverlayLocator, expand_brand_content
from serp_rank.extractor import extract_results, extract_sections
from serp_rank.models import BatchRecord, ExposureResult, RankResult, SearchMode, SearchQuery
from serp_rank.ranking import build_exposure, find_site_rank
from serp_rank.redirect import resolve_section_items
from serp_rank.sections import classify_sections
from serp_rank.urls import build_search_url

logger = logging.getLogger(__name__)

# モードごとの検索タブ
_TABS = {
    SearchMode.SITE_RANK: SITE_RANK_TAB,
    SearchMode.URL_EXPOSURE: EXPOSURE_TAB,
}


async def check_site_rank(
    keyword: str, site_url: str, max_results: int = MAX_RESULTS
) -> RankResult:
    """ウェブサイトタブで指定サイトの順位を調べる.

    Raises:
        CrawlError: ブラウザ起動またはページ遷移に失敗した場合。
    """
    query = SearchQuery(keyword=keyword, mode=SearchMode.SITE_RANK)
    url = build_search_url(query.keyword, _TABS[query.mode])

    async with open_session() as page:
        await navigate(page, url)
        main = await snapshot(page, MAIN_REGION_SELECTOR, SECTION_ID_ATTR)

    if main is None:
        logger.warning("メイン領域が見つかりません: keyword=%s", keyword)
        return RankResult(rank=None, url=None, title=None)

    try:
        results, strategy = extract_results(main)
    except ExtractionEmptyError:
        logger.warning("検索結果 0 件: keyword=%s", keyword)
        return RankResult(rank=None, url=None, title=None)

    logger.info("検索結果: %d 件 (%s)", len(results), strategy)
    logger.debug(
        "順位一覧: %s",
        " | ".join(f"{i}. {r.domain}" for i, r in enumerate(results[:15], start=1)),
    )

    result = find_site_rank(results, site_url, max_results)
    result.strategy = strategy
    if result.rank:
        logger.info("一致: %s → %d位 (%s)", site_url, result.rank, result.url)
    else:
        logger.info("一致なし: %s → 圏外", site_url)
    return result


async def check_url_exposure(
    keyword: str, target_url: str, locator: OverlayLocator | None = None
) -> ExposureResult:
    """統合検索で指定 URL の露出位置を調べる.

    Raises:
        CrawlError: ブラウザ起動またはページ遷移に失敗した場合。
    """
    query = SearchQuery(keyword=keyword, mode=SearchMode.URL_EXPOSURE)
    url = build_search_url(query.keyword, _TABS[query.mode])

    async with open_session() as page:
        await navigate(page, url)
        main = await snapshot(page, MAIN_REGION_SELECTOR, SECTION_ID_ATTR)
        sections = classify_sections(extract_sections(main)) if main is not None else []
        sections = await expand_brand_content(page, sections, locator)

    sections = await resolve_section_items(sections)
    logger.info(
        "セクション: %s",
        ", ".join(f"{s.name}({len(s.items)}件)" for s in sections) or "なし",
    )

    result = build_exposure(sections, target_url)
    if result.found:
        logger.info(
            "発見: %s %d位 (全体 %d位)",
            result.section_name, result.section_rank, result.overall_rank,
        )
    else:
        logger.info("未発見: %s", target_url)
    return result


async def _run_batch(
    jobs: Sequence[tuple[str, Callable[[], Awaitable]]], concurrency: int
) -> list[BatchRecord]:
    """ジョブを最大 concurrency 件ずつ実行する. 1件の失敗は他に影響しない."""
    semaphore = asyncio.Semaphore(max(1, min(concurrency, MAX_CONCURRENCY)))

    async def run_one(subject_id: str, job: Callable[[], Awaitable]) -> BatchRecord:
        async with semaphore:
            try:
                return BatchRecord(subject_id=subject_id, result=await job())
            except Exception as e:
                logger.error("チェック失敗: id=%s, error=%s", subject_id, e)
                return BatchRecord(subject_id=subject_id, error=str(e))

    return list(await asyncio.gather(*(run_one(sid, job) for sid, job in jobs)))


async def check_site_ranks(
    jobs: Sequence[tuple[str, str, str]],
    concurrency: int = 1,
    max_results: int = MAX_RESULTS,
) -> list[BatchRecord]:
    """複数の (subject_id, keyword, site_url) を順にチェックする."""
    return await _run_batch(
        [
            (sid, lambda kw=kw, site=site: check_site_rank(kw, site, max_results))
            for sid, kw, site in jobs
        ],
        concurrency,
    )


async def check_url_exposures(
    jobs: Sequence[tuple[str, str, str]],
    concurrency: int = 1,
) -> list[BatchRecord]:
    """複数の (subject_id, keyword, target_url) を順にチェックする."""
    return await _run_batch(
        [
            (sid, lambda kw=kw, target=target: check_url_exposure(kw, target))
            for sid, kw, target in jobs
        ],
        concurrency,
    )
