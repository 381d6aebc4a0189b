"""ヘッドレスブラウザのセッション管理.

1回のクロールにつきブラウザ1つ・ページ1つを使い、どの経路で抜けても必ず閉じる。
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeout

from serp_rank.config import (
    ACCEPT_LANGUAGE,
    HEADLESS,
    LAUNCH_ARGS,
    LOCALE,
    NAVIGATION_TIMEOUT,
    SETTLE_DELAY,
    SETTLE_POLL_INTERVAL,
    USER_AGENT,
    VIEWPORT_HEIGHT,
    VIEWPORT_WIDTH,
)
from serp_rank.dom import ELEMENT_COUNT_JS, SNAPSHOT_JS, Element
from serp_rank.errors import CrawlError, LaunchError, NavigationTimeoutError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_session() -> AsyncIterator[Page]:
    """ブラウザを起動してページを1つ返す.

    Raises:
        LaunchError: Playwright またはブラウザの起動に失敗した場合。
    """
    try:
        playwright = await async_playwright().start()
    except PlaywrightError as e:
        raise LaunchError(e) from e

    try:
        try:
            browser = await playwright.chromium.launch(headless=HEADLESS, args=LAUNCH_ARGS)
        except PlaywrightError as e:
            raise LaunchError(e) from e

        try:
            try:
                context = await browser.new_context(
                    viewport={"width": VIEWPORT_WIDTH, "height": VIEWPORT_HEIGHT},
                    user_agent=USER_AGENT,
                    locale=LOCALE,
                    extra_http_headers={"Accept-Language": ACCEPT_LANGUAGE},
                )
                page = await context.new_page()
            except PlaywrightError as e:
                raise LaunchError(e) from e
            page.set_default_navigation_timeout(NAVIGATION_TIMEOUT * 1000)
            yield page
        finally:
            await browser.close()
    finally:
        await playwright.stop()


async def wait_until_stable(
    page: Page,
    max_wait: float = SETTLE_DELAY,
    interval: float = SETTLE_POLL_INTERVAL,
) -> None:
    """DOM の要素数が2回連続で変わらなくなるまで待つ (最大 max_wait 秒).

    networkidle の後もクライアント側の描画が続くため、その完了を待つ。
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + max_wait
    previous = -1
    stable_polls = 0
    while loop.time() < deadline:
        try:
            count = await page.evaluate(ELEMENT_COUNT_JS)
        except PlaywrightError as e:
            raise CrawlError("navigate", e) from e
        if count == previous:
            stable_polls += 1
            if stable_polls >= 2:
                return
        else:
            stable_polls = 0
            previous = count
        await asyncio.sleep(interval)
    logger.debug("DOM 安定待ちが上限 %.1f 秒に到達", max_wait)


async def navigate(page: Page, url: str) -> None:
    """ページを開き、描画が落ち着くまで待つ.

    Raises:
        NavigationTimeoutError: タイムアウト内に読み込みが終わらない場合。
        CrawlError: その他の遷移エラー。
    """
    logger.info("ページ遷移: %s", url)
    try:
        await page.goto(url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT * 1000)
    except PlaywrightTimeout as e:
        raise NavigationTimeoutError(e) from e
    except PlaywrightError as e:
        raise CrawlError("navigate", e) from e
    await wait_until_stable(page)


async def snapshot(page: Page, selector: str | None, id_attr: str) -> Element | None:
    """selector 配下 (None なら body) の要素ツリーを取得する.

    Raises:
        CrawlError: スクリプト実行に失敗した場合 (stage="extract")。
    """
    try:
        data = await page.evaluate(SNAPSHOT_JS, {"selector": selector, "idAttr": id_attr})
    except PlaywrightError as e:
        raise CrawlError("extract", e) from e
    if not data:
        return None
    return Element.from_dict(data)
