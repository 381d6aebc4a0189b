"""ブランドコンテンツの「더보기」展開.

統合検索のブランドコンテンツは一部しか表示されないため、
「더보기」をクリックしてライトボックスを開き、そこから全件を取り直す。
ライトボックスはクラス名ではなく重なり順 (z-index) で判別する。
展開はあくまで補助で、失敗しても元のセクションをそのまま使う。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from serp_rank.browser import snapshot
from serp_rank.config import (
    BRAND_HEADING_LABEL,
    BRAND_SECTION_ID,
    CARD_MAX_DEPTH,
    CARD_MAX_HEIGHT,
    CARD_MIN_CHILDREN,
    CARD_MIN_HEIGHT,
    EXPAND_SETTLE_DELAY,
    INDIRECT_HOST,
    LIGHTBOX_PATTERN,
    MAIN_REGION_SELECTOR,
    MORE_LABEL,
    OVERLAY_MAX_DEPTH,
    OVERLAY_MIN_ANCHORS,
    SECTION_CLASS,
    SECTION_ID_ATTR,
    STRUCTURAL_MIN_TEXT,
    TITLE_MAX_LENGTH,
)
from serp_rank.dom import Element
from serp_rank.errors import CrawlError, ExpansionError
from serp_rank.models import ResultItem, Section
from serp_rank.urls import hostname_of

logger = logging.getLogger(__name__)

# ブランドコンテンツ内の「더보기」をクリックする. クリックできたら true
CLICK_MORE_JS = r"""
({ regionSelector, sectionClass, idAttr, sectionId, headingLabel, lightboxPattern, moreLabel }) => {
  const sections = document.querySelectorAll(`${regionSelector} .${sectionClass}`);
  for (const section of sections) {
    const area = section.getAttribute(idAttr) || "";
    const h2 = section.querySelector("h2")?.textContent?.trim() || "";
    if (area !== sectionId && !h2.includes(headingLabel)) continue;

    const lbLink = section.querySelector(`a[href*="${lightboxPattern}"]`);
    if (lbLink) {
      lbLink.click();
      return true;
    }
    for (const a of section.querySelectorAll("a")) {
      if ((a.textContent || "").trim().includes(moreLabel)) {
        a.click();
        return true;
      }
    }
    return false;
  }
  return false;
}
"""


def is_brand_section(section: Section) -> bool:
    return section.raw_id == BRAND_SECTION_ID or BRAND_HEADING_LABEL in (section.heading or "")


def _indirect_anchors(root: Element, host: str = INDIRECT_HOST) -> list[Element]:
    return [a for a in root.anchors() if host in a.href]


def find_overlay(document: Element, host: str = INDIRECT_HOST) -> Element | None:
    """計測リンクを 3 件以上含む、最も手前 (z-index 最大) の配置要素を返す."""
    overlay: Element | None = None
    max_z = 0
    checked: set[Element] = set()

    for link in _indirect_anchors(document, host):
        for depth, el in enumerate(link.ancestors()):
            if depth >= OVERLAY_MAX_DEPTH:
                break
            if el in checked:
                continue
            checked.add(el)
            if el.z_index <= max_z or el.position not in ("fixed", "absolute"):
                continue
            if len(_indirect_anchors(el, host)) >= OVERLAY_MIN_ANCHORS:
                max_z = el.z_index
                overlay = el

    return overlay


def _card_block(link: Element, container: Element) -> Element:
    """リンクから親をたどり、カード1枚分のブロック要素を返す."""
    block = link
    depth = 0
    while block.parent is not None and block.parent is not container and depth < CARD_MAX_DEPTH:
        parent = block.parent
        if len(parent.children) >= CARD_MIN_CHILDREN and CARD_MIN_HEIGHT < block.height < CARD_MAX_HEIGHT:
            break
        block = parent
        depth += 1
    return block


def extract_overlay_items(container: Element, host: str = INDIRECT_HOST) -> list[ResultItem]:
    """ライトボックス内の計測リンクをカード単位でまとめて抽出する.

    カードにはサムネイル・タイトル・CTA のリンクがあり、テキストが最も長いものをタイトルとする。
    """
    processed: set[Element] = set()
    items: list[ResultItem] = []

    for link in _indirect_anchors(container, host):
        block = _card_block(link, container)
        if block in processed:
            continue
        processed.add(block)

        best: Element | None = None
        block_links = [block] if block.is_anchor else _indirect_anchors(block, host)
        for bl in block_links:
            if best is None or len(bl.text) > len(best.text):
                best = bl

        if best is not None and len(best.text) >= STRUCTURAL_MIN_TEXT:
            items.append(ResultItem(
                url=best.href,
                title=best.text[:TITLE_MAX_LENGTH],
                domain=hostname_of(best.href),
            ))

    return items


class OverlayLocator(Protocol):
    """「더보기」クリック後に開いたライトボックスを探す."""

    async def locate(self, page: Page) -> Element | None:
        ...


class BrowserOverlayLocator:
    """body 全体のスナップショットから重なり順でライトボックスを判定する."""

    def __init__(self, host: str = INDIRECT_HOST) -> None:
        self.host = host

    async def locate(self, page: Page) -> Element | None:
        document = await snapshot(page, None, SECTION_ID_ATTR)
        if document is None:
            return None
        return find_overlay(document, self.host)


async def _click_more(page: Page) -> bool:
    return await page.evaluate(CLICK_MORE_JS, {
        "regionSelector": MAIN_REGION_SELECTOR,
        "sectionClass": SECTION_CLASS,
        "idAttr": SECTION_ID_ATTR,
        "sectionId": BRAND_SECTION_ID,
        "headingLabel": BRAND_HEADING_LABEL,
        "lightboxPattern": LIGHTBOX_PATTERN,
        "moreLabel": MORE_LABEL,
    })


async def expand_section(page: Page, section: Section, locator: OverlayLocator) -> list[ResultItem]:
    """「더보기」を開いてセクションの全件を返す.

    Raises:
        ExpansionError: ボタンまたはライトボックスが見つからない場合。
    """
    if not await _click_more(page):
        raise ExpansionError("더보기 ボタンが見つかりません")
    logger.info("ブランドコンテンツ 더보기 クリック: area=%s", section.raw_id)
    await asyncio.sleep(EXPAND_SETTLE_DELAY)

    overlay = await locator.locate(page)
    if overlay is None:
        raise ExpansionError("ライトボックスを検出できません")

    items = extract_overlay_items(overlay)
    logger.info("ブランドコンテンツ展開: overlay z=%d, %d 件", overlay.z_index, len(items))
    return items


async def expand_brand_content(
    page: Page,
    sections: list[Section],
    locator: OverlayLocator | None = None,
) -> list[Section]:
    """ブランドコンテンツを展開したセクションリストを返す.

    展開結果が元より多い場合のみ置き換えるため、件数が減ることはない。
    """
    index = next((i for i, s in enumerate(sections) if is_brand_section(s)), None)
    if index is None:
        return sections

    original = sections[index]
    try:
        expanded = await expand_section(page, original, locator or BrowserOverlayLocator())
    except (ExpansionError, CrawlError, PlaywrightError) as e:
        logger.info("ブランドコンテンツ展開失敗: %s", e)
        return sections

    if len(expanded) <= len(original.items):
        return sections

    logger.info("ブランドコンテンツ: %d 件 → %d 件", len(original.items), len(expanded))
    result = list(sections)
    result[index] = Section(
        raw_id=original.raw_id,
        heading=original.heading,
        name=original.name,
        items=expanded,
    )
    return result
