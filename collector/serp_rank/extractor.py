"""検索結果ページからの結果抽出.

検索エンジンのマークアップは非公開かつ予告なく変わるため、セレクタには頼らない。
取得戦略:
  1. 構造ベース: 子要素数が最も多い大きな要素を結果リストとみなす（主戦略）
  2. 座標ベース: リンクの縦位置でカード単位にまとめる（フォールバック）
"""

from __future__ import annotations

import logging

from serp_rank.config import (
    ASIDE_CLASS_FRAGMENT,
    CONTAINER_MIN_CHILDREN,
    CONTAINER_MIN_HEIGHT,
    GEOMETRY_GROUP_GAP,
    GEOMETRY_MIN_TEXT,
    SECTION_CLASS,
    SECTION_MIN_HEIGHT,
    SECTION_MIN_TEXT,
    SEPARATOR_MAX_HEIGHT,
    STRUCTURAL_MIN_TEXT,
    TITLE_MAX_LENGTH,
)
from serp_rank.dom import Element
from serp_rank.errors import ExtractionEmptyError
from serp_rank.models import ResultItem, Section
from serp_rank.sections import is_sponsored
from serp_rank.urls import hostname_of, is_excluded_result, is_http_url, is_internal_link

logger = logging.getLogger(__name__)

STRATEGY_STRUCTURAL = "structural"
STRATEGY_GEOMETRY = "geometry"


def _to_item(anchor: Element) -> ResultItem:
    return ResultItem(
        url=anchor.href,
        title=anchor.text[:TITLE_MAX_LENGTH],
        domain=hostname_of(anchor.href),
    )


def _is_valid_result_link(anchor: Element, min_text: int) -> bool:
    if not is_http_url(anchor.href):
        return False
    if is_excluded_result(anchor.href):
        return False
    return len(anchor.text) >= min_text


def find_result_container(main: Element) -> Element | None:
    """高さ 500px 超の要素のうち直接の子要素が最も多いものを返す."""
    best: Element | None = None
    max_children = 0
    for el in main.iter_descendants():
        if len(el.children) > max_children and el.height > CONTAINER_MIN_HEIGHT:
            max_children = len(el.children)
            best = el
    return best


def extract_structural(main: Element) -> tuple[list[ResultItem], bool]:
    """構造ベースで結果を抽出する.

    Returns:
        (結果リスト, 確信度十分か) のタプル。
        コンテナの子要素が 10 未満なら確信度不足とする。
    """
    container = find_result_container(main)
    if container is None:
        return [], False

    results: list[ResultItem] = []
    for child in container.children:
        if child.height <= SEPARATOR_MAX_HEIGHT:
            continue  # 区切り線
        for anchor in child.anchors():
            if _is_valid_result_link(anchor, STRUCTURAL_MIN_TEXT):
                results.append(_to_item(anchor))
                break

    return results, len(container.children) >= CONTAINER_MIN_CHILDREN


def find_aside(main: Element) -> Element | None:
    for el in main.iter_descendants():
        if el.class_contains(ASIDE_CLASS_FRAGMENT):
            return el
    return None


def extract_geometry(main: Element) -> list[ResultItem]:
    """座標ベースで結果を抽出する.

    直前に採用したリンクから 120px 以内のリンクは同じカードとみなして捨てる。
    """
    aside = find_aside(main)
    results: list[ResultItem] = []
    last_y = float("-inf")

    for anchor in main.anchors():
        if aside is not None and aside.contains(anchor):
            continue
        if not _is_valid_result_link(anchor, GEOMETRY_MIN_TEXT):
            continue
        if abs(anchor.top - last_y) < GEOMETRY_GROUP_GAP:
            continue
        last_y = anchor.top
        results.append(_to_item(anchor))

    return results


def extract_results(main: Element) -> tuple[list[ResultItem], str]:
    """結果リストを抽出する.

    主戦略で確信度が十分ならその結果を返し、
    そうでなければ両戦略のうち件数が多い方を返す。

    Returns:
        (結果リスト, 使用した戦略名) のタプル。

    Raises:
        ExtractionEmptyError: どちらの戦略でも 0 件の場合。
    """
    structural, confident = extract_structural(main)
    if confident and structural:
        return structural, STRATEGY_STRUCTURAL

    logger.warning("構造ベースの抽出が不十分 (%d 件)。座標ベースにフォールバック", len(structural))
    geometry = extract_geometry(main)

    if not structural and not geometry:
        raise ExtractionEmptyError("検索結果を抽出できませんでした")
    if len(geometry) > len(structural):
        return geometry, STRATEGY_GEOMETRY
    return structural, STRATEGY_STRUCTURAL


def _section_items(section: Element) -> list[ResultItem]:
    items: list[ResultItem] = []
    seen: set[str] = set()
    for anchor in section.anchors():
        href = anchor.href
        if not is_http_url(href) or is_internal_link(href):
            continue
        if len(anchor.text) < SECTION_MIN_TEXT:
            continue
        if href in seen:
            continue
        seen.add(href)
        items.append(_to_item(anchor))
    return items


def extract_sections(main: Element) -> list[Section]:
    """統合検索ページをセクション単位で抽出する.

    広告セクションは分類前に除外する。分類 (name) はここでは行わない。
    """
    sections: list[Section] = []
    for el in main.iter_descendants():
        if not el.has_class(SECTION_CLASS):
            continue
        if el.height < SECTION_MIN_HEIGHT:
            continue

        heading = el.heading_text()
        if is_sponsored(el.section_id, heading):
            continue

        items = _section_items(el)
        if items:
            sections.append(Section(
                raw_id=el.section_id,
                heading=heading or None,
                name=None,
                items=items,
            ))

    return sections
