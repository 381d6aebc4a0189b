"""順位の集計.

セクション横断の通し順位は、各セクションの開始位置を累積和で求めてから付与する。
ループ間で共有するカウンタは使わない。
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import accumulate

from serp_rank.config import MAX_RESULTS, SECTION_ALIASES
from serp_rank.models import ExposureResult, RankResult, ResultItem, Section, SectionPlacement
from serp_rank.urls import normalize_url, urls_match


@dataclass(frozen=True)
class RankedItem:
    """通し順位・セクション内順位を付けた1件."""

    item: ResultItem
    section_name: str
    section_rank: int  # 1始まり
    overall_rank: int  # 1始まり


def find_site_rank(
    results: list[ResultItem], site_url: str, max_results: int = MAX_RESULTS
) -> RankResult:
    """結果リストから指定サイトの順位を見つける.

    Returns:
        最初に一致した結果の順位（1始まり）。見つからなければ全項目 None（圏外）。
    """
    target = normalize_url(site_url)
    if not target:
        return RankResult(rank=None, url=None, title=None)

    for i, r in enumerate(results[:max_results], start=1):
        if urls_match(r.url, target) or target in r.domain.lower():
            return RankResult(rank=i, url=r.url, title=r.title)
    return RankResult(rank=None, url=None, title=None)


def rank_sections(sections: list[Section]) -> list[RankedItem]:
    """分類済みセクションを文書順に連結し、各結果に順位を付ける."""
    classified = [s for s in sections if s.name is not None]
    offsets = accumulate((len(s.items) for s in classified), initial=0)
    return [
        RankedItem(
            item=item,
            section_name=s.name,
            section_rank=i,
            overall_rank=offset + i,
        )
        for s, offset in zip(classified, offsets)
        for i, item in enumerate(s.items, start=1)
    ]


def build_exposure(sections: list[Section], target_url: str) -> ExposureResult:
    """対象 URL の露出位置を求める. 複数回出現しても最初の1件だけを返す."""
    classified = [s for s in sections if s.name is not None]
    match = next(
        (r for r in rank_sections(classified) if urls_match(r.item.url, target_url)),
        None,
    )
    if match is None:
        return ExposureResult(
            found=False,
            section_name=None,
            section_rank=None,
            overall_rank=None,
            all_sections=classified,
        )
    return ExposureResult(
        found=True,
        section_name=match.section_name,
        section_rank=match.section_rank,
        overall_rank=match.overall_rank,
        all_sections=classified,
    )


def canonical_section_name(name: str | None) -> str | None:
    """保存済みのセクション指定値を正規セクション名にそろえる. 未登録の値はそのまま返す."""
    if name is None:
        return None
    name = name.strip()
    return SECTION_ALIASES.get(name, name) or None


def apply_section_override(
    exposure: ExposureResult, target_url: str, pinned_section: str | None
) -> SectionPlacement:
    """呼び出し側で指定されたセクションでの位置を求める.

    指定セクションが発見位置と異なる場合はそのセクションを直接探す。
    指定セクションがページにない場合はどちらも None にする。
    指定値は "브랜드콘텐츠" のような保存済み表記でもよい。
    """
    pinned_section = canonical_section_name(pinned_section)
    placement = SectionPlacement(exposure.section_name, exposure.section_rank)
    if not pinned_section or not exposure.found or exposure.section_name == pinned_section:
        return placement

    section = next((s for s in exposure.all_sections if s.name == pinned_section), None)
    if section is None:
        return SectionPlacement(section_name=None, section_rank=None)

    for i, item in enumerate(section.items, start=1):
        if urls_match(item.url, target_url):
            return SectionPlacement(section_name=pinned_section, section_rank=i)
    return SectionPlacement(section_name=pinned_section, section_rank=None)
