"""データモデル定義."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from serp_rank.config import (
    SECTION_BRAND_CONTENT,
    SECTION_INFLUENCER,
    SECTION_NEWS,
    SECTION_VIEW,
    SECTION_WEB,
)


class SearchMode(str, Enum):
    """検索モード."""

    SITE_RANK = "site_rank"  # サイトの順位
    URL_EXPOSURE = "url_exposure"  # 特定 URL の露出位置


class SectionName:
    """正規セクション名. 設定のマッピングや見出しテキストで拡張されるため値は str."""

    BRAND_CONTENT = SECTION_BRAND_CONTENT
    VIEW = SECTION_VIEW
    INFLUENCER = SECTION_INFLUENCER
    WEB = SECTION_WEB
    NEWS = SECTION_NEWS


@dataclass(frozen=True)
class SearchQuery:
    """1回の呼び出しの検索条件."""

    keyword: str
    mode: SearchMode


@dataclass
class ResultItem:
    """検索結果の1件を表す."""

    url: str
    title: str  # 最大 100 文字
    domain: str


@dataclass
class Section:
    """検索結果ページ内の1セクション (ニュース, VIEW など)."""

    raw_id: str  # data-meta-area 等の識別子
    heading: str | None
    name: str | None  # None = 未分類 (集計対象外)
    items: list[ResultItem] = field(default_factory=list)


@dataclass
class RankResult:
    """SiteRank モードの結果."""

    rank: int | None  # None = 圏外
    url: str | None
    title: str | None
    strategy: str | None = None  # "structural" / "geometry"


@dataclass
class ExposureResult:
    """UrlExposure モードの結果."""

    found: bool
    section_name: str | None
    section_rank: int | None
    overall_rank: int | None
    all_sections: list[Section] = field(default_factory=list)


@dataclass
class SectionPlacement:
    """呼び出し側でセクション指定を反映した後の位置."""

    section_name: str | None
    section_rank: int | None


@dataclass
class BatchRecord:
    """バッチ処理の1件分. result と error のどちらか一方だけが入る."""

    subject_id: Union[str, int]
    result: Union[RankResult, ExposureResult, None] = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
