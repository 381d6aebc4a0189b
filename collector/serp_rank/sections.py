"""セクション識別子・見出しから正規セクション名への分類."""

from __future__ import annotations

import re

from serp_rank.config import (
    HEADING_PHRASES,
    SECTION_MAP,
    SECTION_VIEW,
    SPONSORED_HEADING_LABEL,
    SPONSORED_SECTION_IDS,
    VIEW_FAMILY_PATTERN,
)
from serp_rank.models import Section

_VIEW_FAMILY = re.compile(VIEW_FAMILY_PATTERN)


def is_sponsored(raw_id: str, heading: str | None) -> bool:
    """広告 (파워링크) セクションかどうか."""
    if raw_id in SPONSORED_SECTION_IDS:
        return True
    return bool(heading) and SPONSORED_HEADING_LABEL in heading


def classify_section(raw_id: str, heading: str | None) -> str | None:
    """セクションの正規名を返す.

    判定順:
      1. 識別子の完全一致
      2. VIEW 系の識別子パターン (見出しがあれば見出しを名前にする)
      3. 見出しの部分一致
      4. 見出しテキストそのもの
    いずれにも該当しなければ None (未分類)。
    """
    if raw_id in SECTION_MAP:
        return SECTION_MAP[raw_id]
    if raw_id and _VIEW_FAMILY.match(raw_id):
        return heading or SECTION_VIEW
    if heading:
        for phrase, name in HEADING_PHRASES.items():
            if phrase in heading:
                return name
        return heading
    return None


def classify_sections(sections: list[Section]) -> list[Section]:
    """各セクションに名前を付け、未分類のものを除いて返す."""
    classified: list[Section] = []
    for s in sections:
        name = classify_section(s.raw_id, s.heading)
        if name is None:
            continue
        classified.append(Section(raw_id=s.raw_id, heading=s.heading, name=name, items=s.items))
    return classified
