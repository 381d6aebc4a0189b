"""レンダリング済み DOM のスナップショット.

ブラウザ内でスクリプトを1回実行し、要素ツリーを JSON 互換の dict として取得する。
抽出ロジックはこのツリー (Element) に対する純粋関数として実装するため、
ブラウザなしでもテストできる。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

# 引数: {selector, idAttr}. selector が null の場合は document.body
SNAPSHOT_JS = r"""
({ selector, idAttr }) => {
  const root = selector ? document.querySelector(selector) : document.body;
  if (!root) return null;
  const scrollY = window.scrollY || 0;
  const SKIP = new Set(["SCRIPT", "STYLE", "NOSCRIPT", "TEMPLATE", "svg"]);
  const walk = (el) => {
    const rect = el.getBoundingClientRect();
    const style = getComputedStyle(el);
    const tag = el.tagName.toLowerCase();
    const node = {
      tag,
      id: el.id || "",
      cls: typeof el.className === "string" ? el.className : "",
      area: el.getAttribute(idAttr) || "",
      top: rect.top + scrollY,
      height: rect.height,
      position: style.position,
      z: parseInt(style.zIndex, 10) || 0,
      children: [],
    };
    if (tag === "a") {
      node.href = typeof el.href === "string" ? el.href : "";
      node.text = (el.textContent || "").trim();
    } else if (/^h[1-6]$/.test(tag)) {
      node.text = (el.textContent || "").trim();
    }
    for (const child of el.children) {
      if (SKIP.has(child.tagName)) continue;
      node.children.push(walk(child));
    }
    return node;
  };
  return walk(root);
}
"""

# DOM の要素数. 描画完了の判定に使う
ELEMENT_COUNT_JS = "() => document.getElementsByTagName('*').length"


@dataclass(eq=False)
class Element:
    """スナップショット内の1要素. 同一性で比較する."""

    tag: str
    id: str = ""
    classes: tuple[str, ...] = ()
    section_id: str = ""
    top: float = 0.0
    height: float = 0.0
    position: str = "static"
    z_index: int = 0
    href: str = ""
    text: str = ""
    children: list[Element] = field(default_factory=list)
    parent: Element | None = field(default=None, repr=False)

    @classmethod
    def from_dict(cls, data: dict, parent: Element | None = None) -> Element:
        """SNAPSHOT_JS の戻り値からツリーを復元する."""
        el = cls(
            tag=(data.get("tag") or "").lower(),
            id=data.get("id") or "",
            classes=tuple((data.get("cls") or "").split()),
            section_id=data.get("area") or "",
            top=float(data.get("top") or 0),
            height=float(data.get("height") or 0),
            position=data.get("position") or "static",
            z_index=int(data.get("z") or 0),
            href=data.get("href") or "",
            text=data.get("text") or "",
            parent=parent,
        )
        el.children = [cls.from_dict(c, el) for c in data.get("children") or []]
        return el

    @property
    def is_anchor(self) -> bool:
        return self.tag == "a"

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def class_contains(self, fragment: str) -> bool:
        return any(fragment in c for c in self.classes)

    def iter_descendants(self) -> Iterator[Element]:
        """子孫要素を文書順 (前順) に返す. 自身は含まない."""
        stack = list(reversed(self.children))
        while stack:
            el = stack.pop()
            yield el
            stack.extend(reversed(el.children))

    def anchors(self) -> list[Element]:
        return [el for el in self.iter_descendants() if el.is_anchor]

    def ancestors(self) -> Iterator[Element]:
        el = self.parent
        while el is not None:
            yield el
            el = el.parent

    def contains(self, other: Element) -> bool:
        return other is self or any(a is self for a in other.ancestors())

    def heading_text(self) -> str:
        """最初の h2 のテキスト."""
        for el in self.iter_descendants():
            if el.tag == "h2":
                return el.text
        return ""
