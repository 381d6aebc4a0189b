"""クロール処理の例外定義.

起動・遷移の失敗は呼び出し側へ伝播し、ページ内容の不整合
(セクション欠落・展開失敗・リダイレクト解決失敗) は結果データに吸収する。
"""

from __future__ import annotations


class CrawlError(Exception):
    """クロール全体を継続できない失敗."""

    def __init__(self, stage: str, cause: BaseException | str | None = None) -> None:
        self.stage = stage
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"crawl failed at {stage}{detail}")


class LaunchError(CrawlError):
    """ブラウザプロセスの起動に失敗した."""

    def __init__(self, cause: BaseException | str | None = None) -> None:
        super().__init__("launch", cause)


class NavigationTimeoutError(CrawlError):
    """ページがタイムアウト内に読み込まれなかった."""

    def __init__(self, cause: BaseException | str | None = None) -> None:
        super().__init__("navigate", cause)


class ExtractionEmptyError(Exception):
    """どちらの抽出戦略でも結果を取得できなかった."""


class RedirectResolutionError(Exception):
    """計測 URL の遷移先を解決できなかった."""


class ExpansionError(Exception):
    """ブランドコンテンツの「더보기」展開に失敗した."""
