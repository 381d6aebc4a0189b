"""engine モジュールのテスト.

ブラウザ部分 (open_session / navigate / snapshot) はモックに置き換え、
記録済みの要素ツリーで処理全体を通す。
"""

import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from serp_rank import engine
from serp_rank.dom import Element
from serp_rank.errors import LaunchError, NavigationTimeoutError
from serp_rank.models import ExposureResult, RankResult

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _load_tree(name: str) -> Element:
    data = json.loads((FIXTURES_DIR / name).read_text(encoding="utf-8"))
    return Element.from_dict(data)


def _node(tag: str = "div", children=(), **kw) -> dict:
    return {"tag": tag, "children": list(children), **kw}


def _web_tab_tree(domains: list[str]) -> Element:
    items = [
        _node("li", height=120, children=[
            _node("a", href=f"https://{d}/post/{i}", text=f"검색 결과 제목 {i}", height=20),
        ])
        for i, d in enumerate(domains, start=1)
    ]
    return Element.from_dict(_node(height=5000, children=[
        _node("ul", height=4000, children=items),
    ]))


class FakeSession:
    """open_session の代わり. 入退出を記録する."""

    def __init__(self):
        self.page = MagicMock()
        self.page.evaluate = AsyncMock(return_value=False)
        self.entered = 0
        self.exited = 0

    @asynccontextmanager
    async def __call__(self):
        self.entered += 1
        try:
            yield self.page
        finally:
            self.exited += 1


@pytest.fixture
def session(monkeypatch):
    fake = FakeSession()
    monkeypatch.setattr(engine, "open_session", fake)
    monkeypatch.setattr(engine, "navigate", AsyncMock())
    monkeypatch.setattr("serp_rank.expander.EXPAND_SETTLE_DELAY", 0)
    return fake


class TestCheckSiteRank:
    """check_site_rank のテスト."""

    @pytest.mark.asyncio
    async def test_engine_domain_not_ranked(self, session, monkeypatch):
        """ウェブサイトタブでは検索エンジン自身のドメインは順位対象外."""
        domains = ["a.com", "b.com", "blog.naver.com"] + [f"site{i}.com" for i in range(10)]
        tree = _web_tab_tree(domains)
        monkeypatch.setattr(engine, "snapshot", AsyncMock(return_value=tree))

        result = await engine.check_site_rank("서울 맛집", "blog.naver.com/myplace")

        assert result.rank is None

    @pytest.mark.asyncio
    async def test_rank_position(self, session, monkeypatch):
        domains = ["a.com", "b.com", "myplace.co.kr"] + [f"site{i}.com" for i in range(10)]
        monkeypatch.setattr(engine, "snapshot", AsyncMock(return_value=_web_tab_tree(domains)))

        result = await engine.check_site_rank("서울 맛집", "https://www.myplace.co.kr/")

        assert result.rank == 3
        assert result.url == "https://myplace.co.kr/post/3"
        assert result.title == "검색 결과 제목 3"
        assert result.strategy == "structural"
        assert session.exited == 1

    @pytest.mark.asyncio
    async def test_search_url(self, session, monkeypatch):
        monkeypatch.setattr(engine, "snapshot", AsyncMock(return_value=_web_tab_tree(["a.com"] * 10)))

        await engine.check_site_rank("서울 맛집", "a.com")

        url = engine.navigate.call_args.args[1]
        assert "where=web" in url
        assert "query=" in url

    @pytest.mark.asyncio
    async def test_empty_page_is_no_match(self, session, monkeypatch):
        empty = Element.from_dict(_node(height=800))
        monkeypatch.setattr(engine, "snapshot", AsyncMock(return_value=empty))

        result = await engine.check_site_rank("없는 키워드", "a.com")

        assert result == RankResult(rank=None, url=None, title=None)

    @pytest.mark.asyncio
    async def test_missing_main_region(self, session, monkeypatch):
        monkeypatch.setattr(engine, "snapshot", AsyncMock(return_value=None))

        result = await engine.check_site_rank("키워드", "a.com")

        assert result.rank is None

    @pytest.mark.asyncio
    async def test_navigation_timeout_propagates(self, session, monkeypatch):
        monkeypatch.setattr(engine, "navigate", AsyncMock(side_effect=NavigationTimeoutError("timeout")))

        with pytest.raises(NavigationTimeoutError):
            await engine.check_site_rank("키워드", "a.com")

        assert session.exited == 1


class TestCheckUrlExposure:
    """check_url_exposure のテスト."""

    @pytest.fixture(autouse=True)
    def fixture_page(self, session, monkeypatch):
        monkeypatch.setattr(
            engine, "snapshot", AsyncMock(return_value=_load_tree("search_sections.json"))
        )

    @pytest.mark.asyncio
    async def test_found_in_view(self, session):
        with patch("serp_rank.redirect.resolve_redirect", side_effect=lambda u: u.replace(
            "https://ader.naver.com/v1/", "https://brand.com/"
        )):
            result = await engine.check_url_exposure("서울 맛집", "example.com/page")

        assert result.found is True
        assert result.section_name == "VIEW"
        assert result.section_rank == 3
        assert result.overall_rank == 5
        assert [s.name for s in result.all_sections] == ["News", "VIEW", "Brand Content"]
        assert session.exited == 1

    @pytest.mark.asyncio
    async def test_resolved_brand_content(self, session):
        with patch("serp_rank.redirect.resolve_redirect", side_effect=lambda u: u.replace(
            "https://ader.naver.com/v1/", "https://brand.com/"
        )):
            result = await engine.check_url_exposure("서울 맛집", "brand.com/brand-2")

        assert (result.section_name, result.section_rank, result.overall_rank) == (
            "Brand Content", 2, 7,
        )

    @pytest.mark.asyncio
    async def test_not_found(self, session):
        with patch("serp_rank.redirect.resolve_redirect", side_effect=lambda u: u):
            result = await engine.check_url_exposure("서울 맛집", "nowhere.org/page")

        assert result.found is False
        assert result.section_name is None
        assert result.section_rank is None
        assert result.overall_rank is None
        assert len(result.all_sections) == 3

    @pytest.mark.asyncio
    async def test_search_url(self, session):
        """URL 露出は統合検索タブを開く."""
        with patch("serp_rank.redirect.resolve_redirect", side_effect=lambda u: u):
            await engine.check_url_exposure("서울 맛집", "example.com/page")

        url = engine.navigate.call_args.args[1]
        assert "where=nexearch" in url
        assert "where=web" not in url

    @pytest.mark.asyncio
    async def test_launch_error_propagates(self, monkeypatch):
        @asynccontextmanager
        async def failing_session():
            raise LaunchError("browser missing")
            yield  # pragma: no cover

        monkeypatch.setattr(engine, "open_session", failing_session)

        with pytest.raises(LaunchError):
            await engine.check_url_exposure("키워드", "example.com")


class TestBatch:
    """バッチ処理のテスト."""

    @pytest.mark.asyncio
    async def test_one_failure_isolated(self, monkeypatch):
        async def fake_check(keyword, site_url, max_results=50):
            if keyword == "bad":
                raise NavigationTimeoutError("timeout")
            return RankResult(rank=1, url=f"https://{site_url}/", title=keyword)

        monkeypatch.setattr(engine, "check_site_rank", fake_check)
        jobs = [("k1", "good", "a.com"), ("k2", "bad", "b.com"), ("k3", "good", "c.com")]

        records = await engine.check_site_ranks(jobs)

        assert [r.subject_id for r in records] == ["k1", "k2", "k3"]
        assert [r.ok for r in records] == [True, False, True]
        assert "navigate" in records[1].error
        assert records[1].result is None
        assert records[2].result.url == "https://c.com/"

    @pytest.mark.asyncio
    async def test_sequential_by_default(self, monkeypatch):
        active = 0
        peak = 0

        async def fake_check(keyword, target_url):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return ExposureResult(found=False, section_name=None, section_rank=None, overall_rank=None)

        monkeypatch.setattr(engine, "check_url_exposure", fake_check)
        jobs = [(i, "kw", "example.com") for i in range(4)]

        records = await engine.check_url_exposures(jobs)
        assert peak == 1
        assert len(records) == 4

        peak = 0
        await engine.check_url_exposures(jobs, concurrency=2)
        assert peak == 2
