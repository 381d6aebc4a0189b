"""db モジュールのモックテスト."""

from unittest.mock import MagicMock, patch


def _chain(data=None):
    mock_chain = MagicMock()
    for name in ("select", "eq", "insert"):
        getattr(mock_chain, name).return_value = mock_chain
    mock_chain.execute.return_value = MagicMock(data=data or [])
    return mock_chain


class TestGetActiveKeywords:
    """get_active_keywords のテスト."""

    @patch("serp_rank.db._table")
    def test_flattens_site(self, mock_table):
        from serp_rank.db import get_active_keywords

        mock_table.return_value = _chain([
            {"id": 1, "keyword": "서울 맛집", "sites": {"url": "blog.naver.com/myplace"}},
            {"id": 2, "keyword": "부산 맛집", "sites": None},
        ])

        rows = get_active_keywords()

        mock_table.assert_called_once_with("keywords")
        assert rows == [
            {"keyword_id": 1, "keyword": "서울 맛집", "site_url": "blog.naver.com/myplace"},
            {"keyword_id": 2, "keyword": "부산 맛집", "site_url": ""},
        ]


class TestGetActiveTrackedUrls:
    """get_active_tracked_urls のテスト."""

    @patch("serp_rank.db._table")
    def test_rows(self, mock_table):
        from serp_rank.db import get_active_tracked_urls

        mock_table.return_value = _chain([
            {"id": 7, "keyword": "서울 맛집", "target_url": "example.com/page", "section": "VIEW"},
        ])

        rows = get_active_tracked_urls()

        mock_table.assert_called_once_with("tracked_urls")
        assert rows == [{
            "tracked_url_id": 7,
            "keyword": "서울 맛집",
            "target_url": "example.com/page",
            "section": "VIEW",
        }]


class TestInsertRankings:
    """insert_rankings のテスト."""

    @patch("serp_rank.db._table")
    def test_insert_records(self, mock_table):
        from serp_rank.db import insert_rankings

        mock_chain = _chain()
        mock_table.return_value = mock_chain

        records = [
            {
                "keyword_id": 1,
                "rank_position": 3,
                "search_type": "view",
                "result_url": "https://blog.naver.com/myplace/1",
                "result_title": "서울 맛집 후기",
                "checked_at": "2026-10-18T00:00:00+00:00",
            }
        ]
        insert_rankings(records)

        mock_table.assert_called_once_with("rankings")
        mock_chain.insert.assert_called_once_with(records)

    @patch("serp_rank.db._table")
    def test_skip_empty(self, mock_table):
        from serp_rank.db import insert_rankings

        insert_rankings([])
        mock_table.assert_not_called()


class TestInsertUrlRankings:
    """insert_url_rankings のテスト."""

    @patch("serp_rank.db._table")
    def test_insert_records(self, mock_table):
        from serp_rank.db import insert_url_rankings

        mock_chain = _chain()
        mock_table.return_value = mock_chain

        records = [
            {
                "tracked_url_id": 7,
                "rank_position": 4,
                "section_name": "VIEW",
                "section_rank": 2,
                "checked_at": "2026-10-18T00:00:00+00:00",
            }
        ]
        insert_url_rankings(records)

        mock_table.assert_called_once_with("url_rankings")
        mock_chain.insert.assert_called_once_with(records)

    @patch("serp_rank.db._table")
    def test_skip_empty(self, mock_table):
        from serp_rank.db import insert_url_rankings

        insert_url_rankings([])
        mock_table.assert_not_called()
