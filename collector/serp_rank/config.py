"""設定モジュール — 環境変数・定数定義.

検索エンジン側のマークアップや除外ドメインは予告なく変わるため、
主要な値はすべて環境変数 (SERP_*) で上書きできるようにしている。
"""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, default)


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return [v.strip() for v in raw.split(",") if v.strip()]


def _env_json(name: str, default: dict) -> dict:
    raw = os.environ.get(name)
    if not raw:
        return default
    return json.loads(raw)


# --- Supabase (呼び出し側の永続化) ---
SUPABASE_URL: str = os.environ.get("SUPABASE_URL", "")
SUPABASE_SECRET_KEY: str = os.environ.get("SUPABASE_SECRET_KEY", "")

# --- 検索エンジン ---
SEARCH_BASE_URL = _env_str("SERP_SEARCH_BASE_URL", "https://search.naver.com/search.naver")
SITE_RANK_TAB = _env_str("SERP_SITE_RANK_TAB", "web")  # ウェブサイトタブ
EXPOSURE_TAB = _env_str("SERP_EXPOSURE_TAB", "nexearch")  # 統合検索
SEARCH_ENGINE_DOMAIN = _env_str("SERP_ENGINE_DOMAIN", "naver.com")

# 広告クリック計測 URL のパターン
AD_CLICK_PATTERNS = _env_list("SERP_AD_CLICK_PATTERNS", ["/adcr", "ad.search"])

# 検索エンジン内部ドメインでも結果として扱うコンテンツホスト
CONTENT_HOSTS = _env_list("SERP_CONTENT_HOSTS", [
    "blog.naver.com",
    "post.naver.com",
    "cafe.naver.com",
    "in.naver.com",
    "kin.naver.com",
    "tv.naver.com",
])

# リダイレクト経由の計測 URL (ブランドコンテンツ等)
INDIRECT_HOST = _env_str("SERP_INDIRECT_HOST", "ader.naver.com")
INDIRECT_HOST_PREFIX = _env_str("SERP_INDIRECT_HOST_PREFIX", "ader.")

# --- DOM 構造 ---
MAIN_REGION_SELECTOR = _env_str("SERP_MAIN_REGION_SELECTOR", "#main_pack")
SECTION_CLASS = _env_str("SERP_SECTION_CLASS", "sc_new")
SECTION_ID_ATTR = _env_str("SERP_SECTION_ID_ATTR", "data-meta-area")
ASIDE_CLASS_FRAGMENT = _env_str("SERP_ASIDE_CLASS_FRAGMENT", "aside")

# --- セクション分類 ---
SECTION_BRAND_CONTENT = "Brand Content"
# 保存済みの指定値・画面表示とも "VIEW" 表記のため大文字のまま
SECTION_VIEW = "VIEW"
SECTION_INFLUENCER = "Influencer"
SECTION_WEB = "Web"
SECTION_NEWS = "News"

SECTION_MAP: dict[str, str] = _env_json("SERP_SECTION_MAP", {
    "ugB_adR": SECTION_BRAND_CONTENT,
    "ugB_b1R": SECTION_VIEW,
    "ugB_b2R": SECTION_VIEW,
    "ugB_b3R": SECTION_VIEW,
    "ugB_bsR": SECTION_VIEW,
    "ugB_ipR": SECTION_INFLUENCER,
    "web_gen": SECTION_WEB,
    "sit_5po": SECTION_WEB,
    "nws_all": SECTION_NEWS,
})
VIEW_FAMILY_PATTERN = _env_str("SERP_VIEW_FAMILY_PATTERN", r"^ugB_b\dR$")

# 見出しテキストの部分一致 → 正規セクション名
HEADING_PHRASES: dict[str, str] = _env_json("SERP_HEADING_PHRASES", {
    "브랜드 콘텐츠": SECTION_BRAND_CONTENT,
})

# 保存済みのセクション指定値 (韓国語表記) → 正規セクション名
SECTION_ALIASES: dict[str, str] = _env_json("SERP_SECTION_ALIASES", {
    "브랜드콘텐츠": SECTION_BRAND_CONTENT,
    "브랜드 콘텐츠": SECTION_BRAND_CONTENT,
    "뉴스": SECTION_NEWS,
    "인플루언서": SECTION_INFLUENCER,
    "웹": SECTION_WEB,
})

SPONSORED_SECTION_IDS = _env_list("SERP_SPONSORED_SECTION_IDS", ["ad_section"])
SPONSORED_HEADING_LABEL = _env_str("SERP_SPONSORED_HEADING_LABEL", "파워링크")

# --- ブランドコンテンツ展開 ---
BRAND_SECTION_ID = _env_str("SERP_BRAND_SECTION_ID", "ugB_adR")
BRAND_HEADING_LABEL = _env_str("SERP_BRAND_HEADING_LABEL", "브랜드 콘텐츠")
LIGHTBOX_PATTERN = _env_str("SERP_LIGHTBOX_PATTERN", "lb_api")
MORE_LABEL = _env_str("SERP_MORE_LABEL", "더보기")

# --- 抽出しきい値 ---
CONTAINER_MIN_HEIGHT = 500  # px
CONTAINER_MIN_CHILDREN = 10
SEPARATOR_MAX_HEIGHT = 5  # px
SECTION_MIN_HEIGHT = 10  # px
STRUCTURAL_MIN_TEXT = 5
GEOMETRY_MIN_TEXT = 8
SECTION_MIN_TEXT = 3
GEOMETRY_GROUP_GAP = 120  # px
TITLE_MAX_LENGTH = 100

OVERLAY_MIN_ANCHORS = 3
OVERLAY_MAX_DEPTH = 15
CARD_MIN_CHILDREN = 3
CARD_MIN_HEIGHT = 50  # px
CARD_MAX_HEIGHT = 500  # px
CARD_MAX_DEPTH = 10

# --- ブラウザ ---
USER_AGENT = _env_str(
    "SERP_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36",
)
ACCEPT_LANGUAGE = "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7"
LOCALE = "ko-KR"
VIEWPORT_WIDTH = 1920
VIEWPORT_HEIGHT = 1080
HEADLESS = _env_str("SERP_HEADLESS", "1") != "0"
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]

NAVIGATION_TIMEOUT = _env_float("SERP_NAVIGATION_TIMEOUT", 30.0)  # 秒
SETTLE_DELAY = _env_float("SERP_SETTLE_DELAY", 3.0)  # 秒 (上限)
SETTLE_POLL_INTERVAL = _env_float("SERP_SETTLE_POLL_INTERVAL", 0.5)  # 秒
EXPAND_SETTLE_DELAY = _env_float("SERP_EXPAND_SETTLE_DELAY", 3.0)  # 秒
REDIRECT_TIMEOUT = _env_float("SERP_REDIRECT_TIMEOUT", 10.0)  # 秒

# --- 順位 ---
MAX_RESULTS = _env_int("SERP_MAX_RESULTS", 50)
MAX_CONCURRENCY = 4

# --- ログ ---
LOG_DIR = Path(_env_str("SERP_LOG_DIR", str(Path(__file__).resolve().parent.parent / "logs")))
