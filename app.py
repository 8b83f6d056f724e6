"""
Product Crawler - Streamlit Frontend
Enter a shop URL, discover its products, download them as JSON / CSV / DOCX.
"""

import json
import logging
import os
import subprocess
import tempfile
from datetime import datetime

import pandas as pd
import streamlit as st
from dotenv import load_dotenv

load_dotenv()


# Install Playwright browsers on first run (for Streamlit Cloud)
@st.cache_resource
def install_playwright_browsers():
    """Install Playwright Chromium browser on first run."""
    try:
        result = subprocess.run(
            ["playwright", "install", "chromium"],
            capture_output=True,
            text=True,
            timeout=300
        )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


_playwright_available = install_playwright_browsers()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from shop_crawler.crawler import ProductCrawler
from shop_crawler.models import CrawlResult
from shop_crawler.run_config import CrawlerRunConfig
from shop_crawler.utils import extract_domain, is_valid_url
from shop_crawler.word_exporter import export_docx

st.set_page_config(
    page_title="Product Crawler",
    page_icon="🛒",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .stApp {
        background-color: #FFFFFF;
    }
    .main-header {
        font-size: 2.5rem;
        font-weight: 700;
        color: #1E293B;
        margin-bottom: 0.5rem;
    }
    .sub-header {
        font-size: 1rem;
        color: #64748B;
        margin-bottom: 2rem;
    }
    [data-testid="stMetric"] {
        background-color: #F8F9FB;
        border: 1px solid #E2E8F0;
        border-radius: 10px;
        padding: 0.75rem;
    }
    [data-testid="stMetricValue"] {
        color: #2563EB;
    }
    .stDownloadButton > button {
        background-color: #F0F9FF;
        color: #2563EB;
        border: 1px solid #BFDBFE;
    }
</style>
""", unsafe_allow_html=True)


def init_session_state():
    """Initialize session state variables."""
    defaults = {
        'crawl_result': None,
        'crawl_logs': [],
        'pages_processed': 0,
        'current_url': "",
        'crawl_stats': {},
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def add_log(message: str):
    """Add a log message."""
    timestamp = datetime.now().strftime("%H:%M:%S")
    st.session_state.crawl_logs.append(f"[{timestamp}] {message}")
    if len(st.session_state.crawl_logs) > 100:
        st.session_state.crawl_logs = st.session_state.crawl_logs[-100:]


def progress_callback(pages_processed: int, current_url: str, stats: dict):
    """Callback for crawl progress updates."""
    st.session_state.pages_processed = pages_processed
    st.session_state.current_url = current_url
    st.session_state.crawl_stats = stats


def run_crawler(url: str, settings: dict) -> CrawlResult:
    """Run the crawler with the sidebar settings."""
    if settings['api_key']:
        os.environ['GEMINI_API_KEY'] = settings['api_key']

    run_config = CrawlerRunConfig(
        max_pages=settings['max_pages'],
        workers=settings['workers'],
        timeout_seconds=settings['timeout'],
        max_retries_per_page=settings['retries'],
        model=settings['model'],
    )
    crawler = ProductCrawler(run_config.to_crawl_config())
    crawler.set_progress_callback(progress_callback)
    return crawler.run(url)


def products_frame(result: CrawlResult) -> pd.DataFrame:
    rows = [p.to_dict() for p in result.products]
    return pd.DataFrame(rows, columns=['name', 'price', 'description', 'url', 'imageUrl'])


def export_to_json(result: CrawlResult) -> str:
    """Export result to JSON string."""
    data = result.to_dict()
    data['stats'] = result.stats
    data['exported_at'] = datetime.now().isoformat()
    return json.dumps(data, indent=2, ensure_ascii=False)


def export_to_docx(result: CrawlResult) -> bytes:
    """Export result to DOCX bytes for download."""
    tmp = tempfile.NamedTemporaryFile(suffix='.docx', delete=False)
    tmp.close()
    try:
        export_docx(result, tmp.name)
        with open(tmp.name, 'rb') as f:
            return f.read()
    finally:
        os.unlink(tmp.name)


def render_sidebar() -> dict:
    """Render the sidebar with configuration options."""
    defaults = CrawlerRunConfig()
    st.sidebar.markdown("## ⚙️ Crawler Settings")

    max_pages = st.sidebar.number_input(
        "Max Pages to Visit",
        min_value=1,
        max_value=2000,
        value=defaults.max_pages,
        step=10,
        help="Hard budget on distinct pages rendered"
    )
    workers = st.sidebar.slider(
        "Concurrent Pages",
        min_value=1,
        max_value=10,
        value=defaults.workers,
        help="Browser pages open at the same time"
    )
    timeout = st.sidebar.slider(
        "Timeout per Page (s)",
        min_value=5,
        max_value=120,
        value=defaults.timeout_seconds,
    )
    retries = st.sidebar.number_input(
        "Retries per Page",
        min_value=0,
        max_value=3,
        value=defaults.max_retries_per_page,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown("## 🤖 Classifier")
    model = st.sidebar.text_input("Gemini model", value=defaults.model)
    api_key = st.sidebar.text_input(
        "Gemini API key",
        type="password",
        help="Leave empty to use GEMINI_API_KEY from the environment",
    )
    if not _playwright_available:
        st.sidebar.caption("⚠️ Chromium could not be installed on this deployment.")

    return {
        'max_pages': int(max_pages),
        'workers': workers,
        'timeout': timeout,
        'retries': int(retries),
        'model': model,
        'api_key': api_key.strip(),
    }


def render_metrics(result: CrawlResult):
    """Render crawl metrics."""
    stats = result.stats
    cols = st.columns(4)
    with cols[0]:
        st.metric("Products", len(result.products))
    with cols[1]:
        st.metric("Pages Visited", len(result.visited_urls))
    with cols[2]:
        st.metric("Failed", stats.get('pages_failed', 0))
    with cols[3]:
        st.metric("Time Elapsed", f"{stats.get('elapsed_sec', 0):.1f}s")


def render_results(result: CrawlResult):
    """Render crawl results and download buttons."""
    st.markdown("---")
    st.markdown("## 📊 Results")

    if result.error:
        st.error(f"Crawl failed: {result.error}")
        if not result.visited_urls:
            return
        st.warning("Showing partial results collected before the failure.")

    render_metrics(result)
    st.info(f"🚀 Average speed: {result.stats.get('pages_per_sec_overall', 0):.2f} pages/second")

    df = products_frame(result)
    if not df.empty:
        st.markdown("### 🛍️ Products")
        st.dataframe(df, width="stretch")
    else:
        st.warning("No products were found within the page budget.")

    st.markdown("### 📥 Download Results")
    stamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    col1, col2, col3 = st.columns(3)
    with col1:
        st.download_button(
            label="📥 Download JSON",
            data=export_to_json(result),
            file_name=f"products_{stamp}.json",
            mime="application/json"
        )
    with col2:
        st.download_button(
            label="📥 Download CSV",
            data=df.to_csv(index=False),
            file_name=f"products_{stamp}.csv",
            mime="text/csv"
        )
    with col3:
        st.download_button(
            label="📥 Download DOCX",
            data=export_to_docx(result),
            file_name=f"products_{stamp}.docx",
            mime="application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        )

    with st.expander(f"🔗 Visited URLs ({len(result.visited_urls)})", expanded=False):
        for visited in result.visited_urls:
            st.write(visited)


def main():
    """Main application."""
    init_session_state()

    st.markdown('<p class="main-header">🛒 Product Crawler</p>', unsafe_allow_html=True)
    st.markdown(
        '<p class="sub-header">Finds product pages on a shop with a headless browser and Gemini</p>',
        unsafe_allow_html=True
    )

    settings = render_sidebar()

    st.markdown("## 🌐 Enter Shop URL")
    col1, col2 = st.columns([4, 1])
    with col1:
        url = st.text_input(
            "Shop URL",
            placeholder="https://shop.example.com",
            label_visibility="collapsed"
        )
    with col2:
        crawl_button = st.button("🚀 Start Crawl", type="primary")

    if url and is_valid_url(url):
        st.info(f"🌐 **Scope:** only pages on `{extract_domain(url)}` will be visited")

    if crawl_button:
        if not url:
            st.error("Please enter a URL to crawl")
        elif not is_valid_url(url):
            st.error("Please enter a valid URL (e.g., https://shop.example.com)")
        else:
            st.session_state.crawl_result = None
            st.session_state.crawl_logs = []
            add_log(f"Starting crawl of {url}")
            add_log(f"Max pages: {settings['max_pages']}, workers: {settings['workers']}")

            with st.spinner("Crawling in progress..."):
                result = run_crawler(url, settings)
            st.session_state.crawl_result = result
            if result.error:
                add_log(f"Error: {result.error}")
            else:
                add_log(f"Crawl complete! {len(result.products)} products, "
                        f"{len(result.visited_urls)} pages")

    if st.session_state.crawl_result:
        render_results(st.session_state.crawl_result)

    if st.session_state.crawl_logs:
        with st.expander("📋 Crawl Logs", expanded=False):
            st.code("\n".join(st.session_state.crawl_logs[-50:]), language=None)

    st.markdown("---")
    st.markdown(
        """
        <div style='text-align: center; color: #666; font-size: 0.8rem;'>
            <p>🛒 Product Crawler | Built with Streamlit</p>
            <p>Please crawl responsibly and respect website terms of service</p>
        </div>
        """,
        unsafe_allow_html=True
    )


if __name__ == "__main__":
    main()
