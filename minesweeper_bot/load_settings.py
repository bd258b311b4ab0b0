import os
import pathlib
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_PAGE_URL = "https://zwolfrost.github.io/JSMinesweeper/"
DEFAULT_SQLITE_PATH = pathlib.Path(__file__).parent / "minesweeper.sqlite3"


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


database_url = os.getenv("DATABASE_URL") or f"sqlite+aiosqlite:///{DEFAULT_SQLITE_PATH}"
page_url = os.getenv("PAGE_URL") or DEFAULT_PAGE_URL
enable_image_compression = _get_bool("ENABLE_IMAGE_COMPRESSION", False)
# JPEG quality is only meaningful in 1..100
picture_quality = min(max(_get_int("PICTURE_QUALITY", 80), 1), 100)
browser_headless = _get_bool("BROWSER_HEADLESS", True)
chrome_binary = os.getenv("CHROME_BINARY", "")
chromedriver_path = os.getenv("CHROMEDRIVER_PATH", "")
click_delay = _get_float("CLICK_DELAY", 1.0)
flag_delay = _get_float("FLAG_DELAY", 0.5)
hint_delay = _get_float("HINT_DELAY", 1.0)
wait_timeout = _get_float("WAIT_TIMEOUT", 3.0)
reconcile_interval_seconds = _get_int("RECONCILE_INTERVAL_SECONDS", 60)
pepper_data = os.getenv("PEPPER_DATA", "")


@dataclass
class Settings:
    """Runtime knobs of the game service and the browser driver."""

    page_url: str = page_url
    enable_image_compression: bool = enable_image_compression
    picture_quality: int = picture_quality
    browser_headless: bool = browser_headless
    chrome_binary: str = chrome_binary
    chromedriver_path: str = chromedriver_path
    click_delay: float = click_delay
    flag_delay: float = flag_delay
    hint_delay: float = hint_delay
    wait_timeout: float = wait_timeout


if __name__ == "__main__":
    print(database_url, page_url, enable_image_compression, picture_quality)
