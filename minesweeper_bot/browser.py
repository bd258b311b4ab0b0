import asyncio
import io
import logging
import secrets
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional

from PIL import Image
from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from minesweeper_bot.load_settings import Settings

WINDOW_WIDTH = 1920
WINDOW_HEIGHT = 1080

# Selectors of the JS Minesweeper page.
CLOSED_CELL_SELECTOR = 'td.close.border1[id="{cell}"]'
CELL_SELECTOR = 'td[id="{cell}"]'
CONTAINER_SELECTOR = "div#container.border1"
LOSE_TEXT_SELECTOR = "#losetext"
WIN_TEXT_SELECTOR = "#wintext"
SMILE_SELECTOR = "#smile"
HINT_SELECTOR = "#hint"
IDS_READY_SELECTOR = (
    'td[id="0"] > div[style*="font-size"][style*="color"], '
    'td[id="1"] > div[style*="font-size"][style*="color"]'
)
FLAG_MARK = "\U0001F6A9"

ADD_IDS_SCRIPT = """
for (const element of document.querySelectorAll('.close.border1')) {
    const div = element.querySelector('div');
    if (!div) {
        continue;
    }
    div.textContent = element.id;
    div.style.fontSize = '12px';
    div.style.color = 'black';
}
"""

# Clears the id label of a cell once it is clicked or opened.
ID_CLEANUP_SCRIPT = """
const board = document.getElementById('board');
if (!board || board.dataset.idCleanup === '1') {
    return;
}
board.dataset.idCleanup = '1';
board.addEventListener('click', (event) => {
    const target = event.target.closest('td');
    if (target && target.classList.contains('close') && target.classList.contains('border1')) {
        const div = target.querySelector('div');
        if (div) {
            div.textContent = '';
            div.removeAttribute('style');
        }
    }
});
const observer = new MutationObserver((mutations) => {
    for (const mutation of mutations) {
        if (mutation.type !== 'attributes') {
            continue;
        }
        const element = mutation.target;
        if (element.getAttribute('class') !== 'open') {
            continue;
        }
        const div = element.querySelector('div');
        if (div && div.getAttribute('style') === 'font-size: 12px; color: black;') {
            div.textContent = '';
        }
    }
});
observer.observe(board, { attributes: true, subtree: true });
"""

LABEL_CELL_SCRIPT = """
const div = arguments[0].querySelector('div');
if (div) {
    div.textContent = arguments[1];
}
"""

INLINE_DISPLAY_SCRIPT = "return arguments[0].style.display;"


class BrowserError(RuntimeError):
    """Raised when the browser could not perform a page operation."""


@dataclass
class Screenshot:
    data: bytes
    mime_type: str


def random_browser_version() -> str:
    number = int.from_bytes(secrets.token_bytes(2), "big")
    return f"{number >> 8}.{number & 0xFF}.0.0"


def random_user_agent() -> str:
    base = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko)"
    chrome = f"Chrome/{random_browser_version()}"
    edge = f"Edg/{random_browser_version()}"
    return f"{base} {chrome} Safari/537.36 {edge}"


def css_attribute_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def compress_png(png: bytes, quality: int) -> bytes:
    """Re-encode a PNG screenshot as JPEG

    Args:
        png (bytes): PNG data from WebDriver
        quality (int): JPEG quality, 1-100

    Returns:
        bytes: JPEG data
    """
    with Image.open(io.BytesIO(png)) as image:
        buffer = io.BytesIO()
        image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class BrowserManager:
    """One Chrome instance shared by every guild, one window per game.

    WebDriver is not thread safe, so every call runs on a single worker
    thread. The blank window opened at launch is never closed; it keeps the
    browser alive while no game is running.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._driver: Optional[webdriver.Chrome] = None
        self._home_handle: Optional[str] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="webdriver")

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    def _create_driver(self) -> webdriver.Chrome:
        options = ChromeOptions()
        if self.settings.browser_headless:
            options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-setuid-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument(f"--window-size={WINDOW_WIDTH},{WINDOW_HEIGHT}")
        options.add_argument(f"--user-agent={random_user_agent()}")
        if self.settings.chrome_binary:
            options.binary_location = self.settings.chrome_binary

        if self.settings.chromedriver_path:
            logging.info(f"Creating Chrome WebDriver with driver path: {self.settings.chromedriver_path}")
            return webdriver.Chrome(
                service=ChromeService(self.settings.chromedriver_path), options=options
            )
        logging.info("Creating Chrome WebDriver using system PATH")
        return webdriver.Chrome(options=options)

    def _launch(self) -> None:
        self._driver = self._create_driver()
        self._home_handle = self._driver.current_window_handle

    async def launch(self) -> None:
        if self._driver is not None:
            return
        try:
            await self._run(self._launch)
        except WebDriverException as e:
            raise BrowserError(f"Failed to launch browser: {e}") from e
        logging.info("Browser launched")

    async def call(self, handle: str, func: Callable[..., Any], *args: Any) -> Any:
        """Run func(driver, *args) with the window of handle focused.

        Raises:
            BrowserError: The browser is not running or WebDriver failed
        """
        def focused_call():
            if self._driver is None:
                raise BrowserError("Browser is not running")
            self._driver.switch_to.window(handle)
            return func(self._driver, *args)

        try:
            return await self._run(focused_call)
        except WebDriverException as e:
            raise BrowserError(str(e)) from e

    def _open_window(self, url: str) -> str:
        if self._driver is None:
            raise BrowserError("Browser is not running")
        self._driver.switch_to.new_window("tab")
        handle = self._driver.current_window_handle
        try:
            self._driver.get(url)
        except WebDriverException:
            self._close_window(handle)
            raise
        return handle

    def _close_window(self, handle: str) -> None:
        if self._driver is None:
            return
        if handle in self._driver.window_handles:
            self._driver.switch_to.window(handle)
            self._driver.close()
        if self._home_handle is not None:
            self._driver.switch_to.window(self._home_handle)

    def _window_handles(self) -> list:
        if self._driver is None:
            return []
        return list(self._driver.window_handles)

    async def open_page(self, url: str) -> "GamePage":
        try:
            handle = await self._run(self._open_window, url)
        except WebDriverException as e:
            raise BrowserError(f"Failed to open {url}: {e}") from e
        logging.info(f"Opened game page {handle}")
        return GamePage(self, handle)

    async def close_window(self, handle: str) -> None:
        try:
            await self._run(self._close_window, handle)
        except WebDriverException as e:
            raise BrowserError(f"Failed to close window {handle}: {e}") from e

    async def is_alive(self, handle: str) -> bool:
        try:
            return handle in await self._run(self._window_handles)
        except WebDriverException as e:
            logging.error(f"Failed to list browser windows: {e}")
            return False

    def _quit(self) -> None:
        if self._driver is not None:
            self._driver.quit()
            self._driver = None
            self._home_handle = None

    async def quit(self) -> None:
        try:
            await self._run(self._quit)
        except WebDriverException as e:
            logging.error(f"Failed to quit browser: {e}")
        finally:
            self._executor.shutdown(wait=False)
        logging.info("Browser closed")


class GamePage:
    """DOM script for one JS Minesweeper window."""

    def __init__(self, browser: BrowserManager, handle: str):
        self.browser = browser
        self.handle = handle

    async def add_ids(self) -> None:
        await self.browser.call(self.handle, lambda driver: driver.execute_script(ADD_IDS_SCRIPT))

    async def install_id_cleanup(self) -> None:
        await self.browser.call(self.handle, lambda driver: driver.execute_script(ID_CLEANUP_SCRIPT))

    async def wait_for_ids(self, timeout: float) -> None:
        def wait(driver):
            WebDriverWait(driver, timeout).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, IDS_READY_SELECTOR))
            )

        await self.browser.call(self.handle, wait)

    async def click_cell(self, cell: str) -> bool:
        """Left click a closed cell

        Returns:
            bool: False if there is no closed cell with this id
        """
        def click(driver):
            elements = driver.find_elements(
                By.CSS_SELECTOR, CLOSED_CELL_SELECTOR.format(cell=css_attribute_value(cell))
            )
            if not elements:
                return False
            elements[0].click()
            return True

        return await self.browser.call(self.handle, click)

    async def is_flagged(self, cell: str) -> bool:
        def flagged(driver):
            elements = driver.find_elements(
                By.CSS_SELECTOR, CELL_SELECTOR.format(cell=css_attribute_value(cell))
            )
            if not elements:
                return False
            return FLAG_MARK in (elements[0].get_attribute("innerHTML") or "")

        return await self.browser.call(self.handle, flagged)

    async def _right_click_cell(self, cell: str) -> bool:
        def right_click(driver):
            elements = driver.find_elements(
                By.CSS_SELECTOR, CLOSED_CELL_SELECTOR.format(cell=css_attribute_value(cell))
            )
            if not elements:
                return False
            ActionChains(driver).context_click(elements[0]).perform()
            return True

        return await self.browser.call(self.handle, right_click)

    async def _label_cell(self, cell: str) -> None:
        def label(driver):
            elements = driver.find_elements(
                By.CSS_SELECTOR, CLOSED_CELL_SELECTOR.format(cell=css_attribute_value(cell))
            )
            if elements:
                driver.execute_script(LABEL_CELL_SCRIPT, elements[0], cell)

        await self.browser.call(self.handle, label)

    async def toggle_flag(self, cell: str, relabel_delay: float) -> bool:
        """Flag a closed cell, or unflag it and put its id label back

        Args:
            cell (str): Cell id
            relabel_delay (float): Seconds to let the page redraw before relabeling

        Returns:
            bool: False if there is no closed cell with this id
        """
        was_flagged = await self.is_flagged(cell)
        if not await self._right_click_cell(cell):
            return False
        if was_flagged:
            await asyncio.sleep(relabel_delay)
            await self._label_cell(cell)
        return True

    async def _is_displayed_inline_block(self, selector: str) -> bool:
        def displayed(driver):
            elements = driver.find_elements(By.CSS_SELECTOR, selector)
            if not elements:
                return False
            return driver.execute_script(INLINE_DISPLAY_SCRIPT, elements[0]) == "inline-block"

        return await self.browser.call(self.handle, displayed)

    async def is_lost(self) -> bool:
        """Any failure while checking counts as a lost game."""
        try:
            return await self._is_displayed_inline_block(LOSE_TEXT_SELECTOR)
        except Exception as e:
            logging.error(f"Failed to check lose text: {e}")
            return True

    async def is_won(self) -> bool:
        try:
            return await self._is_displayed_inline_block(WIN_TEXT_SELECTOR)
        except Exception as e:
            logging.error(f"Failed to check win text: {e}")
            return False

    async def click_smile(self) -> None:
        await self.browser.call(
            self.handle, lambda driver: driver.find_element(By.CSS_SELECTOR, SMILE_SELECTOR).click()
        )

    async def click_hint(self) -> None:
        await self.browser.call(
            self.handle, lambda driver: driver.find_element(By.CSS_SELECTOR, HINT_SELECTOR).click()
        )

    async def screenshot(self) -> Screenshot | None:
        """Screenshot the board container, None if the container is missing."""
        def capture(driver):
            elements = driver.find_elements(By.CSS_SELECTOR, CONTAINER_SELECTOR)
            if not elements:
                return None
            return elements[0].screenshot_as_png

        png = await self.browser.call(self.handle, capture)
        if png is None:
            return None
        settings = self.browser.settings
        if settings.enable_image_compression:
            try:
                jpeg = await self.browser._run(compress_png, png, settings.picture_quality)
            except (OSError, ValueError) as e:
                raise BrowserError(f"Failed to compress screenshot: {e}") from e
            return Screenshot(jpeg, "image/jpeg")
        return Screenshot(png, "image/png")

    async def is_alive(self) -> bool:
        return await self.browser.is_alive(self.handle)

    async def close(self) -> None:
        await self.browser.close_window(self.handle)
