from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from ..config.loader import AppConfig, Credentials
from .selenium_surface import SeleniumSurface

"""Browser setup and QVET login.

open_session() is the surface factory used by the CLI: it starts Chrome,
logs in and yields a SeleniumSurface. The browser is
always quit on exit.
"""

__all__ = [
    "LoginError",
    "setup_driver",
    "login",
    "open_session",
]

logger = logging.getLogger(__name__)

_JS_PICK_FIRST_CENTER = """
var wrapper = document.querySelector('.k-dropdown-wrap') ||
              document.querySelector('[aria-owns="IdCentro_listbox"]');
if (wrapper) wrapper.click();
"""

_JS_CLICK_FIRST_CENTER_ITEM = """
var items = document.querySelectorAll('#IdCentro_listbox li');
if (items.length === 0) return false;
items[0].click();
return true;
"""


class LoginError(Exception):
    """Raised when the QVET login does not reach the home page."""


def setup_driver(headless: bool = True, page_load_timeout: float = 30.0) -> WebDriver:
    """Set up and return a configured Chrome driver.

    Args:
        headless: run without a visible window
        page_load_timeout: seconds before driver.get() gives up

    Returns:
        webdriver.Chrome
    """
    chrome_options = Options()
    chrome_options.add_argument("--no-sandbox")
    chrome_options.add_argument("--window-size=1920,1080")
    chrome_options.add_argument("--disable-dev-shm-usage")
    if headless:
        chrome_options.add_argument("--headless=new")
        chrome_options.add_argument("--disable-gpu")
    chrome_options.add_experimental_option("excludeSwitches", ["enable-automation"])

    # separate session: a terminal Ctrl+C reaches this process, not chromedriver
    service = Service(popen_kw={"start_new_session": True})
    driver = webdriver.Chrome(service=service, options=chrome_options)
    driver.set_page_load_timeout(page_load_timeout)
    return driver


def _is_home(url: str) -> bool:
    return "/Home" in url or "Index" in url


def login(
    driver: WebDriver,
    credentials: Credentials,
    config: AppConfig,
    *,
    sleep: Callable[[float], Any] = time.sleep,
) -> None:
    """Fill the login form; on the AutoLogin page pick the first center.

    Raises:
        LoginError: form not found, or home page not reached
    """
    wait = WebDriverWait(driver, config.timeouts.element)
    try:
        driver.get(config.base_url.rstrip("/") + "/")
        wait.until(EC.presence_of_element_located((By.ID, "Clinica")))
    except (TimeoutException, WebDriverException) as e:
        raise LoginError(f"login form not reachable at {config.base_url}: {e.__class__.__name__}") from e

    driver.find_element(By.ID, "Clinica").send_keys(credentials.clinic or "")
    driver.find_element(By.ID, "UserName").send_keys(credentials.user or "")
    driver.find_element(By.ID, "Password").send_keys(credentials.password or "")
    driver.find_element(By.ID, "btnLogin").click()
    sleep(5.0)

    if "AutoLogin" in driver.current_url:
        # multi-center accounts: choose the first center and submit again
        try:
            wait.until(EC.presence_of_element_located((By.ID, "IdCentro")))
        except TimeoutException as e:
            raise LoginError("center selection did not appear") from e
        driver.execute_script(_JS_PICK_FIRST_CENTER)
        sleep(1.0)
        if not driver.execute_script(_JS_CLICK_FIRST_CENTER_ITEM):
            logger.warning("no center listed on the AutoLogin page")
        sleep(1.5)
        driver.find_element(By.ID, "btnLogin").click()
        sleep(5.0)

    try:
        WebDriverWait(driver, config.timeouts.page_load).until(lambda d: _is_home(d.current_url))
    except TimeoutException as e:
        raise LoginError(f"login failed (landed on {driver.current_url})") from e
    logger.info("login ok")


@contextmanager
def open_session(config: AppConfig, credentials: Credentials) -> Iterator[SeleniumSurface]:
    """Start Chrome, log in and yield a surface.

    Raises:
        LoginError: credentials incomplete or login failed
    """
    if not credentials.complete:
        raise LoginError(f"missing credentials: {', '.join(credentials.missing())}")
    driver = setup_driver(headless=config.headless, page_load_timeout=config.timeouts.page_load)
    try:
        login(driver, credentials, config)
        yield SeleniumSurface(
            driver,
            home_url=config.home_url,
            timeouts=config.timeouts,
            save_settle_seconds=config.save_settle_seconds,
        )
    finally:
        try:
            driver.quit()
        except WebDriverException as e:
            logger.debug(f"driver.quit failed: {e.__class__.__name__}")
