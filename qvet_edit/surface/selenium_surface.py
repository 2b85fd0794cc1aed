from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from selenium.common.exceptions import (
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from ..config.loader import Timeouts
from ..registry.field_map import GridSpec
from .base import DropdownOption

"""Selenium implementation of the live surface.

The article form is built from Kendo UI widgets. Widget state is read and
changed through the page's own jQuery/Kendo API (``execute_script``); real
user input (double clicks, typing, popup clicks) goes through ActionChains
where the page only reacts to genuine events.
"""

__all__ = [
    "SeleniumSurface",
]

logger = logging.getLogger(__name__)

ARTICLE_SEARCH = 'input[name*="IdArticulo"]'
ARTICLE_RESULT_ROW = ".k-grid-content tr"
ARTICLE_FORM = ".k-window-content, .FichaArticulo"

_JS_OPEN_ARTICLES = """
var links = document.querySelectorAll('a, .menu-item, .nav-link');
for (var i = 0; i < links.length; i++) {
  var text = links[i].textContent || '';
  if (text.indexOf('Artículos') !== -1 || text.indexOf('Conceptos') !== -1) {
    links[i].click();
    return true;
  }
}
return false;
"""

# result row whose IdArticulo (or first id cell) equals arguments[0]
_JS_ARTICLE_ROW = """
var wanted = String(arguments[0]);
var $ = window.jQuery;
var rows = document.querySelectorAll(arguments[1]);
for (var i = 0; i < rows.length; i++) {
  var row = rows[i];
  var id = null;
  if ($) {
    var grid = $(row).closest('[data-role="grid"]').data('kendoGrid');
    var item = grid ? grid.dataItem(row) : null;
    if (item && item.IdArticulo !== undefined && item.IdArticulo !== null) id = String(item.IdArticulo);
  }
  if (id === null) {
    var cell = row.querySelector('td');
    var m = cell ? (cell.textContent || '').match(/\\d+/) : null;
    id = m ? m[0] : '';
  }
  if (id === wanted) return row;
}
return null;
"""

_JS_SELECT_TAB = """
var name = arguments[0].toLowerCase();
var $ = window.jQuery;
if (!$) return false;
var strips = $('[data-role="tabstrip"]');
for (var i = 0; i < strips.length; i++) {
  var strip = $(strips[i]).data('kendoTabStrip');
  if (!strip) continue;
  var items = strip.tabGroup.children('li');
  for (var j = 0; j < items.length; j++) {
    if ($(items[j]).text().trim().toLowerCase().indexOf(name) !== -1) {
      strip.select(j);
      return true;
    }
  }
}
return false;
"""

_JS_READ_CHECKBOX = """
var el = document.querySelector(arguments[0]);
return el ? !!el.checked : null;
"""

_JS_CLICK = """
var el = document.querySelector(arguments[0]);
if (!el) return false;
el.click();
return true;
"""

_JS_SET_VALUE = """
var el = document.querySelector(arguments[0]);
if (!el) return false;
el.value = arguments[1];
return true;
"""

# option text / value live under different keys depending on the list
_JS_DROPDOWN_OPTIONS = """
var $ = window.jQuery;
if (!$) return null;
var dd = $(arguments[0]).data('kendoDropDownList');
if (!dd) return null;
var data = dd.dataSource ? dd.dataSource.data() : [];
var out = [];
for (var i = 0; i < data.length; i++) {
  var it = data[i];
  var text = it.Text || it.Nombre || it.Nom || it.text || it.nombre || '';
  var value = it.Value || it.Id || it.value || it.id || '';
  out.push({index: i, text: String(text), value: String(value)});
}
return out;
"""

_JS_DROPDOWN_COUNT = """
var $ = window.jQuery;
if (!$) return 0;
var dd = $(arguments[0]).data('kendoDropDownList');
return dd && dd.dataSource ? dd.dataSource.data().length : 0;
"""

_JS_DROPDOWN_SELECT_INDEX = """
var $ = window.jQuery;
if (!$) return false;
var el = $(arguments[0]);
var dd = el.data('kendoDropDownList');
if (!dd) return false;
var data = dd.dataSource.data();
var i = arguments[1];
if (i < 0 || i >= data.length) return false;
dd.select(i);
var native = el[0];
if (native) {
  native.value = dd.value();
  native.dispatchEvent(new Event('change', {bubbles: true}));
}
dd.trigger('change');
return true;
"""

_JS_DROPDOWN_WRAPPER = """
var $ = window.jQuery;
if (!$) return null;
var dd = $(arguments[0]).data('kendoDropDownList');
if (!dd || !dd.wrapper || dd.wrapper.length === 0) return null;
return dd.wrapper[0];
"""

_JS_DROPDOWN_FORCE_OPEN = """
var $ = window.jQuery;
var dd = $(arguments[0]).data('kendoDropDownList');
if (!dd) return false;
var visible = dd.popup && dd.popup.visible && dd.popup.visible();
if (!visible) dd.open();
return true;
"""

_JS_DROPDOWN_ITEM = """
var $ = window.jQuery;
var dd = $(arguments[0]).data('kendoDropDownList');
if (!dd || !dd.ul) return null;
var li = dd.ul.children('li').eq(arguments[1]);
if (li.length === 0 || !li.is(':visible')) return null;
li[0].scrollIntoView({block: 'nearest'});
return li[0];
"""

_JS_DROPDOWN_CURRENT = """
var $ = window.jQuery;
if (!$) return null;
var dd = $(arguments[0]).data('kendoDropDownList');
if (!dd) return null;
return {index: dd.select(), text: String(dd.text() || ''), value: String(dd.value() || '')};
"""

_JS_DROPDOWN_COPY = """
var $ = window.jQuery;
var src = $(arguments[0]).data('kendoDropDownList');
var tgt = $(arguments[1]).data('kendoDropDownList');
if (!src || !tgt) return false;
tgt.value(src.value());
tgt.trigger('change');
return true;
"""

_JS_DROPDOWN_RELOAD_DEPENDENTS = """
var $ = window.jQuery;
var el = $(arguments[0]);
if (!el.data('kendoDropDownList')) return 0;
var parentId = el.attr('id') || '';
var reloaded = 0;
$('[data-role="dropdownlist"]').each(function (i, node) {
  var dd = $(node).data('kendoDropDownList');
  if (!dd || !dd.options || !dd.options.cascadeFrom) return;
  var from = dd.options.cascadeFrom;
  if (from === parentId || from.endsWith('_' + parentId) || parentId.endsWith('_' + from.split('_').pop())) {
    if (dd.dataSource) { dd.dataSource.read(); reloaded++; }
  }
});
return reloaded;
"""

_JS_GRID_ROW_KEYS = """
var $ = window.jQuery;
if (!$) return null;
var grid = $(arguments[0]).data('kendoGrid');
if (!grid) return null;
var data = grid.dataSource.data();
var out = [];
for (var i = 0; i < data.length; i++) out.push(String(data[i][arguments[1]] || ''));
return out;
"""

_JS_GRID_FIND_ITEM = """
function findItem(sel, keyField, rowKey) {
  var $ = window.jQuery;
  var grid = $(sel).data('kendoGrid');
  if (!grid) return null;
  var data = grid.dataSource.data();
  var wanted = rowKey.toLowerCase();
  for (var i = 0; i < data.length; i++) {
    if (String(data[i][keyField] || '').toLowerCase().indexOf(wanted) !== -1) {
      return {grid: grid, item: data[i], index: i};
    }
  }
  return null;
}
"""

_JS_GRID_CELL = _JS_GRID_FIND_ITEM + """
var found = findItem(arguments[0], arguments[1], arguments[2]);
if (!found) return null;
var rows = window.jQuery(arguments[0]).find('tbody tr.k-master-row');
var row = rows.eq(found.index);
if (row.length === 0) return null;
var cell = row.find('td:visible').eq(arguments[3]);
if (cell.length === 0) return null;
cell[0].scrollIntoView({block: 'center'});
return cell[0];
"""

_JS_GRID_EDITING = """
var $ = window.jQuery;
return $(arguments[0]).find('td.k-edit-cell input:visible').length > 0;
"""

_JS_GRID_READ = _JS_GRID_FIND_ITEM + """
var found = findItem(arguments[0], arguments[1], arguments[2]);
if (!found) return null;
var v = found.item[arguments[3]];
return v === undefined ? null : v;
"""

_JS_GRID_SET = _JS_GRID_FIND_ITEM + """
var found = findItem(arguments[0], arguments[1], arguments[2]);
if (!found) return null;
found.item.set(arguments[3], arguments[4]);
found.item.dirty = true;
return found.item[arguments[3]];
"""

_JS_SET_NUMERIC = """
var $ = window.jQuery;
if (!$) return [false, null];
var el = $(arguments[0]);
if (el.length === 0) return [false, null];
var box = el.data('kendoNumericTextBox');
if (box) {
  box.value(arguments[1]);
  box.trigger('change');
  return [true, box.value()];
}
var input = el[0];
input.value = String(arguments[1]);
input.dispatchEvent(new Event('change', {bubbles: true}));
return [true, input.value];
"""

_JS_SAVE = """
var root = document.querySelector('.k-window-content') || document;
var btn = root.querySelector('button.guardar, [id$="_guardar"]');
if (btn) { btn.click(); return true; }
var buttons = root.querySelectorAll('button, .btn, .k-button');
for (var i = 0; i < buttons.length; i++) {
  if ((buttons[i].textContent || '').toLowerCase().indexOf('guardar') !== -1) {
    buttons[i].click();
    return true;
  }
}
return false;
"""


class SeleniumSurface:
    """Live surface over a logged-in WebDriver sitting on the article list."""

    def __init__(
        self,
        driver: WebDriver,
        *,
        home_url: str,
        timeouts: Timeouts | None = None,
        save_settle_seconds: float = 3.0,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        self.driver = driver
        self.home_url = home_url
        self.timeouts = timeouts or Timeouts()
        self.save_settle_seconds = save_settle_seconds
        self.sleep = sleep

    # -- helpers ---------------------------------------------------------

    def _script(self, script: str, *args: Any) -> Any:
        return self.driver.execute_script(script, *args)

    def _wait_for(self, css: str, timeout: float) -> WebElement | None:
        try:
            return WebDriverWait(self.driver, timeout).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, css))
            )
        except (TimeoutException, StaleElementReferenceException):
            return None

    def _select_all_and_type(self, text: str) -> ActionChains:
        # Delete empties the selection so a blank value clears the input
        chain = (
            ActionChains(self.driver)
            .key_down(Keys.CONTROL)
            .send_keys("a")
            .key_up(Keys.CONTROL)
            .send_keys(Keys.DELETE)
        )
        if text:
            chain = chain.send_keys(text)
        return chain

    def _wait_for_article_row(self, entity_id: int, timeout: float) -> WebElement | None:
        try:
            return WebDriverWait(self.driver, timeout, poll_frequency=0.25).until(
                lambda d: d.execute_script(_JS_ARTICLE_ROW, str(entity_id), ARTICLE_RESULT_ROW)
            )
        except (TimeoutException, StaleElementReferenceException):
            return None

    # -- entity session --------------------------------------------------

    def navigate_to_articles(self) -> bool:
        clicked = bool(self._script(_JS_OPEN_ARTICLES))
        if clicked:
            self.sleep(3.0)
        else:
            logger.warning("article menu entry not found")
        return clicked

    def open_entity(self, entity_id: int) -> bool:
        self.navigate_to_articles()
        search = self._wait_for(ARTICLE_SEARCH, self.timeouts.element)
        if search is None:
            logger.warning(f"article search field not found; cannot open {entity_id}")
            return False
        search.click()
        self._select_all_and_type(str(entity_id)).send_keys(Keys.ENTER).perform()
        self.sleep(2.0)

        # only the row carrying this id
        row = self._wait_for_article_row(entity_id, self.timeouts.element)
        if row is None:
            return False
        ActionChains(self.driver).double_click(row).perform()
        return self._wait_for(ARTICLE_FORM, self.timeouts.open_entity) is not None

    def select_section(self, name: str) -> bool:
        selected = bool(self._script(_JS_SELECT_TAB, name))
        if selected:
            self.sleep(1.0)
        return selected

    def save(self) -> bool:
        saved = bool(self._script(_JS_SAVE))
        if saved and self.save_settle_seconds > 0:
            self.sleep(self.save_settle_seconds)
        return saved

    def close_entity(self) -> None:
        # Escape closes the form window; reloading home releases the article lock
        ActionChains(self.driver).send_keys(Keys.ESCAPE).perform()
        self.sleep(1.0)
        try:
            self.driver.get(self.home_url)
        except TimeoutException:
            logger.debug(f"home page load timed out: {self.home_url}")

    # -- text ------------------------------------------------------------

    def replace_text(self, selector: str, value: str, *, multiline: bool = False) -> bool:
        element = self._wait_for(selector, self.timeouts.element)
        if element is None:
            return False
        element.click()
        self._select_all_and_type(value).perform()
        return True

    # -- checkbox --------------------------------------------------------

    def read_checkbox(self, selector: str) -> bool | None:
        return self._script(_JS_READ_CHECKBOX, selector)

    def click_checkbox(self, selector: str) -> None:
        self._script(_JS_CLICK, selector)

    def set_mirror_value(self, selector: str, value: str) -> bool:
        return bool(self._script(_JS_SET_VALUE, selector, value))

    # -- dropdown --------------------------------------------------------

    def dropdown_options(self, selector: str) -> list[DropdownOption] | None:
        raw = self._script(_JS_DROPDOWN_OPTIONS, selector)
        if raw is None:
            return None
        return [DropdownOption(index=int(o["index"]), text=o["text"], value=o["value"]) for o in raw]

    def wait_dropdown_options(self, selector: str, timeout: float) -> bool:
        try:
            WebDriverWait(self.driver, timeout, poll_frequency=0.25).until(
                lambda d: (d.execute_script(_JS_DROPDOWN_COUNT, selector) or 0) > 0
            )
            return True
        except TimeoutException:
            return False

    def dropdown_select_index(self, selector: str, index: int) -> bool:
        return bool(self._script(_JS_DROPDOWN_SELECT_INDEX, selector, index))

    def dropdown_open(self, selector: str) -> bool:
        wrapper = self._script(_JS_DROPDOWN_WRAPPER, selector)
        if wrapper is None:
            return False
        try:
            ActionChains(self.driver).move_to_element(wrapper).click().perform()
        except WebDriverException as e:
            logger.debug(f"{selector}: wrapper click failed ({e.__class__.__name__}), forcing open")
        self.sleep(1.0)
        opened = bool(self._script(_JS_DROPDOWN_FORCE_OPEN, selector))
        self.sleep(0.5)
        return opened

    def dropdown_click_option(self, selector: str, index: int) -> bool:
        item = self._script(_JS_DROPDOWN_ITEM, selector, index)
        if item is None:
            return False
        try:
            item.click()
        except WebDriverException as e:
            logger.debug(f"{selector}: option click failed: {e.__class__.__name__}")
            return False
        self.sleep(1.0)
        return True

    def dropdown_current(self, selector: str) -> DropdownOption | None:
        raw = self._script(_JS_DROPDOWN_CURRENT, selector)
        if raw is None:
            return None
        index = raw.get("index")
        return DropdownOption(index=-1 if index is None else int(index), text=raw["text"], value=raw["value"])

    def dropdown_copy_value(self, source_selector: str, target_selector: str) -> bool:
        return bool(self._script(_JS_DROPDOWN_COPY, source_selector, target_selector))

    def dropdown_reload_dependents(self, selector: str) -> int:
        reloaded = int(self._script(_JS_DROPDOWN_RELOAD_DEPENDENTS, selector) or 0)
        if reloaded:
            self.sleep(2.0)
        return reloaded

    # -- grid ------------------------------------------------------------

    def grid_row_keys(self, spec: GridSpec) -> list[str] | None:
        return self._script(_JS_GRID_ROW_KEYS, spec.selector, spec.row_key_field)

    def grid_click_cell(self, spec: GridSpec, row_key: str, column_index: int) -> bool:
        cell = self._script(_JS_GRID_CELL, spec.selector, spec.row_key_field, row_key, column_index)
        if cell is None:
            return False
        try:
            ActionChains(self.driver).double_click(cell).perform()
        except WebDriverException as e:
            logger.debug(f"{spec.key}[{row_key}]: cell click failed: {e.__class__.__name__}")
            return False
        return True

    def grid_edit_input_active(self, spec: GridSpec, timeout: float) -> bool:
        try:
            WebDriverWait(self.driver, timeout, poll_frequency=0.1).until(
                lambda d: bool(d.execute_script(_JS_GRID_EDITING, spec.selector))
            )
            return True
        except TimeoutException:
            return False

    def grid_type_and_commit(self, text: str) -> None:
        self._select_all_and_type(text).send_keys(Keys.TAB).perform()
        self.sleep(0.3)

    def grid_read_value(self, spec: GridSpec, row_key: str, column: str) -> Any:
        return self._script(_JS_GRID_READ, spec.selector, spec.row_key_field, row_key, column)

    def grid_set_model_value(self, spec: GridSpec, row_key: str, column: str, value: float) -> Any:
        return self._script(_JS_GRID_SET, spec.selector, spec.row_key_field, row_key, column, value)

    # -- numeric ---------------------------------------------------------

    def set_numeric(self, selector: str, value: float) -> tuple[bool, Any]:
        ok, actual = self._script(_JS_SET_NUMERIC, selector, value)
        return bool(ok), actual
