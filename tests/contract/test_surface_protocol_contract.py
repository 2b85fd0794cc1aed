from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from qvet_edit.surface.base import (
    CheckboxSurface,
    DropdownSurface,
    EntitySurface,
    GridSurface,
    LiveSurface,
    NumericSurface,
    TextSurface,
)
from qvet_edit.surface.selenium_surface import SeleniumSurface

"""Both live surface implementations expose every capability the editors use."""

CAPABILITIES = [EntitySurface, TextSurface, CheckboxSurface, DropdownSurface, GridSurface, NumericSurface, LiveSurface]


@pytest.mark.parametrize("protocol", CAPABILITIES, ids=lambda p: p.__name__)
def test_selenium_surface_implements(protocol):
    surface = SeleniumSurface(MagicMock(), home_url="https://go.qvet.net/Home/Index")
    assert isinstance(surface, protocol)


@pytest.mark.parametrize("protocol", CAPABILITIES, ids=lambda p: p.__name__)
def test_fake_surface_implements(fake_surface, protocol):
    assert isinstance(fake_surface, protocol)


def test_object_without_the_methods_is_not_a_live_surface():
    assert not isinstance(object(), LiveSurface)
