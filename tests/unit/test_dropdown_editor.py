from __future__ import annotations

from qvet_edit.editors import DropdownEditor, match_option
from qvet_edit.models import ChangeRecord, ChangeStatus
from qvet_edit.registry import default_registry
from qvet_edit.surface.base import DropdownOption

SECCION = '[id$="_Seccio_Id"]'
ID_SECCION = '[id$="_IdSeccion"]'
FAMILIA = '[id$="_IdFamilia"]'
SUBFAMILIA = '[id$="_IdSubfamilia"]'
IVA = '[id$="_IVA_Id"]'


def _change(column: str, new: str) -> ChangeRecord:
    return ChangeRecord(entity_id=6242, column=column, old_value="", new_value=new, descriptor=default_registry()[column])


def test_match_option_prefers_exact_text():
    options = [DropdownOption(0, "PIENSOS PERRO", "1"), DropdownOption(1, "PIENSOS", "2")]
    assert match_option(options, "piensos").index == 1
    assert match_option(options, "perro").index == 0
    assert match_option(options, "2").index == 1
    assert match_option(options, "gato") is None


class TestStaticDropdown:
    def test_select_by_text(self, fake_surface, editor_settings):
        fake_surface.dropdowns[IVA] = [("General 21%", "1"), ("Reducido 10%", "2")]
        outcome = DropdownEditor(fake_surface, editor_settings).apply(_change("IMP_VENTAS", "reducido"))
        assert outcome.ok
        assert outcome.actual_value == "Reducido 10%"
        assert fake_surface.selected[IVA] == 1
        # static lists are selected through the widget API, no popup
        assert ("open_popup", IVA) not in fake_surface.events

    def test_not_found_lists_every_option(self, fake_surface, editor_settings):
        fake_surface.dropdowns[IVA] = [("General 21%", "1"), ("Reducido 10%", "2"), ("Exento", "3")]
        outcome = DropdownEditor(fake_surface, editor_settings).apply(_change("IMP_VENTAS", "Superreducido"))
        assert outcome.status is ChangeStatus.ERROR
        assert "3 options" in outcome.error
        assert "General 21%, Reducido 10%, Exento" in outcome.error

    def test_missing_widget(self, fake_surface, editor_settings):
        outcome = DropdownEditor(fake_surface, editor_settings).apply(_change("IMP_VENTAS", "General"))
        assert outcome.status is ChangeStatus.ERROR

    def test_verify_failed_when_selection_does_not_stick(self, fake_surface, editor_settings):
        fake_surface.dropdowns[IVA] = [("General 21%", "1"), ("Reducido 10%", "2")]
        fake_surface.selected[IVA] = 0
        fake_surface.select_ignored.add(IVA)
        outcome = DropdownEditor(fake_surface, editor_settings).apply(_change("IMP_VENTAS", "Reducido"))
        assert outcome.status is ChangeStatus.VERIFY_FAILED
        assert outcome.actual_value == "General 21%"


class TestCascadingDropdowns:
    def _setup(self, surface):
        surface.dropdowns[SECCION] = [("ALIMENTACION", "10"), ("FARMACIA", "20")]
        surface.dropdowns[FAMILIA] = []
        surface.cascades[FAMILIA] = (SECCION, {"10": [("PIENSOS", "101"), ("SNACKS", "102")]})
        surface.cascades[SUBFAMILIA] = (FAMILIA, {"101": [("PERRO", "1001")]})

    def test_root_is_clicked_then_propagated(self, fake_surface, editor_settings):
        self._setup(fake_surface)
        outcome = DropdownEditor(fake_surface, editor_settings).apply(_change("Seccion", "ALIMENTACION"))
        assert outcome.ok
        assert ("open_popup", SECCION) in fake_surface.events
        assert ("copy", SECCION, ID_SECCION) in fake_surface.events
        assert fake_surface.mirrors[ID_SECCION] == "10"
        # dependent list reloaded for the new parent value
        assert [t for t, _ in fake_surface.dropdowns[FAMILIA]] == ["PIENSOS", "SNACKS"]

    def test_dependent_waits_for_options_after_settle(self, fake_surface, editor_settings):
        self._setup(fake_surface)
        sleeps: list[float] = []
        settings = type(editor_settings)(
            cascade_settle_seconds=5.0,
            option_wait_seconds=0.0,
            grid_retry=editor_settings.grid_retry,
            sleep=sleeps.append,
        )
        editor = DropdownEditor(fake_surface, settings)
        assert editor.apply(_change("Seccion", "ALIMENTACION")).ok
        outcome = editor.apply(_change("Familia", "snacks"))
        assert outcome.ok
        assert outcome.actual_value == "SNACKS"
        assert sleeps == [5.0]
        assert ("wait_options", FAMILIA) in fake_surface.events
        # Familia is itself a cascade root for Subfamilia
        assert ("reload", FAMILIA) in fake_surface.events

    def test_dependent_without_options_reports_empty_list(self, fake_surface, editor_settings):
        self._setup(fake_surface)
        outcome = DropdownEditor(fake_surface, editor_settings).apply(_change("Familia", "PIENSOS"))
        assert outcome.status is ChangeStatus.ERROR
        assert "0 options" in outcome.error

    def test_falls_back_to_widget_select_when_popup_item_hidden(self, fake_surface, editor_settings):
        self._setup(fake_surface)
        fake_surface.popup_clickable = False
        outcome = DropdownEditor(fake_surface, editor_settings).apply(_change("Seccion", "farmacia"))
        assert outcome.ok
        assert fake_surface.selected[SECCION] == 1
