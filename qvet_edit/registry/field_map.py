from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ..models.field_descriptor import FieldDescriptor, FieldType, GridAddress

"""Static registry of editable article fields.

Maps every supported workbook column name (case-sensitive, aliases included)
to a FieldDescriptor. Columns absent from the registry are not editable and
are ignored by the diff engine.

Article form notes (reference article 6242):
- Widget ids carry a per-form dynamic prefix: ``{prefix}_{Field}``, so most
  selectors match on the id suffix.
- Seccion -> Familia -> Subfamilia are cascading Kendo DropDownLists.
- Warehouses (Almacenes) and tariffs (Tarifas) are nested Kendo grids.
"""

__all__ = [
    "SECTION_GENERAL",
    "SECTION_PRICES",
    "SECTION_WAREHOUSES",
    "SECTION_NOTES",
    "GridSpec",
    "GRID_SPECS",
    "FieldRegistry",
    "COLUMN_MAP",
    "default_registry",
]

SECTION_GENERAL = "Datos generales"
SECTION_PRICES = "Precios compras / ventas"
SECTION_WAREHOUSES = "Almacenes"
SECTION_NOTES = "Observaciones"


@dataclass(frozen=True)
class GridSpec:
    """Nested grid layout: where it is, how rows are keyed, editable columns.

    column_index counts visible ``td`` cells of a master row (the expand
    cell is index 0).
    """
    key: str
    selector: str
    row_key_field: str
    column_index: Mapping[str, int]

    def index_of(self, column: str) -> int | None:
        return self.column_index.get(column)


GRID_SPECS: Mapping[str, GridSpec] = MappingProxyType({
    "almacenes": GridSpec(
        key="almacenes",
        selector='[id*="GridAlmacenes"]',
        row_key_field="NombreAlmacen",
        # expand(0) NombreAlmacen(1) ... StockTotal(6, read-only)
        column_index=MappingProxyType({
            "CompraMinima": 2,
            "CompraMinima2": 3,
            "StockMinimo": 4,
            "StockMaximo": 5,
        }),
    ),
    "tarifas": GridSpec(
        key="tarifas",
        selector='[id*="GridTarif"]',
        row_key_field="NomTarifa",
        # NomTarifa(0, read-only)
        column_index=MappingProxyType({
            "PVP_BI": 1,
            "PreuUnitari": 2,
            "MargenCompras": 3,
            "MargenVentas": 4,
        }),
    ),
})


def _suffix(field: str) -> str:
    return f'[id$="_{field}"]'


def _text(field: str) -> FieldDescriptor:
    return FieldDescriptor(field=field, section=SECTION_GENERAL, field_type=FieldType.TEXT, selector=_suffix(field))


def _checkbox(field: str) -> FieldDescriptor:
    return FieldDescriptor(
        field=field,
        section=SECTION_GENERAL,
        field_type=FieldType.CHECKBOX,
        selector=_suffix(field),
        mirror_selector=_suffix(f"{field}_hidden"),
    )


def _warehouse(row_key: str, column: str) -> FieldDescriptor:
    return FieldDescriptor(
        field=column,
        section=SECTION_WAREHOUSES,
        field_type=FieldType.GRID_CELL,
        grid=GridAddress(grid="almacenes", row_key=row_key, column=column),
    )


def _tariff(row_key: str, column: str) -> FieldDescriptor:
    return FieldDescriptor(
        field=column,
        section=SECTION_PRICES,
        field_type=FieldType.GRID_CELL,
        grid=GridAddress(grid="tarifas", row_key=row_key, column=column),
    )


_DESCRIPCION_1 = _text("Descripcio1")
_DESCRIPCION_2 = _text("Descripcio2")
_ACTIVO = _checkbox("Actiu")
_VISIBLE_VENTAS = _checkbox("ArticleVenta")
_VISIBLE_COMPRAS = _checkbox("ArticleCompra")
_SOLO_ESCANDALLO = _checkbox("ArticleVentaSoloEnEscandallo")

_SECCION = FieldDescriptor(
    field="Seccio.Id",
    section=SECTION_GENERAL,
    field_type=FieldType.DROPDOWN,
    selector=_suffix("Seccio_Id"),
    # IdSeccion is the select the Familia list actually cascades from
    mirror_selector=_suffix("IdSeccion"),
    cascade_root=True,
)
_FAMILIA = FieldDescriptor(
    field="IdFamilia",
    section=SECTION_GENERAL,
    field_type=FieldType.DROPDOWN,
    selector=_suffix("IdFamilia"),
    cascade_from="Seccio.Id",
    cascade_root=True,
)
_SUBFAMILIA = FieldDescriptor(
    field="IdSubfamilia",
    section=SECTION_GENERAL,
    field_type=FieldType.DROPDOWN,
    selector=_suffix("IdSubfamilia"),
    cascade_from="IdFamilia",
)
_MARCA = FieldDescriptor(
    field="IdMarca",
    section=SECTION_GENERAL,
    field_type=FieldType.DROPDOWN,
    selector='#IdMarca, [id$="_IdMarca"]',
)
_PESO_ENVASE = FieldDescriptor(
    field="PesoEnvase",
    section=SECTION_GENERAL,
    field_type=FieldType.NUMERIC,
    selector=_suffix("PesoEnvase"),
)
_PRECIO_MINIMO = FieldDescriptor(
    field="PrecioMinimo",
    section=SECTION_PRICES,
    field_type=FieldType.TEXT,
    selector=_suffix("PrecioMinimo"),
)
_UPC_BI = FieldDescriptor(
    field="UltimoPrecioCompra",
    section=SECTION_PRICES,
    field_type=FieldType.NUMERIC,
    selector=_suffix("UltimoPrecioCompra"),
)
_IMP_VENTAS = FieldDescriptor(
    field="IVA_Id",
    section=SECTION_PRICES,
    field_type=FieldType.DROPDOWN,
    selector=_suffix("IVA_Id"),
)
_IMP_COMPRAS = FieldDescriptor(
    field="IVACompra_Id",
    section=SECTION_PRICES,
    field_type=FieldType.DROPDOWN,
    selector=_suffix("IVACompra_Id"),
)
_OBSERVACIONES = FieldDescriptor(
    field="Observacions",
    section=SECTION_NOTES,
    field_type=FieldType.TEXTAREA,
    selector="#Observacions",
)

COLUMN_MAP: Mapping[str, FieldDescriptor] = MappingProxyType({
    # Datos generales - texto
    "DESCRIPCION": _DESCRIPCION_1,
    "Descripcion_1": _DESCRIPCION_1,
    "DESCRIPCION2": _DESCRIPCION_2,
    "Descripcion_2": _DESCRIPCION_2,
    "REFERENCIA": _text("Referencia"),
    "CODIGO BARRAS": _text("CodiBarres"),
    "CODIGO ALTERNATIVO": _text("CodigoAlternativo"),
    # Datos generales - checkboxes
    "ACTIVO": _ACTIVO,
    "Activo": _ACTIVO,
    "VISIBLE_VENTAS": _VISIBLE_VENTAS,
    "Visible_Ventas": _VISIBLE_VENTAS,
    "VISIBLE_COMPRAS": _VISIBLE_COMPRAS,
    "Visible_Compras": _VISIBLE_COMPRAS,
    "SOLO_ESCANDALLO": _SOLO_ESCANDALLO,
    "Solo_Escandallo": _SOLO_ESCANDALLO,
    # Datos generales - dropdowns (cascade: Seccion -> Familia -> Subfamilia)
    "SECCION": _SECCION,
    "Seccion": _SECCION,
    "FAMILIA": _FAMILIA,
    "Familia": _FAMILIA,
    "SUBFAMILIA": _SUBFAMILIA,
    "Subfamilia": _SUBFAMILIA,
    "MARCA": _MARCA,
    "Marca": _MARCA,
    # Datos generales - numeric
    "PESO ENVASE": _PESO_ENVASE,
    "Peso_Envase": _PESO_ENVASE,
    # Precios
    "P_MINIMO": _PRECIO_MINIMO,
    "P_Minimo": _PRECIO_MINIMO,
    "UPC_BI": _UPC_BI,
    "Upc_Bi": _UPC_BI,
    "IMP_VENTAS": _IMP_VENTAS,
    "Imp_Ventas": _IMP_VENTAS,
    "IMP_COMPRAS": _IMP_COMPRAS,
    "Imp_Compras": _IMP_COMPRAS,
    # Tarifas grid
    "Tarifa_Ord_PVP": _tariff("ordinaria", "PreuUnitari"),
    "Tarifa_Ord_MargenC": _tariff("ordinaria", "MargenCompras"),
    "Tarifa_Ord_MargenV": _tariff("ordinaria", "MargenVentas"),
    "Tarifa_PVP": _tariff("ordinaria", "PreuUnitari"),
    "Tarifa_MargenC": _tariff("ordinaria", "MargenCompras"),
    "Tarifa_MargenV": _tariff("ordinaria", "MargenVentas"),
    "Tarifa_Min_PVP": _tariff("minima", "PreuUnitari"),
    "Tarifa_Min_MargenC": _tariff("minima", "MargenCompras"),
    "Tarifa_Min_MargenV": _tariff("minima", "MargenVentas"),
    # Almacenes grid
    "Stock_Min_Harbor": _warehouse("HARBOR", "StockMinimo"),
    "Stock_Opt_Harbor": _warehouse("HARBOR", "StockMaximo"),
    "Compra_Min_Harbor": _warehouse("HARBOR", "CompraMinima"),
    "Stock_Min_Montejo": _warehouse("MONTEJO", "StockMinimo"),
    "Stock_Opt_Montejo": _warehouse("MONTEJO", "StockMaximo"),
    "Compra_Min_Montejo": _warehouse("MONTEJO", "CompraMinima"),
    "Stock_Min_Urban": _warehouse("URBAN", "StockMinimo"),
    "Stock_Opt_Urban": _warehouse("URBAN", "StockMaximo"),
    "Compra_Min_Urban": _warehouse("URBAN", "CompraMinima"),
    # Observaciones
    "Observaciones": _OBSERVACIONES,
    "OBSERVACIONES": _OBSERVACIONES,
})


class FieldRegistry(Mapping[str, FieldDescriptor]):
    """Read-only column -> descriptor mapping passed into the diff engine.

    Grid cell descriptors are validated against GRID_SPECS on construction so
    a typo in a column name fails at startup, not in the middle of a run.
    """

    def __init__(
        self,
        columns: Mapping[str, FieldDescriptor],
        grids: Mapping[str, GridSpec] = GRID_SPECS,
    ) -> None:
        for name, desc in columns.items():
            if desc.field_type is FieldType.GRID_CELL:
                if desc.grid is None:
                    raise ValueError(f"grid-cell column '{name}' lacks a grid address")
                spec = grids.get(desc.grid.grid)
                if spec is None or spec.index_of(desc.grid.column) is None:
                    raise ValueError(f"grid-cell column '{name}' has unknown address {desc.grid}")
            elif desc.selector is None:
                raise ValueError(f"column '{name}' lacks a selector")
        self._columns = MappingProxyType(dict(columns))
        self._grids = MappingProxyType(dict(grids))

    def __getitem__(self, column: str) -> FieldDescriptor:
        return self._columns[column]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def lookup(self, column: str) -> FieldDescriptor | None:
        return self._columns.get(column)

    def grid_spec(self, grid: str) -> GridSpec:
        return self._grids[grid]

    @property
    def grids(self) -> Mapping[str, GridSpec]:
        return self._grids


_DEFAULT: FieldRegistry | None = None


def default_registry() -> FieldRegistry:
    """Registry built from COLUMN_MAP (built once, shared read-only)."""
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = FieldRegistry(COLUMN_MAP)
    return _DEFAULT
