"""Legend contract per map layer."""
from __future__ import annotations

from html import escape
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from vigisaude.data.reference import ALERT_LEVELS, disease_info
from vigisaude.maps.layers import HEAT_STYLES, NO_DATA_FILL


class LegendItem(BaseModel):
    label: str
    color: str
    shape: str = Field("square", description="square | circle | gradient")


class Legend(BaseModel):
    layer: str
    title: str
    items: List[LegendItem] = Field(default_factory=list)
    note: Optional[str] = None

    def to_html(self) -> str:
        rows = []
        for item in self.items:
            radius = "50%" if item.shape == "circle" else "2px"
            rows.append(
                f'<div><i style="background:{item.color};width:12px;height:12px;display:inline-block;'
                f'border-radius:{radius};margin-right:6px"></i>{escape(item.label)}</div>'
            )
        note = f'<div style="margin-top:6px;opacity:.75">{escape(self.note)}</div>' if self.note else ""
        return (
            '<div style="position: fixed; bottom: 30px; left: 30px; z-index: 9999; '
            "background: rgba(15, 23, 42, 0.88); color: #e2e8f0; border: 1px solid rgba(148,163,184,.3); "
            'border-radius: 8px; padding: 10px 12px; font-size: 12px;">'
            f"<b>{escape(self.title)}</b>{''.join(rows)}{note}</div>"
        )


_SANITATION_BUCKETS = [
    ("#06b6d4", "≥ 80%"),
    ("#22d3ee", "60–79%"),
    ("#67e8f9", "40–59%"),
    ("#f59e0b", "20–39%"),
    ("#ef4444", "< 20%"),
]

_TREATMENT_BUCKETS = [
    ("#06b6d4", "≥ 70%"),
    ("#22d3ee", "55–69%"),
    ("#a3e635", "40–54%"),
    ("#f59e0b", "25–39%"),
    ("#ef4444", "< 25%"),
]


def legend_for(layer: str, disease: str, *, loaded_diseases: Iterable[str] = ()) -> Legend:
    """Legend shown for ``layer`` (``disease`` names the active disease)."""
    if layer == "heatmap":
        items = [
            LegendItem(label=disease_info(d).name, color=HEAT_STYLES[d].stops[1], shape="gradient")
            for d in HEAT_STYLES
            if d in set(loaded_diseases)
        ]
        return Legend(layer=layer, title="Mapa de Calor", items=items, note="Intensidade por nº de casos")

    if layer == "sewageCollection":
        items = [LegendItem(label=f"{label} Coleta de Esgoto" if i == 0 else label, color=c)
                 for i, (c, label) in enumerate(_SANITATION_BUCKETS)]
        return Legend(layer=layer, title="Coleta de Esgoto (SNIS)", items=items)

    if layer == "sewageTreatment":
        items = [LegendItem(label=f"{label} Tratamento de Esgoto" if i == 0 else label, color=c)
                 for i, (c, label) in enumerate(_SANITATION_BUCKETS)]
        return Legend(layer=layer, title="Tratamento de Esgoto (SNIS)", items=items)

    if layer == "sewageRelief":
        items = [LegendItem(label=label, color=c, shape="circle") for c, label in _TREATMENT_BUCKETS]
        return Legend(
            layer=layer,
            title="Relevo Sanitário",
            items=items,
            note="Tamanho = % coleta · Cor = % tratamento",
        )

    items = [
        LegendItem(label=f"Nível {lvl} — {info.label}", color=info.color_hex)
        for lvl, info in sorted(ALERT_LEVELS.items())
    ]
    items.append(LegendItem(label="Sem dados", color=NO_DATA_FILL))
    return Legend(layer="disease", title=f"Nível de Alerta · {disease_info(disease).name}", items=items)


__all__ = ["LegendItem", "Legend", "legend_for"]
