# src/vigisaude/webapp/app.py
"""
Streamlit web app: arbovirus surveillance dashboard for Brazil (PT-BR).

Features
--------
- Disease cards (dengue / chikungunya / zika) with alert level and stale-year flag
- National summary for the active disease (capitals' latest records)
- Layered map (alert choropleth, heatmap, SNIS sanitation, sanitation relief)
  with municipality drill-down when zoomed in
- Tracker: search municipalities, monthly cases × climate × sanitation chart
- Sanitation × incidence scatter for the capitals

Run:
  streamlit run src/vigisaude/webapp/app.py
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Optional

import streamlit as st
from dotenv import load_dotenv
from streamlit_folium import st_folium

# -----------------------------------------------------------------------------
# Bootstrap
# -----------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parents[3]
# carrega .env da raiz do projeto (não sobrescreve variáveis já exportadas)
load_dotenv(dotenv_path=PROJECT_ROOT / ".env", override=False, encoding="utf-8")

from vigisaude.analytics.charting import correlation_figure, scatter_figure  # noqa: E402
from vigisaude.dashboard.session import DashboardSession  # noqa: E402
from vigisaude.data.errors import FetchError, UnresolvableLocation  # noqa: E402
from vigisaude.data.reference import REGION_CHOICES, disease_info  # noqa: E402
from vigisaude.data.schemas import ReportingPeriod  # noqa: E402
from vigisaude.maps.canvas import Viewport  # noqa: E402
from vigisaude.maps.manager import MapLayer  # noqa: E402
from vigisaude.utils.config import LOG_LEVEL  # noqa: E402

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger(__name__)

st.set_page_config(
    page_title="VigiSaúde Brasil • Arboviroses",
    page_icon="🦟",
    layout="wide",
    menu_items={"Get Help": None, "Report a bug": None, "About": "VigiSaúde Brasil — InfoDengue, IBGE, SNIS"},
)

# Minimal CSS polish
st.markdown(
    """
    <style>
      .kpi-card { padding:16px; border-radius:16px; background:#0F172A; color:#E2E8F0; border:1px solid #1E293B; }
      .kpi-card.active { border-color:#38BDF8; }
      .kpi-value { font-size:1.6rem; font-weight:700; margin-top:4px; }
      .kpi-label { font-size:0.95rem; color:#94A3B8; }
      .kpi-note { font-size:0.8rem; color:#FBBF24; margin-top:4px; }
      .badge { border-radius:6px; padding:1px 8px; font-size:0.8rem; font-weight:600; color:#0F172A; }
    </style>
    """,
    unsafe_allow_html=True,
)

REGION_LABELS = {
    "all": "Brasil",
    "norte": "Norte",
    "nordeste": "Nordeste",
    "sudeste": "Sudeste",
    "sul": "Sul",
    "centro-oeste": "Centro-Oeste",
}

LAYER_LABELS = {
    MapLayer.DISEASE: "Nível de alerta",
    MapLayer.HEATMAP: "Mapa de calor",
    MapLayer.SEWAGE_COLLECTION: "Coleta de esgoto",
    MapLayer.SEWAGE_TREATMENT: "Tratamento de esgoto",
    MapLayer.SEWAGE_RELIEF: "Relevo sanitário",
}

# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def run(coro):
    """Drive one session coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


def fmt_int(value: Optional[int]) -> str:
    return "—" if value is None else f"{int(value):,}".replace(",", ".")


def kpi_card(label: str, value: str, *, note: Optional[str] = None, active: bool = False):
    """Render a KPI card with consistent style."""
    note_html = f'<div class="kpi-note">{note}</div>' if note else ""
    st.markdown(
        f"""
        <div class="kpi-card{' active' if active else ''}">
          <div class="kpi-label">{label}</div>
          <div class="kpi-value">{value}</div>
          {note_html}
        </div>
        """,
        unsafe_allow_html=True,
    )


def get_session() -> DashboardSession:
    if "session" not in st.session_state:
        session = DashboardSession()
        with st.spinner("Carregando dados do InfoDengue e IBGE…"):
            run(session.start())
        st.session_state.session = session
    return st.session_state.session


@st.cache_data(ttl=3600, show_spinner=False)
def search_options(query: str) -> list:
    """Municipality search results as (label, geocode) pairs."""
    session: DashboardSession = st.session_state.session
    try:
        refs = run(session.client.search_municipalities(query, limit=15))
    except FetchError as exc:
        log.warning("municipality search failed: %s", exc)
        return []
    return [(r.label, r.geocode) for r in refs]


# -----------------------------------------------------------------------------
# UI: header + sidebar
# -----------------------------------------------------------------------------

session = get_session()

st.title("VigiSaúde Brasil — Arboviroses")
st.caption("Dengue, chikungunya e zika nas capitais • InfoDengue + IBGE + SNIS")

with st.sidebar:
    st.header("Filtros")

    disease = st.radio(
        "Doença",
        list(session.diseases),
        index=session.diseases.index(session.active_disease),
        format_func=lambda d: disease_info(d).name,
        horizontal=True,
    )
    if disease != session.active_disease:
        with st.spinner(f"Carregando {disease_info(disease).name}…"):
            run(session.select_disease(disease))

    region = st.selectbox(
        "Região",
        list(REGION_CHOICES),
        index=list(REGION_CHOICES).index(session.active_region),
        format_func=lambda r: REGION_LABELS.get(r, r),
    )
    if region != session.active_region:
        session.select_region(region)

    layers = list(MapLayer)
    layer = st.radio(
        "Camada do mapa",
        layers,
        index=layers.index(session.map.state.active_layer),
        format_func=lambda lyr: LAYER_LABELS[lyr],
    )
    if layer is not session.map.state.active_layer:
        with st.spinner("Atualizando mapa…"):
            run(session.select_layer(layer))

    st.divider()
    st.subheader("Período (localidades)")
    p = session.period
    this_year = date.today().year
    c1, c2 = st.columns(2)
    with c1:
        week_start = st.number_input("SE inicial", 1, 53, p.week_start)
        year_start = st.number_input("Ano inicial", 2010, this_year, p.year_start)
    with c2:
        week_end = st.number_input("SE final", 1, 53, p.week_end)
        year_end = st.number_input("Ano final", 2010, this_year, p.year_end)
    if st.button("Aplicar período", use_container_width=True):
        try:
            period = ReportingPeriod(
                week_start=int(week_start), week_end=int(week_end),
                year_start=int(year_start), year_end=int(year_end),
            )
        except ValueError as exc:
            st.error(f"Período inválido: {exc}")
        else:
            with st.spinner("Recarregando localidades…"):
                run(session.set_period(period))

    st.divider()
    if st.button("Recarregar dados", use_container_width=True):
        session.reset()
        del st.session_state["session"]
        st.rerun()

# -----------------------------------------------------------------------------
# Disease cards
# -----------------------------------------------------------------------------

if len(session.national) < len(session.diseases):
    run(session.ensure_national())

cols = st.columns(len(session.diseases))
for col, card in zip(cols, session.disease_cards()):
    with col:
        badge = f'<span class="badge" style="background:{card.alert.color_hex}">{card.alert.label}</span>'
        note = f"⚠ Dados de {card.data_year}" if card.is_stale else None
        kpi_card(
            f"{card.name} {badge}",
            fmt_int(card.stats.total_cases) + " casos",
            note=note,
            active=card.is_active,
        )

# -----------------------------------------------------------------------------
# National summary (active disease)
# -----------------------------------------------------------------------------

stats = session.national_stats()
info = disease_info(session.active_disease)
st.markdown(f"### Resumo nacional — {info.name}")
if session.stale_note():
    st.warning(session.stale_note())

k1, k2, k3, k4 = st.columns(4)
with k1:
    kpi_card("Casos no ano (capitais)", fmt_int(stats.total_cases))
with k2:
    kpi_card("Capitais em alerta (nível ≥ 3)", fmt_int(stats.alert_city_count))
with k3:
    kpi_card("Rt médio", f"{stats.mean_reproduction_number:.2f}")
with k4:
    kpi_card("Semana mais recente", session.latest_week_label() or "—")

if session.last_updated is not None:
    st.caption(f"Atualizado em: **{session.last_updated:%d/%m/%Y %H:%M}**")

# -----------------------------------------------------------------------------
# Map
# -----------------------------------------------------------------------------

st.markdown("### Mapa")
if session.map_error:
    st.error(session.map_error)
else:
    if session.map.placeholder:
        st.info(session.map.placeholder)
    fmap = session.canvas.render(legend_html=session.map.legend.to_html())
    out = st_folium(fmap, key="mapa", height=560, use_container_width=True, returned_objects=["zoom", "bounds"])
    viewport = Viewport.from_st_folium(out)
    if viewport is not None and viewport != session.map.last_viewport:
        before = set(session.map.municipality_layers)
        run(session.on_viewport(viewport))
        if set(session.map.municipality_layers) != before:
            st.rerun()

st.divider()

# -----------------------------------------------------------------------------
# Tracker + charts
# -----------------------------------------------------------------------------

st.markdown("### Localidades")
query = st.text_input("Buscar município", placeholder="Ex.: Recife, Campinas - SP")
if query.strip():
    options = search_options(query.strip())
    if not options:
        st.info("Nenhum município encontrado.")
    else:
        label = st.selectbox("Resultados", [o[0] for o in options])
        if st.button("Adicionar"):
            try:
                added = run(session.add_location(label))
            except UnresolvableLocation as exc:
                st.error(str(exc))
            except FetchError as exc:
                st.error(f"Não foi possível carregar a série: {exc}")
            else:
                if not added:
                    st.info(f"{label} já está na lista.")

for loc in list(session.tracked):
    c_name, c_btn = st.columns([6, 1])
    c_name.markdown(f"**{loc.name}** · {len(loc.series)} semanas")
    if c_btn.button("Remover", key=f"rm-{loc.geocode}"):
        session.remove_location(loc.geocode)
        st.rerun()

lcol, rcol = st.columns([3, 2])
with lcol:
    series = session.correlation_series()
    if not series:
        st.info(session.chart_title())
    else:
        st.plotly_chart(correlation_figure(series, title=session.chart_title()), use_container_width=True)
with rcol:
    points = session.scatter_points()
    if not points:
        st.info("Sem dados para o gráfico.")
    else:
        st.plotly_chart(scatter_figure(points, session.active_disease), use_container_width=True)

with st.expander("Capitais (último registro)"):
    st.dataframe(session.capitals_frame(), use_container_width=True, hide_index=True)
