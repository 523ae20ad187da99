# src/vigisaude/data/reference.py
"""Static reference tables: capitals, UF codes, regions, alert tiers, SNIS sanitation."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

from .errors import UnresolvableLocation
from .schemas import AlertInfo, DiseaseInfo, MunicipalityRef, SanitationRecord

# -----------------------------------------------------------------------------
# Federative units
# -----------------------------------------------------------------------------

UF_ABBREVIATIONS: Dict[int, str] = {
    11: "RO", 12: "AC", 13: "AM", 14: "RR", 15: "PA", 16: "AP", 17: "TO",
    21: "MA", 22: "PI", 23: "CE", 24: "RN", 25: "PB", 26: "PE", 27: "AL", 28: "SE", 29: "BA",
    31: "MG", 32: "ES", 33: "RJ", 35: "SP",
    41: "PR", 42: "SC", 43: "RS",
    50: "MS", 51: "MT", 52: "GO", 53: "DF",
}
UF_IDS: Tuple[int, ...] = tuple(sorted(UF_ABBREVIATIONS))
_UF_ID_BY_ABBR: Dict[str, int] = {abbr: uf_id for uf_id, abbr in UF_ABBREVIATIONS.items()}

REGIONS: Dict[str, Tuple[str, ...]] = {
    "norte": ("AC", "AM", "AP", "PA", "RO", "RR", "TO"),
    "nordeste": ("AL", "BA", "CE", "MA", "PB", "PE", "PI", "RN", "SE"),
    "sudeste": ("ES", "MG", "RJ", "SP"),
    "sul": ("PR", "RS", "SC"),
    "centro-oeste": ("DF", "GO", "MS", "MT"),
}
ALL_REGIONS = "all"
REGION_CHOICES: Tuple[str, ...] = (ALL_REGIONS, *REGIONS)

# [[south, west], [north, east]]
REGION_BOUNDS: Dict[str, Tuple[Tuple[float, float], Tuple[float, float]]] = {
    "all": ((-33.75, -73.99), (5.27, -34.79)),
    "norte": ((-3.0, -74.0), (5.3, -44.0)),
    "nordeste": ((-18.0, -49.0), (-1.0, -34.8)),
    "sudeste": ((-25.5, -53.5), (-14.0, -39.5)),
    "sul": ((-33.8, -57.7), (-22.5, -48.0)),
    "centro-oeste": ((-24.5, -61.5), (-5.5, -45.5)),
}

# Approximate (lat, lng) used to place markers and heat blobs.
UF_CENTROIDS: Dict[str, Tuple[float, float]] = {
    "AC": (-9.02, -70.81), "AL": (-9.57, -36.78), "AM": (-4.38, -65.00),
    "AP": (1.41, -51.77), "BA": (-12.96, -41.70), "CE": (-5.50, -39.32),
    "DF": (-15.83, -47.86), "ES": (-19.57, -40.67), "GO": (-15.83, -49.62),
    "MA": (-5.42, -45.44), "MG": (-18.51, -44.56), "MS": (-20.51, -54.54),
    "MT": (-12.98, -56.09), "PA": (-3.41, -52.29), "PB": (-7.24, -36.78),
    "PE": (-8.38, -37.86), "PI": (-7.72, -42.73), "PR": (-25.09, -51.50),
    "RJ": (-22.33, -42.70), "RN": (-5.81, -36.59), "RO": (-10.90, -62.00),
    "RR": (2.05, -61.38), "RS": (-30.17, -53.50), "SC": (-27.45, -50.95),
    "SE": (-10.57, -37.45), "SP": (-22.28, -48.56), "TO": (-10.17, -48.33),
}


def uf_abbreviation(uf_id: int) -> str:
    """IBGE UF code -> abbreviation ('' when unknown)."""
    return UF_ABBREVIATIONS.get(int(uf_id), "")


def uf_id(abbreviation: str) -> Optional[int]:
    return _UF_ID_BY_ABBR.get((abbreviation or "").strip().upper())


def resolve_region(uf: str) -> str:
    """UF abbreviation -> macro-region key ('all' when unknown)."""
    uf = (uf or "").strip().upper()
    for region, ufs in REGIONS.items():
        if uf in ufs:
            return region
    return ALL_REGIONS


# -----------------------------------------------------------------------------
# Capitals (national overview) and major cities (municipality drill-down)
# -----------------------------------------------------------------------------

CAPITALS: Tuple[MunicipalityRef, ...] = tuple(
    MunicipalityRef(geocode=g, name=n, uf=u)
    for n, g, u in [
        ("São Paulo", 3550308, "SP"),
        ("Rio de Janeiro", 3304557, "RJ"),
        ("Belo Horizonte", 3106200, "MG"),
        ("Salvador", 2927408, "BA"),
        ("Brasília", 5300108, "DF"),
        ("Fortaleza", 2304400, "CE"),
        ("Manaus", 1302603, "AM"),
        ("Curitiba", 4106902, "PR"),
        ("Recife", 2611606, "PE"),
        ("Goiânia", 5208707, "GO"),
        ("Belém", 1501402, "PA"),
        ("Porto Alegre", 4314902, "RS"),
        ("São Luís", 2111300, "MA"),
        ("Maceió", 2704302, "AL"),
        ("Campo Grande", 5002704, "MS"),
        ("Natal", 2408102, "RN"),
        ("Teresina", 2211001, "PI"),
        ("João Pessoa", 2507507, "PB"),
        ("Aracaju", 2800308, "SE"),
        ("Cuiabá", 5103403, "MT"),
        ("Florianópolis", 4205407, "SC"),
        ("Vitória", 3205309, "ES"),
        ("Porto Velho", 1100205, "RO"),
        ("Macapá", 1600303, "AP"),
        ("Rio Branco", 1200401, "AC"),
        ("Boa Vista", 1400100, "RR"),
        ("Palmas", 1721000, "TO"),
    ]
)

# ~10 largest cities per UF (keeps the bulk alert fetch small).
MAJOR_CITIES_BY_UF: Dict[int, Tuple[int, ...]] = {
    11: (1100205, 1100023, 1100015, 1100122, 1100114, 1100049, 1100304, 1100320, 1100155, 1100189),
    12: (1200401, 1200104, 1200203, 1200302, 1200500, 1200609, 1200138, 1200179, 1200013, 1200054),
    13: (1302603, 1302702, 1301902, 1303403, 1301100, 1301209, 1300706, 1302504, 1303536, 1300508),
    14: (1400100, 1400472, 1400233, 1400159, 1400050, 1400027, 1400282, 1400407, 1400456, 1400300),
    15: (1501402, 1500800, 1504208, 1505536, 1502301, 1502202, 1505502, 1500602, 1502764, 1501303),
    16: (1600303, 1600600, 1600154, 1600055, 1600105, 1600204, 1600279, 1600400, 1600212, 1600709),
    17: (1721000, 1702109, 1716109, 1713205, 1709500, 1718204, 1703826, 1710508, 1718840, 1708205),
    21: (2111300, 2105302, 2104800, 2100055, 2109106, 2103000, 2101400, 2108403, 2105153, 2112209),
    22: (2211001, 2211100, 2207702, 2205003, 2201200, 2207108, 2203503, 2207553, 2202109, 2205102),
    23: (2304400, 2304103, 2307304, 2309706, 2303709, 2305233, 2312908, 2306306, 2300200, 2305100),
    24: (2408102, 2408003, 2403251, 2412005, 2407104, 2402600, 2402006, 2400208, 2403103, 2412203),
    25: (2507507, 2504009, 2513703, 2510808, 2501807, 2516201, 2503209, 2503704, 2506301, 2515302),
    26: (2611606, 2607901, 2604106, 2609600, 2607208, 2610707, 2602902, 2605459, 2606101, 2604007),
    27: (2704302, 2700300, 2706307, 2704906, 2704708, 2702306, 2701506, 2703403, 2705200, 2702108),
    28: (2800308, 2802106, 2803500, 2804508, 2802502, 2801504, 2803609, 2800100, 2806701, 2802007),
    29: (2927408, 2910800, 2919207, 2905701, 2933307, 2918209, 2914802, 2930774, 2924009, 2907202),
    31: (3106200, 3170206, 3118601, 3136702, 3106705, 3137601, 3157807, 3122306, 3154606, 3131307),
    32: (3205309, 3205200, 3201308, 3205002, 3202405, 3200607, 3203205, 3205101, 3201209, 3203346),
    33: (3304557, 3302403, 3303302, 3302858, 3301702, 3301009, 3302007, 3301405, 3304904, 3300456),
    35: (3550308, 3518800, 3509502, 3524402, 3548500, 3547809, 3543402, 3552205, 3549805, 3534401),
    41: (4106902, 4113700, 4105805, 4109401, 4115200, 4104808, 4119905, 4125506, 4103404, 4108304),
    42: (4205407, 4209102, 4204202, 4202404, 4214805, 4208203, 4200705, 4206504, 4211306, 4205191),
    43: (4314902, 4303905, 4305108, 4316907, 4306106, 4310801, 4303103, 4313409, 4320008, 4318705),
    50: (5002704, 5003702, 5002502, 5008305, 5006200, 5007208, 5007109, 5003504, 5004403, 5005707),
    51: (5103403, 5108402, 5106422, 5107602, 5106224, 5103254, 5102678, 5103700, 5101902, 5107909),
    52: (5208707, 5201405, 5200050, 5211503, 5206206, 5219753, 5200258, 5209408, 5219712, 5220405),
    53: (5300108,),
}


def capitals() -> Tuple[MunicipalityRef, ...]:
    return CAPITALS


def major_cities(state_id: int) -> Tuple[int, ...]:
    return MAJOR_CITIES_BY_UF.get(int(state_id), ())


# -----------------------------------------------------------------------------
# Alert tiers and diseases
# -----------------------------------------------------------------------------

ALERT_LEVELS: Dict[int, AlertInfo] = {
    1: AlertInfo(level=1, label="Verde", color_token="--alert-green", css_class="badge--green", color_hex="#22c55e"),
    2: AlertInfo(level=2, label="Atenção", color_token="--alert-yellow", css_class="badge--yellow", color_hex="#eab308"),
    3: AlertInfo(level=3, label="Alerta", color_token="--alert-orange", css_class="badge--orange", color_hex="#f97316"),
    4: AlertInfo(level=4, label="Emergência", color_token="--alert-red", css_class="badge--red", color_hex="#ef4444"),
}


def classify_alert_level(level: Optional[int]) -> AlertInfo:
    """Alert tier metadata; anything outside 1..4 falls back to baseline (1)."""
    return ALERT_LEVELS.get(level if level is not None else 1, ALERT_LEVELS[1])


DISEASES: Dict[str, DiseaseInfo] = {
    "dengue": DiseaseInfo(key="dengue", name="Dengue", color_token="--color-dengue", color_hex="#f59e0b"),
    "chikungunya": DiseaseInfo(
        key="chikungunya", name="Chikungunya", color_token="--color-chikungunya", color_hex="#ec4899"
    ),
    "zika": DiseaseInfo(key="zika", name="Zika", color_token="--color-zika", color_hex="#8b5cf6"),
}


def disease_info(disease: str) -> DiseaseInfo:
    return DISEASES.get(disease, DISEASES["dengue"])


# Multi-series chart palette, assigned by tracker position.
CHART_COLORS: Tuple[str, ...] = (
    "#38bdf8", "#f59e0b", "#34d399", "#ec4899", "#a78bfa",
    "#fb923c", "#22d3ee", "#f472b6", "#4ade80", "#c084fc",
)


def chart_color(index: int) -> str:
    return CHART_COLORS[index % len(CHART_COLORS)]


# -----------------------------------------------------------------------------
# SNIS sanitation (reference year 2022/2023)
# Source: SNIS - Diagnóstico Temático Serviços de Água e Esgoto / Atlas Esgotos (ANA)
# -----------------------------------------------------------------------------

_SANITATION_ROWS: List[Tuple[str, str, float, float, float]] = [
    ("AC", "Acre", 14.4, 20.8, 0.663),
    ("AL", "Alagoas", 29.6, 30.1, 0.631),
    ("AM", "Amazonas", 14.2, 33.5, 0.674),
    ("AP", "Amapá", 6.1, 11.8, 0.708),
    ("BA", "Bahia", 35.8, 52.4, 0.660),
    ("CE", "Ceará", 29.9, 42.1, 0.682),
    ("DF", "Distrito Federal", 90.5, 82.3, 0.824),
    ("ES", "Espírito Santo", 57.4, 51.7, 0.740),
    ("GO", "Goiás", 58.0, 67.3, 0.735),
    ("MA", "Maranhão", 13.7, 17.8, 0.639),
    ("MG", "Minas Gerais", 71.4, 46.5, 0.731),
    ("MS", "Mato Grosso do Sul", 46.5, 62.8, 0.729),
    ("MT", "Mato Grosso", 36.2, 63.7, 0.725),
    ("PA", "Pará", 8.4, 15.2, 0.646),
    ("PB", "Paraíba", 36.7, 43.2, 0.658),
    ("PE", "Pernambuco", 32.8, 39.5, 0.673),
    ("PI", "Piauí", 12.8, 22.1, 0.646),
    ("PR", "Paraná", 74.4, 83.1, 0.749),
    ("RJ", "Rio de Janeiro", 65.3, 41.8, 0.761),
    ("RN", "Rio Grande do Norte", 26.9, 34.7, 0.684),
    ("RO", "Rondônia", 7.5, 13.9, 0.690),
    ("RR", "Roraima", 22.6, 41.2, 0.707),
    ("RS", "Rio Grande do Sul", 33.2, 44.6, 0.746),
    ("SC", "Santa Catarina", 30.8, 46.2, 0.774),
    ("SE", "Sergipe", 23.0, 36.8, 0.665),
    ("SP", "São Paulo", 89.6, 73.4, 0.783),
    ("TO", "Tocantins", 27.4, 55.3, 0.699),
]

SANITATION: Dict[str, SanitationRecord] = {
    uf: SanitationRecord(
        uf=uf,
        name=name,
        sewage_collection_pct=collection,
        sewage_treatment_pct=treatment,
        human_development_index=hdi,
    )
    for uf, name, collection, treatment, hdi in _SANITATION_ROWS
}


def get_sanitation_table() -> Mapping[str, SanitationRecord]:
    """UF -> SanitationRecord (static, sorted by UF)."""
    return SANITATION


def state_name(uf: str) -> str:
    record = SANITATION.get(uf)
    return record.name if record else uf


def parse_location_label(label: str) -> Tuple[str, str]:
    """Split a ``"<City> - <UF>"`` label into ``(city, UF)``.

    Raises:
        UnresolvableLocation: If the label has no known UF suffix.
    """
    city, sep, uf = (label or "").rpartition(" - ")
    uf = uf.strip().upper()
    if not sep or not city.strip() or uf not in _UF_ID_BY_ABBR:
        raise UnresolvableLocation(label)
    return city.strip(), uf
