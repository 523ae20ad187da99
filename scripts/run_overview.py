# scripts/run_overview.py
from __future__ import annotations
import argparse
import asyncio
import logging
from datetime import date

from vigisaude.analytics.aggregation import aggregate_national, data_year, summaries_frame
from vigisaude.data.client import SurveillanceClient
from vigisaude.data.reference import classify_alert_level, disease_info
from vigisaude.utils.config import LOG_LEVEL, TRACKED_DISEASES


async def _overview(diseases):
    client = SurveillanceClient()
    results = await asyncio.gather(*(client.fetch_national_overview(d) for d in diseases))
    return dict(zip(diseases, results))


def main():
    parser = argparse.ArgumentParser(description="National arbovirus overview (capitals, InfoDengue).")
    parser.add_argument("--disease", default="all", choices=[*TRACKED_DISEASES, "all"], help="Disease to report.")
    parser.add_argument("--table", action="store_true", help="Also print the capitals' latest records.")
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    diseases = list(TRACKED_DISEASES) if args.disease == "all" else [args.disease]
    overview = asyncio.run(_overview(diseases))
    this_year = date.today().year

    for disease, summaries in overview.items():
        stats = aggregate_national(summaries)
        year = data_year(summaries)
        alert = classify_alert_level(stats.max_alert_level)
        stale = f"  ⚠ Dados de {year}" if year is not None and year < this_year else ""

        print(f"== {disease_info(disease).name} ({year}){stale}")
        print(f"   casos no ano (capitais): {stats.total_cases:,}".replace(",", "."))
        print(f"   Rt médio: {stats.mean_reproduction_number:.2f}")
        print(f"   capitais em alerta: {stats.alert_city_count}")
        print(f"   nível máximo: {stats.max_alert_level} ({alert.label})")
        if args.table:
            print(summaries_frame(summaries).to_string(index=False))
        print()

if __name__ == "__main__":
    main()
