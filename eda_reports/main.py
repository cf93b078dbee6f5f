"""Run both exploratory reports end to end.

Each report is a fixed, parameter-free run from its literal source URL to
finished tables, trend models and figures.  Payloads are memoised in
memory for the life of the process so interactive sessions can reuse
them; nothing is written to disk.
"""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from typing import Callable, Dict

import pandas as pd

from .config import SHOW_FIGURES
from .covid import run_covid_report
from .errors import PipelineError
from .plotting import covid_figures, shootings_figures
from .shootings import run_shootings_report
from .trend import TrendModel

logger = logging.getLogger(__name__)

REPORTS: Dict[str, Callable[[], Dict[str, object]]] = {
    "shootings": run_shootings_report,
    "covid": run_covid_report,
}
FIGURE_BUILDERS: Dict[str, Callable[[dict], dict]] = {
    "shootings": shootings_figures,
    "covid": covid_figures,
}


def setup_logging(level: int = logging.INFO) -> None:
    """Configure the root logger once for command-line runs."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@lru_cache(maxsize=None)
def load_payload(report: str) -> Dict[str, object]:
    """Run a report once per process and reuse the result."""
    if report not in REPORTS:
        raise KeyError(f"Unknown report {report!r}; expected one of {list(REPORTS)}.")
    logger.info("Running %s report", report)
    return REPORTS[report]()


def summarize(report: str, payload: Dict[str, object]) -> None:
    """Print the shape of each table and the fitted trend coefficients."""
    print(f"\n--- {report.upper()} REPORT COMPLETE ---")
    for name, item in payload.items():
        if isinstance(item, pd.DataFrame):
            print(f"  {name}: {len(item):,} rows x {item.shape[1]} columns")
        elif isinstance(item, TrendModel):
            print(
                f"  {name}: {item.response} = {item.slope:.4g} * {item.predictor} "
                f"+ {item.intercept:.4g} (n={item.n_obs})"
            )


def main() -> int:
    """Run every report; a failed report does not stop the others."""
    setup_logging()
    failed = []
    for report in REPORTS:
        try:
            payload = load_payload(report)
        except PipelineError as exc:
            logger.error("%s report failed: %s", report, exc)
            failed.append(report)
            continue

        summarize(report, payload)
        figures = FIGURE_BUILDERS[report](payload)
        logger.info("Built %d figures for the %s report", len(figures), report)
        if SHOW_FIGURES:
            for fig in figures.values():
                fig.show()

    if failed:
        logger.error("Failed reports: %s", ", ".join(failed))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
