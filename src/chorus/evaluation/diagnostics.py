"""
Convergence checks for a fitted trace.

ArviZ's diagnostic summary already labels vector elements as
``intercept[pop]``; the report splits those labels back into a variable
and a genre so problems can be read per genre.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Literal, Optional

import arviz as az
import pandas as pd

logger = logging.getLogger(__name__)

_LABEL = re.compile(r"^(?P<variable>[^\[]+)(?:\[(?P<genre>.+)\])?$")

DIAGNOSTIC_COLUMNS = ["variable", "genre", "r_hat", "ess_bulk", "ess_tail", "mcse_mean"]


@dataclass
class DiagnosticsReport:
    """Per-element convergence table plus sampler warning counts.

    ``table`` is indexed by the ArviZ element label and carries the
    ``variable`` and ``genre`` (``None`` for scalars) it was split into,
    together with ``r_hat``, ``ess_bulk``, ``ess_tail``, ``mcse_mean`` and
    a boolean ``flagged`` column.
    """

    table: pd.DataFrame
    n_chains: int
    divergences: int
    treedepth_hits: int
    overall_status: Literal["converged", "check", "failed"]
    notes: list[str] = field(default_factory=list)

    @property
    def flagged(self) -> list[str]:
        return self.table.index[self.table["flagged"].to_numpy()].tolist()

    def by_genre(self) -> pd.DataFrame:
        """Worst R-hat and smallest ESS over the coefficients of each genre."""
        grouped = self.table.dropna(subset=["genre"]).groupby("genre", sort=True)
        return grouped.agg(
            r_hat=("r_hat", "max"),
            ess_bulk=("ess_bulk", "min"),
            ess_tail=("ess_tail", "min"),
            n_flagged=("flagged", "sum"),
        )


def _split_label(label: str) -> tuple[str, Optional[str]]:
    match = _LABEL.match(label)
    if match is None:
        return label, None
    return match.group("variable"), match.group("genre")


def run_mcmc_diagnostics(
    trace: az.InferenceData,
    var_names: Optional[list[str]] = None,
    max_rhat: float = 1.05,
    min_ess_per_chain: int = 100,
) -> DiagnosticsReport:
    """Check R-hat, effective sample sizes and divergences.

    An element is flagged when its R-hat exceeds ``max_rhat`` or either
    ESS falls below ``min_ess_per_chain`` times the number of chains.
    Divergences or a flagged R-hat fail the report; low ESS or frequent
    tree-depth saturation only ask for a check.
    """
    summary = az.summary(trace, var_names=var_names, kind="diagnostics")
    n_chains = int(trace.posterior.sizes["chain"])
    min_ess = min_ess_per_chain * n_chains

    parts = [_split_label(label) for label in summary.index]
    table = pd.DataFrame(
        {
            "variable": [variable for variable, _ in parts],
            "genre": [genre for _, genre in parts],
            "r_hat": summary["r_hat"].to_numpy(),
            "ess_bulk": summary["ess_bulk"].to_numpy(),
            "ess_tail": summary["ess_tail"].to_numpy(),
            "mcse_mean": summary["mcse_mean"].to_numpy(),
        },
        index=summary.index,
        columns=DIAGNOSTIC_COLUMNS,
    )

    high_rhat = table["r_hat"] > max_rhat
    low_ess = (table["ess_bulk"] < min_ess) | (table["ess_tail"] < min_ess)
    table["flagged"] = high_rhat | low_ess

    divergences = _count_sample_stat(trace, "diverging")
    treedepth_hits = _count_sample_stat(trace, "reached_max_treedepth")
    n_draws = n_chains * int(trace.posterior.sizes["draw"])

    notes = []
    if divergences:
        notes.append(f"{divergences} divergent transitions")
    if high_rhat.any():
        labels = ", ".join(table.index[high_rhat.to_numpy()])
        notes.append(f"R-hat above {max_rhat} for {labels}")
    if low_ess.any():
        labels = ", ".join(table.index[low_ess.to_numpy()])
        notes.append(f"ESS below {min_ess} for {labels}")
    # More than 1% of draws hitting the tree-depth limit.
    if treedepth_hits * 100 > n_draws:
        notes.append(f"{treedepth_hits} draws reached the maximum tree depth")

    if divergences or high_rhat.any():
        status = "failed"
    elif notes:
        status = "check"
    else:
        status = "converged"

    if status != "converged":
        logger.warning("Convergence %s: %s", status, "; ".join(notes))

    return DiagnosticsReport(
        table=table,
        n_chains=n_chains,
        divergences=divergences,
        treedepth_hits=treedepth_hits,
        overall_status=status,
        notes=notes,
    )


def _count_sample_stat(trace: az.InferenceData, name: str) -> int:
    if "sample_stats" not in trace.groups():
        return 0
    stat = trace.sample_stats.get(name, None)
    if stat is None:
        return 0
    return int(stat.sum().values)


def format_diagnostics_report(report: DiagnosticsReport, model_name: str = "") -> str:
    header = f"Convergence: {report.overall_status}"
    if model_name:
        header = f"[{model_name}] {header}"

    lines = [
        header,
        f"  chains={report.n_chains}  divergences={report.divergences}  "
        f"max-treedepth hits={report.treedepth_hits}",
    ]

    scalars = report.table.loc[report.table["genre"].isna()]
    for label, row in scalars.iterrows():
        lines.append(
            f"  {label:<16} r_hat={row['r_hat']:.3f}  "
            f"ess_bulk={row['ess_bulk']:.0f}  ess_tail={row['ess_tail']:.0f}"
        )

    per_genre = report.by_genre()
    for genre, row in per_genre.iterrows():
        lines.append(
            f"  genre {genre:<10} worst r_hat={row['r_hat']:.3f}  "
            f"min ess={min(row['ess_bulk'], row['ess_tail']):.0f}  "
            f"flagged={int(row['n_flagged'])}"
        )

    for note in report.notes:
        lines.append(f"  ! {note}")

    return "\n".join(lines)
