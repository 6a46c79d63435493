import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

app = typer.Typer(
    name="chorus",
    help="Chorus: Bayesian models of song popularity by genre",
    add_completion=False,
)

console = Console()


class ModelType(str, Enum):
    pooled = "pooled"
    unpooled = "unpooled"
    hierarchical = "hierarchical"


@app.callback()
def setup(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging"
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    # PyMC logs every sampler step choice at INFO
    logging.getLogger("pymc").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _save_or_show(figures: dict, output_dir: Optional[Path], prefix: str) -> None:
    import matplotlib.pyplot as plt

    if output_dir is None:
        plt.show()
        return

    output_dir.mkdir(exist_ok=True, parents=True)
    for name, fig in figures.items():
        path = output_dir / f"{prefix}_{name}.png"
        fig.savefig(path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        console.print(f"   [dim]{path}[/dim]")


def _sampler_config(draws, n_adapt, n_burnin, chains, target_accept, seed):
    from chorus.config import SamplerConfig

    return SamplerConfig(
        draws=draws,
        n_adapt=n_adapt,
        n_burnin=n_burnin,
        chains=chains,
        target_accept=target_accept,
        random_seed=seed,
        progressbar=True,
    )


@app.command()
def generate(
    output_dir: Path = typer.Option(
        Path("data/"), "--output", "-o", help="Output directory for generated data"
    ),
    n_songs: int = typer.Option(100, "--songs", "-n", help="Number of songs"),
    genres: str = typer.Option(
        "pop,rock", "--genres", "-g", help="Comma-separated genre labels"
    ),
    seed: int = typer.Option(
        42, "--seed", "-s", help="Random seed for reproducibility"
    ),
) -> None:
    """Write a synthetic song table in the input format."""
    from chorus.data.synthetic import (
        SyntheticSongConfig,
        generate_synthetic_songs,
        save_synthetic_songs,
    )

    labels = [g.strip() for g in genres.split(",") if g.strip()]
    if not labels:
        console.print("[red]At least one genre label is required.[/red]")
        raise typer.Exit(1)

    config = SyntheticSongConfig(n_songs=n_songs, genres=labels, random_seed=seed)
    df = generate_synthetic_songs(config)
    path = save_synthetic_songs(df, output_dir=str(output_dir))

    console.print(f"\n[green]Saved {len(df)} songs to {path}[/green]\n")


@app.command()
def explore(
    data_path: Path = typer.Argument(
        ..., help="Path to the semicolon-separated song table", exists=True
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Directory for figures (shown if omitted)"
    ),
    sep: str = typer.Option(";", "--sep", help="Column delimiter"),
) -> None:
    """Genre counts and feature distributions of the cleaned table."""
    from chorus.config import CleaningConfig
    from chorus.data.loading import clean_songs, load_songs
    from chorus.exceptions import DataValidationError
    from chorus.visualization import (
        genre_counts,
        plot_feature_histograms,
        plot_genre_boxplots,
    )

    try:
        raw = load_songs(data_path, sep=sep)
        data = clean_songs(raw, CleaningConfig(sep=sep, allow_single_genre=True))
    except DataValidationError as e:
        console.print(f"[red]Validation failed: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(
        f"\nKept [bold]{data.n_obs}[/bold] of {data.n_raw} songs "
        f"(Length within [{data.percentile_bounds[0]:.1f}, "
        f"{data.percentile_bounds[1]:.1f}])\n"
    )

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Genre", style="dim")
    table.add_column("Index", justify="right")
    table.add_column("Songs", justify="right")

    counts = genre_counts(data.frame)
    for idx, genre in enumerate(data.genres, start=1):
        table.add_row(genre, str(idx), str(int(counts[genre])))

    console.print(table)
    console.print()

    figures = {
        f"hist_{k}": v for k, v in plot_feature_histograms(data.frame).items()
    }
    figures.update(
        {f"box_{k}": v for k, v in plot_genre_boxplots(data.frame).items()}
    )
    _save_or_show(figures, output_dir, "explore")


@app.command()
def fit(
    data_path: Path = typer.Argument(
        ..., help="Path to the semicolon-separated song table", exists=True
    ),
    model_type: ModelType = typer.Option(
        ModelType.hierarchical, "--model", "-m", help="Model architecture to fit"
    ),
    draws: int = typer.Option(
        5000, "--draws", "-d", help="Number of posterior draws per chain"
    ),
    n_adapt: int = typer.Option(1000, "--adapt", help="Adaptation steps"),
    n_burnin: int = typer.Option(1000, "--burnin", help="Burn-in steps"),
    chains: int = typer.Option(3, "--chains", "-c", help="Number of MCMC chains"),
    target_accept: float = typer.Option(
        0.9, "--target-accept", help="Target acceptance rate"
    ),
    sep: str = typer.Option(";", "--sep", help="Column delimiter"),
    seed: int = typer.Option(42, "--seed", "-s", help="Random seed"),
    allow_single_genre: bool = typer.Option(
        False, "--allow-single-genre", help="Fit genre models on one genre"
    ),
    plots: bool = typer.Option(
        False, "--plots/--no-plots", help="Draw posterior histograms and traces"
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Directory for the trace and figures"
    ),
) -> None:
    """Fit one model and report diagnostics and posterior summaries."""
    from chorus.config import CleaningConfig
    from chorus.data.loading import clean_songs, load_songs
    from chorus.evaluation import (
        compute_dic,
        format_diagnostics_report,
        run_mcmc_diagnostics,
        summarize_posterior,
    )
    from chorus.exceptions import ChorusError
    from chorus.models import fit_model, get_model_spec

    spec = get_model_spec(model_type.value)

    try:
        sampler = _sampler_config(draws, n_adapt, n_burnin, chains, target_accept, seed)
        cleaning = CleaningConfig(sep=sep, allow_single_genre=allow_single_genre)
        data = clean_songs(load_songs(data_path, sep=sep), cleaning)

        console.print(
            f"\nFitting [bold]{spec.name}[/bold] model on {data.n_obs} songs, "
            f"{data.n_genres} genres"
        )
        console.print(
            f"Sampling ({sampler.draws} draws x {sampler.chains} chains, "
            f"{sampler.tune} tuning steps)\n"
        )

        result = fit_model(
            spec, data, config=sampler, allow_single_genre=allow_single_genre
        )
        dic = compute_dic(result.trace, data, model_name=spec.name)
    except (ChorusError, ValidationError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    report = run_mcmc_diagnostics(result.trace, var_names=result.monitored)
    console.print(escape(format_diagnostics_report(report, model_name=spec.name)))

    summary = summarize_posterior(result.trace, var_names=result.monitored)
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Parameter", style="dim")
    for col in summary.columns:
        table.add_column(col, justify="right")
    for param, row in summary.iterrows():
        table.add_row(str(param), *(f"{v:.3f}" for v in row.values))

    console.print()
    console.print(table)
    console.print(
        f"\nDIC = [bold]{dic.dic:.2f}[/bold] "
        f"(D(theta_bar) = {dic.deviance_at_mean:.2f}, p_DIC = {dic.p_dic:.2f})\n"
    )

    if output_dir is not None:
        output_dir.mkdir(exist_ok=True, parents=True)
        trace_path = output_dir / f"{spec.name}_trace.nc"
        result.trace.to_netcdf(trace_path)
        console.print(f"[green]Trace saved to {trace_path}[/green]\n")

    if plots:
        from chorus.visualization import plot_posterior_histograms, plot_traces

        figures = {
            f"posterior_{k}": v
            for k, v in plot_posterior_histograms(result.trace, result.monitored).items()
        }
        figures.update(
            {
                f"trace_{k}": v
                for k, v in plot_traces(result.trace, result.monitored).items()
            }
        )
        _save_or_show(figures, output_dir, spec.name)


@app.command()
def compare(
    data_path: Path = typer.Argument(
        ..., help="Path to the semicolon-separated song table", exists=True
    ),
    draws: int = typer.Option(
        5000, "--draws", "-d", help="Number of posterior draws per chain"
    ),
    n_adapt: int = typer.Option(1000, "--adapt", help="Adaptation steps"),
    n_burnin: int = typer.Option(1000, "--burnin", help="Burn-in steps"),
    chains: int = typer.Option(3, "--chains", "-c", help="Number of MCMC chains"),
    target_accept: float = typer.Option(
        0.9, "--target-accept", help="Target acceptance rate"
    ),
    sep: str = typer.Option(";", "--sep", help="Column delimiter"),
    seed: int = typer.Option(42, "--seed", "-s", help="Random seed"),
    allow_single_genre: bool = typer.Option(
        False, "--allow-single-genre", help="Fit genre models on one genre"
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Directory for the DIC table and figure"
    ),
) -> None:
    """Fit all three models and rank them by DIC."""
    import matplotlib.pyplot as plt

    from chorus.config import CleaningConfig
    from chorus.exceptions import ChorusError
    from chorus.pipeline import run_analysis
    from chorus.visualization import plot_model_comparison

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Fitting pooled, unpooled and hierarchical models...", total=None)
        try:
            sampler = _sampler_config(
                draws, n_adapt, n_burnin, chains, target_accept, seed
            )
            result = run_analysis(
                data_path,
                cleaning=CleaningConfig(sep=sep, allow_single_genre=allow_single_genre),
                sampler=sampler.model_copy(update={"progressbar": False}),
            )
        except (ChorusError, ValidationError) as e:
            progress.stop()
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(1)

    for name, error in result.failures.items():
        console.print(f"[yellow]{name} skipped: {escape(str(error))}[/yellow]")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Rank", justify="right")
    table.add_column("Model", style="dim")
    table.add_column("DIC", justify="right")
    table.add_column("D(theta_bar)", justify="right")
    table.add_column("p_DIC", justify="right")

    for _, row in result.comparison.iterrows():
        table.add_row(
            str(int(row["rank"])),
            str(row["Model"]),
            f"{row['DIC']:.2f}",
            f"{row['deviance_at_mean']:.2f}",
            f"{row['p_DIC']:.2f}",
        )

    console.print()
    console.print(table)
    console.print(f"\n[green]Best model: {result.best_model}[/green]\n")

    if output_dir is not None:
        output_dir.mkdir(exist_ok=True, parents=True)
        table_path = output_dir / "dic_comparison.csv"
        result.comparison.to_csv(table_path, index=False)
        console.print(f"[green]DIC table saved to {table_path}[/green]")

        fig = plot_model_comparison(result.comparison)
        fig.savefig(output_dir / "dic_comparison.png", dpi=150, bbox_inches="tight")
        plt.close(fig)


@app.command()
def info() -> None:
    """Describe the available models and their priors."""
    from chorus.config import PriorConfig, SamplerConfig
    from chorus.models import MODEL_SPECS

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Model", style="dim")
    table.add_column("Description")
    table.add_column("Monitored")

    for spec in MODEL_SPECS.values():
        table.add_row(spec.name, spec.description, ", ".join(spec.monitored))

    console.print()
    console.print(table)

    priors = PriorConfig()
    sampler = SamplerConfig()
    console.print("\n[bold]Priors[/bold]")
    console.print(f"  intercept ~ Normal({priors.intercept_mu}, sd={priors.intercept_sigma})")
    console.print(f"  slopes    ~ Normal({priors.slope_mu}, sd={priors.slope_sigma})")
    console.print(
        f"  sigma     ~ LogNormal({priors.noise_log_mu}, {priors.noise_log_sigma})"
    )
    console.print("\n[bold]Sampler[/bold]")
    console.print(
        f"  {sampler.chains} chains, {sampler.n_adapt} adapt + {sampler.n_burnin} "
        f"burn-in, {sampler.draws} draws kept\n"
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
