"""Command-line interface for mixqtl."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from mixqtl import __version__
from mixqtl.utils.config import Config, load_config
from mixqtl.utils.logging import get_logger, log_step, log_summary, setup_logging

console = Console()
logger = get_logger(__name__)


def print_banner() -> None:
    """Print application banner."""
    console.print(
        "\n[bold blue]mixqtl[/bold blue] "
        f"[dim]v{__version__}[/dim]\n"
    )


def fail(error: Exception, verbose: bool = False) -> None:
    """Report an error and exit with status 1."""
    console.print(f"[red]Error:[/red] {error}")
    if verbose:
        import traceback

        console.print(traceback.format_exc())
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="mixqtl")
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "--quiet", "-q",
    is_flag=True,
    help="Suppress non-error output.",
)
@click.option(
    "--log-file",
    type=click.Path(),
    help="Path to log file.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config: Optional[str],
    verbose: bool,
    quiet: bool,
    log_file: Optional[str],
) -> None:
    """
    mixqtl: read-count simulation and QTL scans.

    Simulate total and allele-specific RNA-seq read counts under a
    multi-SNP genetic-effect model, and run batched per-pair regressions
    between genotypes and phenotypes.
    """
    ctx.ensure_object(dict)

    ctx.obj["config"] = load_config(config)

    log_level = "DEBUG" if verbose else "WARNING" if quiet else "INFO"
    setup_logging(
        level=log_level,
        log_file=log_file,
        log_dir=ctx.obj["config"].pipeline.log_dir,
    )
    ctx.obj["verbose"] = verbose

    if not quiet:
        print_banner()


@main.command()
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    help="Output directory. Defaults to the configured output_dir.",
)
@click.option(
    "--n-individuals", "-n",
    type=int,
    help="Number of individuals.",
)
@click.option(
    "--n-variants", "-p",
    type=int,
    help="Number of variants.",
)
@click.option(
    "--read-length",
    type=int,
    help="Read length.",
)
@click.option(
    "--seed",
    type=int,
    help="Random seed.",
)
@click.pass_context
def simulate(
    ctx: click.Context,
    output_dir: Optional[str],
    n_individuals: Optional[int],
    n_variants: Optional[int],
    read_length: Optional[int],
    seed: Optional[int],
) -> None:
    """
    Simulate genotypes, causal effects and read counts.

    Writes haplotype dosages, the effect vector, and observed and hidden
    read counts as tab-separated tables.
    """
    import numpy as np
    import pandas as pd
    import yaml

    from mixqtl.simulation import (
        allele_frequencies,
        create_betas,
        create_gene,
        create_genotype,
        genetic_variance,
        simulate_read_count_multi,
    )
    from mixqtl.utils.io import ensure_directory, write_table

    config: Config = ctx.obj["config"]
    if n_individuals is not None:
        config.genotype.n_individuals = n_individuals
    if n_variants is not None:
        config.genotype.n_variants = n_variants
    if read_length is not None:
        config.reads.read_length = read_length
    if seed is not None:
        config.pipeline.random_seed = seed

    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Invalid configuration:[/red] {error}")
        sys.exit(1)

    try:
        log_step("Read Count Simulation", logger)
        out = ensure_directory(output_dir or config.pipeline.output_dir)
        rng = np.random.default_rng(config.pipeline.random_seed)

        gene = create_gene(
            gene_length=config.gene.gene_length,
            n_snps=config.gene.n_snps,
            snp_maf_range=config.gene.snp_maf_range,
            theta=config.gene.theta,
            library_dist=config.gene.library_dist,
            rng=rng,
        )
        genotype = create_genotype(
            config.genotype.n_individuals,
            config.genotype.n_variants,
            maf_range=config.genotype.maf_range,
            missing_rate=config.genotype.missing_rate,
            rng=rng,
        )
        maf = allele_frequencies(genotype)
        betas = create_betas(
            maf,
            config.effects.genetic_var_range,
            config.effects.ncausal_range,
            rng=rng,
        )
        simulation = simulate_read_count_multi(
            gene,
            genotype,
            betas,
            config.reads.read_length,
            config.reads.y_dist,
            seed=rng,
        )

        log_summary(
            "Simulation parameters",
            {
                "gene_length": gene.gene_length,
                "exonic_snps": gene.n_snps,
                "theta": type(gene.theta).__name__,
                "library_dist": type(gene.library_dist).__name__,
                "y_dist": config.reads.y_dist["type"],
                "seed": config.pipeline.random_seed,
            },
            logger,
        )

        samples = [f"IND_{i:04d}" for i in range(genotype.n_individuals)]
        variants = [f"var{p}" for p in range(genotype.n_variants)]

        write_table(pd.DataFrame(genotype.h1, index=samples, columns=variants), out / "h1.tsv")
        write_table(pd.DataFrame(genotype.h2, index=samples, columns=variants), out / "h2.tsv")
        write_table(
            pd.DataFrame(genotype.dosage(), index=samples, columns=variants),
            out / "dosage.tsv",
        )
        write_table(
            pd.DataFrame({"maf": maf, "beta": betas}, index=pd.Index(variants, name="variant_id")),
            out / "betas.tsv",
        )
        write_table(simulation.observed.set_axis(samples), out / "observed.tsv")
        write_table(simulation.hidden.set_axis(samples), out / "hidden.tsv")
        with open(out / "metadata.yaml", "w", encoding="utf-8") as f:
            yaml.safe_dump(simulation.metadata(), f, sort_keys=False)

        table = Table(title="Simulation Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")

        table.add_row("Individuals", f"{genotype.n_individuals:,}")
        table.add_row("Variants", f"{genotype.n_variants:,}")
        table.add_row("Causal variants", f"{int(np.count_nonzero(betas)):,}")
        table.add_row("Genetic variance", f"{genetic_variance(betas, maf):.4f}")
        table.add_row("Mean library size", f"{simulation.observed['library_size'].mean():.1f}")
        table.add_row("Mean total count", f"{simulation.observed['total_count'].mean():.1f}")
        table.add_row("Mean allele-specific count", (
            f"{(simulation.observed['y1'] + simulation.observed['y2']).mean():.1f}"
        ))

        console.print(table)
        console.print(f"\n[green]Output:[/green] {out}")

    except Exception as e:
        fail(e, ctx.obj.get("verbose", False))


@main.command()
@click.option(
    "--genotypes", "-g",
    type=click.Path(exists=True),
    required=True,
    help="Genotype matrix (samples x variants).",
)
@click.option(
    "--phenotypes", "-p",
    type=click.Path(exists=True),
    required=True,
    help="Phenotype matrix (samples x phenotypes).",
)
@click.option(
    "--phenotype-column",
    multiple=True,
    help="Phenotype column to test. May be repeated; defaults to all columns.",
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    default="results/scan",
    help="Output directory.",
)
@click.option(
    "--fdr-threshold",
    type=float,
    help="FDR threshold for significance.",
)
@click.option(
    "--fdr-method",
    type=click.Choice(["bh", "bonferroni", "storey"]),
    help="Multiple testing correction.",
)
@click.pass_context
def scan(
    ctx: click.Context,
    genotypes: str,
    phenotypes: str,
    phenotype_column: tuple[str, ...],
    output_dir: str,
    fdr_threshold: Optional[float],
    fdr_method: Optional[str],
) -> None:
    """
    Run a batched association scan.

    Regress every phenotype on every variant separately and write summary
    statistics.
    """
    from mixqtl.analysis import QTLScanResults, count_non_missing, matrixqtl_one_dim
    from mixqtl.utils.io import read_matrix

    config: Config = ctx.obj["config"]
    fdr_threshold = config.scan.fdr_threshold if fdr_threshold is None else fdr_threshold
    fdr_method = fdr_method or config.scan.fdr_method

    try:
        log_step("Association Scan", logger)
        geno_df = read_matrix(genotypes, "Genotype matrix")
        pheno_df = read_matrix(phenotypes, "Phenotype matrix")
        if phenotype_column:
            missing = [c for c in phenotype_column if c not in pheno_df.columns]
            if missing:
                raise click.BadParameter(f"Unknown phenotype column(s): {missing}")
            pheno_df = pheno_df[list(phenotype_column)]

        common_samples = sorted(set(geno_df.index) & set(pheno_df.index))
        if len(common_samples) == 0:
            raise ValueError("No common samples found between genotypes and phenotypes")
        logger.info(f"Using {len(common_samples)} common samples")

        x = geno_df.loc[common_samples].to_numpy(dtype=float)
        y = pheno_df.loc[common_samples].to_numpy(dtype=float)
        result = matrixqtl_one_dim(y, x, count_non_missing(y, x))

        handler = QTLScanResults.from_regression(
            result,
            variant_ids=[str(v) for v in geno_df.columns],
            phenotype_ids=[str(p) for p in pheno_df.columns],
            fdr_threshold=fdr_threshold,
            output_dir=output_dir,
        )
        handler.apply_fdr_correction(method=fdr_method)
        results_path = handler.save()
        report_path = handler.generate_report()

        summary = handler.summary
        table = Table(title="Association Scan Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")

        table.add_row("Samples", f"{len(common_samples):,}")
        table.add_row("Variants", f"{x.shape[1]:,}")
        table.add_row("Phenotypes", f"{y.shape[1]:,}")
        table.add_row("Pairs with defined estimates", f"{summary.tested_associations:,}")
        table.add_row("Significant associations", f"{summary.significant_associations:,}")
        table.add_row("FDR threshold", f"{summary.fdr_threshold}")

        console.print(table)
        console.print(f"\n[green]Results:[/green] {results_path}")
        console.print(f"[green]Report:[/green] {report_path}")

    except Exception as e:
        fail(e, ctx.obj.get("verbose", False))


@main.command()
@click.option(
    "--results", "-r",
    type=click.Path(exists=True),
    required=True,
    help="Summary statistics file from a scan.",
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(),
    default="results/summary",
    help="Output directory.",
)
@click.option(
    "--fdr-threshold",
    type=float,
    default=0.05,
    help="FDR threshold for significance.",
)
@click.option(
    "--fdr-method",
    type=click.Choice(["bh", "bonferroni", "storey"]),
    default="bh",
    help="Multiple testing correction.",
)
@click.pass_context
def summarize(
    ctx: click.Context,
    results: str,
    output_dir: str,
    fdr_threshold: float,
    fdr_method: str,
) -> None:
    """
    Summarize scan results.

    Apply multiple testing correction, report lead variants, and save
    significant associations.
    """
    from mixqtl.analysis import QTLScanResults

    try:
        handler = QTLScanResults(fdr_threshold=fdr_threshold, output_dir=output_dir)
        handler.load(results)
        handler.apply_fdr_correction(method=fdr_method)

        lead = handler.get_lead_variants()
        if len(lead) > 0:
            table = Table(title="Lead Variants")
            table.add_column("Phenotype", style="cyan")
            table.add_column("Variant")
            table.add_column("Slope", justify="right")
            table.add_column("q-value", justify="right")
            for _, row in lead.iterrows():
                table.add_row(
                    str(row["phenotype_id"]),
                    str(row["variant_id"]),
                    f"{row['slope']:.4f}",
                    f"{row['qval']:.3g}",
                )
            console.print(table)
        else:
            console.print(f"[yellow]No associations at FDR {fdr_threshold}[/yellow]")

        report_path = handler.generate_report()
        sig_path = handler.save(significant_only=True)
        console.print(f"\n[green]Report:[/green] {report_path}")
        console.print(f"[green]Significant results:[/green] {sig_path}")

    except Exception as e:
        fail(e, ctx.obj.get("verbose", False))


@main.command()
@click.option(
    "--output", "-o",
    type=click.Path(),
    default="config.yaml",
    help="Output configuration file path.",
)
def init_config(output: str) -> None:
    """
    Generate a default configuration file.

    Creates a YAML configuration file with all available options.
    """
    config = Config()
    config.save(output)
    console.print(f"[green]Configuration saved to:[/green] {Path(output)}")


if __name__ == "__main__":
    main()
