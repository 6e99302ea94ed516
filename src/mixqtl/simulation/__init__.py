"""Read-count simulation under a multi-SNP genetic-effect model."""

from mixqtl.simulation.effects import create_betas, genetic_variance
from mixqtl.simulation.gene import GeneConfiguration, create_gene
from mixqtl.simulation.genotype import Genotype, allele_frequencies, create_genotype
from mixqtl.simulation.reads import read2data
from mixqtl.simulation.simulator import ReadCountSimulation, simulate_read_count_multi

__all__ = [
    "create_betas",
    "genetic_variance",
    "GeneConfiguration",
    "create_gene",
    "Genotype",
    "allele_frequencies",
    "create_genotype",
    "read2data",
    "ReadCountSimulation",
    "simulate_read_count_multi",
]
