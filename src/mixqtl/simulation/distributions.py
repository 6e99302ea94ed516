"""Distribution models used by the read-count simulator.

Each configuration axis is a closed set of frozen dataclasses:

- abundance noise ``theta``: :class:`BetaTheta`, :class:`LognormalTheta`
- library size: :class:`PoissonLibrary`, :class:`NegativeBinomialLibrary`
- haplotype read count ``y_dist``: :class:`PoissonReads`,
  :class:`LognormalReads`, :class:`NegativeBinomialReads`

Models are usually built from tagged mappings such as
``{"type": "beta", "alpha": 2, "beta": 8}`` via the ``parse_*`` functions.
Every dispatch ends in a :class:`ConfigurationError` for unknown models.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Union

import numpy as np

from mixqtl.utils.validators import ConfigurationError

ProbabilityFn = Callable[[float], float]


@dataclass(frozen=True)
class BetaTheta:
    """Abundance noise theta ~ Beta(alpha, beta)."""

    alpha: float
    beta: float

    def __post_init__(self) -> None:
        if self.alpha <= 0 or self.beta <= 0:
            raise ConfigurationError("beta theta requires alpha > 0 and beta > 0")


@dataclass(frozen=True)
class LognormalTheta:
    """Abundance noise theta ~ LogNormal(k, sqrt(sigma)); ``sigma`` is a variance."""

    k: float
    sigma: float

    def __post_init__(self) -> None:
        if self.sigma < 0:
            raise ConfigurationError("lognormal theta requires sigma >= 0")


@dataclass(frozen=True)
class PoissonLibrary:
    """Library size ~ Poisson(lam)."""

    lam: float

    def __post_init__(self) -> None:
        if self.lam < 0:
            raise ConfigurationError("poisson library size requires lambda >= 0")


@dataclass(frozen=True)
class NegativeBinomialLibrary:
    """Library size ~ NegBin(size, prob), failures before ``size`` successes."""

    prob: float
    size: float

    def __post_init__(self) -> None:
        if not 0 < self.prob <= 1:
            raise ConfigurationError("negative binomial library size requires 0 < prob <= 1")
        if self.size <= 0:
            raise ConfigurationError("negative binomial library size requires size > 0")


@dataclass(frozen=True)
class PoissonReads:
    """Haplotype read count ~ Poisson(T * theta')."""


@dataclass(frozen=True)
class LognormalReads:
    """Haplotype read count = round(T * theta' * LogNormal(0, sigma / sqrt(T)))."""

    sigma: float

    def __post_init__(self) -> None:
        if self.sigma < 0:
            raise ConfigurationError("lognormal read distribution requires sigma >= 0")


@dataclass(frozen=True)
class NegativeBinomialReads:
    """
    Haplotype read count ~ NegBin(size_factor * T * theta', prob).

    ``prob`` is either a constant or a function of the realized size
    parameter, evaluated once per draw.
    """

    size_factor: float
    prob: float | ProbabilityFn

    def __post_init__(self) -> None:
        if self.size_factor <= 0:
            raise ConfigurationError("negative binomial reads require size_factor > 0")
        if not callable(self.prob) and not 0 < self.prob <= 1:
            raise ConfigurationError("negative binomial reads require 0 < prob <= 1")

    def probability(self, size: float) -> float:
        """Probability parameter for a draw with the given size parameter."""
        prob = float(self.prob(size)) if callable(self.prob) else float(self.prob)
        if not 0 < prob <= 1:
            raise ConfigurationError(
                f"negative binomial probability must lie in (0, 1], got {prob} for size {size}"
            )
        return prob


ThetaModel = Union[BetaTheta, LognormalTheta]
LibraryModel = Union[PoissonLibrary, NegativeBinomialLibrary]
ReadModel = Union[PoissonReads, LognormalReads, NegativeBinomialReads]


def _require(spec: Mapping[str, Any], keys: tuple[str, ...], axis: str) -> list[Any]:
    missing = [key for key in keys if key not in spec]
    if missing:
        raise ConfigurationError(
            f"{axis} of type '{spec['type']}' is missing parameter(s): {', '.join(missing)}"
        )
    return [spec[key] for key in keys]


def _number(value: Any, key: str, axis: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{axis} parameter '{key}' must be a number, got {value!r}") from e


def _type_tag(spec: Mapping[str, Any], axis: str) -> str:
    if not isinstance(spec, Mapping):
        raise ConfigurationError(f"{axis} must be a mapping with a 'type' field, got {spec!r}")
    if "type" not in spec:
        raise ConfigurationError(f"{axis} specification has no 'type' field: {dict(spec)}")
    return str(spec["type"]).lower()


def parse_theta(spec: ThetaModel | Mapping[str, Any]) -> ThetaModel:
    """Build an abundance-noise model from a tagged mapping."""
    if isinstance(spec, (BetaTheta, LognormalTheta)):
        return spec

    kind = _type_tag(spec, "theta")
    if kind == "beta":
        alpha, beta = _require(spec, ("alpha", "beta"), "theta")
        return BetaTheta(alpha=_number(alpha, "alpha", "theta"), beta=_number(beta, "beta", "theta"))
    elif kind == "lognormal":
        k, sigma = _require(spec, ("k", "sigma"), "theta")
        return LognormalTheta(k=_number(k, "k", "theta"), sigma=_number(sigma, "sigma", "theta"))
    raise ConfigurationError(f"Unknown theta type: '{spec['type']}' (expected beta or lognormal)")


def parse_library_dist(spec: LibraryModel | Mapping[str, Any]) -> LibraryModel:
    """Build a library-size model from a tagged mapping."""
    if isinstance(spec, (PoissonLibrary, NegativeBinomialLibrary)):
        return spec

    kind = _type_tag(spec, "library_dist")
    if kind == "poisson":
        (lam,) = _require(spec, ("lambda",), "library_dist")
        return PoissonLibrary(lam=_number(lam, "lambda", "library_dist"))
    elif kind in ("negbinom", "negative-binomial", "negative_binomial"):
        prob, size = _require(spec, ("prob", "size"), "library_dist")
        return NegativeBinomialLibrary(
            prob=_number(prob, "prob", "library_dist"),
            size=_number(size, "size", "library_dist"),
        )
    raise ConfigurationError(
        f"Unknown library_dist type: '{spec['type']}' (expected poisson or negbinom)"
    )


def parse_read_dist(spec: ReadModel | Mapping[str, Any]) -> ReadModel:
    """
    Build a haplotype read-count model from a tagged mapping.

    For ``negbinom`` the ``prob`` entry may be a number or a callable taking
    the size parameter.
    """
    if isinstance(spec, (PoissonReads, LognormalReads, NegativeBinomialReads)):
        return spec

    kind = _type_tag(spec, "y_dist")
    if kind == "poisson":
        return PoissonReads()
    elif kind == "lognormal":
        (sigma,) = _require(spec, ("sigma",), "y_dist")
        return LognormalReads(sigma=_number(sigma, "sigma", "y_dist"))
    elif kind in ("negbinom", "negative-binomial", "negative_binomial"):
        size_factor, prob = _require(spec, ("size_factor", "prob"), "y_dist")
        prob = prob if callable(prob) else _number(prob, "prob", "y_dist")
        return NegativeBinomialReads(size_factor=_number(size_factor, "size_factor", "y_dist"), prob=prob)
    raise ConfigurationError(
        f"Unknown y_dist type: '{spec['type']}' (expected poisson, lognormal or negbinom)"
    )


def draw_theta(model: ThetaModel, rng: np.random.Generator) -> float:
    """Draw one individual-level abundance-noise multiplier."""
    if isinstance(model, BetaTheta):
        return float(rng.beta(model.alpha, model.beta))
    elif isinstance(model, LognormalTheta):
        return float(rng.lognormal(model.k, math.sqrt(model.sigma)))
    raise ConfigurationError(f"Unsupported theta model: {model!r}")


def draw_library_size(model: LibraryModel, rng: np.random.Generator) -> int:
    """Draw one individual library size."""
    if isinstance(model, PoissonLibrary):
        return int(rng.poisson(model.lam))
    elif isinstance(model, NegativeBinomialLibrary):
        return int(rng.negative_binomial(model.size, model.prob))
    raise ConfigurationError(f"Unsupported library_dist model: {model!r}")


def draw_read_count(
    model: ReadModel,
    library_size: int,
    abundance: float,
    rng: np.random.Generator,
) -> int:
    """
    Draw one haplotype read count given library size and relative abundance.

    An empty library or a zero mean gives a zero count.
    """
    mean = library_size * abundance

    if isinstance(model, PoissonReads):
        return int(rng.poisson(mean))
    elif isinstance(model, LognormalReads):
        if library_size <= 0:
            return 0
        noise = rng.lognormal(0.0, model.sigma / math.sqrt(library_size))
        # np.rint rounds half to even
        return int(np.rint(mean * noise))
    elif isinstance(model, NegativeBinomialReads):
        size = model.size_factor * mean
        if size <= 0:
            return 0
        return int(rng.negative_binomial(size, model.probability(size)))
    raise ConfigurationError(f"Unsupported y_dist model: {model!r}")


def theta_scale(model: ThetaModel) -> float:
    """Log-scale standard deviation of theta (``sigma0``), NaN when undefined."""
    if isinstance(model, BetaTheta):
        return math.nan
    elif isinstance(model, LognormalTheta):
        return math.sqrt(model.sigma)
    raise ConfigurationError(f"Unsupported theta model: {model!r}")


def read_scale(model: ReadModel) -> float:
    """Scale parameter of the read-count model (``sigma``), NaN when undefined."""
    if isinstance(model, PoissonReads):
        return 1.0
    elif isinstance(model, LognormalReads):
        return model.sigma
    elif isinstance(model, NegativeBinomialReads):
        return math.nan
    raise ConfigurationError(f"Unsupported y_dist model: {model!r}")
