"""Covariance matrix adaptation evolution strategy (CMA-ES) over numeric spaces."""

from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np

from ...errors import ConfigurationError
from ...measures.base import Measure
from ..control import StrategyKind, TuneControl, TuneControlCMAES
from ..evaluation import TuneEvaluator
from ..opt_path import OptPath
from ..parameter_space import ParameterSpace
from .base import SearchStrategy, StrategyOutcome, StrategyRegistry, require_numeric_space


@StrategyRegistry.register
class CMAESStrategy(SearchStrategy):
    """
    Rank-based (mu/mu_w, lambda)-CMA-ES.

    The search runs in the unit cube; candidates are repaired by clipping to the box
    before evaluation, and integer or stepped parameters are snapped when mapped back. Each
    generation is one independent batch, so only candidates of the same generation are
    ever evaluated concurrently.
    """

    kind = StrategyKind.CMAES

    @classmethod
    def check_parameter_space(cls, par_set: ParameterSpace, control: TuneControl) -> None:
        assert isinstance(control, TuneControlCMAES)
        require_numeric_space("CMA-ES", par_set)
        if control.start is not None:
            par_set.validate(control.start)
        population = control.population_size or default_population_size(len(par_set))
        if control.budget is not None and control.budget < population:
            raise ConfigurationError(
                f"CMA-ES budget {control.budget} is smaller than one generation of {population} candidates"
            )

    def search(
        self,
        learner: Any,
        task: Any,
        resampling: Any,
        measures: Sequence[Measure],
        par_set: ParameterSpace,
        control: TuneControl,
        opt_path: OptPath,
        evaluate: TuneEvaluator,
    ) -> StrategyOutcome:
        assert isinstance(control, TuneControlCMAES)
        rng = np.random.default_rng(control.random_seed)
        primary = measures[0]
        lower, upper = par_set.bounds()
        span = np.where(upper > lower, upper - lower, 1.0)

        n = len(par_set)
        lam = control.population_size or default_population_size(n)
        mu = lam // 2
        weights = np.log(mu + 0.5) - np.log(np.arange(1, mu + 1))
        weights /= weights.sum()
        mueff = 1.0 / np.sum(weights**2)

        cc = (4 + mueff / n) / (n + 4 + 2 * mueff / n)
        cs = (mueff + 2) / (n + mueff + 5)
        c1 = 2 / ((n + 1.3) ** 2 + mueff)
        cmu = min(1 - c1, 2 * (mueff - 2 + 1 / mueff) / ((n + 2) ** 2 + mueff))
        damps = 1 + 2 * max(0.0, math.sqrt((mueff - 1) / (n + 1)) - 1) + cs
        chi_n = math.sqrt(n) * (1 - 1 / (4 * n) + 1 / (21 * n**2))

        if control.start is not None:
            mean = (par_set.to_vector(par_set.validate(control.start)) - lower) / span
        else:
            mean = np.full(n, 0.5)
        sigma = control.sigma
        pc = np.zeros(n)
        ps = np.zeros(n)
        basis = np.eye(n)
        scales = np.ones(n)
        cov = np.eye(n)
        inv_sqrt_cov = np.eye(n)

        budget = self.evaluation_budget(control, 100 * lam)
        max_generations = control.max_generations or budget // lam
        self.state.max_iterations = max_generations
        stop_reason = "budget"

        while self.state.iterations < max_generations:
            if self.budget_exhausted(evaluate, control) or evaluate.n_evaluations + lam > budget:
                stop_reason = "budget"
                break

            steps = rng.standard_normal((lam, n)) @ (basis * scales).T
            candidates = np.clip(mean + sigma * steps, 0.0, 1.0)
            configurations = [par_set.from_vector(lower + point * span) for point in candidates]
            outcomes = evaluate.evaluate_many(configurations)
            fitness = np.array([outcome.objective(primary) for outcome in outcomes])
            self.state.iterations += 1

            order = np.argsort(fitness, kind="stable")
            elite = candidates[order[:mu]]
            previous = mean
            mean = weights @ elite

            shift = (mean - previous) / sigma
            ps = (1 - cs) * ps + math.sqrt(cs * (2 - cs) * mueff) * (inv_sqrt_cov @ shift)
            generation_factor = 1 - (1 - cs) ** (2 * self.state.iterations)
            hsig = float(np.linalg.norm(ps) / math.sqrt(generation_factor) / chi_n < 1.4 + 2 / (n + 1))
            pc = (1 - cc) * pc + hsig * math.sqrt(cc * (2 - cc) * mueff) * shift

            deviations = (elite - previous) / sigma
            cov = (
                (1 - c1 - cmu) * cov
                + c1 * (np.outer(pc, pc) + (1 - hsig) * cc * (2 - cc) * cov)
                + cmu * deviations.T @ np.diag(weights) @ deviations
            )
            sigma *= math.exp((cs / damps) * (np.linalg.norm(ps) / chi_n - 1))

            cov = np.triu(cov) + np.triu(cov, 1).T
            eigenvalues, basis = np.linalg.eigh(cov)
            scales = np.sqrt(np.maximum(eigenvalues, 1e-20))
            inv_sqrt_cov = basis @ np.diag(1 / scales) @ basis.T

            if sigma * scales.max() < control.tolerance:
                stop_reason = "tolerance"
                break
        else:
            stop_reason = "max_generations"

        return self.best_outcome(
            opt_path,
            measures,
            {
                "generations": self.state.iterations,
                "population_size": lam,
                "final_sigma": float(sigma),
                "stop_reason": stop_reason,
            },
        )


def default_population_size(dimension: int) -> int:
    return 4 + int(3 * math.log(max(dimension, 1)))
