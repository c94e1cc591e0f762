# local/matrix.py
from __future__ import annotations

import itertools
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..host import BuildListener
from ..matrix import MatrixAggregatable, MatrixAggregator, MatrixBuild, MatrixRun
from ..model import Result
from .build import LocalBuild, LocalProject
from .store import BuildStore


@dataclass(eq=False)
class LocalMatrixRun(LocalBuild, MatrixRun):
    """One axis combination of a matrix build."""
    combination: Dict[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class LocalMatrixBuild(LocalBuild, MatrixBuild):
    """Parent of a matrix build; its work is done by the runs."""
    runs: Dict[Tuple[Tuple[str, str], ...], LocalMatrixRun] = field(default_factory=dict)

    def get_run(self, combination: Dict[str, str]) -> Optional[LocalMatrixRun]:
        return self.runs.get(combination_key(combination))


def combination_key(combination: Dict[str, str]) -> Tuple[Tuple[str, str], ...]:
    return tuple(sorted(combination.items()))


def combination_name(combination: Dict[str, str]) -> str:
    return ",".join(f"{k}={v}" for k, v in sorted(combination.items()))


class MatrixConfiguration(LocalProject):
    """Sub-project holding the runs of one axis combination."""
    build_class = LocalMatrixRun


class LocalMatrixProject(LocalProject):
    """
    A job expanded over axes.

    Example:
        p = LocalMatrixProject("lib", axes={"py": ["3.11", "3.12"]})
        p.publishers.append(recorder)
        build = p.run(listener)
    """

    build_class = LocalMatrixBuild

    def __init__(
        self,
        name: str,
        *,
        axes: Dict[str, List[str]],
        root: str | Path = ".postbuild/jobs",
        store: Optional[BuildStore] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        super().__init__(name, root=root, store=store, env=env)
        self.axes = {k: list(v) for k, v in axes.items()}
        self.configurations: Dict[Tuple[Tuple[str, str], ...], MatrixConfiguration] = {}

    def combinations(self) -> List[Dict[str, str]]:
        names = list(self.axes)
        return [dict(zip(names, values)) for values in itertools.product(*(self.axes[n] for n in names))]

    def get_configuration(self, combination: Dict[str, str]) -> MatrixConfiguration:
        key = combination_key(combination)
        if key not in self.configurations:
            self.configurations[key] = MatrixConfiguration(
                f"{self.name}/{combination_name(combination)}",
                root=self.root,
                store=self.store,
                env=self.env,
            )
        return self.configurations[key]

    def run(
        self,
        listener: BuildListener,
        *,
        log: str = "",
        env: Optional[Dict[str, str]] = None,
        result: Result = Result.SUCCESS,
        max_workers: int | None = None,
    ) -> LocalMatrixBuild:
        """
        Run every combination concurrently, then fire the aggregators.

        end_build() of each aggregator runs only after all runs finished.
        """
        parent: LocalMatrixBuild = self.new_build(log=log, env=env, result=result)

        aggregators: List[MatrixAggregator] = []
        for publisher in self.publishers:
            if not isinstance(publisher, MatrixAggregatable):
                continue
            aggregator = publisher.create_aggregator(parent, listener)
            if aggregator is not None:
                aggregators.append(aggregator)
        for a in aggregators:
            a.start_build()

        if max_workers is None:
            c = os.cpu_count() or 2
            max_workers = max(1, c - 1)

        combos = self.combinations()
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            in_flight = {
                pool.submit(self._run_combination, parent, combo, listener, log, env, result): combo
                for combo in combos
            }
            for fut in as_completed(list(in_flight)):
                run = fut.result()
                parent.runs[combination_key(run.combination)] = run
                parent.result = parent.result.combine(run.result)
                for a in aggregators:
                    a.end_run(run)

        for a in aggregators:
            a.end_build()
        return parent

    def _run_combination(
        self,
        parent: LocalMatrixBuild,
        combination: Dict[str, str],
        listener: BuildListener,
        log: str,
        env: Optional[Dict[str, str]],
        result: Result,
    ) -> LocalMatrixRun:
        configuration = self.get_configuration(combination)
        run_env = dict(env or {})
        run_env.update(combination)
        run: LocalMatrixRun = configuration.new_build(
            log=log,
            env=run_env,
            result=result,
            number=parent.number,
            combination=dict(combination),
        )
        self._perform_publishers(run, listener)
        return run
