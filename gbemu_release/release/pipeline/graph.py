# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Stage graph with needs/if semantics.

A pipeline is a set of named stages. Each stage lists the stages it needs
and, optionally, a condition over their outputs. Execution is sequential in
topological order (ties broken by declaration order) and follows the same
rules as CI job graphs:

  - A stage runs only if every stage it needs finished with SUCCESS.
  - If it would run but its condition is false, it is SKIPPED.
  - A stage whose action raises is a FAILURE. Its dependents are SKIPPED.
  - SKIPPED propagates: a dependent of a skipped stage is skipped too.

Outputs are passed explicitly. An action receives a read-only mapping of
stage name → output for every stage that succeeded before it, and returns
its own output.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Sequence

from gbemu_release.logging.logger import get_logger

_logger: logging.Logger = get_logger(__name__)

StageOutputs = Mapping[str, Any]


class StageStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Stage:
    name: str
    action: Callable[[StageOutputs], Any]
    needs: tuple[str, ...] = ()
    condition: Optional[Callable[[StageOutputs], bool]] = None


@dataclass(frozen=True)
class StageResult:
    name: str
    status: StageStatus
    output: Any = None
    error: Optional[str] = None
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class PipelineRun:
    """Results of every stage, in execution order."""

    results: list[StageResult]

    def __getitem__(self, name: str) -> StageResult:
        for result in self.results:
            if result.name == name:
                return result
        raise KeyError(name)

    def status_of(self, name: str) -> StageStatus:
        return self[name].status

    @property
    def failed_stages(self) -> list[str]:
        return [r.name for r in self.results if r.status is StageStatus.FAILURE]

    @property
    def succeeded(self) -> bool:
        return not self.failed_stages


class PipelineGraph:
    def __init__(self, name: str, stages: Sequence[Stage]) -> None:
        self.name = name
        self.stages = list(stages)
        self._order = self._topological_order()

    def _topological_order(self) -> list[Stage]:
        by_name: dict[str, Stage] = {}
        for stage in self.stages:
            if stage.name in by_name:
                raise ValueError(f"Duplicate stage name '{stage.name}' in pipeline '{self.name}'")
            by_name[stage.name] = stage

        for stage in self.stages:
            for need in stage.needs:
                if need not in by_name:
                    raise ValueError(f"Stage '{stage.name}' needs unknown stage '{need}'")

        ordered: list[Stage] = []
        placed: set[str] = set()
        remaining = list(self.stages)
        while remaining:
            ready = [s for s in remaining if all(need in placed for need in s.needs)]
            if not ready:
                cycle = ", ".join(s.name for s in remaining)
                raise ValueError(f"Dependency cycle in pipeline '{self.name}' among: {cycle}")
            stage = ready[0]
            ordered.append(stage)
            placed.add(stage.name)
            remaining.remove(stage)
        return ordered

    def plan(self) -> list[str]:
        """Stage names in the order they would execute."""
        return [stage.name for stage in self._order]

    def run(self) -> PipelineRun:
        results: dict[str, StageResult] = {}
        outputs: dict[str, Any] = {}

        _logger.info("Pipeline started", extra={"pipeline": self.name, "plan": self.plan()})

        for stage in self._order:
            result = self._run_stage(stage, results, MappingProxyType(dict(outputs)))
            results[stage.name] = result
            if result.status is StageStatus.SUCCESS:
                outputs[stage.name] = result.output

        run = PipelineRun(results=list(results.values()))
        _logger.info(
            "Pipeline finished",
            extra={
                "pipeline": self.name,
                "statuses": {r.name: r.status.value for r in run.results},
            },
        )
        return run

    def _run_stage(
        self,
        stage: Stage,
        results: Mapping[str, StageResult],
        outputs: StageOutputs,
    ) -> StageResult:
        unmet = [need for need in stage.needs if results[need].status is not StageStatus.SUCCESS]
        if unmet:
            _logger.info(
                "Stage skipped, dependencies did not succeed",
                extra={"stage": stage.name, "unmet": unmet},
            )
            return StageResult(name=stage.name, status=StageStatus.SKIPPED)

        if stage.condition is not None:
            try:
                should_run = bool(stage.condition(outputs))
            except Exception as err:
                _logger.error(
                    "Stage condition failed",
                    extra={"stage": stage.name, "error": str(err)},
                )
                return StageResult(
                    name=stage.name, status=StageStatus.FAILURE, error=str(err), exception=err
                )
            if not should_run:
                _logger.info("Stage skipped, condition is false", extra={"stage": stage.name})
                return StageResult(name=stage.name, status=StageStatus.SKIPPED)

        _logger.info("Stage started", extra={"stage": stage.name})
        try:
            output = stage.action(outputs)
        except Exception as err:
            _logger.error(
                "Stage failed",
                extra={"stage": stage.name, "error": str(err)},
            )
            return StageResult(
                name=stage.name, status=StageStatus.FAILURE, error=str(err), exception=err
            )

        _logger.info("Stage succeeded", extra={"stage": stage.name})
        return StageResult(name=stage.name, status=StageStatus.SUCCESS, output=output)
