# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the stage graph: ordering, validation, and needs/if propagation.
"""

import pytest

from gbemu_release.release.pipeline.graph import PipelineGraph, Stage, StageStatus


def _const(value):  # type: ignore[no-untyped-def]
    return lambda _: value


def _boom(_):  # type: ignore[no-untyped-def]
    raise RuntimeError("boom")


class TestConstruction:
    def test_topological_order_keeps_declaration_order_for_ties(self) -> None:
        graph = PipelineGraph(
            "p",
            [
                Stage("publish", _const(None), needs=("build",)),
                Stage("prepare", _const(None)),
                Stage("build", _const(None), needs=("prepare",)),
                Stage("lint", _const(None)),
            ],
        )
        assert graph.plan() == ["prepare", "build", "publish", "lint"]

    def test_duplicate_stage(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            PipelineGraph("p", [Stage("a", _const(1)), Stage("a", _const(2))])

    def test_unknown_need(self) -> None:
        with pytest.raises(ValueError, match="unknown stage 'ghost'"):
            PipelineGraph("p", [Stage("a", _const(1), needs=("ghost",))])

    def test_cycle(self) -> None:
        with pytest.raises(ValueError, match="cycle"):
            PipelineGraph(
                "p",
                [
                    Stage("a", _const(1), needs=("b",)),
                    Stage("b", _const(2), needs=("a",)),
                ],
            )


class TestExecution:
    def test_outputs_flow_to_dependents(self) -> None:
        graph = PipelineGraph(
            "p",
            [
                Stage("a", _const(2)),
                Stage("b", lambda out: out["a"] * 10, needs=("a",)),
            ],
        )
        run = graph.run()
        assert run.succeeded
        assert run["b"].output == 20

    def test_outputs_are_read_only(self) -> None:
        def mutate(outputs):  # type: ignore[no-untyped-def]
            outputs["a"] = "changed"

        run = PipelineGraph("p", [Stage("a", _const(1)), Stage("b", mutate, needs=("a",))]).run()
        assert run.status_of("b") is StageStatus.FAILURE
        assert run["a"].output == 1

    def test_failure_skips_dependents_but_not_siblings(self) -> None:
        calls: list[str] = []

        def record(name):  # type: ignore[no-untyped-def]
            def action(_):  # type: ignore[no-untyped-def]
                calls.append(name)

            return action

        run = PipelineGraph(
            "p",
            [
                Stage("a", _boom),
                Stage("b", record("b"), needs=("a",)),
                Stage("c", record("c"), needs=("b",)),
                Stage("d", record("d")),
            ],
        ).run()

        assert run.status_of("a") is StageStatus.FAILURE
        assert run["a"].error == "boom"
        assert isinstance(run["a"].exception, RuntimeError)
        assert run.status_of("b") is StageStatus.SKIPPED
        assert run.status_of("c") is StageStatus.SKIPPED
        assert calls == ["d"]
        assert run.failed_stages == ["a"]
        assert not run.succeeded

    def test_false_condition_skips_and_propagates(self) -> None:
        run = PipelineGraph(
            "p",
            [
                Stage("check", _const(False)),
                Stage("build", _const("built"), needs=("check",), condition=lambda out: out["check"]),
                Stage("publish", _const("published"), needs=("build",)),
            ],
        ).run()

        assert [r.status for r in run.results] == [
            StageStatus.SUCCESS,
            StageStatus.SKIPPED,
            StageStatus.SKIPPED,
        ]
        assert run.succeeded

    def test_raising_condition_is_a_failure(self) -> None:
        run = PipelineGraph(
            "p",
            [Stage("a", _const(1), condition=lambda out: out["missing"])],
        ).run()
        assert run.status_of("a") is StageStatus.FAILURE

    def test_unknown_stage_lookup(self) -> None:
        run = PipelineGraph("p", [Stage("a", _const(1))]).run()
        with pytest.raises(KeyError):
            run["nope"]
