# src/crudforge/core/pipeline/pipeline.py
"""Four-stage handler pipeline.

Every generated route runs the same sequence of roles: pre-process,
build-query, execute, post-process. Each role holds exactly one stage plus
optional hooks that run before or after it. Pipelines are immutable: the
customisation methods return a new pipeline, so a stock pipeline can be shared
between routes and tailored per route.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from rich.markup import escape

from crudforge.core.errors import ExecutionError, ForgeError, StageError
from crudforge.core.logging import color_palette, log
from crudforge.core.pipeline.context import PipelineState, RequestContext, StageRole


class Stage(ABC):
    """Strategy object for one pipeline role.

    ``run`` may mutate the context freely; raising a :class:`ForgeError`
    aborts the pipeline with that error.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def run(self, ctx: RequestContext) -> None: ...

    def __repr__(self) -> str:
        return f"<{self.name}>"


class FunctionStage(Stage):
    """Adapts a plain ``fn(ctx)`` callable to :class:`Stage`."""

    def __init__(self, fn: Callable[[RequestContext], None], name: Optional[str] = None):
        self.fn = fn
        self._name = name or getattr(fn, "__name__", "function")

    @property
    def name(self) -> str:
        return self._name

    def run(self, ctx: RequestContext) -> None:
        self.fn(ctx)


class NoOpStage(Stage):
    def run(self, ctx: RequestContext) -> None:
        return None


StageLike = Union[Stage, Callable[[RequestContext], None]]


def as_stage(stage: StageLike) -> Stage:
    if isinstance(stage, Stage):
        return stage
    if callable(stage):
        return FunctionStage(stage)
    raise TypeError(f"Expected a Stage or a callable, got {type(stage).__name__}")


class HandlerPipeline:
    """Ordered stages for one route."""

    def __init__(
        self,
        stages: Optional[Mapping[StageRole, StageLike]] = None,
        before: Optional[Mapping[StageRole, Tuple[Stage, ...]]] = None,
        after: Optional[Mapping[StageRole, Tuple[Stage, ...]]] = None,
    ):
        stages = stages or {}
        self._stages: Dict[StageRole, Stage] = {
            role: as_stage(stages[role]) if role in stages else NoOpStage() for role in StageRole
        }
        self._before: Dict[StageRole, Tuple[Stage, ...]] = {role: () for role in StageRole}
        self._after: Dict[StageRole, Tuple[Stage, ...]] = {role: () for role in StageRole}
        self._before.update(before or {})
        self._after.update(after or {})

    def stage(self, role: StageRole) -> Stage:
        return self._stages[role]

    def replace(self, role: StageRole, stage: StageLike) -> "HandlerPipeline":
        """New pipeline with ``stage`` in place of the current one for ``role``."""
        stages = dict(self._stages)
        stages[role] = as_stage(stage)
        return HandlerPipeline(stages, self._before, self._after)

    def before(self, role: StageRole, stage: StageLike) -> "HandlerPipeline":
        """New pipeline that also runs ``stage`` right before ``role``'s stage."""
        before = dict(self._before)
        before[role] = before[role] + (as_stage(stage),)
        return HandlerPipeline(self._stages, before, self._after)

    def after(self, role: StageRole, stage: StageLike) -> "HandlerPipeline":
        """New pipeline that also runs ``stage`` right after ``role``'s stage."""
        after = dict(self._after)
        after[role] = after[role] + (as_stage(stage),)
        return HandlerPipeline(self._stages, self._before, after)

    def steps(self) -> Iterator[Tuple[StageRole, Stage]]:
        """Every stage in execution order, hooks included."""
        for role in StageRole:
            for stage in self._before[role]:
                yield role, stage
            yield role, self._stages[role]
            for stage in self._after[role]:
                yield role, stage

    def describe(self) -> List[str]:
        return [f"{role.value}:{stage.name}" for role, stage in self.steps()]

    def run(self, ctx: RequestContext) -> RequestContext:
        """Run every stage in order; stop at the first failure.

        Errors never escape: they end up in ``ctx.error`` with the state set
        to ``ABORTED`` so the caller can render the error envelope.
        """
        for role, stage in self.steps():
            ctx.state = PipelineState(role.value)
            try:
                stage.run(ctx)
            except ForgeError as exc:
                self._abort(ctx, role, stage, exc)
                return ctx
            except Exception as exc:
                if role is StageRole.EXECUTE:
                    wrapped: ForgeError = ExecutionError(str(exc))
                else:
                    wrapped = StageError(f"Stage {stage.name} failed: {exc}")
                wrapped.__cause__ = exc
                log.error(f"Unexpected {type(exc).__name__} in {stage.name}: {escape(str(exc))}")
                self._abort(ctx, role, stage, wrapped)
                return ctx

        ctx.state = PipelineState.COMPLETED
        return ctx

    # ===== Helper Methods =====

    def _abort(self, ctx: RequestContext, role: StageRole, stage: Stage, error: ForgeError) -> None:
        ctx.error = error
        ctx.state = PipelineState.ABORTED
        log.debug(
            f"{color_palette['operation'](ctx.operation or '?')} aborted in "
            f"{role.value}/{stage.name}: {escape(error.message)}"
        )

    def __repr__(self) -> str:
        return f"HandlerPipeline({', '.join(self.describe())})"
