"""
Pipeline Runner

Runs an ordered list of stages over one context and one shrinking token
list. Each stage is a callable

    stage(context, tokens) -> Continue | Failed | Completed

that receives its own copy of the context and tokens and returns the
outcome explicitly:

- Continue(context, tokens): hand the (possibly updated) context and the
  remaining tokens to the next stage; after the last stage the run
  completes successfully.
- Failed(message): stop immediately; the run fails with message.
- Completed(context): stop immediately; the run succeeds.

Stages run strictly one after another. A stage returns exactly one
outcome, so a run ends with either a context or a failure message.
"""

import copy
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Continue:
    context: Any
    tokens: list[str]


@dataclass(frozen=True)
class Failed:
    message: str


@dataclass(frozen=True)
class Completed:
    context: Any


StageResult = Continue | Failed | Completed
Stage = Callable[[Any, list[str]], StageResult]


class PipelineContractError(RuntimeError):
    """Raised when a stage breaks the stage protocol (a programming error)."""


class Pipeline:
    """Ordered stages executed against a shared context."""

    def __init__(self):
        self._stages: list[tuple[str, Stage]] = []

    def register(self, stage: Stage, name: str | None = None) -> "Pipeline":
        """Append a stage. Returns self so registrations can be chained."""
        if not callable(stage):
            raise TypeError(f"Stage must be callable, got {stage!r}")
        label = name or getattr(stage, "__name__", None) or type(stage).__name__
        self._stages.append((label, stage))
        return self

    @property
    def stage_names(self) -> list[str]:
        return [name for name, _ in self._stages]

    def execute(self, context, tokens: list[str]) -> Completed | Failed:
        tokens = list(tokens)
        for name, stage in self._stages:
            logger.debug("Stage %s: tokens=%s", name, tokens)
            result = stage(copy.copy(context), list(tokens))

            if isinstance(result, Failed):
                logger.debug("Stage %s failed: %s", name, result.message)
                return result
            if isinstance(result, Completed):
                logger.debug("Stage %s completed the run", name)
                return result
            if not isinstance(result, Continue):
                raise PipelineContractError(
                    f"Stage '{name}' returned {result!r}; "
                    "expected Continue, Failed or Completed"
                )

            grown = Counter(result.tokens) - Counter(tokens)
            if grown:
                raise PipelineContractError(
                    f"Stage '{name}' added tokens: {' '.join(sorted(grown.elements()))}"
                )
            context, tokens = result.context, list(result.tokens)

        return Completed(context)
