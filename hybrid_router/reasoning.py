"""Sequential reasoning engine — multi-round dialogue with a completion model.

Each round sends every earlier round (labelled by index) plus the task,
parses the model's JSON reply into a :class:`ReasoningRound` and appends it
to the session history. The loop ends when the model sets
``next_thought_needed`` to false, when the round cap is hit, or when the
session deadline passes.
"""

import asyncio
import json
import math
import time
from typing import Any

from loguru import logger

from hybrid_router.config import ModelConfig, ReasoningSettings
from hybrid_router.errors import ConfigurationError, MalformedModelOutput, ReasoningTimeoutError
from hybrid_router.models import LLMProvider, ReasoningRound
from hybrid_router.provider import OpenAICompatibleProvider

SEQUENTIAL_THINKING_SYSTEM_PROMPT = """
You solve problems by thinking in explicit, numbered steps. Each step may build on,
question or revise earlier steps, and you may branch into an alternative line of
reasoning when it helps.

Guidelines:
1. Start with an estimate of how many steps you need and adjust it as you go.
2. Revise earlier steps when you find a mistake, and say which step you revise.
3. Add steps past your estimate if the problem needs them.
4. State uncertainty when you have it; skip information irrelevant to the step.
5. Form a hypothesis, check it against the earlier steps, and repeat until satisfied.
6. Only stop (next_thought_needed = false) once the current step holds the final answer.
7. The final step must contain a single, complete answer.

Reply with one JSON object with these fields:
- thought: the current step
- next_thought_needed: true if another step is needed
- thought_number: number of this step
- total_thoughts: current estimate of the number of steps
- is_revision: true if this step revises an earlier one
- revises_thought: the step number being revised, if is_revision
- branch_from_thought: the step number this branch starts from, if branching
- branch_id: identifier of the current branch, if any
- needs_more_thoughts: true if you reached the estimate but need more steps
"""

DEFAULT_TASK_NAME = "sequential_thinking"
_REQUIRED_FIELDS = ("thought", "next_thought_needed", "thought_number", "total_thoughts")


def _is_number(value: Any) -> bool:
    # json.loads accepts NaN, Infinity and overflowing literals such as 1e400.
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _optional_int(value: Any) -> int | None:
    return int(value) if _is_number(value) else None


def parse_round(content: str | None, index: int) -> ReasoningRound:
    """Parse a model reply into a round numbered ``index``.

    Raises:
        MalformedModelOutput: If the reply is not a JSON object carrying the
            required fields with the right types.
    """
    if content is None:
        raw = ""
    elif isinstance(content, str):
        raw = content
    else:
        raw = json.dumps(content, default=str)
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedModelOutput(f"Reply is not JSON: {e}", raw) from e
    if not isinstance(data, dict):
        raise MalformedModelOutput("Reply is not a JSON object", raw)

    missing = [f for f in _REQUIRED_FIELDS if f not in data]
    if missing:
        raise MalformedModelOutput(f"Missing fields: {', '.join(missing)}", raw)
    if (
        not isinstance(data["thought"], str)
        or not isinstance(data["next_thought_needed"], bool)
        or not _is_number(data["thought_number"])
        or not _is_number(data["total_thoughts"])
    ):
        raise MalformedModelOutput("Invalid round format - required fields have the wrong type", raw)

    branch_id = data.get("branch_id")
    return ReasoningRound(
        index=index,
        total_estimate=max(1, int(data["total_thoughts"])),
        text=data["thought"],
        continue_=data["next_thought_needed"],
        is_revision=data.get("is_revision") is True,
        revises_round=_optional_int(data.get("revises_thought")),
        branch_point=_optional_int(data.get("branch_from_thought")),
        branch_id=branch_id if isinstance(branch_id, str) and branch_id else None,
        needs_more_rounds=data.get("needs_more_thoughts") is True,
    )


class ReasoningSession:
    """Append-only round log for one engine invocation.

    Never shared between invocations; dropped once the engine returns.
    """

    def __init__(self, task: str, initial_estimate: int = 5) -> None:
        self.task = task
        self.total_estimate = initial_estimate
        self._rounds: list[ReasoningRound] = []

    @property
    def rounds(self) -> tuple[ReasoningRound, ...]:
        return tuple(self._rounds)

    @property
    def current(self) -> ReasoningRound | None:
        return self._rounds[-1] if self._rounds else None

    @property
    def next_index(self) -> int:
        return len(self._rounds) + 1

    def append(self, round_: ReasoningRound) -> None:
        if round_.index != self.next_index:
            raise ValueError(f"Round {round_.index} out of order, expected {self.next_index}")
        self._rounds.append(round_)
        if round_.total_estimate != self.total_estimate:
            logger.debug(f"Round estimate adjusted {self.total_estimate} → {round_.total_estimate}")
            self.total_estimate = round_.total_estimate

    def build_prompt(self) -> str:
        if not self._rounds:
            return f"Task: {self.task}\n\nProvide your first thought:"
        context = "\n\n".join(
            f"[Round {r.index}/{r.total_estimate}]: {r.text}" for r in self._rounds
        )
        return f"Previous thoughts:\n{context}\n\nTask: {self.task}\n\nContinue with the next thought:"

    def revision_graph(self) -> dict[str, dict]:
        """Revision and branch metadata, for consumers that want to rebuild the graph.

        Returns ``{"revisions": {round: revised_round}, "branches":
        {branch_id: [rounds...]}}``.
        """
        revisions: dict[int, int] = {}
        branches: dict[str, list[int]] = {}
        for r in self._rounds:
            if r.is_revision and r.revises_round is not None:
                revisions[r.index] = r.revises_round
            if r.branch_id:
                branches.setdefault(r.branch_id, []).append(r.index)
        return {"revisions": revisions, "branches": branches}


class SequentialReasoner:
    """Drive a bounded multi-round reasoning dialogue.

    Termination:
      1. The model sets ``next_thought_needed`` to false.
      2. A reply cannot be parsed: the raw reply becomes the final round.
      3. ``max_rounds`` is reached: the last round's text is returned.

    Transport failures propagate as :class:`ModelCallError`; passing the
    session deadline raises :class:`ReasoningTimeoutError`.
    """

    def __init__(
        self,
        provider: LLMProvider | None = None,
        settings: ReasoningSettings | None = None,
    ) -> None:
        self._provider = provider  # None → built per call from the ModelConfig
        self._settings = settings or ReasoningSettings()

    @property
    def settings(self) -> ReasoningSettings:
        return self._settings

    async def run(
        self,
        task: str,
        config: ModelConfig,
        extra_system_prompt: str | None = None,
        *,
        task_name: str = DEFAULT_TASK_NAME,
        max_rounds: int | None = None,
        timeout: float | None = None,
    ) -> str:
        session = await self.run_session(
            task, config, extra_system_prompt,
            task_name=task_name, max_rounds=max_rounds, timeout=timeout,
        )
        final = session.current
        return final.text if final else ""

    async def run_session(
        self,
        task: str,
        config: ModelConfig,
        extra_system_prompt: str | None = None,
        *,
        task_name: str = DEFAULT_TASK_NAME,
        max_rounds: int | None = None,
        timeout: float | None = None,
    ) -> ReasoningSession:
        """Like :meth:`run` but returns the whole session for inspection."""
        model = config.model_for(task_name)
        provider = self._provider or OpenAICompatibleProvider.from_config(config)
        cap = self._settings.max_rounds if max_rounds is None else max_rounds
        if cap < 1:
            raise ConfigurationError(f"max_rounds must be >= 1, got {cap}")
        timeout = timeout if timeout is not None else self._settings.timeout
        deadline = time.monotonic() + timeout if timeout is not None else None

        system_prompt = SEQUENTIAL_THINKING_SYSTEM_PROMPT
        if extra_system_prompt:
            system_prompt = f"{system_prompt}\n\n{extra_system_prompt}"

        session = ReasoningSession(task, self._settings.initial_estimate)
        while True:
            if len(session.rounds) >= cap:
                logger.warning(
                    f"Reasoning stopped at round cap {cap} while the model still wanted to continue"
                )
                break

            index = session.next_index
            logger.debug(f"Processing round {index} (estimate {session.total_estimate}) with {model}")
            content = await self._call_model(provider, model, system_prompt, session.build_prompt(), deadline)

            try:
                round_ = parse_round(content, index)
            except MalformedModelOutput as e:
                logger.warning(f"Malformed reasoning round {index}, treating reply as final: {e}")
                round_ = ReasoningRound(
                    index=index, total_estimate=index, text=e.raw, continue_=False,
                )

            session.append(round_)
            if not round_.continue_:
                break

        logger.info(f"Reasoning finished after {len(session.rounds)} round(s)")
        return session

    async def _call_model(
        self,
        provider: LLMProvider,
        model: str,
        system_prompt: str,
        prompt: str,
        deadline: float | None,
    ) -> str | None:
        call = provider.chat(
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            model=model,
            max_tokens=self._settings.max_tokens,
            temperature=self._settings.temperature,
            response_format={"type": "json_object"},
        )
        if deadline is None:
            response = await call
        else:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                call.close()
                raise ReasoningTimeoutError("Reasoning session deadline exceeded")
            try:
                response = await asyncio.wait_for(call, timeout=remaining)
            except asyncio.TimeoutError as e:
                raise ReasoningTimeoutError("Reasoning session deadline exceeded") from e

        if response.finish_reason == "length":
            logger.warning(f"Reply from {response.model_used or model} was cut off at max_tokens")
        return response.content
