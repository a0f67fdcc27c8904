"""
FrameChain Scene State Analyzer

Labels every shot of a script with its environment state in one
whole-script text call, so labels stay consistent across the episode, and
merges the labels into each shot's attribute bag.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from framechain.core.constants import NO_CHANGE, SCENE_STATE_KEYS, SceneState, ShotStatus
from framechain.core.exceptions import EmptyScriptError, ParseError
from framechain.core.logging_config import get_logger
from framechain.gateway.text import TextModelClient
from framechain.parsing.recovery import TextRecoveryCascade
from framechain.storage.locks import ScriptLockRegistry
from framechain.storage.store import StoryboardStore
from framechain.storyboard.models import Shot

from .base_pipeline import BatchSummary, ChainPipeline, PipelineStatus, ShotOutcome
from .prompts import build_scene_state_prompt

logger = get_logger("pipelines.scene_state")


@dataclass
class StateLabel:
    """Environment state of one shot."""
    order: int
    scene_state: SceneState
    environment_change: str = NO_CHANGE
    visual_anchor: str = ""

    def to_attributes(self) -> Dict[str, Any]:
        return dict(zip(SCENE_STATE_KEYS, (self.scene_state.value, self.environment_change, self.visual_anchor)))


def parse_labels(entries: Any) -> Dict[int, StateLabel]:
    """Turn model entries into labels keyed by 1-based order; invalid states become normal."""
    labels: Dict[int, StateLabel] = {}
    if not isinstance(entries, list):
        return labels
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            order = int(entry.get("order"))
        except (TypeError, ValueError):
            continue
        change = str(entry.get("environment_change") or "").strip() or NO_CHANGE
        labels[order] = StateLabel(
            order=order,
            scene_state=SceneState.coerce(entry.get("scene_state")),
            environment_change=change,
            visual_anchor=str(entry.get("visual_anchor") or "").strip(),
        )
    return labels


def _nearest_prior_change(
    locations: Sequence[str],
    labels: Sequence[Optional[StateLabel]],
    position: int
) -> Optional[StateLabel]:
    """Scan backward for the nearest earlier shot at the same location labeled modified."""
    location = locations[position]
    for j in range(position - 1, -1, -1):
        label = labels[j]
        if label is not None and locations[j] == location and label.scene_state is SceneState.MODIFIED:
            return label
    return None


def enforce_cumulative_states(
    locations: Sequence[str],
    labels: Sequence[Optional[StateLabel]]
) -> List[Optional[StateLabel]]:
    """
    Make labels cumulative per location.

    A "normal" shot after a modification at its location becomes "inherit"
    and carries the change forward; an "inherit" shot with no earlier
    modification at its location becomes "normal". Unlabeled shots (None)
    are left alone. Positions follow shot order.
    """
    normalized: List[Optional[StateLabel]] = []
    for position, label in enumerate(labels):
        if label is None:
            normalized.append(None)
            continue

        prior = _nearest_prior_change(locations, normalized, position)
        state = label.scene_state
        change = label.environment_change

        if state is SceneState.NORMAL and prior is not None:
            state = SceneState.INHERIT
            change = prior.environment_change
        elif state is SceneState.INHERIT and prior is None:
            state = SceneState.NORMAL
            change = NO_CHANGE
        elif state is SceneState.INHERIT and change == NO_CHANGE:
            change = prior.environment_change

        normalized.append(StateLabel(
            order=label.order,
            scene_state=state,
            environment_change=change,
            visual_anchor=label.visual_anchor,
        ))
    return normalized


class SceneStateAnalyzer(ChainPipeline):
    """
    Whole-script scene state labeling.

    Parsing failures degrade to "skipped" entries; only a missing script
    surfaces as an error.
    """

    def __init__(
        self,
        store: StoryboardStore,
        text_client: TextModelClient,
        cascade: Optional[TextRecoveryCascade] = None,
        lock_registry: Optional[ScriptLockRegistry] = None,
        temperature: float = 0.2,
        think: bool = True
    ):
        super().__init__("scene_state_analysis", lock_registry)
        self.store = store
        self.text_client = text_client
        self.cascade = cascade or TextRecoveryCascade()
        self.temperature = temperature
        self.think = think

    async def _request_labels(self, prompt: str, text_model: str, think: bool) -> Dict[int, StateLabel]:
        response = await self.text_client.generate(
            prompt, model=text_model, temperature=self.temperature, think=think
        )
        try:
            recovered = await self.cascade.recover(response.text, instructions=prompt, expect=list)
        except ParseError as e:
            logger.error(f"Scene state output could not be parsed: {e.message}")
            return {}
        return parse_labels(recovered.value)

    async def analyze(self, script_id: str, text_model: str, think: Optional[bool] = None) -> BatchSummary:
        """
        Label and persist scene states for a script.

        Args:
            script_id: Script to analyze
            text_model: Text model identifier
            think: Use extended reasoning; defaults to the analyzer setting

        Returns:
            BatchSummary with one "updated" or "skipped" entry per shot
        """
        think = self.think if think is None else think
        self._begin()

        async with self.locks.hold(script_id, self.name):
            self._report_progress(5)
            shots = await self.store.list_shots(script_id)
            if not shots:
                raise EmptyScriptError(script_id)

            prompt = build_scene_state_prompt(shots)
            logger.info(f"Analyzing scene states of {len(shots)} shots in script {script_id}")
            self._report_progress(20)

            labels = await self._request_labels(prompt, text_model, think)
            if not labels and think:
                logger.info("Reasoning-mode analysis returned nothing, retrying without reasoning")
                labels = await self._request_labels(prompt, text_model, False)
            self._report_progress(60)
            self._raise_if_cancelled(script_id)

            summary = await self._persist(shots, labels)

        self._status = PipelineStatus.COMPLETED
        self._report_progress(100)
        logger.info(
            f"Scene state analysis done: total={summary.total}, "
            f"updated={summary.completed}, skipped={summary.skipped}"
        )
        return summary

    async def _persist(self, shots: List[Shot], labels: Dict[int, StateLabel]) -> BatchSummary:
        ordered_labels = [labels.get(order) for order in range(1, len(shots) + 1)]
        normalized = enforce_cumulative_states([shot.location for shot in shots], ordered_labels)

        summary = BatchSummary(total=len(shots))
        for order, (shot, label) in enumerate(zip(shots, normalized), start=1):
            if label is None:
                logger.warning(f"No scene state for shot {order} ({shot.id}), skipping")
                summary.results.append(ShotOutcome(shot.id, shot.index, ShotStatus.SKIPPED, data={"order": order}))
                continue

            await self.store.merge_attributes(shot.id, label.to_attributes())
            summary.results.append(ShotOutcome(
                shot.id,
                shot.index,
                ShotStatus.UPDATED,
                data={
                    "order": order,
                    "scene_state": label.scene_state.value,
                    "environment_change": label.environment_change,
                },
            ))
        return summary

