"""
FrameChain Text Recovery Cascade

Recovers structured JSON from unreliable free-text model output.

Stages run cheapest first and stop at the first success:
1. strip reasoning traces (<think>...</think> and friends)
2. extract fenced code block content
3. strip invisible/control characters
4. direct parse
5. largest bracketed span
6. structural repair (trailing commas, open strings, open brackets, truncation)
7. one text-model call that repairs the output given the original instructions

Stage 7 output re-enters stages 1-6 only.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple, Type

from framechain.core.exceptions import ParseError
from framechain.core.logging_config import get_logger
from framechain.utils.unicode_utils import strip_invisible, truncate_text

logger = get_logger("parsing.recovery")

_REASONING_TAGS = ("think", "thinking", "reasoning")
_CLOSED_REASONING_RE = re.compile(
    r'<(think|thinking|reasoning)>.*?</\1>', re.DOTALL | re.IGNORECASE
)
_FENCE_RE = re.compile(r'```[a-zA-Z0-9_-]*[ \t]*\n?(.*?)```', re.DOTALL)
_OPEN_FENCE_RE = re.compile(r'```[a-zA-Z0-9_-]*[ \t]*\n?(.*)$', re.DOTALL)

_CLOSERS = {"{": "}", "[": "]"}
_MAX_CUT_BACK_ATTEMPTS = 64


class RecoveryStage(Enum):
    """Stage of the cascade that produced a value."""
    DIRECT = "direct"
    BRACKET_SPAN = "bracket_span"
    STRUCTURAL_REPAIR = "structural_repair"
    MODEL_REPAIR = "model_repair"


@dataclass
class RecoveryResult:
    """A recovered value and how it was obtained."""
    value: Any
    stage: RecoveryStage
    text: str


class _Unparsed:
    """Marker for a stage that produced nothing (JSON null is a valid value)."""


UNPARSED = _Unparsed()


def _matches(value: Any, expect: Optional[Type]) -> bool:
    return expect is None or isinstance(value, expect)


def _loads(text: str, expect: Optional[Type]) -> Any:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return UNPARSED
    return value if _matches(value, expect) else UNPARSED


def _scan(text: str) -> Tuple[List[str], bool, List[int]]:
    """
    Walk JSON-ish text outside of strings.

    Returns the open bracket stack, whether the text ends inside a string,
    and the offsets of every comma that separates complete elements.
    """
    stack: List[str] = []
    commas: List[int] = []
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(ch)
        elif ch in "}]":
            if stack and _CLOSERS[stack[-1]] == ch:
                stack.pop()
        elif ch == ",":
            commas.append(i)

    return stack, in_string, commas


def drop_trailing_commas(text: str) -> str:
    """Remove commas that directly precede a closing bracket, outside strings."""
    out: List[str] = []
    in_string = False
    escaped = False

    for ch in text:
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch in "}]":
            j = len(out) - 1
            while j >= 0 and out[j].isspace():
                j -= 1
            if j >= 0 and out[j] == ",":
                del out[j]
        elif ch == '"':
            in_string = True
        out.append(ch)

    return "".join(out)


def close_open_structures(text: str) -> str:
    """Terminate an open string, drop a dangling separator and close open brackets."""
    stack, in_string, _ = _scan(text)
    repaired = text

    if in_string:
        if repaired.endswith("\\"):
            repaired = repaired[:-1]
        repaired += '"'

    stripped = repaired.rstrip()
    if stripped.endswith(","):
        repaired = stripped[:-1]
    elif stripped.endswith(":"):
        repaired = stripped + " null"

    return repaired + "".join(_CLOSERS[opener] for opener in reversed(stack))


class TextRecoveryCascade:
    """
    Recovers JSON values from raw model output.

    Every stage is a method so a stage can be observed or replaced on its own.
    The model repair stage needs a text client and a repair model; without
    them structural repair is the last stage.
    """

    def __init__(
        self,
        text_client=None,
        repair_model: Optional[str] = None,
        repair_temperature: float = 0.3,
        repair_max_tokens: int = 8192
    ):
        """
        Initialize the cascade.

        Args:
            text_client: TextModelClient used for the model repair stage
            repair_model: Model identifier for the repair call
            repair_temperature: Sampling temperature for the repair call
            repair_max_tokens: Token budget for the repair call
        """
        self.text_client = text_client
        self.repair_model = repair_model
        self.repair_temperature = repair_temperature
        self.repair_max_tokens = repair_max_tokens

    # -------------------------------------------------------------------------
    # Cleaning stages (1-3)
    # -------------------------------------------------------------------------

    def strip_reasoning(self, text: str) -> str:
        """Remove reasoning-trace blocks, including an unterminated one."""
        text = _CLOSED_REASONING_RE.sub("", text)
        lowered = text.lower()

        for tag in _REASONING_TAGS:
            close_tag = f"</{tag}>"
            open_tag = f"<{tag}>"
            close_at = lowered.find(close_tag)
            if close_at != -1:
                # Opening tag was dropped by the provider; everything before belongs to the trace
                text = text[close_at + len(close_tag):]
                lowered = text.lower()
            open_at = lowered.find(open_tag)
            if open_at != -1:
                text = text[:open_at]
                lowered = text.lower()

        return text

    def extract_fence(self, text: str) -> str:
        """Return the content of the first fenced block, or the text unchanged."""
        match = _FENCE_RE.search(text)
        if match:
            return match.group(1)
        match = _OPEN_FENCE_RE.search(text)
        if match:
            return match.group(1)
        return text

    def strip_invisible(self, text: str) -> str:
        return strip_invisible(text).strip()

    def normalize(self, raw: Optional[str]) -> str:
        """Apply the three cleaning stages."""
        text = raw or ""
        text = self.strip_reasoning(text)
        text = self.extract_fence(text)
        return self.strip_invisible(text)

    # -------------------------------------------------------------------------
    # Parsing stages (4-6)
    # -------------------------------------------------------------------------

    def parse_direct(self, text: str, expect: Optional[Type] = None) -> Any:
        return _loads(text, expect)

    def parse_bracket_span(self, text: str, expect: Optional[Type] = None) -> Any:
        """Parse the widest {...} or [...] span, trying the expected container first."""
        spans = []
        for opener, closer in (("[", "]"), ("{", "}")):
            start = text.find(opener)
            end = text.rfind(closer)
            if start != -1 and end > start:
                spans.append((opener, text[start:end + 1]))

        if expect is list:
            spans.sort(key=lambda span: span[0] != "[")
        elif expect is dict:
            spans.sort(key=lambda span: span[0] != "{")
        else:
            spans.sort(key=lambda span: -len(span[1]))

        for _, span in spans:
            value = _loads(span, expect)
            if value is not UNPARSED:
                return value
        return UNPARSED

    def parse_structural_repair(self, text: str, expect: Optional[Type] = None) -> Any:
        """
        Repair truncated or sloppy JSON.

        Closes what is open; when that is still invalid, cuts back to the last
        complete element boundary and closes again.
        """
        openers = [i for i in (text.find("["), text.find("{")) if i != -1]
        if not openers:
            return UNPARSED
        if expect is list and text.find("[") != -1:
            start = text.find("[")
        elif expect is dict and text.find("{") != -1:
            start = text.find("{")
        else:
            start = min(openers)

        body = drop_trailing_commas(text[start:].rstrip())
        value = _loads(close_open_structures(body), expect)
        if value is not UNPARSED:
            return value

        _, _, commas = _scan(body)
        for cut in reversed(commas[-_MAX_CUT_BACK_ATTEMPTS:]):
            value = _loads(close_open_structures(body[:cut]), expect)
            if value is not UNPARSED:
                return value
        return UNPARSED

    def recover_local(self, raw: Optional[str], expect: Optional[Type] = None) -> Optional[RecoveryResult]:
        """Run stages 1-6. Returns None when none of them succeeds."""
        text = self.normalize(raw)
        if not text:
            return None

        stages = (
            (RecoveryStage.DIRECT, self.parse_direct),
            (RecoveryStage.BRACKET_SPAN, self.parse_bracket_span),
            (RecoveryStage.STRUCTURAL_REPAIR, self.parse_structural_repair),
        )
        for stage, parse in stages:
            value = parse(text, expect)
            if value is not UNPARSED:
                if stage is not RecoveryStage.DIRECT:
                    logger.debug(f"Recovered JSON at stage {stage.value}")
                return RecoveryResult(value=value, stage=stage, text=text)
        return None

    # -------------------------------------------------------------------------
    # Model repair stage (7)
    # -------------------------------------------------------------------------

    @property
    def can_repair_with_model(self) -> bool:
        return self.text_client is not None and bool(self.repair_model)

    def build_repair_prompt(self, raw: str, instructions: Optional[str], expect: Optional[Type]) -> str:
        shape = {list: "a JSON array", dict: "a JSON object"}.get(expect, "valid JSON")
        parts = [
            "You repair malformed or truncated JSON produced by another model.",
            f"Return only {shape}, with no explanation and no code fences.",
            "Keep every complete entry exactly as written. If the output was cut off, "
            "finish the last entry following the original instructions.",
        ]
        if instructions:
            parts.append(f"[Original instructions]\n{truncate_text(instructions, 6000)}")
        parts.append(f"[Malformed output]\n{raw}")
        return "\n\n".join(parts)

    async def repair_with_model(self, raw: str, instructions: Optional[str], expect: Optional[Type]) -> str:
        prompt = self.build_repair_prompt(raw, instructions, expect)
        response = await self.text_client.generate(
            prompt,
            model=self.repair_model,
            temperature=self.repair_temperature,
            max_tokens=self.repair_max_tokens,
        )
        return response.text

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    async def recover(
        self,
        raw: Optional[str],
        instructions: Optional[str] = None,
        expect: Optional[Type] = None
    ) -> RecoveryResult:
        """
        Recover a JSON value from raw model output.

        Args:
            raw: Model output text
            instructions: The prompt that produced raw, given to the repair model
            expect: list or dict; a parse yielding another type counts as failed

        Returns:
            RecoveryResult with the value and the stage that produced it

        Raises:
            ParseError: Every stage failed; carries the original raw text
        """
        result = self.recover_local(raw, expect)
        if result is not None:
            return result

        if not raw or not raw.strip():
            raise ParseError("Model returned empty output", raw_text=raw or "")

        if not self.can_repair_with_model:
            raise ParseError("Could not recover JSON from model output", raw_text=raw)

        logger.warning("Local JSON recovery failed, asking the repair model")
        repaired = await self.repair_with_model(raw, instructions, expect)
        result = self.recover_local(repaired, expect)
        if result is None:
            raise ParseError(
                "Could not recover JSON from model output after model repair",
                raw_text=raw,
                details={"repair_preview": (repaired or "")[:200]}
            )
        return RecoveryResult(value=result.value, stage=RecoveryStage.MODEL_REPAIR, text=result.text)


def clean_text(raw: Optional[str]) -> str:
    """Clean free-text model output (reasoning, fences, invisible characters)."""
    return TextRecoveryCascade().normalize(raw)
