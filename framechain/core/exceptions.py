"""
FrameChain Exceptions

Error taxonomy for the generation pipeline. Low-level stages raise these;
single-shot operations let them propagate; batch orchestrators convert them
into per-shot results.
"""

from typing import List, Optional


class FrameChainError(Exception):
    """Base exception for all FrameChain errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(FrameChainError):
    """Raised when there's an issue with configuration."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""
    pass


class MissingModelError(ConfigurationError):
    """Raised when an operation needs a model identifier and none was given."""

    def __init__(self, role: str):
        super().__init__(f"No {role} model configured", {"role": role})
        self.role = role


# =============================================================================
# LOOKUP ERRORS
# =============================================================================

class NotFoundError(FrameChainError):
    """Base exception for missing storyboard rows."""
    pass


class ShotNotFoundError(NotFoundError):
    """Raised when a shot id does not exist."""

    def __init__(self, shot_id: str):
        super().__init__(f"Shot not found: {shot_id}", {"shot_id": shot_id})
        self.shot_id = shot_id


class EmptyScriptError(NotFoundError):
    """Raised when a script has no shots to process."""

    def __init__(self, script_id: str):
        super().__init__(f"Script has no shots: {script_id}", {"script_id": script_id})
        self.script_id = script_id


# =============================================================================
# DATA INTEGRITY ERRORS
# =============================================================================

class DataIntegrityError(FrameChainError):
    """Raised when stored data is missing, empty or inconsistent. Never retried."""
    pass


class MissingFieldError(DataIntegrityError):
    """Raised when a required descriptive field is empty."""

    def __init__(self, entity: str, name: str, field_name: str):
        message = f"{entity} '{name}' is incomplete: '{field_name}' must not be empty"
        super().__init__(message, {"entity": entity, "name": name, "field": field_name})
        self.entity = entity
        self.field_name = field_name


class MultiCharacterShotError(DataIntegrityError):
    """Raised when a shot links more than one character."""

    def __init__(self, shot_id: str, characters: List[str]):
        message = (
            f"Only single-character shots are supported; shot {shot_id} links "
            f"{len(characters)} characters: {', '.join(characters)}"
        )
        super().__init__(message, {"shot_id": shot_id, "characters": characters})
        self.characters = characters


# =============================================================================
# CONTINUITY ERRORS
# =============================================================================

class ContinuityError(FrameChainError):
    """Raised when a shot's continuity anchor cannot be resolved."""
    pass


class MissingFramesError(ContinuityError):
    """Raised when a shot lacks the frames required to synthesize its video."""

    def __init__(self, shot_id: str, missing: List[str]):
        super().__init__(
            f"Shot {shot_id} is missing {', '.join(missing)}; generate frames first",
            {"shot_id": shot_id, "missing": missing}
        )
        self.missing = missing


# =============================================================================
# PARSING ERRORS
# =============================================================================

class ParseError(FrameChainError):
    """Raised when model output cannot be recovered into structured data."""

    def __init__(self, message: str, raw_text: Optional[str] = None, details: dict = None):
        details = dict(details or {})
        if raw_text is not None:
            details.setdefault("raw_preview", raw_text[:200])
        super().__init__(message, details)
        self.raw_text = raw_text


class ReferenceSelectionError(ParseError):
    """Raised when the reference selector yields no usable image."""
    pass


# =============================================================================
# GATEWAY ERRORS
# =============================================================================

class GatewayError(FrameChainError):
    """Raised on network failure or a non-success model gateway response."""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
        details: dict = None
    ):
        details = dict(details or {})
        if model:
            details["model"] = model
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.model = model
        self.status_code = status_code


class GatewayTimeoutError(GatewayError):
    """Raised when a gateway request or polled task exceeds its time limit."""
    pass


class StorageError(FrameChainError):
    """Raised when a generated asset cannot be persisted."""
    pass


# =============================================================================
# SCENE PLATE ERRORS
# =============================================================================

class PlateRegenerationError(FrameChainError):
    """Raised when an updated scene plate cannot be produced. Callers log and continue."""

    def __init__(self, shot_id: str, reason: str):
        super().__init__(
            f"Scene plate regeneration failed for shot {shot_id}: {reason}",
            {"shot_id": shot_id}
        )
        self.shot_id = shot_id
        self.reason = reason


# =============================================================================
# CHAIN CONTROL ERRORS
# =============================================================================

class ChainLockedError(FrameChainError):
    """Raised when another chain is already active for the script."""

    def __init__(self, script_id: str, holder: Optional[str] = None):
        message = f"A chain is already running for script {script_id}"
        details = {"script_id": script_id}
        if holder:
            message += f" ({holder})"
            details["holder"] = holder
        super().__init__(message, details)
        self.script_id = script_id
        self.holder = holder


class ChainCancelledError(FrameChainError):
    """Raised when a chain is cancelled or its deadline elapses."""

    def __init__(self, script_id: str, reason: str = "cancelled"):
        super().__init__(f"Chain for script {script_id} stopped: {reason}", {"script_id": script_id})
        self.script_id = script_id
        self.reason = reason
