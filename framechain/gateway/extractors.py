"""
FrameChain Response Extractors

Gateway responses are loosely shaped: the same logical value can live under
several field names. Each value is read through an ordered list of
(predicate, accessor) pairs; the first predicate that matches wins.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

from .base import TaskStatus

Extractor = Tuple[Callable[[Dict[str, Any]], bool], Callable[[Dict[str, Any]], Any]]


def _has(key: str) -> Callable[[Dict[str, Any]], bool]:
    return lambda payload: bool(payload.get(key))


def _get(key: str) -> Callable[[Dict[str, Any]], Any]:
    return lambda payload: payload[key]


def _nested_has(outer: str, inner: str) -> Callable[[Dict[str, Any]], bool]:
    return lambda payload: isinstance(payload.get(outer), dict) and bool(payload[outer].get(inner))


def _nested_get(outer: str, inner: str) -> Callable[[Dict[str, Any]], Any]:
    return lambda payload: payload[outer][inner]


def _first_item_has(key: str, inner: str) -> Callable[[Dict[str, Any]], bool]:
    def predicate(payload: Dict[str, Any]) -> bool:
        items = payload.get(key)
        return (
            isinstance(items, list) and bool(items)
            and isinstance(items[0], dict) and bool(items[0].get(inner))
        )
    return predicate


def _first_item_get(key: str, inner: str) -> Callable[[Dict[str, Any]], Any]:
    return lambda payload: payload[key][0][inner]


def _field(key: str) -> Extractor:
    return (_has(key), _get(key))


def _nested(outer: str, inner: str) -> Extractor:
    return (_nested_has(outer, inner), _nested_get(outer, inner))


def _first_item(key: str, inner: str) -> Extractor:
    return (_first_item_has(key, inner), _first_item_get(key, inner))


def _chat_content_has(payload: Dict[str, Any]) -> bool:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return False
    message = choices[0].get("message")
    return isinstance(message, dict) and message.get("content") is not None


TASK_ID_EXTRACTORS: List[Extractor] = [
    _field("taskId"),
    _field("task_id"),
    _field("task_Id"),
    _nested("data", "task_id"),
    _nested("data", "taskId"),
]

IMAGE_URL_EXTRACTORS: List[Extractor] = [
    _field("image_url"),
    _field("imageUrl"),
    _field("url"),
    _first_item("images", "url"),
    _nested("data", "image_url"),
    _nested("data", "url"),
]

VIDEO_URL_EXTRACTORS: List[Extractor] = [
    _field("video_url"),
    _field("videoUrl"),
    _field("url"),
    _first_item("videos", "url"),
    _nested("data", "video_url"),
    _nested("data", "url"),
]

CONTENT_EXTRACTORS: List[Extractor] = [
    (lambda payload: isinstance(payload.get("content"), str), _get("content")),
    (lambda payload: isinstance(payload.get("text"), str), _get("text")),
    (_chat_content_has, lambda payload: payload["choices"][0]["message"]["content"]),
]

FINISH_REASON_EXTRACTORS: List[Extractor] = [
    _field("finish_reason"),
    _field("finishReason"),
    _first_item("choices", "finish_reason"),
]

STATUS_EXTRACTORS: List[Extractor] = [
    _field("status"),
    _field("state"),
    _nested("data", "status"),
    _nested("data", "task_status"),
]

ERROR_EXTRACTORS: List[Extractor] = [
    _nested("error", "message"),
    _field("error"),
    _field("fail_reason"),
    _nested("data", "fail_reason"),
    _field("message"),
]

_SUCCESS_VALUES = {"success", "succeed", "succeeded", "completed", "complete", "done", "finished"}
_FAILED_VALUES = {"failed", "fail", "failure", "error", "cancelled", "canceled", "rejected"}


def first_match(payload: Optional[Dict[str, Any]], extractors: List[Extractor]) -> Any:
    """Return the value of the first extractor whose predicate matches, else None."""
    if not isinstance(payload, dict):
        return None
    for predicate, accessor in extractors:
        if predicate(payload):
            return accessor(payload)
    return None


def extract_task_id(payload: Dict[str, Any]) -> Optional[str]:
    value = first_match(payload, TASK_ID_EXTRACTORS)
    return str(value) if value is not None else None


def extract_image_url(payload: Dict[str, Any]) -> Optional[str]:
    return first_match(payload, IMAGE_URL_EXTRACTORS)


def extract_video_url(payload: Dict[str, Any]) -> Optional[str]:
    return first_match(payload, VIDEO_URL_EXTRACTORS)


def extract_content(payload: Dict[str, Any]) -> str:
    return first_match(payload, CONTENT_EXTRACTORS) or ""


def extract_finish_reason(payload: Dict[str, Any]) -> Optional[str]:
    return first_match(payload, FINISH_REASON_EXTRACTORS)


def extract_error(payload: Dict[str, Any]) -> Optional[str]:
    value = first_match(payload, ERROR_EXTRACTORS)
    return str(value) if value is not None else None


def extract_status(payload: Dict[str, Any]) -> TaskStatus:
    """Map a vendor status string onto success, failed or pending."""
    value = first_match(payload, STATUS_EXTRACTORS)
    if value is None:
        return TaskStatus.PENDING
    normalized = str(value).strip().lower()
    if normalized in _SUCCESS_VALUES:
        return TaskStatus.SUCCESS
    if normalized in _FAILED_VALUES:
        return TaskStatus.FAILED
    return TaskStatus.PENDING
